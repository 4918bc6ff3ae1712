"""
Progression module: XP awards and level advancement.

- leveling.py: pure XP/level calculator
- tables.py: leveling curve, bonus multipliers and session tables
"""

from .leveling import (
    LevelResult,
    calculate_level_and_xp,
    calculate_level_progress,
    calculate_xp_multiplier,
)
from .tables import LEVELING_TABLE, SESSION_TABLE, LevelingTable, SessionTable

__all__ = [
    "LevelResult",
    "calculate_level_and_xp",
    "calculate_level_progress",
    "calculate_xp_multiplier",
    "LEVELING_TABLE",
    "SESSION_TABLE",
    "LevelingTable",
    "SessionTable",
]
