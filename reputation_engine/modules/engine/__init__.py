"""
Engine module: the progression orchestrator and its state stores.

- service.py: ProgressionService (recompute, get, reset)
- store.py: UserStore port and InMemoryUserStore
- sql_store.py: SqlUserStore over SQLAlchemy
- results.py: result payload shaping
"""

from .results import build_get_payload, build_recompute_payload, to_jsonable
from .service import (
    EVENT_LEVELED_UP,
    EVENT_RECOMPUTED,
    EVENT_RESET,
    EVENT_TIER_CHANGED,
    DayCounts,
    ProgressionService,
)
from .sql_store import SqlUserStore
from .store import InMemoryUserStore, UserStore

__all__ = [
    "DayCounts",
    "EVENT_LEVELED_UP",
    "EVENT_RECOMPUTED",
    "EVENT_RESET",
    "EVENT_TIER_CHANGED",
    "InMemoryUserStore",
    "ProgressionService",
    "SqlUserStore",
    "UserStore",
    "build_get_payload",
    "build_recompute_payload",
    "to_jsonable",
]
