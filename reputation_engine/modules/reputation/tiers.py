"""
Tier resolution.

Maps a reputation score to its tier band and reports the distance to the
next band. Scores outside the table's range are clamped before lookup, so
every integer resolves to exactly one band.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from reputation_engine.modules.reputation.tables import TierBand, TierTable

DEFAULT_TIER_TABLE = TierTable()


@dataclass(frozen=True)
class NextTier:
    """The band above the current one and the points still missing."""

    tier: TierBand
    points_needed: int

    def to_dict(self) -> Dict[str, Any]:
        return {**self.tier.to_dict(), "points_needed": self.points_needed}


def resolve_tier(score: float, table: TierTable = DEFAULT_TIER_TABLE) -> TierBand:
    """
    Band containing ``score``.

    Example:
        >>> resolve_tier(2500).name
        'Gold'
        >>> resolve_tier(-5).name
        'Bronze'
    """
    clamped = table.clamp(score)
    for band in table.bands:
        if band.contains(clamped):
            return band
    # Unreachable for a validated table; bands are contiguous over the range
    return table.bands[0]


def next_tier(score: float, table: TierTable = DEFAULT_TIER_TABLE) -> Optional[NextTier]:
    """
    Next band above the one ``score`` resolves to, or None at the top tier.

    Example:
        >>> next_tier(800).points_needed
        200
        >>> next_tier(9600) is None
        True
    """
    current = resolve_tier(score, table)
    index = table.bands.index(current)
    if index >= len(table.bands) - 1:
        return None
    upcoming = table.bands[index + 1]
    return NextTier(tier=upcoming, points_needed=upcoming.min_score - table.clamp(score))
