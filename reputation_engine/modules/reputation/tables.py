"""
Reputation weights, tier bands and the scoring-table bundle.

Purpose
-------
Hold every balance number the engine uses as frozen value objects, and build
them from YAML so environments can swap them without code changes.

Responsibilities
----------------
- Define ``ReputationWeights``, ``TierBand``, ``TierTable`` and the
  ``ScoringTables`` bundle with their invariants
- Load overrides from a YAML file with ``yaml.safe_load``, section by section
  on top of the built-in defaults

Non-Responsibilities
--------------------
- Scoring itself (see ``subscores``, ``aggregator``, ``tiers``)
- Environment configuration (see ``reputation_engine.core.config``)

YAML Layout
-----------
See ``config/scoring.yaml``; every top-level section is optional::

    leveling: {base_xp: 100, growth_rate: 1.5, ...}
    session: {quality_factors: {...}, thresholds: {...}}
    weights: {activity: 0.35, social: 0.25, ...}
    tiers: [{name: Bronze, min_score: 0, max_score: 999, multiplier: 1.0, ...}, ...]
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

from reputation_engine.core.logging.logger import get_logger
from reputation_engine.domain.models.game_state import MAX_SCORE, MIN_SCORE
from reputation_engine.modules.progression.tables import (
    LEVELING_TABLE,
    SESSION_TABLE,
    LevelingTable,
    SessionTable,
)
from reputation_engine.modules.shared.exceptions import ConfigurationError

logger = get_logger(__name__)


# ============================================================================
# Weights
# ============================================================================


@dataclass(frozen=True)
class ReputationWeights:
    """Per-dimension weights for the weighted sum of sub-scores."""

    activity: float = 0.35
    social: float = 0.25
    achievement: float = 0.20
    trust: float = 0.15
    consistency: float = 0.05

    def __post_init__(self) -> None:
        for f in fields(self):
            if getattr(self, f.name) < 0:
                raise ConfigurationError(f"weights.{f.name}", "must be >= 0")

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ============================================================================
# Tiers
# ============================================================================


@dataclass(frozen=True)
class TierBand:
    """One reputation tier: an inclusive score band and its multiplier."""

    name: str
    min_score: int
    max_score: int
    multiplier: float
    color: str = ""
    badge: str = ""

    def contains(self, score: int) -> bool:
        return self.min_score <= score <= self.max_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "multiplier": self.multiplier,
            "color": self.color,
            "badge": self.badge,
        }


DEFAULT_TIERS: Tuple[TierBand, ...] = (
    TierBand("Bronze", 0, 999, 1.0, "#CD7F32", "🥉"),
    TierBand("Silver", 1000, 2499, 1.1, "#C0C0C0", "🥈"),
    TierBand("Gold", 2500, 4999, 1.2, "#FFD700", "🥇"),
    TierBand("Platinum", 5000, 7499, 1.3, "#E5E4E2", "💎"),
    TierBand("Diamond", 7500, 9499, 1.4, "#B9F2FF", "💎"),
    TierBand("Legendary", 9500, 10000, 1.5, "#FF6B6B", "👑"),
)


@dataclass(frozen=True)
class TierTable:
    """
    Ordered, contiguous tier bands covering ``[min_score, max_score]``.

    Invariants: the first band starts at ``min_score``, each band starts one
    point after the previous band ends, the last band ends at ``max_score``,
    and multipliers are positive.
    """

    bands: Tuple[TierBand, ...] = DEFAULT_TIERS
    min_score: int = MIN_SCORE
    max_score: int = MAX_SCORE

    def __post_init__(self) -> None:
        bands = tuple(self.bands)
        object.__setattr__(self, "bands", bands)
        if not bands:
            raise ConfigurationError("tiers", "at least one tier is required")
        if bands[0].min_score != self.min_score:
            raise ConfigurationError(
                "tiers", f"first tier must start at {self.min_score}"
            )
        if bands[-1].max_score != self.max_score:
            raise ConfigurationError("tiers", f"last tier must end at {self.max_score}")
        for previous, current in zip(bands, bands[1:]):
            if current.min_score != previous.max_score + 1:
                raise ConfigurationError(
                    "tiers",
                    f"tier {current.name} must start at {previous.max_score + 1}",
                )
        for band in bands:
            if band.min_score > band.max_score:
                raise ConfigurationError("tiers", f"tier {band.name} has an empty band")
            if band.multiplier <= 0:
                raise ConfigurationError("tiers", f"tier {band.name} multiplier must be > 0")

    def clamp(self, score: float) -> int:
        return int(min(max(score, self.min_score), self.max_score))


# ============================================================================
# Bundle
# ============================================================================


@dataclass(frozen=True)
class ScoringTables:
    """Every table the engine scores with, passed by value."""

    leveling: LevelingTable = LEVELING_TABLE
    session: SessionTable = SESSION_TABLE
    weights: ReputationWeights = field(default_factory=ReputationWeights)
    tiers: TierTable = field(default_factory=TierTable)


DEFAULT_SCORING_TABLES = ScoringTables()


def _section(data: Mapping[str, Any], key: str, expected: type) -> Any:
    value = data.get(key)
    if value is not None and not isinstance(value, expected):
        raise ConfigurationError(key, f"expected a {expected.__name__} section")
    return value


def build_scoring_tables(data: Optional[Mapping[str, Any]]) -> ScoringTables:
    """
    Build tables from a parsed mapping, falling back to defaults per section.

    Raises:
        ConfigurationError: If a section is malformed or violates an invariant
    """
    if not data:
        return DEFAULT_SCORING_TABLES
    if not isinstance(data, Mapping):
        raise ConfigurationError("scoring_tables", "root must be a mapping")

    try:
        leveling = _section(data, "leveling", Mapping)
        session = _section(data, "session", Mapping)
        weights = _section(data, "weights", Mapping)
        tiers = _section(data, "tiers", list)

        return ScoringTables(
            leveling=LevelingTable(**leveling) if leveling else LEVELING_TABLE,
            session=SessionTable(**session) if session else SESSION_TABLE,
            weights=ReputationWeights(**weights) if weights else ReputationWeights(),
            tiers=(
                TierTable(bands=tuple(TierBand(**band) for band in tiers))
                if tiers
                else TierTable()
            ),
        )
    except TypeError as exc:
        raise ConfigurationError("scoring_tables", f"unknown or missing key: {exc}") from exc


def load_scoring_tables(path: Optional[Union[str, Path]] = None) -> ScoringTables:
    """
    Load scoring tables from a YAML file.

    A ``None`` path or a missing file yields the built-in defaults. A file
    that exists but cannot be parsed raises ``ConfigurationError``.
    """
    if path is None:
        return DEFAULT_SCORING_TABLES

    yaml_file = Path(path)
    if not yaml_file.exists():
        logger.warning(
            "Scoring tables file not found; using built-in defaults",
            extra={"path": str(yaml_file)},
        )
        return DEFAULT_SCORING_TABLES

    try:
        with yaml_file.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(str(yaml_file), f"invalid YAML: {exc}") from exc

    tables = build_scoring_tables(data)
    logger.info(
        "Scoring tables loaded",
        extra={
            "path": str(yaml_file),
            "tier_count": len(tables.tiers.bands),
            "max_level": tables.leveling.max_level,
        },
    )
    return tables
