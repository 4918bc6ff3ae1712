"""
Reputation module: sub-scores, aggregation, tiers and history.

- subscores.py: the five independent sub-score calculators
- aggregator.py: weighted sum with the prior tier's multiplier
- tiers.py: tier resolution and next-tier distance
- history.py: bounded history ledger
- tables.py: weights, tier bands and the YAML-loadable table bundle
"""

from .aggregator import ReputationResult, aggregate_reputation, round_half_up
from .history import DEFAULT_HISTORY_CAPACITY, HistoryLedger
from .subscores import (
    AchievementBreakdown,
    ActivityBreakdown,
    SocialBreakdown,
    SubScores,
    TrustBreakdown,
    calculate_achievement_score,
    calculate_activity_score,
    calculate_consistency_score,
    calculate_social_score,
    calculate_trust_score,
)
from .tables import (
    DEFAULT_SCORING_TABLES,
    ReputationWeights,
    ScoringTables,
    TierBand,
    TierTable,
    build_scoring_tables,
    load_scoring_tables,
)
from .tiers import NextTier, next_tier, resolve_tier

__all__ = [
    "ReputationResult",
    "aggregate_reputation",
    "round_half_up",
    "DEFAULT_HISTORY_CAPACITY",
    "HistoryLedger",
    "AchievementBreakdown",
    "ActivityBreakdown",
    "SocialBreakdown",
    "SubScores",
    "TrustBreakdown",
    "calculate_achievement_score",
    "calculate_activity_score",
    "calculate_consistency_score",
    "calculate_social_score",
    "calculate_trust_score",
    "DEFAULT_SCORING_TABLES",
    "ReputationWeights",
    "ScoringTables",
    "TierBand",
    "TierTable",
    "build_scoring_tables",
    "load_scoring_tables",
    "NextTier",
    "next_tier",
    "resolve_tier",
]
