"""
Reputation aggregation.

Combines the five sub-scores into the final reputation score:

    weighted = activity * w_a + social * w_s + achievement * w_ach
             + trust * w_t + consistency * w_c
    final    = clamp(round_half_up(weighted * tier_multiplier), 0, 10000)

``tier_multiplier`` comes from the tier of the score *before* this update,
so users already in a higher tier accrue reputation faster.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from reputation_engine.modules.reputation.subscores import SubScores
from reputation_engine.modules.reputation.tables import (
    DEFAULT_SCORING_TABLES,
    ReputationWeights,
    TierTable,
)
from reputation_engine.modules.reputation.tiers import resolve_tier


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves rounded up.

    Python's ``round`` uses banker's rounding; scores use half-up.

    Example:
        >>> round_half_up(2.5), round_half_up(3.5), round_half_up(-0.5)
        (3, 4, 0)
    """
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class ReputationResult:
    """Final score plus the inputs that produced it, for auditing."""

    total: int
    breakdown: SubScores
    weighted: int
    raw_weighted: float
    tier_multiplier: float


def weighted_sum(sub_scores: SubScores, weights: ReputationWeights) -> float:
    return (
        sub_scores.activity.total * weights.activity
        + sub_scores.social.total * weights.social
        + sub_scores.achievement.total * weights.achievement
        + sub_scores.trust.total * weights.trust
        + sub_scores.consistency * weights.consistency
    )


def aggregate_reputation(
    sub_scores: SubScores,
    prior_score: int,
    weights: ReputationWeights = DEFAULT_SCORING_TABLES.weights,
    tiers: TierTable = DEFAULT_SCORING_TABLES.tiers,
) -> ReputationResult:
    """
    Compute the final reputation score.

    Args:
        sub_scores: The five sub-scores of this recompute
        prior_score: Reputation score stored before this recompute; selects
            the tier multiplier
        weights: Per-dimension weights
        tiers: Tier bands (multipliers and score range)

    Returns:
        ReputationResult with ``total`` in ``[tiers.min_score, tiers.max_score]``
    """
    raw = weighted_sum(sub_scores, weights)
    multiplier = resolve_tier(prior_score, tiers).multiplier
    total = tiers.clamp(round_half_up(raw * multiplier))

    return ReputationResult(
        total=total,
        breakdown=sub_scores,
        weighted=round_half_up(raw),
        raw_weighted=raw,
        tier_multiplier=multiplier,
    )
