"""
Progression orchestrator.

Purpose
-------
Turn one activity report into an updated, persisted user state:

    lock(user) -> load -> compute level/XP and reputation -> merge
    achievements -> append history -> save -> unlock -> publish events

Also serves the read view (``get``) and the administrative ``reset``.

Concurrency
-----------
Two guards keep concurrent recomputes for the same user from losing
updates:

- the ``UserLockProvider`` serializes the whole load-compute-save sequence
  per user identifier;
- the store refuses a save whose expected version is stale. The sequence is
  then re-run under ``RetryPolicy`` and, once attempts are exhausted, the
  conflict surfaces as ``TransientError``.

All mutation happens on a private copy of the loaded state and the store
writes it in one call, so a failed recompute persists nothing. Calls for
different users share no mutable state.

Events
------
Published on the service's ``EventBus`` after a successful save:

- ``progression.recomputed``: every recompute
- ``progression.leveled_up``: when at least one level was gained
- ``reputation.tier_changed``: when the tier name changed
- ``progression.reset``: after an administrative reset
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar, Union

from reputation_engine.core.config import Config
from reputation_engine.core.database.retry_policy import RetryPolicy
from reputation_engine.core.event_bus import EventBus
from reputation_engine.core.locking import UserLockProvider, build_lock_provider, user_lock_key
from reputation_engine.core.logging import LogContext, get_logger
from reputation_engine.domain.models import (
    ActivityInput,
    UserGameState,
    ensure_utc,
    whole_days_between,
)
from reputation_engine.modules.engine.results import (
    RecomputeOutcome,
    build_get_payload,
    build_recompute_payload,
)
from reputation_engine.modules.engine.store import STATE_RESOURCE, UserStore
from reputation_engine.modules.progression import calculate_level_and_xp
from reputation_engine.modules.reputation import (
    DEFAULT_HISTORY_CAPACITY,
    HistoryLedger,
    ScoringTables,
    SubScores,
    aggregate_reputation,
    calculate_achievement_score,
    calculate_activity_score,
    calculate_consistency_score,
    calculate_social_score,
    calculate_trust_score,
    load_scoring_tables,
    resolve_tier,
)
from reputation_engine.modules.shared.base_service import BaseService
from reputation_engine.modules.shared.exceptions import (
    ConcurrencyConflictError,
    NotFoundError,
    ResetNotConfirmedError,
    TransientError,
    ValidationError,
)

T = TypeVar("T")

Clock = Callable[[], datetime]

EVENT_RECOMPUTED = "progression.recomputed"
EVENT_LEVELED_UP = "progression.leveled_up"
EVENT_TIER_CHANGED = "reputation.tier_changed"
EVENT_RESET = "progression.reset"


def _system_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DayCounts:
    """
    Whole-day intervals the calculators need, measured at one instant.

    A user who never recomputed before counts as active yesterday for the
    XP bonus, as active today for the activity score, and as inactive since
    account creation for the consistency score.
    """

    since_active_for_xp: int
    since_active_for_activity: int
    since_active_for_consistency: int
    account_age: int
    since_verification: Optional[int]

    @classmethod
    def measure(cls, state: UserGameState, now: datetime) -> "DayCounts":
        account_age = whole_days_between(now, state.created_at)
        verification_date = state.profile.verification_date
        since_verification = (
            whole_days_between(now, verification_date)
            if verification_date is not None
            else None
        )

        if state.last_active is None:
            return cls(
                since_active_for_xp=1,
                since_active_for_activity=0,
                since_active_for_consistency=account_age,
                account_age=account_age,
                since_verification=since_verification,
            )

        days = whole_days_between(now, state.last_active)
        return cls(
            since_active_for_xp=days,
            since_active_for_activity=days,
            since_active_for_consistency=days,
            account_age=account_age,
            since_verification=since_verification,
        )


class ProgressionService(BaseService):
    """
    Orchestrates recompute, read and reset against a ``UserStore``.

    Args:
        store: Persistence port
        event_bus: Bus for domain events (a private bus when omitted)
        lock_provider: Per-user lock (``Config.LOCK_BACKEND`` when omitted)
        retry_policy: Conflict retry policy (RECOMPUTE_* settings when omitted)
        tables: Scoring tables (``Config.SCORING_TABLES_PATH`` or defaults)
        history: History ledger (``Config.HISTORY_CAPACITY`` when omitted)
        clock: Returns the current time; injected for deterministic tests
        config: Settings object, normally ``Config``
        logger: Service logger
    """

    def __init__(
        self,
        store: UserStore,
        *,
        event_bus: Optional[EventBus] = None,
        lock_provider: Optional[UserLockProvider] = None,
        retry_policy: Optional[RetryPolicy] = None,
        tables: Optional[ScoringTables] = None,
        history: Optional[HistoryLedger] = None,
        clock: Optional[Clock] = None,
        config: Any = Config,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config, event_bus or EventBus(), logger or get_logger(__name__))
        self.store = store
        self.lock_provider = (
            lock_provider
            if lock_provider is not None
            else build_lock_provider(self.get_config("LOCK_BACKEND"))
        )
        self.retry_policy = retry_policy or RetryPolicy.from_config()
        self.tables = tables or load_scoring_tables(self.get_config("SCORING_TABLES_PATH"))
        self.history = history or HistoryLedger(
            int(self.get_config("HISTORY_CAPACITY", DEFAULT_HISTORY_CAPACITY))
        )
        self._clock = clock or _system_clock

    # ========================================================================
    # Public API
    # ========================================================================

    async def recompute(
        self,
        user_identifier: str,
        activity: Union[ActivityInput, Mapping[str, Any]],
        *,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Apply one activity report to the user's state and persist it.

        Args:
            user_identifier: User whose state is updated
            activity: ``ActivityInput`` or a raw payload for
                ``ActivityInput.from_payload``
            timeout: Seconds before the call is cancelled with
                ``asyncio.TimeoutError``; None waits indefinitely

        Returns:
            Result payload (level, reputation, activity, achievements, status)

        Raises:
            ValidationError: Malformed identifier or activity payload
            NotFoundError: No state stored for the user
            TransientError: Version conflicts outlasted the retry policy, or
                the lock wait timed out (``LockTimeoutError``)
            PersistenceError: The store failed; nothing was written
        """
        self._validate_identifier(user_identifier)
        activity_input = (
            activity
            if isinstance(activity, ActivityInput)
            else ActivityInput.from_payload(activity)
        )

        operation = self._recompute(user_identifier, activity_input)
        if timeout is None:
            return await operation
        return await asyncio.wait_for(operation, timeout)

    async def get(self, user_identifier: str) -> Dict[str, Any]:
        """
        Read view of the stored state. No side effects.

        Raises:
            ValidationError: Malformed identifier
            NotFoundError: No state stored for the user
        """
        self._validate_identifier(user_identifier)
        state = await self.store.load_state(user_identifier)
        if state is None:
            raise NotFoundError(STATE_RESOURCE, user_identifier)
        return build_get_payload(state, self.tables.tiers)

    async def reset(
        self,
        user_identifier: str,
        *,
        confirm: bool,
        clear_history: bool = False,
    ) -> Dict[str, Any]:
        """
        Zero level, experience and achievements.

        Identity, badges, profile, score, tier, metrics and history are kept;
        ``clear_history=True`` also empties the history. ``last_active`` is
        set to now.

        Raises:
            ResetNotConfirmedError: Unless ``confirm`` is exactly True
            NotFoundError: No state stored for the user
        """
        self._validate_identifier(user_identifier)
        if confirm is not True:
            raise ResetNotConfirmedError(user_identifier)

        async with LogContext(
            user_identifier=user_identifier, component="progression", operation="reset"
        ):
            saved = await self._serialized(
                "reset",
                user_identifier,
                lambda: self._reset_once(user_identifier, clear_history),
            )
            await self.emit_event(
                EVENT_RESET,
                {"user_identifier": user_identifier, "clear_history": clear_history},
            )
            self.log_operation(
                "reset", user_identifier=user_identifier, clear_history=clear_history
            )
        return build_get_payload(saved, self.tables.tiers)

    # ========================================================================
    # Recompute
    # ========================================================================

    async def _recompute(
        self, user_identifier: str, activity: ActivityInput
    ) -> Dict[str, Any]:
        async with LogContext(
            user_identifier=user_identifier, component="progression", operation="recompute"
        ):
            outcome = await self._serialized(
                "recompute",
                user_identifier,
                lambda: self._recompute_once(user_identifier, activity),
            )
            await self._publish_recompute_events(outcome)
            self.log_operation(
                "recompute",
                user_identifier=user_identifier,
                level=outcome.state.level,
                earned_xp=outcome.level.earned_xp,
                score=outcome.state.reputation_score,
                score_change=outcome.state.reputation_score - outcome.previous_score,
                tier=outcome.state.reputation_tier,
            )
            return build_recompute_payload(outcome, self.tables)

    async def _recompute_once(
        self, user_identifier: str, activity: ActivityInput
    ) -> RecomputeOutcome:
        async with self.lock_provider.lock(user_lock_key(user_identifier)):
            loaded = await self._load_existing(user_identifier)
            now = self._now()
            previous_score = loaded.reputation_score
            days = DayCounts.measure(loaded, now)

            level = calculate_level_and_xp(
                prior_experience=loaded.experience,
                prior_level=loaded.level,
                minutes_watched=activity.minutes_watched,
                session_quality=activity.session_quality,
                is_streak=activity.is_streak,
                is_new_user=activity.is_new_user,
                is_verified=loaded.profile.is_verified,
                days_since_last_active=days.since_active_for_xp,
                table=self.tables.leveling,
                session_table=self.tables.session,
            )
            sub_scores = self._score(loaded, activity, days)
            reputation = aggregate_reputation(
                sub_scores,
                previous_score,
                weights=self.tables.weights,
                tiers=self.tables.tiers,
            )
            tier = resolve_tier(reputation.total, self.tables.tiers)
            snapshot = sub_scores.to_snapshot()

            working = loaded.copy()
            working.level = level.level
            working.experience = level.experience
            working.achievements = [*loaded.achievements, *activity.new_achievements]
            working.reputation_score = reputation.total
            working.reputation_tier = tier.name
            working.metrics = snapshot
            working.last_active = now
            working.reputation_history = self.history.append(
                loaded.reputation_history,
                self.history.build_entry(
                    date=now,
                    score=reputation.total,
                    tier=tier.name,
                    previous_score=previous_score,
                    breakdown=snapshot,
                ),
            )
            working.validate()

            saved = await self.store.save_state(working, expected_version=loaded.version)

        return RecomputeOutcome(
            state=saved,
            previous_score=previous_score,
            level=level,
            reputation=reputation,
            activity=activity,
            calculated_at=now,
        )

    def _score(
        self, state: UserGameState, activity: ActivityInput, days: DayCounts
    ) -> SubScores:
        return SubScores(
            activity=calculate_activity_score(
                minutes_watched=activity.minutes_watched,
                duration_in_minutes=activity.duration_in_minutes,
                session_quality=activity.session_quality,
                days_since_last_active=days.since_active_for_activity,
                session_table=self.tables.session,
            ),
            social=calculate_social_score(
                collaborations=activity.collaborations,
                helpfulness=activity.helpfulness,
                profile=state.profile,
            ),
            achievement=calculate_achievement_score(
                existing_count=len(state.achievements),
                new_count=len(activity.new_achievements),
                skill_progress=activity.skill_progress,
                badge_count=len(state.badges),
            ),
            trust=calculate_trust_score(
                profile=state.profile,
                days_since_verification=days.since_verification,
            ),
            consistency=calculate_consistency_score(
                days_since_last_active=days.since_active_for_consistency,
                account_age_days=days.account_age,
            ),
        )

    async def _publish_recompute_events(self, outcome: RecomputeOutcome) -> None:
        state = outcome.state
        previous_tier = resolve_tier(outcome.previous_score, self.tables.tiers).name

        await self.emit_event(
            EVENT_RECOMPUTED,
            {
                "user_identifier": state.user_identifier,
                "level": state.level,
                "experience": state.experience,
                "earned_xp": outcome.level.earned_xp,
                "reputation_score": state.reputation_score,
                "score_change": state.reputation_score - outcome.previous_score,
                "reputation_tier": state.reputation_tier,
            },
        )
        if outcome.level.levels_gained > 0:
            await self.emit_event(
                EVENT_LEVELED_UP,
                {
                    "user_identifier": state.user_identifier,
                    "previous_level": state.level - outcome.level.levels_gained,
                    "level": state.level,
                    "levels_gained": outcome.level.levels_gained,
                },
            )
        if state.reputation_tier != previous_tier:
            await self.emit_event(
                EVENT_TIER_CHANGED,
                {
                    "user_identifier": state.user_identifier,
                    "previous_tier": previous_tier,
                    "tier": state.reputation_tier,
                    "reputation_score": state.reputation_score,
                },
            )

    # ========================================================================
    # Reset
    # ========================================================================

    async def _reset_once(self, user_identifier: str, clear_history: bool) -> UserGameState:
        async with self.lock_provider.lock(user_lock_key(user_identifier)):
            loaded = await self._load_existing(user_identifier)

            working = loaded.copy()
            working.level = 1
            working.experience = 0
            working.achievements = []
            working.last_active = self._now()
            if clear_history:
                working.reputation_history = []

            return await self.store.save_state(working, expected_version=loaded.version)

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _serialized(
        self,
        operation: str,
        user_identifier: str,
        attempt: Callable[[], Awaitable[T]],
    ) -> T:
        """Run ``attempt`` under the retry policy; exhausted conflicts become TransientError."""
        try:
            return await self.retry_policy.execute(
                attempt,
                operation_name=f"progression.{operation}",
                context={"user_identifier": user_identifier},
            )
        except ConcurrencyConflictError as exc:
            error = TransientError(
                operation,
                "state kept changing concurrently; retry later",
                attempts=self.retry_policy.max_attempts,
            )
            self.log_error(operation, error, user_identifier=user_identifier)
            raise error from exc

    async def _load_existing(self, user_identifier: str) -> UserGameState:
        state = await self.store.load_state(user_identifier)
        if state is None:
            raise NotFoundError(STATE_RESOURCE, user_identifier)
        return state

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    @staticmethod
    def _validate_identifier(user_identifier: Any) -> None:
        if not isinstance(user_identifier, str) or not user_identifier.strip():
            raise ValidationError("user_identifier", "must be a non-empty string")
