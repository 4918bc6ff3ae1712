"""
Pytest Configuration and Fixtures for the Reputation Engine Tests
=================================================================

Purpose
-------
Centralized fixtures for the test suite: a controllable clock, profile and
state factories, the in-memory store, an event bus that records what it
published, a ready-to-use ProgressionService, and a SQLite-backed
DatabaseService for the SQL store integration tests.

Architecture Notes
------------------
- Unit tests use the in-memory store and a fixed clock (fast, isolated)
- Integration tests use aiosqlite on a temporary file (real SQL, no server)
- SQLite engines always run on NullPool, so each test file database is
  released as soon as its session closes
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Callable, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from reputation_engine.core.database import (
    DatabaseService,
    RetryConfig,
    RetryPolicy,
)
from reputation_engine.core.event_bus import EventBus
from reputation_engine.core.locking import LocalLockProvider
from reputation_engine.domain.models import UserGameState, UserProfile
from reputation_engine.modules.engine import (
    InMemoryUserStore,
    ProgressionService,
    SqlUserStore,
)
from reputation_engine.modules.reputation import (
    DEFAULT_SCORING_TABLES,
    HistoryLedger,
)

from reputation_engine.database.models import UserGameStateRecord  # noqa: F401  registers the table

FIXED_NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# CLOCK
# ============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


@pytest.fixture
def make_profile() -> Callable[..., UserProfile]:
    """
    Factory for UserProfile.

    Usage:
        profile = make_profile(is_verified=True, verification_date=...)
    """

    def _make(**overrides: Any) -> UserProfile:
        fields: Dict[str, Any] = {"username": "ada", "tracks": ("python",)}
        fields.update(overrides)
        return UserProfile(**fields)

    return _make


@pytest.fixture
def make_state(make_profile) -> Callable[..., UserGameState]:
    """
    Factory for UserGameState registered at FIXED_NOW unless overridden.

    Usage:
        state = make_state("user-1", reputation_score=999)
    """

    def _make(
        user_identifier: str = "user-1",
        *,
        profile: Optional[UserProfile] = None,
        created_at: datetime = FIXED_NOW,
        **overrides: Any,
    ) -> UserGameState:
        state = UserGameState.new(
            user_identifier,
            profile=profile or make_profile(),
            created_at=created_at,
        )
        for name, value in overrides.items():
            setattr(state, name, value)
        state.validate()
        return state

    return _make


# ============================================================================
# ENGINE FIXTURES
# ============================================================================


class RecordingEventBus(EventBus):
    """EventBus that also keeps every published (name, payload) pair."""

    def __init__(self) -> None:
        super().__init__()
        self.published: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, event_name: str, data: Dict[str, Any]) -> List[Any]:
        self.published.append((event_name, data))
        return await super().publish(event_name, data)

    def names(self) -> List[str]:
        return [name for name, _ in self.published]

    def payload(self, event_name: str) -> Optional[Dict[str, Any]]:
        for name, data in self.published:
            if name == event_name:
                return data
        return None


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Retry policy with the production attempt budget and no sleeping."""
    return RetryPolicy(
        RetryConfig(max_attempts=3, initial_backoff_ms=0, max_backoff_ms=0, jitter_ms=0)
    )


@pytest.fixture
def build_service(clock, event_bus, fast_retry) -> Callable[..., ProgressionService]:
    """
    Factory for ProgressionService with deterministic collaborators.

    Usage:
        service = build_service(store, lock_provider=NoLockProvider())
    """

    def _build(store, **overrides: Any) -> ProgressionService:
        options: Dict[str, Any] = {
            "event_bus": event_bus,
            "lock_provider": LocalLockProvider(),
            "retry_policy": fast_retry,
            "tables": DEFAULT_SCORING_TABLES,
            "history": HistoryLedger(),
            "clock": clock,
        }
        options.update(overrides)
        return ProgressionService(store, **options)

    return _build


@pytest.fixture
def service(build_service, store) -> ProgressionService:
    return build_service(store)


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[type[DatabaseService], None]:
    """
    DatabaseService bound to a fresh SQLite file with the schema created.

    Scope: function (clean database per test)
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'reputation.db'}"
    await DatabaseService.initialize(url)
    await DatabaseService.create_schema()
    yield DatabaseService
    await DatabaseService.shutdown()


@pytest.fixture
def sql_store(database) -> SqlUserStore:
    return SqlUserStore()
