"""
User state store port and the in-memory adapter.

The progression service reaches state only through ``load_state`` and
``save_state``. A save carries the version the caller loaded; the store
refuses it with ``ConcurrencyConflictError`` when the stored version has
moved on, and bumps the version on success.
"""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, Optional, Protocol, runtime_checkable

from reputation_engine.core.logging import get_logger
from reputation_engine.domain.models import UserGameState
from reputation_engine.modules.shared.exceptions import (
    ConcurrencyConflictError,
    InvalidOperationError,
    NotFoundError,
)

logger = get_logger(__name__)

STATE_RESOURCE = "UserGameState"


@runtime_checkable
class UserStore(Protocol):
    """Persistence port for ``UserGameState``."""

    async def load_state(self, user_identifier: str) -> Optional[UserGameState]:
        ...

    async def save_state(
        self, state: UserGameState, expected_version: int
    ) -> UserGameState:
        ...


class InMemoryUserStore:
    """
    Dict-backed store for tests and embedding.

    States are deep-copied on the way in and out so callers never share
    mutable objects with the store. Both calls yield to the event loop once,
    which lets concurrent recomputes interleave the way they would against a
    real database.

    Args:
        states: Initial states to seed
        check_version: When False, saves skip the version comparison and the
            last writer wins
    """

    def __init__(
        self,
        states: Iterable[UserGameState] = (),
        *,
        check_version: bool = True,
    ) -> None:
        self.check_version = check_version
        self._states: Dict[str, UserGameState] = {}
        for state in states:
            self._states[state.user_identifier] = state.copy()

    def __contains__(self, user_identifier: str) -> bool:
        return user_identifier in self._states

    def __len__(self) -> int:
        return len(self._states)

    async def create_state(self, state: UserGameState) -> UserGameState:
        """
        Insert a new user's state.

        Raises:
            InvalidOperationError: If the user already has a state
        """
        if state.user_identifier in self._states:
            raise InvalidOperationError(
                "create_state", f"state for '{state.user_identifier}' already exists"
            )
        self._states[state.user_identifier] = state.copy()
        return state.copy()

    async def load_state(self, user_identifier: str) -> Optional[UserGameState]:
        stored = self._states.get(user_identifier)
        snapshot = stored.copy() if stored is not None else None
        await asyncio.sleep(0)
        return snapshot

    async def save_state(
        self, state: UserGameState, expected_version: int
    ) -> UserGameState:
        """
        Store ``state`` with ``version = expected_version + 1``.

        Raises:
            NotFoundError: If the user has no stored state
            ConcurrencyConflictError: If versions are checked and the stored
                version differs from ``expected_version``
        """
        await asyncio.sleep(0)
        current = self._states.get(state.user_identifier)
        if current is None:
            raise NotFoundError(STATE_RESOURCE, state.user_identifier)

        if self.check_version and current.version != expected_version:
            logger.debug(
                "Version conflict on save",
                extra={
                    "user_identifier": state.user_identifier,
                    "expected_version": expected_version,
                    "actual_version": current.version,
                },
            )
            raise ConcurrencyConflictError(
                state.user_identifier, expected_version, current.version
            )

        stored = state.copy()
        stored.version = current.version + 1
        self._states[state.user_identifier] = stored
        return stored.copy()
