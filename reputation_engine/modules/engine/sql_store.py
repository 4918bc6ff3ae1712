"""
SQLAlchemy-backed user state store.

Reads run in a plain session. Saves lock the row with ``SELECT ... FOR
UPDATE`` inside ``DatabaseService.get_transaction()``, compare the version,
write every column and bump the version, all in one transaction. Any
``SQLAlchemyError``, or an ``OverflowError`` from a driver refusing a value,
surfaces as ``PersistenceError``; nothing is written when it does.
"""

from __future__ import annotations

from logging import Logger
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from reputation_engine.core.database import DatabaseService
from reputation_engine.core.logging import get_logger
from reputation_engine.database.models import UserGameStateRecord
from reputation_engine.domain.models import UserGameState
from reputation_engine.modules.engine.store import STATE_RESOURCE
from reputation_engine.modules.shared.base_repository import BaseRepository
from reputation_engine.modules.shared.exceptions import (
    ConcurrencyConflictError,
    InvalidOperationError,
    NotFoundError,
    PersistenceError,
)


def record_to_state(record: UserGameStateRecord) -> UserGameState:
    return UserGameState.from_dict(
        {
            "user_identifier": record.user_identifier,
            "level": record.level,
            "experience": record.experience,
            "reputation_score": record.reputation_score,
            "reputation_tier": record.reputation_tier,
            "achievements": record.achievements,
            "badges": record.badges,
            "metrics": record.metrics,
            "last_active": record.last_active,
            "reputation_history": record.reputation_history,
            "created_at": record.created_at,
            "version": record.version,
            "profile": record.profile,
        }
    )


def _state_columns(state: UserGameState) -> Dict[str, Any]:
    """Column values for ``state``, JSON columns as fresh plain containers."""
    data = state.to_dict()
    return {
        "level": state.level,
        "experience": state.experience,
        "reputation_score": state.reputation_score,
        "reputation_tier": state.reputation_tier,
        "last_active": state.last_active,
        "achievements": data["achievements"],
        "badges": data["badges"],
        "metrics": data["metrics"],
        "reputation_history": data["reputation_history"],
        "profile": data["profile"],
    }


class SqlUserStore:
    """``UserStore`` adapter over ``user_game_state``."""

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.log = logger or get_logger(__name__)
        self.repository = BaseRepository(UserGameStateRecord, self.log)

    async def create_state(self, state: UserGameState) -> UserGameState:
        """
        Insert a new user's state.

        Raises:
            InvalidOperationError: If the user already has a row
            PersistenceError: On database failure
        """
        try:
            async with DatabaseService.get_transaction() as session:
                if await self.repository.exists(
                    session, UserGameStateRecord.user_identifier == state.user_identifier
                ):
                    raise InvalidOperationError(
                        "create_state",
                        f"state for '{state.user_identifier}' already exists",
                    )
                record = UserGameStateRecord(
                    user_identifier=state.user_identifier,
                    created_at=state.created_at,
                    version=state.version,
                    **_state_columns(state),
                )
                self.repository.add(session, record)
                await self.repository.flush(session)
                created = record_to_state(record)
        except (SQLAlchemyError, OverflowError) as exc:
            raise PersistenceError("create_state", str(exc)) from exc

        self.log.info(
            "User state created",
            extra={"user_identifier": state.user_identifier},
        )
        return created

    async def load_state(self, user_identifier: str) -> Optional[UserGameState]:
        try:
            async with DatabaseService.get_session() as session:
                record = await self.repository.find_one_where(
                    session, UserGameStateRecord.user_identifier == user_identifier
                )
                return record_to_state(record) if record is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError("load_state", str(exc)) from exc

    async def save_state(
        self, state: UserGameState, expected_version: int
    ) -> UserGameState:
        """
        Write ``state`` if the row still carries ``expected_version``.

        Raises:
            NotFoundError: If the row no longer exists
            ConcurrencyConflictError: If the stored version moved on
            PersistenceError: On database failure
        """
        try:
            async with DatabaseService.get_transaction() as session:
                record = await self.repository.find_one_where(
                    session,
                    UserGameStateRecord.user_identifier == state.user_identifier,
                    for_update=True,
                )
                if record is None:
                    raise NotFoundError(STATE_RESOURCE, state.user_identifier)
                if record.version != expected_version:
                    raise ConcurrencyConflictError(
                        state.user_identifier, expected_version, record.version
                    )

                for column, value in _state_columns(state).items():
                    setattr(record, column, value)
                record.version = expected_version + 1

                await self.repository.flush(session)
                saved = record_to_state(record)
        except (SQLAlchemyError, OverflowError) as exc:
            self.log.error(
                "Failed to save user state",
                extra={
                    "user_identifier": state.user_identifier,
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            raise PersistenceError("save_state", str(exc)) from exc

        return saved
