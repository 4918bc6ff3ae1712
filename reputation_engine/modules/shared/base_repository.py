"""
Generic repository over one SQLAlchemy model.

Repositories run queries inside a session the caller owns. They never
commit; ``DatabaseService.get_transaction()`` does.

Usage
-----
    repo = BaseRepository(UserGameStateRecord, logger)
    async with DatabaseService.get_transaction() as session:
        record = await repo.find_one_where(
            session,
            UserGameStateRecord.user_identifier == "user-1",
            for_update=True,
        )
"""

from __future__ import annotations

from logging import Logger
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Type-safe query helpers following SQLAlchemy 2.0 async conventions.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        """
        Find a single record matching conditions.

        Args:
            session: Database session
            *conditions: SQLAlchemy filter conditions
            for_update: If True, use SELECT FOR UPDATE

        Returns:
            Model instance or None if not found
        """
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self.model_class.__name__}",
            extra={
                "model": self.model_class.__name__,
                "found": instance is not None,
                "locked": for_update,
            },
        )
        return instance

    async def exists(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        result = await session.execute(stmt)
        return result.scalar_one() > 0

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self.log.debug(
            f"Repository.add: {self.model_class.__name__}",
            extra={"model": self.model_class.__name__},
        )
        return instance

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
