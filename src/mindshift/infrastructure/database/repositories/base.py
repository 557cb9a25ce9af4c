"""
Archive Repository

The archive is write-mostly: records are upserted by primary key each
time a resolved alert, closed handoff or ended session is flushed.
Reads exist for audits and tests.
"""

from typing import Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mindshift.infrastructure.database.connection import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """
    Upsert and lookup for one archive table.

    Usage:
        async with db.session() as session:
            await BaseRepository(CrisisAlertModel, session).upsert(row)
    """

    def __init__(self, model: Type[ModelT], session: AsyncSession) -> None:
        self._model = model
        self._session = session

    async def get_by_id(self, record_id: UUID) -> Optional[ModelT]:
        return await self._session.get(self._model, record_id)

    async def upsert(self, row: ModelT) -> ModelT:
        """Merge ``row`` by primary key so re-archiving a record overwrites it."""
        merged = await self._session.merge(row)
        await self._session.flush()
        return merged

    async def count(self) -> int:
        return await self._session.scalar(select(func.count()).select_from(self._model))
