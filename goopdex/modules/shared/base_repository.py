"""
Generic repository over one SQLAlchemy model.

Repositories hold data access only: queries, row locks, inserts and deletes.
They never open or commit transactions; callers pass in the session owned by
`DatabaseService.get_transaction()`.

Usage
-----
    class OwnedCreatureRepository(BaseRepository[OwnedCreature]):
        async def list_by_species(self, session, species_id):
            return await self.find_many_where(
                session,
                OwnedCreature.species_id == species_id,
                order_by=[OwnedCreature.id.asc()],
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Type-safe CRUD helpers with optional pessimistic locking.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def _model_name(self) -> str:
        return self.model_class.__name__

    def _select(
        self,
        conditions: Sequence[ColumnElement[bool]],
        *,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ):
        stmt = select(self.model_class).where(*conditions)
        if for_update:
            stmt = stmt.with_for_update()
        for relationship in eager_load or []:
            stmt = stmt.options(selectinload(relationship))
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return stmt

    async def get(
        self,
        session: AsyncSession,
        id_value: Any,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
    ) -> Optional[T]:
        """Get a single row by primary key without locking."""
        stmt = self._select(
            [self.model_class.id == id_value],  # type: ignore[attr-defined]
            eager_load=eager_load,
        )
        instance = (await session.execute(stmt)).scalar_one_or_none()

        self.log.debug(
            f"Repository.get: {self._model_name}",
            extra={"model": self._model_name, "id": id_value, "found": instance is not None},
        )
        return instance

    async def get_for_update(
        self,
        session: AsyncSession,
        id_value: Any,
        eager_load: Optional[List[InstrumentedAttribute]] = None,
    ) -> Optional[T]:
        """
        Get a single row by primary key with SELECT ... FOR UPDATE.

        Backends without row locks (SQLite) ignore the clause; the writer lock
        still serializes mutations there.
        """
        stmt = self._select(
            [self.model_class.id == id_value],  # type: ignore[attr-defined]
            eager_load=eager_load,
            for_update=True,
        )
        instance = (await session.execute(stmt)).scalar_one_or_none()

        self.log.debug(
            f"Repository.get_for_update: {self._model_name}",
            extra={
                "model": self._model_name,
                "id": id_value,
                "found": instance is not None,
                "locked": True,
            },
        )
        return instance

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
    ) -> Optional[T]:
        stmt = self._select(conditions, eager_load=eager_load, for_update=for_update)
        instance = (await session.execute(stmt)).scalar_one_or_none()

        self.log.debug(
            f"Repository.find_one_where: {self._model_name}",
            extra={
                "model": self._model_name,
                "found": instance is not None,
                "locked": for_update,
            },
        )
        return instance

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Optional[List[InstrumentedAttribute]] = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        stmt = self._select(
            conditions,
            eager_load=eager_load,
            for_update=for_update,
            order_by=order_by,
            limit=limit,
        )
        instances = list((await session.execute(stmt)).scalars().all())

        self.log.debug(
            f"Repository.find_many_where: {self._model_name}",
            extra={
                "model": self._model_name,
                "found_count": len(instances),
                "locked": for_update,
                "limit": limit,
            },
        )
        return instances

    async def all(
        self,
        session: AsyncSession,
        order_by: Optional[Sequence[Any]] = None,
    ) -> List[T]:
        return await self.find_many_where(
            session,
            order_by=order_by or [self.model_class.id.asc()],  # type: ignore[attr-defined]
        )

    async def count(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        count = (await session.execute(stmt)).scalar_one()

        self.log.debug(
            f"Repository.count: {self._model_name}",
            extra={"model": self._model_name, "count": count},
        )
        return count

    async def exists(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        return await self.count(session, *conditions) > 0

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self.log.debug(f"Repository.add: {self._model_name}", extra={"model": self._model_name})
        return instance

    def add_many(self, session: AsyncSession, instances: Sequence[T]) -> List[T]:
        session.add_all(instances)
        self.log.debug(
            f"Repository.add_many: {self._model_name}",
            extra={"model": self._model_name, "count": len(instances)},
        )
        return list(instances)

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        self.log.debug(
            f"Repository.delete: {self._model_name}",
            extra={"model": self._model_name, "id": getattr(instance, "id", None)},
        )

    async def delete_where(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        """Bulk DELETE matching rows; returns the number of rows removed."""
        result = await session.execute(
            sql_delete(self.model_class)
            .where(*conditions)
            .execution_options(synchronize_session="fetch")
        )
        removed = result.rowcount or 0

        self.log.debug(
            f"Repository.delete_where: {self._model_name}",
            extra={"model": self._model_name, "removed": removed},
        )
        return removed

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
        self.log.debug(f"Repository.flush: {self._model_name}", extra={"model": self._model_name})
