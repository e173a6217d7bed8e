"""SQLAlchemy implementation of the migration store.

Catalog reads go through ``sqlalchemy.inspect`` so the same code serves
Postgres and SQLite. Every row write runs in its own transaction: a rejected row
rolls back alone and never poisons the rows after it.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from sqlalchemy import MetaData, Table, and_, func, inspect as sa_inspect, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from todoapp_migrator.core.errors import ForeignKeyViolation, RowWriteError
from todoapp_migrator.db.session import create_session_factory
from todoapp_migrator.db.store import UpsertOutcome
from todoapp_migrator.schemas.migration import SourceQuery

logger = logging.getLogger(__name__)

FOREIGN_KEY_SQLSTATE = "23503"

_INSERTS: dict[str, Callable[..., Any]] = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _is_foreign_key_error(exc: IntegrityError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == FOREIGN_KEY_SQLSTATE:
        return True
    return "foreign key" in str(orig).lower()


class SqlAlchemyStore:
    """Migration store over an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine) -> None:
        dialect = engine.dialect.name
        if dialect not in _INSERTS:
            raise ValueError(f"Unsupported dialect for upserts: {dialect}")
        self._engine = engine
        self._insert = _INSERTS[dialect]
        self._session_factory = create_session_factory(engine)
        self._tables: dict[tuple[str, str], Table] = {}

    async def list_columns(self, table: str, *, schema: str) -> dict[str, str]:
        def _columns(sync_session) -> dict[str, str]:
            inspector = sa_inspect(sync_session.connection())
            if not inspector.has_table(table, schema=schema):
                return {}
            return {
                column["name"]: str(column["type"])
                for column in inspector.get_columns(table, schema=schema)
            }

        async with self._session_factory() as session:
            return await session.run_sync(_columns)

    async def _reflect(self, table: str, schema: str) -> Table:
        cache_key = (schema, table)
        cached = self._tables.get(cache_key)
        if cached is not None:
            return cached

        def _load(sync_session) -> Table:
            return Table(table, MetaData(), schema=schema, autoload_with=sync_session.connection())

        async with self._session_factory() as session:
            reflected = await session.run_sync(_load)
        self._tables[cache_key] = reflected
        return reflected

    async def query(self, source: SourceQuery) -> list[dict[str, Any]]:
        table = await self._reflect(source.table, source.schema_name)
        if source.columns:
            stmt = select(*(table.c[name] for name in source.columns))
        else:
            stmt = select(table)
        for name in source.not_null:
            stmt = stmt.where(table.c[name].is_not(None))
        if source.order_by:
            stmt = stmt.order_by(*(table.c[name] for name in source.order_by))

        async with self._session_factory() as session:
            result = await session.exec(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        conflict_keys: Sequence[str],
        *,
        schema: str,
        update_columns: Sequence[str],
    ) -> UpsertOutcome:
        target = await self._reflect(table, schema)
        stmt = self._insert(target).values(**row)
        updates = [name for name in update_columns if name in row]
        if updates:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(conflict_keys),
                set_={name: stmt.excluded[name] for name in updates},
                # Skip no-op updates so reruns report rows as unchanged
                where=or_(*(target.c[name].is_distinct_from(stmt.excluded[name]) for name in updates)),
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_keys))
        stmt = stmt.returning(*(target.c[key] for key in conflict_keys))

        async def _execute(session) -> bool:
            result = await session.exec(stmt)
            return result.first() is not None

        written = await self._write_row(table, _execute)
        return UpsertOutcome.written if written else UpsertOutcome.unchanged

    async def fill_null(
        self,
        table: str,
        key: Mapping[str, Any],
        column: str,
        value: Any,
        *,
        schema: str,
    ) -> UpsertOutcome:
        target = await self._reflect(table, schema)
        stmt = (
            update(target)
            .where(and_(*(target.c[name] == key_value for name, key_value in key.items())))
            .where(target.c[column].is_(None))
            .values({column: value})
        )

        async def _execute(session) -> bool:
            result = await session.exec(stmt)
            return bool(result.rowcount)

        written = await self._write_row(table, _execute)
        return UpsertOutcome.written if written else UpsertOutcome.unchanged

    async def _write_row(self, table: str, execute: Callable[[Any], Awaitable[bool]]) -> bool:
        """Run one row write in its own transaction, turning rejections into row errors."""
        async with self._session_factory() as session:
            try:
                changed = await execute(session)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                detail = str(exc.orig)
                if _is_foreign_key_error(exc):
                    raise ForeignKeyViolation(table, detail) from exc
                raise RowWriteError(table, detail) from exc
            except DBAPIError as exc:
                await session.rollback()
                # A dropped connection affects every row, not just this one
                if exc.connection_invalidated:
                    raise
                raise RowWriteError(table, str(exc.orig)) from exc
        return changed

    async def count(self, table: str, *, schema: str) -> Optional[int]:
        if not await self.list_columns(table, schema=schema):
            return None
        target = await self._reflect(table, schema)
        async with self._session_factory() as session:
            result = await session.exec(select(func.count()).select_from(target))
            return int(result.scalar_one())
