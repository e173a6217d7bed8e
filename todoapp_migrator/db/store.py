"""The destination-store capability the migrator depends on.

Row migration and schema inspection only ever talk to a ``MigrationStore``;
the SQLAlchemy-backed implementation lives in ``db/sql_store.py`` and an
in-memory one for tests in ``testing/store.py``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Sequence

from todoapp_migrator.schemas.migration import SourceQuery


class UpsertOutcome(str, Enum):
    written = "written"
    unchanged = "unchanged"


class MigrationStore(Protocol):
    async def list_columns(self, table: str, *, schema: str) -> dict[str, str]:
        """Column name -> type for ``schema.table``; empty when the table is absent."""
        ...

    async def query(self, source: SourceQuery) -> list[dict[str, Any]]:
        """Read every row matching ``source``."""
        ...

    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        conflict_keys: Sequence[str],
        *,
        schema: str,
        update_columns: Sequence[str],
    ) -> UpsertOutcome:
        """
        Insert ``row`` or, on a key conflict, refresh ``update_columns``.

        Returns ``written`` when a row was inserted or actually changed and
        ``unchanged`` otherwise. Raises ``ForeignKeyViolation`` or
        ``RowWriteError`` when the store rejects the row.
        """
        ...

    async def fill_null(
        self,
        table: str,
        key: Mapping[str, Any],
        column: str,
        value: Any,
        *,
        schema: str,
    ) -> UpsertOutcome:
        """Set ``column`` to ``value`` on rows matching ``key`` where it is still NULL."""
        ...

    async def count(self, table: str, *, schema: str) -> Optional[int]:
        """Row count, or None when the table is absent."""
        ...
