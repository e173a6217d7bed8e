import logging

from todoapp_migrator.db.store import MigrationStore

logger = logging.getLogger(__name__)


class SchemaInspector:
    """Cached view of which tables and columns exist in one namespace.

    An absent table is not an error: it reads as an empty column set, and
    callers decide whether that means "skip" or "fail".
    """

    def __init__(self, store: MigrationStore, schema: str) -> None:
        self.store = store
        self.schema = schema
        self._cache: dict[str, dict[str, str]] = {}

    async def column_types(self, table: str) -> dict[str, str]:
        if table not in self._cache:
            columns = await self.store.list_columns(table, schema=self.schema)
            if not columns:
                logger.debug("Table %s.%s not found", self.schema, table)
            self._cache[table] = dict(columns)
        return dict(self._cache[table])

    async def columns_of(self, table: str) -> frozenset[str]:
        return frozenset(await self.column_types(table))

    async def has_table(self, table: str) -> bool:
        return bool(await self.columns_of(table))
