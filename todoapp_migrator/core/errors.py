"""Error taxonomy for migration runs.

Row-level errors (``MappingError``, ``RowWriteError``) are caught by the row
migrator and recorded in the report. ``SchemaPreconditionError`` is fatal for
one table and recorded by the orchestrator. ``RewriteAmbiguity`` is only
raised by the rewriter in strict mode; otherwise it is reported as a flag.
"""

from __future__ import annotations

from typing import Any

from todoapp_migrator.core.messages import (
    MappingMessages,
    RewriteMessages,
    SchemaMessages,
    WriteMessages,
)


class MigrationError(Exception):
    """Base class for every error the migrator records in a report."""


class MappingError(MigrationError):
    """An enumerated value has no defined mapping in its domain."""

    def __init__(self, domain: str, value: Any, message: str | None = None) -> None:
        self.domain = domain
        self.value = value
        super().__init__(message or MappingMessages.UNMAPPED_VALUE.format(value=value, domain=domain))


class SchemaPreconditionError(MigrationError):
    """A table the migration relies on is absent or structurally incomplete."""

    def __init__(self, table: str, message: str) -> None:
        self.table = table
        super().__init__(message)

    @classmethod
    def table_missing(cls, table: str) -> "SchemaPreconditionError":
        return cls(table, SchemaMessages.TABLE_MISSING.format(table=table))

    @classmethod
    def columns_missing(cls, table: str, columns: list[str]) -> "SchemaPreconditionError":
        return cls(
            table,
            SchemaMessages.COLUMNS_MISSING.format(table=table, columns=", ".join(columns)),
        )


class RowWriteError(MigrationError):
    """The destination store rejected a single row."""

    def __init__(self, table: str, detail: str) -> None:
        self.table = table
        self.detail = detail
        super().__init__(WriteMessages.INTEGRITY.format(table=table, detail=detail))


class ForeignKeyViolation(RowWriteError):
    """A row references a parent key that does not exist in the destination."""

    def __init__(self, table: str, detail: str) -> None:
        super().__init__(table, detail)
        self.args = (WriteMessages.FOREIGN_KEY.format(table=table, detail=detail),)


class RewriteAmbiguity(MigrationError):
    """A table-name token sits in a context the rewriter will not touch."""

    def __init__(self, path: str, line: int, table: str) -> None:
        self.path = path
        self.line = line
        self.table = table
        super().__init__(f"{path}:{line}: " + RewriteMessages.AMBIGUOUS.format(table=table))
