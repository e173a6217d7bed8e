"""Post-migration backfills that fill NULL destination columns from related rows."""

from __future__ import annotations

import logging
from typing import Any, Optional

from todoapp_migrator.core.errors import RowWriteError, SchemaPreconditionError
from todoapp_migrator.core.messages import SchemaMessages
from todoapp_migrator.db.inspector import SchemaInspector
from todoapp_migrator.db.store import MigrationStore, UpsertOutcome
from todoapp_migrator.schemas.migration import (
    BackfillSpec,
    RowFailure,
    SourceQuery,
    TableReport,
    TableStatus,
)

logger = logging.getLogger(__name__)


def _earliest_values(backfill: BackfillSpec, rows: list[dict[str, Any]]) -> dict[Any, Any]:
    """First value per match key, by ``order_by``; rows without an order sort last."""
    picked: dict[Any, tuple[Any, Any]] = {}
    for row in rows:
        match = row[backfill.match_column]
        order = row.get(backfill.order_by) if backfill.order_by else None
        current = picked.get(match)
        if current is None:
            picked[match] = (order, row[backfill.value_column])
            continue
        current_order = current[0]
        if order is not None and (current_order is None or order < current_order):
            picked[match] = (order, row[backfill.value_column])
    return {match: value for match, (_, value) in picked.items()}


async def run_backfill(
    store: MigrationStore,
    backfill: BackfillSpec,
    *,
    target_schema: str,
    target_inspector: Optional[SchemaInspector] = None,
) -> TableReport:
    """
    Fill ``backfill.column`` where it is NULL, from the earliest related row.

    Rows that already carry a value are never touched, so a rerun writes
    nothing. A candidate the store rejects is recorded as skipped.

    Raises:
        SchemaPreconditionError: the destination table does not exist
    """
    target_inspector = target_inspector or SchemaInspector(store, target_schema)
    report = TableReport(table=backfill.name)

    table_columns = await target_inspector.columns_of(backfill.table)
    if not table_columns:
        raise SchemaPreconditionError.table_missing(backfill.table)
    if backfill.column not in table_columns:
        report.status = TableStatus.skipped
        report.error = SchemaMessages.BACKFILL_COLUMN_MISSING.format(
            table=backfill.table, column=backfill.column
        )
        logger.info("%s", report.error)
        return report

    source_columns = await target_inspector.columns_of(backfill.source_table)
    if not source_columns:
        report.status = TableStatus.skipped
        report.error = SchemaMessages.SOURCE_OPTIONAL_MISSING.format(table=backfill.source_table)
        logger.info("%s", report.error)
        return report

    needed = [backfill.match_column, backfill.value_column]
    if backfill.order_by:
        needed.append(backfill.order_by)
    missing = [name for name in needed if name not in source_columns]
    if missing:
        report.status = TableStatus.skipped
        report.error = SchemaMessages.SOURCE_STRUCTURE_DIFFERS.format(
            table=backfill.source_table, columns=", ".join(missing)
        )
        logger.warning("%s", report.error)
        return report

    rows = await store.query(
        SourceQuery(
            schema_name=target_schema,
            table=backfill.source_table,
            columns=needed,
            not_null=[backfill.match_column, backfill.value_column],
            order_by=[backfill.match_column],
        )
    )
    candidates = _earliest_values(backfill, rows)
    report.read = len(candidates)

    for match, value in candidates.items():
        key = {backfill.key_column: match}
        try:
            outcome = await store.fill_null(
                backfill.table, key, backfill.column, value, schema=target_schema
            )
        except RowWriteError as exc:
            logger.debug("%s: skipping %s: %s", backfill.name, key, exc)
            report.skipped += 1
            report.failures.append(
                RowFailure(key=key, error_type=type(exc).__name__, message=str(exc))
            )
            continue

        if outcome == UpsertOutcome.written:
            report.written += 1
        else:
            report.unchanged += 1

    if report.skipped:
        report.status = TableStatus.completed_with_errors
    logger.info(
        "%s: candidates=%d filled=%d unchanged=%d skipped=%d",
        backfill.name,
        report.read,
        report.written,
        report.unchanged,
        report.skipped,
    )
    return report
