"""Runs table migrations in dependency order and assembles the run report.

Tables migrate strictly one after another: a child table only starts once
every row of its parents has been written. A table that fails outright is
recorded and the run moves on, since later tables may not depend on it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from todoapp_migrator.core.errors import SchemaPreconditionError
from todoapp_migrator.db.inspector import SchemaInspector
from todoapp_migrator.db.store import MigrationStore
from todoapp_migrator.schemas.mapping import MappingCatalog
from todoapp_migrator.schemas.migration import (
    MigrationReport,
    BackfillSpec,
    TableCount,
    TableReport,
    TableSpec,
    TableStatus,
)
from todoapp_migrator.services.backfill import run_backfill
from todoapp_migrator.services.row_migration import migrate_table
from todoapp_migrator.services.value_mapping import DEFAULT_CATALOG

logger = logging.getLogger(__name__)


def validate_order(specs: Sequence[TableSpec]) -> None:
    """
    Reject orderings where a table would run before one of its parents.

    Parents that are not part of the run at all are assumed to be migrated
    already.

    Raises:
        ValueError: duplicate table names or a parent scheduled after its child
    """
    positions: dict[str, int] = {}
    for index, spec in enumerate(specs):
        if spec.name in positions:
            raise ValueError(f"Table '{spec.name}' is declared more than once")
        positions[spec.name] = index

    for index, spec in enumerate(specs):
        for parent in spec.depends_on:
            parent_index = positions.get(parent)
            if parent_index is not None and parent_index > index:
                raise ValueError(f"Table '{parent}' must be migrated before '{spec.name}'")


def select_specs(specs: Sequence[TableSpec], names: Optional[Iterable[str]]) -> list[TableSpec]:
    """Restrict ``specs`` to ``names`` while keeping the declared order."""
    if not names:
        return list(specs)
    wanted = set(names)
    unknown = sorted(wanted - {spec.name for spec in specs})
    if unknown:
        raise ValueError(f"Unknown table(s): {', '.join(unknown)}")
    return [spec for spec in specs if spec.name in wanted]


def _ready(backfill: BackfillSpec, names: set[str], processed: set[str]) -> bool:
    return all(table in processed for table in backfill.depends_on if table in names)


async def _backfill(
    store: MigrationStore,
    backfill: BackfillSpec,
    failed: set[str],
    *,
    target_schema: str,
    target_inspector: SchemaInspector,
) -> TableReport:
    upstream = [table for table in backfill.depends_on if table in failed]
    if upstream:
        logger.warning("%s skipped: depends on failed table(s) %s", backfill.name, ", ".join(upstream))
        return TableReport(
            table=backfill.name,
            status=TableStatus.skipped,
            error=f"Not run because {', '.join(upstream)} failed",
            upstream_failures=upstream,
        )
    try:
        return await run_backfill(
            store, backfill, target_schema=target_schema, target_inspector=target_inspector
        )
    except SchemaPreconditionError as exc:
        logger.error("%s failed: %s", backfill.name, exc)
        return TableReport(table=backfill.name, status=TableStatus.failed, error=str(exc))
    except SQLAlchemyError as exc:
        logger.exception("%s failed with a database error", backfill.name)
        return TableReport(
            table=backfill.name,
            status=TableStatus.failed,
            error=f"{type(exc).__name__}: {exc}",
        )


async def run_all(
    store: MigrationStore,
    specs: Sequence[TableSpec],
    *,
    source_schema: str,
    target_schema: str,
    catalog: MappingCatalog = DEFAULT_CATALOG,
    backfills: Sequence[BackfillSpec] = (),
) -> MigrationReport:
    """
    Migrate every table in ``specs``, in the order given.

    Each backfill runs as soon as every table it depends on that is part of
    the run has been processed, and gets its own report entry. Backfills
    none of whose tables are in the run are left out.

    Returns a report with one entry per table. Errors that make a whole table
    impossible become a ``failed`` entry; nothing short of an invalid
    ordering stops the run.
    """
    validate_order(specs)
    names = {spec.name for spec in specs}
    clashes = sorted(names & {backfill.name for backfill in backfills})
    if clashes:
        raise ValueError(f"Backfill name(s) clash with tables: {', '.join(clashes)}")
    pending = [
        backfill for backfill in backfills
        if any(table in names for table in backfill.depends_on)
    ]
    processed: set[str] = set()

    report = MigrationReport(
        source_schema=source_schema,
        target_schema=target_schema,
        started_at=datetime.now(timezone.utc),
    )
    source_inspector = SchemaInspector(store, source_schema)
    target_inspector = SchemaInspector(store, target_schema)
    failed: set[str] = set()

    logger.info(
        "Migrating %d table(s) from %s to %s", len(specs), source_schema, target_schema
    )
    for spec in specs:
        upstream = [parent for parent in spec.depends_on if parent in failed]
        if upstream:
            logger.warning(
                "%s depends on failed table(s) %s; expect foreign key violations",
                spec.name,
                ", ".join(upstream),
            )

        try:
            table_report = await migrate_table(
                store,
                spec,
                source_schema=source_schema,
                target_schema=target_schema,
                catalog=catalog,
                source_inspector=source_inspector,
                target_inspector=target_inspector,
            )
        except SchemaPreconditionError as exc:
            logger.error("%s failed: %s", spec.name, exc)
            table_report = TableReport(table=spec.name, status=TableStatus.failed, error=str(exc))
        except SQLAlchemyError as exc:
            logger.exception("%s failed with a database error", spec.name)
            table_report = TableReport(
                table=spec.name,
                status=TableStatus.failed,
                error=f"{type(exc).__name__}: {exc}",
            )

        table_report.upstream_failures = upstream
        if table_report.status == TableStatus.failed:
            failed.add(spec.name)
        report.tables[spec.name] = table_report
        processed.add(spec.name)

        for backfill in [item for item in pending if _ready(item, names, processed)]:
            pending.remove(backfill)
            report.tables[backfill.name] = await _backfill(
                store, backfill, failed, target_schema=target_schema, target_inspector=target_inspector
            )

    report.finished_at = datetime.now(timezone.utc)
    logger.info(
        "Migration finished: written=%d unchanged=%d skipped=%d failed tables=%d",
        report.total_written,
        report.total_unchanged,
        report.total_skipped,
        len(report.failed_tables),
    )
    return report


async def count_rows(
    store: MigrationStore,
    specs: Sequence[TableSpec],
    *,
    source_schema: str,
    target_schema: str,
) -> list[TableCount]:
    """Source vs destination row counts, for checking a finished run."""
    counts: list[TableCount] = []
    for spec in specs:
        counts.append(
            TableCount(
                table=spec.name,
                source=await store.count(spec.source_table, schema=source_schema),
                destination=await store.count(spec.destination_table, schema=target_schema),
            )
        )
    return counts


def render_report(report: MigrationReport) -> str:
    """Plain-text summary answering which rows did not migrate and why."""
    lines = [
        f"Migration {report.source_schema} -> {report.target_schema}",
        f"{'table':<24} {'status':<22} {'read':>7} {'written':>8} {'unchanged':>10} {'skipped':>8}",
    ]
    for name, table in report.tables.items():
        lines.append(
            f"{name:<24} {table.status.value:<22} {table.read:>7} {table.written:>8} "
            f"{table.unchanged:>10} {table.skipped:>8}"
        )
        if table.error:
            lines.append(f"    {table.error}")
        if table.upstream_failures:
            lines.append(f"    depends on failed: {', '.join(table.upstream_failures)}")
        if table.omitted_columns:
            lines.append(f"    omitted columns: {', '.join(table.omitted_columns)}")
        for failure in table.failures:
            lines.append(f"    {failure.key}: {failure.error_type}: {failure.message}")
    lines.append(
        f"{'total':<24} {'':<22} {report.total_read:>7} {report.total_written:>8} "
        f"{report.total_unchanged:>10} {report.total_skipped:>8}"
    )
    lines.append("OK" if report.succeeded else "INCOMPLETE")
    return "\n".join(lines)
