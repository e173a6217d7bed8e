"""Migration of a single table from the legacy namespace into the new one."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, Optional, Sequence

from todoapp_migrator.core.errors import MappingError, RowWriteError, SchemaPreconditionError
from todoapp_migrator.core.messages import SchemaMessages
from todoapp_migrator.db.inspector import SchemaInspector
from todoapp_migrator.db.store import MigrationStore, UpsertOutcome
from todoapp_migrator.schemas.mapping import MappingCatalog
from todoapp_migrator.schemas.migration import (
    ColumnSpec,
    ColumnTransform,
    RowFailure,
    SourceQuery,
    TableReport,
    TableSpec,
    TableStatus,
)
from todoapp_migrator.services.value_mapping import DEFAULT_CATALOG, map_enum

logger = logging.getLogger(__name__)


def plan_columns(
    spec: TableSpec,
    source_columns: frozenset[str],
    destination_columns: frozenset[str],
) -> tuple[list[ColumnSpec], list[str]]:
    """
    Decide which declared columns take part in the write.

    Optional columns missing from the destination, or reading source columns
    that do not exist, are omitted. The default transform tolerates absent
    sources by treating them as NULL.

    Returns:
        Tuple of (columns to write, names of omitted columns)

    Raises:
        SchemaPreconditionError: a required column cannot be produced
    """
    active: list[ColumnSpec] = []
    omitted: list[str] = []
    missing_destination: list[str] = []
    missing_source: list[str] = []

    for column in spec.columns:
        if column.name not in destination_columns:
            if column.optional:
                omitted.append(column.name)
            else:
                missing_destination.append(column.name)
            continue

        if column.transform != ColumnTransform.default:
            absent = [name for name in column.source_columns() if name not in source_columns]
            if absent:
                if column.optional:
                    omitted.append(column.name)
                else:
                    missing_source.extend(absent)
                continue
        active.append(column)

    if missing_destination:
        raise SchemaPreconditionError.columns_missing(spec.destination_table, missing_destination)
    if missing_source:
        raise SchemaPreconditionError(
            spec.source_table,
            SchemaMessages.SOURCE_COLUMNS_MISSING.format(
                table=spec.source_table, columns=", ".join(missing_source)
            ),
        )
    return active, omitted


def transform_row(
    row: Mapping[str, Any],
    columns: Sequence[ColumnSpec],
    catalog: MappingCatalog = DEFAULT_CATALOG,
) -> dict[str, Any]:
    """Project one source row through the column transforms.

    Raises MappingError when an enumerated value cannot be mapped.
    """
    values: dict[str, Any] = {}
    for column in columns:
        if column.transform == ColumnTransform.copy:
            values[column.name] = row.get(column.source or column.name)
        elif column.transform == ColumnTransform.enum:
            values[column.name] = map_enum(column.domain, row.get(column.source or column.name), catalog)
        elif column.transform == ColumnTransform.default:
            value = next(
                (row[name] for name in column.source_columns() if row.get(name) is not None),
                None,
            )
            values[column.name] = value if value is not None else copy.deepcopy(column.default)
        elif column.transform == ColumnTransform.constant:
            values[column.name] = copy.deepcopy(column.default)
        elif column.transform == ColumnTransform.pack:
            values[column.name] = {name: row.get(name) for name in column.sources}
    return values


def _row_key(spec: TableSpec, row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: row.get(source)
        for key, source in zip(spec.key_columns, spec.key_source_columns())
    }


async def migrate_table(
    store: MigrationStore,
    spec: TableSpec,
    *,
    source_schema: str,
    target_schema: str,
    catalog: MappingCatalog = DEFAULT_CATALOG,
    source_inspector: Optional[SchemaInspector] = None,
    target_inspector: Optional[SchemaInspector] = None,
) -> TableReport:
    """
    Copy every source row of ``spec`` into the destination via upserts.

    Rows that fail to map or that the store rejects are counted as skipped
    and recorded with their key; the rest of the table still migrates.
    Source data is only ever read.

    Raises:
        SchemaPreconditionError: destination table or a required column is missing
    """
    source_inspector = source_inspector or SchemaInspector(store, source_schema)
    target_inspector = target_inspector or SchemaInspector(store, target_schema)
    report = TableReport(table=spec.name)

    destination_columns = await target_inspector.columns_of(spec.destination_table)
    if not destination_columns:
        raise SchemaPreconditionError.table_missing(spec.destination_table)

    source_columns = await source_inspector.columns_of(spec.source_table)
    if not source_columns:
        if spec.source_optional:
            report.status = TableStatus.skipped
            report.error = SchemaMessages.SOURCE_OPTIONAL_MISSING.format(table=spec.source_table)
            logger.info("%s", report.error)
            return report
        raise SchemaPreconditionError(
            spec.source_table, SchemaMessages.SOURCE_MISSING.format(table=spec.source_table)
        )

    missing_structure = [name for name in spec.required_source_columns if name not in source_columns]
    if missing_structure:
        report.status = TableStatus.skipped
        report.error = SchemaMessages.SOURCE_STRUCTURE_DIFFERS.format(
            table=spec.source_table, columns=", ".join(missing_structure)
        )
        logger.warning("%s", report.error)
        return report

    columns, omitted = plan_columns(spec, source_columns, destination_columns)
    report.omitted_columns = omitted
    if omitted:
        logger.info("%s: omitting columns absent from schema: %s", spec.name, ", ".join(omitted))

    written_names = {column.name for column in columns}
    update_columns = [name for name in spec.resolved_update_columns() if name in written_names]
    key_sources = spec.key_source_columns()

    rows = await store.query(
        SourceQuery(
            schema_name=source_schema,
            table=spec.source_table,
            not_null=[name for name in spec.skip_null_columns if name in source_columns],
            order_by=[name for name in key_sources if name in source_columns],
        )
    )
    report.read = len(rows)

    for row in rows:
        try:
            values = transform_row(row, columns, catalog)
            outcome = await store.upsert(
                spec.destination_table,
                values,
                spec.key_columns,
                schema=target_schema,
                update_columns=update_columns,
            )
        except (MappingError, RowWriteError) as exc:
            key = _row_key(spec, row)
            logger.debug("%s: skipping row %s: %s", spec.name, key, exc)
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
        logger.warning("%s: %d of %d row(s) skipped", spec.name, report.skipped, report.read)
    logger.info(
        "%s: read=%d written=%d unchanged=%d skipped=%d",
        spec.name,
        report.read,
        report.written,
        report.unchanged,
        report.skipped,
    )
    return report
