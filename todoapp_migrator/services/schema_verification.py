import logging
from typing import Mapping, Sequence

from todoapp_migrator.db.inspector import SchemaInspector
from todoapp_migrator.db.store import MigrationStore
from todoapp_migrator.schemas.verification import SchemaVerificationReport, TableVerification

logger = logging.getLogger(__name__)


async def verify_schema(
    store: MigrationStore,
    expected: Mapping[str, Sequence[str]],
    *,
    schema: str,
) -> SchemaVerificationReport:
    """Compare the columns each table should have against the live catalog."""
    inspector = SchemaInspector(store, schema)
    report = SchemaVerificationReport(schema_name=schema)

    for table, columns in expected.items():
        actual = await inspector.columns_of(table)
        if not actual:
            logger.warning("%s.%s does not exist", schema, table)
            report.tables[table] = TableVerification(
                table=table, exists=False, expected=len(columns), missing=list(columns)
            )
            continue

        verification = TableVerification(
            table=table,
            expected=len(columns),
            found=len(actual),
            missing=[name for name in columns if name not in actual],
            extra=sorted(actual - set(columns)),
        )
        if verification.missing:
            logger.warning("%s.%s is missing: %s", schema, table, ", ".join(verification.missing))
        report.tables[table] = verification

    return report
