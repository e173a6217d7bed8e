"""Command-line entry point.

Usage:
    todoapp-migrate migrate [--tables profiles tasks ...] [--json]
    todoapp-migrate counts
    todoapp-migrate verify [--json]
    todoapp-migrate rewrite ./src [--prefix TODOAAPP.] [--revert] [--dry-run] [--strict]

Connection and namespace settings come from the environment or ``.env``
(see ``core/config.py``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from todoapp_migrator.core.config import Settings, get_settings
from todoapp_migrator.core.errors import RewriteAmbiguity
from todoapp_migrator.db.session import create_engine
from todoapp_migrator.db.sql_store import SqlAlchemyStore
from todoapp_migrator.services.orchestrator import count_rows, render_report, run_all, select_specs
from todoapp_migrator.services.reference_rewriter import revert_references, rewrite_references
from todoapp_migrator.services.schema_verification import verify_schema
from todoapp_migrator.services.table_catalog import (
    TODOAPP_BACKFILLS,
    TODOAPP_TABLE_SPECS,
    TODOAPP_TABLES,
    expected_columns,
)
from todoapp_migrator.services.value_mapping import load_catalog


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todoapp-migrate",
        description="Migrate the TodoApp dataset between schemas and update code references.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Upsert legacy rows into the target schema")
    migrate.add_argument("--tables", nargs="+", help="Only migrate these tables (declared order kept)")
    migrate.add_argument("--catalog", help="JSON enumeration catalog overriding the defaults")
    migrate.add_argument("--json", action="store_true", help="Print the report as JSON")

    counts = subparsers.add_parser("counts", help="Compare source and target row counts")
    counts.add_argument("--tables", nargs="+")

    verify = subparsers.add_parser("verify", help="Check target tables for expected columns")
    verify.add_argument("--json", action="store_true")

    rewrite = subparsers.add_parser("rewrite", help="Qualify table references in source code")
    rewrite.add_argument("root", help="Directory to scan")
    rewrite.add_argument("--prefix", help="Namespace prefix, e.g. TODOAAPP.")
    rewrite.add_argument("--tables", nargs="+", help="Table names to rewrite")
    rewrite.add_argument("--revert", action="store_true", help="Strip the prefix instead")
    rewrite.add_argument("--dry-run", action="store_true", help="Report without writing files")
    rewrite.add_argument("--strict", action="store_true", help="Fail on ambiguous references")
    rewrite.add_argument("--json", action="store_true")
    return parser


async def _migrate(args: argparse.Namespace, settings: Settings) -> int:
    specs = select_specs(TODOAPP_TABLE_SPECS, args.tables)
    catalog = load_catalog(args.catalog or settings.MAPPING_CATALOG_PATH)
    engine = create_engine(settings)
    try:
        report = await run_all(
            SqlAlchemyStore(engine),
            specs,
            source_schema=settings.SOURCE_SCHEMA,
            target_schema=settings.TARGET_SCHEMA,
            catalog=catalog,
            backfills=TODOAPP_BACKFILLS,
        )
    finally:
        await engine.dispose()
    print(report.model_dump_json(indent=2) if args.json else render_report(report))
    return 0 if report.succeeded else 1


async def _counts(args: argparse.Namespace, settings: Settings) -> int:
    specs = select_specs(TODOAPP_TABLE_SPECS, args.tables)
    engine = create_engine(settings)
    try:
        counts = await count_rows(
            SqlAlchemyStore(engine),
            specs,
            source_schema=settings.SOURCE_SCHEMA,
            target_schema=settings.TARGET_SCHEMA,
        )
    finally:
        await engine.dispose()
    for count in counts:
        marker = "ok" if count.matches else "!!"
        print(f"{marker} {count.table:<24} {count.source!s:>8} -> {count.destination!s:<8}")
    return 0 if all(count.matches for count in counts) else 1


async def _verify(args: argparse.Namespace, settings: Settings) -> int:
    engine = create_engine(settings)
    try:
        report = await verify_schema(
            SqlAlchemyStore(engine), expected_columns(), schema=settings.TARGET_SCHEMA
        )
    finally:
        await engine.dispose()
    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        for table in report.tables.values():
            if not table.exists:
                print(f"MISSING {table.table}")
            elif table.missing:
                print(f"PARTIAL {table.table}: missing {', '.join(table.missing)}")
            else:
                print(f"OK      {table.table} ({table.found} columns)")
    return 0 if report.ok else 1


def _rewrite(args: argparse.Namespace, settings: Settings) -> int:
    options = dict(
        accessors=settings.REWRITE_ACCESSORS,
        extensions=settings.REWRITE_EXTENSIONS,
        excluded_dirs=settings.REWRITE_EXCLUDED_DIRS,
        dry_run=args.dry_run,
    )
    tables = args.tables or TODOAPP_TABLES
    prefix = args.prefix or settings.REWRITE_PREFIX
    if args.revert:
        report = revert_references(args.root, tables, prefix, **options)
    else:
        try:
            report = rewrite_references(args.root, tables, prefix, strict=args.strict, **options)
        except RewriteAmbiguity as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        verb = "would modify" if report.dry_run else "modified"
        print(f"Scanned {report.files_scanned} file(s), {verb} {report.files_modified}")
        for path in report.modified_paths:
            print(f"  {path}")
        for flag in report.flags:
            print(f"  review {flag.path}:{flag.line} {flag.message}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "rewrite":
        return _rewrite(args, settings)
    if args.command == "migrate":
        return asyncio.run(_migrate(args, settings))
    if args.command == "counts":
        return asyncio.run(_counts(args, settings))
    if args.command == "verify":
        return asyncio.run(_verify(args, settings))
    raise ValueError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
