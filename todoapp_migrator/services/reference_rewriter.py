"""Rewrites data-access table references in application source code.

Only quoted table names passed directly to a data-access call are touched,
e.g. ``.from('tasks')`` or ``supabase.table("tasks")``. The same quoted name
anywhere else is reported for manual review instead of being guessed at.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

from todoapp_migrator.core.config import (
    DEFAULT_EXCLUDED_DIRS,
    DEFAULT_REWRITE_ACCESSORS,
    DEFAULT_REWRITE_EXTENSIONS,
)
from todoapp_migrator.core.errors import RewriteAmbiguity
from todoapp_migrator.schemas.rewrite import RewriteFlag, RewriteReport

logger = logging.getLogger(__name__)

Replacer = Callable[[re.Match], str]

# Built-in receivers whose from/table methods take values, not table names
BUILTIN_RECEIVERS = ("Array", "Buffer", "Object")


def _alternation(values: Iterable[str]) -> str:
    # Longest first so "task_assignments" is never read as "task"
    return "|".join(re.escape(value) for value in sorted(set(values), key=len, reverse=True))


def build_call_pattern(
    table_names: Sequence[str],
    prefix: str,
    accessors: Sequence[str] = DEFAULT_REWRITE_ACCESSORS,
) -> re.Pattern:
    """Match ``accessor(<quote><prefix>*<table><quote>`` for the given tables."""
    if not table_names:
        raise ValueError("at least one table name is required")
    prefix_group = f"(?:{re.escape(prefix)})*" if prefix else ""
    builtins = "".join(rf"(?<!\b{re.escape(name)}\.)" for name in BUILTIN_RECEIVERS)
    return re.compile(
        rf"(?P<call>(?<![\w$]){builtins}(?:{_alternation(accessors)})\s*\(\s*)"
        rf"(?P<quote>['\"`])(?P<prefix>{prefix_group})(?P<table>{_alternation(table_names)})(?P=quote)"
    )


def build_token_pattern(table_names: Sequence[str]) -> re.Pattern:
    """Match a bare quoted table name, whole token only."""
    return re.compile(rf"(?P<quote>['\"`])(?P<table>{_alternation(table_names)})(?P=quote)")


def iter_source_files(
    root: Path,
    extensions: Sequence[str] = DEFAULT_REWRITE_EXTENSIONS,
    excluded_dirs: Sequence[str] = DEFAULT_EXCLUDED_DIRS,
) -> Iterator[Path]:
    """Yield source files under ``root`` in a stable order, pruning excluded directories."""
    suffixes = tuple(extensions)
    excluded = set(excluded_dirs)
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in excluded)
        for filename in sorted(filenames):
            if filename.endswith(suffixes):
                yield Path(current) / filename


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def find_ambiguous_references(
    content: str,
    call_pattern: re.Pattern,
    token_pattern: re.Pattern,
) -> list[tuple[int, str]]:
    """Bare quoted table names that are not the argument of a data-access call."""
    call_spans = [match.span() for match in call_pattern.finditer(content)]
    ambiguous: list[tuple[int, str]] = []
    for match in token_pattern.finditer(content):
        start = match.start()
        if any(span_start <= start < span_end for span_start, span_end in call_spans):
            continue
        ambiguous.append((_line_of(content, start), match.group("table")))
    return ambiguous


def _apply(content: str, pattern: re.Pattern, replacer: Replacer) -> tuple[str, int]:
    changes = 0

    def _substitute(match: re.Match) -> str:
        nonlocal changes
        replacement = replacer(match)
        if replacement != match.group(0):
            changes += 1
        return replacement

    return pattern.sub(_substitute, content), changes


def _process_tree(
    root: str | Path,
    call_pattern: re.Pattern,
    token_pattern: re.Pattern,
    replacer: Replacer,
    *,
    extensions: Sequence[str],
    excluded_dirs: Sequence[str],
    dry_run: bool,
    strict: bool,
) -> RewriteReport:
    root_path = Path(root)
    if not root_path.is_dir():
        raise NotADirectoryError(f"{root_path} is not a directory")

    report = RewriteReport(dry_run=dry_run)
    # Nothing is written until every file has been scanned
    pending: list[tuple[Path, str, str, int]] = []
    for path in iter_source_files(root_path, extensions, excluded_dirs):
        report.files_scanned += 1
        relative = str(path.relative_to(root_path))
        raw = path.read_bytes()
        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Skipping %s: not valid UTF-8", relative)
            report.flags.append(
                RewriteFlag(path=relative, line=0, table="", message="not valid UTF-8, not scanned")
            )
            continue

        updated, changes = _apply(content, call_pattern, replacer)

        for line, table in find_ambiguous_references(updated, call_pattern, token_pattern):
            ambiguity = RewriteAmbiguity(relative, line, table)
            if strict:
                raise ambiguity
            logger.info("%s", ambiguity)
            report.flags.append(
                RewriteFlag(path=relative, line=line, table=table, message=str(ambiguity))
            )

        if changes:
            pending.append((path, relative, updated, changes))

    for path, relative, updated, changes in pending:
        report.files_modified += 1
        report.references_rewritten += changes
        report.modified_paths.append(relative)
        if dry_run:
            logger.info("Would update %s (%d reference(s))", relative, changes)
        else:
            path.write_bytes(updated.encode("utf-8"))
            logger.info("Updated %s (%d reference(s))", relative, changes)

    logger.info(
        "Scanned %d file(s), %s %d", report.files_scanned,
        "would modify" if dry_run else "modified", report.files_modified,
    )
    return report


def rewrite_references(
    root: str | Path,
    table_names: Sequence[str],
    prefix: str,
    *,
    accessors: Sequence[str] = DEFAULT_REWRITE_ACCESSORS,
    extensions: Sequence[str] = DEFAULT_REWRITE_EXTENSIONS,
    excluded_dirs: Sequence[str] = DEFAULT_EXCLUDED_DIRS,
    dry_run: bool = False,
    strict: bool = False,
) -> RewriteReport:
    """
    Qualify data-access table references under ``root`` with ``prefix``.

    Idempotent: references that already carry the prefix stay as they are,
    and doubled prefixes from earlier runs are collapsed to one. Files are
    only written when their content changes.

    Raises:
        RewriteAmbiguity: in strict mode, on the first table name found outside
            a data-access call (no file is written)
    """
    if not prefix:
        raise ValueError("prefix must not be empty")
    call_pattern = build_call_pattern(table_names, prefix, accessors)

    def _qualify(match: re.Match) -> str:
        quote = match.group("quote")
        return f"{match.group('call')}{quote}{prefix}{match.group('table')}{quote}"

    return _process_tree(
        root,
        call_pattern,
        build_token_pattern(table_names),
        _qualify,
        extensions=extensions,
        excluded_dirs=excluded_dirs,
        dry_run=dry_run,
        strict=strict,
    )


def revert_references(
    root: str | Path,
    table_names: Sequence[str],
    prefix: str,
    *,
    accessors: Sequence[str] = DEFAULT_REWRITE_ACCESSORS,
    extensions: Sequence[str] = DEFAULT_REWRITE_EXTENSIONS,
    excluded_dirs: Sequence[str] = DEFAULT_EXCLUDED_DIRS,
    dry_run: bool = False,
) -> RewriteReport:
    """Strip ``prefix`` from data-access table references, undoing ``rewrite_references``."""
    if not prefix:
        raise ValueError("prefix must not be empty")
    call_pattern = build_call_pattern(table_names, prefix, accessors)

    def _unqualify(match: re.Match) -> str:
        quote = match.group("quote")
        return f"{match.group('call')}{quote}{match.group('table')}{quote}"

    return _process_tree(
        root,
        call_pattern,
        build_token_pattern(table_names),
        _unqualify,
        extensions=extensions,
        excluded_dirs=excluded_dirs,
        dry_run=dry_run,
        strict=False,
    )
