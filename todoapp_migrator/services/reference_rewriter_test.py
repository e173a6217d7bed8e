"""Tests for data-access reference rewriting.

Tests cover:
- Qualifying table references inside data-access calls
- Idempotence and collapsing of doubled prefixes
- Whole-token matching and ambiguity flags (strict and lenient)
- Directory pruning, extension filtering, dry runs and reverts
"""

from pathlib import Path

import pytest

from todoapp_migrator.core.errors import RewriteAmbiguity
from todoapp_migrator.services.reference_rewriter import (
    build_call_pattern,
    iter_source_files,
    revert_references,
    rewrite_references,
)

PREFIX = "TODOAAPP."
TABLES = ["tasks", "task_assignments", "projects", "profiles"]
ACCESSORS = ["from", "table", "access"]


def _write(root: Path, relative: str, content: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _rewrite(root: Path, **kwargs):
    return rewrite_references(root, TABLES, PREFIX, accessors=ACCESSORS, **kwargs)


# ---------------------------------------------------------------------------
# Qualification
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_unqualified_and_qualified_references_end_with_one_prefix(tmp_path: Path):
    path = _write(
        tmp_path,
        "src/api.ts",
        'const a = db.access("tasks");\nconst b = db.access("TODOAAPP.tasks");\n',
    )

    report = _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == (
        'const a = db.access("TODOAAPP.tasks");\nconst b = db.access("TODOAAPP.tasks");\n'
    )
    assert report.files_modified == 1
    assert report.references_rewritten == 1
    assert report.modified_paths == ["src/api.ts"]


@pytest.mark.unit
def test_second_run_changes_nothing(tmp_path: Path):
    path = _write(tmp_path, "src/api.ts", "supabase.from('tasks').select('*')\n")
    _rewrite(tmp_path)
    first = path.read_text(encoding="utf-8")

    report = _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == first
    assert report.files_modified == 0
    assert report.references_rewritten == 0


@pytest.mark.unit
def test_doubled_prefix_collapses_to_one(tmp_path: Path):
    path = _write(tmp_path, "hooks/useTasks.tsx", "supabase.from(`TODOAAPP.TODOAAPP.tasks`)\n")

    report = _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == "supabase.from(`TODOAAPP.tasks`)\n"
    assert report.references_rewritten == 1


@pytest.mark.unit
def test_quote_style_and_spacing_are_preserved(tmp_path: Path):
    path = _write(tmp_path, "a.js", "client.table( 'projects' )\nclient.from ( \"profiles\")\n")

    _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == (
        "client.table( 'TODOAAPP.projects' )\nclient.from ( \"TODOAAPP.profiles\")\n"
    )


@pytest.mark.unit
def test_only_whole_table_tokens_are_rewritten(tmp_path: Path):
    content = (
        "db.from('tasks_archive')\n"
        "db.from('my_tasks')\n"
        "db.from('task_assignments')\n"
    )
    path = _write(tmp_path, "a.ts", content)

    _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == (
        "db.from('tasks_archive')\n"
        "db.from('my_tasks')\n"
        "db.from('TODOAAPP.task_assignments')\n"
    )


@pytest.mark.unit
def test_accessor_must_be_a_whole_identifier(tmp_path: Path):
    path = _write(tmp_path, "a.ts", "getfrom('tasks')\nmy_table('tasks')\n")

    report = _rewrite(tmp_path)

    assert report.files_modified == 0
    assert path.read_text(encoding="utf-8") == "getfrom('tasks')\nmy_table('tasks')\n"


@pytest.mark.unit
def test_builtin_receivers_are_not_data_access_calls(tmp_path: Path):
    content = "Array.from('tasks')\nBuffer.from(\"profiles\")\nsupabase.from('tasks')\n"
    path = _write(tmp_path, "a.ts", content)

    report = _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == (
        "Array.from('tasks')\nBuffer.from(\"profiles\")\nsupabase.from('TODOAAPP.tasks')\n"
    )
    assert report.references_rewritten == 1
    assert [(flag.line, flag.table) for flag in report.flags] == [(1, "tasks"), (2, "profiles")]


@pytest.mark.unit
def test_line_endings_are_preserved(tmp_path: Path):
    path = tmp_path / "win.ts"
    path.write_bytes(b"db.from('tasks')\r\ndb.from('projects')\r\n")

    _rewrite(tmp_path)

    assert path.read_bytes() == b"db.from('TODOAAPP.tasks')\r\ndb.from('TODOAAPP.projects')\r\n"


@pytest.mark.unit
def test_empty_prefix_is_rejected(tmp_path: Path):
    with pytest.raises(ValueError):
        rewrite_references(tmp_path, TABLES, "")


@pytest.mark.unit
def test_call_pattern_requires_table_names():
    with pytest.raises(ValueError):
        build_call_pattern([], PREFIX)


# ---------------------------------------------------------------------------
# Ambiguous references
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_table_name_outside_a_call_is_flagged_not_rewritten(tmp_path: Path):
    content = "const TABLE = 'tasks';\ndb.from(TABLE)\ndb.from('projects')\n"
    path = _write(tmp_path, "a.ts", content)

    report = _rewrite(tmp_path)

    assert path.read_text(encoding="utf-8") == (
        "const TABLE = 'tasks';\ndb.from(TABLE)\ndb.from('TODOAAPP.projects')\n"
    )
    assert len(report.flags) == 1
    flag = report.flags[0]
    assert (flag.path, flag.line, flag.table) == ("a.ts", 1, "tasks")


@pytest.mark.unit
def test_strict_mode_raises_on_ambiguity_without_writing(tmp_path: Path):
    content = "db.from('projects')\nconst t = \"tasks\"\n"
    path = _write(tmp_path, "a.ts", content)

    with pytest.raises(RewriteAmbiguity) as exc_info:
        _rewrite(tmp_path, strict=True)

    assert exc_info.value.line == 2
    assert exc_info.value.table == "tasks"
    assert path.read_text(encoding="utf-8") == content


@pytest.mark.unit
def test_strict_mode_writes_no_file_when_a_later_file_is_ambiguous(tmp_path: Path):
    first = _write(tmp_path, "a.ts", "db.from('tasks')\n")
    _write(tmp_path, "b.ts", "const t = 'tasks'\n")

    with pytest.raises(RewriteAmbiguity) as exc_info:
        _rewrite(tmp_path, strict=True)

    assert exc_info.value.path == "b.ts"
    assert first.read_text(encoding="utf-8") == "db.from('tasks')\n"


@pytest.mark.unit
def test_non_utf8_file_is_flagged_and_left_alone(tmp_path: Path):
    path = tmp_path / "legacy.js"
    path.write_bytes(b"db.from('tasks') // \xff\xfe\n")

    report = _rewrite(tmp_path)

    assert path.read_bytes() == b"db.from('tasks') // \xff\xfe\n"
    assert report.files_modified == 0
    assert report.flags[0].path == "legacy.js"


# ---------------------------------------------------------------------------
# Tree walking
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_excluded_directories_are_not_scanned(tmp_path: Path):
    vendored = _write(tmp_path, "node_modules/lib/index.js", "db.from('tasks')\n")
    built = _write(tmp_path, "dist/app.js", "db.from('tasks')\n")
    source = _write(tmp_path, "src/app.js", "db.from('tasks')\n")

    report = _rewrite(tmp_path)

    assert report.files_scanned == 1
    assert vendored.read_text(encoding="utf-8") == "db.from('tasks')\n"
    assert built.read_text(encoding="utf-8") == "db.from('tasks')\n"
    assert source.read_text(encoding="utf-8") == "db.from('TODOAAPP.tasks')\n"


@pytest.mark.unit
def test_only_configured_extensions_are_scanned(tmp_path: Path):
    _write(tmp_path, "README.md", "db.from('tasks')\n")
    _write(tmp_path, "b.py", "db.table('tasks')\n")
    _write(tmp_path, "a.tsx", "db.from('tasks')\n")

    found = [path.name for path in iter_source_files(tmp_path)]

    assert found == ["a.tsx", "b.py"]


@pytest.mark.unit
def test_dry_run_reports_without_writing(tmp_path: Path):
    path = _write(tmp_path, "a.ts", "db.from('tasks')\n")

    report = _rewrite(tmp_path, dry_run=True)

    assert report.dry_run is True
    assert report.files_modified == 1
    assert report.references_rewritten == 1
    assert path.read_text(encoding="utf-8") == "db.from('tasks')\n"


@pytest.mark.unit
def test_missing_root_raises(tmp_path: Path):
    with pytest.raises(NotADirectoryError):
        _rewrite(tmp_path / "nope")


# ---------------------------------------------------------------------------
# Revert
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_revert_restores_original_source(tmp_path: Path):
    original = "db.from('tasks')\ndb.table(\"projects\")\nconst x = 1\n"
    path = _write(tmp_path, "a.ts", original)
    _rewrite(tmp_path)

    report = revert_references(tmp_path, TABLES, PREFIX, accessors=ACCESSORS)

    assert path.read_text(encoding="utf-8") == original
    assert report.references_rewritten == 2


@pytest.mark.unit
def test_revert_strips_doubled_prefixes(tmp_path: Path):
    path = _write(tmp_path, "a.ts", "db.from('TODOAAPP.TODOAAPP.tasks')\n")

    revert_references(tmp_path, TABLES, PREFIX, accessors=ACCESSORS)

    assert path.read_text(encoding="utf-8") == "db.from('tasks')\n"
