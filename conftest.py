"""
Pytest configuration and fixtures for migrator tests.

This module provides the core testing infrastructure including:
- An in-memory store fixture shared by unit tests
- A working tree fixture for the reference rewriter CLI
"""

from pathlib import Path

import pytest

from todoapp_migrator.core.config import get_settings
from todoapp_migrator.testing import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    """A fresh, empty in-memory store for each test."""
    return InMemoryStore()


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A small application tree with data-access calls to rewrite."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "tasks.ts").write_text(
        "export const load = () => supabase.from('tasks').select('*');\n",
        encoding="utf-8",
    )
    (tmp_path / "src" / "util.ts").write_text("export const x = 1;\n", encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; tests that patch the environment need a fresh read."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
