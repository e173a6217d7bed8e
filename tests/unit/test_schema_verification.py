"""
Unit tests for destination schema verification.

Tests cover:
- Tables that exist with every expected column
- Missing tables and missing columns
- Extra columns, which are reported but tolerated
"""

import pytest

from todoapp_migrator.services.schema_verification import verify_schema
from todoapp_migrator.testing import TARGET_SCHEMA, InMemoryStore


@pytest.mark.unit
async def test_complete_schema_verifies(store: InMemoryStore):
    store.create_table(TARGET_SCHEMA, "tasks", ["id", "title", "stage_id"])

    report = await verify_schema(store, {"tasks": ["id", "title"]}, schema=TARGET_SCHEMA)

    assert report.ok
    task = report.tables["tasks"]
    assert (task.expected, task.found) == (2, 3)
    assert task.extra == ["stage_id"]


@pytest.mark.unit
async def test_missing_columns_fail_verification(store: InMemoryStore):
    store.create_table(TARGET_SCHEMA, "tasks", ["id"])

    report = await verify_schema(store, {"tasks": ["id", "title", "tags"]}, schema=TARGET_SCHEMA)

    assert not report.ok
    assert report.tables["tasks"].missing == ["title", "tags"]


@pytest.mark.unit
async def test_missing_table_is_reported(store: InMemoryStore):
    report = await verify_schema(store, {"webhooks": ["id", "url"]}, schema=TARGET_SCHEMA)

    webhooks = report.tables["webhooks"]
    assert webhooks.exists is False
    assert webhooks.missing == ["id", "url"]
    assert report.schema_name == TARGET_SCHEMA
    assert not report.ok


@pytest.mark.unit
async def test_verification_only_looks_at_its_schema(store: InMemoryStore):
    store.create_table("public", "tasks", ["id"])

    report = await verify_schema(store, {"tasks": ["id"]}, schema=TARGET_SCHEMA)

    assert report.tables["tasks"].exists is False
