"""
Shared test utilities and factories.

Re-exports the in-memory store and fixture builders for convenient imports:
    from todoapp_migrator.testing import InMemoryStore, create_source_table
"""

from todoapp_migrator.testing.factories import (
    ORG_ID,
    PROJECT_ID,
    SOURCE_SCHEMA,
    TARGET_SCHEMA,
    TIMESTAMP,
    TODOAPP_FOREIGN_KEYS,
    USER_ID,
    create_destination_tables,
    create_source_table,
    create_test_membership_data,
    create_test_notification_data,
    create_test_organization_data,
    create_test_profile_data,
    create_test_project_data,
    create_test_task_assignment_data,
    create_test_task_data,
    spec_named,
)
from todoapp_migrator.testing.store import InMemoryStore, InMemoryTable

__all__ = [
    "ORG_ID",
    "PROJECT_ID",
    "SOURCE_SCHEMA",
    "TARGET_SCHEMA",
    "TIMESTAMP",
    "TODOAPP_FOREIGN_KEYS",
    "USER_ID",
    "InMemoryStore",
    "InMemoryTable",
    "create_destination_tables",
    "create_source_table",
    "create_test_membership_data",
    "create_test_notification_data",
    "create_test_organization_data",
    "create_test_profile_data",
    "create_test_project_data",
    "create_test_task_assignment_data",
    "create_test_task_data",
    "spec_named",
]
