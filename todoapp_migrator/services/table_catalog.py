"""The TodoApp tables, declared in the order they must be migrated.

Parents come before children: profiles, then organizations and teams, then
projects and memberships, then tasks and everything hanging off a task, and
finally logs, notifications and integration tables.
"""

from typing import Any, Dict, List

from todoapp_migrator.schemas.migration import BackfillSpec, ColumnSpec, ColumnTransform, TableSpec

DEFAULT_COLOR = "#3B82F6"


def _copy(*names: str, optional: bool = False) -> List[ColumnSpec]:
    return [ColumnSpec(name=name, optional=optional) for name in names]


def _renamed(name: str, source: str) -> ColumnSpec:
    return ColumnSpec(name=name, source=source)


def _default(name: str, value: Any, *sources: str, optional: bool = False) -> ColumnSpec:
    return ColumnSpec(
        name=name,
        transform=ColumnTransform.default,
        sources=list(sources) or [name],
        default=value,
        optional=optional,
    )


def _enum(name: str, domain: str) -> ColumnSpec:
    return ColumnSpec(name=name, transform=ColumnTransform.enum, domain=domain)


TODOAPP_TABLE_SPECS: List[TableSpec] = [
    TableSpec(
        name="profiles",
        key_columns=["id"],
        columns=[
            *_copy("id", "email", "full_name", "avatar_url", "bio", "username"),
            _default("timezone", "UTC"),
            _default("language", "en"),
            *_copy("created_at", "updated_at"),
        ],
        update_columns=[
            "email", "full_name", "avatar_url", "bio", "username", "timezone", "language", "updated_at",
        ],
    ),
    TableSpec(
        name="organizations",
        key_columns=["id"],
        columns=[
            *_copy("id", "name", "slug", "description", "logo_url"),
            _default("image_url", None, "image_url", "logo_url", optional=True),
            *_copy("created_by", "created_at", "updated_at"),
        ],
        update_columns=["name", "slug", "description", "logo_url", "image_url", "updated_at"],
        depends_on=["profiles"],
    ),
    TableSpec(
        name="organization_members",
        key_columns=["organization_id", "user_id"],
        columns=[
            *_copy("id", "organization_id", "user_id"),
            _enum("role", "organization_role"),
            *_copy("invited_by", optional=True),
            *_copy("joined_at"),
        ],
        update_columns=["role"],
        depends_on=["organizations", "profiles"],
    ),
    TableSpec(
        name="teams",
        key_columns=["id"],
        columns=[
            *_copy("id", "organization_id", "name", "description"),
            _default("color", DEFAULT_COLOR),
            _default("image_url", None, optional=True),
            *_copy("created_by", "created_at", "updated_at"),
        ],
        update_columns=["name", "description", "color", "updated_at"],
        depends_on=["organizations"],
    ),
    TableSpec(
        name="team_members",
        key_columns=["team_id", "user_id"],
        columns=[
            *_copy("id", "team_id", "user_id"),
            _enum("role", "team_role"),
            *_copy("joined_at"),
        ],
        update_columns=["role"],
        depends_on=["teams", "profiles"],
    ),
    TableSpec(
        name="projects",
        key_columns=["id"],
        columns=[
            *_copy("id", "name", "description", "organization_id"),
            _default("team_id", None, optional=True),
            _default("color", DEFAULT_COLOR),
            _default("status", "active"),
            *_copy("workflow_stages"),
            _default("image_url", None, optional=True),
            *_copy("created_by", "created_at", "updated_at"),
        ],
        update_columns=["name", "description", "color", "status", "workflow_stages", "updated_at"],
        depends_on=["organizations", "teams"],
    ),
    TableSpec(
        name="project_members",
        key_columns=["project_id", "user_id"],
        columns=[
            *_copy("id", "project_id", "user_id"),
            _enum("role", "project_role"),
            *_copy("invited_by", optional=True),
            *_copy("joined_at"),
        ],
        update_columns=["role"],
        depends_on=["projects", "profiles"],
    ),
    TableSpec(
        name="tasks",
        key_columns=["id"],
        columns=[
            *_copy("id", "title", "description"),
            _enum("status", "task_status"),
            _enum("priority", "task_priority"),
            *_copy("project_id"),
            _default("assigned_to", None, optional=True),
            *_copy("created_by", "updated_by", "due_date", "start_date", "completed_at"),
            *_copy("created_at", "updated_at"),
            _default("tags", [], optional=True),
            *_copy("estimated_hours", optional=True),
            _default("actual_hours", None, optional=True),
            *_copy("parent_task_id", optional=True),
            _default("position", 0),
            *_copy("stage_id"),
            _default("custom_fields", {}, optional=True),
            *_copy("color", "milestone_id", optional=True),
            _default("approval_status", "none", optional=True),
            *_copy("approved_at", "approved_by", "rejection_reason", optional=True),
            *_copy("moved_to_done_at", "moved_to_done_by", optional=True),
            *_copy(
                "slack_thread_ts", "slack_message_ts", "slack_user_id", "slack_user_name",
                optional=True,
            ),
            _default("created_by_slack", False, optional=True),
        ],
        update_columns=[
            "title", "description", "status", "priority", "due_date", "updated_by", "updated_at",
        ],
        depends_on=["projects", "profiles"],
    ),
    TableSpec(
        name="task_assignments",
        key_columns=["task_id", "user_id"],
        columns=_copy("id", "task_id", "user_id", "assigned_by", "assigned_at"),
        update_columns=[],
        depends_on=["tasks", "profiles"],
    ),
    TableSpec(
        name="subtasks",
        key_columns=["id"],
        columns=[
            *_copy("id", "task_id", "title"),
            _default("completed", False),
            _default("position", 0),
            _default("due_date", None, optional=True),
            *_copy("assigned_to", "created_at", "updated_at"),
        ],
        update_columns=["title", "completed", "position", "updated_at"],
        depends_on=["tasks"],
    ),
    TableSpec(
        name="comments",
        key_columns=["id"],
        columns=_copy("id", "task_id", "project_id", "content", "created_by", "created_at", "updated_at"),
        update_columns=["content", "updated_at"],
        depends_on=["tasks", "projects"],
    ),
    TableSpec(
        name="attachments",
        key_columns=["id"],
        columns=[
            *_copy("id", "task_id", "comment_id", "file_name"),
            _renamed("file_url", "file_path"),
            *_copy("file_size", "file_type", "uploaded_by", "created_at"),
        ],
        update_columns=[],
        depends_on=["tasks", "comments"],
    ),
    TableSpec(
        name="time_entries",
        key_columns=["id"],
        columns=[
            *_copy("id", "task_id", "user_id"),
            _renamed("start_time", "started_at"),
            _renamed("end_time", "ended_at"),
            *_copy("duration", "description", "created_at"),
        ],
        update_columns=[],
        depends_on=["tasks"],
    ),
    TableSpec(
        name="activity_logs",
        key_columns=["id"],
        columns=[
            *_copy("id", "project_id", "task_id", "user_id", "action"),
            *_copy("entity_type", "entity_id", optional=True),
            ColumnSpec(
                name="changes",
                transform=ColumnTransform.pack,
                sources=["old_values", "new_values"],
            ),
            *_copy("created_at"),
        ],
        update_columns=[],
        source_optional=True,
        required_source_columns=["old_values", "new_values"],
        depends_on=["projects", "tasks"],
    ),
    TableSpec(
        name="notifications",
        key_columns=["id"],
        columns=[
            *_copy("id", "user_id"),
            _enum("type", "notification_type"),
            *_copy("title", "message"),
            _default("data", {}),
            _default("is_read", False),
            *_copy("created_at"),
        ],
        update_columns=[],
        depends_on=["profiles"],
    ),
    TableSpec(
        name="slack_integrations",
        key_columns=["project_id"],
        columns=[
            *_copy("id", "project_id", "webhook_url", "channel_name"),
            *_copy("channel_id", "access_token", optional=True),
            _default("notify_on_task_create", True),
            _default("notify_on_task_update", True),
            _default("notify_on_task_delete", True),
            _default("notify_on_task_move", True),
            _default("notify_on_task_complete", True),
            *_copy("created_by", "created_at", "updated_at"),
        ],
        update_columns=["webhook_url", "channel_name", "channel_id", "access_token", "updated_at"],
        skip_null_columns=["webhook_url"],
        source_optional=True,
        depends_on=["projects"],
    ),
    TableSpec(
        name="mentions",
        key_columns=["id"],
        columns=_copy(
            "id", "mentioned_user_id", "mentioner_user_id", "task_id", "comment_id",
            "project_id", "mention_context", "created_at", "read_at",
        ),
        update_columns=[],
        source_optional=True,
        depends_on=["tasks", "comments"],
    ),
    TableSpec(
        name="attention_items",
        key_columns=["id"],
        columns=[
            *_copy("id", "user_id"),
            _enum("attention_type", "attention_type"),
            _enum("priority", "attention_priority"),
            *_copy(
                "task_id", "comment_id", "mention_id", "project_id", "actor_user_id",
                "title", "body", "read_at", "dismissed_at", "actioned_at", "dedup_key",
                "created_at", "updated_at",
            ),
        ],
        update_columns=[],
        source_optional=True,
        depends_on=["tasks", "mentions"],
    ),
]

# Run once their tables have migrated; both read and write the destination
TODOAPP_BACKFILLS: List[BackfillSpec] = [
    BackfillSpec(
        name="tasks.assigned_to",
        table="tasks",
        column="assigned_to",
        source_table="task_assignments",
        match_column="task_id",
        value_column="user_id",
        order_by="assigned_at",
        depends_on=["tasks", "task_assignments"],
    ),
]

# Every table the application reads through the data-access client
TODOAPP_TABLES: List[str] = [
    "profiles",
    "organizations",
    "organization_members",
    "teams",
    "team_members",
    "projects",
    "project_members",
    "tasks",
    "task_assignments",
    "subtasks",
    "comments",
    "attachments",
    "time_entries",
    "activity_logs",
    "notifications",
    "webhooks",
    "slack_integrations",
    "mentions",
    "attention_items",
]


def expected_columns(specs: List[TableSpec] = TODOAPP_TABLE_SPECS) -> Dict[str, List[str]]:
    """Destination columns each table is expected to carry."""
    expected = {
        spec.destination_table: [column.name for column in spec.columns] for spec in specs
    }
    # Not migrated, but the application still reads it
    expected.setdefault("webhooks", ["id", "project_id", "url", "events", "secret", "enabled", "created_at"])
    return expected
