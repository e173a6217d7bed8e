"""Destination enumerations of the TODOAAPP schema."""

from enum import Enum


class OrganizationRole(str, Enum):
    owner = "owner"
    admin = "admin"
    member = "member"


# Teams share the organization role type
TeamRole = OrganizationRole


class ProjectRole(str, Enum):
    owner = "owner"
    admin = "admin"
    editor = "editor"
    reader = "reader"


class NotificationType(str, Enum):
    task_assigned = "task_assigned"
    task_updated = "task_updated"
    task_completed = "task_completed"
    comment_added = "comment_added"
    mention = "mention"
    project_invite = "project_invite"
    organization_invite = "organization_invite"


class TaskStatus(str, Enum):
    todo = "todo"
    in_progress = "in_progress"
    review = "review"
    done = "done"
    archived = "archived"


class TaskPriority(str, Enum):
    none = "none"
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class AttentionType(str, Enum):
    mention = "mention"
    assignment = "assignment"
    due_soon = "due_soon"
    overdue = "overdue"
    comment = "comment"
    status_change = "status_change"
    unassignment = "unassignment"


class AttentionPriority(str, Enum):
    urgent = "urgent"
    high = "high"
    normal = "normal"
    low = "low"
