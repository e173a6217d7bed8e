"""Legacy enumeration remapping.

Every mapping lives in a catalog rather than in the row migration code, so a
new legacy value is handled by editing data: either the module-level
``DEFAULT_CATALOG`` or a JSON file pointed to by ``MAPPING_CATALOG_PATH``.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Type

from todoapp_migrator.core.errors import MappingError
from todoapp_migrator.core.messages import MappingMessages
from todoapp_migrator.models.enums import (
    AttentionPriority,
    AttentionType,
    NotificationType,
    OrganizationRole,
    ProjectRole,
    TaskPriority,
    TaskStatus,
    TeamRole,
)
from todoapp_migrator.schemas.mapping import EnumDomain, MappingCatalog

logger = logging.getLogger(__name__)


def _members(enum_cls: Type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# Legacy org/team roles collapse editor-style roles onto plain membership
MEMBERSHIP_ROLE_RULES = {
    "reader": OrganizationRole.member.value,
    "editor": OrganizationRole.member.value,
}

# The legacy app called project editors "members"
PROJECT_ROLE_RULES = {
    "member": ProjectRole.editor.value,
}

NOTIFICATION_TYPE_RULES = {
    "task_moved": NotificationType.task_updated.value,
    "new_announcement": NotificationType.task_updated.value,
    "new_meeting": NotificationType.task_updated.value,
}

DEFAULT_CATALOG = MappingCatalog(
    domains={
        "organization_role": EnumDomain(
            members=_members(OrganizationRole),
            rules=MEMBERSHIP_ROLE_RULES,
            fallback=OrganizationRole.member.value,
        ),
        "team_role": EnumDomain(
            members=_members(TeamRole),
            rules=MEMBERSHIP_ROLE_RULES,
            fallback=TeamRole.member.value,
        ),
        "project_role": EnumDomain(
            members=_members(ProjectRole),
            rules=PROJECT_ROLE_RULES,
            fallback=ProjectRole.reader.value,
        ),
        "notification_type": EnumDomain(
            members=_members(NotificationType),
            rules=NOTIFICATION_TYPE_RULES,
        ),
        "task_status": EnumDomain(members=_members(TaskStatus)),
        "task_priority": EnumDomain(members=_members(TaskPriority)),
        "attention_type": EnumDomain(members=_members(AttentionType)),
        "attention_priority": EnumDomain(members=_members(AttentionPriority)),
    }
)


def load_catalog(path: Optional[str | Path] = None) -> MappingCatalog:
    """Return the default catalog, with domains from ``path`` replacing ours by name."""
    if not path:
        return DEFAULT_CATALOG
    content = Path(path).read_text(encoding="utf-8")
    overrides = MappingCatalog.model_validate_json(content)
    logger.info("Loaded %d enumeration domain(s) from %s", len(overrides.domains), path)
    return DEFAULT_CATALOG.merged(overrides)


def map_enum(
    domain: str,
    legacy_value: Any,
    catalog: MappingCatalog = DEFAULT_CATALOG,
) -> Optional[str]:
    """
    Map a legacy enumerated value onto the destination enumeration.

    NULL stays NULL. Explicit rules win over pass-through so a legacy value
    that collides with a destination member can still be redirected. Values
    that match nothing use the domain fallback, or raise when there is none.

    Raises:
        MappingError: unknown domain, or unmapped value in a domain without fallback
    """
    rules = catalog.domains.get(domain)
    if rules is None:
        raise MappingError(
            domain, legacy_value, MappingMessages.UNKNOWN_DOMAIN.format(domain=domain)
        )
    if legacy_value is None:
        return None

    value = legacy_value.value if isinstance(legacy_value, Enum) else str(legacy_value)

    if value in rules.rules:
        return rules.rules[value]
    if rules.passthrough and value in rules.members:
        return value
    if rules.fallback is not None:
        logger.debug("Defaulting unrecognized %s value %r to %r", domain, value, rules.fallback)
        return rules.fallback
    raise MappingError(domain, value)
