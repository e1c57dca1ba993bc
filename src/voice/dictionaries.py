"""Small deterministic vocabularies used by the field mapper.

These mappings translate the loose spellings an LLM interpreter produces into canonical field names
and values. Keep them small: anything not listed here is either passed through or reported as
unmapped, never guessed.
"""

from __future__ import annotations

from src.voice.schema import ReferenceKind, Role

BOOLEAN_TRUE_TERMS: frozenset[str] = frozenset({"true", "yes", "y", "1", "on", "active"})
BOOLEAN_FALSE_TERMS: frozenset[str] = frozenset({"false", "no", "n", "0", "off", "inactive"})

# Intent-specific aliases, applied after snake_case conversion.
FIELD_ALIASES: dict[str, dict[str, str]] = {
    "create_user": {
        "user_name": "full_name",
        "name": "full_name",
        "fullname": "full_name",
        "rate": "hourly_rate",
    },
    "update_user": {"name": "user_name", "full_name": "user_name", "rate": "hourly_rate"},
    "delete_user": {"name": "user_name", "full_name": "user_name"},
    "approve_user": {"name": "user_name", "full_name": "user_name", "project": "project_name"},
    "reject_user": {"name": "user_name", "full_name": "user_name", "project": "project_name"},
    "create_project": {
        "name": "project_name",
        "client": "client_name",
        "manager": "manager_name",
        "primary_manager": "manager_name",
    },
    "update_project": {"name": "project_name", "manager": "manager_name"},
    "delete_project": {"name": "project_name"},
    "add_project_member": {
        "project": "project_name",
        "role": "project_role",
        "name": "member_name",
        "user_name": "member_name",
    },
    "remove_project_member": {
        "project": "project_name",
        "role": "project_role",
        "name": "member_name",
        "user_name": "member_name",
    },
    "add_task": {
        "project": "project_name",
        "task": "task_name",
        "name": "task_name",
        "assignee": "assigned_member_name",
        "assigned_to": "assigned_member_name",
    },
    "update_task": {
        "project": "project_name",
        "task": "task_name",
        "assignee": "assigned_member_name",
        "assigned_to": "assigned_member_name",
    },
    "create_client": {"name": "client_name", "email": "contact_email"},
    "update_client": {"name": "client_name", "email": "contact_email"},
    "delete_client": {"name": "client_name"},
    "add_entries": {"project": "project_name", "task": "task_name"},
    "update_entries": {"project": "project_name", "task": "task_name"},
    "delete_entries": {"project": "project_name", "task": "task_name"},
    "copy_entry": {"project": "project_name", "task": "task_name", "dates": "week_dates"},
}

ROLE_SYNONYMS: dict[str, Role] = {
    "admin": Role.super_admin,
    "superadmin": Role.super_admin,
    "super_admin": Role.super_admin,
    "super_administrator": Role.super_admin,
    "management": Role.management,
    "manager": Role.manager,
    "project_manager": Role.manager,
    "lead": Role.lead,
    "team_lead": Role.lead,
    "employee": Role.employee,
    "staff": Role.employee,
}

# Fallback reference kinds for intents that do not declare `reference_types`.
REFERENCE_FIELD_KINDS: dict[str, ReferenceKind] = {
    "client_name": ReferenceKind.client,
    "manager_name": ReferenceKind.manager,
    "lead_name": ReferenceKind.manager,
    "user_name": ReferenceKind.user,
    "project_name": ReferenceKind.project,
    "member_name": ReferenceKind.user,
    "assigned_member_name": ReferenceKind.user,
    "task_name": ReferenceKind.task,
}

# Numeric fields that must be strictly positive.
POSITIVE_NUMBER_FIELDS: frozenset[str] = frozenset(
    {"hourly_rate", "budget", "hours", "estimated_hours"}
)

# Roles a user must hold to be resolvable as a manager reference.
MANAGER_LEVEL_ROLES: frozenset[Role] = frozenset(
    {Role.super_admin, Role.management, Role.manager, Role.lead}
)


def parse_boolean_term(value: str) -> bool | None:
    """Return the boolean a literal stands for, or `None` when it is not a known literal."""

    token = (value or "").strip().lower()
    if token in BOOLEAN_TRUE_TERMS:
        return True
    if token in BOOLEAN_FALSE_TERMS:
        return False
    return None


def canonical_field_name(intent: str, name: str) -> str:
    """Resolve an intent-specific alias to the canonical field name (identity if unknown)."""

    return FIELD_ALIASES.get(intent, {}).get(name, name)
