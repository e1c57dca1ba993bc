"""Role-based operation routing.

Which backend operation runs for a validated action is data, not branching: `ROUTES` maps an intent
to a default `OperationSpec` plus per-role variants, and an `IntentConfig` may override the choice
per role. The router selects one operation per action, invokes it exactly once, and converts any
failure into an `ActionResult` instead of raising. It never retries.

Failed results carry the classified `VoiceError` in `errors`: a raised exception keeps the kind
`classify_exception` gives it, a failure reported by the operation itself is a `data` error, and
routing faults are `system` errors.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.voice.errors import CODE_DATA_ERROR, classify_exception, data_error, system_error
from src.voice.schema import (
    ActingUser,
    ActionResult,
    IntentConfig,
    OperationOutcome,
    ReferenceKind,
    ResolvedReference,
    Role,
    ValidationSuccess,
    VoiceError,
)

logger = logging.getLogger(__name__)

_ID_PLACEHOLDERS: dict[str, ReferenceKind | None] = {
    "{projectId}": ReferenceKind.project,
    "{userId}": ReferenceKind.user,
    "{clientId}": ReferenceKind.client,
    "{timesheetId}": None,
}
_WEEK_START_PLACEHOLDER = "{weekStart}"


@dataclass(frozen=True)
class OperationSpec:
    """A named backend operation and how invoking it shapes the request and result."""

    name: str
    pending_approval: bool = False
    data_overrides: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IntentRoute:
    """Default operation for an intent plus per-role variants."""

    default: OperationSpec
    by_role: Mapping[Role, OperationSpec] = field(default_factory=dict)

    def select(self, role: Role) -> OperationSpec:
        return self.by_role.get(role, self.default)


@dataclass(frozen=True)
class OperationRequest:
    """Everything a backend operation receives."""

    intent: str
    operation: str
    data: dict[str, Any]
    references: dict[str, ResolvedReference]
    acting_user: ActingUser


BackendOperation = Callable[[OperationRequest], Awaitable[OperationOutcome | Mapping[str, Any]]]


OPERATIONS: dict[str, OperationSpec] = {
    spec.name: spec
    for spec in (
        OperationSpec("create_user", data_overrides={"is_approved_by_super_admin": True}),
        OperationSpec("create_user_for_approval", pending_approval=True),
        OperationSpec("update_user"),
        OperationSpec("soft_delete_user"),
        OperationSpec("create_project"),
        OperationSpec("update_project"),
        OperationSpec("delete_project"),
        OperationSpec("add_project_member"),
        OperationSpec("remove_project_member"),
        OperationSpec("add_task"),
        OperationSpec("update_task"),
        OperationSpec("create_client"),
        OperationSpec("update_client"),
        OperationSpec("delete_client"),
        OperationSpec("create_timesheet"),
        OperationSpec("delete_timesheet"),
        OperationSpec("add_entries"),
        OperationSpec("update_entries"),
        OperationSpec("delete_entries"),
        OperationSpec("copy_entry"),
        OperationSpec("approve_user_week"),
        OperationSpec("reject_user_week"),
        OperationSpec("approve_project_week"),
        OperationSpec("reject_project_week"),
        OperationSpec("send_reminder"),
        OperationSpec("export_project_billing"),
        OperationSpec("export_user_billing"),
        OperationSpec("get_audit_logs"),
    )
}

# Intents whose operation shares the intent's name.
_DIRECT_INTENTS: tuple[str, ...] = (
    "update_user",
    "create_project",
    "update_project",
    "delete_project",
    "add_project_member",
    "remove_project_member",
    "add_task",
    "update_task",
    "create_client",
    "update_client",
    "delete_client",
    "create_timesheet",
    "delete_timesheet",
    "add_entries",
    "update_entries",
    "delete_entries",
    "copy_entry",
    "approve_project_week",
    "reject_project_week",
    "send_reminder",
    "export_project_billing",
    "export_user_billing",
    "get_audit_logs",
)

ROUTES: dict[str, IntentRoute] = {
    "create_user": IntentRoute(
        default=OPERATIONS["create_user_for_approval"],
        by_role={Role.super_admin: OPERATIONS["create_user"]},
    ),
    "delete_user": IntentRoute(default=OPERATIONS["soft_delete_user"]),
    "approve_user": IntentRoute(default=OPERATIONS["approve_user_week"]),
    "reject_user": IntentRoute(default=OPERATIONS["reject_user_week"]),
    **{intent: IntentRoute(default=OPERATIONS[intent]) for intent in _DIRECT_INTENTS},
}


def _entity_id(data: Any) -> str | None:
    if isinstance(data, Mapping):
        value = data.get("id") or data.get("_id")
    else:
        value = getattr(data, "id", None)
    return str(value) if value is not None else None


def _week_start(data: Any, values: Mapping[str, Any]) -> str:
    value = None
    if isinstance(data, Mapping):
        value = data.get("week_start") or data.get("weekStart")
    value = value or values.get("week_start")
    if isinstance(value, date):
        return value.isoformat()
    return str(value) if value is not None else ""


def render_redirect_url(
        template: str | None,
        data: Any,
        *,
        values: Mapping[str, Any] | None = None,
        references: Mapping[str, ResolvedReference] | None = None,
) -> str | None:
    """Fill the placeholders of a redirect template.

    Entity-id placeholders take the id of the entity the operation returned, falling back to a
    resolved reference of the matching kind. `{weekStart}` comes from the returned data or the
    validated action data.
    """

    if not template:
        return None
    entity_id = _entity_id(data)
    resolved = list((references or {}).values())
    url = template
    for placeholder, kind in _ID_PLACEHOLDERS.items():
        if placeholder not in url:
            continue
        fallback = next((r.id for r in resolved if kind is not None and r.kind == kind), None)
        url = url.replace(placeholder, entity_id or fallback or "")
    if _WEEK_START_PLACEHOLDER in url:
        url = url.replace(_WEEK_START_PLACEHOLDER, _week_start(data, values or {}))
    return url


def _failed(
        intent: str,
        operation: str | None,
        error: VoiceError,
        *,
        data: Any = None,
) -> ActionResult:
    return ActionResult(
        success=False,
        intent=intent,
        operation=operation,
        data=data,
        error=error.message,
        errors=(error,),
    )


class OperationRouter:
    """Select and invoke the backend operation for a validated action."""

    def __init__(
            self,
            operations: Mapping[str, BackendOperation],
            *,
            routes: Mapping[str, IntentRoute] | None = None,
            catalog: Mapping[str, OperationSpec] | None = None,
    ) -> None:
        self._operations = dict(operations)
        self._routes = dict(ROUTES if routes is None else routes)
        self._catalog = dict(OPERATIONS if catalog is None else catalog)

    def select(
            self,
            intent: str,
            role: Role,
            config: IntentConfig | None = None,
    ) -> OperationSpec | None:
        """Resolve which operation `role` runs for `intent` (config override first)."""

        if config is not None and role in config.operation_overrides:
            name = config.operation_overrides[role]
            return self._catalog.get(name) or OperationSpec(name)

        route = self._routes.get(intent)
        return route.select(role) if route else None

    async def dispatch(
            self,
            intent: str,
            validated: ValidationSuccess,
            acting_user: ActingUser,
            config: IntentConfig | None = None,
    ) -> ActionResult:
        """Invoke the selected operation once and report its outcome."""

        spec = self.select(intent, acting_user.role, config)
        if spec is None:
            error = system_error(
                f"Intent '{intent}' is not supported for dispatch", details={"intent": intent}
            )
            return _failed(intent, None, error)

        operation = self._operations.get(spec.name)
        if operation is None:
            logger.error(
                "no backend operation registered intent=%s operation=%s", intent, spec.name
            )
            error = system_error(
                f"No backend operation registered for '{spec.name}'",
                details={"intent": intent, "operation": spec.name},
            )
            return _failed(intent, spec.name, error)

        request = OperationRequest(
            intent=intent,
            operation=spec.name,
            data={**validated.data, **spec.data_overrides},
            references=dict(validated.references),
            acting_user=acting_user,
        )

        logger.info(
            "dispatching intent=%s operation=%s user=%s role=%s",
            intent,
            spec.name,
            acting_user.id,
            acting_user.role,
        )

        try:
            raw = await operation(request)
        except Exception as exc:
            logger.exception("operation failed intent=%s operation=%s", intent, spec.name)
            return _failed(intent, spec.name, classify_exception(exc))

        try:
            if isinstance(raw, OperationOutcome):
                outcome = raw
            else:
                outcome = OperationOutcome.model_validate(raw)
        except PydanticValidationError:
            logger.error("unexpected operation result intent=%s operation=%s", intent, spec.name)
            error = system_error(
                f"Operation '{spec.name}' returned an unexpected result",
                details={"intent": intent, "operation": spec.name},
            )
            return _failed(intent, spec.name, error)

        if not outcome.success:
            logger.info(
                "operation rejected intent=%s operation=%s error=%s",
                intent,
                spec.name,
                outcome.error,
            )
            error = data_error(
                None,
                outcome.error or f"Operation '{spec.name}' failed",
                code=CODE_DATA_ERROR,
                details={"intent": intent, "operation": spec.name},
            )
            return _failed(intent, spec.name, error, data=outcome.data)

        return ActionResult(
            success=True,
            intent=intent,
            operation=spec.name,
            data=outcome.data,
            pending_approval=spec.pending_approval,
            redirect_url=render_redirect_url(
                config.redirect_url_template if config else None,
                outcome.data,
                values=request.data,
                references=request.references,
            ),
        )
