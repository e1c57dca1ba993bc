"""Validation orchestrator.

Stages, strictly sequential per action:

    1) config lookup      -> on failure: one `system` error, nothing else runs
    2) permission check   -> `permission` errors, accumulated
    3) presence / type    -> `validation` errors, accumulated
    4) reference check    -> `data` errors, accumulated; a resolver fault is `system` and stops here
    5) aggregate          -> `ValidationSuccess` or `ValidationFailure`

Each stage returns its own contribution; the orchestrator folds them into one result instead of
mutating shared state across awaits.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from src.voice.dictionaries import POSITIVE_NUMBER_FIELDS
from src.voice.errors import (
    CODE_DUPLICATE,
    CODE_FIELD_REQUIRED,
    CODE_INVALID_TYPE,
    build_failure,
    data_error,
    permission_error,
    summarize_kinds,
    system_error,
    validation_error,
)
from src.voice.mapper import FieldMapper, MappedFields, Unmapped
from src.voice.references import (
    MAX_SUGGESTIONS,
    ReferenceResolver,
    ReferenceSuggester,
    kind_label,
    reference_kind_for,
)
from src.voice.registry import IntentConfigRegistry
from src.voice.schema import (
    ActingUser,
    FieldType,
    IntentConfig,
    ReferenceKind,
    ResolvedReference,
    Role,
    ValidationResult,
    ValidationSuccess,
    VoiceError,
)

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_DATE_RANGES: tuple[tuple[str, str], ...] = (("start_date", "end_date"), ("week_start", "week_end"))


@dataclass(frozen=True)
class ValidationOutcome:
    """A validation result plus the config and mapped fields it was computed from."""

    result: ValidationResult
    config: IntentConfig | None = None
    mapped: MappedFields | None = None


@dataclass(frozen=True)
class _DataStage:
    errors: tuple[VoiceError, ...] = ()
    references: dict[str, ResolvedReference] = field(default_factory=dict)
    fault: VoiceError | None = None


def _coerce_role(role: Role | str) -> Role | None:
    try:
        return Role(role)
    except ValueError:
        return None


def _permission_errors(
        config: IntentConfig,
        role_name: str,
        role: Role | None,
        mapped: MappedFields,
) -> tuple[VoiceError, ...]:
    if role is None or role not in config.allowed_roles:
        return (
            permission_error(
                f"Role '{role_name}' is not authorized for '{config.intent}' action",
                details={
                    "userRole": role_name,
                    "intent": config.intent,
                    "allowedRoles": sorted(r.value for r in config.allowed_roles),
                },
            ),
        )

    # Only super_admin may assign a role at or above its own rank.
    requested = mapped.values.get("role") if "role" in config.field_types else None
    target = _coerce_role(requested) if isinstance(requested, str) else None
    if target is not None and role != Role.super_admin and not role.outranks(target):
        return (
            permission_error(
                f"Role '{role.value}' is not authorized to assign the '{target.value}' role",
                details={"userRole": role.value, "attemptedRole": target.value},
            ),
        )
    return ()


def _presence_and_type_errors(config: IntentConfig, mapped: MappedFields) -> tuple[VoiceError, ...]:
    errors: list[VoiceError] = []
    unlisted = [f for f in config.field_types if f not in config.all_fields]
    checked = [*config.all_fields, *unlisted]
    required = set(config.required_fields)

    for name in checked:
        value = mapped.values.get(name)
        if name not in mapped.values:
            if name in required:
                errors.append(
                    validation_error(name, f"{name} is required", code=CODE_FIELD_REQUIRED)
                )
            continue
        if isinstance(value, Unmapped):
            errors.append(
                validation_error(
                    name,
                    value.reason,
                    code=CODE_INVALID_TYPE,
                    details={
                        "expectedType": config.field_types[name].value,
                        "receivedValue": value.raw,
                    },
                )
            )
    return tuple(errors)


def _field_rule_errors(
        config: IntentConfig,
        typed: Mapping[str, Any],
        already_failed: set[str],
) -> tuple[VoiceError, ...]:
    errors: list[VoiceError] = []

    for name in sorted(POSITIVE_NUMBER_FIELDS & set(typed)):
        if name in already_failed or config.field_types.get(name) != FieldType.number:
            continue
        if typed[name] <= 0:
            errors.append(validation_error(name, f"{name} must be greater than 0"))

    for name, value in typed.items():
        if name in already_failed or not name.endswith("email") or not isinstance(value, str):
            continue
        if not _EMAIL_RE.match(value):
            errors.append(validation_error(name, f"{name} must be a valid email address"))

    for start_name, end_name in _DATE_RANGES:
        start, end = typed.get(start_name), typed.get(end_name)
        if (
                isinstance(start, date)
                and isinstance(end, date)
                and end_name not in already_failed
                and end < start
        ):
            errors.append(validation_error(end_name, f"{end_name} must not be before {start_name}"))
    return tuple(errors)


class ValidationOrchestrator:
    """Compose config lookup, mapping, permission, field and reference checks into one result."""

    def __init__(
            self,
            registry: IntentConfigRegistry,
            resolver: ReferenceResolver,
            mapper: FieldMapper | None = None,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._mapper = mapper or FieldMapper()

    async def validate_voice_command(
            self,
            intent: str,
            role: Role | str,
            data: Mapping[str, Any] | None,
            acting_user: ActingUser | None = None,
    ) -> ValidationResult:
        """Validate one command without dispatching it."""

        outcome = await self.validate(intent, role, data, acting_user)
        return outcome.result

    async def validate(
            self,
            intent: str,
            role: Role | str,
            data: Mapping[str, Any] | None,
            acting_user: ActingUser | None = None,
    ) -> ValidationOutcome:
        """Run every stage and keep the config/mapping around for the router."""

        role_name = str(role)
        try:
            config = await self._registry.get_by_intent(intent)
        except Exception as exc:  # noqa: BLE001 (any lookup failure is a system error)
            logger.error("config lookup failed intent=%s error=%s", intent, exc)
            error = system_error(
                f"Intent configuration lookup failed for '{intent}': {exc}",
                details={"intent": intent, "exception": type(exc).__name__},
            )
            return ValidationOutcome(result=build_failure([error]))

        mapped = self._mapper.map_fields(config, data)
        try:
            errors, references = await self._run_stages(config, role_name, mapped)
        except Exception:
            logger.exception("validation crashed intent=%s", intent)
            errors = (system_error("Validation system error occurred", details={"intent": intent}),)
            references = {}

        if errors:
            logger.info(
                "validation failed intent=%s role=%s user=%s errors=%s",
                intent,
                role_name,
                acting_user.id if acting_user else "-",
                summarize_kinds(errors),
            )
            return ValidationOutcome(result=build_failure(errors), config=config, mapped=mapped)

        return ValidationOutcome(
            result=ValidationSuccess(data=mapped.typed(), references=references),
            config=config,
            mapped=mapped,
        )

    async def _run_stages(
            self,
            config: IntentConfig,
            role_name: str,
            mapped: MappedFields,
    ) -> tuple[tuple[VoiceError, ...], dict[str, ResolvedReference]]:
        permission = _permission_errors(config, role_name, _coerce_role(role_name), mapped)

        presence = _presence_and_type_errors(config, mapped)
        failed_fields = {e.field for e in presence if e.field}
        rules = _field_rule_errors(config, mapped.typed(), failed_fields)

        data_stage = await self._data_stage(config, mapped.typed())
        fault = (data_stage.fault,) if data_stage.fault else ()

        return (*permission, *presence, *rules, *data_stage.errors, *fault), data_stage.references

    async def _suggestions(self, kind: ReferenceKind, label: str) -> list[str] | None:
        if not isinstance(self._resolver, ReferenceSuggester):
            return None
        try:
            return await self._resolver.suggest(kind, label, MAX_SUGGESTIONS)
        except Exception as exc:  # noqa: BLE001 (suggestions only enrich a data error)
            logger.warning("reference suggestions failed kind=%s error=%s", kind, exc)
            return None

    async def _data_stage(self, config: IntentConfig, typed: Mapping[str, Any]) -> _DataStage:
        errors: list[VoiceError] = []
        references: dict[str, ResolvedReference] = {}

        for name in config.fields_of_type(FieldType.reference):
            label = typed.get(name)
            if not isinstance(label, str) or not label:
                continue

            kind = reference_kind_for(config, name)
            if kind is None:
                fault = system_error(
                    f"No reference type configured for field '{name}' of '{config.intent}'",
                    details={"field": name, "intent": config.intent},
                )
                return _DataStage(errors=tuple(errors), references=references, fault=fault)

            try:
                resolved = await self._resolver.resolve(kind, label)
            except Exception as exc:  # noqa: BLE001 (resolver faults are system errors)
                logger.error("reference lookup failed field=%s kind=%s error=%s", name, kind, exc)
                fault = system_error(
                    f"Error validating reference for {name}: {exc}",
                    details={"field": name, "kind": kind.value},
                )
                return _DataStage(errors=tuple(errors), references=references, fault=fault)

            if resolved is None:
                details: dict[str, Any] = {"field": name, "value": label, "kind": kind.value}
                suggestions = await self._suggestions(kind, label)
                if suggestions is not None:
                    details["suggestions"] = suggestions
                errors.append(
                    data_error(name, f"{kind_label(kind)} '{label}' not found", details=details)
                )
            else:
                references[name] = resolved

        for name, kind in config.unique_fields.items():
            value = typed.get(name)
            if not isinstance(value, str) or not value:
                continue

            try:
                existing = await self._resolver.resolve(kind, value)
            except Exception as exc:  # noqa: BLE001 (resolver faults are system errors)
                logger.error("uniqueness lookup failed field=%s kind=%s error=%s", name, kind, exc)
                fault = system_error(
                    f"Error checking uniqueness of {name}: {exc}",
                    details={"field": name, "kind": kind.value},
                )
                return _DataStage(errors=tuple(errors), references=references, fault=fault)

            if existing is not None:
                errors.append(
                    data_error(
                        name,
                        f"{kind_label(kind)} with {name} '{value}' already exists",
                        code=CODE_DUPLICATE,
                        details={"existingId": existing.id},
                    )
                )

        return _DataStage(errors=tuple(errors), references=references)
