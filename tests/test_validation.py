"""Tests for the staged validation orchestrator."""

from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from src.voice.errors import CODE_DUPLICATE, CODE_FIELD_REQUIRED, CODE_INVALID_TYPE
from src.voice.references import StaticReferenceResolver
from src.voice.registry import StaticIntentConfigRegistry
from src.voice.schema import (
    ReferenceKind,
    ResolvedReference,
    Role,
    ValidationErrorType,
    ValidationFailure,
    ValidationSuccess,
)
from src.voice.validation import ValidationOrchestrator

_USER = {"full_name": "John Doe", "email": "john@test.com", "role": "employee", "hourly_rate": "45"}
_PROJECT = {
    "project_name": "Data Lake",
    "client_name": "acme  corp",
    "manager_name": "JOHN SMITH",
    "start_date": "2025-01-01",
}


class _UnreachableRegistry:
    async def get_by_intent(self, intent: str) -> Any:
        raise ConnectionError("intent store unreachable")


class _BrokenResolver:
    def __init__(self) -> None:
        self.calls = 0

    async def resolve(self, kind: ReferenceKind, label: str) -> ResolvedReference | None:
        self.calls += 1
        raise TimeoutError("directory timed out")


def _kinds(result: ValidationFailure) -> list[ValidationErrorType]:
    return [e.type for e in result.errors]


@pytest.mark.asyncio
async def test_valid_create_user_succeeds(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command("create_user", Role.super_admin, _USER)

    assert isinstance(result, ValidationSuccess)
    assert result.data == {
        "full_name": "John Doe",
        "email": "john@test.com",
        "role": "employee",
        "hourly_rate": 45,
        "is_active": True,
        "is_approved_by_super_admin": False,
    }


@pytest.mark.asyncio
async def test_valid_create_project_carries_resolved_references(
        orchestrator: ValidationOrchestrator,
) -> None:
    result = await orchestrator.validate_voice_command("create_project", "manager", _PROJECT)

    assert isinstance(result, ValidationSuccess)
    assert result.references["client_name"].id == "c-1"
    assert result.references["manager_name"].id == "u-10"
    assert result.data["client_name"] == "acme  corp"


@pytest.mark.asyncio
async def test_missing_required_fields_are_each_reported(
        orchestrator: ValidationOrchestrator,
) -> None:
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, {})

    assert isinstance(result, ValidationFailure)
    for name in ("project_name", "client_name", "manager_name", "start_date"):
        matching = [e for e in result.errors if e.field == name]
        assert matching and matching[0].type == ValidationErrorType.validation
        assert "required" in matching[0].message
        assert matching[0].code == CODE_FIELD_REQUIRED
        assert result.form_errors[name] == matching[0].message
    assert result.system_error is None


@pytest.mark.asyncio
async def test_unmapped_value_is_a_type_error(orchestrator: ValidationOrchestrator) -> None:
    data = {**_USER, "hourly_rate": "not-a-number"}
    result = await orchestrator.validate_voice_command("create_user", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    [error] = result.errors
    assert error.field == "hourly_rate"
    assert error.code == CODE_INVALID_TYPE
    assert error.details == {"expectedType": "number", "receivedValue": "not-a-number"}


@pytest.mark.asyncio
async def test_disallowed_role_gets_exactly_one_permission_error(
        orchestrator: ValidationOrchestrator,
) -> None:
    result = await orchestrator.validate_voice_command("create_project", Role.employee, _PROJECT)

    assert isinstance(result, ValidationFailure)
    permission = [e for e in result.errors if e.type == ValidationErrorType.permission]
    assert len(permission) == 1
    assert "not authorized" in permission[0].message
    assert result.form_errors == {}


@pytest.mark.asyncio
async def test_permission_error_does_not_hide_field_errors(
        orchestrator: ValidationOrchestrator,
) -> None:
    result = await orchestrator.validate_voice_command("create_project", "employee", {})

    assert isinstance(result, ValidationFailure)
    assert _kinds(result)[0] == ValidationErrorType.permission
    assert ValidationErrorType.validation in _kinds(result)


@pytest.mark.asyncio
async def test_unknown_role_is_not_authorized(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command("create_user", "intern", _USER)

    assert isinstance(result, ValidationFailure)
    assert _kinds(result) == [ValidationErrorType.permission]
    assert "'intern' is not authorized" in result.errors[0].message


@pytest.mark.asyncio
async def test_management_cannot_assign_equal_or_higher_role(
        orchestrator: ValidationOrchestrator,
) -> None:
    data = {**_USER, "role": "management"}
    result = await orchestrator.validate_voice_command("create_user", Role.management, data)

    assert isinstance(result, ValidationFailure)
    [error] = result.errors
    assert error.type == ValidationErrorType.permission
    assert "not authorized to assign" in error.message

    allowed = await orchestrator.validate_voice_command(
        "create_user", Role.management, {**_USER, "role": "manager"}
    )
    assert isinstance(allowed, ValidationSuccess)


@pytest.mark.asyncio
async def test_role_outside_enum_values_is_a_field_error(
        orchestrator: ValidationOrchestrator,
) -> None:
    data = {**_USER, "role": "Super Admin"}
    result = await orchestrator.validate_voice_command("create_user", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    assert _kinds(result) == [ValidationErrorType.validation]
    assert list(result.form_errors) == ["role"]


@pytest.mark.asyncio
async def test_non_positive_rate_is_rejected(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command(
        "create_user", Role.super_admin, {**_USER, "hourly_rate": "0"}
    )

    assert isinstance(result, ValidationFailure)
    assert result.form_errors == {"hourly_rate": "hourly_rate must be greater than 0"}


@pytest.mark.asyncio
async def test_malformed_email_is_rejected(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command(
        "create_user", Role.super_admin, {**_USER, "email": "john at test"}
    )

    assert isinstance(result, ValidationFailure)
    assert "email" in result.form_errors


@pytest.mark.asyncio
async def test_end_date_before_start_date(orchestrator: ValidationOrchestrator) -> None:
    data = {**_PROJECT, "end_date": "2024-12-31"}
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    assert list(result.form_errors) == ["end_date"]


@pytest.mark.asyncio
async def test_unresolved_reference_is_a_data_error(orchestrator: ValidationOrchestrator) -> None:
    data = {**_PROJECT, "client_name": "Initech"}
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    [error] = result.errors
    assert error.type == ValidationErrorType.data
    assert error.field == "client_name"
    assert error.message == "Client 'Initech' not found"
    assert result.form_errors == {}


@pytest.mark.asyncio
async def test_reference_matching_is_exact_not_fuzzy(orchestrator: ValidationOrchestrator) -> None:
    data = {**_PROJECT, "client_name": "Acme"}
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    assert _kinds(result) == [ValidationErrorType.data]


@pytest.mark.asyncio
async def test_reference_accepts_existing_entity_id(orchestrator: ValidationOrchestrator) -> None:
    data = {**_PROJECT, "client_name": "c-1", "manager_name": "U-10"}
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, data)

    assert isinstance(result, ValidationSuccess)
    assert result.references["client_name"] == ResolvedReference(
        kind=ReferenceKind.client, id="c-1", label="Acme Corp"
    )
    assert result.references["manager_name"].id == "u-10"


@pytest.mark.asyncio
async def test_not_found_reference_lists_suggestions(orchestrator: ValidationOrchestrator) -> None:
    close = await orchestrator.validate_voice_command(
        "create_project", Role.super_admin, {**_PROJECT, "client_name": "Acme"}
    )
    unrelated = await orchestrator.validate_voice_command(
        "create_project", Role.super_admin, {**_PROJECT, "client_name": "Initech"}
    )

    assert isinstance(close, ValidationFailure) and isinstance(unrelated, ValidationFailure)
    assert close.errors[0].details == {
        "field": "client_name",
        "value": "Acme",
        "kind": "client",
        "suggestions": ["Acme Corp"],
    }
    assert unrelated.errors[0].details is not None
    assert unrelated.errors[0].details["suggestions"] == ["Acme Corp", "Globex"]


@pytest.mark.asyncio
async def test_suggestion_failure_keeps_the_data_error(
        registry: StaticIntentConfigRegistry, directory: StaticReferenceResolver
) -> None:
    class _NoSuggestions:
        async def resolve(self, kind: ReferenceKind, label: str) -> ResolvedReference | None:
            return await directory.resolve(kind, label)

        async def suggest(self, kind: ReferenceKind, label: str, limit: int = 10) -> list[str]:
            raise TimeoutError("suggestions timed out")

    orchestrator = ValidationOrchestrator(registry, _NoSuggestions())
    data = {**_PROJECT, "client_name": "Initech"}
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    [error] = result.errors
    assert error.type == ValidationErrorType.data
    assert error.details is not None and "suggestions" not in error.details
    assert result.system_error is None


@pytest.mark.asyncio
async def test_duplicate_unique_field_is_a_data_error(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command(
        "create_client",
        Role.management,
        {"client_name": "Globex", "contact_person": "Hank", "contact_email": "hank@globex.com"},
    )

    assert isinstance(result, ValidationFailure)
    [error] = result.errors
    assert error.type == ValidationErrorType.data
    assert error.code == CODE_DUPLICATE
    assert "already exists" in error.message


@pytest.mark.asyncio
async def test_config_lookup_failure_is_a_single_system_error(
        directory: StaticReferenceResolver,
) -> None:
    orchestrator = ValidationOrchestrator(_UnreachableRegistry(), directory)
    result = await orchestrator.validate_voice_command("create_user", Role.super_admin, _USER)

    assert isinstance(result, ValidationFailure)
    assert _kinds(result) == [ValidationErrorType.system]
    assert result.system_error is not None
    assert "intent store unreachable" in result.system_error
    assert result.form_errors == {}


@pytest.mark.asyncio
async def test_unknown_intent_is_a_system_error(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command("launch_rocket", Role.super_admin, {})

    assert isinstance(result, ValidationFailure)
    assert _kinds(result) == [ValidationErrorType.system]
    assert "launch_rocket" in (result.system_error or "")


@pytest.mark.asyncio
async def test_resolver_fault_short_circuits_reference_stage(
        registry: StaticIntentConfigRegistry,
) -> None:
    resolver = _BrokenResolver()
    orchestrator = ValidationOrchestrator(registry, resolver)
    data = {**_PROJECT, "budget": "-5"}
    result = await orchestrator.validate_voice_command("create_project", Role.super_admin, data)

    assert isinstance(result, ValidationFailure)
    assert resolver.calls == 1
    assert _kinds(result) == [ValidationErrorType.validation, ValidationErrorType.system]
    assert result.system_error is not None
    assert "directory timed out" in result.system_error
    assert list(result.form_errors) == ["budget"]


_REVIEW = {
    "week_start": "2025-01-06",
    "week_end": "2025-01-12",
    "user_name": "Jane Taken",
    "project_name": "p-1",
    "reason": "Hours are incorrect",
}


@pytest.mark.asyncio
async def test_reject_user_resolves_user_and_project(orchestrator: ValidationOrchestrator) -> None:
    result = await orchestrator.validate_voice_command("reject_user", Role.lead, _REVIEW)

    assert isinstance(result, ValidationSuccess)
    assert result.data["week_start"] == date(2025, 1, 6)
    assert result.references["user_name"].id == "u-11"
    assert result.references["project_name"].label == "AI Platform"


@pytest.mark.asyncio
async def test_reject_user_checks_role_and_week_range(
        orchestrator: ValidationOrchestrator,
) -> None:
    data = {**_REVIEW, "week_end": "2025-01-01"}
    result = await orchestrator.validate_voice_command("reject_user", Role.employee, data)

    assert isinstance(result, ValidationFailure)
    assert _kinds(result) == [ValidationErrorType.permission, ValidationErrorType.validation]
    assert result.form_errors == {"week_end": "week_end must not be before week_start"}
