"""Tests for exception classification and failure folding."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.voice.errors import (
    CODE_REFERENCE_NOT_FOUND,
    FieldValidationError,
    PermissionDeniedError,
    ReferenceNotFoundError,
    build_failure,
    build_form_errors,
    classify_exception,
    data_error,
    permission_error,
    system_error,
    validation_error,
)
from src.voice.schema import ValidationErrorType, VoiceAction


class _UnprintableError(Exception):
    def __str__(self) -> str:
        raise RuntimeError("no")


def test_domain_exceptions_keep_their_kind() -> None:
    assert classify_exception(FieldValidationError("bad", field="email")).type == "validation"
    assert classify_exception(PermissionDeniedError("nope")).type == "permission"

    error = classify_exception(ReferenceNotFoundError("Client 'X' not found", field="client_name"))
    assert error.type == ValidationErrorType.data
    assert error.field == "client_name"
    assert error.code == CODE_REFERENCE_NOT_FOUND


def test_builtin_permission_error_is_permission() -> None:
    assert classify_exception(PermissionError("denied")).type == ValidationErrorType.permission


def test_pydantic_error_is_validation_with_location() -> None:
    with pytest.raises(ValidationError) as exc_info:
        VoiceAction.model_validate({"intent": "x", "confidence": 7})

    error = classify_exception(exc_info.value)
    assert error.type == ValidationErrorType.validation
    assert error.field == "confidence"


@pytest.mark.parametrize(
    "exc",
    [RuntimeError("db down"), TimeoutError(), KeyError("k"), ValueError("odd")],
)
def test_everything_else_is_system(exc: Exception) -> None:
    error = classify_exception(exc)
    assert error.type == ValidationErrorType.system
    assert error.message


def test_context_prefixes_system_message() -> None:
    error = classify_exception(ConnectionError("refused"), context="Intent lookup failed")
    assert error.message == "Intent lookup failed: refused"


def test_classifier_never_raises_on_broken_str() -> None:
    error = classify_exception(_UnprintableError())
    assert error.type == ValidationErrorType.system
    assert error.message == "_UnprintableError"


def test_form_errors_first_validation_error_wins() -> None:
    errors = [
        validation_error("email", "email is required"),
        validation_error("email", "email must be a valid email address"),
        data_error("client_name", "Client 'X' not found"),
        permission_error("Role 'employee' is not authorized for 'create_user' action"),
    ]
    assert build_form_errors(errors) == {"email": "email is required"}


def test_build_failure_sets_system_error_from_first_system_entry() -> None:
    failure = build_failure(
        [
            validation_error("budget", "budget must be greater than 0"),
            system_error("directory timed out"),
        ]
    )
    assert failure.system_error == "directory timed out"
    assert failure.form_errors == {"budget": "budget must be greater than 0"}
    assert failure.first_message == "directory timed out"


def test_build_failure_without_system_error() -> None:
    failure = build_failure([data_error("client_name", "Client 'X' not found")])
    assert failure.system_error is None
    assert failure.first_message == "Client 'X' not found"
