"""Error taxonomy helpers.

Every problem found while validating or dispatching a voice action is expressed as a `VoiceError` of
one of four kinds (`validation`, `permission`, `data`, `system`). This module owns:

    - the domain exceptions that carry a kind,
    - constructors for each kind,
    - `classify_exception`, which maps an arbitrary exception onto the taxonomy,
    - `build_failure`, which folds an error list into a consistent `ValidationFailure`.

The validation stages build `VoiceError`s directly and never raise. The exceptions are for backend
operations plugged into the router: an operation raises `PermissionDeniedError`,
`FieldValidationError` or `ReferenceNotFoundError` and the router reports that kind in the failed
`ActionResult`. A failure an operation reports without raising becomes a `data` error with
`CODE_DATA_ERROR`.

Nothing here raises.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.voice.schema import ValidationErrorType, ValidationFailure, VoiceError

CODE_FIELD_REQUIRED = "FIELD_REQUIRED"
CODE_INVALID_TYPE = "INVALID_FIELD_TYPE"
CODE_INVALID_VALUE = "INVALID_FIELD_VALUE"
CODE_PERMISSION_DENIED = "PERMISSION_DENIED"
CODE_REFERENCE_NOT_FOUND = "REFERENCE_NOT_FOUND"
CODE_DUPLICATE = "DUPLICATE_ENTITY"
CODE_DATA_ERROR = "DATA_ERROR"
CODE_SYSTEM_ERROR = "SYSTEM_ERROR"

_DEFAULT_CODES: dict[ValidationErrorType, str] = {
    ValidationErrorType.validation: CODE_INVALID_VALUE,
    ValidationErrorType.permission: CODE_PERMISSION_DENIED,
    ValidationErrorType.data: CODE_DATA_ERROR,
    ValidationErrorType.system: CODE_SYSTEM_ERROR,
}


class VoiceCommandError(Exception):
    """Base class for domain failures that map directly onto the error taxonomy."""

    kind: ValidationErrorType = ValidationErrorType.system

    def __init__(self, message: str, *, field: str | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.code = code or _DEFAULT_CODES[self.kind]


class FieldValidationError(VoiceCommandError):
    """A field is missing or malformed."""

    kind = ValidationErrorType.validation


class PermissionDeniedError(VoiceCommandError):
    """The acting role may not perform the requested action."""

    kind = ValidationErrorType.permission


class ReferenceNotFoundError(VoiceCommandError):
    """A human-readable reference did not match any entity."""

    kind = ValidationErrorType.data

    def __init__(self, message: str, *, field: str | None = None, code: str | None = None) -> None:
        super().__init__(message, field=field, code=code or CODE_REFERENCE_NOT_FOUND)


def validation_error(
        field: str,
        message: str,
        *,
        code: str = CODE_INVALID_VALUE,
        details: Mapping[str, Any] | None = None,
) -> VoiceError:
    return VoiceError(
        type=ValidationErrorType.validation,
        field=field,
        message=message,
        code=code,
        details=dict(details) if details else None,
    )


def permission_error(message: str, *, details: Mapping[str, Any] | None = None) -> VoiceError:
    return VoiceError(
        type=ValidationErrorType.permission,
        message=message,
        code=CODE_PERMISSION_DENIED,
        details=dict(details) if details else None,
    )


def data_error(
        field: str | None,
        message: str,
        *,
        code: str = CODE_REFERENCE_NOT_FOUND,
        details: Mapping[str, Any] | None = None,
) -> VoiceError:
    return VoiceError(
        type=ValidationErrorType.data,
        field=field,
        message=message,
        code=code,
        details=dict(details) if details else None,
    )


def system_error(message: str, *, details: Mapping[str, Any] | None = None) -> VoiceError:
    return VoiceError(
        type=ValidationErrorType.system,
        message=message,
        code=CODE_SYSTEM_ERROR,
        details=dict(details) if details else None,
    )


def _exception_message(exc: BaseException) -> str:
    try:
        text = str(exc).strip()
    except Exception:  # noqa: BLE001 (a broken __str__ must not escape the classifier)
        text = ""
    return text or type(exc).__name__


def _pydantic_field(exc: PydanticValidationError) -> str | None:
    errors = exc.errors()
    if not errors or not errors[0].get("loc"):
        return None
    return ".".join(str(part) for part in errors[0]["loc"])


def classify_exception(
        exc: BaseException,
        *,
        field: str | None = None,
        context: str | None = None,
) -> VoiceError:
    """Map an exception onto the taxonomy.

    Recognized domain conditions keep their kind; everything else becomes a `system` error. The
    optional `context` is prefixed to the message of system errors (e.g. "Intent configuration
    lookup failed").
    """

    message = _exception_message(exc)

    if isinstance(exc, VoiceCommandError):
        return VoiceError(
            type=exc.kind,
            field=exc.field or field,
            message=exc.message or message,
            code=exc.code,
        )

    if isinstance(exc, PermissionError):
        return permission_error(message)

    if isinstance(exc, PydanticValidationError):
        error_field = field or _pydantic_field(exc)
        if error_field:
            return validation_error(error_field, message, code=CODE_INVALID_VALUE)

    text = f"{context}: {message}" if context else message
    return system_error(text, details={"exception": type(exc).__name__})


def build_form_errors(errors: Iterable[VoiceError]) -> dict[str, str]:
    """Project field-scoped validation errors into `field -> message` (first error wins)."""

    form_errors: dict[str, str] = {}
    for error in errors:
        if error.type != ValidationErrorType.validation or not error.field:
            continue
        form_errors.setdefault(error.field, error.message)
    return form_errors


def build_failure(errors: Iterable[VoiceError]) -> ValidationFailure:
    """Fold an accumulated error list into a `ValidationFailure`."""

    collected = tuple(errors)
    system_message = next(
        (e.message for e in collected if e.type == ValidationErrorType.system), None
    )
    return ValidationFailure(
        errors=collected,
        form_errors=build_form_errors(collected),
        system_error=system_message,
    )


def summarize_kinds(errors: Iterable[VoiceError]) -> str:
    """Compact `kind:field` list for log lines."""

    return ",".join(f"{e.type}:{e.field or '-'}" for e in errors)
