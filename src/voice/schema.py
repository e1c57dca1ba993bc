"""Voice command data model (Pydantic models).

These models are the contract between the upstream NLU producer (`{intent, data, confidence}`), the
validation pipeline, and whoever renders the results. Every payload crossing those boundaries is
validated against them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(StrEnum):
    """Privilege tiers of an acting user, highest first."""

    super_admin = "super_admin"
    management = "management"
    manager = "manager"
    lead = "lead"
    employee = "employee"

    @property
    def rank(self) -> int:
        """Position in the total order (`employee` is 0, `super_admin` is 4)."""

        return _ROLE_RANKS[self]

    def outranks(self, other: Role) -> bool:
        return self.rank > other.rank


_ROLE_RANKS: dict[Role, int] = {
    Role.super_admin: 4,
    Role.management: 3,
    Role.manager: 2,
    Role.lead: 1,
    Role.employee: 0,
}

LOWEST_ROLE = Role.employee


class FieldType(StrEnum):
    """Canonical field types an intent may declare."""

    string = "string"
    number = "number"
    date = "date"
    boolean = "boolean"
    reference = "reference"
    enum = "enum"
    array = "array"


class ReferenceKind(StrEnum):
    """Entity families a reference label can resolve to."""

    client = "client"
    manager = "manager"
    user = "user"
    project = "project"
    task = "task"


class ValidationErrorType(StrEnum):
    """Closed error taxonomy shared by the validator and every consumer."""

    validation = "validation"
    permission = "permission"
    data = "data"
    system = "system"


class VoiceAction(BaseModel):
    """One interpreted command as produced by the NLU layer."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    intent: str = Field(min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class ActingUser(BaseModel):
    """The authenticated user on whose behalf actions run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    role: Role
    full_name: str | None = Field(default=None, alias="fullName")


class IntentConfig(BaseModel):
    """Schema and permissions of a single intent."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    intent: str = Field(min_length=1)
    category: str | None = None
    description: str | None = None
    allowed_roles: frozenset[Role] = Field(default_factory=frozenset, alias="allowedRoles")
    required_fields: tuple[str, ...] = Field(default=(), alias="requiredFields")
    optional_fields: tuple[str, ...] = Field(default=(), alias="optionalFields")
    field_types: dict[str, FieldType] = Field(default_factory=dict, alias="fieldTypes")
    enum_values: dict[str, tuple[str, ...]] = Field(default_factory=dict, alias="enumValues")
    reference_types: dict[str, ReferenceKind] = Field(
        default_factory=dict, alias="referenceTypes"
    )
    unique_fields: dict[str, ReferenceKind] = Field(default_factory=dict, alias="uniqueFields")
    operation_overrides: dict[Role, str] = Field(
        default_factory=dict, alias="operationOverrides"
    )
    redirect_url_template: str | None = Field(default=None, alias="redirectUrlTemplate")
    example_command: str | None = Field(default=None, alias="exampleCommand")
    is_active: bool = Field(default=True, alias="isActive")

    @model_validator(mode="after")
    def validate_fields(self) -> IntentConfig:
        """Every named field must have a declared type, and required/optional must not overlap."""

        declared = set(self.field_types)
        named = set(self.required_fields) | set(self.optional_fields)
        missing = sorted(named - declared)
        if missing:
            raise ValueError(f"fields without a declared type: {', '.join(missing)}")

        overlap = sorted(set(self.required_fields) & set(self.optional_fields))
        if overlap:
            raise ValueError(f"fields both required and optional: {', '.join(overlap)}")

        for mapping_name in ("enum_values", "reference_types", "unique_fields"):
            unknown = sorted(set(getattr(self, mapping_name)) - declared)
            if unknown:
                raise ValueError(f"{mapping_name} names undeclared fields: {', '.join(unknown)}")
        return self

    @property
    def all_fields(self) -> tuple[str, ...]:
        """Required fields first (in order), then optional ones."""

        return self.required_fields + self.optional_fields

    def fields_of_type(self, field_type: FieldType) -> list[str]:
        return [name for name, ftype in self.field_types.items() if ftype == field_type]


class VoiceError(BaseModel):
    """A single problem found while validating or dispatching an action."""

    model_config = ConfigDict(frozen=True)

    type: ValidationErrorType
    field: str | None = None
    message: str
    code: str
    details: dict[str, Any] | None = None


class ResolvedReference(BaseModel):
    """A reference label matched to a backend entity."""

    model_config = ConfigDict(frozen=True)

    kind: ReferenceKind
    id: str
    label: str


class ValidationSuccess(BaseModel):
    """Every stage passed; `data` is the mapped, canonically-typed payload."""

    model_config = ConfigDict(frozen=True)

    success: Literal[True] = True
    data: dict[str, Any]
    references: dict[str, ResolvedReference] = Field(default_factory=dict)


class ValidationFailure(BaseModel):
    """At least one stage reported a problem."""

    model_config = ConfigDict(frozen=True)

    success: Literal[False] = False
    errors: tuple[VoiceError, ...]
    form_errors: dict[str, str] = Field(default_factory=dict)
    system_error: str | None = None

    @model_validator(mode="after")
    def validate_consistency(self) -> ValidationFailure:
        """Keep `errors`, `form_errors` and `system_error` consistent with each other."""

        if not self.errors:
            raise ValueError("a failure must carry at least one error")

        validation_fields = {
            e.field for e in self.errors if e.type == ValidationErrorType.validation and e.field
        }
        stray = sorted(set(self.form_errors) - validation_fields)
        if stray:
            raise ValueError(f"form_errors keys without a validation error: {', '.join(stray)}")

        has_system = any(e.type == ValidationErrorType.system for e in self.errors)
        if has_system != (self.system_error is not None):
            raise ValueError("system_error must be set iff a system error is present")
        return self

    @property
    def first_message(self) -> str:
        """The message a single-line consumer should show."""

        return self.system_error or self.errors[0].message


ValidationResult = ValidationSuccess | ValidationFailure


class OperationOutcome(BaseModel):
    """What a backend operation reports back."""

    model_config = ConfigDict(extra="ignore")

    success: bool
    data: Any = None
    error: str | None = None


class ActionResult(BaseModel):
    """Per-action outcome returned by the batch dispatcher, in input order."""

    model_config = ConfigDict(frozen=True)

    success: bool
    intent: str | None = None
    operation: str | None = None
    data: Any = None
    error: str | None = None
    errors: tuple[VoiceError, ...] = ()
    pending_approval: bool = False
    redirect_url: str | None = None
