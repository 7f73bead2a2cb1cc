"""Schema validator compiler.

Turns a Form Schema into a ``CompiledFormValidator`` holding one
``FieldRule`` per field. The validator checks a whole payload or a subset
of field ids (per-step "Next" validation) and never raises for payload
problems: it returns a ``ValidationResult`` with every failing field so the
UI can show them all at once.

This is the only place field values are coerced; the submission manager
and the edit trail both go through it.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic import ValidationError

from stepforms.core.errors import InvalidInputError
from stepforms.db.enums import FieldType
from stepforms.schemas.forms import FormField, FormSchema
from stepforms.services.field_registry import (
    FieldTypeSpec,
    UnknownFieldTypeError,
    get_field_type_spec,
)


FORM_ERROR_KEY = "_form"

REQUIRED_MESSAGE = "This field is required"
DATE_REQUIRED_MESSAGE = "Date is required"
STRING_TYPE_MESSAGE = "Must be text"
NUMBER_TYPE_MESSAGE = "Must be a number"
EMAIL_MESSAGE = "Invalid email address"
PATTERN_MESSAGE = "Invalid format"
OPTION_MESSAGE = "Please select an option"
CHECKBOX_MESSAGE = "Must be checked or unchecked"
CHECKBOX_OPTIONS_MESSAGE = "Please select valid options"
FILE_MESSAGE = "Invalid file reference"

_MISSING = object()


class SchemaStructureError(InvalidInputError):
    """Schema cannot be compiled (malformed JSON, wrong shape, unknown type)."""

    pass


@dataclass
class ValidationResult:
    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


class _FieldInvalid(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def format_number(value: float | int) -> str:
    """Render 18.0 as "18" and 2.5 as "2.5"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# =============================================================================
# Field rules
# =============================================================================


class FieldRule:
    """Compiled validation rule for one field."""

    def __init__(self, form_field: FormField, spec: FieldTypeSpec):
        self.field = form_field
        self.spec = spec
        self.validation = form_field.validation
        self.option_values = [option.value for option in form_field.options or []]
        self._pattern: re.Pattern[str] | None = None
        if self.validation and self.validation.pattern:
            try:
                self._pattern = re.compile(self.validation.pattern)
            except re.error as exc:
                raise SchemaStructureError(
                    f"Invalid validation pattern for field '{form_field.id}'"
                ) from exc

    @property
    def field_id(self) -> str:
        return self.field.id

    @property
    def label(self) -> str:
        return self.field.label

    @property
    def field_type(self) -> str:
        return self.spec.name

    @property
    def required(self) -> bool:
        return self.field.required

    def check(self, value: Any = _MISSING) -> tuple[bool, Any, str | None]:
        """Validate one raw value.

        Returns ``(ok, coerced, message)``; ``coerced`` is ``_MISSING`` when
        an optional field was left empty and nothing should be stored.
        """
        try:
            return True, self._coerce(value), None
        except _FieldInvalid as exc:
            return False, _MISSING, exc.message

    def validate_value(self, value: Any) -> tuple[Any, str | None]:
        """Public single-value check; empty optional values come back as None."""
        ok, coerced, message = self.check(value)
        if not ok:
            return None, message
        return (None if coerced is _MISSING else coerced), None

    # -------------------------------------------------------------------------

    def _required_message(self) -> str:
        if self.spec.name == FieldType.DATE.value:
            return DATE_REQUIRED_MESSAGE
        return REQUIRED_MESSAGE

    def _is_empty(self, value: Any) -> bool:
        if value is _MISSING or value is None:
            return True
        if value == "" and isinstance(value, str):
            return True
        if self.spec.name == FieldType.CHECKBOX.value and value == []:
            return bool(self.option_values)
        return False

    def _coerce(self, value: Any) -> Any:
        if self._is_empty(value):
            if self.required:
                raise _FieldInvalid(self._required_message())
            if value == "" and self.spec.empty_string_optional:
                return ""
            return _MISSING

        field_type = self.spec.name
        if field_type in (
            FieldType.TEXT.value,
            FieldType.URL.value,
            FieldType.TEXTAREA.value,
        ):
            return self._coerce_text(value)
        if field_type == FieldType.EMAIL.value:
            return self._coerce_email(value)
        if field_type == FieldType.NUMBER.value:
            return self._coerce_number(value)
        if field_type == FieldType.DATE.value:
            if not isinstance(value, str):
                raise _FieldInvalid(DATE_REQUIRED_MESSAGE)
            return value
        if field_type in (FieldType.SELECT.value, FieldType.RADIO.value):
            return self._coerce_option(value)
        if field_type == FieldType.CHECKBOX.value:
            return self._coerce_checkbox(value)
        if field_type == FieldType.FILE.value:
            if not isinstance(value, str):
                raise _FieldInvalid(FILE_MESSAGE)
            return value
        # Registry lookups at compile time make this unreachable.
        raise SchemaStructureError(f"Unknown field type: {field_type}")

    def _custom(self, default: str) -> str:
        if self.validation and self.validation.custom_message:
            return self.validation.custom_message
        return default

    def _coerce_text(self, value: Any) -> str:
        if not isinstance(value, str):
            raise _FieldInvalid(STRING_TYPE_MESSAGE)
        validation = self.validation
        if validation:
            if validation.min_length and len(value) < validation.min_length:
                raise _FieldInvalid(
                    self._custom(f"Must be at least {validation.min_length} characters")
                )
            if validation.max_length and len(value) > validation.max_length:
                raise _FieldInvalid(
                    self._custom(f"Must be at most {validation.max_length} characters")
                )
        if self._pattern is not None and self._pattern.search(value) is None:
            raise _FieldInvalid(self._custom(PATTERN_MESSAGE))
        return value

    def _coerce_email(self, value: Any) -> str:
        if not isinstance(value, str):
            raise _FieldInvalid(STRING_TYPE_MESSAGE)
        try:
            # Bare addresses only; display-name forms are rejected
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise _FieldInvalid(self._custom(EMAIL_MESSAGE)) from None
        return self._coerce_text(value)

    def _coerce_number(self, value: Any) -> int | float:
        if isinstance(value, bool):
            raise _FieldInvalid(NUMBER_TYPE_MESSAGE)
        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            # int() and float() accept digit separators ("1_000")
            if "_" in text:
                raise _FieldInvalid(NUMBER_TYPE_MESSAGE)
            try:
                number = int(text)
            except ValueError:
                try:
                    number = float(text)
                except ValueError:
                    raise _FieldInvalid(NUMBER_TYPE_MESSAGE) from None
        else:
            raise _FieldInvalid(NUMBER_TYPE_MESSAGE)

        if isinstance(number, float) and not math.isfinite(number):
            raise _FieldInvalid(NUMBER_TYPE_MESSAGE)

        validation = self.validation
        if validation:
            if validation.min is not None and number < validation.min:
                raise _FieldInvalid(
                    self._custom(f"Must be at least {format_number(validation.min)}")
                )
            if validation.max is not None and number > validation.max:
                raise _FieldInvalid(
                    self._custom(f"Must be at most {format_number(validation.max)}")
                )
        return number

    def _coerce_option(self, value: Any) -> str:
        if not isinstance(value, str):
            raise _FieldInvalid(self._custom(OPTION_MESSAGE))
        # Zero options (an unfinished schema) accepts any string.
        if self.option_values and value not in self.option_values:
            raise _FieldInvalid(self._custom(OPTION_MESSAGE))
        return value

    def _coerce_checkbox(self, value: Any) -> bool | list[str]:
        if not self.option_values:
            if not isinstance(value, bool):
                raise _FieldInvalid(CHECKBOX_MESSAGE)
            return value
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise _FieldInvalid(CHECKBOX_OPTIONS_MESSAGE)
        if any(v not in self.option_values for v in value):
            raise _FieldInvalid(CHECKBOX_OPTIONS_MESSAGE)
        return list(value)


# =============================================================================
# Compiled validator
# =============================================================================


class CompiledFormValidator:
    def __init__(self, schema: FormSchema, rules: dict[str, FieldRule]):
        self.schema = schema
        self._rules = rules
        self._step_field_ids = [
            [form_field.id for form_field in step.fields] for step in schema.steps
        ]

    @property
    def field_ids(self) -> list[str]:
        return list(self._rules)

    @property
    def step_count(self) -> int:
        return len(self._step_field_ids)

    def step_field_ids(self, index: int) -> list[str]:
        if index < 0 or index >= len(self._step_field_ids):
            raise InvalidInputError(f"Step index {index} is out of range")
        return list(self._step_field_ids[index])

    def get_rule(self, field_id: str) -> FieldRule | None:
        return self._rules.get(field_id)

    def validate(self, payload: Any) -> ValidationResult:
        return self._run(payload, self._rules.keys())

    def validate_fields(self, payload: Any, field_ids: Iterable[str]) -> ValidationResult:
        """Validate only ``field_ids``; ids not in the schema are ignored."""
        return self._run(payload, [fid for fid in field_ids if fid in self._rules])

    def validate_step(self, payload: Any, index: int) -> ValidationResult:
        return self._run(payload, self.step_field_ids(index))

    def _run(self, payload: Any, field_ids: Iterable[str]) -> ValidationResult:
        if not isinstance(payload, Mapping):
            return ValidationResult(
                success=False,
                errors={FORM_ERROR_KEY: "Submission data must be an object"},
            )

        data: dict[str, Any] = {}
        errors: dict[str, str] = {}
        for field_id in field_ids:
            ok, coerced, message = self._rules[field_id].check(
                payload.get(field_id, _MISSING)
            )
            if not ok:
                errors[field_id] = message
            elif coerced is not _MISSING:
                data[field_id] = coerced
        return ValidationResult(success=not errors, data=data, errors=errors)


# =============================================================================
# Entry points
# =============================================================================


def parse_schema(schema: FormSchema | Mapping[str, Any] | str) -> FormSchema:
    """Parse a schema model, dict or JSON string into a ``FormSchema``."""
    if isinstance(schema, FormSchema):
        return schema
    if isinstance(schema, (str, bytes)):
        try:
            schema = json.loads(schema)
        except json.JSONDecodeError as exc:
            raise SchemaStructureError("Schema is not valid JSON") from exc
    if not isinstance(schema, Mapping):
        raise SchemaStructureError("Schema must be a JSON object")
    try:
        return FormSchema.model_validate(schema)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise SchemaStructureError(
            f"Invalid schema at {location}: {first['msg']}"
        ) from exc


def compile_schema(schema: FormSchema | Mapping[str, Any] | str) -> CompiledFormValidator:
    """
    Compile a Form Schema into a runtime validator.

    Raises:
        SchemaStructureError: malformed JSON, wrong shape, unknown field
            type, duplicate field id or an invalid regex pattern.
    """
    parsed = parse_schema(schema)
    rules: dict[str, FieldRule] = {}
    for step in parsed.steps:
        for form_field in step.fields:
            if form_field.id in rules:
                raise SchemaStructureError(f"Duplicate field id '{form_field.id}'")
            try:
                spec = get_field_type_spec(form_field.type)
            except UnknownFieldTypeError as exc:
                raise SchemaStructureError(exc.message) from exc
            rules[form_field.id] = FieldRule(form_field, spec)
    return CompiledFormValidator(parsed, rules)


def get_step_field_ids(schema: FormSchema | Mapping[str, Any] | str, index: int) -> list[str]:
    parsed = parse_schema(schema)
    if index < 0 or index >= len(parsed.steps):
        return []
    return [form_field.id for form_field in parsed.steps[index].fields]


def check_publishable(schema: FormSchema | Mapping[str, Any] | str) -> list[str]:
    """Return every reason the schema cannot be published (empty when ready)."""
    try:
        parsed = parse_schema(schema)
    except SchemaStructureError as exc:
        return [exc.message]

    problems: list[str] = []
    if not parsed.steps:
        problems.append("Form must have at least one step")

    step_ids: set[str] = set()
    field_ids: set[str] = set()
    for step in parsed.steps:
        step_name = step.title or step.id
        if step.id in step_ids:
            problems.append(f"Duplicate step id '{step.id}'")
        step_ids.add(step.id)
        if not step.fields:
            problems.append(f"Step '{step_name}' has no fields")

        for form_field in step.fields:
            if form_field.id in field_ids:
                problems.append(f"Duplicate field id '{form_field.id}'")
            field_ids.add(form_field.id)
            if not form_field.label.strip():
                problems.append(f"Field '{form_field.id}' needs a label")

            try:
                spec = get_field_type_spec(form_field.type)
            except UnknownFieldTypeError as exc:
                problems.append(exc.message)
                continue

            options = form_field.options or []
            if spec.requires_options and not options:
                problems.append(f"Field '{form_field.id}' needs at least one option")
            for option in options:
                if not option.value.strip() or not option.label.strip():
                    problems.append(
                        f"Field '{form_field.id}' has an option without a value or label"
                    )
                    break

            if form_field.validation and form_field.validation.pattern:
                try:
                    re.compile(form_field.validation.pattern)
                except re.error:
                    problems.append(f"Field '{form_field.id}' has an invalid pattern")
    return problems
