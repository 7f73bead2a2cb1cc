"""Field type registry - the closed set of types a form schema may use.

Consulted by the schema compiler (value coercion and validation) and by
any renderer picking an input control. Radio is a distinct type even when
a renderer draws it like a select.
"""

from dataclasses import dataclass

from stepforms.core.errors import InvalidInputError
from stepforms.db.enums import FieldType


class UnknownFieldTypeError(InvalidInputError):
    """Schema references a field type outside the registry."""

    def __init__(self, field_type: str):
        super().__init__(f"Unknown field type: {field_type}")
        self.field_type = field_type


# Value shapes
VALUE_STRING = "string"
VALUE_NUMBER = "number"
VALUE_BOOLEAN = "boolean"
VALUE_BOOLEAN_OR_STRING_LIST = "boolean|string[]"
VALUE_FILE_REFERENCE = "file_reference"

TEXT_VALIDATION_KEYS = frozenset({"minLength", "maxLength", "pattern", "customMessage"})
NUMBER_VALIDATION_KEYS = frozenset({"min", "max", "customMessage"})
OPTION_VALIDATION_KEYS = frozenset({"customMessage"})


@dataclass(frozen=True)
class FieldTypeSpec:
    name: str
    value_shape: str
    validation_keys: frozenset[str]
    requires_options: bool = False
    accepts_options: bool = False
    # Form controls default to "", so non-required string-like fields accept it.
    empty_string_optional: bool = True


_SPECS = (
    FieldTypeSpec(FieldType.TEXT.value, VALUE_STRING, TEXT_VALIDATION_KEYS),
    FieldTypeSpec(FieldType.EMAIL.value, VALUE_STRING, TEXT_VALIDATION_KEYS),
    FieldTypeSpec(FieldType.URL.value, VALUE_STRING, TEXT_VALIDATION_KEYS),
    FieldTypeSpec(FieldType.TEXTAREA.value, VALUE_STRING, TEXT_VALIDATION_KEYS),
    FieldTypeSpec(
        FieldType.NUMBER.value,
        VALUE_NUMBER,
        NUMBER_VALIDATION_KEYS,
        empty_string_optional=False,
    ),
    FieldTypeSpec(FieldType.DATE.value, VALUE_STRING, frozenset()),
    FieldTypeSpec(
        FieldType.SELECT.value,
        VALUE_STRING,
        OPTION_VALIDATION_KEYS,
        requires_options=True,
        accepts_options=True,
    ),
    FieldTypeSpec(
        FieldType.RADIO.value,
        VALUE_STRING,
        OPTION_VALIDATION_KEYS,
        requires_options=True,
        accepts_options=True,
    ),
    FieldTypeSpec(
        FieldType.CHECKBOX.value,
        VALUE_BOOLEAN_OR_STRING_LIST,
        frozenset(),
        accepts_options=True,
        empty_string_optional=False,
    ),
    FieldTypeSpec(FieldType.FILE.value, VALUE_FILE_REFERENCE, frozenset()),
)

REGISTRY: dict[str, FieldTypeSpec] = {spec.name: spec for spec in _SPECS}


def get_field_type_spec(name: str) -> FieldTypeSpec:
    """Look up a field type; unrecognized names fail rather than default."""
    spec = REGISTRY.get(name)
    if spec is None:
        raise UnknownFieldTypeError(name)
    return spec


def is_known_field_type(name: str) -> bool:
    return name in REGISTRY


def meaningful_validation_keys(name: str) -> frozenset[str]:
    return get_field_type_spec(name).validation_keys


def requires_options(name: str) -> bool:
    return get_field_type_spec(name).requires_options


def list_field_types() -> list[str]:
    return [spec.name for spec in _SPECS]
