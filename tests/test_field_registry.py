"""Tests for the field type registry."""

import pytest

from stepforms.db.enums import FieldType
from stepforms.services import field_registry
from stepforms.services.field_registry import UnknownFieldTypeError


def test_registry_covers_every_field_type():
    assert set(field_registry.list_field_types()) == {t.value for t in FieldType}
    for field_type in FieldType:
        assert field_registry.is_known_field_type(field_type.value)


def test_unknown_type_fails_instead_of_defaulting():
    assert not field_registry.is_known_field_type("signature")
    with pytest.raises(UnknownFieldTypeError) as exc_info:
        field_registry.get_field_type_spec("signature")
    assert exc_info.value.field_type == "signature"
    assert "signature" in exc_info.value.message


def test_option_types():
    assert field_registry.requires_options("select")
    assert field_registry.requires_options("radio")
    assert not field_registry.requires_options("checkbox")
    assert field_registry.get_field_type_spec("checkbox").accepts_options
    assert not field_registry.get_field_type_spec("text").accepts_options


def test_radio_is_distinct_from_select():
    radio = field_registry.get_field_type_spec("radio")
    select = field_registry.get_field_type_spec("select")
    assert radio.name == "radio"
    assert radio is not select


def test_meaningful_validation_keys():
    assert "minLength" in field_registry.meaningful_validation_keys("textarea")
    assert "pattern" in field_registry.meaningful_validation_keys("email")
    assert field_registry.meaningful_validation_keys("number") == frozenset(
        {"min", "max", "customMessage"}
    )
    assert field_registry.meaningful_validation_keys("file") == frozenset()


def test_value_shapes():
    assert field_registry.get_field_type_spec("number").value_shape == "number"
    assert field_registry.get_field_type_spec("file").value_shape == "file_reference"
    assert field_registry.get_field_type_spec("checkbox").value_shape == "boolean|string[]"
