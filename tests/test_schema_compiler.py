"""
Tests for the schema validator compiler.

Covers coercion and messages per field type, partial (per-step)
validation, compile-time structure errors and the publish gate.
"""

import json

import pytest

from stepforms.core.errors import InvalidInputError
from stepforms.services.schema_compiler import (
    FORM_ERROR_KEY,
    SchemaStructureError,
    check_publishable,
    compile_schema,
    format_number,
    get_step_field_ids,
)


def _single_field_schema(field: dict) -> dict:
    return {"steps": [{"id": "s1", "title": "Step", "fields": [field]}]}


def _rule(field: dict):
    return compile_schema(_single_field_schema(field)).get_rule(field["id"])


# =============================================================================
# Whole payload
# =============================================================================


def test_valid_payload_is_coerced(contact_schema, valid_payload):
    result = compile_schema(contact_schema).validate(valid_payload)

    assert result.success
    assert result.errors == {}
    assert result.data["age"] == 36
    assert result.data["interests"] == ["events"]
    assert result.data["newsletter"] is True
    # Optional file left out is not stored
    assert "resume" not in result.data


def test_all_failures_are_reported_at_once(contact_schema):
    result = compile_schema(contact_schema).validate({"age": "abc", "topic": "space"})

    assert not result.success
    assert result.errors == {
        "fullName": "This field is required",
        "age": "Must be a number",
        "startDate": "Date is required",
        "topic": "Please select an option",
    }


def test_unknown_payload_keys_are_dropped(contact_schema, valid_payload):
    valid_payload["injected"] = "<script>"
    result = compile_schema(contact_schema).validate(valid_payload)
    assert result.success
    assert "injected" not in result.data


@pytest.mark.parametrize("payload", [["a"], "text", 42, None])
def test_non_object_payload_is_a_form_error(contact_schema, payload):
    result = compile_schema(contact_schema).validate(payload)
    assert not result.success
    assert FORM_ERROR_KEY in result.errors


def test_schema_accepts_json_string(contact_schema, valid_payload):
    validator = compile_schema(json.dumps(contact_schema))
    assert validator.validate(valid_payload).success
    assert validator.step_count == 2
    assert "resume" in validator.field_ids


# =============================================================================
# Field types
# =============================================================================


@pytest.mark.parametrize(
    "value, expected_error, expected_value",
    [
        (17, "Must be at least 18", None),
        (18, None, 18),
        ("18", None, 18),
        ("18.5", None, 18.5),
        (121, "Must be at most 120", None),
        ("abc", "Must be a number", None),
        ("1_000", "Must be a number", None),
        (True, "Must be a number", None),
        (float("nan"), "Must be a number", None),
        ("", "This field is required", None),
    ],
)
def test_required_number_with_bounds(value, expected_error, expected_value):
    rule = _rule(
        {
            "id": "age",
            "type": "number",
            "label": "Age",
            "required": True,
            "validation": {"min": 18, "max": 120},
        }
    )
    coerced, message = rule.validate_value(value)
    assert message == expected_error
    assert coerced == expected_value


def test_optional_number_empty_string_is_dropped():
    validator = compile_schema(
        _single_field_schema({"id": "qty", "type": "number", "label": "Qty"})
    )
    result = validator.validate({"qty": ""})
    assert result.success
    assert result.data == {}


def test_fractional_bounds_in_message():
    rule = _rule(
        {"id": "gpa", "type": "number", "label": "GPA", "validation": {"min": 2.5}}
    )
    assert rule.validate_value(2) == (None, "Must be at least 2.5")
    assert format_number(18.0) == "18"
    assert format_number(2.5) == "2.5"


@pytest.mark.parametrize(
    "value, expected_error",
    [
        ("", None),
        ("ada@example.com", None),
        ("not-an-email", "Invalid email address"),
        ("John Doe <john@example.com>", "Invalid email address"),
        (12, "Must be text"),
    ],
)
def test_optional_email(value, expected_error):
    rule = _rule({"id": "email", "type": "email", "label": "Email"})
    _, message = rule.validate_value(value)
    assert message == expected_error


def test_optional_email_keeps_empty_string():
    validator = compile_schema(
        _single_field_schema({"id": "email", "type": "email", "label": "Email"})
    )
    assert validator.validate({"email": ""}).data == {"email": ""}
    assert validator.validate({}).data == {}


def test_text_length_and_pattern():
    rule = _rule(
        {
            "id": "code",
            "type": "text",
            "label": "Code",
            "required": True,
            "validation": {"minLength": 3, "maxLength": 5, "pattern": "^[A-Z]+$"},
        }
    )
    assert rule.validate_value("AB") == (None, "Must be at least 3 characters")
    assert rule.validate_value("ABCDEF") == (None, "Must be at most 5 characters")
    assert rule.validate_value("abc") == (None, "Invalid format")
    assert rule.validate_value("ABC") == ("ABC", None)


def test_custom_message_overrides_default():
    rule = _rule(
        {
            "id": "zip",
            "type": "text",
            "label": "ZIP",
            "validation": {"pattern": "^\\d{5}$", "customMessage": "Enter a 5 digit ZIP"},
        }
    )
    assert rule.validate_value("123") == (None, "Enter a 5 digit ZIP")


def test_zero_length_limits_are_ignored():
    rule = _rule(
        {
            "id": "bio",
            "type": "textarea",
            "label": "Bio",
            "validation": {"minLength": 0, "maxLength": 0},
        }
    )
    assert rule.validate_value("x" * 500) == ("x" * 500, None)


def test_select_and_radio_options():
    select = _rule(
        {
            "id": "floor",
            "type": "select",
            "label": "Floor",
            "options": [{"value": "floor-4", "label": "Floor 4"}],
        }
    )
    assert select.validate_value("floor-4") == ("floor-4", None)
    assert select.validate_value("floor-99") == (None, "Please select an option")

    radio = _rule(
        {
            "id": "size",
            "type": "radio",
            "label": "Size",
            "required": True,
            "options": [{"value": "s", "label": "Small"}],
        }
    )
    assert radio.validate_value("") == (None, "This field is required")
    assert radio.field_type == "radio"


def test_select_without_options_accepts_any_string():
    rule = _rule({"id": "pick", "type": "select", "label": "Pick"})
    assert rule.validate_value("anything") == ("anything", None)


def test_checkbox_without_options_is_boolean():
    rule = _rule({"id": "agree", "type": "checkbox", "label": "Agree"})
    assert rule.validate_value(False) == (False, None)
    assert rule.validate_value("yes") == (None, "Must be checked or unchecked")


def test_checkbox_with_options_is_a_list():
    rule = _rule(
        {
            "id": "tags",
            "type": "checkbox",
            "label": "Tags",
            "required": True,
            "options": [
                {"value": "a", "label": "A"},
                {"value": "b", "label": "B"},
            ],
        }
    )
    assert rule.validate_value(["a", "b"]) == (["a", "b"], None)
    assert rule.validate_value(["c"]) == (None, "Please select valid options")
    assert rule.validate_value(True) == (None, "Please select valid options")
    assert rule.validate_value([]) == (None, "This field is required")


def test_file_stores_reference_string():
    rule = _rule({"id": "doc", "type": "file", "label": "Document", "required": True})
    assert rule.validate_value("abc123") == ("abc123", None)
    assert rule.validate_value({"name": "x.pdf"}) == (None, "Invalid file reference")
    assert rule.validate_value(None) == (None, "This field is required")


def test_date_requires_string():
    rule = _rule({"id": "when", "type": "date", "label": "When", "required": True})
    assert rule.validate_value("2026-01-31") == ("2026-01-31", None)
    assert rule.validate_value(20260131) == (None, "Date is required")


# =============================================================================
# Partial validation
# =============================================================================


def test_validate_step_only_checks_that_step(contact_schema):
    validator = compile_schema(contact_schema)
    payload = {"fullName": "Ada", "age": 40, "startDate": "2026-01-01"}

    first = validator.validate_step(payload, 0)
    assert first.success

    second = validator.validate_step(payload, 1)
    assert not second.success
    assert set(second.errors) == {"topic"}


def test_validate_step_out_of_range(contact_schema):
    validator = compile_schema(contact_schema)
    with pytest.raises(InvalidInputError):
        validator.validate_step({}, 5)
    with pytest.raises(InvalidInputError):
        validator.step_field_ids(-1)


def test_validate_fields_ignores_unknown_ids(contact_schema):
    validator = compile_schema(contact_schema)
    result = validator.validate_fields({"age": "20"}, ["age", "doesNotExist"])
    assert result.success
    assert result.data == {"age": 20}


def test_get_step_field_ids(contact_schema):
    assert get_step_field_ids(contact_schema, 0) == ["fullName", "email", "age", "startDate"]
    assert get_step_field_ids(contact_schema, 9) == []


# =============================================================================
# Compile-time errors
# =============================================================================


def test_unknown_field_type_fails_compile():
    with pytest.raises(SchemaStructureError, match="Unknown field type: rating"):
        compile_schema(_single_field_schema({"id": "r", "type": "rating", "label": "R"}))


def test_duplicate_field_ids_fail_compile():
    schema = {
        "steps": [
            {"id": "a", "fields": [{"id": "x", "type": "text", "label": "X"}]},
            {"id": "b", "fields": [{"id": "x", "type": "text", "label": "X again"}]},
        ]
    }
    with pytest.raises(SchemaStructureError, match="Duplicate field id"):
        compile_schema(schema)


def test_invalid_pattern_fails_compile():
    with pytest.raises(SchemaStructureError):
        compile_schema(
            _single_field_schema(
                {"id": "x", "type": "text", "label": "X", "validation": {"pattern": "("}}
            )
        )


@pytest.mark.parametrize("schema", ["{not json", "[1, 2]", {"settings": {}}])
def test_malformed_schema_fails_compile(schema):
    with pytest.raises(SchemaStructureError):
        compile_schema(schema)


# =============================================================================
# Publish gate
# =============================================================================


def test_publishable_schema_has_no_problems(contact_schema):
    assert check_publishable(contact_schema) == []


def test_publish_gate_collects_problems():
    schema = {
        "steps": [
            {"id": "a", "title": "A", "fields": []},
            {
                "id": "b",
                "title": "B",
                "fields": [
                    {"id": "pick", "type": "select", "label": "Pick"},
                    {"id": "blank", "type": "text", "label": "  "},
                    {"id": "odd", "type": "slider", "label": "Odd"},
                    {
                        "id": "opts",
                        "type": "radio",
                        "label": "Opts",
                        "options": [{"value": "", "label": "Empty"}],
                    },
                ],
            },
            {"id": "a", "title": "Again", "fields": [{"id": "pick", "type": "text", "label": "P"}]},
        ]
    }
    problems = check_publishable(schema)

    assert "Step 'A' has no fields" in problems
    assert "Field 'pick' needs at least one option" in problems
    assert "Field 'blank' needs a label" in problems
    assert "Unknown field type: slider" in problems
    assert "Field 'opts' has an option without a value or label" in problems
    assert "Duplicate step id 'a'" in problems
    assert "Duplicate field id 'pick'" in problems


def test_publish_gate_rejects_empty_steps():
    assert check_publishable({"steps": []}) == ["Form must have at least one step"]
