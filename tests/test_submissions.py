"""Tests for submission intake, version binding, review and reporting."""

import json
import uuid

import pytest

from stepforms.db.enums import SubmissionStatus
from stepforms.services import form_service, submission_service
from stepforms.services.form_service import FormVersionNotFoundError
from stepforms.services.submission_service import (
    FormArchivedError,
    InvalidStatusError,
    InvalidSubmissionDataError,
    SubmissionNotFoundError,
    SubmissionValidationError,
)


def _simple_schema(extra_fields: list[dict] | None = None) -> dict:
    fields = [{"id": "name", "type": "text", "label": "Name", "required": True}]
    return {"steps": [{"id": "s1", "title": "Step 1", "fields": fields + (extra_fields or [])}]}


@pytest.fixture
def simple_form(db):
    return form_service.create_form(db, name="Signup", slug="signup", draft_schema=_simple_schema())


# =============================================================================
# Intake
# =============================================================================


def test_submit_stores_coerced_data(db, published_version, valid_payload):
    submission = submission_service.submit(db, published_version.id, valid_payload)

    assert submission.status == SubmissionStatus.NEW.value
    assert submission.form_version_id == published_version.id
    assert submission.data["age"] == 36
    assert submission.data["fullName"] == "Ada Lovelace"


def test_submit_accepts_json_string(db, published_version, valid_payload):
    submission = submission_service.submit(db, published_version.id, json.dumps(valid_payload))
    assert submission.data["topic"] == "ai"


@pytest.mark.parametrize("data", ["{broken", "[1, 2, 3]", ["a"]])
def test_submit_rejects_non_object_data(db, published_version, data):
    with pytest.raises(InvalidSubmissionDataError):
        submission_service.submit(db, published_version.id, data)


def test_submit_reports_every_invalid_field(db, published_version):
    with pytest.raises(SubmissionValidationError) as exc_info:
        submission_service.submit(db, published_version.id, {"age": 17})

    errors = exc_info.value.field_errors
    assert errors["age"] == "Must be at least 18"
    assert errors["fullName"] == "This field is required"
    assert errors["topic"] == "This field is required"
    assert submission_service.list_submissions(db) == []


def test_submit_unknown_version(db):
    with pytest.raises(FormVersionNotFoundError):
        submission_service.submit(db, uuid.uuid4(), {})


def test_submit_to_archived_form_is_rejected(db, published_version, valid_payload):
    form_service.archive_form(db, published_version.form_id)
    with pytest.raises(FormArchivedError):
        submission_service.submit(db, published_version.id, valid_payload)


def test_submissions_stay_bound_to_their_version(db, simple_form):
    v1 = form_service.publish_form(db, simple_form.id)
    s1 = submission_service.submit(db, v1.id, {"name": "Grace"})

    form_service.update_form(
        db,
        simple_form.id,
        draft_schema=_simple_schema(
            [{"id": "phone", "type": "text", "label": "Phone", "required": True}]
        ),
    )
    v2 = form_service.publish_form(db, simple_form.id)

    # v2 requires the new field
    with pytest.raises(SubmissionValidationError) as exc_info:
        submission_service.submit(db, v2.id, {"name": "Linus"})
    assert set(exc_info.value.field_errors) == {"phone"}

    s2 = submission_service.submit(db, v2.id, {"name": "Linus", "phone": "555-0100"})

    detail_1 = submission_service.get_submission_with_schema(db, s1.id)
    detail_2 = submission_service.get_submission_with_schema(db, s2.id)
    assert detail_1.version == 1
    assert detail_2.version == 2
    assert [f["id"] for f in detail_1.schema["steps"][0]["fields"]] == ["name"]
    assert [f["id"] for f in detail_2.schema["steps"][0]["fields"]] == ["name", "phone"]


# =============================================================================
# Review
# =============================================================================


def test_status_transitions_are_unrestricted(db, published_version, valid_payload):
    submission = submission_service.submit(db, published_version.id, valid_payload)

    for status in ("accepted", "new", "rejected", "under_review"):
        updated = submission_service.update_status(db, submission.id, status)
        assert updated.status == status

    with pytest.raises(InvalidStatusError):
        submission_service.update_status(db, submission.id, "archived")


def test_update_notes(db, published_version, valid_payload):
    submission = submission_service.submit(db, published_version.id, valid_payload)
    updated = submission_service.update_notes(db, submission.id, "Strong candidate")
    assert updated.notes == "Strong candidate"
    assert submission_service.update_notes(db, submission.id, None).notes is None


def test_missing_submission(db):
    with pytest.raises(SubmissionNotFoundError):
        submission_service.update_status(db, uuid.uuid4(), "accepted")


def test_list_submissions_filters(db, published_version, valid_payload, simple_form):
    first = submission_service.submit(db, published_version.id, valid_payload)
    second = submission_service.submit(db, published_version.id, valid_payload)
    submission_service.update_status(db, second.id, "accepted")

    other_version = form_service.publish_form(db, simple_form.id)
    submission_service.submit(db, other_version.id, {"name": "Other"})

    everything = submission_service.list_submissions(db)
    assert len(everything) == 3

    contact_only = submission_service.list_submissions(db, form_id=published_version.form_id)
    assert {row.id for row in contact_only} == {first.id, second.id}
    assert all(row.form_slug == "contact" for row in contact_only)

    accepted = submission_service.list_submissions(db, status="accepted")
    assert [row.id for row in accepted] == [second.id]


# =============================================================================
# Reporting
# =============================================================================


def test_stats_include_every_status(db, published_version, valid_payload):
    stats = submission_service.get_stats(db)
    assert stats.total == 0
    assert stats.by_status == {"new": 0, "under_review": 0, "accepted": 0, "rejected": 0}

    a = submission_service.submit(db, published_version.id, valid_payload)
    submission_service.submit(db, published_version.id, valid_payload)
    submission_service.update_status(db, a.id, "rejected")

    stats = submission_service.get_stats(db)
    assert stats.total == 2
    assert stats.by_status["new"] == 1
    assert stats.by_status["rejected"] == 1


def test_recent_activity_guesses_submitter(db, published_version, valid_payload):
    submission_service.submit(db, published_version.id, valid_payload)

    anonymous_form = form_service.create_form(
        db,
        name="Feedback",
        slug="feedback",
        draft_schema={
            "steps": [
                {
                    "id": "s1",
                    "title": "Feedback",
                    "fields": [{"id": "comment", "type": "textarea", "label": "Comment"}],
                }
            ]
        },
    )
    version = form_service.publish_form(db, anonymous_form.id)
    submission_service.submit(db, version.id, {"comment": "Great"})

    activity = submission_service.get_recent_activity(db, limit=10)
    names = {item.form_name: item.submitter_name for item in activity}
    assert names["Contact Form"] == "Ada Lovelace"
    assert names["Feedback"] == "Anonymous"

    assert len(submission_service.get_recent_activity(db, limit=1)) == 1


def test_export_keeps_requested_order(db, published_version, valid_payload):
    first = submission_service.submit(db, published_version.id, valid_payload)
    second = submission_service.submit(db, published_version.id, valid_payload)

    bundle = submission_service.list_for_export(db, [second.id, uuid.uuid4(), first.id])

    assert [s.id for s in bundle.submissions] == [second.id, first.id]
    assert bundle.form_name == "Contact Form"
    assert bundle.schema["settings"]["submitButtonText"] == "Send"


def test_export_with_nothing_found(db):
    bundle = submission_service.list_for_export(db, [uuid.uuid4()])
    assert bundle.submissions == []
    assert bundle.schema is None
