"""Tests for the legacy fixed-schema application intake."""

import uuid

import pytest
from pydantic import ValidationError

from stepforms.core.errors import InvalidInputError
from stepforms.schemas.applications import ApplicationCreate
from stepforms.services import application_service
from stepforms.services.application_service import ApplicationNotFoundError


def test_submit_application_normalizes_email(db, application_payload):
    application = application_service.submit_application(
        db, ApplicationCreate.model_validate(application_payload())
    )

    assert application.email == "ada@example.com"
    assert application.status == "new"
    assert application.phase1_mvp == "Meetups"
    assert application.benefit_to_ft == "Shared tools"
    assert application.linkedin is None


def test_application_payload_requires_camel_case_fields(application_payload):
    with pytest.raises(ValidationError):
        ApplicationCreate.model_validate(application_payload(email="not-an-email"))
    with pytest.raises(ValidationError):
        ApplicationCreate.model_validate(application_payload(bio=""))


def test_list_and_filter_applications(db, application_payload):
    first = application_service.submit_application(
        db, ApplicationCreate.model_validate(application_payload())
    )
    second = application_service.submit_application(
        db, ApplicationCreate.model_validate(application_payload(fullName="Grace Hopper"))
    )
    application_service.update_status(db, second.id, "under_review")

    assert len(application_service.list_applications(db)) == 2
    assert [a.id for a in application_service.list_applications(db, status="new")] == [first.id]


def test_update_status_validation(db, application_payload):
    application = application_service.submit_application(
        db, ApplicationCreate.model_validate(application_payload())
    )
    with pytest.raises(InvalidInputError):
        application_service.update_status(db, application.id, "pending")
    with pytest.raises(ApplicationNotFoundError):
        application_service.update_status(db, uuid.uuid4(), "accepted")


def test_resolve_editable_field():
    assert application_service.resolve_editable_field("benefitToFT") == "benefit_to_ft"
    assert application_service.resolve_editable_field("space_needs") == "space_needs"
    assert "linkedin" in application_service.OPTIONAL_APPLICATION_FIELDS
    assert "full_name" in application_service.REQUIRED_APPLICATION_FIELDS
