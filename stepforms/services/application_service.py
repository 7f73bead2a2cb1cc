"""Legacy floor lead applications (fixed schema, pre form-builder intake)."""

import logging
import uuid

from sqlalchemy.orm import Session

from stepforms.core.errors import InvalidInputError, NotFoundError
from stepforms.db.enums import SubmissionStatus
from stepforms.db.models import Application
from stepforms.schemas.applications import ApplicationCreate
from stepforms.utils.normalization import normalize_email

logger = logging.getLogger(__name__)


# Columns an admin may edit in place, keyed by the legacy camelCase names
# the dashboard sends. Snake_case column names are accepted as well.
EDITABLE_APPLICATION_FIELDS: dict[str, str] = {
    "fullName": "full_name",
    "email": "email",
    "linkedIn": "linkedin",
    "role": "role",
    "bio": "bio",
    "floor": "floor",
    "floorOther": "floor_other",
    "initiativeName": "initiative_name",
    "tagline": "tagline",
    "values": "values",
    "targetCommunity": "target_community",
    "estimatedSize": "estimated_size",
    "phase1Mvp": "phase1_mvp",
    "phase2Expansion": "phase2_expansion",
    "phase3LongTerm": "phase3_long_term",
    "benefitToFT": "benefit_to_ft",
    "existingCommunity": "existing_community",
    "spaceNeeds": "space_needs",
    "startDate": "start_date",
    "additionalNotes": "additional_notes",
}

OPTIONAL_APPLICATION_FIELDS = frozenset({"linkedin", "floor_other", "additional_notes"})
REQUIRED_APPLICATION_FIELDS = frozenset(
    set(EDITABLE_APPLICATION_FIELDS.values()) - OPTIONAL_APPLICATION_FIELDS
)


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id):
        super().__init__(f"Application {application_id} not found")


class NonEditableFieldError(InvalidInputError):
    def __init__(self, field: str):
        super().__init__(f"Field '{field}' cannot be edited")


def resolve_editable_field(field: str) -> str:
    """Map a dashboard field name to its column, rejecting anything else."""
    if field in EDITABLE_APPLICATION_FIELDS:
        return EDITABLE_APPLICATION_FIELDS[field]
    if field in EDITABLE_APPLICATION_FIELDS.values():
        return field
    raise NonEditableFieldError(field)


def submit_application(db: Session, data: ApplicationCreate) -> Application:
    application = Application(
        **data.model_dump(exclude={"email"}),
        email=normalize_email(str(data.email)),
        status=SubmissionStatus.NEW.value,
    )
    db.add(application)
    db.commit()
    db.refresh(application)
    logger.info("Accepted application application_id=%s", application.id)
    return application


def get_application(db: Session, application_id: uuid.UUID) -> Application | None:
    return db.get(Application, application_id)


def get_application_or_raise(db: Session, application_id: uuid.UUID) -> Application:
    application = get_application(db, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)
    return application


def list_applications(db: Session, status: str | None = None) -> list[Application]:
    query = db.query(Application)
    if status:
        query = query.filter(Application.status == status)
    return query.order_by(Application.submitted_at.desc()).all()


def update_status(
    db: Session, application_id: uuid.UUID, status: str
) -> Application:
    if status not in {s.value for s in SubmissionStatus}:
        raise InvalidInputError(f"Invalid status '{status}'")
    application = get_application_or_raise(db, application_id)
    application.status = status
    db.commit()
    db.refresh(application)
    logger.info(
        "Updated application status application_id=%s status=%s",
        application.id,
        status,
    )
    return application
