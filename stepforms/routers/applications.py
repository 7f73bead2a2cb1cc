"""Legacy floor lead application endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from stepforms.core.config import settings
from stepforms.core.deps import get_db, require_admin
from stepforms.core.rate_limit import limiter
from stepforms.db.enums import SubmissionStatus
from stepforms.schemas.applications import (
    ApplicationCreate,
    ApplicationFieldUpdate,
    ApplicationHistoryRead,
    ApplicationRead,
    ApplicationSummary,
)
from stepforms.schemas.submissions import FieldEditResponse, SubmissionStatusUpdate
from stepforms.services import application_service, edit_history_service

router = APIRouter(prefix="/applications", tags=["applications"])

admin = [Depends(require_admin)]


@router.post("/submit", response_model=ApplicationRead, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_SUBMIT}/minute")
def submit_application(
    request: Request, body: ApplicationCreate, db: Session = Depends(get_db)
):
    return ApplicationRead.model_validate(application_service.submit_application(db, body))


@router.get("", response_model=list[ApplicationSummary], dependencies=admin)
def list_applications(
    status: SubmissionStatus | None = Query(None),
    db: Session = Depends(get_db),
):
    applications = application_service.list_applications(
        db, status=status.value if status else None
    )
    return [ApplicationSummary.model_validate(a) for a in applications]


@router.get("/{application_id}", response_model=ApplicationRead, dependencies=admin)
def get_application(application_id: UUID, db: Session = Depends(get_db)):
    return ApplicationRead.model_validate(
        application_service.get_application_or_raise(db, application_id)
    )


@router.patch(
    "/{application_id}/status", response_model=ApplicationRead, dependencies=admin
)
def update_status(
    application_id: UUID,
    body: SubmissionStatusUpdate,
    db: Session = Depends(get_db),
):
    application = application_service.update_status(db, application_id, body.status.value)
    return ApplicationRead.model_validate(application)


@router.patch(
    "/{application_id}/fields", response_model=FieldEditResponse, dependencies=admin
)
def update_field(
    application_id: UUID,
    body: ApplicationFieldUpdate,
    db: Session = Depends(get_db),
):
    result = edit_history_service.update_application_field(
        db, application_id=application_id, field=body.field, new_value=body.value
    )
    return FieldEditResponse(
        changed=result.changed,
        old_value=result.old_value,
        new_value=result.new_value,
    )


@router.get(
    "/{application_id}/history",
    response_model=list[ApplicationHistoryRead],
    dependencies=admin,
)
def get_history(application_id: UUID, db: Session = Depends(get_db)):
    return [
        ApplicationHistoryRead.model_validate(entry)
        for entry in edit_history_service.list_application_history(db, application_id)
    ]
