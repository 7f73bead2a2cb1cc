"""Public form endpoints for respondents."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from stepforms.core.config import settings
from stepforms.core.deps import get_db
from stepforms.core.rate_limit import limiter
from stepforms.schemas.forms import (
    PublicFormRead,
    StepValidationRequest,
    StepValidationResponse,
)
from stepforms.schemas.submissions import SubmissionCreate, SubmissionCreated
from stepforms.services import form_service, submission_service
from stepforms.services.schema_compiler import compile_schema

router = APIRouter(prefix="/forms/public", tags=["forms-public"])


@router.post("/submit", response_model=SubmissionCreated, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_SUBMIT}/minute")
def submit_form(request: Request, body: SubmissionCreate, db: Session = Depends(get_db)):
    submission = submission_service.submit(db, body.form_version_id, body.data)
    return SubmissionCreated(
        id=submission.id,
        form_version_id=submission.form_version_id,
        status=submission.status,
        submitted_at=submission.submitted_at,
    )


@router.post("/validate-step", response_model=StepValidationResponse)
def validate_step(body: StepValidationRequest, db: Session = Depends(get_db)):
    """Check one step's fields before the respondent moves on."""
    version = form_service.get_version_or_raise(db, body.version_id)
    result = compile_schema(version.schema).validate_step(body.data, body.step_index)
    return StepValidationResponse(success=result.success, errors=result.errors)


@router.get("/{slug}", response_model=PublicFormRead)
def get_public_form(slug: str, db: Session = Depends(get_db)):
    public_form = form_service.get_public_form(db, slug)
    if not public_form:
        raise HTTPException(status_code=404, detail="Form not found")
    return PublicFormRead(
        form_id=public_form.form.id,
        name=public_form.form.name,
        slug=public_form.form.slug,
        description=public_form.form.description,
        version_id=public_form.version.id,
        version=public_form.version.version,
        form_schema=public_form.schema,
    )
