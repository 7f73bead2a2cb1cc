"""Form builder endpoints for the admin dashboard."""

import json
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stepforms.core.deps import get_db, require_admin
from stepforms.db.models import Form, FormVersion
from stepforms.schemas.forms import (
    FormCreate,
    FormRead,
    FormSummary,
    FormUpdate,
    FormVersionRead,
    SlugAvailability,
    UnarchiveRequest,
)
from stepforms.services import form_service
from stepforms.utils.normalization import normalize_slug

router = APIRouter(
    prefix="/forms",
    tags=["forms"],
    dependencies=[Depends(require_admin)],
)


def _version_read(version: FormVersion) -> FormVersionRead:
    return FormVersionRead(
        id=version.id,
        form_id=version.form_id,
        version=version.version,
        form_schema=json.loads(version.schema),
        published_at=version.published_at,
    )


def _form_read(form: Form) -> FormRead:
    return FormRead.model_validate(form)


@router.get("", response_model=list[FormSummary])
def list_forms(db: Session = Depends(get_db)):
    """Newest first; summaries never include the draft schema."""
    return [FormSummary.model_validate(form) for form in form_service.list_forms(db)]


@router.get("/slug-available", response_model=SlugAvailability)
def check_slug(
    slug: str = Query(..., min_length=1, max_length=100),
    exclude_form_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    return SlugAvailability(
        slug=normalize_slug(slug),
        available=form_service.is_slug_available(db, slug, exclude_form_id=exclude_form_id),
    )


@router.post("", response_model=FormRead, status_code=201)
def create_form(body: FormCreate, db: Session = Depends(get_db)):
    form = form_service.create_form(
        db=db,
        name=body.name,
        slug=body.slug,
        description=body.description,
        draft_schema=body.draft_schema,
    )
    return _form_read(form)


@router.get("/{form_id}", response_model=FormRead)
def get_form(form_id: UUID, db: Session = Depends(get_db)):
    return _form_read(form_service.get_form_or_raise(db, form_id))


@router.patch("/{form_id}", response_model=FormRead)
def update_form(form_id: UUID, body: FormUpdate, db: Session = Depends(get_db)):
    form = form_service.update_form(
        db=db,
        form_id=form_id,
        name=body.name,
        slug=body.slug,
        description=body.description,
        draft_schema=body.draft_schema,
    )
    return _form_read(form)


@router.post("/{form_id}/publish", response_model=FormVersionRead)
def publish_form(form_id: UUID, db: Session = Depends(get_db)):
    return _version_read(form_service.publish_form(db, form_id))


@router.post("/{form_id}/archive", response_model=FormRead)
def archive_form(form_id: UUID, db: Session = Depends(get_db)):
    return _form_read(form_service.archive_form(db, form_id))


@router.post("/{form_id}/unarchive", response_model=FormRead)
def unarchive_form(
    form_id: UUID,
    body: UnarchiveRequest | None = None,
    db: Session = Depends(get_db),
):
    target_status = body.target_status if body else "draft"
    return _form_read(form_service.unarchive_form(db, form_id, target_status=target_status))


@router.post("/{form_id}/duplicate", response_model=FormRead, status_code=201)
def duplicate_form(form_id: UUID, db: Session = Depends(get_db)):
    return _form_read(form_service.duplicate_form(db, form_id))


@router.get("/{form_id}/versions", response_model=list[FormVersionRead])
def list_versions(form_id: UUID, db: Session = Depends(get_db)):
    form_service.get_form_or_raise(db, form_id)
    return [_version_read(v) for v in form_service.list_versions(db, form_id)]


@router.get("/{form_id}/versions/{version_id}", response_model=FormVersionRead)
def get_version(form_id: UUID, version_id: UUID, db: Session = Depends(get_db)):
    version = form_service.get_version_or_raise(db, version_id)
    if version.form_id != form_id:
        raise form_service.FormVersionNotFoundError(version_id)
    return _version_read(version)
