"""Form lifecycle service - drafts, slugs, immutable versions and publishing.

State machine over ``Form.status``:
- draft -> published (publish), published -> published (republish)
- draft | published -> archived (archive)
- archived -> draft | published (unarchive; published needs a current version)
- published -> draft directly is not allowed

Draft schemas may be transiently invalid while being edited; structural
checks run at publish time only.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stepforms.core.config import settings
from stepforms.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StateError,
)
from stepforms.db.enums import FormStatus
from stepforms.db.models import Form, FormVersion
from stepforms.schemas.forms import FormSchema, empty_form_schema
from stepforms.services.schema_compiler import check_publishable
from stepforms.utils.normalization import is_reserved_slug, normalize_name, normalize_slug

logger = logging.getLogger(__name__)


class FormNotFoundError(NotFoundError):
    def __init__(self, form_ref: Any):
        super().__init__(f"Form {form_ref} not found")


class FormVersionNotFoundError(NotFoundError):
    def __init__(self, version_id: Any):
        super().__init__(f"Form version {version_id} not found")


class InvalidSlugError(InvalidInputError):
    pass


class SlugConflictError(ConflictError):
    def __init__(self, slug: str):
        super().__init__(f"Slug '{slug}' is already taken")
        self.slug = slug


class InvalidSchemaError(InvalidInputError):
    """Draft schema is not JSON, or is not complete enough to publish."""

    def __init__(self, message: str, problems: list[str] | None = None):
        super().__init__(message)
        self.problems = problems or []

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        if self.problems:
            detail["problems"] = self.problems
        return detail


class FormStateError(StateError):
    pass


class VersionAllocationError(ConflictError):
    pass


@dataclass
class PublicForm:
    form: Form
    version: FormVersion
    schema: dict[str, Any]


# =============================================================================
# Reads
# =============================================================================


def get_form(db: Session, form_id: uuid.UUID) -> Form | None:
    return db.get(Form, form_id)


def get_form_or_raise(db: Session, form_id: uuid.UUID) -> Form:
    form = get_form(db, form_id)
    if not form:
        raise FormNotFoundError(form_id)
    return form


def get_form_by_slug(db: Session, slug: str) -> Form | None:
    normalized = normalize_slug(slug)
    if not normalized:
        return None
    return db.query(Form).filter(Form.slug == normalized).first()


def list_forms(db: Session) -> list[Form]:
    return db.query(Form).order_by(Form.created_at.desc()).all()


def list_versions(db: Session, form_id: uuid.UUID) -> list[FormVersion]:
    return (
        db.query(FormVersion)
        .filter(FormVersion.form_id == form_id)
        .order_by(FormVersion.version.desc())
        .all()
    )


def get_version(db: Session, version_id: uuid.UUID) -> FormVersion | None:
    return db.get(FormVersion, version_id)


def get_version_or_raise(db: Session, version_id: uuid.UUID) -> FormVersion:
    version = get_version(db, version_id)
    if not version:
        raise FormVersionNotFoundError(version_id)
    return version


def get_public_form(db: Session, slug: str) -> PublicForm | None:
    """
    Public read path: the current published version's schema only.

    Returns None when the form is missing, not published or has no current
    version. The draft schema is never part of the result.
    """
    form = get_form_by_slug(db, slug)
    if not form or form.status != FormStatus.PUBLISHED.value:
        return None
    if not form.current_version_id:
        return None
    version = get_version(db, form.current_version_id)
    if not version:
        return None
    return PublicForm(form=form, version=version, schema=json.loads(version.schema))


def is_slug_available(
    db: Session, slug: str, exclude_form_id: uuid.UUID | None = None
) -> bool:
    normalized = normalize_slug(slug)
    if not normalized or is_reserved_slug(slug):
        return False
    query = db.query(Form.id).filter(Form.slug == normalized)
    if exclude_form_id:
        query = query.filter(Form.id != exclude_form_id)
    return query.first() is None


# =============================================================================
# Writes
# =============================================================================


def _validate_slug(
    db: Session, raw_slug: str, exclude_form_id: uuid.UUID | None = None
) -> str:
    normalized = normalize_slug(raw_slug)
    if not normalized:
        raise InvalidSlugError("Slug must contain at least one letter or number")
    if is_reserved_slug(raw_slug):
        raise InvalidSlugError(f"Slug '{normalized}' is reserved")
    if not is_slug_available(db, normalized, exclude_form_id=exclude_form_id):
        raise SlugConflictError(normalized)
    return normalized


def _serialize_draft_schema(draft_schema: str | dict | FormSchema) -> str:
    """Accept a draft schema in any form; only JSON well-formedness is checked."""
    if isinstance(draft_schema, FormSchema):
        return draft_schema.to_json()
    if isinstance(draft_schema, dict):
        return json.dumps(draft_schema)
    try:
        json.loads(draft_schema)
    except (TypeError, json.JSONDecodeError) as exc:
        raise InvalidSchemaError("Draft schema must be valid JSON") from exc
    return draft_schema


def create_form(
    db: Session,
    name: str,
    slug: str,
    description: str | None = None,
    draft_schema: str | dict | FormSchema | None = None,
) -> Form:
    """Create a draft form; ``draft_schema`` defaults to the empty schema."""
    clean_name = normalize_name(name)
    if not clean_name:
        raise InvalidInputError("Form name is required")
    normalized_slug = _validate_slug(db, slug)
    schema_text = (
        _serialize_draft_schema(draft_schema)
        if draft_schema is not None
        else empty_form_schema().to_json()
    )

    form = Form(
        name=clean_name,
        slug=normalized_slug,
        description=description,
        status=FormStatus.DRAFT.value,
        draft_schema=schema_text,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    logger.info("Created form form_id=%s slug=%s", form.id, form.slug)
    return form


def update_form(
    db: Session,
    form_id: uuid.UUID,
    name: str | None = None,
    slug: str | None = None,
    description: str | None = None,
    draft_schema: str | dict | FormSchema | None = None,
) -> Form:
    """Partial update. Never touches published versions."""
    form = get_form_or_raise(db, form_id)

    # Validate everything before touching the row so a rejected update
    # leaves nothing pending on the session.
    clean_name = None
    if name is not None:
        clean_name = normalize_name(name)
        if not clean_name:
            raise InvalidInputError("Form name is required")
    clean_slug = None
    if slug is not None:
        clean_slug = _validate_slug(db, slug, exclude_form_id=form.id)
    serialized_schema = None
    if draft_schema is not None:
        serialized_schema = _serialize_draft_schema(draft_schema)

    if clean_name is not None:
        form.name = clean_name
    if clean_slug is not None:
        form.slug = clean_slug
    if description is not None:
        form.description = description
    if serialized_schema is not None:
        form.draft_schema = serialized_schema

    db.commit()
    db.refresh(form)
    return form


def _max_version(db: Session, form_id: uuid.UUID) -> int:
    return (
        db.execute(
            select(func.max(FormVersion.version)).where(FormVersion.form_id == form_id)
        ).scalar()
        or 0
    )


def _is_version_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name:
        return constraint_name == "uq_form_versions_form_version"
    message = str(error.orig) if error.orig else str(error)
    return "form_versions" in message and "version" in message


def publish_form(db: Session, form_id: uuid.UUID) -> FormVersion:
    """
    Snapshot the draft schema as the next immutable version and make it current.

    Version allocation is serialized per form: the form row is locked where
    the database supports it, ``(form_id, version)`` is unique, and a stale
    read is retried inside a savepoint.

    Archived forms are refused; archived -> published goes through
    ``unarchive_form(target_status="published")``, which restores the current
    version without creating a new one.
    """
    form = (
        db.query(Form).filter(Form.id == form_id).with_for_update().first()
    )
    if not form:
        raise FormNotFoundError(form_id)
    if form.status == FormStatus.ARCHIVED.value:
        raise FormStateError("Archived forms must be unarchived before publishing")

    try:
        parsed = json.loads(form.draft_schema)
    except json.JSONDecodeError as exc:
        db.rollback()
        raise InvalidSchemaError("Draft schema is not valid JSON") from exc
    if not isinstance(parsed, dict) or not isinstance(parsed.get("steps"), list):
        db.rollback()
        raise InvalidSchemaError("Draft schema must contain a steps array")
    if not parsed["steps"]:
        db.rollback()
        raise FormStateError("Form must have at least one step before publishing")

    problems = check_publishable(parsed)
    if problems:
        db.rollback()
        logger.warning(
            "Publish rejected form_id=%s problems=%d", form.id, len(problems)
        )
        raise InvalidSchemaError(problems[0], problems=problems)

    max_attempts = max(settings.PUBLISH_MAX_ATTEMPTS, 1)
    version: FormVersion | None = None
    for attempt in range(max_attempts):
        next_version = _max_version(db, form.id) + 1
        candidate = FormVersion(
            form_id=form.id,
            version=next_version,
            schema=form.draft_schema,
        )
        try:
            with db.begin_nested():
                db.add(candidate)
                db.flush()
            version = candidate
            break
        except IntegrityError as exc:
            if not _is_version_conflict(exc):
                db.rollback()
                raise
            if attempt < max_attempts - 1:
                logger.warning(
                    "Version conflict form_id=%s version=%d attempt=%d",
                    form.id,
                    next_version,
                    attempt + 1,
                )
                continue
            db.rollback()
            raise VersionAllocationError(
                f"Could not allocate a version number for form {form.id}"
            ) from exc

    form.status = FormStatus.PUBLISHED.value
    form.current_version_id = version.id
    db.commit()
    db.refresh(version)
    logger.info(
        "Published form form_id=%s version=%d version_id=%s",
        form.id,
        version.version,
        version.id,
    )
    return version


def archive_form(db: Session, form_id: uuid.UUID) -> Form:
    form = get_form_or_raise(db, form_id)
    if form.status == FormStatus.ARCHIVED.value:
        raise FormStateError("Form is already archived")
    form.status = FormStatus.ARCHIVED.value
    db.commit()
    db.refresh(form)
    logger.info("Archived form form_id=%s", form.id)
    return form


def unarchive_form(
    db: Session, form_id: uuid.UUID, target_status: str = FormStatus.DRAFT.value
) -> Form:
    """Move an archived form back to draft or published."""
    form = get_form_or_raise(db, form_id)
    if form.status != FormStatus.ARCHIVED.value:
        raise FormStateError("Only archived forms can be unarchived")
    if target_status not in (FormStatus.DRAFT.value, FormStatus.PUBLISHED.value):
        raise InvalidInputError(f"Cannot unarchive to status '{target_status}'")
    if target_status == FormStatus.PUBLISHED.value and not form.current_version_id:
        raise FormStateError("Form has never been published")

    form.status = target_status
    db.commit()
    db.refresh(form)
    logger.info("Unarchived form form_id=%s status=%s", form.id, form.status)
    return form


def _next_copy_slug(db: Session, base_slug: str) -> str:
    candidate = normalize_slug(f"{base_slug}-copy")
    suffix = 2
    while not is_slug_available(db, candidate):
        candidate = normalize_slug(f"{base_slug}-copy-{suffix}")
        suffix += 1
    return candidate


def duplicate_form(db: Session, form_id: uuid.UUID) -> Form:
    """Copy name and draft schema into a new draft; versions are not copied."""
    source = get_form_or_raise(db, form_id)
    copy = Form(
        name=f"{source.name} (Copy)",
        slug=_next_copy_slug(db, source.slug),
        description=source.description,
        status=FormStatus.DRAFT.value,
        draft_schema=source.draft_schema,
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)
    logger.info("Duplicated form source_id=%s form_id=%s", source.id, copy.id)
    return copy


def ensure_published_form(
    db: Session,
    name: str,
    slug: str,
    schema: str | dict | FormSchema,
    description: str | None = None,
) -> tuple[FormVersion, bool]:
    """
    Idempotent bootstrap: make sure a published form exists under ``slug``.

    A form that is already published is left untouched. A form left as a
    draft by an earlier partial run gets the schema and is published.

    Returns:
        (current version, whether a new version was published)
    """
    public_form = get_public_form(db, slug)
    if public_form:
        return public_form.version, False

    form = get_form_by_slug(db, slug)
    if form is None:
        form = create_form(db, name=name, slug=slug, description=description)
    elif form.status == FormStatus.ARCHIVED.value:
        raise FormStateError(f"Form '{form.slug}' is archived")
    update_form(db, form.id, draft_schema=schema)
    return publish_form(db, form.id), True
