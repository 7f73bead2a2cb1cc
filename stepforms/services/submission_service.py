"""Submission service - public intake, review status, listing, stats and export.

A submission is bound to the FormVersion it was made against, never to the
form, so its data stays interpretable after the form is edited or
republished. Status changes are unrestricted between the four statuses.
"""

import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from stepforms.core.errors import InvalidInputError, NotFoundError, StateError
from stepforms.db.enums import FormStatus, SubmissionStatus
from stepforms.db.models import Form, FormVersion, Submission
from stepforms.services import form_service
from stepforms.services.schema_compiler import compile_schema

logger = logging.getLogger(__name__)

ANONYMOUS_SUBMITTER = "Anonymous"


class SubmissionNotFoundError(NotFoundError):
    def __init__(self, submission_id: Any):
        super().__init__(f"Submission {submission_id} not found")


class FormArchivedError(StateError):
    def __init__(self):
        super().__init__("This form is no longer accepting submissions")


class InvalidSubmissionDataError(InvalidInputError):
    pass


class SubmissionValidationError(InvalidInputError):
    def __init__(self, field_errors: dict[str, str]):
        super().__init__("Submission failed validation", field_errors=field_errors)


class InvalidStatusError(InvalidInputError):
    pass


@dataclass
class SubmissionSummary:
    id: uuid.UUID
    form_version_id: uuid.UUID
    status: str
    submitted_at: datetime
    form_id: uuid.UUID
    form_name: str
    form_slug: str
    version: int


@dataclass
class SubmissionDetail:
    submission: Submission
    form_id: uuid.UUID
    form_name: str
    form_slug: str
    version: int
    schema: dict[str, Any]


@dataclass
class ExportBundle:
    submissions: list[Submission]
    schema: dict[str, Any] | None
    form_name: str | None


@dataclass
class SubmissionStats:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)


@dataclass
class RecentActivity:
    id: uuid.UUID
    form_name: str
    submitter_name: str
    status: str
    submitted_at: datetime


# =============================================================================
# Helpers
# =============================================================================


def _parse_data(data: Mapping[str, Any] | str) -> dict[str, Any]:
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as exc:
            raise InvalidSubmissionDataError("Submission data is not valid JSON") from exc
    if not isinstance(data, Mapping):
        raise InvalidSubmissionDataError("Submission data must be a JSON object")
    if not all(isinstance(key, str) for key in data):
        raise InvalidSubmissionDataError("Submission data keys must be strings")
    return dict(data)


def _validate_status(status: str) -> str:
    allowed = {s.value for s in SubmissionStatus}
    if status not in allowed:
        raise InvalidStatusError(f"Invalid status '{status}'")
    return status


def _guess_submitter_name(data: Mapping[str, Any]) -> str:
    for key, value in data.items():
        lowered = key.lower()
        if "name" in lowered and "email" not in lowered:
            if isinstance(value, str) and value.strip():
                return value
    return ANONYMOUS_SUBMITTER


# =============================================================================
# Writes
# =============================================================================


def submit(
    db: Session, form_version_id: uuid.UUID, data: Mapping[str, Any] | str
) -> Submission:
    """
    Accept a public submission against one immutable version.

    Raises:
        FormVersionNotFoundError / FormNotFoundError: unknown references
        FormArchivedError: the owning form is archived
        InvalidSubmissionDataError: data is not a JSON object
        SubmissionValidationError: field-level failures (all of them)
    """
    version = form_service.get_version_or_raise(db, form_version_id)
    form = form_service.get_form_or_raise(db, version.form_id)
    if form.status == FormStatus.ARCHIVED.value:
        logger.warning("Submission rejected for archived form form_id=%s", form.id)
        raise FormArchivedError()

    payload = _parse_data(data)
    result = compile_schema(version.schema).validate(payload)
    if not result.success:
        logger.warning(
            "Submission failed validation version_id=%s fields=%d",
            version.id,
            len(result.errors),
        )
        raise SubmissionValidationError(result.errors)

    submission = Submission(
        form_version_id=version.id,
        data=result.data,
        status=SubmissionStatus.NEW.value,
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info(
        "Accepted submission submission_id=%s form_id=%s version=%d",
        submission.id,
        form.id,
        version.version,
    )
    return submission


def get_submission(db: Session, submission_id: uuid.UUID) -> Submission | None:
    return db.get(Submission, submission_id)


def get_submission_or_raise(db: Session, submission_id: uuid.UUID) -> Submission:
    submission = get_submission(db, submission_id)
    if not submission:
        raise SubmissionNotFoundError(submission_id)
    return submission


def update_status(db: Session, submission_id: uuid.UUID, status: str) -> Submission:
    submission = get_submission_or_raise(db, submission_id)
    submission.status = _validate_status(status)
    db.commit()
    db.refresh(submission)
    logger.info(
        "Updated submission status submission_id=%s status=%s", submission.id, status
    )
    return submission


def update_notes(db: Session, submission_id: uuid.UUID, notes: str | None) -> Submission:
    submission = get_submission_or_raise(db, submission_id)
    submission.notes = notes
    db.commit()
    db.refresh(submission)
    return submission


# =============================================================================
# Reads
# =============================================================================


def list_submissions(
    db: Session,
    form_id: uuid.UUID | None = None,
    status: str | None = None,
) -> list[SubmissionSummary]:
    """Newest first; summary rows only, without the data payload."""
    query = (
        db.query(
            Submission.id,
            Submission.form_version_id,
            Submission.status,
            Submission.submitted_at,
            Form.id,
            Form.name,
            Form.slug,
            FormVersion.version,
        )
        .join(FormVersion, Submission.form_version_id == FormVersion.id)
        .join(Form, FormVersion.form_id == Form.id)
    )
    if form_id:
        query = query.filter(Form.id == form_id)
    if status:
        query = query.filter(Submission.status == _validate_status(status))

    rows = query.order_by(Submission.submitted_at.desc()).all()
    return [
        SubmissionSummary(
            id=row[0],
            form_version_id=row[1],
            status=row[2],
            submitted_at=row[3],
            form_id=row[4],
            form_name=row[5],
            form_slug=row[6],
            version=row[7],
        )
        for row in rows
    ]


def get_submission_with_schema(
    db: Session, submission_id: uuid.UUID
) -> SubmissionDetail:
    submission = get_submission_or_raise(db, submission_id)
    version = form_service.get_version_or_raise(db, submission.form_version_id)
    form = form_service.get_form_or_raise(db, version.form_id)
    return SubmissionDetail(
        submission=submission,
        form_id=form.id,
        form_name=form.name,
        form_slug=form.slug,
        version=version.version,
        schema=json.loads(version.schema),
    )


def list_for_export(db: Session, submission_ids: list[uuid.UUID]) -> ExportBundle:
    """
    Raw data for the given submissions plus the schema of the first one's version.

    Callers are expected to pre-filter to a single form; the first
    submission's schema is used to map field ids to labels.
    """
    if not submission_ids:
        return ExportBundle(submissions=[], schema=None, form_name=None)

    found = {
        s.id: s
        for s in db.query(Submission).filter(Submission.id.in_(submission_ids)).all()
    }
    ordered = [found[sid] for sid in submission_ids if sid in found]
    if not ordered:
        return ExportBundle(submissions=[], schema=None, form_name=None)

    version = form_service.get_version_or_raise(db, ordered[0].form_version_id)
    form = form_service.get_form(db, version.form_id)
    return ExportBundle(
        submissions=ordered,
        schema=json.loads(version.schema),
        form_name=form.name if form else None,
    )


def get_stats(db: Session) -> SubmissionStats:
    rows = (
        db.query(Submission.status, func.count(Submission.id))
        .group_by(Submission.status)
        .all()
    )
    by_status = {s.value: 0 for s in SubmissionStatus}
    for status, count in rows:
        by_status[status] = count
    return SubmissionStats(total=sum(by_status.values()), by_status=by_status)


def get_recent_activity(db: Session, limit: int = 10) -> list[RecentActivity]:
    rows = (
        db.query(Submission, Form.name)
        .join(FormVersion, Submission.form_version_id == FormVersion.id)
        .join(Form, FormVersion.form_id == Form.id)
        .order_by(Submission.submitted_at.desc())
        .limit(limit)
        .all()
    )
    return [
        RecentActivity(
            id=submission.id,
            form_name=form_name,
            submitter_name=_guess_submitter_name(submission.data or {}),
            status=submission.status,
            submitted_at=submission.submitted_at,
        )
        for submission, form_name in rows
    ]
