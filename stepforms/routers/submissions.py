"""Submission review endpoints for the admin dashboard."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stepforms.core.deps import get_db, require_admin
from stepforms.db.enums import SubmissionStatus
from stepforms.schemas.submissions import (
    FieldEditResponse,
    RecentActivityRead,
    SubmissionDetailRead,
    SubmissionExportRequest,
    SubmissionExportResponse,
    SubmissionExportRow,
    SubmissionFieldUpdate,
    SubmissionHistoryRead,
    SubmissionNotesUpdate,
    SubmissionStatsRead,
    SubmissionStatusUpdate,
    SubmissionSummary,
)
from stepforms.services import edit_history_service, submission_service

router = APIRouter(
    prefix="/submissions",
    tags=["submissions"],
    dependencies=[Depends(require_admin)],
)


def _detail(db: Session, submission_id: UUID) -> SubmissionDetailRead:
    detail = submission_service.get_submission_with_schema(db, submission_id)
    submission = detail.submission
    return SubmissionDetailRead(
        id=submission.id,
        form_version_id=submission.form_version_id,
        data=submission.data or {},
        status=submission.status,
        notes=submission.notes,
        submitted_at=submission.submitted_at,
        updated_at=submission.updated_at,
        form_id=detail.form_id,
        form_name=detail.form_name,
        form_slug=detail.form_slug,
        version=detail.version,
        form_schema=detail.schema,
    )


@router.get("", response_model=list[SubmissionSummary])
def list_submissions(
    form_id: UUID | None = None,
    status: SubmissionStatus | None = Query(None),
    db: Session = Depends(get_db),
):
    rows = submission_service.list_submissions(
        db, form_id=form_id, status=status.value if status else None
    )
    return [SubmissionSummary.model_validate(row) for row in rows]


@router.get("/stats", response_model=SubmissionStatsRead)
def get_stats(db: Session = Depends(get_db)):
    stats = submission_service.get_stats(db)
    return SubmissionStatsRead(total=stats.total, by_status=stats.by_status)


@router.get("/recent", response_model=list[RecentActivityRead])
def get_recent_activity(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return [
        RecentActivityRead.model_validate(item)
        for item in submission_service.get_recent_activity(db, limit=limit)
    ]


@router.post("/export", response_model=SubmissionExportResponse)
def export_submissions(body: SubmissionExportRequest, db: Session = Depends(get_db)):
    """Raw rows plus the schema needed to label them; CSV formatting is the client's job."""
    bundle = submission_service.list_for_export(db, body.submission_ids)
    return SubmissionExportResponse(
        form_name=bundle.form_name,
        form_schema=bundle.schema,
        submissions=[
            SubmissionExportRow(
                id=s.id,
                status=s.status,
                submitted_at=s.submitted_at,
                data=s.data or {},
            )
            for s in bundle.submissions
        ],
    )


@router.get("/{submission_id}", response_model=SubmissionDetailRead)
def get_submission(submission_id: UUID, db: Session = Depends(get_db)):
    return _detail(db, submission_id)


@router.patch("/{submission_id}/status", response_model=SubmissionDetailRead)
def update_status(
    submission_id: UUID,
    body: SubmissionStatusUpdate,
    db: Session = Depends(get_db),
):
    submission_service.update_status(db, submission_id, body.status.value)
    return _detail(db, submission_id)


@router.patch("/{submission_id}/notes", response_model=SubmissionDetailRead)
def update_notes(
    submission_id: UUID,
    body: SubmissionNotesUpdate,
    db: Session = Depends(get_db),
):
    submission_service.update_notes(db, submission_id, body.notes)
    return _detail(db, submission_id)


@router.patch("/{submission_id}/fields", response_model=FieldEditResponse)
def update_field(
    submission_id: UUID,
    body: SubmissionFieldUpdate,
    db: Session = Depends(get_db),
):
    result = edit_history_service.update_submission_field(
        db,
        submission_id=submission_id,
        field_id=body.field_id,
        new_value=body.value,
        field_label=body.field_label,
    )
    return FieldEditResponse(
        changed=result.changed,
        old_value=result.old_value,
        new_value=result.new_value,
    )


@router.get("/{submission_id}/history", response_model=list[SubmissionHistoryRead])
def get_history(submission_id: UUID, db: Session = Depends(get_db)):
    return [
        SubmissionHistoryRead.model_validate(entry)
        for entry in edit_history_service.list_submission_history(db, submission_id)
    ]
