"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from an external scheduler once a day.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stepforms.core.deps import get_db, verify_internal_secret
from stepforms.schemas.files import CleanupResponse
from stepforms.services import storage_service

router = APIRouter(
    prefix="/internal/scheduled",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


@router.post("/cleanup-files", response_model=CleanupResponse)
def cleanup_orphaned_files(db: Session = Depends(get_db)):
    """Delete uploads no submission references once they pass the age cutoff."""
    return CleanupResponse(deleted=storage_service.sweep_orphaned_files(db))
