"""File upload and retrieval endpoints backing the ``file`` field type."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from stepforms.core.config import settings
from stepforms.core.deps import get_db, require_admin
from stepforms.core.rate_limit import limiter
from stepforms.schemas.files import (
    FileMetadataRead,
    FileUrlResponse,
    UploadCompleteResponse,
    UploadUrlResponse,
)
from stepforms.services import storage_service

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload-url", response_model=UploadUrlResponse)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_SUBMIT}/minute")
def generate_upload_url(request: Request, db: Session = Depends(get_db)):
    handle = storage_service.generate_upload_ref(db)
    return UploadUrlResponse(upload_token=handle.upload_token, upload_url=handle.upload_url)


@router.post("/upload/{upload_token}", response_model=UploadCompleteResponse)
async def upload_file(upload_token: str, request: Request, db: Session = Depends(get_db)):
    """Raw request body is the file; Content-Type is recorded as-is."""
    data = await request.body()
    storage_id = storage_service.put(
        db, upload_token, data, request.headers.get("content-type")
    )
    return UploadCompleteResponse(storage_id=storage_id)


@router.get("/local/{storage_id}")
def download_local_file(storage_id: str, db: Session = Depends(get_db)):
    found = storage_service.get_local_path(db, storage_id)
    if not found:
        raise HTTPException(status_code=404, detail="File not found")
    path, content_type = found
    return FileResponse(path, media_type=content_type or "application/octet-stream")


@router.get("/{storage_id}/url", response_model=FileUrlResponse)
def get_file_url(storage_id: str, db: Session = Depends(get_db)):
    url = storage_service.get_url(db, storage_id)
    if not url:
        raise HTTPException(status_code=404, detail="File not found")
    return FileUrlResponse(url=url)


@router.get("/{storage_id}/metadata", response_model=FileMetadataRead)
def get_file_metadata(storage_id: str, db: Session = Depends(get_db)):
    metadata = storage_service.get_metadata(db, storage_id)
    if not metadata:
        raise HTTPException(status_code=404, detail="File not found")
    return FileMetadataRead(
        content_type=metadata.content_type,
        size=metadata.size,
        checksum=metadata.checksum,
    )


@router.delete("/{storage_id}", status_code=204, dependencies=[Depends(require_admin)])
def delete_file(storage_id: str, db: Session = Depends(get_db)):
    storage_service.delete(db, storage_id)
