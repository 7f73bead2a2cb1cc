"""Schemas for blob uploads and file metadata."""

from pydantic import BaseModel


class UploadUrlResponse(BaseModel):
    upload_token: str
    upload_url: str


class UploadCompleteResponse(BaseModel):
    storage_id: str


class FileUrlResponse(BaseModel):
    url: str


class FileMetadataRead(BaseModel):
    content_type: str | None
    size: int | None
    checksum: str | None


class CleanupResponse(BaseModel):
    deleted: int
