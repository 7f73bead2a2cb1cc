"""Blob storage for file fields - upload handles, metadata, URLs and the orphan sweep.

A ``file`` field stores only the ``storage_id`` string in submission data;
resolving it to a URL or metadata is always a separate call. Bytes live in
the configured backend (local filesystem or S3); metadata lives in
``stored_files``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
from botocore.client import BaseClient
from botocore.exceptions import ClientError
from sqlalchemy.orm import Session

from stepforms.core.config import settings
from stepforms.core.errors import ConflictError, InvalidInputError, NotFoundError
from stepforms.db.models import StoredFile, Submission

logger = logging.getLogger(__name__)


class UploadHandleNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__("Upload handle not found")


class UploadAlreadyCompletedError(ConflictError):
    def __init__(self):
        super().__init__("Upload handle has already been used")


class FileTooLargeError(InvalidInputError):
    pass


@dataclass
class UploadHandle:
    upload_token: str
    upload_url: str


@dataclass
class FileMetadata:
    content_type: str | None
    size: int | None
    checksum: str | None


# =============================================================================
# Backends
# =============================================================================


def _get_s3_client() -> BaseClient:
    """Get boto3 S3 client (supports S3-compatible endpoints)."""
    endpoint_url = settings.S3_ENDPOINT_URL.rstrip("/") if settings.S3_ENDPOINT_URL else None
    return boto3.client(
        "s3",
        region_name=settings.S3_REGION or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        endpoint_url=endpoint_url,
    )


class LocalBlobBackend:
    """Filesystem storage for dev and tests; served by ``/files/local/{id}``."""

    def __init__(self, base_path: str | None = None):
        self.base_path = base_path or settings.LOCAL_STORAGE_PATH

    def path_for(self, storage_key: str) -> str:
        return os.path.join(self.base_path, storage_key)

    def write(self, storage_key: str, data: bytes, content_type: str | None) -> None:
        path = self.path_for(storage_key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    def url(self, storage_id: str, storage_key: str) -> str:
        return f"/files/local/{storage_id}"

    def remove(self, storage_key: str) -> None:
        path = self.path_for(storage_key)
        if os.path.exists(path):
            os.remove(path)


class S3BlobBackend:
    def __init__(self, client: BaseClient | None = None, bucket: str | None = None):
        self.client = client or _get_s3_client()
        self.bucket = bucket or settings.S3_BUCKET

    def write(self, storage_key: str, data: bytes, content_type: str | None) -> None:
        extra: dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type
        self.client.put_object(Bucket=self.bucket, Key=storage_key, Body=data, **extra)

    def url(self, storage_id: str, storage_key: str) -> str | None:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": storage_key},
                ExpiresIn=settings.SIGNED_URL_EXPIRY_SECONDS,
            )
        except ClientError as exc:
            logger.warning("Presign failed storage_id=%s error=%s", storage_id, exc)
            return None

    def remove(self, storage_key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=storage_key)


_backend: LocalBlobBackend | S3BlobBackend | None = None


def get_blob_backend() -> LocalBlobBackend | S3BlobBackend:
    """Backend for ``settings.STORAGE_BACKEND``, created once per process."""
    global _backend
    if _backend is None:
        if settings.STORAGE_BACKEND == "s3":
            _backend = S3BlobBackend()
        else:
            _backend = LocalBlobBackend()
    return _backend


def set_blob_backend(backend: LocalBlobBackend | S3BlobBackend | None) -> None:
    global _backend
    _backend = backend


# =============================================================================
# Blob store operations
# =============================================================================


def generate_upload_ref(db: Session) -> UploadHandle:
    """Reserve a storage id and return a one-shot upload handle for it."""
    storage_id = uuid.uuid4().hex
    record = StoredFile(
        storage_id=storage_id,
        upload_token=secrets.token_urlsafe(32),
        storage_key=f"uploads/{storage_id}",
    )
    db.add(record)
    db.commit()
    return UploadHandle(
        upload_token=record.upload_token,
        upload_url=f"/files/upload/{record.upload_token}",
    )


def put(
    db: Session, upload_token: str, data: bytes, content_type: str | None = None
) -> str:
    """Store bytes for an upload handle and return the storage id."""
    record = (
        db.query(StoredFile).filter(StoredFile.upload_token == upload_token).first()
    )
    if not record:
        raise UploadHandleNotFoundError()
    if record.uploaded_at is not None:
        raise UploadAlreadyCompletedError()
    if len(data) > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
        raise FileTooLargeError(f"File exceeds {max_mb:.0f} MB limit")

    get_blob_backend().write(record.storage_key, data, content_type)

    record.content_type = content_type
    record.size = len(data)
    record.checksum_sha256 = hashlib.sha256(data).hexdigest()
    record.uploaded_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("Stored file storage_id=%s size=%d", record.storage_id, record.size)
    return record.storage_id


def _get_uploaded(db: Session, storage_id: str) -> StoredFile | None:
    record = db.get(StoredFile, storage_id)
    if not record or record.uploaded_at is None:
        return None
    return record


def get_url(db: Session, storage_id: str) -> str | None:
    record = _get_uploaded(db, storage_id)
    if not record:
        return None
    return get_blob_backend().url(record.storage_id, record.storage_key)


def get_metadata(db: Session, storage_id: str) -> FileMetadata | None:
    record = _get_uploaded(db, storage_id)
    if not record:
        return None
    return FileMetadata(
        content_type=record.content_type,
        size=record.size,
        checksum=record.checksum_sha256,
    )


def get_local_path(db: Session, storage_id: str) -> tuple[str, str | None] | None:
    """Filesystem path and content type for the local download route."""
    backend = get_blob_backend()
    record = _get_uploaded(db, storage_id)
    if not record or not isinstance(backend, LocalBlobBackend):
        return None
    path = backend.path_for(record.storage_key)
    if not os.path.exists(path):
        return None
    return path, record.content_type


def delete(db: Session, storage_id: str) -> None:
    record = db.get(StoredFile, storage_id)
    if not record:
        return
    get_blob_backend().remove(record.storage_key)
    db.delete(record)
    db.commit()
    logger.info("Deleted file storage_id=%s", storage_id)


# =============================================================================
# Orphan sweep
# =============================================================================


def _collect_referenced_ids(db: Session) -> set[str]:
    """Every non-empty string value (or list item) in any submission's data."""
    referenced: set[str] = set()
    for (data,) in db.query(Submission.data).yield_per(500):
        for value in (data or {}).values():
            if isinstance(value, str) and value:
                referenced.add(value)
            elif isinstance(value, list):
                referenced.update(v for v in value if isinstance(v, str) and v)
    return referenced


def sweep_orphaned_files(db: Session, now: datetime | None = None) -> int:
    """
    Delete blobs no submission references once they are older than the cutoff.

    Returns:
        Number of files deleted
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(hours=settings.ORPHAN_FILE_MAX_AGE_HOURS)
    referenced = _collect_referenced_ids(db)

    candidates = db.query(StoredFile).filter(StoredFile.created_at < cutoff).all()
    backend = get_blob_backend()
    deleted = 0
    for record in candidates:
        if record.storage_id in referenced:
            continue
        backend.remove(record.storage_key)
        db.delete(record)
        deleted += 1
    db.commit()

    logger.info("Cleaned up %d orphaned files", deleted)
    return deleted
