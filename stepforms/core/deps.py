"""FastAPI dependencies for database access and admin/internal authorization."""

import hmac
from typing import Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from stepforms.core.config import settings
from stepforms.db.session import SessionLocal


ADMIN_TOKEN_HEADER = "X-Admin-Token"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_admin(x_admin_token: str | None = Header(None)) -> None:
    """
    Guard admin dashboard routes.

    Authentication proper lives in front of this API; the shared token only
    keeps the admin surface closed. An unconfigured dev setup is open.

    Raises:
        HTTPException 401: token missing or wrong
        HTTPException 501: token required but not configured
    """
    if not settings.admin_auth_required:
        return
    if not settings.ADMIN_API_TOKEN:
        raise HTTPException(status_code=501, detail="ADMIN_API_TOKEN not configured")
    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.ADMIN_API_TOKEN):
        raise HTTPException(status_code=401, detail="Admin token required")


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if not hmac.compare_digest(x_internal_secret, expected):
        raise HTTPException(status_code=403, detail="Invalid internal secret")
