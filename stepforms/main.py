"""FastAPI application entry point."""

import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from stepforms.core.config import settings
from stepforms.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StateError,
    StepformsError,
)
from stepforms.core.rate_limit import limiter
from stepforms.core.structured_logging import (
    build_log_context,
    configure_logging,
    format_log_context,
)
from stepforms.db.session import engine

configure_logging()
logger = logging.getLogger("stepforms.request")

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Stepforms API",
    description="Multi-step form builder with immutable versions and submission review",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Admin-Token", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    route = request.scope.get("route")
    context = build_log_context(
        request_id=request_id,
        route=getattr(route, "path", request.url.path),
        method=request.method,
        status_code=response.status_code,
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    logger.info("request %s", format_log_context(context))
    return response


# ============================================================================
# Error mapping
# ============================================================================


def _status_for(exc: StepformsError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (ConflictError, StateError)):
        return 409
    if isinstance(exc, InvalidInputError):
        return 422
    return 400


async def domain_error_handler(request: Request, exc: StepformsError) -> JSONResponse:
    status_code = _status_for(exc)
    if isinstance(exc, InvalidInputError):
        content = exc.to_detail()
    else:
        content = {"detail": exc.message}
    return JSONResponse(status_code=status_code, content=content)


app.add_exception_handler(StepformsError, domain_error_handler)

# ============================================================================
# Routers
# ============================================================================

from stepforms.routers import (  # noqa: E402
    applications,
    files,
    forms,
    forms_public,
    internal,
    submissions,
)

# Public form routes first so /forms/public/* never hits /forms/{form_id}
app.include_router(forms_public.router)
app.include_router(forms.router)
app.include_router(submissions.router)
app.include_router(applications.router)
app.include_router(files.router)
app.include_router(internal.router)


# ============================================================================
# Health Check
# ============================================================================


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
