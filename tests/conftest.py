"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, emptied after each test
- Public and admin HTTPX AsyncClients
- Local blob backend rooted in a per-test temp dir
- Sample form schemas and a published form
"""
import os
import tempfile
from typing import AsyncGenerator, Generator

# Settings are read at import time; configure before importing the app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["INTERNAL_SECRET"] = "test-internal-secret"
os.environ["LOCAL_STORAGE_PATH"] = tempfile.mkdtemp(prefix="stepforms-test-")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from stepforms.core.deps import get_db
from stepforms.db.base import Base
from stepforms.db.models import Form, FormVersion
from stepforms.db.session import SessionLocal, engine
from stepforms.main import app
from stepforms.services import form_service, storage_service

ADMIN_TOKEN = "test-admin-token"
INTERNAL_SECRET = "test-internal-secret"


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def _create_tables() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on the shared in-memory database.

    App code commits freely; every table is emptied afterwards (children
    first, so RESTRICT/CASCADE foreign keys are satisfied).
    """
    session = SessionLocal()
    yield session

    session.rollback()
    session.close()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(autouse=True)
def blob_backend(tmp_path) -> Generator[storage_service.LocalBlobBackend, None, None]:
    backend = storage_service.LocalBlobBackend(str(tmp_path / "blobs"))
    storage_service.set_blob_backend(backend)
    yield backend
    storage_service.set_blob_backend(None)


# =============================================================================
# Schema / Form Fixtures
# =============================================================================


def build_contact_schema() -> dict:
    """Two-step schema covering most field types."""
    return {
        "steps": [
            {
                "id": "about",
                "title": "About You",
                "fields": [
                    {
                        "id": "fullName",
                        "type": "text",
                        "label": "Full Name",
                        "required": True,
                        "validation": {"minLength": 2},
                    },
                    {"id": "email", "type": "email", "label": "Email"},
                    {
                        "id": "age",
                        "type": "number",
                        "label": "Age",
                        "required": True,
                        "validation": {"min": 18, "max": 120},
                    },
                    {"id": "startDate", "type": "date", "label": "Start Date", "required": True},
                ],
            },
            {
                "id": "preferences",
                "title": "Preferences",
                "fields": [
                    {
                        "id": "topic",
                        "type": "select",
                        "label": "Topic",
                        "required": True,
                        "options": [
                            {"value": "ai", "label": "AI"},
                            {"value": "bio", "label": "Biotech"},
                        ],
                    },
                    {
                        "id": "contactMethod",
                        "type": "radio",
                        "label": "Contact Method",
                        "options": [
                            {"value": "email", "label": "Email"},
                            {"value": "phone", "label": "Phone"},
                        ],
                    },
                    {"id": "newsletter", "type": "checkbox", "label": "Newsletter"},
                    {
                        "id": "interests",
                        "type": "checkbox",
                        "label": "Interests",
                        "options": [
                            {"value": "events", "label": "Events"},
                            {"value": "mentoring", "label": "Mentoring"},
                        ],
                    },
                    {"id": "resume", "type": "file", "label": "Resume"},
                ],
            },
        ],
        "settings": {"submitButtonText": "Send", "successMessage": "Thanks!"},
    }


def build_valid_payload() -> dict:
    return {
        "fullName": "Ada Lovelace",
        "email": "ada@example.com",
        "age": "36",
        "startDate": "2026-11-01",
        "topic": "ai",
        "contactMethod": "email",
        "newsletter": True,
        "interests": ["events"],
    }


@pytest.fixture
def contact_schema() -> dict:
    return build_contact_schema()


@pytest.fixture
def valid_payload() -> dict:
    return build_valid_payload()


@pytest.fixture
def draft_form(db: Session, contact_schema: dict) -> Form:
    return form_service.create_form(
        db,
        name="Contact Form",
        slug="contact",
        description="Get in touch",
        draft_schema=contact_schema,
    )


@pytest.fixture
def published_version(db: Session, draft_form: Form) -> FormVersion:
    return form_service.publish_form(db, draft_form.id)


# =============================================================================
# Client Fixtures
# =============================================================================


def _override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient for public endpoints."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def admin_client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient carrying the admin token header."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Admin-Token": ADMIN_TOKEN},
    ) as c:
        yield c
    app.dependency_overrides.clear()


# =============================================================================
# Legacy Application Fixtures
# =============================================================================


def build_application_payload(**overrides) -> dict:
    payload = {
        "fullName": "Ada Lovelace",
        "email": "Ada@Example.com",
        "role": "Engineer",
        "bio": "Analytical engines",
        "floor": "floor-9",
        "initiativeName": "Engine Room",
        "tagline": "Compute for all",
        "values": "Curiosity",
        "targetCommunity": "Builders",
        "estimatedSize": "11-25",
        "phase1Mvp": "Meetups",
        "phase2Expansion": "Workshops",
        "phase3LongTerm": "Lab",
        "benefitToFT": "Shared tools",
        "existingCommunity": "Local guild",
        "spaceNeeds": "Desks",
        "startDate": "2026-12-01",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def application_payload():
    """Factory: ``application_payload(fullName="...")`` returns a camelCase payload."""
    return build_application_payload
