"""SQLAlchemy ORM models for forms, versions, submissions and edit history."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stepforms.core.errors import StateError
from stepforms.db.base import Base
from stepforms.db.enums import FormStatus, SubmissionStatus
from stepforms.db.types import JSONType, utcnow


# =============================================================================
# Forms & Versions
# =============================================================================


class Form(Base):
    """
    Mutable authoring record for a dynamic form.

    ``draft_schema`` is the serialized working copy edited by admins; it is
    never shown publicly. The public path reads the schema of
    ``current_version_id`` only.
    """

    __tablename__ = "forms"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_forms_slug"),
        Index("idx_forms_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=FormStatus.DRAFT.value,
        server_default=text(f"'{FormStatus.DRAFT.value}'"),
        nullable=False,
    )
    draft_schema: Mapped[str] = mapped_column(Text, nullable=False)
    current_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey(
            "form_versions.id",
            use_alter=True,
            name="fk_forms_current_version",
            ondelete="SET NULL",
        ),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    current_version: Mapped["FormVersion | None"] = relationship(
        foreign_keys=[current_version_id], post_update=True
    )


class FormVersion(Base):
    """Immutable, numbered snapshot of a form's schema created on publish."""

    __tablename__ = "form_versions"
    __table_args__ = (
        UniqueConstraint("form_id", "version", name="uq_form_versions_form_version"),
        Index("idx_form_versions_form", "form_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    schema: Mapped[str] = mapped_column(Text, nullable=False)
    published_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    form: Mapped["Form"] = relationship(foreign_keys=[form_id])


@event.listens_for(FormVersion, "before_update")
def _reject_form_version_update(mapper, connection, target: FormVersion) -> None:
    raise StateError(f"Form version {target.id} is immutable")


# =============================================================================
# Submissions
# =============================================================================


class Submission(Base):
    """A respondent's data, permanently bound to one FormVersion."""

    __tablename__ = "submissions"
    __table_args__ = (
        Index("idx_submissions_version", "form_version_id"),
        Index("idx_submissions_status", "status"),
        Index("idx_submissions_submitted", "submitted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    form_version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("form_versions.id", ondelete="RESTRICT"), nullable=False
    )
    data: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(20),
        default=SubmissionStatus.NEW.value,
        server_default=text(f"'{SubmissionStatus.NEW.value}'"),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(onupdate=utcnow, nullable=True)

    form_version: Mapped["FormVersion"] = relationship()


class SubmissionEditHistory(Base):
    """Append-only field edit record for a submission.

    ``field_label`` is captured at edit time so entries stay readable after
    the form schema changes.
    """

    __tablename__ = "submission_edit_history"
    __table_args__ = (
        Index("idx_submission_history_submission", "submission_id", "edited_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    field_id: Mapped[str] = mapped_column(String(100), nullable=False)
    field_label: Mapped[str] = mapped_column(String(300), nullable=False)
    old_value: Mapped[str] = mapped_column(Text, nullable=False)
    new_value: Mapped[str] = mapped_column(Text, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


# =============================================================================
# Legacy Applications (fixed schema)
# =============================================================================


class Application(Base):
    """Floor lead application from the fixed pre-builder intake form."""

    __tablename__ = "applications"
    __table_args__ = (
        Index("idx_applications_status", "status"),
        Index("idx_applications_submitted", "submitted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Applicant info
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    linkedin: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[str] = mapped_column(String(200), nullable=False)
    bio: Mapped[str] = mapped_column(Text, nullable=False)

    # Proposal
    floor: Mapped[str] = mapped_column(String(100), nullable=False)
    floor_other: Mapped[str | None] = mapped_column(String(200), nullable=True)
    initiative_name: Mapped[str] = mapped_column(String(200), nullable=False)
    tagline: Mapped[str] = mapped_column(String(300), nullable=False)
    values: Mapped[str] = mapped_column(Text, nullable=False)
    target_community: Mapped[str] = mapped_column(Text, nullable=False)
    estimated_size: Mapped[str] = mapped_column(String(50), nullable=False)

    # Roadmap
    phase1_mvp: Mapped[str] = mapped_column(Text, nullable=False)
    phase2_expansion: Mapped[str] = mapped_column(Text, nullable=False)
    phase3_long_term: Mapped[str] = mapped_column(Text, nullable=False)

    # Impact
    benefit_to_ft: Mapped[str] = mapped_column(Text, nullable=False)

    # Logistics
    existing_community: Mapped[str] = mapped_column(Text, nullable=False)
    space_needs: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[str] = mapped_column(String(50), nullable=False)
    additional_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=SubmissionStatus.NEW.value,
        server_default=text(f"'{SubmissionStatus.NEW.value}'"),
        nullable=False,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class ApplicationEditHistory(Base):
    """Append-only field edit record for a legacy application."""

    __tablename__ = "application_edit_history"
    __table_args__ = (
        Index("idx_application_history_application", "application_id", "edited_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    field: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[str] = mapped_column(Text, nullable=False)
    new_value: Mapped[str] = mapped_column(Text, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


# =============================================================================
# Blob storage metadata
# =============================================================================


class StoredFile(Base):
    """Metadata for an uploaded blob; ``storage_id`` is what submissions store."""

    __tablename__ = "stored_files"
    __table_args__ = (
        UniqueConstraint("upload_token", name="uq_stored_files_upload_token"),
        Index("idx_stored_files_created", "created_at"),
    )

    storage_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    upload_token: Mapped[str] = mapped_column(String(128), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    checksum_sha256: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    uploaded_at: Mapped[datetime | None] = mapped_column(nullable=True)
