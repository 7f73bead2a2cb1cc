"""Schemas for dynamic form submissions and their edit history."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from stepforms.db.enums import SubmissionStatus


class SubmissionCreate(BaseModel):
    form_version_id: UUID
    # A JSON object, or a JSON string encoding one.
    data: dict[str, Any] | str


class SubmissionCreated(BaseModel):
    id: UUID
    form_version_id: UUID
    status: str
    submitted_at: datetime


class SubmissionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_version_id: UUID
    status: str
    submitted_at: datetime
    form_id: UUID
    form_name: str
    form_slug: str
    version: int


class SubmissionDetailRead(BaseModel):
    id: UUID
    form_version_id: UUID
    data: dict[str, Any]
    status: str
    notes: str | None
    submitted_at: datetime
    updated_at: datetime | None
    form_id: UUID
    form_name: str
    form_slug: str
    version: int
    form_schema: dict[str, Any]


class SubmissionStatusUpdate(BaseModel):
    status: SubmissionStatus


class SubmissionNotesUpdate(BaseModel):
    notes: str | None = None


class SubmissionFieldUpdate(BaseModel):
    field_id: str = Field(..., min_length=1, max_length=100)
    field_label: str | None = Field(None, max_length=300)
    value: Any = None


class FieldEditResponse(BaseModel):
    changed: bool
    old_value: str
    new_value: str


class SubmissionHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    submission_id: UUID
    field_id: str
    field_label: str
    old_value: str
    new_value: str
    edited_at: datetime


class SubmissionExportRequest(BaseModel):
    submission_ids: list[UUID] = Field(..., min_length=1, max_length=1000)


class SubmissionExportRow(BaseModel):
    id: UUID
    status: str
    submitted_at: datetime
    data: dict[str, Any]


class SubmissionExportResponse(BaseModel):
    form_name: str | None
    form_schema: dict[str, Any] | None
    submissions: list[SubmissionExportRow]


class SubmissionStatsRead(BaseModel):
    total: int
    by_status: dict[str, int]


class RecentActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_name: str
    submitter_name: str
    status: str
    submitted_at: datetime
