"""Schemas for the legacy fixed-schema floor lead application."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class ApplicationCreate(BaseModel):
    """Public intake payload; camelCase on the wire like the original form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Applicant info
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    linkedin: str | None = Field(None, alias="linkedIn", max_length=500)
    role: str = Field(..., min_length=1, max_length=200)
    bio: str = Field(..., min_length=1)

    # Proposal
    floor: str = Field(..., min_length=1, max_length=100)
    floor_other: str | None = Field(None, max_length=200)
    initiative_name: str = Field(..., min_length=1, max_length=200)
    tagline: str = Field(..., min_length=1, max_length=300)
    values: str = Field(..., min_length=1)
    target_community: str = Field(..., min_length=1)
    estimated_size: str = Field(..., min_length=1, max_length=50)

    # Roadmap
    phase1_mvp: str = Field(..., alias="phase1Mvp", min_length=1)
    phase2_expansion: str = Field(..., alias="phase2Expansion", min_length=1)
    phase3_long_term: str = Field(..., alias="phase3LongTerm", min_length=1)

    # Impact
    benefit_to_ft: str = Field(..., alias="benefitToFT", min_length=1)

    # Logistics
    existing_community: str = Field(..., min_length=1)
    space_needs: str = Field(..., min_length=1)
    start_date: str = Field(..., min_length=1, max_length=50)
    additional_notes: str | None = None


class ApplicationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    initiative_name: str
    floor: str
    status: str
    submitted_at: datetime


class ApplicationRead(ApplicationSummary):
    linkedin: str | None
    role: str
    bio: str
    floor_other: str | None
    tagline: str
    values: str
    target_community: str
    estimated_size: str
    phase1_mvp: str
    phase2_expansion: str
    phase3_long_term: str
    benefit_to_ft: str
    existing_community: str
    space_needs: str
    start_date: str
    additional_notes: str | None


class ApplicationFieldUpdate(BaseModel):
    field: str = Field(..., min_length=1, max_length=100)
    value: Any = None


class ApplicationHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    field: str
    old_value: str
    new_value: str
    edited_at: datetime
