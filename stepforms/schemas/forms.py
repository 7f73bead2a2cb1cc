"""Schemas for form definitions, versions and the public form read path.

The Form Schema value types (``FormSchema`` and its parts) are stored as
camelCase JSON inside ``forms.draft_schema`` and ``form_versions.schema``;
request/response envelopes use snake_case like the rest of the API.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


DEFAULT_SUBMIT_BUTTON_TEXT = "Submit"
DEFAULT_SUCCESS_MESSAGE = "Thank you for your submission!"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Form Schema value types
# =============================================================================


class FieldValidation(_CamelModel):
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    custom_message: str | None = None


class FieldOption(_CamelModel):
    value: str
    label: str


class FormField(_CamelModel):
    # ``type`` stays a plain string so drafts can hold any value; the
    # compiler checks it against the field type registry.
    id: str
    type: str
    label: str = ""
    description: str | None = None
    placeholder: str | None = None
    required: bool = False
    validation: FieldValidation | None = None
    options: list[FieldOption] | None = None


class FormStep(_CamelModel):
    id: str
    title: str = ""
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)


class FormSettings(_CamelModel):
    submit_button_text: str = DEFAULT_SUBMIT_BUTTON_TEXT
    success_message: str = DEFAULT_SUCCESS_MESSAGE
    welcome_message: str | None = None


class FormSchema(_CamelModel):
    steps: list[FormStep]
    settings: FormSettings = Field(default_factory=FormSettings)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def empty_form_schema() -> FormSchema:
    """Zero steps and default settings; the draft every new form starts with."""
    return FormSchema(steps=[], settings=FormSettings())


# =============================================================================
# Requests
# =============================================================================


class FormCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    slug: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    # Serialized Form Schema; used by "create with schema" flows.
    draft_schema: str | None = None


class FormUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=150)
    slug: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    draft_schema: str | None = None


class UnarchiveRequest(BaseModel):
    target_status: str = Field("draft", pattern="^(draft|published)$")


# =============================================================================
# Responses
# =============================================================================


class FormSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    description: str | None
    status: str
    current_version_id: UUID | None
    created_at: datetime
    updated_at: datetime


class FormRead(FormSummary):
    draft_schema: str


class FormVersionRead(BaseModel):
    id: UUID
    form_id: UUID
    version: int
    form_schema: dict[str, Any]
    published_at: datetime


class PublicFormRead(BaseModel):
    """Everything the public submission UI may see: never the draft."""

    form_id: UUID
    name: str
    slug: str
    description: str | None
    version_id: UUID
    version: int
    form_schema: dict[str, Any]


class SlugAvailability(BaseModel):
    slug: str
    available: bool


class StepValidationRequest(BaseModel):
    version_id: UUID
    step_index: int = Field(..., ge=0)
    data: dict[str, Any] = Field(default_factory=dict)


class StepValidationResponse(BaseModel):
    success: bool
    errors: dict[str, str]
