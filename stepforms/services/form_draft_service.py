"""Respondent draft store for autosave/resume of multi-step forms.

Drafts are keyed by form slug and bound to the FormVersion the respondent
started on. When the current version changes the draft is discarded and
re-initialized rather than merged.

Storage is injected: anything behaving like a ``MutableMapping[str, str]``
(a browser-style localStorage, a dict in tests, a JSON file on disk). All
drafts live under one storage key in the persisted format::

    {"<slug>": {"currentStepIndex": 0, "completedStepIndices": [],
                "formData": {}, "versionId": "<uuid>"}}
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator, MutableMapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DRAFTS_STORAGE_KEY = "stepforms-form-drafts"


class FormDraft(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_step_index: int = 0
    completed_step_indices: list[int] = Field(default_factory=list)
    form_data: dict[str, Any] = Field(default_factory=dict)
    version_id: str


def _is_empty_value(value: object) -> bool:
    """Treat empty strings/collections as empty; counts False/0 as non-empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (int, float, bool)):
        return False
    if isinstance(value, (dict, list)):
        return not value
    return False


def has_progress(draft: FormDraft | None) -> bool:
    """True when the respondent has moved past step one or typed anything."""
    if draft is None:
        return False
    if draft.current_step_index > 0 or draft.completed_step_indices:
        return True
    return any(not _is_empty_value(v) for v in draft.form_data.values())


# =============================================================================
# Storage backends
# =============================================================================


class InMemoryDraftStorage(dict):
    """Plain dict storage for tests and server-side rendering."""


class JsonFileDraftStorage(MutableMapping):
    """Key/value storage persisted as one JSON object on disk."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, encoding="utf-8") as handle:
            return json.load(handle)

    def _save(self, data: dict[str, str]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle)
        os.replace(tmp_path, self.path)

    def __getitem__(self, key: str) -> str:
        return self._load()[key]

    def __setitem__(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def __delitem__(self, key: str) -> None:
        data = self._load()
        del data[key]
        self._save(data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._load())

    def __len__(self) -> int:
        return len(self._load())


# =============================================================================
# Draft repository
# =============================================================================


class DraftStore:
    """
    Synchronous draft repository keyed by (slug, version id).

    Mutators are no-ops for a slug with no draft; call ``init_draft`` first.
    """

    def __init__(
        self,
        storage: MutableMapping[str, str] | None = None,
        storage_key: str = DRAFTS_STORAGE_KEY,
    ):
        self.storage = storage if storage is not None else InMemoryDraftStorage()
        self.storage_key = storage_key

    def _read_all(self) -> dict[str, FormDraft]:
        raw = self.storage.get(self.storage_key)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable draft storage key=%s", self.storage_key)
            return {}
        if not isinstance(payload, dict):
            return {}

        drafts: dict[str, FormDraft] = {}
        for slug, value in payload.items():
            try:
                drafts[slug] = FormDraft.model_validate(value)
            except ValidationError:
                logger.warning("Discarding malformed draft slug=%s", slug)
        return drafts

    def _write_all(self, drafts: dict[str, FormDraft]) -> None:
        self.storage[self.storage_key] = json.dumps(
            {slug: draft.model_dump(by_alias=True) for slug, draft in drafts.items()}
        )

    def get_draft(self, slug: str, version_id: str | None = None) -> FormDraft | None:
        """Return the slug's draft; with ``version_id``, only if it still matches."""
        draft = self._read_all().get(slug)
        if draft is not None and version_id is not None and draft.version_id != str(version_id):
            return None
        return draft

    def init_draft(self, slug: str, version_id: str) -> FormDraft:
        """Start a draft, keeping an existing one only if it is on the same version."""
        drafts = self._read_all()
        existing = drafts.get(slug)
        if existing is not None and existing.version_id == str(version_id):
            return existing

        if existing is not None:
            logger.info("Resetting draft for new form version slug=%s", slug)
        draft = FormDraft(version_id=str(version_id))
        drafts[slug] = draft
        self._write_all(drafts)
        return draft

    def set_current_step(self, slug: str, step_index: int) -> FormDraft | None:
        drafts = self._read_all()
        draft = drafts.get(slug)
        if draft is None:
            return None
        draft.current_step_index = step_index
        self._write_all(drafts)
        return draft

    def mark_step_completed(self, slug: str, step_index: int) -> FormDraft | None:
        drafts = self._read_all()
        draft = drafts.get(slug)
        if draft is None:
            return None
        if step_index not in draft.completed_step_indices:
            draft.completed_step_indices.append(step_index)
            self._write_all(drafts)
        return draft

    def update_form_data(self, slug: str, data: dict[str, Any]) -> FormDraft | None:
        """Shallow-merge ``data`` into the draft's answers."""
        drafts = self._read_all()
        draft = drafts.get(slug)
        if draft is None:
            return None
        draft.form_data = {**draft.form_data, **data}
        self._write_all(drafts)
        return draft

    def clear_draft(self, slug: str) -> None:
        drafts = self._read_all()
        if slug not in drafts:
            return
        del drafts[slug]
        self._write_all(drafts)
