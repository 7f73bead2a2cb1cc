"""Field-level edit trail for submissions and legacy applications.

Every admin edit of a single field goes through here so the history is
complete by construction. Both variants share one algorithm:

1. read the entity
2. stringify the old value (missing -> "") and the new value
3. equal -> ``FieldEditResult(changed=False)`` and no writes
4. otherwise patch the field and insert the history row in one transaction
5. ``changed=True``

Submission history stores the field label captured at edit time, so
entries stay readable after the form schema changes.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from stepforms.core.errors import InvalidInputError
from stepforms.db.models import ApplicationEditHistory, SubmissionEditHistory
from stepforms.services import application_service, form_service, submission_service
from stepforms.services.schema_compiler import compile_schema

logger = logging.getLogger(__name__)


@dataclass
class FieldEditResult:
    changed: bool
    old_value: str
    new_value: str
    history_id: uuid.UUID | None = None


def stringify_value(value: Any) -> str:
    """Render a field value the way history rows store it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True)
    return str(value)


# =============================================================================
# Submissions (dynamic schema)
# =============================================================================


def update_submission_field(
    db: Session,
    submission_id: uuid.UUID,
    field_id: str,
    new_value: Any,
    field_label: str | None = None,
) -> FieldEditResult:
    """
    Edit one field of a submission and record the change.

    When the field exists in the submission's own version schema the new
    value is validated and coerced by that field's rule.

    Raises:
        SubmissionNotFoundError: unknown submission
        InvalidInputError: the new value fails the field's rule
    """
    if not field_id:
        raise InvalidInputError("Field id is required")

    submission = submission_service.get_submission_or_raise(db, submission_id)
    version = form_service.get_version_or_raise(db, submission.form_version_id)
    rule = compile_schema(version.schema).get_rule(field_id)

    value = new_value
    if rule is not None:
        coerced, message = rule.validate_value(new_value)
        if message:
            raise InvalidInputError(message, field_errors={field_id: message})
        value = coerced

    data = dict(submission.data or {})
    old_str = stringify_value(data.get(field_id))
    new_str = stringify_value(value)
    if old_str == new_str:
        return FieldEditResult(changed=False, old_value=old_str, new_value=new_str)

    label = field_label or (rule.label if rule is not None and rule.label else field_id)
    history = SubmissionEditHistory(
        submission_id=submission.id,
        field_id=field_id,
        field_label=label,
        old_value=old_str,
        new_value=new_str,
    )
    try:
        data[field_id] = value
        submission.data = data
        flag_modified(submission, "data")
        db.add(history)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Edited submission field submission_id=%s field=%s", submission.id, field_id
    )
    return FieldEditResult(
        changed=True, old_value=old_str, new_value=new_str, history_id=history.id
    )


def list_submission_history(
    db: Session, submission_id: uuid.UUID
) -> list[SubmissionEditHistory]:
    submission_service.get_submission_or_raise(db, submission_id)
    return (
        db.query(SubmissionEditHistory)
        .filter(SubmissionEditHistory.submission_id == submission_id)
        .order_by(SubmissionEditHistory.edited_at.desc())
        .all()
    )


# =============================================================================
# Legacy applications (fixed schema)
# =============================================================================


def update_application_field(
    db: Session,
    application_id: uuid.UUID,
    field: str,
    new_value: Any,
) -> FieldEditResult:
    """Edit one editable column of a legacy application and record the change."""
    column = application_service.resolve_editable_field(field)
    application = application_service.get_application_or_raise(db, application_id)

    if new_value is not None and not isinstance(new_value, str):
        raise InvalidInputError(
            f"Field '{field}' must be text", field_errors={field: "Must be text"}
        )

    old_str = stringify_value(getattr(application, column))
    new_str = stringify_value(new_value)
    if old_str == new_str:
        return FieldEditResult(changed=False, old_value=old_str, new_value=new_str)

    if column in application_service.REQUIRED_APPLICATION_FIELDS and not new_str.strip():
        raise InvalidInputError(
            f"Field '{field}' cannot be empty",
            field_errors={field: "This field is required"},
        )

    history = ApplicationEditHistory(
        application_id=application.id,
        field=column,
        old_value=old_str,
        new_value=new_str,
    )
    try:
        setattr(application, column, new_value)
        db.add(history)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(
        "Edited application field application_id=%s field=%s", application.id, column
    )
    return FieldEditResult(
        changed=True, old_value=old_str, new_value=new_str, history_id=history.id
    )


def list_application_history(
    db: Session, application_id: uuid.UUID
) -> list[ApplicationEditHistory]:
    application_service.get_application_or_raise(db, application_id)
    return (
        db.query(ApplicationEditHistory)
        .filter(ApplicationEditHistory.application_id == application_id)
        .order_by(ApplicationEditHistory.edited_at.desc())
        .all()
    )
