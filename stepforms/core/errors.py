"""Error taxonomy shared by the service layer.

Services raise subclasses of these kinds; the API maps each kind to a
status code in one place (see ``stepforms.main``).
"""

from typing import Any


class StepformsError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(StepformsError):
    """Referenced entity does not exist."""

    pass


class ConflictError(StepformsError):
    """Operation conflicts with existing data (e.g. a taken slug)."""

    pass


class StateError(StepformsError):
    """Operation is not allowed in the entity's current state."""

    pass


class InvalidInputError(StepformsError):
    """Input is malformed or fails validation.

    ``field_errors`` maps field ids to messages when the failure is
    field-scoped.
    """

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"detail": self.message}
        if self.field_errors:
            detail["field_errors"] = self.field_errors
        return detail
