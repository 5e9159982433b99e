from __future__ import annotations

from dataclasses import dataclass


class ValidationError(Exception):
    """A submitted field is missing or invalid; nothing was persisted."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class InvalidToothError(ValidationError):
    def __init__(self, token: object, field: str = "tooth_number"):
        super().__init__(field, f"Invalid tooth format: {token!r}")
        self.token = token


class PersistenceError(Exception):
    """The data store rejected or failed an operation."""

    def __init__(self, message: str, *, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class TreatmentNotFoundError(PersistenceError):
    def __init__(self, treatment_id: int):
        super().__init__(f"Treatment {treatment_id} not found", operation="lookup")
        self.treatment_id = treatment_id


@dataclass(frozen=True)
class ChartUpdateWarning:
    tooth_number: int
    message: str
