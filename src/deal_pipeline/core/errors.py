"""Error taxonomy for deal pipeline operations."""

from typing import Any, List, Optional


class DealPipelineError(Exception):
    """Base error for every rejected pipeline operation."""


class ValidationError(DealPipelineError):
    """Raised when a required input is missing or out of range.

    Always raised before any mutation, so the aggregate is untouched.
    Several field problems can be reported at once through ``errors``.
    """

    def __init__(self, field: str, message: str, value: Any = None, errors: Optional[List["ValidationError"]] = None):
        self.field = field
        self.message = message
        self.value = value
        self.errors = errors or [self]
        super().__init__(f"{field}: {message}")

    @classmethod
    def from_errors(cls, errors: List["ValidationError"]) -> "ValidationError":
        """Bundle several field errors into one exception."""
        first = errors[0]
        if len(errors) == 1:
            return first
        fields = ", ".join(e.field for e in errors)
        return cls(fields, "; ".join(f"{e.field}: {e.message}" for e in errors), errors=errors)

    def to_dict(self) -> dict:
        return {
            "fields": [{"field": e.field, "message": e.message} for e in self.errors],
        }


class InvariantViolation(DealPipelineError):
    """Raised when an operation conflicts with the aggregate's current state."""

    def __init__(self, message: str, current_state: Optional[str] = None, action: Optional[str] = None):
        self.message = message
        self.current_state = current_state
        self.action = action
        super().__init__(message)


class PersistenceError(DealPipelineError):
    """Raised when the document store is unavailable or rejects a write."""

    retryable = True

    def __init__(self, message: str, path: Optional[str] = None, cause: Optional[Exception] = None):
        self.message = message
        self.path = path
        self.cause = cause
        super().__init__(message)


class ConflictError(PersistenceError):
    """Raised when a compare-and-set write lost the race to another writer."""

    def __init__(self, path: str, expected_version: int, actual_version: Optional[int]):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Version conflict on {path}: expected {expected_version}, found {actual_version}",
            path=path,
        )


class OpportunityNotFound(PersistenceError):
    """Raised when an opportunity path has no record."""

    retryable = False

    def __init__(self, path: str):
        super().__init__(f"Opportunity not found: {path}", path=path)
