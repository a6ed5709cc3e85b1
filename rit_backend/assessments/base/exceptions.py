"""
Assessment Exceptions

Typed errors raised by the adaptive assessment operations. Each maps onto one
kind of the common taxonomy and carries the code the API layer reports.
"""

from typing import Any

from rit_backend.common.exceptions import (
    ConflictError,
    ExhaustionError,
    NotFoundError,
    ValidationError,
)


class InvalidPeriodError(ValidationError):
    """Raised when the period is not Fall, Winter or Spring."""

    def __init__(self, period: Any):
        super().__init__(
            f"Period must be Fall, Winter, or Spring, got {period!r}",
            errors={"period": "invalid"},
            code="INVALID_PERIOD",
        )
        self.period = period


class SessionNotFoundError(NotFoundError):
    """Raised when no live session matches the request."""

    def __init__(self, session_ref: Any):
        super().__init__("Assessment session", session_ref, code="SESSION_NOT_FOUND")


class SessionConflictError(ConflictError):
    """Raised when a live session already exists for the same key."""

    def __init__(self, session_ref: Any):
        super().__init__("assessment session", session_ref, code="SESSION_CONFLICT")


class NoQuestionsAvailableError(ExhaustionError):
    """Raised by ``start`` when the subject has no eligible item at all."""

    code = "NO_QUESTIONS_AVAILABLE"

    def __init__(self, subject_id: str):
        super().__init__(f"No questions available for subject {subject_id}")
        self.subject_id = subject_id


class NoMoreQuestionsError(ExhaustionError):
    """Raised by ``submit`` when every eligible item has been used."""

    code = "NO_MORE_QUESTIONS"

    def __init__(self, assessment_id: int):
        super().__init__(f"No more questions available for assessment {assessment_id}")
        self.assessment_id = assessment_id
