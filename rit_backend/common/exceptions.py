"""
Common Exception Classes

This module defines the error taxonomy surfaced to callers of the assessment
core. Every error carries a stable ``code`` and a ``kind`` so the calling
layer can map it without parsing messages. None of these are retried
internally.
"""

from typing import Any, Dict, Optional


class BaseError(Exception):
    """Base class for all custom exceptions."""

    kind: str = "internal"
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        original_exception: Optional[Exception] = None,
        code: Optional[str] = None
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            original_exception: Original exception that caused this error
            code: Optional override of the class-level error code
        """
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Render the error the way the API layer reports it."""
        return {
            "error": self.message,
            "code": self.code,
            "kind": self.kind
        }


class DatabaseError(BaseError):
    """Exception raised for database-related errors."""

    code = "DATABASE_ERROR"

    def __init__(self, message: str, original_exception: Optional[Exception] = None):
        super().__init__(f"Database error: {message}", original_exception)


class ConfigurationError(BaseError):
    """Exception raised for configuration-related errors."""

    kind = "configuration"
    code = "CONFIGURATION_ERROR"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(f"Configuration error: {message}", original_exception)
        self.config_key = config_key


class ValidationError(BaseError):
    """Exception raised when caller input is rejected."""

    kind = "validation"
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        errors: Optional[dict] = None,
        code: Optional[str] = None
    ):
        """
        Initialize the validation error.

        Args:
            message: Error message
            errors: Dictionary of field-level validation errors
            code: Optional specific error code
        """
        super().__init__(f"Validation error: {message}", code=code)
        self.errors = errors or {}


class NotFoundError(BaseError):
    """Exception raised when a resource is not found."""

    kind = "not_found"
    code = "NOT_FOUND"

    def __init__(self, resource_type: str, resource_id: Any, code: Optional[str] = None):
        """
        Initialize the not found error.

        Args:
            resource_type: Type of resource that wasn't found
            resource_id: ID of the resource that wasn't found
            code: Optional specific error code
        """
        super().__init__(f"{resource_type} with ID {resource_id} not found", code=code)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ExhaustionError(BaseError):
    """Exception raised when the item pool cannot supply another item."""

    kind = "exhaustion"
    code = "ITEMS_EXHAUSTED"


class ConflictError(BaseError):
    """Exception raised when an operation collides with existing state."""

    kind = "conflict"
    code = "CONFLICT"

    def __init__(self, resource_type: str, identifier: Any, code: Optional[str] = None):
        """
        Initialize the conflict error.

        Args:
            resource_type: Type of resource in conflict
            identifier: The identifier that caused the conflict
            code: Optional specific error code
        """
        super().__init__(f"Conflicting {resource_type} with identifier {identifier}", code=code)
        self.resource_type = resource_type
        self.identifier = identifier
