"""
HTTP surface of the assessment core.
"""

from rit_backend.api.router import (
    assessment_error_handler,
    router,
    validation_exception_handler,
)

__all__ = ['assessment_error_handler', 'router', 'validation_exception_handler']
