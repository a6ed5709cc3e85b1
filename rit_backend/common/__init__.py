"""
Common Components

This package contains infrastructure shared by the assessment core.

Key components:
1. Logging - Centralized logging configuration
2. Configuration - Settings loaded from defaults, file and environment
3. Error Handling - The error taxonomy reported to callers
4. Database - Async engine and session helpers
"""

# Initialize logging
from rit_backend.common.logger import app_logger

from rit_backend.common.config import AppConfig, get_config, reload_config
from rit_backend.common.exceptions import (
    BaseError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    ExhaustionError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Logging
    'app_logger',

    # Configuration
    'AppConfig',
    'get_config',
    'reload_config',

    # Errors
    'BaseError',
    'ConfigurationError',
    'ConflictError',
    'DatabaseError',
    'ExhaustionError',
    'NotFoundError',
    'ValidationError',
]
