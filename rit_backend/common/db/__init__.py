"""
Database session helpers shared by the SQL-backed stores.
"""

from rit_backend.common.db.session import (
    create_engine_from_settings,
    get_session,
    init_models,
    session_factory,
)

__all__ = [
    'create_engine_from_settings',
    'get_session',
    'init_models',
    'session_factory',
]
