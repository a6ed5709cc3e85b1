"""
Database Module

This module provides the declarative base and ORM models backing the
durable item bank, assessment store and configuration provider.
"""

from rit_backend.database.base import Base, ModelBase, metadata

__all__ = ['Base', 'ModelBase', 'metadata']
