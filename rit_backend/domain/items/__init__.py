"""
Item domain module.

This module contains the item entity and the item bank implementations
read by the adaptive assessment core.
"""

from .model import Item, MIN_DIFFICULTY, MAX_DIFFICULTY
from .repository import ItemBank, CachedItemBank
from .memory_repository import MemoryItemBank

__all__ = [
    'Item',
    'MIN_DIFFICULTY',
    'MAX_DIFFICULTY',
    'ItemBank',
    'CachedItemBank',
    'MemoryItemBank',
]
