"""
Item Bank Repository Module

This module defines the read-only item bank interface consumed by the item
selector and the orchestrator, plus a caching decorator over any bank.
"""

import abc
import time
from collections import OrderedDict
from typing import Iterable, List, Optional, Tuple

from rit_backend.common.logger import app_logger
from .model import Item

logger = app_logger.getChild("items.repository")


class ItemBank(abc.ABC):
    """
    Abstract base class for item banks.

    The assessment core never writes through this interface.
    """

    @abc.abstractmethod
    async def find_in_range(
        self,
        subject_id: str,
        min_difficulty: int,
        max_difficulty: int,
        excluded: Iterable[str] = (),
        grade_id: Optional[str] = None
    ) -> List[Item]:
        """
        Find items of a subject within a difficulty range.

        Args:
            subject_id: Subject to search
            min_difficulty: Minimum difficulty (inclusive)
            max_difficulty: Maximum difficulty (inclusive)
            excluded: Item ids that must not be returned
            grade_id: When given, only items for this grade or for all grades

        Returns:
            Matching items, in no particular order
        """

    @abc.abstractmethod
    async def find_all(
        self,
        subject_id: str,
        excluded: Iterable[str] = (),
        grade_id: Optional[str] = None
    ) -> List[Item]:
        """
        Find every item of a subject not in ``excluded``.
        """

    @abc.abstractmethod
    async def get_by_id(self, item_id: str) -> Optional[Item]:
        """
        Get an item by its ID.

        Returns:
            The item if found, None otherwise
        """


class CachedItemBank(ItemBank):
    """
    Item bank that caches ``get_by_id`` lookups of a delegate bank.

    Range queries always go to the delegate since their results depend on
    the exclusion set. Cached entries may lag the delegate by up to ``ttl``
    seconds; sessions pin the attributes they saw, so the lag is never
    observable inside one assessment.
    """

    def __init__(self, delegate: ItemBank, ttl: float = 3600, max_size: int = 10000):
        """
        Initialize the cached bank.

        Args:
            delegate: The bank to delegate to
            ttl: Time-to-live of a cached item in seconds
            max_size: Maximum number of cached items
        """
        self.delegate = delegate
        self.ttl = ttl
        self.max_size = max_size
        # Least recently stored or read first
        self._entries: "OrderedDict[str, Tuple[float, Item]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    async def find_in_range(self, subject_id, min_difficulty, max_difficulty, excluded=(), grade_id=None):
        items = await self.delegate.find_in_range(
            subject_id, min_difficulty, max_difficulty, excluded, grade_id
        )
        self._remember(items)
        return items

    async def find_all(self, subject_id, excluded=(), grade_id=None):
        items = await self.delegate.find_all(subject_id, excluded, grade_id)
        self._remember(items)
        return items

    async def get_by_id(self, item_id: str) -> Optional[Item]:
        entry = self._entries.get(item_id)
        if entry is not None:
            expires_at, item = entry
            if time.monotonic() < expires_at:
                self.hits += 1
                self._entries.move_to_end(item_id)
                logger.debug(f"Cache hit for item {item_id}")
                return item
            del self._entries[item_id]

        self.misses += 1
        logger.debug(f"Cache miss for item {item_id}")
        item = await self.delegate.get_by_id(item_id)
        if item is not None:
            self._remember([item])
        return item

    def invalidate(self, item_id: Optional[str] = None) -> None:
        """Drop one cached item, or all of them."""
        if item_id is None:
            self._entries.clear()
        else:
            self._entries.pop(item_id, None)

    def _remember(self, items: Iterable[Item]) -> None:
        expires_at = time.monotonic() + self.ttl
        for item in items:
            if item.id in self._entries:
                self._entries.move_to_end(item.id)
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[item.id] = (expires_at, item)
