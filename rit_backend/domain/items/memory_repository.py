"""
Memory Item Bank Module

This module provides an in-memory implementation of the ItemBank interface
for development and testing purposes.
"""

from typing import Dict, Iterable, List, Optional

from .model import Item
from .repository import ItemBank


class MemoryItemBank(ItemBank):
    """
    In-memory implementation of the ItemBank.

    Items are kept in insertion order. ``add`` exists for seeding only; the
    assessment core never calls it.
    """

    def __init__(self, initial_data: Optional[Iterable[Item]] = None):
        self._items: Dict[str, Item] = {}

        if initial_data:
            for item in initial_data:
                self.add(item)

    def add(self, item: Item) -> Item:
        self._items[item.id] = item
        return item

    async def find_in_range(
        self,
        subject_id: str,
        min_difficulty: int,
        max_difficulty: int,
        excluded: Iterable[str] = (),
        grade_id: Optional[str] = None
    ) -> List[Item]:
        return [
            item for item in self._eligible(subject_id, excluded, grade_id)
            if min_difficulty <= item.difficulty <= max_difficulty
        ]

    async def find_all(
        self,
        subject_id: str,
        excluded: Iterable[str] = (),
        grade_id: Optional[str] = None
    ) -> List[Item]:
        return list(self._eligible(subject_id, excluded, grade_id))

    async def get_by_id(self, item_id: str) -> Optional[Item]:
        return self._items.get(item_id)

    def get_all(self) -> List[Item]:
        """
        Get all items.

        This method is specific to the memory implementation and not part of
        the ItemBank interface.
        """
        return list(self._items.values())

    def _eligible(self, subject_id: str, excluded: Iterable[str], grade_id: Optional[str]):
        excluded = set(excluded)
        for item in self._items.values():
            if item.subject_id != subject_id or item.id in excluded:
                continue
            if not item.is_available_to(grade_id):
                continue
            yield item

    def __len__(self) -> int:
        return len(self._items)
