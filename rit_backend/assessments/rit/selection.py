"""
Item Selection for adaptive RIT assessments.

Picks the unused item whose difficulty is nearest a target: first among items
within a window around the target, then, if the window is empty, across the
whole subject pool. Ties between equally close items are broken uniformly at
random.
"""

import random
from typing import AbstractSet, List, Optional, Sequence

from rit_backend.common.logger import app_logger
from rit_backend.domain.items.model import Item
from rit_backend.domain.items.repository import ItemBank

logger = app_logger.getChild("rit.selection")

DEFAULT_WINDOW = 10


def nearest_items(items: Sequence[Item], target: int) -> List[Item]:
    """All items sharing the minimal distance to ``target``."""
    if not items:
        return []
    best = min(abs(item.difficulty - target) for item in items)
    return [item for item in items if abs(item.difficulty - target) == best]


class ItemSelector:
    """
    Selects the next item for a session from the item bank.

    Args:
        item_bank: Bank to read candidates from
        rng: Random source for tie-breaking; only ``choice`` is used
        window: Half-width of the preferred difficulty range
    """

    def __init__(
        self,
        item_bank: ItemBank,
        rng: Optional[random.Random] = None,
        window: int = DEFAULT_WINDOW
    ):
        self.item_bank = item_bank
        self.window = window
        self._rng = rng or random.Random()

    async def select(
        self,
        target_difficulty: int,
        subject_id: str,
        excluded_ids: AbstractSet[str] = frozenset(),
        grade_id: Optional[str] = None
    ) -> Optional[Item]:
        """
        Select the best-matching unused item.

        Args:
            target_difficulty: Difficulty to aim for
            subject_id: Subject to draw from
            excluded_ids: Items that must not be returned
            grade_id: Grade of the student, restricting grade-specific items

        Returns:
            The chosen item, or None when no eligible item is left
        """
        candidates = await self.item_bank.find_in_range(
            subject_id,
            target_difficulty - self.window,
            target_difficulty + self.window,
            excluded_ids,
            grade_id,
        )
        # Banks are expected to honour the exclusion set; filter regardless
        candidates = [item for item in candidates if item.id not in excluded_ids]

        if not candidates:
            logger.debug(
                f"No items within {self.window} of {target_difficulty} for subject "
                f"{subject_id}, widening to full pool"
            )
            candidates = await self.item_bank.find_all(subject_id, excluded_ids, grade_id)
            candidates = [item for item in candidates if item.id not in excluded_ids]

        if not candidates:
            logger.info(f"Item pool exhausted for subject {subject_id} ({len(excluded_ids)} excluded)")
            return None

        closest = nearest_items(candidates, target_difficulty)
        chosen = closest[0] if len(closest) == 1 else self._rng.choice(closest)
        logger.debug(
            f"Selected item {chosen.id} (difficulty {chosen.difficulty}) for target "
            f"{target_difficulty} from {len(closest)} tied of {len(candidates)} candidates"
        )
        return chosen
