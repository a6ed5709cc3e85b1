"""
Shared builders for the assessment tests.
"""

import datetime
from typing import Iterable, List, Optional

from rit_backend.domain.items.model import Item


class StubRandom:
    """
    Random source whose ``choice`` is predictable.

    Returns ``pick`` when it is among the choices, else the first choice, and
    records every sequence it was asked to choose from.
    """

    def __init__(self, pick=None):
        self.pick = pick
        self.calls: List[list] = []

    def choice(self, seq):
        seq = list(seq)
        self.calls.append(seq)
        if self.pick is not None and self.pick in seq:
            return self.pick
        return seq[0]


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: Optional[datetime.datetime] = None):
        self.now = now or datetime.datetime(2024, 9, 3, 9, 0, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> datetime.datetime:
        self.now += datetime.timedelta(**kwargs)
        return self.now


def make_item(
    item_id: str,
    difficulty: int,
    subject_id: str = "math",
    grade_id: Optional[str] = None,
    correct_option_index: int = 0
) -> Item:
    return Item(
        id=item_id,
        subject_id=subject_id,
        text=f"Question {item_id}",
        options=("A", "B", "C", "D"),
        correct_option_index=correct_option_index,
        difficulty=difficulty,
        grade_id=grade_id,
    )


def spaced_items(difficulties: Iterable[int], subject_id: str = "math", prefix: str = "q") -> List[Item]:
    """One item per difficulty, ids ``<prefix><difficulty>``."""
    return [make_item(f"{prefix}{d}", d, subject_id=subject_id) for d in difficulties]
