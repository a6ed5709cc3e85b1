"""
RIT scoring helpers.

The RIT score of an assessment is the highest difficulty among its correctly
answered items, or 0 when nothing was answered correctly.
"""

import datetime
import math
from typing import Iterable, Tuple

from rit_backend.assessments.base.models import Response


def rit_score(responses: Iterable[Response]) -> int:
    return max((r.item_difficulty for r in responses if r.is_correct), default=0)


def correct_count(responses: Iterable[Response]) -> int:
    return sum(1 for r in responses if r.is_correct)


def score_ledger(responses: Iterable[Response]) -> Tuple[int, int]:
    """
    Recompute ``(rit_score, correct_count)`` from ledger entries alone.
    """
    responses = list(responses)
    return rit_score(responses), correct_count(responses)


def elapsed_minutes(started_at: datetime.datetime, ended_at: datetime.datetime) -> int:
    """Whole minutes between two instants, halves rounded up."""
    seconds = max(0.0, (ended_at - started_at).total_seconds())
    return int(math.floor(seconds / 60 + 0.5))
