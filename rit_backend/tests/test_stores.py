"""
Tests for the in-memory assessment store, configuration provider and the
scoring helpers.
"""

import datetime
import unittest

import pytest

from rit_backend.assessments.base.models import Period, Response
from rit_backend.assessments.rit.memory_store import (
    MemoryAssessmentStore,
    MemoryStudentDirectory,
    StaticConfigurationProvider,
)
from rit_backend.assessments.rit.scoring import correct_count, elapsed_minutes, rit_score, score_ledger
from rit_backend.common.exceptions import ConflictError, NotFoundError
from rit_backend.domain.items.memory_repository import MemoryItemBank
from rit_backend.domain.items.repository import CachedItemBank
from rit_backend.tests.helpers import FixedClock, spaced_items


def response(order_index, difficulty, is_correct):
    return Response(
        assessment_id=1,
        item_id=f"q{order_index}",
        order_index=order_index,
        selected_index=0,
        is_correct=is_correct,
        item_difficulty=difficulty,
    )


class TestScoring(unittest.TestCase):
    """Test RIT scoring from ledger entries."""

    def test_highest_correct_difficulty(self):
        ledger = [response(1, 225, True), response(2, 240, False), response(3, 230, True)]
        self.assertEqual(rit_score(ledger), 230)
        self.assertEqual(correct_count(ledger), 2)
        self.assertEqual(score_ledger(ledger), (230, 2))

    def test_nothing_correct_scores_zero(self):
        self.assertEqual(rit_score([response(1, 225, False)]), 0)
        self.assertEqual(score_ledger([]), (0, 0))

    def test_elapsed_minutes_rounds_half_up(self):
        start = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        self.assertEqual(elapsed_minutes(start, start + datetime.timedelta(seconds=89)), 1)
        self.assertEqual(elapsed_minutes(start, start + datetime.timedelta(seconds=90)), 2)
        self.assertEqual(elapsed_minutes(start, start + datetime.timedelta(minutes=12)), 12)
        self.assertEqual(elapsed_minutes(start, start - datetime.timedelta(minutes=1)), 0)


@pytest.mark.asyncio
async def test_append_and_list_responses():
    store = MemoryAssessmentStore(clock=FixedClock())
    assessment_id = await store.create_assessment("student-1", "math", Period.FALL, 2024)

    await store.append_response(assessment_id, 2, "q2", 1, False, 230)
    await store.append_response(assessment_id, 1, "q1", 0, True, 225)

    ledger = await store.list_responses(assessment_id)
    assert [r.order_index for r in ledger] == [1, 2]
    assert ledger[0].to_dict()["itemDifficulty"] == 225


@pytest.mark.asyncio
async def test_duplicate_order_index_conflicts():
    store = MemoryAssessmentStore(clock=FixedClock())
    assessment_id = await store.create_assessment("student-1", "math", Period.FALL, 2024)
    await store.append_response(assessment_id, 1, "q1", 0, True, 225)

    with pytest.raises(ConflictError):
        await store.append_response(assessment_id, 1, "q2", 0, True, 230)


@pytest.mark.asyncio
async def test_append_to_unknown_assessment():
    store = MemoryAssessmentStore(clock=FixedClock())
    with pytest.raises(NotFoundError):
        await store.append_response(42, 1, "q1", 0, True, 225)


@pytest.mark.asyncio
async def test_finalize_is_idempotent():
    clock = FixedClock()
    store = MemoryAssessmentStore(clock=clock)
    assessment_id = await store.create_assessment("student-1", "math", Period.FALL, 2024, total_questions=10)
    assert (await store.get_assessment(assessment_id)).final_result is None

    record = await store.finalize_assessment(assessment_id, 230, 4, 12)
    assert record.final_result.total_questions == 10
    assert record.final_result.duration_minutes == 12
    completed_at = record.completed_at
    clock.advance(minutes=5)
    again = await store.finalize_assessment(assessment_id, 230, 4, 12)

    assert again.rit_score == 230
    assert again.completed_at == completed_at

    with pytest.raises(ConflictError) as exc_info:
        await store.finalize_assessment(assessment_id, 240, 5, 12)
    assert exc_info.value.code == "FINAL_RESULT_CONFLICT"
    assert (await store.get_assessment(assessment_id)).rit_score == 230


@pytest.mark.asyncio
async def test_most_recent_rit():
    clock = FixedClock()
    store = MemoryAssessmentStore(clock=clock)
    assert await store.most_recent_rit("student-1", "math", 2024) is None

    first = await store.create_assessment("student-1", "math", Period.FALL, 2024)
    await store.finalize_assessment(first, 210, 3, 10)
    second = await store.create_assessment("student-1", "math", Period.WINTER, 2024)
    await store.finalize_assessment(second, 245, 6, 10)
    # Started but never finalized
    await store.create_assessment("student-1", "math", Period.SPRING, 2024)
    other_subject = await store.create_assessment("student-1", "reading", Period.FALL, 2024)
    await store.finalize_assessment(other_subject, 300, 9, 10)

    # Same timestamp for all records: creation order decides
    assert await store.most_recent_rit("student-1", "math", 2024) == 245
    assert await store.most_recent_rit("student-1", "math", 2023) is None
    assert await store.most_recent_rit("student-2", "math", 2024) is None


@pytest.mark.asyncio
async def test_static_configuration_provider():
    provider = StaticConfigurationProvider(
        question_counts={("5", "math"): 15, (None, "math"): 20},
        time_limits={("5", "math"): 30},
    )

    assert await provider.question_count("5", "math") == 15
    assert await provider.question_count("6", "math") == 20
    assert await provider.question_count(None, "math") == 20
    assert await provider.question_count("5", "reading") is None
    assert await provider.time_limit_minutes("5", "math") == 30
    assert await provider.time_limit_minutes("6", "math") is None


@pytest.mark.asyncio
async def test_student_directory():
    directory = MemoryStudentDirectory({"student-1": "5"})
    assert await directory.grade_of("student-1") == "5"
    assert await directory.grade_of("student-2") is None


@pytest.mark.asyncio
async def test_cached_item_bank_evicts_least_recently_used():
    bank = CachedItemBank(MemoryItemBank(spaced_items([220, 225, 230])), ttl=60, max_size=2)

    await bank.find_all("math")
    assert list(bank._entries) == ["q225", "q230"]

    # A hit keeps q225; the next miss evicts q230
    assert (await bank.get_by_id("q225")).difficulty == 225
    assert (await bank.get_by_id("q220")).difficulty == 220
    assert list(bank._entries) == ["q225", "q220"]
    assert (bank.hits, bank.misses) == (1, 1)


@pytest.mark.asyncio
async def test_list_finalized_orders_by_year_then_period():
    clock = FixedClock()
    store = MemoryAssessmentStore(clock=clock)
    finalized = {}
    for name, period, year in [
        ("spring_2024", Period.SPRING, 2024),
        ("fall_2024", Period.FALL, 2024),
        ("winter_2023", Period.WINTER, 2023),
        ("fall_2024_retake", Period.FALL, 2024),
    ]:
        clock.advance(minutes=1)
        assessment_id = await store.create_assessment("student-1", "math", period, year)
        await store.finalize_assessment(assessment_id, 220, 4, 10)
        finalized[assessment_id] = name
    await store.create_assessment("student-1", "math", Period.WINTER, 2024)
    reading = await store.create_assessment("student-1", "reading", Period.FALL, 2024)
    await store.finalize_assessment(reading, 230, 5, 10)

    records = await store.list_finalized("student-1", "math")
    assert [finalized[r.assessment_id] for r in records] == [
        "fall_2024_retake",
        "fall_2024",
        "spring_2024",
        "winter_2023",
    ]
    assert await store.list_finalized("student-2", "math") == []
