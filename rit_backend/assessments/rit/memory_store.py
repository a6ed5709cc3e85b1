"""
In-memory collaborators for adaptive assessments.

These implementations of the assessment store, configuration provider and
student directory are intended for development and testing purposes.
"""

import datetime
import itertools
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from rit_backend.assessments.base.models import AssessmentRecord, Period, Response
from rit_backend.assessments.base.repositories import (
    AssessmentStore,
    ConfigurationProvider,
    StudentDirectory,
)
from rit_backend.common.exceptions import ConflictError, NotFoundError
from rit_backend.common.logger import app_logger

logger = app_logger.getChild("rit.memory_store")


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class MemoryAssessmentStore(AssessmentStore):
    """
    Assessment store keeping records and the response ledger in dictionaries.

    Args:
        clock: Source of creation/completion timestamps
    """

    def __init__(self, clock: Optional[Callable[[], datetime.datetime]] = None):
        self._clock = clock or _utcnow
        self._ids = itertools.count(1)
        self._records: Dict[int, AssessmentRecord] = {}
        self._responses: Dict[int, List[Response]] = {}
        # Creation order, used to pick the most recent record on timestamp ties
        self._sequence: Dict[int, int] = {}

    async def create_assessment(
        self,
        student_id: str,
        subject_id: str,
        period: Period,
        year: int,
        total_questions: Optional[int] = None,
        time_limit_minutes: Optional[int] = None
    ) -> int:
        assessment_id = next(self._ids)
        self._records[assessment_id] = AssessmentRecord(
            assessment_id=assessment_id,
            student_id=student_id,
            subject_id=subject_id,
            period=period,
            year=year,
            created_at=self._clock(),
            total_questions=total_questions,
            time_limit_minutes=time_limit_minutes,
        )
        self._responses[assessment_id] = []
        self._sequence[assessment_id] = assessment_id
        return assessment_id

    async def append_response(
        self,
        assessment_id: int,
        order_index: int,
        item_id: str,
        selected_index: int,
        is_correct: bool,
        item_difficulty: int
    ) -> Response:
        if assessment_id not in self._records:
            raise NotFoundError("Assessment", assessment_id)
        ledger = self._responses[assessment_id]
        if any(response.order_index == order_index for response in ledger):
            raise ConflictError("response order index", f"{assessment_id}/{order_index}")

        response = Response(
            assessment_id=assessment_id,
            item_id=item_id,
            order_index=order_index,
            selected_index=selected_index,
            is_correct=is_correct,
            item_difficulty=item_difficulty,
        )
        ledger.append(response)
        return response

    async def finalize_assessment(
        self,
        assessment_id: int,
        rit_score: int,
        correct_count: int,
        duration_minutes: int
    ) -> AssessmentRecord:
        record = self._records.get(assessment_id)
        if record is None:
            raise NotFoundError("Assessment", assessment_id)

        if record.is_finalized:
            if (record.rit_score, record.correct_count) != (rit_score, correct_count):
                raise ConflictError("final result", assessment_id, code="FINAL_RESULT_CONFLICT")
            logger.info(f"Assessment {assessment_id} already finalized, keeping stored result")
            return record

        record.rit_score = rit_score
        record.correct_count = correct_count
        record.duration_minutes = duration_minutes
        record.completed_at = self._clock()
        return record

    async def most_recent_rit(self, student_id: str, subject_id: str, year: int) -> Optional[int]:
        candidates = [
            record for record in self._records.values()
            if record.student_id == student_id
            and record.subject_id == subject_id
            and record.year == year
            and record.is_finalized
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda r: (r.created_at, self._sequence[r.assessment_id]))
        return latest.rit_score

    async def list_responses(self, assessment_id: int) -> List[Response]:
        return sorted(self._responses.get(assessment_id, []), key=lambda r: r.order_index)

    async def get_assessment(self, assessment_id: int) -> Optional[AssessmentRecord]:
        return self._records.get(assessment_id)

    async def list_finalized(self, student_id: str, subject_id: str) -> List[AssessmentRecord]:
        records = [
            record for record in self._records.values()
            if record.student_id == student_id
            and record.subject_id == subject_id
            and record.is_finalized
        ]
        records.sort(key=lambda r: (r.created_at, self._sequence[r.assessment_id]), reverse=True)
        records.sort(key=lambda r: (-r.year, r.period.rank))
        return records


class StaticConfigurationProvider(ConfigurationProvider):
    """
    Configuration provider backed by a mapping.

    Keys are ``(grade_id, subject_id)``; a ``(None, subject_id)`` entry acts
    as the fallback for every grade.

    Args:
        question_counts: Question count per key
        time_limits: Time limit in minutes per key
    """

    def __init__(
        self,
        question_counts: Optional[Mapping[Tuple[Optional[str], str], int]] = None,
        time_limits: Optional[Mapping[Tuple[Optional[str], str], int]] = None
    ):
        self._question_counts = dict(question_counts or {})
        self._time_limits = dict(time_limits or {})

    @staticmethod
    def _lookup(table, grade_id, subject_id):
        if (grade_id, subject_id) in table:
            return table[(grade_id, subject_id)]
        return table.get((None, subject_id))

    async def question_count(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        return self._lookup(self._question_counts, grade_id, subject_id)

    async def time_limit_minutes(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        return self._lookup(self._time_limits, grade_id, subject_id)


class MemoryStudentDirectory(StudentDirectory):
    """Student directory backed by a ``student_id -> grade_id`` mapping."""

    def __init__(self, grades: Optional[Mapping[str, str]] = None):
        self._grades = dict(grades or {})

    async def grade_of(self, student_id: str) -> Optional[str]:
        return self._grades.get(student_id)
