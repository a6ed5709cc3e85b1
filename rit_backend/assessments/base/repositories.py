"""
Base Assessment Repositories

This module defines the interfaces of the durable collaborators used by the
assessment orchestrator: the assessment store (with its response ledger),
the configuration provider and the student directory.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from rit_backend.assessments.base.models import AssessmentRecord, Period, Response


class AssessmentStore(ABC):
    """
    Durable storage of assessment records and their response ledger.
    """

    @abstractmethod
    async def create_assessment(
        self,
        student_id: str,
        subject_id: str,
        period: Period,
        year: int,
        total_questions: Optional[int] = None,
        time_limit_minutes: Optional[int] = None
    ) -> int:
        """
        Create an assessment record.

        Returns:
            The new assessment id
        """

    @abstractmethod
    async def append_response(
        self,
        assessment_id: int,
        order_index: int,
        item_id: str,
        selected_index: int,
        is_correct: bool,
        item_difficulty: int
    ) -> Response:
        """
        Append one answer to the ledger.

        Raises:
            NotFoundError: If the assessment does not exist
            ConflictError: If ``order_index`` is already taken
        """

    @abstractmethod
    async def finalize_assessment(
        self,
        assessment_id: int,
        rit_score: int,
        correct_count: int,
        duration_minutes: int
    ) -> AssessmentRecord:
        """
        Record the final score.

        Re-running with the values already stored is a no-op that returns the
        stored record; a re-run with a different score raises ConflictError.
        """

    @abstractmethod
    async def most_recent_rit(self, student_id: str, subject_id: str, year: int) -> Optional[int]:
        """
        The RIT score of the student's latest finalized assessment in that
        subject and year, or None.
        """

    @abstractmethod
    async def list_responses(self, assessment_id: int) -> List[Response]:
        """All ledger entries of an assessment ordered by ``order_index``."""

    @abstractmethod
    async def get_assessment(self, assessment_id: int) -> Optional[AssessmentRecord]:
        """The assessment record, or None."""

    @abstractmethod
    async def list_finalized(self, student_id: str, subject_id: str) -> List[AssessmentRecord]:
        """
        Finalized assessments of a student in one subject.

        Ordered by year (newest first), then period (Fall, Winter, Spring),
        then creation time (newest first).
        """


class ConfigurationProvider(ABC):
    """Per grade/subject assessment settings managed outside the core."""

    @abstractmethod
    async def question_count(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        """Configured number of questions, or None when unset."""

    async def time_limit_minutes(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        """Configured time limit in minutes, or None for no limit."""
        return None


class StudentDirectory(ABC):
    """Lookup of student attributes owned by the user catalog."""

    @abstractmethod
    async def grade_of(self, student_id: str) -> Optional[str]:
        """The student's grade id, or None when unknown."""
