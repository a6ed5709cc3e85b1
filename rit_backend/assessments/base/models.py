"""
Base Assessment Models

This module defines the data models for adaptive assessments: periods,
session state, ledger responses, assessment records and the results handed
back to the calling layer.
"""

import enum
import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Set


class Period(enum.Enum):
    """Seasonal administration window of an assessment."""
    FALL = "Fall"
    WINTER = "Winter"
    SPRING = "Spring"

    @classmethod
    def parse(cls, value: Any) -> Optional['Period']:
        """Return the matching period, or None when ``value`` is not one."""
        if isinstance(value, cls):
            return value
        for period in cls:
            if period.value == value:
                return period
        return None

    @property
    def rank(self) -> int:
        """Position within the school year, Fall first."""
        return list(Period).index(self)


class SessionStatus(enum.Enum):
    """Lifecycle of an adaptive session. ``COMPLETED`` is terminal."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionKey(NamedTuple):
    """At most one live session exists per key."""
    student_id: str
    subject_id: str
    period: Period

    def __str__(self) -> str:
        return f"{self.student_id}_{self.subject_id}_{self.period.value}"


@dataclass(frozen=True)
class ItemSnapshot:
    """Immutable item attributes pinned for the lifetime of one session."""
    difficulty: int
    correct_option_index: int
    option_count: int


@dataclass
class AssessmentSession:
    """
    Mutable in-progress state of one adaptive assessment attempt.

    Only the session store hands these out, and only while holding the
    session's key lock may they be changed.
    """
    key: SessionKey
    assessment_id: int
    current_difficulty: int
    starting_difficulty: int
    total_questions: int
    started_at: datetime.datetime
    grade_id: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    questions_answered: int = 0
    highest_correct_difficulty: int = 0
    used_item_ids: Set[str] = field(default_factory=set)
    answered_item_ids: Set[str] = field(default_factory=set)
    item_snapshots: Dict[str, ItemSnapshot] = field(default_factory=dict)
    status: SessionStatus = SessionStatus.IN_PROGRESS
    last_activity_at: Optional[datetime.datetime] = None

    def __post_init__(self):
        if self.last_activity_at is None:
            self.last_activity_at = self.started_at

    @property
    def student_id(self) -> str:
        return self.key.student_id

    @property
    def subject_id(self) -> str:
        return self.key.subject_id

    @property
    def period(self) -> Period:
        return self.key.period

    @property
    def is_complete(self) -> bool:
        return self.questions_answered >= self.total_questions

    def record_answer(self, item_id: str, difficulty: int, is_correct: bool) -> int:
        """
        Apply one answered item to the counters.

        Returns:
            The order index the answer occupies in the ledger
        """
        self.questions_answered += 1
        self.used_item_ids.add(item_id)
        self.answered_item_ids.add(item_id)
        if is_correct and difficulty > self.highest_correct_difficulty:
            self.highest_correct_difficulty = difficulty
        return self.questions_answered


@dataclass(frozen=True)
class Response:
    """One answer in the durable response ledger."""
    assessment_id: int
    item_id: str
    order_index: int
    selected_index: int
    is_correct: bool
    item_difficulty: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessmentId": self.assessment_id,
            "itemId": self.item_id,
            "orderIndex": self.order_index,
            "selectedIndex": self.selected_index,
            "isCorrect": self.is_correct,
            "itemDifficulty": self.item_difficulty,
        }


@dataclass
class AssessmentRecord:
    """Durable record of a started (and eventually finalized) assessment."""
    assessment_id: int
    student_id: str
    subject_id: str
    period: Period
    year: int
    created_at: datetime.datetime
    total_questions: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    rit_score: Optional[int] = None
    correct_count: Optional[int] = None
    duration_minutes: Optional[int] = None
    completed_at: Optional[datetime.datetime] = None

    @property
    def is_finalized(self) -> bool:
        return self.rit_score is not None

    @property
    def final_result(self) -> Optional['FinalResult']:
        if not self.is_finalized:
            return None
        return FinalResult(
            assessment_id=self.assessment_id,
            rit_score=self.rit_score,
            correct_count=self.correct_count,
            total_questions=self.total_questions,
            duration_minutes=self.duration_minutes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessmentId": self.assessment_id,
            "studentId": self.student_id,
            "subjectId": self.subject_id,
            "period": self.period.value,
            "year": self.year,
            "totalQuestions": self.total_questions,
            "timeLimitMinutes": self.time_limit_minutes,
            "ritScore": self.rit_score,
            "correctCount": self.correct_count,
            "durationMinutes": self.duration_minutes,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class FinalResult:
    """Score written exactly once, when an assessment is finalized."""
    assessment_id: int
    rit_score: int
    correct_count: int
    total_questions: Optional[int]
    duration_minutes: int


@dataclass(frozen=True)
class StartResult:
    """Returned by ``start``: the first item of a new assessment."""
    assessment_id: int
    item: Dict[str, Any]
    question_number: int
    total_questions: int
    time_limit_minutes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessmentId": self.assessment_id,
            "timeLimitMinutes": self.time_limit_minutes,
            "question": dict(
                self.item,
                questionNumber=self.question_number,
                totalQuestions=self.total_questions,
            ),
        }


@dataclass(frozen=True)
class NextQuestionResult:
    """Returned by ``submit`` while the assessment continues."""
    is_correct: bool
    current_rit: int
    next_difficulty: int
    item: Dict[str, Any]
    question_number: int
    total_questions: int

    completed = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed": False,
            "isCorrect": self.is_correct,
            "currentRIT": self.current_rit,
            "nextDifficulty": self.next_difficulty,
            "question": dict(
                self.item,
                questionNumber=self.question_number,
                totalQuestions=self.total_questions,
            ),
        }


class CompletionReason(enum.Enum):
    QUESTION_COUNT_REACHED = "question_count_reached"
    TIME_LIMIT_REACHED = "time_limit_reached"
    ENDED_EARLY = "ended_early"


@dataclass(frozen=True)
class CompletionResult:
    """Returned by ``submit`` (or ``complete``) once the assessment is scored."""
    assessment_id: int
    rit_score: int
    correct_count: int
    total_questions: int
    duration_minutes: int
    reason: CompletionReason = CompletionReason.QUESTION_COUNT_REACHED
    is_correct: Optional[bool] = None

    completed = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed": True,
            "assessmentId": self.assessment_id,
            "isCorrect": self.is_correct,
            "ritScore": self.rit_score,
            "correctCount": self.correct_count,
            "totalQuestions": self.total_questions,
            "durationMinutes": self.duration_minutes,
            "reason": self.reason.value,
        }


@dataclass(frozen=True)
class SessionProgress:
    """Read-only view of a live session."""
    assessment_id: int
    subject_id: str
    period: Period
    questions_answered: int
    total_questions: int
    current_difficulty: int
    current_rit: int
    started_at: datetime.datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assessmentId": self.assessment_id,
            "subjectId": self.subject_id,
            "period": self.period.value,
            "questionsAnswered": self.questions_answered,
            "totalQuestions": self.total_questions,
            "currentDifficulty": self.current_difficulty,
            "currentRIT": self.current_rit,
            "startedAt": self.started_at.isoformat(),
        }


@dataclass(frozen=True)
class AssessmentReport:
    """A finalized assessment with its ordered responses."""
    record: AssessmentRecord
    responses: List[Response]

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["responses"] = [response.to_dict() for response in self.responses]
        return data
