"""
Assessment Orchestrator for adaptive RIT assessments.

This module coordinates the lifecycle of an adaptive assessment:
1. ``start``: choose a starting difficulty, select the first item, open a session
2. ``submit``: record an answer, adjust the target difficulty, select the next item
3. finalize: score the assessment from the response ledger and close the session
"""

import datetime
import random
from typing import Callable, List, Optional, Union

from rit_backend.assessments.base.exceptions import (
    InvalidPeriodError,
    NoMoreQuestionsError,
    NoQuestionsAvailableError,
    SessionNotFoundError,
)
from rit_backend.assessments.base.models import (
    AssessmentRecord,
    AssessmentReport,
    AssessmentSession,
    CompletionReason,
    CompletionResult,
    ItemSnapshot,
    NextQuestionResult,
    Period,
    SessionKey,
    SessionProgress,
    SessionStatus,
    StartResult,
)
from rit_backend.assessments.base.repositories import (
    AssessmentStore,
    ConfigurationProvider,
    StudentDirectory,
)
from rit_backend.assessments.rit.difficulty import DifficultyAdjuster, clamp
from rit_backend.assessments.rit.scoring import elapsed_minutes, score_ledger
from rit_backend.assessments.rit.selection import ItemSelector
from rit_backend.assessments.rit.session_store import (
    SessionConflictPolicy,
    SessionStore,
    utcnow,
)
from rit_backend.common.config import AssessmentConfig, get_config
from rit_backend.common.exceptions import NotFoundError, ValidationError
from rit_backend.common.logger import LoggerAdapter, app_logger, log_execution_time
from rit_backend.domain.items.model import Item
from rit_backend.domain.items.repository import ItemBank

logger = app_logger.getChild("rit.service")

SubmitResult = Union[NextQuestionResult, CompletionResult]


def _snapshot(item: Item) -> ItemSnapshot:
    return ItemSnapshot(
        difficulty=item.difficulty,
        correct_option_index=item.correct_option_index,
        option_count=len(item.options),
    )


class AssessmentOrchestrator:
    """
    Runs adaptive assessments against an item bank and a durable store.

    Args:
        item_bank: Read-only source of items
        assessment_store: Durable assessment records and response ledger
        config_provider: Per grade/subject question count and time limit
        student_directory: Grade lookup; without it every item is eligible
        session_store: Live session state, created from settings if omitted
        adjuster: Difficulty adjuster, created from ``rng`` if omitted
        selector: Item selector, created from ``rng`` if omitted
        rng: Random source shared by the default adjuster and selector
        clock: Source of the current time
        settings: Assessment settings, defaults to the loaded app config
    """

    def __init__(
        self,
        item_bank: ItemBank,
        assessment_store: AssessmentStore,
        config_provider: Optional[ConfigurationProvider] = None,
        student_directory: Optional[StudentDirectory] = None,
        session_store: Optional[SessionStore] = None,
        adjuster: Optional[DifficultyAdjuster] = None,
        selector: Optional[ItemSelector] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        settings: Optional[AssessmentConfig] = None
    ):
        self.settings = settings or get_config().assessment
        self.item_bank = item_bank
        self.assessment_store = assessment_store
        self.config_provider = config_provider
        self.student_directory = student_directory
        self._clock = clock or utcnow

        rng = rng or random.Random()
        self.adjuster = adjuster or DifficultyAdjuster(rng)
        self.selector = selector or ItemSelector(item_bank, rng, window=self.settings.selection_window)
        self.sessions = session_store or SessionStore(
            SessionConflictPolicy(self.settings.session_conflict_policy),
            clock=self._clock,
        )
        logger.info("Initialized assessment orchestrator")

    @log_execution_time(logger)
    async def start(self, student_id: str, subject_id: str, period: Union[str, Period]) -> StartResult:
        """
        Start a new adaptive assessment.

        Args:
            student_id: Student taking the assessment
            subject_id: Subject to assess
            period: Fall, Winter or Spring

        Returns:
            The first item with the assessment id and question count

        Raises:
            InvalidPeriodError: If ``period`` is not a known period
            SessionConflictError: If a session is live for the key and the
                conflict policy is ``reject``
            NoQuestionsAvailableError: If the subject has no eligible item
        """
        parsed_period = Period.parse(period)
        if parsed_period is None:
            raise InvalidPeriodError(period)

        key = SessionKey(student_id, subject_id, parsed_period)
        # The key stays locked until the new session is registered
        async with self.sessions.reserve(key) as register:
            now = self._clock()
            grade_id = await self._grade_of(student_id)

            prior_rit = await self.assessment_store.most_recent_rit(student_id, subject_id, now.year)
            if prior_rit is not None:
                starting_difficulty = clamp(prior_rit)
                logger.info(
                    f"Using previous RIT score {prior_rit} as starting difficulty for student "
                    f"{student_id}, subject {subject_id}"
                )
            else:
                starting_difficulty = self.settings.default_starting_difficulty
                logger.info(
                    f"No previous RIT score found, using default difficulty {starting_difficulty} "
                    f"for student {student_id}, subject {subject_id}"
                )

            item = await self.selector.select(starting_difficulty, subject_id, frozenset(), grade_id)
            if item is None:
                raise NoQuestionsAvailableError(subject_id)

            total_questions = await self._question_count(grade_id, subject_id)
            time_limit = await self._time_limit(grade_id, subject_id)

            assessment_id = await self.assessment_store.create_assessment(
                student_id,
                subject_id,
                parsed_period,
                now.year,
                total_questions=total_questions,
                time_limit_minutes=time_limit,
            )

            register(AssessmentSession(
                key=key,
                assessment_id=assessment_id,
                current_difficulty=item.difficulty,
                starting_difficulty=starting_difficulty,
                total_questions=total_questions,
                started_at=now,
                grade_id=grade_id,
                time_limit_minutes=time_limit,
                used_item_ids={item.id},
                item_snapshots={item.id: _snapshot(item)},
            ))

        logger.info(
            f"Started assessment {assessment_id} for student {student_id}, subject {subject_id}, "
            f"{parsed_period.value}: first item {item.id} at difficulty {item.difficulty}"
        )
        return StartResult(
            assessment_id=assessment_id,
            item=item.sanitized(),
            question_number=1,
            total_questions=total_questions,
            time_limit_minutes=time_limit,
        )

    @log_execution_time(logger)
    async def submit(
        self,
        student_id: str,
        assessment_id: int,
        item_id: str,
        selected_index: int
    ) -> SubmitResult:
        """
        Record an answer and move the assessment forward.

        Returns:
            NextQuestionResult while questions remain, CompletionResult once
            the assessment has been scored

        Raises:
            SessionNotFoundError: If no live session matches
            NotFoundError: If the item does not exist
            ValidationError: If the answer index is out of range, or the item
                was never presented or was already answered
            NoMoreQuestionsError: If no eligible item is left; the session
                stays open
        """
        session = await self.sessions.find(student_id, assessment_id)
        async with self.sessions.locked(session.key) as session:
            # The key may have been re-used by a newer assessment while waiting
            if session.assessment_id != assessment_id:
                raise SessionNotFoundError(assessment_id)
            return await self._apply_answer(session, item_id, selected_index)

    async def _apply_answer(
        self,
        session: AssessmentSession,
        item_id: str,
        selected_index: int
    ) -> SubmitResult:
        log = LoggerAdapter(logger, {
            "student_id": session.student_id,
            "assessment_id": session.assessment_id,
        })
        snapshot = await self._item_snapshot(session, item_id)

        if isinstance(selected_index, bool) or not isinstance(selected_index, int) \
                or not 0 <= selected_index < snapshot.option_count:
            raise ValidationError(
                f"Answer index {selected_index!r} is outside the {snapshot.option_count} options "
                f"of item {item_id}",
                errors={"selected_index": "out_of_range"},
                code="INVALID_ANSWER_INDEX",
            )
        if item_id in session.answered_item_ids:
            raise ValidationError(
                f"Item {item_id} was already answered in assessment {session.assessment_id}",
                errors={"item_id": "already_answered"},
                code="ITEM_ALREADY_ANSWERED",
            )

        is_correct = selected_index == snapshot.correct_option_index
        await self.assessment_store.append_response(
            session.assessment_id,
            session.questions_answered + 1,
            item_id,
            selected_index,
            is_correct,
            snapshot.difficulty,
        )
        order_index = session.record_answer(item_id, snapshot.difficulty, is_correct)
        log.debug(
            f"Recorded answer {order_index}/{session.total_questions} for item {item_id}: "
            f"correct={is_correct}"
        )

        now = self._clock()
        if session.is_complete:
            return await self._finalize(session, now, CompletionReason.QUESTION_COUNT_REACHED, is_correct)
        if session.time_limit_minutes is not None \
                and elapsed_minutes(session.started_at, now) >= session.time_limit_minutes:
            return await self._finalize(session, now, CompletionReason.TIME_LIMIT_REACHED, is_correct)

        next_difficulty = self.adjuster.next(session.current_difficulty, is_correct)
        session.current_difficulty = next_difficulty

        ledger = await self.assessment_store.list_responses(session.assessment_id)
        excluded = set(session.used_item_ids)
        excluded.update(response.item_id for response in ledger)

        item = await self.selector.select(next_difficulty, session.subject_id, excluded, session.grade_id)
        if item is None:
            log.warning(
                f"No more questions for assessment {session.assessment_id} after "
                f"{session.questions_answered} answers; session left open"
            )
            raise NoMoreQuestionsError(session.assessment_id)

        session.used_item_ids.add(item.id)
        session.item_snapshots[item.id] = _snapshot(item)

        return NextQuestionResult(
            is_correct=is_correct,
            current_rit=session.highest_correct_difficulty,
            next_difficulty=next_difficulty,
            item=item.sanitized(),
            question_number=session.questions_answered + 1,
            total_questions=session.total_questions,
        )

    @log_execution_time(logger)
    async def complete(self, student_id: str, assessment_id: int) -> CompletionResult:
        """
        Score and close a live assessment before its question count is reached.

        This is the way out after ``NoMoreQuestionsError``.
        """
        session = await self.sessions.find(student_id, assessment_id)
        async with self.sessions.locked(session.key) as session:
            if session.assessment_id != assessment_id:
                raise SessionNotFoundError(assessment_id)
            return await self._finalize(session, self._clock(), CompletionReason.ENDED_EARLY)

    async def _finalize(
        self,
        session: AssessmentSession,
        now: datetime.datetime,
        reason: CompletionReason,
        is_correct: Optional[bool] = None
    ) -> CompletionResult:
        """
        Score the assessment from the ledger, persist it, then drop the session.

        Safe to re-run for the same assessment: the store keeps the first
        result and the session delete is idempotent.
        """
        ledger = await self.assessment_store.list_responses(session.assessment_id)
        rit_score, correct_count = score_ledger(ledger)
        if rit_score != session.highest_correct_difficulty:
            logger.warning(
                f"Ledger RIT {rit_score} differs from session counter "
                f"{session.highest_correct_difficulty} for assessment {session.assessment_id}; "
                f"using the ledger"
            )

        duration = elapsed_minutes(session.started_at, now)
        record = await self.assessment_store.finalize_assessment(
            session.assessment_id, rit_score, correct_count, duration
        )
        final = record.final_result
        session.status = SessionStatus.COMPLETED
        await self.sessions.delete(session.key)

        logger.info(
            f"Assessment {session.assessment_id} completed ({reason.value}): "
            f"RIT {final.rit_score}, {final.correct_count}/{session.questions_answered} correct"
        )
        return CompletionResult(
            assessment_id=final.assessment_id,
            rit_score=final.rit_score,
            correct_count=final.correct_count,
            total_questions=session.total_questions,
            duration_minutes=final.duration_minutes,
            reason=reason,
            is_correct=is_correct,
        )

    async def get_session(self, student_id: str, assessment_id: int) -> SessionProgress:
        """
        Progress of a live assessment.

        Raises:
            SessionNotFoundError: If no live session matches
        """
        session = await self.sessions.find(student_id, assessment_id)
        return SessionProgress(
            assessment_id=session.assessment_id,
            subject_id=session.subject_id,
            period=session.period,
            questions_answered=session.questions_answered,
            total_questions=session.total_questions,
            current_difficulty=session.current_difficulty,
            current_rit=session.highest_correct_difficulty,
            started_at=session.started_at,
        )

    async def get_results(self, student_id: str, assessment_id: int) -> AssessmentReport:
        """
        A finalized assessment with its responses.

        Raises:
            NotFoundError: If the assessment is missing, belongs to another
                student or has not been finalized
        """
        record = await self.assessment_store.get_assessment(assessment_id)
        if record is None or record.student_id != student_id or not record.is_finalized:
            raise NotFoundError("Assessment result", assessment_id, code="RESULTS_NOT_FOUND")
        responses = await self.assessment_store.list_responses(assessment_id)
        return AssessmentReport(record=record, responses=responses)

    async def list_results(self, student_id: str, subject_id: str) -> List[AssessmentRecord]:
        """
        Finalized assessments of a student in one subject, newest year first
        and Fall to Spring within a year. Empty when there are none.
        """
        return await self.assessment_store.list_finalized(student_id, subject_id)

    async def purge_idle_sessions(self) -> int:
        """
        Drop sessions idle for longer than the configured timeout.

        Returns:
            Number of sessions dropped; always 0 when the timeout is disabled
        """
        timeout = self.settings.session_idle_timeout_minutes
        if not timeout:
            return 0
        purged = await self.sessions.purge_idle(datetime.timedelta(minutes=timeout))
        for session in purged:
            logger.info(
                f"Dropped idle session for assessment {session.assessment_id} "
                f"after {session.questions_answered} answers"
            )
        return len(purged)

    async def _item_snapshot(self, session: AssessmentSession, item_id: str) -> ItemSnapshot:
        """Attributes of an item this session has presented."""
        snapshot = session.item_snapshots.get(item_id)
        if snapshot is None:
            if await self.item_bank.get_by_id(item_id) is None:
                raise NotFoundError("Item", item_id, code="QUESTION_NOT_FOUND")
            raise ValidationError(
                f"Item {item_id} was not presented in assessment {session.assessment_id}",
                errors={"item_id": "not_presented"},
                code="ITEM_NOT_PRESENTED",
            )
        return snapshot

    async def _grade_of(self, student_id: str) -> Optional[str]:
        if self.student_directory is None:
            return None
        return await self.student_directory.grade_of(student_id)

    async def _question_count(self, grade_id: Optional[str], subject_id: str) -> int:
        count = None
        if self.config_provider is not None:
            count = await self.config_provider.question_count(grade_id, subject_id)
        if not count or count < 1:
            return self.settings.default_question_count
        return count

    async def _time_limit(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        if self.config_provider is None:
            return None
        return await self.config_provider.time_limit_minutes(grade_id, subject_id)
