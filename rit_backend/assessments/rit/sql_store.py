"""
SQLAlchemy-backed collaborators for adaptive assessments.

``SqlAssessmentStore`` persists assessment records and the response ledger;
``SqlConfigurationProvider`` reads active rows of ``assessment_configurations``.
"""

import datetime
from typing import List, Optional

from sqlalchemy import and_, case, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from rit_backend.assessments.base.models import AssessmentRecord, Period, Response
from rit_backend.assessments.base.repositories import AssessmentStore, ConfigurationProvider
from rit_backend.common.db.session import get_session
from rit_backend.common.exceptions import ConflictError, DatabaseError, NotFoundError
from rit_backend.common.logger import app_logger
from rit_backend.database.models import (
    AssessmentConfigurationRecord,
    AssessmentRecordRow,
    ResponseRecord,
)

logger = app_logger.getChild("rit.sql_store")


def _record_from_row(row: AssessmentRecordRow) -> AssessmentRecord:
    return AssessmentRecord(
        assessment_id=row.id,
        student_id=row.student_id,
        subject_id=row.subject_id,
        period=Period(row.period),
        year=row.year,
        created_at=row.created_at,
        total_questions=row.total_questions,
        time_limit_minutes=row.time_limit_minutes,
        rit_score=row.rit_score,
        correct_count=row.correct_answers,
        duration_minutes=row.duration_minutes,
        completed_at=row.completed_at,
    )


def _response_from_row(row: ResponseRecord) -> Response:
    return Response(
        assessment_id=row.assessment_id,
        item_id=row.item_id,
        order_index=row.order_index,
        selected_index=row.selected_index,
        is_correct=row.is_correct,
        item_difficulty=row.item_difficulty,
    )


class SqlAssessmentStore(AssessmentStore):
    """
    Assessment store on the ``assessments`` and ``assessment_responses`` tables.

    Args:
        factory: Session factory bound to the assessment database
    """

    def __init__(self, factory: async_sessionmaker):
        self._factory = factory

    async def create_assessment(
        self,
        student_id: str,
        subject_id: str,
        period: Period,
        year: int,
        total_questions: Optional[int] = None,
        time_limit_minutes: Optional[int] = None
    ) -> int:
        try:
            async with get_session(self._factory) as session:
                row = AssessmentRecordRow(
                    student_id=student_id,
                    subject_id=subject_id,
                    period=period.value,
                    year=year,
                    total_questions=total_questions,
                    time_limit_minutes=time_limit_minutes,
                )
                session.add(row)
                await session.flush()
                return row.id
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to create assessment for student {student_id}", e) from e

    async def append_response(
        self,
        assessment_id: int,
        order_index: int,
        item_id: str,
        selected_index: int,
        is_correct: bool,
        item_difficulty: int
    ) -> Response:
        try:
            async with get_session(self._factory) as session:
                if await session.get(AssessmentRecordRow, assessment_id) is None:
                    raise NotFoundError("Assessment", assessment_id)
                row = ResponseRecord(
                    assessment_id=assessment_id,
                    item_id=item_id,
                    order_index=order_index,
                    selected_index=selected_index,
                    is_correct=is_correct,
                    item_difficulty=item_difficulty,
                )
                session.add(row)
                await session.flush()
                return _response_from_row(row)
        except IntegrityError as e:
            raise ConflictError("response order index", f"{assessment_id}/{order_index}") from e
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to append response to assessment {assessment_id}", e) from e

    async def finalize_assessment(
        self,
        assessment_id: int,
        rit_score: int,
        correct_count: int,
        duration_minutes: int
    ) -> AssessmentRecord:
        try:
            async with get_session(self._factory) as session:
                row = await session.get(AssessmentRecordRow, assessment_id)
                if row is None:
                    raise NotFoundError("Assessment", assessment_id)

                if row.rit_score is not None:
                    if (row.rit_score, row.correct_answers) != (rit_score, correct_count):
                        raise ConflictError("final result", assessment_id, code="FINAL_RESULT_CONFLICT")
                    logger.info(f"Assessment {assessment_id} already finalized, keeping stored result")
                    return _record_from_row(row)

                row.rit_score = rit_score
                row.correct_answers = correct_count
                row.duration_minutes = duration_minutes
                row.completed_at = datetime.datetime.now(datetime.timezone.utc)
                await session.flush()
                return _record_from_row(row)
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to finalize assessment {assessment_id}", e) from e

    async def most_recent_rit(self, student_id: str, subject_id: str, year: int) -> Optional[int]:
        query = (
            select(AssessmentRecordRow.rit_score)
            .where(and_(
                AssessmentRecordRow.student_id == student_id,
                AssessmentRecordRow.subject_id == subject_id,
                AssessmentRecordRow.year == year,
                AssessmentRecordRow.rit_score.is_not(None),
            ))
            .order_by(AssessmentRecordRow.created_at.desc(), AssessmentRecordRow.id.desc())
            .limit(1)
        )
        try:
            async with get_session(self._factory) as session:
                result = await session.execute(query)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to look up previous RIT for student {student_id}", e) from e

    async def list_responses(self, assessment_id: int) -> List[Response]:
        query = (
            select(ResponseRecord)
            .where(ResponseRecord.assessment_id == assessment_id)
            .order_by(ResponseRecord.order_index)
        )
        try:
            async with get_session(self._factory) as session:
                result = await session.execute(query)
                return [_response_from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to list responses of assessment {assessment_id}", e) from e

    async def get_assessment(self, assessment_id: int) -> Optional[AssessmentRecord]:
        try:
            async with get_session(self._factory) as session:
                row = await session.get(AssessmentRecordRow, assessment_id)
                return _record_from_row(row) if row is not None else None
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to load assessment {assessment_id}", e) from e

    async def list_finalized(self, student_id: str, subject_id: str) -> List[AssessmentRecord]:
        period_rank = case(
            {period.value: period.rank for period in Period},
            value=AssessmentRecordRow.period,
        )
        query = (
            select(AssessmentRecordRow)
            .where(and_(
                AssessmentRecordRow.student_id == student_id,
                AssessmentRecordRow.subject_id == subject_id,
                AssessmentRecordRow.rit_score.is_not(None),
            ))
            .order_by(
                AssessmentRecordRow.year.desc(),
                period_rank,
                AssessmentRecordRow.created_at.desc(),
                AssessmentRecordRow.id.desc(),
            )
        )
        try:
            async with get_session(self._factory) as session:
                result = await session.execute(query)
                return [_record_from_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to list results of student {student_id}", e) from e


class SqlConfigurationProvider(ConfigurationProvider):
    """
    Configuration provider reading active ``assessment_configurations`` rows.

    A row with a NULL grade applies to every grade of its subject; a row for
    the exact grade wins over it.
    """

    def __init__(self, factory: async_sessionmaker):
        self._factory = factory

    async def _active_row(self, grade_id: Optional[str], subject_id: str) -> Optional[AssessmentConfigurationRecord]:
        query = select(AssessmentConfigurationRecord).where(and_(
            AssessmentConfigurationRecord.subject_id == subject_id,
            AssessmentConfigurationRecord.is_active.is_(True),
        ))
        try:
            async with get_session(self._factory) as session:
                rows = (await session.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to load configuration for subject {subject_id}", e) from e

        exact = [row for row in rows if grade_id is not None and row.grade_id == grade_id]
        if exact:
            return exact[0]
        fallback = [row for row in rows if row.grade_id is None]
        return fallback[0] if fallback else None

    async def question_count(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        row = await self._active_row(grade_id, subject_id)
        return row.question_count if row is not None else None

    async def time_limit_minutes(self, grade_id: Optional[str], subject_id: str) -> Optional[int]:
        row = await self._active_row(grade_id, subject_id)
        return row.time_limit_minutes if row is not None else None
