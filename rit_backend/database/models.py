"""
SQLAlchemy ORM models for adaptive assessments.

This module defines the database tables behind the durable collaborators:
- ItemRecord: the read-only item bank
- AssessmentRecordRow: one row per started assessment, scored at finalize
- ResponseRecord: the append-only response ledger
- AssessmentConfigurationRecord: per grade/subject question count and time limit
"""

import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    JSON, String, Text
)
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint

from rit_backend.database.base import ModelBase


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class ItemRecord(ModelBase):
    """A multiple-choice item. Rows are never updated by the assessment core."""
    __tablename__ = "items"

    id = Column(String(64), primary_key=True)
    subject_id = Column(String(64), nullable=False, index=True)
    grade_id = Column(String(64), nullable=True, index=True)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_option_index = Column(Integer, nullable=False)
    difficulty = Column(Integer, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("difficulty BETWEEN 100 AND 350", name="difficulty_range"),
        Index("idx_items_subject_difficulty", subject_id, difficulty),
    )


class AssessmentRecordRow(ModelBase):
    """
    A started assessment.

    ``rit_score`` stays NULL until the assessment is finalized; prior-score
    lookups only consider finalized rows.
    """
    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(64), nullable=False, index=True)
    subject_id = Column(String(64), nullable=False)
    period = Column(String(16), nullable=False)
    year = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=True)
    time_limit_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    rit_score = Column(Integer, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    responses = relationship(
        "ResponseRecord",
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="ResponseRecord.order_index"
    )

    __table_args__ = (
        Index("idx_assessments_student_subject_year", student_id, subject_id, year),
    )


class ResponseRecord(ModelBase):
    """One submitted answer. Append-only."""
    __tablename__ = "assessment_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id"), nullable=False, index=True)
    item_id = Column(String(64), nullable=False)
    order_index = Column(Integer, nullable=False)
    selected_index = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    item_difficulty = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    assessment = relationship("AssessmentRecordRow", back_populates="responses")

    __table_args__ = (
        UniqueConstraint("assessment_id", "order_index", name="uq_response_order"),
    )


class AssessmentConfigurationRecord(ModelBase):
    """Question count and time limit for one grade/subject combination."""
    __tablename__ = "assessment_configurations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    grade_id = Column(String(64), nullable=True, index=True)
    subject_id = Column(String(64), nullable=False, index=True)
    question_count = Column(Integer, nullable=False)
    time_limit_minutes = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
