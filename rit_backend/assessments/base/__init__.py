"""
Base assessment components: models, typed errors and collaborator interfaces.
"""

from rit_backend.assessments.base.models import (
    AssessmentRecord,
    AssessmentReport,
    AssessmentSession,
    CompletionReason,
    CompletionResult,
    FinalResult,
    ItemSnapshot,
    NextQuestionResult,
    Period,
    Response,
    SessionKey,
    SessionProgress,
    SessionStatus,
    StartResult,
)
from rit_backend.assessments.base.exceptions import (
    InvalidPeriodError,
    NoMoreQuestionsError,
    NoQuestionsAvailableError,
    SessionConflictError,
    SessionNotFoundError,
)
from rit_backend.assessments.base.repositories import (
    AssessmentStore,
    ConfigurationProvider,
    StudentDirectory,
)

__all__ = [
    'AssessmentRecord',
    'AssessmentReport',
    'AssessmentSession',
    'AssessmentStore',
    'CompletionReason',
    'CompletionResult',
    'ConfigurationProvider',
    'FinalResult',
    'InvalidPeriodError',
    'ItemSnapshot',
    'NextQuestionResult',
    'NoMoreQuestionsError',
    'NoQuestionsAvailableError',
    'Period',
    'Response',
    'SessionConflictError',
    'SessionKey',
    'SessionNotFoundError',
    'SessionProgress',
    'SessionStatus',
    'StartResult',
    'StudentDirectory',
]
