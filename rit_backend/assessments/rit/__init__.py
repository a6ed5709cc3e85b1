"""
Adaptive RIT assessment.

Exports the orchestrator together with the components it is assembled from,
so callers can swap any of them (for example a seeded random source in tests).
"""

from rit_backend.assessments.rit.difficulty import DifficultyAdjuster, STEP_CHOICES, clamp
from rit_backend.assessments.rit.memory_store import (
    MemoryAssessmentStore,
    MemoryStudentDirectory,
    StaticConfigurationProvider,
)
from rit_backend.assessments.rit.scoring import elapsed_minutes, rit_score, score_ledger
from rit_backend.assessments.rit.selection import DEFAULT_WINDOW, ItemSelector
from rit_backend.assessments.rit.service import AssessmentOrchestrator
from rit_backend.assessments.rit.session_store import SessionConflictPolicy, SessionStore

__all__ = [
    'AssessmentOrchestrator',
    'DEFAULT_WINDOW',
    'DifficultyAdjuster',
    'ItemSelector',
    'MemoryAssessmentStore',
    'MemoryStudentDirectory',
    'STEP_CHOICES',
    'SessionConflictPolicy',
    'SessionStore',
    'StaticConfigurationProvider',
    'clamp',
    'elapsed_minutes',
    'rit_score',
    'score_ledger',
]
