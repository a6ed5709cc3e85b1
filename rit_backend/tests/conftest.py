"""
Test fixtures for the assessment core.
"""

import pytest

from rit_backend.assessments.rit.memory_store import MemoryAssessmentStore
from rit_backend.common.config import AssessmentConfig
from rit_backend.domain.items.memory_repository import MemoryItemBank
from rit_backend.tests.helpers import FixedClock, spaced_items


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def settings():
    return AssessmentConfig()


@pytest.fixture
def spaced_bank():
    """Items every 5 points from 100 to 350."""
    return MemoryItemBank(spaced_items(range(100, 351, 5)))


@pytest.fixture
def assessment_store(clock):
    return MemoryAssessmentStore(clock=clock)
