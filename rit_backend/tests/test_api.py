"""
API tests for the assessment router.

The application is built around an in-memory orchestrator, so no database
is touched.
"""

import random

import pytest
from fastapi.testclient import TestClient

from rit_backend.assessments.rit.memory_store import MemoryAssessmentStore
from rit_backend.assessments.rit.service import AssessmentOrchestrator
from rit_backend.common.config import AssessmentConfig
from rit_backend.domain.items.memory_repository import MemoryItemBank
from rit_backend.main import create_app
from rit_backend.tests.helpers import spaced_items

STUDENT = {"X-Student-Id": "student-1"}


@pytest.fixture
def orchestrator():
    return AssessmentOrchestrator(
        item_bank=MemoryItemBank(spaced_items([220, 225, 230])),
        assessment_store=MemoryAssessmentStore(),
        rng=random.Random(5),
        settings=AssessmentConfig(default_question_count=2),
    )


@pytest.fixture
def client(orchestrator):
    with TestClient(create_app(orchestrator=orchestrator)) as client:
        yield client


def start(client, period="Fall"):
    return client.post(
        "/api/student/assessments/start",
        json={"subjectId": "math", "period": period},
        headers=STUDENT,
    )


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200


def test_start_returns_first_question(client):
    response = start(client)
    assert response.status_code == 200
    data = response.json()
    assert data["question"]["id"] == "q225"
    assert data["question"]["questionNumber"] == 1
    assert data["question"]["totalQuestions"] == 2
    assert "correct_option_index" not in data["question"]


def test_full_flow(client):
    data = start(client).json()
    assessment_id = data["assessmentId"]

    response = client.post(
        "/api/student/assessments/answer",
        json={"assessmentId": assessment_id, "questionId": data["question"]["id"], "answerIndex": 0},
        headers=STUDENT,
    )
    assert response.status_code == 200
    step = response.json()
    assert step["completed"] is False
    assert step["isCorrect"] is True
    assert step["currentRIT"] == 225

    progress = client.get(f"/api/student/assessments/{assessment_id}/session", headers=STUDENT).json()
    assert progress["questionsAnswered"] == 1

    response = client.post(
        "/api/student/assessments/answer",
        json={"assessmentId": assessment_id, "questionId": step["question"]["id"], "answerIndex": 1},
        headers=STUDENT,
    )
    final = response.json()
    assert final["completed"] is True
    assert final["ritScore"] == 225
    assert final["correctCount"] == 1

    results = client.get(f"/api/student/assessments/results/detailed/{assessment_id}", headers=STUDENT)
    assert results.status_code == 200
    assert [r["orderIndex"] for r in results.json()["responses"]] == [1, 2]


def test_complete_early(client):
    assessment_id = start(client).json()["assessmentId"]

    response = client.post(f"/api/student/assessments/{assessment_id}/complete", headers=STUDENT)
    assert response.status_code == 200
    assert response.json()["reason"] == "ended_early"
    assert response.json()["ritScore"] == 0


def test_invalid_period(client):
    response = start(client, period="Summer")
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_PERIOD"


def test_missing_fields(client):
    response = client.post("/api/student/assessments/start", json={"period": "Fall"}, headers=STUDENT)
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


def test_missing_student_header(client):
    response = client.post("/api/student/assessments/start", json={"subjectId": "math", "period": "Fall"})
    assert response.status_code == 400


def test_unknown_session(client):
    response = client.get("/api/student/assessments/99/session", headers=STUDENT)
    assert response.status_code == 404
    assert response.json() == {
        "error": "Assessment session with ID 99 not found",
        "code": "SESSION_NOT_FOUND",
        "kind": "not_found",
    }


def test_unknown_subject(client):
    response = client.post(
        "/api/student/assessments/start",
        json={"subjectId": "reading", "period": "Fall"},
        headers=STUDENT,
    )
    assert response.status_code == 404
    assert response.json()["code"] == "NO_QUESTIONS_AVAILABLE"


def test_invalid_answer_index(client):
    data = start(client).json()
    response = client.post(
        "/api/student/assessments/answer",
        json={"assessmentId": data["assessmentId"], "questionId": data["question"]["id"], "answerIndex": 9},
        headers=STUDENT,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ANSWER_INDEX"


def test_boolean_answer_index_rejected(client):
    data = start(client).json()
    response = client.post(
        "/api/student/assessments/answer",
        json={"assessmentId": data["assessmentId"], "questionId": data["question"]["id"], "answerIndex": True},
        headers=STUDENT,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"

    progress = client.get(f"/api/student/assessments/{data['assessmentId']}/session", headers=STUDENT)
    assert progress.json()["questionsAnswered"] == 0


def test_subject_results_list_completed_assessments(client):
    assert client.get("/api/student/assessments/results/math", headers=STUDENT).json() == []

    for period in ("Winter", "Fall"):
        assessment_id = start(client, period=period).json()["assessmentId"]
        client.post(f"/api/student/assessments/{assessment_id}/complete", headers=STUDENT)
    start(client, period="Spring")

    response = client.get("/api/student/assessments/results/math", headers=STUDENT)
    assert response.status_code == 200
    assert [r["period"] for r in response.json()] == ["Fall", "Winter"]
    assert all(r["ritScore"] == 0 for r in response.json())

    other = client.get("/api/student/assessments/results/math", headers={"X-Student-Id": "student-2"})
    assert other.json() == []


def test_answer_for_item_not_presented(client):
    data = start(client).json()
    response = client.post(
        "/api/student/assessments/answer",
        json={"assessmentId": data["assessmentId"], "questionId": "q230", "answerIndex": 0},
        headers=STUDENT,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "ITEM_NOT_PRESENTED"
