"""
Adaptive Assessment Router

This module defines the FastAPI router exposing the assessment orchestrator:
starting an assessment, submitting answers, ending it early, and reading
progress and results. The student is identified by the ``X-Student-Id``
header, set by whatever authentication sits in front of the service.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from rit_backend.assessments.rit.service import AssessmentOrchestrator
from rit_backend.common.exceptions import BaseError
from rit_backend.common.logger import app_logger

logger = app_logger.getChild("api.router")

router = APIRouter(tags=["assessments"])

# HTTP status reported for each error kind
STATUS_BY_KIND: Dict[str, int] = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "exhaustion": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
}


class StartAssessmentRequest(BaseModel):
    """Body of ``POST /assessments/start``."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    subject_id: str = Field(..., alias="subjectId", min_length=1)
    period: str


class SubmitAnswerRequest(BaseModel):
    """Body of ``POST /assessments/answer``."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    assessment_id: int = Field(..., alias="assessmentId")
    question_id: str = Field(..., alias="questionId", min_length=1)
    answer_index: int = Field(..., alias="answerIndex", strict=True)


def get_orchestrator(request: Request) -> AssessmentOrchestrator:
    """Orchestrator built by the application lifespan."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Assessment service is not initialized"
        )
    return orchestrator


async def get_student_id(x_student_id: str = Header(..., alias="X-Student-Id", min_length=1)) -> str:
    return x_student_id


@router.post("/assessments/start")
async def start_assessment(
    body: StartAssessmentRequest,
    student_id: str = Depends(get_student_id),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    """Start an assessment and return its first question."""
    result = await orchestrator.start(student_id, body.subject_id, body.period)
    return result.to_dict()


@router.post("/assessments/answer")
async def submit_answer(
    body: SubmitAnswerRequest,
    student_id: str = Depends(get_student_id),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    """Record an answer; returns the next question or the final score."""
    result = await orchestrator.submit(student_id, body.assessment_id, body.question_id, body.answer_index)
    return result.to_dict()


@router.post("/assessments/{assessment_id}/complete")
async def complete_assessment(
    assessment_id: int = Path(..., ge=1),
    student_id: str = Depends(get_student_id),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    """Score and close an assessment before its question count is reached."""
    result = await orchestrator.complete(student_id, assessment_id)
    return result.to_dict()


@router.get("/assessments/{assessment_id}/session")
async def get_session_progress(
    assessment_id: int = Path(..., ge=1),
    student_id: str = Depends(get_student_id),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    progress = await orchestrator.get_session(student_id, assessment_id)
    return progress.to_dict()


@router.get("/assessments/results/{subject_id}")
async def list_subject_results(
    subject_id: str = Path(..., min_length=1),
    student_id: str = Depends(get_student_id),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)
) -> List[Dict[str, Any]]:
    """Completed assessments of the student in one subject."""
    records = await orchestrator.list_results(student_id, subject_id)
    return [record.to_dict() for record in records]

@router.get("/assessments/results/detailed/{assessment_id}")
async def get_assessment_results(
    assessment_id: int = Path(..., ge=1),
    student_id: str = Depends(get_student_id),
    orchestrator: AssessmentOrchestrator = Depends(get_orchestrator)
) -> Dict[str, Any]:
    """A completed assessment with every response."""
    report = await orchestrator.get_results(student_id, assessment_id)
    return report.to_dict()


async def assessment_error_handler(request: Request, exc: BaseError) -> JSONResponse:
    """
    Render an assessment error as ``{error, code, kind}``.

    Args:
        request: The incoming request
        exc: The raised error

    Returns:
        A JSON response with the status matching the error kind
    """
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.original_exception)
    else:
        logger.info(f"{request.method} {request.url.path} rejected with {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle request validation errors and return a standardized response.

    Args:
        request: The incoming request
        exc: The validation exception

    Returns:
        A JSON response with error details
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "location": list(error.get("loc", [])),
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "")
        })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Invalid request",
            "code": "INVALID_REQUEST",
            "kind": "validation",
            "details": error_details
        }
    )


__all__ = [
    "router",
    "assessment_error_handler",
    "validation_exception_handler",
    "get_orchestrator",
    "get_student_id",
]
