"""Submission endpoints — submit, list, follow-up questions, personalised answers."""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from survey_flow.models.answer import AnswerStore
from survey_flow.models.session import SubmissionInfo
from survey_flow.service import SurveyService

from survey_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from survey_server.dependencies import get_db, get_service

router = APIRouter(tags=["submissions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class SubmitRequest(BaseModel):
    """Body for POST /surveys/{id}/submissions."""
    answers: dict[str, Any]
    respondent_name: str | None = None
    # {latitude, longitude, city, country, device_type}
    metadata: dict[str, Any] = {}
    # chat submissions also honour the should-ask veto
    mode: Literal["form", "chat"] = "form"


class PersonalizedAnswer(BaseModel):
    question: str
    answer: str


class PersonalizedAnswersRequest(BaseModel):
    """Body for POST /submissions/{id}/personalized-answers."""
    answers: list[PersonalizedAnswer]


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/surveys/{survey_id}/submissions", status_code=201)
async def submit(
    survey_id: str,
    body: SubmitRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
):
    """Validate and store a submission.

    Returns 201 with ``{ok, submission_id}`` on success, 422 with the
    per-question ``errors`` when validation fails, and 500 with ``error``
    when the answers could not be written.
    """
    outcome = await service.submit(
        db,
        survey_id,
        AnswerStore.from_payload(body.answers),
        respondent_name=body.respondent_name,
        metadata=body.metadata,
        apply_veto=body.mode == "chat",
    )
    if outcome.ok:
        return outcome
    status = 422 if outcome.errors else 500
    return JSONResponse(status_code=status, content=outcome.model_dump())


@router.get("/surveys/{survey_id}/submissions")
async def list_submissions(
    survey_id: str,
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> list[SubmissionInfo]:
    """List a survey's submissions with their answers, most recent first."""
    return await service.list_submissions(db, survey_id, limit=limit, offset=offset)


@router.post("/submissions/{submission_id}/follow-ups")
async def follow_ups(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> dict:
    """Generate personalised follow-up questions; ``[]`` when unavailable."""
    return {"questions": await service.generate_follow_ups(db, submission_id)}


@router.post("/submissions/{submission_id}/personalized-answers", status_code=201)
async def personalized_answers(
    submission_id: str,
    body: PersonalizedAnswersRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> dict:
    """Store answers to follow-up questions."""
    stored = await service.record_personalized_answers(
        db, submission_id, [(a.question, a.answer) for a in body.answers],
    )
    return {"stored": stored}
