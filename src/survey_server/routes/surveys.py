"""Survey management endpoints — create, get, list, delete, generate.

Surveys are created from the nested authoring shape (``sub_questions``)
or flat records with ``parent_question_id``; either way the stored tree
is returned in the nested shape with database ids.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from survey_flow.models.judgment import GenerationRequest
from survey_flow.models.question import QuestionNode
from survey_flow.models.session import SurveyInfo
from survey_flow.service import SurveyService

from survey_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from survey_server.dependencies import get_db, get_service

router = APIRouter(tags=["surveys"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class CreateSurveyRequest(BaseModel):
    """Body for POST /surveys."""
    title: str
    questions: list[dict[str, Any]]
    has_personalized_questions: bool = False


class GeneratedQuestionsResponse(BaseModel):
    """Builder-ready questions proposed by the generator (possibly empty)."""
    questions: list[QuestionNode]


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/surveys", status_code=201)
async def create_survey(
    body: CreateSurveyRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> SurveyInfo:
    """Store a survey.  Returns 400 with the reason for malformed trees."""
    return await service.create_survey(
        db,
        title=body.title,
        questions=body.questions,
        has_personalized_questions=body.has_personalized_questions,
    )


@router.get("/surveys")
async def list_surveys(
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> list[SurveyInfo]:
    """List stored surveys, most recent first."""
    return await service.list_surveys(db, limit=limit, offset=offset)


@router.post("/surveys/generate")
async def generate_questions(
    body: GenerationRequest,
    service: SurveyService = Depends(get_service),
) -> GeneratedQuestionsResponse:
    """Propose questions for a topic.

    Returns an empty list when no generator is configured or the generator
    fails; the builder then falls back to manual editing.
    """
    return GeneratedQuestionsResponse(questions=await service.generate_questions(body))


@router.get("/surveys/{survey_id}")
async def get_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> SurveyInfo:
    return await service.get_survey(db, survey_id)


@router.delete("/surveys/{survey_id}", status_code=204)
async def delete_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> None:
    """Delete a survey together with its questions and submissions."""
    await service.delete_survey(db, survey_id)
