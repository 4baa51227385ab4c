"""Flow endpoints — form-mode visibility, chat-mode stepping, validation.

All flow endpoints are stateless: the client sends the current answers
(wire shape of ``AnswerStore.snapshot()``) and, in chat mode, the cursor;
the server returns the resolved step and the updated answers.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from survey_flow.engine import FlowEngine
from survey_flow.models.answer import AnswerStore
from survey_flow.models.session import FlowCursor, FlowStep, ValidationReport, VisibleQuestion
from survey_flow.prompt import PromptManager
from survey_flow.service import SurveyService
from survey_flow.validator import SubmissionValidator

from survey_server.dependencies import get_db, get_prompts, get_service

router = APIRouter(tags=["flow"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class AnswersRequest(BaseModel):
    """Body carrying the respondent's current answers."""
    answers: dict[str, Any] = {}


class ChatAdvanceRequest(BaseModel):
    """Body for POST /surveys/{id}/chat/advance."""
    cursor: FlowCursor
    answers: dict[str, Any] = {}
    value: Any = None


class ChatPromptRequest(BaseModel):
    """Body for POST /surveys/{id}/chat/prompt."""
    cursor: FlowCursor
    answers: dict[str, Any] = {}
    # The reply the respondent just gave (omit on the first turn)
    answer: str | None = None
    error: str | None = None


class ChatStepResponse(BaseModel):
    """Resolved chat step, updated answers and a ready-to-show bot message."""
    step: FlowStep
    answers: dict[str, Any]
    message: str


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/surveys/{survey_id}/visible")
async def visible_questions(
    survey_id: str,
    body: AnswersRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> list[VisibleQuestion]:
    """Form mode: every currently visible question with its iteration count."""
    tree = await service.get_tree(db, survey_id)
    engine = FlowEngine(tree, judge=service.judge)
    return engine.get_visible_questions(AnswerStore.from_payload(body.answers))


@router.post("/surveys/{survey_id}/chat/start")
async def chat_start(
    survey_id: str,
    body: AnswersRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    prompts: PromptManager = Depends(get_prompts),
) -> ChatStepResponse:
    """Resolve the first askable question."""
    tree = await service.get_tree(db, survey_id)
    answers = AnswerStore.from_payload(body.answers)
    step = await FlowEngine(tree, judge=service.judge).start(answers)
    return ChatStepResponse(
        step=step,
        answers=answers.snapshot(),
        message=prompts.render_bot_message(step, is_first=True),
    )


@router.post("/surveys/{survey_id}/chat/advance")
async def chat_advance(
    survey_id: str,
    body: ChatAdvanceRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    prompts: PromptManager = Depends(get_prompts),
) -> ChatStepResponse:
    """Answer the cursor's question and resolve the next step.

    A rejected answer returns the same cursor with ``step.error`` set and
    the answers unchanged.  A stale cursor (question hidden by the current
    answers) returns 409.
    """
    tree = await service.get_tree(db, survey_id)
    answers = AnswerStore.from_payload(body.answers)
    step = await FlowEngine(tree, judge=service.judge).advance(body.cursor, answers, body.value)
    return ChatStepResponse(
        step=step,
        answers=answers.snapshot(),
        message=prompts.render_bot_message(step),
    )


@router.post("/surveys/{survey_id}/chat/prompt")
async def chat_prompt(
    survey_id: str,
    body: ChatPromptRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
    prompts: PromptManager = Depends(get_prompts),
) -> dict:
    """Render the conversational-reply prompt for the cursor's step.

    Returns ``{prompt: "..."}`` for an external text generator to phrase
    the assistant's next message.
    """
    tree = await service.get_tree(db, survey_id)
    answers = AnswerStore.from_payload(body.answers)
    engine = FlowEngine(tree, judge=service.judge)
    step = await engine.current_step(body.cursor, answers, error=body.error)
    prompt = prompts.render_chat_turn(
        step,
        answer=body.answer,
        is_first=body.answer is None and body.error is None,
    )
    return {"prompt": prompt}


@router.post("/surveys/{survey_id}/validate")
async def validate(
    survey_id: str,
    body: AnswersRequest,
    db: AsyncSession = Depends(get_db),
    service: SurveyService = Depends(get_service),
) -> ValidationReport:
    """Validate answers without storing them."""
    tree = await service.get_tree(db, survey_id)
    validator = SubmissionValidator(tree, service.judge)
    return await validator.validate(AnswerStore.from_payload(body.answers))
