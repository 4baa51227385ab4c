"""Data models exchanged with the external generation and judgment services.

These models form the contract between the engine and the pluggable
``QuestionGenerator`` / ``JudgmentService`` implementations defined in
``survey_flow.interfaces``.

  - QAPair: one answered question, as shown to a judgment or generation call
  - ShouldAskResult: should-ask veto decision
  - AnswerJudgment: semantic validity of a free-text answer
  - GenerationRequest: prompt + constraints for question generation
  - GeneratedQuestion: one question proposed by the generator
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from survey_flow.constants import DEFAULT_QUESTION_COUNT
from survey_flow.models.question import QuestionType


class QAPair(BaseModel):
    """A question-answer record passed to external services as history."""

    question: str
    answer: str
    # Source metadata; external services may ignore these
    question_id: Optional[str] = None
    iteration: Optional[int] = None


class ShouldAskResult(BaseModel):
    """Whether a structurally visible question is still worth asking."""

    ask: bool = True
    reason: str = ""


class AnswerJudgment(BaseModel):
    """Semantic validity of an answer; ``suggestion`` is shown when invalid."""

    valid: bool = True
    suggestion: str = ""


class GenerationRequest(BaseModel):
    """Prompt and constraints for ``QuestionGenerator.generate``."""

    prompt: str
    instructions: Optional[str] = None
    examples: Optional[str] = None
    bank_content: Optional[str] = None
    count: int = Field(default=DEFAULT_QUESTION_COUNT, ge=1, le=50)
    # Question texts already in the survey that must not be repeated
    avoid: List[str] = []


class GeneratedQuestion(BaseModel):
    """A proposed question; the builder turns it into a ``Question``."""

    text: str
    type: QuestionType = "text"
    options: List[str] = []
