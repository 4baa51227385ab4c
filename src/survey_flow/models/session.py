"""Flow and step models — the contract between the engine and API callers.

These models define what the engine returns to UI callers.  They are
intentionally decoupled from the ORM models in ``survey_db`` so that API
consumers never see database internals.

Step types (chat mode):
  - QuestionStep: ask one question (or one repetition of an iterative one)
  - CompletionStep: no question left to ask

Form mode returns ``VisibleQuestion`` entries instead; submission-time
validation returns a ``ValidationReport``.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel


class QuestionPayload(BaseModel):
    """Flattened question for API consumers.

    Strips tree bookkeeping and presents only what the UI needs to render
    the question.
    """

    id: str
    text: str
    type: str
    # [{id, text}]; yes-no questions get {"id": "Yes", "text": "Yes"} / No
    options: list[dict] | None = None
    # {min, max} for number questions when a range is set
    constraints: dict | None = None
    parent_question_id: str | None = None
    is_iterative: bool = False


class FlowCursor(BaseModel):
    """Chat-mode position: the question being asked and the iteration in progress.

    Derived session state; never persisted.
    """

    status: Literal["not_started", "asking", "complete"] = "not_started"
    question_id: Optional[str] = None
    iteration: int = 0

    @classmethod
    def asking(cls, question_id: str, iteration: int = 0) -> "FlowCursor":
        return cls(status="asking", question_id=question_id, iteration=iteration)

    @classmethod
    def complete(cls) -> "FlowCursor":
        return cls(status="complete")


class QuestionStep(BaseModel):
    """Engine step: ask one question and wait for the answer.

    ``error`` is set when the previous answer for this same position was
    rejected; the cursor did not move.
    """

    type: Literal["question"] = "question"
    cursor: FlowCursor
    question: QuestionPayload
    iteration: int = 0
    # Total repetitions for iterative questions, 1 otherwise
    iteration_count: int = 1
    error: str | None = None


class CompletionStep(BaseModel):
    """Engine step: every visible question has been asked."""

    type: Literal["complete"] = "complete"
    cursor: FlowCursor


# Callers can match on step.type to dispatch rendering logic.
FlowStep = QuestionStep | CompletionStep


class VisibleQuestion(BaseModel):
    """Form-mode entry: a currently visible question and how often to render it."""

    question: QuestionPayload
    iteration_count: int
    # 0 for root questions, +1 per ancestor
    depth: int = 0


class VisibilityResult(BaseModel):
    """Visibility of every question plus the ordered visible subset."""

    visible: dict[str, bool]
    questions: list[VisibleQuestion]

    @property
    def visible_ids(self) -> list[str]:
        return [vq.question.id for vq in self.questions]


class ValidationReport(BaseModel):
    """Submission-time validation outcome.

    ``errors`` is keyed by question id, or ``"<id>-<iteration>"`` for one
    repetition of an iterative question.
    """

    ok: bool
    errors: dict[str, str] = {}
    visible_question_ids: list[str] = []


class SurveyInfo(BaseModel):
    """Public view of a stored survey."""

    id: str
    title: str
    has_personalized_questions: bool = False
    created_at: datetime
    # Nested authoring shape ({..., sub_questions: [...]}) derived from the arena
    questions: list[dict[str, Any]] = []


class SubmissionOutcome(BaseModel):
    """Result of ``SurveyService.submit``."""

    ok: bool
    submission_id: str | None = None
    errors: dict[str, str] = {}
    error: str | None = None


class SubmissionInfo(BaseModel):
    """Public view of a stored submission with its answer rows."""

    id: str
    survey_id: str
    respondent_name: str | None = None
    metadata: dict = {}
    created_at: datetime
    answers: list[dict[str, Any]] = []
