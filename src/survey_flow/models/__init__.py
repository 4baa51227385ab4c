"""Public model re-exports for survey_flow.

Consumers should import from ``survey_flow.models`` rather than
reaching into sub-modules directly.
"""

# --- Answers ---
from survey_flow.models.answer import (
    AnswerEntry,
    AnswerStore,
    answer_to_text,
    is_empty,
)

# --- External-service contract ---
from survey_flow.models.judgment import (
    AnswerJudgment,
    GeneratedQuestion,
    GenerationRequest,
    QAPair,
    ShouldAskResult,
)

# --- Questions ---
from survey_flow.models.question import (
    Question,
    QuestionNode,
    QuestionOption,
    QuestionType,
)

# --- Flow / steps ---
from survey_flow.models.session import (
    CompletionStep,
    FlowCursor,
    FlowStep,
    QuestionPayload,
    QuestionStep,
    SubmissionInfo,
    SubmissionOutcome,
    SurveyInfo,
    ValidationReport,
    VisibilityResult,
    VisibleQuestion,
)

__all__ = [
    "AnswerEntry",
    "AnswerStore",
    "answer_to_text",
    "is_empty",
    "AnswerJudgment",
    "GeneratedQuestion",
    "GenerationRequest",
    "QAPair",
    "ShouldAskResult",
    "Question",
    "QuestionNode",
    "QuestionOption",
    "QuestionType",
    "CompletionStep",
    "FlowCursor",
    "FlowStep",
    "QuestionPayload",
    "QuestionStep",
    "SubmissionInfo",
    "SubmissionOutcome",
    "SurveyInfo",
    "ValidationReport",
    "VisibilityResult",
    "VisibleQuestion",
]
