"""survey_flow — Survey flow resolution SDK.

Public API:
    QuestionTree        — id-addressed question arena with document order
    VisibilityEvaluator — visibility and iteration counts from answers
    FlowEngine          — next-question resolution (chat) and visible set (form)
    FlowSession         — in-process chat session with busy rejection
    SubmissionValidator — submission-time validation
    SurveyService       — persistence-facing survey/submission operations
    SurveyLibrary       — YAML survey templates from ``surveys/``
    PromptManager       — Jinja2 prompts for the external services

Functions for UI callers:
    get_visible_questions, get_iteration_count, validate_submission

External-service interfaces:
    QuestionGenerator — ABC for question generation
    JudgmentService   — ABC for should-ask and answer-validation judgments
"""

from survey_flow.engine import FlowEngine
from survey_flow.evaluator import (
    VisibilityEvaluator,
    get_iteration_count,
    get_visible_questions,
)
from survey_flow.exceptions import ExternalServiceFault, FlowBusyError, StructuralError
from survey_flow.interfaces import JudgmentService, QuestionGenerator
from survey_flow.judgment import GuardedGenerator, GuardedJudgment
from survey_flow.library import SurveyLibrary
from survey_flow.models.answer import AnswerEntry, AnswerStore
from survey_flow.models.judgment import (
    AnswerJudgment,
    GeneratedQuestion,
    GenerationRequest,
    QAPair,
    ShouldAskResult,
)
from survey_flow.models.question import Question, QuestionNode, QuestionOption
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
from survey_flow.prompt import PromptManager
from survey_flow.service import SurveyService
from survey_flow.session import FlowSession
from survey_flow.tree import QuestionTree
from survey_flow.validator import SubmissionValidator, validate_submission

__all__ = [
    # Core
    "QuestionTree",
    "VisibilityEvaluator",
    "FlowEngine",
    "FlowSession",
    "SubmissionValidator",
    "SurveyService",
    "SurveyLibrary",
    "PromptManager",
    # UI-facing functions
    "get_visible_questions",
    "get_iteration_count",
    "validate_submission",
    # Errors
    "StructuralError",
    "FlowBusyError",
    "ExternalServiceFault",
    # External services
    "QuestionGenerator",
    "JudgmentService",
    "GuardedJudgment",
    "GuardedGenerator",
    # Models
    "AnswerEntry",
    "AnswerStore",
    "Question",
    "QuestionNode",
    "QuestionOption",
    "QAPair",
    "ShouldAskResult",
    "AnswerJudgment",
    "GenerationRequest",
    "GeneratedQuestion",
    "FlowCursor",
    "FlowStep",
    "QuestionPayload",
    "QuestionStep",
    "CompletionStep",
    "VisibleQuestion",
    "VisibilityResult",
    "ValidationReport",
    "SurveyInfo",
    "SubmissionOutcome",
    "SubmissionInfo",
]
