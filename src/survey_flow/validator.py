"""SubmissionValidator — submission-time validation of every visible answer.

Checks, per visible question (per repetition for iterative ones):

  1. presence — empty answers get the "required" message and nothing else
  2. local type/range/option checks (``survey_flow.checks``)
  3. semantic check for non-empty ``text`` answers via the judgment
     service; failures and timeouts count as valid

Errors are keyed by question id, or ``"<id>-<iteration>"`` for one
repetition of an iterative question.  Only when the report is ``ok`` may
the caller persist the submission.
"""

from __future__ import annotations

import logging
from typing import Any

from survey_flow.checks import check_value
from survey_flow.constants import INVALID_ANSWER_MESSAGE
from survey_flow.evaluator import VisibilityEvaluator
from survey_flow.interfaces import JudgmentService
from survey_flow.judgment import GuardedJudgment
from survey_flow.models.answer import AnswerStore
from survey_flow.models.question import Question
from survey_flow.models.session import ValidationReport
from survey_flow.tree import QuestionTree

logger = logging.getLogger(__name__)


def error_key(question: Question, iteration: int) -> str:
    return f"{question.id}-{iteration}" if question.is_iterative else question.id


class SubmissionValidator:
    """Validates an answer store against a question tree."""

    def __init__(
        self,
        tree: QuestionTree,
        judge: JudgmentService | GuardedJudgment | None = None,
    ) -> None:
        self.tree = tree
        self.evaluator = VisibilityEvaluator(tree)
        self.judge = GuardedJudgment.wrap(judge)

    async def validate(self, answers: AnswerStore, *, apply_veto: bool = False) -> ValidationReport:
        """Validate every visible question.

        Args:
            answers: the respondent's answers
            apply_veto: also drop questions the should-ask judgment vetoes
                        (chat-mode submissions, where vetoed questions were
                        never asked); form mode uses structural visibility
        """
        if apply_veto:
            result = await self.evaluator.resolve_visibility(answers, self.judge)
            visible = result.questions
        else:
            visible = self.evaluator.visible_questions(answers)

        errors: dict[str, str] = {}
        for vq in visible:
            question = self.tree.get(vq.question.id)
            if question.is_iterative:
                slots = [
                    (i, answers.iteration_value(question.id, i))
                    for i in range(vq.iteration_count)
                ]
            else:
                slots = [(0, answers.value(question.id))]

            for iteration, value in slots:
                message = await self._check(question, value)
                if message is not None:
                    errors[error_key(question, iteration)] = message

        if errors:
            logger.info("Submission rejected: %d invalid answers", len(errors))
        return ValidationReport(
            ok=not errors,
            errors=errors,
            visible_question_ids=[vq.question.id for vq in visible],
        )

    async def _check(self, question: Question, value: Any) -> str | None:
        canonical, error = check_value(question, value)
        if error is not None:
            return error
        if question.type == "text":
            judgment = await self.judge.validate_answer(question, canonical)
            if not judgment.valid:
                return judgment.suggestion or INVALID_ANSWER_MESSAGE
        return None


async def validate_submission(
    tree: QuestionTree,
    answers: AnswerStore,
    judge: JudgmentService | GuardedJudgment | None = None,
) -> ValidationReport:
    """Validate ``answers`` against ``tree`` (structural visibility)."""
    return await SubmissionValidator(tree, judge).validate(answers)
