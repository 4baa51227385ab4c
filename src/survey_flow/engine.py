"""FlowEngine — next-question resolution for chat mode and visibility for form mode.

Stateless engine pattern: the engine holds only the (immutable) question
tree and the judgment guard.  The caller owns the ``AnswerStore`` and the
``FlowCursor`` and passes them into every call.

Chat-mode cursor lifecycle::

    not_started --start()--> asking(q, 0) --advance()--> asking(q', i') ... --> complete

On each accepted answer for ``asking(q, i)`` the next position is, in order:

    a. the next repetition of ``q`` if it is iterative and ``i + 1 < count``
    b. the first askable descendant of ``q``
    c. the first askable question after ``q``'s subtree
    d. complete

"Askable" means structurally visible and not vetoed by the should-ask
judgment.  Only the next step is resolved; nothing is precomputed, so
answers that change visibility take effect immediately.

Form mode shares the same evaluator through :meth:`get_visible_questions`.
"""

from __future__ import annotations

import logging
from typing import Any

from survey_flow.checks import check_value
from survey_flow.constants import INVALID_ANSWER_MESSAGE
from survey_flow.evaluator import VisibilityEvaluator, to_payload
from survey_flow.interfaces import JudgmentService
from survey_flow.judgment import GuardedJudgment
from survey_flow.models.answer import AnswerStore
from survey_flow.models.question import Question
from survey_flow.models.session import (
    CompletionStep,
    FlowCursor,
    FlowStep,
    QuestionStep,
    VisibleQuestion,
)
from survey_flow.tree import QuestionTree

logger = logging.getLogger(__name__)


class FlowEngine:
    """Resolves the next question to present and validates each reply.

    Args:
        tree: the survey's question tree
        judge: judgment service (raw or already guarded); ``None`` disables
               the should-ask veto and semantic answer validation
    """

    def __init__(
        self,
        tree: QuestionTree,
        judge: JudgmentService | GuardedJudgment | None = None,
    ) -> None:
        self.tree = tree
        self.evaluator = VisibilityEvaluator(tree)
        self.judge = GuardedJudgment.wrap(judge)

    # ==================================================================
    # Form mode
    # ==================================================================

    def get_visible_questions(self, answers: AnswerStore) -> list[VisibleQuestion]:
        """Every structurally visible question with its iteration count."""
        return self.evaluator.visible_questions(answers)

    # ==================================================================
    # Chat mode
    # ==================================================================

    async def start(self, answers: AnswerStore) -> FlowStep:
        """First askable question in document order, iteration 0."""
        qid = await self._first_askable(self.tree.order, answers)
        if qid is None:
            logger.info("No askable question; flow complete at start")
            return CompletionStep(cursor=FlowCursor.complete())
        return self._question_step(FlowCursor.asking(qid), answers)

    async def current_step(
        self, cursor: FlowCursor, answers: AnswerStore, error: str | None = None
    ) -> FlowStep:
        """Re-render the step for an existing cursor (no state change)."""
        if cursor.status == "not_started":
            return await self.start(answers)
        if cursor.status == "complete":
            return CompletionStep(cursor=cursor)
        self._check_cursor(cursor, answers)
        return self._question_step(cursor, answers, error=error)

    async def advance(
        self, cursor: FlowCursor, answers: AnswerStore, value: Any
    ) -> FlowStep:
        """Validate ``value`` for the cursor position and move to the next step.

        On a rejected answer the same cursor comes back with ``error`` set
        and the answer store is left untouched.

        Raises:
            ValueError: the cursor is not asking, its question is no longer
                        visible, or its iteration index is out of range
        """
        if cursor.status != "asking":
            raise ValueError(f"Cannot advance a cursor that is {cursor.status}")
        question = self._check_cursor(cursor, answers)

        # --- Local check, then semantic check for free text ---
        canonical, error = check_value(question, value)
        if error is None and question.type == "text":
            judgment = await self.judge.validate_answer(question, canonical)
            if not judgment.valid:
                error = judgment.suggestion or INVALID_ANSWER_MESSAGE
        if error is not None:
            logger.debug("Answer rejected for %s[%d]: %s", question.id, cursor.iteration, error)
            return self._question_step(cursor, answers, error=error)

        answers.record(
            question.id,
            canonical,
            iteration=cursor.iteration if question.is_iterative else None,
        )

        nxt = await self._resolve_next(question, cursor.iteration, answers)
        if nxt.status == "complete":
            logger.info("Flow complete after %s", question.id)
            return CompletionStep(cursor=nxt)
        return self._question_step(nxt, answers)

    # ==================================================================
    # Resolution helpers
    # ==================================================================

    async def _resolve_next(
        self, question: Question, iteration: int, answers: AnswerStore
    ) -> FlowCursor:
        # a. next repetition of the same question
        if question.is_iterative:
            if iteration + 1 < self.evaluator.iteration_count(question, answers):
                return FlowCursor.asking(question.id, iteration + 1)

        # b. first askable descendant
        qid = await self._first_askable(
            [q.id for q in self.tree.descendants(question.id)], answers
        )
        if qid is not None:
            return FlowCursor.asking(qid)

        # c. first askable question after the subtree
        qid = await self._first_askable(
            [q.id for q in self.tree.following(question.id)], answers
        )
        if qid is not None:
            return FlowCursor.asking(qid)

        # d. done
        return FlowCursor.complete()

    async def _first_askable(self, candidates: list[str], answers: AnswerStore) -> str | None:
        """First candidate that is visible and not vetoed.

        Candidates are in document order; a vetoed question's subtree is
        skipped along with it.
        """
        visible = self.evaluator.visibility_map(answers)
        skipped: set[str] = set()
        for qid in candidates:
            if not visible[qid] or qid in skipped:
                continue
            question = self.tree.get(qid)
            if await self.evaluator.should_ask(question, answers, self.judge, visible):
                return qid
            skipped.update(q.id for q in self.tree.descendants(qid))
        return None

    def _check_cursor(self, cursor: FlowCursor, answers: AnswerStore) -> Question:
        if cursor.question_id is None or cursor.question_id not in self.tree:
            raise ValueError(f"Question {cursor.question_id!r} not found in survey")
        question = self.tree.get(cursor.question_id)
        if not self.evaluator.is_visible(question, answers):
            raise ValueError(f"Question {question.id!r} is no longer visible")
        count = self.evaluator.iteration_count(question, answers)
        if not 0 <= cursor.iteration < count:
            raise ValueError(
                f"Iteration {cursor.iteration} out of range for question "
                f"{question.id!r} (count={count})"
            )
        return question

    def _question_step(
        self, cursor: FlowCursor, answers: AnswerStore, error: str | None = None
    ) -> QuestionStep:
        question = self.tree.get(cursor.question_id)
        return QuestionStep(
            cursor=cursor,
            question=to_payload(question),
            iteration=cursor.iteration,
            iteration_count=self.evaluator.iteration_count(question, answers),
            error=error,
        )
