"""VisibilityEvaluator — decides which questions are visible and how often they repeat.

Visibility is a pure function of (tree, answers):

  - **conditional child**: visible only if its parent is visible and the
    parent's canonical answer equals the trigger value case-insensitively
    (membership for multi-select and iterative parent answers).  A child
    without a trigger follows its parent.
  - **iterative**: repeats ``floor(n)`` times where ``n`` is the numeric
    answer of its (visible) source question, capped at ``MAX_ITERATIONS``;
    missing, non-numeric, out-of-range or non-positive answers hide it.
  - everything else is visible once its ancestors are.

On top of structural visibility, :meth:`VisibilityEvaluator.resolve_visibility`
consults the judgment service's should-ask veto, one question at a time in
document order.  A vetoed question hides its whole subtree.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from survey_flow.checks import check_value, parse_number
from survey_flow.constants import MAX_ITERATIONS
from survey_flow.judgment import GuardedJudgment
from survey_flow.models.answer import AnswerStore, answer_to_text, is_empty
from survey_flow.models.judgment import QAPair
from survey_flow.models.question import Question
from survey_flow.models.session import QuestionPayload, VisibilityResult, VisibleQuestion
from survey_flow.tree import QuestionTree

logger = logging.getLogger(__name__)


def _norm(value: Any) -> str:
    """Lower-cased text form of one answer value, for trigger comparison."""
    if isinstance(value, bool):
        value = "Yes" if value else "No"
    elif isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip().lower()


def to_payload(question: Question) -> QuestionPayload:
    """Flatten a ``Question`` into the API payload."""
    options = None
    if question.type == "yes-no":
        options = [{"id": label, "text": label} for label in question.choice_labels]
    elif question.options:
        options = [opt.model_dump() for opt in question.options]
    constraints = None
    if question.type == "number" and (
        question.min_range is not None or question.max_range is not None
    ):
        constraints = {"min": question.min_range, "max": question.max_range}
    return QuestionPayload(
        id=question.id,
        text=question.text,
        type=question.type,
        options=options,
        constraints=constraints,
        parent_question_id=question.parent_question_id,
        is_iterative=question.is_iterative,
    )


class VisibilityEvaluator:
    """Evaluates visibility and iteration counts against an answer store."""

    def __init__(self, tree: QuestionTree) -> None:
        self.tree = tree

    # ------------------------------------------------------------------
    # Structural visibility
    # ------------------------------------------------------------------

    def trigger_matches(self, question: Question, answers: AnswerStore) -> bool:
        """True when the parent's answer satisfies ``question``'s trigger.

        The parent's answer is compared in canonical form (option labels,
        split multi-select replies), one slot at a time for iterative
        parents.  Questions without a trigger always match.
        """
        if not question.is_conditional:
            return True
        entry = answers.get(question.parent_question_id)
        if entry is None or not entry.has_answer():
            return False
        parent = self.tree.get(question.parent_question_id)
        slots = entry.values if entry.is_iterative else [entry.value]
        trigger = _norm(question.trigger_condition_value)
        return trigger in self._canonical_texts(parent, slots)

    def _canonical_texts(self, question: Question, slots: list[Any]) -> set[str]:
        texts: set[str] = set()
        for slot in slots:
            if is_empty(slot):
                continue
            canonical, error = check_value(question, slot)
            # Rejected replies are compared as given
            value = slot if error is not None else canonical
            if isinstance(value, (list, tuple)):
                texts.update(_norm(v) for v in value if not is_empty(v))
            else:
                texts.add(_norm(value))
        return texts

    def iteration_count(self, question: Question | str, answers: AnswerStore) -> int:
        """Number of repetitions: 1 for non-iterative questions.

        For iterative questions, ``floor`` of the source's answer when the
        source is visible and the answer passes the source's own checks
        (number, range) as a finite number > 0, otherwise 0.  Never more
        than ``MAX_ITERATIONS``.
        """
        q = self._resolve(question)
        if not q.is_iterative:
            return 1
        source = self.tree.get(q.iterative_source_question_id)
        if not self.is_visible(source, answers):
            return 0
        raw = answers.value(source.id)
        if isinstance(raw, (list, tuple)):
            return 0
        canonical, error = check_value(source, raw)
        if error is not None:
            return 0
        num = parse_number(canonical)
        if num is None or num <= 0:
            return 0
        count = math.floor(num)
        if count > MAX_ITERATIONS:
            logger.debug(
                "Iteration count %d for %s capped at %d", count, q.id, MAX_ITERATIONS,
            )
            return MAX_ITERATIONS
        return count

    def is_visible(
        self,
        question: Question | str,
        answers: AnswerStore,
        _memo: dict[str, bool] | None = None,
    ) -> bool:
        """Structural visibility (no judgment calls)."""
        q = self._resolve(question)
        memo = _memo if _memo is not None else {}
        if q.id in memo:
            return memo[q.id]

        visible = True
        if q.parent_question_id is not None:
            parent = self.tree.get(q.parent_question_id)
            visible = self.is_visible(parent, answers, memo) and self.trigger_matches(q, answers)
        if visible and q.is_iterative:
            visible = self.iteration_count(q, answers) > 0

        memo[q.id] = visible
        return visible

    def visibility_map(self, answers: AnswerStore) -> dict[str, bool]:
        """Structural visibility of every question, keyed by id."""
        memo: dict[str, bool] = {}
        for qid in self.tree.order:
            self.is_visible(qid, answers, memo)
        return {qid: memo[qid] for qid in self.tree.order}

    def visible_questions(self, answers: AnswerStore) -> list[VisibleQuestion]:
        """Form mode: every structurally visible question, in document order."""
        visible = self.visibility_map(answers)
        return [
            VisibleQuestion(
                question=to_payload(q),
                iteration_count=self.iteration_count(q, answers),
                depth=self.tree.depth(q.id),
            )
            for q in self.tree
            if visible[q.id]
        ]

    # ------------------------------------------------------------------
    # History + judgment
    # ------------------------------------------------------------------

    def answer_history(
        self,
        answers: AnswerStore,
        before: str | None = None,
        visible: dict[str, bool] | None = None,
    ) -> list[QAPair]:
        """Visible, answered questions in document order.

        Args:
            answers: the respondent's current answers
            before: stop at this question id (exclusive); ``None`` for all
            visible: precomputed visibility map; structural visibility is
                     computed when omitted
        """
        if visible is None:
            visible = self.visibility_map(answers)
        history: list[QAPair] = []
        for q in self.tree:
            if q.id == before:
                break
            if not visible.get(q.id) or not answers.has_answer(q.id):
                continue
            entry = answers.get(q.id)
            if entry.is_iterative:
                for i, slot in enumerate(entry.values):
                    if is_empty(slot):
                        continue
                    history.append(QAPair(
                        question=q.text, answer=answer_to_text(slot),
                        question_id=q.id, iteration=i,
                    ))
            else:
                history.append(QAPair(
                    question=q.text, answer=answer_to_text(entry.value), question_id=q.id,
                ))
        return history

    async def should_ask(
        self,
        question: Question,
        answers: AnswerStore,
        judge: GuardedJudgment,
        visible: dict[str, bool] | None = None,
    ) -> bool:
        """Judgment veto for one structurally visible question."""
        history = self.answer_history(answers, before=question.id, visible=visible)
        return await judge.should_ask(question, history)

    async def resolve_visibility(
        self,
        answers: AnswerStore,
        judge: GuardedJudgment | None = None,
    ) -> VisibilityResult:
        """Structural visibility plus the should-ask veto, in document order.

        Judgment calls are awaited one at a time.  Without a judge this is
        the structural result.
        """
        structural = self.visibility_map(answers)
        final: dict[str, bool] = {}
        for q in self.tree:
            visible = structural[q.id]
            if visible and q.parent_question_id is not None:
                # Vetoed parents take their subtree with them
                visible = final[q.parent_question_id]
            if visible and judge is not None:
                visible = await self.should_ask(q, answers, judge, structural)
            final[q.id] = visible

        questions = [
            VisibleQuestion(
                question=to_payload(q),
                iteration_count=self.iteration_count(q, answers),
                depth=self.tree.depth(q.id),
            )
            for q in self.tree
            if final[q.id]
        ]
        return VisibilityResult(visible=final, questions=questions)

    def _resolve(self, question: Question | str) -> Question:
        return self.tree.get(question) if isinstance(question, str) else question


# ---------------------------------------------------------------------------
# Module-level conveniences for UI callers
# ---------------------------------------------------------------------------

def get_visible_questions(tree: QuestionTree, answers: AnswerStore) -> list[VisibleQuestion]:
    """Every currently visible question with its iteration count."""
    return VisibilityEvaluator(tree).visible_questions(answers)


def get_iteration_count(tree: QuestionTree, question: Question | str, answers: AnswerStore) -> int:
    """How many times ``question`` must be asked given the current answers."""
    return VisibilityEvaluator(tree).iteration_count(question, answers)
