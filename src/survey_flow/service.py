"""SurveyService — persistence-facing operations over the flow SDK.

Ties the question tree, the submission validator and the external-service
guards to the ``survey_db`` repositories.  Every method accepts an
``AsyncSession`` from the caller so the caller (typically a FastAPI
endpoint) controls transaction boundaries; the service only flushes.

Submission protocol:

  1. validate the answers; stop with the per-question errors if not ok
  2. create the submission row
  3. write one answer row per visible question (per repetition for
     iterative ones) inside a savepoint
  4. if the write fails or writes nothing, delete the submission row, clear
     the answer store and report the failure
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.models.submission import Submission, SubmissionAnswer
from survey_db.models.survey import Survey, SurveyQuestion
from survey_db.repository import SubmissionRepository, SurveyRepository

from survey_flow.checks import check_value
from survey_flow.evaluator import VisibilityEvaluator
from survey_flow.interfaces import JudgmentService, QuestionGenerator
from survey_flow.judgment import GuardedGenerator, GuardedJudgment
from survey_flow.models.answer import AnswerStore, answer_to_text, is_empty
from survey_flow.models.judgment import GeneratedQuestion, GenerationRequest, QAPair
from survey_flow.models.question import Question, QuestionNode
from survey_flow.models.session import SubmissionInfo, SubmissionOutcome, SurveyInfo
from survey_flow.tree import QuestionTree
from survey_flow.validator import SubmissionValidator

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Your answers could not be saved. Please try again."


def _parse_uuid(value: str | uuid.UUID, kind: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValueError(f"{kind} {value!r} not found") from None


def generated_to_nodes(generated: Iterable[GeneratedQuestion]) -> list[QuestionNode]:
    """Turn generator output into builder-ready question nodes.

    Choice questions proposed without options fall back to free text;
    options proposed for other types are dropped.
    """
    nodes: list[QuestionNode] = []
    for index, g in enumerate(generated, start=1):
        qtype = g.type
        options: list[str] = list(g.options)
        if qtype in ("multiple-choice", "multiple-choice-multi") and not options:
            qtype = "text"
        if qtype not in ("multiple-choice", "multiple-choice-multi"):
            options = []
        nodes.append(QuestionNode(id=f"gen_{index}", text=g.text, type=qtype, options=options))
    return nodes


class SurveyService:
    """Survey CRUD, generation and submission over ``survey_db``.

    Args:
        judge: judgment service for answer validation (optional)
        generator: question generator (optional)
    """

    def __init__(
        self,
        judge: JudgmentService | GuardedJudgment | None = None,
        generator: QuestionGenerator | GuardedGenerator | None = None,
        survey_repo: SurveyRepository | None = None,
        submission_repo: SubmissionRepository | None = None,
    ) -> None:
        self.judge = GuardedJudgment.wrap(judge)
        self.generator = (
            generator if isinstance(generator, GuardedGenerator) else GuardedGenerator(generator)
        )
        self._surveys = survey_repo or SurveyRepository()
        self._submissions = submission_repo or SubmissionRepository()

    # ==================================================================
    # Surveys
    # ==================================================================

    async def create_survey(
        self,
        db: AsyncSession,
        *,
        title: str,
        questions: list[dict[str, Any]] | list[QuestionNode] | QuestionTree,
        has_personalized_questions: bool = False,
    ) -> SurveyInfo:
        """Validate and store a survey; question ids are re-keyed to UUIDs.

        Raises ``StructuralError`` (a ``ValueError``) for malformed trees.
        The caller must ``await db.commit()`` to persist.
        """
        if not title or not title.strip():
            raise ValueError("Survey title must not be empty")
        tree = self._build_tree(questions)
        if len(tree) == 0:
            raise ValueError("Survey must have at least one question")

        survey = await self._surveys.create_survey(
            db, title=title.strip(), has_personalized_questions=has_personalized_questions,
        )

        # Map authoring ids to row ids so parent/source links stay id-based
        id_map = {q.id: uuid.uuid4() for q in tree}
        rows = [
            {
                "id": id_map[q.id],
                "text": q.text,
                "type": q.type,
                "options": [opt.model_dump() for opt in q.options],
                "min_range": q.min_range,
                "max_range": q.max_range,
                "expected_answers": list(q.expected_answers),
                "parent_question_id": id_map.get(q.parent_question_id),
                "trigger_condition_value": q.trigger_condition_value,
                "is_iterative": q.is_iterative,
                "iterative_source_question_id": (
                    id_map[q.iterative_source_question_id] if q.is_iterative else None
                ),
            }
            for q in tree
        ]
        stored = await self._surveys.add_questions(db, survey.id, rows)
        logger.info("Created survey %s with %d questions", survey.id, len(stored))
        return self._to_survey_info(survey, self._tree_from_rows(stored))

    async def get_survey(self, db: AsyncSession, survey_id: str) -> SurveyInfo:
        survey = await self._load_survey(db, survey_id)
        tree = self._tree_from_rows(await self._surveys.get_questions(db, survey.id))
        return self._to_survey_info(survey, tree)

    async def get_tree(self, db: AsyncSession, survey_id: str) -> QuestionTree:
        """Load a stored survey's question tree.  Raises ``ValueError`` if not found."""
        survey = await self._load_survey(db, survey_id)
        return self._tree_from_rows(await self._surveys.get_questions(db, survey.id))

    async def list_surveys(
        self, db: AsyncSession, *, limit: int = 20, offset: int = 0
    ) -> list[SurveyInfo]:
        """List surveys, most recent first (question lists omitted)."""
        rows = await self._surveys.list_surveys(db, limit=limit, offset=offset)
        return [self._to_survey_info(row) for row in rows]

    async def delete_survey(self, db: AsyncSession, survey_id: str) -> None:
        survey = await self._load_survey(db, survey_id)
        await self._surveys.delete_survey(db, survey)
        logger.info("Deleted survey %s", survey.id)

    # ==================================================================
    # Generation
    # ==================================================================

    async def generate_questions(self, request: GenerationRequest) -> list[QuestionNode]:
        """Ask the generator for questions; an unavailable or failing generator yields []."""
        generated = await self.generator.generate(request)
        return generated_to_nodes(generated)

    async def generate_follow_ups(self, db: AsyncSession, submission_id: str) -> list[str]:
        """Personalised follow-up questions from a stored submission's answers."""
        submission = await self._load_submission(db, submission_id)
        tree = await self.get_tree(db, str(submission.survey_id))
        answers = await self._submissions.get_answers(db, submission.id)

        pairs: list[QAPair] = []
        for row in answers:
            qid = str(row.question_id)
            if qid not in tree:
                continue
            pairs.append(QAPair(
                question=tree.get(qid).text,
                answer=answer_to_text(row.value),
                question_id=qid,
                iteration=row.iteration,
            ))
        return await self.generator.generate_follow_ups(pairs)

    # ==================================================================
    # Submissions
    # ==================================================================

    async def submit(
        self,
        db: AsyncSession,
        survey_id: str,
        answers: AnswerStore,
        *,
        respondent_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        apply_veto: bool = False,
    ) -> SubmissionOutcome:
        """Validate and persist a submission.

        Only answers to visible questions are written.  On a failed write
        the submission row is removed and ``answers`` is cleared.
        """
        tree = await self.get_tree(db, survey_id)
        report = await SubmissionValidator(tree, self.judge).validate(
            answers, apply_veto=apply_veto,
        )
        if not report.ok:
            return SubmissionOutcome(ok=False, errors=report.errors)

        rows = self._answer_rows(tree, answers, report.visible_question_ids)
        submission = await self._submissions.create_submission(
            db,
            survey_id=_parse_uuid(survey_id, "Survey"),
            respondent_name=respondent_name,
            metadata=metadata,
        )

        written = 0
        try:
            async with db.begin_nested():
                written = await self._submissions.add_answers(db, submission.id, rows)
        except Exception:
            logger.exception("Failed to write answers for submission %s", submission.id)
            written = 0

        if written == 0:
            logger.warning("Rolling back submission %s: no answers written", submission.id)
            await self._submissions.delete_submission(db, submission.id)
            answers.clear()
            return SubmissionOutcome(ok=False, error=SAVE_FAILED_MESSAGE)

        logger.info(
            "Stored submission %s for survey %s (%d answers)",
            submission.id, survey_id, written,
        )
        answers.clear()
        return SubmissionOutcome(ok=True, submission_id=str(submission.id))

    async def get_submission(self, db: AsyncSession, submission_id: str) -> SubmissionInfo:
        submission = await self._load_submission(db, submission_id)
        answers = await self._submissions.get_answers(db, submission.id)
        return self._to_submission_info(submission, answers)

    async def list_submissions(
        self,
        db: AsyncSession,
        survey_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[SubmissionInfo]:
        survey = await self._load_survey(db, survey_id)
        rows = await self._submissions.list_submissions(
            db, survey.id, limit=limit, offset=offset,
        )
        out = []
        for row in rows:
            answers = await self._submissions.get_answers(db, row.id)
            out.append(self._to_submission_info(row, answers))
        return out

    async def record_personalized_answers(
        self,
        db: AsyncSession,
        submission_id: str,
        pairs: list[tuple[str, str]],
    ) -> int:
        """Store answers to follow-up questions; blank answers are skipped."""
        submission = await self._load_submission(db, submission_id)
        kept = [(q.strip(), a.strip()) for q, a in pairs if q.strip() and a.strip()]
        if not kept:
            return 0
        return await self._submissions.add_personalized_answers(db, submission.id, kept)

    # ==================================================================
    # Helpers
    # ==================================================================

    @staticmethod
    def _build_tree(
        questions: list[dict[str, Any]] | list[QuestionNode] | QuestionTree,
    ) -> QuestionTree:
        if isinstance(questions, QuestionTree):
            return questions
        items = list(questions)
        if items and all(isinstance(q, QuestionNode) for q in items):
            return QuestionTree.from_nodes(items)
        return QuestionTree.from_dicts(
            [q.model_dump() if isinstance(q, QuestionNode) else q for q in items]
        )

    @staticmethod
    def _tree_from_rows(rows: list[SurveyQuestion]) -> QuestionTree:
        questions = []
        for row in rows:
            is_iterative = row.is_iterative
            if is_iterative and row.iterative_source_question_id is None:
                # Source row was deleted (ON DELETE SET NULL)
                logger.warning("Question %s lost its iterative source; treating as single", row.id)
                is_iterative = False
            questions.append(Question(
                id=str(row.id),
                text=row.text,
                type=row.type,
                options=row.options or [],
                min_range=row.min_range,
                max_range=row.max_range,
                expected_answers=row.expected_answers or [],
                parent_question_id=(
                    str(row.parent_question_id) if row.parent_question_id else None
                ),
                trigger_condition_value=row.trigger_condition_value,
                is_iterative=is_iterative,
                iterative_source_question_id=(
                    str(row.iterative_source_question_id) if is_iterative else None
                ),
            ))
        return QuestionTree(questions)

    @staticmethod
    def _answer_rows(
        tree: QuestionTree, answers: AnswerStore, visible_ids: list[str]
    ) -> list[dict[str, Any]]:
        """Canonical answer rows for the visible questions, document order."""
        evaluator = VisibilityEvaluator(tree)
        rows: list[dict[str, Any]] = []
        for qid in visible_ids:
            question = tree.get(qid)
            entry = answers.get(qid)
            if entry is None:
                continue
            if question.is_iterative:
                slots = [
                    (i, answers.iteration_value(qid, i))
                    for i in range(evaluator.iteration_count(question, answers))
                ]
            else:
                slots = [(None, entry.value)]
            for iteration, raw in slots:
                if is_empty(raw):
                    continue
                value, _ = check_value(question, raw)
                rows.append({
                    "question_id": _parse_uuid(qid, "Question"),
                    "iteration": iteration,
                    "value": value,
                    "started_at": entry.started_at,
                    "answered_at": entry.answered_at,
                    "time_taken_seconds": entry.time_taken_seconds,
                })
        return rows

    async def _load_survey(self, db: AsyncSession, survey_id: str) -> Survey:
        row = await self._surveys.get_survey(db, _parse_uuid(survey_id, "Survey"))
        if row is None:
            raise ValueError(f"Survey {survey_id!r} not found")
        return row

    async def _load_submission(self, db: AsyncSession, submission_id: str) -> Submission:
        row = await self._submissions.get_submission(db, _parse_uuid(submission_id, "Submission"))
        if row is None:
            raise ValueError(f"Submission {submission_id!r} not found")
        return row

    @staticmethod
    def _to_survey_info(survey: Survey, tree: QuestionTree | None = None) -> SurveyInfo:
        return SurveyInfo(
            id=str(survey.id),
            title=survey.title,
            has_personalized_questions=bool(survey.has_personalized_questions),
            created_at=survey.created_at,
            questions=tree.to_nested() if tree is not None else [],
        )

    @staticmethod
    def _to_submission_info(
        submission: Submission, answers: list[SubmissionAnswer]
    ) -> SubmissionInfo:
        return SubmissionInfo(
            id=str(submission.id),
            survey_id=str(submission.survey_id),
            respondent_name=submission.respondent_name,
            metadata=submission.submission_metadata or {},
            created_at=submission.created_at,
            answers=[
                {
                    "question_id": str(a.question_id),
                    "iteration": a.iteration,
                    "value": a.value,
                    "started_at": a.started_at,
                    "answered_at": a.answered_at,
                    "time_taken_seconds": a.time_taken_seconds,
                }
                for a in answers
            ],
        )
