"""Async CRUD repositories for surveys and submissions.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods call ``flush()`` but never ``commit()``;
the FastAPI ``get_db`` dependency (or the cleanup CLI) commits.

The repositories deliberately avoid business-logic validation — that
belongs in the SDK layer (``survey_flow.service``).
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.models.submission import PersonalizedAnswer, Submission, SubmissionAnswer
from survey_db.models.survey import Survey, SurveyQuestion


class SurveyRepository:
    """Async read/write operations on ``surveys`` and ``survey_questions``."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_survey(
        self,
        db: AsyncSession,
        *,
        title: str,
        has_personalized_questions: bool = False,
    ) -> Survey:
        """Insert a survey row.  The caller must ``await db.commit()`` to persist."""
        survey = Survey(title=title, has_personalized_questions=has_personalized_questions)
        db.add(survey)
        await db.flush()
        return survey

    async def add_questions(
        self,
        db: AsyncSession,
        survey_id: uuid.UUID,
        rows: list[dict[str, Any]],
    ) -> list[SurveyQuestion]:
        """Insert question rows in document order.

        Each row dict carries its final ``id`` (UUID) and an already
        re-keyed ``parent_question_id``.  Iterative source links are set in
        a second flush because a source may come after its dependent.
        """
        questions: list[SurveyQuestion] = []
        sources: dict[uuid.UUID, uuid.UUID] = {}
        for position, row in enumerate(rows):
            row = dict(row)
            source = row.pop("iterative_source_question_id", None)
            q = SurveyQuestion(survey_id=survey_id, position=position, **row)
            if source is not None:
                sources[q.id] = source
            db.add(q)
            questions.append(q)
        await db.flush()

        if sources:
            for q in questions:
                if q.id in sources:
                    q.iterative_source_question_id = sources[q.id]
            await db.flush()
        return questions

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_survey(self, db: AsyncSession, survey_id: uuid.UUID) -> Survey | None:
        return await db.get(Survey, survey_id)

    async def list_surveys(
        self, db: AsyncSession, *, limit: int = 20, offset: int = 0
    ) -> list[Survey]:
        """List surveys, most recent first."""
        stmt = (
            select(Survey)
            .order_by(Survey.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_questions(
        self, db: AsyncSession, survey_id: uuid.UUID
    ) -> list[SurveyQuestion]:
        """All questions of a survey in document order."""
        stmt = (
            select(SurveyQuestion)
            .where(SurveyQuestion.survey_id == survey_id)
            .order_by(SurveyQuestion.position)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_survey(self, db: AsyncSession, survey: Survey) -> None:
        """Delete a survey; questions and submissions go with it (ON DELETE CASCADE)."""
        await db.delete(survey)
        await db.flush()


class SubmissionRepository:
    """Async read/write operations on submissions and their answers."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_submission(
        self,
        db: AsyncSession,
        *,
        survey_id: uuid.UUID,
        respondent_name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Submission:
        submission = Submission(
            survey_id=survey_id,
            respondent_name=respondent_name,
            submission_metadata=metadata or {},
        )
        db.add(submission)
        await db.flush()
        return submission

    async def add_answers(
        self,
        db: AsyncSession,
        submission_id: uuid.UUID,
        rows: list[dict[str, Any]],
    ) -> int:
        """Insert answer rows (``question_id``, ``iteration``, ``value``, provenance)."""
        for row in rows:
            db.add(SubmissionAnswer(submission_id=submission_id, **row))
        await db.flush()
        return len(rows)

    async def add_personalized_answers(
        self,
        db: AsyncSession,
        submission_id: uuid.UUID,
        pairs: list[tuple[str, str]],
    ) -> int:
        for question_text, answer_text in pairs:
            db.add(PersonalizedAnswer(
                submission_id=submission_id,
                question_text=question_text,
                answer_text=answer_text,
            ))
        await db.flush()
        return len(pairs)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_submission(
        self, db: AsyncSession, submission_id: uuid.UUID
    ) -> Submission | None:
        return await db.get(Submission, submission_id)

    async def list_submissions(
        self,
        db: AsyncSession,
        survey_id: uuid.UUID,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Submission]:
        """Submissions for a survey, most recent first."""
        stmt = (
            select(Submission)
            .where(Submission.survey_id == survey_id)
            .order_by(Submission.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_answers(
        self, db: AsyncSession, submission_id: uuid.UUID
    ) -> list[SubmissionAnswer]:
        """Answer rows ordered by question position, then iteration."""
        stmt = (
            select(SubmissionAnswer)
            .join(SurveyQuestion, SurveyQuestion.id == SubmissionAnswer.question_id)
            .where(SubmissionAnswer.submission_id == submission_id)
            .order_by(SurveyQuestion.position, SubmissionAnswer.iteration)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_personalized_answers(
        self, db: AsyncSession, submission_id: uuid.UUID
    ) -> list[PersonalizedAnswer]:
        stmt = (
            select(PersonalizedAnswer)
            .where(PersonalizedAnswer.submission_id == submission_id)
            .order_by(PersonalizedAnswer.created_at)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Delete / bulk cleanup
    # ------------------------------------------------------------------

    async def delete_submission(self, db: AsyncSession, submission_id: uuid.UUID) -> None:
        """Delete a submission and (via cascade) its answers."""
        await db.execute(delete(Submission).where(Submission.id == submission_id))
        await db.flush()

    async def purge_empty_submissions(
        self, db: AsyncSession, *, older_than_hours: int = 0
    ) -> int:
        """Delete submissions that never received an answer row.

        ``older_than_hours`` > 0 leaves recent rows alone so in-flight
        submissions are not touched.
        """
        has_answers = exists().where(SubmissionAnswer.submission_id == Submission.id)
        stmt = delete(Submission).where(~has_answers)
        if older_than_hours > 0:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=older_than_hours)
            stmt = stmt.where(Submission.created_at < cutoff)
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount

    async def purge_old_submissions(
        self, db: AsyncSession, *, older_than_days: int
    ) -> int:
        """Delete submissions created more than ``older_than_days`` days ago."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        result = await db.execute(delete(Submission).where(Submission.created_at < cutoff))
        await db.flush()
        return result.rowcount

    async def count_answers(self, db: AsyncSession, submission_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(SubmissionAnswer).where(
            SubmissionAnswer.submission_id == submission_id
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())
