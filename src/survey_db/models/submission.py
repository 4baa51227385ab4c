"""Submission, SubmissionAnswer and PersonalizedAnswer ORM models.

A submission owns one answer row per visible question, or one per
repetition for iterative questions (``iteration`` 0..n-1).  A submission
row without answers is an interrupted write and is removed by the service
or by ``survey-cleanup --empty``.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Float, ForeignKey, Index, SmallInteger, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base


class Submission(Base):
    """One respondent's completed pass through a survey."""

    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    survey_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    respondent_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    # {"latitude": ..., "longitude": ..., "city": ..., "country": ..., "device_type": ...}
    # ``metadata`` is reserved on declarative classes, hence the attribute name
    submission_metadata: Mapped[dict] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Submission(id={self.id!s}, survey={self.survey_id!s})>"


class SubmissionAnswer(Base):
    """One answer value (one repetition for iterative questions)."""

    __tablename__ = "submission_answers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("survey_questions.id", ondelete="CASCADE"),
        nullable=False,
    )
    # NULL for non-iterative questions
    iteration: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    # Canonical answer: string, number, or list of option texts
    value: Mapped[object] = mapped_column(JSONB, nullable=False)

    # --- Provenance (advisory) ---
    started_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    answered_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    time_taken_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("ix_answer_submission", "submission_id"),
        Index("ix_answer_question", "question_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<SubmissionAnswer(submission={self.submission_id!s}, "
            f"question={self.question_id!s}, iteration={self.iteration})>"
        )


class PersonalizedAnswer(Base):
    """Answer to an AI-generated follow-up question, stored as plain text."""

    __tablename__ = "personalized_answers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    answer_text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
