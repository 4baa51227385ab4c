"""Survey and SurveyQuestion ORM models.

Questions are stored flat, one row each, with the tree encoded by the
``parent_question_id`` self-reference.  ``position`` records document
order so a survey can be reloaded without re-sorting.  Options and
expected answers are small and always read with the question, so they
live in JSONB columns rather than side tables.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text as sa_text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from survey_db.models.base import Base


class Survey(Base):
    """One row per survey definition."""

    __tablename__ = "surveys"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    # Set when respondents get AI follow-up questions after submitting
    has_personalized_questions: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_text("false"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Survey(id={self.id!s}, title={self.title!r})>"


class SurveyQuestion(Base):
    """One row per question; parent and iterative source are self-references."""

    __tablename__ = "survey_questions"

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
    # Document order within the survey (0-based, depth-first)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    # [{"id": "1", "text": "Red"}, ...]
    options: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=sa_text("'[]'::jsonb"),
    )
    min_range: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_range: Mapped[float | None] = mapped_column(Float, nullable=True)
    expected_answers: Mapped[list] = mapped_column(
        JSONB, nullable=False, server_default=sa_text("'[]'::jsonb"),
    )

    # --- Conditional branching ---
    parent_question_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("survey_questions.id", ondelete="CASCADE"),
        nullable=True,
    )
    trigger_condition_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Iteration ---
    is_iterative: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa_text("false"),
    )
    iterative_source_question_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("survey_questions.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('text', 'number', 'yes-no', 'multiple-choice', 'multiple-choice-multi')",
            name="ck_question_type",
        ),
        CheckConstraint(
            "min_range IS NULL OR max_range IS NULL OR min_range <= max_range",
            name="ck_question_range",
        ),
        Index("ix_survey_position", "survey_id", "position", unique=True),
        Index(
            "ix_question_parent",
            "parent_question_id",
            postgresql_where=sa_text("parent_question_id IS NOT NULL"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SurveyQuestion(id={self.id!s}, survey={self.survey_id!s}, "
            f"type={self.type!r}, position={self.position})>"
        )
