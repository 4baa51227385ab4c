"""Initial schema: surveys, questions, submissions, answers, personalized answers.

Questions are stored flat with ``parent_question_id`` and
``iterative_source_question_id`` self-references; ``position`` keeps
document order.

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- surveys ---
    op.create_table(
        "surveys",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column(
            "has_personalized_questions", sa.Boolean(),
            nullable=False, server_default=sa.text("false"),
        ),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
    )

    # --- survey_questions ---
    op.create_table(
        "survey_questions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "survey_id", UUID(as_uuid=True),
            sa.ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("options", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("min_range", sa.Float(), nullable=True),
        sa.Column("max_range", sa.Float(), nullable=True),
        sa.Column(
            "expected_answers", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "parent_question_id", UUID(as_uuid=True),
            sa.ForeignKey("survey_questions.id", ondelete="CASCADE"), nullable=True,
        ),
        sa.Column("trigger_condition_value", sa.Text(), nullable=True),
        sa.Column("is_iterative", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "iterative_source_question_id", UUID(as_uuid=True),
            sa.ForeignKey("survey_questions.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "type IN ('text', 'number', 'yes-no', 'multiple-choice', 'multiple-choice-multi')",
            name="ck_question_type",
        ),
        sa.CheckConstraint(
            "min_range IS NULL OR max_range IS NULL OR min_range <= max_range",
            name="ck_question_range",
        ),
    )
    op.create_index("ix_survey_questions_survey_id", "survey_questions", ["survey_id"])
    op.create_index(
        "ix_survey_position", "survey_questions", ["survey_id", "position"], unique=True,
    )
    op.create_index(
        "ix_question_parent",
        "survey_questions",
        ["parent_question_id"],
        postgresql_where=sa.text("parent_question_id IS NOT NULL"),
    )

    # --- submissions ---
    op.create_table(
        "submissions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "survey_id", UUID(as_uuid=True),
            sa.ForeignKey("surveys.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("respondent_name", sa.Text(), nullable=True),
        sa.Column("metadata", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_submissions_survey_id", "submissions", ["survey_id"])

    # --- submission_answers ---
    op.create_table(
        "submission_answers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "submission_id", UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "question_id", UUID(as_uuid=True),
            sa.ForeignKey("survey_questions.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("iteration", sa.SmallInteger(), nullable=True),
        sa.Column("value", JSONB(), nullable=False),
        sa.Column("started_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("answered_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("time_taken_seconds", sa.Float(), nullable=True),
    )
    op.create_index("ix_answer_submission", "submission_answers", ["submission_id"])
    op.create_index("ix_answer_question", "submission_answers", ["question_id"])

    # --- personalized_answers ---
    op.create_table(
        "personalized_answers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "submission_id", UUID(as_uuid=True),
            sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=False),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_personalized_answers_submission_id", "personalized_answers", ["submission_id"],
    )


def downgrade() -> None:
    op.drop_table("personalized_answers")
    op.drop_table("submission_answers")
    op.drop_table("submissions")
    op.drop_table("survey_questions")
    op.drop_table("surveys")
