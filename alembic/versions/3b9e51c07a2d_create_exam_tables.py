"""create exam tables

Revision ID: 3b9e51c07a2d
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e51c07a2d"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("difficulty", sa.String(length=16), nullable=False),
        sa.Column(
            "type",
            sa.String(length=32),
            nullable=False,
            server_default="multiple_choice",
        ),
        sa.Column(
            "alternatives",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("correct_index", sa.Integer(), nullable=True),
        sa.Column("points", sa.Numeric(6, 2), nullable=False, server_default="1"),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column(
            "tags", postgresql.ARRAY(sa.String()), nullable=False, server_default="{}"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("times_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("times_correct", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("difficulty IN ('easy', 'medium', 'hard')"),
        sa.CheckConstraint("points > 0"),
        sa.CheckConstraint("times_correct <= times_used"),
    )
    op.create_index(
        "ix_questions_pool", "questions", ["subject_id", "difficulty", "is_active"]
    )

    op.create_table(
        "exams",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column(
            "subject_ids", postgresql.ARRAY(postgresql.UUID(as_uuid=True)), nullable=False
        ),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("easy_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("medium_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hard_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("variation_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "passing_score", sa.Numeric(4, 2), nullable=False, server_default="6"
        ),
        sa.Column(
            "randomize_questions", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "randomize_alternatives",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column(
            "is_published", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_questions BETWEEN 1 AND 100"),
        sa.CheckConstraint("variation_count BETWEEN 1 AND 50"),
        sa.CheckConstraint("easy_count + medium_count + hard_count = total_questions"),
        sa.CheckConstraint("passing_score BETWEEN 0 AND 10"),
    )

    op.create_table(
        "exam_variations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "exam_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("exams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("variation_number", sa.Integer(), nullable=False),
        sa.Column("generation", sa.Integer(), nullable=False),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("exam_id", "generation", "variation_number"),
    )

    op.create_table(
        "variation_items",
        sa.Column(
            "variation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("exam_variations.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("position", sa.Integer(), primary_key=True),
        sa.Column(
            "question_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("questions.id"),
            nullable=False,
        ),
        sa.Column("difficulty", sa.String(length=16), nullable=False),
        sa.Column("question_type", sa.String(length=32), nullable=False),
        sa.Column("points", sa.Numeric(6, 2), nullable=False),
        sa.Column(
            "alternatives",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "alternative_order",
            postgresql.ARRAY(sa.Integer()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("correct_index", sa.Integer(), nullable=True),
    )
    op.create_index(
        "ix_variation_items_question_id", "variation_items", ["question_id"]
    )

    op.create_table(
        "submissions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "exam_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("exams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "variation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("exam_variations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("answers_json", sa.Text(), nullable=False),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="submitted"
        ),
        sa.Column("student_name", sa.String(length=255), nullable=True),
        sa.Column("student_ref", sa.String(length=255), nullable=True),
        sa.Column("score", sa.Numeric(4, 2), nullable=True),
        sa.Column("correct_count", sa.Integer(), nullable=True),
        sa.Column("total_questions", sa.Integer(), nullable=True),
        sa.Column("percentage", sa.Numeric(4, 1), nullable=True),
        sa.Column("earned_points", sa.Numeric(8, 2), nullable=True),
        sa.Column("total_points", sa.Numeric(8, 2), nullable=True),
        sa.Column("item_results_json", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.CheckConstraint("status IN ('submitted', 'graded', 'reviewed')"),
    )
    op.create_index("ix_submissions_exam_id", "submissions", ["exam_id"])


def downgrade() -> None:
    op.drop_index("ix_submissions_exam_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_variation_items_question_id", table_name="variation_items")
    op.drop_table("variation_items")
    op.drop_table("exam_variations")
    op.drop_table("exams")
    op.drop_index("ix_questions_pool", table_name="questions")
    op.drop_table("questions")
