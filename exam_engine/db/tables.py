"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in exam_engine/models/.
Repos convert between rows and dataclasses; nothing above the repo layer
sees a row object.

Variation items reference questions with the default RESTRICT foreign
key, so the database refuses to drop a question an issued variation
still uses.  Everything hanging off an exam cascades on exam delete.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from exam_engine.db.engine import Base


class QuestionRow(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_pool", "subject_id", "difficulty", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)  # easy|medium|hard
    type: Mapped[str] = mapped_column(
        String(32), nullable=False, default="multiple_choice"
    )  # multiple_choice|essay
    alternatives: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=[]
    )
    correct_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    points: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=1)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(ARRAY(String), nullable=False, default=[])
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    times_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    times_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ExamRow(Base):
    __tablename__ = "exams"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    subject_ids: Mapped[list[uuid.UUID]] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False
    )
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    easy_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    medium_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hard_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    variation_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    passing_score: Mapped[Decimal] = mapped_column(
        Numeric(4, 2), nullable=False, default=6
    )
    randomize_questions: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    randomize_alternatives: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expires_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class VariationRow(Base):
    __tablename__ = "exam_variations"
    __table_args__ = (
        UniqueConstraint("exam_id", "generation", "variation_number"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    exam_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False
    )
    variation_number: Mapped[int] = mapped_column(Integer, nullable=False)
    generation: Mapped[int] = mapped_column(Integer, nullable=False)
    # Only the newest generation is current; older rows stay for grading.
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class VariationItemRow(Base):
    __tablename__ = "variation_items"

    variation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("exam_variations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("questions.id"), nullable=False, index=True
    )
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    question_type: Mapped[str] = mapped_column(String(32), nullable=False)
    points: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    alternatives: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=[]
    )
    alternative_order: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=[]
    )
    correct_index: Mapped[int | None] = mapped_column(Integer, nullable=True)


class SubmissionRow(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    exam_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    variation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("exam_variations.id", ondelete="CASCADE"),
        nullable=False,
    )
    answers_json: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="submitted"
    )  # submitted|graded|reviewed
    student_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    student_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)
    score: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    correct_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_questions: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[Decimal | None] = mapped_column(Numeric(4, 1), nullable=True)
    earned_points: Mapped[Decimal | None] = mapped_column(
        Numeric(8, 2), nullable=True
    )
    total_points: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    item_results_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    graded_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
