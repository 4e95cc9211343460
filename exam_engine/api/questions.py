"""Question bank endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from exam_engine.api.dependencies import http_error, question_bank
from exam_engine.core.errors import ExamEngineError, InvalidDistributionError
from exam_engine.models.exam import Distribution
from exam_engine.models.question import Question

router = APIRouter(prefix="/v1/questions", tags=["questions"])


# --- Pydantic schemas ---


class QuestionIn(BaseModel):
    subject_id: UUID
    text: str
    difficulty: str  # easy|medium|hard
    type: str = "multiple_choice"  # multiple_choice|essay
    alternatives: list[str] = []
    correct_index: int | None = None
    points: Decimal = Decimal("1")
    explanation: str | None = None
    tags: list[str] = []


class QuestionOut(BaseModel):
    id: str
    subject_id: str
    text: str
    difficulty: str
    type: str
    alternatives: list[str]
    correct_index: int | None
    points: Decimal
    explanation: str | None
    tags: list[str]
    is_active: bool
    times_used: int
    times_correct: int


class AvailabilityOut(BaseModel):
    subject_ids: list[str]
    available: dict[str, int]
    can_create_exam: bool | None = None


def _out(q: Question) -> QuestionOut:
    return QuestionOut(
        id=str(q.id),
        subject_id=str(q.subject_id),
        text=q.text,
        difficulty=q.difficulty,
        type=q.type,
        alternatives=list(q.alternatives),
        correct_index=q.correct_index,
        points=q.points,
        explanation=q.explanation,
        tags=list(q.tags),
        is_active=q.is_active,
        times_used=q.times_used,
        times_correct=q.times_correct,
    )


# --- Endpoints ---


@router.post("", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
def create_question(body: QuestionIn) -> QuestionOut:
    try:
        question = question_bank.create(
            subject_id=body.subject_id,
            text=body.text,
            difficulty=body.difficulty,
            type=body.type,
            alternatives=body.alternatives,
            correct_index=body.correct_index,
            points=body.points,
            explanation=body.explanation,
            tags=body.tags,
        )
    except ExamEngineError as e:
        raise http_error(e) from None
    return _out(question)


# Declared before /{question_id} so "availability" is not parsed as an id.
@router.get("/availability", response_model=AvailabilityOut)
def availability(
    subject_id: Annotated[list[UUID], Query()],
    easy: int | None = None,
    medium: int | None = None,
    hard: int | None = None,
) -> AvailabilityOut:
    """Active question counts per tier for the given subjects.

    With any of easy/medium/hard given, also answers whether an exam
    with that distribution could be assembled right now.
    """
    available = question_bank.availability(subject_id)
    can_create: bool | None = None
    if easy is not None or medium is not None or hard is not None:
        try:
            distribution = Distribution.of(
                easy=easy or 0, medium=medium or 0, hard=hard or 0
            )
        except InvalidDistributionError as e:
            raise http_error(e) from None
        can_create = question_bank.can_create_exam(subject_id, distribution)
    return AvailabilityOut(
        subject_ids=[str(s) for s in subject_id],
        available=available,
        can_create_exam=can_create,
    )


@router.get("/{question_id}", response_model=QuestionOut)
def get_question(question_id: UUID) -> QuestionOut:
    try:
        return _out(question_bank.get(question_id))
    except ExamEngineError as e:
        raise http_error(e) from None


@router.post("/{question_id}/deactivate", response_model=QuestionOut)
def deactivate_question(question_id: UUID) -> QuestionOut:
    """Retire a question from future pools; issued variations keep it."""
    try:
        return _out(question_bank.deactivate(question_id))
    except ExamEngineError as e:
        raise http_error(e) from None


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(question_id: UUID) -> None:
    try:
        question_bank.delete(question_id)
    except ExamEngineError as e:
        raise http_error(e) from None
