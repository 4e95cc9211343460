"""Submission endpoints: record, grade, review.

Answers are passed to the grader exactly as the client sent them, so
shape problems (a boolean where an alternative index belongs, a number
for an essay) come back as 422 from the grader's own checks instead of
being coerced by pydantic.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel

from exam_engine.api.dependencies import (
    as_utc,
    exam_service,
    grading_service,
    http_error,
)
from exam_engine.core.errors import ExamEngineError
from exam_engine.models.submission import (
    Submission,
    difficulty_breakdown,
    letter_grade,
)
from exam_engine.services.cache import cache_service, stats_key
from exam_engine.services.grading_service import is_passing

router = APIRouter(prefix="/v1/submissions", tags=["submissions"])


# --- Pydantic schemas ---


class SubmissionIn(BaseModel):
    variation_id: UUID
    answers: Any
    student_name: str | None = None
    student_ref: str | None = None
    submitted_at: datetime.datetime | None = None


class ReviewIn(BaseModel):
    essay_points: dict[int, Decimal] | None = None
    score: Decimal | None = None
    reviewed_by: str | None = None
    feedback: str | None = None


class ItemResultOut(BaseModel):
    position: int
    question_id: str
    question_type: str
    difficulty: str
    answer: Any
    correct_index: int | None
    is_correct: bool | None
    points_earned: Decimal
    max_points: Decimal


class SubmissionOut(BaseModel):
    id: str
    exam_id: str
    variation_id: str
    status: str  # submitted|graded|reviewed
    answers: list[Any]
    student_name: str | None
    student_ref: str | None
    submitted_at: datetime.datetime
    score: Decimal | None
    correct_count: int | None
    total_questions: int | None
    percentage: Decimal | None
    earned_points: Decimal | None
    total_points: Decimal | None
    letter_grade: str | None
    passed: bool | None
    by_difficulty: dict[str, dict[str, float | int]] | None
    items: list[ItemResultOut]
    graded_at: datetime.datetime | None
    reviewed_at: datetime.datetime | None
    reviewed_by: str | None
    feedback: str | None


def _out(s: Submission) -> SubmissionOut:
    graded = s.status != "submitted"
    passed: bool | None = None
    if graded:
        try:
            passed = is_passing(s, exam_service.get_exam(s.exam_id))
        except ExamEngineError as e:
            raise http_error(e) from None
    return SubmissionOut(
        id=str(s.id),
        exam_id=str(s.exam_id),
        variation_id=str(s.variation_id),
        status=s.status,
        answers=list(s.answers),
        student_name=s.student_name,
        student_ref=s.student_ref,
        submitted_at=s.submitted_at,
        score=s.score,
        correct_count=s.correct_count,
        total_questions=s.total_questions,
        percentage=s.percentage,
        earned_points=s.earned_points,
        total_points=s.total_points,
        letter_grade=letter_grade(s.percentage) if graded else None,
        passed=passed,
        by_difficulty=difficulty_breakdown(s.item_results) if graded else None,
        items=[
            ItemResultOut(
                position=i.position,
                question_id=str(i.question_id),
                question_type=i.question_type,
                difficulty=i.difficulty,
                answer=i.answer,
                correct_index=i.correct_index,
                is_correct=i.is_correct,
                points_earned=i.points_earned,
                max_points=i.max_points,
            )
            for i in s.item_results
        ],
        graded_at=s.graded_at,
        reviewed_at=s.reviewed_at,
        reviewed_by=s.reviewed_by,
        feedback=s.feedback,
    )


# --- Endpoints ---


@router.post("", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED)
async def create_submission(body: SubmissionIn, grade: bool = True) -> SubmissionOut:
    """Record a submission and, unless ?grade=false, grade it right away."""
    submitted_at = as_utc(body.submitted_at) or datetime.datetime.now(datetime.UTC)
    try:
        if grade:
            submission, _ = grading_service.grade_submission(
                body.variation_id,
                body.answers,
                submitted_at,
                student_name=body.student_name,
                student_ref=body.student_ref,
            )
        else:
            submission = grading_service.record_submission(
                body.variation_id,
                body.answers,
                submitted_at,
                student_name=body.student_name,
                student_ref=body.student_ref,
            )
    except ExamEngineError as e:
        raise http_error(e) from None

    if grade:
        await cache_service.delete(stats_key(submission.exam_id))
    return _out(submission)


@router.post("/{submission_id}/grade", response_model=SubmissionOut)
async def grade_submission(submission_id: UUID) -> SubmissionOut:
    """Grade a recorded submission.  A second call answers 409."""
    try:
        submission, _ = grading_service.grade(submission_id)
    except ExamEngineError as e:
        raise http_error(e) from None
    await cache_service.delete(stats_key(submission.exam_id))
    return _out(submission)


@router.post("/{submission_id}/review", response_model=SubmissionOut)
async def review_submission(submission_id: UUID, body: ReviewIn) -> SubmissionOut:
    """Award essay points and/or override the score of a graded submission."""
    try:
        submission = grading_service.review(
            submission_id,
            essay_points=body.essay_points,
            score=body.score,
            reviewed_by=body.reviewed_by,
            feedback=body.feedback,
        )
    except ExamEngineError as e:
        raise http_error(e) from None
    await cache_service.delete(stats_key(submission.exam_id))
    return _out(submission)


@router.get("/{submission_id}", response_model=SubmissionOut)
def get_submission(submission_id: UUID) -> SubmissionOut:
    try:
        return _out(grading_service.get(submission_id))
    except ExamEngineError as e:
        raise http_error(e) from None
