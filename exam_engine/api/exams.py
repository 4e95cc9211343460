"""Exam lifecycle, variation and reporting endpoints.

GET /statistics is served read-through from the cache service; grading
and review invalidate the entry (see api/submissions.py).
"""

from __future__ import annotations

import dataclasses
import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel

from exam_engine.api.dependencies import as_utc, exam_service, http_error
from exam_engine.core.config import SETTINGS
from exam_engine.core.errors import ExamEngineError
from exam_engine.models.exam import Distribution, Exam
from exam_engine.models.variation import Variation
from exam_engine.services.cache import cache_service, stats_key
from exam_engine.services.status import exam_status

router = APIRouter(prefix="/v1/exams", tags=["exams"])


# --- Pydantic schemas ---


class DistributionIn(BaseModel):
    easy: int = 0
    medium: int = 0
    hard: int = 0


class ExamIn(BaseModel):
    title: str
    subject_ids: list[UUID]
    total_questions: int
    distribution: DistributionIn
    variation_count: int = 1
    passing_score: Decimal = Decimal("6")
    randomize_questions: bool = True
    randomize_alternatives: bool = True
    expires_at: datetime.datetime | None = None


class ExamOut(BaseModel):
    id: str
    title: str
    subject_ids: list[str]
    total_questions: int
    distribution: dict[str, int]
    difficulty_distribution: dict[str, dict[str, float | int]]
    variation_count: int
    passing_score: Decimal
    randomize_questions: bool
    randomize_alternatives: bool
    is_published: bool
    published_at: datetime.datetime | None
    expires_at: datetime.datetime | None
    created_at: datetime.datetime
    status: str  # draft|active|expired


class VariationItemOut(BaseModel):
    position: int
    question_id: str
    difficulty: str
    question_type: str
    points: Decimal
    alternatives: list[str]


class VariationOut(BaseModel):
    """A printable variation.  Carries no answers; see /answer-key."""

    id: str
    exam_id: str
    variation_number: int
    generation: int
    total_points: Decimal
    items: list[VariationItemOut]


class AnswerKeyEntryOut(BaseModel):
    number: int
    question_id: str
    question_type: str
    difficulty: str
    points: Decimal
    correct_index: int | None
    correct_letter: str | None


class ScoreDistributionOut(BaseModel):
    excellent: int
    good: int
    satisfactory: int
    needs_improvement: int


class StatisticsOut(BaseModel):
    exam_id: str
    total_submissions: int
    average_score: Decimal | None
    min_score: Decimal | None
    max_score: Decimal | None
    passed_count: int
    pass_rate: Decimal
    distribution: ScoreDistributionOut


def _exam_out(exam: Exam) -> ExamOut:
    return ExamOut(
        id=str(exam.id),
        title=exam.title,
        subject_ids=sorted(str(s) for s in exam.subject_ids),
        total_questions=exam.total_questions,
        distribution=exam.distribution.as_dict(),
        difficulty_distribution=exam.difficulty_distribution(),
        variation_count=exam.variation_count,
        passing_score=exam.passing_score,
        randomize_questions=exam.randomize_questions,
        randomize_alternatives=exam.randomize_alternatives,
        is_published=exam.is_published,
        published_at=exam.published_at,
        expires_at=exam.expires_at,
        created_at=exam.created_at,
        status=exam_status(exam, datetime.datetime.now(datetime.UTC)),
    )


def _variation_out(v: Variation) -> VariationOut:
    return VariationOut(
        id=str(v.id),
        exam_id=str(v.exam_id),
        variation_number=v.variation_number,
        generation=v.generation,
        total_points=v.total_points,
        items=[
            VariationItemOut(
                position=position,
                question_id=str(item.question_id),
                difficulty=item.difficulty,
                question_type=item.question_type,
                points=item.points,
                alternatives=list(item.alternatives),
            )
            for position, item in enumerate(v.items)
        ],
    )


# --- Endpoints ---


@router.post("", response_model=ExamOut, status_code=status.HTTP_201_CREATED)
def create_exam(body: ExamIn) -> ExamOut:
    try:
        exam = exam_service.create_exam(
            title=body.title,
            subject_ids=body.subject_ids,
            total_questions=body.total_questions,
            distribution=Distribution.of(**body.distribution.model_dump()),
            variation_count=body.variation_count,
            passing_score=body.passing_score,
            randomize_questions=body.randomize_questions,
            randomize_alternatives=body.randomize_alternatives,
            expires_at=as_utc(body.expires_at),
        )
    except ExamEngineError as e:
        raise http_error(e) from None
    return _exam_out(exam)


@router.get("/{exam_id}", response_model=ExamOut)
def get_exam(exam_id: UUID) -> ExamOut:
    try:
        return _exam_out(exam_service.get_exam(exam_id))
    except ExamEngineError as e:
        raise http_error(e) from None


@router.post("/{exam_id}/publish", response_model=ExamOut)
def publish_exam(exam_id: UUID) -> ExamOut:
    """Publish; assembles the first variation set if the exam has none."""
    try:
        return _exam_out(exam_service.publish(exam_id))
    except ExamEngineError as e:
        raise http_error(e) from None


@router.post("/{exam_id}/unpublish", response_model=ExamOut)
def unpublish_exam(exam_id: UUID) -> ExamOut:
    try:
        return _exam_out(exam_service.unpublish(exam_id))
    except ExamEngineError as e:
        raise http_error(e) from None


@router.post(
    "/{exam_id}/variations",
    response_model=list[VariationOut],
    status_code=status.HTTP_201_CREATED,
)
def regenerate_variations(exam_id: UUID) -> list[VariationOut]:
    """Assemble a fresh variation set and make it current."""
    try:
        variations = exam_service.regenerate_variations(exam_id)
    except ExamEngineError as e:
        raise http_error(e) from None
    return [_variation_out(v) for v in variations]


@router.get("/{exam_id}/variations", response_model=list[VariationOut])
def list_variations(exam_id: UUID) -> list[VariationOut]:
    try:
        return [_variation_out(v) for v in exam_service.list_variations(exam_id)]
    except ExamEngineError as e:
        raise http_error(e) from None


@router.get(
    "/{exam_id}/variations/{variation_id}/answer-key",
    response_model=list[AnswerKeyEntryOut],
)
def get_answer_key(exam_id: UUID, variation_id: UUID) -> list[AnswerKeyEntryOut]:
    try:
        entries = exam_service.answer_key(exam_id, variation_id)
    except ExamEngineError as e:
        raise http_error(e) from None
    return [
        AnswerKeyEntryOut(
            number=entry.number,
            question_id=str(entry.question_id),
            question_type=entry.question_type,
            difficulty=entry.difficulty,
            points=entry.points,
            correct_index=entry.correct_index,
            correct_letter=entry.correct_letter,
        )
        for entry in entries
    ]


@router.get("/{exam_id}/statistics", response_model=StatisticsOut)
async def get_statistics(exam_id: UUID) -> StatisticsOut:
    """Score statistics over graded and reviewed submissions.

    Read-through cached under stats:{exam_id} for STATS_CACHE_TTL seconds.
    """
    key = stats_key(exam_id)
    cached = await cache_service.get(key)
    if cached is not None:
        return StatisticsOut.model_validate_json(cached)

    try:
        stats = exam_service.statistics(exam_id)
    except ExamEngineError as e:
        raise http_error(e) from None

    fields = dataclasses.asdict(stats)
    fields["exam_id"] = str(stats.exam_id)
    out = StatisticsOut.model_validate(fields)
    await cache_service.set(key, out.model_dump_json(), SETTINGS.stats_cache_ttl)
    return out


@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam(exam_id: UUID) -> None:
    """Delete the exam together with its variations and submissions."""
    try:
        exam_service.delete_exam(exam_id)
    except ExamEngineError as e:
        raise http_error(e) from None
    await cache_service.delete(stats_key(exam_id))
