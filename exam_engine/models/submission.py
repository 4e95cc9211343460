from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Union
from uuid import UUID, uuid4

from exam_engine.models.question import DIFFICULTIES, Difficulty, QuestionType

SubmissionStatus = Literal["submitted", "graded", "reviewed"]

# int: index into the shuffled alternatives; str: essay text; None: blank.
RawAnswer = Union[int, str, None]


@dataclass(frozen=True, slots=True)
class ItemResult:
    position: int
    question_id: UUID
    question_type: QuestionType
    difficulty: Difficulty
    answer: RawAnswer
    correct_index: int | None
    is_correct: bool | None  # None for essay items until reviewed
    points_earned: Decimal
    max_points: Decimal


@dataclass(frozen=True, slots=True)
class GradeResult:
    score: Decimal  # 0..10, 2 decimal places
    correct_count: int
    total_questions: int
    percentage: Decimal  # 0..100, 1 decimal place
    earned_points: Decimal
    total_points: Decimal
    items: tuple[ItemResult, ...]

    def usage_deltas(self) -> dict[UUID, tuple[int, int]]:
        """question_id -> (times_used increment, times_correct increment)."""
        deltas: dict[UUID, tuple[int, int]] = {}
        for item in self.items:
            used, correct = deltas.get(item.question_id, (0, 0))
            deltas[item.question_id] = (used + 1, correct + (1 if item.is_correct else 0))
        return deltas


def difficulty_breakdown(
    items: Iterable[ItemResult],
) -> dict[str, dict[str, float | int]]:
    """Per-tier total, correct count and percentage correct."""
    items = list(items)
    stats: dict[str, dict[str, float | int]] = {}
    for difficulty in DIFFICULTIES:
        tier = [i for i in items if i.difficulty == difficulty]
        correct = sum(1 for i in tier if i.is_correct)
        stats[difficulty] = {
            "total": len(tier),
            "correct": correct,
            "percentage": round(correct / len(tier) * 100, 1) if tier else 0.0,
        }
    return stats


def letter_grade(percentage: Decimal | float | None) -> str:
    if percentage is None:
        return "F"
    for letter, threshold in (("A", 90), ("B", 80), ("C", 70), ("D", 60)):
        if percentage >= threshold:
            return letter
    return "F"


@dataclass(frozen=True, slots=True)
class Submission:
    id: UUID
    exam_id: UUID
    variation_id: UUID
    answers: tuple[RawAnswer, ...]
    submitted_at: datetime.datetime
    status: SubmissionStatus = "submitted"
    student_name: str | None = None
    student_ref: str | None = None
    score: Decimal | None = None
    correct_count: int | None = None
    total_questions: int | None = None
    percentage: Decimal | None = None
    earned_points: Decimal | None = None
    total_points: Decimal | None = None
    item_results: tuple[ItemResult, ...] = ()
    graded_at: datetime.datetime | None = None
    reviewed_at: datetime.datetime | None = None
    reviewed_by: str | None = None
    feedback: str | None = None

    @staticmethod
    def new(
        *,
        exam_id: UUID,
        variation_id: UUID,
        answers: tuple[RawAnswer, ...],
        submitted_at: datetime.datetime,
        student_name: str | None = None,
        student_ref: str | None = None,
    ) -> Submission:
        return Submission(
            id=uuid4(),
            exam_id=exam_id,
            variation_id=variation_id,
            answers=answers,
            submitted_at=submitted_at,
            student_name=student_name,
            student_ref=student_ref,
        )
