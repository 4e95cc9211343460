from __future__ import annotations

import datetime
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Literal
from uuid import UUID, uuid4

from exam_engine.core.errors import InvalidDistributionError, InvalidExamError
from exam_engine.models.question import DIFFICULTIES, Difficulty

ExamStatus = Literal["draft", "active", "expired"]

MIN_TOTAL_QUESTIONS = 1
MAX_TOTAL_QUESTIONS = 100
MIN_VARIATIONS = 1
MAX_VARIATIONS = 50
MAX_SCORE = Decimal("10")


@dataclass(frozen=True, slots=True)
class Distribution:
    """Requested question count per difficulty tier."""

    easy: int = 0
    medium: int = 0
    hard: int = 0

    @property
    def total(self) -> int:
        return self.easy + self.medium + self.hard

    def count(self, difficulty: Difficulty) -> int:
        return getattr(self, difficulty)

    def items(self) -> Iterator[tuple[Difficulty, int]]:
        """(tier, count) pairs in canonical order: easy, medium, hard."""
        for difficulty in DIFFICULTIES:
            yield difficulty, self.count(difficulty)

    def as_dict(self) -> dict[str, int]:
        return dict(self.items())

    @staticmethod
    def of(*, easy: int = 0, medium: int = 0, hard: int = 0) -> Distribution:
        for name, value in (("easy", easy), ("medium", medium), ("hard", hard)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidDistributionError(f"{name} must be an integer")
            if value < 0:
                raise InvalidDistributionError(
                    f"{name} cannot be negative (got {value})"
                )
        return Distribution(easy=easy, medium=medium, hard=hard)


def to_score(value: Decimal | int | float | str, *, field: str = "score") -> Decimal:
    """Coerce a 0..10 score to Decimal, rejecting anything outside the scale."""
    if isinstance(value, bool):
        raise InvalidExamError(f"{field} must be a number")
    try:
        score = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError):
        raise InvalidExamError(f"{field} must be a number (got {value!r})") from None
    if not score.is_finite() or not Decimal("0") <= score <= MAX_SCORE:
        raise InvalidExamError(f"{field} must be between 0 and 10 (got {value!r})")
    return score


@dataclass(frozen=True, slots=True)
class Exam:
    id: UUID
    title: str
    subject_ids: frozenset[UUID]
    total_questions: int
    distribution: Distribution
    created_at: datetime.datetime
    variation_count: int = 1
    passing_score: Decimal = Decimal("6")
    randomize_questions: bool = True
    randomize_alternatives: bool = True
    is_published: bool = False
    published_at: datetime.datetime | None = None
    expires_at: datetime.datetime | None = None

    def difficulty_distribution(self) -> dict[str, dict[str, object]]:
        """Count and share (percent, 1 decimal) of each tier."""
        total = self.total_questions
        return {
            difficulty: {
                "count": count,
                "percentage": (
                    round(count / total * 100, 1) if total > 0 else 0.0
                ),
            }
            for difficulty, count in self.distribution.items()
        }

    @staticmethod
    def new(
        *,
        title: str,
        subject_ids: Iterable[UUID],
        total_questions: int,
        distribution: Distribution,
        now: datetime.datetime,
        variation_count: int = 1,
        passing_score: Decimal | int | float | str = Decimal("6"),
        randomize_questions: bool = True,
        randomize_alternatives: bool = True,
        expires_at: datetime.datetime | None = None,
    ) -> Exam:
        title = title.strip()
        if not title:
            raise InvalidExamError("title must be non-empty")

        subjects = frozenset(subject_ids)
        if not subjects:
            raise InvalidExamError("at least one subject is required")

        if not MIN_TOTAL_QUESTIONS <= total_questions <= MAX_TOTAL_QUESTIONS:
            raise InvalidExamError(
                f"total_questions must be in {MIN_TOTAL_QUESTIONS}.."
                f"{MAX_TOTAL_QUESTIONS} (got {total_questions})"
            )

        # Re-validate: a Distribution built directly skips the checks in of().
        distribution = Distribution.of(**distribution.as_dict())
        if distribution.total != total_questions:
            raise InvalidDistributionError(
                f"easy+medium+hard must equal total_questions "
                f"({distribution.total} != {total_questions})"
            )

        if not MIN_VARIATIONS <= variation_count <= MAX_VARIATIONS:
            raise InvalidExamError(
                f"variation_count must be in {MIN_VARIATIONS}..{MAX_VARIATIONS} "
                f"(got {variation_count})"
            )

        if expires_at is not None:
            if expires_at.tzinfo is None:
                raise InvalidExamError("expires_at must be timezone-aware")
            if expires_at <= now:
                raise InvalidExamError("expires_at must be in the future")

        return Exam(
            id=uuid4(),
            title=title,
            subject_ids=subjects,
            total_questions=total_questions,
            distribution=distribution,
            created_at=now,
            variation_count=variation_count,
            passing_score=to_score(passing_score, field="passing_score"),
            randomize_questions=randomize_questions,
            randomize_alternatives=randomize_alternatives,
            expires_at=expires_at,
        )
