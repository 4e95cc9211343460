from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from exam_engine.models.question import Difficulty, QuestionType

ALTERNATIVE_LETTERS = ("A", "B", "C", "D", "E")


@dataclass(frozen=True, slots=True)
class VariationItem:
    """One question as it appears at a fixed position of a variation.

    alternative_order maps presentation slot -> original alternative index,
    so ``alternatives[i] == question.alternatives[alternative_order[i]]``.
    correct_index is already remapped to presentation order.
    """

    question_id: UUID
    difficulty: Difficulty
    question_type: QuestionType
    points: Decimal
    alternatives: tuple[str, ...] = ()
    alternative_order: tuple[int, ...] = ()
    correct_index: int | None = None

    @property
    def is_multiple_choice(self) -> bool:
        return self.question_type == "multiple_choice"

    @property
    def correct_letter(self) -> str | None:
        if self.correct_index is None:
            return None
        return ALTERNATIVE_LETTERS[self.correct_index]


@dataclass(frozen=True, slots=True)
class Variation:
    """An issued exam variation. Never mutated after assembly."""

    id: UUID
    exam_id: UUID
    variation_number: int
    generation: int
    created_at: datetime.datetime
    items: tuple[VariationItem, ...]

    @property
    def question_ids(self) -> tuple[UUID, ...]:
        return tuple(item.question_id for item in self.items)

    @property
    def total_points(self) -> Decimal:
        return sum((item.points for item in self.items), Decimal("0"))

    @staticmethod
    def new(
        *,
        exam_id: UUID,
        variation_number: int,
        generation: int,
        created_at: datetime.datetime,
        items: tuple[VariationItem, ...],
    ) -> Variation:
        return Variation(
            id=uuid4(),
            exam_id=exam_id,
            variation_number=variation_number,
            generation=generation,
            created_at=created_at,
            items=items,
        )


@dataclass(frozen=True, slots=True)
class AnswerKeyEntry:
    number: int  # 1-based position
    question_id: UUID
    question_type: QuestionType
    difficulty: Difficulty
    points: Decimal
    correct_index: int | None
    correct_letter: str | None


def answer_key(variation: Variation) -> list[AnswerKeyEntry]:
    """The correction sheet for a variation, in presentation order."""
    return [
        AnswerKeyEntry(
            number=position + 1,
            question_id=item.question_id,
            question_type=item.question_type,
            difficulty=item.difficulty,
            points=item.points,
            correct_index=item.correct_index,
            correct_letter=item.correct_letter,
        )
        for position, item in enumerate(variation.items)
    ]
