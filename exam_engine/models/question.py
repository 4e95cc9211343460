from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Literal
from uuid import UUID, uuid4

from exam_engine.core.errors import InvalidQuestionError

Difficulty = Literal["easy", "medium", "hard"]
QuestionType = Literal["multiple_choice", "essay"]

# Canonical tier order; variations concatenate tiers in this order.
DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "medium", "hard")
QUESTION_TYPES: tuple[QuestionType, ...] = ("multiple_choice", "essay")

MIN_ALTERNATIVES = 2
MAX_ALTERNATIVES = 5


def to_points(value: Decimal | int | float | str) -> Decimal:
    """Coerce a points value to Decimal. Floats go through str() first."""
    if isinstance(value, bool):
        raise InvalidQuestionError("points must be a number")
    try:
        points = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError):
        raise InvalidQuestionError(f"points must be a number (got {value!r})") from None
    if not points.is_finite() or points <= 0:
        raise InvalidQuestionError(f"points must be positive (got {value!r})")
    return points


@dataclass(frozen=True, slots=True)
class Question:
    id: UUID
    subject_id: UUID
    text: str
    difficulty: Difficulty
    type: QuestionType = "multiple_choice"
    alternatives: tuple[str, ...] = ()
    correct_index: int | None = None
    points: Decimal = Decimal("1")
    explanation: str | None = None
    tags: tuple[str, ...] = ()
    is_active: bool = True
    times_used: int = 0
    times_correct: int = 0

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == "multiple_choice"

    @property
    def correct_alternative(self) -> str | None:
        if self.correct_index is None:
            return None
        return self.alternatives[self.correct_index]

    @staticmethod
    def new(
        *,
        subject_id: UUID,
        text: str,
        difficulty: str,
        type: str = "multiple_choice",
        alternatives: tuple[str, ...] | list[str] = (),
        correct_index: int | None = None,
        points: Decimal | int | float | str = Decimal("1"),
        explanation: str | None = None,
        tags: tuple[str, ...] | list[str] = (),
    ) -> Question:
        """Validate and build a new question.

        Essay questions drop whatever alternatives / correct index were
        supplied; multiple-choice questions must carry both.
        """
        text = text.strip()
        if not text:
            raise InvalidQuestionError("text must be non-empty")
        if difficulty not in DIFFICULTIES:
            raise InvalidQuestionError(
                f"difficulty must be easy|medium|hard (got {difficulty!r})"
            )
        if type not in QUESTION_TYPES:
            raise InvalidQuestionError(
                f"type must be multiple_choice|essay (got {type!r})"
            )

        if type == "essay":
            alts: tuple[str, ...] = ()
            correct_index = None
        else:
            alts = tuple(alternatives)
            if not MIN_ALTERNATIVES <= len(alts) <= MAX_ALTERNATIVES:
                raise InvalidQuestionError(
                    f"multiple_choice needs {MIN_ALTERNATIVES}-{MAX_ALTERNATIVES} "
                    f"alternatives (got {len(alts)})"
                )
            for i, alt in enumerate(alts):
                if not isinstance(alt, str) or not alt.strip():
                    raise InvalidQuestionError(f"alternative {i} must be non-empty text")
            if correct_index is None:
                raise InvalidQuestionError("multiple_choice requires correct_index")
            if (
                isinstance(correct_index, bool)
                or not isinstance(correct_index, int)
                or not 0 <= correct_index < len(alts)
            ):
                raise InvalidQuestionError(
                    f"correct_index must be in 0..{len(alts) - 1} (got {correct_index!r})"
                )

        return Question(
            id=uuid4(),
            subject_id=subject_id,
            text=text,
            difficulty=difficulty,  # type: ignore[arg-type]
            type=type,  # type: ignore[arg-type]
            alternatives=alts,
            correct_index=correct_index,
            points=to_points(points),
            explanation=explanation,
            tags=tuple(tags),
        )
