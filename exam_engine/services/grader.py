"""Pure submission grading.

grade() never touches a repository: it takes a variation and the raw
answers and returns a GradeResult.  Recording the result and bumping
question counters is GradingService's job.

Scores are Decimal all the way through.  Rounding is ROUND_HALF_UP, the
schoolbook rule (6.665 -> 6.67), not Python's default banker's rounding
(which would give 6.66 and surprise every teacher checking by hand).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from exam_engine.core.errors import InvalidAnswerShapeError
from exam_engine.models.exam import MAX_SCORE
from exam_engine.models.submission import GradeResult, ItemResult, RawAnswer
from exam_engine.models.variation import Variation, VariationItem

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_TWO_PLACES = Decimal("0.01")
_ONE_PLACE = Decimal("0.1")


def check_shape(variation: Variation, raw_answers: object) -> tuple[RawAnswer, ...]:
    """Validate the answer array against the variation's layout.

    Returns the answers as a tuple.  A shorter array is fine: missing
    positions count as unanswered.
    """
    if not isinstance(raw_answers, (list, tuple)):
        raise InvalidAnswerShapeError(
            f"answers must be an array (got {type(raw_answers).__name__})"
        )
    if len(raw_answers) > len(variation.items):
        raise InvalidAnswerShapeError(
            f"{len(raw_answers)} answers for a variation of "
            f"{len(variation.items)} questions"
        )

    for position, (item, answer) in enumerate(zip(variation.items, raw_answers)):
        if answer is None:
            continue
        if item.is_multiple_choice:
            if isinstance(answer, bool) or not isinstance(answer, int):
                raise InvalidAnswerShapeError(
                    f"position {position}: multiple-choice answer must be an "
                    f"alternative index or null (got {answer!r})"
                )
        elif not isinstance(answer, str):
            raise InvalidAnswerShapeError(
                f"position {position}: essay answer must be text or null "
                f"(got {answer!r})"
            )
    return tuple(raw_answers)


def _grade_item(position: int, item: VariationItem, answer: RawAnswer) -> ItemResult:
    if item.is_multiple_choice:
        # Out-of-range indices simply never equal correct_index.
        is_correct: bool | None = answer is not None and answer == item.correct_index
        earned = item.points if is_correct else _ZERO
    else:
        is_correct = None
        earned = _ZERO
    return ItemResult(
        position=position,
        question_id=item.question_id,
        question_type=item.question_type,
        difficulty=item.difficulty,
        answer=answer,
        correct_index=item.correct_index,
        is_correct=is_correct,
        points_earned=earned,
        max_points=item.points,
    )


def compute_score(earned: Decimal, total: Decimal) -> tuple[Decimal, Decimal]:
    """(score on 0..10 at 2 places, percentage at 1 place)."""
    if total <= 0:
        return _ZERO.quantize(_TWO_PLACES), _ZERO.quantize(_ONE_PLACE)
    ratio = earned / total
    score = (ratio * MAX_SCORE).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    percentage = (ratio * _HUNDRED).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)
    return score, percentage


def grade(variation: Variation, raw_answers: Sequence[RawAnswer]) -> GradeResult:
    answers = check_shape(variation, raw_answers)

    items = tuple(
        _grade_item(
            position, item, answers[position] if position < len(answers) else None
        )
        for position, item in enumerate(variation.items)
    )

    earned = sum((i.points_earned for i in items), _ZERO)
    total = sum((i.max_points for i in items), _ZERO)
    score, percentage = compute_score(earned, total)

    return GradeResult(
        score=score,
        correct_count=sum(1 for i in items if i.is_correct),
        total_questions=len(items),
        percentage=percentage,
        earned_points=earned,
        total_points=total,
        items=items,
    )
