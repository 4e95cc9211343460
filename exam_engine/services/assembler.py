"""Variation assembly: question selection and shuffling.

HOW A VARIATION IS BUILT
-------------------------
1. Look up the eligible pool for every tier the exam asks for (active
   questions of that difficulty in the exam's subjects), and check every
   pool is large enough BEFORE drawing anything.  A short pool fails the
   whole assembly with InsufficientQuestionsError; no partial result.

2. For each variation, independently:
     a. draw each tier's questions uniformly without replacement,
     b. concatenate easy -> medium -> hard,
     c. optionally Fisher-Yates shuffle the whole sequence,
     d. for each multiple-choice question, optionally Fisher-Yates
        shuffle its alternatives.

TRACKING THE CORRECT ANSWER THROUGH A SHUFFLE
----------------------------------------------
We never shuffle the alternative texts themselves.  We shuffle the list
of ORIGINAL INDICES [0, 1, 2, ...] and read the texts through it:

    order        = [2, 0, 3, 1]          # presentation slot -> original index
    alternatives = [orig[2], orig[0], orig[3], orig[1]]
    correct      = order.index(orig_correct)

Two alternatives may carry identical text ("None of the above" twice
after a careless edit); looking the correct answer up by text would pick
the wrong one.  Looking it up by index cannot.

WHY AN INJECTED random.Random
------------------------------
Every random choice goes through the ``rng`` argument.  Tests pass
``random.Random(seed)`` and get the exact same draws and permutations on
every run; production passes an unseeded instance.

OVERLAP BETWEEN VARIATIONS
---------------------------
Variations draw from the full pool independently, so two variations of
the same exam may share questions.  When a pool is exactly as large as
the requested count, every variation gets the same question set (order
and alternatives still differ).
"""

from __future__ import annotations

import datetime
import logging
import random
from collections.abc import Collection, MutableSequence, Sequence
from typing import Protocol, TypeVar
from uuid import UUID

from exam_engine.core.errors import InsufficientQuestionsError, InvalidExamError
from exam_engine.core.metrics import ASSEMBLY_FAILURES, VARIATIONS_ASSEMBLED
from exam_engine.models.exam import MAX_VARIATIONS, MIN_VARIATIONS, Distribution, Exam
from exam_engine.models.question import Question
from exam_engine.models.variation import Variation, VariationItem

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PoolLookup(Protocol):
    def find_by_difficulty(
        self, subject_ids: Collection[UUID], difficulty: str
    ) -> list[Question]: ...


def fisher_yates(items: Sequence[T], rng: random.Random) -> list[T]:
    """Return a uniformly shuffled copy of items."""
    shuffled: MutableSequence[T] = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return list(shuffled)


def build_item(
    question: Question, rng: random.Random, randomize_alternatives: bool
) -> VariationItem:
    """Fix one question's alternative order and remapped correct index."""
    if not question.is_multiple_choice:
        return VariationItem(
            question_id=question.id,
            difficulty=question.difficulty,
            question_type=question.type,
            points=question.points,
        )

    identity = list(range(len(question.alternatives)))
    order = fisher_yates(identity, rng) if randomize_alternatives else identity
    return VariationItem(
        question_id=question.id,
        difficulty=question.difficulty,
        question_type=question.type,
        points=question.points,
        alternatives=tuple(question.alternatives[i] for i in order),
        alternative_order=tuple(order),
        correct_index=order.index(question.correct_index),  # type: ignore[arg-type]
    )


def _load_pools(
    pool_lookup: PoolLookup,
    subject_ids: Collection[UUID],
    distribution: Distribution,
) -> dict[str, list[Question]]:
    pools: dict[str, list[Question]] = {}
    for difficulty, requested in distribution.items():
        if requested == 0:
            continue
        pool = pool_lookup.find_by_difficulty(subject_ids, difficulty)
        if len(pool) < requested:
            ASSEMBLY_FAILURES.labels(reason="insufficient_questions").inc()
            logger.warning(
                "Assembly rejected: %s pool has %d questions, %d requested",
                difficulty,
                len(pool),
                requested,
            )
            raise InsufficientQuestionsError(difficulty, requested, len(pool))
        pools[difficulty] = pool
    return pools


def assemble(
    pool_lookup: PoolLookup,
    subject_ids: Collection[UUID],
    distribution: Distribution,
    variation_count: int,
    randomize_questions: bool,
    randomize_alternatives: bool,
    *,
    exam_id: UUID,
    generation: int,
    rng: random.Random,
    now: datetime.datetime,
) -> list[Variation]:
    """Produce variation_count complete variations, or raise before producing any."""
    if not subject_ids:
        raise InvalidExamError("at least one subject is required")
    if not MIN_VARIATIONS <= variation_count <= MAX_VARIATIONS:
        raise InvalidExamError(
            f"variation_count must be in {MIN_VARIATIONS}..{MAX_VARIATIONS} "
            f"(got {variation_count})"
        )
    distribution = Distribution.of(**distribution.as_dict())

    pools = _load_pools(pool_lookup, subject_ids, distribution)

    variations: list[Variation] = []
    for number in range(1, variation_count + 1):
        selected: list[Question] = []
        for difficulty, requested in distribution.items():
            if requested:
                selected.extend(rng.sample(pools[difficulty], requested))

        if randomize_questions:
            selected = fisher_yates(selected, rng)

        items = tuple(build_item(q, rng, randomize_alternatives) for q in selected)
        variations.append(
            Variation.new(
                exam_id=exam_id,
                variation_number=number,
                generation=generation,
                created_at=now,
                items=items,
            )
        )

    VARIATIONS_ASSEMBLED.inc(len(variations))
    logger.info(
        "Assembled %d variations of %d questions (generation %d)",
        len(variations),
        distribution.total,
        generation,
        extra={"exam_id": str(exam_id)},
    )
    return variations


def assemble_for_exam(
    exam: Exam,
    pool_lookup: PoolLookup,
    *,
    generation: int,
    rng: random.Random,
    now: datetime.datetime,
) -> list[Variation]:
    return assemble(
        pool_lookup,
        exam.subject_ids,
        exam.distribution,
        exam.variation_count,
        exam.randomize_questions,
        exam.randomize_alternatives,
        exam_id=exam.id,
        generation=generation,
        rng=rng,
        now=now,
    )
