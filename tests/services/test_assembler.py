from __future__ import annotations

import datetime
import random
from collections import Counter
from uuid import uuid4

import pytest

from exam_engine.core.errors import InsufficientQuestionsError, InvalidExamError
from exam_engine.models.exam import Distribution
from exam_engine.repos.question_repo import InMemoryQuestionRepo
from exam_engine.services.assembler import assemble, build_item, fisher_yates
from tests.conftest import make_essay, make_question, seed_pool

NOW = datetime.datetime(2026, 3, 2, 9, 0, tzinfo=datetime.UTC)


def _assemble(repo, subjects, distribution, count=3, *, seed=7, **flags):
    return assemble(
        repo,
        subjects,
        distribution,
        count,
        flags.get("randomize_questions", True),
        flags.get("randomize_alternatives", True),
        exam_id=uuid4(),
        generation=1,
        rng=random.Random(seed),
        now=NOW,
    )


def test_each_variation_has_requested_tier_counts() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=10, medium=10, hard=10)

    variations = _assemble(repo, {subject}, Distribution.of(easy=3, medium=5, hard=2))

    assert [v.variation_number for v in variations] == [1, 2, 3]
    for v in variations:
        tiers = Counter(item.difficulty for item in v.items)
        assert tiers == {"easy": 3, "medium": 5, "hard": 2}
        # No question twice within one variation.
        assert len(set(v.question_ids)) == 10


def test_unshuffled_variation_is_ordered_by_tier() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=4, medium=4, hard=4)

    (variation,) = _assemble(
        repo,
        {subject},
        Distribution.of(easy=2, medium=1, hard=2),
        1,
        randomize_questions=False,
    )
    assert [i.difficulty for i in variation.items] == [
        "easy",
        "easy",
        "medium",
        "hard",
        "hard",
    ]


def test_zero_tier_needs_no_pool() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=2)

    (variation,) = _assemble(repo, {subject}, Distribution.of(easy=2), 1)
    assert len(variation.items) == 2


def test_shuffled_alternatives_track_correct_answer() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    questions = {q.id: q for q in seed_pool(repo, subject, easy=8, medium=8)}

    variations = _assemble(repo, {subject}, Distribution.of(easy=5, medium=5), 10)

    for v in variations:
        for item in v.items:
            original = questions[item.question_id]
            assert sorted(item.alternative_order) == list(
                range(len(original.alternatives))
            )
            for slot, source in enumerate(item.alternative_order):
                assert item.alternatives[slot] == original.alternatives[source]
            assert item.alternatives[item.correct_index] == original.correct_alternative
            assert item.alternative_order[item.correct_index] == original.correct_index


def test_duplicate_alternative_texts_remap_by_index() -> None:
    q = make_question(
        uuid4(), alternatives=("same", "same", "same", "same"), correct_index=2
    )
    for seed in range(20):
        item = build_item(q, random.Random(seed), True)
        assert item.alternative_order[item.correct_index] == 2


def test_alternatives_kept_in_order_when_not_randomized() -> None:
    q = make_question(uuid4(), correct_index=3)
    item = build_item(q, random.Random(1), False)
    assert item.alternatives == q.alternatives
    assert item.alternative_order == (0, 1, 2, 3)
    assert item.correct_index == 3
    assert item.correct_letter == "D"


def test_essay_items_carry_no_alternatives() -> None:
    item = build_item(make_essay(uuid4()), random.Random(1), True)
    assert item.alternatives == ()
    assert item.correct_index is None
    assert item.correct_letter is None


def test_same_seed_same_variations() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=10, medium=10, hard=10)
    distribution = Distribution.of(easy=3, medium=3, hard=3)

    first = _assemble(repo, {subject}, distribution, seed=99)
    second = _assemble(repo, {subject}, distribution, seed=99)

    assert [v.items for v in first] == [v.items for v in second]


def test_pool_equal_to_request_gives_same_question_set() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=4)

    variations = _assemble(repo, {subject}, Distribution.of(easy=4), 5)
    sets = {frozenset(v.question_ids) for v in variations}
    assert len(sets) == 1


def test_short_pool_fails_before_any_variation() -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=10, medium=10, hard=1)

    with pytest.raises(InsufficientQuestionsError) as excinfo:
        _assemble(repo, {subject}, Distribution.of(easy=3, medium=3, hard=2))

    assert excinfo.value.difficulty == "hard"
    assert excinfo.value.requested == 2
    assert excinfo.value.available == 1


def test_inactive_and_foreign_questions_not_eligible() -> None:
    subject, other = uuid4(), uuid4()
    repo = InMemoryQuestionRepo()
    mine = seed_pool(repo, subject, easy=2)
    seed_pool(repo, other, easy=5)
    repo.set_active(mine[0].id, False)

    with pytest.raises(InsufficientQuestionsError):
        _assemble(repo, {subject}, Distribution.of(easy=2), 1)


def test_pools_span_all_exam_subjects() -> None:
    algebra, geometry = uuid4(), uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, algebra, easy=1)
    seed_pool(repo, geometry, easy=1)

    (variation,) = _assemble(repo, {algebra, geometry}, Distribution.of(easy=2), 1)
    assert len(variation.items) == 2


@pytest.mark.parametrize("count", [0, 51])
def test_variation_count_bounds(count: int) -> None:
    subject = uuid4()
    repo = InMemoryQuestionRepo()
    seed_pool(repo, subject, easy=1)
    with pytest.raises(InvalidExamError):
        _assemble(repo, {subject}, Distribution.of(easy=1), count)


def test_no_subjects_rejected() -> None:
    with pytest.raises(InvalidExamError):
        _assemble(InMemoryQuestionRepo(), set(), Distribution.of(easy=1), 1)


def test_fisher_yates_is_a_permutation_and_leaves_input_alone() -> None:
    items = list(range(20))
    shuffled = fisher_yates(items, random.Random(3))
    assert sorted(shuffled) == items
    assert items == list(range(20))
    assert fisher_yates([], random.Random(3)) == []
