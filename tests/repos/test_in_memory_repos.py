from __future__ import annotations

import datetime
from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from exam_engine.models.submission import Submission
from exam_engine.models.variation import Variation, VariationItem
from exam_engine.repos.question_repo import InMemoryQuestionRepo
from exam_engine.repos.submission_repo import InMemorySubmissionRepo
from exam_engine.repos.variation_repo import InMemoryVariationRepo
from tests.conftest import NOW, make_question, seed_pool


def _variation(exam_id, generation: int, question_id=None) -> Variation:
    return Variation.new(
        exam_id=exam_id,
        variation_number=1,
        generation=generation,
        created_at=NOW,
        items=(
            VariationItem(
                question_id=question_id or uuid4(),
                difficulty="easy",
                question_type="essay",
                points=Decimal("1"),
            ),
        ),
    )


# ---- questions ----


def test_find_by_difficulty_filters_subject_tier_and_active() -> None:
    repo = InMemoryQuestionRepo()
    subject = uuid4()
    easy = seed_pool(repo, subject, easy=2, hard=1)
    seed_pool(repo, uuid4(), easy=3)
    repo.set_active(easy[1].id, False)

    assert repo.find_by_difficulty({subject}, "easy") == [easy[0]]
    assert repo.count_by_difficulty({subject}) == {"easy": 1, "medium": 0, "hard": 1}


def test_add_duplicate_rejected() -> None:
    repo = InMemoryQuestionRepo()
    q = make_question(uuid4())
    repo.add(q)
    with pytest.raises(ValueError):
        repo.add(q)


def test_increment_usage_is_all_or_nothing() -> None:
    repo = InMemoryQuestionRepo()
    (q,) = seed_pool(repo, uuid4(), easy=1)

    with pytest.raises(KeyError):
        repo.increment_usage({q.id: (1, 1), uuid4(): (1, 0)})
    assert repo.get_by_id(q.id).times_used == 0

    repo.increment_usage({q.id: (2, 1)})
    stored = repo.get_by_id(q.id)
    assert (stored.times_used, stored.times_correct) == (2, 1)


def test_increment_usage_rejects_correct_above_used() -> None:
    repo = InMemoryQuestionRepo()
    (q,) = seed_pool(repo, uuid4(), easy=1)
    with pytest.raises(ValueError):
        repo.increment_usage({q.id: (1, 2)})


# ---- variations ----


def test_replace_moves_current_pointer() -> None:
    repo = InMemoryVariationRepo()
    exam_id = uuid4()
    first = _variation(exam_id, 1)
    second = _variation(exam_id, 2)

    repo.replace_for_exam(exam_id, [first])
    repo.replace_for_exam(exam_id, [second])

    assert repo.list_current(exam_id) == [second]
    assert repo.current_generation(exam_id) == 2
    assert repo.get_by_id(first.id) == first


def test_replace_rejects_stale_generation() -> None:
    repo = InMemoryVariationRepo()
    exam_id = uuid4()
    repo.replace_for_exam(exam_id, [_variation(exam_id, 1)])

    with pytest.raises(ValueError, match="stale"):
        repo.replace_for_exam(exam_id, [_variation(exam_id, 1)])
    assert repo.current_generation(exam_id) == 1


def test_replace_rejects_foreign_variation() -> None:
    repo = InMemoryVariationRepo()
    with pytest.raises(ValueError, match="belongs to exam"):
        repo.replace_for_exam(uuid4(), [_variation(uuid4(), 1)])


def test_references_question_and_delete_for_exam() -> None:
    repo = InMemoryVariationRepo()
    exam_id, qid = uuid4(), uuid4()
    repo.replace_for_exam(exam_id, [_variation(exam_id, 1, qid)])
    assert repo.references_question(qid)

    assert repo.delete_for_exam(exam_id) == 1
    assert not repo.references_question(qid)
    assert repo.list_current(exam_id) == []
    assert repo.current_generation(exam_id) == 0


# ---- submissions ----


def test_transition_is_compare_and_set() -> None:
    repo = InMemorySubmissionRepo()
    s = Submission.new(
        exam_id=uuid4(),
        variation_id=uuid4(),
        answers=(0,),
        submitted_at=NOW,
    )
    repo.add(s)
    graded = replace(s, status="graded", graded_at=NOW + datetime.timedelta(seconds=1))

    assert repo.transition("submitted", graded) == graded
    assert repo.transition("submitted", graded) is None
    assert repo.get_by_id(s.id).status == "graded"


def test_transition_unknown_submission() -> None:
    repo = InMemorySubmissionRepo()
    s = Submission.new(
        exam_id=uuid4(), variation_id=uuid4(), answers=(), submitted_at=NOW
    )
    assert repo.transition("submitted", s) is None
