from __future__ import annotations

import datetime
import threading
from uuid import uuid4

import pytest

from exam_engine.api import dependencies
from exam_engine.core.errors import (
    InvalidQuestionError,
    NotFoundError,
    QuestionInUseError,
)
from exam_engine.models.exam import Distribution
from exam_engine.models.variation import Variation, VariationItem
from exam_engine.repos.question_repo import InMemoryQuestionRepo
from exam_engine.repos.variation_repo import InMemoryVariationRepo
from exam_engine.services.question_bank import QuestionBank
from tests.conftest import seed_pool


@pytest.fixture
def bank() -> QuestionBank:
    return QuestionBank(InMemoryQuestionRepo(), InMemoryVariationRepo())


def test_create_and_get(bank: QuestionBank) -> None:
    q = bank.create(
        subject_id=uuid4(),
        text="Capital of Peru?",
        difficulty="medium",
        alternatives=["Lima", "Quito"],
        correct_index=0,
        tags=["geo"],
    )
    assert bank.get(q.id) == q
    assert q.tags == ("geo",)


def test_create_invalid(bank: QuestionBank) -> None:
    with pytest.raises(InvalidQuestionError):
        bank.create(subject_id=uuid4(), text="?", difficulty="easy", alternatives=["x"])


def test_get_missing(bank: QuestionBank) -> None:
    with pytest.raises(NotFoundError):
        bank.get(uuid4())


def test_availability_counts_active_only(bank: QuestionBank) -> None:
    subject = uuid4()
    questions = seed_pool(bank._questions, subject, easy=3, medium=2)
    bank.deactivate(questions[0].id)

    assert bank.availability([subject]) == {"easy": 2, "medium": 2, "hard": 0}
    assert bank.can_create_exam([subject], Distribution.of(easy=2, medium=2))
    assert not bank.can_create_exam([subject], Distribution.of(easy=3))
    assert not bank.can_create_exam([subject], Distribution.of(hard=1))


def test_delete_unreferenced(bank: QuestionBank) -> None:
    (q,) = seed_pool(bank._questions, uuid4(), easy=1)
    bank.delete(q.id)
    with pytest.raises(NotFoundError):
        bank.get(q.id)


def test_delete_referenced_refused(bank: QuestionBank) -> None:
    (q,) = seed_pool(bank._questions, uuid4(), easy=1)
    exam_id = uuid4()
    variation = Variation.new(
        exam_id=exam_id,
        variation_number=1,
        generation=1,
        created_at=datetime.datetime(2026, 1, 1, tzinfo=datetime.UTC),
        items=(
            VariationItem(
                question_id=q.id,
                difficulty=q.difficulty,
                question_type=q.type,
                points=q.points,
            ),
        ),
    )
    bank._variations.replace_for_exam(exam_id, [variation])

    with pytest.raises(QuestionInUseError):
        bank.delete(q.id)
    # Deactivation is the way out.
    assert bank.deactivate(q.id).is_active is False
    assert bank.get(q.id).is_active is False


def test_delete_missing(bank: QuestionBank) -> None:
    with pytest.raises(NotFoundError):
        bank.delete(uuid4())


def test_delete_waits_for_assembly_lock() -> None:
    lock = threading.Lock()
    bank = QuestionBank(
        InMemoryQuestionRepo(), InMemoryVariationRepo(), bank_lock=lock
    )
    (q,) = seed_pool(bank._questions, uuid4(), easy=1)

    with lock:
        deleter = threading.Thread(target=bank.delete, args=(q.id,))
        deleter.start()
        deleter.join(timeout=0.1)
        assert deleter.is_alive()
        assert bank.get(q.id) == q
    deleter.join()

    with pytest.raises(NotFoundError):
        bank.get(q.id)


def test_api_shares_one_lock_between_delete_and_assembly() -> None:
    assert dependencies.question_bank._bank_lock is dependencies.bank_lock
    assert dependencies.exam_service._bank_lock is dependencies.bank_lock
