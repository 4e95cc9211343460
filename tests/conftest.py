from __future__ import annotations

import datetime
import sys
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from exam_engine.api import dependencies
from exam_engine.main import app
from exam_engine.models.question import Question
from exam_engine.repos.question_repo import InMemoryQuestionRepo
from exam_engine.services.cache import cache_service

# Ensure repo root is on sys.path so `import exam_engine` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

NOW = datetime.datetime(2026, 3, 2, 9, 0, tzinfo=datetime.UTC)


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the API's in-memory repositories between tests."""
    dependencies.question_repo._by_id.clear()
    dependencies.exam_repo._by_id.clear()
    dependencies.variation_repo._by_id.clear()
    dependencies.variation_repo._current.clear()
    dependencies.variation_repo._generation.clear()
    dependencies.submission_repo._by_id.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def fixed_clock() -> datetime.datetime:
    return NOW


# ---------------------------------------------------------------------------
# Question bank helpers
# ---------------------------------------------------------------------------


def make_question(
    subject_id: UUID,
    difficulty: str = "easy",
    *,
    alternatives: tuple[str, ...] = ("A1", "A2", "A3", "A4"),
    correct_index: int = 0,
    points: str = "1",
    text: str | None = None,
) -> Question:
    return Question.new(
        subject_id=subject_id,
        text=text or f"{difficulty} question {uuid4().hex[:6]}",
        difficulty=difficulty,
        alternatives=alternatives,
        correct_index=correct_index,
        points=points,
    )


def make_essay(
    subject_id: UUID, difficulty: str = "hard", points: str = "2"
) -> Question:
    return Question.new(
        subject_id=subject_id,
        text="Explain your reasoning.",
        difficulty=difficulty,
        type="essay",
        points=points,
    )


def seed_pool(
    repo: InMemoryQuestionRepo,
    subject_id: UUID,
    *,
    easy: int = 0,
    medium: int = 0,
    hard: int = 0,
) -> list[Question]:
    """Add multiple-choice questions to repo; correct_index cycles 0..3."""
    added = []
    for difficulty, count in (("easy", easy), ("medium", medium), ("hard", hard)):
        for n in range(count):
            q = make_question(subject_id, difficulty, correct_index=n % 4)
            repo.add(q)
            added.append(q)
    return added


def seed_pool_via_api(
    client: TestClient,
    subject_id: UUID,
    *,
    easy: int = 0,
    medium: int = 0,
    hard: int = 0,
) -> list[dict]:
    created = []
    for difficulty, count in (("easy", easy), ("medium", medium), ("hard", hard)):
        for n in range(count):
            resp = client.post(
                "/v1/questions",
                json={
                    "subject_id": str(subject_id),
                    "text": f"{difficulty} {n}",
                    "difficulty": difficulty,
                    "alternatives": ["w", "x", "y", "z"],
                    "correct_index": n % 4,
                },
            )
            assert resp.status_code == 201
            created.append(resp.json())
    return created


def create_exam_via_api(
    client: TestClient,
    subject_id: UUID,
    *,
    easy: int = 2,
    medium: int = 1,
    hard: int = 0,
    variation_count: int = 2,
    **extra: object,
) -> dict:
    body = {
        "title": "Midterm",
        "subject_ids": [str(subject_id)],
        "total_questions": easy + medium + hard,
        "distribution": {"easy": easy, "medium": medium, "hard": hard},
        "variation_count": variation_count,
    }
    body.update(extra)
    resp = client.post("/v1/exams", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()
