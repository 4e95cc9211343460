"""Statistics endpoint and its read-through cache.

1. First GET computes and stores the result under stats:{exam_id}
2. Second GET is served from the cache
3. Grading, review and exam deletion invalidate the entry
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from exam_engine.services.cache import cache_service, stats_key
from tests.conftest import create_exam_via_api, seed_pool_via_api


def _setup(client: TestClient) -> tuple[dict, dict, list[int]]:
    subject = uuid.uuid4()
    seed_pool_via_api(client, subject, easy=4, medium=2)
    exam = create_exam_via_api(client, subject, easy=2, medium=2, variation_count=1)
    client.post(f"/v1/exams/{exam['id']}/publish")
    variation = client.get(f"/v1/exams/{exam['id']}/variations").json()[0]
    key = client.get(
        f"/v1/exams/{exam['id']}/variations/{variation['id']}/answer-key"
    ).json()
    return exam, variation, [e["correct_index"] for e in key]


def _submit(client: TestClient, variation: dict, answers: list) -> dict:
    resp = client.post(
        "/v1/submissions", json={"variation_id": variation["id"], "answers": answers}
    )
    assert resp.status_code == 201
    return resp.json()


def test_statistics_without_submissions(client: TestClient) -> None:
    exam, _, _ = _setup(client)
    resp = client.get(f"/v1/exams/{exam['id']}/statistics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_submissions"] == 0
    assert data["average_score"] is None
    assert data["pass_rate"] == "0.0"


def test_statistics_summary(client: TestClient) -> None:
    exam, variation, right = _setup(client)
    _submit(client, variation, right)  # 10.00
    _submit(client, variation, right[:3])  # 7.50
    _submit(client, variation, right[:1])  # 2.50

    data = client.get(f"/v1/exams/{exam['id']}/statistics").json()
    assert data["total_submissions"] == 3
    assert data["average_score"] == "6.67"
    assert data["min_score"] == "2.50"
    assert data["max_score"] == "10.00"
    assert data["passed_count"] == 2
    assert data["pass_rate"] == "66.7"
    assert data["distribution"] == {
        "excellent": 1,
        "good": 1,
        "satisfactory": 0,
        "needs_improvement": 1,
    }


def test_statistics_cached_then_invalidated_by_grading(client: TestClient) -> None:
    exam, variation, right = _setup(client)
    _submit(client, variation, right)

    first = client.get(f"/v1/exams/{exam['id']}/statistics").json()
    assert stats_key(exam["id"]) in cache_service._store  # type: ignore[attr-defined]
    second = client.get(f"/v1/exams/{exam['id']}/statistics").json()
    assert first == second

    _submit(client, variation, [])
    assert stats_key(exam["id"]) not in cache_service._store  # type: ignore[attr-defined]
    fresh = client.get(f"/v1/exams/{exam['id']}/statistics").json()
    assert fresh["total_submissions"] == 2


def test_review_invalidates_statistics(client: TestClient) -> None:
    exam, variation, _ = _setup(client)
    sub = _submit(client, variation, [])
    assert client.get(f"/v1/exams/{exam['id']}/statistics").json()["passed_count"] == 0

    client.post(f"/v1/submissions/{sub['id']}/review", json={"score": "9"})

    data = client.get(f"/v1/exams/{exam['id']}/statistics").json()
    assert data["passed_count"] == 1
    assert data["max_score"] == "9.00"


def test_delete_exam_drops_cached_statistics(client: TestClient) -> None:
    exam, _, _ = _setup(client)
    client.get(f"/v1/exams/{exam['id']}/statistics")
    client.delete(f"/v1/exams/{exam['id']}")
    assert stats_key(exam["id"]) not in cache_service._store  # type: ignore[attr-defined]
