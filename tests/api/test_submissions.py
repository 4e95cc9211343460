from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from exam_engine.api import dependencies
from tests.conftest import create_exam_via_api, seed_pool_via_api


def _published_variation(
    client: TestClient, **exam_fields: object
) -> tuple[dict, dict]:
    subject = uuid.uuid4()
    seed_pool_via_api(client, subject, easy=3, medium=2)
    exam = create_exam_via_api(client, subject, easy=2, medium=1, **exam_fields)
    client.post(f"/v1/exams/{exam['id']}/publish")
    variation = client.get(f"/v1/exams/{exam['id']}/variations").json()[0]
    return exam, variation


def _key(client: TestClient, exam: dict, variation: dict) -> list[int]:
    resp = client.get(f"/v1/exams/{exam['id']}/variations/{variation['id']}/answer-key")
    return [e["correct_index"] for e in resp.json()]


def test_submit_and_grade(client: TestClient) -> None:
    exam, variation = _published_variation(client)
    answers = _key(client, exam, variation)
    answers[2] = (answers[2] + 1) % 4

    resp = client.post(
        "/v1/submissions",
        json={
            "variation_id": variation["id"],
            "answers": answers,
            "student_name": "Lin",
        },
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "graded"
    assert data["exam_id"] == exam["id"]
    assert data["score"] == "6.67"
    assert data["percentage"] == "66.7"
    assert data["correct_count"] == 2
    assert data["letter_grade"] == "D"
    assert data["passed"] is True
    assert [i["is_correct"] for i in data["items"]] == [True, True, False]
    assert sum(t["total"] for t in data["by_difficulty"].values()) == 3


def test_grading_twice_is_409_and_score_kept(client: TestClient) -> None:
    exam, variation = _published_variation(client)
    answers = _key(client, exam, variation)
    sub = client.post(
        "/v1/submissions", json={"variation_id": variation["id"], "answers": answers}
    ).json()

    resp = client.post(f"/v1/submissions/{sub['id']}/grade")
    assert resp.status_code == 409
    assert client.get(f"/v1/submissions/{sub['id']}").json()["score"] == "10.00"

    used = [
        dependencies.question_repo.get_by_id(uuid.UUID(i["question_id"])).times_used
        for i in variation["items"]
    ]
    assert used == [1, 1, 1]


def test_record_without_grading(client: TestClient) -> None:
    _, variation = _published_variation(client)
    resp = client.post(
        "/v1/submissions",
        params={"grade": "false"},
        json={"variation_id": variation["id"], "answers": [0]},
    )
    assert resp.status_code == 201
    sub = resp.json()
    assert sub["status"] == "submitted"
    assert sub["score"] is None
    assert sub["letter_grade"] is None
    assert sub["passed"] is None

    graded = client.post(f"/v1/submissions/{sub['id']}/grade")
    assert graded.status_code == 200
    assert graded.json()["status"] == "graded"


def test_grade_with_vanished_question_is_404_and_stays_submitted(
    client: TestClient,
) -> None:
    _, variation = _published_variation(client)
    sub = client.post(
        "/v1/submissions",
        params={"grade": "false"},
        json={"variation_id": variation["id"], "answers": [0]},
    ).json()
    dependencies.question_repo.delete(uuid.UUID(variation["items"][0]["question_id"]))

    resp = client.post(f"/v1/submissions/{sub['id']}/grade")

    assert resp.status_code == 404
    assert "question" in resp.json()["detail"]
    assert client.get(f"/v1/submissions/{sub['id']}").json()["status"] == "submitted"


def test_malformed_answers_are_422(client: TestClient) -> None:
    _, variation = _published_variation(client)
    for answers in ([True, 0, 0], [0, 0, 0, 0], "0,1,2", [0, "b", 1]):
        resp = client.post(
            "/v1/submissions",
            json={"variation_id": variation["id"], "answers": answers},
        )
        assert resp.status_code == 422, answers


def test_unknown_variation_is_404(client: TestClient) -> None:
    resp = client.post(
        "/v1/submissions", json={"variation_id": str(uuid.uuid4()), "answers": []}
    )
    assert resp.status_code == 404


def test_review_overrides_score(client: TestClient) -> None:
    _, variation = _published_variation(client)
    sub = client.post(
        "/v1/submissions", json={"variation_id": variation["id"], "answers": []}
    ).json()
    assert sub["passed"] is False

    resp = client.post(
        f"/v1/submissions/{sub['id']}/review",
        json={"score": "6.5", "reviewed_by": "prof", "feedback": "Partial credit."},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "reviewed"
    assert data["score"] == "6.50"
    assert data["passed"] is True
    assert data["reviewed_by"] == "prof"

    again = client.post(f"/v1/submissions/{sub['id']}/review", json={"score": "7"})
    assert again.status_code == 409


def test_review_essay_points(client: TestClient) -> None:
    subject = uuid.uuid4()
    seed_pool_via_api(client, subject, easy=1)
    essay = client.post(
        "/v1/questions",
        json={
            "subject_id": str(subject),
            "text": "Why is the sky blue?",
            "difficulty": "hard",
            "type": "essay",
            "points": 3,
        },
    ).json()
    exam = create_exam_via_api(
        client,
        subject,
        easy=1,
        medium=0,
        hard=1,
        variation_count=1,
        randomize_questions=False,
    )
    client.post(f"/v1/exams/{exam['id']}/publish")
    variation = client.get(f"/v1/exams/{exam['id']}/variations").json()[0]
    assert variation["items"][1]["question_id"] == essay["id"]

    sub = client.post(
        "/v1/submissions",
        json={
            "variation_id": variation["id"],
            "answers": [None, "Rayleigh scattering."],
        },
    ).json()
    assert sub["items"][1]["is_correct"] is None
    assert sub["score"] == "0.00"

    resp = client.post(
        f"/v1/submissions/{sub['id']}/review", json={"essay_points": {"1": "3"}}
    )
    assert resp.status_code == 200
    assert resp.json()["score"] == "7.50"
    assert resp.json()["items"][1]["is_correct"] is True

    bad = client.post(f"/v1/submissions/{sub['id']}/review", json={"essay_points": {}})
    assert bad.status_code == 409


def test_review_rejects_multiple_choice_position(client: TestClient) -> None:
    _, variation = _published_variation(client)
    sub = client.post(
        "/v1/submissions", json={"variation_id": variation["id"], "answers": []}
    ).json()
    resp = client.post(
        f"/v1/submissions/{sub['id']}/review", json={"essay_points": {"0": 1}}
    )
    assert resp.status_code == 422


def test_unknown_submission_is_404(client: TestClient) -> None:
    assert client.get(f"/v1/submissions/{uuid.uuid4()}").status_code == 404
    assert client.post(f"/v1/submissions/{uuid.uuid4()}/grade").status_code == 404
