"""Demo: build an exam, print it, grade a paper, using FastAPI TestClient.

Run with:
    python scripts/demo_exam_flow.py
"""

from __future__ import annotations

import uuid

from fastapi.testclient import TestClient

from exam_engine.main import app

SUBJECT_ID = str(uuid.uuid4())


def _seed_questions(client: TestClient) -> None:
    for difficulty, count in (("easy", 4), ("medium", 3), ("hard", 2)):
        for n in range(count):
            client.post(
                "/v1/questions",
                json={
                    "subject_id": SUBJECT_ID,
                    "text": f"{difficulty} question {n + 1}",
                    "difficulty": difficulty,
                    "alternatives": ["alpha", "beta", "gamma", "delta"],
                    "correct_index": n % 4,
                },
            )


def main() -> None:
    client = TestClient(app)

    # ── Seed the bank ───────────────────────────────────────────────
    _seed_questions(client)
    r = client.get("/v1/questions/availability", params={"subject_id": SUBJECT_ID})
    print(f"1. availability            → {r.json()['available']}")

    # ── Create and publish ──────────────────────────────────────────
    r = client.post(
        "/v1/exams",
        json={
            "title": "Demo exam",
            "subject_ids": [SUBJECT_ID],
            "total_questions": 5,
            "distribution": {"easy": 2, "medium": 2, "hard": 1},
            "variation_count": 2,
        },
    )
    exam_id = r.json()["id"]
    print(f"2. POST /v1/exams          → {r.status_code}  status={r.json()['status']}")

    r = client.post(f"/v1/exams/{exam_id}/publish")
    print(f"3. publish                 → {r.status_code}  status={r.json()['status']}")

    variations = client.get(f"/v1/exams/{exam_id}/variations").json()
    first = variations[0]
    print(f"4. variations              → {len(variations)} sets")

    # ── Answer key for variation 1 ──────────────────────────────────
    key = client.get(
        f"/v1/exams/{exam_id}/variations/{first['id']}/answer-key"
    ).json()
    print("5. answer key              → " + " ".join(
        f"{e['number']}:{e['correct_letter']}" for e in key
    ))

    # ── A student gets everything but the last question right ───────
    answers = [e["correct_index"] for e in key]
    answers[-1] = (answers[-1] + 1) % 4
    r = client.post(
        "/v1/submissions",
        json={"variation_id": first["id"], "answers": answers, "student_name": "Demo"},
    )
    sub = r.json()
    print(
        f"6. POST /v1/submissions    → {r.status_code}  score={sub['score']} "
        f"({sub['percentage']}%, {sub['letter_grade']})"
    )

    # ── Retrying the grade is refused ───────────────────────────────
    r = client.post(f"/v1/submissions/{sub['id']}/grade")
    print(f"7. regrade                 → {r.status_code}  (already graded)")

    r = client.get(f"/v1/exams/{exam_id}/statistics")
    print(f"8. statistics              → {r.json()}")


if __name__ == "__main__":
    main()
