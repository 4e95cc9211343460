"""Async PostgreSQL counterpart of SubmissionRepo.

Answers and per-item results are stored as JSON text, the same way
request payloads are kept elsewhere in this schema.  Decimals are
written as strings so no precision is lost on the way through JSON.
"""

from __future__ import annotations

import json
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exam_engine.db.tables import SubmissionRow
from exam_engine.models.submission import ItemResult, Submission, SubmissionStatus


class PgSubmissionRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, submission_id: UUID) -> Submission | None:
        stmt = select(SubmissionRow).where(SubmissionRow.id == submission_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_submission(row)

    async def add(self, submission: Submission) -> None:
        row = SubmissionRow(id=submission.id, **_submission_values(submission))
        self._session.add(row)
        await self._session.flush()

    async def transition(
        self, expected_status: SubmissionStatus, updated: Submission
    ) -> Submission | None:
        """Conditional UPDATE: only applies while the row is in expected_status.

        Two concurrent graders both issue the UPDATE; PostgreSQL applies
        the first and the second matches zero rows.
        """
        stmt = transition_stmt(expected_status, updated)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None  # concurrent update won the race
        return updated

    async def list_by_exam(self, exam_id: UUID) -> list[Submission]:
        stmt = select(SubmissionRow).where(SubmissionRow.exam_id == exam_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_submission(r) for r in rows]

    async def delete_for_exam(self, exam_id: UUID) -> int:
        stmt = delete(SubmissionRow).where(SubmissionRow.exam_id == exam_id)
        result = await self._session.execute(stmt)
        return result.rowcount


def transition_stmt(expected_status: SubmissionStatus, updated: Submission):
    return (
        update(SubmissionRow)
        .where(SubmissionRow.id == updated.id)
        .where(SubmissionRow.status == expected_status)
        .values(**_submission_values(updated))
    )


def _dec(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _item_to_dict(item: ItemResult) -> dict:
    return {
        "position": item.position,
        "question_id": str(item.question_id),
        "question_type": item.question_type,
        "difficulty": item.difficulty,
        "answer": item.answer,
        "correct_index": item.correct_index,
        "is_correct": item.is_correct,
        "points_earned": _dec(item.points_earned),
        "max_points": _dec(item.max_points),
    }


def _dict_to_item(d: dict) -> ItemResult:
    return ItemResult(
        position=d["position"],
        question_id=UUID(d["question_id"]),
        question_type=d["question_type"],
        difficulty=d["difficulty"],
        answer=d["answer"],
        correct_index=d["correct_index"],
        is_correct=d["is_correct"],
        points_earned=Decimal(d["points_earned"]),
        max_points=Decimal(d["max_points"]),
    )


def _submission_values(s: Submission) -> dict:
    return {
        "exam_id": s.exam_id,
        "variation_id": s.variation_id,
        "answers_json": json.dumps(list(s.answers)),
        "status": s.status,
        "student_name": s.student_name,
        "student_ref": s.student_ref,
        "score": s.score,
        "correct_count": s.correct_count,
        "total_questions": s.total_questions,
        "percentage": s.percentage,
        "earned_points": s.earned_points,
        "total_points": s.total_points,
        "item_results_json": (
            json.dumps([_item_to_dict(i) for i in s.item_results])
            if s.item_results
            else None
        ),
        "submitted_at": s.submitted_at,
        "graded_at": s.graded_at,
        "reviewed_at": s.reviewed_at,
        "reviewed_by": s.reviewed_by,
        "feedback": s.feedback,
    }


def _row_to_submission(row: SubmissionRow) -> Submission:
    items = json.loads(row.item_results_json) if row.item_results_json else []
    return Submission(
        id=row.id,
        exam_id=row.exam_id,
        variation_id=row.variation_id,
        answers=tuple(json.loads(row.answers_json)),
        submitted_at=row.submitted_at,
        status=row.status,  # type: ignore[arg-type]
        student_name=row.student_name,
        student_ref=row.student_ref,
        score=None if row.score is None else Decimal(row.score),
        correct_count=row.correct_count,
        total_questions=row.total_questions,
        percentage=None if row.percentage is None else Decimal(row.percentage),
        earned_points=None if row.earned_points is None else Decimal(row.earned_points),
        total_points=None if row.total_points is None else Decimal(row.total_points),
        item_results=tuple(_dict_to_item(d) for d in items),
        graded_at=row.graded_at,
        reviewed_at=row.reviewed_at,
        reviewed_by=row.reviewed_by,
        feedback=row.feedback,
    )
