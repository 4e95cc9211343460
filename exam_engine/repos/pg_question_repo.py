"""Async PostgreSQL counterpart of QuestionRepo."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Update, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exam_engine.db.tables import QuestionRow
from exam_engine.models.question import DIFFICULTIES, Question


class PgQuestionRepo:
    """Async counterpart of QuestionRepo; callers await every method."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, question_id: UUID) -> Question | None:
        stmt = select(QuestionRow).where(QuestionRow.id == question_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_question(row)

    async def add(self, question: Question) -> None:
        self._session.add(_question_to_row(question))
        await self._session.flush()

    async def find_by_difficulty(
        self, subject_ids: Collection[UUID], difficulty: str
    ) -> list[Question]:
        stmt = pool_stmt(subject_ids, difficulty)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_question(r) for r in rows]

    async def count_by_difficulty(self, subject_ids: Collection[UUID]) -> dict[str, int]:
        stmt = (
            select(QuestionRow.difficulty, func.count())
            .where(QuestionRow.subject_id.in_(list(subject_ids)))
            .where(QuestionRow.is_active.is_(True))
            .group_by(QuestionRow.difficulty)
        )
        counts = dict.fromkeys(DIFFICULTIES, 0)
        for difficulty, n in (await self._session.execute(stmt)).all():
            counts[difficulty] = n
        return counts

    async def set_active(self, question_id: UUID, is_active: bool) -> Question | None:
        stmt = (
            update(QuestionRow)
            .where(QuestionRow.id == question_id)
            .values(is_active=is_active)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(question_id)

    async def delete(self, question_id: UUID) -> bool:
        stmt = delete(QuestionRow).where(QuestionRow.id == question_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def increment_usage(self, deltas: Mapping[UUID, tuple[int, int]]) -> None:
        """Add (used, correct) to each question's counters in the database.

        The increments are computed by PostgreSQL from the current column
        value, so concurrent gradings never overwrite each other.  All
        statements run in the caller's transaction; a missing id raises
        and the session rolls everything back.
        """
        for qid, (used, correct) in deltas.items():
            result = await self._session.execute(increment_stmt(qid, used, correct))
            if result.rowcount == 0:
                raise KeyError(f"question not found: {qid}")


def pool_stmt(subject_ids: Collection[UUID], difficulty: str):
    # Ordered by id so a seeded assembler sees the pool in a stable order.
    return (
        select(QuestionRow)
        .where(QuestionRow.subject_id.in_(list(subject_ids)))
        .where(QuestionRow.difficulty == difficulty)
        .where(QuestionRow.is_active.is_(True))
        .order_by(QuestionRow.id)
    )


def increment_stmt(question_id: UUID, used: int, correct: int) -> Update:
    return (
        update(QuestionRow)
        .where(QuestionRow.id == question_id)
        .values(
            times_used=QuestionRow.times_used + used,
            times_correct=QuestionRow.times_correct + correct,
        )
    )


def _question_to_row(question: Question) -> QuestionRow:
    return QuestionRow(
        id=question.id,
        subject_id=question.subject_id,
        text=question.text,
        difficulty=question.difficulty,
        type=question.type,
        alternatives=list(question.alternatives),
        correct_index=question.correct_index,
        points=question.points,
        explanation=question.explanation,
        tags=list(question.tags),
        is_active=question.is_active,
        times_used=question.times_used,
        times_correct=question.times_correct,
    )


def _row_to_question(row: QuestionRow) -> Question:
    return Question(
        id=row.id,
        subject_id=row.subject_id,
        text=row.text,
        difficulty=row.difficulty,  # type: ignore[arg-type]
        type=row.type,  # type: ignore[arg-type]
        alternatives=tuple(row.alternatives) if row.alternatives else (),
        correct_index=row.correct_index,
        points=Decimal(row.points),
        explanation=row.explanation,
        tags=tuple(row.tags) if row.tags else (),
        is_active=row.is_active,
        times_used=row.times_used,
        times_correct=row.times_correct,
    )
