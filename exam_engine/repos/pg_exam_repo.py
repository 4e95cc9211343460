"""Async PostgreSQL counterpart of ExamRepo."""

from __future__ import annotations

import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exam_engine.db.tables import ExamRow
from exam_engine.models.exam import Distribution, Exam


class PgExamRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, exam_id: UUID) -> Exam | None:
        stmt = select(ExamRow).where(ExamRow.id == exam_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_exam(row)

    async def add(self, exam: Exam) -> None:
        self._session.add(_exam_to_row(exam))
        await self._session.flush()

    async def set_published(
        self, exam_id: UUID, published_at: datetime.datetime | None
    ) -> Exam | None:
        stmt = (
            update(ExamRow)
            .where(ExamRow.id == exam_id)
            .values(is_published=published_at is not None, published_at=published_at)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(exam_id)

    async def delete(self, exam_id: UUID) -> bool:
        # Variations, their items and submissions go with it (ON DELETE CASCADE).
        stmt = delete(ExamRow).where(ExamRow.id == exam_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0


def _exam_to_row(exam: Exam) -> ExamRow:
    return ExamRow(
        id=exam.id,
        title=exam.title,
        subject_ids=sorted(exam.subject_ids),
        total_questions=exam.total_questions,
        easy_count=exam.distribution.easy,
        medium_count=exam.distribution.medium,
        hard_count=exam.distribution.hard,
        variation_count=exam.variation_count,
        passing_score=exam.passing_score,
        randomize_questions=exam.randomize_questions,
        randomize_alternatives=exam.randomize_alternatives,
        is_published=exam.is_published,
        published_at=exam.published_at,
        expires_at=exam.expires_at,
        created_at=exam.created_at,
    )


def _row_to_exam(row: ExamRow) -> Exam:
    return Exam(
        id=row.id,
        title=row.title,
        subject_ids=frozenset(row.subject_ids),
        total_questions=row.total_questions,
        distribution=Distribution(
            easy=row.easy_count, medium=row.medium_count, hard=row.hard_count
        ),
        created_at=row.created_at,
        variation_count=row.variation_count,
        passing_score=Decimal(row.passing_score),
        randomize_questions=row.randomize_questions,
        randomize_alternatives=row.randomize_alternatives,
        is_published=row.is_published,
        published_at=row.published_at,
        expires_at=row.expires_at,
    )
