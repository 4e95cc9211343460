"""Async PostgreSQL counterpart of VariationRepo.

A variation is one exam_variations row plus one variation_items row per
position.  Superseded sets keep their rows with is_current = false.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from exam_engine.db.tables import ExamRow, VariationItemRow, VariationRow
from exam_engine.models.variation import Variation, VariationItem


class PgVariationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _items(self, variation_id: UUID) -> list[VariationItemRow]:
        stmt = (
            select(VariationItemRow)
            .where(VariationItemRow.variation_id == variation_id)
            .order_by(VariationItemRow.position)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_by_id(self, variation_id: UUID) -> Variation | None:
        stmt = select(VariationRow).where(VariationRow.id == variation_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_variation(row, await self._items(row.id))

    async def list_current(self, exam_id: UUID) -> list[Variation]:
        stmt = (
            select(VariationRow)
            .where(VariationRow.exam_id == exam_id)
            .where(VariationRow.is_current.is_(True))
            .order_by(VariationRow.variation_number)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_variation(r, await self._items(r.id)) for r in rows]

    async def current_generation(self, exam_id: UUID) -> int:
        stmt = select(func.coalesce(func.max(VariationRow.generation), 0)).where(
            VariationRow.exam_id == exam_id
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def replace_for_exam(
        self, exam_id: UUID, variations: Sequence[Variation]
    ) -> None:
        """Swap in a complete new set inside the caller's transaction.

        The exam row is locked FOR UPDATE first, so a concurrent
        regeneration in another process waits here and then fails the
        generation check instead of interleaving its rows with ours.
        """
        await self._session.execute(
            select(ExamRow.id).where(ExamRow.id == exam_id).with_for_update()
        )
        expected = await self.current_generation(exam_id) + 1
        for v in variations:
            if v.exam_id != exam_id:
                raise ValueError(f"variation {v.id} belongs to exam {v.exam_id}")
            if v.generation != expected:
                raise ValueError(
                    f"stale variation set: generation {v.generation}, "
                    f"expected {expected}"
                )

        await self._session.execute(
            update(VariationRow)
            .where(VariationRow.exam_id == exam_id)
            .values(is_current=False)
        )
        for v in variations:
            row, items = _variation_to_rows(v)
            self._session.add(row)
            self._session.add_all(items)
        await self._session.flush()

    async def references_question(self, question_id: UUID) -> bool:
        stmt = select(
            exists().where(VariationItemRow.question_id == question_id)
        )
        return bool((await self._session.execute(stmt)).scalar())

    async def delete_for_exam(self, exam_id: UUID) -> int:
        stmt = delete(VariationRow).where(VariationRow.exam_id == exam_id)
        result = await self._session.execute(stmt)
        return result.rowcount


def _variation_to_rows(
    variation: Variation,
) -> tuple[VariationRow, list[VariationItemRow]]:
    row = VariationRow(
        id=variation.id,
        exam_id=variation.exam_id,
        variation_number=variation.variation_number,
        generation=variation.generation,
        is_current=True,
        created_at=variation.created_at,
    )
    items = [
        VariationItemRow(
            variation_id=variation.id,
            position=position,
            question_id=item.question_id,
            difficulty=item.difficulty,
            question_type=item.question_type,
            points=item.points,
            alternatives=list(item.alternatives),
            alternative_order=list(item.alternative_order),
            correct_index=item.correct_index,
        )
        for position, item in enumerate(variation.items)
    ]
    return row, items


def _row_to_variation(
    row: VariationRow, items: Sequence[VariationItemRow]
) -> Variation:
    return Variation(
        id=row.id,
        exam_id=row.exam_id,
        variation_number=row.variation_number,
        generation=row.generation,
        created_at=row.created_at,
        items=tuple(
            VariationItem(
                question_id=i.question_id,
                difficulty=i.difficulty,  # type: ignore[arg-type]
                question_type=i.question_type,  # type: ignore[arg-type]
                points=Decimal(i.points),
                alternatives=tuple(i.alternatives) if i.alternatives else (),
                alternative_order=(
                    tuple(i.alternative_order) if i.alternative_order else ()
                ),
                correct_index=i.correct_index,
            )
            for i in sorted(items, key=lambda i: i.position)
        ),
    )
