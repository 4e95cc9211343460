from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from exam_engine.models.variation import Variation


class VariationRepo(Protocol):
    def get_by_id(self, variation_id: UUID) -> Variation | None: ...
    def list_current(self, exam_id: UUID) -> list[Variation]: ...
    def current_generation(self, exam_id: UUID) -> int: ...
    def replace_for_exam(self, exam_id: UUID, variations: Sequence[Variation]) -> None: ...
    def references_question(self, question_id: UUID) -> bool: ...
    def delete_for_exam(self, exam_id: UUID) -> int: ...


class InMemoryVariationRepo:
    """Keeps every variation ever issued, plus a pointer to each exam's
    current set.

    Replacing a set only moves the pointer: superseded variations stay
    readable by id so submissions made against them still grade.
    """

    def __init__(self) -> None:
        self._by_id: dict[UUID, Variation] = {}
        self._current: dict[UUID, tuple[UUID, ...]] = {}
        self._generation: dict[UUID, int] = {}
        self._lock = threading.Lock()

    def get_by_id(self, variation_id: UUID) -> Variation | None:
        return self._by_id.get(variation_id)

    def list_current(self, exam_id: UUID) -> list[Variation]:
        ids = self._current.get(exam_id, ())
        return sorted(
            (self._by_id[vid] for vid in ids), key=lambda v: v.variation_number
        )

    def current_generation(self, exam_id: UUID) -> int:
        return self._generation.get(exam_id, 0)

    def replace_for_exam(self, exam_id: UUID, variations: Sequence[Variation]) -> None:
        """Swap in a complete new set in one step.

        The set must belong to the exam and carry the next generation
        number; a set built against an older generation is rejected so
        two racing regenerations cannot both win.
        """
        with self._lock:
            expected = self._generation.get(exam_id, 0) + 1
            for v in variations:
                if v.exam_id != exam_id:
                    raise ValueError(f"variation {v.id} belongs to exam {v.exam_id}")
                if v.generation != expected:
                    raise ValueError(
                        f"stale variation set: generation {v.generation}, "
                        f"expected {expected}"
                    )
            for v in variations:
                self._by_id[v.id] = v
            self._current[exam_id] = tuple(v.id for v in variations)
            self._generation[exam_id] = expected

    def references_question(self, question_id: UUID) -> bool:
        return any(
            question_id in v.question_ids for v in list(self._by_id.values())
        )

    def delete_for_exam(self, exam_id: UUID) -> int:
        with self._lock:
            doomed = [vid for vid, v in self._by_id.items() if v.exam_id == exam_id]
            for vid in doomed:
                del self._by_id[vid]
            self._current.pop(exam_id, None)
            self._generation.pop(exam_id, None)
            return len(doomed)
