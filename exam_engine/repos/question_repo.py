from __future__ import annotations

import threading
from collections.abc import Collection, Mapping
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from exam_engine.models.question import DIFFICULTIES, Question


class QuestionRepo(Protocol):
    def get_by_id(self, question_id: UUID) -> Question | None: ...
    def add(self, question: Question) -> None: ...
    def find_by_difficulty(
        self, subject_ids: Collection[UUID], difficulty: str
    ) -> list[Question]: ...
    def count_by_difficulty(self, subject_ids: Collection[UUID]) -> dict[str, int]: ...
    def set_active(self, question_id: UUID, is_active: bool) -> Question | None: ...
    def delete(self, question_id: UUID) -> bool: ...
    def increment_usage(self, deltas: Mapping[UUID, tuple[int, int]]) -> None: ...


class InMemoryQuestionRepo:
    def __init__(self) -> None:
        # Insertion-ordered, so pools come back in a stable order and a
        # seeded assembler draws the same questions every run.
        self._by_id: dict[UUID, Question] = {}
        self._lock = threading.Lock()

    def get_by_id(self, question_id: UUID) -> Question | None:
        return self._by_id.get(question_id)

    def add(self, question: Question) -> None:
        with self._lock:
            if question.id in self._by_id:
                raise ValueError("question already exists")
            self._by_id[question.id] = question

    def find_by_difficulty(
        self, subject_ids: Collection[UUID], difficulty: str
    ) -> list[Question]:
        """Active questions of one tier across the given subjects."""
        return [
            q
            for q in list(self._by_id.values())
            if q.is_active and q.difficulty == difficulty and q.subject_id in subject_ids
        ]

    def count_by_difficulty(self, subject_ids: Collection[UUID]) -> dict[str, int]:
        counts = dict.fromkeys(DIFFICULTIES, 0)
        for q in list(self._by_id.values()):
            if q.is_active and q.subject_id in subject_ids:
                counts[q.difficulty] += 1
        return counts

    def set_active(self, question_id: UUID, is_active: bool) -> Question | None:
        with self._lock:
            q = self._by_id.get(question_id)
            if q is None:
                return None
            updated = replace(q, is_active=is_active)
            self._by_id[question_id] = updated
            return updated

    def delete(self, question_id: UUID) -> bool:
        with self._lock:
            return self._by_id.pop(question_id, None) is not None

    def increment_usage(self, deltas: Mapping[UUID, tuple[int, int]]) -> None:
        """Atomically add (used, correct) to each question's counters.

        Either every delta is applied or none is: all ids are checked
        before the first write, under the same lock.
        """
        with self._lock:
            missing = [qid for qid in deltas if qid not in self._by_id]
            if missing:
                raise KeyError(f"questions not found: {missing}")
            for qid, (used, correct) in deltas.items():
                if used < 0 or correct < 0 or correct > used:
                    raise ValueError(f"invalid usage delta for {qid}: {(used, correct)}")
            for qid, (used, correct) in deltas.items():
                q = self._by_id[qid]
                self._by_id[qid] = replace(
                    q,
                    times_used=q.times_used + used,
                    times_correct=q.times_correct + correct,
                )
