from __future__ import annotations

import datetime
import threading
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from exam_engine.models.exam import Exam


class ExamRepo(Protocol):
    def get_by_id(self, exam_id: UUID) -> Exam | None: ...
    def add(self, exam: Exam) -> None: ...
    def set_published(
        self, exam_id: UUID, published_at: datetime.datetime | None
    ) -> Exam | None: ...
    def delete(self, exam_id: UUID) -> bool: ...


class InMemoryExamRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Exam] = {}
        self._lock = threading.Lock()

    def get_by_id(self, exam_id: UUID) -> Exam | None:
        return self._by_id.get(exam_id)

    def add(self, exam: Exam) -> None:
        with self._lock:
            if exam.id in self._by_id:
                raise ValueError("exam already exists")
            self._by_id[exam.id] = exam

    def set_published(
        self, exam_id: UUID, published_at: datetime.datetime | None
    ) -> Exam | None:
        """Publish (published_at set) or unpublish (None) an exam."""
        with self._lock:
            exam = self._by_id.get(exam_id)
            if exam is None:
                return None
            updated = replace(
                exam, is_published=published_at is not None, published_at=published_at
            )
            self._by_id[exam_id] = updated
            return updated

    def delete(self, exam_id: UUID) -> bool:
        with self._lock:
            return self._by_id.pop(exam_id, None) is not None
