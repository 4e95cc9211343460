from __future__ import annotations

import threading
from typing import Protocol
from uuid import UUID

from exam_engine.models.submission import Submission, SubmissionStatus


class SubmissionRepo(Protocol):
    def get_by_id(self, submission_id: UUID) -> Submission | None: ...
    def add(self, submission: Submission) -> None: ...
    def transition(
        self, expected_status: SubmissionStatus, updated: Submission
    ) -> Submission | None: ...
    def list_by_exam(self, exam_id: UUID) -> list[Submission]: ...
    def delete_for_exam(self, exam_id: UUID) -> int: ...


class InMemorySubmissionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Submission] = {}
        self._lock = threading.Lock()

    def get_by_id(self, submission_id: UUID) -> Submission | None:
        return self._by_id.get(submission_id)

    def add(self, submission: Submission) -> None:
        with self._lock:
            if submission.id in self._by_id:
                raise ValueError("submission already exists")
            self._by_id[submission.id] = submission

    def transition(
        self, expected_status: SubmissionStatus, updated: Submission
    ) -> Submission | None:
        """Atomically replace a submission if it is still in expected_status.

        Returns the stored record, or None if the submission doesn't
        exist or another caller already moved it on.
        """
        with self._lock:
            current = self._by_id.get(updated.id)
            if current is None or current.status != expected_status:
                return None
            self._by_id[updated.id] = updated
            return updated

    def list_by_exam(self, exam_id: UUID) -> list[Submission]:
        return [s for s in list(self._by_id.values()) if s.exam_id == exam_id]

    def delete_for_exam(self, exam_id: UUID) -> int:
        with self._lock:
            doomed = [sid for sid, s in self._by_id.items() if s.exam_id == exam_id]
            for sid in doomed:
                del self._by_id[sid]
            return len(doomed)
