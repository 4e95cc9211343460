"""Shared wiring for the HTTP layer.

Repositories are module-level in-memory singletons; the services are
built on top of them once, here, so every router sees the same state.
Tests reset the repositories between cases (see tests/conftest.py).
"""

from __future__ import annotations

import datetime
import logging
import random
import threading

from fastapi import HTTPException, status

from exam_engine.core.config import SETTINGS
from exam_engine.core.errors import ExamEngineError, NotFoundError
from exam_engine.repos.exam_repo import InMemoryExamRepo
from exam_engine.repos.question_repo import InMemoryQuestionRepo
from exam_engine.repos.submission_repo import InMemorySubmissionRepo
from exam_engine.repos.variation_repo import InMemoryVariationRepo
from exam_engine.services.exam_service import ExamService
from exam_engine.services.grading_service import GradingService
from exam_engine.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)

# --- Module-level repo singletons (in-memory) ---
question_repo = InMemoryQuestionRepo()
exam_repo = InMemoryExamRepo()
variation_repo = InMemoryVariationRepo()
submission_repo = InMemorySubmissionRepo()

# --- Services wired to these repos ---
# Serializes question deletes with variation assembly.
bank_lock = threading.Lock()
question_bank = QuestionBank(question_repo, variation_repo, bank_lock=bank_lock)
exam_service = ExamService(
    exams=exam_repo,
    questions=question_repo,
    variations=variation_repo,
    submissions=submission_repo,
    rng=random.Random(SETTINGS.assembly_seed),
    bank_lock=bank_lock,
)
grading_service = GradingService(
    exams=exam_repo,
    questions=question_repo,
    variations=variation_repo,
    submissions=submission_repo,
)


def http_error(exc: ExamEngineError) -> HTTPException:
    """Map a domain error onto the HTTP status the API documents.

    not found -> 404, bad input (the ValueError family) -> 422,
    everything else (state conflicts) -> 409.
    """
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValueError):
        code = status.HTTP_422_UNPROCESSABLE_CONTENT
    else:
        code = status.HTTP_409_CONFLICT
    logger.info("Request rejected (%d): %s", code, exc)
    return HTTPException(status_code=code, detail=str(exc))


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Treat naive timestamps from clients as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=datetime.UTC)
