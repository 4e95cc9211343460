from __future__ import annotations

import datetime

from exam_engine.models.exam import Exam, ExamStatus


def exam_status(exam: Exam, now: datetime.datetime) -> ExamStatus:
    """draft until published; expired once expires_at has passed."""
    if not exam.is_published:
        return "draft"
    if exam.expires_at is not None and exam.expires_at < now:
        return "expired"
    return "active"


def can_take_exam(exam: Exam, now: datetime.datetime) -> bool:
    return exam_status(exam, now) == "active"
