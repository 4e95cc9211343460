"""Recording, grading and review of submissions.

EXACTLY-ONCE GRADING
--------------------
A submission moves submitted -> graded -> reviewed, never backwards.
The submitted -> graded step is a compare-and-set in the repository: two
callers may both compute a result, but only one of them gets its record
stored.  The loser sees AlreadyGradedError and, crucially, never reaches
the counter update.  So each question's times_used / times_correct moves
exactly once per submission, however many retries or racing duplicates
arrive.

The counter update runs after the CAS, so every question it touches is
checked first: a missing one fails the grade with NotFoundError before
anything is stored.  Should the update still fail, the transition is
undone and the submission is left submitted for a retry.  QuestionBank
takes the same bank lock as assembly when deleting, so a question cannot
vanish between being drawn and its variation being stored.

REVIEW
------
Essay items earn 0 at grading time.  A reviewer later awards points per
essay position (capped at the item's points) and/or overrides the final
score.  Review is a graded -> reviewed transition and does not re-run
the shape checks or touch the usage counters.
"""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

from exam_engine.core.errors import (
    AlreadyGradedError,
    InvalidAnswerShapeError,
    InvalidTransitionError,
    NotFoundError,
)
from exam_engine.core.metrics import (
    GRADING_DURATION,
    GRADING_REJECTIONS,
    SUBMISSIONS_GRADED,
)
from exam_engine.models.exam import Exam, to_score
from exam_engine.models.submission import (
    GradeResult,
    RawAnswer,
    Submission,
)
from exam_engine.models.variation import Variation
from exam_engine.repos.exam_repo import ExamRepo
from exam_engine.repos.question_repo import QuestionRepo
from exam_engine.repos.submission_repo import SubmissionRepo
from exam_engine.repos.variation_repo import VariationRepo
from exam_engine.services import grader

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def is_passing(submission: Submission, exam: Exam) -> bool:
    return submission.score is not None and submission.score >= exam.passing_score


def _to_awarded(position: int, value: Decimal | int | float | str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAnswerShapeError(f"position {position}: points must be a number")
    try:
        points = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError):
        raise InvalidAnswerShapeError(
            f"position {position}: points must be a number (got {value!r})"
        ) from None
    if not points.is_finite() or points < 0:
        raise InvalidAnswerShapeError(
            f"position {position}: points cannot be negative (got {value!r})"
        )
    return points


class GradingService:
    def __init__(
        self,
        *,
        exams: ExamRepo,
        questions: QuestionRepo,
        variations: VariationRepo,
        submissions: SubmissionRepo,
        clock: Clock = _utcnow,
    ) -> None:
        self._exams = exams
        self._questions = questions
        self._variations = variations
        self._submissions = submissions
        self._clock = clock

    def get(self, submission_id: UUID) -> Submission:
        submission = self._submissions.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("submission", submission_id)
        return submission

    def _variation(self, variation_id: UUID) -> Variation:
        variation = self._variations.get_by_id(variation_id)
        if variation is None:
            raise NotFoundError("variation", variation_id)
        return variation

    def _exam(self, exam_id: UUID) -> Exam:
        exam = self._exams.get_by_id(exam_id)
        if exam is None:
            raise NotFoundError("exam", exam_id)
        return exam

    def record_submission(
        self,
        variation_id: UUID,
        raw_answers: Sequence[RawAnswer],
        submitted_at: datetime.datetime,
        *,
        student_name: str | None = None,
        student_ref: str | None = None,
    ) -> Submission:
        """Store an ungraded submission after checking its shape."""
        variation = self._variation(variation_id)
        try:
            answers = grader.check_shape(variation, raw_answers)
        except InvalidAnswerShapeError as exc:
            GRADING_REJECTIONS.labels(reason="invalid_shape").inc()
            logger.warning(
                "Submission rejected: %s",
                exc,
                extra={"variation_id": str(variation_id)},
            )
            raise

        submission = Submission.new(
            exam_id=variation.exam_id,
            variation_id=variation.id,
            answers=answers,
            submitted_at=submitted_at,
            student_name=student_name,
            student_ref=student_ref,
        )
        self._submissions.add(submission)
        logger.info(
            "Submission recorded",
            extra={
                "submission_id": str(submission.id),
                "variation_id": str(variation.id),
                "exam_id": str(variation.exam_id),
            },
        )
        return submission

    def grade_submission(
        self,
        variation_id: UUID,
        raw_answers: Sequence[RawAnswer],
        submitted_at: datetime.datetime,
        *,
        student_name: str | None = None,
        student_ref: str | None = None,
    ) -> tuple[Submission, GradeResult]:
        submission = self.record_submission(
            variation_id,
            raw_answers,
            submitted_at,
            student_name=student_name,
            student_ref=student_ref,
        )
        return self.grade(submission.id)

    def grade(self, submission_id: UUID) -> tuple[Submission, GradeResult]:
        start = time.perf_counter()

        submission = self.get(submission_id)
        if submission.status != "submitted":
            GRADING_REJECTIONS.labels(reason="already_graded").inc()
            logger.warning(
                "Grade refused: submission is %s",
                submission.status,
                extra={"submission_id": str(submission_id)},
            )
            raise AlreadyGradedError(submission_id, submission.status)

        variation = self._variation(submission.variation_id)
        exam = self._exam(submission.exam_id)
        result = grader.grade(variation, submission.answers)
        deltas = result.usage_deltas()
        for question_id in deltas:
            if self._questions.get_by_id(question_id) is None:
                GRADING_REJECTIONS.labels(reason="missing_question").inc()
                logger.warning(
                    "Grade refused: question %s no longer exists",
                    question_id,
                    extra={"submission_id": str(submission_id)},
                )
                raise NotFoundError("question", question_id)

        graded = replace(
            submission,
            status="graded",
            score=result.score,
            correct_count=result.correct_count,
            total_questions=result.total_questions,
            percentage=result.percentage,
            earned_points=result.earned_points,
            total_points=result.total_points,
            item_results=result.items,
            graded_at=self._clock(),
        )
        stored = self._submissions.transition("submitted", graded)
        if stored is None:
            # Lost the race to another grader.
            current = self.get(submission_id)
            GRADING_REJECTIONS.labels(reason="already_graded").inc()
            logger.warning(
                "Grade refused: concurrent grading won",
                extra={"submission_id": str(submission_id)},
            )
            raise AlreadyGradedError(submission_id, current.status)

        try:
            self._questions.increment_usage(deltas)
        except Exception:
            # Put the submission back so a retry can grade it.
            self._submissions.transition("graded", submission)
            logger.exception(
                "Usage update failed, grade rolled back",
                extra={"submission_id": str(submission_id)},
            )
            raise

        outcome = "passed" if is_passing(stored, exam) else "failed"
        SUBMISSIONS_GRADED.labels(outcome=outcome).inc()
        GRADING_DURATION.observe(time.perf_counter() - start)
        logger.info(
            "Submission graded: score=%s correct=%d/%d",
            result.score,
            result.correct_count,
            result.total_questions,
            extra={"submission_id": str(submission_id), "exam_id": str(exam.id)},
        )
        return stored, result

    def review(
        self,
        submission_id: UUID,
        *,
        essay_points: Mapping[int, Decimal | int | float | str] | None = None,
        score: Decimal | int | float | str | None = None,
        reviewed_by: str | None = None,
        feedback: str | None = None,
    ) -> Submission:
        """Apply a manual correction to a graded submission."""
        submission = self.get(submission_id)
        if submission.status != "graded":
            logger.warning(
                "Review refused: submission is %s",
                submission.status,
                extra={"submission_id": str(submission_id)},
            )
            raise InvalidTransitionError(submission_id, submission.status, "reviewed")

        items = list(submission.item_results)
        for position, raw_points in (essay_points or {}).items():
            if not 0 <= position < len(items):
                raise InvalidAnswerShapeError(f"position {position} does not exist")
            item = items[position]
            if item.question_type != "essay":
                raise InvalidAnswerShapeError(
                    f"position {position} is not an essay question"
                )
            awarded = min(_to_awarded(position, raw_points), item.max_points)
            items[position] = replace(
                item, points_earned=awarded, is_correct=awarded == item.max_points
            )

        earned = sum((i.points_earned for i in items), Decimal("0"))
        total = submission.total_points or Decimal("0")
        new_score, new_percentage = grader.compute_score(earned, total)
        if score is not None:
            new_score = to_score(score).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            new_percentage = (new_score * 10).quantize(Decimal("0.1"))

        reviewed = replace(
            submission,
            status="reviewed",
            item_results=tuple(items),
            earned_points=earned,
            correct_count=sum(1 for i in items if i.is_correct),
            score=new_score,
            percentage=new_percentage,
            reviewed_at=self._clock(),
            reviewed_by=reviewed_by,
            feedback=feedback,
        )
        stored = self._submissions.transition("graded", reviewed)
        if stored is None:
            current = self.get(submission_id)
            raise InvalidTransitionError(submission_id, current.status, "reviewed")

        logger.info(
            "Submission reviewed: score %s -> %s",
            submission.score,
            new_score,
            extra={"submission_id": str(submission_id)},
        )
        return stored
