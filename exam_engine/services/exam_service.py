"""Exam lifecycle: creation, publishing, variation sets, reporting.

REGENERATION
------------
Regenerating an exam's variations builds the complete new set first and
only then hands it to the repository in one replace_for_exam() call.
If assembly fails halfway (a pool ran dry because someone deactivated
questions), nothing was written and the previous set is still current.

Two regenerations of the same exam are serialized by a per-exam lock,
so the second one sees the first one's generation number.  The
repository also refuses a set built for a stale generation, which
covers the case where two processes share one database.  Lock entries
outlive a deleted exam: a caller still queued on the lock then finds
the exam gone and gets NotFoundError instead of racing a fresh lock.
"""

from __future__ import annotations

import datetime
import logging
import random
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from exam_engine.core.errors import NotFoundError
from exam_engine.models.exam import Distribution, Exam, ExamStatus
from exam_engine.models.variation import AnswerKeyEntry, Variation, answer_key
from exam_engine.repos.exam_repo import ExamRepo
from exam_engine.repos.question_repo import QuestionRepo
from exam_engine.repos.submission_repo import SubmissionRepo
from exam_engine.repos.variation_repo import VariationRepo
from exam_engine.services import assembler
from exam_engine.services.status import exam_status

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass(frozen=True, slots=True)
class ScoreDistribution:
    excellent: int = 0  # >= 9
    good: int = 0  # 7 <= score < 9
    satisfactory: int = 0  # 6 <= score < 7
    needs_improvement: int = 0  # < 6


@dataclass(frozen=True, slots=True)
class ExamStatistics:
    exam_id: UUID
    total_submissions: int
    average_score: Decimal | None
    min_score: Decimal | None
    max_score: Decimal | None
    passed_count: int
    pass_rate: Decimal
    distribution: ScoreDistribution


def _bucket(scores: Iterable[Decimal]) -> ScoreDistribution:
    counts = {"excellent": 0, "good": 0, "satisfactory": 0, "needs_improvement": 0}
    for score in scores:
        if score >= 9:
            counts["excellent"] += 1
        elif score >= 7:
            counts["good"] += 1
        elif score >= 6:
            counts["satisfactory"] += 1
        else:
            counts["needs_improvement"] += 1
    return ScoreDistribution(**counts)


class ExamService:
    def __init__(
        self,
        *,
        exams: ExamRepo,
        questions: QuestionRepo,
        variations: VariationRepo,
        submissions: SubmissionRepo,
        rng: random.Random | None = None,
        clock: Clock = _utcnow,
        bank_lock: threading.Lock | None = None,
    ) -> None:
        self._exams = exams
        self._questions = questions
        self._variations = variations
        self._submissions = submissions
        self._rng = rng or random.Random()
        self._clock = clock
        self._locks: dict[UUID, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._bank_lock = bank_lock or threading.Lock()

    def _lock_for(self, exam_id: UUID) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(exam_id, threading.Lock())

    # --- exams ---

    def create_exam(
        self,
        *,
        title: str,
        subject_ids: Iterable[UUID],
        total_questions: int,
        distribution: Distribution,
        variation_count: int = 1,
        passing_score: Decimal | int | float | str = Decimal("6"),
        randomize_questions: bool = True,
        randomize_alternatives: bool = True,
        expires_at: datetime.datetime | None = None,
    ) -> Exam:
        exam = Exam.new(
            title=title,
            subject_ids=subject_ids,
            total_questions=total_questions,
            distribution=distribution,
            now=self._clock(),
            variation_count=variation_count,
            passing_score=passing_score,
            randomize_questions=randomize_questions,
            randomize_alternatives=randomize_alternatives,
            expires_at=expires_at,
        )
        self._exams.add(exam)
        logger.info("Exam created: %s", exam.title, extra={"exam_id": str(exam.id)})
        return exam

    def get_exam(self, exam_id: UUID) -> Exam:
        exam = self._exams.get_by_id(exam_id)
        if exam is None:
            raise NotFoundError("exam", exam_id)
        return exam

    def status(self, exam_id: UUID, now: datetime.datetime | None = None) -> ExamStatus:
        return exam_status(self.get_exam(exam_id), now or self._clock())

    def publish(self, exam_id: UUID, now: datetime.datetime | None = None) -> Exam:
        """Publish an exam, assembling its first variation set if it has none."""
        self.assemble_variations(exam_id)
        exam = self._exams.set_published(exam_id, now or self._clock())
        if exam is None:
            raise NotFoundError("exam", exam_id)
        logger.info("Exam published", extra={"exam_id": str(exam_id)})
        return exam

    def unpublish(self, exam_id: UUID) -> Exam:
        exam = self._exams.set_published(exam_id, None)
        if exam is None:
            raise NotFoundError("exam", exam_id)
        logger.info("Exam unpublished", extra={"exam_id": str(exam_id)})
        return exam

    def delete_exam(self, exam_id: UUID) -> None:
        """Delete an exam with all of its variations and submissions."""
        self.get_exam(exam_id)
        with self._lock_for(exam_id):
            submissions = self._submissions.delete_for_exam(exam_id)
            variations = self._variations.delete_for_exam(exam_id)
            self._exams.delete(exam_id)
        logger.info(
            "Exam deleted with %d variations and %d submissions",
            variations,
            submissions,
            extra={"exam_id": str(exam_id)},
        )

    # --- variations ---

    def _build_next_set(self, exam: Exam) -> list[Variation]:
        generation = self._variations.current_generation(exam.id) + 1
        # QuestionBank.delete takes the same lock, so no drawn question
        # can be deleted before the set referencing it is stored.
        with self._bank_lock:
            variations = assembler.assemble_for_exam(
                exam,
                self._questions,
                generation=generation,
                rng=self._rng,
                now=self._clock(),
            )
            self._variations.replace_for_exam(exam.id, variations)
        return variations

    def assemble_variations(self, exam_id: UUID) -> list[Variation]:
        """Return the exam's current variation set, assembling one if needed."""
        with self._lock_for(exam_id):
            exam = self.get_exam(exam_id)
            current = self._variations.list_current(exam_id)
            if current:
                return current
            return self._build_next_set(exam)

    def regenerate_variations(self, exam_id: UUID) -> list[Variation]:
        """Replace the exam's current set with a freshly assembled one.

        Superseded variations stay readable so submissions made against
        them still grade.
        """
        with self._lock_for(exam_id):
            variations = self._build_next_set(self.get_exam(exam_id))
        logger.info(
            "Variations regenerated (generation %d)",
            variations[0].generation,
            extra={"exam_id": str(exam_id)},
        )
        return variations

    def list_variations(self, exam_id: UUID) -> list[Variation]:
        self.get_exam(exam_id)
        return self._variations.list_current(exam_id)

    def get_variation(self, exam_id: UUID, variation_id: UUID) -> Variation:
        variation = self._variations.get_by_id(variation_id)
        if variation is None or variation.exam_id != exam_id:
            raise NotFoundError("variation", variation_id)
        return variation

    def answer_key(self, exam_id: UUID, variation_id: UUID) -> list[AnswerKeyEntry]:
        return answer_key(self.get_variation(exam_id, variation_id))

    # --- reporting ---

    def statistics(self, exam_id: UUID) -> ExamStatistics:
        exam = self.get_exam(exam_id)
        scores = [
            s.score
            for s in self._submissions.list_by_exam(exam_id)
            if s.status in ("graded", "reviewed") and s.score is not None
        ]
        if not scores:
            return ExamStatistics(
                exam_id=exam_id,
                total_submissions=0,
                average_score=None,
                min_score=None,
                max_score=None,
                passed_count=0,
                pass_rate=Decimal("0.0"),
                distribution=ScoreDistribution(),
            )

        passed = sum(1 for s in scores if s >= exam.passing_score)
        average = sum(scores, Decimal("0")) / len(scores)
        return ExamStatistics(
            exam_id=exam_id,
            total_submissions=len(scores),
            average_score=average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            min_score=min(scores),
            max_score=max(scores),
            passed_count=passed,
            pass_rate=(Decimal(passed) / len(scores) * 100).quantize(
                Decimal("0.1"), rounding=ROUND_HALF_UP
            ),
            distribution=_bucket(scores),
        )

    def difficulty_distribution(self, exam_id: UUID) -> dict[str, dict[str, object]]:
        return self.get_exam(exam_id).difficulty_distribution()
