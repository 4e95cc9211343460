"""Question bank operations.

Questions referenced by any issued variation cannot be hard-deleted:
submissions against that variation would no longer grade.  Deactivation
is the supported way to retire them; it removes the question from
future pools and leaves every existing variation intact.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Collection
from decimal import Decimal
from uuid import UUID

from exam_engine.core.errors import NotFoundError, QuestionInUseError
from exam_engine.models.exam import Distribution
from exam_engine.models.question import Question
from exam_engine.repos.question_repo import QuestionRepo
from exam_engine.repos.variation_repo import VariationRepo

logger = logging.getLogger(__name__)


class QuestionBank:
    def __init__(
        self,
        questions: QuestionRepo,
        variations: VariationRepo,
        *,
        bank_lock: threading.Lock | None = None,
    ) -> None:
        self._questions = questions
        self._variations = variations
        # Shared with ExamService: held while a pool is drawn and stored.
        self._bank_lock = bank_lock or threading.Lock()

    def create(
        self,
        *,
        subject_id: UUID,
        text: str,
        difficulty: str,
        type: str = "multiple_choice",
        alternatives: Collection[str] = (),
        correct_index: int | None = None,
        points: Decimal | int | float | str = Decimal("1"),
        explanation: str | None = None,
        tags: Collection[str] = (),
    ) -> Question:
        question = Question.new(
            subject_id=subject_id,
            text=text,
            difficulty=difficulty,
            type=type,
            alternatives=tuple(alternatives),
            correct_index=correct_index,
            points=points,
            explanation=explanation,
            tags=tuple(tags),
        )
        self._questions.add(question)
        logger.info("Question created: %s (%s, %s)", question.id, difficulty, type)
        return question

    def get(self, question_id: UUID) -> Question:
        question = self._questions.get_by_id(question_id)
        if question is None:
            raise NotFoundError("question", question_id)
        return question

    def deactivate(self, question_id: UUID) -> Question:
        question = self._questions.set_active(question_id, False)
        if question is None:
            raise NotFoundError("question", question_id)
        logger.info("Question deactivated: %s", question_id)
        return question

    def delete(self, question_id: UUID) -> None:
        if self._questions.get_by_id(question_id) is None:
            raise NotFoundError("question", question_id)
        with self._bank_lock:
            if self._variations.references_question(question_id):
                logger.warning(
                    "Question delete refused, still referenced: %s", question_id
                )
                raise QuestionInUseError(question_id)
            self._questions.delete(question_id)
        logger.info("Question deleted: %s", question_id)

    def availability(self, subject_ids: Collection[UUID]) -> dict[str, int]:
        """Active question count per difficulty tier."""
        return self._questions.count_by_difficulty(subject_ids)

    def can_create_exam(
        self, subject_ids: Collection[UUID], distribution: Distribution
    ) -> bool:
        available = self.availability(subject_ids)
        return all(available[d] >= n for d, n in distribution.items())
