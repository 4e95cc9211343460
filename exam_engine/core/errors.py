"""Error taxonomy for the exam engine.

Every error the engine raises on purpose derives from ExamEngineError so
the HTTP layer can map the whole family in one place.  Errors that
describe bad input also derive from ValueError.
"""

from __future__ import annotations

from uuid import UUID


class ExamEngineError(Exception):
    pass


class NotFoundError(ExamEngineError, LookupError):
    def __init__(self, kind: str, ident: UUID | str) -> None:
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class InvalidQuestionError(ExamEngineError, ValueError):
    pass


class InvalidExamError(ExamEngineError, ValueError):
    pass


class InvalidDistributionError(InvalidExamError):
    """Tier counts are negative or do not add up to the exam total."""


class InsufficientQuestionsError(ExamEngineError):
    """The eligible pool for a difficulty tier is smaller than requested."""

    def __init__(self, difficulty: str, requested: int, available: int) -> None:
        super().__init__(
            f"not enough {difficulty} questions: requested {requested}, "
            f"available {available}"
        )
        self.difficulty = difficulty
        self.requested = requested
        self.available = available


class InvalidAnswerShapeError(ExamEngineError, ValueError):
    pass


class AlreadyGradedError(ExamEngineError):
    def __init__(self, submission_id: UUID, status: str) -> None:
        super().__init__(f"submission {submission_id} is already {status}")
        self.submission_id = submission_id
        self.status = status


class InvalidTransitionError(ExamEngineError):
    def __init__(self, submission_id: UUID, current: str, target: str) -> None:
        super().__init__(
            f"submission {submission_id} cannot move from {current} to {target}"
        )
        self.submission_id = submission_id
        self.current = current
        self.target = target


class QuestionInUseError(ExamEngineError):
    def __init__(self, question_id: UUID) -> None:
        super().__init__(
            f"question {question_id} is referenced by an exam variation; "
            "deactivate it instead"
        )
        self.question_id = question_id
