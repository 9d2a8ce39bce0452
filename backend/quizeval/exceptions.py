"""Exception types raised by the evaluation engine."""

from typing import List, Optional


class ConfigurationError(ValueError):
    """A question reached grading in a shape that cannot be graded.

    Raised by the comparator and aggregator; never converted into a zero
    score. `question_id` identifies the offending question when known.
    """

    def __init__(self, message: str, question_id: Optional[str] = None):
        super().__init__(message)
        self.question_id = question_id

    def __str__(self):
        base = super().__str__()
        if self.question_id:
            return f"question {self.question_id}: {base}"
        return base


class QuestionValidationError(ValueError):
    """Authoring-time failure carrying every validation issue found."""

    def __init__(self, errors: List):
        self.errors = list(errors)
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(summary or "question is invalid")


class QuestionLockedError(ValueError):
    """A question with stored evaluation results cannot be edited."""
