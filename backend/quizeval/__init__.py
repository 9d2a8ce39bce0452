"""Answer evaluation engine for quiz and exam questions.

The package is split into three pure components (validator, comparator
and aggregator) plus a thin service layer that grades whole submissions
and persists results. Individual modules contain the concrete
implementations and documentation.
"""

from .aggregator import score
from .comparator import compare
from .exceptions import ConfigurationError, QuestionLockedError, QuestionValidationError
from .factory import count_blanks, create_default_question, sync_blank_config
from .schemas import GradingPolicy, Question, QuestionType, Response, parse_question
from .services import evaluate
from .validator import ensure_valid, validate_question

__all__ = [
    "ConfigurationError",
    "GradingPolicy",
    "Question",
    "QuestionLockedError",
    "QuestionType",
    "QuestionValidationError",
    "Response",
    "compare",
    "count_blanks",
    "create_default_question",
    "ensure_valid",
    "evaluate",
    "parse_question",
    "score",
    "sync_blank_config",
    "validate_question",
]
