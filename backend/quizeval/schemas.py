"""Pydantic models for questions, responses and evaluation results.

Questions form a closed tagged union keyed by `type`: every question
type has its own model with its own payload, and `Question` is the
discriminated union of all of them. Field names are snake_case; the
camelCase spelling used by stored documents is accepted as an alias and
emitted by `model_dump(by_alias=True)`.

Models here are deliberately permissive (no range constraints on
`marks`, no minimum option counts) so that incomplete drafts can be
represented and reported on by the validator instead of being rejected
at parse time.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


def _new_id() -> str:
    return uuid4().hex


class QuestionType(str, Enum):
    MCQ = "MCQ"
    MMCQ = "MMCQ"
    TRUE_FALSE = "TRUE_FALSE"
    FILL_THE_BLANK = "FILL_THE_BLANK"
    MATCHING = "MATCHING"
    DESCRIPTIVE = "DESCRIPTIVE"
    CODING = "CODING"
    FILE_UPLOAD = "FILE_UPLOAD"


# Question types without an automatic comparison rule.
MANUAL_TYPES = frozenset({QuestionType.DESCRIPTIVE, QuestionType.CODING, QuestionType.FILE_UPLOAD})


class Difficulty(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class BloomsLevel(str, Enum):
    REMEMBER = "REMEMBER"
    UNDERSTAND = "UNDERSTAND"
    APPLY = "APPLY"
    ANALYZE = "ANALYZE"
    EVALUATE = "EVALUATE"
    CREATE = "CREATE"


class CourseOutcome(str, Enum):
    CO1 = "CO1"
    CO2 = "CO2"
    CO3 = "CO3"
    CO4 = "CO4"
    CO5 = "CO5"
    CO6 = "CO6"
    CO7 = "CO7"
    CO8 = "CO8"


class EvaluationMode(str, Enum):
    """How strictly fill-in-the-blank answers are compared."""
    STRICT = "STRICT"
    NORMAL = "NORMAL"
    LENIENT = "LENIENT"


class AcceptedType(str, Enum):
    """Lexical form the acceptable answers of a blank must take."""
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    UPPERCASE = "UPPERCASE"
    LOWERCASE = "LOWERCASE"


class Verdict(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    UNANSWERED = "unanswered"
    MANUAL_REVIEW = "manual_review"


class OptionOutcome(str, Enum):
    """Per-option classification of a multiple-select answer."""
    CORRECT_SELECTED = "correct_selected"
    CORRECT_MISSED = "correct_missed"
    INCORRECT_SELECTED = "incorrect_selected"
    NEUTRAL = "neutral"


class EvaluationStatus(str, Enum):
    GRADED = "graded"
    NEEDS_MANUAL_REVIEW = "needs_manual_review"
    CONFIGURATION_ERROR = "configuration_error"


class SubmissionStatus(str, Enum):
    NOT_EVALUATED = "NOT_EVALUATED"
    EVALUATED = "EVALUATED"
    FAILED = "FAILED"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Question payloads
# ---------------------------------------------------------------------------

class Option(CamelModel):
    """A selectable option of an MCQ/MMCQ question."""
    id: str = Field(default_factory=_new_id)
    text: str = ""


class BlankAnswers(CamelModel):
    """Acceptable answers for one blank and their lexical type."""
    answers: List[str] = Field(default_factory=lambda: [""])
    type: AcceptedType = AcceptedType.TEXT


class BlankConfig(CamelModel):
    blank_count: int = 0
    acceptable_answers: Dict[int, BlankAnswers] = Field(default_factory=dict)
    blank_weights: Dict[int, float] = Field(default_factory=dict)
    evaluation_type: EvaluationMode = EvaluationMode.NORMAL


class MatchOption(CamelModel):
    """One item of a matching question.

    Left items carry `match_pair_ids`, the ids of every right item that
    is a correct match for them. Right items leave it empty.
    """
    id: str = Field(default_factory=_new_id)
    text: str = ""
    is_left: bool = True
    order_index: int = 0
    match_pair_ids: List[str] = Field(default_factory=list)


class DescriptiveConfig(CamelModel):
    model_answer: str = ""
    keywords: List[str] = Field(default_factory=list)
    min_words: Optional[int] = None
    max_words: Optional[int] = None


class CodingConfig(CamelModel):
    language: str = "python"
    template_code: Optional[str] = None
    boilerplate_code: Optional[str] = None
    time_limit_ms: Optional[int] = None
    memory_limit_mb: Optional[int] = None


class CodingTestCase(CamelModel):
    id: str = Field(default_factory=_new_id)
    input: str = ""
    expected_output: str = ""
    visibility: str = "HIDDEN"
    marks_weightage: Optional[float] = None
    order_index: int = 0


class FileUploadConfig(CamelModel):
    allowed_file_types: List[str] = Field(default_factory=list)
    max_file_size_in_mb: Optional[float] = None
    max_files: int = 1


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class QuestionBase(CamelModel):
    """Fields shared by every question type."""
    id: str = Field(default_factory=_new_id)
    question_text: str = ""
    explanation: str = ""
    marks: float = 1.0
    negative_marks: float = 0.0
    difficulty: Difficulty = Difficulty.MEDIUM
    bloom_taxonomy_level: BloomsLevel = BloomsLevel.UNDERSTAND
    course_outcome: Optional[CourseOutcome] = None
    topics: List[str] = Field(default_factory=list)


class _ChoiceQuestion(QuestionBase):
    options: List[Option] = Field(default_factory=list)
    correct_options: List[str] = Field(default_factory=list)


class MCQQuestion(_ChoiceQuestion):
    type: Literal[QuestionType.MCQ] = QuestionType.MCQ


class MMCQQuestion(_ChoiceQuestion):
    type: Literal[QuestionType.MMCQ] = QuestionType.MMCQ


class TrueFalseQuestion(QuestionBase):
    type: Literal[QuestionType.TRUE_FALSE] = QuestionType.TRUE_FALSE
    true_false_answer: Optional[bool] = None


class FillInBlanksQuestion(QuestionBase):
    type: Literal[QuestionType.FILL_THE_BLANK] = QuestionType.FILL_THE_BLANK
    blank_config: BlankConfig = Field(default_factory=BlankConfig)


class MatchingQuestion(QuestionBase):
    type: Literal[QuestionType.MATCHING] = QuestionType.MATCHING
    options: List[MatchOption] = Field(default_factory=list)

    @property
    def left_items(self) -> List[MatchOption]:
        return sorted((o for o in self.options if o.is_left), key=lambda o: o.order_index)

    @property
    def right_items(self) -> List[MatchOption]:
        return sorted((o for o in self.options if not o.is_left), key=lambda o: o.order_index)


class DescriptiveQuestion(QuestionBase):
    type: Literal[QuestionType.DESCRIPTIVE] = QuestionType.DESCRIPTIVE
    descriptive_config: DescriptiveConfig = Field(default_factory=DescriptiveConfig)


class CodingQuestion(QuestionBase):
    type: Literal[QuestionType.CODING] = QuestionType.CODING
    coding_config: CodingConfig = Field(default_factory=CodingConfig)
    test_cases: List[CodingTestCase] = Field(default_factory=list)


class FileUploadQuestion(QuestionBase):
    type: Literal[QuestionType.FILE_UPLOAD] = QuestionType.FILE_UPLOAD
    attached_files: List[str] = Field(default_factory=list)
    file_upload_config: FileUploadConfig = Field(default_factory=FileUploadConfig)


Question = Annotated[
    Union[
        MCQQuestion,
        MMCQQuestion,
        TrueFalseQuestion,
        FillInBlanksQuestion,
        MatchingQuestion,
        DescriptiveQuestion,
        CodingQuestion,
        FileUploadQuestion,
    ],
    Field(discriminator="type"),
]

QUESTION_MODELS = {
    QuestionType.MCQ: MCQQuestion,
    QuestionType.MMCQ: MMCQQuestion,
    QuestionType.TRUE_FALSE: TrueFalseQuestion,
    QuestionType.FILL_THE_BLANK: FillInBlanksQuestion,
    QuestionType.MATCHING: MatchingQuestion,
    QuestionType.DESCRIPTIVE: DescriptiveQuestion,
    QuestionType.CODING: CodingQuestion,
    QuestionType.FILE_UPLOAD: FileUploadQuestion,
}

_QUESTION_ADAPTER = TypeAdapter(Question)


def parse_question(data: Any) -> QuestionBase:
    """Build the typed question model for `data` (dict or model).

    Raises `pydantic.ValidationError` for unknown types or wrongly typed
    fields.
    """
    if isinstance(data, QuestionBase):
        return data
    return _QUESTION_ADAPTER.validate_python(data)


# ---------------------------------------------------------------------------
# Responses and results
# ---------------------------------------------------------------------------

class Response(CamelModel):
    """A learner's raw submitted value for one question."""
    question_id: str
    answer: Any = None


class GradingPolicy(CamelModel):
    """Product-level scoring switches passed explicitly to the core."""
    model_config = ConfigDict(frozen=True)

    clamp_negative: bool = True
    mmcq_partial_credit: bool = False
    lenient_max_edits: int = 1
    lenient_min_length: int = 4


class UnitVerdict(CamelModel):
    """Correctness of the smallest independently scored piece."""
    unit_id: str
    verdict: Verdict
    submitted: Any = None
    detail: Optional[str] = None


class DescriptiveAnalysis(CamelModel):
    """Advisory facts about a free-text answer for the human grader."""
    word_count: int = 0
    within_word_limits: bool = True
    matched_keywords: List[str] = Field(default_factory=list)
    missing_keywords: List[str] = Field(default_factory=list)


class Comparison(CamelModel):
    """Output of the comparator: verdicts prior to weighting."""
    question_id: str
    question_type: QuestionType
    units: List[UnitVerdict] = Field(default_factory=list)
    option_outcomes: Dict[str, OptionOutcome] = Field(default_factory=dict)
    analysis: Optional[DescriptiveAnalysis] = None

    @property
    def requires_manual_review(self) -> bool:
        return any(u.verdict == Verdict.MANUAL_REVIEW for u in self.units)

    def count(self, verdict: Verdict) -> int:
        return sum(1 for u in self.units if u.verdict == verdict)


class EvaluationResult(CamelModel):
    """Outcome of grading one response against its question."""
    question_id: str
    per_unit_verdicts: List[UnitVerdict] = Field(default_factory=list)
    score: Optional[float] = None
    max_score: float = 0.0
    status: EvaluationStatus
    error_detail: Optional[str] = None
    analysis: Optional[DescriptiveAnalysis] = None
    question_fingerprint: Optional[str] = None


class SubmissionResult(CamelModel):
    """All question results of one attempt, merged by question id."""
    submission_id: str = Field(default_factory=_new_id)
    results: Dict[str, EvaluationResult] = Field(default_factory=dict)
    total_score: float = 0.0
    max_score: float = 0.0
    status: SubmissionStatus = SubmissionStatus.NOT_EVALUATED
    cancelled: bool = False


class ValidationIssue(CamelModel):
    field: str
    message: str


class ValidationResult(CamelModel):
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
