"""Authoring-time validation of questions.

`validate_question` reports every problem it finds rather than stopping
at the first one, and never raises: raw dictionaries that do not even
parse are reported as issues too. Common fields are checked first, then
the rules of the question's own type.
"""

from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from .exceptions import QuestionValidationError
from .schemas import (
    AcceptedType,
    BlankConfig,
    DescriptiveQuestion,
    FileUploadQuestion,
    FillInBlanksQuestion,
    MatchingQuestion,
    QuestionBase,
    QuestionType,
    TrueFalseQuestion,
    ValidationIssue,
    ValidationResult,
    parse_question,
)
from .utils.text import is_blank_text, is_lowercase, is_number, is_uppercase

WEIGHT_TOLERANCE = 0.01

_LEXICAL_CHECKS = {
    AcceptedType.NUMBER: (is_number, "is not a valid number"),
    AcceptedType.UPPERCASE: (is_uppercase, "must be uppercase"),
    AcceptedType.LOWERCASE: (is_lowercase, "must be lowercase"),
}


def validate_question(question: Any) -> ValidationResult:
    """Return `{is_valid, errors}` for a question model or raw dict."""
    errors: List[ValidationIssue] = []
    if question is None:
        errors.append(ValidationIssue(field="question", message="Question data is missing"))
        return ValidationResult(is_valid=False, errors=errors)
    try:
        q = parse_question(question)
    except ValidationError as e:
        for err in e.errors():
            field = ".".join(str(p) for p in err.get("loc", ())) or "question"
            errors.append(ValidationIssue(field=field, message=err.get("msg", "invalid value")))
        return ValidationResult(is_valid=False, errors=errors)

    _check_common(q, errors)
    _TYPE_CHECKS[q.type](q, errors)
    return ValidationResult(is_valid=not errors, errors=errors)


def ensure_valid(question: Any) -> QuestionBase:
    """Parse and validate `question`, raising `QuestionValidationError`."""
    result = validate_question(question)
    if not result.is_valid:
        raise QuestionValidationError(result.errors)
    return parse_question(question)


def blank_weight_total(config: BlankConfig) -> float:
    """Sum of the weights of blanks that exist; stray indices are ignored."""
    return sum(config.blank_weights.get(i) or 0 for i in range(config.blank_count))


def weights_match_marks(total: float, marks: float) -> bool:
    return round(abs(total - marks), 6) <= WEIGHT_TOLERANCE


def _check_common(q: QuestionBase, errors: List[ValidationIssue]):
    if is_blank_text(q.question_text):
        errors.append(ValidationIssue(field="question", message="Question text is required"))
    if q.marks <= 0:
        errors.append(ValidationIssue(field="marks", message="Marks must be greater than 0"))
    if q.negative_marks < 0:
        errors.append(ValidationIssue(field="negativeMarks", message="Negative marks cannot be less than 0"))


def _check_choice(q, errors: List[ValidationIssue]):
    options = q.options or []
    correct = q.correct_options or []
    if len(options) < 2:
        errors.append(ValidationIssue(field="options", message="At least 2 options are required"))
    if not correct:
        errors.append(ValidationIssue(field="options", message="At least one correct answer must be selected"))
    if q.type == QuestionType.MCQ and len(correct) > 1:
        errors.append(ValidationIssue(
            field="options",
            message="MCQ can have only one correct answer. Use MMCQ for multiple correct answers.",
        ))
    ids = [o.id for o in options]
    if len(set(ids)) != len(ids):
        errors.append(ValidationIssue(field="options", message="Option ids must be unique"))
    known = set(ids)
    for cid in correct:
        if cid not in known:
            errors.append(ValidationIssue(
                field="correctOptions",
                message=f"Correct option '{cid}' does not match any option",
            ))
    for index, opt in enumerate(options):
        if is_blank_text(opt.text):
            errors.append(ValidationIssue(
                field=f"options[{index}]",
                message=f"Option {index + 1} text cannot be empty",
            ))


def _check_true_false(q: TrueFalseQuestion, errors: List[ValidationIssue]):
    if q.true_false_answer is None:
        errors.append(ValidationIssue(field="trueFalseAnswer", message="True/False answer must be selected"))


def _check_fill_in_blanks(q: FillInBlanksQuestion, errors: List[ValidationIssue]):
    config = q.blank_config
    if config.blank_count <= 0:
        errors.append(ValidationIssue(
            field="blankConfig.blankCount",
            message="Question must contain at least one blank",
        ))
        return

    weights = config.blank_weights
    for index in sorted(weights):
        if index < 0 or index >= config.blank_count:
            errors.append(ValidationIssue(
                field=f"blankConfig.blankWeights[{index}]",
                message=f"Weight given for blank {index + 1} but the question has {config.blank_count} blanks",
            ))
        elif weights[index] < 0:
            errors.append(ValidationIssue(
                field=f"blankConfig.blankWeights[{index}]",
                message=f"Blank {index + 1} weight cannot be negative",
            ))
    missing = [i for i in range(config.blank_count) if i not in weights]
    for index in missing:
        errors.append(ValidationIssue(
            field=f"blankConfig.blankWeights[{index}]",
            message=f"Blank {index + 1} must have a weight",
        ))

    total = blank_weight_total(config)
    if not weights_match_marks(total, q.marks):
        errors.append(ValidationIssue(
            field="blankConfig.blankWeights",
            message=f"Total weight ({total:.2f}) must equal total marks ({q.marks:g})",
        ))

    for index in range(config.blank_count):
        group = config.acceptable_answers.get(index)
        answers = [a for a in (group.answers if group else []) if a and a.strip()]
        if not answers:
            errors.append(ValidationIssue(
                field=f"blankConfig.acceptableAnswers[{index}]",
                message=f"Blank {index + 1} must have at least one acceptable answer",
            ))
            continue
        check = _LEXICAL_CHECKS.get(group.type)
        if check is None:
            continue
        predicate, problem = check
        for answer in answers:
            if not predicate(answer):
                errors.append(ValidationIssue(
                    field=f"blankConfig.acceptableAnswers[{index}]",
                    message=f"Blank {index + 1} answer '{answer.strip()}' {problem}",
                ))


def _check_matching(q: MatchingQuestion, errors: List[ValidationIssue]):
    left, right = q.left_items, q.right_items
    if not left:
        errors.append(ValidationIssue(field="options", message="At least one left item is required"))
    if not right:
        errors.append(ValidationIssue(field="options", message="At least one right item is required"))
    right_ids = {r.id for r in right}
    for index, item in enumerate(left):
        if is_blank_text(item.text):
            errors.append(ValidationIssue(
                field=f"leftItems[{index}]",
                message=f"Left item {index + 1} text cannot be empty",
            ))
        if not item.match_pair_ids:
            errors.append(ValidationIssue(
                field=f"leftItems[{index}]",
                message=f"Left item {index + 1} must have at least one match",
            ))
        for rid in item.match_pair_ids:
            if rid not in right_ids:
                errors.append(ValidationIssue(
                    field=f"leftItems[{index}]",
                    message=f"Left item {index + 1} references unknown right item '{rid}'",
                ))
    for index, item in enumerate(right):
        if is_blank_text(item.text):
            errors.append(ValidationIssue(
                field=f"rightItems[{index}]",
                message=f"Right item {index + 1} text cannot be empty",
            ))


def _check_descriptive(q: DescriptiveQuestion, errors: List[ValidationIssue]):
    config = q.descriptive_config
    for name, value in (("minWords", config.min_words), ("maxWords", config.max_words)):
        if value is not None and value < 0:
            errors.append(ValidationIssue(
                field=f"descriptiveConfig.{name}",
                message="Word count bounds cannot be negative",
            ))
    if config.min_words is not None and config.max_words is not None and config.min_words > config.max_words:
        errors.append(ValidationIssue(
            field="descriptiveConfig",
            message="Minimum word count cannot exceed maximum word count",
        ))


def _check_file_upload(q: FileUploadQuestion, errors: List[ValidationIssue]):
    if q.file_upload_config.max_files < 1:
        errors.append(ValidationIssue(
            field="fileUploadConfig.maxFiles",
            message="At least one file must be allowed",
        ))


def _no_payload_rules(q, errors):
    return None


_TYPE_CHECKS: Dict[QuestionType, Callable] = {
    QuestionType.MCQ: _check_choice,
    QuestionType.MMCQ: _check_choice,
    QuestionType.TRUE_FALSE: _check_true_false,
    QuestionType.FILL_THE_BLANK: _check_fill_in_blanks,
    QuestionType.MATCHING: _check_matching,
    QuestionType.DESCRIPTIVE: _check_descriptive,
    QuestionType.CODING: _no_payload_rules,
    QuestionType.FILE_UPLOAD: _check_file_upload,
}
