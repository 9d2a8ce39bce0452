"""Turn unit verdicts into a question score.

`score(question, comparison, policy, manual_score)` returns the earned
marks for one question, or `None` while a manually graded question is
still waiting for a human score ("ungraded", which is not zero).

Negative marking applies only to a wrong answer, never to an unanswered
one, and only to the whole-question types (MCQ, MMCQ, TRUE_FALSE).
"""

from typing import Any, Callable, Dict, Optional

from .exceptions import ConfigurationError
from .schemas import (
    Comparison,
    FillInBlanksQuestion,
    GradingPolicy,
    OptionOutcome,
    QuestionBase,
    QuestionType,
    Verdict,
    parse_question,
)
from .validator import blank_weight_total, weights_match_marks

SCORE_PRECISION = 2


def score(question: Any, comparison: Comparison, policy: Optional[GradingPolicy] = None,
          manual_score: Optional[float] = None) -> Optional[float]:
    """Combine `comparison` into a score bounded by the question's marks."""
    q = parse_question(question)
    policy = policy or GradingPolicy()
    if q.marks <= 0:
        raise ConfigurationError(f"marks must be positive, got {q.marks:g}", q.id)
    if q.negative_marks < 0:
        raise ConfigurationError(f"negative marks cannot be below 0, got {q.negative_marks:g}", q.id)
    if comparison.question_type != q.type:
        raise ConfigurationError(
            f"comparison is for a {comparison.question_type.value} question, not {q.type.value}", q.id,
        )
    earned = _SCORERS[q.type](q, comparison, policy, manual_score)
    return None if earned is None else round(earned, SCORE_PRECISION)


def _wrong_answer_penalty(q: QuestionBase, policy: GradingPolicy) -> float:
    if policy.clamp_negative:
        return 0.0
    return -q.negative_marks


def _single_unit(q: QuestionBase, comparison: Comparison):
    if len(comparison.units) != 1:
        raise ConfigurationError(f"expected one unit, got {len(comparison.units)}", q.id)
    return comparison.units[0]


def _score_binary(q, comparison: Comparison, policy: GradingPolicy, manual_score) -> float:
    unit = _single_unit(q, comparison)
    if unit.verdict == Verdict.CORRECT:
        return q.marks
    if unit.verdict == Verdict.UNANSWERED:
        return 0.0
    return _wrong_answer_penalty(q, policy)


def _score_mmcq(q, comparison: Comparison, policy: GradingPolicy, manual_score) -> float:
    unit = _single_unit(q, comparison)
    if unit.verdict == Verdict.CORRECT:
        return q.marks
    if unit.verdict == Verdict.UNANSWERED:
        return 0.0
    if not policy.mmcq_partial_credit:
        return _wrong_answer_penalty(q, policy)
    outcomes = list(comparison.option_outcomes.values())
    right = outcomes.count(OptionOutcome.CORRECT_SELECTED)
    wrong = outcomes.count(OptionOutcome.INCORRECT_SELECTED)
    total_correct = len(set(q.correct_options))
    fraction = (right - wrong) / total_correct
    return min(max(q.marks * fraction, 0.0), q.marks)


def _score_fill_in_blanks(q: FillInBlanksQuestion, comparison: Comparison, policy: GradingPolicy,
                          manual_score) -> float:
    config = q.blank_config
    weights = config.blank_weights
    for index in range(config.blank_count):
        if index not in weights:
            raise ConfigurationError(f"blank {index + 1} has no weight", q.id)
        if weights[index] < 0:
            raise ConfigurationError(f"blank {index + 1} has a negative weight", q.id)
    total = blank_weight_total(config)
    if not weights_match_marks(total, q.marks):
        raise ConfigurationError(
            f"blank weights total {total:.2f} but question is worth {q.marks:g}", q.id,
        )
    earned = 0.0
    for unit in comparison.units:
        index = int(unit.unit_id.split(":", 1)[1])
        if unit.verdict == Verdict.CORRECT:
            earned += weights.get(index, 0.0)
    return min(earned, q.marks)


def _score_matching(q, comparison: Comparison, policy: GradingPolicy, manual_score) -> float:
    total = len(comparison.units)
    if total == 0:
        raise ConfigurationError("matching question has no left items", q.id)
    correct = comparison.count(Verdict.CORRECT)
    return q.marks * correct / total


def _score_manual(q, comparison: Comparison, policy: GradingPolicy, manual_score) -> Optional[float]:
    if manual_score is None:
        return None
    value = float(manual_score)
    if value < 0 or value > q.marks:
        raise ValueError(f"manual score {value:g} is outside [0, {q.marks:g}]")
    return value


_SCORERS: Dict[QuestionType, Callable[..., Optional[float]]] = {
    QuestionType.MCQ: _score_binary,
    QuestionType.TRUE_FALSE: _score_binary,
    QuestionType.MMCQ: _score_mmcq,
    QuestionType.FILL_THE_BLANK: _score_fill_in_blanks,
    QuestionType.MATCHING: _score_matching,
    QuestionType.DESCRIPTIVE: _score_manual,
    QuestionType.CODING: _score_manual,
    QuestionType.FILE_UPLOAD: _score_manual,
}
