"""Per-type comparison of a learner's response against accepted answers.

`compare(question, response, policy)` returns a `Comparison` holding one
`UnitVerdict` per independently scored unit: the whole selection for
MCQ/MMCQ/TRUE_FALSE, one unit per blank, one unit per left item of a
matching question. Free-form types produce a single MANUAL_REVIEW unit.

The comparator is pure and total over every question type. A question
whose answer key is missing raises `ConfigurationError`; a
learner response of the wrong shape is simply incorrect.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .exceptions import ConfigurationError
from .schemas import (
    AcceptedType,
    BlankAnswers,
    Comparison,
    DescriptiveAnalysis,
    DescriptiveQuestion,
    EvaluationMode,
    FillInBlanksQuestion,
    GradingPolicy,
    MatchingQuestion,
    OptionOutcome,
    QuestionBase,
    QuestionType,
    Response,
    TrueFalseQuestion,
    UnitVerdict,
    Verdict,
    parse_question,
)
from .utils.text import edit_distance, lenient_form, to_number, word_count

MALFORMED = "malformed response"


def compare(question: Any, response: Any, policy: Optional[GradingPolicy] = None) -> Comparison:
    """Compare `response` to the accepted answers of `question`."""
    q = parse_question(question)
    r = response if isinstance(response, Response) else as_response(q, response)
    policy = policy or GradingPolicy()
    return _COMPARATORS[q.type](q, r.answer, policy)


def as_response(q: QuestionBase, response: Any) -> Response:
    """Wrap a raw submitted value (or response dict) as a `Response`."""
    if isinstance(response, dict) and ("question_id" in response or "questionId" in response):
        return Response.model_validate(response)
    return Response(question_id=q.id, answer=response)


def _comparison(q: QuestionBase, units: List[UnitVerdict], **extra) -> Comparison:
    return Comparison(question_id=q.id, question_type=q.type, units=units, **extra)


def _is_empty(answer: Any) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return answer.strip() == ""
    if isinstance(answer, (list, tuple, set, dict)):
        return len(answer) == 0
    return False


def _as_id_set(answer: Any) -> Optional[Set[str]]:
    """Turn a submitted selection into a set of ids, or None if malformed."""
    if isinstance(answer, str):
        return {answer}
    if isinstance(answer, (list, tuple, set)) and all(isinstance(a, str) for a in answer):
        return set(answer)
    return None


# ---------------------------------------------------------------------------
# Choice questions
# ---------------------------------------------------------------------------

def _compare_mcq(q, answer: Any, policy: GradingPolicy) -> Comparison:
    if not q.correct_options:
        raise ConfigurationError("MCQ has no correct option", q.id)
    if _is_empty(answer):
        return _comparison(q, [UnitVerdict(unit_id="selection", verdict=Verdict.UNANSWERED)])
    selected = _as_id_set(answer)
    if selected is None or len(selected) != 1:
        return _comparison(q, [UnitVerdict(
            unit_id="selection", verdict=Verdict.INCORRECT, submitted=answer, detail=MALFORMED,
        )])
    (choice,) = selected
    verdict = Verdict.CORRECT if choice in set(q.correct_options) else Verdict.INCORRECT
    return _comparison(q, [UnitVerdict(unit_id="selection", verdict=verdict, submitted=choice)])


def _compare_mmcq(q, answer: Any, policy: GradingPolicy) -> Comparison:
    correct = set(q.correct_options)
    if not correct:
        raise ConfigurationError("MMCQ has no correct option", q.id)
    if _is_empty(answer):
        outcomes = {
            o.id: OptionOutcome.CORRECT_MISSED if o.id in correct else OptionOutcome.NEUTRAL
            for o in q.options
        }
        return _comparison(
            q, [UnitVerdict(unit_id="selection", verdict=Verdict.UNANSWERED)], option_outcomes=outcomes,
        )
    selected = _as_id_set(answer)
    if selected is None:
        return _comparison(q, [UnitVerdict(
            unit_id="selection", verdict=Verdict.INCORRECT, submitted=answer, detail=MALFORMED,
        )])

    outcomes: Dict[str, OptionOutcome] = {}
    for option in q.options:
        if option.id in correct:
            outcomes[option.id] = (
                OptionOutcome.CORRECT_SELECTED if option.id in selected else OptionOutcome.CORRECT_MISSED
            )
        else:
            outcomes[option.id] = (
                OptionOutcome.INCORRECT_SELECTED if option.id in selected else OptionOutcome.NEUTRAL
            )
    # ids that are not options at all still count against the learner
    for unknown in selected - {o.id for o in q.options}:
        outcomes[unknown] = OptionOutcome.INCORRECT_SELECTED

    verdict = Verdict.CORRECT if selected == correct else Verdict.INCORRECT
    unit = UnitVerdict(unit_id="selection", verdict=verdict, submitted=sorted(selected))
    return _comparison(q, [unit], option_outcomes=outcomes)


def _compare_true_false(q: TrueFalseQuestion, answer: Any, policy: GradingPolicy) -> Comparison:
    if q.true_false_answer is None:
        raise ConfigurationError("True/False answer is not set", q.id)
    if _is_empty(answer):
        return _comparison(q, [UnitVerdict(unit_id="selection", verdict=Verdict.UNANSWERED)])
    value = _as_bool(answer)
    if value is None:
        return _comparison(q, [UnitVerdict(
            unit_id="selection", verdict=Verdict.INCORRECT, submitted=answer, detail=MALFORMED,
        )])
    verdict = Verdict.CORRECT if value == q.true_false_answer else Verdict.INCORRECT
    return _comparison(q, [UnitVerdict(unit_id="selection", verdict=verdict, submitted=value)])


def _as_bool(answer: Any) -> Optional[bool]:
    if isinstance(answer, bool):
        return answer
    if isinstance(answer, str):
        lowered = answer.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


# ---------------------------------------------------------------------------
# Fill in the blanks
# ---------------------------------------------------------------------------

def _compare_fill_in_blanks(q: FillInBlanksQuestion, answer: Any, policy: GradingPolicy) -> Comparison:
    config = q.blank_config
    if config.blank_count <= 0:
        raise ConfigurationError("fill-in-the-blank question has no blanks", q.id)

    submitted = _blank_answers(answer)
    units = []
    for index in range(config.blank_count):
        group = config.acceptable_answers.get(index)
        accepted = [a for a in (group.answers if group else []) if a and a.strip()]
        if not accepted:
            raise ConfigurationError(f"blank {index + 1} has no acceptable answer", q.id)
        unit_id = f"blank:{index}"
        raw = submitted.get(index) if submitted is not None else None
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            raw = str(raw)
        if submitted is None:
            units.append(UnitVerdict(unit_id=unit_id, verdict=Verdict.INCORRECT, detail=MALFORMED))
            continue
        if not isinstance(raw, str) or raw.strip() == "":
            # an empty blank is wrong, not unmatched
            units.append(UnitVerdict(unit_id=unit_id, verdict=Verdict.INCORRECT, submitted=raw))
            continue
        matched = any(_blank_matches(raw, a, group, config.evaluation_type, policy) for a in accepted)
        units.append(UnitVerdict(
            unit_id=unit_id,
            verdict=Verdict.CORRECT if matched else Verdict.INCORRECT,
            submitted=raw.strip(),
        ))
    return _comparison(q, units)


def _blank_answers(answer: Any) -> Optional[Dict[int, Any]]:
    """Map submitted blanks to zero-based int keys; None if malformed."""
    if answer is None:
        return {}
    if isinstance(answer, (list, tuple)):
        return dict(enumerate(answer))
    if not isinstance(answer, dict):
        return None
    out: Dict[int, Any] = {}
    for key, value in answer.items():
        try:
            out[int(key)] = value
        except (TypeError, ValueError):
            return None
    return out


def _blank_matches(raw: str, accepted: str, group: BlankAnswers, mode: EvaluationMode,
                   policy: GradingPolicy) -> bool:
    given, expected = raw.strip(), accepted.strip()
    if mode == EvaluationMode.STRICT:
        return given == expected
    if given.lower() == expected.lower():
        return True
    if mode == EvaluationMode.NORMAL:
        return False
    return _lenient_match(given, expected, group.type, policy)


def _lenient_match(given: str, expected: str, accepted_type: AcceptedType, policy: GradingPolicy) -> bool:
    if accepted_type == AcceptedType.NUMBER:
        a, b = to_number(given), to_number(expected)
        return a is not None and b is not None and a == b
    g, e = lenient_form(given), lenient_form(expected)
    if g == e:
        return True
    if len(e) < policy.lenient_min_length:
        return False
    return edit_distance(g, e, limit=policy.lenient_max_edits) <= policy.lenient_max_edits


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

def _compare_matching(q: MatchingQuestion, answer: Any, policy: GradingPolicy) -> Comparison:
    left = q.left_items
    if not left:
        raise ConfigurationError("matching question has no left items", q.id)
    pairs = _match_answers(answer)
    units = []
    for item in left:
        if not item.match_pair_ids:
            raise ConfigurationError(f"left item '{item.id}' has no correct match", q.id)
        unit_id = f"left:{item.id}"
        if pairs is None:
            units.append(UnitVerdict(unit_id=unit_id, verdict=Verdict.INCORRECT, detail=MALFORMED))
            continue
        chosen = pairs.get(item.id)
        if not chosen:
            units.append(UnitVerdict(unit_id=unit_id, verdict=Verdict.UNANSWERED))
            continue
        verdict = Verdict.CORRECT if chosen == set(item.match_pair_ids) else Verdict.INCORRECT
        units.append(UnitVerdict(unit_id=unit_id, verdict=verdict, submitted=sorted(chosen)))
    return _comparison(q, units)


def _match_answers(answer: Any) -> Optional[Dict[str, Set[str]]]:
    if answer is None:
        return {}
    if not isinstance(answer, dict):
        return None
    out: Dict[str, Set[str]] = {}
    for left_id, right_ids in answer.items():
        ids = _as_id_set(right_ids) if right_ids is not None else set()
        if ids is None:
            return None
        out[str(left_id)] = ids
    return out


# ---------------------------------------------------------------------------
# Manually graded types
# ---------------------------------------------------------------------------

def _compare_descriptive(q: DescriptiveQuestion, answer: Any, policy: GradingPolicy) -> Comparison:
    config = q.descriptive_config
    text = answer if isinstance(answer, str) else ""
    count = word_count(text)
    within = True
    if config.min_words is not None and count < config.min_words:
        within = False
    if config.max_words is not None and count > config.max_words:
        within = False
    lowered = text.lower()
    matched = [k for k in config.keywords if k and k.lower() in lowered]
    missing = [k for k in config.keywords if k and k.lower() not in lowered]
    analysis = DescriptiveAnalysis(
        word_count=count, within_word_limits=within, matched_keywords=matched, missing_keywords=missing,
    )
    return _comparison(q, [_manual_unit(answer)], analysis=analysis)


def _compare_manual(q, answer: Any, policy: GradingPolicy) -> Comparison:
    return _comparison(q, [_manual_unit(answer)])


def _manual_unit(answer: Any) -> UnitVerdict:
    return UnitVerdict(
        unit_id="response",
        verdict=Verdict.MANUAL_REVIEW,
        submitted=answer,
        detail="requires manual grading",
    )


_COMPARATORS: Dict[QuestionType, Callable[[Any, Any, GradingPolicy], Comparison]] = {
    QuestionType.MCQ: _compare_mcq,
    QuestionType.MMCQ: _compare_mmcq,
    QuestionType.TRUE_FALSE: _compare_true_false,
    QuestionType.FILL_THE_BLANK: _compare_fill_in_blanks,
    QuestionType.MATCHING: _compare_matching,
    QuestionType.DESCRIPTIVE: _compare_descriptive,
    QuestionType.CODING: _compare_manual,
    QuestionType.FILE_UPLOAD: _compare_manual,
}


def supported_types() -> Iterable[QuestionType]:
    return _COMPARATORS.keys()
