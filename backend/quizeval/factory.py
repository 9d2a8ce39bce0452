"""Placeholder questions and blank bookkeeping for authors."""

import re

from .schemas import (
    QUESTION_MODELS,
    BlankAnswers,
    BlankConfig,
    FillInBlanksQuestion,
    QuestionBase,
    QuestionType,
)

# Three or more underscores mark a blank in the question text.
BLANK_RE = re.compile(r"_{3,}")


def create_default_question(question_type) -> QuestionBase:
    """Return an empty question of `question_type` for an author to fill in.

    The result is intentionally not valid: the prompt is empty and the
    type payload carries no answers yet.
    """
    qtype = QuestionType(question_type)
    return QUESTION_MODELS[qtype]()


def count_blanks(text: str) -> int:
    return len(BLANK_RE.findall(text or ""))


def sync_blank_config(question: FillInBlanksQuestion) -> FillInBlanksQuestion:
    """Re-derive the blank configuration from the question text.

    Existing answers and weights are kept for blanks that still exist,
    new blanks start with one empty TEXT answer and weight 1, and
    entries past the new blank count are dropped. Returns a new model.
    """
    detected = count_blanks(question.question_text)
    current = question.blank_config
    if detected == current.blank_count and all(i in current.acceptable_answers for i in range(detected)):
        return question
    answers = {}
    weights = {}
    for index in range(detected):
        answers[index] = current.acceptable_answers.get(index) or BlankAnswers()
        weights[index] = current.blank_weights.get(index) or 1.0
    config = BlankConfig(
        blank_count=detected,
        acceptable_answers=answers,
        blank_weights=weights,
        evaluation_type=current.evaluation_type,
    )
    return question.model_copy(update={"blank_config": config})
