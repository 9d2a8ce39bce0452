import pytest

from quizeval import ensure_valid, validate_question
from quizeval.exceptions import QuestionValidationError
from quizeval.schemas import QuestionType
from quizeval.validator import _TYPE_CHECKS

from conftest import descriptive, fill_blanks, matching, mcq, mmcq, true_false


def messages(result):
    return [e.message for e in result.errors]


def test_every_question_type_has_rules():
    assert set(_TYPE_CHECKS) == set(QuestionType)


@pytest.mark.parametrize("build", [mcq, mmcq, true_false, fill_blanks, matching, descriptive])
def test_well_formed_questions_are_valid(build):
    result = validate_question(build())
    assert result.is_valid, messages(result)
    assert result.errors == []


def test_missing_question_data():
    result = validate_question(None)
    assert not result.is_valid
    assert messages(result) == ["Question data is missing"]


def test_unparseable_question_is_reported_not_raised():
    result = validate_question({"type": "ESSAY", "questionText": "?"})
    assert not result.is_valid
    assert result.errors


def test_collects_common_and_type_errors_together():
    result = validate_question(mcq(questionText="<p></p>", marks=0, negativeMarks=-1, correctOptions=[]))
    msgs = messages(result)
    assert "Question text is required" in msgs
    assert "Marks must be greater than 0" in msgs
    assert "Negative marks cannot be less than 0" in msgs
    assert "At least one correct answer must be selected" in msgs


def test_mcq_with_two_correct_answers():
    result = validate_question(mcq(correctOptions=["A", "B"]))
    assert messages(result) == ["MCQ can have only one correct answer. Use MMCQ for multiple correct answers."]


def test_mmcq_allows_several_correct_answers():
    assert validate_question(mmcq()).is_valid


def test_choice_needs_two_options_with_text():
    result = validate_question(mcq(options=[{"id": "B", "text": " "}]))
    msgs = messages(result)
    assert "At least 2 options are required" in msgs
    assert "Option 1 text cannot be empty" in msgs


def test_correct_option_must_reference_an_option():
    result = validate_question(mcq(correctOptions=["Z"]))
    assert messages(result) == ["Correct option 'Z' does not match any option"]


def test_duplicate_option_ids():
    result = validate_question(mcq(options=[{"id": "B", "text": "x"}, {"id": "B", "text": "y"}]))
    assert "Option ids must be unique" in messages(result)


def test_true_false_requires_answer():
    result = validate_question(true_false(trueFalseAnswer=None))
    assert messages(result) == ["True/False answer must be selected"]


def test_blank_weights_must_sum_to_marks():
    q = fill_blanks()
    q["blankConfig"]["blankWeights"] = {0: 1, 1: 2}
    result = validate_question(q)
    assert len(result.errors) == 1
    msg = result.errors[0].message
    assert "3.00" in msg and "2" in msg


def test_blank_weights_within_tolerance_are_accepted():
    q = fill_blanks(marks=1)
    q["blankConfig"]["blankWeights"] = {0: 0.333, 1: 0.666}
    assert validate_question(q).is_valid


def test_question_without_blanks_reports_only_that():
    q = fill_blanks()
    q["blankConfig"]["blankCount"] = 0
    q["blankConfig"]["blankWeights"] = {}
    result = validate_question(q)
    assert messages(result) == ["Question must contain at least one blank"]


def test_every_blank_needs_an_answer():
    q = fill_blanks()
    q["blankConfig"]["acceptableAnswers"][1] = {"answers": ["", "  "], "type": "TEXT"}
    result = validate_question(q)
    assert messages(result) == ["Blank 2 must have at least one acceptable answer"]


@pytest.mark.parametrize("accepted_type, answer, problem", [
    ("NUMBER", "forty", "is not a valid number"),
    ("UPPERCASE", "Paris", "must be uppercase"),
    ("LOWERCASE", "Paris", "must be lowercase"),
])
def test_lexical_type_of_acceptable_answers(accepted_type, answer, problem):
    q = fill_blanks()
    q["blankConfig"]["acceptableAnswers"][0] = {"answers": [answer], "type": accepted_type}
    result = validate_question(q)
    assert messages(result) == [f"Blank 1 answer '{answer}' {problem}"]


def test_number_answers_accept_negatives_and_decimals():
    q = fill_blanks()
    q["blankConfig"]["acceptableAnswers"][1] = {"answers": ["-3.5", ".5", "42"], "type": "NUMBER"}
    assert validate_question(q).is_valid


def test_matching_item_rules():
    q = matching()
    q["options"][1]["matchPairIds"] = []
    q["options"][0]["matchPairIds"] = ["r1", "r9"]
    msgs = messages(validate_question(q))
    assert "Left item 2 must have at least one match" in msgs
    assert "Left item 1 references unknown right item 'r9'" in msgs


def test_matching_requires_both_sides():
    q = matching(options=[{"id": "l1", "text": "x", "isLeft": True, "matchPairIds": ["r1"]}])
    msgs = messages(validate_question(q))
    assert "At least one right item is required" in msgs


def test_descriptive_word_bounds():
    q = descriptive()
    q["descriptiveConfig"].update({"minWords": 10, "maxWords": 5})
    assert messages(validate_question(q)) == ["Minimum word count cannot exceed maximum word count"]


def test_descriptive_negative_bound():
    q = descriptive()
    q["descriptiveConfig"].update({"minWords": -1})
    assert "Word count bounds cannot be negative" in messages(validate_question(q))


def test_coding_question_needs_only_common_fields():
    result = validate_question({"type": "CODING", "questionText": "Reverse a list", "marks": 3})
    assert result.is_valid


def test_file_upload_must_allow_a_file():
    q = {"type": "FILE_UPLOAD", "questionText": "Upload", "fileUploadConfig": {"maxFiles": 0}}
    assert messages(validate_question(q)) == ["At least one file must be allowed"]


def test_ensure_valid_raises_with_all_issues():
    with pytest.raises(QuestionValidationError) as exc:
        ensure_valid(mcq(questionText="", marks=-1))
    fields = {e.field for e in exc.value.errors}
    assert {"question", "marks"} <= fields


def test_ensure_valid_returns_typed_question():
    q = ensure_valid(true_false())
    assert q.type == QuestionType.TRUE_FALSE
    assert q.true_false_answer is True


def test_every_blank_needs_a_weight():
    q = fill_blanks()
    q["blankConfig"]["blankWeights"] = {0: 2}
    assert messages(validate_question(q)) == ["Blank 2 must have a weight"]


def test_weight_for_a_blank_that_does_not_exist():
    q = fill_blanks()
    q["blankConfig"]["blankWeights"] = {0: 1, 7: 1}
    msgs = messages(validate_question(q))
    assert "Weight given for blank 8 but the question has 2 blanks" in msgs
    assert "Blank 2 must have a weight" in msgs
    assert "Total weight (1.00) must equal total marks (2)" in msgs


def test_negative_blank_weight():
    q = fill_blanks()
    q["blankConfig"]["blankWeights"] = {0: 3, 1: -1}
    assert messages(validate_question(q)) == ["Blank 2 weight cannot be negative"]


def test_weight_difference_of_exactly_the_tolerance_is_accepted():
    q = fill_blanks(marks=1)
    q["blankConfig"]["blankWeights"] = {0: 0.5, 1: 0.49}
    assert validate_question(q).is_valid
    q["blankConfig"]["blankWeights"] = {0: 0.5, 1: 0.48}
    assert not validate_question(q).is_valid
