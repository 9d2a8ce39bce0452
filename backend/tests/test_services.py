import json
import threading

import pytest

from quizeval import evaluate
from quizeval.repositories import EvaluationRepository, QuestionRepository
from quizeval.schemas import EvaluationStatus, GradingPolicy, SubmissionStatus, Verdict
from quizeval.services import GradingService, QuestionBankService
from quizeval.utils.fingerprint import fingerprint_question

from conftest import descriptive, fill_blanks, matching, mcq, mmcq, true_false


def test_evaluate_graded_result():
    result = evaluate(fill_blanks(), {0: "Paris", 1: "42"})
    assert result.status == EvaluationStatus.GRADED
    assert result.score == 2
    assert result.max_score == 2
    assert [u.verdict for u in result.per_unit_verdicts] == [Verdict.CORRECT, Verdict.CORRECT]
    assert result.question_fingerprint == fingerprint_question(fill_blanks())


def test_evaluate_configuration_error_has_no_score():
    result = evaluate(mcq(correctOptions=[]), "A")
    assert result.status == EvaluationStatus.CONFIGURATION_ERROR
    assert result.score is None
    assert "no correct option" in result.error_detail


def test_evaluate_manual_review():
    result = evaluate(descriptive(), "Reference counting and a cycle collector.")
    assert result.status == EvaluationStatus.NEEDS_MANUAL_REVIEW
    assert result.score is None
    assert result.analysis.matched_keywords == ["reference", "cycle"]


def test_evaluate_rejects_response_for_other_question():
    with pytest.raises(ValueError):
        evaluate(mcq(), {"questionId": "other", "answer": "B"})


def test_grade_submission_merges_by_question_id():
    svc = GradingService(policy=GradingPolicy(), max_workers=3)
    questions = [mcq(), mmcq(), true_false(), fill_blanks(), matching()]
    responses = [
        {"questionId": "q-mcq", "answer": "B"},
        {"questionId": "q-mmcq", "answer": ["o2", "o3", "o5"]},
        {"questionId": "q-tf", "answer": "False"},
        {"questionId": "q-fitb", "answer": {"0": "paris", "1": "41"}},
    ]
    result = svc.grade_submission(questions, responses)
    assert set(result.results) == {"q-mcq", "q-mmcq", "q-tf", "q-fitb", "q-match"}
    assert result.results["q-tf"].score == 0
    assert result.results["q-fitb"].score == 1
    assert result.results["q-match"].per_unit_verdicts[0].verdict == Verdict.UNANSWERED
    assert result.total_score == 4
    assert result.max_score == 8
    assert result.status == SubmissionStatus.EVALUATED
    assert not result.cancelled


def test_stored_answer_mapping_is_accepted():
    svc = GradingService(max_workers=1)
    result = svc.grade_submission([mcq()], {"q-mcq": {"studentAnswer": "B"}})
    assert result.total_score == 1


def test_one_broken_question_does_not_block_the_rest():
    svc = GradingService(max_workers=2)
    questions = [mcq(), true_false(trueFalseAnswer=None)]
    result = svc.grade_submission(questions, {"q-mcq": "B", "q-tf": True})
    assert result.results["q-mcq"].score == 1
    assert result.results["q-tf"].status == EvaluationStatus.CONFIGURATION_ERROR
    assert result.total_score == 1
    assert result.status == SubmissionStatus.FAILED


def test_pending_review_keeps_submission_open():
    svc = GradingService()
    result = svc.grade_submission([mcq(), descriptive()], {"q-mcq": "B", "q-desc": "text"})
    assert result.status == SubmissionStatus.NOT_EVALUATED
    assert result.total_score == 1
    assert result.max_score == 6


def test_manual_scores_are_applied():
    svc = GradingService()
    result = svc.grade_submission([descriptive()], {"q-desc": "text"}, manual_scores={"q-desc": 4})
    assert result.results["q-desc"].status == EvaluationStatus.GRADED
    assert result.total_score == 4


def test_duplicate_question_ids_are_rejected():
    with pytest.raises(ValueError):
        GradingService().grade_submission([mcq(), mcq()], {})


def test_cancelled_run_keeps_no_pending_units():
    cancel = threading.Event()
    cancel.set()
    result = GradingService().grade_submission([mcq(), true_false()], {}, cancel_event=cancel)
    assert result.cancelled
    assert result.results == {}
    assert result.status == SubmissionStatus.NOT_EVALUATED


def test_grade_cohort():
    svc = GradingService()
    results = svc.grade_cohort([mcq()], {"s1": {"q-mcq": "B"}, "s2": {"q-mcq": "A"}})
    assert results["s1"].total_score == 1
    assert results["s2"].total_score == 0
    assert results["s2"].submission_id == "s2"


def test_submission_is_persisted(session):
    svc = GradingService(session=session)
    result = svc.grade_submission(
        [mcq(), descriptive()], {"q-mcq": "B"}, submission_id="sub-1", student_id="stu-1",
    )
    repo = EvaluationRepository(session)
    stored = repo.get_submission("sub-1")
    assert stored.student_id == "stu-1"
    assert stored.total_score == result.total_score
    assert stored.evaluation_status == SubmissionStatus.NOT_EVALUATED.value
    records = {r.question_id: r for r in repo.list_for_submission("sub-1")}
    assert records["q-mcq"].verdicts[0]["verdict"] == "correct"
    assert records["q-desc"].score is None


def test_events_are_written_when_enabled(tmp_path, monkeypatch):
    monkeypatch.setenv("GRADING_EVENTS_DIR", str(tmp_path))
    GradingService().grade_submission([mcq(correctOptions=[])], {"q-mcq": "A"})
    lines = (tmp_path / "grading_events.jsonl").read_text().splitlines()
    kinds = [json.loads(line)["event"] for line in lines]
    assert kinds == ["configuration_error", "submission_graded"]


def test_import_file_stores_valid_questions(session):
    bank = json.dumps([mcq(), true_false(trueFalseAnswer=None), fill_blanks()]).encode()
    svc = QuestionBankService(session)
    report = svc.import_file(bank, "bank.json")
    assert report["created"] == 2
    assert report["ids"] == ["q-mcq", "q-fitb"]
    assert report["errors"][0]["index"] == 1
    assert QuestionRepository(session).get("q-fitb").blank_config.blank_count == 2

    again = svc.import_file(bank, "bank.json")
    assert again["created"] == 0
    assert again["skipped"] == 2


def test_import_file_dry_run(session):
    bank = json.dumps({"questions": [mcq()]}).encode()
    report = QuestionBankService(session).import_file(bank, "bank.json", dry_run=True)
    assert report["created"] == 0
    assert not QuestionRepository(session).exists("q-mcq")


def test_unparseable_question_does_not_block_the_rest():
    broken = {"type": "MCQ", "marks": "abc"}
    result = GradingService().grade_submission([mcq(), broken], {"q-mcq": "B"})
    assert result.results["q-mcq"].score == 1
    failed = result.results["question-2"]
    assert failed.status == EvaluationStatus.CONFIGURATION_ERROR
    assert failed.score is None
    assert "marks" in failed.error_detail
    assert result.total_score == 1
    assert result.status == SubmissionStatus.FAILED


def test_rejected_manual_score_only_affects_its_question():
    svc = GradingService()
    results = svc.grade_cohort(
        [mcq(), descriptive()],
        {"s1": {"q-mcq": "B", "q-desc": "text"}, "s2": {"q-mcq": "A", "q-desc": "text"}},
        manual_scores={"s1": {"q-desc": 99}, "s2": {"q-desc": 2}},
    )
    s1 = results["s1"]
    assert s1.results["q-mcq"].score == 1
    assert s1.results["q-desc"].status == EvaluationStatus.NEEDS_MANUAL_REVIEW
    assert s1.results["q-desc"].score is None
    assert "manual score rejected" in s1.results["q-desc"].error_detail
    assert s1.status == SubmissionStatus.NOT_EVALUATED
    assert results["s2"].total_score == 2
    assert results["s2"].status == SubmissionStatus.EVALUATED


def test_cohort_with_unparseable_question():
    results = GradingService().grade_cohort([mcq(), {"id": "bad", "type": "ESSAY"}], {"s1": {"q-mcq": "B"}})
    assert results["s1"].results["bad"].status == EvaluationStatus.CONFIGURATION_ERROR
    assert results["s1"].results["q-mcq"].score == 1


def test_responses_may_be_a_generator():
    responses = ({"questionId": qid, "answer": answer} for qid, answer in [("q-mcq", "B"), ("q-tf", True)])
    result = GradingService().grade_submission([mcq(), true_false()], responses)
    assert result.total_score == 2
