"""Grading services.

`evaluate` is the single-question boundary: it runs the comparator and
the aggregator and turns a `ConfigurationError` into a
`configuration_error` result instead of a score. The service classes
coordinate many evaluations (a whole submission, a cohort) and the
repositories that persist them.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from sqlmodel import Session

from . import repositories
from .aggregator import score
from .comparator import as_response, compare
from .config import settings
from .exceptions import ConfigurationError
from .schemas import (
    EvaluationResult,
    EvaluationStatus,
    GradingPolicy,
    QuestionBase,
    Response,
    SubmissionResult,
    SubmissionStatus,
    parse_question,
)
from .utils.fingerprint import fingerprint_question
from .utils.grading_events import record_grading_event
from .utils.parsers import normalize_submission, parse_file_to_questions
from .validator import validate_question

logger = logging.getLogger("quizeval.grading")
import_logger = logging.getLogger("quizeval.import")


def evaluate(question: Any, response: Any, policy: Optional[GradingPolicy] = None,
             manual_score: Optional[float] = None) -> EvaluationResult:
    """Grade one response against its question.

    `response` may be a `Response`, a response dict or the bare submitted
    value. `manual_score` is passed through for manually graded types.
    Raises `ValueError` when the response belongs to another question or
    the manual score is out of range.
    """
    q = parse_question(question)
    r = response if isinstance(response, Response) else as_response(q, response)
    if r.question_id != q.id:
        raise ValueError(f"response is for question {r.question_id}, not {q.id}")
    fingerprint = fingerprint_question(q)
    try:
        comparison = compare(q, r, policy)
        earned = score(q, comparison, policy, manual_score)
    except ConfigurationError as e:
        logger.warning("cannot grade question %s: %s", q.id, e)
        return EvaluationResult(
            question_id=q.id,
            max_score=q.marks,
            status=EvaluationStatus.CONFIGURATION_ERROR,
            error_detail=str(e),
            question_fingerprint=fingerprint,
        )
    status = EvaluationStatus.NEEDS_MANUAL_REVIEW if earned is None else EvaluationStatus.GRADED
    return EvaluationResult(
        question_id=q.id,
        per_unit_verdicts=comparison.units,
        score=earned,
        max_score=q.marks,
        status=status,
        analysis=comparison.analysis,
        question_fingerprint=fingerprint,
    )


def _load_question(item: Any, index: int) -> Tuple[Optional[QuestionBase], Optional[EvaluationResult]]:
    """Parse one question of a batch.

    Returns `(question, None)`, or `(None, result)` with a
    `configuration_error` result when the item is not a question at all.
    """
    try:
        return parse_question(item), None
    except ValidationError as e:
        raw = item if isinstance(item, dict) else {}
        question_id = str(raw.get("id") or raw.get("_id") or f"question-{index + 1}")
        try:
            max_score = float(raw.get("marks", 0))
        except (TypeError, ValueError):
            max_score = 0.0
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ())) or 'question'}: {err.get('msg')}" for err in e.errors()
        )
        logger.warning("cannot parse question %s: %s", question_id, problems)
        return None, EvaluationResult(
            question_id=question_id,
            max_score=max_score,
            status=EvaluationStatus.CONFIGURATION_ERROR,
            error_detail=f"invalid question: {problems}",
        )


class GradingService:
    """Grade submitted quiz attempts and persist results.

    Each question of an attempt is graded independently on a thread
    pool; one broken question is reported as `configuration_error` and
    never blocks the others. When a `session` is given the submission is
    stored through `EvaluationRepository`.
    """
    def __init__(self, session: Optional[Session] = None, policy: Optional[GradingPolicy] = None,
                 max_workers: Optional[int] = None):
        self.session = session
        self.policy = policy or settings.grading_policy()
        self.max_workers = max_workers or settings.GRADING_WORKERS
        self.eval_repo = repositories.EvaluationRepository(session) if session is not None else None

    def grade_submission(self, questions: Iterable[Any], responses: Any,
                         manual_scores: Optional[Mapping[str, float]] = None,
                         cancel_event: Optional[threading.Event] = None,
                         submission_id: Optional[str] = None,
                         quiz_id: Optional[str] = None,
                         student_id: Optional[str] = None) -> SubmissionResult:
        """Grade every question of one attempt.

        Questions without a response are graded as unanswered. A question
        that does not parse, or whose manual score is out of range, is
        reported on its own result and never stops the others. Setting
        `cancel_event` stops grading questions that have not started
        yet; results already computed are kept and the submission is
        marked cancelled.
        """
        loaded = [_load_question(item, index) for index, item in enumerate(questions)]
        ids = [q.id if q is not None else failed.question_id for q, failed in loaded]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate question ids in submission")
        by_question = self._index_responses(responses)
        unknown = sorted(set(by_question) - set(ids))
        if unknown:
            logger.warning("ignoring responses for unknown questions: %s", ", ".join(unknown))
        manual_scores = manual_scores or {}

        def grade_one(q: QuestionBase):
            if cancel_event is not None and cancel_event.is_set():
                return q.id, None
            response = by_question.get(q.id) or Response(question_id=q.id)
            manual = manual_scores.get(q.id)
            try:
                return q.id, evaluate(q, response, self.policy, manual)
            except ValueError as e:
                if manual is None:
                    raise
                logger.warning("rejected manual score for question %s: %s", q.id, e)
                res = evaluate(q, response, self.policy)
                return q.id, res.model_copy(update={"error_detail": f"manual score rejected: {e}"})

        results: Dict[str, EvaluationResult] = {
            failed.question_id: failed for q, failed in loaded if failed is not None
        }
        qs = [q for q, failed in loaded if q is not None]
        if qs:
            workers = min(self.max_workers, len(qs))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                for question_id, res in executor.map(grade_one, qs):
                    if res is not None:
                        results[question_id] = res

        cancelled = len(results) < len(loaded)
        max_score = sum(q.marks if q is not None else failed.max_score for q, failed in loaded)
        kwargs = {"submission_id": submission_id} if submission_id else {}
        result = SubmissionResult(
            results=results,
            total_score=round(sum(r.score for r in results.values() if r.score is not None), 2),
            max_score=round(max_score, 2),
            status=self._submission_status(results, cancelled),
            cancelled=cancelled,
            **kwargs,
        )
        self._report(result)
        if self.eval_repo is not None:
            self.eval_repo.save_submission(result, quiz_id=quiz_id, student_id=student_id)
        return result

    def grade_cohort(self, questions: Iterable[Any], submissions: Mapping[str, Any],
                     manual_scores: Optional[Mapping[str, Mapping[str, float]]] = None) -> Dict[str, SubmissionResult]:
        """Grade several attempts of the same quiz, keyed by submission id.

        Each attempt is graded on its own; a rejected manual score only
        affects the question it was given for.
        """
        qs = []
        for index, item in enumerate(questions):
            q, failed = _load_question(item, index)
            qs.append(item if failed is not None else q)
        manual_scores = manual_scores or {}
        return {
            sid: self.grade_submission(qs, responses, manual_scores.get(sid), submission_id=sid)
            for sid, responses in submissions.items()
        }

    def _index_responses(self, responses: Any) -> Dict[str, Response]:
        if isinstance(responses, dict):
            items = normalize_submission(responses)
        else:
            items = list(responses or [])
            if not all(isinstance(r, Response) for r in items):
                items = normalize_submission(items)
        parsed = [r if isinstance(r, Response) else Response.model_validate(r) for r in items]
        return {r.question_id: r for r in parsed}

    @staticmethod
    def _submission_status(results: Mapping[str, EvaluationResult], cancelled: bool) -> SubmissionStatus:
        statuses = {r.status for r in results.values()}
        if EvaluationStatus.CONFIGURATION_ERROR in statuses:
            return SubmissionStatus.FAILED
        if cancelled or EvaluationStatus.NEEDS_MANUAL_REVIEW in statuses:
            return SubmissionStatus.NOT_EVALUATED
        return SubmissionStatus.EVALUATED

    def _report(self, result: SubmissionResult):
        errors = [r for r in result.results.values() if r.status == EvaluationStatus.CONFIGURATION_ERROR]
        pending = [r for r in result.results.values() if r.status == EvaluationStatus.NEEDS_MANUAL_REVIEW]
        for r in errors:
            record_grading_event({
                "event": "configuration_error",
                "submission_id": result.submission_id,
                "question_id": r.question_id,
                "error": r.error_detail,
            })
        record_grading_event({
            "event": "submission_graded",
            "submission_id": result.submission_id,
            "questions": len(result.results),
            "pending_reviews": len(pending),
            "configuration_errors": len(errors),
            "total_score": result.total_score,
            "max_score": result.max_score,
            "cancelled": result.cancelled,
        })
        logger.info(
            "graded submission %s: %s/%s, %d pending review, %d configuration errors",
            result.submission_id, result.total_score, result.max_score, len(pending), len(errors),
        )


class QuestionBankService:
    """Import question banks from files and persist the valid questions."""
    def __init__(self, session: Session):
        self.session = session
        self.q_repo = repositories.QuestionRepository(session)

    def import_file(self, file_bytes: bytes, filename: str, skip_existing: bool = True,
                    dry_run: bool = False) -> dict:
        """Parse `filename` contents and store every valid question.

        Returns the number of created questions, their ids, how many were
        skipped because the id already exists, and the validation
        `errors` of each rejected item.
        """
        parsed = parse_file_to_questions(file_bytes, filename)
        created: List[str] = []
        errors = []
        skipped = 0
        for idx, item in enumerate(parsed):
            result = validate_question(item)
            if not result.is_valid:
                errors.append({'index': idx, 'errors': [e.model_dump() for e in result.errors], 'item': item})
                continue
            q = parse_question(item)
            if skip_existing and self.q_repo.exists(q.id):
                skipped += 1
                continue
            if not dry_run:
                self.q_repo.create(q)
                created.append(q.id)
        import_logger.info(
            "imported %s: created %d, skipped %d, rejected %d", filename, len(created), skipped, len(errors),
        )
        return {'created': len(created), 'ids': created, 'skipped': skipped, 'errors': errors}
