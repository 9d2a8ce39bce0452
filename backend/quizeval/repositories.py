"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (questions,
submissions with their evaluation records). Repositories return SQLModel
objects and perform commits/refreshes where appropriate.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from . import models
from .exceptions import QuestionLockedError
from .schemas import EvaluationStatus, QuestionBase, SubmissionResult, SubmissionStatus, parse_question
from .utils.fingerprint import fingerprint_question, question_document


class QuestionRepository:
    """Store authored questions and guard graded ones against edits."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, question: QuestionBase) -> models.QuestionRecord:
        """Persist a new question and return the managed record."""
        record = models.QuestionRecord(
            id=question.id,
            type=question.type.value,
            marks=question.marks,
            negative_marks=question.negative_marks,
            difficulty=question.difficulty.value,
            payload=question_document(question),
            fingerprint=fingerprint_question(question),
        )
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get_record(self, question_id: str) -> Optional[models.QuestionRecord]:
        return self.session.get(models.QuestionRecord, question_id)

    def get(self, question_id: str) -> Optional[QuestionBase]:
        """Return the typed question for `question_id` or `None`."""
        record = self.get_record(question_id)
        if not record:
            return None
        return parse_question(record.payload)

    def list_by_type(self, question_type: str) -> List[models.QuestionRecord]:
        stmt = select(models.QuestionRecord).where(models.QuestionRecord.type == question_type)
        return self.session.exec(stmt).all()

    def exists(self, question_id: str) -> bool:
        return self.get_record(question_id) is not None

    def is_locked(self, question_id: str) -> bool:
        """True once any evaluation result references the question."""
        stmt = select(models.EvaluationRecord.id).where(models.EvaluationRecord.question_id == question_id)
        return self.session.exec(stmt).first() is not None

    def update(self, question: QuestionBase) -> models.QuestionRecord:
        """Replace a stored question.

        Raises `QuestionLockedError` when results were already graded
        against it, and `KeyError` when it does not exist.
        """
        record = self.get_record(question.id)
        if not record:
            raise KeyError(question.id)
        fingerprint = fingerprint_question(question)
        if fingerprint == record.fingerprint:
            return record
        if self.is_locked(question.id):
            raise QuestionLockedError(f"question {question.id} has graded responses and cannot be edited")
        record.type = question.type.value
        record.marks = question.marks
        record.negative_marks = question.negative_marks
        record.difficulty = question.difficulty.value
        record.payload = question_document(question)
        record.fingerprint = fingerprint
        record.updated_at = datetime.now(timezone.utc)
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record


class EvaluationRepository:
    """Persist submission aggregates and their evaluation records."""
    def __init__(self, session: Session):
        self.session = session

    def save_submission(self, result: SubmissionResult, quiz_id: Optional[str] = None,
                        student_id: Optional[str] = None) -> models.Submission:
        """Store a `SubmissionResult` and attach one record per question."""
        submission = models.Submission(
            id=result.submission_id,
            quiz_id=quiz_id,
            student_id=student_id,
            total_score=result.total_score,
            max_score=result.max_score,
            evaluation_status=result.status.value,
            cancelled=result.cancelled,
        )
        self.session.add(submission)
        for question_id, res in result.results.items():
            self.session.add(models.EvaluationRecord(
                submission_id=submission.id,
                question_id=question_id,
                status=res.status.value,
                score=res.score,
                max_score=res.max_score,
                verdicts=[v.model_dump(mode="json", by_alias=True) for v in res.per_unit_verdicts],
                error_detail=res.error_detail,
                question_fingerprint=res.question_fingerprint,
            ))
        self.session.commit()
        self.session.refresh(submission)
        return submission

    def get_submission(self, submission_id: str) -> Optional[models.Submission]:
        return self.session.get(models.Submission, submission_id)

    def list_for_submission(self, submission_id: str) -> List[models.EvaluationRecord]:
        stmt = select(models.EvaluationRecord).where(models.EvaluationRecord.submission_id == submission_id)
        return self.session.exec(stmt).all()

    def list_pending_review(self) -> List[models.EvaluationRecord]:
        """Records still waiting for a human score."""
        stmt = select(models.EvaluationRecord).where(
            models.EvaluationRecord.status == EvaluationStatus.NEEDS_MANUAL_REVIEW.value,
        )
        return self.session.exec(stmt).all()

    def list_stale(self, question_id: str, fingerprint: str) -> List[models.EvaluationRecord]:
        """Records graded against a different version of the question."""
        stmt = select(models.EvaluationRecord).where(
            models.EvaluationRecord.question_id == question_id,
            models.EvaluationRecord.question_fingerprint != fingerprint,
        )
        return self.session.exec(stmt).all()

    def apply_manual_score(self, record_id: int, value: float) -> models.EvaluationRecord:
        """Store a reviewer's score and refresh the submission total."""
        record = self.session.get(models.EvaluationRecord, record_id)
        if not record:
            raise KeyError(record_id)
        if record.status != EvaluationStatus.NEEDS_MANUAL_REVIEW.value:
            raise ValueError(f"evaluation {record_id} is not awaiting review")
        if value < 0 or value > record.max_score:
            raise ValueError(f"manual score {value:g} is outside [0, {record.max_score:g}]")
        record.score = value
        record.status = EvaluationStatus.GRADED.value
        self.session.add(record)
        self.session.commit()
        self._refresh_submission(record.submission_id)
        self.session.refresh(record)
        return record

    def _refresh_submission(self, submission_id: str):
        submission = self.get_submission(submission_id)
        items = self.list_for_submission(submission_id)
        submission.total_score = round(sum(i.score or 0.0 for i in items), 2)
        if any(i.status == EvaluationStatus.CONFIGURATION_ERROR.value for i in items):
            submission.evaluation_status = SubmissionStatus.FAILED.value
        elif any(i.status == EvaluationStatus.NEEDS_MANUAL_REVIEW.value for i in items) or submission.cancelled:
            submission.evaluation_status = SubmissionStatus.NOT_EVALUATED.value
        else:
            submission.evaluation_status = SubmissionStatus.EVALUATED.value
        self.session.add(submission)
        self.session.commit()
