"""SQLModel data models.

Authored questions are stored as their JSON document plus a few indexed
columns. Each graded attempt is a `Submission` with one
`EvaluationRecord` per question, mirroring the result/item split of the
API schemas.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class QuestionRecord(SQLModel, table=True):
    """An authored question.

    `payload` holds the full camelCase question document; `fingerprint`
    is the hash of that document and changes whenever it is edited.
    """
    id: str = Field(primary_key=True)
    type: str = Field(index=True)
    marks: float
    negative_marks: float = 0.0
    difficulty: Optional[str] = None
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    fingerprint: str
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Submission(SQLModel, table=True):
    """A graded quiz attempt with its aggregated score."""
    id: str = Field(primary_key=True)
    quiz_id: Optional[str] = Field(default=None, index=True)
    student_id: Optional[str] = Field(default=None, index=True)
    total_score: float = 0.0
    max_score: float = 0.0
    evaluation_status: str = "NOT_EVALUATED"
    cancelled: bool = False
    created_at: datetime = Field(default_factory=_now)
    items: List["EvaluationRecord"] = Relationship(back_populates="submission")


class EvaluationRecord(SQLModel, table=True):
    """One question outcome inside a `Submission`.

    `score` is NULL while the question waits for manual review or when
    its configuration was broken; it is never stored as a stand-in zero.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    submission_id: str = Field(foreign_key="submission.id", index=True)
    question_id: str = Field(index=True)
    status: str
    score: Optional[float] = None
    max_score: float = 0.0
    verdicts: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    error_detail: Optional[str] = None
    question_fingerprint: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    submission: Optional[Submission] = Relationship(back_populates="items")
