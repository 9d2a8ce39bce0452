"""Environment settings for the grading service layer.

The pure evaluation functions never read these; they receive an explicit
`GradingPolicy`. Settings only feed the batch grader, the event log and
the database engine.
"""

import os
from pathlib import Path

from .schemas import GradingPolicy

_BASE = Path(__file__).resolve().parent.parent


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    CLAMP_NEGATIVE: bool
    MMCQ_PARTIAL_CREDIT: bool
    LENIENT_MAX_EDITS: int
    LENIENT_MIN_LENGTH: int
    GRADING_WORKERS: int
    DATABASE_URL: str
    LOG_LEVEL: str

    def __init__(self):
        self.CLAMP_NEGATIVE = _flag("GRADING_CLAMP_NEGATIVE", "true")
        self.MMCQ_PARTIAL_CREDIT = _flag("GRADING_MMCQ_PARTIAL_CREDIT", "false")
        self.LENIENT_MAX_EDITS = int(os.getenv("GRADING_LENIENT_MAX_EDITS", "1"))
        self.LENIENT_MIN_LENGTH = int(os.getenv("GRADING_LENIENT_MIN_LENGTH", "4"))
        self.GRADING_WORKERS = int(os.getenv("GRADING_WORKERS", "4"))
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{_BASE / 'quizeval.db'}")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.GRADING_WORKERS < 1:
            raise RuntimeError("GRADING_WORKERS must be at least 1")
        if self.LENIENT_MAX_EDITS < 0:
            raise RuntimeError("GRADING_LENIENT_MAX_EDITS cannot be negative")
        if self.LENIENT_MIN_LENGTH < 0:
            raise RuntimeError("GRADING_LENIENT_MIN_LENGTH cannot be negative")

    def grading_policy(self) -> GradingPolicy:
        return GradingPolicy(
            clamp_negative=self.CLAMP_NEGATIVE,
            mmcq_partial_credit=self.MMCQ_PARTIAL_CREDIT,
            lenient_max_edits=self.LENIENT_MAX_EDITS,
            lenient_min_length=self.LENIENT_MIN_LENGTH,
        )


settings = Settings()
