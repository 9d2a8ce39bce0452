import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from quizeval import models  # noqa: F401


@pytest.fixture
def session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture(autouse=True)
def no_event_files(monkeypatch):
    monkeypatch.delenv("GRADING_EVENTS_DIR", raising=False)


def mcq(**overrides):
    data = {
        "id": "q-mcq",
        "type": "MCQ",
        "questionText": "Which letter comes second?",
        "marks": 1,
        "negativeMarks": 0.25,
        "options": [{"id": "A", "text": "A"}, {"id": "B", "text": "B"}, {"id": "C", "text": "C"}],
        "correctOptions": ["B"],
    }
    data.update(overrides)
    return data


def mmcq(**overrides):
    data = {
        "id": "q-mmcq",
        "type": "MMCQ",
        "questionText": "Pick the primes",
        "marks": 2,
        "negativeMarks": 0.5,
        "options": [
            {"id": "o2", "text": "2"},
            {"id": "o3", "text": "3"},
            {"id": "o4", "text": "4"},
            {"id": "o5", "text": "5"},
        ],
        "correctOptions": ["o2", "o3", "o5"],
    }
    data.update(overrides)
    return data


def true_false(**overrides):
    data = {
        "id": "q-tf",
        "type": "TRUE_FALSE",
        "questionText": "The earth orbits the sun.",
        "marks": 1,
        "trueFalseAnswer": True,
    }
    data.update(overrides)
    return data


def fill_blanks(mode="NORMAL", **overrides):
    data = {
        "id": "q-fitb",
        "type": "FILL_THE_BLANK",
        "questionText": "The capital of France is ____ and the answer is ____.",
        "marks": 2,
        "blankConfig": {
            "blankCount": 2,
            "acceptableAnswers": {
                0: {"answers": ["paris"], "type": "TEXT"},
                1: {"answers": ["42"], "type": "NUMBER"},
            },
            "blankWeights": {0: 1, 1: 1},
            "evaluationType": mode,
        },
    }
    data.update(overrides)
    return data


def matching(**overrides):
    data = {
        "id": "q-match",
        "type": "MATCHING",
        "questionText": "Match the languages with their typing",
        "marks": 2,
        "options": [
            {"id": "l1", "text": "Python", "isLeft": True, "orderIndex": 0, "matchPairIds": ["r1", "r2"]},
            {"id": "l2", "text": "Rust", "isLeft": True, "orderIndex": 1, "matchPairIds": ["r3"]},
            {"id": "r1", "text": "dynamic", "isLeft": False, "orderIndex": 0},
            {"id": "r2", "text": "strong", "isLeft": False, "orderIndex": 1},
            {"id": "r3", "text": "static", "isLeft": False, "orderIndex": 2},
        ],
    }
    data.update(overrides)
    return data


def descriptive(**overrides):
    data = {
        "id": "q-desc",
        "type": "DESCRIPTIVE",
        "questionText": "Explain garbage collection.",
        "marks": 5,
        "descriptiveConfig": {
            "modelAnswer": "Reference counting plus a cycle detector.",
            "keywords": ["reference", "cycle"],
            "minWords": 3,
            "maxWords": 50,
        },
    }
    data.update(overrides)
    return data

