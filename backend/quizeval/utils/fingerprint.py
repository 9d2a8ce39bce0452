"""Content fingerprints for authored questions."""

import hashlib
import json

from ..schemas import QuestionBase, parse_question


def question_document(question: QuestionBase) -> dict:
    """The camelCase JSON document stored for a question."""
    return question.model_dump(mode="json", by_alias=True)


def fingerprint_question(question) -> str:
    """Stable sha256 of the question's canonical JSON form.

    Any edit to the question (including its answers) changes the value,
    so results stored with an older fingerprint are known to be stale.
    """
    doc = question_document(parse_question(question))
    canonical = json.dumps(doc, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
