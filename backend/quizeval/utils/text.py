"""String normalisation and matching helpers for graded answers."""

import re
import string
from typing import Optional

# Value an empty rich-text editor produces.
EMPTY_RICH_TEXT = "<p></p>"

_NUMBER_RE = re.compile(r"^-?\d*\.?\d+$")
_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION = str.maketrans("", "", string.punctuation)


def is_blank_text(value: Optional[str]) -> bool:
    """True for missing, whitespace-only or empty rich-text values."""
    if value is None:
        return True
    stripped = value.strip()
    return stripped == "" or stripped == EMPTY_RICH_TEXT


def is_number(value: str) -> bool:
    return bool(_NUMBER_RE.match(value.strip()))


def is_uppercase(value: str) -> bool:
    return re.search(r"[a-z]", value.strip()) is None


def is_lowercase(value: str) -> bool:
    return re.search(r"[A-Z]", value.strip()) is None


def to_number(value: str) -> Optional[float]:
    """Parse a NUMBER-typed answer, or None when it is not numeric."""
    if not is_number(value):
        return None
    return float(value.strip())


def lenient_form(value: str) -> str:
    """Lower-case, drop punctuation and collapse internal whitespace."""
    cleaned = value.lower().translate(_PUNCTUATION)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def edit_distance(a: str, b: str, limit: Optional[int] = None) -> int:
    """Levenshtein distance between `a` and `b`.

    When `limit` is given the computation stops as soon as the distance
    is known to exceed it and returns `limit + 1`.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if limit is not None and len(a) - len(b) > limit:
        return limit + 1
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        if limit is not None and min(current) > limit:
            return limit + 1
        previous = current
    if limit is not None and previous[-1] > limit:
        return limit + 1
    return previous[-1]


def word_count(text: Optional[str]) -> int:
    if not text:
        return 0
    # strip simple markup left by the rich-text editor
    plain = re.sub(r"<[^>]+>", " ", text)
    return len(plain.split())
