"""Free-text star rating parser.

Accepted forms, tried in order (first match wins):

  1. ``"4"``, ``"4 stars"``, ``"4/5"``, optionally followed by ``- comment``
  2. ``"Rating: 4"`` / ``"Score: 4"``, optionally followed by ``- comment``
  3. ``"4 - comment"``
  4. a bare digit

Only single digits 1-5 are ratings.  Anything else, including ``"0"``,
``"6"``, ``"10"`` and free text, is not feedback (``None``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MIN_RATING = 1
MAX_RATING = 5

_DIGIT_WITH_UNIT_RE = re.compile(
    r"^([0-9])[/\s]*(?:stars?|/5)?(?:\s*[-–]\s*(.+))?$", re.IGNORECASE,
)
_LABELLED_RE = re.compile(
    r"(?:rating|score):\s*([0-9])(?:\s*[-–]\s*(.+))?$", re.IGNORECASE,
)
_DIGIT_DASH_COMMENT_RE = re.compile(r"^([0-9])\s*[-–]\s*(.+)$")
_BARE_DIGIT_RE = re.compile(r"^([0-9])$")

# (pattern, anchored-at-start?)
_PATTERNS = (
    (_DIGIT_WITH_UNIT_RE, True),
    (_LABELLED_RE, False),
    (_DIGIT_DASH_COMMENT_RE, True),
    (_BARE_DIGIT_RE, True),
)


@dataclass(frozen=True)
class ParsedFeedback:
    rating: int
    comment: str = ""

    @property
    def score(self) -> float:
        return normalized_score(self.rating)


def is_valid_rating(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and MIN_RATING <= value <= MAX_RATING


def normalized_score(rating: int) -> float:
    """Map 1-5 stars onto 0.0-1.0 (1 → 0.0, 3 → 0.5, 5 → 1.0)."""
    if not is_valid_rating(rating):
        raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating!r}")
    return (rating - MIN_RATING) / (MAX_RATING - MIN_RATING)


def star_display(rating: int) -> str:
    """``⭐⭐⭐☆☆`` for a rating of 3."""
    return "⭐" * rating + "☆" * (MAX_RATING - rating)


def parse_feedback(text: str) -> ParsedFeedback | None:
    """Extract a rating and optional comment from user input."""
    if not text:
        return None
    value = text.strip()

    for pattern, anchored in _PATTERNS:
        match = pattern.match(value) if anchored else pattern.search(value)
        if not match:
            continue
        rating = int(match.group(1))
        if not is_valid_rating(rating):
            continue
        comment = match.group(2) if pattern.groups >= 2 else None
        return ParsedFeedback(rating=rating, comment=(comment or "").strip())

    return None
