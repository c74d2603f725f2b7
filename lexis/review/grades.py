"""
Review grades and their boundary encodings.

A reviewer's self-reported recall quality is one of four ReviewGrade members.
Numeric codes only exist at the edges (storage, keyboard input, the legacy
vocabulary page) and are translated here, so scheduling logic never sees a
raw integer.

Encodings:
    SESSION_CODES - 1=Again, 2=Hard, 3=Good, 4=Easy (review log, key presses)
    LEGACY_CODES  - 1=Again, 2=Hard, 4=Good, 5=Easy (old vocabulary page)
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum

from .exceptions import ValidationError


class ReviewGrade(Enum):
    """Reviewer's recall quality for one item."""

    AGAIN = "again"  # Failed recall
    HARD = "hard"  # Recalled with significant effort
    GOOD = "good"  # Recalled with some effort
    EASY = "easy"  # Perfect recall

    @property
    def label(self) -> str:
        """Button label shown to the reviewer."""
        return self.value.capitalize()

    @property
    def description(self) -> str:
        return GRADE_DESCRIPTIONS[self]

    @property
    def is_success(self) -> bool:
        """Whether this grade counts as a successful recall."""
        return self is not ReviewGrade.AGAIN

    @property
    def code(self) -> int:
        """Session wire code (1-4) used for storage."""
        return _SESSION_CODE_BY_GRADE[self]

    @classmethod
    def from_code(cls, code: int, codes: Mapping[int, ReviewGrade] | None = None) -> ReviewGrade:
        """
        Translate a numeric wire code into a grade.

        Args:
            code: Integer code read from storage or input
            codes: Encoding table (defaults to SESSION_CODES)

        Returns:
            Matching ReviewGrade

        Raises:
            ValidationError: If the code is not part of the encoding
        """
        table = SESSION_CODES if codes is None else codes
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValidationError(f"Grade code must be an integer, got {code!r}")
        try:
            return table[code]
        except KeyError:
            raise ValidationError(
                f"Unknown grade code {code}; expected one of {sorted(table)}"
            ) from None


GRADE_DESCRIPTIONS: dict[ReviewGrade, str] = {
    ReviewGrade.AGAIN: "Complete blackout",
    ReviewGrade.HARD: "Difficult recall",
    ReviewGrade.GOOD: "Correct with effort",
    ReviewGrade.EASY: "Perfect recall",
}

SESSION_CODES: dict[int, ReviewGrade] = {
    1: ReviewGrade.AGAIN,
    2: ReviewGrade.HARD,
    3: ReviewGrade.GOOD,
    4: ReviewGrade.EASY,
}

LEGACY_CODES: dict[int, ReviewGrade] = {
    1: ReviewGrade.AGAIN,
    2: ReviewGrade.HARD,
    4: ReviewGrade.GOOD,
    5: ReviewGrade.EASY,
}

_SESSION_CODE_BY_GRADE = {grade: code for code, grade in SESSION_CODES.items()}

# Single-letter shortcuts accepted by the terminal client
_SHORTCUTS = {grade.value[0]: grade for grade in ReviewGrade}


def parse_grade(
    value: ReviewGrade | str | int,
    codes: Mapping[int, ReviewGrade] | None = None,
) -> ReviewGrade:
    """
    Translate boundary input into a ReviewGrade.

    Accepts a ReviewGrade, a label ("good", "Good"), a shortcut ("g"),
    a numeric code, or a numeric string ("3").

    Raises:
        ValidationError: For anything outside the four grades
    """
    if isinstance(value, ReviewGrade):
        return value

    if isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            return ReviewGrade.from_code(int(text), codes)
        if text in _SHORTCUTS:
            return _SHORTCUTS[text]
        try:
            return ReviewGrade(text)
        except ValueError:
            raise ValidationError(f"Unknown grade {value!r}") from None

    return ReviewGrade.from_code(value, codes)
