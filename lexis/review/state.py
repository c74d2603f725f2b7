"""
Vocabulary items and per-user schedule state.

VocabularyItem is read-only content. ScheduleState is the memory state the
scheduler owns for one (user, item) pair; it is immutable and replaced on
every grade.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_EASE = 2.5
MIN_EASE = 1.3

DIFFICULTY_LEVELS = ("Beginner", "Intermediate", "Advanced")


def ensure_utc(moment: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Vocabulary Item
# =============================================================================


@dataclass(frozen=True)
class VocabularyItem:
    """A single word or phrase with its meaning."""

    id: str
    headword: str
    meaning: str
    example: str | None = None
    category: str = "general"
    pronunciation: str | None = None
    difficulty: str = "Beginner"

    @classmethod
    def from_dict(cls, data: dict) -> VocabularyItem:
        """
        Create an item from a JSON record.

        Accepts both ``headword`` and the older ``word`` key.
        """
        headword = data.get("headword") or data.get("word")
        if not headword:
            raise ValueError(f"Vocabulary record missing headword: {data!r}")
        if not data.get("meaning"):
            raise ValueError(f"Vocabulary record missing meaning: {headword!r}")

        difficulty = data.get("difficulty") or "Beginner"
        if difficulty not in DIFFICULTY_LEVELS:
            difficulty = "Beginner"

        return cls(
            id=str(data.get("id") or headword.strip().lower()),
            headword=headword.strip(),
            meaning=data["meaning"].strip(),
            example=data.get("example") or None,
            category=data.get("category") or "general",
            pronunciation=data.get("pronunciation") or None,
            difficulty=difficulty,
        )

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# Schedule State
# =============================================================================


@dataclass(frozen=True)
class ScheduleState:
    """
    SRS memory state for one vocabulary item.

    Attributes:
        item_id: Vocabulary item this state belongs to
        ease: Retention-difficulty factor, never below MIN_EASE
        interval_days: Days until the item is due again
        repetitions: Consecutive successful reviews since the last reset
        last_reviewed: Time of the most recent grade (None = never reviewed)
        next_review: last_reviewed + interval_days (None = never reviewed)
    """

    item_id: str
    ease: float = DEFAULT_EASE
    interval_days: int = 0
    repetitions: int = 0
    last_reviewed: datetime | None = None
    next_review: datetime | None = field(default=None)

    @classmethod
    def initial(cls, item_id: str) -> ScheduleState:
        """State for an item that has never been reviewed."""
        return cls(item_id=item_id)

    @property
    def is_new(self) -> bool:
        """True until the first grade has been applied."""
        return self.last_reviewed is None

    def is_due(self, now: datetime) -> bool:
        """Check if this item is due for review at ``now``."""
        if self.next_review is None:
            return True
        return ensure_utc(self.next_review) <= ensure_utc(now)

    def days_overdue(self, now: datetime) -> int:
        """Whole days past the scheduled review time."""
        if self.next_review is None:
            return 0
        delta = ensure_utc(now) - ensure_utc(self.next_review)
        return max(0, delta.days)

    def check_invariants(self) -> None:
        """
        Assert the state is internally consistent.

        Raises:
            ValueError: If any invariant is violated
        """
        if self.ease < MIN_EASE:
            raise ValueError(f"ease {self.ease} below floor {MIN_EASE}")
        if self.interval_days < 0:
            raise ValueError(f"negative interval {self.interval_days}")
        if self.repetitions < 0:
            raise ValueError(f"negative repetitions {self.repetitions}")
        if (self.last_reviewed is None) != (self.next_review is None):
            raise ValueError("last_reviewed and next_review must both be set or both be None")
        if self.last_reviewed is not None:
            expected = ensure_utc(self.last_reviewed) + timedelta(days=self.interval_days)
            if ensure_utc(self.next_review) != expected:
                raise ValueError("next_review must equal last_reviewed + interval_days")

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "ease": self.ease,
            "interval_days": self.interval_days,
            "repetitions": self.repetitions,
            "last_reviewed": self.last_reviewed.isoformat() if self.last_reviewed else None,
            "next_review": self.next_review.isoformat() if self.next_review else None,
        }
