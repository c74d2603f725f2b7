"""
Session summaries and deck-level review statistics.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .grades import ReviewGrade
from .state import ScheduleState, ensure_utc

# Scoring weights only; scheduling never reads these
GRADE_WEIGHTS: dict[ReviewGrade, int] = {
    ReviewGrade.AGAIN: 0,
    ReviewGrade.HARD: 1,
    ReviewGrade.GOOD: 2,
    ReviewGrade.EASY: 3,
}

DUE_SOON_DAYS = 3
MASTERED_INTERVAL_DAYS = 30


# =============================================================================
# Session Summary
# =============================================================================


@dataclass(frozen=True)
class SessionSummary:
    """Aggregate statistics handed to the rewards consumer at session end."""

    count: int = 0
    average_grade_weight: float = 0.0
    perfect_count: int = 0
    grade_distribution: dict[ReviewGrade, int] = field(
        default_factory=lambda: {grade: 0 for grade in ReviewGrade}
    )

    @property
    def accuracy(self) -> float:
        """Share of non-Again grades, 0-100."""
        if self.count == 0:
            return 0.0
        failed = self.grade_distribution.get(ReviewGrade.AGAIN, 0)
        return (self.count - failed) / self.count * 100

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "average_grade_weight": self.average_grade_weight,
            "perfect_count": self.perfect_count,
            "grade_distribution": {
                grade.value: n for grade, n in self.grade_distribution.items()
            },
        }


def summarize(outcomes: Iterable) -> SessionSummary:
    """
    Aggregate graded outcomes into a SessionSummary.

    Args:
        outcomes: Items exposing a ``grade`` attribute (ReviewOutcome), or
            bare ReviewGrade values

    Returns:
        SessionSummary; all zeros for an empty input
    """
    distribution = {grade: 0 for grade in ReviewGrade}
    for outcome in outcomes:
        grade = outcome if isinstance(outcome, ReviewGrade) else outcome.grade
        distribution[grade] += 1

    count = sum(distribution.values())
    if count == 0:
        return SessionSummary()

    total_weight = sum(GRADE_WEIGHTS[grade] * n for grade, n in distribution.items())
    return SessionSummary(
        count=count,
        average_grade_weight=total_weight / count,
        perfect_count=distribution[ReviewGrade.EASY],
        grade_distribution=distribution,
    )


# =============================================================================
# Deck Statistics
# =============================================================================


@dataclass(frozen=True)
class ReviewStats:
    """Counts shown on the dashboard."""

    due_today: int = 0
    due_soon: int = 0
    mastered: int = 0
    total: int = 0

    def to_dict(self) -> dict:
        return {
            "due_today": self.due_today,
            "due_soon": self.due_soon,
            "mastered": self.mastered,
            "total": self.total,
        }


def review_stats(states: Iterable[ScheduleState], now: datetime) -> ReviewStats:
    """
    Count due, soon-due and mastered items.

    due_today includes never-reviewed items. due_soon covers items falling
    due after ``now`` but within the next three days. mastered counts items
    whose interval exceeds thirty days.
    """
    now = ensure_utc(now)
    horizon = now + timedelta(days=DUE_SOON_DAYS)

    due_today = due_soon = mastered = total = 0
    for state in states:
        total += 1
        if state.is_due(now):
            due_today += 1
        elif ensure_utc(state.next_review) <= horizon:
            due_soon += 1
        if state.interval_days > MASTERED_INTERVAL_DAYS:
            mastered += 1

    return ReviewStats(due_today=due_today, due_soon=due_soon, mastered=mastered, total=total)


def interval_label(days: int) -> str:
    """Human-readable interval, e.g. "Today", "3 days", "2 weeks"."""
    if days <= 0:
        return "Today"
    if days == 1:
        return "1 day"
    if days < 7:
        return f"{days} days"
    if days < 30:
        return _plural(days // 7, "week")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" if n == 1 else f"{n} {unit}s"
