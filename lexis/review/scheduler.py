"""
Spaced Repetition Scheduler.

Computes the next ScheduleState for an item from its current state and the
reviewer's grade. The computation is pure: the same (state, grade, now)
always yields the same result.

Grade effects:
    Again - repetitions reset, interval 0, ease -0.20
    Hard  - first interval 2 days, then interval * 1.2, ease -0.15
    Good  - first interval 5 days, then interval * ease, ease unchanged
    Easy  - first interval 8 days, then interval * ease * 1.3, ease +0.15
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger

from .grades import ReviewGrade
from .state import DEFAULT_EASE, MIN_EASE, ScheduleState, ensure_utc

# =============================================================================
# Configuration
# =============================================================================


@dataclass
class SchedulerConfig:
    """Tunable constants for the scheduler."""

    initial_ease: float = DEFAULT_EASE
    minimum_ease: float = MIN_EASE
    again_ease_penalty: float = 0.2
    first_intervals: dict[ReviewGrade, int] = field(
        default_factory=lambda: {
            ReviewGrade.HARD: 2,
            ReviewGrade.GOOD: 5,
            ReviewGrade.EASY: 8,
        }
    )
    ease_deltas: dict[ReviewGrade, float] = field(
        default_factory=lambda: {
            ReviewGrade.HARD: -0.15,
            ReviewGrade.GOOD: 0.0,
            ReviewGrade.EASY: 0.15,
        }
    )
    hard_growth: float = 1.2
    easy_bonus: float = 1.3
    ease_precision: int = 2


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


# =============================================================================
# Scheduler
# =============================================================================


class SRSScheduler:
    """
    Ease-factor spaced repetition scheduler.

    Each item carries:
    - Ease: how easily it is recalled (2.5 default, min 1.3)
    - Interval: days until next review
    - Repetitions: consecutive successful recalls since the last lapse
    """

    def __init__(self, config: SchedulerConfig | None = None):
        """
        Initialize the scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SchedulerConfig()

    def compute_next(
        self,
        state: ScheduleState,
        grade: ReviewGrade,
        now: datetime,
    ) -> ScheduleState:
        """
        Calculate the state that follows a grade.

        Args:
            state: Current schedule state for the item
            grade: Reviewer's grade
            now: Time of the review (naive values are treated as UTC)

        Returns:
            New ScheduleState with updated ease, interval and review dates

        Raises:
            TypeError: If grade is not a ReviewGrade member
        """
        if not isinstance(grade, ReviewGrade):
            raise TypeError(f"grade must be a ReviewGrade, got {type(grade).__name__}")

        now = ensure_utc(now)
        ease, interval, repetitions = self._advance(state, grade)

        new_state = ScheduleState(
            item_id=state.item_id,
            ease=ease,
            interval_days=interval,
            repetitions=repetitions,
            last_reviewed=now,
            next_review=now + timedelta(days=interval),
        )

        logger.debug(
            "Scheduled {}: grade={}, ease {:.2f}->{:.2f}, interval {}d->{}d, reps={}",
            state.item_id,
            grade.value,
            state.ease,
            ease,
            state.interval_days,
            interval,
            repetitions,
        )
        return new_state

    def preview(self, state: ScheduleState, now: datetime) -> dict[ReviewGrade, int]:
        """
        Interval each grade would produce from ``state``.

        Used to label the grade buttons ("2 days", "5 days", ...).
        """
        return {
            grade: self.compute_next(state, grade, now).interval_days
            for grade in ReviewGrade
        }

    def _advance(self, state: ScheduleState, grade: ReviewGrade) -> tuple[float, int, int]:
        """Return (ease, interval_days, repetitions) after ``grade``."""
        cfg = self.config

        if grade is ReviewGrade.AGAIN:
            return self._clamp_ease(state.ease - cfg.again_ease_penalty), 0, 0

        repetitions = state.repetitions + 1
        if repetitions == 1:
            interval = cfg.first_intervals[grade]
        else:
            interval = round_half_up(state.interval_days * self._growth(state, grade))

        ease = self._clamp_ease(state.ease + cfg.ease_deltas[grade])
        return ease, interval, repetitions

    def _growth(self, state: ScheduleState, grade: ReviewGrade) -> float:
        # Growth uses the ease from before this review
        if grade is ReviewGrade.HARD:
            return self.config.hard_growth
        if grade is ReviewGrade.EASY:
            return state.ease * self.config.easy_bonus
        return state.ease

    def _clamp_ease(self, ease: float) -> float:
        return round(max(self.config.minimum_ease, ease), self.config.ease_precision)


_default_scheduler = SRSScheduler()


def compute_next(state: ScheduleState, grade: ReviewGrade, now: datetime) -> ScheduleState:
    """Module-level shortcut using the default SchedulerConfig."""
    return _default_scheduler.compute_next(state, grade, now)
