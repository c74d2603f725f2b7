"""
Unit tests for session summaries and deck statistics.
"""

from datetime import datetime, timedelta, timezone

import pytest

from lexis.review.grades import ReviewGrade
from lexis.review.session import ReviewOutcome
from lexis.review.state import ScheduleState
from lexis.review.summary import interval_label, review_stats, summarize

NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


def outcome(grade):
    return ReviewOutcome(
        item_id="w", grade=grade, state=ScheduleState.initial("w"), reviewed_at=NOW
    )


def state_due_in(days, interval=3):
    next_review = NOW + timedelta(days=days)
    return ScheduleState(
        item_id=f"w{days}",
        interval_days=interval,
        repetitions=1,
        last_reviewed=next_review - timedelta(days=interval),
        next_review=next_review,
    )


class TestSummarize:
    def test_empty(self):
        summary = summarize([])
        assert summary.count == 0
        assert summary.average_grade_weight == 0.0
        assert summary.perfect_count == 0
        assert all(n == 0 for n in summary.grade_distribution.values())

    def test_weights_and_perfect_count(self):
        grades = [ReviewGrade.AGAIN, ReviewGrade.HARD, ReviewGrade.GOOD, ReviewGrade.EASY, ReviewGrade.EASY]
        summary = summarize([outcome(g) for g in grades])

        assert summary.count == 5
        assert summary.average_grade_weight == pytest.approx((0 + 1 + 2 + 3 + 3) / 5)
        assert summary.perfect_count == 2
        assert summary.grade_distribution[ReviewGrade.EASY] == 2
        assert summary.accuracy == pytest.approx(80.0)

    def test_accepts_bare_grades(self):
        summary = summarize([ReviewGrade.GOOD, ReviewGrade.GOOD])
        assert summary.average_grade_weight == pytest.approx(2.0)

    def test_to_dict_uses_grade_names(self):
        data = summarize([ReviewGrade.HARD]).to_dict()
        assert data["grade_distribution"] == {"again": 0, "hard": 1, "good": 0, "easy": 0}
        assert data["count"] == 1


class TestReviewStats:
    def test_counts(self):
        states = [
            ScheduleState.initial("new"),
            state_due_in(-2),
            state_due_in(1),
            state_due_in(3),
            state_due_in(10),
            state_due_in(20, interval=45),
        ]
        stats = review_stats(states, NOW)

        assert stats.due_today == 2
        assert stats.due_soon == 2
        assert stats.mastered == 1
        assert stats.total == 6

    def test_empty(self):
        assert review_stats([], NOW).to_dict() == {
            "due_today": 0,
            "due_soon": 0,
            "mastered": 0,
            "total": 0,
        }


class TestIntervalLabel:
    @pytest.mark.parametrize(
        "days, label",
        [
            (0, "Today"),
            (1, "1 day"),
            (5, "5 days"),
            (7, "1 week"),
            (16, "2 weeks"),
            (45, "1 month"),
            (200, "6 months"),
            (400, "1 year"),
            (800, "2 years"),
        ],
    )
    def test_labels(self, days, label):
        assert interval_label(days) == label
