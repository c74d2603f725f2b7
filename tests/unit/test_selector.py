"""
Unit tests for due-item selection.
"""

from datetime import datetime, timedelta, timezone

import pytest

from lexis.review.selector import select_due, select_due_entries
from lexis.review.state import ScheduleState, VocabularyItem

NOW = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)


def reviewed(item_id, days_until_due, ease=2.5, interval=3):
    next_review = NOW + timedelta(days=days_until_due)
    return ScheduleState(
        item_id=item_id,
        ease=ease,
        interval_days=interval,
        repetitions=1,
        last_reviewed=next_review - timedelta(days=interval),
        next_review=next_review,
    )


class TestFiltering:
    def test_only_due_states_are_selected(self):
        states = [reviewed("past", -1), reviewed("future", 2), reviewed("exact", 0)]
        assert [s.item_id for s in select_due(states, NOW)] == ["past", "exact"]

    def test_never_reviewed_is_due(self):
        states = [reviewed("future", 5), ScheduleState.initial("new")]
        assert [s.item_id for s in select_due(states, NOW)] == ["new"]

    def test_nothing_due(self):
        assert list(select_due([reviewed("later", 1)], NOW)) == []

    def test_empty_input(self):
        assert list(select_due([], NOW)) == []


class TestOrdering:
    def test_most_overdue_first(self):
        states = [reviewed("b", -1), reviewed("a", -5), reviewed("c", 0)]
        assert [s.item_id for s in select_due(states, NOW)] == ["a", "b", "c"]

    def test_ties_broken_by_lower_ease(self):
        states = [reviewed("easy", -2, ease=2.8), reviewed("hard", -2, ease=1.5)]
        assert [s.item_id for s in select_due(states, NOW)] == ["hard", "easy"]

    def test_equal_keys_keep_input_order(self):
        states = [reviewed(f"w{i}", -1, ease=2.0) for i in range(5)]
        assert [s.item_id for s in select_due(states, NOW)] == [f"w{i}" for i in range(5)]

    def test_new_items_come_first(self):
        states = [reviewed("old", -30), ScheduleState.initial("n1"), ScheduleState.initial("n2")]
        assert [s.item_id for s in select_due(states, NOW)] == ["n1", "n2", "old"]

    def test_naive_now_is_utc(self):
        states = [reviewed("due", 0)]
        assert len(list(select_due(states, NOW.replace(tzinfo=None)))) == 1


class TestLimit:
    def test_limit_applies_after_ordering(self):
        states = [reviewed("b", -1), reviewed("a", -5), reviewed("c", -3)]
        assert [s.item_id for s in select_due(states, NOW, limit=2)] == ["a", "c"]

    def test_limit_zero(self):
        assert list(select_due([reviewed("a", -1)], NOW, limit=0)) == []

    def test_limit_larger_than_due_set(self):
        assert len(list(select_due([reviewed("a", -1)], NOW, limit=10))) == 1

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            select_due([], NOW, limit=-1)


class TestLaziness:
    def test_restartable(self):
        selection = select_due([reviewed("b", -1), reviewed("a", -2)], NOW)
        assert list(selection) == list(selection)
        assert len(selection) == 2

    def test_snapshot_is_captured(self):
        states = [reviewed("a", -1)]
        selection = select_due(states, NOW)
        states.append(reviewed("b", -2))
        assert [s.item_id for s in selection] == ["a"]

    def test_accepts_one_shot_iterables(self):
        selection = select_due(iter([reviewed("a", -1), reviewed("b", -2)]), NOW)
        assert [s.item_id for s in selection] == ["b", "a"]
        assert [s.item_id for s in selection] == ["b", "a"]

    def test_bool(self):
        assert select_due([reviewed("a", -1)], NOW)
        assert not select_due([reviewed("a", 1)], NOW)
        assert not select_due([reviewed("a", -1)], NOW, limit=0)


class TestEntries:
    def test_pairs_follow_state_ordering(self):
        items = [VocabularyItem(id=i, headword=i, meaning="m") for i in ("x", "y", "z")]
        pairs = [
            (items[0], reviewed("x", -1)),
            (items[1], ScheduleState.initial("y")),
            (items[2], reviewed("z", 3)),
        ]
        result = list(select_due_entries(pairs, NOW))
        assert [item.id for item, _ in result] == ["y", "x"]
