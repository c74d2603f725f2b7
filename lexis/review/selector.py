"""
Due-item selection.

Filters schedule states down to those due at a point in time and orders
them most-overdue first, hardest first on ties. Never-reviewed items are
always due and come before everything else.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Generic, TypeVar

from .state import ScheduleState, VocabularyItem, ensure_utc

T = TypeVar("T")


def _sort_key(state: ScheduleState) -> tuple[int, float, float]:
    if state.next_review is None:
        return (0, 0.0, state.ease)
    return (1, ensure_utc(state.next_review).timestamp(), state.ease)


def _check_limit(limit: int | None) -> None:
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")


class DueSelection(Generic[T]):
    """
    Lazy, restartable view over the due subset of a snapshot.

    Nothing is filtered or sorted until iteration; every iteration recomputes
    from the captured snapshot, so iterating twice yields the same sequence.
    """

    def __init__(
        self,
        snapshot: Iterable[T],
        now: datetime,
        limit: int | None,
        state_of,
    ):
        _check_limit(limit)
        self._snapshot = tuple(snapshot)
        self._now = ensure_utc(now)
        self._limit = limit
        self._state_of = state_of

    def __iter__(self) -> Iterator[T]:
        due = [entry for entry in self._snapshot if self._state_of(entry).is_due(self._now)]
        # list.sort is stable: equal keys keep snapshot order
        due.sort(key=lambda entry: _sort_key(self._state_of(entry)))
        if self._limit is not None:
            due = due[: self._limit]
        return iter(due)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        return any(self._state_of(entry).is_due(self._now) for entry in self._snapshot) and (
            self._limit != 0
        )

    def __repr__(self) -> str:
        return f"DueSelection(snapshot={len(self._snapshot)}, limit={self._limit})"


def select_due(
    states: Iterable[ScheduleState],
    now: datetime,
    limit: int | None = None,
) -> DueSelection[ScheduleState]:
    """
    Select the states due at ``now``.

    Args:
        states: Schedule states to choose from
        now: Reference time (naive values are treated as UTC)
        limit: Maximum number of states to yield, applied after ordering

    Returns:
        DueSelection ordered by next_review ascending, then ease ascending

    Raises:
        ValueError: If limit is negative
    """
    return DueSelection(states, now, limit, state_of=lambda state: state)


def select_due_entries(
    entries: Iterable[tuple[VocabularyItem, ScheduleState]],
    now: datetime,
    limit: int | None = None,
) -> DueSelection[tuple[VocabularyItem, ScheduleState]]:
    """Same as select_due for (item, state) pairs from a store."""
    return DueSelection(entries, now, limit, state_of=lambda entry: entry[1])
