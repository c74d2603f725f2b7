"""
Schedule store for Lexis.

ScheduleStore is the port the review core talks to. SqlScheduleStore is the
SQLAlchemy implementation; any SQLAlchemy URL works, SQLite by default.

Persists:
- Vocabulary items (imported from decks)
- Schedule state per (user, item)
- Review log of applied grades
- Session history summaries
"""

from __future__ import annotations

from collections.abc import Generator, Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import Engine, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from lexis.db import (
    ReviewLogRow,
    ScheduleStateRow,
    SessionHistoryRow,
    VocabularyRow,
    create_db_engine,
    create_session_factory,
    init_db,
    session_scope,
)

from .exceptions import PersistenceError
from .grades import ReviewGrade
from .state import ScheduleState, VocabularyItem, ensure_utc, utc_now
from .summary import ReviewStats, SessionSummary, review_stats

# =============================================================================
# Port
# =============================================================================


@runtime_checkable
class ScheduleStore(Protocol):
    """What the review core needs from storage."""

    def fetch_due_items(
        self, user_id: str, now: datetime | None = None
    ) -> list[tuple[VocabularyItem, ScheduleState]]: ...

    def persist_schedule_state(self, user_id: str, item_id: str, state: ScheduleState) -> None: ...

    def log_review(
        self,
        user_id: str,
        item_id: str,
        grade: ReviewGrade,
        state: ScheduleState,
        session_id: str | None = None,
    ) -> None: ...


# =============================================================================
# Records
# =============================================================================


@dataclass
class ReviewRecord:
    """A single logged grade."""

    id: int
    user_id: str
    item_id: str
    grade: ReviewGrade
    ease: float
    interval_days: int
    reviewed_at: datetime
    session_id: str | None = None


@dataclass
class SessionRecord:
    """A finished (or abandoned) review session."""

    id: str
    user_id: str
    started_at: datetime
    ended_at: datetime | None
    items_reviewed: int
    average_grade_weight: float
    perfect_count: int
    accuracy: float


def _to_utc(moment: datetime | None) -> datetime | None:
    return ensure_utc(moment) if moment is not None else None


def _item_from_row(row: VocabularyRow) -> VocabularyItem:
    return VocabularyItem(
        id=row.id,
        headword=row.headword,
        meaning=row.meaning,
        example=row.example,
        category=row.category,
        pronunciation=row.pronunciation,
        difficulty=row.difficulty,
    )


def _state_from_row(row: ScheduleStateRow) -> ScheduleState:
    return ScheduleState(
        item_id=row.item_id,
        ease=row.ease,
        interval_days=row.interval_days,
        repetitions=row.repetitions,
        last_reviewed=_to_utc(row.last_reviewed),
        next_review=_to_utc(row.next_review),
    )


# =============================================================================
# SQLAlchemy Store
# =============================================================================


class SqlScheduleStore:
    """
    SQLAlchemy-backed schedule store.

    Every operation opens its own session, so one store can be shared
    between the CLI thread and the persistence worker.
    """

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        """
        Initialize the store.

        Args:
            url: SQLAlchemy URL (defaults to settings.database_url)
            engine: Existing engine to reuse instead of ``url``
        """
        self.engine = engine or create_db_engine(url)
        self._sessions = create_session_factory(self.engine)
        try:
            init_db(self.engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to initialize schema: {exc}") from exc

        logger.info(
            "ScheduleStore initialized at {}",
            self.engine.url.render_as_string(hide_password=True),
        )

    def close(self) -> None:
        self.engine.dispose()

    # =========================================================================
    # Vocabulary
    # =========================================================================

    def add_items(self, items: Iterable[VocabularyItem]) -> int:
        """
        Insert or update vocabulary items.

        Returns:
            Number of items written
        """
        count = 0
        try:
            with session_scope(self._sessions) as session:
                for item in items:
                    session.merge(
                        VocabularyRow(
                            id=item.id,
                            headword=item.headword,
                            meaning=item.meaning,
                            example=item.example,
                            category=item.category,
                            pronunciation=item.pronunciation,
                            difficulty=item.difficulty,
                        )
                    )
                    count += 1
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to store vocabulary: {exc}") from exc

        logger.info("Stored {} vocabulary item(s)", count)
        return count

    def get_item(self, item_id: str) -> VocabularyItem | None:
        with self._scope("load vocabulary item") as session:
            row = session.get(VocabularyRow, item_id)
            return _item_from_row(row) if row else None

    def list_items(self, category: str | None = None) -> list[VocabularyItem]:
        """List vocabulary, optionally restricted to one category."""
        stmt = select(VocabularyRow).order_by(VocabularyRow.headword)
        if category:
            stmt = stmt.where(VocabularyRow.category == category)
        with self._scope("list vocabulary") as session:
            return [_item_from_row(row) for row in session.scalars(stmt)]

    # =========================================================================
    # Schedule State
    # =========================================================================

    def get_schedule_state(self, user_id: str, item_id: str) -> ScheduleState:
        """
        Get schedule state for one item.

        Returns:
            Stored state, or the initial state if the item was never reviewed
        """
        with self._scope(f"load schedule for {item_id}", item_id) as session:
            row = session.get(ScheduleStateRow, (user_id, item_id))
            return _state_from_row(row) if row else ScheduleState.initial(item_id)

    def list_schedule_states(self, user_id: str) -> list[ScheduleState]:
        """State for every vocabulary item, including never-reviewed ones."""
        return [state for _, state in self._entries(user_id)]

    def fetch_due_items(
        self, user_id: str, now: datetime | None = None
    ) -> list[tuple[VocabularyItem, ScheduleState]]:
        """
        Items due for ``user_id`` at ``now``, with their current state.

        Never-reviewed items are included. Ordering is left to the selector.
        """
        now = ensure_utc(now) if now is not None else utc_now()
        # Stored as naive UTC on SQLite; compare on the same footing
        cutoff = now.replace(tzinfo=None) if self.engine.dialect.name == "sqlite" else now

        stmt = (
            select(VocabularyRow, ScheduleStateRow)
            .outerjoin(
                ScheduleStateRow,
                (ScheduleStateRow.item_id == VocabularyRow.id)
                & (ScheduleStateRow.user_id == user_id),
            )
            .where(
                or_(
                    ScheduleStateRow.next_review.is_(None),
                    ScheduleStateRow.next_review <= cutoff,
                )
            )
            .order_by(VocabularyRow.id)
        )
        with self._scope("fetch due items") as session:
            due = [self._pair(item_row, state_row) for item_row, state_row in session.execute(stmt)]

        logger.debug("Found {} due item(s) for {}", len(due), user_id)
        return due

    def persist_schedule_state(self, user_id: str, item_id: str, state: ScheduleState) -> None:
        """
        Save or update the state for one item.

        Raises:
            PersistenceError: If the write fails
        """
        try:
            with session_scope(self._sessions) as session:
                session.merge(
                    ScheduleStateRow(
                        user_id=user_id,
                        item_id=item_id,
                        ease=state.ease,
                        interval_days=state.interval_days,
                        repetitions=state.repetitions,
                        last_reviewed=self._for_storage(state.last_reviewed),
                        next_review=self._for_storage(state.next_review),
                    )
                )
        except IntegrityError as exc:
            raise PersistenceError(f"Unknown vocabulary item {item_id}", item_id=item_id) from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to persist schedule for {item_id}: {exc}", item_id=item_id
            ) from exc

    # =========================================================================
    # Review Log
    # =========================================================================

    def log_review(
        self,
        user_id: str,
        item_id: str,
        grade: ReviewGrade,
        state: ScheduleState,
        session_id: str | None = None,
    ) -> None:
        """Append a grade to the review log."""
        reviewed_at = state.last_reviewed or utc_now()
        try:
            with session_scope(self._sessions) as session:
                session.add(
                    ReviewLogRow(
                        user_id=user_id,
                        item_id=item_id,
                        session_id=session_id,
                        grade=grade.code,
                        ease=state.ease,
                        interval_days=state.interval_days,
                        reviewed_at=self._for_storage(reviewed_at),
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to log review for {item_id}: {exc}", item_id=item_id
            ) from exc

    def get_review_history(
        self,
        user_id: str,
        item_id: str | None = None,
        limit: int = 50,
    ) -> list[ReviewRecord]:
        """
        Logged grades, most recent first.

        Args:
            user_id: Reviewer
            item_id: Restrict to one item (all items if None)
            limit: Maximum records to return
        """
        stmt = (
            select(ReviewLogRow)
            .where(ReviewLogRow.user_id == user_id)
            .order_by(ReviewLogRow.reviewed_at.desc(), ReviewLogRow.id.desc())
            .limit(limit)
        )
        if item_id is not None:
            stmt = stmt.where(ReviewLogRow.item_id == item_id)

        with self._scope("load review history") as session:
            return [
                ReviewRecord(
                    id=row.id,
                    user_id=row.user_id,
                    item_id=row.item_id,
                    grade=ReviewGrade.from_code(row.grade),
                    ease=row.ease,
                    interval_days=row.interval_days,
                    reviewed_at=ensure_utc(row.reviewed_at),
                    session_id=row.session_id,
                )
                for row in session.scalars(stmt)
            ]

    # =========================================================================
    # Session History
    # =========================================================================

    def start_session(self, session_id: str, user_id: str, started_at: datetime | None = None) -> None:
        """
        Record the start of a review session.

        Raises:
            PersistenceError: If the row cannot be written (e.g. duplicate id)
        """
        started_at = started_at or utc_now()
        with self._scope(f"start session {session_id}") as session:
            session.add(
                SessionHistoryRow(
                    id=session_id,
                    user_id=user_id,
                    started_at=self._for_storage(started_at),
                )
            )

    def end_session(
        self,
        session_id: str,
        summary: SessionSummary,
        ended_at: datetime | None = None,
    ) -> None:
        """
        Close a session with its summary stats.

        Args:
            session_id: The session to close
            summary: Aggregated outcomes
            ended_at: Completion time (now if None)
        """
        ended_at = ended_at or utc_now()
        with self._scope(f"end session {session_id}") as session:
            row = session.get(SessionHistoryRow, session_id)
            if row is None:
                logger.warning("Cannot end unknown session {}", session_id)
                return
            row.ended_at = self._for_storage(ended_at)
            row.items_reviewed = summary.count
            row.average_grade_weight = summary.average_grade_weight
            row.perfect_count = summary.perfect_count
            row.accuracy = summary.accuracy

    def get_session_history(self, user_id: str, limit: int = 10) -> list[SessionRecord]:
        """Recent sessions, newest first."""
        stmt = (
            select(SessionHistoryRow)
            .where(SessionHistoryRow.user_id == user_id)
            .order_by(SessionHistoryRow.started_at.desc())
            .limit(limit)
        )
        with self._scope("load session history") as session:
            return [
                SessionRecord(
                    id=row.id,
                    user_id=row.user_id,
                    started_at=ensure_utc(row.started_at),
                    ended_at=_to_utc(row.ended_at),
                    items_reviewed=row.items_reviewed,
                    average_grade_weight=row.average_grade_weight,
                    perfect_count=row.perfect_count,
                    accuracy=row.accuracy,
                )
                for row in session.scalars(stmt)
            ]

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self, user_id: str, now: datetime | None = None) -> dict:
        """
        Overall statistics for the dashboard.

        Returns:
            Dict with deck counts, total reviews and session count
        """
        now = ensure_utc(now) if now is not None else utc_now()
        stats: ReviewStats = review_stats(self.list_schedule_states(user_id), now)

        with self._scope("compute stats") as session:
            total_reviews = session.scalar(
                select(func.count()).select_from(ReviewLogRow).where(ReviewLogRow.user_id == user_id)
            )
            total_sessions = session.scalar(
                select(func.count())
                .select_from(SessionHistoryRow)
                .where(SessionHistoryRow.user_id == user_id)
            )
            reviewed_items = session.scalar(
                select(func.count())
                .select_from(ScheduleStateRow)
                .where(ScheduleStateRow.user_id == user_id)
            )

        return {
            **stats.to_dict(),
            "reviewed_items": reviewed_items or 0,
            "total_reviews": total_reviews or 0,
            "total_sessions": total_sessions or 0,
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    @contextmanager
    def _scope(self, action: str, item_id: str | None = None) -> Generator[Session, None, None]:
        """session_scope that reports database failures as PersistenceError."""
        try:
            with session_scope(self._sessions) as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to {action}: {exc}", item_id=item_id) from exc

    def _entries(self, user_id: str) -> list[tuple[VocabularyItem, ScheduleState]]:
        stmt = (
            select(VocabularyRow, ScheduleStateRow)
            .outerjoin(
                ScheduleStateRow,
                (ScheduleStateRow.item_id == VocabularyRow.id)
                & (ScheduleStateRow.user_id == user_id),
            )
            .order_by(VocabularyRow.id)
        )
        with self._scope("list schedule states") as session:
            return [self._pair(item_row, state_row) for item_row, state_row in session.execute(stmt)]

    @staticmethod
    def _pair(
        item_row: VocabularyRow, state_row: ScheduleStateRow | None
    ) -> tuple[VocabularyItem, ScheduleState]:
        item = _item_from_row(item_row)
        state = _state_from_row(state_row) if state_row else ScheduleState.initial(item.id)
        return item, state

    def _for_storage(self, moment: datetime | None) -> datetime | None:
        if moment is None:
            return None
        moment = ensure_utc(moment)
        return moment.replace(tzinfo=None) if self.engine.dialect.name == "sqlite" else moment
