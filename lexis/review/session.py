"""
Review session controller.

Drives one pass over a queue of due vocabulary items:

    PRESENTING(item) --reveal--> REVEALED(item) --grade--> PRESENTING(next)
                                                      \\--> COMPLETED

Each grade is applied to the local queue straight away, handed to the
persistence dispatcher without waiting, and recorded as an outcome. When the
queue is exhausted (or the reviewer exits) the session summary is produced
and passed to the optional ``on_complete`` callback.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

from loguru import logger

from .exceptions import SessionStateError, ValidationError
from .grades import ReviewGrade
from .persistence import PersistenceDispatcher, PersistRequest
from .scheduler import SRSScheduler
from .state import ScheduleState, VocabularyItem, ensure_utc, utc_now
from .summary import SessionSummary, summarize

# =============================================================================
# Session Types
# =============================================================================


class SessionPhase(str, Enum):
    """Where the session is in the present/reveal/grade cycle."""

    PRESENTING = "presenting"
    REVEALED = "revealed"
    COMPLETED = "completed"


class RequeuePolicy(str, Enum):
    """What happens to an item graded Again within the same session."""

    NEVER = "never"  # Session ends after exactly one grade per queued item
    AGAIN_TO_END = "again_to_end"  # Append the item to the end of the queue


@dataclass(frozen=True)
class QueueEntry:
    """An item queued for review together with its current state."""

    item: VocabularyItem
    state: ScheduleState

    @property
    def item_id(self) -> str:
        return self.item.id


@dataclass(frozen=True)
class ReviewOutcome:
    """One applied grade."""

    item_id: str
    grade: ReviewGrade
    state: ScheduleState
    reviewed_at: datetime

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "grade": self.grade.value,
            "state": self.state.to_dict(),
            "reviewed_at": self.reviewed_at.isoformat(),
        }


@dataclass
class ReviewSession:
    """
    In-memory state of a single review session.

    Never persisted as a whole; only the per-item schedule updates are.
    """

    session_id: str
    user_id: str
    queue: list[QueueEntry] = field(default_factory=list)
    cursor: int = 0
    phase: SessionPhase = SessionPhase.PRESENTING
    graded_positions: set[int] = field(default_factory=set)
    outcomes: list[ReviewOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    ended_at: datetime | None = None
    requeue_counts: dict[str, int] = field(default_factory=dict)

    @property
    def current(self) -> QueueEntry | None:
        """Entry being presented, or None once completed."""
        if self.phase is SessionPhase.COMPLETED or self.cursor >= len(self.queue):
            return None
        return self.queue[self.cursor]

    @property
    def remaining(self) -> int:
        """Queue positions not yet graded."""
        return max(0, len(self.queue) - self.cursor)

    @property
    def is_complete(self) -> bool:
        return self.phase is SessionPhase.COMPLETED

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "phase": self.phase.value,
            "cursor": self.cursor,
            "queue": [entry.item_id for entry in self.queue],
            "graded_positions": sorted(self.graded_positions),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }


# =============================================================================
# Controller
# =============================================================================


class ReviewSessionController:
    """
    State machine for one reviewer working through a due queue.

    The controller is single-threaded and reviewer-paced. Its only side
    effect per grade is a non-blocking dispatch to the persistence layer.
    """

    def __init__(
        self,
        scheduler: SRSScheduler | None = None,
        dispatcher: PersistenceDispatcher | None = None,
        requeue_policy: RequeuePolicy = RequeuePolicy.NEVER,
        max_requeues_per_item: int = 1,
        on_complete: Callable[[dict], None] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the controller.

        Args:
            scheduler: SRSScheduler (creates default if None)
            dispatcher: Receives a PersistRequest per grade (None disables persistence)
            requeue_policy: Whether Again-graded items come back this session
            max_requeues_per_item: Upper bound on re-presentations of one item
            on_complete: Receives the summary dict when the session completes
            clock: Source of the review timestamp when none is passed
        """
        if max_requeues_per_item < 0:
            raise ValueError("max_requeues_per_item must be >= 0")

        self.scheduler = scheduler or SRSScheduler()
        self.dispatcher = dispatcher
        self.requeue_policy = RequeuePolicy(requeue_policy)
        self.max_requeues_per_item = max_requeues_per_item
        self.on_complete = on_complete
        self.clock = clock
        self._session: ReviewSession | None = None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def session(self) -> ReviewSession:
        if self._session is None:
            raise SessionStateError("No session has been started")
        return self._session

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    @property
    def current(self) -> QueueEntry | None:
        return self.session.current

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def start(
        self,
        user_id: str,
        entries: Iterable[QueueEntry | tuple[VocabularyItem, ScheduleState]],
        now: datetime | None = None,
        session_id: str | None = None,
    ) -> ReviewSession:
        """
        Begin a session over ``entries`` in the given order.

        An empty queue completes immediately with zero outcomes.
        """
        queue = [
            entry if isinstance(entry, QueueEntry) else QueueEntry(item=entry[0], state=entry[1])
            for entry in entries
        ]
        started_at = ensure_utc(now) if now is not None else self.clock()

        self._session = ReviewSession(
            session_id=session_id or uuid.uuid4().hex,
            user_id=user_id,
            queue=queue,
            started_at=started_at,
        )

        logger.info(
            "Review session {} started for {}: {} item(s)",
            self._session.session_id,
            user_id,
            len(queue),
        )

        if not queue:
            self._complete(started_at)

        return self._session

    def reveal(self) -> QueueEntry:
        """Show the answer for the current item."""
        session = self.session
        self._require_phase(SessionPhase.PRESENTING, "reveal")
        session.phase = SessionPhase.REVEALED
        return session.queue[session.cursor]

    def submit_grade(
        self,
        grade: ReviewGrade,
        item_id: str | None = None,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """
        Apply a grade to the revealed item and advance.

        Args:
            grade: Reviewer's grade
            item_id: Item the grade is meant for (checked against the current item)
            now: Review timestamp (defaults to the controller clock)

        Returns:
            The recorded ReviewOutcome

        Raises:
            SessionStateError: If no item is revealed
            ValidationError: For a non-grade value, an item mismatch or a repeat grade
        """
        session = self.session
        self._require_phase(SessionPhase.REVEALED, "grade")

        if not isinstance(grade, ReviewGrade):
            raise ValidationError(f"Invalid grade {grade!r}; expected a ReviewGrade")

        position = session.cursor
        entry = session.queue[position]

        if position in session.graded_positions:
            raise ValidationError(f"Item {entry.item_id} has already been graded")
        if item_id is not None and item_id != entry.item_id:
            if any(outcome.item_id == item_id for outcome in session.outcomes):
                raise ValidationError(f"Item {item_id} has already been graded")
            raise ValidationError(
                f"Grade submitted for {item_id} but the current item is {entry.item_id}"
            )

        reviewed_at = ensure_utc(now) if now is not None else self.clock()
        new_state = self.scheduler.compute_next(entry.state, grade, reviewed_at)

        # Optimistic local update
        session.queue[position] = QueueEntry(item=entry.item, state=new_state)
        session.graded_positions.add(position)
        session.cursor += 1

        self._dispatch(
            PersistRequest(
                user_id=session.user_id,
                item_id=entry.item_id,
                state=new_state,
                grade=grade,
                session_id=session.session_id,
            )
        )

        outcome = ReviewOutcome(
            item_id=entry.item_id,
            grade=grade,
            state=new_state,
            reviewed_at=reviewed_at,
        )
        session.outcomes.append(outcome)

        if grade is ReviewGrade.AGAIN:
            self._maybe_requeue(entry.item, new_state)

        if session.cursor >= len(session.queue):
            self._complete(reviewed_at)
        else:
            session.phase = SessionPhase.PRESENTING

        return outcome

    def exit(self, now: datetime | None = None) -> SessionSummary:
        """
        End the session early.

        Grades already submitted stay applied; ungraded items are left alone.
        """
        session = self.session
        if session.phase is not SessionPhase.COMPLETED:
            logger.info(
                "Review session {} exited with {} item(s) ungraded",
                session.session_id,
                session.remaining,
            )
            self._complete(ensure_utc(now) if now is not None else self.clock())
        return self.summary()

    def summary(self) -> SessionSummary:
        """Aggregate the outcomes recorded so far."""
        return summarize(self.session.outcomes)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _require_phase(self, expected: SessionPhase, action: str) -> None:
        phase = self.session.phase
        if phase is not expected:
            raise SessionStateError(f"Cannot {action} while session is {phase.value}")

    def _dispatch(self, request: PersistRequest) -> None:
        if self.dispatcher is None:
            return
        try:
            self.dispatcher.dispatch(request)
        except Exception as exc:
            logger.warning("Persistence dispatch failed for {}: {}", request.item_id, exc)

    def _maybe_requeue(self, item: VocabularyItem, state: ScheduleState) -> None:
        if self.requeue_policy is not RequeuePolicy.AGAIN_TO_END:
            return
        session = self.session
        count = session.requeue_counts.get(item.id, 0)
        if count >= self.max_requeues_per_item:
            return
        session.requeue_counts[item.id] = count + 1
        session.queue.append(QueueEntry(item=item, state=state))
        logger.debug("Requeued {} ({}/{})", item.id, count + 1, self.max_requeues_per_item)

    def _complete(self, ended_at: datetime) -> None:
        session = self.session
        session.phase = SessionPhase.COMPLETED
        session.ended_at = ended_at

        summary = summarize(session.outcomes)
        logger.info(
            "Review session {} completed: {} reviewed, avg weight {:.2f}",
            session.session_id,
            summary.count,
            summary.average_grade_weight,
        )

        if self.on_complete:
            self.on_complete(summary.to_dict())
