"""
Lexis review core.

Spaced repetition review of vocabulary items.

Components:
- ReviewGrade: Closed grade set and its boundary encodings
- SRSScheduler: Next-state computation for one grade
- select_due: Ordering of due items
- ReviewSessionController: Present/reveal/grade state machine
- summarize / review_stats: Session and deck statistics
- PersistenceWorker: Background schedule writes
- SqlScheduleStore: SQLAlchemy persistence
- VocabularyDeck: JSON vocabulary loading
"""

from .deck import VocabularyDeck
from .exceptions import PersistenceError, ReviewError, SessionStateError, ValidationError
from .grades import LEGACY_CODES, SESSION_CODES, ReviewGrade, parse_grade
from .persistence import PersistenceStatus, PersistenceWorker, PersistRequest
from .scheduler import SchedulerConfig, SRSScheduler, compute_next
from .selector import DueSelection, select_due, select_due_entries
from .session import (
    QueueEntry,
    RequeuePolicy,
    ReviewOutcome,
    ReviewSession,
    ReviewSessionController,
    SessionPhase,
)
from .state import ScheduleState, VocabularyItem
from .store import ScheduleStore, SqlScheduleStore
from .summary import (
    GRADE_WEIGHTS,
    ReviewStats,
    SessionSummary,
    interval_label,
    review_stats,
    summarize,
)

__all__ = [
    # Grades
    "ReviewGrade",
    "parse_grade",
    "SESSION_CODES",
    "LEGACY_CODES",
    # State
    "ScheduleState",
    "VocabularyItem",
    # Scheduling
    "SchedulerConfig",
    "SRSScheduler",
    "compute_next",
    "DueSelection",
    "select_due",
    "select_due_entries",
    # Sessions
    "ReviewSessionController",
    "ReviewSession",
    "ReviewOutcome",
    "QueueEntry",
    "SessionPhase",
    "RequeuePolicy",
    # Statistics
    "SessionSummary",
    "summarize",
    "GRADE_WEIGHTS",
    "ReviewStats",
    "review_stats",
    "interval_label",
    # Persistence
    "PersistenceWorker",
    "PersistenceStatus",
    "PersistRequest",
    "ScheduleStore",
    "SqlScheduleStore",
    "VocabularyDeck",
    # Errors
    "ReviewError",
    "ValidationError",
    "SessionStateError",
    "PersistenceError",
]
