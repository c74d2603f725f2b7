# SQLAlchemy models and engine helpers
from .database import create_db_engine, create_session_factory, init_db, session_scope
from .models import Base, ReviewLogRow, ScheduleStateRow, SessionHistoryRow, VocabularyRow

__all__ = [
    "Base",
    "ReviewLogRow",
    "ScheduleStateRow",
    "SessionHistoryRow",
    "VocabularyRow",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_scope",
]
