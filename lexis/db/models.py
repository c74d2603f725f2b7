"""
Table models for vocabulary content and per-user review state.

Timestamps are written as UTC. SQLite drops the offset on read, so callers
re-attach UTC when converting rows back to domain objects.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ========================================
# CONTENT
# ========================================


class VocabularyRow(Base):
    """A vocabulary item. Read-only to the review core."""

    __tablename__ = "vocabulary"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    headword: Mapped[str] = mapped_column(Text, nullable=False)
    meaning: Mapped[str] = mapped_column(Text, nullable=False)
    example: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str] = mapped_column(Text, default="general")
    pronunciation: Mapped[str | None] = mapped_column(Text)
    difficulty: Mapped[str] = mapped_column(Text, default="Beginner")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())


# ========================================
# REVIEW STATE
# ========================================


class ScheduleStateRow(Base):
    """SRS state for one (user, item) pair. Absent row = never reviewed."""

    __tablename__ = "schedule_states"
    __table_args__ = (Index("ix_schedule_states_user_next_review", "user_id", "next_review"),)

    user_id: Mapped[str] = mapped_column(Text, primary_key=True)
    item_id: Mapped[str] = mapped_column(
        ForeignKey("vocabulary.id", ondelete="CASCADE"), primary_key=True
    )
    ease: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_review: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class ReviewLogRow(Base):
    """One applied grade. ``grade`` holds the 1-4 session code."""

    __tablename__ = "review_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    session_id: Mapped[str | None] = mapped_column(Text)
    grade: Mapped[int] = mapped_column(Integer, nullable=False)
    ease: Mapped[float] = mapped_column(Float, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    reviewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SessionHistoryRow(Base):
    """Summary of a finished review session."""

    __tablename__ = "session_history"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    items_reviewed: Mapped[int] = mapped_column(Integer, default=0)
    average_grade_weight: Mapped[float] = mapped_column(Float, default=0.0)
    perfect_count: Mapped[int] = mapped_column(Integer, default=0)
    accuracy: Mapped[float] = mapped_column(Float, default=0.0)
