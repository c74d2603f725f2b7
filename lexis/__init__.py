"""
Lexis: spaced-repetition vocabulary review.

Subpackages:
- review: SRS scheduler, due-item selection, review session controller
- db: SQLAlchemy models and engine helpers for the schedule store
"""

__version__ = "1.0.0"
