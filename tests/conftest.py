"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lexis.review.state import ScheduleState, VocabularyItem  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed review time."""
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_items():
    """Provide a few vocabulary items for testing."""
    return [
        VocabularyItem(
            id="serendipity",
            headword="serendipity",
            meaning="A happy accident",
            example="Finding that book was pure serendipity.",
            category="nouns",
            difficulty="Advanced",
        ),
        VocabularyItem(
            id="resilient",
            headword="resilient",
            meaning="Able to recover quickly",
            category="adjectives",
            difficulty="Intermediate",
        ),
        VocabularyItem(
            id="ubiquitous",
            headword="ubiquitous",
            meaning="Present everywhere",
            category="adjectives",
            pronunciation="/juːˈbɪkwɪtəs/",
        ),
    ]


@pytest.fixture
def sample_entries(sample_items):
    """Sample items paired with never-reviewed states."""
    return [(item, ScheduleState.initial(item.id)) for item in sample_items]


@pytest.fixture
def sqlite_url(tmp_path):
    """Database URL for a throwaway SQLite file."""
    return f"sqlite:///{tmp_path / 'lexis-test.db'}"


@pytest.fixture
def deck_file(tmp_path):
    """A small JSON vocabulary deck on disk."""
    path = tmp_path / "deck.json"
    path.write_text(
        """{
  "words": [
    {"word": "ephemeral", "meaning": "Lasting a very short time", "category": "adjectives"},
    {"headword": "eloquent", "meaning": "Fluent and persuasive", "difficulty": "Intermediate"},
    {"headword": "candid", "meaning": "Truthful and straightforward", "example": "A candid reply."},
    {"headword": "", "meaning": "missing headword"}
  ]
}
""",
        encoding="utf-8",
    )
    return path
