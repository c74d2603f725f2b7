"""
Unit tests for environment-driven settings.
"""

import pytest

from lexis.config import Settings


@pytest.mark.parametrize("level", ["trace", "DEBUG", "critical"])
def test_log_level_accepts_loguru_levels(monkeypatch, level):
    monkeypatch.setenv("LEXIS_LOG_LEVEL", level)
    assert Settings(_env_file=None).log_level == level.upper()


def test_unknown_log_level_rejected(monkeypatch):
    from pydantic import ValidationError

    monkeypatch.setenv("LEXIS_LOG_LEVEL", "chatty")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
