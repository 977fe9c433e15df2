"""
backend/tests/conftest.py

Purpose:
    Shared pytest bootstrap: import path for the backend package plus the
    in-memory fakes used across the odds-cache tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_THIS_FILE = Path(__file__).resolve()
_BACKEND_DIR = _THIS_FILE.parents[1]

if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from oddscron.config import Settings  # noqa: E402


@pytest.fixture
def cfg() -> Settings:
    """Fully configured settings that never read the environment's .env files."""
    return Settings(
        _env_file=None,
        SITE_URL="https://site.example/",
        SETTLE_SHARED_SECRET="settle-secret",
        ODDS_API_KEY="odds-key",
        ODDS_FETCH_SECRET="",
        ODDS_EVENT_DELAY_SECONDS=0,
        THEODDSAPI_RATE_LIMIT_RPM=0,
        SETTLE_JITTER_MAX_SECONDS=0,
        SCHEDULER_ENABLED=False,
    )
