"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Fresh settings per test, unaffected by the developer's environment."""
    from src.settings import get_settings

    for var in (
        "TRADEBILL_LOG_LEVEL",
        "TRADEBILL_LOG_FORMAT",
        "TRADEBILL_RECONCILIATION_TOLERANCE",
        "TRADEBILL_BATCH_CHUNK_SIZE",
    ):
        monkeypatch.delenv(var, raising=False)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo configure_logging() calls made by a test."""
    import logging

    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
    root.setLevel(level)
