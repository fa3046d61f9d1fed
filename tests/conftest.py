"""Shared test configuration for occurrence_lite."""

import logging
from pathlib import Path
from typing import Any

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def ics_fixture_dir() -> Path:
    """Directory holding the sample ICS documents."""
    return FIXTURES_DIR / "ics"


@pytest.fixture(autouse=True)
def clean_logging_environment(monkeypatch: Any) -> None:
    """Keep env-driven logging overrides from leaking between tests."""
    monkeypatch.delenv("OCCURRENCE_LITE_DEBUG", raising=False)
    monkeypatch.delenv("OCCURRENCE_LITE_LOG_LEVEL", raising=False)
    logging.getLogger("occurrence_lite").setLevel(logging.NOTSET)


def pytest_configure(config: Any) -> None:
    """Configure pytest with project markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests that read ICS documents end to end")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")
