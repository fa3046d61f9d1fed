from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

import pytest

from occurrence_lite.lite_models import LiteRawEvent
from occurrence_lite.lite_occurrence_table import LiteOccurrenceTableBuilder


@pytest.fixture
def test_timezone() -> str:
    """Return a deterministic timezone identifier for tests.

    Using a fixed timezone string avoids host-local timezone differences
    which can make datetime-sensitive tests flaky.
    """
    return "America/Los_Angeles"


@pytest.fixture
def january_window() -> tuple[datetime, datetime]:
    """Window covering January 2024 in UTC."""
    return datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 2, 1, tzinfo=UTC)


@pytest.fixture
def raw_event_factory() -> Callable[..., LiteRawEvent]:
    """Factory building timed LiteRawEvent records with sensible defaults."""

    def _make(
        uid: str = "evt-1",
        start: Optional[datetime] = datetime(2024, 1, 1, 9, 0, tzinfo=UTC),
        duration: Optional[timedelta] = timedelta(hours=1),
        rrule: Optional[str] = None,
        **overrides: Any,
    ) -> LiteRawEvent:
        fields: dict[str, Any] = {
            "uid": uid,
            "summary": f"Event {uid}",
            "start": start,
            "end": start + duration if start is not None and duration is not None else None,
            "rrule": rrule,
        }
        fields.update(overrides)
        return LiteRawEvent(**fields)

    return _make


@pytest.fixture
def builder() -> LiteOccurrenceTableBuilder:
    return LiteOccurrenceTableBuilder()
