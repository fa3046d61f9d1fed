"""Event template extraction and occurrence materialization - occurrence_lite."""

import logging
from datetime import datetime, tzinfo
from typing import Optional

from .lite_datetime_utils import format_utc_timestamp, to_aware_datetime
from .lite_exceptions import LiteAnchorError
from .lite_models import LiteEventInstance, LiteEventTemplate, LiteRawEvent

logger = logging.getLogger(__name__)


def build_event_template(raw_event: LiteRawEvent, default_tz: Optional[tzinfo] = None) -> LiteEventTemplate:
    """Extract the shared fields and anchor times of a raw event.

    All-day events take date values (midnight in ``default_tz``) and fall
    back to a zero duration when their end is missing. Timed events must
    carry a datetime start; a missing end also means zero duration.

    Raises:
        LiteAnchorError: If the start cannot be determined
    """
    start_value = raw_event.start
    if start_value is None:
        raise LiteAnchorError(f"Event {raw_event.uid!r} has no start time")

    if not raw_event.is_all_day and not isinstance(start_value, datetime):
        raise LiteAnchorError(
            f"Timed event {raw_event.uid!r} has a date-only start: {start_value.isoformat()}"
        )

    start = to_aware_datetime(start_value, default_tz)
    end = to_aware_datetime(raw_event.end, default_tz) if raw_event.end is not None else start

    if end < start:
        logger.warning(
            "Event %s ends before it starts (%s < %s), using zero duration",
            raw_event.uid,
            end.isoformat(),
            start.isoformat(),
        )
        end = start

    return LiteEventTemplate(
        uid=raw_event.uid,
        summary=raw_event.summary,
        description=raw_event.description,
        is_all_day=raw_event.is_all_day,
        start=start,
        duration=end - start,
        last_modified=raw_event.last_modified,
        location=raw_event.location,
        status=raw_event.status,
        is_recurring=raw_event.is_recurring,
    )


def materialize(template: LiteEventTemplate, occurrence_start: datetime) -> LiteEventInstance:
    """Create the instance of a recurring series starting at ``occurrence_start``.

    The end is ``occurrence_start + template.duration`` and the recurrence
    marker is the occurrence start in UTC basic format.
    """
    return _instance(template, occurrence_start, format_utc_timestamp(occurrence_start))


def materialize_single(template: LiteEventTemplate, recurrence_id: Optional[datetime] = None) -> LiteEventInstance:
    """Create the instance of a non-recurring event at its own start.

    ``recurrence_id`` is the RECURRENCE-ID hint of an override; its UTC form
    becomes the marker so the instance replaces the generated occurrence.
    """
    marker = format_utc_timestamp(recurrence_id) if recurrence_id is not None else ""
    return _instance(template, template.start, marker)


def _instance(template: LiteEventTemplate, start: datetime, marker: str) -> LiteEventInstance:
    return LiteEventInstance(
        uid=template.uid,
        summary=template.summary,
        description=template.description,
        is_all_day=template.is_all_day,
        start=start,
        end=start + template.duration,
        duration=template.duration,
        last_modified=template.last_modified,
        location=template.location,
        status=template.status,
        is_recurring=template.is_recurring,
        recurrence_marker=marker,
    )
