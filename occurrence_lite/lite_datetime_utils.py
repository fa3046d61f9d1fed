"""DateTime helpers for recurrence processing - occurrence_lite.

Covers the fixed ``YYYYMMDDTHHMMSSZ`` layout used for UNTIL values and
recurrence markers, and the raw EXDATE/RDATE value formats handed over by
the ICS reader.
"""

import logging
from datetime import UTC, date, datetime, time, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .lite_models import ICAL_UTC_TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)


def ensure_timezone_aware(dt: datetime, default_tz: Optional[tzinfo] = None) -> datetime:
    """Ensure datetime is timezone-aware.

    Args:
        dt: Datetime to make timezone-aware
        default_tz: Zone for floating values (UTC when omitted)

    Returns:
        Timezone-aware datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=default_tz or UTC)
    return dt


def to_aware_datetime(value: Union[datetime, date], default_tz: Optional[tzinfo] = None) -> datetime:
    """Convert a date or datetime to an aware datetime.

    Dates become midnight in ``default_tz``.
    """
    if isinstance(value, datetime):
        return ensure_timezone_aware(value, default_tz)
    return datetime.combine(value, time.min).replace(tzinfo=default_tz or UTC)


def format_utc_timestamp(dt: datetime) -> str:
    """Format an instant as ``YYYYMMDDTHHMMSSZ`` in UTC.

    Floating datetimes are taken to be UTC already.
    """
    return ensure_timezone_aware(dt).astimezone(UTC).strftime(ICAL_UTC_TIMESTAMP_FORMAT)


def parse_utc_timestamp(value: str) -> datetime:
    """Parse a strict ``YYYYMMDDTHHMMSSZ`` value into an aware UTC datetime.

    Raises:
        ValueError: If the value does not match the layout exactly
    """
    return datetime.strptime(value, ICAL_UTC_TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Resolve an IANA zone name, returning UTC for empty names.

    Raises:
        ValueError: If the zone is unknown
    """
    if not name or name.upper() in ("UTC", "Z", "GMT"):
        return UTC
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


class ExceptionDateParser:
    """Parse raw EXDATE/RDATE values into aware datetimes.

    Handles:
    - ``TZID=America/New_York:20250623T083000``
    - ``20250623T083000Z``
    - ``20250623T083000`` (floating, resolved in the default zone)
    - ``20250623`` (date-only, midnight in the default zone)
    """

    _FORMATS = ("%Y%m%dT%H%M%S", "%Y%m%d")

    def __init__(self, default_tz: Optional[tzinfo] = None):
        self.default_tz = default_tz or UTC

    def parse(self, raw_value: str) -> datetime:
        """Parse one value.

        Raises:
            ValueError: If the value matches none of the supported layouts
        """
        value = raw_value.strip()
        tz = self.default_tz

        if value.upper().startswith("TZID="):
            tzid, sep, value = value[5:].rpartition(":")
            if not sep or not tzid:
                raise ValueError(f"Malformed TZID value: {raw_value}")
            tz = resolve_timezone(tzid.strip().strip('"'))

        if value.endswith("Z"):
            return parse_utc_timestamp(value)

        for fmt in self._FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
            except ValueError:
                continue
            return parsed.replace(tzinfo=tz)

        raise ValueError(f"Unable to parse datetime: {raw_value}")

    def parse_many(self, raw_values: list[str]) -> list[datetime]:
        """Parse a list of values, splitting comma-joined entries."""
        parsed = []
        for raw in raw_values:
            tzid_prefix = ""
            body = raw
            if raw.upper().startswith("TZID="):
                tzid_prefix, _, body = raw.rpartition(":")
                tzid_prefix += ":"
            for part in body.split(","):
                part = part.strip()
                if part:
                    parsed.append(self.parse(tzid_prefix + part))
        logger.debug("Parsed %d exception values from %d raw entries", len(parsed), len(raw_values))
        return parsed
