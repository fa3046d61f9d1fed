"""ICS document reader for occurrence_lite.

Reads VEVENT components with icalendar and hands them over as LiteRawEvent
records. Times stay as the document gave them (aware, floating, or date);
zone defaults are applied later by the table builder.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Optional, Union

from icalendar import Calendar, Event as ICalEvent, vRecur

from .lite_exceptions import LiteDocumentError
from .lite_models import LiteICSReadResult, LiteRawEvent

logger = logging.getLogger(__name__)

# Some feeds emit TZID=/Zone/Name, which icalendar cannot resolve
_MALFORMED_TZID_PREFIX = "TZID=/"

_RRULE_ESCAPE = re.compile(r"\\([;,\\])")


def normalize_ics_content(ics_content: Union[str, bytes]) -> str:
    """Decode ``ics_content`` and repair known malformed-timezone patterns."""
    if isinstance(ics_content, bytes):
        ics_content = ics_content.decode("utf-8", errors="replace")
    return ics_content.replace(_MALFORMED_TZID_PREFIX, "TZID=")


class LiteICSReader:
    """Parse ICS documents into raw event records."""

    def read(self, ics_content: Union[str, bytes]) -> LiteICSReadResult:
        """Read every VEVENT in ``ics_content``.

        A component that cannot be read is skipped with a warning.

        Raises:
            LiteDocumentError: If the document is empty or not iCalendar data
        """
        content = normalize_ics_content(ics_content)
        if not content.strip():
            raise LiteDocumentError("Empty ICS content")

        try:
            calendar = Calendar.from_ical(content)
        except ValueError as e:
            raise LiteDocumentError(f"Failed to parse ICS content: {e}") from e

        result = LiteICSReadResult(
            calendar_name=self._calendar_property(calendar, "X-WR-CALNAME"),
            timezone=self._calendar_property(calendar, "X-WR-TIMEZONE"),
        )

        for component in calendar.walk():
            result.total_components += 1
            if component.name != "VEVENT":
                continue
            try:
                result.events.append(self.read_event(component))
            except (ValueError, TypeError, AttributeError) as e:
                uid = component.get("UID", "<no-uid>")
                warning = f"Failed to read event {uid}: {e}"
                result.warnings.append(warning)
                logger.warning(warning)

        logger.debug(
            "Read %d events (%d recurring) from %d components",
            len(result.events),
            len(result.recurring_events),
            result.total_components,
        )
        return result

    def read_event(self, component: ICalEvent) -> LiteRawEvent:
        """Convert one VEVENT component into a LiteRawEvent."""
        start = self._date_value(component, "DTSTART")
        end = self._date_value(component, "DTEND")
        if end is None and start is not None and "DURATION" in component:
            end = start + component["DURATION"].dt

        is_all_day = start is not None and not isinstance(start, datetime)

        rrule_string = self._rrule_text(component)

        recurrence_id = self._date_value(component, "RECURRENCE-ID")
        if recurrence_id is not None and not isinstance(recurrence_id, datetime):
            recurrence_id = datetime.combine(recurrence_id, datetime.min.time())

        return LiteRawEvent(
            uid=str(component.get("UID", "")),
            summary=str(component.get("SUMMARY", "")),
            description=str(component.get("DESCRIPTION", "")),
            location=str(component.get("LOCATION", "")),
            status=str(component.get("STATUS", "")),
            is_all_day=is_all_day,
            start=start,
            end=end,
            last_modified=self._last_modified(component),
            rrule=rrule_string,
            exdates=self._collect_date_list(component, "EXDATE"),
            rdates=self._collect_date_list(component, "RDATE"),
            recurrence_id=recurrence_id,
        )

    def _date_value(self, component: ICalEvent, name: str) -> Optional[Union[datetime, date]]:
        prop = component.get(name)
        if prop is None:
            return None
        value = getattr(prop, "dt", None)
        if not isinstance(value, date):
            logger.warning("Ignoring malformed %s %r on %s", name, prop, component.get("UID"))
            return None
        return value

    def _last_modified(self, component: ICalEvent) -> Optional[datetime]:
        prop = component.get("LAST-MODIFIED")
        value = getattr(prop, "dt", None)
        if prop is not None and not isinstance(value, datetime):
            logger.warning("Ignoring malformed LAST-MODIFIED %r on %s", prop, component.get("UID"))
            return None
        return value

    def _collect_date_list(self, component: ICalEvent, name: str) -> list[str]:
        """Collect EXDATE/RDATE values as raw strings, keeping TZID parameters.

        A property may appear several times and each occurrence may hold a
        comma-separated list; every entry is returned as ``TZID=<zone>:<value>``
        or a bare value.
        """
        props: Any = component.get(name)
        if props is None:
            return []
        if not isinstance(props, list):
            props = [props]

        values: list[str] = []
        for prop in props:
            text = self._to_text(prop)
            tzid = None
            params = getattr(prop, "params", None)
            if params and "TZID" in params:
                tzid = params["TZID"]
            parts = [p.strip() for p in text.split(",") if p.strip()]
            values.extend(f"TZID={tzid}:{p}" if tzid else p for p in parts)
        return values

    def _rrule_text(self, component: ICalEvent) -> Optional[str]:
        """Return the RRULE as plain ``KEY=VALUE;...`` text.

        Only the first RRULE is used. A recurrence icalendar cannot parse is
        kept as text with ``;`` and ``,`` backslash-escaped, so those escapes
        are undone before the rule reaches the grammar parser.
        """
        prop: Any = component.get("RRULE")
        if isinstance(prop, list):
            prop = prop[0] if prop else None
        if prop is None:
            for name, error in component.errors:
                if name == "RRULE":
                    raise ValueError(f"unreadable RRULE: {error}")
            return None
        if isinstance(prop, vRecur):
            return self._to_text(prop)
        return _RRULE_ESCAPE.sub(r"\1", self._to_text(prop))

    def _to_text(self, prop: Any) -> str:
        if hasattr(prop, "to_ical"):
            raw = prop.to_ical()
            return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
        return str(prop)

    def _calendar_property(self, calendar: Calendar, name: str) -> Optional[str]:
        value = calendar.get(name)
        return str(value) if value is not None else None
