"""Data models for recurrence expansion - occurrence_lite."""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import NamedTuple, Optional, Union

from dateutil import rrule as du_rrule
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_serializer, field_validator

# Fixed basic ICS UTC timestamp layout used for recurrence markers and UNTIL
ICAL_UTC_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"


class LiteFrequency(str, Enum):
    """RRULE FREQ values."""

    SECONDLY = "SECONDLY"
    MINUTELY = "MINUTELY"
    HOURLY = "HOURLY"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    def to_dateutil(self) -> int:
        """Return the matching dateutil.rrule frequency constant."""
        return _DATEUTIL_FREQUENCIES[self]


_DATEUTIL_FREQUENCIES = {
    LiteFrequency.SECONDLY: du_rrule.SECONDLY,
    LiteFrequency.MINUTELY: du_rrule.MINUTELY,
    LiteFrequency.HOURLY: du_rrule.HOURLY,
    LiteFrequency.DAILY: du_rrule.DAILY,
    LiteFrequency.WEEKLY: du_rrule.WEEKLY,
    LiteFrequency.MONTHLY: du_rrule.MONTHLY,
    LiteFrequency.YEARLY: du_rrule.YEARLY,
}


class LiteWeekday(str, Enum):
    """Two-letter RFC 5545 weekday tokens."""

    SU = "SU"
    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"

    def to_dateutil(self) -> du_rrule.weekday:
        """Return the matching dateutil.rrule weekday instance."""
        return _DATEUTIL_WEEKDAYS[self]


_DATEUTIL_WEEKDAYS = {
    LiteWeekday.SU: du_rrule.SU,
    LiteWeekday.MO: du_rrule.MO,
    LiteWeekday.TU: du_rrule.TU,
    LiteWeekday.WE: du_rrule.WE,
    LiteWeekday.TH: du_rrule.TH,
    LiteWeekday.FR: du_rrule.FR,
    LiteWeekday.SA: du_rrule.SA,
}


# (low, high, signed) per BY* list; signed lists also accept -high..-low
_BY_RANGES = {
    "by_second": (0, 59, False),
    "by_minute": (0, 59, False),
    "by_hour": (0, 23, False),
    "by_month": (1, 12, False),
    "by_month_day": (1, 31, True),
    "by_year_day": (1, 366, True),
    "by_week_number": (1, 53, True),
    "by_set_position": (1, 366, True),
}


class OccurrenceKey(NamedTuple):
    """Identity of one entry in the occurrence table."""

    uid: str
    recurrence_marker: str


class RecurrenceSpecification(BaseModel):
    """Structured form of one RRULE string.

    Built once per recurring event by the grammar parser. ``dtstart`` is never
    read from the rule string; it is attached by the caller when the rule is
    anchored to an event.
    """

    frequency: LiteFrequency = Field(default=LiteFrequency.YEARLY, description="FREQ")
    interval: int = Field(default=1, ge=1, description="INTERVAL step multiplier")
    count: Optional[int] = Field(default=None, ge=1, description="COUNT limit")
    until: Optional[datetime] = Field(default=None, description="Inclusive UNTIL bound, UTC")

    by_second: tuple[int, ...] = ()
    by_minute: tuple[int, ...] = ()
    by_hour: tuple[int, ...] = ()
    by_month_day: tuple[int, ...] = ()
    by_year_day: tuple[int, ...] = ()
    by_week_number: tuple[int, ...] = ()
    by_month: tuple[int, ...] = ()
    by_set_position: tuple[int, ...] = ()
    by_easter: tuple[int, ...] = ()
    by_weekday: tuple[LiteWeekday, ...] = ()

    week_start: LiteWeekday = Field(default=LiteWeekday.MO, description="WKST")
    dtstart: Optional[datetime] = Field(default=None, description="Anchor supplied by the caller")

    model_config = ConfigDict(frozen=True)

    @field_validator(*_BY_RANGES)
    @classmethod
    def check_by_ranges(cls, values: tuple[int, ...], info: ValidationInfo) -> tuple[int, ...]:
        """Reject BY* values that no date can ever match."""
        low, high, signed = _BY_RANGES[info.field_name]
        for value in values:
            magnitude = abs(value) if signed else value
            if not low <= magnitude <= high:
                allowed = f"±{low}..{high}" if signed else f"{low}..{high}"
                raise ValueError(f"{info.field_name} value {value} outside {allowed}")
        return values

    @property
    def is_bounded(self) -> bool:
        """True when COUNT or UNTIL terminates the series."""
        return self.count is not None or self.until is not None

    def anchored_at(self, dtstart: datetime) -> "RecurrenceSpecification":
        """Return a copy of this specification anchored to ``dtstart``."""
        return self.model_copy(update={"dtstart": dtstart})

    def to_rrule_string(self) -> str:
        """Render the canonical ``KEY=VALUE;...`` form of this specification."""
        parts = [f"FREQ={self.frequency.value}"]
        if self.until is not None:
            parts.append(f"UNTIL={self.until.strftime(ICAL_UTC_TIMESTAMP_FORMAT)}")
        if self.count is not None:
            parts.append(f"COUNT={self.count}")
        if self.interval != 1:
            parts.append(f"INTERVAL={self.interval}")

        int_lists = (
            ("BYSETPOS", self.by_set_position),
            ("BYEASTER", self.by_easter),
            ("BYMONTH", self.by_month),
            ("BYMONTHDAY", self.by_month_day),
            ("BYYEARDAY", self.by_year_day),
            ("BYWEEKNO", self.by_week_number),
            ("BYHOUR", self.by_hour),
            ("BYMINUTE", self.by_minute),
            ("BYSECOND", self.by_second),
        )
        if self.by_weekday:
            parts.append("BYDAY=" + ",".join(day.value for day in self.by_weekday))
        for key, values in int_lists:
            if values:
                parts.append(f"{key}=" + ",".join(str(v) for v in values))
        if self.week_start != LiteWeekday.MO:
            parts.append(f"WKST={self.week_start.value}")
        return ";".join(parts)


class LiteRecurrenceSet(BaseModel):
    """A specification anchored to its event plus the event's EXDATE/RDATE values."""

    specification: RecurrenceSpecification
    excluded_timestamps: frozenset[datetime] = frozenset()
    included_timestamps: frozenset[datetime] = frozenset()

    model_config = ConfigDict(frozen=True)


class LiteRawEvent(BaseModel):
    """One VEVENT as handed over by the document reader.

    Timed values are datetimes (aware, or floating when the source had no
    zone); all-day values are plain dates. EXDATE/RDATE values stay as raw
    strings so that a malformed entry surfaces during generation.
    """

    uid: str = Field(..., description="UID property")
    summary: str = ""
    description: str = ""
    location: str = ""
    status: str = ""
    is_all_day: bool = False

    start: Optional[Union[datetime, date]] = None
    end: Optional[Union[datetime, date]] = None
    last_modified: Optional[datetime] = None

    rrule: Optional[str] = Field(default=None, description="Raw RRULE value")
    exdates: list[str] = Field(default_factory=list, description="Raw EXDATE values")
    rdates: list[str] = Field(default_factory=list, description="Raw RDATE values")
    recurrence_id: Optional[datetime] = Field(
        default=None, description="RECURRENCE-ID of an override instance"
    )

    @property
    def is_recurring(self) -> bool:
        """Check if the event carries a recurrence rule."""
        return bool(self.rrule and self.rrule.strip())


class LiteICSReadResult(BaseModel):
    """Raw events read from one ICS document."""

    events: list[LiteRawEvent] = Field(default_factory=list)
    calendar_name: Optional[str] = None
    timezone: Optional[str] = Field(default=None, description="X-WR-TIMEZONE, if declared")
    total_components: int = 0
    warnings: list[str] = Field(default_factory=list)

    @property
    def recurring_events(self) -> list[LiteRawEvent]:
        return [e for e in self.events if e.is_recurring]

    @property
    def single_events(self) -> list[LiteRawEvent]:
        return [e for e in self.events if not e.is_recurring]


class LiteEventTemplate(BaseModel):
    """Fields shared by every occurrence of one event definition."""

    uid: str
    summary: str = ""
    description: str = ""
    is_all_day: bool = False
    start: datetime = Field(..., description="Anchor start of the defining event")
    duration: timedelta = Field(default=timedelta(0), description="Nominal duration")
    last_modified: Optional[datetime] = None
    location: str = ""
    status: str = ""
    is_recurring: bool = False

    model_config = ConfigDict(frozen=True)


class LiteEventInstance(BaseModel):
    """Concrete occurrence stored in the occurrence table."""

    uid: str
    summary: str = ""
    description: str = ""
    is_all_day: bool = False
    start: datetime
    end: datetime
    duration: timedelta = timedelta(0)
    last_modified: Optional[datetime] = None
    location: str = ""
    status: str = ""
    is_recurring: bool = False
    recurrence_marker: str = Field(default="", description="UTC marker, empty for single events")

    model_config = ConfigDict(frozen=True)

    @property
    def key(self) -> OccurrenceKey:
        """Identity key of this instance."""
        return OccurrenceKey(self.uid, self.recurrence_marker)

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()

    @field_serializer("last_modified", when_used="unless-none")
    def serialize_last_modified(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class LiteDiscardedEvent(BaseModel):
    """An event skipped by the table builder, with the reason."""

    uid: str
    position: int = Field(..., description="Index of the event in its input list")
    phase: str = Field(..., description="'recurring' or 'single'")
    reason: str
    error_type: str
