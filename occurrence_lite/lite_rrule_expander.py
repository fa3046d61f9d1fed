"""Occurrence generation for occurrence_lite.

Builds a dateutil rruleset from a RecurrenceSpecification anchored at the
owning event's start, attaches EXDATE/RDATE values, and returns the
occurrence starts inside an inclusive window.
"""

import logging
import time
from collections.abc import Iterable
from datetime import datetime, tzinfo
from typing import Optional

from dateutil.rrule import rrule, rruleset

from .lite_datetime_utils import ExceptionDateParser, ensure_timezone_aware
from .lite_exceptions import LiteAnchorError, LiteExceptionDateError, LiteRRuleGrammarError
from .lite_models import LiteRecurrenceSet, RecurrenceSpecification

logger = logging.getLogger(__name__)


def _or_none(values: tuple) -> Optional[tuple]:
    return values if values else None


class LiteOccurrenceGenerator:
    """Assemble bounded, exception-adjusted occurrence sequences."""

    def __init__(self, default_tz: Optional[tzinfo] = None):
        """Initialize generator.

        Args:
            default_tz: Zone for floating and date-only EXDATE/RDATE values
        """
        self.default_tz = default_tz
        self._exception_parser = ExceptionDateParser(default_tz)

    def parse_exception_dates(self, raw_values: Iterable[str], prop_name: str = "EXDATE") -> frozenset[datetime]:
        """Parse raw EXDATE/RDATE strings.

        Raises:
            LiteExceptionDateError: If any value is malformed
        """
        parsed: set[datetime] = set()
        for raw in raw_values:
            try:
                parsed.update(self._exception_parser.parse_many([raw]))
            except ValueError as e:
                raise LiteExceptionDateError(f"Malformed {prop_name} value {raw!r}: {e}", value=raw) from e
        return frozenset(parsed)

    def build_recurrence_set(
        self,
        specification: RecurrenceSpecification,
        dtstart: datetime,
        exdates: Iterable[str] = (),
        rdates: Iterable[str] = (),
    ) -> LiteRecurrenceSet:
        """Anchor ``specification`` at ``dtstart`` and attach parsed exception dates.

        Raises:
            LiteExceptionDateError: If an EXDATE/RDATE value is malformed
        """
        return LiteRecurrenceSet(
            specification=specification.anchored_at(ensure_timezone_aware(dtstart, self.default_tz)),
            excluded_timestamps=self.parse_exception_dates(exdates, "EXDATE"),
            included_timestamps=self.parse_exception_dates(rdates, "RDATE"),
        )

    def build_rule(self, specification: RecurrenceSpecification) -> rrule:
        """Create the dateutil rule for an anchored specification.

        Raises:
            LiteAnchorError: If the specification has no dtstart
            LiteRRuleGrammarError: If dateutil rejects the combination of parts
        """
        if specification.dtstart is None:
            raise LiteAnchorError("Recurrence specification is not anchored to a start time")

        dtstart = ensure_timezone_aware(specification.dtstart, self.default_tz)
        try:
            return rrule(
                specification.frequency.to_dateutil(),
                dtstart=dtstart,
                interval=specification.interval,
                wkst=specification.week_start.to_dateutil(),
                count=specification.count,
                until=specification.until,
                bysetpos=_or_none(specification.by_set_position),
                bymonth=_or_none(specification.by_month),
                bymonthday=_or_none(specification.by_month_day),
                byyearday=_or_none(specification.by_year_day),
                byeaster=_or_none(specification.by_easter),
                byweekno=_or_none(specification.by_week_number),
                byweekday=_or_none(tuple(day.to_dateutil() for day in specification.by_weekday)),
                byhour=_or_none(specification.by_hour),
                byminute=_or_none(specification.by_minute),
                bysecond=_or_none(specification.by_second),
            )
        except ValueError as e:
            raise LiteRRuleGrammarError(
                f"Error evaluating RRULE {specification.to_rrule_string()}: {e}"
            ) from e

    def build_rule_set(self, recurrence_set: LiteRecurrenceSet) -> rruleset:
        """Create a dateutil rruleset with EXDATE and RDATE entries applied."""
        rule_set = rruleset()
        rule_set.rrule(self.build_rule(recurrence_set.specification))
        for excluded in sorted(recurrence_set.excluded_timestamps):
            rule_set.exdate(excluded)
        for included in sorted(recurrence_set.included_timestamps):
            rule_set.rdate(included)
        return rule_set

    def generate(
        self,
        recurrence_set: LiteRecurrenceSet,
        window_start: datetime,
        window_end: datetime,
    ) -> list[datetime]:
        """Return every occurrence start within ``[window_start, window_end]``.

        Both bounds are inclusive. The result is materialized eagerly and is
        sorted ascending.
        """
        start_window = ensure_timezone_aware(window_start)
        end_window = ensure_timezone_aware(window_end)
        if start_window > end_window:
            logger.debug("Empty window %s > %s, nothing to generate", start_window, end_window)
            return []

        started = time.perf_counter()
        rule_set = self.build_rule_set(recurrence_set)
        occurrences = list(rule_set.between(start_window, end_window, inc=True))

        logger.debug(
            "Generated %d occurrences for %s (exdates=%d, rdates=%d) in %.1fms",
            len(occurrences),
            recurrence_set.specification.to_rrule_string(),
            len(recurrence_set.excluded_timestamps),
            len(recurrence_set.included_timestamps),
            (time.perf_counter() - started) * 1000,
        )
        return occurrences


def generate_occurrences(
    specification: RecurrenceSpecification,
    exclusions: Iterable[datetime],
    inclusions: Iterable[datetime],
    window_start: datetime,
    window_end: datetime,
    dtstart: Optional[datetime] = None,
) -> list[datetime]:
    """Generate occurrence starts for an already-parsed specification.

    ``dtstart`` overrides the specification's own anchor when given.

    Raises:
        LiteAnchorError: If no anchor is available
        LiteRRuleGrammarError: If dateutil rejects the rule
    """
    if dtstart is not None:
        specification = specification.anchored_at(ensure_timezone_aware(dtstart))
    recurrence_set = LiteRecurrenceSet(
        specification=specification,
        excluded_timestamps=frozenset(ensure_timezone_aware(dt) for dt in exclusions),
        included_timestamps=frozenset(ensure_timezone_aware(dt) for dt in inclusions),
    )
    return LiteOccurrenceGenerator().generate(recurrence_set, window_start, window_end)
