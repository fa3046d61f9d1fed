"""
Unit tests for occurrence_lite.lite_rrule_expander.LiteOccurrenceGenerator.

Covers:
- build_recurrence_set() / parse_exception_dates()
- build_rule()
- generate() window handling, EXDATE/RDATE application
- generate_occurrences()
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from occurrence_lite.lite_exceptions import LiteAnchorError, LiteExceptionDateError, LiteRRuleGrammarError
from occurrence_lite.lite_models import LiteFrequency, RecurrenceSpecification
from occurrence_lite.lite_rrule_expander import LiteOccurrenceGenerator, generate_occurrences
from occurrence_lite.lite_rrule_grammar import parse_rrule

pytestmark = pytest.mark.unit

ANCHOR = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
WINDOW_START = datetime(2024, 1, 1, tzinfo=UTC)
WINDOW_END = datetime(2024, 2, 1, tzinfo=UTC)


class TestLiteOccurrenceGenerator:
    def setup_method(self):
        self.generator = LiteOccurrenceGenerator()

    def _generate(self, rule, exdates=(), rdates=(), start=WINDOW_START, end=WINDOW_END, anchor=ANCHOR):
        recurrence_set = self.generator.build_recurrence_set(parse_rrule(rule), anchor, exdates, rdates)
        return self.generator.generate(recurrence_set, start, end)

    def test_daily_count(self):
        result = self._generate("FREQ=DAILY;COUNT=5")
        assert result == [ANCHOR + timedelta(days=i) for i in range(5)]

    def test_occurrences_are_strictly_increasing(self):
        result = self._generate("FREQ=WEEKLY;BYDAY=MO,WE,FR", rdates=["20240102T120000Z"])
        assert all(a < b for a, b in zip(result, result[1:]))

    def test_until_is_inclusive(self):
        result = self._generate("FREQ=DAILY;UNTIL=20240103T090000Z")
        assert result[-1] == datetime(2024, 1, 3, 9, 0, tzinfo=UTC)
        assert len(result) == 3

    def test_window_bounds_are_inclusive(self):
        start = datetime(2024, 1, 2, 9, 0, tzinfo=UTC)
        end = datetime(2024, 1, 4, 9, 0, tzinfo=UTC)
        result = self._generate("FREQ=DAILY", start=start, end=end)
        assert result == [start, datetime(2024, 1, 3, 9, 0, tzinfo=UTC), end]

    def test_empty_window_when_start_after_end(self):
        assert self._generate("FREQ=DAILY", start=WINDOW_END, end=WINDOW_START) == []

    def test_unbounded_rule_is_limited_by_window(self):
        result = self._generate("FREQ=DAILY")
        assert len(result) == 31

    def test_exdate_removes_occurrence(self):
        result = self._generate("FREQ=DAILY;COUNT=5", exdates=["20240103T090000Z"])
        assert datetime(2024, 1, 3, 9, 0, tzinfo=UTC) not in result
        assert len(result) == 4

    def test_repeated_exdate_is_idempotent(self):
        once = self._generate("FREQ=DAILY;COUNT=5", exdates=["20240103T090000Z"])
        twice = self._generate("FREQ=DAILY;COUNT=5", exdates=["20240103T090000Z", "20240103T090000Z"])
        assert once == twice

    def test_exdate_with_tzid_matches_same_instant(self):
        result = self._generate(
            "FREQ=DAILY;COUNT=3", exdates=["TZID=America/New_York:20240102T040000"]
        )
        assert datetime(2024, 1, 2, 9, 0, tzinfo=UTC) not in result
        assert len(result) == 2

    def test_exdate_not_matching_any_occurrence_is_ignored(self):
        result = self._generate("FREQ=DAILY;COUNT=3", exdates=["20240102T100000Z"])
        assert len(result) == 3

    def test_comma_joined_exdates(self):
        result = self._generate("FREQ=DAILY;COUNT=5", exdates=["20240102T090000Z,20240104T090000Z"])
        assert len(result) == 3

    def test_rdate_adds_occurrence(self):
        extra = datetime(2024, 1, 20, 15, 0, tzinfo=UTC)
        result = self._generate("FREQ=DAILY;COUNT=2", rdates=["20240120T150000Z"])
        assert result == [ANCHOR, ANCHOR + timedelta(days=1), extra]

    def test_malformed_exdate_raises(self):
        with pytest.raises(LiteExceptionDateError) as exc_info:
            self._generate("FREQ=DAILY;COUNT=3", exdates=["not-a-date"])
        assert exc_info.value.value == "not-a-date"

    def test_malformed_rdate_raises(self):
        with pytest.raises(LiteExceptionDateError, match="RDATE"):
            self._generate("FREQ=DAILY;COUNT=3", rdates=["2024-01-05"])

    def test_unanchored_specification_raises(self):
        with pytest.raises(LiteAnchorError):
            self.generator.build_rule(RecurrenceSpecification(frequency=LiteFrequency.DAILY))

    def test_bysetpos_zero_is_grammar_error(self):
        with pytest.raises(LiteRRuleGrammarError):
            self._generate("FREQ=MONTHLY;BYDAY=MO;BYSETPOS=0")

    def test_monthly_bymonthday_31_skips_short_months(self):
        result = self._generate(
            "FREQ=MONTHLY;BYMONTHDAY=31;COUNT=3",
            anchor=datetime(2024, 1, 31, 9, 0, tzinfo=UTC),
            end=datetime(2024, 12, 31, tzinfo=UTC),
        )
        assert [d.month for d in result] == [1, 3, 5]

    def test_bysetpos_picks_third_weekday(self):
        result = self._generate(
            "FREQ=MONTHLY;COUNT=3;BYDAY=TU,WE,TH;BYSETPOS=3",
            anchor=datetime(1997, 9, 4, 9, 0, tzinfo=UTC),
            start=datetime(1997, 9, 1, tzinfo=UTC),
            end=datetime(1998, 1, 1, tzinfo=UTC),
        )
        assert [d.date().isoformat() for d in result] == ["1997-09-04", "1997-10-07", "1997-11-06"]

    def test_local_wall_time_kept_across_dst(self):
        eastern = ZoneInfo("America/New_York")
        result = self._generate(
            "FREQ=WEEKLY;COUNT=3",
            anchor=datetime(2024, 3, 3, 9, 0, tzinfo=eastern),
            start=datetime(2024, 3, 1, tzinfo=UTC),
            end=datetime(2024, 4, 1, tzinfo=UTC),
        )
        assert [d.hour for d in result] == [9, 9, 9]
        assert result[0].utcoffset() != result[2].utcoffset()

    def test_floating_anchor_uses_default_zone(self):
        generator = LiteOccurrenceGenerator(default_tz=ZoneInfo("Europe/Berlin"))
        recurrence_set = generator.build_recurrence_set(
            parse_rrule("FREQ=DAILY;COUNT=1"), datetime(2024, 1, 1, 9, 0)
        )
        assert recurrence_set.specification.dtstart.tzinfo == ZoneInfo("Europe/Berlin")

    def test_floating_exdate_uses_default_zone(self):
        berlin = ZoneInfo("Europe/Berlin")
        generator = LiteOccurrenceGenerator(default_tz=berlin)
        parsed = generator.parse_exception_dates(["20240102T090000"])
        assert parsed == frozenset({datetime(2024, 1, 2, 9, 0, tzinfo=berlin)})

    def test_recurrence_set_is_anchored(self):
        recurrence_set = self.generator.build_recurrence_set(parse_rrule("FREQ=DAILY"), ANCHOR)
        assert recurrence_set.specification.dtstart == ANCHOR


class TestGenerateOccurrences:
    def test_generate_with_explicit_anchor(self):
        result = generate_occurrences(
            parse_rrule("FREQ=DAILY;COUNT=4"),
            exclusions=[datetime(2024, 1, 2, 9, 0, tzinfo=UTC)],
            inclusions=[],
            window_start=WINDOW_START,
            window_end=WINDOW_END,
            dtstart=ANCHOR,
        )
        assert len(result) == 3

    def test_generate_without_anchor_raises(self):
        with pytest.raises(LiteAnchorError):
            generate_occurrences(parse_rrule("FREQ=DAILY"), [], [], WINDOW_START, WINDOW_END)
