"""Unit tests for occurrence_lite.lite_event_materializer."""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from occurrence_lite.lite_event_materializer import build_event_template, materialize, materialize_single
from occurrence_lite.lite_exceptions import LiteAnchorError
from occurrence_lite.lite_models import LiteRawEvent

pytestmark = pytest.mark.unit


class TestBuildEventTemplate:
    def test_timed_event_duration(self, raw_event_factory):
        template = build_event_template(raw_event_factory(duration=timedelta(minutes=45)))
        assert template.start == datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
        assert template.duration == timedelta(minutes=45)

    def test_shared_fields_are_copied(self, raw_event_factory):
        template = build_event_template(
            raw_event_factory(
                uid="abc",
                description="Weekly sync",
                location="Room 1",
                status="CONFIRMED",
                last_modified=datetime(2023, 12, 1, tzinfo=UTC),
                rrule="FREQ=WEEKLY",
            )
        )
        assert template.uid == "abc"
        assert template.summary == "Event abc"
        assert template.description == "Weekly sync"
        assert template.location == "Room 1"
        assert template.status == "CONFIRMED"
        assert template.last_modified == datetime(2023, 12, 1, tzinfo=UTC)
        assert template.is_recurring is True

    def test_missing_end_means_zero_duration(self, raw_event_factory):
        template = build_event_template(raw_event_factory(duration=None))
        assert template.duration == timedelta(0)

    def test_end_before_start_is_clamped(self, raw_event_factory):
        template = build_event_template(raw_event_factory(duration=timedelta(hours=-2)))
        assert template.duration == timedelta(0)

    def test_missing_start_raises_anchor_error(self, raw_event_factory):
        with pytest.raises(LiteAnchorError, match="no start"):
            build_event_template(raw_event_factory(start=None))

    def test_timed_event_with_date_start_raises_anchor_error(self):
        raw = LiteRawEvent(uid="x", start=date(2024, 1, 1), end=date(2024, 1, 2))
        with pytest.raises(LiteAnchorError, match="date-only"):
            build_event_template(raw)

    def test_all_day_event_midnight_in_default_zone(self):
        zone = ZoneInfo("Europe/Paris")
        raw = LiteRawEvent(uid="holiday", is_all_day=True, start=date(2024, 7, 14), end=date(2024, 7, 15))
        template = build_event_template(raw, zone)
        assert template.start == datetime(2024, 7, 14, tzinfo=zone)
        assert template.duration == timedelta(days=1)

    def test_all_day_event_without_end_has_zero_duration(self):
        raw = LiteRawEvent(uid="holiday", is_all_day=True, start=date(2024, 7, 14))
        assert build_event_template(raw).duration == timedelta(0)

    def test_floating_start_uses_default_zone(self):
        zone = ZoneInfo("Asia/Tokyo")
        raw = LiteRawEvent(uid="x", start=datetime(2024, 1, 1, 9), end=datetime(2024, 1, 1, 10))
        template = build_event_template(raw, zone)
        assert template.start.tzinfo == zone
        assert template.duration == timedelta(hours=1)


class TestMaterialize:
    def test_materialize_preserves_duration(self, raw_event_factory):
        template = build_event_template(raw_event_factory(duration=timedelta(minutes=90)))
        occurrence_start = datetime(2024, 1, 8, 9, 0, tzinfo=UTC)
        instance = materialize(template, occurrence_start)
        assert instance.start == occurrence_start
        assert instance.end == occurrence_start + timedelta(minutes=90)
        assert instance.duration == timedelta(minutes=90)

    def test_materialize_marker_is_utc_start(self, raw_event_factory):
        template = build_event_template(raw_event_factory())
        occurrence_start = datetime(2024, 1, 8, 9, 0, tzinfo=ZoneInfo("America/New_York"))
        instance = materialize(template, occurrence_start)
        assert instance.recurrence_marker == "20240108T140000Z"
        assert instance.key == ("evt-1", "20240108T140000Z")

    def test_materialize_single_without_recurrence_id(self, raw_event_factory):
        template = build_event_template(raw_event_factory())
        instance = materialize_single(template)
        assert instance.recurrence_marker == ""
        assert instance.start == template.start
        assert instance.end == template.start + timedelta(hours=1)

    def test_materialize_single_with_recurrence_id(self, raw_event_factory):
        template = build_event_template(raw_event_factory(start=datetime(2024, 1, 3, 11, 0, tzinfo=UTC)))
        instance = materialize_single(template, datetime(2024, 1, 3, 9, 0, tzinfo=UTC))
        assert instance.recurrence_marker == "20240103T090000Z"
        assert instance.start == datetime(2024, 1, 3, 11, 0, tzinfo=UTC)

    def test_instance_is_immutable(self, raw_event_factory):
        instance = materialize_single(build_event_template(raw_event_factory()))
        with pytest.raises(ValidationError):
            instance.summary = "changed"
