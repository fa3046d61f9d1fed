"""Occurrence table assembly for occurrence_lite.

The table is an ordinary mapping keyed by ``(uid, recurrence_marker)``.
Recurring series are expanded and inserted first, single events second, so
an override carrying the marker of a generated occurrence always replaces it.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Optional

from .lite_datetime_utils import ensure_timezone_aware
from .lite_event_materializer import build_event_template, materialize, materialize_single
from .lite_exceptions import LiteOccurrenceError
from .lite_models import (
    LiteDiscardedEvent,
    LiteEventInstance,
    LiteRawEvent,
    LiteRecurrenceSet,
    OccurrenceKey,
)
from .lite_rrule_expander import LiteOccurrenceGenerator
from .lite_rrule_grammar import LiteRRuleGrammar

logger = logging.getLogger(__name__)


def overlaps_window(start: datetime, end: datetime, window_start: datetime, window_end: datetime) -> bool:
    """Check whether ``[start, end)`` overlaps the inclusive window.

    The window is ``[window_start, window_end]``, the same bounds the
    occurrence generator uses, so an event starting exactly at
    ``window_end`` is kept. A zero-length event overlaps when its start
    lies inside the window.
    """
    if end <= start:
        return window_start <= start <= window_end
    return start <= window_end and end > window_start


@dataclass
class LiteOccurrenceTable:
    """Result of one build: the keyed occurrences plus per-event diagnostics."""

    window_start: datetime
    window_end: datetime
    entries: dict[OccurrenceKey, LiteEventInstance] = field(default_factory=dict)
    discarded: list[LiteDiscardedEvent] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __getitem__(self, key: tuple[str, str]) -> LiteEventInstance:
        return self.entries[OccurrenceKey(*key)]

    def __iter__(self) -> Iterator[OccurrenceKey]:
        return iter(self.entries)

    def get(self, key: tuple[str, str], default: Optional[LiteEventInstance] = None) -> Optional[LiteEventInstance]:
        return self.entries.get(OccurrenceKey(*key), default)

    def insert(self, instance: LiteEventInstance) -> Optional[LiteEventInstance]:
        """Store ``instance`` under its key, returning the instance it replaced."""
        previous = self.entries.get(instance.key)
        self.entries[instance.key] = instance
        return previous

    def remove(self, key: tuple[str, str]) -> Optional[LiteEventInstance]:
        return self.entries.pop(OccurrenceKey(*key), None)

    @property
    def discarded_uids(self) -> list[str]:
        return [d.uid for d in self.discarded]

    def instances_for(self, uid: str) -> list[LiteEventInstance]:
        """All instances of one UID ordered by start."""
        return sorted((i for k, i in self.entries.items() if k.uid == uid), key=lambda i: i.start)

    def sorted_instances(self) -> list[LiteEventInstance]:
        """All instances ordered by start, then UID."""
        return sorted(self.entries.values(), key=lambda i: (i.start, i.uid, i.recurrence_marker))

    def to_rows(self) -> list[dict[str, Any]]:
        """JSON-friendly rows ordered by start."""
        return [instance.model_dump(mode="json") for instance in self.sorted_instances()]


class LiteOccurrenceTableBuilder:
    """Build occurrence tables for a window.

    Each builder owns ``rule_sets``: the recurrence set of every series
    expanded by its most recent build, keyed by UID, so callers can evaluate
    later exceptions against the same series. Separate builders share no
    state.
    """

    def __init__(
        self,
        default_tz: Optional[tzinfo] = None,
        grammar: Optional[LiteRRuleGrammar] = None,
        strict_integer_lists: bool = True,
        strict_frequency: bool = False,
    ):
        """Initialize builder.

        Args:
            default_tz: Zone for floating and date-only values (UTC when omitted)
            grammar: Preconfigured grammar parser; overrides the strictness flags
            strict_integer_lists: Reject malformed BY* list elements
            strict_frequency: Reject unknown FREQ values
        """
        self.default_tz = default_tz
        self.grammar = grammar or LiteRRuleGrammar(
            strict_integer_lists=strict_integer_lists,
            strict_frequency=strict_frequency,
        )
        self.generator = LiteOccurrenceGenerator(default_tz)
        self.rule_sets: dict[str, LiteRecurrenceSet] = {}

    def build(
        self,
        recurring_events: Sequence[LiteRawEvent],
        single_events: Sequence[LiteRawEvent],
        window_start: datetime,
        window_end: datetime,
    ) -> LiteOccurrenceTable:
        """Expand ``recurring_events`` then merge ``single_events`` over them.

        Never raises for a malformed event; failures are listed in
        ``table.discarded``.
        """
        table = LiteOccurrenceTable(
            window_start=ensure_timezone_aware(window_start),
            window_end=ensure_timezone_aware(window_end),
        )
        self.rule_sets = {}

        # Phase 1: recurring series
        for position, raw_event in enumerate(recurring_events):
            self._guarded(table, "recurring", position, raw_event, self._add_recurring)

        generated = len(table)

        # Phase 2: single events and overrides
        for position, raw_event in enumerate(single_events):
            self._guarded(table, "single", position, raw_event, self._add_single)

        logger.debug(
            "Built occurrence table: %d recurring definitions -> %d occurrences, "
            "%d single events -> %d total entries, %d discarded",
            len(recurring_events),
            generated,
            len(single_events),
            len(table),
            len(table.discarded),
        )
        return table

    def build_from_events(
        self,
        events: Iterable[LiteRawEvent],
        window_start: datetime,
        window_end: datetime,
    ) -> LiteOccurrenceTable:
        """Split ``events`` by whether they carry an RRULE and build."""
        recurring: list[LiteRawEvent] = []
        single: list[LiteRawEvent] = []
        for event in events:
            (recurring if event.is_recurring else single).append(event)
        return self.build(recurring, single, window_start, window_end)

    def _guarded(self, table: LiteOccurrenceTable, phase: str, position: int, raw_event: LiteRawEvent, handler: Any) -> None:
        try:
            handler(table, raw_event)
        except LiteOccurrenceError as e:
            self._discard(table, phase, position, raw_event, e)
        except Exception as e:
            logger.exception("Unexpected failure processing %s event %d (%s)", phase, position, raw_event.uid)
            self._discard(table, phase, position, raw_event, e)

    def _discard(self, table: LiteOccurrenceTable, phase: str, position: int, raw_event: LiteRawEvent, error: Exception) -> None:
        logger.warning("%s: Error adding %s event %s = %s", position, phase, raw_event.uid, error)
        table.discarded.append(
            LiteDiscardedEvent(
                uid=raw_event.uid,
                position=position,
                phase=phase,
                reason=str(error),
                error_type=type(error).__name__,
            )
        )

    def _add_recurring(self, table: LiteOccurrenceTable, raw_event: LiteRawEvent) -> None:
        template = build_event_template(raw_event, self.default_tz)
        specification, warnings = self.grammar.parse_with_warnings(raw_event.rrule or "")
        table.warnings.extend(f"{raw_event.uid}: {warning}" for warning in warnings)

        recurrence_set = self.generator.build_recurrence_set(
            specification,
            dtstart=template.start,
            exdates=raw_event.exdates,
            rdates=raw_event.rdates,
        )
        occurrences = self.generator.generate(recurrence_set, table.window_start, table.window_end)
        self.rule_sets[template.uid] = recurrence_set

        for occurrence_start in occurrences:
            table.insert(materialize(template, occurrence_start))

    def _add_single(self, table: LiteOccurrenceTable, raw_event: LiteRawEvent) -> None:
        template = build_event_template(raw_event, self.default_tz)
        recurrence_id = (
            ensure_timezone_aware(raw_event.recurrence_id, self.default_tz)
            if raw_event.recurrence_id is not None
            else None
        )
        instance = materialize_single(template, recurrence_id)

        if not overlaps_window(instance.start, instance.end, table.window_start, table.window_end):
            if instance.recurrence_marker and table.remove(instance.key) is not None:
                logger.debug(
                    "Override %s/%s moved outside the window, dropped generated occurrence",
                    instance.uid,
                    instance.recurrence_marker,
                )
            return

        replaced = table.insert(instance)
        if replaced is not None:
            logger.debug("Override replaced occurrence %s/%s", instance.uid, instance.recurrence_marker)


def build_occurrence_table(
    recurring_events: Sequence[LiteRawEvent],
    single_events: Sequence[LiteRawEvent],
    window_start: datetime,
    window_end: datetime,
    **builder_options: Any,
) -> LiteOccurrenceTable:
    """Build a table with a fresh builder; see LiteOccurrenceTableBuilder."""
    return LiteOccurrenceTableBuilder(**builder_options).build(
        recurring_events, single_events, window_start, window_end
    )
