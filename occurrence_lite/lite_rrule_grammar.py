"""RRULE grammar parser for occurrence_lite.

Turns a semicolon-delimited rule string such as
``FREQ=WEEKLY;WKST=SU;COUNT=10;BYDAY=MO`` into a RecurrenceSpecification.
The iteration arithmetic itself lives in dateutil; this module only reads
the grammar.
"""

import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from .lite_datetime_utils import parse_utc_timestamp
from .lite_exceptions import LiteRRuleGrammarError, LiteUnsupportedTokenError
from .lite_models import LiteFrequency, LiteWeekday, RecurrenceSpecification

logger = logging.getLogger(__name__)

# Comma-separated integer list keys -> RecurrenceSpecification field
INTEGER_LIST_KEYS: dict[str, str] = {
    "bysetpos": "by_set_position",
    "byeaster": "by_easter",
    "bymonth": "by_month",
    "bymonthday": "by_month_day",
    "byyearday": "by_year_day",
    "byweekno": "by_week_number",
    "byhour": "by_hour",
    "byminute": "by_minute",
    "bysecond": "by_second",
}

SUPPORTED_KEYS = frozenset(
    {"freq", "until", "count", "interval", "byday", "byweekdaylist", "wkst", *INTEGER_LIST_KEYS}
)

_INTEGER_RE = re.compile(r"[+-]?\d+")
_ORDINAL_WEEKDAY_RE = re.compile(r"[+-]?\d{1,2}(SU|MO|TU|WE|TH|FR|SA)", re.IGNORECASE)


class LiteRRuleGrammar:
    """Parser for RFC 5545 RRULE value strings.

    Two policies are configurable:

    - ``strict_integer_lists``: a malformed element inside a BY* integer list
      raises LiteRRuleGrammarError. When False the element degrades to 0 and a
      warning is reported instead.
    - ``strict_frequency``: an unknown FREQ raises LiteRRuleGrammarError. When
      False it falls back to YEARLY with a warning.
    """

    def __init__(self, strict_integer_lists: bool = True, strict_frequency: bool = False):
        self.strict_integer_lists = strict_integer_lists
        self.strict_frequency = strict_frequency

    def parse(self, rule_string: str) -> RecurrenceSpecification:
        """Parse a rule string into a RecurrenceSpecification.

        Raises:
            LiteRRuleGrammarError: If the rule is malformed
        """
        spec, _ = self.parse_with_warnings(rule_string)
        return spec

    def parse_with_warnings(self, rule_string: str) -> tuple[RecurrenceSpecification, list[str]]:
        """Parse a rule string and return the coercion warnings alongside it.

        Raises:
            LiteRRuleGrammarError: If the rule is malformed
        """
        if rule_string is None or not rule_string.strip():
            raise LiteRRuleGrammarError("Empty RRULE string")

        fields: dict[str, Any] = {}
        warnings: list[str] = []

        for token in rule_string.split(";"):
            token = token.strip()
            if not token:
                continue
            key, sep, value = token.partition("=")
            if not sep:
                raise LiteRRuleGrammarError(f"RRULE part has no '=': {token!r}", key=key)
            self._add_rule(fields, warnings, key.strip(), value.strip())

        if "frequency" not in fields:
            raise LiteRRuleGrammarError(f"RRULE missing required FREQ parameter: {rule_string!r}")

        try:
            spec = RecurrenceSpecification(**fields)
        except ValidationError as e:
            raise LiteRRuleGrammarError(f"Invalid RRULE {rule_string!r}: {e}") from e

        for warning in warnings:
            logger.warning("RRULE %r: %s", rule_string, warning)
        return spec, warnings

    def _add_rule(self, fields: dict[str, Any], warnings: list[str], key: str, value: str) -> None:
        name = key.lower()

        if name == "freq":
            fields["frequency"] = self._frequency(value, warnings)
        elif name == "until":
            try:
                fields["until"] = parse_utc_timestamp(value)
            except ValueError as e:
                raise LiteRRuleGrammarError(
                    f"Could not convert UNTIL to a UTC timestamp: {value!r}", key=key, value=value
                ) from e
        elif name == "count":
            fields["count"] = self._positive_int(key, value)
        elif name == "interval":
            fields["interval"] = self._positive_int(key, value)
        elif name in ("byday", "byweekdaylist"):
            fields["by_weekday"] = tuple(self._weekday(key, token) for token in value.split(","))
        elif name == "wkst":
            fields["week_start"] = self._weekday(key, value)
        elif name in INTEGER_LIST_KEYS:
            fields[INTEGER_LIST_KEYS[name]] = self._int_list(key, value, warnings)
        else:
            raise LiteRRuleGrammarError(f"Unhandled RRULE key: {key} = {value}", key=key, value=value)

    def _frequency(self, value: str, warnings: list[str]) -> LiteFrequency:
        try:
            return LiteFrequency(value.upper())
        except ValueError:
            if self.strict_frequency:
                raise LiteRRuleGrammarError(
                    f"Unknown FREQ value: {value!r}", key="FREQ", value=value
                ) from None
        warnings.append(f"unknown FREQ {value!r}, defaulting to YEARLY")
        return LiteFrequency.YEARLY

    def _positive_int(self, key: str, value: str) -> int:
        if not _INTEGER_RE.fullmatch(value):
            raise LiteRRuleGrammarError(
                f"Could not convert {key.upper()} to an integer: {value!r}", key=key, value=value
            )
        number = int(value)
        if number < 1:
            raise LiteRRuleGrammarError(
                f"{key.upper()} must be a positive integer: {value!r}", key=key, value=value
            )
        return number

    def _int_list(self, key: str, value: str, warnings: list[str]) -> tuple[int, ...]:
        values = []
        for token in value.split(","):
            token = token.strip()
            if _INTEGER_RE.fullmatch(token):
                values.append(int(token))
                continue
            if self.strict_integer_lists:
                raise LiteRRuleGrammarError(
                    f"Could not convert {key.upper()} element to an integer: {token!r}",
                    key=key,
                    value=value,
                )
            warnings.append(f"could not convert {key.upper()} element {token!r}, using 0")
            values.append(0)
        return tuple(values)

    def _weekday(self, key: str, token: str) -> LiteWeekday:
        token = token.strip()
        try:
            return LiteWeekday(token.upper())
        except ValueError:
            pass
        if _ORDINAL_WEEKDAY_RE.fullmatch(token):
            raise LiteUnsupportedTokenError(
                f"Ordinal weekday tokens are not supported: {token!r}", key=key, value=token
            )
        raise LiteRRuleGrammarError(f"Weekday not found: {token!r}", key=key, value=token)


_default_grammar = LiteRRuleGrammar()


def parse_rrule(rule_string: str, grammar: Optional[LiteRRuleGrammar] = None) -> RecurrenceSpecification:
    """Parse ``rule_string`` with the default (or given) grammar policy."""
    return (grammar or _default_grammar).parse(rule_string)
