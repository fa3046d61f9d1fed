"""Exception hierarchy for occurrence_lite.

Every error raised while turning one calendar event into occurrences derives
from LiteOccurrenceError so the table builder can isolate a failing event
without catching unrelated exceptions.
"""

from typing import Optional


class LiteOccurrenceError(Exception):
    """Base exception for per-event occurrence processing errors."""


class LiteRRuleGrammarError(LiteOccurrenceError):
    """Recurrence rule string could not be parsed.

    Raised when:
    - A rule key is not part of the supported grammar
    - UNTIL is not a UTC basic-format timestamp
    - COUNT or INTERVAL is not a base-10 integer
    - BYDAY or WKST contains an unknown weekday token
    - dateutil rejects the assembled rule
    """

    def __init__(self, message: str, key: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.value = value


class LiteUnsupportedTokenError(LiteRRuleGrammarError):
    """Token is recognisable RFC 5545 syntax that this grammar does not accept.

    Ordinal-prefixed weekday tokens such as "20MO" or "-1FR" land here.
    """


class LiteAnchorError(LiteOccurrenceError):
    """The defining event's own start could not be determined."""


class LiteExceptionDateError(LiteOccurrenceError):
    """An EXDATE or RDATE value could not be parsed as a timestamp."""

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class LiteDocumentError(Exception):
    """Calendar document could not be read at all.

    Raised by the ICS reader, never by the table builder.
    """
