"""occurrence_lite - recurrence expansion and occurrence tables for ICS events.

Parses RRULE strings, expands recurring events inside a time window and merges
single events and overrides into one table keyed by (uid, recurrence marker).
Imports stay light here; the submodules pull in icalendar and dateutil.
"""

__version__ = "0.1.0"

from .lite_exceptions import (
    LiteAnchorError,
    LiteDocumentError,
    LiteExceptionDateError,
    LiteOccurrenceError,
    LiteRRuleGrammarError,
    LiteUnsupportedTokenError,
)

__all__ = [
    "LiteAnchorError",
    "LiteDocumentError",
    "LiteExceptionDateError",
    "LiteOccurrenceError",
    "LiteRRuleGrammarError",
    "LiteUnsupportedTokenError",
    "__version__",
]
