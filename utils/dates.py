"""Calendar date parsing for expense payloads."""
import logging
from datetime import date, datetime, timezone
from typing import Any

from dateutil import parser as _dateutil_parser

from utils.coercion import to_text

logger = logging.getLogger(__name__)


def parse_calendar_date(value: Any) -> date:
    """
    Parses a date string ("2025-01-01", "2025-01-01T22:30:00-05:00", "January 1, 2025", ...)
    and returns its calendar date. Timezone-aware values are converted to UTC first;
    naive values are taken as UTC already. Missing components default to January 1st
    of the current year.
    Raises ValueError if the value cannot be parsed.
    """
    text = to_text(value).strip()
    if not text:
        raise ValueError("Empty date string")

    default = datetime(datetime.now(timezone.utc).year, 1, 1)
    try:
        dt = _dateutil_parser.parse(text, default=default)
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        logger.debug(f"dateutil failed to parse {text!r}: {e}")
        raise ValueError(f"Unparseable date: {text!r}") from e

    return dt.date()
