"""
dates.py
---------
Date normalization for incident reports.

Report forms send dates either as yyyy-mm-dd (the canonical form we store)
or as dd-mm-yyyy, depending on the browser locale. normalize_date() rewrites
the second form into the first and leaves everything else alone.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Optional

# Two-digit day, two-digit month, four-digit year
_DAY_FIRST = re.compile(r"(\d{2})-(\d{2})-(\d{4})", re.ASCII)


def today_iso() -> str:
    """Current UTC calendar date as yyyy-mm-dd."""
    return datetime.now(timezone.utc).date().isoformat()


def normalize_date(value: Optional[Any], today: Optional[date] = None) -> str:
    """
    Return the canonical (yyyy-mm-dd) form of a free-text date.

    - "" or None gives today's date (pass `today` to pin it).
    - "dd-mm-yyyy" is rewritten to "yyyy-mm-dd".
    - Anything else, including already-canonical dates and text we cannot
      parse, is returned unchanged. Non-string values are turned into text first.

    The day-first check only looks at digit-group lengths, so "01-02-2023"
    is always read as 1 February.
    """
    if not value:
        return today.isoformat() if today is not None else today_iso()

    if not isinstance(value, str):
        # Numbers, date objects and the like are kept as their text form
        value = str(value)

    match = _DAY_FIRST.fullmatch(value)
    if match is None:
        return value

    day, month, year = match.groups()
    return f"{year}-{month}-{day}"
