"""Date parsing for `date`-typed fields.

Values are calendar dates (no time of day). ISO `YYYY-MM-DD` is accepted directly; anything else is
handed to `dateparser` in strict mode so that partial dates ("March") never silently become a day.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

import dateparser
from dateparser.conf import Settings as DateparserSettings

_DATEPARSER_SETTINGS = DateparserSettings().replace(
    STRICT_PARSING=True,
    DATE_ORDER="YMD",
    PREFER_DAY_OF_MONTH="first",
    TIMEZONE="UTC",
    TO_TIMEZONE="UTC",
    RETURN_AS_TIMEZONE_AWARE=True,
)


def parse_field_date(value: object) -> date | None:
    """Parse a raw field value into a `date`.

    Returns:
        The parsed date, or `None` if the value is not an unambiguous date.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    dt = dateparser.parse(text, languages=["en"], settings=_DATEPARSER_SETTINGS)
    if not dt:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.date()
