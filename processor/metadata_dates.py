"""Metadata extractor: displayed "Date taken" fields -> UTC instant.

Handles the shapes the info panel shows: "Aug 26, 2024", "Jan 14" (current
year implied), "Today"/"Yesterday", a time like "Mon, 8:38 PM" and an optional
"GMT+03:00" label. Without a label the configured display timezone applies.
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser
from loguru import logger

from crawler.page_driver import DateFields

_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
_GMT_RE = re.compile(r"GMT\s*(?:([+-])(\d{1,2})(?::?(\d{2}))?)?", re.IGNORECASE)


def parse_gmt_label(label: str | None) -> tzinfo | None:
    """'GMT+03:00' -> UTC+3. Unknown labels -> None."""
    if not label:
        return None
    m = _GMT_RE.search(label)
    if not m:
        return None
    if not m.group(1):
        return UTC
    offset = timedelta(hours=int(m.group(2)), minutes=int(m.group(3) or 0))
    return timezone(-offset if m.group(1) == "-" else offset)


def _parse_clock(time_text: str | None) -> time | None:
    if not time_text:
        return None
    m = _TIME_RE.search(time_text)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    ampm = m.group(3).upper()
    if ampm == "PM" and hour != 12:
        hour += 12
    elif ampm == "AM" and hour == 12:
        hour = 0
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _parse_day(date_text: str, time_text: str | None, today: date) -> date | None:
    lowered = date_text.lower()
    if "today" in lowered or (time_text and "today" in time_text.lower()):
        return today
    if "yesterday" in lowered:
        return today - timedelta(days=1)
    try:
        # 연도가 없으면 default 의 연도(올해)가 채워진다
        parsed = date_parser.parse(date_text, default=datetime(today.year, 1, 1))
    except (ValueError, OverflowError):
        return None
    if parsed.year < 1900:
        return None
    return parsed.date()


def parse_metadata_date(
    fields: DateFields,
    display_timezone: str = "UTC",
    now: datetime | None = None,
) -> datetime | None:
    if not fields.date_text:
        return None

    tz = parse_gmt_label(fields.timezone_text) or ZoneInfo(display_timezone)
    now = (now or datetime.now(UTC)).astimezone(tz)

    day = _parse_day(fields.date_text, fields.time_text, now.date())
    if day is None:
        logger.debug("[dates] unparseable date: {!r}", fields.display)
        return None

    clock = _parse_clock(fields.time_text) or time(0, 0)
    return datetime.combine(day, clock, tzinfo=tz).astimezone(UTC)
