"""Capture timestamps embedded in camera/screenshot filenames.

Patterns are tried in order, first match wins:
  PXL_20260114_100210191.jpg      YYYYMMDD_HHMMSSmmm
  IMG_20260114_100210.jpg         YYYYMMDD_HHMMSS
  Screenshot_20260114-153434.png  YYYYMMDD-HHMMSS

Filenames carry wall-clock time without a zone; it is read in the configured
filename timezone (UTC by default) and returned as an aware UTC datetime.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from loguru import logger

FILENAME_PATTERNS = (
    re.compile(r"(\d{4})(\d{2})(\d{2})_(\d{2})(\d{2})(\d{2})(\d{3})"),
    re.compile(r"(\d{4})(\d{2})(\d{2})_(\d{2})(\d{2})(\d{2})"),
    re.compile(r"(\d{4})(\d{2})(\d{2})-(\d{2})(\d{2})(\d{2})"),
)


def parse_filename_date(filename: str | None, timezone: str = "UTC") -> datetime | None:
    if not filename:
        return None

    tz = ZoneInfo(timezone)
    for pattern in FILENAME_PATTERNS:
        m = pattern.search(filename)
        if not m:
            continue
        year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
        millis = int(m.group(7)) if len(m.groups()) > 6 else 0
        try:
            local = datetime(year, month, day, hour, minute, second, millis * 1000, tzinfo=tz)
        except ValueError:
            logger.debug("[dates] invalid date in filename: {}", filename)
            continue
        return local.astimezone(UTC)
    return None
