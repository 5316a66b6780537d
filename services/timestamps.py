"""Timestamp parsing for modem-formatted message headers.

Modems prefix every SMS with a header such as ``25/08/01,22:48:08-20`` or
``2025/08/01,22:48:08`` (year/month/day, then time, then an optional
timezone quarter-hour offset that is ignored). Fields are taken as local
wall-clock values with no timezone conversion.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Optional

from models.records import UNKNOWN_DATE_KEY

_INSTANT_PATTERN = re.compile(
    r"(\d{2,4})/(\d{2})/(\d{2}),(\d{2}):(\d{2}):(\d{2})", re.ASCII
)
_DATE_PATTERN = re.compile(r"(\d{2,4})/(\d{2})/(\d{2})", re.ASCII)
_TIME_PATTERN = re.compile(r",(\d{2}):(\d{2}):(\d{2})", re.ASCII)


def _expand_year(year: str) -> str:
    return f"20{year}" if len(year) == 2 else year


class TimestampNormalizer:
    """Turns raw header text into sortable instants and date grouping keys."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def parse_instant(self, text: str) -> Optional[datetime]:
        """Return the encoded instant, or ``None`` when it cannot be read."""
        match = _INSTANT_PATTERN.search(text)
        if match is None:
            return None
        year, month, day, hour, minute, second = match.groups()
        try:
            return datetime(
                int(_expand_year(year)),
                int(month),
                int(day),
                int(hour),
                int(minute),
                int(second),
            )
        except ValueError:
            return None

    def to_instant(self, text: str) -> datetime:
        """Return the encoded instant, falling back to the current time."""
        parsed = self.parse_instant(text)
        if parsed is None:
            return self._clock()
        return parsed

    def to_date_key(self, text: str) -> str:
        match = _DATE_PATTERN.search(text)
        if match is None:
            return UNKNOWN_DATE_KEY
        year, month, day = match.groups()
        return f"{_expand_year(year)}-{month}-{day}"

    @staticmethod
    def time_of_day(text: str, with_seconds: bool = True) -> str:
        match = _TIME_PATTERN.search(text)
        if match is None:
            return ""
        hour, minute, second = match.groups()
        if with_seconds:
            return f"{hour}:{minute}:{second}"
        return f"{hour}:{minute}"


def format_display_date(date_key: str) -> str:
    """``YYYY-MM-DD`` -> ``DD/MM/YYYY``; other keys are returned as-is."""
    parts = date_key.split("-")
    if len(parts) != 3:
        return date_key
    year, month, day = parts
    return f"{day}/{month}/{year}"


def format_export_date(date_key: str) -> str:
    return date_key.replace("-", "/")
