"""Row positions within result pages and parsing of date/time column values."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from enum import IntEnum
from typing import Any, Optional, Union


class Direction(IntEnum):
    """Where a row lies relative to a result page."""

    UNKNOWN = 0
    NONE = 1
    FORWARD = 2
    BACK = 3

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class Delimiter:
    """A run of count rows of the overall result set, beginning at row start."""

    start: int = 0
    count: int = 0

    @property
    def end(self) -> int:
        """Number of the last row in the run."""
        return self.start + self.count - 1

    def contains(self, row: int) -> bool:
        """True when the row lies within a non-empty run."""
        return self.count > 0 and self.start <= row <= self.end

    def direction(self, row: int) -> Direction:
        """Which way to move from this run to reach the row."""
        if self.contains(row):
            return Direction.NONE
        if row < self.start:
            return Direction.BACK
        if row > self.end:
            return Direction.FORWARD
        if self.count == 0:
            return Direction.FORWARD
        return Direction.UNKNOWN


@dataclass(frozen=True)
class NegativeYearDatetime:
    """A date/time whose year lies before the first year a datetime can hold."""

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    microsecond: int = 0
    tzinfo: Optional[tzinfo] = None


class RowParseError(ValueError):
    """A column value could not be read as the column's date/time type."""

    def __init__(self, db_type: str, value: Any, column_name: str, cause: BaseException) -> None:
        super().__init__(
            f"databricks: unable to parse {db_type} value '{value}' "
            f"from column {column_name}: {cause}"
        )
        self.db_type = db_type
        self.value = value
        self.column_name = column_name
        self.cause = cause


_DATE = r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
_PATTERNS = {
    "TIMESTAMP": re.compile(
        _DATE
        + r" (?P<hour>\d{1,2}):(?P<minute>\d{2}):(?P<second>\d{2})(?:\.(?P<fraction>\d+))?",
        re.ASCII,
    ),
    "DATE": re.compile(_DATE, re.ASCII),
}

# ISO 8601 allows both the ascii hyphen and the unicode minus sign.
_MINUS_SIGNS = ("-", "\u2212")


def is_null(nulls: bytes, position: int) -> bool:
    """True when the bit for the given position is set in the null bitmap."""
    if position < 0:
        return False
    index, bit = divmod(position, 8)
    if index < len(nulls):
        return bool(nulls[index] & (1 << bit))
    return False


def _parse(pattern: re.Pattern, text: str, tz: tzinfo) -> datetime:
    match = pattern.fullmatch(text)
    if match is None:
        raise ValueError(f"cannot parse {text!r}")
    parts = match.groupdict()
    fraction = parts.get("fraction") or ""
    return datetime(
        int(parts["year"]),
        int(parts["month"]),
        int(parts["day"]),
        int(parts.get("hour") or 0),
        int(parts.get("minute") or 0),
        int(parts.get("second") or 0),
        int((fraction + "000000")[:6]),
        tzinfo=tz,
    )


def _parse_in_zone(
    pattern: re.Pattern, text: str, tz: tzinfo
) -> Union[datetime, NegativeYearDatetime]:
    negative = text.startswith(_MINUS_SIGNS)
    if negative:
        text = text[1:]
    moment = _parse(pattern, text, tz)
    if not negative:
        return moment
    return NegativeYearDatetime(
        -moment.year,
        moment.month,
        moment.day,
        moment.hour,
        moment.minute,
        moment.second,
        moment.microsecond,
        moment.tzinfo,
    )


def handle_datetime(
    value: Any, db_type: str, column_name: str, tz: Optional[tzinfo] = timezone.utc
) -> Any:
    """Parse string values of DATE and TIMESTAMP columns; return other values unchanged.

    Raises RowParseError when such a value cannot be parsed.
    """
    pattern = _PATTERNS.get(db_type)
    if pattern is None:
        return value
    try:
        if not isinstance(value, str):
            raise TypeError(f"expected a string, got {type(value).__name__}")
        return _parse_in_zone(pattern, value, tz or timezone.utc)
    except (TypeError, ValueError) as exc:
        raise RowParseError(db_type, value, column_name, exc) from exc