"""Pure date arithmetic used by the occurrence calculator.

Weekdays are indexed 0-6 starting on Monday, the same as
:meth:`datetime.date.weekday`.  Labels in other languages are only accepted
on input; everything internal uses the index.
"""

from __future__ import annotations

import unicodedata
from datetime import date, datetime, time, timedelta, timezone
from enum import IntEnum
from typing import Any, Optional

import pandas as pd

from .config import club_timezone

MINUTES_PER_DAY = 24 * 60
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class Weekday(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def label(self) -> str:
        return self.name.title()

    @classmethod
    def parse(cls, value: Any) -> "Weekday":
        """Return the weekday for an index, English or Portuguese name."""

        if isinstance(value, Weekday):
            return value
        if isinstance(value, int):
            return cls(value)
        key = _fold(str(value))
        try:
            return _WEEKDAY_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unknown weekday: {value!r}") from None


_PORTUGUESE = ("segunda", "terca", "quarta", "quinta", "sexta", "sabado", "domingo")

_WEEKDAY_ALIASES = {}
for _day in Weekday:
    _WEEKDAY_ALIASES[_day.name.casefold()] = _day
    _WEEKDAY_ALIASES[_day.name.casefold()[:3]] = _day
    _WEEKDAY_ALIASES[_PORTUGUESE[_day]] = _day
    _WEEKDAY_ALIASES[f"{_PORTUGUESE[_day]}-feira"] = _day


def occurrence_date(weekday: Weekday, weeks_from_now: int, now: datetime) -> date:
    """Return the next ``weekday`` on or after ``now``, ``weeks_from_now`` weeks on."""

    today = now.date()
    ahead = (int(weekday) - today.weekday()) % 7
    return today + timedelta(days=ahead + 7 * weeks_from_now)


def slot_datetime(day: date, start: time) -> datetime:
    return datetime.combine(day, start)


def minutes_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def iso_date(day: date) -> str:
    return day.isoformat()


def weeks_between(anchor: date, day: date) -> int:
    """Whole weeks from ``anchor`` to ``day`` (negative when ``day`` is earlier)."""

    return (day - anchor).days // 7


def relative_label(day: date, now: datetime) -> str:
    """``"today"``, ``"tomorrow"`` or the weekday name of ``day``."""

    delta = (day - now.date()).days
    if delta == 0:
        return "today"
    if delta == 1:
        return "tomorrow"
    return Weekday(day.weekday()).label


def parse_time(value: Any) -> time:
    """Parse ``"HH:MM"`` (seconds tolerated) into a :class:`time`."""

    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    text = str(value or "").strip()
    parts = text.split(":")
    if len(parts) < 2:
        raise ValueError(f"Invalid start time: {value!r}")
    return time(int(parts[0]), int(parts[1]))


def parse_date(value: Any) -> Optional[date]:
    """Return a :class:`date` for ISO strings, dates and datetimes; ``None`` if blank."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_local_naive(value).date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) == 10:
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
    return to_local_naive(text).date()


def to_local_naive(value: Any) -> datetime:
    """Coerce a stored timestamp into a naive datetime in the club timezone.

    Accepts datetimes, ISO strings (``Z`` suffix included), Firestore
    timestamps exposing ``to_datetime`` and epoch seconds.  Naive inputs are
    assumed to already be local.
    """

    if hasattr(value, "to_datetime") and not isinstance(value, datetime):
        value = value.to_datetime()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = datetime.fromtimestamp(float(value), timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        try:
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            parsed = pd.to_datetime(text, errors="coerce")
            if pd.isnull(parsed):
                raise ValueError(f"Invalid timestamp: {text!r}") from None
            value = parsed.to_pydatetime()
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if not isinstance(value, datetime):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(club_timezone()).replace(tzinfo=None)
    return value


def local_now() -> datetime:
    """Current wall-clock time in the club timezone (naive)."""

    return to_local_naive(datetime.now(timezone.utc))


__all__ = [
    "MINUTES_PER_DAY",
    "MINUTES_PER_WEEK",
    "Weekday",
    "occurrence_date",
    "slot_datetime",
    "minutes_of_day",
    "iso_date",
    "weeks_between",
    "relative_label",
    "parse_time",
    "parse_date",
    "to_local_naive",
    "local_now",
]
