"""Recurrence rules for shifts.

Each :class:`Recurrence` tag maps to a rule object answering two questions:
how many weeks to step past an occurrence that already has a session
(``stride_weeks``), and whether a candidate date belongs to the shift at all
(``includes``).  The occurrence calculator only talks to the rule objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional

from .calendar_utils import weeks_between


class Recurrence(str, Enum):
    ONE_OFF = "ONE_OFF"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"

    @classmethod
    def parse(cls, value: Any) -> "Recurrence":
        """Accept the enum, its name, or the legacy Portuguese tags."""

        if isinstance(value, Recurrence):
            return value
        key = str(value or "").strip().upper()
        if not key:
            return cls.WEEKLY
        try:
            return _LEGACY_TAGS.get(key) or cls(key)
        except ValueError:
            raise ValueError(f"Unknown recurrence: {value!r}") from None

    @property
    def rule(self) -> "RecurrenceRule":
        return _RULES[self]


_LEGACY_TAGS = {
    "PONTUAL": Recurrence.ONE_OFF,
    "SEMANAL": Recurrence.WEEKLY,
    "QUINZENAL": Recurrence.BIWEEKLY,
}


@dataclass(frozen=True)
class RecurrenceRule:
    stride_weeks: int = 1

    def includes(
        self, start_date: Optional[date], candidate: date, week_offset: int
    ) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class WeeklyRule(RecurrenceRule):
    def includes(self, start_date, candidate, week_offset):
        return True


@dataclass(frozen=True)
class BiweeklyRule(RecurrenceRule):
    stride_weeks: int = 2

    def includes(self, start_date, candidate, week_offset):
        # Without an anchor there is no way to tell the "on" weeks apart.
        if start_date is None:
            return week_offset == 0
        return weeks_between(start_date, candidate) % 2 == 0


@dataclass(frozen=True)
class OneOffRule(RecurrenceRule):
    def includes(self, start_date, candidate, week_offset):
        if start_date is None:
            return week_offset == 0
        return candidate == start_date


_RULES: Dict[Recurrence, RecurrenceRule] = {
    Recurrence.ONE_OFF: OneOffRule(),
    Recurrence.WEEKLY: WeeklyRule(),
    Recurrence.BIWEEKLY: BiweeklyRule(),
}


__all__ = [
    "Recurrence",
    "RecurrenceRule",
    "WeeklyRule",
    "BiweeklyRule",
    "OneOffRule",
]
