"""RSVP ledger: who intends to attend which shift occurrence.

One record per (shift, member, date).  A missing record means the member
has not decided yet, which is different from ``attending=False``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..models import Shift, ShiftRSVP, rsvp_id

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceCount:
    attending: int
    declined: int
    roster: int

    @property
    def undecided(self) -> int:
        return max(self.roster - self.attending - self.declined, 0)


class AttendanceLedger:
    """RSVPs keyed by their composite id.

    The in-memory view is only updated after the store accepted the write.
    """

    def __init__(self, repository, rsvps: Iterable[ShiftRSVP] = ()) -> None:
        self.repository = repository
        self._records: Dict[str, ShiftRSVP] = {r.id: r for r in rsvps}

    @classmethod
    def from_snapshot(cls, repository, snapshot) -> "AttendanceLedger":
        return cls(repository, snapshot.rsvps)

    @property
    def records(self) -> List[ShiftRSVP]:
        return list(self._records.values())

    def intention_of(self, shift_id: str, user_id: str, day: date) -> Optional[bool]:
        """``True``/``False`` for a recorded intention, ``None`` if undecided."""

        record = self._records.get(rsvp_id(shift_id, user_id, day))
        return None if record is None else record.attending

    def set_intention(
        self, shift_id: str, user_id: str, day: date, attending: bool
    ) -> Optional[ShiftRSVP]:
        """Record ``attending`` for the member.

        Submitting the intention the ledger already holds withdraws it
        instead, and ``None`` is returned.
        """

        if self.intention_of(shift_id, user_id, day) is bool(attending):
            self.withdraw(shift_id, user_id, day)
            return None

        record = ShiftRSVP(
            shift_id=shift_id, user_id=user_id, date=day, attending=bool(attending)
        )
        self.repository.rsvps.save(record)
        self._records[record.id] = record
        return record

    def withdraw(self, shift_id: str, user_id: str, day: date) -> None:
        key = rsvp_id(shift_id, user_id, day)
        self.repository.rsvps.delete(key)
        self._records.pop(key, None)
        _LOG.info("Withdrew RSVP %s", key)

    def for_occurrence(self, shift_id: str, day: date) -> List[ShiftRSVP]:
        return [
            r for r in self._records.values() if r.shift_id == shift_id and r.date == day
        ]

    def attending_user_ids(self, shift_id: str, day: date) -> List[str]:
        return [r.user_id for r in self.for_occurrence(shift_id, day) if r.attending]

    def count_for(self, shift: Shift, day: date) -> AttendanceCount:
        """Attending/declined counts against the shift's roster size."""

        records = self.for_occurrence(shift.id, day)
        attending = sum(1 for r in records if r.attending)
        return AttendanceCount(
            attending=attending,
            declined=len(records) - attending,
            roster=len(shift.student_ids),
        )


__all__ = ["AttendanceCount", "AttendanceLedger"]
