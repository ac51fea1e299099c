"""Compute upcoming training occurrences from shifts and sessions.

Occurrences are never stored.  Both views below are recomputed from the
current shift templates and session records on every call, so editing a
shift immediately changes every future occurrence.

Two views exist:

* :func:`next_occurrence_for_member` - the single next training a coach or
  student should turn up to.  It steps past slots that already have an
  active or completed session.
* :func:`global_schedule_next_7_days` - the administrator's rolling week:
  this week's and next week's slot for every shift, filtered by recurrence
  and capped at seven days from ``now``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from .calendar_utils import (
    MINUTES_PER_DAY,
    MINUTES_PER_WEEK,
    minutes_of_day,
    occurrence_date,
    relative_label,
    slot_datetime,
)
from .models import Occurrence, Role, Shift, TrainingSession

# How many already-taken occurrences of one shift the member view steps over
# before reporting that shift as having no upcoming slot.  Measured in the
# shift's own stride: ten weeks ahead for weekly shifts, twenty for
# bi-weekly ones.
MAX_SKIPPED_OCCURRENCES = 10

SCHEDULE_WINDOW = timedelta(days=7)
_ADMIN_WEEK_OFFSETS = (0, 1)


def find_session(
    sessions: Iterable[TrainingSession], shift_id: str, day: date
) -> Optional[TrainingSession]:
    """Return the session recorded for ``shift_id`` on ``day``.

    When several records share the slot the one that occupies it (active or
    completed) is preferred.
    """

    fallback: Optional[TrainingSession] = None
    for session in sessions:
        if session.shift_id != shift_id or session.day != day:
            continue
        if session.occupies_slot:
            return session
        if fallback is None:
            fallback = session
    return fallback


def active_sessions(sessions: Iterable[TrainingSession]) -> List[TrainingSession]:
    """Sessions currently running, oldest first."""

    running = [s for s in sessions if s.is_active and not s.completed]
    running.sort(key=lambda s: s.date)
    return running


def lookahead_weeks(shift: Shift) -> int:
    """Furthest week offset the member view will examine for ``shift``."""

    return MAX_SKIPPED_OCCURRENCES * shift.recurrence.rule.stride_weeks


def _member_shifts(member_id: str, role: Role, shifts: Iterable[Shift]) -> List[Shift]:
    if role is Role.COACH:
        return [s for s in shifts if s.coach_id == member_id]
    if role is Role.STUDENT:
        return [s for s in shifts if member_id in s.student_ids]
    return []


def _first_free_slot(
    shift: Shift, sessions: Sequence[TrainingSession], now: datetime
) -> Optional[Tuple[int, date]]:
    day = occurrence_date(shift.day_of_week, 0, now)
    week_offset = 0 if slot_datetime(day, shift.start_time) > now else 1
    stride = shift.recurrence.rule.stride_weeks

    for _ in range(MAX_SKIPPED_OCCURRENCES):
        day = occurrence_date(shift.day_of_week, week_offset, now)
        session = find_session(sessions, shift.id, day)
        if session is None or not session.occupies_slot:
            return week_offset, day
        week_offset += stride

    logging.warning(
        "Shift %s has no free slot within %d weeks", shift.id, lookahead_weeks(shift)
    )
    return None


def _weight(shift: Shift, week_offset: int) -> int:
    return (
        int(shift.day_of_week) * MINUTES_PER_DAY
        + minutes_of_day(shift.start_time)
        + week_offset * MINUTES_PER_WEEK
    )


def next_occurrence_for_member(
    member_id: str,
    role: Role,
    shifts: Iterable[Shift],
    sessions: Iterable[TrainingSession],
    now: datetime,
) -> Optional[Occurrence]:
    """Return the next training ``member_id`` takes part in, or ``None``.

    Coaches are matched on the shift's coach, students on its roster.
    Candidates rank by a weight built from weekday, start time and week
    offset; ties go to the lowest shift id.
    """

    session_list = list(sessions)
    best: Optional[Tuple[Tuple[int, str], Occurrence]] = None

    for shift in _member_shifts(member_id, Role.parse(role), shifts):
        free = _first_free_slot(shift, session_list, now)
        if free is None:
            continue
        week_offset, day = free
        rank = (_weight(shift, week_offset), shift.id)
        if best is not None and rank >= best[0]:
            continue
        best = (
            rank,
            Occurrence(
                shift=shift,
                date=day,
                starts_at=slot_datetime(day, shift.start_time),
                week_offset=week_offset,
                label=relative_label(day, now),
                session=find_session(session_list, shift.id, day),
            ),
        )

    return best[1] if best else None


def global_schedule_next_7_days(
    shifts: Iterable[Shift],
    sessions: Iterable[TrainingSession],
    now: datetime,
) -> List[Occurrence]:
    """Return every shift occurrence staff should see for the coming week.

    An active session is always listed, even after its start time, so it can
    be finalized.  Completed slots are never listed.
    """

    session_list = list(sessions)
    horizon = now + SCHEDULE_WINDOW
    results: List[Occurrence] = []

    for shift in shifts:
        rule = shift.recurrence.rule
        for week_offset in _ADMIN_WEEK_OFFSETS:
            day = occurrence_date(shift.day_of_week, week_offset, now)
            starts_at = slot_datetime(day, shift.start_time)
            session = find_session(session_list, shift.id, day)

            if session is not None and session.completed:
                continue
            is_active = session is not None and session.is_active
            if week_offset == 0 and starts_at < now and not is_active:
                continue
            if not rule.includes(shift.start_date, day, week_offset):
                continue
            if starts_at > horizon:
                continue

            results.append(
                Occurrence(
                    shift=shift,
                    date=day,
                    starts_at=starts_at,
                    week_offset=week_offset,
                    label=relative_label(day, now),
                    session=session,
                )
            )

    results.sort(key=lambda occ: (occ.starts_at, occ.shift.id))
    return results


__all__ = [
    "MAX_SKIPPED_OCCURRENCES",
    "SCHEDULE_WINDOW",
    "find_session",
    "active_sessions",
    "lookahead_weeks",
    "next_occurrence_for_member",
    "global_schedule_next_7_days",
]
