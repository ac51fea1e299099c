"""Session lifecycle: start, finalize, edit, log, hide and delete.

A session moves ``SCHEDULED`` (implicit, nothing stored) -> ``ACTIVE`` ->
``COMPLETED``.  Hiding is per viewer and never destroys data; global
deletion is admin-only and final.

Every mutator performs exactly one store write and returns the new entity.
The session passed in is left untouched, so a failed write leaves the
caller's snapshot as it was.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..calendar_utils import local_now, slot_datetime, to_local_naive
from ..errors import PermissionDenied, SessionConflict
from ..models import (
    MANUAL_SHIFT_ID,
    Occurrence,
    Payment,
    SessionStatus,
    Shift,
    ShiftRSVP,
    TrainingSession,
    User,
)
from ..occurrences import find_session
from ..recurrence import Recurrence

_LOG = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "notes",
        "session_cost",
        "is_cost_paid",
        "youtube_url",
        "club_name",
        "turma_name",
        "attendee_ids",
        "coach_id",
        "date",
        "payments",
    }
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _require_admin(actor: User, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDenied(f"{action} requires an administrator")


def _require_staff(actor: User, action: str) -> None:
    if not actor.is_staff:
        raise PermissionDenied(f"{action} requires a coach or administrator")


def _unique(ids: Iterable[str]) -> tuple:
    return tuple(dict.fromkeys(str(i) for i in ids if i))


def _coerce_patch_value(key: str, value: Any) -> Any:
    if key == "attendee_ids":
        return _unique(value or ())
    if key == "date":
        return to_local_naive(value)
    if key == "session_cost":
        return None if value in (None, "") else float(value)
    if key == "is_cost_paid":
        return bool(value)
    if key == "payments":
        return {
            str(uid): p if isinstance(p, Payment) else Payment.from_record(p)
            for uid, p in (value or {}).items()
        }
    return value


class SessionLifecycle:
    """Mediates every state change of a :class:`TrainingSession`."""

    def __init__(self, repository) -> None:
        self.repository = repository

    def _save(self, session: TrainingSession) -> TrainingSession:
        return self.repository.sessions.save(session)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(
        self,
        shift: Shift,
        *,
        sessions: Sequence[TrainingSession],
        now: Optional[datetime] = None,
        occurrence: Optional[Occurrence] = None,
    ) -> TrainingSession:
        """Materialize ``shift`` as an active session.

        The date comes from ``occurrence`` when given, otherwise from the
        anchor of a one-off shift, otherwise ``now`` (the club clock when
        omitted).
        """

        if occurrence is not None:
            if occurrence.shift_id != shift.id:
                raise ValueError("Occurrence belongs to a different shift")
            when = occurrence.starts_at
        elif shift.recurrence is Recurrence.ONE_OFF and shift.start_date is not None:
            when = slot_datetime(shift.start_date, shift.start_time)
        else:
            when = now if now is not None else local_now()

        existing = find_session(sessions, shift.id, when.date())
        if existing is not None and existing.occupies_slot:
            raise SessionConflict(
                f"Shift {shift.id} already has a {existing.status.value.lower()}"
                f" session on {when.date().isoformat()}"
            )

        session = TrainingSession(
            id=_new_id(),
            shift_id=shift.id,
            date=when,
            is_active=True,
            completed=False,
            attendee_ids=(),
            club_name=shift.club_name,
        )
        saved = self._save(session)
        _LOG.info("Started session %s for shift %s on %s", saved.id, shift.id, when)
        return saved

    def finalize(
        self,
        session: TrainingSession,
        *,
        actor: User,
        rsvps: Iterable[ShiftRSVP],
        override: Optional[Iterable[str]] = None,
    ) -> TrainingSession:
        """Complete ``session`` and freeze its attendee list.

        Without ``override`` the attendees are the members holding an
        ``attending`` RSVP for the session's shift and date right now.
        Only an active session can be finalized; a completed one keeps its
        attendee list.
        """

        _require_admin(actor, "Finalizing a session")
        if session.status is not SessionStatus.ACTIVE:
            raise SessionConflict(
                f"Session {session.id} is {session.status.value.lower()}, not active"
            )
        if override is not None:
            attendees = _unique(override)
        else:
            attendees = _unique(
                r.user_id
                for r in rsvps
                if r.attending and r.shift_id == session.shift_id and r.date == session.day
            )
        finalized = replace(
            session, is_active=False, completed=True, attendee_ids=attendees
        )
        saved = self._save(finalized)
        _LOG.info("Finalized session %s with %d attendees", saved.id, len(attendees))
        return saved

    def edit_fields(
        self, session: TrainingSession, patch: Mapping[str, Any], *, actor: User
    ) -> TrainingSession:
        """Update descriptive fields; allowed on completed sessions too."""

        _require_staff(actor, "Editing a session")
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
        changes: Dict[str, Any] = {
            key: _coerce_patch_value(key, value) for key, value in patch.items()
        }
        return self._save(replace(session, **changes))

    def record_payment(
        self,
        session: TrainingSession,
        user_id: str,
        *,
        paid: bool,
        amount: float,
        actor: User,
    ) -> TrainingSession:
        """Set one attendee's payment entry."""

        _require_admin(actor, "Recording a payment")
        payments = dict(session.payments)
        payments[user_id] = Payment(paid=bool(paid), amount=float(amount))
        return self._save(replace(session, payments=payments))

    def log_retroactive(
        self,
        *,
        actor: User,
        club_name: Optional[str],
        turma_name: Optional[str],
        coach_id: Optional[str],
        date: datetime,
        attendee_ids: Iterable[str],
        notes: Optional[str] = None,
        youtube_url: Optional[str] = None,
        session_cost: Optional[float] = None,
    ) -> TrainingSession:
        """Record a training that already happened, with no shift behind it."""

        _require_staff(actor, "Logging a past session")
        session = TrainingSession(
            id=_new_id(),
            shift_id=MANUAL_SHIFT_ID,
            date=to_local_naive(date),
            is_active=False,
            completed=True,
            attendee_ids=_unique(attendee_ids),
            notes=notes,
            youtube_url=youtube_url,
            turma_name=turma_name,
            coach_id=coach_id or actor.id,
            club_name=club_name,
            session_cost=session_cost,
        )
        saved = self._save(session)
        _LOG.info("Logged retroactive session %s on %s", saved.id, saved.date)
        return saved

    def remove_for_caller(self, session: TrainingSession, caller_id: str) -> TrainingSession:
        """Hide ``session`` from ``caller_id`` only."""

        if session.is_hidden_for(caller_id):
            return session
        hidden = session.hidden_for_user_ids + (caller_id,)
        return self._save(replace(session, hidden_for_user_ids=hidden))

    def remove_globally(self, session: TrainingSession, *, actor: User) -> None:
        """Delete ``session`` for everyone.  Cannot be undone."""

        _require_admin(actor, "Deleting a session")
        self.repository.sessions.delete(session.id)
        _LOG.info("Deleted session %s", session.id)


def session_coach_id(
    session: TrainingSession, shifts: Iterable[Shift]
) -> Optional[str]:
    """The session's coach: its own override, else its shift's coach."""

    if session.coach_id:
        return session.coach_id
    for shift in shifts:
        if shift.id == session.shift_id:
            return shift.coach_id
    if not session.is_manual:
        _LOG.warning("Session %s references unknown shift %s", session.id, session.shift_id)
    return None


def visible_history(
    sessions: Iterable[TrainingSession],
    shifts: Iterable[Shift],
    caller: User,
) -> List[TrainingSession]:
    """Sessions ``caller`` may see in their history, newest first."""

    shift_list = list(shifts)
    visible: List[TrainingSession] = []
    for session in sessions:
        if session.is_hidden_for(caller.id):
            continue
        if (
            caller.is_admin
            or session_coach_id(session, shift_list) == caller.id
            or caller.id in session.attendee_ids
        ):
            visible.append(session)
    visible.sort(key=lambda s: s.date, reverse=True)
    return visible


__all__ = [
    "EDITABLE_FIELDS",
    "SessionLifecycle",
    "session_coach_id",
    "visible_history",
]
