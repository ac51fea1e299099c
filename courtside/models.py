"""Entities stored in the record store and the ephemeral occurrence view.

Store documents use the camelCase field names written by the web
client (``dayOfWeek``, ``attendeeIds``...).  ``from_record`` tolerates
missing optional fields; ``to_record`` always writes every field.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from . import config
from .calendar_utils import (
    Weekday,
    iso_date,
    parse_date,
    parse_time,
    slot_datetime,
    to_local_naive,
)
from .recurrence import Recurrence

MANUAL_SHIFT_ID = "manual"


class Role(str, Enum):
    ADMIN = "ADMIN"
    COACH = "COACH"
    STUDENT = "STUDENT"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        if isinstance(value, Role):
            return value
        return cls(str(value or "").strip().upper())


class SessionStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


def _ids(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    seen: Dict[str, None] = {}
    for item in value:
        if item is None or item == "":
            continue
        seen.setdefault(str(item), None)
    return tuple(seen)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: Role
    phone: str = ""
    avatar: str = ""
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (Role.ADMIN, Role.COACH)

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            role=Role.parse(data.get("role")),
            phone=str(data.get("phone") or ""),
            avatar=str(data.get("avatar") or ""),
            active=data.get("active") is not False,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "phone": self.phone,
            "avatar": self.avatar,
            "active": self.active,
        }


@dataclass(frozen=True)
class Shift:
    """A weekly (or bi-weekly, or one-off) training slot."""

    id: str
    day_of_week: Weekday
    start_time: time
    coach_id: str
    duration_minutes: int = 60
    student_ids: Tuple[str, ...] = ()
    recurrence: Recurrence = Recurrence.WEEKLY
    start_date: Optional[date] = None
    club_name: Optional[str] = None

    @property
    def end_time(self) -> time:
        start = slot_datetime(date(2000, 1, 1), self.start_time)
        return (start + timedelta(minutes=self.duration_minutes)).time()

    def has_member(self, user_id: str) -> bool:
        return user_id == self.coach_id or user_id in self.student_ids

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "Shift":
        return cls(
            id=str(data["id"]),
            day_of_week=Weekday.parse(data.get("dayOfWeek")),
            start_time=parse_time(data.get("startTime")),
            coach_id=str(data.get("coachId") or ""),
            duration_minutes=int(data.get("durationMinutes") or 60),
            student_ids=_ids(data.get("studentIds")),
            recurrence=Recurrence.parse(data.get("recurrence")),
            start_date=parse_date(data.get("startDate")),
            club_name=_optional_text(data.get("clubName")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dayOfWeek": self.day_of_week.label,
            "startTime": self.start_time.strftime("%H:%M"),
            "durationMinutes": self.duration_minutes,
            "coachId": self.coach_id,
            "studentIds": list(self.student_ids),
            "recurrence": self.recurrence.value,
            "startDate": iso_date(self.start_date) if self.start_date else None,
            "clubName": self.club_name,
        }


@dataclass(frozen=True)
class Payment:
    paid: bool = False
    amount: float = 0.0

    @classmethod
    def from_record(cls, data: Any) -> "Payment":
        if not isinstance(data, Mapping):
            return cls(paid=False, amount=config.payment_amount_fallback())
        amount = _optional_float(data.get("amount"))
        return cls(
            paid=bool(data.get("paid")),
            amount=config.payment_amount_fallback() if amount is None else amount,
        )

    def to_record(self) -> Dict[str, Any]:
        return {"paid": self.paid, "amount": self.amount}


@dataclass(frozen=True)
class TrainingSession:
    """A concrete training on a given date, materialized or logged by hand."""

    id: str
    shift_id: str
    date: datetime
    is_active: bool = False
    completed: bool = False
    attendee_ids: Tuple[str, ...] = ()
    hidden_for_user_ids: Tuple[str, ...] = ()
    notes: Optional[str] = None
    youtube_url: Optional[str] = None
    turma_name: Optional[str] = None
    coach_id: Optional[str] = None
    club_name: Optional[str] = None
    session_cost: Optional[float] = None
    is_cost_paid: bool = False
    payments: Mapping[str, Payment] = field(default_factory=dict)

    @property
    def day(self) -> date:
        return self.date.date()

    @property
    def is_manual(self) -> bool:
        return self.shift_id == MANUAL_SHIFT_ID

    @property
    def status(self) -> SessionStatus:
        if self.completed:
            return SessionStatus.COMPLETED
        if self.is_active:
            return SessionStatus.ACTIVE
        return SessionStatus.SCHEDULED

    @property
    def occupies_slot(self) -> bool:
        """True once the slot can no longer be started (active or completed)."""

        return self.completed or self.is_active

    @property
    def effective_cost(self) -> float:
        # Zero is treated like "unset"; a free session cannot be represented.
        if not self.session_cost:
            return config.session_cost_fallback()
        return float(self.session_cost)

    def payment_for(self, user_id: str) -> Payment:
        payment = self.payments.get(user_id)
        if payment is None:
            return Payment(paid=False, amount=config.payment_amount_fallback())
        return payment

    def is_hidden_for(self, user_id: str) -> bool:
        return user_id in self.hidden_for_user_ids

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "TrainingSession":
        raw_payments = data.get("payments") or {}
        payments: Dict[str, Payment] = {}
        if isinstance(raw_payments, Mapping):
            payments = {str(k): Payment.from_record(v) for k, v in raw_payments.items()}
        return cls(
            id=str(data["id"]),
            shift_id=str(data.get("shiftId") or MANUAL_SHIFT_ID),
            date=to_local_naive(data.get("date")),
            is_active=bool(data.get("isActive")),
            completed=bool(data.get("completed")),
            attendee_ids=_ids(data.get("attendeeIds")),
            hidden_for_user_ids=_ids(data.get("hiddenForUserIds")),
            notes=_optional_text(data.get("notes")),
            youtube_url=_optional_text(data.get("youtubeUrl")),
            turma_name=_optional_text(data.get("turmaName")),
            coach_id=_optional_text(data.get("coachId")),
            club_name=_optional_text(data.get("clubName")),
            session_cost=_optional_float(data.get("sessionCost")),
            is_cost_paid=bool(data.get("isCostPaid")),
            payments=payments,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shiftId": self.shift_id,
            "date": self.date.isoformat(timespec="seconds"),
            "isActive": self.is_active,
            "completed": self.completed,
            "attendeeIds": list(self.attendee_ids),
            "hiddenForUserIds": list(self.hidden_for_user_ids),
            "notes": self.notes,
            "youtubeUrl": self.youtube_url,
            "turmaName": self.turma_name,
            "coachId": self.coach_id,
            "clubName": self.club_name,
            "sessionCost": self.session_cost,
            "isCostPaid": self.is_cost_paid,
            "payments": {uid: p.to_record() for uid, p in self.payments.items()},
        }


def rsvp_id(shift_id: str, user_id: str, day: date) -> str:
    """Composite key: one RSVP per member, shift and date."""

    return f"{user_id}_{shift_id}_{iso_date(day)}"


@dataclass(frozen=True)
class ShiftRSVP:
    shift_id: str
    user_id: str
    date: date
    attending: bool

    @property
    def id(self) -> str:
        return rsvp_id(self.shift_id, self.user_id, self.date)

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> "ShiftRSVP":
        day = parse_date(data.get("date"))
        if day is None:
            raise ValueError(f"RSVP {data.get('id')!r} has no date")
        return cls(
            shift_id=str(data.get("shiftId") or ""),
            user_id=str(data.get("userId") or ""),
            date=day,
            attending=bool(data.get("attending")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shiftId": self.shift_id,
            "userId": self.user_id,
            "date": iso_date(self.date),
            "attending": self.attending,
        }


@dataclass(frozen=True)
class Occurrence:
    """A computed (shift, date) pair.  Never written to the store."""

    shift: Shift
    date: date
    starts_at: datetime
    week_offset: int
    label: str
    session: Optional[TrainingSession] = None

    @property
    def shift_id(self) -> str:
        return self.shift.id

    @property
    def is_active(self) -> bool:
        return self.session is not None and self.session.is_active


__all__ = [
    "MANUAL_SHIFT_ID",
    "Role",
    "SessionStatus",
    "User",
    "Shift",
    "Payment",
    "TrainingSession",
    "ShiftRSVP",
    "Occurrence",
    "rsvp_id",
]
