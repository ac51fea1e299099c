"""Record-store access for shifts, sessions, RSVPs, clubs and users.

Every collection supports the same three calls: ``get_all``, ``save``
(upsert by ``id``) and ``delete``.  Store exceptions are logged once here
and re-raised as :class:`~courtside.errors.StoreError` subclasses; nothing
is retried.  The database handle is duck-typed: anything with
``collection(name).stream()`` and ``collection(name).document(id)`` with
``set``/``delete`` works, which is how the tests run without Firestore.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar

from . import config
from .errors import ConstraintViolation, normalize_store_error
from .models import Shift, ShiftRSVP, TrainingSession, User

_LOG = logging.getLogger(__name__)

T = TypeVar("T")


class _SnapshotLike:  # pragma: no cover - runtime duck type helper
    id: str

    def to_dict(self) -> Mapping[str, Any]: ...


class _DocumentLike:  # pragma: no cover - runtime duck type helper
    def set(self, document_data: Mapping[str, Any]): ...

    def delete(self): ...


class _CollectionLike:  # pragma: no cover - runtime duck type helper
    def stream(self): ...

    def document(self, document_id: str) -> _DocumentLike: ...


class _DatabaseLike:  # pragma: no cover - runtime duck type helper
    def collection(self, name: str) -> _CollectionLike: ...


def _snapshot_payload(snap: Any) -> Dict[str, Any]:
    try:
        data = snap.to_dict() or {}
    except Exception:
        data = {}
    if not isinstance(data, dict):
        return {}
    payload = dict(data)
    payload.setdefault("id", getattr(snap, "id", ""))
    return payload


class Collection(Generic[T]):
    """One store collection mapped to an entity type."""

    def __init__(
        self,
        db: _DatabaseLike,
        name: str,
        parse: Callable[[Mapping[str, Any]], T],
        dump: Callable[[T], Dict[str, Any]],
        key: Callable[[T], str],
    ) -> None:
        self._db = db
        self.name = name
        self._parse = parse
        self._dump = dump
        self._key = key

    def _ref(self) -> _CollectionLike:
        return self._db.collection(self.name)

    def get_all(self) -> List[T]:
        """Return every parseable record; malformed rows are skipped."""

        context = f"{self.name}.get_all"
        try:
            snapshots = list(self._ref().stream())
        except Exception as exc:
            _LOG.error("Store error [%s]: %s", context, exc)
            raise normalize_store_error(exc, context) from exc

        items: List[T] = []
        for snap in snapshots:
            payload = _snapshot_payload(snap)
            try:
                items.append(self._parse(payload))
            except (KeyError, TypeError, ValueError) as exc:
                _LOG.warning(
                    "Skipping malformed %s record %r: %s",
                    self.name,
                    payload.get("id"),
                    exc,
                )
        return items

    def save(self, item: T) -> T:
        """Upsert ``item`` by id and return it."""

        context = f"{self.name}.save"
        doc_id = self._key(item)
        if not doc_id:
            raise ValueError(f"{self.name} record needs an id")
        try:
            self._ref().document(doc_id).set(self._dump(item))
        except Exception as exc:
            _LOG.error("Store error [%s]: %s", context, exc)
            raise normalize_store_error(exc, context) from exc
        return item

    def delete(self, doc_id: str) -> None:
        context = f"{self.name}.delete"
        try:
            self._ref().document(doc_id).delete()
        except Exception as exc:
            _LOG.error("Store error [%s]: %s", context, exc)
            raise normalize_store_error(exc, context) from exc


def _club_key(name: str) -> str:
    # Firestore document ids cannot contain "/".
    return " ".join(name.split()).casefold().replace("/", "-")


@dataclass(frozen=True)
class Snapshot:
    """Everything the scheduling core reads, fetched in one refresh."""

    shifts: Tuple[Shift, ...] = ()
    sessions: Tuple[TrainingSession, ...] = ()
    rsvps: Tuple[ShiftRSVP, ...] = ()
    clubs: Tuple[str, ...] = ()
    users: Tuple[User, ...] = ()

    def shift(self, shift_id: str) -> Optional[Shift]:
        return next((s for s in self.shifts if s.id == shift_id), None)

    def session(self, session_id: str) -> Optional[TrainingSession]:
        return next((s for s in self.sessions if s.id == session_id), None)

    def user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def rsvps_for(self, shift_id: str, day: date) -> List[ShiftRSVP]:
        return [r for r in self.rsvps if r.shift_id == shift_id and r.date == day]


class Repository:
    """Typed access to the courtside collections."""

    def __init__(self, db: _DatabaseLike) -> None:
        self.db = db
        self.shifts: Collection[Shift] = Collection(
            db, config.SHIFTS_COL, Shift.from_record, Shift.to_record, lambda s: s.id
        )
        self.sessions: Collection[TrainingSession] = Collection(
            db,
            config.SESSIONS_COL,
            TrainingSession.from_record,
            TrainingSession.to_record,
            lambda s: s.id,
        )
        self.rsvps: Collection[ShiftRSVP] = Collection(
            db, config.RSVPS_COL, ShiftRSVP.from_record, ShiftRSVP.to_record, lambda r: r.id
        )
        self.users: Collection[User] = Collection(
            db, config.USERS_COL, User.from_record, User.to_record, lambda u: u.id
        )
        self._clubs: Collection[str] = Collection(
            db,
            config.CLUBS_COL,
            lambda data: str(data.get("name") or "").strip(),
            lambda name: {"name": name},
            _club_key,
        )

    @classmethod
    def from_firestore(cls) -> "Repository":
        """Build a repository on the configured Firestore project."""

        from .firebase import get_db

        return cls(get_db())

    # ---- clubs -------------------------------------------------------------

    def list_clubs(self) -> List[str]:
        names = [name for name in self._clubs.get_all() if name]
        return sorted(names, key=str.casefold)

    def add_club(self, name: str) -> str:
        cleaned = " ".join(str(name or "").split())
        if not cleaned:
            raise ValueError("Club name is required")
        existing = {_club_key(n) for n in self.list_clubs()}
        if _club_key(cleaned) in existing:
            raise ConstraintViolation(
                f"Club {cleaned!r} already exists", code="duplicate", context="clubs.save"
            )
        self._clubs.save(cleaned)
        _LOG.info("Added club %s", cleaned)
        return cleaned

    def remove_club(self, name: str) -> None:
        self._clubs.delete(_club_key(name))

    # ---- users -------------------------------------------------------------

    def save_user(self, user: User) -> User:
        """Upsert ``user``; phone numbers must be unique across users."""

        phone = user.phone.strip()
        if phone:
            for other in self.users.get_all():
                if other.id != user.id and other.phone.strip() == phone:
                    raise ConstraintViolation(
                        f"Phone {phone} is already registered",
                        code="duplicate",
                        context="users.save",
                    )
        return self.users.save(user)

    # ---- snapshot ----------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Fetch every collection.  Each call reads fresh data."""

        return Snapshot(
            shifts=tuple(self.shifts.get_all()),
            sessions=tuple(self.sessions.get_all()),
            rsvps=tuple(self.rsvps.get_all()),
            clubs=tuple(self.list_clubs()),
            users=tuple(self.users.get_all()),
        )


__all__ = ["Collection", "Repository", "Snapshot"]
