"""Application configuration.

Values are looked up in Streamlit secrets first, then in the environment,
then fall back to the defaults below.  Keeping the lookup here means the
scheduling and finance modules never touch ``st.secrets`` or ``os.environ``
themselves and can be tested with plain arguments.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import streamlit as st

DEFAULT_SESSION_COST = 25.0
DEFAULT_PAYMENT_AMOUNT = 15.0
DEFAULT_TIMEZONE = "Europe/Lisbon"

SHIFTS_COL = "shifts"
SESSIONS_COL = "sessions"
RSVPS_COL = "rsvps"
CLUBS_COL = "clubs"
USERS_COL = "users"


def get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    """Return ``name`` from Streamlit secrets or the environment."""

    try:
        value = st.secrets.get(name)
    except Exception:  # no secrets.toml outside a Streamlit deployment
        value = None
    if value is None or value == "":
        value = os.getenv(name)
    if value is None or value == "":
        return default
    return str(value)


def _float_setting(name: str, default: float) -> float:
    raw = get_setting(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning("Ignoring non-numeric %s=%r; using %s", name, raw, default)
        return default


def session_cost_fallback() -> float:
    """Cost charged for a session whose own cost is unset or zero."""

    return _float_setting("COURTSIDE_DEFAULT_SESSION_COST", DEFAULT_SESSION_COST)


def payment_amount_fallback() -> float:
    """Amount assumed for an attendee without a payment record."""

    return _float_setting("COURTSIDE_DEFAULT_PAYMENT_AMOUNT", DEFAULT_PAYMENT_AMOUNT)


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def club_timezone() -> ZoneInfo:
    """Return the club's local timezone."""

    name = get_setting("COURTSIDE_TIMEZONE", DEFAULT_TIMEZONE) or DEFAULT_TIMEZONE
    try:
        return _zone(name)
    except Exception:
        logging.warning("Unknown timezone %r; using %s", name, DEFAULT_TIMEZONE)
        return _zone(DEFAULT_TIMEZONE)


def firebase_credentials() -> Optional[Any]:
    """Return service-account credentials for ``firebase_admin``.

    Either the ``[firebase]`` secrets section (as a dict) or the path stored
    in ``COURTSIDE_FIREBASE_CREDENTIALS``.  ``None`` when neither is set.
    """

    try:
        section = st.secrets.get("firebase")
    except Exception:
        section = None
    if section:
        creds: Dict[str, Any] = dict(section)
        return creds
    return get_setting("COURTSIDE_FIREBASE_CREDENTIALS")


__all__ = [
    "DEFAULT_SESSION_COST",
    "DEFAULT_PAYMENT_AMOUNT",
    "DEFAULT_TIMEZONE",
    "SHIFTS_COL",
    "SESSIONS_COL",
    "RSVPS_COL",
    "CLUBS_COL",
    "USERS_COL",
    "get_setting",
    "session_cost_fallback",
    "payment_amount_fallback",
    "club_timezone",
    "firebase_credentials",
]
