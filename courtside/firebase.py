"""Firestore client for courtside."""

from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .config import firebase_credentials
from .errors import ConfigurationMissing, normalize_store_error

_db_client: Optional[firestore.Client] = None


def get_db() -> firestore.Client:
    """Return a cached Firestore client.

    Raises :class:`ConfigurationMissing` when no credentials are configured;
    no connection is attempted in that case.
    """

    global _db_client
    if _db_client is not None:
        return _db_client

    creds = firebase_credentials()
    if not creds:
        raise ConfigurationMissing(
            "Firebase credentials missing: set the [firebase] secrets section"
            " or COURTSIDE_FIREBASE_CREDENTIALS",
            context="firebase.init",
        )

    try:
        if not firebase_admin._apps:  # guard against re-init
            firebase_admin.initialize_app(credentials.Certificate(creds))
        _db_client = firestore.client()
    except (ValueError, OSError) as exc:
        logging.exception("Firebase credentials rejected")
        raise ConfigurationMissing(
            f"Invalid Firebase credentials: {exc}", context="firebase.init"
        ) from exc
    except Exception as exc:
        logging.exception("Firebase init failed")
        raise normalize_store_error(exc, "firebase.init") from exc
    return _db_client


def reset_client() -> None:
    """Forget the cached client (used after credentials change)."""

    global _db_client
    _db_client = None


__all__ = ["get_db", "reset_client"]
