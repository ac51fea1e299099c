"""Revenue, cost and profit over completed sessions.

Everything here is read-only and recomputed from the sessions passed in;
payments can be edited after a session is completed, so totals are never
cached.  Only ``completed`` sessions count.  Each attendee contributes
their payment record, or an unpaid default when they have none.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

import pandas as pd
from rapidfuzz import fuzz

from ..models import TrainingSession

LEDGER_COLUMNS = [
    "session_id",
    "date",
    "turma",
    "club",
    "attendees",
    "paid_count",
    "received",
    "cost",
    "cost_paid",
    "profit",
]

_FUZZY_CUTOFF = 80


@dataclass(frozen=True)
class FinanceSummary:
    revenue: float
    cost: float
    profit: float
    paid_count: int
    pending_count: int


def _completed(sessions: Iterable[TrainingSession]) -> List[TrainingSession]:
    return [s for s in sessions if s.completed]


def session_revenue(session: TrainingSession) -> float:
    total = 0.0
    for user_id in session.attendee_ids:
        payment = session.payment_for(user_id)
        if payment.paid:
            total += payment.amount
    return total


def booked_cost(session: TrainingSession) -> float:
    """Cost counted in the totals; zero until the cost is marked paid."""

    return session.effective_cost if session.is_cost_paid else 0.0


def session_profit(session: TrainingSession) -> float:
    """Paid amounts minus the session's cost, paid or not."""

    return session_revenue(session) - session.effective_cost


def revenue(sessions: Iterable[TrainingSession]) -> float:
    return sum(session_revenue(s) for s in _completed(sessions))


def cost(sessions: Iterable[TrainingSession]) -> float:
    return sum(booked_cost(s) for s in _completed(sessions))


def profit(sessions: Iterable[TrainingSession]) -> float:
    completed = _completed(sessions)
    return revenue(completed) - cost(completed)


def paid_count(sessions: Iterable[TrainingSession]) -> int:
    return sum(
        1
        for s in _completed(sessions)
        for user_id in s.attendee_ids
        if s.payment_for(user_id).paid
    )


def pending_count(sessions: Iterable[TrainingSession]) -> int:
    return sum(
        1
        for s in _completed(sessions)
        for user_id in s.attendee_ids
        if not s.payment_for(user_id).paid
    )


def summarize(sessions: Iterable[TrainingSession]) -> FinanceSummary:
    completed = _completed(sessions)
    total_revenue = revenue(completed)
    total_cost = cost(completed)
    return FinanceSummary(
        revenue=total_revenue,
        cost=total_cost,
        profit=total_revenue - total_cost,
        paid_count=paid_count(completed),
        pending_count=pending_count(completed),
    )


def matches_search(session: TrainingSession, search: Optional[str]) -> bool:
    """Case-insensitive substring match on the group label, tolerating typos."""

    query = (search or "").strip().casefold()
    if not query:
        return True
    label = (session.turma_name or "").casefold()
    if not label:
        return False
    if query in label:
        return True
    return fuzz.partial_ratio(query, label) >= _FUZZY_CUTOFF


def ledger_frame(
    sessions: Iterable[TrainingSession], search: Optional[str] = None
) -> pd.DataFrame:
    """One row per completed session, newest first."""

    rows = []
    for s in _completed(sessions):
        if not matches_search(s, search):
            continue
        rows.append(
            {
                "session_id": s.id,
                "date": s.date,
                "turma": s.turma_name or "",
                "club": s.club_name or "",
                "attendees": len(s.attendee_ids),
                "paid_count": sum(1 for u in s.attendee_ids if s.payment_for(u).paid),
                "received": session_revenue(s),
                "cost": s.effective_cost,
                "cost_paid": s.is_cost_paid,
                "profit": session_profit(s),
            }
        )
    df = pd.DataFrame(rows, columns=LEDGER_COLUMNS)
    if df.empty:
        return df
    return df.sort_values("date", ascending=False, kind="stable").reset_index(drop=True)


__all__ = [
    "FinanceSummary",
    "LEDGER_COLUMNS",
    "session_revenue",
    "booked_cost",
    "session_profit",
    "revenue",
    "cost",
    "profit",
    "paid_count",
    "pending_count",
    "summarize",
    "matches_search",
    "ledger_frame",
]
