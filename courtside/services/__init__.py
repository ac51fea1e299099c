"""Stateful managers and aggregations built on the scheduling core."""

from .attendance import AttendanceCount, AttendanceLedger
from .finance import (
    FinanceSummary,
    ledger_frame,
    pending_count,
    profit,
    revenue,
    session_profit,
    summarize,
)
from .finance import cost as finance_cost
from .lifecycle import SessionLifecycle, session_coach_id, visible_history

__all__ = [
    "AttendanceCount",
    "AttendanceLedger",
    "FinanceSummary",
    "ledger_frame",
    "pending_count",
    "profit",
    "revenue",
    "finance_cost",
    "session_profit",
    "summarize",
    "SessionLifecycle",
    "session_coach_id",
    "visible_history",
]
