"""
Trade Documents Core Time — Validity Helpers
==============================================
Pure functions for document validity windows and due dates.
All functions take explicit datetime arguments — no hidden clock access.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional


def days_after(start: datetime, days: int) -> datetime:
    """Deadline `days` whole days after start."""
    if not isinstance(days, int) or days < 0:
        raise ValueError("days must be non-negative integer.")
    return start + timedelta(days=days)


def is_past(deadline: Optional[datetime], now: datetime) -> bool:
    """True once now is strictly after the deadline. No deadline never lapses."""
    if deadline is None:
        return False
    return now > deadline
