"""
Trade Documents Core Time — Public API
========================================
Explicit clock protocol and validity helpers.
Doctrine: NO datetime.now() in lifecycle logic.
"""

from core.time.clock import Clock, FixedClock, SystemClock
from core.time.temporal import days_after, is_past

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "days_after",
    "is_past",
]
