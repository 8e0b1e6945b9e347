"""
Trade Documents Core Audit — Public API
=========================================
Activity entries and the fire-and-forget activity sink.
"""

from core.audit.functions import (
    ActivitySink,
    InMemoryActivityLog,
    create_activity_entry,
    notify_sink,
)
from core.audit.models import ActivityEntry

__all__ = [
    "ActivityEntry",
    "ActivitySink",
    "InMemoryActivityLog",
    "create_activity_entry",
    "notify_sink",
]
