"""
Trade Documents Core Audit — Activity Sink
============================================
The Lifecycle Service notifies an ActivitySink after every successful
operation. Notification is fire-and-forget: a failing sink is logged
and never rolls back, or fails, the operation that produced the entry.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import List, Optional, Protocol

from core.audit.models import ActivityEntry

logger = logging.getLogger("tradedocs.audit")


class ActivitySink(Protocol):
    def record(self, entry: ActivityEntry) -> None:
        ...  # pragma: no cover


def create_activity_entry(
    action: str,
    entity_kind: str,
    entity_id,
    description: str,
    occurred_at: datetime,
    number: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> ActivityEntry:
    """Create an immutable activity entry."""
    return ActivityEntry(
        entry_id=uuid.uuid4(),
        action=action,
        entity_kind=entity_kind,
        entity_id=str(entity_id),
        number=number,
        description=description,
        occurred_at=occurred_at,
        metadata=metadata or {},
    )


def notify_sink(sink: Optional[ActivitySink], entry: ActivityEntry) -> bool:
    """
    Deliver an entry to the sink.

    This function NEVER raises. Returns False when delivery failed.
    """
    if sink is None:
        return True
    try:
        sink.record(entry)
    except Exception as exc:
        logger.error(
            f"Activity sink failed for {entry.action} "
            f"({entry.entity_id}): {exc}",
            exc_info=True,
        )
        return False
    return True


class InMemoryActivityLog:
    """Thread-safe in-memory sink, newest entries last."""

    def __init__(self, max_entries: int = 1000) -> None:
        self._lock = threading.Lock()
        self._entries: List[ActivityEntry] = []
        self._max_entries = max_entries

    def record(self, entry: ActivityEntry) -> None:
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._max_entries]

    def entries(self, action: Optional[str] = None) -> tuple:
        with self._lock:
            if action is None:
                return tuple(self._entries)
            return tuple(e for e in self._entries if e.action == action)

    def recent(self, limit: int = 10) -> tuple:
        with self._lock:
            return tuple(reversed(self._entries[-limit:]))
