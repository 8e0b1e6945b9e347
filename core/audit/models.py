"""
Trade Documents Core Audit — Activity Entries
===============================================
Append-only activity records emitted after each successful lifecycle
operation. These are frozen dataclasses — once created, never modified.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


# ══════════════════════════════════════════════════════════════
# ACTIVITY ENTRY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ActivityEntry:
    """
    Immutable record of a lifecycle operation.

    action follows <kind>.<verb>, e.g. "invoice.created",
    "payment.recorded", "quotation.converted".
    """

    entry_id: uuid.UUID
    action: str
    entity_kind: str
    entity_id: str
    description: str
    occurred_at: datetime
    number: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.action or "." not in self.action:
            raise ValueError(
                f"action must follow <kind>.<verb> format, got '{self.action}'."
            )

    def to_dict(self) -> dict:
        return {
            "entry_id": str(self.entry_id),
            "action": self.action,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "number": self.number,
            "description": self.description,
            "occurred_at": self.occurred_at.isoformat(),
            "metadata": dict(self.metadata),
        }
