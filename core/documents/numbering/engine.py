"""
Trade Documents - Numbering Engine
=====================================
Deterministic document number generation from a NumberingPolicy plus a
sequence drawn from the Document Store.

Doctrine:
- Stateless engine: given the same inputs, always produces the same output.
- Sequence state is managed externally (Document Store).
- Time is passed explicitly — never read from system clock here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core.documents.numbering.models import (
    DEFAULT_POLICIES,
    RESET_NEVER,
    NumberingPolicy,
)
from core.primitives.kinds import EntityKind


def sequence_year(policy: NumberingPolicy, issued_at: datetime) -> int:
    """
    Year bucket the sequence is drawn from.

    - NEVER  → 0 (one bucket for all years)
    - YEARLY → UTC calendar year of issued_at
    """
    if policy.reset_period == RESET_NEVER:
        return 0
    return _utc(issued_at).year


def _utc(issued_at: datetime) -> datetime:
    if issued_at.tzinfo is None:
        return issued_at.replace(tzinfo=timezone.utc)
    return issued_at.astimezone(timezone.utc)


def generate_document_number(
    *,
    policy: NumberingPolicy,
    sequence: int,
    issued_at: datetime,
) -> str:
    """
    Generate a document number deterministically.

    Args:
        policy: the NumberingPolicy for the document kind
        sequence: the 1-based position drawn from the store
        issued_at: the document's issue datetime (supplies the year)
    """
    if not isinstance(sequence, int) or sequence < 1:
        raise ValueError("sequence must be int >= 1.")
    if not isinstance(issued_at, datetime):
        raise ValueError("issued_at must be datetime.")
    return policy.format_number(_utc(issued_at).year, sequence)


def next_document_number(store, kind: EntityKind, issued_at: datetime) -> str:
    """Advance the store's sequence for kind and format the number."""
    policy = DEFAULT_POLICIES[kind]
    sequence = store.next_sequence(kind, sequence_year(policy, issued_at))
    return generate_document_number(
        policy=policy, sequence=sequence, issued_at=issued_at,
    )
