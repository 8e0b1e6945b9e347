"""
Trade Documents - Numbering Models
=====================================
Defines the NumberingPolicy dataclass: how document numbers are
formatted and when their sequence restarts.

Format: {PREFIX}-{YEAR}-{NNN}, e.g. INV-2026-003.

Doctrine:
- Same policy + sequence position + issue year → same document number.
- Sequence state lives in the Document Store, never in this module.
- No random() or current time inside number generation logic.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.primitives.kinds import NUMBER_PREFIXES, EntityKind

# ---------------------------------------------------------------------------
# Reset period identifiers
# ---------------------------------------------------------------------------

RESET_NEVER = "NEVER"        # One sequence for all years
RESET_YEARLY = "YEARLY"      # Sequence restarts each calendar year

VALID_RESET_PERIODS = frozenset({RESET_NEVER, RESET_YEARLY})

# ---------------------------------------------------------------------------
# NumberingPolicy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberingPolicy:
    """
    Declares how one document kind is numbered.

    Fields:
        kind: the document kind being numbered
        prefix: leading code (QUO, PRO, INV, CRN)
        padding: minimum digit width for the sequence (3 → "007")
        reset_period: when the sequence restarts (NEVER/YEARLY)
        separator: joins prefix, year and sequence
    """
    kind: EntityKind
    prefix: str
    padding: int = 3
    reset_period: str = RESET_YEARLY
    separator: str = "-"

    def __post_init__(self):
        if not isinstance(self.kind, EntityKind) or not self.kind.is_document:
            raise ValueError("kind must be a document EntityKind.")
        if not self.prefix or not isinstance(self.prefix, str):
            raise ValueError("prefix must be a non-empty string.")
        if not isinstance(self.padding, int) or self.padding < 1:
            raise ValueError("padding must be int >= 1.")
        if self.reset_period not in VALID_RESET_PERIODS:
            raise ValueError(
                f"reset_period '{self.reset_period}' is not valid. "
                f"Must be one of: {sorted(VALID_RESET_PERIODS)}"
            )

    @classmethod
    def default_for(cls, kind: EntityKind) -> NumberingPolicy:
        return cls(kind=kind, prefix=NUMBER_PREFIXES[kind])

    def format_number(self, year: int, sequence: int) -> str:
        """
        Format a document number from a year and sequence position.

        Sequences wider than padding are printed in full (INV-2026-1000).
        """
        if not isinstance(sequence, int) or sequence < 1:
            raise ValueError("sequence must be int >= 1.")
        padded = str(sequence).zfill(self.padding)
        return f"{self.prefix}{self.separator}{year}{self.separator}{padded}"


DEFAULT_POLICIES = {
    kind: NumberingPolicy.default_for(kind) for kind in NUMBER_PREFIXES
}
