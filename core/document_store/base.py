"""
Trade Documents Document Store — Contract and Entity Codec
============================================================
The store is a dumb keyed container plus per-kind numbering. It holds
no business rules; it only checks that what it is given is the right
shape for the kind.

Every implementation provides:
    insert(kind, entity)            — new entity; duplicate id rejected
    get_by_id(kind, entity_id)      — snapshot or None
    list_by_status(kind, status)    — snapshots in insertion order
    update(kind, entity)            — full-entity replacement
    next_sequence(kind, year)       — monotonically increasing counter
    transaction()                   — all-or-nothing unit of work
    on_commit(callback)             — run callback once the unit commits
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Tuple

from core.errors import ValidationError
from core.primitives.document import DOCUMENT_CLASSES
from core.primitives.inventory import StockMovement
from core.primitives.item import Product
from core.primitives.kinds import EntityKind, parse_kind
from core.primitives.party import Party
from core.primitives.payment import Payment
from core.tax.models import TaxDefinition


# ══════════════════════════════════════════════════════════════
# STORE PROTOCOL
# ══════════════════════════════════════════════════════════════

class DocumentStore(Protocol):
    def insert(self, kind: EntityKind, entity: Any) -> Any: ...

    def get_by_id(self, kind: EntityKind, entity_id: Any) -> Optional[Any]: ...

    def list_by_status(
        self, kind: EntityKind, status: Optional[Any] = None,
    ) -> Tuple[Any, ...]: ...

    def update(self, kind: EntityKind, entity: Any) -> Any: ...

    def next_sequence(self, kind: EntityKind, year: int) -> int: ...

    def transaction(self) -> AbstractContextManager: ...

    def on_commit(self, callback: Callable[[], None]) -> None: ...


# ══════════════════════════════════════════════════════════════
# ENTITY CODEC
# ══════════════════════════════════════════════════════════════

ENTITY_CLASSES = {
    EntityKind.CUSTOMER: Party,
    EntityKind.SUPPLIER: Party,
    EntityKind.PRODUCT: Product,
    EntityKind.TAX: TaxDefinition,
    EntityKind.PAYMENT: Payment,
    EntityKind.STOCK_MOVEMENT: StockMovement,
    **DOCUMENT_CLASSES,
}

ID_FIELDS = {
    EntityKind.CUSTOMER: "party_id",
    EntityKind.SUPPLIER: "party_id",
    EntityKind.PRODUCT: "product_id",
    EntityKind.TAX: "tax_id",
    EntityKind.PAYMENT: "payment_id",
    EntityKind.STOCK_MOVEMENT: "movement_id",
    EntityKind.QUOTATION: "document_id",
    EntityKind.PROFORMA: "document_id",
    EntityKind.INVOICE: "document_id",
    EntityKind.CREDIT_NOTE: "document_id",
}


def check_entity(kind, entity) -> EntityKind:
    """Validate kind and entity type; returns the parsed kind."""
    try:
        kind = parse_kind(kind)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    expected = ENTITY_CLASSES[kind]
    if not isinstance(entity, expected):
        raise ValidationError(
            f"{kind.value} store accepts {expected.__name__}, "
            f"got {type(entity).__name__}."
        )
    return kind


def entity_key(entity_id: Any) -> str:
    return str(entity_id)


def entity_id_of(kind: EntityKind, entity: Any) -> Any:
    return getattr(entity, ID_FIELDS[kind])


def status_key(status: Any) -> Optional[str]:
    """Normalise a status enum or string to its stored value."""
    if status is None:
        return None
    if isinstance(status, Enum):
        return status.value
    return str(status)


def status_of(entity: Any) -> Optional[str]:
    return status_key(getattr(entity, "status", None))


def encode_entity(kind: EntityKind, entity: Any) -> dict:
    return entity.to_dict()


def decode_entity(kind: EntityKind, payload: dict) -> Any:
    return ENTITY_CLASSES[kind].from_dict(payload)
