from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.document_store.models import DocumentSequence, StoredEntity
from core.document_store.persistence import DjangoDocumentStore
from core.errors import ValidationError
from core.primitives.document import Invoice, InvoiceStatus
from core.primitives.kinds import EntityKind
from core.primitives.party import Party

pytestmark = pytest.mark.django_db(transaction=True)


NOW = datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc)
CUSTOMER_ID = uuid.uuid5(uuid.NAMESPACE_URL, "tradedocs-store-customer")


def _invoice(number: str = "INV-2026-001", status: InvoiceStatus = InvoiceStatus.SENT) -> Invoice:
    return Invoice(
        document_id=uuid.uuid4(),
        number=number,
        customer_id=CUSTOMER_ID,
        items=(),
        subtotal=Decimal("2500"),
        discount_amount=Decimal("250"),
        vat_amount=Decimal("360"),
        additional_tax_amount=Decimal("0"),
        total=Decimal("2610"),
        status=status,
        issue_date=NOW,
        created_at=NOW,
        updated_at=NOW,
    )


def test_insert_persists_snapshot_and_status() -> None:
    store = DjangoDocumentStore()
    invoice = _invoice()
    store.insert(EntityKind.INVOICE, invoice)

    row = StoredEntity.objects.get(kind="invoice", entity_id=str(invoice.document_id))
    assert row.status == "sent"
    assert row.payload["number"] == "INV-2026-001"
    assert store.get_by_id(EntityKind.INVOICE, invoice.document_id) == invoice


def test_duplicate_insert_rejected() -> None:
    store = DjangoDocumentStore()
    invoice = _invoice()
    store.insert(EntityKind.INVOICE, invoice)
    with pytest.raises(ValidationError, match="already exists"):
        store.insert(EntityKind.INVOICE, invoice)
    assert StoredEntity.objects.count() == 1


def test_update_replaces_payload_and_status() -> None:
    store = DjangoDocumentStore()
    invoice = _invoice()
    store.insert(EntityKind.INVOICE, invoice)
    store.update(EntityKind.INVOICE, invoice.evolve(status=InvoiceStatus.OVERDUE))

    assert store.get_by_id(EntityKind.INVOICE, invoice.document_id).status == InvoiceStatus.OVERDUE
    assert store.list_by_status(EntityKind.INVOICE, InvoiceStatus.SENT) == ()


def test_update_absent_rejected() -> None:
    with pytest.raises(ValidationError, match="does not exist"):
        DjangoDocumentStore().update(EntityKind.INVOICE, _invoice())


def test_list_by_status_in_creation_order() -> None:
    store = DjangoDocumentStore()
    first = _invoice("INV-2026-001")
    second = _invoice("INV-2026-002", InvoiceStatus.DRAFT)
    third = _invoice("INV-2026-003")
    for invoice in (first, second, third):
        store.insert(EntityKind.INVOICE, invoice)

    assert [i.number for i in store.list_by_status(EntityKind.INVOICE)] == [
        "INV-2026-001", "INV-2026-002", "INV-2026-003",
    ]
    assert store.list_by_status(EntityKind.INVOICE, "sent") == (first, third)


def test_next_sequence_per_kind_and_year() -> None:
    store = DjangoDocumentStore()
    assert [store.next_sequence(EntityKind.INVOICE, 2026) for _ in range(3)] == [1, 2, 3]
    assert store.next_sequence(EntityKind.INVOICE, 2027) == 1
    assert DocumentSequence.objects.get(kind="invoice", year=2026).last_value == 3


def test_failed_transaction_leaves_nothing_behind() -> None:
    store = DjangoDocumentStore()
    party = Party(party_id=CUSTOMER_ID, name="Acme Ltd")
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.insert(EntityKind.CUSTOMER, party)
            store.next_sequence(EntityKind.INVOICE, 2026)
            raise RuntimeError("boom")

    assert StoredEntity.objects.count() == 0
    assert store.next_sequence(EntityKind.INVOICE, 2026) == 1


def test_on_commit_runs_only_after_commit() -> None:
    store = DjangoDocumentStore()
    calls: list[str] = []
    with store.transaction():
        store.insert(EntityKind.INVOICE, _invoice())
        store.on_commit(lambda: calls.append("committed"))
        assert calls == []
    assert calls == ["committed"]

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.on_commit(lambda: calls.append("rolled back"))
            raise RuntimeError("boom")
    assert calls == ["committed"]


def test_failing_callback_does_not_undo_commit() -> None:
    store = DjangoDocumentStore()

    def explode() -> None:
        raise RuntimeError("sink down")

    with store.transaction():
        store.insert(EntityKind.INVOICE, _invoice())
        store.on_commit(explode)

    assert StoredEntity.objects.count() == 1
