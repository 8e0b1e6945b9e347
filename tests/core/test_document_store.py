"""
Trade Documents In-Memory Document Store — Test Suite
=======================================================
Keyed storage, status listing, sequences, and the all-or-nothing
transaction with post-commit callbacks.
"""

import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.document_store import InMemoryDocumentStore
from core.errors import ValidationError
from core.primitives.document import Quotation, QuotationStatus
from core.primitives.item import Product
from core.primitives.kinds import EntityKind

NOW = datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc)
CUSTOMER_ID = uuid.uuid4()


def _quotation(number="QUO-2026-001", status=QuotationStatus.DRAFT):
    return Quotation(
        document_id=uuid.uuid4(),
        number=number,
        customer_id=CUSTOMER_ID,
        items=(),
        subtotal=Decimal("100"),
        discount_amount=Decimal("0"),
        vat_amount=Decimal("16"),
        additional_tax_amount=Decimal("0"),
        total=Decimal("116"),
        status=status,
        issue_date=NOW,
        created_at=NOW,
        updated_at=NOW,
    )


def _product(sku="CHR-001"):
    return Product(
        product_id=uuid.uuid4(), name="Chair", sku=sku, selling_price=Decimal("500"),
    )


# ══════════════════════════════════════════════════════════════
# BASIC OPERATIONS
# ══════════════════════════════════════════════════════════════

class TestInsertAndRead:
    def test_insert_then_get(self):
        store = InMemoryDocumentStore()
        quotation = _quotation()
        store.insert(EntityKind.QUOTATION, quotation)
        assert store.get_by_id(EntityKind.QUOTATION, quotation.document_id) == quotation
        assert store.get_by_id("quotation", str(quotation.document_id)) == quotation

    def test_missing_returns_none(self):
        assert InMemoryDocumentStore().get_by_id(EntityKind.INVOICE, uuid.uuid4()) is None

    def test_duplicate_id_rejected(self):
        store = InMemoryDocumentStore()
        quotation = _quotation()
        store.insert(EntityKind.QUOTATION, quotation)
        with pytest.raises(ValidationError, match="already exists"):
            store.insert(EntityKind.QUOTATION, quotation)

    def test_wrong_entity_type_rejected(self):
        with pytest.raises(ValidationError, match="accepts Quotation"):
            InMemoryDocumentStore().insert(EntityKind.QUOTATION, _product())

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError, match="Unknown entity kind"):
            InMemoryDocumentStore().insert("purchase_order", _quotation())


class TestUpdate:
    def test_full_replacement(self):
        store = InMemoryDocumentStore()
        quotation = _quotation()
        store.insert(EntityKind.QUOTATION, quotation)
        sent = quotation.evolve(status=QuotationStatus.SENT)
        store.update(EntityKind.QUOTATION, sent)
        assert store.get_by_id(EntityKind.QUOTATION, quotation.document_id).status == QuotationStatus.SENT

    def test_absent_id_rejected(self):
        with pytest.raises(ValidationError, match="does not exist"):
            InMemoryDocumentStore().update(EntityKind.QUOTATION, _quotation())


class TestListByStatus:
    def test_insertion_order_and_filter(self):
        store = InMemoryDocumentStore()
        first = _quotation("QUO-2026-001")
        second = _quotation("QUO-2026-002", QuotationStatus.SENT)
        third = _quotation("QUO-2026-003")
        for q in (first, second, third):
            store.insert(EntityKind.QUOTATION, q)
        assert store.list_by_status(EntityKind.QUOTATION) == (first, second, third)
        assert store.list_by_status(EntityKind.QUOTATION, QuotationStatus.DRAFT) == (first, third)
        assert store.list_by_status(EntityKind.QUOTATION, "sent") == (second,)

    def test_update_keeps_position(self):
        store = InMemoryDocumentStore()
        first, second = _quotation("QUO-2026-001"), _quotation("QUO-2026-002")
        store.insert(EntityKind.QUOTATION, first)
        store.insert(EntityKind.QUOTATION, second)
        store.update(EntityKind.QUOTATION, first.evolve(notes="edited"))
        assert [q.number for q in store.list_by_status(EntityKind.QUOTATION)] == [
            "QUO-2026-001", "QUO-2026-002",
        ]

    def test_entities_without_status(self):
        store = InMemoryDocumentStore()
        store.insert(EntityKind.PRODUCT, _product())
        assert store.count(EntityKind.PRODUCT) == 1
        assert store.list_by_status(EntityKind.PRODUCT, "draft") == ()


class TestNextSequence:
    def test_monotonic_per_kind_and_year(self):
        store = InMemoryDocumentStore()
        assert [store.next_sequence(EntityKind.INVOICE, 2026) for _ in range(3)] == [1, 2, 3]
        assert store.next_sequence(EntityKind.INVOICE, 2027) == 1
        assert store.next_sequence(EntityKind.QUOTATION, 2026) == 1

    def test_concurrent_draws_are_unique(self):
        store = InMemoryDocumentStore()
        drawn = []
        lock = threading.Lock()

        def draw():
            for _ in range(50):
                value = store.next_sequence(EntityKind.INVOICE, 2026)
                with lock:
                    drawn.append(value)

        threads = [threading.Thread(target=draw) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(drawn) == list(range(1, 201))


# ══════════════════════════════════════════════════════════════
# TRANSACTIONS
# ══════════════════════════════════════════════════════════════

class TestTransaction:
    def test_commit_publishes_all_writes(self):
        store = InMemoryDocumentStore()
        quotation, product = _quotation(), _product()
        with store.transaction():
            store.insert(EntityKind.QUOTATION, quotation)
            store.insert(EntityKind.PRODUCT, product)
            assert store.get_by_id(EntityKind.PRODUCT, product.product_id) == product
        assert store.count(EntityKind.QUOTATION) == 1
        assert store.count(EntityKind.PRODUCT) == 1

    def test_failure_discards_all_writes(self):
        store = InMemoryDocumentStore()
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert(EntityKind.QUOTATION, _quotation())
                store.next_sequence(EntityKind.QUOTATION, 2026)
                raise RuntimeError("boom")
        assert store.count(EntityKind.QUOTATION) == 0
        assert store.next_sequence(EntityKind.QUOTATION, 2026) == 1

    def test_nested_failure_rolls_back_to_savepoint(self):
        store = InMemoryDocumentStore()
        kept, dropped = _quotation("QUO-2026-001"), _quotation("QUO-2026-002")
        with store.transaction():
            store.insert(EntityKind.QUOTATION, kept)
            with pytest.raises(ValidationError):
                with store.transaction():
                    store.insert(EntityKind.QUOTATION, dropped)
                    store.insert(EntityKind.QUOTATION, dropped)
        assert store.list_by_status(EntityKind.QUOTATION) == (kept,)

    def test_readers_on_other_threads_wait_for_commit(self):
        store = InMemoryDocumentStore()
        quotation = _quotation()
        inside = threading.Event()
        release = threading.Event()
        seen = []

        def writer():
            with store.transaction():
                store.insert(EntityKind.QUOTATION, quotation)
                inside.set()
                release.wait(5)

        thread = threading.Thread(target=writer)
        thread.start()
        inside.wait(5)
        reader = threading.Thread(
            target=lambda: seen.append(store.get_by_id(EntityKind.QUOTATION, quotation.document_id))
        )
        reader.start()
        release.set()
        reader.join(5)
        thread.join(5)
        assert seen == [quotation]


class TestOnCommit:
    def test_runs_after_commit(self):
        store = InMemoryDocumentStore()
        calls = []
        with store.transaction():
            store.on_commit(lambda: calls.append("done"))
            assert calls == []
        assert calls == ["done"]

    def test_dropped_on_rollback(self):
        store = InMemoryDocumentStore()
        calls = []
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.on_commit(lambda: calls.append("done"))
                raise RuntimeError("boom")
        assert calls == []

    def test_outside_transaction_runs_immediately(self):
        calls = []
        InMemoryDocumentStore().on_commit(lambda: calls.append("now"))
        assert calls == ["now"]

    def test_failing_callback_logged_not_raised(self, caplog):
        store = InMemoryDocumentStore()
        calls = []

        def explode():
            raise RuntimeError("sink down")

        with caplog.at_level("ERROR", logger="tradedocs.store"):
            with store.transaction():
                store.insert(EntityKind.PRODUCT, _product())
                store.on_commit(explode)
                store.on_commit(lambda: calls.append("second"))
        assert store.count(EntityKind.PRODUCT) == 1
        assert calls == ["second"]
        assert "sink down" in caplog.text
