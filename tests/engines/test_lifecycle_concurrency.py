"""Concurrent conversions and payments against one shared store."""

import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from core.document_store import InMemoryDocumentStore
from core.errors import AlreadyConvertedError, LifecycleError, OverPaymentError
from core.primitives.document import InvoiceStatus
from core.primitives.item import Product
from core.primitives.kinds import EntityKind
from core.primitives.party import Party
from core.time import FixedClock
from engines.documents.commands import LineItemRequest
from engines.documents.services import DocumentLifecycleService

NOW = datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc)
WORKERS = 8


def _setup():
    service = DocumentLifecycleService(InMemoryDocumentStore(), clock=FixedClock(NOW))
    customer = service.register_customer(
        Party(party_id=uuid.uuid4(), name="Acme Ltd", balance=Decimal("10000")),
    )
    product = service.register_product(Product(
        product_id=uuid.uuid4(), name="Office Chair", sku="CHR-001",
        selling_price=Decimal("500"), current_stock=100,
    ))
    quotation = service.create_quotation(
        customer.party_id, [LineItemRequest(product_id=product.product_id, quantity=5)],
    )
    service.transition_status(quotation.document_id, EntityKind.QUOTATION, "sent")
    service.transition_status(quotation.document_id, EntityKind.QUOTATION, "accepted")
    return service, customer, product, quotation


def _run_all(target, count=WORKERS):
    barrier = threading.Barrier(count)
    outcomes = []
    outcomes_lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            result = target()
        except LifecycleError as exc:
            result = exc
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return outcomes


class TestConcurrentConversion:
    def test_exactly_one_proforma(self):
        service, _, _, quotation = _setup()
        outcomes = _run_all(lambda: service.convert_quotation_to_proforma(quotation.document_id))

        successes = [o for o in outcomes if not isinstance(o, Exception)]
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(successes) == 1
        assert len(failures) == WORKERS - 1
        assert all(isinstance(f, AlreadyConvertedError) for f in failures)
        assert len(service.list_documents(EntityKind.PROFORMA)) == 1

    def test_exactly_one_invoice_and_one_stock_post(self):
        service, _, product, quotation = _setup()
        _run_all(lambda: service.convert_quotation_to_invoice(quotation.document_id))

        assert len(service.list_documents(EntityKind.INVOICE)) == 1
        assert len(service.get_stock_movements()) == 1
        assert service.get_product(product.product_id).current_stock == 95


class TestConcurrentPayments:
    def test_payments_never_overpay(self):
        service, customer, _, quotation = _setup()
        invoice = service.convert_quotation_to_invoice(quotation.document_id)
        assert invoice.total == Decimal("2900.00")

        outcomes = _run_all(
            lambda: service.record_payment(invoice.document_id, "1000", "cash", "R"),
        )

        accepted = [o for o in outcomes if not isinstance(o, Exception)]
        rejected = [o for o in outcomes if isinstance(o, Exception)]
        assert len(accepted) == 2
        assert all(isinstance(r, OverPaymentError) for r in rejected)

        stored = service.get_document(invoice.document_id, EntityKind.INVOICE)
        assert stored.amount_paid == Decimal("2000.00")
        assert stored.balance == Decimal("900.00")
        assert stored.status == InvoiceStatus.SENT
        assert service.get_customer(customer.party_id).balance == Decimal("8000.00")

    def test_settling_race_leaves_invoice_paid_once(self):
        service, _, _, quotation = _setup()
        invoice = service.convert_quotation_to_invoice(quotation.document_id)

        _run_all(lambda: service.record_payment(invoice.document_id, "2900", "bank", "R"))

        stored = service.get_document(invoice.document_id, EntityKind.INVOICE)
        assert stored.status == InvoiceStatus.PAID
        assert stored.amount_paid == Decimal("2900.00")
        assert len(service.list_payments(invoice.document_id)) == 1
