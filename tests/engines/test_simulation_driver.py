"""Simulation driver: one-shot activities and the background loop."""

import random
import threading
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.config import LifecycleConfig
from core.document_store import InMemoryDocumentStore
from core.errors import InvalidTransitionError
from core.primitives.document import InvoiceStatus, ProformaStatus, QuotationStatus
from core.primitives.inventory import MovementType
from core.primitives.item import Product
from core.primitives.kinds import EntityKind
from core.primitives.party import Party
from core.time import FixedClock
from engines.simulation import SimulationDriver
from engines.documents.services import DocumentLifecycleService

NOW = datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


class _FixedDraw(random.Random):
    """Random whose random() always returns one value."""

    def __init__(self, draw):
        super().__init__(0)
        self._draw = draw

    def random(self):
        return self._draw


def _service(seeded=True):
    service = DocumentLifecycleService(
        InMemoryDocumentStore(),
        clock=FixedClock(NOW),
        config=LifecycleConfig(simulation_interval_seconds=0.01),
    )
    if seeded:
        service.register_customer(Party(party_id=uuid.uuid4(), name="Acme Ltd"))
        service.register_product(Product(
            product_id=uuid.uuid4(), name="Office Chair", sku="CHR-001",
            selling_price=Decimal("500"), current_stock=1000,
        ))
    return service


class TestRunOnce:
    def test_interval_defaults_to_config(self):
        driver = SimulationDriver(_service())
        assert driver._interval == 0.01

    def test_rejects_bad_interval(self):
        with pytest.raises(ValueError):
            SimulationDriver(_service(), interval_seconds=0)

    def test_unknown_activity(self):
        driver = SimulationDriver(_service())
        with pytest.raises(ValueError, match="Unknown simulation activity"):
            driver.run_once("delete_everything")

    def test_nothing_to_do_returns_none(self):
        driver = SimulationDriver(_service(seeded=False))
        assert driver.run_once("create_quotation") is None
        assert driver.run_once("record_payment") is None
        assert driver.activity_counts == {}

    def test_full_document_journey(self):
        service = _service()
        driver = SimulationDriver(service, rng=random.Random(7))

        assert driver.run_once("create_quotation") == "create_quotation"
        assert driver.run_once("send_quotation") == "send_quotation"
        quotation = service.list_documents(EntityKind.QUOTATION)[0]
        assert quotation.status == QuotationStatus.SENT
        assert quotation.notes == "Auto-generated quotation"

        service.transition_status(quotation.document_id, EntityKind.QUOTATION, "accepted")
        assert driver.run_once("convert_quotation") == "convert_quotation"
        assert driver.run_once("convert_quotation") is None
        assert driver.run_once("send_proforma") == "send_proforma"
        assert driver.run_once("convert_proforma") == "convert_proforma"
        proforma = service.list_documents(EntityKind.PROFORMA)[0]
        assert proforma.status == ProformaStatus.CONVERTED

        invoice = service.list_documents(EntityKind.INVOICE)[0]
        while driver.run_once("record_payment"):
            pass
        stored = service.get_document(invoice.document_id, EntityKind.INVOICE)
        assert stored.status == InvoiceStatus.PAID
        assert stored.balance == Decimal("0.00")
        assert driver.error_count == 0

    def test_stock_replenishment(self):
        service = _service()
        driver = SimulationDriver(service, rng=_FixedDraw(0.1))
        assert driver.run_once("update_stock_levels") == "update_stock_levels"
        movement = service.get_stock_movements()[0]
        assert movement.movement_type == MovementType.IN
        assert movement.reference == "RESTOCK-00001"
        assert movement.notes == "Simulated replenishment"

    def test_stock_adjustment(self):
        service = _service()
        driver = SimulationDriver(service, rng=_FixedDraw(0.9))
        assert driver.run_once("update_stock_levels") == "update_stock_levels"
        movement = service.get_stock_movements()[0]
        assert movement.movement_type == MovementType.OUT
        assert movement.reference == "ADJ-00001"
        assert movement.new_stock == 1000 - movement.quantity

    def test_random_activities_keep_ledger_consistent(self):
        service = _service()
        driver = SimulationDriver(service, rng=random.Random(42))
        for _ in range(200):
            driver.run_once()
        for invoice in service.list_documents(EntityKind.INVOICE):
            assert invoice.balance == invoice.total - invoice.amount_paid
            assert invoice.balance >= 0
            paid = sum(p.amount for p in service.list_payments(invoice.document_id))
            assert paid == invoice.amount_paid
        assert sum(driver.activity_counts.values()) > 0

    def test_lifecycle_errors_are_counted(self, monkeypatch):
        service = _service()
        driver = SimulationDriver(service)
        driver.run_once("create_quotation")

        def refuse(*args, **kwargs):
            raise InvalidTransitionError("refused")

        monkeypatch.setattr(service, "transition_status", refuse)
        assert driver.run_once("send_quotation") is None
        assert driver.error_count == 1

    def test_error_count_is_thread_safe(self, monkeypatch):
        service = _service(seeded=False)
        driver = SimulationDriver(service)

        def refuse():
            raise InvalidTransitionError("refused")

        monkeypatch.setattr(service, "list_customers", refuse)
        threads = [
            threading.Thread(
                target=lambda: [driver.run_once("create_quotation") for _ in range(50)],
            )
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)
        assert driver.error_count == 400


class TestBackgroundLoop:
    def test_start_and_stop(self):
        service = _service()
        driver = SimulationDriver(service, rng=random.Random(3))

        assert driver.start() is True
        assert driver.start() is False
        assert driver.is_running

        deadline = time.monotonic() + 5
        while not driver.activity_counts and time.monotonic() < deadline:
            time.sleep(0.01)
        driver.stop(timeout=5)

        assert not driver.is_running
        assert sum(driver.activity_counts.values()) > 0

    def test_restart_after_stop(self):
        driver = SimulationDriver(_service())
        driver.start()
        driver.stop(timeout=5)
        assert driver.start() is True
        driver.stop(timeout=5)
        assert not driver.is_running

    def test_stop_without_start(self):
        driver = SimulationDriver(_service())
        driver.stop()
        assert not driver.is_running
