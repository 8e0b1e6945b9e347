"""
Trade Documents Simulation — Demo Activity Driver
===================================================
Background thread that keeps a demo store moving: every tick it picks
one random business activity and performs it through the public
DocumentLifecycleService operations, exactly as a user would.

    driver = SimulationDriver(service, interval_seconds=30)
    driver.start()
    ...
    driver.stop()

Lifecycle errors raised by an activity are logged and counted; they
never stop the loop. Stopping is safe at any time because each
activity is a single service call (or a short sequence of them).
"""

from __future__ import annotations

import logging
import random
import threading
from collections import Counter
from decimal import Decimal
from typing import Callable, Dict, Optional

from core.errors import LifecycleError
from core.primitives.document import (
    InvoiceStatus,
    ProformaStatus,
    QuotationStatus,
)
from core.primitives.kinds import EntityKind
from core.primitives.payment import PaymentMethod
from engines.documents.commands import LineItemRequest
from engines.documents.services import DocumentLifecycleService

logger = logging.getLogger("tradedocs.simulation")

FULL_PAYMENT_PROBABILITY = 0.7
STOCK_IN_PROBABILITY = 0.7


class SimulationDriver:
    """Runs random lifecycle activities on a fixed interval."""

    def __init__(
        self,
        service: DocumentLifecycleService,
        *,
        interval_seconds: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if interval_seconds is None:
            interval_seconds = service.config.simulation_interval_seconds
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0.")
        self._service = service
        self._interval = interval_seconds
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._sequence = 0
        self.activity_counts: Counter = Counter()
        self.error_count = 0
        self._activities: Dict[str, Callable[[], bool]] = {
            "create_quotation": self._create_quotation,
            "send_quotation": self._send_quotation,
            "decide_quotation": self._decide_quotation,
            "convert_quotation": self._convert_quotation,
            "send_proforma": self._send_proforma,
            "convert_proforma": self._convert_proforma,
            "record_payment": self._record_payment,
            "update_stock_levels": self._update_stock_levels,
        }

    # ── Control ───────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start the background loop. Returns False if already running."""
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return False
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run, name="tradedocs-simulation", daemon=True,
            )
            self._thread.start()
        logger.info(f"Simulation started (every {self._interval}s)")
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            thread, self._thread = self._thread, None
            self._stop_event.set()
        if thread is not None:
            thread.join(timeout)
            logger.info("Simulation stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.run_once()
            except Exception as exc:
                self._record_error()
                logger.error(f"Simulation tick failed: {exc}", exc_info=True)

    # ── One tick ──────────────────────────────────────────────

    def run_once(self, activity: Optional[str] = None) -> Optional[str]:
        """
        Perform one activity (random unless named).

        Returns the activity name when it did something, None when it
        had nothing to act on or failed with a lifecycle error.
        """
        name = activity or self._rng.choice(sorted(self._activities))
        if name not in self._activities:
            raise ValueError(f"Unknown simulation activity '{name}'.")
        try:
            performed = self._activities[name]()
        except LifecycleError as exc:
            self._record_error()
            logger.error(f"Simulation activity {name} failed: {exc}", exc_info=True)
            return None
        if not performed:
            return None
        with self._lock:
            self.activity_counts[name] += 1
        return name

    def _record_error(self) -> None:
        with self._lock:
            self.error_count += 1

    def _next_reference(self, prefix: str) -> str:
        with self._lock:
            self._sequence += 1
            sequence = self._sequence
        return f"{prefix}-{sequence:05d}"

    def _pick(self, candidates):
        return self._rng.choice(candidates) if candidates else None

    # ── Activities ────────────────────────────────────────────

    def _create_quotation(self) -> bool:
        customer = self._pick([c for c in self._service.list_customers() if c.is_active])
        product = self._pick([p for p in self._service.list_products() if p.is_active])
        if customer is None or product is None:
            return False
        quantity = self._rng.randint(1, 20)
        self._service.create_quotation(
            customer.party_id,
            [LineItemRequest(product_id=product.product_id, quantity=quantity)],
            notes="Auto-generated quotation",
        )
        return True

    def _move(self, kind: EntityKind, status, target) -> bool:
        document = self._pick(self._service.list_documents(kind, status))
        if document is None:
            return False
        self._service.transition_status(document.document_id, kind, target)
        return True

    def _send_quotation(self) -> bool:
        return self._move(EntityKind.QUOTATION, QuotationStatus.DRAFT, QuotationStatus.SENT)

    def _decide_quotation(self) -> bool:
        target = self._rng.choice((QuotationStatus.ACCEPTED, QuotationStatus.REJECTED))
        return self._move(EntityKind.QUOTATION, QuotationStatus.SENT, target)

    def _send_proforma(self) -> bool:
        return self._move(EntityKind.PROFORMA, ProformaStatus.DRAFT, ProformaStatus.SENT)

    def _convert_quotation(self) -> bool:
        quotation = self._pick([
            q for q in self._service.list_documents(
                EntityKind.QUOTATION, QuotationStatus.ACCEPTED)
            if not q.is_converted
        ])
        if quotation is None:
            return False
        self._service.convert_quotation_to_proforma(quotation.document_id)
        return True

    def _convert_proforma(self) -> bool:
        proforma = self._pick(
            self._service.list_documents(EntityKind.PROFORMA, ProformaStatus.SENT)
        )
        if proforma is None:
            return False
        self._service.convert_proforma_to_invoice(proforma.document_id)
        return True

    def _record_payment(self) -> bool:
        invoice = self._pick([
            i for i in self._service.list_documents(EntityKind.INVOICE)
            if i.status in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE) and not i.is_settled
        ])
        if invoice is None:
            return False
        if self._rng.random() < FULL_PAYMENT_PROBABILITY:
            amount = invoice.balance
        else:
            partial = Decimal(self._rng.randint(0, max(int(invoice.balance) - 1, 0)) + 1000)
            amount = min(invoice.balance, partial)
        self._service.record_payment(
            invoice.document_id,
            amount,
            self._rng.choice(list(PaymentMethod)),
            self._next_reference("AUTO"),
        )
        return True

    def _update_stock_levels(self) -> bool:
        product = self._pick([
            p for p in self._service.list_products() if p.track_inventory
        ])
        if product is None:
            return False
        quantity = self._rng.randint(1, 50)
        if self._rng.random() < STOCK_IN_PROBABILITY:
            self._service.receive_stock(
                product.product_id, quantity, self._next_reference("RESTOCK"),
                notes="Simulated replenishment",
            )
        else:
            self._service.adjust_stock(
                product.product_id, quantity, self._next_reference("ADJ"),
                notes="Simulated stock adjustment",
            )
        return True
