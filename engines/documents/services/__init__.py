"""
Trade Documents Lifecycle Engine — Application Service
========================================================
The only component that mutates more than one entity per operation.

Every write runs inside one store.transaction() and re-reads the
entities it touches inside that unit of work, so checks, target
creation, markers, stock posts and balance changes commit together
or not at all. Activity entries are delivered after commit.

Flow:
    quotation (draft → sent → accepted) ─┬─► proforma (draft → sent) ─► invoice
                                         └──────────────────────────► invoice
    invoice (sent/overdue) ─► payments ─► paid
    credit notes are independent documents (draft → issued → applied)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from core.audit import ActivitySink, create_activity_entry, notify_sink
from core.config import LifecycleConfig, get_tax_by_id
from core.document_store import DocumentStore
from core.document_store.base import status_key
from core.documents.numbering import next_document_number
from core.errors import NotFoundError, OverPaymentError, ValidationError
from core.primitives.document import (
    DOCUMENT_CLASSES,
    ConversionRef,
    CreditNote,
    CreditNoteStatus,
    Document,
    EtimsStatus,
    Invoice,
    InvoiceStatus,
    LineItem,
    ProformaInvoice,
    ProformaStatus,
    Quotation,
    QuotationStatus,
)
from core.primitives.inventory import MovementType, StockMovement
from core.primitives.item import Product
from core.primitives.kinds import EntityKind, parse_kind
from core.primitives.ledger import (
    apply_payment,
    post_stock_movement,
    reduce_party_balance,
)
from core.primitives.money import ZERO, sum_money, to_money
from core.primitives.party import Party
from core.primitives.payment import Payment
from core.tax import (
    TaxDefinition,
    calculate_document_totals,
    calculate_line_total,
    exclusive_unit_price,
)
from core.time import Clock, SystemClock, days_after
from engines.documents.commands import (
    LineItemRequest,
    as_aware_datetime,
    as_uuid,
    coerce_line_requests,
    parse_payment_method,
    payment_amount,
)
from engines.documents.events import (
    CREDIT_NOTE_ISSUED,
    CUSTOMER_REGISTERED,
    CUSTOMER_UPDATED,
    INVOICE_CREATED,
    INVOICE_ETIMS_UPDATED,
    PAYMENT_RECORDED,
    PRODUCT_REGISTERED,
    PRODUCT_UPDATED,
    PROFORMA_CONVERTED,
    PROFORMA_CREATED,
    QUOTATION_CONVERTED,
    QUOTATION_CREATED,
    STOCK_MOVED,
    SUPPLIER_REGISTERED,
    TAX_REGISTERED,
    build_conversion_metadata,
    build_document_metadata,
    build_payment_metadata,
    build_stock_metadata,
    status_changed_action,
)
from engines.documents.policies import (
    PAYABLE_INVOICE_STATUSES,
    credit_note_invoice_policy,
    etims_transition_policy,
    invoice_must_accept_payment_policy,
    is_expirable,
    is_overdue,
    proforma_must_be_convertible_policy,
    quotation_must_be_convertible_policy,
    status_transition_policy,
)

logger = logging.getLogger("tradedocs.lifecycle")

_TOTAL_FIELDS = (
    "subtotal", "discount_amount", "vat_amount",
    "additional_tax_amount", "total",
)

_STOCK_FIELDS = ("current_stock", "reserved_stock", "available_stock")


def _append_note(notes: str, line: str) -> str:
    return f"{notes}\n{line}" if notes else line


class DocumentLifecycleService:
    """
    Orchestrates quotation → proforma → invoice, payments, credit
    notes and the stock movements they cause.

    The store is injected; there is no module-level store.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Optional[Clock] = None,
        config: Optional[LifecycleConfig] = None,
        activity_sink: Optional[ActivitySink] = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or LifecycleConfig()
        self._activity_sink = activity_sink

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def config(self) -> LifecycleConfig:
        return self._config

    # ══════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════

    def _now(self) -> datetime:
        return self._clock.now_utc()

    def _require(self, kind: EntityKind, entity_id, label: str):
        if kind == EntityKind.TAX:
            key = entity_id
        else:
            key = as_uuid(entity_id, f"{label}_id")
        entity = self._store.get_by_id(kind, key)
        if entity is None:
            raise NotFoundError(label, entity_id)
        return entity

    def _require_customer(self, customer_id) -> Party:
        customer = self._require(EntityKind.CUSTOMER, customer_id, "customer")
        if not customer.is_active:
            raise ValidationError(f"customer {customer.name} is inactive.")
        return customer

    def _emit(
        self,
        action: str,
        kind: EntityKind,
        entity_id,
        description: str,
        at: datetime,
        *,
        number: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        if self._activity_sink is None:
            return
        entry = create_activity_entry(
            action=action,
            entity_kind=kind.value,
            entity_id=entity_id,
            description=description,
            occurred_at=at,
            number=number,
            metadata=metadata,
        )
        sink = self._activity_sink
        self._store.on_commit(lambda: notify_sink(sink, entry))

    @staticmethod
    def _document_kind(kind) -> EntityKind:
        try:
            kind = parse_kind(kind)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if not kind.is_document:
            raise ValidationError(f"{kind.value} is not a document kind.")
        return kind

    @staticmethod
    def _parse_status(kind: EntityKind, status):
        status_type = DOCUMENT_CLASSES[kind].STATUS_TYPE
        try:
            return status_type(status_key(status))
        except ValueError:
            raise ValidationError(
                f"'{status_key(status)}' is not a {kind.value} status."
            ) from None

    # ── Line items ────────────────────────────────────────────

    def _resolve_taxes(self, tax_ids: Iterable[str]) -> Tuple[TaxDefinition, ...]:
        taxes = []
        seen = set()
        for tax_id in tax_ids:
            if tax_id in seen:
                raise ValidationError(f"tax '{tax_id}' selected twice on one line.")
            seen.add(tax_id)
            tax = self._store.get_by_id(EntityKind.TAX, tax_id) or get_tax_by_id(tax_id)
            if tax is None:
                raise ValidationError(f"Unknown tax '{tax_id}'.")
            taxes.append(tax)
        return tuple(taxes)

    @staticmethod
    def _catalogue_price(product: Product):
        if product.price_includes_tax:
            return exclusive_unit_price(product.selling_price, product.effective_tax_rate)
        return product.selling_price

    def _build_line(self, request: LineItemRequest) -> LineItem:
        if request.is_placeholder:
            priced = replace(request, unit_price=to_money(request.unit_price or ZERO))
            totals = calculate_line_total(priced, None)
        else:
            product = self._require(EntityKind.PRODUCT, request.product_id, "product")
            if not product.is_active:
                raise ValidationError(f"product {product.sku} is inactive.")
            unit_price = (
                self._catalogue_price(product)
                if request.unit_price is None else request.unit_price
            )
            priced = replace(request, unit_price=to_money(unit_price))
            totals = calculate_line_total(
                priced, product, self._resolve_taxes(request.tax_ids),
            )
        return LineItem.from_totals(
            product_id=priced.product_id,
            quantity=priced.quantity,
            unit_price=priced.unit_price,
            discount_percent=priced.discount_percent,
            totals=totals,
            description=priced.description,
        )

    def _build_lines(self, requests) -> Tuple[Tuple[LineItem, ...], Dict[str, object]]:
        lines = tuple(self._build_line(r) for r in requests)
        totals = calculate_document_totals(lines)
        return lines, {name: getattr(totals, name) for name in _TOTAL_FIELDS}

    @staticmethod
    def _copied_totals(source: Document) -> Dict[str, object]:
        return {name: getattr(source, name) for name in _TOTAL_FIELDS}

    # ── Stock ─────────────────────────────────────────────────

    def _post_movement(
        self,
        product: Product,
        movement_type: MovementType,
        quantity: int,
        reference: str,
        at: datetime,
        *,
        strict: bool = False,
        notes: Optional[str] = None,
    ) -> Optional[StockMovement]:
        updated, movement = post_stock_movement(
            product, movement_type, quantity, reference,
            at=at, strict=strict, notes=notes,
        )
        if movement is None:
            return None
        self._store.update(EntityKind.PRODUCT, updated)
        self._store.insert(EntityKind.STOCK_MOVEMENT, movement)
        self._emit(
            STOCK_MOVED, EntityKind.STOCK_MOVEMENT, movement.movement_id,
            f"{movement_type.value.upper()} {quantity} x {product.sku} ({reference})",
            at, metadata=build_stock_metadata(movement),
        )
        return movement

    def _post_sales_stock(self, invoice: Invoice, at: datetime) -> List[StockMovement]:
        movements = []
        for line in invoice.items:
            if line.is_placeholder:
                continue
            product = self._require(EntityKind.PRODUCT, line.product_id, "product")
            movement = self._post_movement(
                product, MovementType.OUT, line.quantity, invoice.number, at,
                strict=self._config.strict_stock,
                notes=f"Sale via invoice {invoice.number}",
            )
            if movement is not None:
                movements.append(movement)
        return movements

    def _issue_invoice(self, source: Document, at: datetime) -> Invoice:
        number = next_document_number(self._store, EntityKind.INVOICE, at)
        invoice = Invoice(
            document_id=uuid.uuid4(),
            number=number,
            customer_id=source.customer_id,
            items=source.items,
            status=InvoiceStatus.PAID if source.total == ZERO else InvoiceStatus.SENT,
            issue_date=at,
            created_at=at,
            updated_at=at,
            notes=f"Converted from {source.kind.value} {source.number}",
            due_date=days_after(at, self._config.invoice_due_days),
            amount_paid=ZERO,
            etims_status=EtimsStatus.PENDING,
            source_document_id=source.document_id,
            **self._copied_totals(source),
        )
        self._store.insert(EntityKind.INVOICE, invoice)
        self._post_sales_stock(invoice, at)
        self._emit(
            INVOICE_CREATED, EntityKind.INVOICE, invoice.document_id,
            f"Invoice {number} created from {source.number}", at,
            number=number, metadata=build_conversion_metadata(source, invoice),
        )
        return invoice

    # ══════════════════════════════════════════════════════════
    # CATALOGUE
    # ══════════════════════════════════════════════════════════

    def register_customer(self, customer: Party) -> Party:
        if not isinstance(customer, Party) or not customer.is_customer:
            raise ValidationError("register_customer expects a CUSTOMER Party.")
        now = self._now()
        if customer.created_at is None:
            customer = replace(customer, created_at=now, updated_at=now)
        with self._store.transaction():
            self._store.insert(EntityKind.CUSTOMER, customer)
            self._emit(
                CUSTOMER_REGISTERED, EntityKind.CUSTOMER, customer.party_id,
                f"Customer {customer.name} registered", now,
            )
        logger.info(f"Customer registered: {customer.name} ({customer.party_id})")
        return customer

    def register_product(self, product: Product) -> Product:
        if not isinstance(product, Product):
            raise ValidationError("register_product expects a Product.")
        now = self._now()
        if product.created_at is None:
            product = replace(product, created_at=now, updated_at=now)
        with self._store.transaction():
            self._store.insert(EntityKind.PRODUCT, product)
            self._emit(
                PRODUCT_REGISTERED, EntityKind.PRODUCT, product.product_id,
                f"Product {product.sku} registered", now,
            )
        logger.info(f"Product registered: {product.sku} ({product.product_id})")
        return product

    def register_tax(self, tax: TaxDefinition) -> TaxDefinition:
        if not isinstance(tax, TaxDefinition):
            raise ValidationError("register_tax expects a TaxDefinition.")
        now = self._now()
        with self._store.transaction():
            self._store.insert(EntityKind.TAX, tax)
            self._emit(
                TAX_REGISTERED, EntityKind.TAX, tax.tax_id,
                f"Tax {tax.name} ({tax.rate}%) registered", now,
            )
        logger.info(f"Tax registered: {tax.tax_id} at {tax.rate}%")
        return tax

    def register_supplier(self, supplier: Party) -> Party:
        if not isinstance(supplier, Party) or not supplier.is_supplier:
            raise ValidationError("register_supplier expects a SUPPLIER Party.")
        now = self._now()
        if supplier.created_at is None:
            supplier = replace(supplier, created_at=now, updated_at=now)
        with self._store.transaction():
            self._store.insert(EntityKind.SUPPLIER, supplier)
            self._emit(
                SUPPLIER_REGISTERED, EntityKind.SUPPLIER, supplier.party_id,
                f"Supplier {supplier.name} registered", now,
            )
        logger.info(f"Supplier registered: {supplier.name} ({supplier.party_id})")
        return supplier

    def update_customer(self, customer: Party) -> Party:
        """
        Replace a customer's details.

        The balance is owned by payments and must be passed through
        unchanged; created_at is kept from the stored record.
        """
        if not isinstance(customer, Party) or not customer.is_customer:
            raise ValidationError("update_customer expects a CUSTOMER Party.")
        now = self._now()
        with self._store.transaction():
            current = self._require(EntityKind.CUSTOMER, customer.party_id, "customer")
            if customer.balance != current.balance:
                raise ValidationError(
                    f"customer {current.name} balance changes only through payments."
                )
            updated = replace(customer, created_at=current.created_at, updated_at=now)
            self._store.update(EntityKind.CUSTOMER, updated)
            self._emit(
                CUSTOMER_UPDATED, EntityKind.CUSTOMER, updated.party_id,
                f"Customer {updated.name} updated", now,
            )
        logger.info(f"Customer updated: {updated.name} ({updated.party_id})")
        return updated

    def update_product(self, product: Product) -> Product:
        """
        Replace a product's catalogue details.

        Stock counters are owned by stock movements and must be passed
        through unchanged.
        """
        if not isinstance(product, Product):
            raise ValidationError("update_product expects a Product.")
        now = self._now()
        with self._store.transaction():
            current = self._require(EntityKind.PRODUCT, product.product_id, "product")
            for name in _STOCK_FIELDS:
                if getattr(product, name) != getattr(current, name):
                    raise ValidationError(
                        f"product {current.sku} {name} changes only through stock movements."
                    )
            updated = replace(product, created_at=current.created_at, updated_at=now)
            self._store.update(EntityKind.PRODUCT, updated)
            self._emit(
                PRODUCT_UPDATED, EntityKind.PRODUCT, updated.product_id,
                f"Product {updated.sku} updated", now,
            )
        logger.info(f"Product updated: {updated.sku} ({updated.product_id})")
        return updated

    # ══════════════════════════════════════════════════════════
    # DOCUMENT CREATION
    # ══════════════════════════════════════════════════════════

    def create_quotation(
        self,
        customer_id,
        items,
        *,
        notes: str = "",
        valid_until: Optional[datetime] = None,
    ) -> Quotation:
        requests = coerce_line_requests(items)
        if valid_until is not None:
            valid_until = as_aware_datetime(valid_until, "valid_until")
        now = self._now()
        with self._store.transaction():
            customer = self._require_customer(customer_id)
            lines, totals = self._build_lines(requests)
            number = next_document_number(self._store, EntityKind.QUOTATION, now)
            quotation = Quotation(
                document_id=uuid.uuid4(),
                number=number,
                customer_id=customer.party_id,
                items=lines,
                status=QuotationStatus.DRAFT,
                issue_date=now,
                created_at=now,
                updated_at=now,
                notes=notes,
                valid_until=valid_until or days_after(
                    now, self._config.quotation_validity_days),
                **totals,
            )
            self._store.insert(EntityKind.QUOTATION, quotation)
            self._emit(
                QUOTATION_CREATED, EntityKind.QUOTATION, quotation.document_id,
                f"Quotation {number} created for {customer.name}", now,
                number=number, metadata=build_document_metadata(quotation),
            )
        logger.info(f"Quotation {number} created: total {quotation.total}")
        return quotation

    def issue_credit_note(
        self,
        customer_id,
        invoice_id,
        items,
        reason: str,
        *,
        notes: str = "",
    ) -> CreditNote:
        if not isinstance(reason, str) or not reason.strip():
            raise ValidationError("reason is required for a credit note.")
        requests = coerce_line_requests(items)
        now = self._now()
        with self._store.transaction():
            customer = self._require_customer(customer_id)
            invoice = None
            if invoice_id is not None:
                invoice = self._require(EntityKind.INVOICE, invoice_id, "invoice")
            rejection = credit_note_invoice_policy(invoice, customer.party_id)
            if rejection is not None:
                raise rejection
            lines, totals = self._build_lines(requests)
            number = next_document_number(self._store, EntityKind.CREDIT_NOTE, now)
            credit_note = CreditNote(
                document_id=uuid.uuid4(),
                number=number,
                customer_id=customer.party_id,
                items=lines,
                status=CreditNoteStatus.DRAFT,
                issue_date=now,
                created_at=now,
                updated_at=now,
                notes=notes,
                invoice_id=invoice.document_id if invoice else None,
                reason=reason.strip(),
                **totals,
            )
            self._store.insert(EntityKind.CREDIT_NOTE, credit_note)
            self._emit(
                CREDIT_NOTE_ISSUED, EntityKind.CREDIT_NOTE, credit_note.document_id,
                f"Credit note {number} for {customer.name}: {credit_note.reason}", now,
                number=number, metadata=build_document_metadata(credit_note),
            )
        logger.info(f"Credit note {number} created: total {credit_note.total}")
        return credit_note

    # ══════════════════════════════════════════════════════════
    # STATUS
    # ══════════════════════════════════════════════════════════

    def transition_status(self, document_id, kind, new_status) -> Document:
        kind = self._document_kind(kind)
        target = self._parse_status(kind, new_status)
        now = self._now()
        with self._store.transaction():
            document = self._require(kind, document_id, kind.value)
            rejection = status_transition_policy(kind, document, target)
            if rejection is not None:
                raise rejection
            updated = document.evolve(status=target, updated_at=now)
            self._store.update(kind, updated)
            self._emit(
                status_changed_action(updated), kind, updated.document_id,
                f"{kind.value.replace('_', ' ').capitalize()} {updated.number} "
                f"marked {target.value}", now,
                number=updated.number, metadata=build_document_metadata(updated),
            )
        logger.info(
            f"{kind.value} {updated.number}: {document.status.value} → {target.value}"
        )
        return updated

    def mark_overdue_invoices(self, as_of: Optional[datetime] = None) -> Tuple[Invoice, ...]:
        """Move sent invoices with an open balance past their due date to overdue."""
        now = self._now()
        as_of = as_of or now
        marked = []
        with self._store.transaction():
            for invoice in self._store.list_by_status(EntityKind.INVOICE, InvoiceStatus.SENT):
                if not is_overdue(invoice, as_of):
                    continue
                updated = invoice.evolve(status=InvoiceStatus.OVERDUE, updated_at=now)
                self._store.update(EntityKind.INVOICE, updated)
                self._emit(
                    status_changed_action(updated), EntityKind.INVOICE,
                    updated.document_id, f"Invoice {updated.number} is overdue", now,
                    number=updated.number, metadata=build_document_metadata(updated),
                )
                marked.append(updated)
        if marked:
            logger.info(f"Marked {len(marked)} invoice(s) overdue as of {as_of.isoformat()}")
        return tuple(marked)

    def expire_stale_documents(self, as_of: Optional[datetime] = None) -> Tuple[Document, ...]:
        """Expire open quotations and proformas whose validity window has lapsed."""
        now = self._now()
        as_of = as_of or now
        expired = []
        expired_status = {
            EntityKind.QUOTATION: QuotationStatus.EXPIRED,
            EntityKind.PROFORMA: ProformaStatus.EXPIRED,
        }
        with self._store.transaction():
            for kind, status in expired_status.items():
                for document in self._store.list_by_status(kind):
                    if not is_expirable(document, as_of):
                        continue
                    updated = document.evolve(status=status, updated_at=now)
                    self._store.update(kind, updated)
                    self._emit(
                        status_changed_action(updated), kind, updated.document_id,
                        f"{updated.number} expired", now,
                        number=updated.number, metadata=build_document_metadata(updated),
                    )
                    expired.append(updated)
        if expired:
            logger.info(f"Expired {len(expired)} document(s) as of {as_of.isoformat()}")
        return tuple(expired)

    def update_etims_status(
        self,
        invoice_id,
        etims_status,
        etims_code: Optional[str] = None,
    ) -> Invoice:
        try:
            target = EtimsStatus(status_key(etims_status))
        except ValueError:
            raise ValidationError(f"'{etims_status}' is not an ETIMS status.") from None
        now = self._now()
        with self._store.transaction():
            invoice = self._require(EntityKind.INVOICE, invoice_id, "invoice")
            rejection = etims_transition_policy(invoice, target)
            if rejection is not None:
                raise rejection
            updated = invoice.evolve(
                etims_status=target,
                etims_code=etims_code if etims_code is not None else invoice.etims_code,
                updated_at=now,
            )
            self._store.update(EntityKind.INVOICE, updated)
            self._emit(
                INVOICE_ETIMS_UPDATED, EntityKind.INVOICE, updated.document_id,
                f"Invoice {updated.number} ETIMS {target.value}", now,
                number=updated.number,
                metadata={"etims_status": target.value, "etims_code": updated.etims_code},
            )
        logger.info(
            f"Invoice {updated.number} ETIMS: "
            f"{invoice.etims_status.value} → {target.value}"
        )
        return updated

    # ══════════════════════════════════════════════════════════
    # CONVERSIONS
    # ══════════════════════════════════════════════════════════

    def convert_quotation_to_proforma(self, quotation_id) -> ProformaInvoice:
        now = self._now()
        with self._store.transaction():
            quotation = self._require(EntityKind.QUOTATION, quotation_id, "quotation")
            rejection = quotation_must_be_convertible_policy(quotation, now)
            if rejection is not None:
                raise rejection
            number = next_document_number(self._store, EntityKind.PROFORMA, now)
            proforma = ProformaInvoice(
                document_id=uuid.uuid4(),
                number=number,
                customer_id=quotation.customer_id,
                items=quotation.items,
                status=ProformaStatus.DRAFT,
                issue_date=now,
                created_at=now,
                updated_at=now,
                notes=f"Converted from quotation {quotation.number}",
                valid_until=days_after(now, self._config.proforma_validity_days),
                source_quotation_id=quotation.document_id,
                **self._copied_totals(quotation),
            )
            self._store.insert(EntityKind.PROFORMA, proforma)
            self._store.update(EntityKind.QUOTATION, quotation.evolve(
                converted_to=ConversionRef(EntityKind.PROFORMA, proforma.document_id, number),
                notes=_append_note(quotation.notes, f"Converted to proforma {number}"),
                updated_at=now,
            ))
            self._emit(
                PROFORMA_CREATED, EntityKind.PROFORMA, proforma.document_id,
                f"Proforma {number} created from {quotation.number}", now,
                number=number, metadata=build_conversion_metadata(quotation, proforma),
            )
            self._emit(
                QUOTATION_CONVERTED, EntityKind.QUOTATION, quotation.document_id,
                f"Quotation {quotation.number} converted to proforma {number}", now,
                number=quotation.number,
            )
        logger.info(f"Quotation {quotation.number} converted to proforma {number}")
        return proforma

    def convert_proforma_to_invoice(self, proforma_id) -> Invoice:
        now = self._now()
        with self._store.transaction():
            proforma = self._require(EntityKind.PROFORMA, proforma_id, "proforma")
            rejection = proforma_must_be_convertible_policy(proforma)
            if rejection is not None:
                raise rejection
            invoice = self._issue_invoice(proforma, now)
            self._store.update(EntityKind.PROFORMA, proforma.evolve(
                status=ProformaStatus.CONVERTED,
                converted_to=ConversionRef(EntityKind.INVOICE, invoice.document_id, invoice.number),
                notes=_append_note(proforma.notes, f"Converted to invoice {invoice.number}"),
                updated_at=now,
            ))
            self._emit(
                PROFORMA_CONVERTED, EntityKind.PROFORMA, proforma.document_id,
                f"Proforma {proforma.number} converted to invoice {invoice.number}", now,
                number=proforma.number,
            )
        logger.info(f"Proforma {proforma.number} converted to invoice {invoice.number}")
        return invoice

    def convert_quotation_to_invoice(self, quotation_id) -> Invoice:
        now = self._now()
        with self._store.transaction():
            quotation = self._require(EntityKind.QUOTATION, quotation_id, "quotation")
            rejection = quotation_must_be_convertible_policy(quotation, now)
            if rejection is not None:
                raise rejection
            invoice = self._issue_invoice(quotation, now)
            self._store.update(EntityKind.QUOTATION, quotation.evolve(
                converted_to=ConversionRef(EntityKind.INVOICE, invoice.document_id, invoice.number),
                notes=_append_note(quotation.notes, f"Converted to invoice {invoice.number}"),
                updated_at=now,
            ))
            self._emit(
                QUOTATION_CONVERTED, EntityKind.QUOTATION, quotation.document_id,
                f"Quotation {quotation.number} converted to invoice {invoice.number}", now,
                number=quotation.number,
            )
        logger.info(f"Quotation {quotation.number} converted to invoice {invoice.number}")
        return invoice

    # ══════════════════════════════════════════════════════════
    # PAYMENTS AND STOCK
    # ══════════════════════════════════════════════════════════

    def record_payment(
        self,
        invoice_id,
        amount,
        method,
        reference: str,
        *,
        notes: Optional[str] = None,
    ) -> Payment:
        value = payment_amount(amount)
        method = parse_payment_method(method)
        if not isinstance(reference, str):
            raise ValidationError("reference must be a string.")
        now = self._now()
        with self._store.transaction():
            invoice = self._require(EntityKind.INVOICE, invoice_id, "invoice")
            rejection = invoice_must_accept_payment_policy(invoice)
            if rejection is not None:
                raise rejection
            if value > invoice.balance:
                raise OverPaymentError(invoice.number, value, invoice.balance)
            updated = apply_payment(invoice, value, now)
            payment = Payment(
                payment_id=uuid.uuid4(),
                amount=value,
                method=method,
                reference=reference,
                invoice_id=invoice.document_id,
                customer_id=invoice.customer_id,
                created_at=now,
                notes=notes,
            )
            self._store.insert(EntityKind.PAYMENT, payment)
            self._store.update(EntityKind.INVOICE, updated)
            customer = self._store.get_by_id(EntityKind.CUSTOMER, invoice.customer_id)
            if customer is not None:
                self._store.update(
                    EntityKind.CUSTOMER, reduce_party_balance(customer, value, now),
                )
            self._emit(
                PAYMENT_RECORDED, EntityKind.PAYMENT, payment.payment_id,
                f"Payment of {value} received for {invoice.number}", now,
                number=invoice.number, metadata=build_payment_metadata(payment, updated),
            )
        logger.info(
            f"Payment {value} ({method.value}) on {invoice.number}: "
            f"balance {updated.balance}, status {updated.status.value}"
        )
        return payment

    def receive_stock(
        self,
        product_id,
        quantity: int,
        reference: str,
        notes: Optional[str] = None,
    ) -> Optional[StockMovement]:
        """Post an IN movement. Untracked products return None."""
        now = self._now()
        with self._store.transaction():
            product = self._require(EntityKind.PRODUCT, product_id, "product")
            movement = self._post_movement(
                product, MovementType.IN, quantity, reference, now, notes=notes,
            )
        if movement is not None:
            logger.info(
                f"Received {quantity} x {product.sku}: stock {movement.new_stock}"
            )
        return movement

    def adjust_stock(
        self,
        product_id,
        quantity: int,
        reference: str,
        notes: Optional[str] = None,
    ) -> Optional[StockMovement]:
        """
        Post an OUT adjustment (shrinkage, damage, stock count).

        Clamps at zero unless strict_stock is configured. Untracked
        products return None.
        """
        now = self._now()
        with self._store.transaction():
            product = self._require(EntityKind.PRODUCT, product_id, "product")
            movement = self._post_movement(
                product, MovementType.OUT, quantity, reference, now,
                strict=self._config.strict_stock, notes=notes,
            )
        if movement is not None:
            logger.info(
                f"Adjusted {product.sku} by -{quantity}: stock {movement.new_stock}"
            )
        return movement

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    def get_document(self, document_id, kind) -> Document:
        kind = self._document_kind(kind)
        return self._require(kind, document_id, kind.value)

    def list_documents(self, kind, status=None) -> Tuple[Document, ...]:
        kind = self._document_kind(kind)
        if status is not None:
            status = self._parse_status(kind, status)
        return self._store.list_by_status(kind, status)

    def get_customer(self, customer_id) -> Party:
        return self._require(EntityKind.CUSTOMER, customer_id, "customer")

    def get_product(self, product_id) -> Product:
        return self._require(EntityKind.PRODUCT, product_id, "product")

    def list_customers(self) -> Tuple[Party, ...]:
        return self._store.list_by_status(EntityKind.CUSTOMER)

    def list_suppliers(self) -> Tuple[Party, ...]:
        return self._store.list_by_status(EntityKind.SUPPLIER)

    def list_products(self) -> Tuple[Product, ...]:
        return self._store.list_by_status(EntityKind.PRODUCT)

    def get_stock_movements(self, product_id=None) -> Tuple[StockMovement, ...]:
        movements = self._store.list_by_status(EntityKind.STOCK_MOVEMENT)
        if product_id is None:
            return movements
        wanted = as_uuid(product_id, "product_id")
        return tuple(m for m in movements if m.product_id == wanted)

    def list_payments(self, invoice_id=None) -> Tuple[Payment, ...]:
        payments = self._store.list_by_status(EntityKind.PAYMENT)
        if invoice_id is None:
            return payments
        wanted = as_uuid(invoice_id, "invoice_id")
        return tuple(p for p in payments if p.invoice_id == wanted)

    def low_stock_products(self) -> Tuple[Product, ...]:
        return tuple(
            p for p in self._store.list_by_status(EntityKind.PRODUCT)
            if p.is_active and p.is_low_stock
        )

    def dashboard_metrics(self) -> dict:
        """Revenue, receivables and per-kind counts from one consistent snapshot."""
        with self._store.transaction():
            payments = self._store.list_by_status(EntityKind.PAYMENT)
            invoices = self._store.list_by_status(EntityKind.INVOICE)
            counts = {
                kind.value: len(self._store.list_by_status(kind))
                for kind in (
                    EntityKind.CUSTOMER, EntityKind.SUPPLIER, EntityKind.PRODUCT,
                    EntityKind.QUOTATION, EntityKind.PROFORMA, EntityKind.INVOICE,
                    EntityKind.CREDIT_NOTE, EntityKind.PAYMENT,
                )
            }
            low_stock = self.low_stock_products()
        open_invoices = [i for i in invoices if i.status in PAYABLE_INVOICE_STATUSES]
        return {
            "currency": self._config.currency,
            "total_revenue": sum_money(p.amount for p in payments),
            "outstanding_balance": sum_money(i.balance for i in open_invoices),
            "open_invoices": len(open_invoices),
            "overdue_invoices": sum(
                1 for i in invoices if i.status == InvoiceStatus.OVERDUE
            ),
            "low_stock_alerts": len(low_stock),
            "counts": counts,
        }
