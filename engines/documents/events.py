"""Trade Documents Lifecycle Engine - activity actions and metadata builders."""

from __future__ import annotations

from core.primitives.document import Document, Invoice
from core.primitives.inventory import StockMovement
from core.primitives.money import money_to_str
from core.primitives.payment import Payment

CUSTOMER_REGISTERED = "customer.registered"
CUSTOMER_UPDATED = "customer.updated"
SUPPLIER_REGISTERED = "supplier.registered"
PRODUCT_REGISTERED = "product.registered"
PRODUCT_UPDATED = "product.updated"
TAX_REGISTERED = "tax.registered"
QUOTATION_CREATED = "quotation.created"
QUOTATION_CONVERTED = "quotation.converted"
PROFORMA_CREATED = "proforma.created"
PROFORMA_CONVERTED = "proforma.converted"
INVOICE_CREATED = "invoice.created"
INVOICE_ETIMS_UPDATED = "invoice.etims_updated"
CREDIT_NOTE_ISSUED = "credit_note.issued"
PAYMENT_RECORDED = "payment.recorded"
STOCK_MOVED = "stock_movement.posted"


def status_changed_action(document: Document) -> str:
    """e.g. "invoice.overdue", "quotation.accepted"."""
    return f"{document.kind.value}.{document.status.value}"


def build_document_metadata(document: Document) -> dict:
    return {
        "customer_id": str(document.customer_id),
        "status": document.status.value,
        "total": money_to_str(document.total),
    }


def build_conversion_metadata(source: Document, target: Document) -> dict:
    payload = build_document_metadata(target)
    payload.update({
        "source_id": str(source.document_id),
        "source_number": source.number,
        "target_kind": target.kind.value,
    })
    return payload


def build_payment_metadata(payment: Payment, invoice: Invoice) -> dict:
    return {
        "invoice_id": str(invoice.document_id),
        "invoice_number": invoice.number,
        "amount": money_to_str(payment.amount),
        "method": payment.method.value,
        "balance": money_to_str(invoice.balance),
        "invoice_status": invoice.status.value,
    }


def build_stock_metadata(movement: StockMovement) -> dict:
    return {
        "product_id": str(movement.product_id),
        "movement_type": movement.movement_type.value,
        "quantity": movement.quantity,
        "previous_stock": movement.previous_stock,
        "new_stock": movement.new_stock,
        "reference": movement.reference,
    }
