"""
Trade Documents Lifecycle Engine - policies.

Each policy inspects a snapshot and returns the error to raise, or
None when the operation may proceed. The service raises what it gets.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, FrozenSet, Optional

from core.errors import (
    AlreadyConvertedError,
    InvalidTransitionError,
    LifecycleError,
    ValidationError,
)
from core.primitives.document import (
    CreditNoteStatus,
    EtimsStatus,
    Invoice,
    InvoiceStatus,
    ProformaInvoice,
    ProformaStatus,
    Quotation,
    QuotationStatus,
)
from core.primitives.kinds import EntityKind
from core.time.temporal import is_past


# ══════════════════════════════════════════════════════════════
# STATE MACHINES
# ══════════════════════════════════════════════════════════════
# Statuses reachable only through dedicated operations are absent:
# proforma CONVERTED (conversion) and invoice PAID (payments).

QUOTATION_TRANSITIONS = {
    QuotationStatus.DRAFT: frozenset({QuotationStatus.SENT, QuotationStatus.EXPIRED}),
    QuotationStatus.SENT: frozenset({
        QuotationStatus.ACCEPTED,
        QuotationStatus.REJECTED,
        QuotationStatus.EXPIRED,
    }),
}

PROFORMA_TRANSITIONS = {
    ProformaStatus.DRAFT: frozenset({ProformaStatus.SENT, ProformaStatus.EXPIRED}),
    ProformaStatus.SENT: frozenset({ProformaStatus.EXPIRED}),
}

INVOICE_TRANSITIONS = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset({InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.CANCELLED}),
}

CREDIT_NOTE_TRANSITIONS = {
    CreditNoteStatus.DRAFT: frozenset({CreditNoteStatus.ISSUED}),
    CreditNoteStatus.ISSUED: frozenset({CreditNoteStatus.APPLIED}),
}

STATUS_TRANSITIONS: Dict[EntityKind, dict] = {
    EntityKind.QUOTATION: QUOTATION_TRANSITIONS,
    EntityKind.PROFORMA: PROFORMA_TRANSITIONS,
    EntityKind.INVOICE: INVOICE_TRANSITIONS,
    EntityKind.CREDIT_NOTE: CREDIT_NOTE_TRANSITIONS,
}

ETIMS_TRANSITIONS = {
    EtimsStatus.PENDING: frozenset({EtimsStatus.SUBMITTED}),
    EtimsStatus.SUBMITTED: frozenset({EtimsStatus.ACCEPTED, EtimsStatus.REJECTED}),
    EtimsStatus.REJECTED: frozenset({EtimsStatus.SUBMITTED}),
}

PAYABLE_INVOICE_STATUSES: FrozenSet[InvoiceStatus] = frozenset({
    InvoiceStatus.SENT,
    InvoiceStatus.OVERDUE,
})

# Paid invoices are absent: their zero balance rejects any amount as an overpayment.
PAYMENT_BLOCKED_STATUSES: FrozenSet[InvoiceStatus] = frozenset({
    InvoiceStatus.DRAFT,
    InvoiceStatus.CANCELLED,
})


def allowed_transitions(kind: EntityKind, current) -> FrozenSet:
    return STATUS_TRANSITIONS[kind].get(current, frozenset())


# ══════════════════════════════════════════════════════════════
# POLICIES
# ══════════════════════════════════════════════════════════════

def status_transition_policy(kind: EntityKind, document, target) -> Optional[LifecycleError]:
    if target not in allowed_transitions(kind, document.status):
        return InvalidTransitionError(
            f"{kind.value} {document.number} cannot move from "
            f"'{document.status.value}' to '{target.value}'."
        )
    if (
        kind == EntityKind.INVOICE
        and target == InvoiceStatus.CANCELLED
        and document.amount_paid > 0
    ):
        return InvalidTransitionError(
            f"invoice {document.number} has payments recorded and cannot be cancelled."
        )
    return None


def quotation_must_be_convertible_policy(
    quotation: Quotation, now: datetime,
) -> Optional[LifecycleError]:
    if quotation.is_converted:
        return AlreadyConvertedError(quotation.number, quotation.converted_to.number)
    if quotation.status != QuotationStatus.ACCEPTED:
        return InvalidTransitionError(
            f"quotation {quotation.number} must be 'accepted' to convert, "
            f"is '{quotation.status.value}'."
        )
    if is_past(quotation.valid_until, now):
        return InvalidTransitionError(
            f"quotation {quotation.number} expired on "
            f"{quotation.valid_until.date().isoformat()}."
        )
    return None


def proforma_must_be_convertible_policy(
    proforma: ProformaInvoice,
) -> Optional[LifecycleError]:
    if proforma.is_converted:
        return AlreadyConvertedError(proforma.number, proforma.converted_to.number)
    if proforma.status != ProformaStatus.SENT:
        return InvalidTransitionError(
            f"proforma {proforma.number} must be 'sent' to convert, "
            f"is '{proforma.status.value}'."
        )
    return None


def invoice_must_accept_payment_policy(invoice: Invoice) -> Optional[LifecycleError]:
    if invoice.status in PAYMENT_BLOCKED_STATUSES:
        return InvalidTransitionError(
            f"invoice {invoice.number} is '{invoice.status.value}' "
            f"and cannot receive payments."
        )
    return None


def etims_transition_policy(invoice: Invoice, target: EtimsStatus) -> Optional[LifecycleError]:
    if invoice.status in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
        return InvalidTransitionError(
            f"invoice {invoice.number} is '{invoice.status.value}' "
            f"and cannot be submitted for ETIMS."
        )
    if target not in ETIMS_TRANSITIONS.get(invoice.etims_status, frozenset()):
        return InvalidTransitionError(
            f"invoice {invoice.number} ETIMS status cannot move from "
            f"'{invoice.etims_status.value}' to '{target.value}'."
        )
    return None


def credit_note_invoice_policy(invoice: Optional[Invoice], customer_id) -> Optional[LifecycleError]:
    if invoice is not None and invoice.customer_id != customer_id:
        return ValidationError(
            f"invoice {invoice.number} does not belong to customer {customer_id}."
        )
    return None


def is_expirable(document, now: datetime) -> bool:
    """Open quotation or proforma whose validity window has lapsed."""
    open_statuses = {
        EntityKind.QUOTATION: (QuotationStatus.DRAFT, QuotationStatus.SENT),
        EntityKind.PROFORMA: (ProformaStatus.DRAFT, ProformaStatus.SENT),
    }[document.kind]
    return (
        document.status in open_statuses
        and not document.is_converted
        and is_past(document.valid_until, now)
    )


def is_overdue(invoice: Invoice, now: datetime) -> bool:
    return (
        invoice.status == InvoiceStatus.SENT
        and not invoice.is_settled
        and is_past(invoice.due_date, now)
    )
