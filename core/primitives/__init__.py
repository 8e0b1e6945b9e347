"""
Trade Documents Core Primitives — Business Building Blocks
============================================================
Shared, engine-agnostic building blocks consumed by the lifecycle
service. They are:

- Pure Python (no Django dependency)
- Immutable (frozen dataclasses)
- Deterministic (same input → same output)
- Serializable (to_dict / from_dict) so any store can persist them

Primitives:
    money      — Decimal currency helpers
    party      — Customer / supplier snapshot
    item       — Catalogue product with inventory counters
    inventory  — Stock movement audit record
    document   — Quotation, ProformaInvoice, Invoice, CreditNote
    payment    — Payment received against an invoice
    ledger     — Payment application and stock posting helpers
    kinds      — Entity kinds and document number prefixes
"""
