"""
Trade Documents Tax — Public API
==================================
Per-line tax computation (primary VAT plus simple and compound
additional taxes) and document total aggregation.
"""

from core.tax.engine import (
    DocumentTotals,
    LineTotals,
    calculate_document_totals,
    calculate_line_item_taxes,
    calculate_line_total,
    exclusive_unit_price,
    is_selected_line,
)
from core.tax.models import LineItemTax, TaxDefinition

__all__ = [
    "DocumentTotals",
    "LineTotals",
    "LineItemTax",
    "TaxDefinition",
    "calculate_document_totals",
    "calculate_line_item_taxes",
    "calculate_line_total",
    "exclusive_unit_price",
    "is_selected_line",
]
