"""
Trade Documents Tax Engine — Test Suite
=========================================
Line totals (discount, VAT, simple and compound additional taxes),
document aggregation and the total-consistency invariant.
"""

import random
import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from core.errors import ValidationError
from core.primitives.item import Product
from core.tax import (
    TaxDefinition,
    calculate_document_totals,
    calculate_line_item_taxes,
    calculate_line_total,
    exclusive_unit_price,
)

# ══════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════

EXCISE = TaxDefinition(tax_id="excise", name="Excise Tax", rate=Decimal("10"))
LEVY = TaxDefinition(tax_id="env_levy", name="Environmental Levy", rate=Decimal("2"))
SERVICE = TaxDefinition(
    tax_id="service_charge", name="Service Charge", rate=Decimal("10"),
    is_compound_tax=True,
)
TOURISM = TaxDefinition(
    tax_id="tourism", name="Tourism Levy", rate=Decimal("5"), is_compound_tax=True,
)


def _product(taxable=True, tax_rate="16", price="500"):
    return Product(
        product_id=uuid.uuid4(),
        name="Office Chair",
        sku="CHR-001",
        selling_price=Decimal(price),
        taxable=taxable,
        tax_rate=Decimal(tax_rate),
    )


def _item(quantity, unit_price, discount_percent=0, product_id=None):
    return SimpleNamespace(
        quantity=quantity,
        unit_price=unit_price,
        discount_percent=discount_percent,
        product_id=product_id,
    )


def _line(quantity, unit_price, discount_percent=0, product=None, taxes=()):
    """Computed line shaped like a stored LineItem."""
    totals = calculate_line_total(
        _item(quantity, unit_price, discount_percent), product, taxes,
    )
    return SimpleNamespace(
        product_id=product.product_id if product else None,
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        vat_amount=totals.vat_amount,
        additional_tax_amount=totals.additional_tax_amount,
        line_total=totals.line_total,
    )


# ══════════════════════════════════════════════════════════════
# LINE TOTALS
# ══════════════════════════════════════════════════════════════

class TestLineTotal:
    def test_discount_then_vat(self):
        totals = calculate_line_total(_item(5, Decimal("500"), 10), _product())
        assert totals.subtotal == Decimal("2500.00")
        assert totals.discount_amount == Decimal("250.00")
        assert totals.after_discount == Decimal("2250.00")
        assert totals.vat_rate == Decimal("16")
        assert totals.vat_amount == Decimal("360.00")
        assert totals.line_total == Decimal("2610.00")

    def test_non_taxable_product_has_no_vat(self):
        totals = calculate_line_total(_item(2, "100"), _product(taxable=False))
        assert totals.vat_rate == Decimal("0")
        assert totals.vat_amount == Decimal("0.00")
        assert totals.line_total == Decimal("200.00")

    def test_no_product_means_no_primary_tax(self):
        totals = calculate_line_total(_item(1, "100"), None)
        assert totals.vat_amount == Decimal("0.00")

    def test_components_rounded_half_up(self):
        totals = calculate_line_total(_item(3, "33.33"), _product())
        assert totals.subtotal == Decimal("99.99")
        assert totals.vat_amount == Decimal("16.00")
        assert totals.line_total == Decimal("115.99")

    def test_float_price_accepted_via_str(self):
        totals = calculate_line_total(_item(3, 0.1), None)
        assert totals.subtotal == Decimal("0.30")

    def test_simple_taxes_apply_to_after_discount(self):
        totals = calculate_line_total(
            _item(1, "1000", 10), _product(), (EXCISE, LEVY),
        )
        # after_discount = 900
        assert [t.amount for t in totals.line_taxes] == [Decimal("90.00"), Decimal("18.00")]
        assert totals.additional_tax_amount == Decimal("108.00")
        assert totals.line_total == Decimal("900.00") + Decimal("144.00") + Decimal("108.00")

    def test_compound_applies_on_top_of_simple(self):
        totals = calculate_line_total(_item(1, "1000"), _product(), (SERVICE, EXCISE))
        by_id = {t.tax_id: t.amount for t in totals.line_taxes}
        assert by_id["excise"] == Decimal("100.00")
        assert by_id["service_charge"] == Decimal("110.00")
        assert totals.additional_tax_amount == Decimal("210.00")
        assert totals.line_total == Decimal("1370.00")

    def test_compound_taxes_stack_in_selection_order(self):
        taxes = calculate_line_item_taxes(Decimal("1000"), (SERVICE, TOURISM))
        assert [t.amount for t in taxes] == [Decimal("100.00"), Decimal("55.00")]
        reversed_taxes = calculate_line_item_taxes(Decimal("1000"), (TOURISM, SERVICE))
        assert [t.amount for t in reversed_taxes] == [Decimal("50.00"), Decimal("105.00")]

    def test_vat_excluded_from_compound_base(self):
        taxes = calculate_line_item_taxes(Decimal("1000"), (SERVICE,))
        assert taxes[0].amount == Decimal("100.00")

    def test_line_taxes_keep_selection_order(self):
        taxes = calculate_line_item_taxes(Decimal("100"), (SERVICE, EXCISE, LEVY))
        assert [t.tax_id for t in taxes] == ["service_charge", "excise", "env_levy"]


class TestLineTotalValidation:
    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
    def test_quantity_must_be_positive_integer(self, quantity):
        with pytest.raises(ValidationError, match="quantity"):
            calculate_line_total(_item(quantity, "10"), None)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError, match="unit_price"):
            calculate_line_total(_item(1, "-1"), None)

    @pytest.mark.parametrize("discount", ["-0.01", "100.01"])
    def test_discount_bounds(self, discount):
        with pytest.raises(ValidationError, match="discount_percent"):
            calculate_line_total(_item(1, "10", discount), None)

    def test_full_discount_allowed(self):
        totals = calculate_line_total(_item(1, "10", 100), _product())
        assert totals.line_total == Decimal("0.00")

    def test_tax_rate_bounds(self):
        with pytest.raises(ValueError, match="between 0 and 100"):
            TaxDefinition(tax_id="x", name="X", rate=Decimal("101"))


# ══════════════════════════════════════════════════════════════
# DOCUMENT TOTALS
# ══════════════════════════════════════════════════════════════

class TestDocumentTotals:
    def test_sums_components(self):
        product = _product()
        lines = [
            _line(5, "500", 10, product),
            _line(1, "1000", 0, product, (EXCISE, SERVICE)),
        ]
        totals = calculate_document_totals(lines)
        assert totals.subtotal == Decimal("3500.00")
        assert totals.discount_amount == Decimal("250.00")
        assert totals.vat_amount == Decimal("520.00")
        assert totals.additional_tax_amount == Decimal("210.00")
        assert totals.total == Decimal("3980.00")

    def test_placeholder_rows_excluded(self):
        product = _product()
        lines = [_line(5, "500", 10, product), _line(9, "999", 0, None)]
        assert calculate_document_totals(lines).total == Decimal("2610.00")

    def test_empty_document(self):
        assert calculate_document_totals([]).total == Decimal("0.00")

    def test_total_equals_sum_of_line_totals_for_random_items(self):
        rng = random.Random(20261019)
        taxes = (EXCISE, LEVY, SERVICE, TOURISM)
        for _ in range(200):
            lines = []
            for _ in range(rng.randint(1, 6)):
                product = _product(
                    taxable=rng.random() > 0.2,
                    tax_rate=rng.choice(["0", "8", "16"]),
                )
                lines.append(_line(
                    rng.randint(1, 50),
                    Decimal(rng.randint(0, 1_000_000)) / 100,
                    Decimal(rng.randint(0, 10_000)) / 100,
                    product,
                    tuple(rng.sample(taxes, rng.randint(0, len(taxes)))),
                ))
            totals = calculate_document_totals(lines)
            assert totals.total == (
                totals.subtotal - totals.discount_amount
                + totals.vat_amount + totals.additional_tax_amount
            )
            assert totals.total == sum(line.line_total for line in lines)


class TestExclusiveUnitPrice:
    def test_strips_included_vat(self):
        assert exclusive_unit_price(Decimal("116"), Decimal("16")) == Decimal("100.00")

    def test_zero_rate_unchanged(self):
        assert exclusive_unit_price("250", Decimal("0")) == Decimal("250.00")
