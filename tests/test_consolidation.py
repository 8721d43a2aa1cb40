"""Tests for line normalisation, consolidation and totals."""

from __future__ import annotations

from decimal import Decimal

import pytest

from core.exceptions import DocumentValidationError
from documents.models import LineSource
from documents.services.consolidation import consolidate
from documents.services.lines import LineItem, normalize_line, normalize_lines
from documents.services.totals import compute_totals, round2


def item(product_id="P-1", sku="SKU-1", qty=1, total="100.00", rate="20", vat=None, name="Argan oil"):
    total = Decimal(total)
    vat = Decimal(vat) if vat is not None else round2(total * Decimal(rate) / 100)
    return LineItem(
        product_id=product_id,
        product_sku=sku,
        product_name=name,
        quantity=qty,
        unit_price_ht=round2(total / qty),
        total_ht=total,
        vat_percentage=Decimal(rate),
        vat_amount=vat,
    )


# ---------------------------------------------------------------------------
# totals
# ---------------------------------------------------------------------------


def test_round2_is_half_up():
    assert round2(Decimal("10.005")) == Decimal("10.01")
    assert round2(Decimal("10.015")) == Decimal("10.02")
    assert round2(Decimal("2.675")) == Decimal("2.68")


def test_totals_round_once_on_the_aggregate():
    items = [item(total="10.005", vat="0") for _ in range(3)]

    totals = compute_totals(items)

    assert totals.subtotal_ht == Decimal("30.02")
    assert totals.total_vat == Decimal("0.00")
    assert totals.total_ttc == Decimal("30.02")


def test_totals_of_nothing_are_zero():
    totals = compute_totals([])

    assert totals.subtotal_ht == totals.total_vat == totals.total_ttc == Decimal("0.00")


# ---------------------------------------------------------------------------
# consolidation
# ---------------------------------------------------------------------------


def test_same_product_is_merged():
    result = consolidate([item(qty=2, total="100.00"), item(qty=3, total="150.00")])

    assert len(result) == 1
    merged = result[0]
    assert merged.quantity == 5
    assert merged.total_ht == Decimal("250.00")
    assert merged.vat_amount == Decimal("50.00")
    assert merged.unit_price_ht == Decimal("50.00")
    assert merged.source == LineSource.CONSOLIDATED


def test_order_of_first_occurrence_is_kept():
    result = consolidate([
        item(product_id="B", sku="b"),
        item(product_id="A", sku="a"),
        item(product_id="B", sku="b"),
    ])

    assert [r.product_id for r in result] == ["B", "A"]
    assert result[0].quantity == 2


def test_missing_identifiers_group_together():
    result = consolidate([
        item(product_id="", sku="", name="Gift wrap"),
        item(product_id="", sku="", name="Gift wrap"),
        item(product_id="P-1", sku=""),
    ])

    assert [r.key for r in result] == [("unknown", "no-sku"), ("P-1", "no-sku")]


def test_consolidation_is_idempotent():
    once = consolidate([item(qty=2), item(qty=1, total="33.33"), item(product_id="P-2", sku="S-2")])

    assert consolidate(once) == once


def test_merged_sums_keep_full_precision():
    result = consolidate([item(total="10.005", vat="0"), item(total="10.005", vat="0")])

    assert result[0].total_ht == Decimal("20.010")
    assert compute_totals(result).subtotal_ht == Decimal("20.01")


def test_divergent_vat_rates_are_not_averaged(caplog):
    result = consolidate([item(rate="20"), item(rate="10")])

    assert result[0].vat_percentage == Decimal("20")
    assert result[0].vat_amount == Decimal("30.00")
    assert "Divergent VAT rates" in caplog.text


# ---------------------------------------------------------------------------
# normalisation
# ---------------------------------------------------------------------------


def test_missing_total_is_unit_times_quantity():
    line = normalize_line({"product_name": "Mug", "quantity": 3, "unit_price_ht": "4.50", "vat_percentage": 20})

    assert line.total_ht == Decimal("13.50")
    assert line.vat_amount == Decimal("2.70")


def test_missing_unit_price_is_total_over_quantity():
    line = normalize_line({"product_sku": "MUG", "quantity": 3, "total_ht": "10.00", "vat_percentage": 0})

    assert line.unit_price_ht == Decimal("3.33")
    assert line.total_ht == Decimal("10.00")


def test_missing_rate_is_resolved_from_tax_class(settings):
    line = normalize_line({"product_id": "P-9", "quantity": 1, "unit_price_ht": "50", "tax_class": "reduced-rate"})

    assert line.vat_percentage == Decimal("10.00")
    assert line.vat_amount == Decimal("5.00")


def test_supplied_vat_amount_is_kept():
    line = normalize_line({"product_id": "P-9", "quantity": 1, "unit_price_ht": "50", "vat_percentage": 20,
                           "vat_amount": "9.99"})

    assert line.vat_amount == Decimal("9.99")


@pytest.mark.parametrize(
    "raw",
    [
        {"quantity": 1, "unit_price_ht": 1},
        {"product_name": "Mug", "quantity": 0, "unit_price_ht": 1},
        {"product_name": "Mug", "quantity": "1.5", "unit_price_ht": 1},
        {"product_name": "Mug", "quantity": 1},
        {"product_name": "Mug", "quantity": 1, "unit_price_ht": "-2"},
        {"product_name": "Mug", "quantity": 1, "unit_price_ht": "abc"},
        {"product_name": "Mug", "quantity": 1, "unit_price_ht": 1, "vat_percentage": 120},
    ],
)
def test_invalid_lines_are_rejected(raw):
    with pytest.raises(DocumentValidationError):
        normalize_line(raw, rates=[])


def test_empty_line_set_is_rejected():
    with pytest.raises(DocumentValidationError):
        normalize_lines([])
