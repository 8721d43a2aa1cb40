"""Tests for the daily sales journal."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest
from django.db import DatabaseError
from django.utils import timezone

from core.exceptions import PersistenceError, PreconditionFailed
from core.models import NumberingSequence
from documents.models import LineSource
from documents.services.document_service import SERVICES
from ledger.models import SalesJournal, SalesJournalLine
from ledger.services import sales_journal
from ledger.services.cash_control import create_cash_control
from ledger.services.sales_journal import build_sales_journal

pytestmark = pytest.mark.django_db


@pytest.fixture
def paid_invoice(make_document, line_data):
    invoice = make_document("invoice", lines=[line_data(quantity=2, total_ht="200.00", unit_price_ht=None)])
    return SERVICES["invoice"].update_status(invoice.pk, "paid", paid_date="2024-05-01")


def test_end_to_end_day(day, paid_invoice, make_order, user):
    make_order("1001")
    create_cash_control(day)

    result = build_sales_journal(day, by=user)

    journal = SalesJournal.objects.get(pk=result.journal.pk)
    assert journal.number == "FG-20240001"
    assert journal.journal_date == day
    assert journal.subtotal_ht == Decimal("300.00")
    assert journal.total_vat == Decimal("60.00")
    assert journal.total_ttc == Decimal("360.00")

    line = journal.lines.get()
    assert line.quantity == 3
    assert line.total_ht == Decimal("300.00")
    assert line.vat_amount == Decimal("60.00")
    assert line.unit_price_ht == Decimal("100.00")
    assert line.source == LineSource.CONSOLIDATED

    assert result.as_dict() == {
        "invoices_count": 1,
        "orders_count": 1,
        "line_items_count": 1,
        "original_line_items_count": 2,
    }


def test_without_closed_cash_control_nothing_is_written(day, paid_invoice):
    with pytest.raises(PreconditionFailed):
        build_sales_journal(day)

    create_cash_control(day, close=False)
    with pytest.raises(PreconditionFailed):
        build_sales_journal(day)

    assert SalesJournal.objects.count() == 0
    assert not NumberingSequence.objects.filter(document_type="sales_journal").exists()


def test_second_build_for_the_same_day_fails(day, paid_invoice):
    create_cash_control(day)
    build_sales_journal(day)

    with pytest.raises(PreconditionFailed):
        build_sales_journal(day)
    assert SalesJournal.objects.filter(journal_date=day).count() == 1


def test_day_without_sales_is_rejected(day):
    create_cash_control(day)

    with pytest.raises(PreconditionFailed):
        build_sales_journal(day)
    assert SalesJournalLine.objects.count() == 0


def test_only_the_day_and_eligible_sources_count(day, paid_invoice, make_document, line_data, make_order):
    # Order-sourced invoice: the order is already counted.
    make_order("55")
    from_order = make_document("invoice", order_id="55")
    SERVICES["invoice"].update_status(from_order.pk, "paid", paid_date="2024-05-01")
    # Unpaid invoice, other-day order, not completed order.
    make_document("invoice")
    make_order("56", when=timezone.make_aware(datetime.datetime(2024, 5, 2, 0, 0)))
    make_order("57", status="processing")
    create_cash_control(day)

    result = build_sales_journal(day)

    assert result.invoices_count == 1
    assert result.orders_count == 1
    assert result.journal.lines.get().quantity == 3


def test_order_tax_total_is_kept_when_reported(day, make_order):
    make_order("9", lines=[
        {"product_id": "P-7", "product_sku": "TEA", "product_name": "Mint tea", "quantity": 2,
         "price": Decimal("5.00"), "subtotal": Decimal("10.00"), "tax_total": Decimal("1.00"),
         "tax_class": "reduced-rate"},
    ])
    create_cash_control(day)

    line = build_sales_journal(day).journal.lines.get()

    assert line.vat_percentage == Decimal("10.00")
    assert line.vat_amount == Decimal("1.00")
    assert line.source == LineSource.IMPORTED_ORDER


# ---------------------------------------------------------------------------
# persistence failures
# ---------------------------------------------------------------------------


def test_line_write_failure_leaves_no_journal(day, paid_invoice, make_order, monkeypatch):
    make_order("1001")
    create_cash_control(day)

    def boom(journal, items):
        raise DatabaseError("disk full")

    monkeypatch.setattr(sales_journal, "write_journal_lines", boom)

    with pytest.raises(PersistenceError) as exc:
        build_sales_journal(day)

    assert exc.value.retryable is True
    assert SalesJournal.objects.count() == 0
    assert SalesJournalLine.objects.count() == 0

    # The failed attempt burned FG-20240001; a retry succeeds with the next number.
    monkeypatch.undo()
    assert build_sales_journal(day).journal.number == "FG-20240002"


def test_concurrent_duplicate_is_reported_as_already_existing(day, paid_invoice, monkeypatch):
    create_cash_control(day)
    build_sales_journal(day)

    # A concurrent build that passed the existence check loses on the unique journal_date.
    monkeypatch.setattr(sales_journal, "journal_exists", lambda journal_date: False)

    with pytest.raises(PreconditionFailed) as exc:
        build_sales_journal(day)

    assert "already exists" in exc.value.message
    assert SalesJournal.objects.filter(journal_date=day).count() == 1


def test_consolidated_totals_round_once(day, make_order):
    for order_id in ("1", "2", "3"):
        make_order(order_id, lines=[
            {"product_id": f"P-{order_id}", "product_sku": "", "product_name": "Sachet", "quantity": 1,
             "price": Decimal("0.05"), "subtotal": Decimal("0.05"), "tax_total": None, "tax_class": "reduced"},
        ])
    create_cash_control(day)

    journal = build_sales_journal(day).journal

    # 3 x (0.05 x 10%) = 0.015 -> 0.02 once, not 3 x 0.01.
    assert journal.total_vat == Decimal("0.02")
    assert journal.subtotal_ht == Decimal("0.15")
