"""Tests for recording goods received against a purchase order."""

from __future__ import annotations

import pytest
from django_fsm_log.models import StateLog

from core.exceptions import DocumentValidationError, PreconditionFailed
from documents.models import PurchaseOrder, PurchaseOrderLine
from documents.services.document_service import SERVICES
from documents.services.purchase_receipt import receive_purchase_order

pytestmark = pytest.mark.django_db


@pytest.fixture
def order(make_document, line_data):
    return make_document(
        "purchase_order",
        lines=[
            line_data(quantity=10, unit_price_ht="4.00"),
            line_data(product_id="P-2", product_sku="SKU-2", quantity=5, unit_price_ht="7.50"),
        ],
    )


def received(order, *quantities):
    return [
        {"id": line.pk, "quantity_received": qty}
        for line, qty in zip(order.lines.all(), quantities)
    ]


def test_partial_receipt(order, user):
    result = receive_purchase_order(order.pk, received(order, 4), by=user)

    order = PurchaseOrder.objects.get(pk=result.pk)
    assert order.status == PurchaseOrder.Status.PARTIAL
    assert [line.quantity_received for line in order.lines.all()] == [4, 0]
    assert StateLog.objects.filter(object_id=order.pk, by=user).count() == 1


def test_full_receipt_completes_the_order(order):
    receive_purchase_order(order.pk, received(order, 4))

    result = receive_purchase_order(order.pk, received(order, 10, 5))

    assert PurchaseOrder.objects.get(pk=result.pk).status == PurchaseOrder.Status.COMPLETED


def test_over_receipt_counts_as_complete(order):
    result = receive_purchase_order(order.pk, received(order, 12, 5))

    assert result.status == PurchaseOrder.Status.COMPLETED


def test_nothing_received_stays_pending(order):
    result = receive_purchase_order(order.pk, received(order, 0, 0))

    assert PurchaseOrder.objects.get(pk=result.pk).status == PurchaseOrder.Status.PENDING
    assert StateLog.objects.count() == 0


def test_unknown_line_is_refused(order, make_document):
    other = make_document("purchase_order")
    foreign_line = other.lines.get()

    with pytest.raises(PreconditionFailed):
        receive_purchase_order(order.pk, [{"id": foreign_line.pk, "quantity_received": 1}])
    assert PurchaseOrderLine.objects.filter(quantity_received__gt=0).count() == 0


def test_closed_orders_cannot_be_received(order):
    SERVICES["purchase_order"].update_status(order.pk, "cancelled")

    with pytest.raises(PreconditionFailed):
        receive_purchase_order(order.pk, received(order, 10, 5))
    assert PurchaseOrder.objects.get(pk=order.pk).status == PurchaseOrder.Status.CANCELLED


@pytest.mark.parametrize("items", [
    None,
    [],
    ["line"],
    [{"id": "x", "quantity_received": 1}],
    [{"id": 1, "quantity_received": -1}],
    [{"id": 1, "quantity_received": True}],
])
def test_invalid_received_items(order, items):
    with pytest.raises(DocumentValidationError):
        receive_purchase_order(order.pk, items)


def test_unknown_order():
    with pytest.raises(DocumentValidationError):
        receive_purchase_order(9999, [{"id": 1, "quantity_received": 1}])
