"""Shared pytest fixtures for the numbering and consolidation engine tests."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from documents.models import ImportedOrder, ImportedOrderLine
from documents.services.document_service import SERVICES

DAY = datetime.date(2024, 5, 1)


@pytest.fixture
def day() -> datetime.date:
    return DAY


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username="clerk", password="secret")


@pytest.fixture
def api_client(client, user):
    client.force_login(user)
    return client


@pytest.fixture
def line_data():
    """Factory for one incoming line item payload."""

    def _make(**overrides) -> dict:
        data = {
            "product_id": "P-1",
            "product_sku": "SKU-1",
            "product_name": "Argan oil 250ml",
            "quantity": 2,
            "unit_price_ht": "100.00",
            "vat_percentage": "20",
        }
        data.update(overrides)
        return data

    return _make


@pytest.fixture
def make_document(line_data):
    """Create a document of any type through its service."""

    def _make(document_type="quote", lines=None, by=None, **header):
        role = SERVICES[document_type].model.counterpart_role
        data = {
            f"{role}_name": "Atelier Zellige",
            "date": DAY.isoformat(),
            "line_items": lines if lines is not None else [line_data()],
        }
        data.update(header)
        return SERVICES[document_type].create(data, by=by)

    return _make


@pytest.fixture
def make_order():
    """Create a shop order with its lines (ImportedOrder rows are written by the sync)."""

    def _make(order_id="1001", *, status="completed", when=None, payment_method="Cash on delivery",
              lines=None, total_amount=None):
        when = when or timezone.make_aware(datetime.datetime.combine(DAY, datetime.time(12, 0)))
        lines = lines if lines is not None else [
            {"product_id": "P-1", "product_sku": "SKU-1", "product_name": "Argan oil 250ml",
             "quantity": 1, "price": Decimal("100.00"), "subtotal": Decimal("100.00"),
             "tax_total": None, "tax_class": "standard"},
        ]
        order = ImportedOrder.objects.create(
            order_id=order_id,
            order_number=f"#{order_id}",
            customer_name="Web customer",
            order_status=status,
            order_date=when,
            payment_method=payment_method,
            total_amount=total_amount if total_amount is not None else Decimal("120.00"),
        )
        for line in lines:
            ImportedOrderLine.objects.create(order=order, **line)
        return order

    return _make
