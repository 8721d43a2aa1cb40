"""Tests for the year-scoped number series."""

from __future__ import annotations

import datetime
import threading

import pytest
from django.db import connection

from core.exceptions import DocumentValidationError, PreconditionFailed
from core.models import DocumentType, NumberingSequence

pytestmark = pytest.mark.django_db


def test_first_allocation_creates_the_year_row():
    number = NumberingSequence.allocate(DocumentType.INVOICE, datetime.date(2024, 3, 1))

    assert number == "FA-20240001"
    series = NumberingSequence.objects.get(document_type="invoice", year=2024)
    assert series.prefix == "FA"
    assert series.next_number == 2


def test_allocations_are_unique_and_contiguous():
    numbers = [NumberingSequence.allocate("quote", datetime.date(2024, 1, 15)) for _ in range(5)]

    assert numbers == [f"DV-2024000{i}" for i in range(1, 6)]


def test_each_type_has_its_own_counter_and_prefix():
    d = datetime.date(2024, 6, 1)

    assert NumberingSequence.allocate("purchase_order", d) == "BG-20240001"
    assert NumberingSequence.allocate("delivery_note", d) == "BL-20240001"
    assert NumberingSequence.allocate("return_note", d) == "BR-20240001"
    assert NumberingSequence.allocate("purchase_order", d) == "BG-20240002"


def test_year_rollover_restarts_at_one():
    NumberingSequence.allocate("invoice", datetime.date(2024, 12, 31))
    NumberingSequence.allocate("invoice", datetime.date(2024, 12, 31))

    assert NumberingSequence.allocate("invoice", datetime.date(2025, 1, 1)) == "FA-20250001"
    assert NumberingSequence.allocate("invoice", datetime.date(2024, 12, 31)) == "FA-20240003"


def test_unknown_document_type_is_a_validation_error():
    with pytest.raises(DocumentValidationError):
        NumberingSequence.allocate("receipt", datetime.date(2024, 1, 1))


def test_preview_does_not_consume():
    d = datetime.date(2024, 2, 1)

    assert NumberingSequence.preview("invoice", d) == "FA-20240001"
    assert NumberingSequence.preview("invoice", d) == "FA-20240001"
    assert NumberingSequence.allocate("invoice", d) == "FA-20240001"
    assert NumberingSequence.preview("invoice", d) == "FA-20240002"


def test_width_grows_past_padding():
    d = datetime.date(2024, 2, 1)
    NumberingSequence.configure("invoice", 2024, next_number=10000)

    assert NumberingSequence.allocate("invoice", d) == "FA-202410000"


# ---------------------------------------------------------------------------
# configure
# ---------------------------------------------------------------------------


def test_configure_normalizes_prefix_and_moves_counter_forward():
    series = NumberingSequence.configure("invoice", 2024, prefix="  fac ", next_number=42)

    assert series.prefix == "FAC"
    assert series.next_number == 42
    assert NumberingSequence.allocate("invoice", datetime.date(2024, 7, 1)) == "FAC-20240042"


def test_configure_rejects_empty_prefix():
    with pytest.raises(DocumentValidationError):
        NumberingSequence.configure("invoice", 2024, prefix="   ")


def test_configure_rejects_counter_below_one():
    with pytest.raises(DocumentValidationError):
        NumberingSequence.configure("invoice", 2024, next_number=0)


def test_configure_never_lowers_the_counter():
    NumberingSequence.configure("invoice", 2024, next_number=10)

    with pytest.raises(PreconditionFailed):
        NumberingSequence.configure("invoice", 2024, next_number=5)
    assert NumberingSequence.objects.get(document_type="invoice", year=2024).next_number == 10


# ---------------------------------------------------------------------------
# concurrency
# ---------------------------------------------------------------------------


@pytest.mark.django_db(transaction=True)
def test_concurrent_allocations_never_collide():
    d = datetime.date(2024, 9, 1)
    NumberingSequence.for_year("invoice", 2024)
    results, errors = [], []

    def worker():
        try:
            for _ in range(5):
                results.append(NumberingSequence.allocate("invoice", d))
        except Exception as e:  # collected and asserted below
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert len(results) == 40
    assert len(set(results)) == 40
    assert sorted(results) == [f"FA-2024{str(i).zfill(4)}" for i in range(1, 41)]
