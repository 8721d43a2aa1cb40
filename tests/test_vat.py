"""Tests for tax class -> VAT percentage resolution and the catalog client."""

from __future__ import annotations

import io
import json
from decimal import Decimal

import pytest

from core.exceptions import ExternalDependencyError
from core.models import TaxRate
from core.services import catalog
from core.services.vat import load_authoritative_rates, resolve_vat_rate


@pytest.mark.parametrize(
    "tax_class, expected",
    [
        ("", Decimal("20")),
        (None, Decimal("20")),
        ("standard", Decimal("20")),
        (" Standard ", Decimal("20")),
        ("exonerer", Decimal("0")),
        ("TVA exonerer totale", Decimal("0")),
        ("tax-exempt", Decimal("0")),
        ("zero-rate", Decimal("0")),
        ("reduced-rate", Decimal("10")),
        ("15%", Decimal("15")),
        ("TVA 5,5 %", Decimal("5.5")),
        ("7 pour cent", Decimal("7")),
        ("luxury", Decimal("20")),
    ],
)
def test_fallback_rules(tax_class, expected):
    assert resolve_vat_rate(tax_class) == expected


def test_table_entry_wins_over_rules():
    rates = [{"class": "reduced", "rate": "7"}]

    assert resolve_vat_rate("reduced", rates) == Decimal("7")
    assert resolve_vat_rate("REDUCED ", rates) == Decimal("7")


def test_table_standard_and_empty_are_the_same_class():
    rates = [{"class": "standard", "rate": "19"}]

    assert resolve_vat_rate("", rates) == Decimal("19")


def test_rates_come_from_the_callers():
    assert resolve_vat_rate("", default_rate=Decimal("19")) == Decimal("19")
    assert resolve_vat_rate("reduced", reduced_rate=Decimal("7")) == Decimal("7")


# ---------------------------------------------------------------------------
# authoritative table + catalog
# ---------------------------------------------------------------------------


class _FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.mark.django_db
def test_local_table_only_without_catalog(settings):
    settings.CATALOG_TAX_RATES_URL = ""
    TaxRate.objects.create(tax_class="reduced", name="Reduced", rate=Decimal("7"))

    rates = load_authoritative_rates()

    assert resolve_vat_rate("reduced", rates) == Decimal("7")


@pytest.mark.django_db
def test_catalog_rows_override_local_rows(settings, monkeypatch):
    settings.CATALOG_TAX_RATES_URL = "https://shop.example/tax-classes"
    TaxRate.objects.create(tax_class="reduced", name="Reduced", rate=Decimal("7"))
    payload = json.dumps([{"class": "reduced", "rate": "14"}]).encode()
    monkeypatch.setattr(catalog, "urlopen", lambda req, timeout, context: _FakeResponse(payload))

    rates = load_authoritative_rates()

    assert resolve_vat_rate("reduced", rates) == Decimal("14")


@pytest.mark.django_db
def test_catalog_failure_degrades_to_local_table(settings, monkeypatch):
    settings.CATALOG_TAX_RATES_URL = "https://shop.example/tax-classes"
    TaxRate.objects.create(tax_class="reduced", name="Reduced", rate=Decimal("7"))

    def boom(req, timeout, context):
        raise OSError("connection refused")

    monkeypatch.setattr(catalog, "urlopen", boom)

    rates = load_authoritative_rates()

    assert resolve_vat_rate("reduced", rates) == Decimal("7")


def test_catalog_client_rejects_malformed_payload(monkeypatch):
    monkeypatch.setattr(catalog, "urlopen", lambda req, timeout, context: _FakeResponse(b'{"oops": 1}'))

    with pytest.raises(ExternalDependencyError) as exc:
        catalog.fetch_catalog_tax_rates("https://shop.example/tax-classes")
    assert exc.value.retryable is True
