import logging
import re
from decimal import Decimal, InvalidOperation

from django.conf import settings

from core.exceptions import ExternalDependencyError
from core.models import TaxRate
from core.services.catalog import fetch_catalog_tax_rates

logger = logging.getLogger(__name__)

DEFAULT_RATE = Decimal("20")
REDUCED_RATE = Decimal("10")
ZERO = Decimal("0")

_PERCENT_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*%")
_LEADING_NUMBER_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)")

EXEMPT_MARKERS = ("exempt", "exoner")
ZERO_MARKERS = ("zero",)
REDUCED_MARKERS = ("reduced",)


def _normalize_class(value) -> str:
    value = (value or "").strip().lower()
    return "" if value == "standard" else value


def _to_decimal(raw):
    try:
        return Decimal(str(raw).replace(",", "."))
    except (InvalidOperation, ValueError):
        return None


def resolve_vat_rate(tax_class, rates=None, *, default_rate=DEFAULT_RATE, reduced_rate=REDUCED_RATE) -> Decimal:
    """Map a product tax class to a VAT percentage (0-100).

    Rules, first match wins:
    1) authoritative table entry for the class ("" and "standard" are the same class)
    2) explicit percentage in the text ("10%", "5,5 %")
    3) fallback rules: exempt/zero -> 0, reduced -> reduced_rate,
       empty/standard -> default_rate, leading number, else default_rate

    Pure function: same input, same output, no database or network access.
    Unrecognized non-empty classes fall back to default_rate (lenient policy).
    """
    raw = (tax_class or "").strip()
    key = _normalize_class(raw)

    for row in rates or ():
        if _normalize_class(row.get("class")) == key:
            rate = _to_decimal(row.get("rate"))
            if rate is not None:
                return rate

    match = _PERCENT_RE.search(raw)
    if match:
        return _to_decimal(match.group(1))

    lowered = raw.lower()
    if any(marker in lowered for marker in EXEMPT_MARKERS + ZERO_MARKERS):
        return ZERO
    if any(marker in lowered for marker in REDUCED_MARKERS):
        return Decimal(reduced_rate)
    if not key:
        return Decimal(default_rate)

    match = _LEADING_NUMBER_RE.match(raw)
    if match:
        return _to_decimal(match.group(1))
    return Decimal(default_rate)


def configured_rates() -> dict:
    """Keyword arguments for resolve_vat_rate taken from settings."""
    return {
        "default_rate": getattr(settings, "VAT_DEFAULT_RATE", DEFAULT_RATE),
        "reduced_rate": getattr(settings, "VAT_REDUCED_RATE", REDUCED_RATE),
    }


def load_authoritative_rates() -> list[dict]:
    """Local TaxRate rows, overridden by the external catalog when configured.

    A catalog failure is never fatal: we log it and keep the local table,
    and the resolver's static rules cover everything else.
    """
    table = {_normalize_class(row["class"]): row for row in TaxRate.objects.as_table()}

    url = getattr(settings, "CATALOG_TAX_RATES_URL", "")
    if url:
        try:
            for row in fetch_catalog_tax_rates(url, timeout=getattr(settings, "CATALOG_TIMEOUT", 10)):
                table[_normalize_class(row["class"])] = row
        except ExternalDependencyError as e:
            logger.warning("Catalog tax rates unavailable, using local rates and fallback rules: %s", e)

    return list(table.values())
