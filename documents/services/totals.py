from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value) -> Decimal:
    """Half-up rounding to cents (10.005 -> 10.01, never banker's rounding)."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class DocumentTotals:
    subtotal_ht: Decimal
    total_vat: Decimal
    total_ttc: Decimal


def compute_totals(items) -> DocumentTotals:
    """Sum line totals and round once, on the aggregate.

    Rounding each line first and then summing compounds the error:
    3 x 10.005 must give 30.02, not 3 x 10.01 = 30.03.
    """
    subtotal_ht = round2(sum((Decimal(i.total_ht) for i in items), ZERO))
    total_vat = round2(sum((Decimal(i.vat_amount) for i in items), ZERO))
    return DocumentTotals(
        subtotal_ht=subtotal_ht,
        total_vat=total_vat,
        total_ttc=subtotal_ht + total_vat,
    )
