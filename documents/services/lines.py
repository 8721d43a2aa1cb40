"""In-memory line items and their normalisation.

Every source (manual entry, imported orders, delivery notes, stored invoice
lines) is turned into a `LineItem` before it is consolidated, totalled or
persisted, so the rest of the engine deals with one shape only.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Sequence

from core.exceptions import DocumentValidationError
from core.services.vat import configured_rates, resolve_vat_rate
from documents.models.base import LineSource
from documents.services.totals import round2

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class LineItem:
    product_id: str
    product_sku: str
    product_name: str
    quantity: int
    unit_price_ht: Decimal
    total_ht: Decimal
    vat_percentage: Decimal
    vat_amount: Decimal
    source: str = LineSource.MANUAL

    @property
    def key(self) -> tuple[str, str]:
        """Product identity used for consolidation."""
        return (self.product_id or "unknown", self.product_sku or "no-sku")

    def tagged(self, source: str) -> "LineItem":
        return replace(self, source=source)

    @classmethod
    def from_model(cls, line, source: Optional[str] = None) -> "LineItem":
        return cls(
            product_id=line.product_id,
            product_sku=line.product_sku,
            product_name=line.product_name,
            quantity=line.quantity,
            unit_price_ht=line.unit_price_ht,
            total_ht=line.total_ht,
            vat_percentage=line.vat_percentage,
            vat_amount=line.vat_amount,
            source=source or line.source,
        )

    def model_fields(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_sku": self.product_sku,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_ht": round2(self.unit_price_ht),
            "total_ht": round2(self.total_ht),
            "vat_percentage": round2(self.vat_percentage),
            "vat_amount": round2(self.vat_amount),
            "source": self.source,
        }


def _amount(raw: Mapping[str, Any], field: str, label: str) -> Optional[Decimal]:
    value = raw.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise DocumentValidationError(f"{label}: {field} must be a number.")
    try:
        amount = Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        raise DocumentValidationError(f"{label}: {field} must be a number.")
    if not amount.is_finite() or amount < 0:
        raise DocumentValidationError(f"{label}: {field} must be zero or positive.")
    return amount


def _quantity(raw: Mapping[str, Any], label: str) -> int:
    value = raw.get("quantity")
    if isinstance(value, bool):
        value = None
    try:
        quantity = int(str(value).strip()) if value is not None else None
    except ValueError:
        quantity = None
    if quantity is None or quantity < 1:
        raise DocumentValidationError(f"{label}: quantity must be a whole number of at least 1.")
    return quantity


def normalize_line(raw: Mapping[str, Any], *, position: int = 1, rates: Optional[Sequence[Mapping]] = None,
                   source: str = LineSource.MANUAL) -> LineItem:
    """Validate one incoming line and reconcile its amounts.

    - total_ht missing: unit_price_ht x quantity
    - unit_price_ht missing: total_ht / quantity
    - vat_percentage missing: resolved from tax_class
    - vat_amount missing: total_ht x vat_percentage / 100

    A supplied total_ht is kept (it may carry a discount). total_ht and
    vat_amount keep full precision: they are rounded to cents only when the
    line is persisted, so document totals round once, on the aggregate.
    """
    label = f"Line {position}"
    if not isinstance(raw, Mapping):
        raise DocumentValidationError(f"{label}: expected an object.")

    product_id = str(raw.get("product_id") or "").strip()
    product_sku = str(raw.get("product_sku") or "").strip()
    product_name = str(raw.get("product_name") or "").strip()
    if not (product_id or product_sku or product_name):
        raise DocumentValidationError(f"{label}: a product id, sku or name is required.")

    quantity = _quantity(raw, label)
    unit_price = _amount(raw, "unit_price_ht", label)
    total_ht = _amount(raw, "total_ht", label)
    if unit_price is None and total_ht is None:
        raise DocumentValidationError(f"{label}: unit_price_ht or total_ht is required.")
    if total_ht is None:
        total_ht = unit_price * quantity
    if unit_price is None:
        unit_price = total_ht / quantity

    vat_percentage = _amount(raw, "vat_percentage", label)
    if vat_percentage is None:
        vat_percentage = resolve_vat_rate(raw.get("tax_class"), rates, **configured_rates())
    if vat_percentage > HUNDRED:
        raise DocumentValidationError(f"{label}: vat_percentage must be between 0 and 100.")

    vat_amount = _amount(raw, "vat_amount", label)
    if vat_amount is None:
        vat_amount = total_ht * vat_percentage / HUNDRED

    return LineItem(
        product_id=product_id,
        product_sku=product_sku,
        product_name=product_name or product_sku or product_id,
        quantity=quantity,
        unit_price_ht=round2(unit_price),
        total_ht=total_ht,
        vat_percentage=round2(vat_percentage),
        vat_amount=vat_amount,
        source=source,
    )


def normalize_lines(raw_lines, *, rates=None, source: str = LineSource.MANUAL) -> list[LineItem]:
    if not raw_lines or not isinstance(raw_lines, (list, tuple)):
        raise DocumentValidationError("At least one line item is required.")
    return [
        normalize_line(raw, position=i, rates=rates, source=source)
        for i, raw in enumerate(raw_lines, start=1)
    ]
