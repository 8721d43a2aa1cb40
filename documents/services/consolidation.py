import logging
from collections import OrderedDict
from dataclasses import replace
from decimal import Decimal

from documents.models.base import LineSource
from documents.services.totals import ZERO, round2

logger = logging.getLogger(__name__)


def consolidate(items):
    """Merge line items that describe the same product.

    Grouping key is (product_id or "unknown", product_sku or "no-sku").
    For each group:
    - quantity, total_ht and vat_amount are summed
    - unit_price_ht is recomputed as total_ht / quantity (only when rows merge)
    - sums are not rounded here; totals and persistence round them
    - vat_percentage and product_name come from the first row

    Output keeps the order of first occurrence. A single-row group comes back
    unchanged, so consolidating consolidated output is a no-op.
    """
    groups = OrderedDict()
    for item in items:
        groups.setdefault(item.key, []).append(item)

    result = []
    for key, rows in groups.items():
        first = rows[0]
        if len(rows) == 1:
            result.append(first)
            continue

        rates = {Decimal(r.vat_percentage) for r in rows}
        if len(rates) > 1:
            logger.warning(
                "Divergent VAT rates for product %s/%s: %s (keeping %s)",
                key[0], key[1], sorted(rates), first.vat_percentage,
            )

        quantity = sum(r.quantity for r in rows)
        total_ht = sum((Decimal(r.total_ht) for r in rows), ZERO)
        vat_amount = sum((Decimal(r.vat_amount) for r in rows), ZERO)
        result.append(
            replace(
                first,
                quantity=quantity,
                total_ht=total_ht,
                vat_amount=vat_amount,
                unit_price_ht=round2(total_ht / quantity),
                source=LineSource.CONSOLIDATED,
            )
        )
    return result
