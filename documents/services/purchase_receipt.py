import logging

from django.db import transaction

from core.exceptions import DocumentValidationError, PreconditionFailed
from documents.models import PurchaseOrder

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (PurchaseOrder.Status.COMPLETED, PurchaseOrder.Status.CANCELLED)


def _received_quantities(received_items) -> dict:
    """Map line id -> quantity received. A repeated id keeps its last quantity."""
    if not received_items or not isinstance(received_items, (list, tuple)):
        raise DocumentValidationError("received_items must be a non-empty list.")

    quantities = {}
    for position, item in enumerate(received_items, start=1):
        label = f"Item {position}"
        if not isinstance(item, dict):
            raise DocumentValidationError(f"{label}: expected an object.")
        line_id = item.get("id")
        quantity = item.get("quantity_received")
        if isinstance(line_id, bool) or isinstance(quantity, bool):
            raise DocumentValidationError(f"{label}: id and quantity_received must be whole numbers.")
        try:
            line_id = int(line_id)
            quantity = int(str(quantity).strip())
        except (TypeError, ValueError):
            raise DocumentValidationError(f"{label}: id and quantity_received must be whole numbers.")
        if quantity < 0:
            raise DocumentValidationError(f"{label}: quantity_received must be zero or positive.")
        quantities[line_id] = quantity
    return quantities


@transaction.atomic
def receive_purchase_order(pk, received_items, by=None) -> PurchaseOrder:
    """Record the goods received against a purchase order.

    Step-by-step:
    1) Validate the received quantities
    2) Lock the order; it must still be open (pending or partial)
    3) Every item must name a line of this order
    4) Store the received quantity on each named line
    5) Move the order along: completed once every line is fully received,
       partial as soon as anything was received

    A partial order whose quantities drop back to zero stays partial.
    """
    quantities = _received_quantities(received_items)

    try:
        order = PurchaseOrder.objects.select_for_update().get(pk=pk)
    except (PurchaseOrder.DoesNotExist, ValueError, TypeError):
        raise DocumentValidationError(f"Purchase order {pk} not found.")
    if order.status in CLOSED_STATUSES:
        raise PreconditionFailed(f"Purchase order {order.number} is {order.status} and cannot be received.")

    lines = {line.pk: line for line in order.lines.all()}
    unknown = sorted(i for i in quantities if i not in lines)
    if unknown:
        raise PreconditionFailed(f"Lines not found on purchase order {order.number}: {unknown}")

    for line_id, quantity in quantities.items():
        line = lines[line_id]
        line.quantity_received = quantity
        line.save(update_fields=["quantity_received"])

    if all(line.is_fully_received for line in lines.values()):
        order.complete(by=by)
    elif order.status == PurchaseOrder.Status.PENDING and any(line.quantity_received for line in lines.values()):
        order.receive_partial(by=by)

    if by is not None:
        order._history_user = by
    order.save()

    logger.info(
        "Purchase order %s received (%s lines updated) -> %s",
        order.number, len(quantities), order.status,
    )
    return order
