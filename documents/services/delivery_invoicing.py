import logging

from django.db import transaction
from django.utils import timezone
from django_fsm import can_proceed

from core.exceptions import DocumentValidationError, PreconditionFailed
from documents.models import DeliveryNote, Invoice, LineSource
from documents.services.consolidation import consolidate
from documents.services.document_service import SERVICES, parse_date_value
from documents.services.lines import LineItem

logger = logging.getLogger(__name__)


def _customer_key(note) -> str:
    return (note.counterpart_name or "").strip().casefold()


@transaction.atomic
def invoice_delivery_notes(ids, invoice_date=None, by=None) -> Invoice:
    """Bill several delivery notes of one customer with a single invoice.

    Step-by-step:
    1) Lock the notes; all must exist and none may be invoiced yet
    2) All notes must belong to the same customer
    3) Gather their lines and consolidate them per product
    4) Create a draft invoice (source=delivery_notes)
    5) Mark every note invoiced and link it to the invoice

    Everything happens in one transaction: either all notes end up
    linked to the new invoice, or nothing is written.
    """
    if not ids or not isinstance(ids, (list, tuple)):
        raise DocumentValidationError("delivery_note_ids must be a non-empty list.")
    try:
        wanted = list(dict.fromkeys(int(i) for i in ids))
    except (TypeError, ValueError):
        raise DocumentValidationError("delivery_note_ids must contain ids.")

    invoice_date = parse_date_value(invoice_date, "invoice_date") or timezone.localdate()

    notes = list(
        DeliveryNote.objects.select_for_update().filter(pk__in=wanted).order_by("date", "id")
    )
    found = {n.pk for n in notes}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise PreconditionFailed(f"Delivery notes not found: {missing}")

    already = [n.number for n in notes if n.invoiced or n.status == DeliveryNote.Status.INVOICED]
    if already:
        raise PreconditionFailed(f"Delivery notes already invoiced: {', '.join(already)}")

    cancelled = [n.number for n in notes if not can_proceed(n.mark_invoiced)]
    if cancelled:
        raise PreconditionFailed(f"Delivery notes cannot be invoiced: {', '.join(cancelled)}")

    if len({_customer_key(n) for n in notes}) > 1:
        raise PreconditionFailed("Delivery notes belong to different customers.")

    items = [
        LineItem.from_model(line, source=LineSource.DELIVERY_NOTE)
        for note in notes
        for line in note.lines.all()
    ]
    if not items:
        raise PreconditionFailed("Selected delivery notes have no line items.")

    first = notes[0]
    numbers = ", ".join(n.number for n in notes)
    header = {
        "date": invoice_date,
        "counterpart_name": first.counterpart_name,
        "counterpart_email": first.counterpart_email,
        "counterpart_phone": first.counterpart_phone,
        "counterpart_address": first.counterpart_address,
        "notes": f"Invoice generated from delivery notes: {numbers}",
        "due_date": None,
        "source": Invoice.Source.DELIVERY_NOTES,
    }
    invoice = SERVICES["invoice"].create_from_lines(header, consolidate(items), by=by)

    for note in notes:
        note.mark_invoiced(invoice, by=by)
        if by is not None:
            note._history_user = by
        note.save()

    logger.info("Invoice %s created from %s delivery notes (%s)", invoice.number, len(notes), numbers)
    return invoice
