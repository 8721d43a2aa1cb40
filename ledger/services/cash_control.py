import logging
from decimal import Decimal

from django.db import DatabaseError, IntegrityError, transaction

from core.exceptions import DocumentValidationError, PersistenceError, PreconditionFailed
from core.models import DocumentType, NumberingSequence
from core.permissions import grant_object_perms
from documents.services.document_service import parse_date_value
from documents.services.totals import round2
from ledger.models import CashControl
from ledger.services.sources import (
    completed_orders,
    invoice_payment_bucket,
    order_payment_bucket,
    paid_invoices,
)

logger = logging.getLogger(__name__)


def collect_payment_totals(day) -> dict:
    """Amounts collected on `day`, per payment bucket (cash / transfer / check)."""
    buckets = {"cash": Decimal("0"), "transfer": Decimal("0"), "check": Decimal("0")}
    for invoice in paid_invoices(day):
        buckets[invoice_payment_bucket(invoice)] += invoice.total_ttc
    for order in completed_orders(day):
        buckets[order_payment_bucket(order)] += order.total_amount
    return {k: round2(v) for k, v in buckets.items()}


def create_cash_control(control_date, notes="", close=True, by=None) -> CashControl:
    """Create the cash control of a day.

    The control is closed right away unless close=False (the sales journal
    of that day can then only be built after close_cash_control).
    """
    control_date = parse_date_value(control_date, "control_date")
    if control_date is None:
        raise DocumentValidationError("control_date is required.")

    if CashControl.objects.filter(control_date=control_date).exists():
        raise PreconditionFailed(f"A cash control already exists for {control_date}.")

    totals = collect_payment_totals(control_date)
    number = NumberingSequence.allocate(DocumentType.CASH_CONTROL, control_date)

    try:
        with transaction.atomic():
            control = CashControl(
                number=number,
                control_date=control_date,
                cash_total=totals["cash"],
                transfer_total=totals["transfer"],
                check_total=totals["check"],
                total_amount=totals["cash"] + totals["transfer"] + totals["check"],
                notes=(notes or "").strip(),
            )
            if by is not None:
                control._history_user = by
            control.save()
            if close:
                control.close(by=by)
                control.save()
    except IntegrityError:
        raise PreconditionFailed(f"A cash control already exists for {control_date}.")
    except DatabaseError as e:
        logger.exception("Failed to persist cash control %s", number)
        raise PersistenceError(f"Could not save cash control {number}: {e}")

    grant_object_perms(by, control)
    logger.info("Cash control %s for %s: total %s (%s)", number, control_date, control.total_amount, control.status)
    return control


@transaction.atomic
def close_cash_control(pk, by=None) -> CashControl:
    try:
        control = CashControl.objects.select_for_update().get(pk=pk)
    except (CashControl.DoesNotExist, ValueError, TypeError):
        raise DocumentValidationError(f"Cash control {pk} not found.")
    if control.status == CashControl.Status.CLOSED:
        raise PreconditionFailed(f"Cash control {control.number} is already closed.")
    control.close(by=by)
    control.save()
    return control
