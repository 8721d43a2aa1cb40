"""Daily source data shared by the cash control and the sales journal.

Two streams feed both:
- invoices paid on the day, except those generated from a shop order
  (the order itself is already counted)
- shop orders completed on the day, in the project time zone
"""

import datetime

from django.utils import timezone

from documents.models import ImportedOrder, Invoice

TRANSFER_MARKERS = ("transfer", "virement")
CHECK_MARKERS = ("check", "chèque", "cheque")


def day_bounds(day):
    """[day 00:00, day + 1 00:00) as aware datetimes in the current time zone."""
    start = timezone.make_aware(datetime.datetime.combine(day, datetime.time.min))
    return start, start + datetime.timedelta(days=1)


def paid_invoices(day):
    return (
        Invoice.objects.filter(status=Invoice.Status.PAID, paid_date=day)
        .exclude(source=Invoice.Source.ORDER)
        .order_by("id")
    )


def completed_orders(day):
    start, end = day_bounds(day)
    return ImportedOrder.objects.filter(
        order_status=ImportedOrder.Status.COMPLETED,
        order_date__gte=start,
        order_date__lt=end,
    ).order_by("order_date", "id")


def invoice_payment_bucket(invoice) -> str:
    if invoice.payment_method == Invoice.PaymentMethod.TRANSFER:
        return "transfer"
    if invoice.payment_method == Invoice.PaymentMethod.CHECK:
        return "check"
    return "cash"


def order_payment_bucket(order) -> str:
    """Shop orders carry a free-text method ("Virement bancaire", "Check payments", ...)."""
    method = (order.payment_method or "").casefold()
    if any(m in method for m in TRANSFER_MARKERS):
        return "transfer"
    if any(m in method for m in CHECK_MARKERS):
        return "check"
    return "cash"
