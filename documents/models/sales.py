from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition
from django_fsm_log.decorators import fsm_log_by
from simple_history.models import HistoricalRecords

from core.models import DocumentType
from documents.models.base import CounterpartDocument, DocumentLine


class Quote(CounterpartDocument):
    """Quote: DRAFT -> SENT -> ACCEPTED, or EXPIRED.

    Only drafts can be edited; the number survives edits.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        ACCEPTED = "accepted", "Accepted"
        EXPIRED = "expired", "Expired"

    document_type = DocumentType.QUOTE
    EDITABLE_STATUSES = (Status.DRAFT,)
    EXTRA_FIELDS = ("valid_until_date",)

    status = FSMField(default=Status.DRAFT, choices=Status.choices, protected=True)
    valid_until_date = models.DateField(null=True, blank=True)

    history = HistoricalRecords()

    class Meta(CounterpartDocument.Meta):
        indexes = [models.Index(fields=["status", "date"])]

    @fsm_log_by
    @transition(field=status, source=Status.DRAFT, target=Status.SENT)
    def send(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=Status.SENT, target=Status.ACCEPTED)
    def accept(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=[Status.DRAFT, Status.SENT], target=Status.EXPIRED)
    def expire(self, by=None):
        pass


class QuoteLine(DocumentLine):
    document = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name="lines")


class Invoice(CounterpartDocument):
    """Sales invoice.

    `source` records where the invoice came from. Invoices generated from an
    imported shop order (source=ORDER) are left out of sales journals and cash
    controls, because the order itself is already counted there.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        OVERDUE = "overdue", "Overdue"
        PAID = "paid", "Paid"
        CANCELLED = "cancelled", "Cancelled"

    class Source(models.TextChoices):
        MANUAL = "manual", "Manual"
        DELIVERY_NOTES = "delivery_notes", "Delivery notes"
        ORDER = "order", "Imported order"

    class PaymentMethod(models.TextChoices):
        CASH = "cash", "Cash"
        TRANSFER = "transfer", "Bank transfer"
        CHECK = "check", "Check"

    document_type = DocumentType.INVOICE
    EDITABLE_STATUSES = (Status.DRAFT,)
    EXTRA_FIELDS = ("due_date",)

    status = FSMField(default=Status.DRAFT, choices=Status.choices, protected=True)
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.MANUAL)
    order = models.ForeignKey(
        "documents.ImportedOrder",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoices",
    )

    due_date = models.DateField(null=True, blank=True)
    paid_date = models.DateField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, blank=True, default="")

    history = HistoricalRecords()

    class Meta(CounterpartDocument.Meta):
        indexes = [
            models.Index(fields=["status", "date"]),
            models.Index(fields=["status", "paid_date"]),
        ]

    @fsm_log_by
    @transition(field=status, source=Status.DRAFT, target=Status.SENT)
    def send(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=Status.SENT, target=Status.OVERDUE)
    def mark_overdue(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=[Status.DRAFT, Status.SENT, Status.OVERDUE], target=Status.PAID)
    def mark_paid(self, by=None, paid_date=None, payment_method=None):
        """Stamp payment date (today by default) and method (cash by default)."""
        self.paid_date = paid_date or timezone.localdate()
        self.payment_method = payment_method or self.payment_method or self.PaymentMethod.CASH

    @fsm_log_by
    @transition(field=status, source=[Status.DRAFT, Status.SENT], target=Status.CANCELLED)
    def cancel(self, by=None):
        pass


class InvoiceLine(DocumentLine):
    document = models.ForeignKey(Invoice, on_delete=models.CASCADE, related_name="lines")


class DeliveryNote(CounterpartDocument):
    """Delivery note: PENDING -> DELIVERED, then INVOICED once billed.

    INVOICED is reached only through delivery-note invoicing, which links the
    note to the invoice that consolidated it.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        DELIVERED = "delivered", "Delivered"
        INVOICED = "invoiced", "Invoiced"
        CANCELLED = "cancelled", "Cancelled"

    document_type = DocumentType.DELIVERY_NOTE
    EDITABLE_STATUSES = (Status.PENDING,)

    status = FSMField(default=Status.PENDING, choices=Status.choices, protected=True)

    invoiced = models.BooleanField(default=False, db_index=True)
    invoice = models.ForeignKey(
        Invoice,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="delivery_notes",
    )

    history = HistoricalRecords()

    @fsm_log_by
    @transition(field=status, source=Status.PENDING, target=Status.DELIVERED)
    def deliver(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=Status.PENDING, target=Status.CANCELLED)
    def cancel(self, by=None):
        pass

    @fsm_log_by
    @transition(
        field=status,
        source=[Status.PENDING, Status.DELIVERED],
        target=Status.INVOICED,
        custom={"internal": True},
    )
    def mark_invoiced(self, invoice, by=None):
        self.invoiced = True
        self.invoice = invoice


class DeliveryNoteLine(DocumentLine):
    document = models.ForeignKey(DeliveryNote, on_delete=models.CASCADE, related_name="lines")


class ReturnNote(CounterpartDocument):
    """Goods returned against an invoice: PENDING -> PROCESSED | REJECTED."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PROCESSED = "processed", "Processed"
        REJECTED = "rejected", "Rejected"

    document_type = DocumentType.RETURN_NOTE
    EXTRA_FIELDS = ("reason",)

    status = FSMField(default=Status.PENDING, choices=Status.choices, protected=True)
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, related_name="return_notes")
    reason = models.TextField(blank=True, default="")

    history = HistoricalRecords()

    @fsm_log_by
    @transition(field=status, source=Status.PENDING, target=Status.PROCESSED)
    def process(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=Status.PENDING, target=Status.REJECTED)
    def reject(self, by=None):
        pass


class ReturnNoteLine(DocumentLine):
    document = models.ForeignKey(ReturnNote, on_delete=models.CASCADE, related_name="lines")
