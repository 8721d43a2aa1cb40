from django.db import models
from django_fsm import FSMField, transition
from django_fsm_log.decorators import fsm_log_by
from simple_history.models import HistoricalRecords

from core.models import DocumentType
from documents.models.base import CounterpartDocument, DocumentLine


class PurchaseOrder(CounterpartDocument):
    """Purchase order to a supplier: PENDING -> PARTIAL -> COMPLETED, or CANCELLED."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PARTIAL = "partial", "Partially received"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    document_type = DocumentType.PURCHASE_ORDER
    counterpart_role = "supplier"
    EDITABLE_STATUSES = (Status.PENDING,)
    EXTRA_FIELDS = ("expected_date",)

    status = FSMField(default=Status.PENDING, choices=Status.choices, protected=True)
    expected_date = models.DateField(null=True, blank=True)

    history = HistoricalRecords()

    @fsm_log_by
    @transition(field=status, source=Status.PENDING, target=Status.PARTIAL)
    def receive_partial(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=[Status.PENDING, Status.PARTIAL], target=Status.COMPLETED)
    def complete(self, by=None):
        pass

    @fsm_log_by
    @transition(field=status, source=[Status.PENDING, Status.PARTIAL], target=Status.CANCELLED)
    def cancel(self, by=None):
        pass


class PurchaseOrderLine(DocumentLine):
    document = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name="lines")
    quantity_received = models.PositiveIntegerField(default=0)

    @property
    def is_fully_received(self) -> bool:
        return self.quantity_received >= self.quantity
