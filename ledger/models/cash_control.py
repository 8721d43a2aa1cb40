from decimal import Decimal

from django.db import models
from django_fsm import FSMField, transition
from django_fsm_log.decorators import fsm_log_by
from simple_history.models import HistoricalRecords


class CashControl(models.Model):
    """Daily reconciliation of collected payments, bucketed by method.

    A sales journal for a date can only be built once the cash control of
    that date is CLOSED.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CLOSED = "closed", "Closed"

    number = models.CharField(max_length=40, unique=True, editable=False)
    control_date = models.DateField(unique=True)
    status = FSMField(default=Status.PENDING, choices=Status.choices, protected=True)

    cash_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    transfer_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    check_total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ("-control_date",)

    def __str__(self):
        return f"Cash control {self.number} ({self.control_date}, {self.status})"

    @fsm_log_by
    @transition(field=status, source=Status.PENDING, target=Status.CLOSED)
    def close(self, by=None):
        pass
