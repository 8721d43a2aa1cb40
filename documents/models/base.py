from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class LineSource(models.TextChoices):
    MANUAL = "manual", "Manual entry"
    IMPORTED_ORDER = "imported_order", "Imported order"
    DELIVERY_NOTE = "delivery_note", "Delivery note"
    INVOICE = "invoice", "Invoice"
    CONSOLIDATED = "consolidated", "Consolidated"


class NumberedDocument(models.Model):
    """Header shared by every numbered document.

    The number is allocated once, at creation, and never changes.
    Totals are derived from the lines by the document services.
    """

    document_type = None

    number = models.CharField(max_length=40, unique=True, editable=False)

    subtotal_ht = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_vat = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_ttc = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def __str__(self):
        return self.number or f"#{self.pk}"

    def apply_totals(self, totals):
        self.subtotal_ht = totals.subtotal_ht
        self.total_vat = totals.total_vat
        self.total_ttc = totals.total_ttc


class CounterpartDocument(NumberedDocument):
    """Numbered document addressed to a customer or a supplier.

    The counterpart is a snapshot taken at creation time (name, email, phone,
    address), not a live reference to the client/supplier record.

    Concrete classes declare:
    - counterpart_role: "customer" or "supplier" (input key prefix)
    - EDITABLE_STATUSES: statuses in which lines may be replaced
    - EXTRA_FIELDS: additional header fields accepted on create/edit
    """

    counterpart_role = "customer"
    EDITABLE_STATUSES = ()
    EXTRA_FIELDS = ()

    date = models.DateField()

    counterpart_name = models.CharField(max_length=255)
    counterpart_email = models.CharField(max_length=255, blank=True, default="")
    counterpart_phone = models.CharField(max_length=50, blank=True, default="")
    counterpart_address = models.TextField(blank=True, default="")

    class Meta:
        abstract = True
        ordering = ("-date", "-id")

    @property
    def is_editable(self) -> bool:
        return self.status in self.EDITABLE_STATUSES


class DocumentLine(models.Model):
    """Line item owned by exactly one document.

    Concrete subclasses add the `document` foreign key (related_name="lines").
    """

    position = models.PositiveIntegerField(default=0)

    product_id = models.CharField(max_length=100, blank=True, default="")
    product_sku = models.CharField(max_length=100, blank=True, default="")
    product_name = models.CharField(max_length=255, blank=True, default="")

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price_ht = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_ht = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    vat_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    vat_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    source = models.CharField(max_length=20, choices=LineSource.choices, default=LineSource.MANUAL)

    class Meta:
        abstract = True
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.quantity} x {self.product_name or self.product_sku or self.product_id}"
