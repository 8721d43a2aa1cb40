from decimal import Decimal

from django.db import models


class ImportedOrder(models.Model):
    """Order synchronised from the web shop.

    Rows are written by the shop synchronisation, never by this engine.
    Completed orders feed the sales journal and the cash control.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending payment"
        PROCESSING = "processing", "Processing"
        ON_HOLD = "on-hold", "On hold"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"
        REFUNDED = "refunded", "Refunded"
        FAILED = "failed", "Failed"

    order_id = models.CharField(max_length=64, unique=True)
    order_number = models.CharField(max_length=64)

    customer_name = models.CharField(max_length=255, blank=True, default="")
    customer_email = models.CharField(max_length=255, blank=True, default="")

    order_status = models.CharField(max_length=20, choices=Status.choices, db_index=True)
    order_date = models.DateTimeField(db_index=True)
    order_source = models.CharField(max_length=30, blank=True, default="website")

    payment_method = models.CharField(max_length=100, blank=True, default="")
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    synced_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-order_date",)

    def __str__(self):
        return f"Order {self.order_number} ({self.order_status})"


class ImportedOrderLine(models.Model):
    order = models.ForeignKey(ImportedOrder, on_delete=models.CASCADE, related_name="lines")

    product_id = models.CharField(max_length=100, blank=True, default="")
    product_sku = models.CharField(max_length=100, blank=True, default="")
    product_name = models.CharField(max_length=255, blank=True, default="")

    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    # Null when the shop did not report the tax; derived from the rate then.
    tax_total = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    tax_class = models.CharField(max_length=100, blank=True, default="")

    class Meta:
        ordering = ["id"]
