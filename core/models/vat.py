from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class TaxRateQuerySet(models.QuerySet):
    def as_table(self) -> list[dict]:
        """Rows in the shape the VAT resolver expects: {"class", "rate"}."""
        return [{"class": r.tax_class, "rate": r.rate} for r in self.order_by("tax_class")]


class TaxRate(models.Model):
    """Authoritative VAT percentage for a product tax class.

    Loaded from the shop's tax settings (see the import_tax_rates command).
    When a class is listed here it wins over the resolver's fallback rules.
    """

    tax_class = models.CharField(
        max_length=100,
        unique=True,
        blank=True,
        help_text="Tax class as sent by the shop ('' is the standard class)",
    )
    name = models.CharField(max_length=255, blank=True, default="")

    rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text="VAT percentage (e.g. 20.00 for 20%)",
    )

    objects = TaxRateQuerySet.as_manager()

    class Meta:
        ordering = ["tax_class"]

    def __str__(self) -> str:
        return f"{self.tax_class or 'standard'} - {self.rate}%"
