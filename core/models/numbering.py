from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone

from core.exceptions import DocumentValidationError, PreconditionFailed


class DocumentType(models.TextChoices):
    QUOTE = "quote", "Quote"
    INVOICE = "invoice", "Invoice"
    PURCHASE_ORDER = "purchase_order", "Purchase order"
    DELIVERY_NOTE = "delivery_note", "Delivery note"
    RETURN_NOTE = "return_note", "Return note"
    SALES_JOURNAL = "sales_journal", "Sales journal"
    CASH_CONTROL = "cash_control", "Cash control"


def default_prefix(document_type: str) -> str:
    prefixes = getattr(settings, "DOCUMENT_NUMBER_PREFIXES", {})
    return prefixes.get(document_type) or document_type[:2].upper()


class NumberingSequence(models.Model):
    """Year-scoped number series for one document type.

    The important part is *concurrency safety*:
    - one row per (document_type, year), guarded by a unique constraint
    - the counter is bumped with a single conditional UPDATE (F expression)
      inside a transaction, and the row stays locked until commit
    - we read the new value back only after our own UPDATE

    So two requests allocating at the same time never see the same value,
    on row-locking databases and on SQLite (which serializes writers).

    Numbers are never handed back: if the document that consumed a number
    fails to save, the number is simply skipped.
    """

    document_type = models.CharField(max_length=30, choices=DocumentType.choices)
    year = models.PositiveIntegerField()

    prefix = models.CharField(max_length=20)
    next_number = models.PositiveIntegerField(default=1)
    min_width = models.PositiveSmallIntegerField(default=4)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["document_type", "-year"]
        constraints = [
            models.UniqueConstraint(fields=["document_type", "year"], name="uniq_numbering_type_year"),
            models.CheckConstraint(condition=models.Q(next_number__gte=1), name="numbering_next_number_gte_1"),
        ]

    def __str__(self):
        return f"{self.get_document_type_display()} {self.year} (next {self.next_number})"

    def format(self, number: int) -> str:
        return f"{self.prefix}-{self.year}{str(number).zfill(self.min_width)}"

    @classmethod
    def for_year(cls, document_type: str, year: int) -> "NumberingSequence":
        """Return the sequence row, creating it on first use of the year."""
        if document_type not in DocumentType.values:
            raise DocumentValidationError(f"Unknown document type: {document_type!r}")

        # get_or_create retries the lookup when a concurrent insert wins the
        # unique constraint, so a new year is only ever created once.
        series, created = cls.objects.get_or_create(
            document_type=document_type,
            year=year,
            defaults={
                "prefix": default_prefix(document_type),
                "min_width": getattr(settings, "DOCUMENT_NUMBER_WIDTH", 4),
            },
        )
        return series

    @classmethod
    @transaction.atomic
    def allocate(cls, document_type: str, as_of_date) -> str:
        """Allocate the next formatted number for (document_type, year).

        Step-by-step:
        1) Find or create the row for as_of_date.year
        2) UPDATE next_number = next_number + 1 (atomic, takes the row lock)
        3) Re-read the locked row
        4) The number we own is the value before our increment
        """
        series = cls.for_year(document_type, as_of_date.year)

        cls.objects.filter(pk=series.pk).update(
            next_number=F("next_number") + 1,
            updated_at=timezone.now(),
        )
        series = cls.objects.select_for_update().get(pk=series.pk)

        return series.format(series.next_number - 1)

    @classmethod
    def preview(cls, document_type: str, as_of_date) -> str:
        """Number the next allocation would return. Does not consume it."""
        if document_type not in DocumentType.values:
            raise DocumentValidationError(f"Unknown document type: {document_type!r}")
        series = cls.objects.filter(document_type=document_type, year=as_of_date.year).first()
        if series is None:
            series = cls(
                document_type=document_type,
                year=as_of_date.year,
                prefix=default_prefix(document_type),
                min_width=getattr(settings, "DOCUMENT_NUMBER_WIDTH", 4),
            )
        return series.format(series.next_number)

    @classmethod
    @transaction.atomic
    def configure(cls, document_type: str, year: int, *, prefix=None, next_number=None) -> "NumberingSequence":
        """Change the prefix and/or move the counter forward.

        The counter may never go backwards: that would hand out numbers
        that already exist.
        """
        series = cls.for_year(document_type, year)
        series = cls.objects.select_for_update().get(pk=series.pk)

        if prefix is not None:
            prefix = prefix.strip().upper()
            if not prefix:
                raise DocumentValidationError("Prefix is required.")
            series.prefix = prefix

        if next_number is not None:
            next_number = int(next_number)
            if next_number < 1:
                raise DocumentValidationError("Next number must be at least 1.")
            if next_number < series.next_number:
                raise PreconditionFailed(
                    f"Next number cannot go back from {series.next_number} to {next_number}."
                )
            series.next_number = next_number

        series.save()
        return series
