from django.db import models
from simple_history.models import HistoricalRecords

from core.models import DocumentType
from documents.models.base import DocumentLine, NumberedDocument


class SalesJournal(NumberedDocument):
    """Consolidated sales of one day (paid invoices + completed shop orders).

    At most one journal per date; the unique constraint on journal_date is
    the backstop for concurrent builds.
    """

    class Status(models.TextChoices):
        FINALIZED = "finalized", "Finalized"

    document_type = DocumentType.SALES_JOURNAL

    journal_date = models.DateField(unique=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.FINALIZED, editable=False)

    invoices_count = models.PositiveIntegerField(default=0)
    orders_count = models.PositiveIntegerField(default=0)
    source_line_count = models.PositiveIntegerField(default=0)

    history = HistoricalRecords()

    class Meta:
        ordering = ("-journal_date",)


class SalesJournalLine(DocumentLine):
    document = models.ForeignKey(SalesJournal, on_delete=models.CASCADE, related_name="lines")
