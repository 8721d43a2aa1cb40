import logging
from dataclasses import dataclass
from decimal import Decimal

from django.db import DatabaseError, IntegrityError, transaction

from core.exceptions import DocumentValidationError, PersistenceError, PreconditionFailed
from core.models import DocumentType, NumberingSequence
from core.permissions import grant_object_perms
from core.services.vat import configured_rates, load_authoritative_rates, resolve_vat_rate
from documents.models import InvoiceLine, LineSource
from documents.services.consolidation import consolidate
from documents.services.document_service import parse_date_value
from documents.services.lines import LineItem
from documents.services.totals import compute_totals, round2
from ledger.models import CashControl, SalesJournal, SalesJournalLine
from ledger.services.sources import completed_orders, paid_invoices

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass
class JournalBuildResult:
    journal: SalesJournal
    invoices_count: int
    orders_count: int
    line_items_count: int
    original_line_items_count: int

    def as_dict(self) -> dict:
        return {
            "invoices_count": self.invoices_count,
            "orders_count": self.orders_count,
            "line_items_count": self.line_items_count,
            "original_line_items_count": self.original_line_items_count,
        }


def order_line_item(line, rates) -> LineItem:
    """LineItem for one shop order line; VAT rate comes from its tax class."""
    rate = resolve_vat_rate(line.tax_class, rates, **configured_rates())
    quantity = line.quantity or 1
    total_ht = line.subtotal if line.subtotal else line.price * quantity
    vat_amount = line.tax_total if line.tax_total is not None else total_ht * rate / HUNDRED
    return LineItem(
        product_id=line.product_id,
        product_sku=line.product_sku,
        product_name=line.product_name or line.product_sku or line.product_id,
        quantity=quantity,
        unit_price_ht=round2(line.price if line.price else total_ht / quantity),
        total_ht=total_ht,
        vat_percentage=round2(rate),
        vat_amount=vat_amount,
        source=LineSource.IMPORTED_ORDER,
    )


def _already_exists(journal_date):
    return PreconditionFailed(f"A sales journal already exists for {journal_date}.")


def journal_exists(journal_date) -> bool:
    return SalesJournal.objects.filter(journal_date=journal_date).exists()


def write_journal_lines(journal, items):
    SalesJournalLine.objects.bulk_create(
        [
            SalesJournalLine(document=journal, position=position, **item.model_fields())
            for position, item in enumerate(items, start=1)
        ]
    )


def build_sales_journal(journal_date, by=None) -> JournalBuildResult:
    """Build the sales journal of one day.

    Step-by-step:
    1) Refuse if a journal already exists for the date
    2) Refuse unless the day's cash control is closed
    3) Gather lines of paid invoices (not generated from an order) and of
       completed shop orders of the day
    4) Refuse if there is nothing to journal
    5) Consolidate per product, compute totals, allocate an FG number
    6) Persist header and lines in one transaction

    Preconditions are checked before any write, so a refused build leaves
    no trace (not even a burned number).
    """
    journal_date = parse_date_value(journal_date, "journal_date")
    if journal_date is None:
        raise DocumentValidationError("journal_date is required.")

    if journal_exists(journal_date):
        raise _already_exists(journal_date)

    if not CashControl.objects.filter(control_date=journal_date, status=CashControl.Status.CLOSED).exists():
        raise PreconditionFailed(f"The cash control for {journal_date} must be closed first.")

    invoices = list(paid_invoices(journal_date))
    orders = list(completed_orders(journal_date).prefetch_related("lines"))

    items = [
        LineItem.from_model(line, source=LineSource.INVOICE)
        for line in InvoiceLine.objects.filter(document__in=invoices).order_by("document_id", "position", "id")
    ]
    order_lines = [line for order in orders for line in order.lines.all()]
    if order_lines:
        rates = load_authoritative_rates()
        items.extend(order_line_item(line, rates) for line in order_lines)

    if not items:
        raise PreconditionFailed(f"No paid invoices or completed orders on {journal_date}.")

    consolidated = consolidate(items)
    totals = compute_totals(consolidated)
    number = NumberingSequence.allocate(DocumentType.SALES_JOURNAL, journal_date)

    try:
        with transaction.atomic():
            journal = SalesJournal(
                number=number,
                journal_date=journal_date,
                invoices_count=len(invoices),
                orders_count=len(orders),
                source_line_count=len(items),
                notes=f"Sales journal of {journal_date}: {len(invoices)} invoices, {len(orders)} orders.",
            )
            journal.apply_totals(totals)
            if by is not None:
                journal._history_user = by
            journal.save()
            write_journal_lines(journal, consolidated)
    except IntegrityError:
        if SalesJournal.objects.filter(journal_date=journal_date).exists():
            raise _already_exists(journal_date)
        logger.exception("Failed to persist sales journal %s", number)
        raise PersistenceError(f"Could not save sales journal {number}.")
    except DatabaseError as e:
        logger.exception("Failed to persist sales journal %s", number)
        raise PersistenceError(f"Could not save sales journal {number}: {e}")

    grant_object_perms(by, journal)
    logger.info(
        "Sales journal %s for %s: %s lines from %s (total %s)",
        number, journal_date, len(consolidated), len(items), totals.total_ttc,
    )
    return JournalBuildResult(
        journal=journal,
        invoices_count=len(invoices),
        orders_count=len(orders),
        line_items_count=len(consolidated),
        original_line_items_count=len(items),
    )
