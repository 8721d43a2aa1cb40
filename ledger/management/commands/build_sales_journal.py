from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.exceptions import DocumentError
from documents.services.document_service import parse_date_value
from ledger.services.cash_control import create_cash_control
from ledger.services.sales_journal import build_sales_journal
from ledger.models import CashControl


class Command(BaseCommand):
    help = "Build the sales journal of a day (paid invoices + completed shop orders)"

    def add_arguments(self, parser):
        parser.add_argument("--date", help="Journal date (YYYY-MM-DD). Defaults to today.")
        parser.add_argument(
            "--with-cash-control",
            action="store_true",
            help="Create and close the day's cash control first when it is missing",
        )

    def handle(self, *args, **opts):
        try:
            day = parse_date_value(opts.get("date"), "date") or timezone.localdate()

            if opts["with_cash_control"] and not CashControl.objects.filter(control_date=day).exists():
                control = create_cash_control(day)
                self.stdout.write(f"Cash control {control.number} created ({control.total_amount}).")

            result = build_sales_journal(day)
        except DocumentError as e:
            raise CommandError(f"{e.category}: {e.message}")

        journal = result.journal
        self.stdout.write(self.style.SUCCESS(
            f"Sales journal {journal.number} for {day}: "
            f"invoices={result.invoices_count} orders={result.orders_count} "
            f"lines={result.line_items_count}/{result.original_line_items_count} "
            f"total_ttc={journal.total_ttc}"
        ))
