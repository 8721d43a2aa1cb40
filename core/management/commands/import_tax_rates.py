import json
from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from core.models import TaxRate


def _parse_rate(value):
    """
    20      -> Decimal("20")
    "5,5%"  -> Decimal("5.5")
    "" / "x" -> None
    """
    if value is None:
        return None
    s = str(value).strip().rstrip("%").strip().replace(",", ".")
    if not s:
        return None
    try:
        rate = Decimal(s)
    except InvalidOperation:
        return None
    if rate < 0 or rate > 100:
        return None
    return rate


class Command(BaseCommand):
    help = "Import the authoritative VAT rate table (tax class -> percentage) from a JSON file"

    def add_arguments(self, parser):
        parser.add_argument(
            "--path",
            default="external_files/tax_rates.json",
            help='JSON list of {"class": ..., "rate": ..., "name": ...} (or {"tax_rates": [...]})',
        )
        parser.add_argument(
            "--replace",
            action="store_true",
            help="Delete existing tax rates before importing",
        )

    @transaction.atomic
    def handle(self, *args, **opts):
        path = opts["path"]
        replace = bool(opts["replace"])

        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except OSError as e:
            raise CommandError(f"Cannot read {path}: {e}")
        except ValueError as e:
            raise CommandError(f"{path} is not valid JSON: {e}")

        rows = payload.get("tax_rates", []) if isinstance(payload, dict) else payload
        if not isinstance(rows, list):
            raise CommandError("Expected a list of tax rates.")

        if replace:
            TaxRate.objects.all().delete()

        created = 0
        updated = 0
        skipped = 0

        for row in rows:
            if not isinstance(row, dict):
                skipped += 1
                continue
            tax_class = (row.get("class") or row.get("tax_class") or "").strip().lower()
            if tax_class == "standard":
                tax_class = ""
            rate = _parse_rate(row.get("rate"))
            if rate is None:
                skipped += 1
                self.stderr.write(f"Skipping {row!r}: missing or invalid rate")
                continue

            _, was_created = TaxRate.objects.update_or_create(
                tax_class=tax_class,
                defaults={
                    "rate": rate,
                    "name": (row.get("name") or tax_class or "Standard").strip(),
                },
            )
            if was_created:
                created += 1
            else:
                updated += 1

        self.stdout.write(self.style.SUCCESS(
            f"Tax rates imported. created={created} updated={updated} skipped={skipped}"
        ))
