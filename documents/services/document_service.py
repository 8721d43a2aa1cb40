"""Generic document lifecycle: create, edit, change status.

One `DocumentService` handles every numbered document type. The model
carries what differs between types (document_type, counterpart role,
editable statuses, extra header fields, FSM transitions); subclasses exist
only where a type needs extra validation.
"""

import datetime
import logging

from django.db import DatabaseError, models, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date
from django_fsm import TransitionNotAllowed

from core.exceptions import DocumentValidationError, PersistenceError, PreconditionFailed
from core.models import DocumentType, NumberingSequence
from core.permissions import grant_object_perms
from core.services.vat import load_authoritative_rates
from documents.models import DeliveryNote, ImportedOrder, Invoice, PurchaseOrder, Quote, ReturnNote
from documents.services.lines import normalize_lines
from documents.services.totals import compute_totals

logger = logging.getLogger(__name__)

COUNTERPART_FIELDS = ("name", "email", "phone", "address")


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


def parse_date_value(value, field: str):
    """Accept a date, a datetime or an ISO string. Empty -> None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise DocumentValidationError(f"{field} must be a date (YYYY-MM-DD).")
    return parsed


def needs_rate_table(raw_lines) -> bool:
    """True when at least one incoming line leaves its VAT rate unresolved."""
    if not isinstance(raw_lines, (list, tuple)):
        return False
    return any(
        isinstance(raw, dict) and raw.get("vat_percentage") in (None, "")
        for raw in raw_lines
    )


class DocumentService:
    def __init__(self, model):
        self.model = model
        self.line_model = model._meta.get_field("lines").related_model

    @property
    def document_type(self) -> str:
        return self.model.document_type

    @property
    def label(self) -> str:
        return str(self.model._meta.verbose_name)

    # ------------------------------------------------------------------
    # Input cleaning
    # ------------------------------------------------------------------
    def clean_header(self, data, document=None) -> dict:
        """Model field values from the request payload.

        On create every field is filled (missing -> default). On edit only the
        keys present in the payload are returned, the rest stays as stored.
        """
        if not isinstance(data, dict):
            raise DocumentValidationError("Expected a JSON object.")

        creating = document is None
        role = self.model.counterpart_role
        header = {}

        for field in COUNTERPART_FIELDS:
            key = f"{role}_{field}"
            if creating or key in data:
                header[f"counterpart_{field}"] = _text(data.get(key))
        if "counterpart_name" in header and not header["counterpart_name"]:
            raise DocumentValidationError(f"{role}_name is required.")

        if creating or "date" in data:
            header["date"] = parse_date_value(data.get("date"), "date") or timezone.localdate()
        if creating or "notes" in data:
            header["notes"] = _text(data.get("notes"))

        for name in self.model.EXTRA_FIELDS:
            if creating or name in data:
                header[name] = self.clean_extra_field(name, data.get(name))
        return header

    def clean_extra_field(self, name, value):
        field = self.model._meta.get_field(name)
        if isinstance(field, models.DateField):
            return parse_date_value(value, name)
        return _text(value)

    def clean_lines(self, data):
        raw_lines = data.get("line_items")
        rates = load_authoritative_rates() if needs_rate_table(raw_lines) else None
        return normalize_lines(raw_lines, rates=rates)

    def clean_transition_params(self, transition_name, params) -> dict:
        """Keyword arguments passed on to the transition method. None by default."""
        return {}

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def get(self, pk):
        try:
            return self.model.objects.get(pk=pk)
        except (self.model.DoesNotExist, ValueError, TypeError):
            raise DocumentValidationError(f"{self.label} {pk} not found.")

    def _resolve(self, pk_or_document):
        if isinstance(pk_or_document, self.model):
            return pk_or_document
        return self.get(pk_or_document)

    def create(self, data, by=None):
        header = self.clean_header(data)
        items = self.clean_lines(data)
        return self.create_from_lines(header, items, by=by)

    def create_from_lines(self, header, items, by=None):
        """Allocate a number and persist header + lines in one transaction.

        The number is allocated (and committed) before the document write,
        so a failed write burns the number but never leaves a header without
        its lines behind.
        """
        if not items:
            raise DocumentValidationError("At least one line item is required.")

        totals = compute_totals(items)
        number = NumberingSequence.allocate(self.document_type, header["date"])

        try:
            with transaction.atomic():
                document = self.model(number=number, **header)
                document.apply_totals(totals)
                if by is not None:
                    document._history_user = by
                document.save()
                self.write_lines(document, items)
        except DatabaseError as e:
            logger.exception("Failed to persist %s %s", self.label, number)
            raise PersistenceError(f"Could not save {self.label} {number}: {e}")

        grant_object_perms(by, document)
        logger.info("Created %s %s (%s lines, total %s)", self.label, number, len(items), totals.total_ttc)
        return document

    def write_lines(self, document, items):
        self.line_model.objects.bulk_create(
            [
                self.line_model(document=document, position=position, **item.model_fields())
                for position, item in enumerate(items, start=1)
            ]
        )

    def find_transition(self, document, new_status):
        for t in document.get_available_status_transitions():
            if t.target == new_status and not t.custom.get("internal"):
                return t
        return None

    def update_status(self, pk_or_document, new_status, by=None, **params):
        """Move a document along one of its transition edges.

        Same status is a no-op. Unknown status -> validation error.
        No edge from the current status -> precondition error.
        """
        new_status = _text(new_status)
        if new_status not in self.model.Status.values:
            raise DocumentValidationError(f"Unknown status {new_status!r} for {self.label}.")

        document = self._resolve(pk_or_document)
        if document.status == new_status:
            return document

        with transaction.atomic():
            document = self.model.objects.select_for_update().get(pk=document.pk)
            if document.status == new_status:
                return document

            t = self.find_transition(document, new_status)
            if t is None:
                raise PreconditionFailed(
                    f"{self.label} {document.number} cannot go from {document.status} to {new_status}."
                )
            kwargs = self.clean_transition_params(t.name, params)
            try:
                getattr(document, t.name)(by=by, **kwargs)
            except TransitionNotAllowed as e:
                raise PreconditionFailed(str(e))
            if by is not None:
                document._history_user = by
            document.save()

        logger.info("%s %s -> %s", self.label, document.number, new_status)
        return document

    def edit(self, pk_or_document, data, by=None):
        """Replace header fields and (when given) all lines. Number never changes."""
        document = self._resolve(pk_or_document)
        try:
            with transaction.atomic():
                document = self.model.objects.select_for_update().get(pk=document.pk)
                if not document.is_editable:
                    raise PreconditionFailed(
                        f"{self.label} {document.number} cannot be edited in status {document.status}."
                    )

                header = self.clean_header(data, document=document)
                items = self.clean_lines(data) if "line_items" in data else None

                for name, value in header.items():
                    setattr(document, name, value)
                if items is not None:
                    document.lines.all().delete()
                    self.write_lines(document, items)
                    document.apply_totals(compute_totals(items))
                if by is not None:
                    document._history_user = by
                document.save()
        except DatabaseError as e:
            logger.exception("Failed to edit %s %s", self.label, document.number)
            raise PersistenceError(f"Could not save {self.label} {document.number}: {e}")
        return document


class InvoiceService(DocumentService):
    """Invoices may reference an imported order (source=order) and carry a payment method."""

    def clean_header(self, data, document=None):
        header = super().clean_header(data, document=document)

        if "payment_method" in data:
            header["payment_method"] = self.clean_payment_method(data.get("payment_method"))

        if document is None:
            order_id = _text(data.get("order_id"))
            if order_id:
                try:
                    header["order"] = ImportedOrder.objects.get(order_id=order_id)
                except ImportedOrder.DoesNotExist:
                    raise PreconditionFailed(f"Imported order {order_id} not found.")
                header["source"] = Invoice.Source.ORDER
        return header

    def clean_payment_method(self, value):
        value = _text(value)
        if value and value not in Invoice.PaymentMethod.values:
            raise DocumentValidationError(f"Unknown payment method {value!r}.")
        return value

    def clean_transition_params(self, transition_name, params):
        if transition_name != "mark_paid":
            return {}
        return {
            "paid_date": parse_date_value(params.get("paid_date"), "paid_date"),
            "payment_method": self.clean_payment_method(params.get("payment_method")) or None,
        }


class ReturnNoteService(DocumentService):
    """Return notes must point at an existing invoice. The reason is optional."""

    def clean_header(self, data, document=None):
        header = super().clean_header(data, document=document)
        if document is not None:
            return header

        invoice_id = data.get("invoice_id")
        if invoice_id in (None, ""):
            raise DocumentValidationError("invoice_id is required.")
        try:
            header["invoice"] = Invoice.objects.get(pk=invoice_id)
        except (Invoice.DoesNotExist, ValueError, TypeError):
            raise PreconditionFailed(f"Invoice {invoice_id} not found.")
        return header


SERVICES = {
    DocumentType.QUOTE: DocumentService(Quote),
    DocumentType.INVOICE: InvoiceService(Invoice),
    DocumentType.PURCHASE_ORDER: DocumentService(PurchaseOrder),
    DocumentType.DELIVERY_NOTE: DocumentService(DeliveryNote),
    DocumentType.RETURN_NOTE: ReturnNoteService(ReturnNote),
}


def get_service(document_type) -> DocumentService:
    try:
        return SERVICES[document_type]
    except KeyError:
        raise DocumentValidationError(f"Unknown document type: {document_type!r}")
