from django.contrib import admin, messages
from django_object_actions import DjangoObjectActions, action
from guardian.admin import GuardedModelAdmin

from core.admin_utils import StatusActionsMixin
from core.exceptions import DocumentError
from documents.models import (
    DeliveryNote,
    DeliveryNoteLine,
    ImportedOrder,
    ImportedOrderLine,
    Invoice,
    InvoiceLine,
    PurchaseOrder,
    PurchaseOrderLine,
    Quote,
    QuoteLine,
    ReturnNote,
    ReturnNoteLine,
)
from documents.services.delivery_invoicing import invoice_delivery_notes
from documents.services.document_service import get_service


def status_action(target, label):
    """Object-action button moving a document to `target` through its service."""

    @action(label=label, description=f"Set status to {target}")
    def run(self, request, obj):
        self.run_service_action(
            request,
            lambda: get_service(obj.document_type).update_status(obj, target, by=request.user),
            f"{obj.number}: {target}.",
        )

    run.__name__ = f"to_{target}"
    return run


LINE_FIELDS = (
    "position", "product_id", "product_sku", "product_name", "quantity",
    "unit_price_ht", "total_ht", "vat_percentage", "vat_amount", "source",
)
HEADER_READONLY = ("number", "status", "subtotal_ht", "total_vat", "total_ttc", "created_at", "updated_at")


class LineInline(admin.TabularInline):
    extra = 0
    fk_name = "document"
    fields = LINE_FIELDS
    readonly_fields = LINE_FIELDS
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class DocumentAdmin(StatusActionsMixin, DjangoObjectActions, GuardedModelAdmin):
    """Documents are created through the services (numbering + totals).

    The admin is for browsing and for status changes.
    """

    list_display = ("number", "date", "counterpart_name", "status", "total_ttc")
    list_filter = ("status", "date")
    search_fields = ("number", "counterpart_name", "counterpart_email")
    date_hierarchy = "date"
    readonly_fields = HEADER_READONLY

    def has_add_permission(self, request):
        return False


class QuoteLineInline(LineInline):
    model = QuoteLine


@admin.register(Quote)
class QuoteAdmin(DocumentAdmin):
    inlines = [QuoteLineInline]
    change_actions = ("to_sent", "to_accepted", "to_expired")

    to_sent = status_action("sent", "Send")
    to_accepted = status_action("accepted", "Accept")
    to_expired = status_action("expired", "Expire")


class InvoiceLineInline(LineInline):
    model = InvoiceLine


@admin.register(Invoice)
class InvoiceAdmin(DocumentAdmin):
    inlines = [InvoiceLineInline]
    list_display = ("number", "date", "counterpart_name", "status", "source", "paid_date", "total_ttc")
    list_filter = ("status", "source", "payment_method", "date")
    readonly_fields = HEADER_READONLY + ("source", "order", "paid_date")
    change_actions = ("to_sent", "to_overdue", "to_paid", "to_cancelled")

    to_sent = status_action("sent", "Send")
    to_overdue = status_action("overdue", "Mark overdue")
    to_paid = status_action("paid", "Mark paid")
    to_cancelled = status_action("cancelled", "Cancel")


class PurchaseOrderLineInline(LineInline):
    model = PurchaseOrderLine
    fields = LINE_FIELDS + ("quantity_received",)
    readonly_fields = fields


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(DocumentAdmin):
    inlines = [PurchaseOrderLineInline]
    change_actions = ("to_partial", "to_completed", "to_cancelled")

    to_partial = status_action("partial", "Partially received")
    to_completed = status_action("completed", "Complete")
    to_cancelled = status_action("cancelled", "Cancel")


class DeliveryNoteLineInline(LineInline):
    model = DeliveryNoteLine


@admin.register(DeliveryNote)
class DeliveryNoteAdmin(DocumentAdmin):
    inlines = [DeliveryNoteLineInline]
    list_display = ("number", "date", "counterpart_name", "status", "invoiced", "invoice", "total_ttc")
    list_filter = ("status", "invoiced", "date")
    readonly_fields = HEADER_READONLY + ("invoiced", "invoice")
    change_actions = ("to_delivered", "to_cancelled")
    actions = ["invoice_selected"]

    to_delivered = status_action("delivered", "Delivered")
    to_cancelled = status_action("cancelled", "Cancel")

    @admin.action(description="Create one invoice from the selected delivery notes")
    def invoice_selected(self, request, queryset):
        try:
            invoice = invoice_delivery_notes(list(queryset.values_list("pk", flat=True)), by=request.user)
        except DocumentError as e:
            self.message_user(request, f"{e.category}: {e.message}", level=messages.ERROR)
            return
        self.message_user(request, f"Invoice {invoice.number} created.", level=messages.SUCCESS)


class ReturnNoteLineInline(LineInline):
    model = ReturnNoteLine


@admin.register(ReturnNote)
class ReturnNoteAdmin(DocumentAdmin):
    inlines = [ReturnNoteLineInline]
    list_display = ("number", "date", "counterpart_name", "invoice", "status", "total_ttc")
    readonly_fields = HEADER_READONLY + ("invoice",)
    change_actions = ("to_processed", "to_rejected")

    to_processed = status_action("processed", "Process")
    to_rejected = status_action("rejected", "Reject")


class ImportedOrderLineInline(admin.TabularInline):
    model = ImportedOrderLine
    extra = 0


@admin.register(ImportedOrder)
class ImportedOrderAdmin(admin.ModelAdmin):
    inlines = [ImportedOrderLineInline]
    list_display = ("order_number", "order_date", "customer_name", "order_status", "payment_method", "total_amount")
    list_filter = ("order_status", "order_source")
    search_fields = ("order_id", "order_number", "customer_name", "customer_email")
