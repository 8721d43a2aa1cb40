from django.contrib import admin
from django_object_actions import DjangoObjectActions, action
from guardian.admin import GuardedModelAdmin

from core.admin_utils import StatusActionsMixin
from ledger.models import CashControl, SalesJournal, SalesJournalLine
from ledger.services.cash_control import close_cash_control


@admin.register(CashControl)
class CashControlAdmin(StatusActionsMixin, DjangoObjectActions, GuardedModelAdmin):
    list_display = ("number", "control_date", "status", "cash_total", "transfer_total", "check_total", "total_amount")
    list_filter = ("status",)
    date_hierarchy = "control_date"
    readonly_fields = (
        "number", "control_date", "status",
        "cash_total", "transfer_total", "check_total", "total_amount",
        "created_at", "updated_at",
    )
    change_actions = ("to_closed",)

    def has_add_permission(self, request):
        return False

    @action(label="Close", description="Close the cash control of this day")
    def to_closed(self, request, obj):
        self.run_service_action(
            request,
            lambda: close_cash_control(obj.pk, by=request.user),
            f"Cash control {obj.number} closed.",
        )


class SalesJournalLineInline(admin.TabularInline):
    model = SalesJournalLine
    extra = 0
    can_delete = False
    readonly_fields = (
        "position", "product_id", "product_sku", "product_name", "quantity",
        "unit_price_ht", "total_ht", "vat_percentage", "vat_amount", "source",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(SalesJournal)
class SalesJournalAdmin(GuardedModelAdmin):
    inlines = [SalesJournalLineInline]
    list_display = ("number", "journal_date", "invoices_count", "orders_count", "subtotal_ht", "total_vat", "total_ttc")
    date_hierarchy = "journal_date"
    readonly_fields = (
        "number", "journal_date", "status",
        "invoices_count", "orders_count", "source_line_count",
        "subtotal_ht", "total_vat", "total_ttc", "created_at", "updated_at",
    )

    def has_add_permission(self, request):
        return False
