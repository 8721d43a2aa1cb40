from django.contrib import admin
from guardian.admin import GuardedModelAdmin

from core.admin_utils import OwnerPermsAdminMixin
from core.models import NumberingSequence, TaxRate


@admin.register(NumberingSequence)
class NumberingSequenceAdmin(admin.ModelAdmin):
    list_display = ("document_type", "year", "prefix", "next_number", "min_width", "updated_at")
    list_filter = ("document_type", "year")
    ordering = ("document_type", "-year")

    # The counter only moves through NumberingSequence.allocate/configure.
    readonly_fields = ("next_number", "created_at", "updated_at")


@admin.register(TaxRate)
class TaxRateAdmin(OwnerPermsAdminMixin, GuardedModelAdmin):
    list_display = ("tax_class", "name", "rate")
    search_fields = ("tax_class", "name")
