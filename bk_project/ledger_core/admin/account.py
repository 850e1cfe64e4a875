from django.contrib import admin

from ledger_core.models import Account

from .forms import AccountAdminForm
from .mixins import TenantAdminMixin


# Register `Account` model
@admin.register(Account)
class AccountAdmin(TenantAdminMixin, admin.ModelAdmin):
    form = AccountAdminForm
    # show key accounting fields
    list_display = (
        "code",
        "name",
        "company",
        "ac_type",
        "normal_balance",
        "is_group",
        "parent",
        "level",
        "statement_line",
        "is_active",
        "is_system",
    )
    list_filter = ("company", "ac_type", "is_group", "is_active")
    search_fields = ("code", "name")
    # accounts grouped by company, then sorted by code
    ordering = ("company", "code")
    readonly_fields = ("level", "is_system")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "parent")

    # system accounts keep their place in the chart
    def has_delete_permission(self, request, obj=None):
        if obj and obj.is_system:
            return False
        return super().has_delete_permission(request, obj)
