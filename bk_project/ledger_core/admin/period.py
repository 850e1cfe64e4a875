from django.contrib import admin

from ledger_core.models import FiscalYear

from .actions import lock_fiscal_years, unlock_fiscal_years
from .mixins import TenantAdminMixin


# Register `FiscalYear` model
@admin.register(FiscalYear)
class FiscalYearAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "name", "company", "start_date", "end_date", "is_current", "is_locked", "locked_at", "entry_sequence")
    list_filter = ("company", "is_locked", "is_current")
    search_fields = ("name",)
    # lock state changes go through the actions so they are row-locked and logged
    readonly_fields = ("is_locked", "locked_at", "locked_by", "entry_sequence")
    actions = [lock_fiscal_years, unlock_fiscal_years]
