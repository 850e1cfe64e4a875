from django.contrib import admin

from ledger_core.models import RecurringTemplate

from .actions import generate_recurring_now
from .mixins import TenantAdminMixin


@admin.register(RecurringTemplate)
class RecurringTemplateAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "name", "company", "frequency", "next_run_date", "end_date", "is_active", "last_run_at")
    list_filter = ("company", "frequency", "is_active")
    search_fields = ("name", "narration")
    readonly_fields = ("anchor_day", "is_processing", "claimed_at", "last_run_at", "last_entry")
    actions = [generate_recurring_now]
