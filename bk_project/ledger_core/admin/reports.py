from django.contrib import admin

from ledger_core.models import StatementRun

from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `StatementRun` model (derived, read-only)
@admin.register(StatementRun)
class StatementRunAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "run_id",
        "company",
        "statement_type",
        "fiscal_year",
        "from_date",
        "as_of_date",
        "is_stale",
        "generated_at",
    )
    search_fields = ("run_id",)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "fiscal_year")
