from decimal import Decimal

from django.contrib import admin
from django.utils.html import format_html

from ledger_core.models import JournalEntry, JournalLine

from .actions import post_journal_entries, reverse_journal_entries
from .inlines import JournalLineInline
from .mixins import TenantAdminMixin


# Register `JournalEntry` model
@admin.register(JournalEntry)
class JournalEntryAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "entry_number",
        "company",
        "entry_date",
        "entry_type",
        "status",
        "reference",
        "posted_at",
        "balanced",
    )
    list_filter = ("company", "status", "entry_type", "fiscal_year")
    search_fields = ("entry_number", "reference", "narration")
    date_hierarchy = "entry_date"
    # numbering, totals and workflow stamps belong to the posting services
    readonly_fields = (
        "entry_number",
        "entry_date",
        "fiscal_year",
        "status",
        "total_debit",
        "total_credit",
        "source_type",
        "source_id",
        "reverses",
        "created_by",
        "approved_by",
        "approved_at",
        "posted_by",
        "posted_at",
    )
    inlines = [JournalLineInline]  # allows editing lines of drafts on the entry page
    actions = [post_journal_entries, reverse_journal_entries]

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "fiscal_year", "created_by")

    """ Computed column for balance check """
    def balanced(self, obj):
        # bold debits / small credits
        return format_html(
            "<b>{}</b> / <small>{}</small>",
            obj.total_debit or Decimal("0.00"),
            obj.total_credit or Decimal("0.00"),
        )

    balanced.short_description = "Debits / Credits"

    # entries are created through the API and services (numbering, fiscal year)
    def has_add_permission(self, request):
        return False

    """ Make entries immutable once in the ledger """
    def get_readonly_fields(self, request, obj=None):
        r = list(self.readonly_fields)
        if obj and not obj.is_editable:
            r += ["company", "entry_type", "narration", "reference"]
        return r

    """ Prevent deletion after posting """
    def has_delete_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_delete_permission(request, obj)

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        # keep cached totals in step with edited draft lines
        entry = form.instance
        if entry.is_editable:
            entry.total_debit, entry.total_credit = entry.compute_totals()
            entry.save(update_fields=["total_debit", "total_credit", "updated_at"])


# Register `JournalLine` model (browse only; lines are edited on their entry)
@admin.register(JournalLine)
class JournalLineAdmin(TenantAdminMixin, admin.ModelAdmin):
    tenant_field = "entry__company"
    list_display = ("id", "entry", "account", "debit", "credit", "description")
    list_filter = ("entry__company", "account__ac_type")
    search_fields = ("description", "entry__entry_number", "account__code")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("entry", "account")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        if obj and not obj.entry.is_editable:
            return False
        return super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return False
