from django.contrib import admin

from ledger_core.models import JournalLine

from .forms import JournalLineInlineForm

# ---------- Helpful inline admin classes ----------


class JournalLineInline(admin.TabularInline):
    """Show JournalLine rows on JournalEntry page"""

    model = JournalLine
    form = JournalLineInlineForm
    extra = 0  # don't show "empty" rows by default (prevents clutter)
    fields = ("account", "description", "debit", "credit", "sort_order")
    ordering = ("sort_order", "id")  # lines appear in entry order

    def formfield_for_foreignkey(self, db_field, request=None, **kwargs):
        if db_field.name == "account":
            # only postable accounts of the active company
            company = getattr(request, "company", None) or getattr(request.user, "default_company", None)
            qs = db_field.related_model.objects.filter(is_group=False, is_active=True)
            kwargs["queryset"] = qs.filter(company=company) if company else qs.none()
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("account")

    # lines of posted/reversed entries are frozen
    def has_add_permission(self, request, obj=None):
        return bool(obj is None or obj.is_editable)

    def has_change_permission(self, request, obj=None):
        return bool(obj is None or obj.is_editable)

    def has_delete_permission(self, request, obj=None):
        return bool(obj is None or obj.is_editable)
