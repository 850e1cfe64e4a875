from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from ledger_core.exceptions import LedgerError
from ledger_core.services.periods import lock_fiscal_year, unlock_fiscal_year
from ledger_core.services.posting import post_entry, reverse_entry
from ledger_core.services.recurring import generate

# ---------- Admin actions ----------


def _run_each(modeladmin, request, queryset, operation, label):
    """
    Apply `operation` to every selected row in its own transaction
    (the services open one) and report per-row failures via admin messages.
    """
    success = 0
    failures = 0
    for obj in queryset:
        try:
            operation(obj)
            success += 1
        except LedgerError as exc:
            failures += 1
            modeladmin.message_user(
                request,
                _("Could not %(label)s %(obj)s: %(err)s") % {"label": label, "obj": obj, "err": exc.message},
                level=messages.ERROR,
            )

    # Final summary message
    modeladmin.message_user(
        request,
        _("%(label)s: %(success)d done, %(failures)d failed.") % {
            "label": label.capitalize(),
            "success": success,
            "failures": failures,
        },
        level=messages.SUCCESS if failures == 0 else messages.WARNING,
    )


@admin.action(description=_("Post selected journal entries (make immutable)"))
# Bulk-post journal entries from the admin list view
def post_journal_entries(modeladmin, request, queryset):
    # Only attempt entries that can still move to posted
    candidates = queryset.filter(status__in=["draft", "pending_approval"])
    _run_each(modeladmin, request, candidates, lambda je: post_entry(je, user=request.user), "post")


@admin.action(description=_("Reverse selected posted journal entries"))
def reverse_journal_entries(modeladmin, request, queryset):
    candidates = queryset.filter(status="posted")
    _run_each(modeladmin, request, candidates, lambda je: reverse_entry(je, user=request.user), "reverse")


@admin.action(description=_("Lock selected fiscal years"))
def lock_fiscal_years(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset, lambda fy: lock_fiscal_year(fy, user=request.user), "lock")


@admin.action(description=_("Unlock selected fiscal years"))
def unlock_fiscal_years(modeladmin, request, queryset):
    _run_each(modeladmin, request, queryset, lambda fy: unlock_fiscal_year(fy, user=request.user), "unlock")


@admin.action(description=_("Generate the next entry now"))
def generate_recurring_now(modeladmin, request, queryset):
    candidates = queryset.filter(is_active=True)
    _run_each(modeladmin, request, candidates, lambda tpl: generate(tpl, user=request.user), "generate")
