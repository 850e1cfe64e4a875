from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import Signal, receiver

from .models import Account, FiscalYear, JournalEntry, JournalLine

# Sent inside the posting transaction, so receivers commit or roll back with it.
# kwargs: entry
entry_posted = Signal()
# kwargs: entry (the original, now reversed), reversal
entry_reversed = Signal()


""" Derived reports go stale whenever the ledger changes """


@receiver(entry_posted)
def invalidate_reports_on_post(sender, entry, **kwargs):
    # lazy import to avoid circular import at module load time
    from .services.report_cache import invalidate_for_entry

    invalidate_for_entry(entry)


@receiver(entry_reversed)
def invalidate_reports_on_reverse(sender, entry, reversal, **kwargs):
    from .services.report_cache import invalidate_for_entry

    # the reversal's own post already fired; cover the original's date
    invalidate_for_entry(entry)


"""Block deletion if account has ever been used in a journal line."""


@receiver(pre_delete, sender=Account)
def prevent_delete_account_with_journal_lines(sender, instance, **kwargs):
    if JournalLine.objects.filter(account=instance).exists():
        raise ValidationError("Cannot delete account used in journal lines; deactivate it instead.")


"""Block deletion of posted or reversed entries (also catches queryset deletes)."""


@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_posted_entry(sender, instance, **kwargs):
    if instance.status in ("posted", "reversed"):
        raise ValidationError("Posted journal entries cannot be deleted; reverse them.")


"""Block deletion if the fiscal year has entries."""


@receiver(pre_delete, sender=FiscalYear)
def prevent_delete_fiscal_year_with_entries(sender, instance, **kwargs):
    if JournalEntry.objects.filter(fiscal_year=instance).exists():
        raise ValidationError("Cannot delete a fiscal year with journal entries.")
