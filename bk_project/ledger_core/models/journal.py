from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import JournalEntryManager, JournalLineManager
from .account import Account
from .entitymembership import Company
from .fiscal_year import FiscalYear

ENTRY_TYPES = [
    ("manual", "Manual"),
    ("auto_invoice", "Auto - Invoice"),
    ("auto_payment", "Auto - Payment"),
    ("auto_expense", "Auto - Expense"),
    ("recurring", "Recurring"),
    ("reversal", "Reversal"),
    ("bank_import", "Bank Import"),
    ("opening", "Opening Balance"),
]

JOURNAL_STATUS = [
    ("draft", "Draft"),  # still editable
    ("pending_approval", "Pending Approval"),  # submitted, still editable
    ("posted", "Posted"),  # in the ledger, immutable
    ("reversed", "Reversed"),  # offset by a reversal entry, immutable
]

# Closed state-transition table; every status change goes through it
TRANSITIONS = {
    "draft": ("pending_approval", "posted"),
    "pending_approval": ("draft", "posted"),
    "posted": ("reversed",),
    "reversed": (),
}

EDITABLE_STATUSES = ("draft", "pending_approval")
LEDGER_STATUSES = ("posted", "reversed")

# Entry types created straight into "posted"
AUTO_POSTED_TYPES = ("auto_invoice", "auto_payment", "auto_expense")

# Header fields frozen once the entry reaches the ledger
FROZEN_FIELDS = (
    "company_id",
    "fiscal_year_id",
    "entry_number",
    "entry_date",
    "entry_type",
    "narration",
    "total_debit",
    "total_credit",
)


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):  # one accounting transaction
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    fiscal_year = models.ForeignKey(
        FiscalYear,
        on_delete=models.PROTECT,  # Prevent breaking historical ledger
        related_name="entries",
    )

    # Sequential per company + fiscal year: JV/2024-25/0001
    entry_number = models.CharField(max_length=40)
    entry_date = models.DateField()
    entry_type = models.CharField(max_length=20, choices=ENTRY_TYPES, default="manual")
    status = models.CharField(max_length=20, choices=JOURNAL_STATUS, default="draft")

    narration = models.TextField(blank=True)
    reference = models.CharField(max_length=200, blank=True)

    # Cached totals of the lines (kept equal for every stored entry)
    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Which collaborator produced the entry (invoice, bill, recurring_template, ...)
    source_type = models.CharField(max_length=50, blank=True)
    source_id = models.CharField(max_length=64, blank=True)

    # Set on the reversal entry; the original sees it as `reversed_by`
    reverses = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversed_by",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping
    objects = JournalEntryManager()

    class Meta:
        verbose_name_plural = "journal entries"
        indexes = [
            models.Index(fields=["company", "entry_date"], name="ledger_core_company_4f8e21_idx"),
            models.Index(fields=["company", "status"], name="ledger_core_company_a90c5e_idx"),
            models.Index(fields=["company", "source_type", "source_id"], name="ledger_core_company_0b7d94_idx"),
        ]
        constraints = [
            # numbering collisions surface as IntegrityError at commit
            models.UniqueConstraint(
                fields=["company", "fiscal_year", "entry_number"],
                name="uq_je_company_fy_number",
            ),
        ]
        ordering = ("entry_date", "id")

    def __str__(self):
        return f"{self.entry_number} {self.entry_date} [{self.status}]"

    @property
    def is_editable(self):
        return self.status in EDITABLE_STATUSES

    def compute_totals(self):
        """Return (debits, credits) summed from the stored lines."""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit"),
            total_credit=models.Sum("credit"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    def is_balanced(self):
        debit, credit = self.compute_totals()
        return debit == credit

    def can_transition_to(self, new_status):
        return new_status in TRANSITIONS.get(self.status, ())

    def save(self, *args, **kwargs):
        if self.pk:
            orig = (
                JournalEntry.objects.filter(pk=self.pk)
                .values("status", *FROZEN_FIELDS)
                .first()
            )
            if orig and orig["status"] in LEDGER_STATUSES:
                # once in the ledger only the status may move (posted → reversed)
                changed = [f for f in FROZEN_FIELDS if orig[f] != getattr(self, f)]
                if changed:
                    raise ValidationError(
                        f"Cannot modify a {orig['status']} journal entry "
                        f"(changed: {', '.join(changed)})."
                    )
                if self.status != orig["status"] and self.status not in TRANSITIONS[orig["status"]]:
                    raise ValidationError(
                        f"Cannot go from {orig['status']} to {self.status}"
                    )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status in LEDGER_STATUSES:
            raise ValidationError("Posted journal entries cannot be deleted; reverse them.")
        return super().delete(*args, **kwargs)


class JournalLine(models.Model):  # one debit or credit of an entry
    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    # can't delete an account if lines exist → PROTECT
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name="lines")

    debit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    description = models.CharField(max_length=400, blank=True)

    # display order inside the entry
    sort_order = models.PositiveIntegerField(default=0)

    objects = JournalLineManager()

    class Meta:
        indexes = [
            models.Index(fields=["account"], name="ledger_core_account_6e2f18_idx"),
            models.Index(fields=["entry", "sort_order"], name="ledger_core_entry_i_3c9b70_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(debit__gte=0) & models.Q(credit__gte=0),
                name="jl_non_negative_amounts",
            ),
            # exactly one side carries the amount
            models.CheckConstraint(
                condition=(
                    (models.Q(debit__gt=0) & models.Q(credit=0))
                    | (models.Q(debit=0) & models.Q(credit__gt=0))
                ),
                name="jl_debit_xor_credit",
            ),
        ]
        ordering = ("sort_order", "id")

    def __str__(self):
        side = f"Dr {self.debit}" if self.debit else f"Cr {self.credit}"
        return f"{self.account.code} {side}"

    def clean(self):
        if self.debit < 0 or self.credit < 0:
            raise ValidationError("Debit and credit amounts cannot be negative.")
        if (self.debit > 0) == (self.credit > 0):
            raise ValidationError("A journal line needs exactly one of debit or credit.")

    def _entry_status(self):
        # read from the database, the cached entry may be stale
        return (
            JournalEntry.objects.filter(pk=self.entry_id)
            .values_list("status", flat=True)
            .first()
        )

    def save(self, *args, **kwargs):
        # lines of posted/reversed entries are frozen
        if self._entry_status() in LEDGER_STATUSES:
            raise ValidationError(
                "Cannot add or edit lines of a posted journal entry."
            )
        self.full_clean(exclude=["entry", "account"])
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self._entry_status() in LEDGER_STATUSES:
            raise ValidationError(
                "Cannot delete lines of a posted journal entry."
            )
        return super().delete(*args, **kwargs)
