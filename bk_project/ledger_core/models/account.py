from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company
from .statement_line import ACCOUNT_LINE_KINDS, DEFAULT_LINE_KIND, StatementLine

# Choice Lists
AC_TYPES = [
    # Used in Account model to classify general ledger accounts
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("income", "Income"),
    ("expense", "Expense"),
]

# Side on which each account type increases
NORMAL_BALANCE = {
    "asset": "debit",
    "expense": "debit",
    "liability": "credit",
    "equity": "credit",
    "income": "credit",
}

# Deepest level of the chart (1 = top-level group)
MAX_ACCOUNT_LEVEL = 5


class Account(models.Model):
    """
    Node of the Chart of Accounts.
    - code should be unique per company
    - is_group accounts only roll up children and never receive postings
    - ac_type decides the normal balance side and BS vs P&L
    - statement_line places the account on the financial statements
    """

    company = models.ForeignKey(  # Each account belongs to one company
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )
    # Code lets reports sort/group accounts consistently
    code = models.CharField(max_length=32)
    name = models.CharField(max_length=200)  # "Cash on Hand", "Trade Payables"
    description = models.TextField(blank=True)

    ac_type = models.CharField(max_length=10, choices=AC_TYPES)

    # Hierarchy: groups hold ledgers (or other groups)
    is_group = models.BooleanField(default=False)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # you can't delete a parent if children exist
        related_name="children",
    )
    # Depth in the tree, computed from parent on save
    level = models.PositiveSmallIntegerField(default=1)

    # Explicit line on the balance sheet / P&L; empty means default by type
    statement_line = models.CharField(
        max_length=40,
        choices=StatementLine.choices,
        blank=True,
    )

    # "soft deactivate": stop new postings without deleting history
    is_active = models.BooleanField(default=True)
    # created by the default chart; cannot be deactivated
    is_system = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "ac_type"], name="ledger_core_company_2c4b7d_idx"),
            models.Index(fields=["company", "code"], name="ledger_core_company_71e9a0_idx"),
            models.Index(fields=["company", "parent"], name="ledger_core_company_d3f6b2_idx"),
        ]
        constraints = [
            # codes repeat across companies but must be unique within one
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_account_code"
            )
        ]
        ordering = ("company", "code")

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def normal_balance(self):
        return NORMAL_BALANCE[self.ac_type]

    @property
    def is_debit_normal(self):
        return self.normal_balance == "debit"

    @property
    def is_postable(self):
        """Only active leaf (ledger) accounts take journal lines."""
        return self.is_active and not self.is_group

    @property
    def line_kind(self):
        """Statement line this account rolls into."""
        if self.statement_line:
            return StatementLine(self.statement_line)
        return DEFAULT_LINE_KIND[self.ac_type]

    def clean(self):
        if self.parent_id:
            parent = self.parent
            # tenant consistency
            if parent.company_id != self.company_id:
                raise ValidationError(
                    "Parent & child accounts must belong to the same company"
                )
            # ledger accounts are leaves
            if not parent.is_group:
                raise ValidationError(
                    f"Parent account {parent.code} is a ledger account; "
                    "accounts can only be created under a group"
                )
            if parent.ac_type != self.ac_type:
                raise ValidationError(
                    f"Account type {self.ac_type} does not match parent type {parent.ac_type}"
                )
            if parent.level + 1 > MAX_ACCOUNT_LEVEL:
                raise ValidationError(
                    f"Account hierarchy is limited to {MAX_ACCOUNT_LEVEL} levels"
                )

        # mapping must be one the account type can reach
        if self.statement_line and self.statement_line not in ACCOUNT_LINE_KINDS.get(
            self.ac_type, ()
        ):
            raise ValidationError(
                f"{self.statement_line} is not a valid statement line for a {self.ac_type} account"
            )

    def save(self, *args, **kwargs):
        self.level = self.parent.level + 1 if self.parent_id else 1

        if self.pk:
            old = Account.objects.filter(pk=self.pk).first()
            if old:
                from .journal import JournalLine

                used = JournalLine.objects.filter(account_id=self.pk).exists()
                # a ledger with postings cannot turn into a group
                if used and not old.is_group and self.is_group:
                    raise ValidationError(
                        "Cannot turn an account with journal lines into a group."
                    )
                if old.is_active and not self.is_active and self.is_system:
                    raise ValidationError("System accounts cannot be deactivated.")
        return super().save(*args, **kwargs)
