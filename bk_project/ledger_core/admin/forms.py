from decimal import Decimal

from django import forms
from django.contrib.auth.forms import UserChangeForm as DjangoUserChangeForm
from django.contrib.auth.forms import UserCreationForm as DjangoUserCreationForm
from django.core.exceptions import ValidationError

from ledger_core.models import Account, JournalLine, User

# -----------------------------
# Custom admin forms
# ----------------------------


# Subclass `DjangoUserCreationForm` (form used when adding a new user)
class UserAdminCreationForm(DjangoUserCreationForm):
    class Meta(DjangoUserCreationForm.Meta):
        model = User  # Points `model` to custom User model
        fields = ("username", "email", "default_company")


# Subclass `DjangoUserChangeForm` (form used when editing an existing user)
class UserAdminChangeForm(DjangoUserChangeForm):
    class Meta(DjangoUserChangeForm.Meta):
        model = User
        fields = (
            "username",
            "email",
            "is_active",
            "is_staff",
            "is_superuser",
            "default_company",
        )


# Inline form for JournalLine (admin)
class JournalLineInlineForm(forms.ModelForm):
    class Meta:
        model = JournalLine
        fields = ("account", "description", "debit", "credit", "sort_order")

    def clean(self):
        cleaned = super().clean()

        # exactly one side carries the amount
        debit = cleaned.get("debit") or Decimal("0.00")
        credit = cleaned.get("credit") or Decimal("0.00")
        if (debit > 0) == (credit > 0):
            raise ValidationError("Exactly one of debit or credit must be > 0 for a journal line.")

        # account must be a ledger account of the entry's company
        account = cleaned.get("account")
        entry = getattr(self.instance, "entry", None) if self.instance.entry_id else None
        if account and entry and account.company_id != entry.company_id:
            raise ValidationError({"account": "Selected account does not belong to the same company."})
        if account and account.is_group:
            raise ValidationError({"account": "Group accounts cannot be posted to."})
        return cleaned


class AccountAdminForm(forms.ModelForm):
    class Meta:
        model = Account
        fields = (
            "company",
            "code",
            "name",
            "description",
            "ac_type",
            "is_group",
            "parent",
            "statement_line",
            "is_active",
        )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # only group accounts can be parents
        if "parent" in self.fields:
            self.fields["parent"].queryset = self.fields["parent"].queryset.filter(is_group=True)
