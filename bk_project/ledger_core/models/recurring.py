from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company

FREQUENCIES = [
    ("daily", "Daily"),
    ("weekly", "Weekly"),
    ("monthly", "Monthly"),
    ("quarterly", "Quarterly"),
    ("yearly", "Yearly"),
]


class RecurringTemplate(models.Model):
    """
    Blueprint for an entry that repeats on a schedule (rent, salaries, EMIs).

    template_lines holds the line set as JSON:
        [{"account_id": 7, "debit": "25000.00", "credit": "0", "description": "Rent"}, ...]
    The scheduler advances next_run_date; templates are deactivated, never deleted.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="recurring_templates")
    name = models.CharField(max_length=200)
    narration = models.TextField(blank=True)

    frequency = models.CharField(max_length=10, choices=FREQUENCIES)
    start_date = models.DateField()
    next_run_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    # day-of-month kept across clamped month-ends (Jan 31 → Feb 29 → Mar 31);
    # taken from next_run_date whenever that date is set by hand
    anchor_day = models.PositiveSmallIntegerField(null=True, blank=True, editable=False)

    template_lines = models.JSONField(default=list, encoder=DjangoJSONEncoder)

    is_active = models.BooleanField(default=True)
    # claim flag held while an entry is being generated; a claim older than
    # LEDGER_RECURRING_LOCK_TIMEOUT is treated as abandoned
    is_processing = models.BooleanField(default=False)
    claimed_at = models.DateTimeField(null=True, blank=True)
    last_run_at = models.DateTimeField(null=True, blank=True)
    last_entry = models.ForeignKey(
        "JournalEntry",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "is_active", "next_run_date"], name="ledger_core_company_e51a3c_idx"),
        ]
        ordering = ("next_run_date", "id")

    def __str__(self):
        return f"{self.name} ({self.frequency}, next {self.next_run_date})"

    def parsed_lines(self):
        """template_lines with amounts as Decimal."""
        parsed = []
        for i, raw in enumerate(self.template_lines or []):
            try:
                parsed.append(
                    {
                        "account_id": raw["account_id"],
                        "debit": Decimal(str(raw.get("debit") or "0")),
                        "credit": Decimal(str(raw.get("credit") or "0")),
                        "description": raw.get("description") or "",
                    }
                )
            except (KeyError, TypeError, InvalidOperation) as exc:
                raise ValidationError(f"Template line {i + 1} is malformed: {exc}") from exc
        return parsed

    def clean(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValidationError("end_date cannot be before start_date")

        lines = self.parsed_lines()
        if len(lines) < 2:
            raise ValidationError("A recurring template needs at least two lines.")
        for i, line in enumerate(lines, start=1):
            if line["debit"] < 0 or line["credit"] < 0:
                raise ValidationError(f"Template line {i} has a negative amount.")
            if (line["debit"] > 0) == (line["credit"] > 0):
                raise ValidationError(f"Template line {i} needs exactly one of debit or credit.")

        total_debit = sum((line["debit"] for line in lines), Decimal("0"))
        total_credit = sum((line["credit"] for line in lines), Decimal("0"))
        if total_debit != total_credit:
            raise ValidationError(
                f"Template lines are not balanced: debits={total_debit}, credits={total_credit}"
            )

    def _next_run_date_changed(self):
        if self.pk is None:
            return True
        stored = type(self).objects.filter(pk=self.pk).values_list("next_run_date", flat=True).first()
        return stored != self.next_run_date

    def run_anchor_day(self):
        """Day-of-month the schedule keeps for month-based frequencies."""
        return self.anchor_day or self.next_run_date.day

    def save(self, *args, **kwargs):
        # skip validation for scheduler bookkeeping (claim flag, dates)
        if not kwargs.get("update_fields"):
            self.full_clean()
            if self.anchor_day is None or self._next_run_date_changed():
                self.anchor_day = self.next_run_date.day
        return super().save(*args, **kwargs)
