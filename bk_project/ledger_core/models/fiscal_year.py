from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company


# ---------- FiscalYear ----------
class FiscalYear(models.Model):
    """
    Time bucket that owns journal numbering and the posting lock.

    When is_locked=True no entry may be posted or reversed into it,
    so finalized reports cannot be changed by backdated postings.
    """

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,  # years with entries must never vanish
        related_name="fiscal_years",
    )

    # Human-readable label, e.g. "FY 2024-25"
    name = models.CharField(max_length=50)

    start_date = models.DateField()
    end_date = models.DateField()

    is_locked = models.BooleanField(default=False)
    locked_at = models.DateTimeField(null=True, blank=True)
    locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    # The year new work defaults to
    is_current = models.BooleanField(default=False)

    # Last entry number handed out in this year (JV/<short name>/<NNNN>)
    entry_sequence = models.PositiveIntegerField(default=0)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "start_date"], name="ledger_core_company_5b1d2f_idx"),
            models.Index(fields=["company", "is_locked"], name="ledger_core_company_8e0a43_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name"], name="uq_company_fiscal_year_name"
            ),
        ]
        ordering = ("company", "start_date")

    def __str__(self):
        return f"{self.company.slug} {self.name}"

    @property
    def short_name(self):
        """'FY 2024-25' → '2024-25' (used inside entry numbers)."""
        name = self.name.strip()
        if name.upper().startswith("FY"):
            name = name[2:].strip()
        return name

    def contains(self, day):
        return self.start_date <= day <= self.end_date

    def clean(self):
        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError("start_date must be before end_date")

        # Years of one company may not overlap, otherwise a date resolves twice
        overlapping = FiscalYear.objects.filter(
            company_id=self.company_id,
            start_date__lte=self.end_date,
            end_date__gte=self.start_date,
        ).exclude(pk=self.pk)
        if overlapping.exists():
            raise ValidationError(
                f"Fiscal year {self.name} overlaps {overlapping.first().name}"
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
