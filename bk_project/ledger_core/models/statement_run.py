import uuid

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from ..managers import TenantManager
from .entitymembership import Company
from .fiscal_year import FiscalYear
from .statement_line import StatementType


class StatementRun(models.Model):
    """
    One derived report (trial balance or statement), kept for export.

    Runs double as the report cache: a fresh (non-stale) run with the same
    company, fiscal year, statement type and dates is served again.
    Postings and reversals mark affected runs stale; the ledger stays the
    source of truth.
    """

    run_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="statement_runs")
    fiscal_year = models.ForeignKey(
        FiscalYear,
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="statement_runs",
    )
    statement_type = models.CharField(max_length=20, choices=StatementType.choices)
    as_of_date = models.DateField()
    from_date = models.DateField(null=True, blank=True)

    # {"statement": [...], "summary": {...}}
    payload = models.JSONField(encoder=DjangoJSONEncoder)

    is_stale = models.BooleanField(default=False)
    generated_at = models.DateTimeField(auto_now_add=True)
    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "fiscal_year", "statement_type", "as_of_date"],
                name="ix_run_cache_key",
            ),
            models.Index(fields=["company", "is_stale", "as_of_date"], name="ledger_core_company_7c2d85_idx"),
        ]
        ordering = ("-generated_at", "-id")

    def __str__(self):
        return f"{self.get_statement_type_display()} as of {self.as_of_date} ({self.run_id})"
