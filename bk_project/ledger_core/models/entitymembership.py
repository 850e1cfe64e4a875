from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils.text import slugify


# ---------- Tenant / Company ----------
class Company(models.Model):
    """Tenant / Organization. Every ledger row hangs off one company."""

    # Store company's full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # GST registration; first two digits are the state code
    gstin = models.CharField(max_length=15, blank=True)
    state_code = models.CharField(max_length=2, blank=True)

    # Functional currency of the books (no revaluation is performed)
    base_currency = models.CharField(max_length=3, default="INR")

    # Link to a user account (creator or admin of company)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,  # optional field
        on_delete=models.SET_NULL,  # company stays if the owner is removed
        related_name="owned_companies",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # derive a unique slug when none is given: "Test Ltd" → "test-ltd", "test-ltd-1", ...
        if not self.slug:
            base = slugify(self.name) or "company"
            slug, i = base, 1
            while Company.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{i}"
                i += 1
            self.slug = slug
        # state code follows the GSTIN when it is known
        if self.gstin and not self.state_code:
            self.state_code = self.gstin[:2]
        return super().save(*args, **kwargs)


# ---------- Custom User ----------
class User(AbstractUser):
    """
    Set 'AUTH_USER_MODEL = "ledger_core.User"' in settings.py
    before the very first migrate.
    """

    # Company the user works in unless the session picks another one
    default_company = models.ForeignKey(
        "Company",
        null=True,  # user might exist before being assigned a company
        blank=True,
        on_delete=models.SET_NULL,
        related_name="default_users",
    )

    class Meta:
        indexes = [models.Index(fields=["default_company"], name="ledger_core_default_9a7c1e_idx")]

    def __str__(self):
        return self.get_full_name() or self.username
