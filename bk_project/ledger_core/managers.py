from django.db import models


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):
        return self.filter(company=company)

    def active(self, company):
        return self.filter(
            company=company,  # enforce tenant scoping
            is_active=True,  # only fetch active records
        )


class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    # Account.objects.for_company(request.company)
    # RecurringTemplate.objects.active(request.company)
    pass


class JournalEntryQuerySet(TenantQuerySet):
    def in_ledger(self):
        """Entries whose lines count towards balances.

        A reversed entry keeps its lines in the ledger;
        the reversal entry offsets them.
        """
        return self.filter(status__in=("posted", "reversed"))

    def for_fiscal_year(self, fiscal_year):
        return self.filter(fiscal_year=fiscal_year)


class JournalEntryManager(models.Manager.from_queryset(JournalEntryQuerySet)):
    pass


class JournalLineQuerySet(models.QuerySet):
    def for_company(self, company):
        # lines are scoped through their entry
        return self.filter(entry__company=company)

    def in_ledger(self):
        return self.filter(entry__status__in=("posted", "reversed"))


class JournalLineManager(models.Manager.from_queryset(JournalLineQuerySet)):
    pass
