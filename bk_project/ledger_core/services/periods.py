import logging

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import LockedPeriodError, NotFoundError, ValidationError
from ..models import FiscalYear

logger = logging.getLogger(__name__)


def create_fiscal_year(company, name, start_date, end_date, is_current=False):
    fy = FiscalYear(
        company=company,
        name=name,
        start_date=start_date,
        end_date=end_date,
        is_current=is_current,
    )
    try:
        fy.save()  # full_clean checks order and overlap
    except ModelValidationError as exc:
        raise ValidationError("; ".join(exc.messages), fiscal_year=name) from exc
    if is_current:
        set_current_fiscal_year(fy)
    logger.info(
        "Fiscal year created",
        extra={"company": company.slug, "fiscal_year": name},
    )
    return fy


"""
    Entry date determines the fiscal year.
    Changing the date of a draft moves it into another year.
"""
def resolve_fiscal_year(company, date):
    try:
        return FiscalYear.objects.get(
            company=company,
            start_date__lte=date,
            end_date__gte=date,
        )
    except FiscalYear.DoesNotExist:
        raise NotFoundError(
            f"No fiscal year covers {date} in {company}",
            entry_date=str(date),
        )


def get_fiscal_year(company, fiscal_year_id):
    try:
        return FiscalYear.objects.for_company(company).get(pk=fiscal_year_id)
    except (FiscalYear.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(
            f"Fiscal year {fiscal_year_id} not found", fiscal_year_id=fiscal_year_id
        )


def current_fiscal_year(company):
    fy = FiscalYear.objects.for_company(company).filter(is_current=True).first()
    if fy is None:
        fy = resolve_fiscal_year(company, timezone.localdate())
    return fy


def ensure_unlocked(fiscal_year):
    if fiscal_year.is_locked:
        raise LockedPeriodError(
            f"Fiscal year {fiscal_year.name} is locked",
            fiscal_year=fiscal_year.name,
            fiscal_year_id=fiscal_year.pk,
        )


@transaction.atomic
def lock_fiscal_year(fiscal_year, user=None):
    # row lock serializes against postings that check the flag
    fy = FiscalYear.objects.select_for_update().get(pk=fiscal_year.pk)
    if fy.is_locked:
        return fy
    fy.is_locked = True
    fy.locked_at = timezone.now()
    fy.locked_by = user
    fy.save(update_fields=["is_locked", "locked_at", "locked_by"])
    logger.info(
        "Fiscal year locked",
        extra={"company": fy.company.slug, "fiscal_year": fy.name},
    )
    return fy


@transaction.atomic
def unlock_fiscal_year(fiscal_year, user=None):
    fy = FiscalYear.objects.select_for_update().get(pk=fiscal_year.pk)
    fy.is_locked = False
    fy.locked_at = None
    fy.locked_by = None
    fy.save(update_fields=["is_locked", "locked_at", "locked_by"])
    logger.info(
        "Fiscal year unlocked",
        extra={"company": fy.company.slug, "fiscal_year": fy.name, "user": str(user or "")},
    )
    return fy


@transaction.atomic
def set_current_fiscal_year(fiscal_year):
    FiscalYear.objects.for_company(fiscal_year.company).exclude(pk=fiscal_year.pk).update(
        is_current=False
    )
    if not fiscal_year.is_current:
        fiscal_year.is_current = True
        fiscal_year.save(update_fields=["is_current"])
    return fiscal_year
