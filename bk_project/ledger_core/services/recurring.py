"""
Recurring Entry Scheduler.

Templates are turned into `recurring` journal entries through the posting
engine (create + post), then their next_run_date is advanced. A batch for
one company holds a cache lock so two batches never overlap, and each
template is claimed (is_processing) while its entry is generated. A claim
left behind by a dead worker expires after LEDGER_RECURRING_LOCK_TIMEOUT.
"""
import datetime
import logging
import uuid

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import ConcurrencyError, InvalidStateError, LedgerError, NotFoundError, ValidationError
from ..models import FREQUENCIES, RecurringTemplate
from .dates import add_months
from .posting import create_entry, post_entry, validate_line_set

logger = logging.getLogger(__name__)

MONTH_STEPS = {"monthly": 1, "quarterly": 3, "yearly": 12}
DAY_STEPS = {"daily": 1, "weekly": 7}
VALID_FREQUENCIES = {value for value, _label in FREQUENCIES}


def advance_date(day, frequency, anchor_day=None):
    """Next run date after `day`.

    daily/weekly add a fixed number of days; monthly/quarterly/yearly keep
    the anchor day-of-month, clamped to the month's last day.
    """
    if frequency in DAY_STEPS:
        return day + datetime.timedelta(days=DAY_STEPS[frequency])
    if frequency in MONTH_STEPS:
        return add_months(day, MONTH_STEPS[frequency], anchor_day=anchor_day)
    raise ValidationError(f"Unknown frequency {frequency}", frequency=frequency)


def _serialize_lines(rows):
    return [
        {
            "account_id": row["account"].pk,
            "debit": str(row["debit"]),
            "credit": str(row["credit"]),
            "description": row["description"],
        }
        for row in rows
    ]


def create_template(
    company,
    *,
    name,
    frequency,
    start_date,
    lines,
    end_date=None,
    next_run_date=None,
    narration="",
    user=None,
):
    """Validate the line set like a journal entry and store the template."""
    if frequency not in VALID_FREQUENCIES:
        raise ValidationError(f"Unknown frequency {frequency}", frequency=frequency)
    if end_date and end_date < start_date:
        raise ValidationError("end_date cannot be before start_date")
    rows, _debit, _credit = validate_line_set(company, lines)

    template = RecurringTemplate.objects.create(
        company=company,
        name=name,
        narration=narration,
        frequency=frequency,
        start_date=start_date,
        next_run_date=next_run_date or start_date,
        end_date=end_date,
        template_lines=_serialize_lines(rows),
        created_by=user,
    )
    logger.info(
        "Recurring template created",
        extra={"company": company.slug, "template": name, "frequency": frequency},
    )
    return template


def get_template(company, template_id):
    try:
        return RecurringTemplate.objects.for_company(company).get(pk=template_id)
    except (RecurringTemplate.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Recurring template {template_id} not found", template_id=template_id)


def deactivate_template(template):
    template.is_active = False
    template.save(update_fields=["is_active"])
    return template


def due_templates(company, as_of=None):
    """Active templates with next_run_date <= as_of that have not ended by as_of."""
    as_of = as_of or timezone.localdate()
    return list(
        RecurringTemplate.objects.active(company)
        .filter(next_run_date__lte=as_of)
        .filter(Q(end_date__isnull=True) | Q(end_date__gte=as_of))
        .order_by("next_run_date", "id")
    )


def _claim_expired(tpl, now):
    if tpl.claimed_at is None:
        return True
    age = now - tpl.claimed_at
    return age >= datetime.timedelta(seconds=settings.LEDGER_RECURRING_LOCK_TIMEOUT)


def _claim(template):
    with transaction.atomic():
        tpl = RecurringTemplate.objects.select_for_update().get(pk=template.pk)
        if not tpl.is_active:
            raise InvalidStateError(f"Recurring template {tpl.name} is inactive", template_id=tpl.pk)
        now = timezone.now()
        if tpl.is_processing:
            if not _claim_expired(tpl, now):
                raise ConcurrencyError(
                    f"Recurring template {tpl.name} is already being processed", template_id=tpl.pk
                )
            logger.warning(
                "Taking over abandoned recurring claim",
                extra={"template": tpl.name, "claimed_at": str(tpl.claimed_at)},
            )
        tpl.is_processing = True
        tpl.claimed_at = now
        tpl.save(update_fields=["is_processing", "claimed_at"])
        return tpl


def generate(template, user=None):
    """Create and post one entry from the template, then advance its schedule."""
    tpl = _claim(template)
    try:
        with transaction.atomic():
            lines = [
                {
                    "account_id": line["account_id"],
                    "debit": line["debit"],
                    "credit": line["credit"],
                    "description": line["description"],
                }
                for line in tpl.parsed_lines()
            ]
            entry = create_entry(
                tpl.company,
                entry_date=tpl.next_run_date,
                lines=lines,
                entry_type="recurring",
                narration=tpl.narration or tpl.name,
                source_type="recurring_template",
                source_id=tpl.pk,
                user=user,
            )
            entry = post_entry(entry, user=user)

            anchor_day = tpl.run_anchor_day()
            tpl.next_run_date = advance_date(tpl.next_run_date, tpl.frequency, anchor_day=anchor_day)
            tpl.anchor_day = anchor_day
            tpl.last_run_at = timezone.now()
            tpl.last_entry = entry
            fields = ["next_run_date", "anchor_day", "last_run_at", "last_entry"]
            if tpl.end_date and tpl.next_run_date > tpl.end_date:
                tpl.is_active = False
                fields.append("is_active")
            tpl.save(update_fields=fields)
    finally:
        # release the claim whether or not the entry made it
        RecurringTemplate.objects.filter(pk=tpl.pk).update(is_processing=False, claimed_at=None)

    template.refresh_from_db()
    logger.info(
        "Recurring entry generated",
        extra={
            "company": tpl.company.slug,
            "template": tpl.name,
            "entry_number": entry.entry_number,
            "next_run_date": str(tpl.next_run_date),
        },
    )
    return entry


def _lock_key(company):
    return f"ledger:recurring-batch:{company.pk}"


def process_due(company, as_of=None, user=None):
    """Generate entries for every due template of the company.

    A failing template is recorded and skipped; the batch goes on.
    Returns {"processed", "failed", "errors", "entries"}.
    """
    key = _lock_key(company)
    token = uuid.uuid4().hex
    # cache.add only succeeds when nobody holds the key
    if not cache.add(key, token, timeout=settings.LEDGER_RECURRING_LOCK_TIMEOUT):
        raise ConcurrencyError(
            f"A recurring batch is already running for {company}", company=company.slug
        )

    summary = {"processed": 0, "failed": 0, "errors": [], "entries": []}
    try:
        for template in due_templates(company, as_of):
            try:
                entry = generate(template, user=user)
            except Exception as exc:
                # one template's failure never blocks the others
                message = exc.message if isinstance(exc, LedgerError) else str(exc)
                summary["failed"] += 1
                summary["errors"].append(
                    {
                        "template_id": template.pk,
                        "template_name": template.name,
                        "error": message,
                    }
                )
                logger.exception(
                    "Recurring template failed",
                    extra={"company": company.slug, "template": template.name},
                )
            else:
                summary["processed"] += 1
                summary["entries"].append(entry.entry_number)
    finally:
        if cache.get(key) == token:
            cache.delete(key)

    logger.info(
        "Recurring batch finished",
        extra={
            "company": company.slug,
            "processed": summary["processed"],
            "failed": summary["failed"],
        },
    )
    return summary
