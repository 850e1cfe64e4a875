"""
Journal Posting Engine.

Every status change of a JournalEntry goes through this module and the
TRANSITIONS table on the model. Entry-number allocation and posting lock
the company's FiscalYear row, which serializes writers per tenant and
fiscal year and keeps the lock check and the commit in one transaction.
"""
import logging

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ..exceptions import (ConcurrencyError, InvalidStateError, LedgerError,
                          NotFoundError, UnbalancedJournalError,
                          ValidationError)
from ..models import (AUTO_POSTED_TYPES, ENTRY_TYPES, Account, FiscalYear,
                      JournalEntry, JournalLine)
from ..signals import entry_posted, entry_reversed
from .money import BALANCE_TOLERANCE, ZERO, to_money
from .periods import ensure_unlocked, get_fiscal_year, resolve_fiscal_year
from .registry import resolve_account

logger = logging.getLogger(__name__)

MIN_LINES = 2
VALID_ENTRY_TYPES = {value for value, _label in ENTRY_TYPES}


# ----------------------------
# Line validation
# ----------------------------
def _normalize_lines(company, lines):
    """Turn raw line dicts into validated rows with Account objects.

    Accepts "account" (an Account or an account id) or "account_id" plus
    debit/credit/description.
    """
    if lines is None:
        lines = []
    if not isinstance(lines, (list, tuple)):
        raise ValidationError("lines must be a list of line objects", field="lines")
    if len(lines) < MIN_LINES:
        raise ValidationError(
            f"A journal entry needs at least {MIN_LINES} lines",
            line_count=len(lines),
        )

    rows = []
    for i, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Line {i} must be an object", line=i)
        account = raw.get("account")
        if account is None:
            account = resolve_account(company, raw.get("account_id"))
        elif not isinstance(account, Account):
            account = resolve_account(company, account)
        elif account.company_id != company.pk:
            raise NotFoundError(f"Line {i}: account {account.code} not found", line=i)

        if not account.is_active:
            raise ValidationError(
                f"Line {i}: account {account.code} is inactive", line=i, account=account.code
            )
        if account.is_group:
            raise ValidationError(
                f"Line {i}: account {account.code} is a group account and cannot be posted to",
                line=i,
                account=account.code,
            )

        debit = to_money(raw.get("debit"), field=f"line {i} debit")
        credit = to_money(raw.get("credit"), field=f"line {i} credit")
        if debit < 0 or credit < 0:
            raise ValidationError(f"Line {i}: amounts cannot be negative", line=i)
        if (debit > 0) == (credit > 0):
            raise ValidationError(
                f"Line {i}: exactly one of debit or credit must be non-zero",
                line=i,
                debit=str(debit),
                credit=str(credit),
            )

        rows.append(
            {
                "account": account,
                "debit": debit,
                "credit": credit,
                "description": str(raw.get("description") or "")[:400],
                "sort_order": i,
            }
        )
    return rows


def _check_balanced(rows):
    total_debit = sum((r["debit"] for r in rows), ZERO)
    total_credit = sum((r["credit"] for r in rows), ZERO)
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise UnbalancedJournalError(total_debit, total_credit, line_count=len(rows))
    return total_debit, total_credit


def validate_line_set(company, lines):
    """Full line-set check without storing anything: (rows, debit, credit)."""
    rows = _normalize_lines(company, lines)
    total_debit, total_credit = _check_balanced(rows)
    return rows, total_debit, total_credit


def _check_transition(entry, new_status):
    if entry.can_transition_to(new_status):
        return
    if entry.status == new_status:
        message = f"Journal entry {entry.entry_number} is already {new_status}"
    else:
        message = f"Cannot go from {entry.status} to {new_status}"
    raise InvalidStateError(
        message,
        entry_id=entry.pk,
        entry_number=entry.entry_number,
        status=entry.status,
        requested=new_status,
    )


def _resolve_year(company, entry_date, fiscal_year=None):
    if fiscal_year is None:
        return resolve_fiscal_year(company, entry_date)
    if not isinstance(fiscal_year, FiscalYear):
        fiscal_year = get_fiscal_year(company, fiscal_year)
    if not fiscal_year.contains(entry_date):
        raise ValidationError(
            f"Entry date {entry_date} is outside fiscal year {fiscal_year.name}",
            entry_date=str(entry_date),
            fiscal_year=fiscal_year.name,
        )
    return fiscal_year


# ----------------------------
# Numbering
# ----------------------------
def _allocate_number(fiscal_year):
    """Lock the fiscal year row and hand out its next entry number."""
    fy = FiscalYear.objects.select_for_update().get(pk=fiscal_year.pk)
    # re-check under the row lock; a concurrent lock must win
    ensure_unlocked(fy)
    fy.entry_sequence += 1
    fy.save(update_fields=["entry_sequence"])
    return fy, f"{settings.LEDGER_ENTRY_PREFIX}/{fy.short_name}/{fy.entry_sequence:04d}"


def _retry_once(operation, **log_context):
    """Run operation; on a numbering race retry once with a fresh number."""
    try:
        return operation()
    except ConcurrencyError:
        logger.warning("Entry number collision, retrying", extra=log_context)
        return operation()


NUMBER_CONSTRAINT = "uq_je_company_fy_number"


def _is_number_collision(exc):
    """True when the IntegrityError comes from the entry-number unique constraint.

    PostgreSQL names the constraint; SQLite lists the constrained columns.
    """
    text = str(exc)
    return NUMBER_CONSTRAINT in text or (
        "UNIQUE constraint failed" in text and "entry_number" in text
    )


def _insert(build):
    # IntegrityError must be caught outside the atomic block that raised it
    try:
        with transaction.atomic():
            return build()
    except IntegrityError as exc:
        if not _is_number_collision(exc):
            raise
        raise ConcurrencyError(
            "Entry number allocation collided with a concurrent posting",
            reason=str(exc),
        ) from exc


def _write_lines(entry, rows):
    JournalLine.objects.bulk_create(
        [
            JournalLine(
                entry=entry,
                account=row["account"],
                debit=row["debit"],
                credit=row["credit"],
                description=row["description"],
                sort_order=row["sort_order"],
            )
            for row in rows
        ]
    )


def _mark_posted(entry, user=None):
    now = timezone.now()
    fields = ["status", "posted_at", "posted_by", "updated_at"]
    if entry.status == "pending_approval":
        entry.approved_by = user
        entry.approved_at = now
        fields += ["approved_by", "approved_at"]
    entry.status = "posted"
    entry.posted_at = now
    entry.posted_by = user
    entry.save(update_fields=fields)
    # receivers run inside the posting transaction
    entry_posted.send(sender=JournalEntry, entry=entry)


# ----------------------------
# Journal workflows
# ----------------------------
def create_entry(
    company,
    *,
    entry_date,
    lines,
    entry_type="manual",
    narration="",
    reference="",
    fiscal_year=None,
    source_type="",
    source_id="",
    user=None,
    post=None,
):
    """Validate a line set and store it as a new entry.

    Returns the entry in `draft`, or `posted` when the type is
    system-generated (auto_invoice, auto_payment, auto_expense) or
    `post=True` is passed.
    """
    if entry_type not in VALID_ENTRY_TYPES:
        raise ValidationError(f"Unknown entry type {entry_type}", entry_type=entry_type)
    if post is None:
        post = entry_type in AUTO_POSTED_TYPES

    try:
        rows = _normalize_lines(company, lines)
        total_debit, total_credit = _check_balanced(rows)
        fy = _resolve_year(company, entry_date, fiscal_year)
        ensure_unlocked(fy)
    except LedgerError as exc:
        logger.warning(
            "Journal entry rejected: %s",
            exc.message,
            extra={"company": company.slug, "entry_date": str(entry_date), **exc.details},
        )
        raise

    def build():
        locked_fy, number = _allocate_number(fy)
        entry = JournalEntry.objects.create(
            company=company,
            fiscal_year=locked_fy,
            entry_number=number,
            entry_date=entry_date,
            entry_type=entry_type,
            narration=narration,
            reference=reference,
            total_debit=total_debit,
            total_credit=total_credit,
            source_type=source_type,
            source_id=str(source_id or ""),
            created_by=user,
        )
        _write_lines(entry, rows)
        if post:
            _mark_posted(entry, user)
        return entry

    entry = _retry_once(lambda: _insert(build), company=company.slug)
    logger.info(
        "Journal entry created",
        extra={
            "company": company.slug,
            "entry_number": entry.entry_number,
            "entry_type": entry_type,
            "status": entry.status,
            "amount": str(total_debit),
        },
    )
    return entry


def get_entry(company, entry_id):
    try:
        return JournalEntry.objects.for_company(company).get(pk=entry_id)
    except (JournalEntry.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Journal entry {entry_id} not found", entry_id=entry_id)


@transaction.atomic
def update_entry(entry, *, lines=None, entry_date=None, narration=None, reference=None):
    """Edit a draft or pending entry; lines are replaced wholesale."""
    je = JournalEntry.objects.select_for_update().get(pk=entry.pk)
    if not je.is_editable:
        raise InvalidStateError(
            f"Journal entry {je.entry_number} is {je.status} and cannot be edited",
            entry_id=je.pk,
            status=je.status,
        )

    company = je.company
    if entry_date is not None and entry_date != je.entry_date:
        fy = resolve_fiscal_year(company, entry_date)
        ensure_unlocked(fy)
        if fy.pk != je.fiscal_year_id:
            # numbers are per fiscal year; moving years takes a new one
            fy, je.entry_number = _allocate_number(fy)
            je.fiscal_year = fy
        je.entry_date = entry_date
    if narration is not None:
        je.narration = narration
    if reference is not None:
        je.reference = reference

    if lines is not None:
        rows = _normalize_lines(company, lines)
        je.total_debit, je.total_credit = _check_balanced(rows)
        je.lines.all().delete()
        _write_lines(je, rows)

    je.save()
    logger.info("Journal entry updated", extra={"company": company.slug, "entry_number": je.entry_number})
    return je


@transaction.atomic
def delete_entry(entry):
    """Physically delete a draft. Anything else must be reversed."""
    je = JournalEntry.objects.select_for_update().get(pk=entry.pk)
    if je.status != "draft":
        raise InvalidStateError(
            f"Only draft entries can be deleted; {je.entry_number} is {je.status}",
            entry_id=je.pk,
            status=je.status,
        )
    number = je.entry_number
    je.delete()
    logger.info("Draft journal entry deleted", extra={"entry_number": number})


@transaction.atomic
def submit_for_approval(entry, user=None):
    je = JournalEntry.objects.select_for_update().get(pk=entry.pk)
    _check_transition(je, "pending_approval")
    je.status = "pending_approval"
    je.save(update_fields=["status", "updated_at"])
    return je


@transaction.atomic
def reject_entry(entry, user=None):
    """Send a pending entry back to draft."""
    je = JournalEntry.objects.select_for_update().get(pk=entry.pk)
    if je.status != "pending_approval":
        raise InvalidStateError(
            f"Only pending entries can be rejected; {je.entry_number} is {je.status}",
            entry_id=je.pk,
            status=je.status,
        )
    je.status = "draft"
    je.save(update_fields=["status", "updated_at"])
    return je


def post_entry(entry, user=None):
    """draft/pending_approval → posted.

    Balance, accounts and the fiscal-year lock are checked again at commit
    time. On any failure the transaction rolls back and the entry keeps its
    previous status.
    """
    try:
        with transaction.atomic():
            je = JournalEntry.objects.select_for_update().get(pk=entry.pk)
            _check_transition(je, "posted")

            fy = FiscalYear.objects.select_for_update().get(pk=je.fiscal_year_id)
            ensure_unlocked(fy)
            if not fy.contains(je.entry_date):
                raise ValidationError(
                    f"Entry date {je.entry_date} is outside fiscal year {fy.name}",
                    entry_number=je.entry_number,
                )

            stored = [
                {
                    "account": line.account,
                    "debit": line.debit,
                    "credit": line.credit,
                    "description": line.description,
                }
                for line in je.lines.select_related("account")
            ]
            rows = _normalize_lines(je.company, stored)
            total_debit, total_credit = _check_balanced(rows)
            if (total_debit, total_credit) != (je.total_debit, je.total_credit):
                je.total_debit, je.total_credit = total_debit, total_credit
                je.save(update_fields=["total_debit", "total_credit", "updated_at"])

            _mark_posted(je, user)
    except LedgerError as exc:
        logger.warning(
            "Posting rejected: %s",
            exc.message,
            extra={"entry_id": entry.pk, **exc.details},
        )
        raise

    logger.info(
        "Journal entry posted",
        extra={
            "company": je.company.slug,
            "entry_number": je.entry_number,
            "amount": str(je.total_debit),
        },
    )
    return je


def reverse_entry(entry, reversal_date=None, narration=None, user=None):
    """Post a mirror entry with debits and credits swapped.

    The original keeps its lines and becomes `reversed`; the new entry
    (type `reversal`) points back to it through `reverses`.
    """

    def build():
        original = JournalEntry.objects.select_for_update().get(pk=entry.pk)
        if original.status == "reversed":
            raise InvalidStateError(
                f"Journal entry {original.entry_number} is already reversed",
                entry_id=original.pk,
                status=original.status,
            )
        if original.status != "posted":
            raise InvalidStateError(
                f"Only posted entries can be reversed; {original.entry_number} is {original.status}",
                entry_id=original.pk,
                status=original.status,
            )

        on_date = reversal_date or original.entry_date
        if on_date < original.entry_date:
            raise ValidationError(
                f"Reversal date {on_date} is before the original entry date {original.entry_date}",
                entry_number=original.entry_number,
            )

        # the original's year must be open too
        ensure_unlocked(FiscalYear.objects.select_for_update().get(pk=original.fiscal_year_id))
        target_fy, number = _allocate_number(resolve_fiscal_year(original.company, on_date))

        reversal = JournalEntry.objects.create(
            company=original.company,
            fiscal_year=target_fy,
            entry_number=number,
            entry_date=on_date,
            entry_type="reversal",
            narration=narration or f"Reversal of {original.entry_number}",
            reference=original.reference,
            total_debit=original.total_credit,
            total_credit=original.total_debit,
            source_type="journal_entry",
            source_id=str(original.pk),
            reverses=original,
            created_by=user,
        )
        _write_lines(
            reversal,
            [
                {
                    "account": line.account,
                    "debit": line.credit,
                    "credit": line.debit,
                    "description": f"Reversal: {line.description or original.narration}"[:400],
                    "sort_order": line.sort_order,
                }
                for line in original.lines.select_related("account")
            ],
        )
        _mark_posted(reversal, user)

        original.status = "reversed"
        original.save(update_fields=["status", "updated_at"])
        entry_reversed.send(sender=JournalEntry, entry=original, reversal=reversal)
        return original, reversal

    try:
        original, reversal = _retry_once(lambda: _insert(build), entry_id=entry.pk)
    except LedgerError as exc:
        logger.warning(
            "Reversal rejected: %s", exc.message, extra={"entry_id": entry.pk, **exc.details}
        )
        raise

    logger.info(
        "Journal entry reversed",
        extra={
            "company": original.company.slug,
            "entry_number": original.entry_number,
            "reversal_number": reversal.entry_number,
        },
    )
    return reversal


def create_opening_entry(company, fiscal_year, lines, user=None):
    """Opening balances as one posted entry dated on the year's first day."""
    if not isinstance(fiscal_year, FiscalYear):
        fiscal_year = get_fiscal_year(company, fiscal_year)
    return create_entry(
        company,
        entry_date=fiscal_year.start_date,
        lines=lines,
        entry_type="opening",
        narration=f"Opening balances {fiscal_year.name}",
        fiscal_year=fiscal_year,
        user=user,
        post=True,
    )

