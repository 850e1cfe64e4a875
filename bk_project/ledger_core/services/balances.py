"""
Balance Aggregator.

All figures are computed on demand from JournalLines of entries in the
ledger (posted or reversed; a reversed entry stays and its reversal
offsets it). Reads take no locks: they see posted data as of the query.
"""
import datetime
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from decimal import Decimal

from django.db.models import Sum

from ..models import Account, FiscalYear, JournalLine, StatementLine
from .money import ZERO


@dataclass
class AccountTotals:
    debit: Decimal = ZERO
    credit: Decimal = ZERO

    @property
    def movement(self):
        """debit - credit, regardless of account type."""
        return self.debit - self.credit


def net_balance(account_or_type, debit, credit):
    """Balance on the account's normal side.

    asset/expense: debit - credit; liability/equity/income: credit - debit.
    """
    ac_type = getattr(account_or_type, "ac_type", account_or_type)
    if ac_type in ("asset", "expense"):
        return debit - credit
    return credit - debit


def _ledger_lines(company, as_of_date=None, fiscal_year=None, from_date=None, before_date=None):
    qs = JournalLine.objects.for_company(company).in_ledger()
    if as_of_date is not None:
        qs = qs.filter(entry__entry_date__lte=as_of_date)
    if before_date is not None:
        qs = qs.filter(entry__entry_date__lt=before_date)
    if from_date is not None:
        qs = qs.filter(entry__entry_date__gte=from_date)
    if fiscal_year is not None:
        qs = qs.filter(entry__fiscal_year=fiscal_year)
    return qs


def _sum_by_account(qs):
    rows = (
        qs.order_by()
        .values("account_id")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
    )
    return {
        row["account_id"]: AccountTotals(row["debit"] or ZERO, row["credit"] or ZERO)
        for row in rows
    }


def compute_balances(company, as_of_date, fiscal_year=None, from_date=None):
    """{account_id: AccountTotals} of ledger activity up to as_of_date.

    fiscal_year restricts to entries of that year; from_date to entries on
    or after it.
    """
    return _sum_by_account(_ledger_lines(company, as_of_date, fiscal_year, from_date))


def balances_by_line_kind(company, as_of_date, from_date=None):
    """{StatementLine: debit - credit} summed over the accounts mapped to each kind."""
    accounts = {a.pk: a for a in Account.objects.for_company(company)}
    totals = defaultdict(lambda: ZERO)
    for account_id, amounts in compute_balances(company, as_of_date, from_date=from_date).items():
        totals[accounts[account_id].line_kind] += amounts.movement
    return dict(totals)


def cash_balance(company, as_of_date):
    """Closing balance of every account mapped to cash and cash equivalents."""
    return balances_by_line_kind(company, as_of_date).get(StatementLine.BS_ASSET_CA_CASH, ZERO)


# ---------- Trial balance ----------
@dataclass
class TrialBalanceRow:
    account_id: int
    code: str
    name: str
    ac_type: str
    level: int
    is_group: bool
    parent_id: int = None
    opening_debit: Decimal = ZERO
    opening_credit: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO
    closing_debit: Decimal = ZERO
    closing_credit: Decimal = ZERO

    @property
    def net_balance(self):
        return net_balance(self.ac_type, self.closing_debit, self.closing_credit)

    @property
    def is_zero(self):
        return not any(
            (
                self.opening_debit, self.opening_credit, self.period_debit,
                self.period_credit, self.closing_debit, self.closing_credit,
            )
        )

    def add(self, other):
        for name in (
            "opening_debit", "opening_credit", "period_debit",
            "period_credit", "closing_debit", "closing_credit",
        ):
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def as_dict(self):
        data = asdict(self)
        data["net_balance"] = self.net_balance
        return data


@dataclass
class TrialBalance:
    as_of_date: datetime.date
    period_start: datetime.date
    rows: list = field(default_factory=list)
    totals: dict = field(default_factory=dict)

    @property
    def difference(self):
        return self.totals["closing_debit"] - self.totals["closing_credit"]

    @property
    def is_balanced(self):
        return self.difference == ZERO and (
            self.totals["period_debit"] == self.totals["period_credit"]
        )

    @property
    def net_balance_sum(self):
        """Debit-normal nets minus credit-normal nets over ledger rows; zero when balanced."""
        return sum(
            (r.closing_debit - r.closing_credit for r in self.rows if not r.is_group), ZERO
        )

    def as_payload(self):
        return {
            "statement": [row.as_dict() for row in self.rows],
            "summary": {
                **self.totals,
                "difference": self.difference,
                "is_balanced": self.is_balanced,
                "as_of_date": self.as_of_date,
                "period_start": self.period_start,
            },
        }


def _natural_side(movement):
    """Split a net movement into (debit, credit) columns."""
    if movement >= 0:
        return movement, ZERO
    return ZERO, -movement


def _period_start(company, as_of_date, fiscal_year=None, from_date=None):
    if from_date is not None:
        return from_date
    if fiscal_year is not None:
        return fiscal_year.start_date
    fy = FiscalYear.objects.for_company(company).filter(
        start_date__lte=as_of_date, end_date__gte=as_of_date
    ).first()
    return fy.start_date if fy else datetime.date.min


def trial_balance(company, as_of_date, fiscal_year=None, from_date=None, include_zero=False):
    """Opening / period / closing columns per account with group rollups.

    The period starts at from_date, else the fiscal year's start (given or
    the one covering as_of_date). Opening columns hold all earlier activity.
    """
    start = _period_start(company, as_of_date, fiscal_year, from_date)
    opening = _sum_by_account(_ledger_lines(company, before_date=start))
    period = _sum_by_account(_ledger_lines(company, as_of_date=as_of_date, from_date=start))

    accounts = list(Account.objects.for_company(company).order_by("code"))
    rows = {}
    for account in accounts:
        before = opening.get(account.pk, AccountTotals())
        during = period.get(account.pk, AccountTotals())
        opening_dr, opening_cr = _natural_side(before.movement)
        closing_dr, closing_cr = _natural_side(before.movement + during.movement)
        rows[account.pk] = TrialBalanceRow(
            account_id=account.pk,
            code=account.code,
            name=account.name,
            ac_type=account.ac_type,
            level=account.level,
            is_group=account.is_group,
            parent_id=account.parent_id,
            opening_debit=opening_dr,
            opening_credit=opening_cr,
            period_debit=during.debit,
            period_credit=during.credit,
            closing_debit=closing_dr,
            closing_credit=closing_cr,
        )

    totals = dict.fromkeys(
        (
            "opening_debit", "opening_credit", "period_debit",
            "period_credit", "closing_debit", "closing_credit",
        ),
        ZERO,
    )
    for row in rows.values():
        if row.is_group:
            continue
        for key in totals:
            totals[key] += getattr(row, key)
        # roll each ledger row into every ancestor group
        parent_id = row.parent_id
        while parent_id in rows:
            rows[parent_id].add(row)
            parent_id = rows[parent_id].parent_id

    ordered = [r for r in rows.values() if include_zero or not r.is_zero]
    return TrialBalance(as_of_date=as_of_date, period_start=start, rows=ordered, totals=totals)


def summarize_by_type(company, as_of_date):
    """{ac_type: {"debit", "credit", "net"}} of ledger activity up to as_of_date."""
    accounts = {a.pk: a.ac_type for a in Account.objects.for_company(company)}
    summary = {
        ac_type: {"debit": ZERO, "credit": ZERO, "net": ZERO}
        for ac_type in ("asset", "liability", "equity", "income", "expense")
    }
    for account_id, amounts in compute_balances(company, as_of_date).items():
        bucket = summary[accounts[account_id]]
        bucket["debit"] += amounts.debit
        bucket["credit"] += amounts.credit
    for ac_type, bucket in summary.items():
        bucket["net"] = net_balance(ac_type, bucket["debit"], bucket["credit"])
    return summary


# ---------- Account ledger ----------
def account_ledger(account, from_date, to_date):
    """Opening balance, each ledger line with a running balance, closing balance.

    Balances are shown on the account's normal side with a Dr/Cr marker.
    """
    company = account.company
    before = _sum_by_account(
        _ledger_lines(company, before_date=from_date).filter(account=account)
    ).get(account.pk, AccountTotals())
    running = before.movement

    def marker(movement):
        return "Dr" if movement >= 0 else "Cr"

    lines = (
        _ledger_lines(company, as_of_date=to_date, from_date=from_date)
        .filter(account=account)
        .select_related("entry")
        .order_by("entry__entry_date", "entry_id", "sort_order", "id")
    )
    rows = []
    for line in lines:
        running += line.debit - line.credit
        rows.append(
            {
                "date": line.entry.entry_date,
                "entry_id": line.entry_id,
                "entry_number": line.entry.entry_number,
                "narration": line.entry.narration,
                "description": line.description,
                "debit": line.debit,
                "credit": line.credit,
                "balance": abs(running),
                "balance_type": marker(running),
            }
        )

    return {
        "account_id": account.pk,
        "code": account.code,
        "name": account.name,
        "opening_balance": abs(before.movement),
        "opening_balance_type": marker(before.movement),
        "lines": rows,
        "closing_balance": abs(running),
        "closing_balance_type": marker(running),
    }
