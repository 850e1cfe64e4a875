"""
Statement Derivation Engine.

Balances come from the aggregator grouped by statement line kind; the
rule tables in statement_rules.py turn them into rows. Each statement is
derived for the requested period and for the same period one year
earlier (previous_amount).
"""
import datetime
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal

from ..models import FiscalYear, StatementLine, StatementType
from .balances import balances_by_line_kind, cash_balance, trial_balance
from .dates import previous_year
from .money import ZERO
from .periods import get_fiscal_year, resolve_fiscal_year
from .report_cache import cached_report
from .statement_rules import LAYOUTS, LineRole

logger = logging.getLogger(__name__)

SL = StatementLine


@dataclass
class StatementRow:
    code: str
    name: str
    amount: Decimal = None
    previous_amount: Decimal = None
    indent_level: int = 0
    is_bold: bool = False
    is_total: bool = False

    def as_dict(self):
        return asdict(self)


@dataclass
class Statement:
    statement_type: str
    rows: list = field(default_factory=list)
    summary: dict = field(default_factory=dict)

    def amount(self, kind):
        for row in self.rows:
            if row.code == kind:
                return row.amount
        raise KeyError(kind)

    def as_payload(self):
        return {
            "statement": [row.as_dict() for row in self.rows],
            "summary": {"statement_type": self.statement_type, **self.summary},
        }


# ---------- rule dispatch ----------
def _header(rule, kind_totals, derived, values):
    return None


def _mapped(rule, kind_totals, derived, values):
    return sum((kind_totals.get(kind, ZERO) * sign for kind, sign in rule.sources), ZERO)


def _total(rule, kind_totals, derived, values):
    return sum((derived[kind] * sign for kind, sign in rule.sources), ZERO)


def _computed(rule, kind_totals, derived, values):
    try:
        return values[rule.value_key]
    except KeyError:
        raise ValueError(f"{rule.kind} needs a '{rule.value_key}' value") from None


_RESOLVERS = {
    LineRole.HEADER: _header,
    LineRole.MAPPED: _mapped,
    LineRole.TOTAL: _total,
    LineRole.COMPUTED: _computed,
}


def derive(layout, kind_totals, values=None):
    """Walk the layout in order; return {line kind: amount} (None for headers)."""
    values = values or {}
    derived = {}
    for rule in layout:
        derived[rule.kind] = _RESOLVERS[rule.role](rule, kind_totals, derived, values)
    return derived


def _rows(layout, current, previous):
    return [
        StatementRow(
            code=rule.kind.value,
            name=rule.kind.label,
            amount=current[rule.kind],
            previous_amount=previous[rule.kind],
            indent_level=rule.indent,
            is_bold=rule.is_bold,
            is_total=rule.is_total,
        )
        for rule in layout
    ]


# ---------- profit and loss ----------
def derive_profit_and_loss(company, from_date, to_date):
    kind_totals = balances_by_line_kind(company, to_date, from_date=from_date)
    return derive(LAYOUTS[StatementType.PROFIT_AND_LOSS], kind_totals)


def build_profit_and_loss(company, from_date, to_date):
    layout = LAYOUTS[StatementType.PROFIT_AND_LOSS]
    prev_from, prev_to = previous_year(from_date), previous_year(to_date)
    current = derive_profit_and_loss(company, from_date, to_date)
    previous = derive_profit_and_loss(company, prev_from, prev_to)
    return Statement(
        statement_type=StatementType.PROFIT_AND_LOSS,
        rows=_rows(layout, current, previous),
        summary={
            "from_date": from_date,
            "to_date": to_date,
            "previous_from_date": prev_from,
            "previous_to_date": prev_to,
            "total_income": current[SL.PL_TOTAL_INCOME],
            "total_expenses": current[SL.PL_TOTAL_EXPENSES],
            "profit_before_tax": current[SL.PL_PBT],
            "net_profit": current[SL.PL_PAT],
        },
    )


# ---------- balance sheet ----------
def derive_balance_sheet(company, as_of_date):
    return derive(LAYOUTS[StatementType.BALANCE_SHEET], balances_by_line_kind(company, as_of_date))


def build_balance_sheet(company, as_of_date):
    layout = LAYOUTS[StatementType.BALANCE_SHEET]
    previous_date = previous_year(as_of_date)
    current = derive_balance_sheet(company, as_of_date)
    previous = derive_balance_sheet(company, previous_date)

    total_assets = current[SL.BS_ASSETS_TOTAL]
    total_equity_liabilities = current[SL.BS_EQUITY_LIAB_TOTAL]
    difference = total_assets - total_equity_liabilities
    if difference != ZERO:
        # every account maps to exactly one line, so this means a broken rule table
        logger.error(
            "Balance sheet does not balance",
            extra={"company": company.slug, "as_of_date": str(as_of_date), "difference": str(difference)},
        )

    return Statement(
        statement_type=StatementType.BALANCE_SHEET,
        rows=_rows(layout, current, previous),
        summary={
            "as_of_date": as_of_date,
            "previous_as_of_date": previous_date,
            "total_assets": total_assets,
            "total_equity": current[SL.BS_EQUITY_TOTAL],
            "total_liabilities": current[SL.BS_LIAB_NCL_TOTAL] + current[SL.BS_LIAB_CL_TOTAL],
            "total_equity_liabilities": total_equity_liabilities,
            "difference": difference,
            "is_balanced": difference == ZERO,
        },
    )


# ---------- cash flow ----------
def derive_cash_flow(company, from_date, to_date):
    """Indirect method over [from_date, to_date]."""
    net_profit = derive_profit_and_loss(company, from_date, to_date)[SL.PL_PAT]
    opening_cash = cash_balance(company, from_date - datetime.timedelta(days=1))
    kind_totals = balances_by_line_kind(company, to_date, from_date=from_date)
    return derive(
        LAYOUTS[StatementType.CASH_FLOW],
        kind_totals,
        {"net_profit": net_profit, "opening_cash": opening_cash},
    )


def build_cash_flow(company, from_date, to_date):
    layout = LAYOUTS[StatementType.CASH_FLOW]
    prev_from, prev_to = previous_year(from_date), previous_year(to_date)
    current = derive_cash_flow(company, from_date, to_date)
    previous = derive_cash_flow(company, prev_from, prev_to)

    opening_cash = current[SL.CF_OPENING]
    closing_cash = current[SL.CF_CLOSING]
    ledger_closing_cash = cash_balance(company, to_date)
    if closing_cash != ledger_closing_cash:
        logger.error(
            "Cash flow does not reconcile to cash accounts",
            extra={
                "company": company.slug,
                "derived_closing": str(closing_cash),
                "ledger_closing": str(ledger_closing_cash),
            },
        )

    return Statement(
        statement_type=StatementType.CASH_FLOW,
        rows=_rows(layout, current, previous),
        summary={
            "from_date": from_date,
            "to_date": to_date,
            "previous_from_date": prev_from,
            "previous_to_date": prev_to,
            "opening_cash": opening_cash,
            "closing_cash": closing_cash,
            "net_increase": current[SL.CF_NET_INCREASE],
            "ledger_closing_cash": ledger_closing_cash,
            "ledger_cash_delta": ledger_closing_cash - opening_cash,
            "is_reconciled": closing_cash == ledger_closing_cash,
        },
    )


# ---------- public report API (cached, with run_id) ----------
def _year_for(company, as_of_date, fiscal_year, required):
    """Fiscal year of the cache key; periods without from_date need one."""
    if fiscal_year is not None:
        if isinstance(fiscal_year, FiscalYear):
            return fiscal_year
        return get_fiscal_year(company, fiscal_year)
    if required:
        return resolve_fiscal_year(company, as_of_date)
    return FiscalYear.objects.for_company(company).filter(
        start_date__lte=as_of_date, end_date__gte=as_of_date
    ).first()


def get_trial_balance(company, as_of_date, fiscal_year=None, user=None, use_cache=True):
    fy = _year_for(company, as_of_date, fiscal_year, required=False)
    return cached_report(
        company,
        fy,
        StatementType.TRIAL_BALANCE,
        as_of_date,
        lambda: trial_balance(company, as_of_date, fiscal_year=fy).as_payload(),
        user=user,
        use_cache=use_cache,
    )


def get_balance_sheet(company, as_of_date, fiscal_year=None, user=None, use_cache=True):
    fy = _year_for(company, as_of_date, fiscal_year, required=False)
    return cached_report(
        company,
        fy,
        StatementType.BALANCE_SHEET,
        as_of_date,
        lambda: build_balance_sheet(company, as_of_date).as_payload(),
        user=user,
        use_cache=use_cache,
    )


def get_profit_and_loss(company, as_of_date, fiscal_year=None, from_date=None, user=None, use_cache=True):
    fy = _year_for(company, as_of_date, fiscal_year, required=from_date is None)
    start = from_date or fy.start_date
    return cached_report(
        company,
        fy,
        StatementType.PROFIT_AND_LOSS,
        as_of_date,
        lambda: build_profit_and_loss(company, start, as_of_date).as_payload(),
        from_date=start,
        user=user,
        use_cache=use_cache,
    )


def get_cash_flow(company, as_of_date, fiscal_year=None, from_date=None, user=None, use_cache=True):
    fy = _year_for(company, as_of_date, fiscal_year, required=from_date is None)
    start = from_date or fy.start_date
    return cached_report(
        company,
        fy,
        StatementType.CASH_FLOW,
        as_of_date,
        lambda: build_cash_flow(company, start, as_of_date).as_payload(),
        from_date=start,
        user=user,
        use_cache=use_cache,
    )
