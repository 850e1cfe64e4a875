"""
Rule tables for the financial statements.

Each statement is an ordered tuple of LineRule. The order is the
derivation order: a TOTAL may only reference lines listed before it.
MAPPED lines sum `debit - credit` of the accounts whose statement line is
one of `sources`, multiplied by the per-source sign; TOTAL lines sum
earlier lines (never raw balances), so a bad mapping shows up as a broken
total instead of vanishing.
"""
import enum
from dataclasses import dataclass

from ..models import ACCOUNT_LINE_KINDS, StatementLine, StatementType

SL = StatementLine


class LineRole(enum.Enum):
    HEADER = "header"
    MAPPED = "mapped"
    TOTAL = "total"
    COMPUTED = "computed"


@dataclass(frozen=True)
class LineRule:
    kind: StatementLine
    role: LineRole
    indent: int = 0
    is_bold: bool = False
    # MAPPED: ((account line kind, sign), ...)  TOTAL: ((earlier line kind, sign), ...)
    sources: tuple = ()
    # COMPUTED: name of the value the engine is given (e.g. "net_profit")
    value_key: str = ""

    @property
    def is_total(self):
        return self.role is LineRole.TOTAL


def header(kind, indent=0):
    return LineRule(kind, LineRole.HEADER, indent=indent, is_bold=True)


def mapped(kind, *sources, indent=1):
    return LineRule(kind, LineRole.MAPPED, indent=indent, sources=sources)


def total(kind, *components, indent=0):
    return LineRule(kind, LineRole.TOTAL, indent=indent, is_bold=True, sources=components)


def computed(kind, value_key, indent=1):
    return LineRule(kind, LineRole.COMPUTED, indent=indent, value_key=value_key)


DEBIT = 1  # asset/expense lines read debit - credit
CREDIT = -1  # liability/equity/income lines read credit - debit

INCOME_KINDS = ACCOUNT_LINE_KINDS["income"]
EXPENSE_KINDS = ACCOUNT_LINE_KINDS["expense"]


# ---------- Balance sheet ----------
BALANCE_SHEET = (
    header(SL.BS_ASSETS),
    header(SL.BS_ASSET_NCA, indent=1),
    mapped(SL.BS_ASSET_NCA_PPE, (SL.BS_ASSET_NCA_PPE, DEBIT), indent=2),
    mapped(SL.BS_ASSET_NCA_CWIP, (SL.BS_ASSET_NCA_CWIP, DEBIT), indent=2),
    mapped(SL.BS_ASSET_NCA_INTANGIBLE, (SL.BS_ASSET_NCA_INTANGIBLE, DEBIT), indent=2),
    mapped(SL.BS_ASSET_NCA_INVESTMENTS, (SL.BS_ASSET_NCA_INVESTMENTS, DEBIT), indent=2),
    mapped(SL.BS_ASSET_NCA_DTA, (SL.BS_ASSET_NCA_DTA, DEBIT), indent=2),
    mapped(SL.BS_ASSET_NCA_LOANS, (SL.BS_ASSET_NCA_LOANS, DEBIT), indent=2),
    mapped(SL.BS_ASSET_NCA_OTHER, (SL.BS_ASSET_NCA_OTHER, DEBIT), indent=2),
    total(
        SL.BS_ASSET_NCA_TOTAL,
        (SL.BS_ASSET_NCA_PPE, 1), (SL.BS_ASSET_NCA_CWIP, 1), (SL.BS_ASSET_NCA_INTANGIBLE, 1),
        (SL.BS_ASSET_NCA_INVESTMENTS, 1), (SL.BS_ASSET_NCA_DTA, 1), (SL.BS_ASSET_NCA_LOANS, 1),
        (SL.BS_ASSET_NCA_OTHER, 1),
        indent=1,
    ),
    header(SL.BS_ASSET_CA, indent=1),
    mapped(SL.BS_ASSET_CA_INVENTORIES, (SL.BS_ASSET_CA_INVENTORIES, DEBIT), indent=2),
    mapped(SL.BS_ASSET_CA_INVESTMENTS, (SL.BS_ASSET_CA_INVESTMENTS, DEBIT), indent=2),
    mapped(SL.BS_ASSET_CA_RECEIVABLES, (SL.BS_ASSET_CA_RECEIVABLES, DEBIT), indent=2),
    mapped(SL.BS_ASSET_CA_CASH, (SL.BS_ASSET_CA_CASH, DEBIT), indent=2),
    mapped(SL.BS_ASSET_CA_LOANS, (SL.BS_ASSET_CA_LOANS, DEBIT), indent=2),
    mapped(SL.BS_ASSET_CA_OTHER, (SL.BS_ASSET_CA_OTHER, DEBIT), indent=2),
    total(
        SL.BS_ASSET_CA_TOTAL,
        (SL.BS_ASSET_CA_INVENTORIES, 1), (SL.BS_ASSET_CA_INVESTMENTS, 1),
        (SL.BS_ASSET_CA_RECEIVABLES, 1), (SL.BS_ASSET_CA_CASH, 1), (SL.BS_ASSET_CA_LOANS, 1),
        (SL.BS_ASSET_CA_OTHER, 1),
        indent=1,
    ),
    total(SL.BS_ASSETS_TOTAL, (SL.BS_ASSET_NCA_TOTAL, 1), (SL.BS_ASSET_CA_TOTAL, 1)),
    header(SL.BS_EQUITY_LIAB),
    header(SL.BS_EQUITY, indent=1),
    mapped(SL.BS_EQUITY_SHARE_CAPITAL, (SL.BS_EQUITY_SHARE_CAPITAL, CREDIT), indent=2),
    # profit to date (all income less all expenses) is carried into reserves
    mapped(
        SL.BS_EQUITY_RESERVES,
        (SL.BS_EQUITY_RESERVES, CREDIT),
        *((kind, CREDIT) for kind in INCOME_KINDS + EXPENSE_KINDS),
        indent=2,
    ),
    mapped(SL.BS_EQUITY_OTHER, (SL.BS_EQUITY_OTHER, CREDIT), indent=2),
    total(
        SL.BS_EQUITY_TOTAL,
        (SL.BS_EQUITY_SHARE_CAPITAL, 1), (SL.BS_EQUITY_RESERVES, 1), (SL.BS_EQUITY_OTHER, 1),
        indent=1,
    ),
    header(SL.BS_LIAB_NCL, indent=1),
    mapped(SL.BS_LIAB_NCL_BORROWINGS, (SL.BS_LIAB_NCL_BORROWINGS, CREDIT), indent=2),
    mapped(SL.BS_LIAB_NCL_DTL, (SL.BS_LIAB_NCL_DTL, CREDIT), indent=2),
    mapped(SL.BS_LIAB_NCL_PROVISIONS, (SL.BS_LIAB_NCL_PROVISIONS, CREDIT), indent=2),
    mapped(SL.BS_LIAB_NCL_OTHER, (SL.BS_LIAB_NCL_OTHER, CREDIT), indent=2),
    total(
        SL.BS_LIAB_NCL_TOTAL,
        (SL.BS_LIAB_NCL_BORROWINGS, 1), (SL.BS_LIAB_NCL_DTL, 1),
        (SL.BS_LIAB_NCL_PROVISIONS, 1), (SL.BS_LIAB_NCL_OTHER, 1),
        indent=1,
    ),
    header(SL.BS_LIAB_CL, indent=1),
    mapped(SL.BS_LIAB_CL_BORROWINGS, (SL.BS_LIAB_CL_BORROWINGS, CREDIT), indent=2),
    mapped(SL.BS_LIAB_CL_PAYABLES, (SL.BS_LIAB_CL_PAYABLES, CREDIT), indent=2),
    mapped(SL.BS_LIAB_CL_OTHER, (SL.BS_LIAB_CL_OTHER, CREDIT), indent=2),
    mapped(SL.BS_LIAB_CL_PROVISIONS, (SL.BS_LIAB_CL_PROVISIONS, CREDIT), indent=2),
    total(
        SL.BS_LIAB_CL_TOTAL,
        (SL.BS_LIAB_CL_BORROWINGS, 1), (SL.BS_LIAB_CL_PAYABLES, 1),
        (SL.BS_LIAB_CL_OTHER, 1), (SL.BS_LIAB_CL_PROVISIONS, 1),
        indent=1,
    ),
    total(
        SL.BS_EQUITY_LIAB_TOTAL,
        (SL.BS_EQUITY_TOTAL, 1), (SL.BS_LIAB_NCL_TOTAL, 1), (SL.BS_LIAB_CL_TOTAL, 1),
    ),
)


# ---------- Profit and loss ----------
PROFIT_AND_LOSS = (
    mapped(SL.PL_REVENUE_OPERATIONS, (SL.PL_REVENUE_OPERATIONS, CREDIT)),
    mapped(SL.PL_OTHER_INCOME, (SL.PL_OTHER_INCOME, CREDIT)),
    total(SL.PL_TOTAL_INCOME, (SL.PL_REVENUE_OPERATIONS, 1), (SL.PL_OTHER_INCOME, 1)),
    header(SL.PL_EXPENSES),
    mapped(SL.PL_COST_MATERIALS, (SL.PL_COST_MATERIALS, DEBIT)),
    mapped(SL.PL_PURCHASES, (SL.PL_PURCHASES, DEBIT)),
    mapped(SL.PL_INVENTORY_CHANGE, (SL.PL_INVENTORY_CHANGE, DEBIT)),
    mapped(SL.PL_EMPLOYEE_BENEFITS, (SL.PL_EMPLOYEE_BENEFITS, DEBIT)),
    mapped(SL.PL_FINANCE_COSTS, (SL.PL_FINANCE_COSTS, DEBIT)),
    mapped(SL.PL_DEPRECIATION, (SL.PL_DEPRECIATION, DEBIT)),
    mapped(SL.PL_OTHER_EXPENSES, (SL.PL_OTHER_EXPENSES, DEBIT)),
    total(
        SL.PL_TOTAL_EXPENSES,
        (SL.PL_COST_MATERIALS, 1), (SL.PL_PURCHASES, 1), (SL.PL_INVENTORY_CHANGE, 1),
        (SL.PL_EMPLOYEE_BENEFITS, 1), (SL.PL_FINANCE_COSTS, 1), (SL.PL_DEPRECIATION, 1),
        (SL.PL_OTHER_EXPENSES, 1),
    ),
    total(SL.PL_PBT, (SL.PL_TOTAL_INCOME, 1), (SL.PL_TOTAL_EXPENSES, -1)),
    mapped(SL.PL_TAX_EXPENSE, (SL.PL_TAX_EXPENSE, DEBIT)),
    total(SL.PL_PAT, (SL.PL_PBT, 1), (SL.PL_TAX_EXPENSE, -1)),
)


# ---------- Cash flow (indirect) ----------
# Movement of an asset is an outflow when it grows, of a liability an inflow:
# both read as -(debit - credit) over the period.
OUT = -1

CASH_FLOW = (
    header(SL.CFO_HEADER),
    computed(SL.CFO_NET_PROFIT, "net_profit"),
    header(SL.CFO_ADJ_HEADER, indent=1),
    mapped(SL.CFO_DEPRECIATION, (SL.PL_DEPRECIATION, DEBIT), indent=2),
    header(SL.CFO_WC_HEADER, indent=1),
    mapped(SL.CFO_RECEIVABLES, (SL.BS_ASSET_CA_RECEIVABLES, OUT), indent=2),
    mapped(SL.CFO_INVENTORY, (SL.BS_ASSET_CA_INVENTORIES, OUT), indent=2),
    mapped(
        SL.CFO_OTHER_CA,
        (SL.BS_ASSET_CA_LOANS, OUT), (SL.BS_ASSET_CA_OTHER, OUT), (SL.BS_ASSET_NCA_DTA, OUT),
        indent=2,
    ),
    mapped(SL.CFO_PAYABLES, (SL.BS_LIAB_CL_PAYABLES, OUT), indent=2),
    mapped(
        SL.CFO_OTHER_CL,
        (SL.BS_LIAB_CL_OTHER, OUT), (SL.BS_LIAB_CL_PROVISIONS, OUT),
        (SL.BS_LIAB_NCL_PROVISIONS, OUT), (SL.BS_LIAB_NCL_OTHER, OUT), (SL.BS_LIAB_NCL_DTL, OUT),
        indent=2,
    ),
    total(
        SL.CFO_TOTAL,
        (SL.CFO_NET_PROFIT, 1), (SL.CFO_DEPRECIATION, 1), (SL.CFO_RECEIVABLES, 1),
        (SL.CFO_INVENTORY, 1), (SL.CFO_OTHER_CA, 1), (SL.CFO_PAYABLES, 1), (SL.CFO_OTHER_CL, 1),
    ),
    header(SL.CFI_HEADER),
    # depreciation credited to fixed assets is not a cash movement
    mapped(
        SL.CFI_FIXED_ASSETS,
        (SL.BS_ASSET_NCA_PPE, OUT), (SL.BS_ASSET_NCA_CWIP, OUT),
        (SL.BS_ASSET_NCA_INTANGIBLE, OUT), (SL.PL_DEPRECIATION, OUT),
    ),
    mapped(
        SL.CFI_INVESTMENTS,
        (SL.BS_ASSET_NCA_INVESTMENTS, OUT), (SL.BS_ASSET_NCA_LOANS, OUT),
        (SL.BS_ASSET_NCA_OTHER, OUT), (SL.BS_ASSET_CA_INVESTMENTS, OUT),
    ),
    total(SL.CFI_TOTAL, (SL.CFI_FIXED_ASSETS, 1), (SL.CFI_INVESTMENTS, 1)),
    header(SL.CFF_HEADER),
    mapped(SL.CFF_BORROWINGS, (SL.BS_LIAB_NCL_BORROWINGS, OUT), (SL.BS_LIAB_CL_BORROWINGS, OUT)),
    mapped(
        SL.CFF_EQUITY,
        (SL.BS_EQUITY_SHARE_CAPITAL, OUT), (SL.BS_EQUITY_RESERVES, OUT), (SL.BS_EQUITY_OTHER, OUT),
    ),
    total(SL.CFF_TOTAL, (SL.CFF_BORROWINGS, 1), (SL.CFF_EQUITY, 1)),
    total(SL.CF_NET_INCREASE, (SL.CFO_TOTAL, 1), (SL.CFI_TOTAL, 1), (SL.CFF_TOTAL, 1)),
    computed(SL.CF_OPENING, "opening_cash", indent=0),
    total(SL.CF_CLOSING, (SL.CF_OPENING, 1), (SL.CF_NET_INCREASE, 1)),
)


LAYOUTS = {
    StatementType.BALANCE_SHEET: BALANCE_SHEET,
    StatementType.PROFIT_AND_LOSS: PROFIT_AND_LOSS,
    StatementType.CASH_FLOW: CASH_FLOW,
}


def _mapped_sources(layout):
    return [kind for rule in layout if rule.role is LineRole.MAPPED for kind, _sign in rule.sources]


def check_layout(layout):
    """Raise ValueError if a total references a line not derived before it."""
    seen = set()
    for rule in layout:
        if rule.role is LineRole.TOTAL:
            missing = [kind for kind, _sign in rule.sources if kind not in seen]
            if missing:
                raise ValueError(f"{rule.kind} totals lines not yet derived: {missing}")
        if rule.kind in seen:
            raise ValueError(f"{rule.kind} appears twice")
        seen.add(rule.kind)


def coverage_gaps():
    """Account line kinds each statement fails to pick up exactly once.

    Every account must land on exactly one balance-sheet line, every
    income/expense account on one P&L line, and every non-cash
    balance-sheet account in one cash-flow bucket; otherwise
    Assets == Equity + Liabilities or the cash reconciliation breaks.
    """
    all_kinds = [kind for kinds in ACCOUNT_LINE_KINDS.values() for kind in kinds]
    pl_kinds = list(INCOME_KINDS + EXPENSE_KINDS)
    bs_non_cash = [k for k in all_kinds if k not in pl_kinds and k != SL.BS_ASSET_CA_CASH]

    def gaps(expected, sources):
        return sorted(k.value for k in expected if sources.count(k) != 1)

    cash_flow_sources = [k for k in _mapped_sources(CASH_FLOW) if k != SL.PL_DEPRECIATION]
    return {
        StatementType.BALANCE_SHEET: gaps(all_kinds, _mapped_sources(BALANCE_SHEET)),
        StatementType.PROFIT_AND_LOSS: gaps(pl_kinds, _mapped_sources(PROFIT_AND_LOSS)),
        StatementType.CASH_FLOW: gaps(bs_non_cash, cash_flow_sources),
    }


for _layout in LAYOUTS.values():
    check_layout(_layout)
