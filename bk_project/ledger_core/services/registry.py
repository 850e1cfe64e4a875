"""
Chart of Accounts: creation, lookup and hierarchy.

The registry only validates and stores structure; balances live in
`balances.py` and statement placement comes from `Account.line_kind`.
"""
import logging

from django.core.exceptions import ValidationError as ModelValidationError
from django.db import transaction

from ..exceptions import NotFoundError, ValidationError
from ..models import Account, StatementLine

logger = logging.getLogger(__name__)


def create_account(
    company,
    *,
    code,
    name,
    ac_type,
    is_group=False,
    parent=None,
    statement_line="",
    is_system=False,
    description="",
):
    """Validate and store one chart-of-accounts node.

    `parent` may be an Account or an account code. Ledger accounts may only
    sit under a group of the same type; depth is capped at five levels.
    """
    if isinstance(parent, str):
        parent = resolve_account_by_code(company, parent)

    account = Account(
        company=company,
        code=code,
        name=name,
        ac_type=ac_type,
        is_group=is_group,
        parent=parent,
        statement_line=statement_line or "",
        is_system=is_system,
        description=description,
    )
    try:
        account.full_clean()
    except ModelValidationError as exc:
        raise ValidationError("; ".join(exc.messages), code=code) from exc
    account.save()
    logger.debug("Account created", extra={"company": company.slug, "code": code})
    return account


def resolve_account(company, account_id):
    try:
        return Account.objects.for_company(company).get(pk=account_id)
    except (Account.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Account {account_id} not found", account_id=account_id)


def resolve_account_by_code(company, code):
    try:
        return Account.objects.for_company(company).get(code=code)
    except Account.DoesNotExist:
        raise NotFoundError(f"Account with code {code} not found", code=code)


def is_postable(account):
    """True iff the account is an active leaf."""
    return account.is_postable


def deactivate_account(account):
    """Soft-deactivate: history stays, new postings are refused."""
    if not account.is_active:
        return account
    account.is_active = False
    try:
        account.save(update_fields=["is_active"])
    except ModelValidationError as exc:
        raise ValidationError("; ".join(exc.messages), code=account.code) from exc
    logger.info("Account deactivated", extra={"company": account.company.slug, "code": account.code})
    return account


def reactivate_account(account):
    if not account.is_active:
        account.is_active = True
        account.save(update_fields=["is_active"])
    return account


@transaction.atomic
def import_accounts(company, rows):
    """Bulk-create accounts from dict rows, all or nothing.

    Each row: code, name, ac_type, optional is_group, parent_code,
    statement_line. Parents may appear earlier in the same batch or
    already exist.
    """
    created = []
    for i, row in enumerate(rows, start=1):
        missing = [key for key in ("code", "name", "ac_type") if not row.get(key)]
        if missing:
            raise ValidationError(
                f"Row {i}: missing {', '.join(missing)}", row=i, missing=missing
            )
        created.append(
            create_account(
                company,
                code=row["code"],
                name=row["name"],
                ac_type=row["ac_type"],
                is_group=bool(row.get("is_group", False)),
                parent=row.get("parent_code") or None,
                statement_line=row.get("statement_line", ""),
                is_system=bool(row.get("is_system", False)),
            )
        )
    logger.info("Chart of accounts imported", extra={"company": company.slug, "count": len(created)})
    return created


def account_tree(company, include_inactive=False):
    """Nested [{account, children: [...]}, ...] ordered by code."""
    qs = Account.objects.for_company(company).order_by("code")
    if not include_inactive:
        qs = qs.filter(is_active=True)
    accounts = list(qs)

    nodes = {a.pk: {"account": a, "children": []} for a in accounts}
    roots = []
    for account in accounts:
        node = nodes[account.pk]
        if account.parent_id in nodes:
            nodes[account.parent_id]["children"].append(node)
        else:
            roots.append(node)
    return roots


SL = StatementLine

# (code, name, type, is_group, parent code, statement line)
DEFAULT_CHART = [
    ("1000", "Assets", "asset", True, None, ""),
    ("1100", "Non-current Assets", "asset", True, "1000", ""),
    ("1110", "Plant and Machinery", "asset", False, "1100", SL.BS_ASSET_NCA_PPE),
    ("1120", "Furniture and Fixtures", "asset", False, "1100", SL.BS_ASSET_NCA_PPE),
    ("1130", "Accumulated Depreciation", "asset", False, "1100", SL.BS_ASSET_NCA_PPE),
    ("1140", "Computer Software", "asset", False, "1100", SL.BS_ASSET_NCA_INTANGIBLE),
    ("1150", "Long-term Investments", "asset", False, "1100", SL.BS_ASSET_NCA_INVESTMENTS),
    ("1200", "Current Assets", "asset", True, "1000", ""),
    ("1210", "Cash in Hand", "asset", False, "1200", SL.BS_ASSET_CA_CASH),
    ("1220", "Bank Account", "asset", False, "1200", SL.BS_ASSET_CA_CASH),
    ("1230", "Sundry Debtors", "asset", False, "1200", SL.BS_ASSET_CA_RECEIVABLES),
    ("1240", "Stock in Trade", "asset", False, "1200", SL.BS_ASSET_CA_INVENTORIES),
    ("1250", "Advances to Suppliers", "asset", False, "1200", SL.BS_ASSET_CA_LOANS),
    ("1260", "Prepaid Expenses", "asset", False, "1200", SL.BS_ASSET_CA_OTHER),
    ("1400", "Input Tax Credit", "asset", True, "1000", ""),
    ("1410", "Input CGST", "asset", False, "1400", SL.BS_ASSET_CA_OTHER),
    ("1420", "Input SGST", "asset", False, "1400", SL.BS_ASSET_CA_OTHER),
    ("1430", "Input IGST", "asset", False, "1400", SL.BS_ASSET_CA_OTHER),
    ("2000", "Liabilities", "liability", True, None, ""),
    ("2100", "Non-current Liabilities", "liability", True, "2000", ""),
    ("2110", "Term Loan", "liability", False, "2100", SL.BS_LIAB_NCL_BORROWINGS),
    ("2120", "Provision for Gratuity", "liability", False, "2100", SL.BS_LIAB_NCL_PROVISIONS),
    ("2200", "Current Liabilities", "liability", True, "2000", ""),
    ("2205", "Sundry Creditors", "liability", False, "2200", SL.BS_LIAB_CL_PAYABLES),
    ("2210", "Output CGST", "liability", False, "2200", SL.BS_LIAB_CL_OTHER),
    ("2220", "Output SGST", "liability", False, "2200", SL.BS_LIAB_CL_OTHER),
    ("2230", "Output IGST", "liability", False, "2200", SL.BS_LIAB_CL_OTHER),
    ("2240", "TDS Payable", "liability", False, "2200", SL.BS_LIAB_CL_OTHER),
    ("2250", "Salaries Payable", "liability", False, "2200", SL.BS_LIAB_CL_OTHER),
    ("2260", "Bank Overdraft", "liability", False, "2200", SL.BS_LIAB_CL_BORROWINGS),
    ("2270", "Provision for Tax", "liability", False, "2200", SL.BS_LIAB_CL_PROVISIONS),
    ("3000", "Equity", "equity", True, None, ""),
    ("3100", "Share Capital", "equity", False, "3000", SL.BS_EQUITY_SHARE_CAPITAL),
    ("3200", "Reserves and Surplus", "equity", False, "3000", SL.BS_EQUITY_RESERVES),
    ("3300", "Opening Balance Equity", "equity", False, "3000", SL.BS_EQUITY_OTHER),
    ("4000", "Income", "income", True, None, ""),
    ("4100", "Sales", "income", False, "4000", SL.PL_REVENUE_OPERATIONS),
    ("4200", "Service Income", "income", False, "4000", SL.PL_REVENUE_OPERATIONS),
    ("4300", "Interest Income", "income", False, "4000", SL.PL_OTHER_INCOME),
    ("5000", "Expenses", "expense", True, None, ""),
    ("5100", "Purchases", "expense", False, "5000", SL.PL_PURCHASES),
    ("5200", "Salaries and Wages", "expense", False, "5000", SL.PL_EMPLOYEE_BENEFITS),
    ("5300", "Rent", "expense", False, "5000", SL.PL_OTHER_EXPENSES),
    ("5400", "Professional Fees", "expense", False, "5000", SL.PL_OTHER_EXPENSES),
    ("5500", "Interest on Loans", "expense", False, "5000", SL.PL_FINANCE_COSTS),
    ("5600", "Depreciation", "expense", False, "5000", SL.PL_DEPRECIATION),
    ("5700", "Income Tax Expense", "expense", False, "5000", SL.PL_TAX_EXPENSE),
    ("5800", "Contract Charges", "expense", False, "5000", SL.PL_OTHER_EXPENSES),
]

# Accounts the posting services rely on
SYSTEM_ACCOUNT_CODES = {
    "1000", "2000", "3000", "4000", "5000",
    "1410", "1420", "1430", "2210", "2220", "2230", "2240",
    "3200", "3300",
}


def seed_default_chart(company):
    """Create the default chart unless the company already has accounts."""
    if Account.objects.for_company(company).exists():
        return []
    rows = [
        {
            "code": code,
            "name": name,
            "ac_type": ac_type,
            "is_group": is_group,
            "parent_code": parent,
            "statement_line": line,
            "is_system": code in SYSTEM_ACCOUNT_CODES,
        }
        for code, name, ac_type, is_group, parent, line in DEFAULT_CHART
    ]
    return import_accounts(company, rows)
