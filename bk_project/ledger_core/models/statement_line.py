from django.db import models


class StatementType(models.TextChoices):
    TRIAL_BALANCE = "trial_balance", "Trial Balance"
    BALANCE_SHEET = "balance_sheet", "Balance Sheet"
    PROFIT_AND_LOSS = "profit_and_loss", "Profit and Loss"
    CASH_FLOW = "cash_flow", "Cash Flow"


class StatementLine(models.TextChoices):
    """Closed set of report line kinds (Schedule III layout)."""

    # ---- Balance sheet ----
    BS_ASSETS = "BS_ASSETS", "Assets"
    BS_ASSET_NCA = "BS_ASSET_NCA", "Non-current assets"
    BS_ASSET_NCA_PPE = "BS_ASSET_NCA_PPE", "Property, plant and equipment"
    BS_ASSET_NCA_CWIP = "BS_ASSET_NCA_CWIP", "Capital work-in-progress"
    BS_ASSET_NCA_INTANGIBLE = "BS_ASSET_NCA_INTANGIBLE", "Intangible assets"
    BS_ASSET_NCA_INVESTMENTS = "BS_ASSET_NCA_INVESTMENTS", "Non-current investments"
    BS_ASSET_NCA_DTA = "BS_ASSET_NCA_DTA", "Deferred tax assets (net)"
    BS_ASSET_NCA_LOANS = "BS_ASSET_NCA_LOANS", "Long-term loans and advances"
    BS_ASSET_NCA_OTHER = "BS_ASSET_NCA_OTHER", "Other non-current assets"
    BS_ASSET_NCA_TOTAL = "BS_ASSET_NCA_TOTAL", "Total non-current assets"
    BS_ASSET_CA = "BS_ASSET_CA", "Current assets"
    BS_ASSET_CA_INVENTORIES = "BS_ASSET_CA_INVENTORIES", "Inventories"
    BS_ASSET_CA_INVESTMENTS = "BS_ASSET_CA_INVESTMENTS", "Current investments"
    BS_ASSET_CA_RECEIVABLES = "BS_ASSET_CA_RECEIVABLES", "Trade receivables"
    BS_ASSET_CA_CASH = "BS_ASSET_CA_CASH", "Cash and cash equivalents"
    BS_ASSET_CA_LOANS = "BS_ASSET_CA_LOANS", "Short-term loans and advances"
    BS_ASSET_CA_OTHER = "BS_ASSET_CA_OTHER", "Other current assets"
    BS_ASSET_CA_TOTAL = "BS_ASSET_CA_TOTAL", "Total current assets"
    BS_ASSETS_TOTAL = "BS_ASSETS_TOTAL", "Total assets"
    BS_EQUITY_LIAB = "BS_EQUITY_LIAB", "Equity and liabilities"
    BS_EQUITY = "BS_EQUITY", "Equity"
    BS_EQUITY_SHARE_CAPITAL = "BS_EQUITY_SHARE_CAPITAL", "Share capital"
    BS_EQUITY_RESERVES = "BS_EQUITY_RESERVES", "Reserves and surplus"
    BS_EQUITY_OTHER = "BS_EQUITY_OTHER", "Other equity"
    BS_EQUITY_TOTAL = "BS_EQUITY_TOTAL", "Total equity"
    BS_LIAB_NCL = "BS_LIAB_NCL", "Non-current liabilities"
    BS_LIAB_NCL_BORROWINGS = "BS_LIAB_NCL_BORROWINGS", "Long-term borrowings"
    BS_LIAB_NCL_DTL = "BS_LIAB_NCL_DTL", "Deferred tax liabilities (net)"
    BS_LIAB_NCL_PROVISIONS = "BS_LIAB_NCL_PROVISIONS", "Long-term provisions"
    BS_LIAB_NCL_OTHER = "BS_LIAB_NCL_OTHER", "Other non-current liabilities"
    BS_LIAB_NCL_TOTAL = "BS_LIAB_NCL_TOTAL", "Total non-current liabilities"
    BS_LIAB_CL = "BS_LIAB_CL", "Current liabilities"
    BS_LIAB_CL_BORROWINGS = "BS_LIAB_CL_BORROWINGS", "Short-term borrowings"
    BS_LIAB_CL_PAYABLES = "BS_LIAB_CL_PAYABLES", "Trade payables"
    BS_LIAB_CL_OTHER = "BS_LIAB_CL_OTHER", "Other current liabilities"
    BS_LIAB_CL_PROVISIONS = "BS_LIAB_CL_PROVISIONS", "Short-term provisions"
    BS_LIAB_CL_TOTAL = "BS_LIAB_CL_TOTAL", "Total current liabilities"
    BS_EQUITY_LIAB_TOTAL = "BS_EQUITY_LIAB_TOTAL", "Total equity and liabilities"

    # ---- Profit and loss ----
    PL_REVENUE_OPERATIONS = "PL_REVENUE_OPERATIONS", "Revenue from operations"
    PL_OTHER_INCOME = "PL_OTHER_INCOME", "Other income"
    PL_TOTAL_INCOME = "PL_TOTAL_INCOME", "Total income"
    PL_EXPENSES = "PL_EXPENSES", "Expenses"
    PL_COST_MATERIALS = "PL_COST_MATERIALS", "Cost of materials consumed"
    PL_PURCHASES = "PL_PURCHASES", "Purchases of stock-in-trade"
    PL_INVENTORY_CHANGE = "PL_INVENTORY_CHANGE", "Changes in inventories"
    PL_EMPLOYEE_BENEFITS = "PL_EMPLOYEE_BENEFITS", "Employee benefits expense"
    PL_FINANCE_COSTS = "PL_FINANCE_COSTS", "Finance costs"
    PL_DEPRECIATION = "PL_DEPRECIATION", "Depreciation and amortisation expense"
    PL_OTHER_EXPENSES = "PL_OTHER_EXPENSES", "Other expenses"
    PL_TOTAL_EXPENSES = "PL_TOTAL_EXPENSES", "Total expenses"
    PL_PBT = "PL_PBT", "Profit before tax"
    PL_TAX_EXPENSE = "PL_TAX_EXPENSE", "Tax expense"
    PL_PAT = "PL_PAT", "Profit for the period"

    # ---- Cash flow (indirect method) ----
    CFO_HEADER = "CFO_HEADER", "Cash flows from operating activities"
    CFO_NET_PROFIT = "CFO_NET_PROFIT", "Net profit"
    CFO_ADJ_HEADER = "CFO_ADJ_HEADER", "Adjustments for non-cash items"
    CFO_DEPRECIATION = "CFO_DEPRECIATION", "Depreciation and amortisation"
    CFO_WC_HEADER = "CFO_WC_HEADER", "Changes in working capital"
    CFO_RECEIVABLES = "CFO_RECEIVABLES", "(Increase)/decrease in trade receivables"
    CFO_INVENTORY = "CFO_INVENTORY", "(Increase)/decrease in inventories"
    CFO_OTHER_CA = "CFO_OTHER_CA", "(Increase)/decrease in other current assets"
    CFO_PAYABLES = "CFO_PAYABLES", "Increase/(decrease) in trade payables"
    CFO_OTHER_CL = "CFO_OTHER_CL", "Increase/(decrease) in other liabilities"
    CFO_TOTAL = "CFO_TOTAL", "Net cash from operating activities"
    CFI_HEADER = "CFI_HEADER", "Cash flows from investing activities"
    CFI_FIXED_ASSETS = "CFI_FIXED_ASSETS", "Purchase of fixed assets"
    CFI_INVESTMENTS = "CFI_INVESTMENTS", "Purchase of investments"
    CFI_TOTAL = "CFI_TOTAL", "Net cash used in investing activities"
    CFF_HEADER = "CFF_HEADER", "Cash flows from financing activities"
    CFF_BORROWINGS = "CFF_BORROWINGS", "Proceeds from/(repayment of) borrowings"
    CFF_EQUITY = "CFF_EQUITY", "Proceeds from equity"
    CFF_TOTAL = "CFF_TOTAL", "Net cash from financing activities"
    CF_NET_INCREASE = "CF_NET_INCREASE", "Net increase/(decrease) in cash"
    CF_OPENING = "CF_OPENING", "Cash and cash equivalents at the beginning"
    CF_CLOSING = "CF_CLOSING", "Cash and cash equivalents at the end"


SL = StatementLine

# Line kinds an account of each type may be mapped to
ACCOUNT_LINE_KINDS = {
    "asset": (
        SL.BS_ASSET_NCA_PPE, SL.BS_ASSET_NCA_CWIP, SL.BS_ASSET_NCA_INTANGIBLE,
        SL.BS_ASSET_NCA_INVESTMENTS, SL.BS_ASSET_NCA_DTA, SL.BS_ASSET_NCA_LOANS,
        SL.BS_ASSET_NCA_OTHER, SL.BS_ASSET_CA_INVENTORIES, SL.BS_ASSET_CA_INVESTMENTS,
        SL.BS_ASSET_CA_RECEIVABLES, SL.BS_ASSET_CA_CASH, SL.BS_ASSET_CA_LOANS,
        SL.BS_ASSET_CA_OTHER,
    ),
    "liability": (
        SL.BS_LIAB_NCL_BORROWINGS, SL.BS_LIAB_NCL_DTL, SL.BS_LIAB_NCL_PROVISIONS,
        SL.BS_LIAB_NCL_OTHER, SL.BS_LIAB_CL_BORROWINGS, SL.BS_LIAB_CL_PAYABLES,
        SL.BS_LIAB_CL_OTHER, SL.BS_LIAB_CL_PROVISIONS,
    ),
    "equity": (
        SL.BS_EQUITY_SHARE_CAPITAL, SL.BS_EQUITY_RESERVES, SL.BS_EQUITY_OTHER,
    ),
    "income": (SL.PL_REVENUE_OPERATIONS, SL.PL_OTHER_INCOME),
    "expense": (
        SL.PL_COST_MATERIALS, SL.PL_PURCHASES, SL.PL_INVENTORY_CHANGE,
        SL.PL_EMPLOYEE_BENEFITS, SL.PL_FINANCE_COSTS, SL.PL_DEPRECIATION,
        SL.PL_OTHER_EXPENSES, SL.PL_TAX_EXPENSE,
    ),
}

# Where an account lands when it carries no explicit mapping
DEFAULT_LINE_KIND = {
    "asset": SL.BS_ASSET_CA_OTHER,
    "liability": SL.BS_LIAB_CL_OTHER,
    "equity": SL.BS_EQUITY_OTHER,
    "income": SL.PL_OTHER_INCOME,
    "expense": SL.PL_OTHER_EXPENSES,
}
