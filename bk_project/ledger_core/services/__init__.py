# Public ledger operations; views, tasks and commands import from here.
from .auto_entries import create_bill_entry, create_invoice_entry, create_payment_entry
from .balances import account_ledger, compute_balances, summarize_by_type, trial_balance
from .periods import (create_fiscal_year, lock_fiscal_year, resolve_fiscal_year,
                      set_current_fiscal_year, unlock_fiscal_year)
from .posting import (create_entry, create_opening_entry, delete_entry, get_entry,
                      post_entry, reject_entry, reverse_entry, submit_for_approval,
                      update_entry)
from .recurring import create_template, due_templates, generate, process_due
from .registry import (account_tree, create_account, deactivate_account, import_accounts,
                       is_postable, reactivate_account, resolve_account, seed_default_chart)
from .report_cache import get_run, statement_history
from .statements import get_balance_sheet, get_cash_flow, get_profit_and_loss, get_trial_balance
from .tax import compute_tds, compute_tds_for_section, split_gst, validate_gstin
