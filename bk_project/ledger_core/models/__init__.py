from .account import AC_TYPES, MAX_ACCOUNT_LEVEL, NORMAL_BALANCE, Account
from .entitymembership import Company, User
from .fiscal_year import FiscalYear
from .journal import (AUTO_POSTED_TYPES, EDITABLE_STATUSES, ENTRY_TYPES,
                      JOURNAL_STATUS, LEDGER_STATUSES, TRANSITIONS,
                      JournalEntry, JournalLine)
from .recurring import FREQUENCIES, RecurringTemplate
from .statement_line import (ACCOUNT_LINE_KINDS, DEFAULT_LINE_KIND,
                             StatementLine, StatementType)
from .statement_run import StatementRun
