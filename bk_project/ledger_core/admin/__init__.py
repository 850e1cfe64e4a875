from .account import AccountAdmin
from .actions import (generate_recurring_now, lock_fiscal_years, post_journal_entries,
                      reverse_journal_entries, unlock_fiscal_years)
from .forms import (AccountAdminForm, JournalLineInlineForm, UserAdminChangeForm,
                    UserAdminCreationForm)
from .inlines import JournalLineInline
from .journal import JournalEntryAdmin, JournalLineAdmin
from .membership import CompanyAdmin, UserAdmin
from .mixins import TenantAdminMixin
from .period import FiscalYearAdmin
from .recurring import RecurringTemplateAdmin
from .reports import StatementRunAdmin
