"""
Errors raised by the ledger services.

Callers (views, tasks, admin actions) catch LedgerError and surface
`message` plus `details` verbatim so the violated rule is visible.
"""


class LedgerError(Exception):
    """Base class: carries a human message and structured details."""

    # short machine-readable tag used by the JSON views
    code = "ledger_error"

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self):
        return {"error": self.code, "message": self.message, "details": self.details}


class ValidationError(LedgerError):
    """Input breaks a ledger rule (shape, balance, missing field)."""

    code = "validation_error"


class UnbalancedJournalError(ValidationError):
    """Raised when journal lines fail the double-entry balance check."""

    code = "unbalanced_entry"

    def __init__(self, total_debit, total_credit, **details):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = total_debit - total_credit
        super().__init__(
            f"Journal not balanced: debits={total_debit}, credits={total_credit}, "
            f"difference={self.difference}",
            total_debit=str(total_debit),
            total_credit=str(total_credit),
            difference=str(self.difference),
            **details,
        )


class NotFoundError(LedgerError):
    """Unknown account, entry, fiscal year, template or report run."""

    code = "not_found"


class InvalidStateError(LedgerError):
    """Illegal status transition, e.g. reversing a draft."""

    code = "invalid_state"


class LockedPeriodError(LedgerError):
    """The fiscal year covering the date is locked."""

    code = "locked_period"


class ConcurrencyError(LedgerError):
    """Entry-number allocation race or an overlapping batch run."""

    code = "concurrency_error"
