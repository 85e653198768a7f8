"""Errors raised by the ledger when a transaction cannot be committed."""

from lendbook.db.core import NotFoundError


class LedgerError(Exception):
    """Base exception for all ledger commit failures."""


class InsufficientFundsError(LedgerError):
    """Raised when the source account balance does not cover the amount."""

    def __init__(self, account_id: int, balance, amount):
        self.account_id = account_id
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance in account {account_id}: balance {balance}, amount {amount}"
        )


class ReferenceIntegrityError(LedgerError, NotFoundError):
    """Raised when a transaction references an account or loan that does not exist."""


class InvalidTransactionError(LedgerError):
    """Raised when a transaction is well-formed but not allowed against the current ledger state."""


class DuplicateReferenceError(LedgerError):
    """Raised when the caller-supplied reference was already used by the owner."""


class ConcurrentMutationConflictError(LedgerError):
    """Raised when another commit changed a referenced account first."""


class ReportAggregationError(LedgerError):
    """Raised when the monthly/yearly report refresh fails."""
