"""
Domain exceptions for ledger app.

Exception Hierarchy (categories from apps.common.exceptions):
    ValidationError
    ├── InvalidAmountError
    ├── InvalidSplitError
    ├── SplitReconciliationError
    ├── MissingParticipantError
    ├── InvalidParticipantError
    ├── NoEligibleMembersError
    └── InvalidReimbursementError
    StateConflictError
    └── ReimbursedTransactionError
    NotFoundError
    └── TransactionNotFoundError
"""

from apps.common.exceptions import (
    LedgerError,
    ValidationError,
    AuthorizationError,
    StateConflictError,
    NotFoundError,
    NotHouseholdMemberError,
)


class InvalidAmountError(ValidationError):
    """Raised when an amount is not positive or has more than two decimal places."""
    pass


class InvalidSplitError(ValidationError):
    """
    Raised when a split set cannot be built or is malformed.

    Examples: duplicate members, negative amounts, a designated member
    outside the eligible set, an unknown split policy.
    """
    pass


class SplitReconciliationError(ValidationError):
    """
    Raised when split columns do not add up to the transaction amount.

    Owed and paid totals must each match the amount within the split
    tolerance and must equal each other exactly.
    """
    pass


class MissingParticipantError(ValidationError):
    """Raised when a transaction lacks a payer, recipient or designated member it needs."""
    pass


class InvalidParticipantError(ValidationError):
    """Raised when a referenced member is pending or belongs to another household."""
    pass


class NoEligibleMembersError(ValidationError):
    """Raised when an expense would be split among zero members."""
    pass


class InvalidReimbursementError(ValidationError):
    """Raised when a reimbursement links to something other than an expense or exceeds it."""
    pass


class ReimbursedTransactionError(StateConflictError):
    """Raised when changing the amount or splits of, or deleting, a reimbursed expense."""
    pass


class TransactionNotFoundError(NotFoundError):
    """Raised when a transaction does not exist."""
    pass


__all__ = [
    'LedgerError',
    'ValidationError',
    'AuthorizationError',
    'StateConflictError',
    'NotFoundError',
    'NotHouseholdMemberError',
    'InvalidAmountError',
    'InvalidSplitError',
    'SplitReconciliationError',
    'MissingParticipantError',
    'InvalidParticipantError',
    'NoEligibleMembersError',
    'InvalidReimbursementError',
    'ReimbursedTransactionError',
    'TransactionNotFoundError',
]
