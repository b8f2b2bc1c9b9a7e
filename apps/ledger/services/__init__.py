"""
Ledger app services layer.

Split calculation and validation are pure; balances are read-only
aggregations; the transaction lifecycle owns every write.
"""

from .exceptions import (
    LedgerError,
    ValidationError,
    AuthorizationError,
    StateConflictError,
    NotFoundError,
    NotHouseholdMemberError,
    InvalidAmountError,
    InvalidSplitError,
    SplitReconciliationError,
    MissingParticipantError,
    InvalidParticipantError,
    NoEligibleMembersError,
    InvalidReimbursementError,
    ReimbursedTransactionError,
    TransactionNotFoundError,
)

from .split_calculation import (
    divide_evenly,
    allocate_proportionally,
    derive_percentage,
    calculate_splits,
    normalize_splits,
)

from .split_validation import (
    SPLIT_TOLERANCE,
    check_split_totals,
    validate_transaction_splits,
    find_problematic_transactions,
)

from .balances import (
    get_member_balances,
    get_balance_health,
)

from .legacy_splits import (
    generate_legacy_splits,
    legacy_fallback_enabled,
)

from .transaction_lifecycle import (
    create_transaction_with_splits,
    update_transaction_with_splits,
    delete_transaction,
    get_transaction,
    list_transactions,
)


__all__ = [
    # Exceptions
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

    # Split calculation
    'divide_evenly',
    'allocate_proportionally',
    'derive_percentage',
    'calculate_splits',
    'normalize_splits',

    # Split validation
    'SPLIT_TOLERANCE',
    'check_split_totals',
    'validate_transaction_splits',
    'find_problematic_transactions',

    # Balances
    'get_member_balances',
    'get_balance_health',

    # Legacy split generation
    'generate_legacy_splits',
    'legacy_fallback_enabled',

    # Transaction lifecycle
    'create_transaction_with_splits',
    'update_transaction_with_splits',
    'delete_transaction',
    'get_transaction',
    'list_transactions',
]
