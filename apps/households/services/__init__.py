"""
Households app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and lock the household row.
"""

from .exceptions import (
    LedgerError,
    ValidationError,
    AuthorizationError,
    StateConflictError,
    NotFoundError,
    NotHouseholdMemberError,
    InsufficientPermissionsError,
    HouseholdNotFoundError,
    MemberNotFoundError,
    InvalidInviteCodeError,
    InvalidClaimCodeError,
    AlreadyMemberError,
    JoinRequestPendingError,
    MemberNotPendingError,
    MemberAlreadyInactiveError,
    MemberNotInactiveError,
    CannotRemoveOwnerError,
    CannotRemoveSelfError,
    OwnerCannotLeaveError,
    LastMemberCannotLeaveError,
    NotManagedMemberError,
    CannotChangeOwnerPermissionsError,
    InvalidTransferTargetError,
    TransferAlreadyPendingError,
    NoPendingTransferError,
    NotTransferTargetError,
    OwnerMissingError,
)

from .access import (
    get_household,
    get_member,
    get_acting_member,
    member_has_transaction_history,
)

from .membership_management import (
    create_household,
    regenerate_invite_code,
    delete_household,
    join_household,
    approve_member,
    reject_member,
    get_pending_members,
    remove_member,
    reactivate_member,
    leave_household,
    get_household_members,
)

from .managed_members import (
    create_managed_member,
    claim_managed_member,
    regenerate_claim_code,
    get_claim_code,
)

from .permission_management import (
    CAPABILITIES,
    CREATE_MANAGED_MEMBERS,
    REMOVE_MEMBERS,
    REACTIVATE_MEMBERS,
    APPROVE_JOIN_REQUESTS,
    get_permission_record,
    has_permission,
    get_member_permissions,
    update_member_permissions,
    grant_default_permissions,
    clear_member_permissions,
)

from .ownership_transfer import (
    initiate_ownership_transfer,
    revoke_ownership_transfer,
    accept_ownership_transfer,
    decline_ownership_transfer,
)


__all__ = [
    # Exceptions
    'LedgerError',
    'ValidationError',
    'AuthorizationError',
    'StateConflictError',
    'NotFoundError',
    'NotHouseholdMemberError',
    'InsufficientPermissionsError',
    'HouseholdNotFoundError',
    'MemberNotFoundError',
    'InvalidInviteCodeError',
    'InvalidClaimCodeError',
    'AlreadyMemberError',
    'JoinRequestPendingError',
    'MemberNotPendingError',
    'MemberAlreadyInactiveError',
    'MemberNotInactiveError',
    'CannotRemoveOwnerError',
    'CannotRemoveSelfError',
    'OwnerCannotLeaveError',
    'LastMemberCannotLeaveError',
    'NotManagedMemberError',
    'CannotChangeOwnerPermissionsError',
    'InvalidTransferTargetError',
    'TransferAlreadyPendingError',
    'NoPendingTransferError',
    'NotTransferTargetError',
    'OwnerMissingError',

    # Lookups
    'get_household',
    'get_member',
    'get_acting_member',
    'member_has_transaction_history',

    # Membership
    'create_household',
    'regenerate_invite_code',
    'delete_household',
    'join_household',
    'approve_member',
    'reject_member',
    'get_pending_members',
    'remove_member',
    'reactivate_member',
    'leave_household',
    'get_household_members',

    # Managed members
    'create_managed_member',
    'claim_managed_member',
    'regenerate_claim_code',
    'get_claim_code',

    # Permissions
    'CAPABILITIES',
    'CREATE_MANAGED_MEMBERS',
    'REMOVE_MEMBERS',
    'REACTIVATE_MEMBERS',
    'APPROVE_JOIN_REQUESTS',
    'get_permission_record',
    'has_permission',
    'get_member_permissions',
    'update_member_permissions',
    'grant_default_permissions',
    'clear_member_permissions',

    # Ownership transfer
    'initiate_ownership_transfer',
    'revoke_ownership_transfer',
    'accept_ownership_transfer',
    'decline_ownership_transfer',
]
