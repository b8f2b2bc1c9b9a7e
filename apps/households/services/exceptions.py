"""
Domain-specific exceptions for households app.

Each exception extends one of the shared categories in
``apps.common.exceptions`` so views can map it to an HTTP status
without knowing the concrete type.
"""

from apps.common.exceptions import (
    LedgerError,
    ValidationError,
    AuthorizationError,
    StateConflictError,
    NotFoundError,
    NotHouseholdMemberError,
    InsufficientPermissionsError,
    HouseholdNotFoundError,
    MemberNotFoundError,
)


class InvalidInviteCodeError(ValidationError):
    """Raised when an invite code matches no household."""
    pass


class InvalidClaimCodeError(ValidationError):
    """Raised when a claim code matches no managed member."""
    pass


class AlreadyMemberError(StateConflictError):
    """Raised when a user joins or claims into a household they already belong to."""
    pass


class JoinRequestPendingError(StateConflictError):
    """Raised when a user already has a pending join request."""
    pass


class MemberNotPendingError(StateConflictError):
    """Raised when approving or rejecting a member that is not pending."""
    pass


class MemberAlreadyInactiveError(StateConflictError):
    """Raised when removing a member that is already inactive."""
    pass


class MemberNotInactiveError(StateConflictError):
    """Raised when reactivating a member that is not inactive."""
    pass


class CannotRemoveOwnerError(StateConflictError):
    """Raised when attempting to remove the household owner."""
    pass


class CannotRemoveSelfError(StateConflictError):
    """Raised when a member tries to remove themselves; they should leave instead."""
    pass


class OwnerCannotLeaveError(StateConflictError):
    """Raised when the owner tries to leave their household."""
    pass


class LastMemberCannotLeaveError(StateConflictError):
    """Raised when the only approved member tries to leave."""
    pass


class NotManagedMemberError(StateConflictError):
    """Raised when a claim-code operation targets a member with a user account."""
    pass


class CannotChangeOwnerPermissionsError(StateConflictError):
    """Raised when editing the permission row of the owner or a non-approved member."""
    pass


class InvalidTransferTargetError(ValidationError):
    """Raised when the proposed new owner cannot take ownership."""
    pass


class TransferAlreadyPendingError(StateConflictError):
    """Raised when initiating a transfer while another one is pending."""
    pass


class NoPendingTransferError(StateConflictError):
    """Raised when accepting, declining or revoking with no pending transfer."""
    pass


class NotTransferTargetError(AuthorizationError):
    """Raised when someone other than the pending target accepts or declines."""
    pass


class OwnerMissingError(StateConflictError):
    """Raised when a household has no current owner to demote."""
    pass


__all__ = [
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
]
