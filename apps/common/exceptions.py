"""
Cross-app error taxonomy for the household ledger.

Service functions in every app raise subclasses of the four categories
below. Views catch ``LedgerError`` and translate the category into an
HTTP status with ``status_for``; nothing below knows about HTTP itself.

Exception Hierarchy:
    LedgerError (base)
    ├── ValidationError        400  malformed input, split mismatch, missing participant
    ├── AuthorizationError     403  not a member, missing capability
    ├── StateConflictError     409  transfer already pending, member already inactive, ...
    └── NotFoundError          404  household, member or transaction does not exist

Integrity warnings (balance imbalance, problematic transactions) are not
exceptions. They are returned as data and logged.

Usage:
    from apps.common.exceptions import LedgerError, status_for

    try:
        remove_member(member_id=pk, user=request.user)
    except LedgerError as e:
        return Response({'error': str(e)}, status=status_for(e))
"""

from rest_framework import status


class LedgerError(Exception):
    """Base exception for all household ledger service errors."""
    pass


class ValidationError(LedgerError):
    """
    Raised when input is malformed or violates a ledger rule.

    Examples: non-positive amount, splits that do not reconcile with
    the transaction amount, a settlement without a recipient.
    """
    pass


class AuthorizationError(LedgerError):
    """Raised when the acting user may not perform the operation."""
    pass


class StateConflictError(LedgerError):
    """Raised when the operation is valid in general but not in the current state."""
    pass


class NotFoundError(LedgerError):
    """Raised when a referenced record does not exist."""
    pass


class NotHouseholdMemberError(AuthorizationError):
    """Raised when the acting user is not an approved member of the household."""
    pass


class InsufficientPermissionsError(AuthorizationError):
    """Raised when a member lacks the capability an action requires."""
    pass


class HouseholdNotFoundError(NotFoundError):
    """Raised when a household does not exist or is inaccessible."""
    pass


class MemberNotFoundError(NotFoundError):
    """Raised when a household member does not exist."""
    pass


_STATUS_BY_CATEGORY = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (StateConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
)


def status_for(exc: LedgerError) -> int:
    """Return the HTTP status code for a ledger exception's category."""
    for category, code in _STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return code
    return status.HTTP_400_BAD_REQUEST
