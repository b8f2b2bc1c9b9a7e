"""
Lookup helpers shared by household and ledger services.

Every service resolves the acting member the same way: the user must be
an approved member of the household, otherwise the call fails with an
authorization error before anything else is checked.
"""

from uuid import UUID

from apps.accounts.models import User
from apps.households.models import Household, HouseholdMember, MemberStatus

from .exceptions import (
    HouseholdNotFoundError,
    MemberNotFoundError,
    NotHouseholdMemberError,
)


def get_household(*, household_id: UUID, lock: bool = False) -> Household:
    """
    Fetch a household, optionally locking its row.

    Locking the household row is how writes to one household's ledger
    and membership are serialized, so it must be called inside
    ``transaction.atomic``.
    """
    queryset = Household.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(id=household_id)
    except Household.DoesNotExist:
        raise HouseholdNotFoundError(f"Household with ID {household_id} not found")


def get_member(*, member_id: UUID) -> HouseholdMember:
    try:
        return HouseholdMember.objects.select_related('household', 'user').get(id=member_id)
    except HouseholdMember.DoesNotExist:
        raise MemberNotFoundError(f"Member with ID {member_id} not found")


def get_acting_member(*, household: Household, user: User) -> HouseholdMember:
    """Return the user's approved membership or raise NotHouseholdMemberError."""
    member = household.get_approved_member(user)
    if member is None:
        raise NotHouseholdMemberError(
            f"User is not an approved member of {household.name}"
        )
    return member


def member_has_transaction_history(member: HouseholdMember) -> bool:
    """
    Whether any transaction references the member.

    Covers every column that can point at a member: payer, recipient,
    designated split member and split participant.
    """
    return (
        member.paid_transactions.exists()
        or member.received_transactions.exists()
        or member.designated_transactions.exists()
        or member.splits.exists()
    )


def approved_members(household: Household):
    return household.members.filter(status=MemberStatus.APPROVED).order_by('joined_at')
