"""
Membership management service.

Handles household creation, the join/approval flow, removal and
reactivation. Every state change locks the household row first so a
removal's history check cannot race with a transaction that adds a
reference to the member.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.households.models import (
    Household,
    HouseholdMember,
    MemberRole,
    MemberStatus,
    generate_invite_code,
)

from .access import (
    approved_members,
    get_acting_member,
    get_household,
    get_member,
    member_has_transaction_history,
)
from .exceptions import (
    AlreadyMemberError,
    CannotRemoveOwnerError,
    CannotRemoveSelfError,
    InsufficientPermissionsError,
    InvalidInviteCodeError,
    JoinRequestPendingError,
    LastMemberCannotLeaveError,
    MemberAlreadyInactiveError,
    MemberNotInactiveError,
    MemberNotPendingError,
    OwnerCannotLeaveError,
)
from .permission_management import (
    APPROVE_JOIN_REQUESTS,
    REACTIVATE_MEMBERS,
    REMOVE_MEMBERS,
    clear_member_permissions,
    grant_default_permissions,
    require_permission,
)

logger = logging.getLogger(__name__)

MAX_INVITE_CODE_ATTEMPTS = 10


def _unique_invite_code() -> str:
    for _ in range(MAX_INVITE_CODE_ATTEMPTS):
        code = generate_invite_code()
        if not Household.objects.filter(invite_code=code).exists():
            return code
    raise RuntimeError("Could not generate a unique invite code")


def _clear_transfer_targeting(household: Household, member: HouseholdMember) -> None:
    if household.pending_owner_member_id == member.id:
        household.pending_owner_member = None
        household.pending_owner_initiated_at = None
        household.save(update_fields=['pending_owner_member', 'pending_owner_initiated_at', 'updated_at'])
        logger.info("Cleared ownership transfer targeting member %s", member.id)


def _retire_member(household: Household, member: HouseholdMember) -> str:
    """
    Take a member out of the household.

    Members referenced by any transaction become inactive so their
    balance history survives; everyone else is deleted.

    Returns:
        'deactivated' or 'deleted'
    """
    _clear_transfer_targeting(household, member)

    if member_has_transaction_history(member):
        member.status = MemberStatus.INACTIVE
        member.save(update_fields=['status', 'updated_at'])
        clear_member_permissions(member)
        logger.info("Deactivated member %s in household %s", member.id, household.id)
        return 'deactivated'

    member_id = member.id
    member.delete()
    logger.info("Deleted member %s from household %s", member_id, household.id)
    return 'deleted'


@transaction.atomic
def create_household(
    *,
    name: str,
    user: User,
    display_name: Optional[str] = None
) -> Household:
    """
    Create a household with the creator as its approved owner.

    Args:
        name: Household name
        user: Creating user, becomes owner
        display_name: Owner's name inside the household (defaults to the user's)

    Returns:
        Created Household instance
    """
    household = Household.objects.create(name=name, invite_code=_unique_invite_code())

    HouseholdMember.objects.create(
        household=household,
        user=user,
        display_name=display_name or user.get_display_name(),
        status=MemberStatus.APPROVED,
        role=MemberRole.OWNER,
    )

    logger.info("Created household %s owned by user %s", household.id, user.id)
    return household


@transaction.atomic
def regenerate_invite_code(*, household_id: UUID, user: User) -> str:
    """Replace the invite code (owner only). Returns the new code."""
    household = get_household(household_id=household_id, lock=True)
    actor = get_acting_member(household=household, user=user)

    if not actor.is_owner:
        raise InsufficientPermissionsError("Only the owner can regenerate the invite code")

    household.invite_code = _unique_invite_code()
    household.save(update_fields=['invite_code', 'updated_at'])
    return household.invite_code


@transaction.atomic
def delete_household(*, household_id: UUID, user: User) -> None:
    """
    Delete a household with its whole ledger (owner only).

    Reimbursements go first because they protect the expenses they
    point at.
    """
    household = get_household(household_id=household_id, lock=True)
    actor = get_acting_member(household=household, user=user)

    if not actor.is_owner:
        raise InsufficientPermissionsError("Only the owner can delete the household")

    household.transactions.filter(reimburses__isnull=False).delete()
    household.transactions.all().delete()
    household.delete()
    logger.info("Deleted household %s", household_id)


@transaction.atomic
def join_household(
    *,
    invite_code: str,
    user: User,
    display_name: Optional[str] = None
) -> HouseholdMember:
    """
    Request to join a household with its invite code.

    The new member is pending until someone with the
    approve-join-requests capability approves them. A previously
    removed (inactive) member is approved straight away, keeping their
    history so their balance never leaves the ledger, and starts
    without a permission row as on reactivation.

    Raises:
        InvalidInviteCodeError: If no household has this code
        JoinRequestPendingError: If the user already has a pending request
        AlreadyMemberError: If the user is already approved
    """
    try:
        household = (
            Household.objects
            .select_for_update()
            .get(invite_code=invite_code.strip())
        )
    except Household.DoesNotExist:
        raise InvalidInviteCodeError("Invalid invite code")

    existing = household.members.filter(user=user).first()
    if existing is not None:
        if existing.status == MemberStatus.PENDING:
            raise JoinRequestPendingError(f"A join request for {household.name} is already pending")
        if existing.status == MemberStatus.APPROVED:
            raise AlreadyMemberError(f"User is already a member of {household.name}")

        existing.status = MemberStatus.APPROVED
        if display_name:
            existing.display_name = display_name
        existing.save(update_fields=['status', 'display_name', 'updated_at'])
        clear_member_permissions(existing)
        logger.info("Inactive member %s rejoined household %s", existing.id, household.id)
        return existing

    member = HouseholdMember.objects.create(
        household=household,
        user=user,
        display_name=display_name or user.get_display_name(),
        status=MemberStatus.PENDING,
        role=MemberRole.MEMBER,
    )
    logger.info("User %s requested to join household %s", user.id, household.id)
    return member


@transaction.atomic
def approve_member(*, member_id: UUID, user: User) -> HouseholdMember:
    """
    Approve a pending join request.

    The approved member receives the default permission set unless a
    permission row already exists.
    """
    member = get_member(member_id=member_id)
    household = get_household(household_id=member.household_id, lock=True)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, APPROVE_JOIN_REQUESTS)

    member.refresh_from_db()
    if member.status != MemberStatus.PENDING:
        raise MemberNotPendingError("Only pending members can be approved")

    member.status = MemberStatus.APPROVED
    member.save(update_fields=['status', 'updated_at'])
    grant_default_permissions(member)

    logger.info("Approved member %s in household %s", member.id, household.id)
    return member


@transaction.atomic
def reject_member(*, member_id: UUID, user: User) -> None:
    """Reject a pending join request by deleting it."""
    member = get_member(member_id=member_id)
    household = get_household(household_id=member.household_id, lock=True)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, APPROVE_JOIN_REQUESTS)

    member.refresh_from_db()
    if member.status != MemberStatus.PENDING:
        raise MemberNotPendingError("Only pending members can be rejected")

    member.delete()
    logger.info("Rejected join request %s in household %s", member_id, household.id)


def get_pending_members(*, household_id: UUID, user: User) -> QuerySet[HouseholdMember]:
    household = get_household(household_id=household_id)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, APPROVE_JOIN_REQUESTS)

    return (
        household.members
        .filter(status=MemberStatus.PENDING)
        .select_related('user')
        .order_by('joined_at')
    )


@transaction.atomic
def remove_member(*, member_id: UUID, user: User) -> str:
    """
    Remove a member from their household.

    Members with transaction history are deactivated and lose their
    permission row; members without history are deleted. A pending
    ownership transfer to the removed member is cancelled.

    Args:
        member_id: UUID of the member to remove
        user: User performing the removal (needs remove-members capability)

    Returns:
        'deactivated' or 'deleted'

    Raises:
        CannotRemoveSelfError: If the actor targets themselves
        CannotRemoveOwnerError: If the target is the owner
        MemberAlreadyInactiveError: If the target is already inactive
    """
    member = get_member(member_id=member_id)
    household = get_household(household_id=member.household_id, lock=True)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, REMOVE_MEMBERS)

    member.refresh_from_db()
    if member.id == actor.id:
        raise CannotRemoveSelfError("Use leave to remove yourself")
    if member.is_owner:
        raise CannotRemoveOwnerError("Cannot remove the household owner")
    if member.status == MemberStatus.INACTIVE:
        raise MemberAlreadyInactiveError("Member is already inactive")

    return _retire_member(household, member)


@transaction.atomic
def reactivate_member(*, member_id: UUID, user: User) -> HouseholdMember:
    """
    Bring an inactive member back as approved.

    The member starts without a permission row; the owner grants
    capabilities again explicitly.
    """
    member = get_member(member_id=member_id)
    household = get_household(household_id=member.household_id, lock=True)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, REACTIVATE_MEMBERS)

    member.refresh_from_db()
    if member.status != MemberStatus.INACTIVE:
        raise MemberNotInactiveError("Only inactive members can be reactivated")

    member.status = MemberStatus.APPROVED
    member.save(update_fields=['status', 'updated_at'])
    clear_member_permissions(member)

    logger.info("Reactivated member %s in household %s", member.id, household.id)
    return member


@transaction.atomic
def leave_household(*, household_id: UUID, user: User) -> str:
    """
    Leave a household.

    The owner must transfer ownership first, and the last approved
    member cannot leave. Same delete-or-deactivate rule as removal.

    Returns:
        'deactivated' or 'deleted'
    """
    household = get_household(household_id=household_id, lock=True)
    actor = get_acting_member(household=household, user=user)

    if actor.is_owner:
        raise OwnerCannotLeaveError(
            "Household owner cannot leave. Transfer ownership or delete the household."
        )
    if approved_members(household).count() <= 1:
        raise LastMemberCannotLeaveError("The last approved member cannot leave")

    return _retire_member(household, actor)


def get_household_members(*, household_id: UUID) -> QuerySet[HouseholdMember]:
    """
    Get all members of a household, owner first.

    Raises:
        HouseholdNotFoundError: If household doesn't exist
    """
    household = get_household(household_id=household_id)

    return (
        household.members
        .select_related('user', 'managed_by')
        .order_by('-role', 'joined_at')
    )
