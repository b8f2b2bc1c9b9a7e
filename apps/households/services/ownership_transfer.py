"""
Ownership transfer service.

A transfer is a two-step handshake stored on the household row:

    none pending --initiate(target)--> pending(target)
    pending(target) --accept | decline | revoke--> none pending

Every transition locks the household row and evaluates its guards and
changes inside one atomic block, so two concurrent transitions can
never both succeed.
"""

import logging
from uuid import UUID

from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.households.models import Household, HouseholdMember, MemberRole, MemberStatus

from .access import get_acting_member, get_household
from .exceptions import (
    InsufficientPermissionsError,
    InvalidTransferTargetError,
    NoPendingTransferError,
    NotTransferTargetError,
    OwnerMissingError,
    TransferAlreadyPendingError,
)
from .permission_management import clear_member_permissions

logger = logging.getLogger(__name__)


def _clear_slot(household: Household) -> None:
    household.pending_owner_member = None
    household.pending_owner_initiated_at = None
    household.save(update_fields=['pending_owner_member', 'pending_owner_initiated_at', 'updated_at'])


def _require_owner(household: Household, user: User) -> HouseholdMember:
    actor = get_acting_member(household=household, user=user)
    if not actor.is_owner:
        raise InsufficientPermissionsError("Only the owner can manage ownership transfers")
    return actor


def _require_pending_target(household: Household, user: User) -> HouseholdMember:
    if not household.has_pending_transfer:
        raise NoPendingTransferError("No ownership transfer is pending")
    actor = get_acting_member(household=household, user=user)
    if actor.id != household.pending_owner_member_id:
        raise NotTransferTargetError("Only the proposed new owner can respond to this transfer")
    return actor


@transaction.atomic
def initiate_ownership_transfer(
    *,
    household_id: UUID,
    user: User,
    target_member_id: UUID
) -> Household:
    """
    Offer ownership to another member.

    The target must be an approved member of the same household with a
    user account, and must not be the current owner.

    Raises:
        InsufficientPermissionsError: If the caller is not the owner
        InvalidTransferTargetError: If the target cannot become owner
        TransferAlreadyPendingError: If a transfer is already pending
    """
    household = get_household(household_id=household_id, lock=True)
    owner = _require_owner(household, user)

    if household.has_pending_transfer:
        raise TransferAlreadyPendingError("An ownership transfer is already pending")

    target = household.members.filter(id=target_member_id).first()
    if target is None:
        raise InvalidTransferTargetError("Target is not a member of this household")
    if target.id == owner.id:
        raise InvalidTransferTargetError("Cannot transfer ownership to yourself")
    if target.is_managed:
        raise InvalidTransferTargetError("Managed members cannot become owner")
    if target.status != MemberStatus.APPROVED:
        raise InvalidTransferTargetError("Only approved members can become owner")

    household.pending_owner_member = target
    household.pending_owner_initiated_at = timezone.now()
    household.save(update_fields=['pending_owner_member', 'pending_owner_initiated_at', 'updated_at'])

    logger.info("Ownership transfer of household %s initiated to member %s", household.id, target.id)
    return household


@transaction.atomic
def revoke_ownership_transfer(*, household_id: UUID, user: User) -> Household:
    household = get_household(household_id=household_id, lock=True)
    _require_owner(household, user)

    if not household.has_pending_transfer:
        raise NoPendingTransferError("No ownership transfer is pending")

    _clear_slot(household)
    logger.info("Ownership transfer of household %s revoked", household.id)
    return household


@transaction.atomic
def accept_ownership_transfer(*, household_id: UUID, user: User) -> Household:
    """
    Accept a pending transfer.

    The current owner is demoted before the target is promoted, so the
    one-owner constraint holds at every statement. The new owner's
    permission row is dropped because owners bypass it.

    Raises:
        NoPendingTransferError: If nothing is pending
        NotTransferTargetError: If the caller is not the pending target
        OwnerMissingError: If the household has no owner to demote
    """
    household = get_household(household_id=household_id, lock=True)
    target = _require_pending_target(household, user)

    current_owner = (
        household.members
        .select_for_update()
        .filter(role=MemberRole.OWNER)
        .first()
    )
    if current_owner is None:
        raise OwnerMissingError("Household has no current owner")

    current_owner.role = MemberRole.MEMBER
    current_owner.save(update_fields=['role', 'updated_at'])

    target.role = MemberRole.OWNER
    target.save(update_fields=['role', 'updated_at'])
    clear_member_permissions(target)

    _clear_slot(household)

    logger.info(
        "Ownership of household %s transferred from member %s to member %s",
        household.id, current_owner.id, target.id,
    )
    return household


@transaction.atomic
def decline_ownership_transfer(*, household_id: UUID, user: User) -> Household:
    household = get_household(household_id=household_id, lock=True)
    target = _require_pending_target(household, user)

    _clear_slot(household)
    logger.info("Member %s declined ownership of household %s", target.id, household.id)
    return household
