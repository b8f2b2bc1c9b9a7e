"""
Member permission service.

Owners hold every capability implicitly. Other approved members hold
whatever their MemberPermission row grants; a missing row grants nothing.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction

from apps.accounts.models import User
from apps.households.models import HouseholdMember, MemberPermission, MemberStatus

from .access import get_acting_member, get_household, get_member
from .exceptions import (
    CannotChangeOwnerPermissionsError,
    InsufficientPermissionsError,
)

logger = logging.getLogger(__name__)


CREATE_MANAGED_MEMBERS = 'create_managed_members'
REMOVE_MEMBERS = 'remove_members'
REACTIVATE_MEMBERS = 'reactivate_members'
APPROVE_JOIN_REQUESTS = 'approve_join_requests'

CAPABILITIES = (
    CREATE_MANAGED_MEMBERS,
    REMOVE_MEMBERS,
    REACTIVATE_MEMBERS,
    APPROVE_JOIN_REQUESTS,
)

# Granted on first approval and to managed members
DEFAULT_PERMISSIONS = {
    CREATE_MANAGED_MEMBERS: True,
    REMOVE_MEMBERS: True,
    REACTIVATE_MEMBERS: True,
    APPROVE_JOIN_REQUESTS: False,
}


def _field(capability: str) -> str:
    if capability not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {capability}")
    return f'can_{capability}'


def get_permission_record(member: HouseholdMember) -> Optional[MemberPermission]:
    """Return the member's permission row, or None when there is none."""
    return MemberPermission.objects.filter(member=member).first()


def has_permission(member: HouseholdMember, capability: str) -> bool:
    """
    Check a single capability.

    Owner: always True. Approved member with a row and the flag set: True.
    Anything else, including pending and inactive members: False.
    """
    field = _field(capability)
    if member.status != MemberStatus.APPROVED:
        return False
    if member.is_owner:
        return True
    record = get_permission_record(member)
    return record is not None and getattr(record, field)


def require_permission(member: HouseholdMember, capability: str) -> None:
    if not has_permission(member, capability):
        raise InsufficientPermissionsError(
            f"Member lacks the '{capability}' permission"
        )


def resolve_permissions(member: HouseholdMember) -> dict:
    """Resolve all four capabilities into a flat dict."""
    if member.is_owner and member.status == MemberStatus.APPROVED:
        return {capability: True for capability in CAPABILITIES}
    record = get_permission_record(member) if member.status == MemberStatus.APPROVED else None
    return {
        capability: bool(record and getattr(record, _field(capability)))
        for capability in CAPABILITIES
    }


def grant_default_permissions(member: HouseholdMember) -> MemberPermission:
    """
    Create the default permission row.

    An existing row is left untouched so a re-approval never overwrites
    what the owner configured.
    """
    record, created = MemberPermission.objects.get_or_create(
        member=member,
        defaults={_field(cap): value for cap, value in DEFAULT_PERMISSIONS.items()},
    )
    if created:
        logger.info("Granted default permissions to member %s", member.id)
    return record


def clear_member_permissions(member: HouseholdMember) -> None:
    MemberPermission.objects.filter(member=member).delete()


def get_member_permissions(*, member_id: UUID, user: User) -> dict:
    """
    Read a member's resolved permissions.

    Any approved member of the same household may read them.

    Returns:
        Dict with ``member_id``, ``is_owner`` and one boolean per capability
    """
    member = get_member(member_id=member_id)
    get_acting_member(household=member.household, user=user)

    return {
        'member_id': member.id,
        'is_owner': member.is_owner,
        **resolve_permissions(member),
    }


@transaction.atomic
def update_member_permissions(
    *,
    member_id: UUID,
    user: User,
    create_managed_members: Optional[bool] = None,
    remove_members: Optional[bool] = None,
    reactivate_members: Optional[bool] = None,
    approve_join_requests: Optional[bool] = None,
) -> dict:
    """
    Change a member's permission flags (owner only).

    A flag passed as None keeps its current value. The row is created
    when missing.

    Raises:
        InsufficientPermissionsError: If the caller is not the owner
        CannotChangeOwnerPermissionsError: If the target is the owner or not approved
    """
    member = get_member(member_id=member_id)
    household = get_household(household_id=member.household_id, lock=True)
    actor = get_acting_member(household=household, user=user)

    if not actor.is_owner:
        raise InsufficientPermissionsError("Only the owner can change permissions")

    member.refresh_from_db()
    if member.is_owner:
        raise CannotChangeOwnerPermissionsError("The owner's permissions cannot be changed")
    if member.status != MemberStatus.APPROVED:
        raise CannotChangeOwnerPermissionsError("Only approved members have permissions")

    record, _ = MemberPermission.objects.get_or_create(member=member)
    changes = {
        CREATE_MANAGED_MEMBERS: create_managed_members,
        REMOVE_MEMBERS: remove_members,
        REACTIVATE_MEMBERS: reactivate_members,
        APPROVE_JOIN_REQUESTS: approve_join_requests,
    }
    for capability, value in changes.items():
        if value is not None:
            setattr(record, _field(capability), value)
    record.save()

    logger.info("Updated permissions of member %s in household %s", member.id, household.id)

    return {
        'member_id': member.id,
        'is_owner': False,
        **resolve_permissions(member),
    }
