"""
Managed member service.

A managed member is a ledger participant without a user account, for
example a child or a flatmate who does not use the app. Whoever holds
the claim code can later bind their own account to it.
"""

import logging
from uuid import UUID

from django.db import transaction

from apps.accounts.models import User
from apps.households.models import (
    HouseholdMember,
    MemberRole,
    MemberStatus,
    generate_claim_code,
)

from .access import get_acting_member, get_household, get_member
from .exceptions import (
    AlreadyMemberError,
    InvalidClaimCodeError,
    NotManagedMemberError,
)
from .permission_management import (
    APPROVE_JOIN_REQUESTS,
    CREATE_MANAGED_MEMBERS,
    grant_default_permissions,
    require_permission,
)

logger = logging.getLogger(__name__)

MAX_CLAIM_CODE_ATTEMPTS = 10


def _unique_claim_code() -> str:
    for _ in range(MAX_CLAIM_CODE_ATTEMPTS):
        code = generate_claim_code()
        if not HouseholdMember.objects.filter(claim_code=code).exists():
            return code
    raise RuntimeError("Could not generate a unique claim code")


def normalize_claim_code(claim_code: str) -> str:
    return (claim_code or '').strip().upper()


@transaction.atomic
def create_managed_member(
    *,
    household_id: UUID,
    user: User,
    display_name: str
) -> HouseholdMember:
    """
    Create an approved member without a user account.

    The creator becomes ``managed_by``. The member gets a fresh claim
    code and the default permission set.
    """
    household = get_household(household_id=household_id, lock=True)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, CREATE_MANAGED_MEMBERS)

    member = HouseholdMember.objects.create(
        household=household,
        user=None,
        display_name=display_name,
        status=MemberStatus.APPROVED,
        role=MemberRole.MEMBER,
        managed_by=user,
        claim_code=_unique_claim_code(),
    )
    grant_default_permissions(member)

    logger.info("Created managed member %s in household %s", member.id, household.id)
    return member


@transaction.atomic
def claim_managed_member(*, claim_code: str, user: User) -> HouseholdMember:
    """
    Bind the user to the managed member holding this claim code.

    The claim code and the manager are cleared so the code cannot be
    reused.

    Raises:
        InvalidClaimCodeError: If no managed member holds the code
        AlreadyMemberError: If the user already belongs to that household
    """
    code = normalize_claim_code(claim_code)
    if not code:
        raise InvalidClaimCodeError("Invalid claim code")

    candidate = HouseholdMember.objects.filter(claim_code=code, user__isnull=True).first()
    if candidate is None:
        raise InvalidClaimCodeError("Invalid claim code")

    household = get_household(household_id=candidate.household_id, lock=True)
    try:
        member = (
            HouseholdMember.objects
            .select_for_update()
            .get(id=candidate.id, claim_code=code, user__isnull=True)
        )
    except HouseholdMember.DoesNotExist:
        raise InvalidClaimCodeError("Invalid claim code")

    if household.members.filter(user=user).exists():
        raise AlreadyMemberError(f"User is already a member of {household.name}")

    member.user = user
    member.claim_code = None
    member.managed_by = None
    member.save(update_fields=['user', 'claim_code', 'managed_by', 'updated_at'])

    logger.info("User %s claimed managed member %s", user.id, member.id)
    return member


def _get_managed_member_for_code(member_id: UUID, user: User, lock: bool) -> HouseholdMember:
    member = get_member(member_id=member_id)
    household = get_household(household_id=member.household_id, lock=lock)
    actor = get_acting_member(household=household, user=user)
    require_permission(actor, APPROVE_JOIN_REQUESTS)

    if not member.is_managed:
        raise NotManagedMemberError("Member already has a user account")
    return member


@transaction.atomic
def regenerate_claim_code(*, member_id: UUID, user: User) -> str:
    member = _get_managed_member_for_code(member_id, user, lock=True)
    member.claim_code = _unique_claim_code()
    member.save(update_fields=['claim_code', 'updated_at'])
    return member.claim_code


def get_claim_code(*, member_id: UUID, user: User) -> str:
    member = _get_managed_member_for_code(member_id, user, lock=False)
    return member.claim_code
