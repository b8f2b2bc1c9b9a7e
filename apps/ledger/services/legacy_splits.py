"""
Split generation for expenses submitted without explicit splits.

Older clients send only the split policy (``split_type``,
``paid_by_type``, payer and designated member) and expect the server to
fill in the rows. The ``LEDGER_LEGACY_SPLIT_FALLBACK`` setting turns this
off once every client sends explicit splits.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from django.conf import settings

from apps.households.models import Household, HouseholdMember, MemberStatus

from .exceptions import InvalidSplitError, NoEligibleMembersError
from .split_calculation import calculate_splits

logger = logging.getLogger(__name__)


def legacy_fallback_enabled() -> bool:
    return getattr(settings, 'LEDGER_LEGACY_SPLIT_FALLBACK', True)


def generate_legacy_splits(
    *,
    household: Household,
    amount: Decimal,
    split_type: str,
    paid_by_type: str,
    payer: Optional[HouseholdMember] = None,
    split_member: Optional[HouseholdMember] = None,
) -> List[dict]:
    """
    Build splits over the household's approved members.

    Raises:
        InvalidSplitError: If the fallback is disabled
        NoEligibleMembersError: If the household has no approved members
    """
    if not legacy_fallback_enabled():
        raise InvalidSplitError("Expenses must be submitted with explicit splits")

    member_ids = list(
        household.members
        .filter(status=MemberStatus.APPROVED)
        .order_by('joined_at', 'id')
        .values_list('id', flat=True)
    )
    if not member_ids:
        raise NoEligibleMembersError("No approved members to split the expense between")

    logger.debug(
        "Generating %s/%s splits over %d members for household %s",
        split_type, paid_by_type, len(member_ids), household.id,
    )
    return calculate_splits(
        amount=amount,
        member_ids=member_ids,
        split_type=split_type,
        paid_by_type=paid_by_type,
        payer_id=payer.id if payer else None,
        split_member_id=split_member.id if split_member else None,
    )
