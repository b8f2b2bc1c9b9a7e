"""
Member balance aggregation.

Balances are derived on every read and never stored. Reads take no
locks and see only committed transactions.

Per member:
    total_paid   what the member put in
    total_share  what the member consumed
    balance      total_paid - total_share (positive: others owe them)

Contributions by transaction type:
    expense        splits: paid_amount into total_paid, owed_amount into total_share
    settlement     payer total_paid += X, recipient total_share += X
    reimbursement  linked only: receiver total_paid -= X, owers of the
                   reimbursed expense total_share -= X split by their owed share
    income         none
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import List
from uuid import UUID

from django.db.models import Sum

from apps.households.models import MemberStatus
from apps.households.services.access import get_household
from apps.ledger.models import Transaction, TransactionSplit, TransactionType

from .split_calculation import allocate_proportionally

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
HEALTH_TOLERANCE = Decimal('0.01')


def _reimbursement_weights(household_id: UUID, expense_ids) -> dict:
    """Owed amounts per member for each reimbursed expense, in member join order."""
    weights = defaultdict(dict)
    rows = (
        TransactionSplit.objects
        .filter(transaction_id__in=expense_ids, transaction__household_id=household_id)
        .order_by('member__joined_at', 'member_id')
        .values_list('transaction_id', 'member_id', 'owed_amount')
    )
    for transaction_id, member_id, owed_amount in rows:
        if owed_amount:
            weights[transaction_id][member_id] = owed_amount
    return weights


def get_member_balances(*, household_id: UUID) -> List[dict]:
    """
    Compute balances for every approved or inactive member.

    Returns:
        List of dicts ordered by join time with member_id, display_name,
        status, total_paid, total_share and balance

    Raises:
        HouseholdNotFoundError: If household doesn't exist
    """
    household = get_household(household_id=household_id)
    members = list(
        household.members
        .filter(status__in=[MemberStatus.APPROVED, MemberStatus.INACTIVE])
        .order_by('joined_at', 'id')
    )

    paid = {member.id: ZERO for member in members}
    share = {member.id: ZERO for member in members}

    def _add(column, member_id, value):
        if member_id in column:
            column[member_id] += value

    # Expenses
    split_totals = (
        TransactionSplit.objects
        .filter(
            transaction__household_id=household_id,
            transaction__transaction_type=TransactionType.EXPENSE,
        )
        .values('member_id')
        .annotate(paid_sum=Sum('paid_amount'), owed_sum=Sum('owed_amount'))
    )
    for row in split_totals:
        _add(paid, row['member_id'], row['paid_sum'] or ZERO)
        _add(share, row['member_id'], row['owed_sum'] or ZERO)

    # Settlements
    settlements = (
        Transaction.objects
        .filter(household_id=household_id, transaction_type=TransactionType.SETTLEMENT)
        .values_list('paid_by_member_id', 'paid_to_member_id', 'amount')
    )
    for payer_id, recipient_id, amount in settlements:
        _add(paid, payer_id, amount)
        _add(share, recipient_id, amount)

    # Linked reimbursements
    reimbursements = list(
        Transaction.objects
        .filter(
            household_id=household_id,
            transaction_type=TransactionType.REIMBURSEMENT,
            reimburses__isnull=False,
        )
        .values_list('paid_by_member_id', 'reimburses_id', 'amount')
    )
    weights = _reimbursement_weights(household_id, {expense_id for _, expense_id, _ in reimbursements})
    for receiver_id, expense_id, amount in reimbursements:
        _add(paid, receiver_id, -amount)
        for member_id, reduction in allocate_proportionally(amount, weights[expense_id]).items():
            _add(share, member_id, -reduction)

    return [
        {
            'member_id': member.id,
            'display_name': member.display_name,
            'status': member.status,
            'total_paid': paid[member.id],
            'total_share': share[member.id],
            'balance': paid[member.id] - share[member.id],
        }
        for member in members
    ]


def get_balance_health(*, household_id: UUID) -> dict:
    """
    Check that member balances sum to zero.

    An imbalance is logged at WARNING and returned as data; it is
    never raised.

    Returns:
        Dict with household_id, status ('OK' or 'IMBALANCED'),
        total_imbalance, member_count and message (None when OK)
    """
    balances = get_member_balances(household_id=household_id)
    total = sum((row['balance'] for row in balances), ZERO)

    if abs(total) < HEALTH_TOLERANCE:
        return {
            'household_id': household_id,
            'status': 'OK',
            'total_imbalance': total,
            'member_count': len(balances),
            'message': None,
        }

    message = f"Member balances do not sum to zero. Total imbalance: {total}"
    logger.warning("Household %s is imbalanced: %s", household_id, message)
    return {
        'household_id': household_id,
        'status': 'IMBALANCED',
        'total_imbalance': total,
        'member_count': len(balances),
        'message': message,
    }
