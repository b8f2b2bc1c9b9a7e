"""
Split validation.

``check_split_totals`` runs before anything is written.
``validate_transaction_splits`` re-checks the persisted rows inside the
same atomic block, so a bad write rolls back instead of committing.
``find_problematic_transactions`` reports expenses that already fail
the check; it never corrects them.
"""

import logging
from decimal import Decimal
from typing import Iterable, List
from uuid import UUID

from django.conf import settings
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce

from apps.ledger.models import Transaction, TransactionSplit, TransactionType

from .exceptions import SplitReconciliationError

logger = logging.getLogger(__name__)

SPLIT_TOLERANCE = Decimal('0.01')

_MONEY = DecimalField(max_digits=14, decimal_places=2)


def get_split_tolerance() -> Decimal:
    return Decimal(str(getattr(settings, 'LEDGER_SPLIT_TOLERANCE', SPLIT_TOLERANCE)))


def _totals_problem(amount: Decimal, owed_sum: Decimal, paid_sum: Decimal) -> str:
    """Describe why totals do not reconcile, or return '' when they do."""
    tolerance = get_split_tolerance()
    if abs(owed_sum - amount) > tolerance:
        return f"Owed amounts total {owed_sum}, expected {amount}"
    if abs(paid_sum - amount) > tolerance:
        return f"Paid amounts total {paid_sum}, expected {amount}"
    return ''


def check_split_totals(amount: Decimal, splits: Iterable[dict]) -> None:
    """
    Check a split set before it is persisted.

    Raises:
        SplitReconciliationError: If owed or paid totals miss the amount
            by more than the tolerance, or differ from each other at all
    """
    splits = list(splits)
    owed_sum = sum((split['owed_amount'] for split in splits), Decimal('0.00'))
    paid_sum = sum((split['paid_amount'] for split in splits), Decimal('0.00'))

    problem = _totals_problem(amount, owed_sum, paid_sum)
    if problem:
        raise SplitReconciliationError(problem)
    if owed_sum != paid_sum:
        # Any gap between the columns would leave member balances off zero
        raise SplitReconciliationError(
            f"Owed total {owed_sum} does not equal paid total {paid_sum}"
        )


def validate_transaction_splits(*, transaction_id: UUID, expected_amount: Decimal) -> None:
    """
    Verify the persisted splits of one transaction.

    Must run inside the atomic block that wrote the splits. A violation
    is logged at ERROR and raised; nothing is corrected.
    """
    totals = TransactionSplit.objects.filter(transaction_id=transaction_id).aggregate(
        owed_sum=Coalesce(Sum('owed_amount'), Value(Decimal('0.00')), output_field=_MONEY),
        paid_sum=Coalesce(Sum('paid_amount'), Value(Decimal('0.00')), output_field=_MONEY),
    )

    problem = _totals_problem(expected_amount, totals['owed_sum'], totals['paid_sum'])
    if problem:
        logger.error(
            "Split reconciliation failed for transaction %s: %s",
            transaction_id, problem,
        )
        raise SplitReconciliationError(problem)


def find_problematic_transactions(*, household_id: UUID) -> List[dict]:
    """
    List expenses whose persisted splits do not reconcile.

    An expense without any splits is included. Each record carries
    both sums and their differences from the expected amount.
    """
    expenses = (
        Transaction.objects
        .filter(household_id=household_id, transaction_type=TransactionType.EXPENSE)
        .annotate(
            owed_sum=Coalesce(Sum('splits__owed_amount'), Value(Decimal('0.00')), output_field=_MONEY),
            paid_sum=Coalesce(Sum('splits__paid_amount'), Value(Decimal('0.00')), output_field=_MONEY),
        )
        .order_by('date', 'created_at')
    )

    problems = []
    for expense in expenses:
        if not _totals_problem(expense.amount, expense.owed_sum, expense.paid_sum):
            continue
        problems.append({
            'transaction_id': expense.id,
            'household_id': expense.household_id,
            'date': expense.date,
            'description': expense.description,
            'expected_amount': expense.amount,
            'actual_owed_sum': expense.owed_sum,
            'actual_paid_sum': expense.paid_sum,
            'owed_difference': expense.owed_sum - expense.amount,
            'paid_difference': expense.paid_sum - expense.amount,
        })

    if problems:
        logger.warning(
            "Household %s has %d expense(s) with unreconciled splits",
            household_id, len(problems),
        )
    return problems
