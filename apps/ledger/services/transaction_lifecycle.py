"""
Transaction lifecycle service.

Creates, updates and deletes ledger transactions together with their
split sets. Each operation locks the household row, validates
everything before writing, writes the parent row and splits in one
atomic block, and re-checks the persisted splits before committing.
"""

import datetime
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import QuerySet, Sum

from apps.accounts.models import User
from apps.households.models import Household, HouseholdMember, MemberStatus
from apps.households.services.access import get_acting_member, get_household
from apps.ledger.models import (
    PaidByType,
    SplitType,
    Transaction,
    TransactionSplit,
    TransactionType,
)

from .exceptions import (
    InvalidAmountError,
    InvalidParticipantError,
    InvalidReimbursementError,
    InvalidSplitError,
    MissingParticipantError,
    NoEligibleMembersError,
    ReimbursedTransactionError,
    TransactionNotFoundError,
    ValidationError,
)
from .legacy_splits import generate_legacy_splits
from .split_calculation import CENT, normalize_splits
from .split_validation import check_split_totals, validate_transaction_splits

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
MAX_AMOUNT = Decimal('9999999999.99')

EDITABLE_FIELDS = frozenset({
    'transaction_type',
    'amount',
    'date',
    'description',
    'notes',
    'category_id',
    'paid_by_member_id',
    'paid_to_member_id',
    'split_type',
    'paid_by_type',
    'split_member_id',
    'reimburses_id',
    'excluded_from_budget',
    'splits',
})


def _validate_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid amount: {amount}")

    if not value.is_finite() or value <= 0:
        raise InvalidAmountError("Amount must be positive")
    if value > MAX_AMOUNT:
        raise InvalidAmountError("Amount is too large")
    if value != value.quantize(CENT):
        raise InvalidAmountError("Amount may have at most two decimal places")
    return value.quantize(CENT)


def _resolve_member(household: Household, member_id, label: str) -> Optional[HouseholdMember]:
    """Load a referenced member; it must belong to the household and not be pending."""
    if member_id is None:
        return None
    member = household.members.filter(id=member_id).first()
    if member is None:
        raise InvalidParticipantError(f"{label} is not a member of this household")
    if member.status == MemberStatus.PENDING:
        raise InvalidParticipantError(f"{label} has not been approved yet")
    return member


def _resolve_reimbursed_expense(
    household: Household,
    reimburses_id,
    amount: Decimal,
    exclude_id: Optional[UUID],
) -> Transaction:
    """Lock the reimbursed expense and check the reimbursements stay within its amount."""
    expense = (
        Transaction.objects
        .select_for_update()
        .filter(id=reimburses_id, household=household)
        .first()
    )
    if expense is None or not expense.is_expense:
        raise InvalidReimbursementError("A reimbursement must reference an expense in the same household")

    others = expense.reimbursements.all()
    if exclude_id is not None:
        others = others.exclude(id=exclude_id)
    already = others.aggregate(total=Sum('amount'))['total'] or ZERO

    if already + amount > expense.amount:
        raise InvalidReimbursementError(
            f"Reimbursements would total {already + amount}, "
            f"more than the expense amount {expense.amount}"
        )
    return expense


def _prepare_fields(*, household: Household, data: dict, exclude_id: Optional[UUID] = None) -> dict:
    """
    Validate transaction data and turn it into model field values.

    Split policy fields are only kept for expenses.
    """
    transaction_type = data.get('transaction_type')
    if transaction_type not in TransactionType.values:
        raise ValidationError(f"Unknown transaction type: {transaction_type}")

    amount = _validate_amount(data.get('amount'))

    date = data.get('date')
    if not isinstance(date, datetime.date):
        raise ValidationError("A transaction date is required")

    payer = _resolve_member(household, data.get('paid_by_member_id'), 'Payer')
    recipient = _resolve_member(household, data.get('paid_to_member_id'), 'Recipient')
    split_member = None
    split_type = None
    paid_by_type = None
    reimburses = None

    if transaction_type == TransactionType.EXPENSE:
        split_type = data.get('split_type')
        paid_by_type = data.get('paid_by_type')
        if split_type not in SplitType.values:
            raise InvalidSplitError("Expenses need a split type")
        if paid_by_type not in PaidByType.values:
            raise InvalidSplitError("Expenses need a paid-by type")
        if payer is None and (paid_by_type == PaidByType.SINGLE or split_type == SplitType.PAYER_ONLY):
            raise MissingParticipantError("This expense needs a paying member")
        if split_type == SplitType.MEMBER_ONLY:
            split_member = _resolve_member(household, data.get('split_member_id'), 'Split member')
            if split_member is None:
                raise MissingParticipantError("Member-only expenses need a designated member")

    elif transaction_type == TransactionType.SETTLEMENT:
        if payer is None or recipient is None:
            raise MissingParticipantError("Settlements need a paying and a receiving member")
        if payer.id == recipient.id:
            raise InvalidParticipantError("A member cannot settle with themselves")

    elif transaction_type == TransactionType.REIMBURSEMENT:
        reimburses_id = data.get('reimburses_id')
        if reimburses_id is not None:
            if payer is None:
                raise MissingParticipantError("Linked reimbursements need a receiving member")
            reimburses = _resolve_reimbursed_expense(household, reimburses_id, amount, exclude_id)

    return {
        'transaction_type': transaction_type,
        'amount': amount,
        'date': date,
        'description': data.get('description') or '',
        'notes': data.get('notes') or '',
        'category_id': data.get('category_id'),
        'paid_by_member': payer,
        'paid_to_member': recipient,
        'split_member': split_member,
        'split_type': split_type,
        'paid_by_type': paid_by_type,
        'reimburses': reimburses,
        'excluded_from_budget': bool(data.get('excluded_from_budget')),
    }


def _build_splits(*, household: Household, fields: dict, splits) -> List[dict]:
    """
    Produce the split rows a transaction should carry.

    Expenses use the caller's explicit splits, or the legacy generator
    when none are given. Other types carry no splits.
    """
    if fields['transaction_type'] != TransactionType.EXPENSE:
        if splits:
            raise InvalidSplitError("Only expenses can have splits")
        return []

    if splits:
        rows = normalize_splits(fields['amount'], splits)
        for row in rows:
            _resolve_member(household, row['member_id'], 'Split member')
    else:
        rows = generate_legacy_splits(
            household=household,
            amount=fields['amount'],
            split_type=fields['split_type'],
            paid_by_type=fields['paid_by_type'],
            payer=fields['paid_by_member'],
            split_member=fields['split_member'],
        )

    if not rows:
        raise NoEligibleMembersError("An expense needs at least one split member")

    check_split_totals(fields['amount'], rows)
    return rows


def _write_splits(txn: Transaction, rows: List[dict]) -> None:
    TransactionSplit.objects.bulk_create([
        TransactionSplit(
            transaction=txn,
            member_id=row['member_id'],
            owed_amount=row['owed_amount'],
            owed_percentage=row['owed_percentage'],
            paid_amount=row['paid_amount'],
            paid_percentage=row['paid_percentage'],
        )
        for row in rows
    ])
    if rows:
        validate_transaction_splits(transaction_id=txn.id, expected_amount=txn.amount)


def _lock_transaction(*, transaction_id: UUID, user: User) -> Transaction:
    """Lock the transaction's household, check the actor, then lock the transaction."""
    household_id = (
        Transaction.objects
        .filter(id=transaction_id)
        .values_list('household_id', flat=True)
        .first()
    )
    if household_id is None:
        raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")

    household = get_household(household_id=household_id, lock=True)
    get_acting_member(household=household, user=user)

    try:
        return Transaction.objects.select_for_update().get(id=transaction_id)
    except Transaction.DoesNotExist:
        raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")


@transaction.atomic
def create_transaction_with_splits(
    *,
    household_id: UUID,
    user: User,
    transaction_type: str,
    amount: Decimal,
    date: datetime.date,
    description: str = '',
    notes: str = '',
    category_id: Optional[UUID] = None,
    paid_by_member_id: Optional[UUID] = None,
    paid_to_member_id: Optional[UUID] = None,
    split_type: Optional[str] = None,
    paid_by_type: Optional[str] = None,
    split_member_id: Optional[UUID] = None,
    reimburses_id: Optional[UUID] = None,
    excluded_from_budget: bool = False,
    splits: Optional[List[dict]] = None,
) -> Transaction:
    """
    Record a transaction and its splits atomically.

    Args:
        household_id: UUID of the household
        user: Acting user, must be an approved member
        transaction_type: expense, income, settlement or reimbursement
        amount: Positive amount with at most two decimal places
        splits: Explicit split rows for expenses (member_id, owed_amount,
            paid_amount). When omitted the rows are generated from the
            split policy over the approved members.

    Returns:
        Created Transaction instance

    Raises:
        NotHouseholdMemberError: If the user is not an approved member
        ValidationError: If any field, participant or split is invalid
    """
    household = get_household(household_id=household_id, lock=True)
    get_acting_member(household=household, user=user)

    fields = _prepare_fields(household=household, data={
        'transaction_type': transaction_type,
        'amount': amount,
        'date': date,
        'description': description,
        'notes': notes,
        'category_id': category_id,
        'paid_by_member_id': paid_by_member_id,
        'paid_to_member_id': paid_to_member_id,
        'split_type': split_type,
        'paid_by_type': paid_by_type,
        'split_member_id': split_member_id,
        'reimburses_id': reimburses_id,
        'excluded_from_budget': excluded_from_budget,
    })
    rows = _build_splits(household=household, fields=fields, splits=splits)

    txn = Transaction.objects.create(household=household, created_by=user, **fields)
    _write_splits(txn, rows)

    logger.info(
        "Created %s %s of %s in household %s with %d split(s)",
        txn.transaction_type, txn.id, txn.amount, household.id, len(rows),
    )
    return txn


def _current_data(txn: Transaction) -> dict:
    return {
        'transaction_type': txn.transaction_type,
        'amount': txn.amount,
        'date': txn.date,
        'description': txn.description,
        'notes': txn.notes,
        'category_id': txn.category_id,
        'paid_by_member_id': txn.paid_by_member_id,
        'paid_to_member_id': txn.paid_to_member_id,
        'split_type': txn.split_type,
        'paid_by_type': txn.paid_by_type,
        'split_member_id': txn.split_member_id,
        'reimburses_id': txn.reimburses_id,
        'excluded_from_budget': txn.excluded_from_budget,
    }


def _changes_split_set(txn: Transaction, fields: dict) -> bool:
    """
    Whether the new field values invalidate the stored split rows.

    The payer and the designated member only count when the split
    policy uses them.
    """
    if (
        fields['transaction_type'] != txn.transaction_type
        or fields['amount'] != txn.amount
        or fields['split_type'] != txn.split_type
        or fields['paid_by_type'] != txn.paid_by_type
    ):
        return True

    uses_payer = (
        fields['paid_by_type'] == PaidByType.SINGLE
        or fields['split_type'] == SplitType.PAYER_ONLY
    )
    if uses_payer and getattr(fields['paid_by_member'], 'id', None) != txn.paid_by_member_id:
        return True

    uses_split_member = fields['split_type'] == SplitType.MEMBER_ONLY
    return uses_split_member and getattr(fields['split_member'], 'id', None) != txn.split_member_id


def _has_custom_side(fields: dict) -> bool:
    return fields['split_type'] == SplitType.CUSTOM or fields['paid_by_type'] == PaidByType.CUSTOM


@transaction.atomic
def update_transaction_with_splits(*, transaction_id: UUID, user: User, **changes) -> Transaction:
    """
    Update a transaction, replacing its split set when needed.

    Only the fields passed in ``changes`` are modified. The split set is
    replaced (old rows deleted, new rows inserted) when ``splits`` is
    passed or when amount, type or split policy change, or when the payer
    or designated member changes and the policy uses them; otherwise the
    stored rows are kept. Without ``splits`` the new rows are generated
    from the policy, which is refused for an expense with a custom side
    because its stored amounts cannot be rebuilt.

    An expense with linked reimbursements may only receive cosmetic
    edits (date, description, notes, category, budget flag).

    Raises:
        TransactionNotFoundError: If the transaction doesn't exist
        ReimbursedTransactionError: If a reimbursed expense would change amount, type or splits
        ValidationError: As for create_transaction_with_splits
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise TypeError(f"Unexpected transaction fields: {', '.join(sorted(unknown))}")

    txn = _lock_transaction(transaction_id=transaction_id, user=user)
    household = txn.household

    splits = changes.pop('splits', None)
    data = _current_data(txn)
    data.update(changes)

    fields = _prepare_fields(household=household, data=data, exclude_id=txn.id)
    replace_splits = splits is not None or _changes_split_set(txn, fields)

    if replace_splits and txn.reimbursements.exists():
        raise ReimbursedTransactionError(
            "This expense has reimbursements; its amount, type and splits cannot change"
        )

    if (
        replace_splits
        and splits is None
        and txn.is_expense
        and fields['transaction_type'] == TransactionType.EXPENSE
        and _has_custom_side(fields)
    ):
        # Stored custom amounts cannot be derived from the policy fields
        raise InvalidSplitError("Changing this expense needs the new custom split set")

    rows = _build_splits(household=household, fields=fields, splits=splits) if replace_splits else None

    for name, value in fields.items():
        setattr(txn, name, value)
    txn.save()

    if replace_splits:
        txn.splits.all().delete()
        _write_splits(txn, rows)

    logger.info(
        "Updated transaction %s in household %s%s",
        txn.id, household.id, ' (splits replaced)' if replace_splits else '',
    )
    return txn


@transaction.atomic
def delete_transaction(*, transaction_id: UUID, user: User) -> None:
    """
    Delete a transaction and its splits.

    Raises:
        ReimbursedTransactionError: If reimbursements still point at it
    """
    txn = _lock_transaction(transaction_id=transaction_id, user=user)

    if txn.reimbursements.exists():
        raise ReimbursedTransactionError(
            "Delete the reimbursements of this expense before deleting it"
        )

    household_id = txn.household_id
    txn.delete()
    logger.info("Deleted transaction %s from household %s", transaction_id, household_id)


def get_transaction(*, transaction_id: UUID, user: User) -> Transaction:
    try:
        txn = (
            Transaction.objects
            .select_related('household', 'paid_by_member', 'paid_to_member', 'split_member')
            .prefetch_related('splits__member')
            .get(id=transaction_id)
        )
    except Transaction.DoesNotExist:
        raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")

    get_acting_member(household=txn.household, user=user)
    return txn


def list_transactions(
    *,
    household_id: UUID,
    user: User,
    transaction_type: Optional[str] = None,
    date_from: Optional[datetime.date] = None,
    date_to: Optional[datetime.date] = None,
) -> QuerySet[Transaction]:
    """
    List a household's transactions, newest first.

    Raises:
        HouseholdNotFoundError: If household doesn't exist
        NotHouseholdMemberError: If the user is not an approved member
    """
    household = get_household(household_id=household_id)
    get_acting_member(household=household, user=user)

    queryset = (
        Transaction.objects
        .filter(household=household)
        .select_related('paid_by_member', 'paid_to_member', 'split_member')
        .prefetch_related('splits__member')
    )
    if transaction_type:
        queryset = queryset.filter(transaction_type=transaction_type)
    if date_from:
        queryset = queryset.filter(date__gte=date_from)
    if date_to:
        queryset = queryset.filter(date__lte=date_to)
    return queryset
