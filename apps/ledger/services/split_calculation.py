"""
Split calculation.

Pure functions, no database access. Every amount is a Decimal with two
decimal places and every division hands its rounding remainder to one
member, so the parts of an amount always add up to exactly that amount.
"""

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Iterable, List, Optional, Sequence

from apps.ledger.models import PaidByType, SplitType

from .exceptions import InvalidSplitError

CENT = Decimal('0.01')
PERCENT_QUANTUM = Decimal('0.0001')
ZERO = Decimal('0.00')
HUNDRED = Decimal('100')


def _ensure_unique(member_ids: Sequence) -> None:
    if len(set(member_ids)) != len(member_ids):
        raise InvalidSplitError("A member may appear only once in a split")


def divide_evenly(amount: Decimal, member_ids: Sequence) -> Dict:
    """
    Split an amount equally.

    Each share is ``amount / N`` rounded half-even to cents. The
    remainder ``amount - share * N`` (positive or negative) goes to the
    first member.

    Example:
        100.00 among 3 members::

            >>> divide_evenly(Decimal('100.00'), [a, b, c])
            {a: Decimal('33.34'), b: Decimal('33.33'), c: Decimal('33.33')}
    """
    member_ids = list(member_ids)
    if not member_ids:
        return {}
    _ensure_unique(member_ids)

    count = len(member_ids)
    share = (amount / count).quantize(CENT, rounding=ROUND_HALF_EVEN)
    remainder = amount - share * count

    shares = {member_id: share for member_id in member_ids}
    shares[member_ids[0]] += remainder

    # Verification (safety check)
    total_check = sum(shares.values(), ZERO)
    if total_check != amount:
        raise InvalidSplitError(f"Split calculation error: {total_check} != {amount}")

    return shares


def allocate_proportionally(amount: Decimal, weights: Dict) -> Dict:
    """
    Split an amount in proportion to weights.

    Same rounding as ``divide_evenly``; the remainder goes to the first
    member with a non-zero weight. Weights that are all zero yield all
    zero parts.
    """
    if any(weight < 0 for weight in weights.values()):
        raise InvalidSplitError("Weights must not be negative")

    total_weight = sum(weights.values(), ZERO)
    if total_weight == 0:
        return {member_id: ZERO for member_id in weights}

    parts = {
        member_id: (amount * weight / total_weight).quantize(CENT, rounding=ROUND_HALF_EVEN)
        for member_id, weight in weights.items()
    }
    remainder = amount - sum(parts.values(), ZERO)
    if remainder:
        first = next(member_id for member_id, weight in weights.items() if weight != 0)
        parts[first] += remainder

    return parts


def derive_percentage(amount: Decimal, total: Decimal) -> Decimal:
    """``amount / total * 100`` to four decimal places, 0 when total is 0."""
    if not total:
        return Decimal('0.0000')
    return (amount / total * HUNDRED).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN)


def _sole(amount: Decimal, member_ids: Sequence, chosen_id) -> Dict:
    return {member_id: (amount if member_id == chosen_id else ZERO) for member_id in member_ids}


def _custom(amount: Decimal, member_ids: Sequence, given: Optional[Dict], column: str) -> Dict:
    if given is None:
        return divide_evenly(amount, member_ids)

    unknown = set(given) - set(member_ids)
    if unknown:
        raise InvalidSplitError(f"{column} amounts name members outside the split")

    values = {}
    for member_id in member_ids:
        value = Decimal(str(given.get(member_id, ZERO)))
        if value < 0:
            raise InvalidSplitError(f"{column} amounts must not be negative")
        if value != value.quantize(CENT):
            raise InvalidSplitError(f"{column} amounts may have at most two decimal places")
        values[member_id] = value.quantize(CENT)
    return values


def _build_records(amount: Decimal, member_ids: Iterable, owed: Dict, paid: Dict) -> List[dict]:
    return [
        {
            'member_id': member_id,
            'owed_amount': owed[member_id],
            'owed_percentage': derive_percentage(owed[member_id], amount),
            'paid_amount': paid[member_id],
            'paid_percentage': derive_percentage(paid[member_id], amount),
        }
        for member_id in member_ids
    ]


def calculate_splits(
    *,
    amount: Decimal,
    member_ids: Sequence,
    split_type: str,
    paid_by_type: str,
    payer_id=None,
    split_member_id=None,
    owed_amounts: Optional[Dict] = None,
    paid_amounts: Optional[Dict] = None,
) -> List[dict]:
    """
    Build one split record per eligible member from a split policy.

    Owed side:
        custom       caller ``owed_amounts`` if given, else equal division
        member_only  ``split_member_id`` owes everything
        payer_only   ``payer_id`` owes everything

    Paid side:
        single       ``payer_id`` paid everything
        custom       caller ``paid_amounts`` if given, else equal division

    Percentages are always derived from the amounts.

    Returns:
        List of dicts with member_id, owed_amount, owed_percentage,
        paid_amount and paid_percentage. Empty when ``member_ids`` is
        empty; callers must reject that.

    Raises:
        InvalidSplitError: If a required payer or designated member is
            missing or outside ``member_ids``, or a policy is unknown
    """
    member_ids = list(member_ids)
    if not member_ids:
        return []
    _ensure_unique(member_ids)
    eligible = set(member_ids)

    def _require(member_id, label):
        if member_id is None:
            raise InvalidSplitError(f"{label} is required for this split policy")
        if member_id not in eligible:
            raise InvalidSplitError(f"{label} is not among the split members")

    if split_type == SplitType.CUSTOM:
        owed = _custom(amount, member_ids, owed_amounts, 'Owed')
    elif split_type == SplitType.MEMBER_ONLY:
        _require(split_member_id, 'Split member')
        owed = _sole(amount, member_ids, split_member_id)
    elif split_type == SplitType.PAYER_ONLY:
        _require(payer_id, 'Payer')
        owed = _sole(amount, member_ids, payer_id)
    else:
        raise InvalidSplitError(f"Unknown split type: {split_type}")

    if paid_by_type == PaidByType.SINGLE:
        _require(payer_id, 'Payer')
        paid = _sole(amount, member_ids, payer_id)
    elif paid_by_type == PaidByType.CUSTOM:
        paid = _custom(amount, member_ids, paid_amounts, 'Paid')
    else:
        raise InvalidSplitError(f"Unknown paid-by type: {paid_by_type}")

    return _build_records(amount, member_ids, owed, paid)


def normalize_splits(amount: Decimal, splits: Iterable[dict]) -> List[dict]:
    """
    Clean a caller-supplied split set.

    Rejects duplicate members, negative values and values with more
    than two decimal places. Caller percentages are ignored and
    recomputed from the amounts. Totals are not checked here.
    """
    splits = list(splits)
    member_ids = [split['member_id'] for split in splits]
    _ensure_unique(member_ids)

    owed, paid = {}, {}
    for split in splits:
        member_id = split['member_id']
        for column, target in (('owed_amount', owed), ('paid_amount', paid)):
            value = Decimal(str(split.get(column) or ZERO))
            if value < 0:
                raise InvalidSplitError("Split amounts must not be negative")
            if value != value.quantize(CENT):
                raise InvalidSplitError("Split amounts may have at most two decimal places")
            target[member_id] = value.quantize(CENT)

    return _build_records(amount, member_ids, owed, paid)
