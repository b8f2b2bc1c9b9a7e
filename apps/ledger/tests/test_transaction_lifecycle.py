"""
Tests for creating, updating and deleting transactions.

Tests cover:
- Expenses with explicit and generated splits
- Settlement, income and reimbursement rules
- Split replacement on update
- Reimbursed expenses and deletion guards
- Authorization of the acting user
"""

import datetime
import uuid
from decimal import Decimal

import pytest

from apps.ledger.models import PaidByType, SplitType, Transaction, TransactionSplit, TransactionType
from apps.ledger.services import (
    AuthorizationError,
    InvalidAmountError,
    InvalidParticipantError,
    InvalidReimbursementError,
    InvalidSplitError,
    MissingParticipantError,
    NoEligibleMembersError,
    ReimbursedTransactionError,
    SplitReconciliationError,
    TransactionNotFoundError,
    ValidationError,
    create_transaction_with_splits,
    delete_transaction,
    generate_legacy_splits,
    get_transaction,
    list_transactions,
    update_transaction_with_splits,
)

DAY = datetime.date(2024, 3, 1)


def _expense(household, user, amount='10.00', **fields):
    defaults = {
        'split_type': SplitType.CUSTOM,
        'paid_by_type': PaidByType.SINGLE,
    }
    defaults.update(fields)
    return create_transaction_with_splits(
        household_id=household.id,
        user=user,
        transaction_type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        date=DAY,
        **defaults
    )


def _split_map(txn, column='owed_amount'):
    return {split.member_id: getattr(split, column) for split in txn.splits.all()}


@pytest.mark.django_db
class TestCreateExpense:

    def test_generated_splits(self, household, alice, alice_member, bob_member, carol_member):
        txn = _expense(household, alice, '100.00', paid_by_member_id=bob_member.id)

        owed = _split_map(txn)
        paid = _split_map(txn, 'paid_amount')
        assert owed == {
            alice_member.id: Decimal('33.34'),
            bob_member.id: Decimal('33.33'),
            carol_member.id: Decimal('33.33'),
        }
        assert paid[bob_member.id] == Decimal('100.00')
        assert txn.created_by == alice

    def test_explicit_splits(self, household, alice, alice_member, bob_member, make_expense):
        txn = make_expense('10.00', [
            (alice_member, '7.00', '10.00'),
            (bob_member, '3.00', '0.00'),
        ], payer=alice_member)

        split = txn.splits.get(member=alice_member)
        assert split.owed_amount == Decimal('7.00')
        assert split.owed_percentage == Decimal('70.0000')
        assert split.paid_percentage == Decimal('100.0000')

    def test_explicit_splits_may_name_inactive_members(self, household, alice, alice_member, bob_member, make_expense):
        bob_member.status = 'inactive'
        bob_member.save()

        txn = make_expense('4.00', [(alice_member, '2.00', '4.00'), (bob_member, '2.00', '0.00')])
        assert txn.splits.count() == 2

    def test_payer_only(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, split_type=SplitType.PAYER_ONLY, paid_by_member_id=bob_member.id)

        assert _split_map(txn) == {alice_member.id: Decimal('0.00'), bob_member.id: Decimal('10.00')}

    def test_member_only(self, household, alice, alice_member, bob_member):
        txn = _expense(
            household, alice,
            split_type=SplitType.MEMBER_ONLY,
            paid_by_member_id=alice_member.id,
            split_member_id=bob_member.id,
        )

        assert txn.split_member == bob_member
        assert _split_map(txn)[bob_member.id] == Decimal('10.00')

    def test_member_only_requires_designated_member(self, household, alice, alice_member):
        with pytest.raises(MissingParticipantError):
            _expense(household, alice, split_type=SplitType.MEMBER_ONLY, paid_by_member_id=alice_member.id)

    def test_single_payer_required(self, household, alice, alice_member):
        with pytest.raises(MissingParticipantError):
            _expense(household, alice)

    def test_split_policy_required(self, household, alice, alice_member):
        with pytest.raises(InvalidSplitError):
            _expense(household, alice, split_type=None, paid_by_member_id=alice_member.id)

    def test_mismatched_totals_rejected(self, household, alice, alice_member, bob_member, make_expense):
        with pytest.raises(SplitReconciliationError):
            make_expense('10.00', [(alice_member, '6.00', '10.00'), (bob_member, '3.00', '0.00')])

        assert not Transaction.objects.exists()

    def test_owed_and_paid_must_match(self, household, alice, alice_member, make_expense):
        with pytest.raises(SplitReconciliationError):
            make_expense('10.00', [(alice_member, '9.99', '10.00')])

    def test_duplicate_split_member_rejected(self, household, alice, alice_member, make_expense):
        with pytest.raises(InvalidSplitError):
            make_expense('10.00', [(alice_member, '5.00', '5.00'), (alice_member, '5.00', '5.00')])

    def test_split_member_outside_household(self, household, alice, alice_member, outsider):
        from apps.households.services import create_household

        stranger = create_household(name='Elsewhere', user=outsider).members.get()
        with pytest.raises(InvalidParticipantError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.EXPENSE,
                amount=Decimal('5.00'),
                date=DAY,
                split_type=SplitType.CUSTOM,
                paid_by_type=PaidByType.CUSTOM,
                splits=[{'member_id': stranger.id, 'owed_amount': Decimal('5.00'), 'paid_amount': Decimal('5.00')}],
            )

    def test_pending_payer_rejected(self, household, alice, alice_member, pending_member):
        with pytest.raises(InvalidParticipantError):
            _expense(household, alice, paid_by_member_id=pending_member.id)

    def test_fallback_disabled(self, settings, household, alice, alice_member):
        settings.LEDGER_LEGACY_SPLIT_FALLBACK = False

        with pytest.raises(InvalidSplitError):
            _expense(household, alice, paid_by_member_id=alice_member.id)

    def test_no_eligible_members(self, household, alice_member):
        alice_member.status = 'inactive'
        alice_member.save()

        with pytest.raises(NoEligibleMembersError):
            generate_legacy_splits(
                household=household,
                amount=Decimal('5.00'),
                split_type=SplitType.CUSTOM,
                paid_by_type=PaidByType.CUSTOM,
            )

    @pytest.mark.parametrize('amount', ['0', '-5.00', '1.005', 'abc'])
    def test_invalid_amount(self, household, alice, alice_member, amount):
        with pytest.raises(InvalidAmountError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.INCOME,
                amount=amount,
                date=DAY,
            )

    def test_unknown_type(self, household, alice, alice_member):
        with pytest.raises(ValidationError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type='gift',
                amount=Decimal('5.00'),
                date=DAY,
            )

    def test_outsider_rejected(self, household, alice_member, outsider):
        with pytest.raises(AuthorizationError):
            _expense(household, outsider, paid_by_member_id=alice_member.id)

    def test_pending_user_rejected(self, household, alice_member, pending_member, outsider):
        with pytest.raises(AuthorizationError):
            _expense(household, outsider, paid_by_member_id=alice_member.id)


@pytest.mark.django_db
class TestCreateOtherTypes:

    def test_settlement(self, household, alice, alice_member, bob_member):
        txn = create_transaction_with_splits(
            household_id=household.id,
            user=alice,
            transaction_type=TransactionType.SETTLEMENT,
            amount=Decimal('5.00'),
            date=DAY,
            paid_by_member_id=bob_member.id,
            paid_to_member_id=alice_member.id,
            split_type=SplitType.CUSTOM,
        )

        assert txn.splits.count() == 0
        assert txn.split_type is None

    def test_settlement_needs_both_members(self, household, alice, alice_member):
        with pytest.raises(MissingParticipantError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.SETTLEMENT,
                amount=Decimal('5.00'),
                date=DAY,
                paid_by_member_id=alice_member.id,
            )

    def test_settlement_with_self(self, household, alice, alice_member):
        with pytest.raises(InvalidParticipantError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.SETTLEMENT,
                amount=Decimal('5.00'),
                date=DAY,
                paid_by_member_id=alice_member.id,
                paid_to_member_id=alice_member.id,
            )

    def test_income_rejects_splits(self, household, alice, alice_member):
        with pytest.raises(InvalidSplitError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.INCOME,
                amount=Decimal('5.00'),
                date=DAY,
                splits=[{'member_id': alice_member.id, 'owed_amount': Decimal('5.00'), 'paid_amount': Decimal('5.00')}],
            )

    def test_reimbursement_cap(self, household, alice, alice_member, bob_member):
        expense = _expense(household, alice, '20.00', paid_by_member_id=alice_member.id)

        def _reimburse(amount):
            return create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.REIMBURSEMENT,
                amount=Decimal(amount),
                date=DAY,
                paid_by_member_id=alice_member.id,
                reimburses_id=expense.id,
            )

        first = _reimburse('15.00')
        assert first.reimburses == expense

        with pytest.raises(InvalidReimbursementError):
            _reimburse('5.01')

        _reimburse('5.00')
        assert expense.reimbursements.count() == 2

    def test_reimbursement_must_reference_expense(self, household, alice, alice_member):
        income = create_transaction_with_splits(
            household_id=household.id,
            user=alice,
            transaction_type=TransactionType.INCOME,
            amount=Decimal('50.00'),
            date=DAY,
            paid_by_member_id=alice_member.id,
        )

        for target in (income.id, uuid.uuid4()):
            with pytest.raises(InvalidReimbursementError):
                create_transaction_with_splits(
                    household_id=household.id,
                    user=alice,
                    transaction_type=TransactionType.REIMBURSEMENT,
                    amount=Decimal('5.00'),
                    date=DAY,
                    paid_by_member_id=alice_member.id,
                    reimburses_id=target,
                )

    def test_linked_reimbursement_needs_receiver(self, household, alice, alice_member):
        expense = _expense(household, alice, paid_by_member_id=alice_member.id)

        with pytest.raises(MissingParticipantError):
            create_transaction_with_splits(
                household_id=household.id,
                user=alice,
                transaction_type=TransactionType.REIMBURSEMENT,
                amount=Decimal('5.00'),
                date=DAY,
                reimburses_id=expense.id,
            )


@pytest.mark.django_db
class TestUpdateTransaction:

    def test_cosmetic_edit_keeps_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)
        split_ids = set(txn.splits.values_list('id', flat=True))

        updated = update_transaction_with_splits(
            transaction_id=txn.id,
            user=alice,
            description='Weekly shop',
            notes='Receipt on fridge',
        )

        assert updated.description == 'Weekly shop'
        assert set(updated.splits.values_list('id', flat=True)) == split_ids

    def test_amount_change_regenerates_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(
            household, alice,
            split_type=SplitType.MEMBER_ONLY,
            paid_by_member_id=alice_member.id,
            split_member_id=bob_member.id,
        )

        update_transaction_with_splits(transaction_id=txn.id, user=alice, amount=Decimal('30.00'))

        txn.refresh_from_db()
        assert txn.amount == Decimal('30.00')
        assert _split_map(txn) == {alice_member.id: Decimal('0.00'), bob_member.id: Decimal('30.00')}
        assert _split_map(txn, 'paid_amount')[alice_member.id] == Decimal('30.00')
        assert TransactionSplit.objects.filter(transaction=txn).count() == 2

    def test_amount_change_on_custom_split_needs_new_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)
        before = _split_map(txn)

        with pytest.raises(InvalidSplitError):
            update_transaction_with_splits(transaction_id=txn.id, user=alice, amount=Decimal('30.00'))

        txn.refresh_from_db()
        assert txn.amount == Decimal('10.00')
        assert _split_map(txn) == before

    def test_payer_change_keeps_custom_splits(self, household, alice, alice_member, bob_member, make_expense):
        txn = make_expense('10.00', [
            (alice_member, '7.00', '10.00'),
            (bob_member, '3.00', '0.00'),
        ])
        txn.paid_by_member = alice_member
        txn.save()
        split_ids = set(txn.splits.values_list('id', flat=True))

        update_transaction_with_splits(transaction_id=txn.id, user=alice, paid_by_member_id=bob_member.id)

        txn.refresh_from_db()
        assert txn.paid_by_member == bob_member
        assert set(txn.splits.values_list('id', flat=True)) == split_ids
        alice_split = txn.splits.get(member=alice_member)
        assert (alice_split.owed_amount, alice_split.paid_amount) == (Decimal('7.00'), Decimal('10.00'))

    def test_payer_change_regenerates_payer_only_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(
            household, alice,
            split_type=SplitType.PAYER_ONLY,
            paid_by_member_id=alice_member.id,
        )

        update_transaction_with_splits(transaction_id=txn.id, user=alice, paid_by_member_id=bob_member.id)

        assert _split_map(txn) == {alice_member.id: Decimal('0.00'), bob_member.id: Decimal('10.00')}
        assert _split_map(txn, 'paid_amount')[bob_member.id] == Decimal('10.00')

    def test_payer_change_on_custom_single_needs_new_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        with pytest.raises(InvalidSplitError):
            update_transaction_with_splits(transaction_id=txn.id, user=alice, paid_by_member_id=bob_member.id)

    def test_explicit_splits_replace_old_rows(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        update_transaction_with_splits(
            transaction_id=txn.id,
            user=alice,
            splits=[
                {'member_id': alice_member.id, 'owed_amount': Decimal('1.00'), 'paid_amount': Decimal('10.00')},
                {'member_id': bob_member.id, 'owed_amount': Decimal('9.00'), 'paid_amount': Decimal('0.00')},
            ],
        )

        assert _split_map(txn) == {alice_member.id: Decimal('1.00'), bob_member.id: Decimal('9.00')}

    def test_invalid_splits_leave_transaction_untouched(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)
        before = _split_map(txn)

        with pytest.raises(SplitReconciliationError):
            update_transaction_with_splits(
                transaction_id=txn.id,
                user=alice,
                description='Changed',
                splits=[{'member_id': alice_member.id, 'owed_amount': Decimal('2.00'), 'paid_amount': Decimal('2.00')}],
            )

        txn.refresh_from_db()
        assert txn.description == ''
        assert _split_map(txn) == before

    def test_changing_to_income_drops_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        update_transaction_with_splits(
            transaction_id=txn.id,
            user=alice,
            transaction_type=TransactionType.INCOME,
        )

        txn.refresh_from_db()
        assert txn.splits.count() == 0
        assert txn.split_type is None

    def test_reimbursed_expense(self, household, alice, alice_member, bob_member):
        expense = _expense(household, alice, paid_by_member_id=alice_member.id)
        create_transaction_with_splits(
            household_id=household.id,
            user=alice,
            transaction_type=TransactionType.REIMBURSEMENT,
            amount=Decimal('4.00'),
            date=DAY,
            paid_by_member_id=alice_member.id,
            reimburses_id=expense.id,
        )

        with pytest.raises(ReimbursedTransactionError):
            update_transaction_with_splits(transaction_id=expense.id, user=alice, amount=Decimal('12.00'))

        updated = update_transaction_with_splits(transaction_id=expense.id, user=alice, description='Refunded')
        assert updated.description == 'Refunded'

    def test_reimbursement_amount_update_respects_cap(self, household, alice, alice_member):
        expense = _expense(household, alice, paid_by_member_id=alice_member.id)
        refund = create_transaction_with_splits(
            household_id=household.id,
            user=alice,
            transaction_type=TransactionType.REIMBURSEMENT,
            amount=Decimal('4.00'),
            date=DAY,
            paid_by_member_id=alice_member.id,
            reimburses_id=expense.id,
        )

        update_transaction_with_splits(transaction_id=refund.id, user=alice, amount=Decimal('10.00'))
        with pytest.raises(InvalidReimbursementError):
            update_transaction_with_splits(transaction_id=refund.id, user=alice, amount=Decimal('10.01'))

    def test_unknown_field(self, household, alice, alice_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        with pytest.raises(TypeError):
            update_transaction_with_splits(transaction_id=txn.id, user=alice, household_id=uuid.uuid4())

    def test_not_found(self, alice):
        with pytest.raises(TransactionNotFoundError):
            update_transaction_with_splits(transaction_id=uuid.uuid4(), user=alice, description='x')

    def test_outsider(self, household, alice, alice_member, outsider):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        with pytest.raises(AuthorizationError):
            update_transaction_with_splits(transaction_id=txn.id, user=outsider, description='x')


@pytest.mark.django_db
class TestDeleteAndRead:

    def test_delete_removes_splits(self, household, alice, alice_member, bob_member):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        delete_transaction(transaction_id=txn.id, user=alice)

        assert not Transaction.objects.filter(id=txn.id).exists()
        assert not TransactionSplit.objects.filter(transaction_id=txn.id).exists()

    def test_delete_blocked_by_reimbursements(self, household, alice, alice_member):
        expense = _expense(household, alice, paid_by_member_id=alice_member.id)
        refund = create_transaction_with_splits(
            household_id=household.id,
            user=alice,
            transaction_type=TransactionType.REIMBURSEMENT,
            amount=Decimal('4.00'),
            date=DAY,
            paid_by_member_id=alice_member.id,
            reimburses_id=expense.id,
        )

        with pytest.raises(ReimbursedTransactionError):
            delete_transaction(transaction_id=expense.id, user=alice)

        delete_transaction(transaction_id=refund.id, user=alice)
        delete_transaction(transaction_id=expense.id, user=alice)
        assert not Transaction.objects.exists()

    def test_get_transaction_requires_membership(self, household, alice, alice_member, bob, bob_member, outsider):
        txn = _expense(household, alice, paid_by_member_id=alice_member.id)

        assert get_transaction(transaction_id=txn.id, user=bob) == txn
        with pytest.raises(AuthorizationError):
            get_transaction(transaction_id=txn.id, user=outsider)

    def test_list_filters(self, household, alice, alice_member, bob_member):
        expense = _expense(household, alice, paid_by_member_id=alice_member.id)
        income = create_transaction_with_splits(
            household_id=household.id,
            user=alice,
            transaction_type=TransactionType.INCOME,
            amount=Decimal('50.00'),
            date=datetime.date(2024, 4, 1),
            paid_by_member_id=alice_member.id,
        )

        assert list(list_transactions(household_id=household.id, user=alice)) == [income, expense]
        assert list(list_transactions(
            household_id=household.id, user=alice, transaction_type=TransactionType.EXPENSE
        )) == [expense]
        assert list(list_transactions(
            household_id=household.id, user=alice, date_from=datetime.date(2024, 3, 15)
        )) == [income]
        assert list(list_transactions(
            household_id=household.id, user=alice, date_to=datetime.date(2024, 3, 15)
        )) == [expense]
