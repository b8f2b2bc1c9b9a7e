import datetime
from decimal import Decimal

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.households.models import HouseholdMember, MemberRole, MemberStatus
from apps.households.services import create_household
from apps.ledger.models import PaidByType, SplitType, TransactionType
from apps.ledger.services import create_transaction_with_splits


def make_client(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


def _user(email, name):
    return User.objects.create_user(email=email, password='TestPass123!', display_name=name)


@pytest.fixture
def alice(db):
    """Household owner."""
    return _user('alice@example.com', 'Alice')


@pytest.fixture
def bob(db):
    return _user('bob@example.com', 'Bob')


@pytest.fixture
def carol(db):
    return _user('carol@example.com', 'Carol')


@pytest.fixture
def outsider(db):
    return _user('outsider@example.com', 'Oscar')


@pytest.fixture
def household(alice):
    return create_household(name='Flat 3B', user=alice)


@pytest.fixture
def alice_member(household, alice):
    return household.members.get(user=alice)


@pytest.fixture
def bob_member(household, bob, alice_member):
    return HouseholdMember.objects.create(
        household=household,
        user=bob,
        display_name='Bob',
        status=MemberStatus.APPROVED,
        role=MemberRole.MEMBER,
    )


@pytest.fixture
def carol_member(household, carol, bob_member):
    return HouseholdMember.objects.create(
        household=household,
        user=carol,
        display_name='Carol',
        status=MemberStatus.APPROVED,
        role=MemberRole.MEMBER,
    )


@pytest.fixture
def pending_member(household, outsider):
    return HouseholdMember.objects.create(
        household=household,
        user=outsider,
        display_name='Oscar',
        status=MemberStatus.PENDING,
        role=MemberRole.MEMBER,
    )


@pytest.fixture
def make_expense(household, alice):
    """Return a callable recording an expense with explicit splits."""

    def _make(amount, splits, payer=None, user=None):
        return create_transaction_with_splits(
            household_id=household.id,
            user=user or alice,
            transaction_type=TransactionType.EXPENSE,
            amount=Decimal(amount),
            date=datetime.date(2024, 3, 1),
            description='Groceries',
            paid_by_member_id=payer.id if payer else None,
            split_type=SplitType.CUSTOM,
            paid_by_type=PaidByType.CUSTOM if payer is None else PaidByType.SINGLE,
            splits=[
                {'member_id': member.id, 'owed_amount': Decimal(owed), 'paid_amount': Decimal(paid)}
                for member, owed, paid in splits
            ],
        )

    return _make


@pytest.fixture
def alice_client(alice):
    return make_client(alice)


@pytest.fixture
def bob_client(bob):
    return make_client(bob)


@pytest.fixture
def outsider_client(outsider):
    return make_client(outsider)


@pytest.fixture
def api_client():
    return APIClient()
