import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.households.models import HouseholdMember, MemberRole, MemberStatus
from apps.households.services import create_household, grant_default_permissions


def make_client(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def owner_user(db):
    """Create and return the household owner."""
    return User.objects.create_user(
        email='owner@example.com',
        password='TestPass123!',
        display_name='Olivia Owner',
    )


@pytest.fixture
def member_user(db):
    """Create and return a user who becomes an approved member."""
    return User.objects.create_user(
        email='member@example.com',
        password='TestPass123!',
        display_name='Max Member',
    )


@pytest.fixture
def third_user(db):
    """Create and return a second approved member."""
    return User.objects.create_user(
        email='third@example.com',
        password='TestPass123!',
        display_name='Theo Third',
    )


@pytest.fixture
def outsider_user(db):
    """Create and return a user not in any household."""
    return User.objects.create_user(
        email='outsider@example.com',
        password='TestPass123!',
        display_name='Oscar Outsider',
    )


@pytest.fixture
def household(owner_user):
    """Create a household owned by owner_user."""
    return create_household(name='Flat 3B', user=owner_user)


@pytest.fixture
def owner_member(household, owner_user):
    return household.members.get(user=owner_user)


@pytest.fixture
def approved_member(household, member_user):
    """member_user as an approved member with default permissions."""
    member = HouseholdMember.objects.create(
        household=household,
        user=member_user,
        display_name='Max',
        status=MemberStatus.APPROVED,
        role=MemberRole.MEMBER,
    )
    grant_default_permissions(member)
    return member


@pytest.fixture
def second_member(household, third_user):
    """third_user as an approved member without a permission row."""
    return HouseholdMember.objects.create(
        household=household,
        user=third_user,
        display_name='Theo',
        status=MemberStatus.APPROVED,
        role=MemberRole.MEMBER,
    )


@pytest.fixture
def pending_member(household, outsider_user):
    """outsider_user with a pending join request."""
    return HouseholdMember.objects.create(
        household=household,
        user=outsider_user,
        display_name='Oscar',
        status=MemberStatus.PENDING,
        role=MemberRole.MEMBER,
    )


@pytest.fixture
def owner_client(owner_user):
    return make_client(owner_user)


@pytest.fixture
def member_client(member_user):
    return make_client(member_user)


@pytest.fixture
def third_client(third_user):
    return make_client(third_user)


@pytest.fixture
def outsider_client(outsider_user):
    return make_client(outsider_user)


@pytest.fixture
def history_for():
    """Return a callable that gives a member transaction history."""
    from datetime import date
    from decimal import Decimal
    from apps.ledger.models import Transaction, TransactionType

    def _history(member, user):
        return Transaction.objects.create(
            household=member.household,
            transaction_type=TransactionType.INCOME,
            amount=Decimal('10.00'),
            date=date(2024, 1, 1),
            description='Salary share',
            paid_by_member=member,
            created_by=user,
        )

    return _history
