"""
Service tests for household membership.

Tests cover:
- Household creation and invite codes
- Join / approve / reject flow
- Removal with and without transaction history
- Reactivation and leaving
"""

import pytest

from apps.households.models import HouseholdMember, MemberPermission, MemberRole, MemberStatus
from apps.households.services import (
    create_household,
    delete_household,
    regenerate_invite_code,
    join_household,
    approve_member,
    reject_member,
    get_pending_members,
    remove_member,
    reactivate_member,
    leave_household,
    get_household_members,
    initiate_ownership_transfer,
)
from apps.households.services.exceptions import (
    AlreadyMemberError,
    CannotRemoveOwnerError,
    CannotRemoveSelfError,
    InsufficientPermissionsError,
    InvalidInviteCodeError,
    JoinRequestPendingError,
    LastMemberCannotLeaveError,
    MemberAlreadyInactiveError,
    MemberNotInactiveError,
    MemberNotPendingError,
    NotHouseholdMemberError,
    OwnerCannotLeaveError,
)


@pytest.mark.django_db
class TestCreateHousehold:
    """Tests for create_household and household-level operations."""

    def test_creator_is_approved_owner(self, owner_user):
        household = create_household(name='Home', user=owner_user)

        member = household.members.get(user=owner_user)
        assert member.role == MemberRole.OWNER
        assert member.status == MemberStatus.APPROVED
        assert member.display_name == 'Olivia Owner'
        assert not MemberPermission.objects.filter(member=member).exists()

    def test_invite_codes_are_unique(self, owner_user):
        first = create_household(name='One', user=owner_user)
        second = create_household(name='Two', user=owner_user)

        assert first.invite_code
        assert first.invite_code != second.invite_code

    def test_custom_display_name(self, owner_user):
        household = create_household(name='Home', user=owner_user, display_name='Mum')
        assert household.members.get(user=owner_user).display_name == 'Mum'

    def test_regenerate_invite_code_owner_only(self, household, owner_user, member_user, approved_member):
        old_code = household.invite_code

        new_code = regenerate_invite_code(household_id=household.id, user=owner_user)
        assert new_code != old_code

        with pytest.raises(InsufficientPermissionsError):
            regenerate_invite_code(household_id=household.id, user=member_user)

    def test_delete_household_owner_only(self, household, owner_user, member_user, approved_member):
        with pytest.raises(InsufficientPermissionsError):
            delete_household(household_id=household.id, user=member_user)

        delete_household(household_id=household.id, user=owner_user)
        assert not HouseholdMember.objects.filter(household_id=household.id).exists()

    def test_delete_household_with_history(self, household, owner_user, owner_member, history_for):
        history_for(owner_member, owner_user)

        delete_household(household_id=household.id, user=owner_user)

        assert not HouseholdMember.objects.filter(id=owner_member.id).exists()


@pytest.mark.django_db
class TestJoinFlow:
    """Tests for join_household, approve_member and reject_member."""

    def test_join_creates_pending_member(self, household, outsider_user):
        member = join_household(invite_code=household.invite_code, user=outsider_user)

        assert member.status == MemberStatus.PENDING
        assert member.role == MemberRole.MEMBER
        assert member.display_name == 'Oscar Outsider'

    def test_join_trims_invite_code(self, household, outsider_user):
        member = join_household(invite_code=f'  {household.invite_code} ', user=outsider_user)
        assert member.household_id == household.id

    def test_join_invalid_code(self, household, outsider_user):
        with pytest.raises(InvalidInviteCodeError):
            join_household(invite_code='nope', user=outsider_user)

    def test_join_twice_while_pending(self, household, outsider_user, pending_member):
        with pytest.raises(JoinRequestPendingError):
            join_household(invite_code=household.invite_code, user=outsider_user)

    def test_join_when_already_approved(self, household, member_user, approved_member):
        with pytest.raises(AlreadyMemberError):
            join_household(invite_code=household.invite_code, user=member_user)

    def test_inactive_member_rejoins_as_approved(self, household, member_user, approved_member):
        approved_member.status = MemberStatus.INACTIVE
        approved_member.save()

        member = join_household(invite_code=household.invite_code, user=member_user)

        assert member.id == approved_member.id
        assert member.status == MemberStatus.APPROVED
        assert not MemberPermission.objects.filter(member=member).exists()

    def test_approve_grants_default_permissions(self, owner_user, pending_member):
        member = approve_member(member_id=pending_member.id, user=owner_user)

        assert member.status == MemberStatus.APPROVED
        permission = MemberPermission.objects.get(member=member)
        assert permission.can_create_managed_members is True
        assert permission.can_remove_members is True
        assert permission.can_reactivate_members is True
        assert permission.can_approve_join_requests is False

    def test_approve_requires_capability(self, member_user, approved_member, pending_member):
        # Default permissions do not include approving join requests
        with pytest.raises(InsufficientPermissionsError):
            approve_member(member_id=pending_member.id, user=member_user)

    def test_approve_non_pending(self, owner_user, approved_member):
        with pytest.raises(MemberNotPendingError):
            approve_member(member_id=approved_member.id, user=owner_user)

    def test_pending_user_cannot_act(self, household, outsider_user, pending_member):
        with pytest.raises(NotHouseholdMemberError):
            get_pending_members(household_id=household.id, user=outsider_user)

    def test_reject_deletes_request(self, owner_user, pending_member):
        reject_member(member_id=pending_member.id, user=owner_user)
        assert not HouseholdMember.objects.filter(id=pending_member.id).exists()

    def test_get_pending_members(self, household, owner_user, pending_member, approved_member):
        pending = list(get_pending_members(household_id=household.id, user=owner_user))
        assert pending == [pending_member]


@pytest.mark.django_db
class TestRemoveMember:
    """Tests for remove_member."""

    def test_remove_without_history_deletes(self, owner_user, approved_member):
        outcome = remove_member(member_id=approved_member.id, user=owner_user)

        assert outcome == 'deleted'
        assert not HouseholdMember.objects.filter(id=approved_member.id).exists()

    def test_remove_with_history_deactivates(self, owner_user, member_user, approved_member, history_for):
        history_for(approved_member, member_user)

        outcome = remove_member(member_id=approved_member.id, user=owner_user)

        approved_member.refresh_from_db()
        assert outcome == 'deactivated'
        assert approved_member.status == MemberStatus.INACTIVE
        assert not MemberPermission.objects.filter(member=approved_member).exists()

    def test_member_with_capability_can_remove(self, member_user, approved_member, second_member):
        outcome = remove_member(member_id=second_member.id, user=member_user)
        assert outcome == 'deleted'

    def test_member_without_capability_cannot_remove(self, third_user, second_member, approved_member):
        with pytest.raises(InsufficientPermissionsError):
            remove_member(member_id=approved_member.id, user=third_user)

    def test_cannot_remove_self(self, member_user, approved_member):
        with pytest.raises(CannotRemoveSelfError):
            remove_member(member_id=approved_member.id, user=member_user)

    def test_cannot_remove_owner(self, member_user, approved_member, owner_member):
        with pytest.raises(CannotRemoveOwnerError):
            remove_member(member_id=owner_member.id, user=member_user)

    def test_cannot_remove_inactive(self, owner_user, approved_member):
        approved_member.status = MemberStatus.INACTIVE
        approved_member.save()

        with pytest.raises(MemberAlreadyInactiveError):
            remove_member(member_id=approved_member.id, user=owner_user)

    def test_removal_cancels_transfer_to_member(self, household, owner_user, member_user, approved_member, history_for):
        history_for(approved_member, member_user)
        initiate_ownership_transfer(
            household_id=household.id, user=owner_user, target_member_id=approved_member.id
        )

        remove_member(member_id=approved_member.id, user=owner_user)

        household.refresh_from_db()
        assert household.pending_owner_member is None
        assert household.pending_owner_initiated_at is None


@pytest.mark.django_db
class TestReactivateAndLeave:
    """Tests for reactivate_member and leave_household."""

    def test_reactivate_clears_permissions(self, owner_user, approved_member):
        approved_member.status = MemberStatus.INACTIVE
        approved_member.save()

        member = reactivate_member(member_id=approved_member.id, user=owner_user)

        assert member.status == MemberStatus.APPROVED
        assert not MemberPermission.objects.filter(member=member).exists()

    def test_reactivate_requires_inactive(self, owner_user, approved_member):
        with pytest.raises(MemberNotInactiveError):
            reactivate_member(member_id=approved_member.id, user=owner_user)

    def test_owner_cannot_leave(self, household, owner_user, approved_member):
        with pytest.raises(OwnerCannotLeaveError):
            leave_household(household_id=household.id, user=owner_user)

    def test_member_leaves(self, household, member_user, approved_member):
        outcome = leave_household(household_id=household.id, user=member_user)

        assert outcome == 'deleted'
        assert not household.members.filter(user=member_user).exists()

    def test_member_with_history_leaves_as_inactive(self, household, member_user, approved_member, history_for):
        history_for(approved_member, member_user)

        outcome = leave_household(household_id=household.id, user=member_user)

        approved_member.refresh_from_db()
        assert outcome == 'deactivated'
        assert approved_member.status == MemberStatus.INACTIVE

    def test_last_approved_member_cannot_leave(self, household, owner_member, member_user, approved_member):
        # Leave the household without an approved owner to reach the guard
        owner_member.status = MemberStatus.INACTIVE
        owner_member.role = MemberRole.MEMBER
        owner_member.save()

        with pytest.raises(LastMemberCannotLeaveError):
            leave_household(household_id=household.id, user=member_user)

    def test_get_household_members_owner_first(self, household, owner_member, approved_member):
        members = list(get_household_members(household_id=household.id))
        assert members[0] == owner_member
        assert approved_member in members
