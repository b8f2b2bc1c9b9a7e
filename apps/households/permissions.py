from rest_framework import permissions

from .models import MemberStatus


class IsHouseholdMember(permissions.BasePermission):
    """
    Permission: User must be an approved member of the household.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a Household instance
        return obj.get_approved_member(request.user) is not None


class IsSameHouseholdMember(permissions.BasePermission):
    """
    Permission: User must be an approved member of the member's household.
    """

    def has_object_permission(self, request, view, obj):
        # obj is a HouseholdMember instance
        return obj.household.members.filter(
            user=request.user, status=MemberStatus.APPROVED
        ).exists()
