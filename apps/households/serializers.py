from rest_framework import serializers
from .models import Household, HouseholdMember, MemberStatus
from apps.accounts.serializers import UserSummarySerializer


class HouseholdMemberSerializer(serializers.ModelSerializer):
    """Member information. Claim codes are never included."""

    user = UserSummarySerializer(read_only=True)
    is_managed = serializers.BooleanField(read_only=True)

    class Meta:
        model = HouseholdMember
        fields = [
            'id',
            'household',
            'user',
            'display_name',
            'status',
            'role',
            'is_managed',
            'managed_by',
            'joined_at',
        ]
        read_only_fields = fields


class HouseholdSerializer(serializers.ModelSerializer):
    """Main serializer for households."""

    member_count = serializers.SerializerMethodField()
    my_membership = serializers.SerializerMethodField()

    class Meta:
        model = Household
        fields = [
            'id',
            'name',
            'invite_code',
            'pending_owner_member',
            'pending_owner_initiated_at',
            'member_count',
            'my_membership',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        """Number of approved members."""
        return obj.members.filter(status=MemberStatus.APPROVED).count()

    def get_my_membership(self, obj):
        """The requesting user's own member record in this household."""
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            member = obj.members.filter(user=request.user).first()
            if member is not None:
                return {'id': member.id, 'role': member.role, 'status': member.status}
        return None


class HouseholdCreateSerializer(serializers.Serializer):
    """Serializer for creating households."""

    name = serializers.CharField(max_length=200)
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)


class JoinHouseholdSerializer(serializers.Serializer):
    """Serializer for joining a household with invite code."""

    invite_code = serializers.CharField(max_length=16, required=True)
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)


class ClaimMemberSerializer(serializers.Serializer):
    """Serializer for claiming a managed member."""

    claim_code = serializers.CharField(max_length=32, required=True)


class ManagedMemberCreateSerializer(serializers.Serializer):
    display_name = serializers.CharField(max_length=100)


class TransferInitiateSerializer(serializers.Serializer):
    target_member_id = serializers.UUIDField()


class MemberPermissionSerializer(serializers.Serializer):
    """
    Resolved member capabilities.

    On PATCH, omitted flags keep their current value.
    """

    member_id = serializers.UUIDField(read_only=True)
    is_owner = serializers.BooleanField(read_only=True)
    create_managed_members = serializers.BooleanField(required=False)
    remove_members = serializers.BooleanField(required=False)
    reactivate_members = serializers.BooleanField(required=False)
    approve_join_requests = serializers.BooleanField(required=False)


class ClaimCodeSerializer(serializers.Serializer):
    member_id = serializers.UUIDField(read_only=True)
    claim_code = serializers.CharField(read_only=True)
