from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiResponse

from apps.common.exceptions import LedgerError, status_for

from .models import Household, HouseholdMember, MemberStatus
from .serializers import (
    HouseholdSerializer,
    HouseholdCreateSerializer,
    HouseholdMemberSerializer,
    JoinHouseholdSerializer,
    ClaimMemberSerializer,
    ManagedMemberCreateSerializer,
    TransferInitiateSerializer,
    MemberPermissionSerializer,
    ClaimCodeSerializer,
)
from .permissions import IsHouseholdMember, IsSameHouseholdMember

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
    create_managed_member,
    claim_managed_member,
    regenerate_claim_code,
    get_claim_code,
    get_member_permissions,
    update_member_permissions,
    initiate_ownership_transfer,
    revoke_ownership_transfer,
    accept_ownership_transfer,
    decline_ownership_transfer,
)


def _error(e: LedgerError) -> Response:
    return Response({'error': str(e)}, status=status_for(e))


class HouseholdViewSet(mixins.CreateModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.ListModelMixin,
                       mixins.DestroyModelMixin,
                       viewsets.GenericViewSet):
    """
    ViewSet for households and their membership flow.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Households the user is an approved member of
    create: Create a household, caller becomes owner
    retrieve: Get a specific household
    destroy: Delete a household and its ledger (owner only)
    """

    serializer_class = HouseholdSerializer
    permission_classes = [IsAuthenticated, IsHouseholdMember]

    def get_queryset(self):
        """Return only households where the user is an approved member."""
        return Household.objects.filter(
            members__user=self.request.user,
            members__status=MemberStatus.APPROVED,
        ).distinct()

    def get_serializer_class(self):
        if self.action == 'create':
            return HouseholdCreateSerializer
        return HouseholdSerializer

    @extend_schema(request=HouseholdCreateSerializer, responses={201: HouseholdSerializer})
    def create(self, request, *args, **kwargs):
        """Create a new household."""
        serializer = HouseholdCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        household = create_household(
            name=serializer.validated_data['name'],
            user=request.user,
            display_name=serializer.validated_data.get('display_name') or None,
        )

        output_serializer = HouseholdSerializer(household, context={'request': request})
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        """Delete a household."""
        household = self.get_object()
        try:
            delete_household(household_id=household.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses={200: HouseholdMemberSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def members(self, request, pk=None):
        """Get all members of the household."""
        household = self.get_object()
        members = get_household_members(household_id=household.id)
        return Response(HouseholdMemberSerializer(members, many=True).data)

    @extend_schema(responses={200: HouseholdMemberSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def pending_members(self, request, pk=None):
        """List pending join requests (approve-join-requests capability)."""
        household = self.get_object()
        try:
            members = get_pending_members(household_id=household.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(HouseholdMemberSerializer(members, many=True).data)

    @extend_schema(request=JoinHouseholdSerializer, responses={201: HouseholdMemberSerializer})
    @action(detail=False, methods=['post'])
    def join(self, request):
        """Request to join a household using its invite code."""
        serializer = JoinHouseholdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            member = join_household(
                invite_code=serializer.validated_data['invite_code'],
                user=request.user,
                display_name=serializer.validated_data.get('display_name') or None,
            )
        except LedgerError as e:
            return _error(e)

        return Response(HouseholdMemberSerializer(member).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ClaimMemberSerializer, responses={200: HouseholdMemberSerializer})
    @action(detail=False, methods=['post'])
    def claim(self, request):
        """Claim a managed member with a claim code."""
        serializer = ClaimMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            member = claim_managed_member(
                claim_code=serializer.validated_data['claim_code'],
                user=request.user,
            )
        except LedgerError as e:
            return _error(e)

        return Response(HouseholdMemberSerializer(member).data)

    @extend_schema(request=None, responses={200: OpenApiResponse(description='Result of leaving')})
    @action(detail=True, methods=['post'])
    def leave(self, request, pk=None):
        """Leave the household."""
        household = self.get_object()
        try:
            outcome = leave_household(household_id=household.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response({'message': 'Successfully left the household', 'outcome': outcome})

    @extend_schema(request=None)
    @action(detail=True, methods=['post'])
    def regenerate_invite(self, request, pk=None):
        """Regenerate invite code (owner only)."""
        household = self.get_object()
        try:
            new_code = regenerate_invite_code(household_id=household.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response({
            'invite_code': new_code,
            'message': 'Invite code regenerated successfully'
        })

    @extend_schema(request=ManagedMemberCreateSerializer, responses={201: HouseholdMemberSerializer})
    @action(detail=True, methods=['post'])
    def managed_members(self, request, pk=None):
        """Create a managed member (create-managed-members capability)."""
        household = self.get_object()
        serializer = ManagedMemberCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            member = create_managed_member(
                household_id=household.id,
                user=request.user,
                display_name=serializer.validated_data['display_name'],
            )
        except LedgerError as e:
            return _error(e)

        data = HouseholdMemberSerializer(member).data
        data['claim_code'] = member.claim_code
        return Response(data, status=status.HTTP_201_CREATED)

    # Ownership transfer

    @extend_schema(request=TransferInitiateSerializer, responses={200: HouseholdSerializer})
    @action(detail=True, methods=['post'], url_path='transfer/initiate', url_name='transfer-initiate')
    def transfer_initiate(self, request, pk=None):
        """Offer ownership to another member (owner only)."""
        household = self.get_object()
        serializer = TransferInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            household = initiate_ownership_transfer(
                household_id=household.id,
                user=request.user,
                target_member_id=serializer.validated_data['target_member_id'],
            )
        except LedgerError as e:
            return _error(e)
        return Response(HouseholdSerializer(household, context={'request': request}).data)

    @extend_schema(request=None, responses={200: HouseholdSerializer})
    @action(detail=True, methods=['post'], url_path='transfer/revoke', url_name='transfer-revoke')
    def transfer_revoke(self, request, pk=None):
        return self._transfer(request, revoke_ownership_transfer)

    @extend_schema(request=None, responses={200: HouseholdSerializer})
    @action(detail=True, methods=['post'], url_path='transfer/accept', url_name='transfer-accept')
    def transfer_accept(self, request, pk=None):
        return self._transfer(request, accept_ownership_transfer)

    @extend_schema(request=None, responses={200: HouseholdSerializer})
    @action(detail=True, methods=['post'], url_path='transfer/decline', url_name='transfer-decline')
    def transfer_decline(self, request, pk=None):
        return self._transfer(request, decline_ownership_transfer)

    def _transfer(self, request, transition):
        household = self.get_object()
        try:
            household = transition(household_id=household.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(HouseholdSerializer(household, context={'request': request}).data)


class HouseholdMemberViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    Actions on a single member.

    Authorization (capabilities, owner-only rules) is enforced by the
    services; this viewset only restricts lookups to households the
    user belongs to.
    """

    serializer_class = HouseholdMemberSerializer
    permission_classes = [IsAuthenticated, IsSameHouseholdMember]

    def get_queryset(self):
        return HouseholdMember.objects.filter(
            household__members__user=self.request.user,
            household__members__status=MemberStatus.APPROVED,
        ).select_related('household', 'user').distinct()

    @extend_schema(request=None, responses={200: HouseholdMemberSerializer})
    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """Approve a pending join request."""
        member = self.get_object()
        try:
            member = approve_member(member_id=member.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(HouseholdMemberSerializer(member).data)

    @extend_schema(request=None, responses={204: None})
    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """Reject a pending join request."""
        member = self.get_object()
        try:
            reject_member(member_id=member.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=None, responses={200: OpenApiResponse(description='deleted or deactivated')})
    @action(detail=True, methods=['post'])
    def remove(self, request, pk=None):
        """Remove a member: deactivated when they have history, otherwise deleted."""
        member = self.get_object()
        try:
            outcome = remove_member(member_id=member.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response({'member_id': member.id, 'outcome': outcome})

    @extend_schema(request=None, responses={200: HouseholdMemberSerializer})
    @action(detail=True, methods=['post'])
    def reactivate(self, request, pk=None):
        """Reactivate an inactive member."""
        member = self.get_object()
        try:
            member = reactivate_member(member_id=member.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(HouseholdMemberSerializer(member).data)

    @extend_schema(methods=['GET'], responses={200: MemberPermissionSerializer})
    @extend_schema(methods=['PATCH'], request=MemberPermissionSerializer, responses={200: MemberPermissionSerializer})
    @action(detail=True, methods=['get', 'patch'], url_path='permissions', url_name='permissions')
    def member_permissions(self, request, pk=None):
        """Read or change a member's capabilities (changes are owner only)."""
        member = self.get_object()

        if request.method == 'GET':
            try:
                data = get_member_permissions(member_id=member.id, user=request.user)
            except LedgerError as e:
                return _error(e)
            return Response(MemberPermissionSerializer(data).data)

        serializer = MemberPermissionSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            data = update_member_permissions(
                member_id=member.id,
                user=request.user,
                **serializer.validated_data,
            )
        except LedgerError as e:
            return _error(e)
        return Response(MemberPermissionSerializer(data).data)

    @extend_schema(methods=['GET'], responses={200: ClaimCodeSerializer})
    @extend_schema(methods=['POST'], request=None, responses={200: ClaimCodeSerializer})
    @action(detail=True, methods=['get', 'post'])
    def claim_code(self, request, pk=None):
        """Show (GET) or regenerate (POST) a managed member's claim code."""
        member = self.get_object()
        service = get_claim_code if request.method == 'GET' else regenerate_claim_code
        try:
            code = service(member_id=member.id, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response({'member_id': member.id, 'claim_code': code})
