from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'households'

# Router for ViewSets; members must be registered before the empty prefix
router = SimpleRouter()
router.register(r'members', views.HouseholdMemberViewSet, basename='member')
router.register(r'', views.HouseholdViewSet, basename='household')

urlpatterns = [
    # Household ViewSet routes
    # GET    /api/households/                          - List user's households
    # POST   /api/households/                          - Create household
    # GET    /api/households/{id}/                     - Household details
    # DELETE /api/households/{id}/                     - Delete household (owner)
    # POST   /api/households/join/                     - Join with invite code
    # POST   /api/households/claim/                    - Claim a managed member
    # GET    /api/households/{id}/members/             - List members
    # GET    /api/households/{id}/pending_members/     - Pending join requests
    # POST   /api/households/{id}/leave/               - Leave household
    # POST   /api/households/{id}/regenerate_invite/   - New invite code (owner)
    # POST   /api/households/{id}/managed_members/     - Create managed member
    # POST   /api/households/{id}/transfer/initiate/   - Offer ownership (owner)
    # POST   /api/households/{id}/transfer/revoke/     - Withdraw offer (owner)
    # POST   /api/households/{id}/transfer/accept/     - Accept offer (target)
    # POST   /api/households/{id}/transfer/decline/    - Decline offer (target)

    # Member ViewSet routes
    # GET    /api/households/members/{id}/             - Member details
    # POST   /api/households/members/{id}/approve/     - Approve join request
    # POST   /api/households/members/{id}/reject/      - Reject join request
    # POST   /api/households/members/{id}/remove/      - Remove or deactivate
    # POST   /api/households/members/{id}/reactivate/  - Reactivate inactive member
    # GET    /api/households/members/{id}/permissions/ - Read capabilities
    # PATCH  /api/households/members/{id}/permissions/ - Change capabilities (owner)
    # GET    /api/households/members/{id}/claim_code/  - Show claim code
    # POST   /api/households/members/{id}/claim_code/  - Regenerate claim code

    path('', include(router.urls)),
]
