# ==========================================
# apps/households/models.py
# ==========================================

from django.db import models
from django.db.models import Q
import uuid
import secrets


def generate_invite_code():
    return secrets.token_urlsafe(12)[:16]


def generate_claim_code():
    """Eight upper-case hex characters, typed by hand when claiming."""
    return secrets.token_hex(4).upper()


class MemberStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    INACTIVE = 'inactive', 'Inactive'


class MemberRole(models.TextChoices):
    OWNER = 'owner', 'Owner'
    MEMBER = 'member', 'Member'


class Household(models.Model):
    """
    A shared ledger scope.

    ``pending_owner_member`` and ``pending_owner_initiated_at`` together
    form the ownership-transfer slot: both null means no transfer is
    pending, both set means the named member may accept or decline.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    invite_code = models.CharField(max_length=16, unique=True, db_index=True, editable=False)

    # Ownership transfer slot
    pending_owner_member = models.ForeignKey(
        'households.HouseholdMember',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    pending_owner_initiated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'households'
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.invite_code:
            self.invite_code = generate_invite_code()
        super().save(*args, **kwargs)

    @property
    def has_pending_transfer(self):
        return self.pending_owner_member_id is not None

    def get_owner(self):
        return self.members.filter(role=MemberRole.OWNER).first()

    def get_approved_member(self, user):
        """Return the user's approved membership or None."""
        if user is None or not user.is_authenticated:
            return None
        return self.members.filter(user=user, status=MemberStatus.APPROVED).first()


class HouseholdMember(models.Model):
    """
    A participant in a household ledger.

    Managed members have no user; they are created by another member
    and can later be claimed with ``claim_code``. A member that appears
    in any transaction is deactivated instead of deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(
        'accounts.User',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='household_memberships'
    )
    display_name = models.CharField(max_length=100)
    status = models.CharField(max_length=20, choices=MemberStatus.choices, default=MemberStatus.PENDING)
    role = models.CharField(max_length=20, choices=MemberRole.choices, default=MemberRole.MEMBER)

    # Managed members
    managed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='managed_household_members'
    )
    claim_code = models.CharField(max_length=8, unique=True, null=True, blank=True)

    joined_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'household_members'
        unique_together = [['household', 'user']]
        constraints = [
            models.UniqueConstraint(
                fields=['household'],
                condition=Q(role='owner'),
                name='one_owner_per_household',
            ),
        ]
        indexes = [
            models.Index(fields=['household', 'status'], name='household_m_househo_9c1d2a_idx'),
            models.Index(fields=['user', 'status'], name='household_m_user_id_4e7b3f_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.display_name} in {self.household.name} ({self.role}, {self.status})"

    @property
    def is_owner(self):
        return self.role == MemberRole.OWNER

    @property
    def is_managed(self):
        return self.user_id is None


class MemberPermission(models.Model):
    """
    Capabilities granted to a non-owner member.

    A missing row means no capabilities. Owners are never checked
    against this table.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    member = models.OneToOneField(HouseholdMember, on_delete=models.CASCADE, related_name='permission')
    can_create_managed_members = models.BooleanField(default=False)
    can_remove_members = models.BooleanField(default=False)
    can_reactivate_members = models.BooleanField(default=False)
    can_approve_join_requests = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'member_permissions'

    def __str__(self):
        return f"Permissions for {self.member.display_name}"
