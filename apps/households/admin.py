# ==========================================
# apps/households/admin.py
# ==========================================

from django.contrib import admin
from apps.households.models import Household, HouseholdMember, MemberPermission, MemberStatus


class HouseholdMemberInline(admin.TabularInline):
    """Inline admin for household members."""
    model = HouseholdMember
    fk_name = 'household'
    extra = 0
    fields = ['display_name', 'user', 'status', 'role', 'joined_at']
    readonly_fields = ['joined_at']


@admin.register(Household)
class HouseholdAdmin(admin.ModelAdmin):
    """Admin interface for Households."""

    list_display = [
        'name',
        'member_count',
        'invite_code',
        'pending_owner_member',
        'created_at'
    ]
    list_filter = ['created_at']
    search_fields = ['name', 'invite_code']
    readonly_fields = ['invite_code', 'pending_owner_member', 'pending_owner_initiated_at', 'created_at', 'updated_at']
    inlines = [HouseholdMemberInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name',)
        }),
        ('Invitation', {
            'fields': ('invite_code',)
        }),
        ('Ownership Transfer', {
            'fields': ('pending_owner_member', 'pending_owner_initiated_at'),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of approved members."""
        return obj.members.filter(status=MemberStatus.APPROVED).count()
    member_count.short_description = 'Members'


@admin.register(HouseholdMember)
class HouseholdMemberAdmin(admin.ModelAdmin):
    """Admin interface for Household Members."""

    list_display = ['display_name', 'user', 'household', 'status', 'role', 'joined_at']
    list_filter = ['status', 'role', 'joined_at']
    search_fields = ['display_name', 'user__email', 'household__name']
    readonly_fields = ['claim_code', 'joined_at', 'updated_at']
    date_hierarchy = 'joined_at'
    ordering = ['-joined_at']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'household')


@admin.register(MemberPermission)
class MemberPermissionAdmin(admin.ModelAdmin):
    """Admin interface for Member Permissions."""

    list_display = [
        'member',
        'can_create_managed_members',
        'can_remove_members',
        'can_reactivate_members',
        'can_approve_join_requests',
        'updated_at',
    ]
    list_filter = ['can_approve_join_requests', 'can_remove_members']
    search_fields = ['member__display_name', 'member__household__name']
    readonly_fields = ['created_at', 'updated_at']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('member', 'member__household')
