# ==========================================
# apps/accounts/admin.py
# ==========================================

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count, Q
from apps.households.models import HouseholdMember, MemberStatus
from .models import User


class MembershipInline(admin.TabularInline):
    """Households the user belongs to. Membership changes go through the households admin."""
    model = HouseholdMember
    fk_name = 'user'
    extra = 0
    can_delete = False
    fields = ['household', 'display_name', 'status', 'role', 'joined_at']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin interface for the email-based User model."""

    list_display = [
        'email',
        'display_name',
        'household_count',
        'is_active',
        'is_staff',
        'created_at',
    ]
    list_filter = ['is_active', 'is_staff', 'is_superuser', 'created_at']
    search_fields = ['email', 'display_name']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
    inlines = [MembershipInline]

    # BaseUserAdmin expects a username field
    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'password')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
    )
    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'password1', 'password2'),
        }),
    )
    readonly_fields = ['created_at', 'last_login']
    filter_horizontal = ['groups', 'user_permissions']
    actions = ['deactivate_users']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.annotate(
            approved_households=Count(
                'household_memberships',
                filter=Q(household_memberships__status=MemberStatus.APPROVED),
            )
        )

    def household_count(self, obj):
        return obj.approved_households
    household_count.short_description = 'Households'
    household_count.admin_order_field = 'approved_households'

    @admin.action(description='Deactivate selected users')
    def deactivate_users(self, request, queryset):
        """Block login for the selected users. Superusers are skipped and memberships are untouched."""
        count = queryset.filter(is_superuser=False).update(is_active=False)
        skipped = queryset.count() - count
        msg = f'Deactivated {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} superuser(s).'
        self.message_user(request, msg)
