# ==========================================
# apps/ledger/admin.py
# ==========================================

from django.contrib import admin
from apps.ledger.models import Transaction, TransactionSplit


class TransactionSplitInline(admin.TabularInline):
    """Read-only view of a transaction's splits. Splits change only through the services."""
    model = TransactionSplit
    extra = 0
    can_delete = False
    fields = ['member', 'owed_amount', 'owed_percentage', 'paid_amount', 'paid_percentage']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Admin interface for ledger transactions."""

    list_display = [
        'date',
        'transaction_type',
        'amount',
        'description',
        'household',
        'paid_by_member',
        'split_count',
    ]
    list_filter = ['transaction_type', 'split_type', 'excluded_from_budget', 'date']
    search_fields = ['description', 'notes', 'household__name']
    readonly_fields = ['household', 'reimburses', 'created_by', 'created_at', 'updated_at']
    inlines = [TransactionSplitInline]
    date_hierarchy = 'date'
    ordering = ['-date', '-created_at']

    fieldsets = (
        ('Transaction', {
            'fields': ('household', 'transaction_type', 'amount', 'date', 'description', 'notes', 'category_id')
        }),
        ('Participants', {
            'fields': ('paid_by_member', 'paid_to_member', 'split_member', 'reimburses')
        }),
        ('Split Policy', {
            'fields': ('split_type', 'paid_by_type', 'excluded_from_budget'),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def split_count(self, obj):
        return obj.splits.count()
    split_count.short_description = 'Splits'

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('household', 'paid_by_member')


@admin.register(TransactionSplit)
class TransactionSplitAdmin(admin.ModelAdmin):
    """Admin interface for transaction splits."""

    list_display = ['transaction', 'member', 'owed_amount', 'paid_amount']
    search_fields = ['member__display_name', 'transaction__description']
    readonly_fields = ['transaction', 'member', 'owed_percentage', 'paid_percentage']

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('transaction', 'member')
