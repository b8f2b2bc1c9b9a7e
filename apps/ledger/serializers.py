from decimal import Decimal
from rest_framework import serializers
from .models import PaidByType, SplitType, Transaction, TransactionSplit, TransactionType


# =============================================================================
# Input Serializers
# =============================================================================

class TransactionFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for transaction listing.

    Query Parameters:
        household (UUID): Household to list (required)
        transaction_type (str): Only this type
        date_from (date): Transactions on or after this date
        date_to (date): Transactions on or before this date
    """

    household = serializers.UUIDField(required=True)
    transaction_type = serializers.ChoiceField(choices=TransactionType.choices, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        """Validate date range."""
        date_from = attrs.get('date_from')
        date_to = attrs.get('date_to')

        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({
                'date_to': 'End date must be after start date'
            })

        return attrs


class SplitInputSerializer(serializers.Serializer):
    """One explicit split row. Percentages are always derived server-side."""

    member_id = serializers.UUIDField()
    owed_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), default=Decimal('0.00'))
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'), default=Decimal('0.00'))


class TransactionInputSerializer(serializers.Serializer):
    """
    Validate input for creating or updating a transaction.

    ``household_id`` is only accepted on create. On update every field
    is optional and omitted fields keep their stored value.
    """

    household_id = serializers.UUIDField(required=False)
    transaction_type = serializers.ChoiceField(choices=TransactionType.choices)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    date = serializers.DateField()
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    category_id = serializers.UUIDField(required=False, allow_null=True)
    paid_by_member_id = serializers.UUIDField(required=False, allow_null=True)
    paid_to_member_id = serializers.UUIDField(required=False, allow_null=True)
    split_type = serializers.ChoiceField(choices=SplitType.choices, required=False, allow_null=True)
    paid_by_type = serializers.ChoiceField(choices=PaidByType.choices, required=False, allow_null=True)
    split_member_id = serializers.UUIDField(required=False, allow_null=True)
    reimburses_id = serializers.UUIDField(required=False, allow_null=True)
    excluded_from_budget = serializers.BooleanField(required=False)
    splits = SplitInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if not self.partial and not attrs.get('household_id'):
            raise serializers.ValidationError({'household_id': 'This field is required.'})
        if self.partial and 'household_id' in attrs:
            raise serializers.ValidationError({'household_id': 'A transaction cannot move to another household.'})
        return attrs


# =============================================================================
# Output Serializers
# =============================================================================

class TransactionSplitSerializer(serializers.ModelSerializer):
    """Split row with the member's display name."""

    member_name = serializers.CharField(source='member.display_name', read_only=True)

    class Meta:
        model = TransactionSplit
        fields = [
            'member',
            'member_name',
            'owed_amount',
            'owed_percentage',
            'paid_amount',
            'paid_percentage',
        ]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """Transaction with its splits."""

    splits = TransactionSplitSerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id',
            'household',
            'transaction_type',
            'amount',
            'date',
            'description',
            'notes',
            'category_id',
            'paid_by_member',
            'paid_to_member',
            'split_member',
            'reimburses',
            'excluded_from_budget',
            'split_type',
            'paid_by_type',
            'splits',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class MemberBalanceSerializer(serializers.Serializer):
    member_id = serializers.UUIDField()
    display_name = serializers.CharField()
    status = serializers.CharField()
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_share = serializers.DecimalField(max_digits=14, decimal_places=2)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class BalanceHealthSerializer(serializers.Serializer):
    household_id = serializers.UUIDField()
    status = serializers.ChoiceField(choices=['OK', 'IMBALANCED'])
    total_imbalance = serializers.DecimalField(max_digits=14, decimal_places=2)
    member_count = serializers.IntegerField()
    message = serializers.CharField(allow_null=True)


class ProblematicTransactionSerializer(serializers.Serializer):
    """An expense whose splits do not add up to its amount."""

    transaction_id = serializers.UUIDField()
    household_id = serializers.UUIDField()
    date = serializers.DateField()
    description = serializers.CharField()
    expected_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    actual_owed_sum = serializers.DecimalField(max_digits=14, decimal_places=2)
    actual_paid_sum = serializers.DecimalField(max_digits=14, decimal_places=2)
    owed_difference = serializers.DecimalField(max_digits=14, decimal_places=2)
    paid_difference = serializers.DecimalField(max_digits=14, decimal_places=2)
