# ==========================================
# apps/ledger/models.py
# ==========================================

from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class TransactionType(models.TextChoices):
    EXPENSE = 'expense', 'Expense'
    INCOME = 'income', 'Income'
    SETTLEMENT = 'settlement', 'Settlement'
    REIMBURSEMENT = 'reimbursement', 'Reimbursement'


class SplitType(models.TextChoices):
    CUSTOM = 'custom', 'Custom'
    PAYER_ONLY = 'payer_only', 'Payer only'
    MEMBER_ONLY = 'member_only', 'Member only'


class PaidByType(models.TextChoices):
    SINGLE = 'single', 'Single payer'
    CUSTOM = 'custom', 'Custom'


class Transaction(models.Model):
    """
    A ledger entry in a household.

    Member roles by type:
    - expense: ``paid_by_member`` is the payer for single-payer expenses;
      who paid and who owes is recorded in the splits.
    - settlement: ``paid_by_member`` pays ``paid_to_member``.
    - reimbursement: ``paid_by_member`` receives the money back;
      ``reimburses`` links the expense it offsets.
    - income: ``paid_by_member`` is the earner.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    household = models.ForeignKey(
        'households.Household',
        on_delete=models.CASCADE,
        related_name='transactions'
    )
    transaction_type = models.CharField(max_length=20, choices=TransactionType.choices)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    date = models.DateField()
    description = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    # Opaque reference to a category managed outside the ledger
    category_id = models.UUIDField(null=True, blank=True)

    # Participants; PROTECT keeps members with history from being deleted
    paid_by_member = models.ForeignKey(
        'households.HouseholdMember',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='paid_transactions'
    )
    paid_to_member = models.ForeignKey(
        'households.HouseholdMember',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='received_transactions'
    )
    split_member = models.ForeignKey(
        'households.HouseholdMember',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='designated_transactions'
    )
    reimburses = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='reimbursements'
    )

    excluded_from_budget = models.BooleanField(default=False)

    # Expense split policy
    split_type = models.CharField(max_length=20, choices=SplitType.choices, null=True, blank=True)
    paid_by_type = models.CharField(max_length=20, choices=PaidByType.choices, null=True, blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        related_name='created_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'transactions'
        indexes = [
            models.Index(fields=['household', 'date'], name='transaction_househo_3a9f2c_idx'),
            models.Index(fields=['household', 'transaction_type'], name='transaction_househo_7d41be_idx'),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.amount} on {self.date}"

    @property
    def is_expense(self):
        return self.transaction_type == TransactionType.EXPENSE


class TransactionSplit(models.Model):
    """
    One member's part of a transaction.

    ``owed_amount`` is the member's share of the cost, ``paid_amount``
    what they actually paid. Percentages are derived from the amounts.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='splits')
    member = models.ForeignKey(
        'households.HouseholdMember',
        on_delete=models.PROTECT,
        related_name='splits'
    )
    owed_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    owed_percentage = models.DecimalField(max_digits=9, decimal_places=4, default=Decimal('0.0000'))
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    paid_percentage = models.DecimalField(max_digits=9, decimal_places=4, default=Decimal('0.0000'))

    class Meta:
        db_table = 'transaction_splits'
        unique_together = [['transaction', 'member']]
        indexes = [
            models.Index(fields=['member'], name='transaction_member__5c0e81_idx'),
        ]

    def __str__(self):
        return f"{self.member.display_name}: owes {self.owed_amount}, paid {self.paid_amount}"
