# Generated manually for the ledger app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('households', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('transaction_type', models.CharField(choices=[('expense', 'Expense'), ('income', 'Income'), ('settlement', 'Settlement'), ('reimbursement', 'Reimbursement')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('date', models.DateField()),
                ('description', models.CharField(blank=True, max_length=255)),
                ('notes', models.TextField(blank=True)),
                ('category_id', models.UUIDField(blank=True, null=True)),
                ('excluded_from_budget', models.BooleanField(default=False)),
                ('split_type', models.CharField(blank=True, choices=[('custom', 'Custom'), ('payer_only', 'Payer only'), ('member_only', 'Member only')], max_length=20, null=True)),
                ('paid_by_type', models.CharField(blank=True, choices=[('single', 'Single payer'), ('custom', 'Custom')], max_length=20, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_transactions', to=settings.AUTH_USER_MODEL)),
                ('household', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='households.household')),
                ('paid_by_member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='paid_transactions', to='households.householdmember')),
                ('paid_to_member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='received_transactions', to='households.householdmember')),
                ('reimburses', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='reimbursements', to='ledger.transaction')),
                ('split_member', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='designated_transactions', to='households.householdmember')),
            ],
            options={
                'db_table': 'transactions',
                'ordering': ['-date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TransactionSplit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('owed_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('owed_percentage', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=9)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('paid_percentage', models.DecimalField(decimal_places=4, default=Decimal('0.0000'), max_digits=9)),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='splits', to='households.householdmember')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='splits', to='ledger.transaction')),
            ],
            options={
                'db_table': 'transaction_splits',
            },
        ),
        # Indexes for Transaction
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['household', 'date'], name='transaction_househo_3a9f2c_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['household', 'transaction_type'], name='transaction_househo_7d41be_idx'),
        ),
        # Indexes and unique constraint for TransactionSplit
        migrations.AddIndex(
            model_name='transactionsplit',
            index=models.Index(fields=['member'], name='transaction_member__5c0e81_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='transactionsplit',
            unique_together={('transaction', 'member')},
        ),
    ]
