from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'ledger'

router = SimpleRouter()
router.register(r'transactions', views.TransactionViewSet, basename='transaction')
router.register(r'households', views.HouseholdLedgerViewSet, basename='household-ledger')

urlpatterns = [
    # Transaction ViewSet routes
    # GET    /api/ledger/transactions/?household={id}  - List household transactions
    # POST   /api/ledger/transactions/                 - Record transaction with splits
    # GET    /api/ledger/transactions/{id}/            - Transaction with splits
    # PUT    /api/ledger/transactions/{id}/            - Update (splits replaced when needed)
    # PATCH  /api/ledger/transactions/{id}/            - Partial update
    # DELETE /api/ledger/transactions/{id}/            - Delete transaction

    # Household ledger routes
    # GET    /api/ledger/households/{id}/balances/                 - Member balances
    # GET    /api/ledger/households/{id}/health/                   - Zero-sum check
    # GET    /api/ledger/households/{id}/problematic-transactions/ - Unreconciled expenses

    path('', include(router.urls)),
]
