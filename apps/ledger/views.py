from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.common.exceptions import LedgerError, status_for
from apps.households.services import get_acting_member, get_household

from .serializers import (
    TransactionFilterSerializer,
    TransactionInputSerializer,
    TransactionSerializer,
    MemberBalanceSerializer,
    BalanceHealthSerializer,
    ProblematicTransactionSerializer,
)
from apps.ledger.services import (
    create_transaction_with_splits,
    update_transaction_with_splits,
    delete_transaction,
    get_transaction,
    list_transactions,
    get_member_balances,
    get_balance_health,
    find_problematic_transactions,
)


def _error(e: LedgerError) -> Response:
    return Response({'error': str(e)}, status=status_for(e))


class TransactionViewSet(viewsets.ViewSet):
    """
    ViewSet for ledger transactions.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Transactions of one household (?household=<id>)
    create: Record a transaction with its splits
    retrieve: Get a transaction with its splits
    update / partial_update: Change fields; splits are replaced when needed
    destroy: Delete a transaction
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[TransactionFilterSerializer],
        responses={200: TransactionSerializer(many=True)},
    )
    def list(self, request):
        filters = TransactionFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data

        try:
            transactions = list_transactions(
                household_id=data['household'],
                user=request.user,
                transaction_type=data.get('transaction_type'),
                date_from=data.get('date_from'),
                date_to=data.get('date_to'),
            )
        except LedgerError as e:
            return _error(e)

        return Response(TransactionSerializer(transactions, many=True).data)

    @extend_schema(request=TransactionInputSerializer, responses={201: TransactionSerializer})
    def create(self, request):
        serializer = TransactionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        try:
            txn = create_transaction_with_splits(
                household_id=data.pop('household_id'),
                user=request.user,
                **data,
            )
        except LedgerError as e:
            return _error(e)

        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses={200: TransactionSerializer})
    def retrieve(self, request, pk=None):
        try:
            txn = get_transaction(transaction_id=pk, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(TransactionSerializer(txn).data)

    @extend_schema(request=TransactionInputSerializer, responses={200: TransactionSerializer})
    def update(self, request, pk=None):
        return self.partial_update(request, pk=pk)

    @extend_schema(request=TransactionInputSerializer, responses={200: TransactionSerializer})
    def partial_update(self, request, pk=None):
        serializer = TransactionInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        try:
            txn = update_transaction_with_splits(
                transaction_id=pk,
                user=request.user,
                **serializer.validated_data,
            )
        except LedgerError as e:
            return _error(e)

        txn = get_transaction(transaction_id=txn.id, user=request.user)
        return Response(TransactionSerializer(txn).data)

    def destroy(self, request, pk=None):
        try:
            delete_transaction(transaction_id=pk, user=request.user)
        except LedgerError as e:
            return _error(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class HouseholdLedgerViewSet(viewsets.ViewSet):
    """
    Read-only ledger views of one household.

    balances: Per-member total paid, total share and balance
    health: Whether member balances sum to zero
    problematic_transactions: Expenses whose splits do not reconcile
    """

    permission_classes = [IsAuthenticated]

    def _authorize(self, request, pk):
        household = get_household(household_id=pk)
        get_acting_member(household=household, user=request.user)
        return household

    @extend_schema(responses={200: MemberBalanceSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def balances(self, request, pk=None):
        try:
            household = self._authorize(request, pk)
            rows = get_member_balances(household_id=household.id)
        except LedgerError as e:
            return _error(e)
        return Response(MemberBalanceSerializer(rows, many=True).data)

    @extend_schema(responses={200: BalanceHealthSerializer})
    @action(detail=True, methods=['get'])
    def health(self, request, pk=None):
        try:
            household = self._authorize(request, pk)
            report = get_balance_health(household_id=household.id)
        except LedgerError as e:
            return _error(e)
        return Response(BalanceHealthSerializer(report).data)

    @extend_schema(responses={200: ProblematicTransactionSerializer(many=True)})
    @action(detail=True, methods=['get'], url_path='problematic-transactions', url_name='problematic-transactions')
    def problematic_transactions(self, request, pk=None):
        try:
            household = self._authorize(request, pk)
            rows = find_problematic_transactions(household_id=household.id)
        except LedgerError as e:
            return _error(e)
        return Response(ProblematicTransactionSerializer(rows, many=True).data)
