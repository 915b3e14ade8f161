"""
Finance App Views - Payment summaries, payouts, tax reports, payment intents
"""

import csv
import logging
from django.conf import settings
from django.contrib.auth import get_user_model
from django.http import HttpResponse
from django.utils import timezone
from rest_framework import viewsets, status, permissions, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from booking.models import Order
from core.models import UserRole
from core.permissions import IsAdminUser, IsDriver
from .models import Payout, PaymentIntentRecord, PaymentIntentStatus
from .serializers import (
    PayoutSerializer, PayoutCreateSerializer, PayoutStatusUpdateSerializer,
    PaymentSummarySerializer, TaxReportRowSerializer, PaymentIntentRequestSerializer
)
from .services import PaymentSummaryService, PayoutService, TaxReportService
from .stripe_service import StripePaymentService, PaymentProviderError

logger = logging.getLogger(__name__)

User = get_user_model()


class AdminPaymentSummaryView(APIView):
    """GET /api/admin/payments/summary/ - earnings summary for every driver."""

    permission_classes = [IsAdminUser]

    def get(self, request):
        summaries = PaymentSummaryService.for_all_drivers()
        return Response(PaymentSummarySerializer(summaries, many=True).data)


class DriverPaymentSummaryView(APIView):
    """GET /api/driver/payments/summary/ - the calling driver's earnings."""

    permission_classes = [IsDriver]

    def get(self, request):
        summary = PaymentSummaryService.for_driver(request.user)
        return Response(PaymentSummarySerializer(summary).data)


class AdminPayoutViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    Driver payouts.

    - list: ?status=, ?driver=
    - create: payout of every completed unpaid order for a driver
    - {id}/status/: mark completed or failed
    """

    serializer_class = PayoutSerializer
    permission_classes = [IsAdminUser]
    filterset_fields = ['status', 'payout_type', 'driver']
    search_fields = ['driver__email']

    def get_queryset(self):
        return Payout.objects.select_related('driver').prefetch_related('orders')

    def create(self, request):
        serializer = PayoutCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            driver = User.objects.get(
                pk=serializer.validated_data['driver_id'], role=UserRole.DRIVER
            )
        except User.DoesNotExist:
            return Response({'error': 'Driver not found.'}, status=status.HTTP_404_NOT_FOUND)

        try:
            payout = PayoutService.create_payout(driver, serializer.validated_data['payout_type'])
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PayoutSerializer(payout).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        payout = self.get_object()
        serializer = PayoutStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            payout = PayoutService.update_status(
                payout,
                serializer.validated_data['status'],
                serializer.validated_data.get('failure_reason', ''),
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(PayoutSerializer(payout).data)


def _report_year(request):
    year = request.query_params.get('year')
    if year is None:
        return timezone.localdate().year
    year = int(year)
    if not 2000 <= year <= 2100:
        raise ValueError("Year out of range")
    return year


class AdminTaxReportViewSet(viewsets.ViewSet):
    """Annual driver earnings for 1099 reporting."""

    permission_classes = [IsAdminUser]

    def list(self, request):
        try:
            year = _report_year(request)
        except ValueError:
            return Response({'error': 'Invalid year.'}, status=status.HTTP_400_BAD_REQUEST)

        rows = TaxReportService.annual_report(year)
        return Response({
            'year': year,
            'drivers': TaxReportRowSerializer(rows, many=True).data,
            'requires_1099_count': sum(1 for row in rows if row['requires_1099']),
        })

    @action(detail=False, methods=['get'])
    def export(self, request):
        """Same report as CSV attachment."""
        try:
            year = _report_year(request)
        except ValueError:
            return Response({'error': 'Invalid year.'}, status=status.HTTP_400_BAD_REQUEST)

        rows = TaxReportService.annual_report(year)

        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename="tax-report-{year}.csv"'

        writer = csv.writer(response)
        writer.writerow([
            'Driver ID', 'Driver Email', 'Driver Name', 'Year', 'Total Earnings',
            'Fees', 'Net Earnings', 'Payouts', 'Instant Payouts', 'Weekly Payouts',
            'First Payout', 'Last Payout', 'Requires 1099'
        ])
        for row in rows:
            writer.writerow([
                row['driver_id'], row['driver_email'], row['driver_name'], row['year'],
                row['total_earnings'], row['total_fees'], row['net_earnings'],
                row['payout_count'], row['instant_payouts'], row['weekly_payouts'],
                row['first_payout'].date().isoformat(), row['last_payout'].date().isoformat(),
                'yes' if row['requires_1099'] else 'no',
            ])

        logger.info(f"Tax report {year} exported by {request.user.email} ({len(rows)} drivers)")
        return response


class CreatePaymentIntentView(APIView):
    """
    POST /api/create-payment-intent/

    Request: {"amount": 12.34, "orderId": "RTN-7KQ2M9XH"}
    Response: {"clientSecret": "...", "publishableKey": "..."}
    """

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = PaymentIntentRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid amount', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        amount = serializer.validated_data['amount']
        order_id = serializer.validated_data['orderId']

        try:
            intent = StripePaymentService.create_payment_intent(amount, order_id)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentProviderError as e:
            return Response(
                {'error': 'Failed to create payment intent', 'message': str(e)},
                status=status.HTTP_502_BAD_GATEWAY
            )

        order = None
        if order_id:
            order = Order.objects.filter(tracking_number=order_id).first()

        PaymentIntentRecord.objects.create(
            order=order,
            order_reference=order_id,
            provider_intent_id=intent['id'],
            client_secret=intent['client_secret'],
            amount_cents=intent['amount'],
            status=PaymentIntentStatus.CREATED,
        )

        return Response({
            'clientSecret': intent['client_secret'],
            'publishableKey': settings.STRIPE_PUBLISHABLE_KEY,
        })
