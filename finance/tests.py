"""
ReturnIt Finance Tests
======================

Tests for:
1. Payment summaries
2. Payout creation & status changes (instant fee, weekly)
3. Annual tax reports (1099 threshold, CSV export)
4. Payment intents (provider mocked)
5. Weekly payout task
"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch, MagicMock
import requests
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from booking.models import Order, OrderStatus
from core.models import User, UserRole, PayoutPreference
from finance.models import Payout, PayoutStatus, PayoutType, PaymentIntentRecord
from finance.services import PaymentSummaryService, PayoutService, TaxReportService
from finance.stripe_service import StripePaymentService, PaymentProviderError
from finance.tasks import process_weekly_payouts


def make_order(customer, driver, status=OrderStatus.COMPLETED, driver_payout='5.00', tip='0.00'):
    return Order.objects.create(
        customer=customer,
        driver=driver,
        status=status,
        pickup_street_address='1 Main St',
        pickup_city='St. Louis',
        pickup_state='MO',
        pickup_zip_code='63108',
        retailer='Target',
        driver_payout=Decimal(driver_payout),
        tip=Decimal(tip),
        total=Decimal('12.00'),
    )


class FinanceTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123', role=UserRole.CUSTOMER
        )
        self.driver = User.objects.create_user(
            email='driver@example.com', password='testpass123',
            role=UserRole.DRIVER, is_approved=True, first_name='Dana', last_name='Lee',
        )
        self.admin = User.objects.create_user(
            email='admin@example.com', password='testpass123', role=UserRole.ADMIN
        )


class TestPaymentSummary(FinanceTestCase):

    def test_summary_counts_completed_orders_only(self):
        make_order(self.customer, self.driver, driver_payout='5.00')
        make_order(self.customer, self.driver, driver_payout='8.00', tip='3.00')
        make_order(self.customer, self.driver, status=OrderStatus.ASSIGNED, driver_payout='10.00')

        summary = PaymentSummaryService.for_driver(self.driver)

        self.assertEqual(summary['completed_orders'], 2)
        self.assertEqual(summary['gross_earnings'], Decimal('13.00'))
        self.assertEqual(summary['tips'], Decimal('3.00'))
        self.assertEqual(summary['paid_out'], Decimal('0.00'))
        self.assertEqual(summary['pending_balance'], Decimal('13.00'))

    def test_paid_out_after_completed_payout(self):
        make_order(self.customer, self.driver, driver_payout='5.00')
        payout = PayoutService.create_payout(self.driver, PayoutType.WEEKLY)
        PayoutService.update_status(payout, PayoutStatus.COMPLETED)

        summary = PaymentSummaryService.for_driver(self.driver)
        self.assertEqual(summary['paid_out'], Decimal('5.00'))
        self.assertEqual(summary['pending_balance'], Decimal('0.00'))


class TestPayoutService(FinanceTestCase):

    def setUp(self):
        super().setUp()
        make_order(self.customer, self.driver, driver_payout='5.00')
        make_order(self.customer, self.driver, driver_payout='8.00')

    def test_weekly_payout_has_no_fee(self):
        payout = PayoutService.create_payout(self.driver, PayoutType.WEEKLY)
        self.assertEqual(payout.total_amount, Decimal('13.00'))
        self.assertEqual(payout.fee_amount, Decimal('0.00'))
        self.assertEqual(payout.net_amount, Decimal('13.00'))
        self.assertEqual(payout.orders.count(), 2)
        self.assertEqual(payout.status, PayoutStatus.PENDING)

    def test_instant_payout_fee(self):
        payout = PayoutService.create_payout(self.driver, PayoutType.INSTANT)
        self.assertEqual(payout.fee_amount, Decimal('0.50'))
        self.assertEqual(payout.net_amount, Decimal('12.50'))

    def test_orders_cannot_be_paid_twice(self):
        PayoutService.create_payout(self.driver, PayoutType.WEEKLY)
        with self.assertRaises(ValueError):
            PayoutService.create_payout(self.driver, PayoutType.WEEKLY)

    def test_failed_payout_releases_orders(self):
        payout = PayoutService.create_payout(self.driver, PayoutType.WEEKLY)
        PayoutService.update_status(payout, PayoutStatus.FAILED, 'Bank rejected')

        retry = PayoutService.create_payout(self.driver, PayoutType.WEEKLY)
        self.assertEqual(retry.total_amount, Decimal('13.00'))

    def test_completion_stamps_completed_at(self):
        payout = PayoutService.create_payout(self.driver, PayoutType.WEEKLY)
        payout = PayoutService.update_status(payout, PayoutStatus.COMPLETED)
        self.assertIsNotNone(payout.completed_at)

        with self.assertRaises(ValueError):
            PayoutService.update_status(payout, PayoutStatus.FAILED)

    def test_non_driver_rejected(self):
        with self.assertRaises(ValueError):
            PayoutService.create_payout(self.customer, PayoutType.WEEKLY)


class TestTaxReport(FinanceTestCase):

    def _completed_payout(self, driver, amount, when, payout_type=PayoutType.WEEKLY, fee='0.00'):
        return Payout.objects.create(
            driver=driver,
            payout_type=payout_type,
            status=PayoutStatus.COMPLETED,
            total_amount=Decimal(amount),
            fee_amount=Decimal(fee),
            net_amount=Decimal(amount) - Decimal(fee),
            completed_at=timezone.make_aware(when),
        )

    def test_annual_totals_and_1099_threshold(self):
        small_driver = User.objects.create_user(
            email='small@example.com', password='testpass123', role=UserRole.DRIVER
        )
        self._completed_payout(self.driver, '400.00', datetime(2025, 3, 3))
        self._completed_payout(self.driver, '250.00', datetime(2025, 9, 1), PayoutType.INSTANT, '0.50')
        self._completed_payout(self.driver, '900.00', datetime(2024, 12, 30))
        self._completed_payout(small_driver, '120.00', datetime(2025, 5, 5))

        report = TaxReportService.annual_report(2025)

        self.assertEqual(len(report), 2)
        top = report[0]
        self.assertEqual(top['driver_email'], 'driver@example.com')
        self.assertEqual(top['total_earnings'], Decimal('650.00'))
        self.assertEqual(top['total_fees'], Decimal('0.50'))
        self.assertEqual(top['instant_payouts'], 1)
        self.assertEqual(top['weekly_payouts'], 1)
        self.assertTrue(top['requires_1099'])
        self.assertFalse(report[1]['requires_1099'])

    def test_pending_payouts_excluded(self):
        Payout.objects.create(
            driver=self.driver, total_amount=Decimal('700.00'), net_amount=Decimal('700.00'),
        )
        self.assertEqual(TaxReportService.annual_report(timezone.localdate().year), [])

    def test_csv_export(self):
        self._completed_payout(self.driver, '610.00', datetime(2025, 6, 1))
        client = APIClient()
        client.force_authenticate(self.admin)

        response = client.get('/api/admin/tax-reports/export/', {'year': 2025})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/csv')
        lines = response.content.decode().strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertIn('driver@example.com', lines[1])
        self.assertTrue(lines[1].endswith('yes'))


class TestFinanceAPI(FinanceTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        make_order(self.customer, self.driver, driver_payout='5.00')

    def test_admin_creates_instant_payout(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/admin/payouts/', {
            'driver_id': str(self.driver.id), 'payout_type': 'instant',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Decimal(response.data['net_amount']), Decimal('4.50'))

    def test_empty_payout_is_bad_request(self):
        self.client.force_authenticate(self.admin)
        self.client.post('/api/admin/payouts/', {'driver_id': str(self.driver.id)}, format='json')
        response = self.client.post('/api/admin/payouts/', {'driver_id': str(self.driver.id)}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.data)

    def test_payout_status_endpoint(self):
        payout = PayoutService.create_payout(self.driver)
        self.client.force_authenticate(self.admin)
        response = self.client.patch(
            f'/api/admin/payouts/{payout.id}/status/', {'status': 'completed'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'completed')

    def test_driver_summary(self):
        self.client.force_authenticate(self.driver)
        response = self.client.get('/api/driver/payments/summary/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(Decimal(response.data['pending_balance']), Decimal('5.00'))

    def test_customer_cannot_see_admin_summary(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/admin/payments/summary/')
        self.assertEqual(response.status_code, 403)


@override_settings(STRIPE_SECRET_KEY='sk_test_123', STRIPE_PUBLISHABLE_KEY='pk_test_123')
class TestPaymentIntent(FinanceTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.client.force_authenticate(self.customer)

    def _provider_response(self, status_code=200, body=None):
        response = MagicMock()
        response.status_code = status_code
        response.content = b'{}'
        response.json.return_value = body or {
            'id': 'pi_123', 'client_secret': 'pi_123_secret_abc',
            'amount': 1235, 'status': 'requires_payment_method',
        }
        return response

    def test_to_cents_rounds_half_up(self):
        self.assertEqual(StripePaymentService.to_cents(Decimal('12.345')), 1235)
        self.assertEqual(StripePaymentService.to_cents(Decimal('9.48')), 948)

    @patch('finance.stripe_service.requests.post')
    def test_creates_intent(self, mock_post):
        mock_post.return_value = self._provider_response()

        response = self.client.post(
            '/api/create-payment-intent/', {'amount': '12.35', 'orderId': 'RTN-ABCDEFGH'}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['clientSecret'], 'pi_123_secret_abc')
        self.assertEqual(response.data['publishableKey'], 'pk_test_123')

        _, kwargs = mock_post.call_args
        self.assertEqual(kwargs['data']['amount'], 1235)
        self.assertEqual(kwargs['data']['currency'], 'usd')
        self.assertEqual(kwargs['data']['metadata[orderId]'], 'RTN-ABCDEFGH')
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer sk_test_123')
        self.assertEqual(kwargs['timeout'], 15)

        record = PaymentIntentRecord.objects.get(provider_intent_id='pi_123')
        self.assertEqual(record.amount_cents, 1235)
        self.assertEqual(record.order_reference, 'RTN-ABCDEFGH')

    @patch('finance.stripe_service.requests.post')
    def test_rejects_non_positive_amount(self, mock_post):
        for amount in ['0', '-5.00']:
            response = self.client.post(
                '/api/create-payment-intent/', {'amount': amount}, format='json'
            )
            self.assertEqual(response.status_code, 400)
        mock_post.assert_not_called()

    @patch('finance.stripe_service.requests.post')
    def test_provider_error_is_bad_gateway(self, mock_post):
        mock_post.return_value = self._provider_response(
            402, {'error': {'message': 'Your card was declined.'}}
        )
        response = self.client.post('/api/create-payment-intent/', {'amount': '5.00'}, format='json')
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.data['message'], 'Your card was declined.')

    @patch('finance.stripe_service.requests.post')
    def test_html_error_page_is_bad_gateway(self, mock_post):
        """A proxy error page (non-JSON body) still maps to 502."""
        gateway_page = requests.Response()
        gateway_page.status_code = 502
        gateway_page._content = b'<html>Bad Gateway</html>'
        mock_post.return_value = gateway_page

        response = self.client.post('/api/create-payment-intent/', {'amount': '5.00'}, format='json')

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.data['message'], 'HTTP 502')
        self.assertFalse(PaymentIntentRecord.objects.exists())

    @patch('finance.stripe_service.requests.post')
    def test_success_without_intent_id_is_bad_gateway(self, mock_post):
        mock_post.return_value = self._provider_response(200, {'status': 'requires_payment_method'})

        response = self.client.post('/api/create-payment-intent/', {'amount': '5.00'}, format='json')

        self.assertEqual(response.status_code, 502)
        self.assertFalse(PaymentIntentRecord.objects.exists())

    @patch('finance.stripe_service.requests.post')
    def test_network_error_raises_provider_error(self, mock_post):
        mock_post.side_effect = requests.ConnectionError('boom')
        with self.assertRaises(PaymentProviderError):
            StripePaymentService.create_payment_intent(Decimal('5.00'))

    @override_settings(STRIPE_SECRET_KEY='')
    def test_missing_key_raises_provider_error(self):
        with self.assertRaises(PaymentProviderError):
            StripePaymentService.create_payment_intent(Decimal('5.00'))


class TestWeeklyPayoutTask(FinanceTestCase):

    def test_creates_payouts_for_weekly_drivers(self):
        instant_driver = User.objects.create_user(
            email='instant@example.com', password='testpass123', role=UserRole.DRIVER,
            payout_preference=PayoutPreference.INSTANT,
        )
        make_order(self.customer, self.driver, driver_payout='5.00')
        make_order(self.customer, instant_driver, driver_payout='5.00')

        result = process_weekly_payouts()

        self.assertEqual(result['created'], 1)
        self.assertEqual(Payout.objects.filter(driver=self.driver).count(), 1)
        self.assertFalse(Payout.objects.filter(driver=instant_driver).exists())
