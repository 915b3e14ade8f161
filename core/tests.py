"""
ReturnIt Core Tests
===================

Tests for:
1. Custom User Model (creation, roles)
2. Registration & profile API
3. Admin customer / driver lists
4. Notification center
5. Security Middleware & health checks
"""

from decimal import Decimal
from unittest.mock import patch
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from booking.models import Order, OrderStatus
from core.models import User, UserRole, Notification, NotificationService, NotificationType


def make_order(customer, total, status=OrderStatus.PENDING):
    return Order.objects.create(
        customer=customer,
        status=status,
        pickup_street_address='1 Main St',
        pickup_city='St. Louis',
        pickup_state='MO',
        pickup_zip_code='63108',
        retailer='Target',
        total=Decimal(total),
    )


class TestUserModel(TestCase):
    """Tests for the custom User model."""

    def setUp(self):
        self.admin = User.objects.create_user(
            email='admin@example.com', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(
            email='Customer@Example.com', password='testpass123',
            role=UserRole.CUSTOMER, first_name='Casey', last_name='Nguyen',
        )
        self.driver = User.objects.create_user(
            email='driver@example.com', password='testpass123', role=UserRole.DRIVER
        )

    # ==========================================
    # Role Tests
    # ==========================================

    def test_role_properties(self):
        self.assertTrue(self.admin.is_admin)
        self.assertTrue(self.customer.is_customer)
        self.assertTrue(self.driver.is_driver)
        self.assertFalse(self.driver.is_customer)

    def test_default_role_is_customer(self):
        user = User.objects.create_user(email='new@example.com', password='testpass123')
        self.assertEqual(user.role, UserRole.CUSTOMER)

    def test_email_domain_normalized(self):
        self.assertEqual(self.customer.email, 'Customer@example.com')

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='testpass123')

    def test_superuser_is_admin(self):
        root = User.objects.create_superuser(email='root@example.com', password='testpass123')
        self.assertEqual(root.role, UserRole.ADMIN)
        self.assertTrue(root.is_staff)

    def test_drivers_start_unapproved(self):
        self.assertFalse(self.driver.is_approved)

    def test_full_name(self):
        self.assertEqual(self.customer.full_name, 'Casey Nguyen')
        self.assertEqual(self.driver.full_name, '')
        self.assertIn('driver@example.com', str(self.driver))


class TestUserAPI(TestCase):

    def setUp(self):
        self.client = APIClient()

    def test_register_customer(self):
        response = self.client.post('/api/users/', {
            'email': 'jo@example.com',
            'password': 'Returns-Are-Easy-42',
            'first_name': 'Jo',
            'role': UserRole.CUSTOMER,
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertNotIn('password', response.data)
        user = User.objects.get(email='jo@example.com')
        self.assertTrue(user.check_password('Returns-Are-Easy-42'))

    def test_cannot_self_register_as_admin(self):
        response = self.client.post('/api/users/', {
            'email': 'sneaky@example.com',
            'password': 'Returns-Are-Easy-42',
            'role': UserRole.ADMIN,
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('role', response.data)

    def test_me_requires_auth(self):
        response = self.client.get('/api/users/me/')
        self.assertEqual(response.status_code, 401)

    def test_me_returns_profile(self):
        user = User.objects.create_user(email='me@example.com', password='testpass123')
        self.client.force_authenticate(user=user)

        response = self.client.get('/api/users/me/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['email'], 'me@example.com')

    def test_user_cannot_read_other_profiles(self):
        user = User.objects.create_user(email='me@example.com', password='testpass123')
        other = User.objects.create_user(email='other@example.com', password='testpass123')
        self.client.force_authenticate(user=user)

        response = self.client.get(f'/api/users/{other.id}/')
        self.assertEqual(response.status_code, 404)

    def test_token_obtain(self):
        User.objects.create_user(email='jwt@example.com', password='testpass123')
        response = self.client.post('/api/auth/token/', {
            'email': 'jwt@example.com',
            'password': 'testpass123',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)


# ============================================
# ADMIN CUSTOMERS / DRIVERS
# ============================================

class TestAdminUserLists(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(
            email='admin@example.com', password='testpass123', role=UserRole.ADMIN
        )
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123',
            role=UserRole.CUSTOMER, first_name='Casey',
        )
        self.driver = User.objects.create_user(
            email='driver@example.com', password='testpass123',
            role=UserRole.DRIVER, is_online=True,
        )
        self.client.force_authenticate(user=self.admin)

    def test_customer_aggregates_exclude_cancelled(self):
        make_order(self.customer, '12.50')
        make_order(self.customer, '7.25', status=OrderStatus.COMPLETED)
        make_order(self.customer, '30.00', status=OrderStatus.CANCELLED)

        response = self.client.get('/api/admin/customers/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        row = response.data[0]
        self.assertEqual(row['order_count'], 3)
        self.assertEqual(row['total_spent'], '19.75')

    def test_customer_without_orders(self):
        response = self.client.get('/api/admin/customers/')
        self.assertEqual(response.data[0]['order_count'], 0)
        self.assertEqual(response.data[0]['total_spent'], '0.00')

    def test_customer_search(self):
        User.objects.create_user(email='zed@example.com', password='testpass123', role=UserRole.CUSTOMER)
        response = self.client.get('/api/admin/customers/', {'search': 'Casey'})
        self.assertEqual([c['email'] for c in response.data], ['customer@example.com'])

    def test_customer_list_requires_admin(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get('/api/admin/customers/')
        self.assertEqual(response.status_code, 403)

    def test_driver_filters(self):
        User.objects.create_user(
            email='offline@example.com', password='testpass123',
            role=UserRole.DRIVER, is_approved=True,
        )

        response = self.client.get('/api/admin/drivers/', {'is_online': 'true'})
        self.assertEqual([d['email'] for d in response.data], ['driver@example.com'])

        response = self.client.get('/api/admin/drivers/', {'is_approved': 'false'})
        self.assertEqual([d['email'] for d in response.data], ['driver@example.com'])

    def test_approve_driver(self):
        response = self.client.post(f'/api/admin/drivers/{self.driver.id}/approve/')
        self.assertEqual(response.status_code, 200)
        self.driver.refresh_from_db()
        self.assertTrue(self.driver.is_approved)

        response = self.client.post(f'/api/admin/drivers/{self.driver.id}/approve/')
        self.assertEqual(response.status_code, 400)


# ============================================
# NOTIFICATIONS
# ============================================

class TestNotifications(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123', role=UserRole.CUSTOMER
        )
        self.other = User.objects.create_user(
            email='other@example.com', password='testpass123', role=UserRole.CUSTOMER
        )
        self.first = NotificationService.notify(self.customer, 'Order booked', 'RTN-AAAA2222 booked')
        self.second = NotificationService.notify(
            self.customer, 'Driver assigned', 'On the way',
            notification_type=NotificationType.DRIVER_ASSIGNED,
        )
        self.second.is_read = True
        self.second.save()
        NotificationService.notify(self.other, 'Not yours', '...')
        self.client.force_authenticate(user=self.customer)

    def test_notify_failure_is_logged_not_raised(self):
        with patch('core.models.Notification.objects.create', side_effect=RuntimeError('db down')):
            with self.assertLogs('core.models', level='ERROR'):
                result = NotificationService.notify(self.customer, 'x', 'y')
        self.assertIsNone(result)

    def test_list_own_notifications(self):
        response = self.client.get('/api/customers/notifications/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 2)

    def test_filter_unread_and_read(self):
        response = self.client.get('/api/customers/notifications/', {'filter': 'unread'})
        self.assertEqual([n['title'] for n in response.data], ['Order booked'])

        response = self.client.get('/api/customers/notifications/', {'filter': 'read'})
        self.assertEqual([n['title'] for n in response.data], ['Driver assigned'])

    def test_mark_read_and_unread(self):
        response = self.client.patch(f'/api/customers/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['is_read'])

        response = self.client.patch(f'/api/customers/notifications/{self.first.id}/unread/')
        self.assertFalse(response.data['is_read'])

    def test_mark_all_read(self):
        response = self.client.post('/api/customers/notifications/mark-all-read/')

        self.assertEqual(response.data, {'updated': 1})
        self.assertFalse(Notification.objects.filter(user=self.customer, is_read=False).exists())
        self.assertTrue(Notification.objects.filter(user=self.other, is_read=False).exists())

    def test_delete_notification(self):
        response = self.client.delete(f'/api/customers/notifications/{self.first.id}/')
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Notification.objects.filter(pk=self.first.pk).exists())

    def test_cannot_touch_other_users_notifications(self):
        theirs = Notification.objects.get(user=self.other)
        response = self.client.delete(f'/api/customers/notifications/{theirs.id}/')
        self.assertEqual(response.status_code, 404)


class TestSecurityMiddleware(TestCase):
    """Tests for security middleware behavior."""

    def test_health_endpoint_accessible(self):
        """Health check should be accessible without auth."""
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['status'], 'ok')
        self.assertEqual(data['service'], 'returnit')

    def test_readiness_endpoint_reports_checks(self):
        response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['checks']['database']['status'], 'healthy')
        self.assertEqual(data['checks']['cache']['status'], 'healthy')
        self.assertEqual(data['checks']['pricing']['status'], 'healthy')
        self.assertEqual(data['checks']['pricing']['tiers'], ['instant', 'priority', 'standard'])
        self.assertGreater(data['checks']['pricing']['zip_codes'], 0)

    @override_settings(PRICING_SALES_TAX_RATE='eight percent')
    def test_readiness_fails_on_bad_pricing_config(self):
        with self.assertLogs('returnit.monitoring', level='ERROR'):
            response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 503)
        checks = response.json()['checks']
        self.assertEqual(checks['pricing']['status'], 'unhealthy')
        self.assertIn('PRICING_SALES_TAX_RATE', checks['pricing']['error'])
        self.assertEqual(checks['database']['status'], 'healthy')

    def test_security_headers_present(self):
        """Response should contain security headers."""
        response = self.client.get('/health/')
        self.assertEqual(response['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response['X-Frame-Options'], 'DENY')
        self.assertIn('Referrer-Policy', response)

    def test_failed_api_request_is_audited(self):
        with self.assertLogs('returnit.security', level='WARNING') as logs:
            self.client.get('/api/users/me/', HTTP_X_FORWARDED_FOR='203.0.113.9, 10.0.0.1')
        self.assertIn('203.0.113.9', logs.output[0])
        self.assertIn('[api]', logs.output[0])

    def test_payout_write_is_audited_with_area(self):
        admin = User.objects.create_user(
            email='admin@example.com', password='testpass123', role=UserRole.ADMIN
        )
        self.client.force_login(admin)
        with self.assertLogs('returnit.security', level='INFO') as logs:
            self.client.post('/api/admin/payouts/', {}, content_type='application/json')
        self.assertIn('[payout]', logs.output[0])
        self.assertIn('admin@example.com (ADMIN)', logs.output[0])

    def test_successful_reads_are_not_audited(self):
        with patch('core.middleware.logger') as mock_logger:
            self.client.get('/health/')
        mock_logger.info.assert_not_called()
        mock_logger.warning.assert_not_called()
