"""
ReturnIt Booking Tests
======================

Tests for:
1. Pricing Engine (fees, reverse-solved service fee, donations, rounding)
2. Route estimate (ZIP lookup, fallback, drive time)
3. Order lifecycle (tracking numbers, status changes, driver assignment)
4. Booking & admin order API
"""

from decimal import Decimal
from django.test import TestCase
from rest_framework.test import APIClient

from booking.models import Order, OrderStatus, BookingType
from booking.services.orders import OrderService
from booking.services.pricing import (
    PricingEngine, PricingError, BookingItem, size_from_value
)
from booking.services.zip_codes import lookup_zip, DEFAULT_COORDINATES
from booking.utils import generate_tracking_number, TRACKING_ALPHABET
from core.models import User, UserRole, Notification, NotificationType


def order_payload(**overrides):
    payload = {
        'booking_type': 'return',
        'service_tier': 'standard',
        'pickup_street_address': '4200 Laclede Ave',
        'pickup_city': 'St. Louis',
        'pickup_state': 'mo',
        'pickup_zip_code': '63108',
        'retailer': 'Target',
        'store_zip_code': '63117',
        'items': [{'description': 'Jacket', 'value': '120.00'}],
        'box_count': 1,
        'bag_count': 0,
        'tip': '2.00',
    }
    payload.update(overrides)
    return payload


class TestPricingEngine(TestCase):
    """Tests for the booking price calculation."""

    def setUp(self):
        self.engine = PricingEngine()

    # ==========================================
    # Fee components
    # ==========================================

    def test_single_package_has_no_multi_package_fee(self):
        """One box or one bag is free of the multi-package fee."""
        self.assertEqual(self.engine.calculate_multi_package_fee(1, 0), Decimal('0'))
        self.assertEqual(self.engine.calculate_multi_package_fee(0, 1), Decimal('0'))
        self.assertEqual(self.engine.calculate_multi_package_fee(0, 0), Decimal('0'))

    def test_multi_package_fee_per_extra_package(self):
        """Every package after the first costs $3.00."""
        for boxes, bags in [(2, 0), (1, 1), (3, 2), (0, 5)]:
            breakdown = self.engine.calculate_price(
                box_count=boxes, bag_count=bags, distance_miles=3.0
            )
            self.assertEqual(
                breakdown.multi_package_fee,
                Decimal(boxes + bags - 1) * Decimal('3.00')
            )

    def test_fuel_fee_minimum_at_zero_distance(self):
        """Fuel fee never drops below $1.25."""
        breakdown = self.engine.calculate_price(distance_miles=0.0)
        self.assertEqual(breakdown.fuel_fee, Decimal('1.25'))

    def test_fuel_fee_per_mile_above_minimum(self):
        """Long trips pay the per-mile rate."""
        self.assertEqual(self.engine.calculate_fuel_fee(10.0), Decimal('3.500'))

    def test_size_inferred_from_value(self):
        self.assertEqual(size_from_value(Decimal('10')), 'S')
        self.assertEqual(size_from_value(Decimal('25')), 'M')
        self.assertEqual(size_from_value(Decimal('100')), 'L')
        self.assertEqual(size_from_value(Decimal('299.99')), 'L')
        self.assertEqual(size_from_value(Decimal('300')), 'XL')

    def test_explicit_size_wins_over_value(self):
        item = BookingItem(value=Decimal('500'), size='s')
        self.assertEqual(item.resolved_size(), 'S')

    # ==========================================
    # Full breakdown
    # ==========================================

    def test_standard_single_box_breakdown(self):
        """Standard tier, one box, zero distance, no tip."""
        breakdown = self.engine.calculate_price(
            service_tier='standard', box_count=1, distance_miles=0.0
        ).rounded()

        self.assertEqual(breakdown.subtotal, Decimal('6.99'))
        self.assertEqual(breakdown.fuel_fee, Decimal('1.25'))
        self.assertEqual(breakdown.tax, Decimal('0.72'))
        self.assertEqual(breakdown.service_fee, Decimal('0.52'))
        self.assertEqual(breakdown.total, Decimal('9.48'))
        self.assertEqual(breakdown.driver_payout, Decimal('5.00'))

    def test_priority_mixed_packages_breakdown(self):
        """Upcharges, package fee and tip all flow into the total."""
        items = [BookingItem(size='L'), BookingItem(value=Decimal('350'))]
        breakdown = self.engine.calculate_price(
            service_tier='priority', items=items, box_count=3, bag_count=1,
            tip=Decimal('5.00'), distance_miles=10.0
        )

        self.assertEqual(breakdown.item_sizes, ['L', 'XL'])
        self.assertEqual(breakdown.size_upcharge, Decimal('6.00'))
        self.assertEqual(breakdown.multi_package_fee, Decimal('9.00'))
        self.assertEqual(breakdown.subtotal, Decimal('24.99'))
        self.assertEqual(breakdown.fuel_fee, Decimal('3.500'))
        self.assertEqual(breakdown.tax, Decimal('28.490') * Decimal('0.0875'))
        self.assertEqual(breakdown.driver_payout, Decimal('13.00'))

    def test_tip_is_not_taxed(self):
        without_tip = self.engine.calculate_price(box_count=1, distance_miles=4.0)
        with_tip = self.engine.calculate_price(box_count=1, distance_miles=4.0, tip=Decimal('10'))
        self.assertEqual(without_tip.tax, with_tip.tax)

    def test_service_fee_is_share_of_final_total(self):
        """service_fee / total is 5.5% across varied inputs."""
        for tier in ['standard', 'priority', 'instant']:
            for distance in [0.0, 2.5, 14.3, 40.0]:
                for tip in [Decimal('0'), Decimal('3.50'), Decimal('20')]:
                    for boxes, bags in [(1, 0), (2, 3)]:
                        breakdown = self.engine.calculate_price(
                            service_tier=tier,
                            items=[BookingItem(value=Decimal('150'))],
                            box_count=boxes, bag_count=bags,
                            tip=tip, distance_miles=distance,
                        )
                        ratio = breakdown.service_fee / breakdown.total
                        self.assertLess(abs(ratio - Decimal('0.055')), Decimal('1e-20'))

    def test_total_is_sum_of_components(self):
        breakdown = self.engine.calculate_price(
            service_tier='instant', box_count=2, tip=Decimal('1.10'), distance_miles=7.7
        )
        self.assertEqual(
            breakdown.total,
            breakdown.subtotal + breakdown.fuel_fee + breakdown.tax
            + breakdown.tip + breakdown.service_fee
        )
        self.assertEqual(
            breakdown.platform_revenue,
            breakdown.total - breakdown.driver_payout - breakdown.tax
        )

    def test_rounded_total_is_sum_of_rounded_components(self):
        breakdown = self.engine.calculate_price(
            service_tier='priority', box_count=2, bag_count=2,
            tip=Decimal('3.33'), distance_miles=12.9
        ).rounded()
        self.assertEqual(
            breakdown.total,
            breakdown.subtotal + breakdown.fuel_fee + breakdown.tax
            + breakdown.tip + breakdown.service_fee
        )
        self.assertEqual(breakdown.total, breakdown.total.quantize(Decimal('0.01')))

    # ==========================================
    # Donations
    # ==========================================

    def test_donation_total_equals_tip(self):
        """Donations waive every fee regardless of items."""
        items = [BookingItem(size='XL'), BookingItem(value=Decimal('900'))]
        for tip in [Decimal('0'), Decimal('4.25')]:
            breakdown = self.engine.calculate_price(
                service_tier='instant', items=items, box_count=4, bag_count=2,
                tip=tip, is_donation=True, distance_miles=25.0
            )
            self.assertEqual(breakdown.total, tip)
            self.assertEqual(breakdown.driver_payout, tip)
            self.assertEqual(breakdown.service_fee, Decimal('0'))
            self.assertEqual(breakdown.fuel_fee, Decimal('0'))
            self.assertEqual(breakdown.tax, Decimal('0'))

    # ==========================================
    # Validation
    # ==========================================

    def test_negative_tip_rejected(self):
        with self.assertRaises(PricingError):
            self.engine.calculate_price(tip=Decimal('-1'), distance_miles=1.0)

    def test_negative_counts_rejected(self):
        with self.assertRaises(PricingError):
            self.engine.calculate_price(box_count=-1, distance_miles=1.0)

    def test_negative_item_value_rejected(self):
        with self.assertRaises(PricingError):
            self.engine.calculate_price(
                items=[BookingItem(value=Decimal('-5'))], distance_miles=1.0
            )

    def test_non_finite_amounts_rejected(self):
        with self.assertRaises(PricingError):
            self.engine.calculate_price(tip='NaN', distance_miles=1.0)
        with self.assertRaises(PricingError):
            self.engine.calculate_price(
                items=[BookingItem(value='Infinity')], distance_miles=1.0
            )
        with self.assertRaises(PricingError):
            self.engine.calculate_price(tip='abc', distance_miles=1.0)

    def test_unknown_tier_rejected(self):
        with self.assertRaises(PricingError):
            self.engine.calculate_price(service_tier='overnight', distance_miles=1.0)

    def test_unknown_size_rejected(self):
        with self.assertRaises(PricingError):
            self.engine.calculate_price(items=[BookingItem(size='XXL')], distance_miles=1.0)


class TestRouteEstimate(TestCase):
    """Tests for ZIP lookup and drive-time estimate."""

    def setUp(self):
        self.engine = PricingEngine()

    def test_known_zip_lookup(self):
        lat, lng, found = lookup_zip('63108-1234')
        self.assertTrue(found)
        self.assertAlmostEqual(lat, 38.6445, places=3)

    def test_unknown_zip_falls_back_to_downtown(self):
        lat, lng, found = lookup_zip('90210')
        self.assertFalse(found)
        self.assertEqual((lat, lng), DEFAULT_COORDINATES)

    def test_same_zip_is_zero_distance(self):
        route = self.engine.estimate_route('63108', '63108')
        self.assertEqual(route.distance_miles, 0.0)
        self.assertEqual(route.estimated_minutes, 10)
        self.assertEqual(route.time_cap_minutes, 20)
        self.assertFalse(route.distance_estimated)

    def test_road_distance_exceeds_straight_line(self):
        crow = self.engine.get_haversine_distance(38.6445, -90.2540, 38.6292, -90.3246)
        route = self.engine.estimate_route('63108', '63117')
        self.assertGreater(route.distance_miles, round(crow, 1))
        self.assertGreater(route.estimated_minutes, 10)

    def test_unknown_zip_marks_estimate(self):
        route = self.engine.estimate_route('63108', '10001')
        self.assertTrue(route.distance_estimated)


class TestOrderLifecycle(TestCase):
    """Tests for order creation, status changes and assignment."""

    def setUp(self):
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123',
            role=UserRole.CUSTOMER, first_name='Casey',
        )
        self.driver = User.objects.create_user(
            email='driver@example.com', password='testpass123',
            role=UserRole.DRIVER, is_approved=True,
        )
        self.order = OrderService.create_order(self.customer, {
            'booking_type': BookingType.RETURN,
            'service_tier': 'standard',
            'pickup_street_address': '1 Main St',
            'pickup_city': 'St. Louis',
            'pickup_state': 'MO',
            'pickup_zip_code': '63108',
            'retailer': 'Target',
            'store_zip_code': '63108',
            'items': [],
            'box_count': 1,
            'bag_count': 0,
            'tip': Decimal('0.00'),
        })

    def test_tracking_number_format(self):
        number = generate_tracking_number()
        self.assertTrue(number.startswith('RTN-'))
        self.assertEqual(len(number), 12)
        self.assertTrue(all(ch in TRACKING_ALPHABET for ch in number[4:]))

    def test_order_gets_tracking_number_and_frozen_price(self):
        self.assertTrue(self.order.tracking_number.startswith('RTN-'))
        self.assertEqual(self.order.total, Decimal('9.48'))
        self.assertEqual(self.order.status, OrderStatus.PENDING)

    def test_creation_sends_order_update(self):
        self.assertTrue(Notification.objects.filter(
            user=self.customer, order=self.order, type=NotificationType.ORDER_UPDATE
        ).exists())

    def test_status_change_stamps_timestamp(self):
        order = OrderService.update_status(self.order, OrderStatus.PICKED_UP)
        self.assertIsNotNone(order.picked_up_at)

    def test_pickup_sends_pickup_complete(self):
        OrderService.update_status(self.order, OrderStatus.PICKED_UP)
        self.assertTrue(Notification.objects.filter(
            user=self.customer, type=NotificationType.PICKUP_COMPLETE
        ).exists())

    def test_terminal_status_is_final(self):
        OrderService.update_status(self.order, OrderStatus.CANCELLED)
        with self.assertRaises(ValueError):
            OrderService.update_status(self.order, OrderStatus.PENDING)

    def test_unknown_status_rejected(self):
        with self.assertRaises(ValueError):
            OrderService.update_status(self.order, 'lost')

    def test_assign_approved_driver(self):
        order = OrderService.assign_driver(self.order, self.driver)
        self.assertEqual(order.driver, self.driver)
        self.assertEqual(order.status, OrderStatus.ASSIGNED)
        self.assertIsNotNone(order.assigned_at)
        self.assertEqual(Notification.objects.filter(
            user=self.customer, type=NotificationType.DRIVER_ASSIGNED
        ).count(), 1)

    def test_reassigning_driver_notifies_customer_again(self):
        """Swapping drivers on an assigned order sends a second driver_assigned."""
        other_driver = User.objects.create_user(
            email='driver2@example.com', password='testpass123',
            role=UserRole.DRIVER, is_approved=True,
        )
        OrderService.assign_driver(self.order, self.driver)
        order = OrderService.assign_driver(self.order, other_driver)

        self.assertEqual(order.driver, other_driver)
        self.assertEqual(Notification.objects.filter(
            user=self.customer, type=NotificationType.DRIVER_ASSIGNED
        ).count(), 2)

    def test_assigning_same_driver_twice_notifies_once(self):
        OrderService.assign_driver(self.order, self.driver)
        OrderService.assign_driver(self.order, self.driver)

        self.assertEqual(Notification.objects.filter(
            user=self.customer, type=NotificationType.DRIVER_ASSIGNED
        ).count(), 1)

    def test_assign_unapproved_driver_rejected(self):
        self.driver.is_approved = False
        self.driver.save()
        with self.assertRaises(ValueError):
            OrderService.assign_driver(self.order, self.driver)

    def test_assign_non_driver_rejected(self):
        with self.assertRaises(ValueError):
            OrderService.assign_driver(self.order, self.customer)


class TestBookingAPI(TestCase):
    """Tests for quote, booking and admin order endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123', role=UserRole.CUSTOMER
        )
        self.other_customer = User.objects.create_user(
            email='other@example.com', password='testpass123', role=UserRole.CUSTOMER
        )
        self.admin = User.objects.create_user(
            email='admin@example.com', password='testpass123', role=UserRole.ADMIN
        )
        self.driver = User.objects.create_user(
            email='driver@example.com', password='testpass123',
            role=UserRole.DRIVER, is_approved=True,
        )

    def _book(self, user, **overrides):
        self.client.force_authenticate(user)
        return self.client.post('/api/orders/', order_payload(**overrides), format='json')

    # ==========================================
    # Quote
    # ==========================================

    def test_quote_is_public(self):
        response = self.client.post('/api/quote/', {
            'pickup_zip_code': '63108', 'store_zip_code': '63108', 'box_count': 1,
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['total'], Decimal('9.48'))
        self.assertFalse(response.data['distance_estimated'])

    def test_quote_flags_unknown_zip(self):
        response = self.client.post('/api/quote/', {
            'pickup_zip_code': '63108', 'store_zip_code': '99999', 'box_count': 1,
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['distance_estimated'])

    def test_quote_rejects_negative_tip(self):
        response = self.client.post('/api/quote/', {
            'pickup_zip_code': '63108', 'tip': '-1.00',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    # ==========================================
    # Customer booking
    # ==========================================

    def test_customer_books_order(self):
        response = self._book(self.customer)
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['tracking_number'].startswith('RTN-'))
        self.assertEqual(response.data['pickup_state'], 'MO')
        self.assertEqual(response.data['items'][0]['size'], 'L')

        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(
            order.total,
            order.subtotal + order.fuel_fee + order.tax + order.tip + order.service_fee
        )

    def test_booking_requires_retailer(self):
        response = self._book(self.customer, retailer='')
        self.assertEqual(response.status_code, 400)
        self.assertIn('retailer', response.data)

    def test_booking_requires_item_or_package(self):
        response = self._book(self.customer, items=[], box_count=0, bag_count=0)
        self.assertEqual(response.status_code, 400)

    def test_booking_rejects_bad_zip(self):
        response = self._book(self.customer, pickup_zip_code='631')
        self.assertEqual(response.status_code, 400)

    def test_donation_without_retailer(self):
        response = self._book(
            self.customer, booking_type='donation', retailer='',
            items=[], box_count=0, tip='3.00'
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Decimal(response.data['total']), Decimal('3.00'))

    def test_drivers_cannot_book(self):
        response = self._book(self.driver)
        self.assertEqual(response.status_code, 403)

    def test_customers_see_only_their_orders(self):
        self._book(self.customer)
        self._book(self.other_customer)

        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['customer_email'], 'customer@example.com')

    # ==========================================
    # Admin orders
    # ==========================================

    def test_admin_list_requires_admin(self):
        self.client.force_authenticate(self.customer)
        response = self.client.get('/api/admin/orders/')
        self.assertEqual(response.status_code, 403)

    def test_admin_list_filters_and_search(self):
        first = self._book(self.customer).data
        self._book(self.other_customer)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/admin/orders/', {'search': 'other@example'})
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/admin/orders/', {'search': first['tracking_number']})
        self.assertEqual(response.data[0]['id'], first['id'])

        response = self.client.get('/api/admin/orders/', {'status': 'pending'})
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/admin/orders/', {'status': 'completed'})
        self.assertEqual(len(response.data), 0)

    def test_admin_creates_order_for_customer(self):
        self.client.force_authenticate(self.admin)
        payload = order_payload(customer_id=str(self.customer.id), items=[], box_count=0)
        response = self.client.post('/api/admin/orders/create/', payload, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['customer_email'], 'customer@example.com')

    def test_admin_create_unknown_customer(self):
        self.client.force_authenticate(self.admin)
        payload = order_payload(customer_id=str(self.driver.id))
        response = self.client.post('/api/admin/orders/create/', payload, format='json')
        self.assertEqual(response.status_code, 404)

    def test_admin_status_update(self):
        order_id = self._book(self.customer).data['id']
        self.client.force_authenticate(self.admin)

        response = self.client.patch(
            f'/api/admin/orders/{order_id}/status/', {'status': 'completed'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(response.data['completed_at'])

        response = self.client.patch(
            f'/api/admin/orders/{order_id}/status/', {'status': 'pending'}, format='json'
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.data)

    def test_admin_assigns_driver(self):
        order_id = self._book(self.customer).data['id']
        self.client.force_authenticate(self.admin)

        response = self.client.post(
            f'/api/admin/orders/{order_id}/assign/', {'driver_id': str(self.driver.id)}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], 'assigned')

        self.client.force_authenticate(self.driver)
        response = self.client.get('/api/orders/')
        self.assertEqual(len(response.data), 1)
