"""
Order lifecycle service: creation with frozen pricing, status changes,
manual driver assignment.
"""

import logging
from decimal import Decimal
from django.db import transaction
from django.utils import timezone

from core.models import NotificationService, NotificationType, UserRole
from booking.models import Order, OrderItem, OrderStatus, BookingType
from .pricing import BookingItem, pricing_engine

logger = logging.getLogger(__name__)


STATUS_TIMESTAMPS = {
    OrderStatus.ASSIGNED: 'assigned_at',
    OrderStatus.PICKED_UP: 'picked_up_at',
    OrderStatus.DELIVERED: 'delivered_at',
    OrderStatus.COMPLETED: 'completed_at',
    OrderStatus.CANCELLED: 'cancelled_at',
}


class OrderService:
    """
    Service class for order operations.

    All mutations use transaction.atomic() for data integrity.
    """

    @staticmethod
    def quote(data: dict):
        """
        Price booking inputs without persisting anything.

        Returns:
            (PriceBreakdown rounded to cents, RouteEstimate)
        """
        route = pricing_engine.estimate_route(
            data['pickup_zip_code'],
            data.get('store_zip_code', ''),
        )
        breakdown = pricing_engine.calculate_price(
            service_tier=data.get('service_tier', 'standard'),
            items=[BookingItem(**item) for item in data.get('items', [])],
            box_count=data.get('box_count', 0),
            bag_count=data.get('bag_count', 0),
            tip=data.get('tip', Decimal('0.00')),
            is_donation=data.get('booking_type') == BookingType.DONATION,
            distance_miles=route.distance_miles,
        )
        return breakdown.rounded(), route

    @staticmethod
    @transaction.atomic
    def create_order(customer, data: dict) -> Order:
        """
        Create an order with its items and frozen pricing.

        Args:
            customer: User placing the booking
            data: Validated booking fields (see OrderCreateSerializer)

        Raises:
            PricingError: If inputs cannot be priced
        """
        breakdown, route = OrderService.quote(data)
        items = data.get('items', [])

        order = Order.objects.create(
            customer=customer,
            booking_type=data.get('booking_type', BookingType.RETURN),
            service_tier=data.get('service_tier', 'standard'),
            pickup_street_address=data['pickup_street_address'],
            pickup_city=data['pickup_city'],
            pickup_state=data['pickup_state'],
            pickup_zip_code=data['pickup_zip_code'],
            pickup_instructions=data.get('pickup_instructions', ''),
            retailer=data.get('retailer', ''),
            store_zip_code=data.get('store_zip_code', ''),
            box_count=data.get('box_count', 0),
            bag_count=data.get('bag_count', 0),
            tip=breakdown.tip,
            distance_miles=route.distance_miles,
            base_price=breakdown.base_price,
            size_upcharge=breakdown.size_upcharge,
            multi_package_fee=breakdown.multi_package_fee,
            subtotal=breakdown.subtotal,
            fuel_fee=breakdown.fuel_fee,
            tax=breakdown.tax,
            service_fee=breakdown.service_fee,
            total=breakdown.total,
            driver_payout=breakdown.driver_payout,
        )

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                description=item.get('description', ''),
                size=size,
                value=item.get('value', Decimal('0.00')),
            )
            for item, size in zip(items, breakdown.item_sizes)
        ])

        logger.info(
            f"Order {order.tracking_number} created for {customer.email}: "
            f"{order.booking_type}/{order.service_tier} total=${order.total}"
        )

        NotificationService.notify(
            customer,
            title="Booking confirmed",
            message=f"Your pickup {order.tracking_number} has been booked.",
            notification_type=NotificationType.ORDER_UPDATE,
            order=order,
        )
        return order

    @staticmethod
    @transaction.atomic
    def update_status(order: Order, new_status: str) -> Order:
        """
        Move an order to a new status and stamp the matching timestamp.

        Raises:
            ValueError: Unknown status, or the order is already completed/cancelled
        """
        if new_status not in OrderStatus.values:
            raise ValueError(f"Unknown order status: {new_status}")

        order = Order.objects.select_for_update().get(pk=order.pk)

        if order.is_terminal:
            raise ValueError(
                f"Order {order.tracking_number} is {order.status} and can no longer change"
            )
        if order.status == new_status:
            return order

        order.status = new_status
        timestamp_field = STATUS_TIMESTAMPS.get(new_status)
        if timestamp_field:
            setattr(order, timestamp_field, timezone.now())
        order.save()

        logger.info(f"Order {order.tracking_number} → {new_status}")
        return order

    @staticmethod
    @transaction.atomic
    def assign_driver(order: Order, driver) -> Order:
        """
        Manually assign an approved driver.

        Raises:
            ValueError: Driver is not an approved driver, or order is closed
        """
        if driver.role != UserRole.DRIVER:
            raise ValueError("Only drivers can be assigned to orders")
        if not driver.is_approved:
            raise ValueError("Driver has not been approved yet")

        order = Order.objects.select_for_update().get(pk=order.pk)
        if order.is_terminal:
            raise ValueError(
                f"Order {order.tracking_number} is {order.status} and can no longer change"
            )

        order.driver = driver
        order.status = OrderStatus.ASSIGNED
        order.assigned_at = timezone.now()
        order.save()

        logger.info(f"Driver {driver.email} assigned to order {order.tracking_number}")
        return order
