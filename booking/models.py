"""
BOOKING App - Orders for Returns, Exchanges & Donations

Pricing is frozen on the order at creation time.
"""

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models

from .utils import generate_tracking_number


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    ASSIGNED = 'assigned', 'Driver assigned'
    PICKED_UP = 'picked_up', 'Picked up'
    IN_TRANSIT = 'in_transit', 'In transit'
    DELIVERED = 'delivered', 'Delivered to store'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class BookingType(models.TextChoices):
    RETURN = 'return', 'Return'
    EXCHANGE = 'exchange', 'Exchange'
    DONATION = 'donation', 'Donation'


class ServiceTier(models.TextChoices):
    STANDARD = 'standard', 'Standard'
    PRIORITY = 'priority', 'Priority'
    INSTANT = 'instant', 'Instant'


class ItemSize(models.TextChoices):
    SMALL = 'S', 'Small'
    MEDIUM = 'M', 'Medium'
    LARGE = 'L', 'Large'
    EXTRA_LARGE = 'XL', 'Extra large'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'
    REFUNDED = 'refunded', 'Refunded'
    FAILED = 'failed', 'Failed'


def _money_field(verbose_name):
    return models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        verbose_name=verbose_name
    )


class Order(models.Model):
    """
    Pickup order taking a customer's items back to a store or charity.
    """

    zip_regex = RegexValidator(regex=r'^\d{5}$', message="ZIP must be 5 digits")
    state_regex = RegexValidator(regex=r'^[A-Z]{2}$', message="State must be 2 letters")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tracking_number = models.CharField(max_length=16, unique=True, editable=False)

    # Actors
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_orders'
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True
    )
    booking_type = models.CharField(
        max_length=20,
        choices=BookingType.choices,
        default=BookingType.RETURN
    )
    service_tier = models.CharField(
        max_length=20,
        choices=ServiceTier.choices,
        default=ServiceTier.STANDARD
    )

    # Pickup address
    pickup_street_address = models.CharField(max_length=255)
    pickup_city = models.CharField(max_length=100)
    pickup_state = models.CharField(max_length=2, validators=[state_regex])
    pickup_zip_code = models.CharField(max_length=5, validators=[zip_regex])
    pickup_instructions = models.TextField(blank=True)

    # Destination
    retailer = models.CharField(max_length=150, blank=True)
    store_zip_code = models.CharField(max_length=5, blank=True, validators=[zip_regex])

    # Packages
    box_count = models.PositiveIntegerField(default=0)
    bag_count = models.PositiveIntegerField(default=0)
    tip = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    # Pricing (frozen at creation)
    distance_miles = models.FloatField(default=0.0)
    base_price = _money_field("Tier price")
    size_upcharge = _money_field("Size upcharges")
    multi_package_fee = _money_field("Multi-package fee")
    subtotal = _money_field("Subtotal")
    fuel_fee = _money_field("Fuel fee")
    tax = _money_field("Sales tax")
    service_fee = _money_field("Service fee")
    total = _money_field("Total")
    driver_payout = _money_field("Driver payout")

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    assigned_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='booking_ord_status_3c4f1a_idx'),
            models.Index(fields=['driver', 'status'], name='booking_ord_driver__8e2b7d_idx'),
        ]

    def __str__(self):
        return f"Order {self.tracking_number} - {self.status}"

    def save(self, *args, **kwargs):
        if not self.tracking_number:
            tracking_number = generate_tracking_number()
            while Order.objects.filter(tracking_number=tracking_number).exists():
                tracking_number = generate_tracking_number()
            self.tracking_number = tracking_number
        super().save(*args, **kwargs)

    @property
    def is_donation(self) -> bool:
        return self.booking_type == BookingType.DONATION

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def platform_revenue(self) -> Decimal:
        return self.total - self.driver_payout - self.tax

    @property
    def pickup_address(self) -> str:
        return (
            f"{self.pickup_street_address}, {self.pickup_city}, "
            f"{self.pickup_state} {self.pickup_zip_code}"
        )


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    description = models.CharField(max_length=255, blank=True)
    size = models.CharField(max_length=2, choices=ItemSize.choices, default=ItemSize.SMALL)
    value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )

    def __str__(self):
        return f"{self.description or 'Item'} ({self.size})"
