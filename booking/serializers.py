"""
Booking App Serializers - Quotes & Orders
"""

from decimal import Decimal
from rest_framework import serializers

from .models import (
    Order, OrderItem, OrderStatus, BookingType, ServiceTier, ItemSize
)


ZIP_CODE_REGEX = r'^\d{5}$'


class OrderItemInputSerializer(serializers.Serializer):
    """One item in the booking wizard. Size is inferred from value when omitted."""

    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    size = serializers.ChoiceField(choices=ItemSize.choices, required=False, allow_null=True)
    value = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.00'),
        required=False, default=Decimal('0.00')
    )


class QuoteRequestSerializer(serializers.Serializer):
    """Inputs to the price calculator."""

    booking_type = serializers.ChoiceField(choices=BookingType.choices, default=BookingType.RETURN)
    service_tier = serializers.ChoiceField(choices=ServiceTier.choices, default=ServiceTier.STANDARD)
    pickup_zip_code = serializers.RegexField(
        ZIP_CODE_REGEX, error_messages={'invalid': 'ZIP code must be 5 digits.'}
    )
    store_zip_code = serializers.RegexField(
        ZIP_CODE_REGEX, required=False, allow_blank=True, default='',
        error_messages={'invalid': 'ZIP code must be 5 digits.'}
    )
    items = OrderItemInputSerializer(many=True, required=False, default=list)
    box_count = serializers.IntegerField(min_value=0, default=0)
    bag_count = serializers.IntegerField(min_value=0, default=0)
    tip = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.00'), default=Decimal('0.00')
    )


class OrderCreateSerializer(QuoteRequestSerializer):
    """
    Booking wizard submission.

    Retailer and at least one item or package are required unless the
    booking is a donation.
    """

    pickup_street_address = serializers.CharField(max_length=255)
    pickup_city = serializers.CharField(max_length=100)
    pickup_state = serializers.RegexField(
        r'^[A-Za-z]{2}$', error_messages={'invalid': 'State must be a 2-letter code.'}
    )
    pickup_instructions = serializers.CharField(required=False, allow_blank=True, default='')
    retailer = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')

    def validate_pickup_state(self, value):
        return value.upper()

    def validate(self, attrs):
        if attrs.get('booking_type') != BookingType.DONATION:
            if not attrs.get('retailer', '').strip():
                raise serializers.ValidationError({'retailer': 'Retailer is required.'})
            packages = attrs.get('box_count', 0) + attrs.get('bag_count', 0)
            if not attrs.get('items') and packages == 0:
                raise serializers.ValidationError(
                    {'items': 'Add at least one item or package.'}
                )
        return attrs


class AdminOrderCreateSerializer(OrderCreateSerializer):
    """Admin-created order on behalf of a customer. Items are optional."""

    customer_id = serializers.UUIDField()

    def validate(self, attrs):
        if attrs.get('booking_type') != BookingType.DONATION and not attrs.get('retailer', '').strip():
            raise serializers.ValidationError({'retailer': 'Retailer is required.'})
        return attrs


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'description', 'size', 'value']


class OrderSerializer(serializers.ModelSerializer):
    """Full order with frozen pricing."""

    items = OrderItemSerializer(many=True, read_only=True)
    customer_email = serializers.EmailField(source='customer.email', read_only=True)
    customer_name = serializers.CharField(source='customer.full_name', read_only=True)
    driver_name = serializers.SerializerMethodField()
    platform_revenue = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'tracking_number', 'status', 'booking_type', 'service_tier',
            'customer', 'customer_email', 'customer_name', 'driver', 'driver_name',
            'pickup_street_address', 'pickup_city', 'pickup_state', 'pickup_zip_code',
            'pickup_instructions', 'retailer', 'store_zip_code',
            'box_count', 'bag_count', 'items',
            'distance_miles', 'base_price', 'size_upcharge', 'multi_package_fee',
            'subtotal', 'fuel_fee', 'tax', 'tip', 'service_fee', 'total',
            'driver_payout', 'platform_revenue', 'payment_status',
            'created_at', 'updated_at', 'assigned_at', 'picked_up_at',
            'delivered_at', 'completed_at', 'cancelled_at',
        ]
        read_only_fields = fields

    def get_driver_name(self, obj):
        if obj.driver:
            return obj.driver.full_name or obj.driver.email
        return None


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class DriverAssignSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()
