"""
Finance App Serializers
"""

from decimal import Decimal
from rest_framework import serializers

from .models import Payout, PayoutType, PayoutStatus


class PayoutSerializer(serializers.ModelSerializer):
    driver_email = serializers.EmailField(source='driver.email', read_only=True)
    driver_name = serializers.CharField(source='driver.full_name', read_only=True)
    order_count = serializers.SerializerMethodField()

    class Meta:
        model = Payout
        fields = [
            'id', 'driver', 'driver_email', 'driver_name', 'payout_type', 'status',
            'total_amount', 'fee_amount', 'net_amount', 'orders', 'order_count',
            'failure_reason', 'created_at', 'completed_at'
        ]
        read_only_fields = fields

    def get_order_count(self, obj):
        return obj.orders.count()


class PayoutCreateSerializer(serializers.Serializer):
    driver_id = serializers.UUIDField()
    payout_type = serializers.ChoiceField(choices=PayoutType.choices, default=PayoutType.WEEKLY)


class PayoutStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        (PayoutStatus.COMPLETED, 'Completed'),
        (PayoutStatus.FAILED, 'Failed'),
    ])
    failure_reason = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentSummarySerializer(serializers.Serializer):
    driver_id = serializers.CharField()
    driver_email = serializers.EmailField()
    driver_name = serializers.CharField()
    payout_preference = serializers.CharField()
    completed_orders = serializers.IntegerField()
    gross_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    tips = serializers.DecimalField(max_digits=12, decimal_places=2)
    paid_out = serializers.DecimalField(max_digits=12, decimal_places=2)
    payout_in_progress = serializers.DecimalField(max_digits=12, decimal_places=2)
    payout_fees = serializers.DecimalField(max_digits=12, decimal_places=2)
    pending_balance = serializers.DecimalField(max_digits=12, decimal_places=2)


class TaxReportRowSerializer(serializers.Serializer):
    driver_id = serializers.CharField()
    driver_email = serializers.EmailField()
    driver_name = serializers.CharField()
    year = serializers.IntegerField()
    total_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_fees = serializers.DecimalField(max_digits=12, decimal_places=2)
    net_earnings = serializers.DecimalField(max_digits=12, decimal_places=2)
    payout_count = serializers.IntegerField()
    instant_payouts = serializers.IntegerField()
    weekly_payouts = serializers.IntegerField()
    first_payout = serializers.DateTimeField()
    last_payout = serializers.DateTimeField()
    requires_1099 = serializers.BooleanField()


class PaymentIntentRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    orderId = serializers.CharField(max_length=64, required=False, allow_blank=True, default='')

    def validate_amount(self, value):
        if value <= Decimal('0'):
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value
