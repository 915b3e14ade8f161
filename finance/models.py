"""
FINANCE App - Driver Payouts & Payment Intents

Payouts settle the driver share of completed orders. Customer card
payments go through the hosted payment provider; only the intent
reference is stored here.
"""

import uuid
from decimal import Decimal
from django.conf import settings
from django.db import models


class PayoutType(models.TextChoices):
    INSTANT = 'instant', 'Instant'
    WEEKLY = 'weekly', 'Weekly'


class PayoutStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


# Payouts in these states hold on to their orders
ACTIVE_PAYOUT_STATUSES = (PayoutStatus.PENDING, PayoutStatus.COMPLETED)


class Payout(models.Model):
    """
    Driver payout covering a set of completed orders.

    net_amount = total_amount - fee_amount
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='payouts'
    )
    payout_type = models.CharField(
        max_length=10,
        choices=PayoutType.choices,
        default=PayoutType.WEEKLY
    )
    status = models.CharField(
        max_length=20,
        choices=PayoutStatus.choices,
        default=PayoutStatus.PENDING,
        db_index=True
    )

    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    fee_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    net_amount = models.DecimalField(max_digits=10, decimal_places=2)

    orders = models.ManyToManyField(
        'booking.Order',
        related_name='payouts',
        blank=True
    )

    failure_reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['driver', 'status'], name='finance_pay_driver__a41c9e_idx'),
        ]

    def __str__(self):
        return f"{self.payout_type} payout ${self.net_amount} → {self.driver.email} ({self.status})"


class PaymentIntentStatus(models.TextChoices):
    CREATED = 'created', 'Created'
    SUCCEEDED = 'succeeded', 'Succeeded'
    CANCELED = 'canceled', 'Canceled'


class PaymentIntentRecord(models.Model):
    """Local record of a PaymentIntent created at the payment provider."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'booking.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payment_intents'
    )
    order_reference = models.CharField(
        max_length=64,
        blank=True,
        help_text="orderId as sent by the client"
    )
    provider_intent_id = models.CharField(max_length=255, unique=True)
    client_secret = models.CharField(max_length=255)
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default='usd')
    status = models.CharField(
        max_length=20,
        choices=PaymentIntentStatus.choices,
        default=PaymentIntentStatus.CREATED
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.provider_intent_id} ({self.amount_cents} {self.currency})"
