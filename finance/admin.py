"""
Django Admin configuration for FINANCE app.
"""

from django.contrib import admin
from .models import Payout, PaymentIntentRecord


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = (
        'id', 'driver', 'payout_type', 'status', 'total_amount',
        'fee_amount', 'net_amount', 'created_at', 'completed_at'
    )
    list_filter = ('status', 'payout_type')
    search_fields = ('driver__email',)
    raw_id_fields = ('driver',)
    filter_horizontal = ('orders',)
    readonly_fields = ('total_amount', 'fee_amount', 'net_amount', 'created_at', 'completed_at')


@admin.register(PaymentIntentRecord)
class PaymentIntentRecordAdmin(admin.ModelAdmin):
    list_display = ('provider_intent_id', 'order_reference', 'amount_cents', 'currency', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('provider_intent_id', 'order_reference')
    raw_id_fields = ('order',)
    readonly_fields = ('client_secret',)
