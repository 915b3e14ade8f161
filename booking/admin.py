"""
Django Admin configuration for BOOKING app.
"""

from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        'tracking_number', 'customer', 'driver', 'status', 'booking_type',
        'service_tier', 'total', 'payment_status', 'created_at'
    )
    list_filter = ('status', 'booking_type', 'service_tier', 'payment_status')
    search_fields = ('tracking_number', 'customer__email', 'retailer')
    raw_id_fields = ('customer', 'driver')
    inlines = [OrderItemInline]

    fieldsets = (
        (None, {
            'fields': ('tracking_number', 'customer', 'driver', 'status', 'booking_type', 'service_tier')
        }),
        ('Pickup', {
            'fields': (
                'pickup_street_address', 'pickup_city', 'pickup_state',
                'pickup_zip_code', 'pickup_instructions'
            )
        }),
        ('Destination', {
            'fields': ('retailer', 'store_zip_code', 'box_count', 'bag_count')
        }),
        ('Pricing (frozen)', {
            'fields': (
                'distance_miles', 'base_price', 'size_upcharge', 'multi_package_fee',
                'subtotal', 'fuel_fee', 'tax', 'tip', 'service_fee', 'total',
                'driver_payout', 'payment_status'
            ),
        }),
        ('Timeline', {
            'fields': (
                'created_at', 'assigned_at', 'picked_up_at', 'delivered_at',
                'completed_at', 'cancelled_at'
            ),
            'classes': ('collapse',)
        }),
    )

    readonly_fields = (
        'tracking_number', 'distance_miles', 'base_price', 'size_upcharge',
        'multi_package_fee', 'subtotal', 'fuel_fee', 'tax', 'tip', 'service_fee',
        'total', 'driver_payout', 'created_at'
    )
