from django.contrib import admin
from .models import SupportTicket, TicketMessage


class TicketMessageInline(admin.TabularInline):
    model = TicketMessage
    extra = 0
    raw_id_fields = ('sender',)
    readonly_fields = ('created_at',)


@admin.register(SupportTicket)
class SupportTicketAdmin(admin.ModelAdmin):
    list_display = (
        'ticket_number', 'subject', 'customer', 'category', 'priority',
        'status', 'escalation_level', 'assigned_agent', 'created_at'
    )
    list_filter = ('status', 'priority', 'category', 'escalation_level')
    search_fields = ('ticket_number', 'subject', 'customer__email')
    raw_id_fields = ('customer', 'order', 'assigned_agent')
    readonly_fields = ('ticket_number', 'first_response_at', 'resolved_at', 'resolution_minutes', 'created_at')
    inlines = [TicketMessageInline]
