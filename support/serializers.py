"""
Support App Serializers
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model

from core.models import UserRole
from booking.models import Order
from .models import SupportTicket, TicketMessage, TicketStatus, TicketCategory, TicketPriority, TicketChannel

User = get_user_model()


class TicketMessageSerializer(serializers.ModelSerializer):
    sender_name = serializers.SerializerMethodField()

    class Meta:
        model = TicketMessage
        fields = ['id', 'sender', 'sender_name', 'message', 'message_type', 'is_internal', 'created_at']
        read_only_fields = fields

    def get_sender_name(self, obj):
        if obj.sender is None:
            return 'System'
        return obj.sender.full_name


class TicketMessageCreateSerializer(serializers.Serializer):
    message = serializers.CharField()
    is_internal = serializers.BooleanField(default=False)


class SupportTicketSerializer(serializers.ModelSerializer):
    """
    Ticket with its message thread. Internal notes are hidden from customers.
    """
    customer_name = serializers.CharField(source='customer.full_name', read_only=True)
    customer_email = serializers.EmailField(source='customer.email', read_only=True)
    assigned_agent_name = serializers.SerializerMethodField()
    order_tracking_number = serializers.CharField(source='order.tracking_number', read_only=True, default=None)
    messages = serializers.SerializerMethodField()

    class Meta:
        model = SupportTicket
        fields = [
            'id', 'ticket_number', 'customer', 'customer_name', 'customer_email',
            'order', 'order_tracking_number', 'assigned_agent', 'assigned_agent_name',
            'category', 'priority', 'status', 'channel', 'subject', 'description',
            'tags', 'resolution', 'customer_satisfaction', 'escalation_level',
            'first_response_at', 'resolved_at', 'resolution_minutes',
            'created_at', 'updated_at', 'messages'
        ]
        read_only_fields = fields

    def get_assigned_agent_name(self, obj):
        return obj.assigned_agent.full_name if obj.assigned_agent else None

    def get_messages(self, obj):
        messages = obj.messages.all()
        request = self.context.get('request')
        if request is None or request.user.role != UserRole.ADMIN:
            messages = [m for m in messages if not m.is_internal]
        return TicketMessageSerializer(messages, many=True).data


class SupportTicketCreateSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=200)
    description = serializers.CharField()
    category = serializers.ChoiceField(choices=TicketCategory.choices, default=TicketCategory.GENERAL)
    priority = serializers.ChoiceField(choices=TicketPriority.choices, default=TicketPriority.MEDIUM)
    channel = serializers.ChoiceField(choices=TicketChannel.choices, default=TicketChannel.WEB)
    order = serializers.PrimaryKeyRelatedField(queryset=Order.objects.all(), required=False, allow_null=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False, default=list)

    def validate_order(self, value):
        request = self.context.get('request')
        if value and request and request.user.role != UserRole.ADMIN and value.customer_id != request.user.id:
            raise serializers.ValidationError("Order not found")
        return value


class SupportTicketUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TicketStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=TicketPriority.choices, required=False)
    category = serializers.ChoiceField(choices=TicketCategory.choices, required=False)
    assigned_agent = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(role=UserRole.ADMIN),
        required=False,
        allow_null=True
    )
    resolution = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)


class TicketRatingSerializer(serializers.Serializer):
    customer_satisfaction = serializers.IntegerField(min_value=1, max_value=5)


class AgentSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    open_tickets = serializers.IntegerField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'full_name', 'open_tickets']
