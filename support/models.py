"""
SUPPORT App - Customer support tickets and ticket chat
"""

import uuid
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class TicketStatus(models.TextChoices):
    OPEN = 'open', 'Open'
    IN_PROGRESS = 'in_progress', 'In progress'
    WAITING = 'waiting', 'Waiting on customer'
    RESOLVED = 'resolved', 'Resolved'
    CLOSED = 'closed', 'Closed'


UNRESOLVED_STATUSES = (TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.WAITING)


class TicketCategory(models.TextChoices):
    TECHNICAL = 'technical', 'Technical'
    PAYMENT = 'payment', 'Payment'
    DELIVERY = 'delivery', 'Delivery'
    GENERAL = 'general', 'General'


class TicketPriority(models.TextChoices):
    URGENT = 'urgent', 'Urgent'
    HIGH = 'high', 'High'
    MEDIUM = 'medium', 'Medium'
    LOW = 'low', 'Low'


class TicketChannel(models.TextChoices):
    WEB = 'web', 'Web'
    MOBILE = 'mobile', 'Mobile app'
    EMAIL = 'email', 'Email'
    PHONE = 'phone', 'Phone'
    CHAT = 'chat', 'Live chat'


class SupportTicket(models.Model):
    """
    Customer support ticket, optionally tied to an order.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    ticket_number = models.CharField(max_length=16, unique=True, editable=False)

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='support_tickets'
    )
    order = models.ForeignKey(
        'booking.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='support_tickets'
    )
    assigned_agent = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tickets'
    )

    category = models.CharField(max_length=20, choices=TicketCategory.choices, default=TicketCategory.GENERAL)
    priority = models.CharField(max_length=10, choices=TicketPriority.choices, default=TicketPriority.MEDIUM)
    status = models.CharField(
        max_length=20,
        choices=TicketStatus.choices,
        default=TicketStatus.OPEN,
        db_index=True
    )
    channel = models.CharField(max_length=10, choices=TicketChannel.choices, default=TicketChannel.WEB)

    subject = models.CharField(max_length=200)
    description = models.TextField()
    tags = models.JSONField(default=list, blank=True)
    resolution = models.TextField(blank=True)
    customer_satisfaction = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )

    # Escalation & SLA
    escalation_level = models.PositiveSmallIntegerField(default=0)
    first_response_at = models.DateTimeField(null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)
    resolution_minutes = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.ticket_number} - {self.subject}"

    @property
    def is_resolved(self) -> bool:
        return self.status not in UNRESOLVED_STATUSES


class MessageType(models.TextChoices):
    REPLY = 'reply', 'Reply'
    NOTE = 'note', 'Internal note'
    SYSTEM = 'system', 'System'


class TicketMessage(models.Model):
    ticket = models.ForeignKey(SupportTicket, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='ticket_messages'
    )
    message = models.TextField()
    message_type = models.CharField(max_length=10, choices=MessageType.choices, default=MessageType.REPLY)
    is_internal = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return f"{self.ticket.ticket_number} [{self.message_type}]"
