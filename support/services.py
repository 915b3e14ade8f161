import math
import random
import time
import logging
from django.db import transaction
from django.db.models import Avg, Count, Q
from django.utils import timezone

from core.models import UserRole
from .models import (
    SupportTicket, TicketMessage, TicketStatus, TicketPriority,
    MessageType, UNRESOLVED_STATUSES
)

logger = logging.getLogger(__name__)


# Minutes after creation, per priority
ESCALATION_RULES = {
    TicketPriority.URGENT: {'first_response': 15, 'escalation_1': 60, 'escalation_2': 240, 'max_resolution': 480},
    TicketPriority.HIGH: {'first_response': 60, 'escalation_1': 240, 'escalation_2': 1440, 'max_resolution': 2880},
    TicketPriority.MEDIUM: {'first_response': 1440, 'escalation_1': 4320, 'escalation_2': 7200, 'max_resolution': 10080},
    TicketPriority.LOW: {'first_response': 1440, 'escalation_1': 4320, 'escalation_2': 7200, 'max_resolution': 10080},
}

MAX_ESCALATION_LEVEL = 2


def generate_ticket_number() -> str:
    """RT + last 6 digits of the millisecond clock + 3 random digits."""
    millis = str(int(time.time() * 1000))[-6:]
    return f"RT{millis}{random.randint(0, 999):03d}"


def _is_staff(user) -> bool:
    return user is not None and user.role == UserRole.ADMIN


class SupportService:
    """
    Service for support tickets and ticket chat.
    """

    @staticmethod
    @transaction.atomic
    def create_ticket(customer, subject, description, **fields):
        """
        Open a ticket and log the system message that starts its thread.
        """
        ticket_number = generate_ticket_number()
        while SupportTicket.objects.filter(ticket_number=ticket_number).exists():
            ticket_number = generate_ticket_number()

        ticket = SupportTicket.objects.create(
            ticket_number=ticket_number,
            customer=customer,
            subject=subject,
            description=description,
            **fields
        )
        TicketMessage.objects.create(
            ticket=ticket,
            message=f"Ticket {ticket.ticket_number} created ({ticket.priority} priority).",
            message_type=MessageType.SYSTEM,
        )
        logger.info(f"Ticket created: {ticket.ticket_number} by {customer.email}")
        return ticket

    @staticmethod
    @transaction.atomic
    def update_ticket(ticket, actor, **changes):
        """
        Apply agent changes (status, assigned_agent, priority, resolution, tags).

        Moving to resolved stamps resolved_at and the time to resolution.
        """
        previous_status = ticket.status

        for field, value in changes.items():
            setattr(ticket, field, value)

        if ticket.status != previous_status:
            if ticket.status in (TicketStatus.RESOLVED, TicketStatus.CLOSED) and not ticket.resolved_at:
                ticket.resolved_at = timezone.now()
                elapsed = (ticket.resolved_at - ticket.created_at).total_seconds() / 60
                ticket.resolution_minutes = int(math.ceil(elapsed))
            elif ticket.status in UNRESOLVED_STATUSES:
                # Reopened
                ticket.resolved_at = None
                ticket.resolution_minutes = None

            TicketMessage.objects.create(
                ticket=ticket,
                message=f"Status changed from {previous_status} to {ticket.status} by {actor.email}.",
                message_type=MessageType.SYSTEM,
            )
            logger.info(f"Ticket {ticket.ticket_number}: {previous_status} → {ticket.status}")

        ticket.save()
        return ticket

    @staticmethod
    @transaction.atomic
    def add_message(ticket, sender, message, is_internal=False):
        """
        Post a reply or internal note.

        The first public staff reply stamps first_response_at, and a staff
        reply moves an open ticket to in progress.
        """
        if is_internal and not _is_staff(sender):
            raise ValueError("Only support agents can post internal notes")

        entry = TicketMessage.objects.create(
            ticket=ticket,
            sender=sender,
            message=message,
            message_type=MessageType.NOTE if is_internal else MessageType.REPLY,
            is_internal=is_internal,
        )

        if _is_staff(sender) and not is_internal:
            update_fields = []
            if ticket.first_response_at is None:
                ticket.first_response_at = entry.created_at
                update_fields.append('first_response_at')
            if ticket.status == TicketStatus.OPEN:
                ticket.status = TicketStatus.IN_PROGRESS
                update_fields.append('status')
            if update_fields:
                ticket.save(update_fields=update_fields + ['updated_at'])

        return entry

    @staticmethod
    def get_stats():
        stats = SupportTicket.objects.aggregate(
            total=Count('id'),
            open=Count('id', filter=Q(status=TicketStatus.OPEN)),
            in_progress=Count('id', filter=Q(status=TicketStatus.IN_PROGRESS)),
            waiting=Count('id', filter=Q(status=TicketStatus.WAITING)),
            resolved=Count('id', filter=Q(status__in=[TicketStatus.RESOLVED, TicketStatus.CLOSED])),
            escalated=Count('id', filter=Q(escalation_level__gt=0, status__in=UNRESOLVED_STATUSES)),
            avg_resolution_minutes=Avg('resolution_minutes'),
            avg_satisfaction=Avg('customer_satisfaction'),
        )
        if stats['avg_resolution_minutes'] is not None:
            stats['avg_resolution_minutes'] = round(stats['avg_resolution_minutes'])
        if stats['avg_satisfaction'] is not None:
            stats['avg_satisfaction'] = round(stats['avg_satisfaction'], 2)
        return stats

    @staticmethod
    def escalate_overdue(now=None) -> int:
        """
        Raise escalation_level on unresolved tickets past their next
        escalation threshold.

        Returns:
            Number of tickets escalated
        """
        now = now or timezone.now()
        escalated = 0

        tickets = SupportTicket.objects.filter(
            status__in=UNRESOLVED_STATUSES,
            escalation_level__lt=MAX_ESCALATION_LEVEL,
        )

        for ticket in tickets:
            rules = ESCALATION_RULES.get(ticket.priority, ESCALATION_RULES[TicketPriority.MEDIUM])
            age_minutes = (now - ticket.created_at).total_seconds() / 60

            level = ticket.escalation_level
            while level < MAX_ESCALATION_LEVEL and age_minutes >= rules[f'escalation_{level + 1}']:
                level += 1

            if level == ticket.escalation_level:
                continue

            with transaction.atomic():
                ticket.escalation_level = level
                ticket.save(update_fields=['escalation_level', 'updated_at'])
                TicketMessage.objects.create(
                    ticket=ticket,
                    message=(
                        f"Escalated to level {level}: {ticket.priority} ticket open "
                        f"for {int(age_minutes)} minutes."
                    ),
                    message_type=MessageType.SYSTEM,
                    is_internal=True,
                )

            logger.warning(
                f"Ticket {ticket.ticket_number} escalated to level {level} "
                f"({ticket.priority}, {int(age_minutes)} min old)"
            )
            escalated += 1

        return escalated
