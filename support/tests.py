"""
ReturnIt Support Tests
======================

Tests for:
1. Ticket creation & numbering
2. Status changes and resolution timing
3. Ticket chat (first response, internal notes)
4. Escalation sweep
5. API (scoping, filters, stats, agents)
"""

from datetime import timedelta
from unittest.mock import patch
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import User, UserRole
from support.models import SupportTicket, TicketMessage, TicketStatus, TicketPriority, MessageType
from support.services import SupportService, generate_ticket_number
from support.tasks import escalate_overdue_tickets


class SupportTestCase(TestCase):

    def setUp(self):
        self.customer = User.objects.create_user(
            email='customer@example.com', password='testpass123',
            role=UserRole.CUSTOMER, first_name='Casey', last_name='Nguyen',
        )
        self.other_customer = User.objects.create_user(
            email='other@example.com', password='testpass123', role=UserRole.CUSTOMER
        )
        self.agent = User.objects.create_user(
            email='agent@example.com', password='testpass123',
            role=UserRole.ADMIN, first_name='Alex', last_name='Kim',
        )

    def open_ticket(self, **fields):
        return SupportService.create_ticket(
            self.customer,
            fields.pop('subject', 'Driver never arrived'),
            fields.pop('description', 'Pickup window passed with no driver.'),
            **fields
        )

    def age_ticket(self, ticket, minutes):
        SupportTicket.objects.filter(pk=ticket.pk).update(
            created_at=timezone.now() - timedelta(minutes=minutes)
        )
        ticket.refresh_from_db()


# ============================================
# TICKET SERVICE
# ============================================

class TestTicketService(SupportTestCase):

    def test_ticket_number_format(self):
        number = generate_ticket_number()
        self.assertTrue(number.startswith('RT'))
        self.assertEqual(len(number), 11)
        self.assertTrue(number[2:].isdigit())

    def test_create_ticket_adds_system_message(self):
        ticket = self.open_ticket(priority=TicketPriority.HIGH)

        self.assertEqual(ticket.status, TicketStatus.OPEN)
        self.assertEqual(ticket.messages.count(), 1)
        message = ticket.messages.first()
        self.assertEqual(message.message_type, MessageType.SYSTEM)
        self.assertIsNone(message.sender)
        self.assertIn(ticket.ticket_number, message.message)

    def test_resolving_records_resolution_time(self):
        ticket = self.open_ticket()
        self.age_ticket(ticket, 90)

        SupportService.update_ticket(ticket, self.agent, status=TicketStatus.RESOLVED)
        ticket.refresh_from_db()

        self.assertIsNotNone(ticket.resolved_at)
        self.assertGreaterEqual(ticket.resolution_minutes, 90)
        self.assertLessEqual(ticket.resolution_minutes, 91)

    def test_reopening_clears_resolution(self):
        ticket = self.open_ticket()
        SupportService.update_ticket(ticket, self.agent, status=TicketStatus.RESOLVED)
        SupportService.update_ticket(ticket, self.agent, status=TicketStatus.OPEN)
        ticket.refresh_from_db()

        self.assertIsNone(ticket.resolved_at)
        self.assertIsNone(ticket.resolution_minutes)

    def test_assignment_without_status_change_adds_no_message(self):
        ticket = self.open_ticket()
        SupportService.update_ticket(ticket, self.agent, assigned_agent=self.agent)

        self.assertEqual(ticket.messages.count(), 1)
        ticket.refresh_from_db()
        self.assertEqual(ticket.assigned_agent, self.agent)


# ============================================
# TICKET CHAT
# ============================================

class TestTicketMessages(SupportTestCase):

    def test_first_agent_reply_stamps_first_response(self):
        ticket = self.open_ticket()
        entry = SupportService.add_message(ticket, self.agent, 'Looking into it now.')
        ticket.refresh_from_db()

        self.assertEqual(ticket.first_response_at, entry.created_at)
        self.assertEqual(ticket.status, TicketStatus.IN_PROGRESS)

        SupportService.add_message(ticket, self.agent, 'Driver re-dispatched.')
        ticket.refresh_from_db()
        self.assertEqual(ticket.first_response_at, entry.created_at)

    def test_customer_reply_does_not_count_as_response(self):
        ticket = self.open_ticket()
        SupportService.add_message(ticket, self.customer, 'Any update?')
        ticket.refresh_from_db()

        self.assertIsNone(ticket.first_response_at)
        self.assertEqual(ticket.status, TicketStatus.OPEN)

    def test_internal_note_is_not_a_response(self):
        ticket = self.open_ticket()
        note = SupportService.add_message(ticket, self.agent, 'Check driver GPS log', is_internal=True)
        ticket.refresh_from_db()

        self.assertEqual(note.message_type, MessageType.NOTE)
        self.assertIsNone(ticket.first_response_at)
        self.assertEqual(ticket.status, TicketStatus.OPEN)

    def test_customer_cannot_post_internal_note(self):
        ticket = self.open_ticket()
        with self.assertRaises(ValueError):
            SupportService.add_message(ticket, self.customer, 'secret', is_internal=True)


# ============================================
# ESCALATION
# ============================================

class TestEscalation(SupportTestCase):

    def test_urgent_ticket_escalates_after_an_hour(self):
        ticket = self.open_ticket(priority=TicketPriority.URGENT)
        self.age_ticket(ticket, 61)

        self.assertEqual(SupportService.escalate_overdue(), 1)
        ticket.refresh_from_db()
        self.assertEqual(ticket.escalation_level, 1)
        self.assertTrue(
            ticket.messages.filter(message_type=MessageType.SYSTEM, message__startswith='Escalated').exists()
        )

    def test_old_ticket_jumps_to_level_two(self):
        ticket = self.open_ticket(priority=TicketPriority.HIGH)
        self.age_ticket(ticket, 1500)

        SupportService.escalate_overdue()
        ticket.refresh_from_db()
        self.assertEqual(ticket.escalation_level, 2)

    def test_fresh_and_resolved_tickets_are_left_alone(self):
        fresh = self.open_ticket(priority=TicketPriority.URGENT)
        resolved = self.open_ticket(priority=TicketPriority.URGENT)
        SupportService.update_ticket(resolved, self.agent, status=TicketStatus.RESOLVED)
        self.age_ticket(resolved, 600)

        self.assertEqual(SupportService.escalate_overdue(), 0)
        fresh.refresh_from_db()
        self.assertEqual(fresh.escalation_level, 0)

    def test_escalation_is_not_repeated(self):
        ticket = self.open_ticket(priority=TicketPriority.URGENT)
        self.age_ticket(ticket, 61)

        SupportService.escalate_overdue()
        self.assertEqual(SupportService.escalate_overdue(), 0)

    def test_medium_uses_multi_day_thresholds(self):
        ticket = self.open_ticket(priority=TicketPriority.MEDIUM)
        self.age_ticket(ticket, 4000)
        self.assertEqual(SupportService.escalate_overdue(), 0)

        self.age_ticket(ticket, 4400)
        self.assertEqual(SupportService.escalate_overdue(), 1)

    def test_task_reports_count(self):
        ticket = self.open_ticket(priority=TicketPriority.URGENT)
        self.age_ticket(ticket, 61)

        with patch('support.services.logger') as mock_logger:
            result = escalate_overdue_tickets.apply().get()

        self.assertEqual(result, {'escalated': 1})
        mock_logger.warning.assert_called_once()


# ============================================
# API
# ============================================

class TestSupportAPI(SupportTestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()

    def test_customer_creates_ticket(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.post('/api/support/tickets/', {
            'subject': 'Refund missing',
            'description': 'Store accepted the return last week.',
            'category': 'payment',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data['ticket_number'].startswith('RT'))
        self.assertEqual(response.data['priority'], TicketPriority.MEDIUM)
        self.assertEqual(len(response.data['messages']), 1)

    def test_customer_sees_only_own_tickets(self):
        self.open_ticket()
        SupportService.create_ticket(self.other_customer, 'Other', 'Not yours')

        self.client.force_authenticate(user=self.customer)
        response = self.client.get('/api/support/tickets/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

    def test_internal_notes_hidden_from_customer(self):
        ticket = self.open_ticket()
        SupportService.add_message(ticket, self.agent, 'Internal only', is_internal=True)

        self.client.force_authenticate(user=self.customer)
        response = self.client.get(f'/api/support/tickets/{ticket.id}/')
        self.assertNotIn('Internal only', [m['message'] for m in response.data['messages']])

        self.client.force_authenticate(user=self.agent)
        response = self.client.get(f'/api/support/tickets/{ticket.id}/')
        self.assertIn('Internal only', [m['message'] for m in response.data['messages']])

    def test_filter_and_search(self):
        self.open_ticket(category='payment', subject='Charge twice')
        self.open_ticket(category='delivery', subject='Late driver')
        self.client.force_authenticate(user=self.agent)

        response = self.client.get('/api/support/tickets/', {'category': 'payment'})
        self.assertEqual([t['subject'] for t in response.data], ['Charge twice'])

        response = self.client.get('/api/support/tickets/', {'search': 'Nguyen'})
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/support/tickets/', {'search': 'driver'})
        self.assertEqual(len(response.data), 2)

    def test_agent_updates_status(self):
        ticket = self.open_ticket()
        self.client.force_authenticate(user=self.agent)

        response = self.client.patch(f'/api/support/tickets/{ticket.id}/', {
            'status': 'resolved',
            'resolution': 'Driver re-dispatched',
            'assigned_agent': str(self.agent.id),
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], TicketStatus.RESOLVED)
        self.assertIsNotNone(response.data['resolved_at'])
        self.assertEqual(response.data['assigned_agent_name'], 'Alex Kim')

    def test_customer_cannot_update_ticket(self):
        ticket = self.open_ticket()
        self.client.force_authenticate(user=self.customer)
        response = self.client.patch(f'/api/support/tickets/{ticket.id}/', {'status': 'closed'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_post_message(self):
        ticket = self.open_ticket()
        self.client.force_authenticate(user=self.agent)

        response = self.client.post(
            f'/api/support/tickets/{ticket.id}/messages/', {'message': 'On it'}, format='json'
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['sender_name'], 'Alex Kim')

        ticket.refresh_from_db()
        self.assertEqual(ticket.status, TicketStatus.IN_PROGRESS)

    def test_customer_internal_note_forbidden(self):
        ticket = self.open_ticket()
        self.client.force_authenticate(user=self.customer)
        response = self.client.post(
            f'/api/support/tickets/{ticket.id}/messages/',
            {'message': 'psst', 'is_internal': True},
            format='json'
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(TicketMessage.objects.filter(ticket=ticket).count(), 1)

    def test_rate_resolved_ticket(self):
        ticket = self.open_ticket()
        self.client.force_authenticate(user=self.customer)

        response = self.client.post(f'/api/support/tickets/{ticket.id}/rate/', {'customer_satisfaction': 5})
        self.assertEqual(response.status_code, 400)

        SupportService.update_ticket(ticket, self.agent, status=TicketStatus.RESOLVED)
        response = self.client.post(f'/api/support/tickets/{ticket.id}/rate/', {'customer_satisfaction': 5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['customer_satisfaction'], 5)

    def test_stats(self):
        first = self.open_ticket()
        self.open_ticket()
        SupportService.update_ticket(first, self.agent, status=TicketStatus.RESOLVED)

        self.client.force_authenticate(user=self.agent)
        response = self.client.get('/api/support/tickets/stats/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['open'], 1)
        self.assertEqual(response.data['resolved'], 1)
        self.assertIsNotNone(response.data['avg_resolution_minutes'])

    def test_stats_admin_only(self):
        self.client.force_authenticate(user=self.customer)
        response = self.client.get('/api/support/tickets/stats/')
        self.assertEqual(response.status_code, 403)

    def test_agents_list(self):
        ticket = self.open_ticket()
        SupportService.update_ticket(ticket, self.agent, assigned_agent=self.agent)

        self.client.force_authenticate(user=self.agent)
        response = self.client.get('/api/support/agents/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['email'], 'agent@example.com')
        self.assertEqual(response.data[0]['open_tickets'], 1)
