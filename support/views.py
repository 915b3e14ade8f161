"""
Support App Views - Ticketing & Agent Console API
"""

import logging
from rest_framework import viewsets, status, permissions, filters, mixins, generics
from rest_framework.decorators import action
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django_filters.rest_framework import DjangoFilterBackend

from core.models import UserRole
from core.permissions import IsAdminUser
from .models import SupportTicket, UNRESOLVED_STATUSES
from .serializers import (
    SupportTicketSerializer, SupportTicketCreateSerializer, SupportTicketUpdateSerializer,
    TicketMessageSerializer, TicketMessageCreateSerializer, TicketRatingSerializer,
    AgentSerializer
)
from .services import SupportService

logger = logging.getLogger(__name__)

User = get_user_model()


class TicketViewSet(mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    mixins.CreateModelMixin,
                    mixins.UpdateModelMixin,
                    viewsets.GenericViewSet):
    """
    Support tickets.

    Customers open and follow their own tickets; admins (support agents)
    see every ticket and can update status, priority and assignment.
    """

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = SupportTicketSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['status', 'category', 'priority', 'assigned_agent']
    search_fields = [
        'ticket_number', 'subject', 'description',
        'customer__first_name', 'customer__last_name', 'customer__email'
    ]

    def get_queryset(self):
        queryset = SupportTicket.objects.select_related(
            'customer', 'order', 'assigned_agent'
        ).prefetch_related('messages__sender')
        if self.request.user.role == UserRole.ADMIN:
            return queryset
        return queryset.filter(customer=self.request.user)

    def get_permissions(self):
        if self.action in ('update', 'partial_update', 'stats'):
            return [IsAdminUser()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        serializer = SupportTicketCreateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        ticket = SupportService.create_ticket(
            customer=request.user,
            subject=data.pop('subject'),
            description=data.pop('description'),
            **data
        )
        return Response(
            SupportTicketSerializer(ticket, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        ticket = self.get_object()
        serializer = SupportTicketUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ticket = SupportService.update_ticket(ticket, request.user, **serializer.validated_data)
        ticket.refresh_from_db()
        return Response(SupportTicketSerializer(ticket, context={'request': request}).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    @action(detail=True, methods=['get', 'post'])
    def messages(self, request, pk=None):
        """
        GET: the visible thread. POST: a reply, or an internal note for agents.
        """
        ticket = self.get_object()

        if request.method == 'GET':
            return Response(SupportTicketSerializer(ticket, context={'request': request}).data['messages'])

        serializer = TicketMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            entry = SupportService.add_message(
                ticket,
                request.user,
                serializer.validated_data['message'],
                is_internal=serializer.validated_data['is_internal'],
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response(TicketMessageSerializer(entry).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def rate(self, request, pk=None):
        """Customer satisfaction score (1-5) once the ticket is resolved."""
        ticket = self.get_object()
        if ticket.customer_id != request.user.id:
            return Response({'error': 'Only the ticket owner can rate it'}, status=status.HTTP_403_FORBIDDEN)
        if not ticket.is_resolved:
            return Response({'error': 'Ticket is not resolved yet'}, status=status.HTTP_400_BAD_REQUEST)

        serializer = TicketRatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket.customer_satisfaction = serializer.validated_data['customer_satisfaction']
        ticket.save(update_fields=['customer_satisfaction', 'updated_at'])
        return Response(SupportTicketSerializer(ticket, context={'request': request}).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(SupportService.get_stats())


class AgentListView(generics.ListAPIView):
    """
    Support agents (admin users) with their open ticket load.
    """

    permission_classes = [IsAdminUser]
    serializer_class = AgentSerializer

    def get_queryset(self):
        return User.objects.filter(role=UserRole.ADMIN, is_active=True).annotate(
            open_tickets=Count(
                'assigned_tickets',
                filter=Q(assigned_tickets__status__in=UNRESOLVED_STATUSES)
            )
        ).order_by('first_name', 'last_name')
