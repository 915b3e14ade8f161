"""
Core App Views - Users, Admin Customers/Drivers, Notifications API
"""

import logging
from rest_framework import viewsets, status, permissions, filters, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from django.contrib.auth import get_user_model
from django.db.models import Count, Sum, Q

from booking.models import OrderStatus
from .models import Notification, UserRole
from .permissions import IsAdminUser
from .serializers import (
    UserSerializer, UserCreateSerializer,
    CustomerListSerializer, DriverListSerializer,
    NotificationSerializer
)

logger = logging.getLogger(__name__)

User = get_user_model()


class UserViewSet(mixins.CreateModelMixin,
                  mixins.RetrieveModelMixin,
                  mixins.UpdateModelMixin,
                  viewsets.GenericViewSet):
    """
    ViewSet for User model.

    - Create: Public (registration)
    - Retrieve/Update: Self only (admins see everyone)
    """

    queryset = User.objects.all()
    serializer_class = UserSerializer

    def get_permissions(self):
        if self.action == 'create':
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'create':
            return UserCreateSerializer
        return UserSerializer

    def get_queryset(self):
        user = self.request.user
        if user.role == UserRole.ADMIN:
            return User.objects.all()
        return User.objects.filter(pk=user.pk)

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info(f"New {user.role} registered: {user.email}")

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get current user profile."""
        serializer = UserSerializer(request.user)
        return Response(serializer.data)


class AdminCustomerViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin customer list.

    Search by email or name; each row carries order count and total spent
    (cancelled orders excluded).
    """

    permission_classes = [IsAdminUser]
    serializer_class = CustomerListSerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['email', 'first_name', 'last_name', 'phone']
    ordering_fields = ['date_joined', 'order_count', 'total_spent']

    def get_queryset(self):
        return User.objects.filter(role=UserRole.CUSTOMER).annotate(
            order_count=Count('orders', distinct=True),
            total_spent=Sum(
                'orders__total',
                filter=~Q(orders__status=OrderStatus.CANCELLED)
            ),
        ).order_by('-date_joined')


class AdminDriverViewSet(viewsets.ReadOnlyModelViewSet):
    """Admin driver list with approval action."""

    permission_classes = [IsAdminUser]
    serializer_class = DriverListSerializer
    filter_backends = [filters.SearchFilter]
    search_fields = ['email', 'first_name', 'last_name', 'phone']

    def get_queryset(self):
        queryset = User.objects.filter(role=UserRole.DRIVER).annotate(
            completed_orders=Count(
                'assigned_orders',
                filter=Q(assigned_orders__status=OrderStatus.COMPLETED)
            )
        ).order_by('-date_joined')

        is_online = self.request.query_params.get('is_online')
        if is_online is not None:
            queryset = queryset.filter(is_online=is_online.lower() == 'true')

        is_approved = self.request.query_params.get('is_approved')
        if is_approved is not None:
            queryset = queryset.filter(is_approved=is_approved.lower() == 'true')

        return queryset

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """Approve a driver so they can be assigned to orders."""
        driver = self.get_object()
        if driver.is_approved:
            return Response(
                {'error': 'Driver is already approved.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        driver.is_approved = True
        driver.save(update_fields=['is_approved'])
        logger.info(f"Driver {driver.email} approved by {request.user.email}")
        return Response({'message': f'Driver {driver.email} approved.'})


class NotificationViewSet(mixins.ListModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    """
    Notification center for the calling user.

    list accepts ?filter=all|unread|read.
    """

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = NotificationSerializer
    filter_backends = []

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        if self.action == 'list':
            read_filter = self.request.query_params.get('filter', 'all')
            if read_filter == 'unread':
                queryset = queryset.filter(is_read=False)
            elif read_filter == 'read':
                queryset = queryset.filter(is_read=True)
        return queryset

    @action(detail=True, methods=['patch'])
    def read(self, request, pk=None):
        notification = self.get_object()
        notification.is_read = True
        notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)

    @action(detail=True, methods=['patch'])
    def unread(self, request, pk=None):
        notification = self.get_object()
        notification.is_read = False
        notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=['post'], url_path='mark-all-read')
    def mark_all_read(self, request):
        updated = Notification.objects.filter(
            user=request.user, is_read=False
        ).update(is_read=True)
        return Response({'updated': updated})
