"""
Booking App Views - Quotes, Customer Orders & Admin Order Management API
"""

import logging
from rest_framework import viewsets, status, permissions, filters, mixins
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from django.contrib.auth import get_user_model
from django_filters.rest_framework import DjangoFilterBackend

from core.models import UserRole
from core.permissions import IsAdminUser
from .models import Order
from .serializers import (
    QuoteRequestSerializer, OrderCreateSerializer, AdminOrderCreateSerializer,
    OrderSerializer, OrderStatusUpdateSerializer, DriverAssignSerializer
)
from .services.orders import OrderService
from .services.pricing import PricingError

logger = logging.getLogger(__name__)

User = get_user_model()


class QuoteAPIView(APIView):
    """
    Public price estimate for the booking wizard.

    POST /api/quote/

    Request body:
    {
        "service_tier": "standard",
        "booking_type": "return",
        "pickup_zip_code": "63108",
        "store_zip_code": "63117",
        "items": [{"description": "Jacket", "value": "120.00"}],
        "box_count": 1,
        "bag_count": 0,
        "tip": "2.00"
    }

    Response: the price breakdown plus route estimate; distance_estimated
    is true when either ZIP fell back to the downtown centroid.
    """

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            breakdown, route = OrderService.quote(serializer.validated_data)
        except PricingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        data = breakdown.as_dict()
        data.update({
            'estimated_minutes': route.estimated_minutes,
            'time_cap_minutes': route.time_cap_minutes,
            'distance_estimated': route.distance_estimated,
            'currency': 'USD',
        })
        return Response(data)


class OrderViewSet(mixins.CreateModelMixin,
                   mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    Orders visible to the caller.

    Customers see their own orders, drivers the orders assigned to them,
    admins everything.
    """

    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [filters.OrderingFilter]
    ordering_fields = ['created_at', 'total']

    def get_queryset(self):
        user = self.request.user
        queryset = Order.objects.select_related('customer', 'driver').prefetch_related('items')

        if user.role == UserRole.ADMIN:
            return queryset
        elif user.role == UserRole.DRIVER:
            return queryset.filter(driver=user)
        return queryset.filter(customer=user)

    def create(self, request, *args, **kwargs):
        """Submit the booking wizard."""
        if request.user.role != UserRole.CUSTOMER:
            return Response(
                {'error': 'Only customers can book pickups.'},
                status=status.HTTP_403_FORBIDDEN
            )

        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = OrderService.create_order(request.user, serializer.validated_data)
        except PricingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class AdminOrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Admin order management.

    - list: ?status= filter, ?search= on tracking number or customer email
    - create/: order on behalf of a customer
    - {id}/status/: set status
    - {id}/assign/: assign an approved driver
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAdminUser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'booking_type', 'service_tier', 'driver']
    search_fields = ['tracking_number', 'customer__email']
    ordering_fields = ['created_at', 'total', 'status']

    def get_queryset(self):
        return Order.objects.select_related('customer', 'driver').prefetch_related('items')

    @action(detail=False, methods=['post'], url_path='create')
    def admin_create(self, request):
        """Create an order for an existing customer."""
        serializer = AdminOrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            customer = User.objects.get(pk=data['customer_id'], role=UserRole.CUSTOMER)
        except User.DoesNotExist:
            return Response(
                {'error': 'Customer not found.'},
                status=status.HTTP_404_NOT_FOUND
            )

        try:
            order = OrderService.create_order(customer, data)
        except PricingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Admin {request.user.email} created order {order.tracking_number}")
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        """Set the order status."""
        order = self.get_object()
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = OrderService.update_status(order, serializer.validated_data['status'])
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        """Assign an approved driver to the order."""
        order = self.get_object()
        serializer = DriverAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            driver = User.objects.get(pk=serializer.validated_data['driver_id'])
        except User.DoesNotExist:
            return Response(
                {'error': 'Driver not found.'},
                status=status.HTTP_404_NOT_FOUND
            )

        try:
            order = OrderService.assign_driver(order, driver)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(OrderSerializer(order).data)
