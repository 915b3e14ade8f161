"""
Booking App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import QuoteAPIView, OrderViewSet, AdminOrderViewSet

router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'admin/orders', AdminOrderViewSet, basename='admin-order')

urlpatterns = [
    path('quote/', QuoteAPIView.as_view(), name='quote'),
    path('', include(router.urls)),
]
