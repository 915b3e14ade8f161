"""
Finance App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AdminPaymentSummaryView, DriverPaymentSummaryView,
    AdminPayoutViewSet, AdminTaxReportViewSet, CreatePaymentIntentView
)

router = DefaultRouter()
router.register(r'admin/payouts', AdminPayoutViewSet, basename='admin-payout')
router.register(r'admin/tax-reports', AdminTaxReportViewSet, basename='admin-tax-report')

urlpatterns = [
    path('admin/payments/summary/', AdminPaymentSummaryView.as_view(), name='admin-payment-summary'),
    path('driver/payments/summary/', DriverPaymentSummaryView.as_view(), name='driver-payment-summary'),
    path('create-payment-intent/', CreatePaymentIntentView.as_view(), name='create-payment-intent'),
    path('', include(router.urls)),
]
