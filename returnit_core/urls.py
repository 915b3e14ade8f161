"""
ReturnIt Main URL Configuration
"""

from django.contrib import admin
from django.urls import path, include
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from core.health import health_check, readiness_check


# ===========================================
# ADMIN SITE CUSTOMIZATION
# ===========================================
admin.site.site_header = "ReturnIt Operations"
admin.site.site_title = "ReturnIt Admin"
admin.site.index_title = "Returns Marketplace"


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request):
    """API Root endpoint with available routes."""
    return Response({
        'name': 'ReturnIt API',
        'version': '1.0.0',
        'endpoints': {
            'auth': {
                'token': '/api/auth/token/',
                'refresh': '/api/auth/token/refresh/',
            },
            'users': '/api/users/',
            'quote': '/api/quote/',
            'orders': '/api/orders/',
            'notifications': '/api/customers/notifications/',
            'admin': {
                'orders': '/api/admin/orders/',
                'customers': '/api/admin/customers/',
                'drivers': '/api/admin/drivers/',
                'payouts': '/api/admin/payouts/',
                'payments': '/api/admin/payments/summary/',
                'tax_reports': '/api/admin/tax-reports/',
            },
            'driver_payments': '/api/driver/payments/summary/',
            'payment_intent': '/api/create-payment-intent/',
            'support': {
                'tickets': '/api/support/tickets/',
                'agents': '/api/support/agents/',
            },
            'schema': '/api/schema/',
        }
    })


urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API Root
    path('api/', api_root, name='api-root'),

    # App URLs
    path('api/', include('core.urls')),
    path('api/', include('booking.urls')),
    path('api/', include('finance.urls')),
    path('api/', include('support.urls')),

    # API schema & docs
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # Monitoring
    path('health/', health_check, name='health'),
    path('health/ready/', readiness_check, name='health-ready'),
]
