"""
ReturnIt Security Middleware
============================

SecurityHeadersMiddleware: hardening headers on every response.
RequestAuditMiddleware: audit trail for money and order mutations.
"""

import logging
from django.conf import settings
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger('returnit.security')

WRITE_METHODS = ('POST', 'PUT', 'PATCH', 'DELETE')


def get_client_ip(request):
    """Extract real client IP, considering proxy headers."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '0.0.0.0')


class SecurityHeadersMiddleware(MiddlewareMixin):
    """
    Add security headers to all responses and drop the Server header.
    """

    STATIC_HEADERS = {
        'X-Content-Type-Options': 'nosniff',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        # Card entry runs in the payment provider's iframe
        'Permissions-Policy': 'geolocation=(), camera=(), microphone=(), payment=(self)',
    }

    def process_response(self, request, response):
        for header, value in self.STATIC_HEADERS.items():
            response[header] = value

        # Django admin uses iframes internally
        if not request.path.startswith('/admin/'):
            response['X-Frame-Options'] = 'DENY'

        if 'Server' in response:
            del response['Server']

        if not settings.DEBUG:
            response['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response


class RequestAuditMiddleware(MiddlewareMixin):
    """
    Audit log of marketplace mutations, tagged by area.

    Writes under AUDITED_AREAS are always logged, as are authentication
    calls and failed API requests. Reads that succeed are not.
    """

    # Longest prefix first; the first match names the area
    AUDITED_AREAS = (
        ('/api/admin/payouts/', 'payout'),
        ('/api/admin/orders/', 'order-admin'),
        ('/api/admin/drivers/', 'driver-admin'),
        ('/api/create-payment-intent/', 'payment'),
        ('/api/orders/', 'booking'),
        ('/api/support/tickets/', 'support'),
        ('/api/auth/', 'auth'),
        ('/admin/', 'django-admin'),
    )

    def _area(self, path):
        for prefix, area in self.AUDITED_AREAS:
            if path.startswith(prefix):
                return area
        return None

    def _should_log(self, request, response, area):
        if area == 'auth':
            return True
        if request.method in WRITE_METHODS and area is not None:
            return True
        if response.status_code >= 500:
            return True
        return response.status_code >= 400 and request.path.startswith('/api/')

    def process_response(self, request, response):
        area = self._area(request.path)
        if not self._should_log(request, response, area):
            return response

        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            actor = f"{user.email} ({user.role})"
        else:
            actor = 'anonymous'

        entry = (
            f"AUDIT [{area or 'api'}] {request.method} {request.path} "
            f"-> {response.status_code} by {actor} from {get_client_ip(request)}"
        )

        if response.status_code >= 500:
            logger.error(entry)
        elif response.status_code >= 400:
            logger.warning(entry)
        else:
            logger.info(entry)

        return response
