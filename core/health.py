"""
ReturnIt Monitoring & Health Check Endpoints
============================================

/health/        liveness probe, process is up
/health/ready/  readiness probe: database, cache and pricing configuration
"""

import time
import logging
from decimal import Decimal, InvalidOperation
from django.conf import settings
from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET

logger = logging.getLogger('returnit.monitoring')

SERVICE_NAME = 'returnit'

PRICING_DECIMAL_SETTINGS = (
    'PRICING_SERVICE_FEE_RATE',
    'PRICING_FUEL_FEE_MINIMUM',
    'PRICING_FUEL_RATE_PER_MILE',
    'PRICING_MULTI_PACKAGE_FEE',
    'PRICING_SALES_TAX_RATE',
)


def _check_database():
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return {'vendor': connection.vendor}


def _check_cache():
    cache.set('_healthcheck_ping', 'pong', 10)
    if cache.get('_healthcheck_ping') != 'pong':
        raise RuntimeError("Cache read/write mismatch")
    return {'backend': settings.CACHES['default']['BACKEND'].rsplit('.', 1)[-1]}


def _check_pricing():
    """Quotes are unusable if a rate does not parse or the ZIP table is empty."""
    from booking.services.pricing import SERVICE_TIERS
    from booking.services.zip_codes import ZIP_COORDINATES

    for name in PRICING_DECIMAL_SETTINGS:
        try:
            Decimal(str(getattr(settings, name)))
        except (AttributeError, InvalidOperation):
            raise RuntimeError(f"{name} is missing or not a number")

    fee_rate = Decimal(str(settings.PRICING_SERVICE_FEE_RATE))
    if not Decimal('0') <= fee_rate < Decimal('1'):
        raise RuntimeError(f"PRICING_SERVICE_FEE_RATE out of range: {fee_rate}")
    if not ZIP_COORDINATES:
        raise RuntimeError("ZIP coordinate table is empty")

    return {
        'tiers': sorted(SERVICE_TIERS),
        'zip_codes': len(ZIP_COORDINATES),
        'service_fee_rate': str(fee_rate),
    }


READINESS_CHECKS = (
    ('database', _check_database),
    ('cache', _check_cache),
    ('pricing', _check_pricing),
)


@csrf_exempt
@require_GET
def health_check(request):
    return JsonResponse({
        'status': 'ok',
        'service': SERVICE_NAME,
        'timestamp': timezone.now().isoformat(),
    })


@csrf_exempt
@require_GET
def readiness_check(request):
    """
    Run every readiness check; 200 only when all of them pass, 503 otherwise.
    """
    checks = {}
    for name, probe in READINESS_CHECKS:
        start = time.monotonic()
        try:
            details = probe()
        except Exception as e:
            checks[name] = {'status': 'unhealthy', 'error': str(e)}
            logger.error(f"Readiness - {name} unhealthy: {e}")
            continue
        checks[name] = {
            'status': 'healthy',
            'response_time_ms': round((time.monotonic() - start) * 1000, 2),
            **details,
        }

    all_healthy = all(check['status'] == 'healthy' for check in checks.values())

    return JsonResponse({
        'status': 'healthy' if all_healthy else 'unhealthy',
        'service': SERVICE_NAME,
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
    }, status=200 if all_healthy else 503)
