"""
FINANCE App - Celery Tasks for Automated Driver Payouts

Weekly payouts run every Monday morning (see CELERY_BEAT_SCHEDULE).
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def process_weekly_payouts(self):
    """
    Create a weekly payout for every active driver on the weekly schedule
    with completed orders awaiting payout.
    """
    from core.models import User, UserRole, PayoutPreference
    from finance.models import PayoutType
    from finance.services import PayoutService, unpaid_orders

    drivers = User.objects.filter(
        role=UserRole.DRIVER,
        is_active=True,
        payout_preference=PayoutPreference.WEEKLY,
    )

    logger.info(f"[CELERY] Processing weekly payouts for {drivers.count()} drivers")

    created_count = 0
    error_count = 0

    for driver in drivers:
        if not unpaid_orders(driver).exists():
            continue
        try:
            payout = PayoutService.create_payout(driver, PayoutType.WEEKLY)
            logger.info(f"[CELERY] Weekly payout {payout.id} for {driver.email}: ${payout.net_amount}")
            created_count += 1
        except ValueError as e:
            logger.error(f"[CELERY] Failed weekly payout for {driver.email}: {e}")
            error_count += 1

    logger.info(f"[CELERY] Weekly payouts complete: {created_count} created, {error_count} errors")

    return {
        'created': created_count,
        'errors': error_count,
    }
