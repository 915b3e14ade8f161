"""
SUPPORT App - Celery Tasks

Ticket escalation runs every 15 minutes (see CELERY_BEAT_SCHEDULE).
"""

import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def escalate_overdue_tickets(self):
    from support.services import SupportService

    escalated = SupportService.escalate_overdue()
    logger.info(f"[CELERY] Ticket escalation sweep: {escalated} escalated")

    return {'escalated': escalated}
