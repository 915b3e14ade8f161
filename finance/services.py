"""
FINANCE App - Payment summaries, payouts and annual tax reports
"""

import logging
from datetime import datetime
from decimal import Decimal
from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import transaction
from django.db.models import Sum, Count, Min, Max, Q
from django.utils import timezone

from booking.models import Order, OrderStatus
from core.models import User, UserRole
from .models import Payout, PayoutStatus, PayoutType, ACTIVE_PAYOUT_STATUSES

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def unpaid_orders(driver):
    """Completed orders of a driver not yet covered by a pending/completed payout."""
    return Order.objects.filter(
        driver=driver,
        status=OrderStatus.COMPLETED,
    ).exclude(
        payouts__status__in=ACTIVE_PAYOUT_STATUSES
    )


class PaymentSummaryService:
    """Per-driver earnings summary."""

    @staticmethod
    def for_driver(driver) -> dict:
        completed = Order.objects.filter(driver=driver, status=OrderStatus.COMPLETED)
        earnings = completed.aggregate(
            count=Count('id'),
            gross=Sum('driver_payout'),
            tips=Sum('tip'),
        )
        payouts = Payout.objects.filter(driver=driver).aggregate(
            paid_out=Sum('total_amount', filter=Q(status=PayoutStatus.COMPLETED)),
            in_progress=Sum('total_amount', filter=Q(status=PayoutStatus.PENDING)),
            fees=Sum('fee_amount', filter=Q(status=PayoutStatus.COMPLETED)),
        )
        pending_balance = unpaid_orders(driver).aggregate(total=Sum('driver_payout'))['total']

        return {
            'driver_id': str(driver.id),
            'driver_email': driver.email,
            'driver_name': driver.full_name,
            'payout_preference': driver.payout_preference,
            'completed_orders': earnings['count'],
            'gross_earnings': earnings['gross'] or ZERO,
            'tips': earnings['tips'] or ZERO,
            'paid_out': payouts['paid_out'] or ZERO,
            'payout_in_progress': payouts['in_progress'] or ZERO,
            'payout_fees': payouts['fees'] or ZERO,
            'pending_balance': pending_balance or ZERO,
        }

    @staticmethod
    def for_all_drivers() -> list:
        drivers = User.objects.filter(role=UserRole.DRIVER).order_by('email')
        return [PaymentSummaryService.for_driver(driver) for driver in drivers]


class PayoutService:
    """
    Service for driver payouts.

    A payout claims every completed, not-yet-paid order of the driver.
    Instant payouts carry a flat fee; weekly payouts are free.
    """

    @staticmethod
    def fee_for(payout_type: str) -> Decimal:
        if payout_type == PayoutType.INSTANT:
            return Decimal(str(settings.PAYOUT_INSTANT_FEE))
        return ZERO

    @staticmethod
    @transaction.atomic
    def create_payout(driver, payout_type: str = PayoutType.WEEKLY) -> Payout:
        """
        Create a payout for everything the driver is owed.

        Raises:
            ValueError: Not a driver, unknown type, nothing owed, or fee exceeds amount
        """
        if driver.role != UserRole.DRIVER:
            raise ValueError("Payouts can only be created for drivers")
        if payout_type not in PayoutType.values:
            raise ValueError(f"Unknown payout type: {payout_type}")

        # Lock driver row so concurrent payouts cannot claim the same orders
        User.objects.select_for_update().get(pk=driver.pk)

        orders = list(unpaid_orders(driver))
        total = sum((order.driver_payout for order in orders), ZERO)
        if not orders or total <= 0:
            raise ValueError("No completed orders awaiting payout")

        fee = PayoutService.fee_for(payout_type)
        if fee >= total:
            raise ValueError(f"Payout amount ${total} does not cover the ${fee} instant fee")

        payout = Payout.objects.create(
            driver=driver,
            payout_type=payout_type,
            total_amount=total,
            fee_amount=fee,
            net_amount=total - fee,
        )
        payout.orders.set(orders)

        logger.info(
            f"Payout {payout.id} created for {driver.email}: "
            f"{len(orders)} orders, total=${total} fee=${fee}"
        )
        return payout

    @staticmethod
    @transaction.atomic
    def update_status(payout: Payout, new_status: str, failure_reason: str = '') -> Payout:
        """
        Mark a pending payout completed or failed.

        Failed payouts release their orders back to the pending balance.
        """
        if new_status not in (PayoutStatus.COMPLETED, PayoutStatus.FAILED):
            raise ValueError(f"Payout can only be marked completed or failed, not {new_status}")

        payout = Payout.objects.select_for_update().get(pk=payout.pk)
        if payout.status != PayoutStatus.PENDING:
            raise ValueError(f"Payout is not pending (status: {payout.status})")

        payout.status = new_status
        if new_status == PayoutStatus.COMPLETED:
            payout.completed_at = timezone.now()
        else:
            payout.failure_reason = failure_reason
            logger.warning(f"Payout {payout.id} failed: {failure_reason}")
        payout.save()
        return payout


class TaxReportService:
    """Annual per-driver earnings from completed payouts (1099 preparation)."""

    @staticmethod
    def year_bounds(year: int):
        start = timezone.make_aware(datetime(year, 1, 1))
        return start, start + relativedelta(years=1)

    @staticmethod
    def annual_report(year: int) -> list:
        start, end = TaxReportService.year_bounds(year)
        threshold = Decimal(str(settings.TAX_1099_THRESHOLD))

        rows = (
            Payout.objects.filter(
                status=PayoutStatus.COMPLETED,
                completed_at__gte=start,
                completed_at__lt=end,
            )
            .values('driver', 'driver__email', 'driver__first_name', 'driver__last_name')
            .annotate(
                total_earnings=Sum('total_amount'),
                total_fees=Sum('fee_amount'),
                net_earnings=Sum('net_amount'),
                payout_count=Count('id'),
                instant_payouts=Count('id', filter=Q(payout_type=PayoutType.INSTANT)),
                weekly_payouts=Count('id', filter=Q(payout_type=PayoutType.WEEKLY)),
                first_payout=Min('completed_at'),
                last_payout=Max('completed_at'),
            )
            .order_by('-total_earnings')
        )

        return [
            {
                'driver_id': str(row['driver']),
                'driver_email': row['driver__email'],
                'driver_name': f"{row['driver__first_name']} {row['driver__last_name']}".strip(),
                'year': year,
                'total_earnings': row['total_earnings'],
                'total_fees': row['total_fees'],
                'net_earnings': row['net_earnings'],
                'payout_count': row['payout_count'],
                'instant_payouts': row['instant_payouts'],
                'weekly_payouts': row['weekly_payouts'],
                'first_payout': row['first_payout'],
                'last_payout': row['last_payout'],
                'requires_1099': row['total_earnings'] >= threshold,
            }
            for row in rows
        ]
