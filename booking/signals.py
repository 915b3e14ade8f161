"""
BOOKING App - Django Signals

Notify the customer whenever an order changes status.
"""

import logging
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from core.models import NotificationService, NotificationType
from booking.models import Order, OrderStatus

logger = logging.getLogger(__name__)


STATUS_MESSAGES = {
    OrderStatus.ASSIGNED: ("Driver assigned", "A driver has been assigned to your pickup {tracking}."),
    OrderStatus.PICKED_UP: ("Pickup complete", "Your items for {tracking} have been picked up."),
    OrderStatus.IN_TRANSIT: ("On the way", "Your items for {tracking} are on the way."),
    OrderStatus.DELIVERED: ("Dropped off", "Your items for {tracking} were dropped off."),
    OrderStatus.COMPLETED: ("Order complete", "Order {tracking} is complete."),
    OrderStatus.CANCELLED: ("Order cancelled", "Order {tracking} was cancelled."),
}


@receiver(pre_save, sender=Order)
def capture_previous_state(sender, instance, **kwargs):
    """Capture the previous status and driver before save for change detection."""
    instance._previous_status = None
    instance._previous_driver_id = None
    if instance.pk:
        previous = (
            Order.objects.filter(pk=instance.pk)
            .values_list('status', 'driver_id')
            .first()
        )
        if previous:
            instance._previous_status, instance._previous_driver_id = previous


@receiver(post_save, sender=Order)
def on_order_saved(sender, instance, created, **kwargs):
    """Send a customer notification on status change or driver reassignment."""
    if created:
        return

    previous = getattr(instance, '_previous_status', None)
    if previous is None:
        return

    reassigned = (
        instance.status == OrderStatus.ASSIGNED
        and instance.driver_id is not None
        and instance.driver_id != getattr(instance, '_previous_driver_id', None)
    )
    if previous == instance.status and not reassigned:
        return

    logger.info(
        f"[SIGNAL] Order {instance.tracking_number}: {previous} → {instance.status}"
        f"{' (driver reassigned)' if reassigned and previous == instance.status else ''}"
    )

    if instance.status == OrderStatus.PICKED_UP:
        notification_type = NotificationType.PICKUP_COMPLETE
    elif instance.status == OrderStatus.ASSIGNED and instance.driver_id:
        notification_type = NotificationType.DRIVER_ASSIGNED
    else:
        notification_type = NotificationType.ORDER_UPDATE

    title, template = STATUS_MESSAGES.get(
        instance.status,
        ("Order update", "Order {tracking} is now " + instance.get_status_display().lower() + "."),
    )

    NotificationService.notify(
        instance.customer,
        title=title,
        message=template.format(tracking=instance.tracking_number),
        notification_type=notification_type,
        order=instance,
    )
