"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from .models import Booking
from .services import sweep_overdue_bookings

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_overdue_bookings")
def expire_overdue_bookings() -> dict[str, int]:
    """
    Complete bookings whose end time has passed.

    Applies pending referral redemptions and returns the spots to the
    ledger. Runs every BOOKING_SWEEP_INTERVAL_SECONDS.

    Returns:
        dict: {"completed": n, "referrals_applied": m}
    """
    return sweep_overdue_bookings()


@shared_task(name="bookings.send_upcoming_booking_reminders")
def send_upcoming_booking_reminders() -> dict[str, int]:
    """
    In-app reminder for confirmed bookings starting soon.

    Each booking gets at most one reminder.

    Returns:
        dict: {"sent": number of reminders created}
    """
    from apps.notifications.models import Notification
    from apps.notifications.services import create_in_app_notification

    now = timezone.now()
    horizon = now + timedelta(minutes=settings.BOOKING_REMINDER_LEAD_MINUTES)
    sent_count = 0

    upcoming_bookings = Booking.objects.filter(
        status=Booking.Status.CONFIRMED,
        start_time__gt=now,
        start_time__lte=horizon,
        reminder_sent_at__isnull=True,
    ).select_related("user", "parking_space")

    for booking in upcoming_bookings:
        try:
            create_in_app_notification(
                user=booking.user,
                parking_space=booking.parking_space,
                type=Notification.Type.BOOKING_REMINDER,
                message=(
                    f"Your booking {booking.booking_code} at {booking.space_name} "
                    f"starts at {timezone.localtime(booking.start_time):%H:%M}."
                ),
                metadata={"booking_id": booking.id, "booking_code": booking.booking_code},
            )
            Booking.objects.filter(pk=booking.pk).update(reminder_sent_at=now)
            sent_count += 1
        except Exception as e:
            logger.error(f"Error sending reminder for booking {booking.id}: {e}", exc_info=True)

    if sent_count > 0:
        logger.info(f"Sent {sent_count} booking reminders")

    return {"sent": sent_count}
