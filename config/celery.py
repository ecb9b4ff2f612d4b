import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("smartpark")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

_sweep_interval = float(os.environ.get("BOOKING_SWEEP_INTERVAL_SECONDS", 60))

app.conf.beat_schedule = {
    # Completing overdue bookings and releasing their spots
    "expire-overdue-bookings": {
        "task": "bookings.expire_overdue_bookings",
        "schedule": _sweep_interval,
        # a late run is superseded by the next one
        "options": {"expires": max(_sweep_interval - 10, 1)},
    },
    # Reminders for bookings starting soon - every 15 minutes
    "send-upcoming-booking-reminders": {
        "task": "bookings.send_upcoming_booking_reminders",
        "schedule": crontab(minute="*/15"),
    },
}
