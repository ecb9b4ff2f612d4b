"""Notification model.

Notifications are created by domain services (nearby availability
subscriptions, upcoming booking reminders) and read by their recipient
through the API. Each notification can be marked as read.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Type(models.TextChoices):
        AVAILABILITY = "availability", _("Availability")
        PRICE_DROP = "price_drop", _("Price drop")
        BOOKING_REMINDER = "booking_reminder", _("Booking reminder")
        PAYMENT_REMINDER = "payment_reminder", _("Payment reminder")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="notifications"
    )
    parking_space = models.ForeignKey(
        "parking.ParkingSpace",
        on_delete=models.CASCADE,
        related_name="notifications",
        null=True,
        blank=True,
    )
    type = models.CharField(max_length=30, choices=Type.choices)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read", "-created_at"], name="notification_user_unread_idx"),
        ]

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.get_type_display()}"
