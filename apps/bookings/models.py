"""Booking domain models for SmartPark."""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.snapshots import ReferralInfo, SpaceSnapshot, SurchargeInfo


class Booking(models.Model):
    """Time-bounded reservation of one spot at a parking space.

    Price inputs (space name, hourly price, surcharge and referral data) are
    copied at creation and never re-read from the live records.
    """

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        ACTIVE = "active", _("Active")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Awaiting payment")
        PAID = "paid", _("Paid")
        FAILED = "failed", _("Payment failed")
        REFUNDED = "refunded", _("Refunded")

    # Statuses in which the booking owns a reserved spot
    HOLDING_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.ACTIVE)
    # Statuses that block the time slot for other bookings
    BLOCKING_STATUSES = (Status.CONFIRMED, Status.ACTIVE)
    TERMINAL_STATUSES = (Status.COMPLETED, Status.CANCELLED)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    parking_space = models.ForeignKey(
        "parking.ParkingSpace",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    duration = models.PositiveIntegerField(help_text=_("Billable hours, partial hours round up."))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    vehicle_number = models.CharField(max_length=20)
    notes = models.TextField(blank=True)

    # Space snapshot
    space_name = models.CharField(max_length=255)
    price_per_hour = models.DecimalField(max_digits=10, decimal_places=2)

    # Pricing snapshot
    is_peak_hour = models.BooleanField(default=False)
    surcharge_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    surcharge_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Referral snapshot
    referral_code = models.CharField(max_length=20, blank=True)
    referrer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="referred_bookings",
    )
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    referral_applied = models.BooleanField(
        default=False,
        help_text=_("Set once the redemption has been recorded on the referral."),
    )

    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_time_range",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0),
                name="booking_total_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["parking_space", "start_time", "end_time"], name="booking_space_window_idx"),
            models.Index(fields=["status", "end_time"], name="booking_status_end_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for space {self.parking_space_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(6).upper()

    @property
    def is_holding(self) -> bool:
        return self.status in self.HOLDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    @property
    def has_referral(self) -> bool:
        return bool(self.referral_code)

    @property
    def base_amount(self) -> Decimal:
        return self.price_per_hour * self.duration

    @property
    def space_snapshot(self) -> SpaceSnapshot:
        return SpaceSnapshot(
            space_id=self.parking_space_id,
            name=self.space_name,
            price_per_hour=self.price_per_hour,
        )

    @property
    def surcharge_info(self) -> SurchargeInfo:
        return SurchargeInfo(
            is_peak_hour=self.is_peak_hour,
            surcharge_amount=self.surcharge_amount,
            surcharge_percentage=self.surcharge_percentage,
        )

    @property
    def referral_info(self) -> ReferralInfo | None:
        if not self.has_referral:
            return None
        return ReferralInfo(
            referral_code=self.referral_code,
            referrer_id=self.referrer_id,
            discount_amount=self.discount_amount,
            applied=self.referral_applied,
        )
