"""Referral models for SmartPark."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Referral(models.Model):
    """A user's referral code and the rewards it has earned."""

    referrer = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral",
    )
    referral_code = models.CharField(_("Referral code"), max_length=20, unique=True)
    total_rewards = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_referrals = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Referral")
        verbose_name_plural = _("Referrals")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.referral_code} ({self.referrer_id})"

    def save(self, *args, **kwargs):  # type: ignore
        self.referral_code = self.referral_code.upper()
        super().save(*args, **kwargs)

    def has_user_been_referred(self, user) -> bool:  # type: ignore
        return self.redemptions.filter(user=user).exists()


class ReferralRedemption(models.Model):
    """One use of a referral code, tied to the booking that earned it."""

    referral = models.ForeignKey(
        Referral,
        on_delete=models.CASCADE,
        related_name="redemptions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="referral_redemptions",
    )
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="referral_redemption",
    )
    discount_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Discount granted to the referred user."),
    )
    reward_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Reward credited to the referrer."),
    )
    referred_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Referral redemption")
        verbose_name_plural = _("Referral redemptions")
        ordering = ["-referred_at"]
        constraints = [
            models.UniqueConstraint(fields=["referral", "user"], name="referral_single_use_per_user"),
        ]

    def __str__(self) -> str:
        return f"{self.referral.referral_code} -> user {self.user_id}"
