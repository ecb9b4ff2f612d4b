"""Financial domain models for SmartPark."""

from __future__ import annotations

import secrets
import time
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


def generate_transaction_id() -> str:
    return f"TXN_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class Payment(models.Model):
    """Payment attempt for a booking."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PROCESSING = "processing", _("Processing")
        COMPLETED = "completed", _("Completed")
        FAILED = "failed", _("Failed")
        CANCELLED = "cancelled", _("Cancelled")
        REFUNDED = "refunded", _("Refunded")

    class Method(models.TextChoices):
        CREDIT_CARD = "credit_card", _("Credit card")
        DEBIT_CARD = "debit_card", _("Debit card")
        PAYPAL = "paypal", _("PayPal")
        STRIPE = "stripe", _("Stripe")
        CASH = "cash", _("Cash")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="payments",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    method = models.CharField(max_length=20, choices=Method.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    transaction_id = models.CharField(max_length=100, unique=True, default=generate_transaction_id)
    gateway_response = models.JSONField(default=dict, blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_reason = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["booking", "status"], name="payment_booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Payment {self.transaction_id} ({self.get_status_display()})"

    @property
    def gateway_transaction_id(self) -> str:
        """Reference the gateway knows the charge by."""
        return (self.gateway_response or {}).get("transactionId") or self.transaction_id
