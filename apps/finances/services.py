"""Payment processing services.

A payment runs in three steps so that no database lock is held while
waiting on the gateway:

1. checks and a ``processing`` payment row, under the space and booking locks;
2. the gateway call, outside any transaction;
3. the outcome recorded under the same locks again.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.bookings.models import Booking
from apps.bookings.services import ensure_slot_is_free, lock_space_and_booking
from apps.parking.ledger import release_spot
from shared.domain.exceptions import (
    AlreadyPaidError,
    BookingValidationError,
    ConflictError,
    DomainValidationError,
    InvalidStateError,
    PaymentGatewayError,
    SlotConflictError,
)

from . import gateway
from .models import Payment

logger = logging.getLogger(__name__)


def _lock_payment(payment_id) -> Payment:  # type: ignore
    return Payment.objects.select_for_update().get(pk=payment_id)


def _slot_taken(booking: Booking) -> bool:
    try:
        ensure_slot_is_free(
            booking.parking_space_id,
            booking.start_time,
            booking.end_time,
            exclude_booking_id=booking.pk,
        )
    except SlotConflictError:
        return True
    return False


def _start_payment(booking: Booking, user, method: str, metadata: dict[str, Any]) -> Payment:  # type: ignore
    with transaction.atomic():
        booking = lock_space_and_booking(booking.pk)

        if booking.payment_status == Booking.PaymentStatus.PAID:
            raise AlreadyPaidError()
        if booking.status == Booking.Status.CANCELLED:
            raise InvalidStateError("Cannot process payment for a cancelled booking.")
        in_flight = Payment.objects.filter(
            booking=booking,
            status__in=(Payment.Status.COMPLETED, Payment.Status.PROCESSING),
        )
        if in_flight.exists():
            raise ConflictError("Payment already exists for this booking.", code="payment_exists")
        if _slot_taken(booking):
            raise SlotConflictError()

        return Payment.objects.create(
            booking=booking,
            user=user,
            amount=booking.total_amount,
            method=method,
            status=Payment.Status.PROCESSING,
            metadata=metadata,
        )


def _reverse_charge(payment: Payment, reason: str) -> None:
    """Give the money back for a charge whose booking can no longer be honoured."""

    result = gateway.refund(payment.gateway_transaction_id, payment.amount, reason)
    with transaction.atomic():
        payment = _lock_payment(payment.pk)
        payment.gateway_response = {**payment.gateway_response, "refund": result}
        update_fields = ["gateway_response", "updated_at"]
        if result.get("success"):
            payment.status = Payment.Status.REFUNDED
            payment.refund_amount = payment.amount
            payment.refund_reason = reason
            payment.refunded_at = timezone.now()
            update_fields += ["status", "refund_amount", "refund_reason", "refunded_at"]
        else:
            logger.error(
                f"Automatic refund of payment {payment.transaction_id} failed: {result.get('error')}"
            )
        payment.save(update_fields=update_fields)


def process_payment(booking: Booking, *, user, method: str, metadata: dict[str, Any] | None = None) -> Payment:  # type: ignore
    """Charge the booking total and confirm the booking on success.

    A declined charge leaves the booking unpaid (payment status ``failed``)
    and raises PaymentGatewayError; calling again is the retry.
    """

    if method not in Payment.Method.values:
        raise DomainValidationError("Unsupported payment method.", code="invalid_method")
    metadata = metadata or {}

    payment = _start_payment(booking, user, method, metadata)

    result = gateway.charge(
        method,
        payment.amount,
        {**metadata, "booking_code": booking.booking_code, "payment": payment.transaction_id},
    )

    rejection: Exception | None = None
    with transaction.atomic():
        booking = lock_space_and_booking(booking.pk)
        payment = _lock_payment(payment.pk)
        payment.gateway_response = result

        if not result.get("success"):
            payment.status = Payment.Status.FAILED
            payment.save(update_fields=["status", "gateway_response", "updated_at"])
            booking.payment_status = Booking.PaymentStatus.FAILED
            booking.save(update_fields=["payment_status", "updated_at"])
            rejection = PaymentGatewayError(
                result.get("error") or PaymentGatewayError.default_message,
                gateway_response=result,
            )
        else:
            payment.status = Payment.Status.COMPLETED
            payment.paid_at = timezone.now()
            payment.save(update_fields=["status", "gateway_response", "paid_at", "updated_at"])

            if booking.status == Booking.Status.CANCELLED:
                rejection = InvalidStateError("Booking was cancelled while the payment was processed.")
            elif _slot_taken(booking):
                rejection = SlotConflictError()
            else:
                booking.payment_status = Booking.PaymentStatus.PAID
                if booking.status == Booking.Status.PENDING:
                    booking.status = Booking.Status.CONFIRMED
                booking.save(update_fields=["payment_status", "status", "updated_at"])

    if rejection is not None:
        if payment.status == Payment.Status.COMPLETED:
            _reverse_charge(payment, "Booking could not be confirmed")
        logger.warning(f"Payment {payment.transaction_id} for booking {booking.booking_code} rejected: {rejection}")
        raise rejection

    logger.info(f"Payment {payment.transaction_id} completed for booking {booking.booking_code}")
    return payment


def _refund_amount(payment: Payment, amount) -> Decimal:  # type: ignore
    if amount in (None, ""):
        return payment.amount
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise BookingValidationError("Refund amount must be a number.")
    if value <= 0:
        raise BookingValidationError("Refund amount must be positive.")
    if value > payment.amount:
        raise BookingValidationError("Refund amount cannot exceed payment amount.")
    return value


def refund_payment(payment: Payment, *, amount=None, reason: str = "") -> Payment:  # type: ignore
    """Refund a completed payment and cancel its booking."""

    if payment.status != Payment.Status.COMPLETED:
        raise InvalidStateError("Can only refund completed payments.")
    refund_amount = _refund_amount(payment, amount)
    reason = reason or "User requested refund"

    result = gateway.refund(payment.gateway_transaction_id, refund_amount, reason)
    if not result.get("success"):
        logger.warning(f"Refund of payment {payment.transaction_id} declined: {result.get('error')}")
        raise PaymentGatewayError(
            result.get("error") or "Refund processing failed",
            gateway_response=result,
        )

    with transaction.atomic():
        booking = lock_space_and_booking(payment.booking_id)
        payment = _lock_payment(payment.pk)
        if payment.status != Payment.Status.COMPLETED:
            logger.error(f"Payment {payment.transaction_id} changed state during refund {result.get('refundId')}")
            raise InvalidStateError("Payment was modified while the refund was processed.")

        now = timezone.now()
        payment.status = Payment.Status.REFUNDED
        payment.refund_amount = refund_amount
        payment.refund_reason = reason
        payment.refunded_at = now
        payment.gateway_response = {**payment.gateway_response, "refund": result}
        payment.save(
            update_fields=[
                "status",
                "refund_amount",
                "refund_reason",
                "refunded_at",
                "gateway_response",
                "updated_at",
            ]
        )

        was_holding = booking.is_holding
        booking.payment_status = Booking.PaymentStatus.REFUNDED
        booking.status = Booking.Status.CANCELLED
        booking.cancelled_at = booking.cancelled_at or now
        booking.save(update_fields=["payment_status", "status", "cancelled_at", "updated_at"])
        if was_holding:
            release_spot(booking.parking_space_id)

    logger.info(f"Payment {payment.transaction_id} refunded {refund_amount}")
    return payment


def payment_history(booking: Booking):  # type: ignore
    return Payment.objects.filter(booking=booking).order_by("-created_at")
