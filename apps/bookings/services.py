"""Domain services for the booking lifecycle.

Every operation that checks the schedule of a space and then writes to it
runs inside one transaction holding a row lock on the space, so checks and
writes for the same space are serialized. When a booking row is locked too,
the space is always locked first. Spot counts change only through
:mod:`apps.parking.ledger`.
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.contrib.auth import get_user_model  # type: ignore
from django.db import transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.parking.ledger import release_spot, reserve_spot
from apps.parking.models import ParkingSpace
from shared.domain.exceptions import (
    AlreadyCancelledError,
    BookingValidationError,
    DomainValidationError,
    InvalidStateError,
    NoCapacityError,
    NotEligibleError,
    NotFoundError,
    PastStartTimeError,
    ReferralNotFoundError,
    SlotConflictError,
)
from shared.domain.value_objects import TimeRange

from .models import Booking
from .pricing import quote

logger = logging.getLogger(__name__)

User = get_user_model()


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def lock_space(space_id) -> ParkingSpace:  # type: ignore
    space = _lock_queryset_if_possible(ParkingSpace.objects.filter(pk=space_id)).first()
    if space is None:
        raise NotFoundError("Parking space not found.")
    return space


def lock_booking(booking_id) -> Booking:  # type: ignore
    booking = _lock_queryset_if_possible(
        Booking.objects.select_related("user").filter(pk=booking_id)
    ).first()
    if booking is None:
        raise NotFoundError("Booking not found.")
    return booking


def lock_space_and_booking(booking_id) -> Booking:  # type: ignore
    """Lock the booking's space, then the booking. Locks are always taken in this order."""

    space_id = Booking.objects.filter(pk=booking_id).values_list("parking_space_id", flat=True).first()
    if space_id is None:
        raise NotFoundError("Booking not found.")
    lock_space(space_id)
    return lock_booking(booking_id)


def ensure_slot_is_free(
    space,
    start_time: datetime,
    end_time: datetime,
    *,
    exclude_booking_id=None,
) -> None:
    """Raise SlotConflictError if a confirmed/active booking intersects the window."""

    bookings_qs = Booking.objects.filter(
        parking_space=space,
        status__in=Booking.BLOCKING_STATUSES,
        start_time__lt=end_time,
        end_time__gt=start_time,
    )
    if exclude_booking_id is not None:
        bookings_qs = bookings_qs.exclude(pk=exclude_booking_id)

    if bookings_qs.exists():
        raise SlotConflictError()


def _validate_window(start_time: datetime, end_time: datetime, now: datetime, *, check_start: bool = True) -> TimeRange:
    window = TimeRange(start_time, end_time)
    if check_start and start_time < now:
        raise PastStartTimeError()
    return window


def resolve_referral(referral_code: str | None, user):  # type: ignore
    """Validated referral or ``None``; a bad code only costs the discount."""

    if not referral_code:
        return None

    from apps.referrals.services import validate_referral_code

    try:
        return validate_referral_code(referral_code, user)
    except (NotFoundError, NotEligibleError, DomainValidationError) as exc:
        logger.info(f"Referral code {referral_code!r} ignored for user {user.id}: {exc.message}")
        return None


@transaction.atomic
def create_booking(
    user,
    *,
    parking_space_id,
    start_time: datetime | None,
    end_time: datetime | None,
    vehicle_number: str | None,
    notes: str = "",
    referral_code: str | None = None,
    now: datetime | None = None,
) -> Booking:
    """Book one spot at a parking space for ``[start_time, end_time)``."""

    required = {
        "parking_space_id": parking_space_id,
        "start_time": start_time,
        "end_time": end_time,
        "vehicle_number": vehicle_number,
    }
    missing = [name for name, value in required.items() if value in (None, "")]
    if missing:
        raise BookingValidationError(missing_fields=missing)

    now = now or timezone.now()
    space = lock_space(parking_space_id)
    if space.available_spots <= 0:
        raise NoCapacityError()
    _validate_window(start_time, end_time, now)
    ensure_slot_is_free(space, start_time, end_time)

    referral = resolve_referral(referral_code, user)
    price = quote(start_time, end_time, space.price_per_hour, has_referral=referral is not None)

    booking = Booking.objects.create(
        user=user,
        parking_space=space,
        start_time=start_time,
        end_time=end_time,
        duration=price.duration,
        total_amount=price.total_amount,
        vehicle_number=vehicle_number,
        notes=notes or "",
        space_name=space.name,
        price_per_hour=space.price_per_hour,
        is_peak_hour=price.is_peak_hour,
        surcharge_amount=price.surcharge_amount,
        surcharge_percentage=price.surcharge_percentage,
        referral_code=referral.referral_code if referral else "",
        referrer=referral.referrer if referral else None,
        discount_amount=price.discount_amount,
    )
    reserve_spot(space.pk)

    if not user.has_booked_parking:
        User.objects.filter(pk=user.pk).update(has_booked_parking=True)
        user.has_booked_parking = True

    logger.info(
        f"Booking {booking.booking_code} created by user {user.id} "
        f"for space {space.pk}: {booking.duration}h, total {booking.total_amount}"
    )
    return booking


@transaction.atomic
def update_booking(
    booking: Booking,
    *,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    vehicle_number: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Booking:
    """Edit a live booking; a new time window re-prices it from its snapshot."""

    booking = lock_space_and_booking(booking.pk)
    if booking.is_terminal:
        raise InvalidStateError("Cannot modify a completed or cancelled booking.")

    update_fields: list[str] = []
    new_start = start_time or booking.start_time
    new_end = end_time or booking.end_time
    if (new_start, new_end) != (booking.start_time, booking.end_time):
        _validate_window(
            new_start,
            new_end,
            now or timezone.now(),
            check_start=start_time is not None and start_time != booking.start_time,
        )
        ensure_slot_is_free(booking.parking_space_id, new_start, new_end, exclude_booking_id=booking.pk)

        price = quote(new_start, new_end, booking.price_per_hour, has_referral=booking.has_referral)
        booking.start_time = new_start
        booking.end_time = new_end
        booking.duration = price.duration
        booking.is_peak_hour = price.is_peak_hour
        booking.surcharge_amount = price.surcharge_amount
        booking.surcharge_percentage = price.surcharge_percentage
        booking.discount_amount = price.discount_amount
        booking.total_amount = price.total_amount
        update_fields += [
            "start_time",
            "end_time",
            "duration",
            "is_peak_hour",
            "surcharge_amount",
            "surcharge_percentage",
            "discount_amount",
            "total_amount",
        ]

    if vehicle_number:
        booking.vehicle_number = vehicle_number
        update_fields.append("vehicle_number")
    if notes is not None:
        booking.notes = notes
        update_fields.append("notes")

    if update_fields:
        booking.save(update_fields=update_fields + ["updated_at"])
        logger.info(f"Booking {booking.booking_code} updated: {', '.join(update_fields)}")
    return booking


@transaction.atomic
def cancel_booking(booking: Booking) -> Booking:
    """Cancel a live booking and give its spot back."""

    booking = lock_space_and_booking(booking.pk)
    if booking.status == Booking.Status.COMPLETED:
        raise InvalidStateError("Cannot cancel a completed booking.")
    if booking.status == Booking.Status.CANCELLED:
        raise AlreadyCancelledError()

    booking.status = Booking.Status.CANCELLED
    booking.cancelled_at = timezone.now()
    booking.save(update_fields=["status", "cancelled_at", "updated_at"])
    release_spot(booking.parking_space_id)

    logger.info(f"Booking {booking.booking_code} cancelled")
    return booking


def _complete_locked(booking: Booking, now: datetime) -> bool:
    """Complete an already locked holding booking. Returns whether a referral was applied."""

    from apps.referrals.services import apply_redemption

    booking.status = Booking.Status.COMPLETED
    booking.completed_at = now
    booking.save(update_fields=["status", "completed_at", "updated_at"])

    referral_applied = False
    if booking.has_referral and not booking.referral_applied:
        try:
            redemption = apply_redemption(
                booking.referral_code,
                booking.user,
                booking,
                booking.discount_amount,
            )
        except ReferralNotFoundError:
            logger.warning(
                f"Referral {booking.referral_code} no longer exists, "
                f"booking {booking.booking_code} earns nothing"
            )
        else:
            referral_applied = redemption is not None

    release_spot(booking.parking_space_id)
    logger.info(f"Booking {booking.booking_code} completed")
    return referral_applied


@transaction.atomic
def set_booking_status(booking: Booking, status: str) -> Booking:
    """Administrative status override with ledger bookkeeping.

    Leaving the holding states through ``completed`` runs the normal
    completion, through ``cancelled`` releases the spot. Coming back from a
    terminal state takes a spot again.
    """

    if status not in Booking.Status.values:
        raise BookingValidationError("Invalid status.", code="invalid_status")

    booking = lock_space_and_booking(booking.pk)
    previous = booking.status
    if previous == status:
        return booking

    now = timezone.now()
    was_holding = previous in Booking.HOLDING_STATUSES
    will_hold = status in Booking.HOLDING_STATUSES

    if was_holding and status == Booking.Status.COMPLETED:
        _complete_locked(booking, now)
    else:
        if was_holding and not will_hold:
            release_spot(booking.parking_space_id)
        elif will_hold and not was_holding:
            reserve_spot(booking.parking_space_id)

        booking.status = status
        update_fields = ["status", "updated_at"]
        if status == Booking.Status.CANCELLED:
            booking.cancelled_at = now
            update_fields.append("cancelled_at")
        elif status == Booking.Status.COMPLETED:
            booking.completed_at = now
            update_fields.append("completed_at")
        booking.save(update_fields=update_fields)

    logger.info(f"Booking {booking.booking_code} status changed {previous} -> {status}")
    return booking


@transaction.atomic
def delete_booking(booking: Booking) -> None:
    booking = lock_space_and_booking(booking.pk)
    if booking.status != Booking.Status.CANCELLED:
        raise InvalidStateError("Only cancelled bookings can be deleted.")
    code = booking.booking_code
    booking.delete()
    logger.info(f"Booking {code} deleted")


def sweep_overdue_bookings(now: datetime | None = None) -> dict[str, int]:
    """Complete every holding booking whose end time has passed.

    Each booking is processed in its own transaction; a failure is logged
    and the sweep carries on with the next one.
    """

    now = now or timezone.now()
    completed = 0
    referrals_applied = 0

    overdue_ids = list(
        Booking.objects.filter(
            status__in=Booking.HOLDING_STATUSES,
            end_time__lte=now,
        )
        .order_by("end_time")
        .values_list("pk", flat=True)
    )

    for booking_id in overdue_ids:
        try:
            with transaction.atomic():
                booking = lock_space_and_booking(booking_id)
                if booking.is_terminal:
                    continue
                if _complete_locked(booking, now):
                    referrals_applied += 1
                completed += 1
        except Exception as e:
            logger.error(f"Error completing overdue booking {booking_id}: {e}", exc_info=True)

    if completed:
        logger.info(f"Sweep completed {completed} bookings, applied {referrals_applied} referrals")
    return {"completed": completed, "referrals_applied": referrals_applied}


def earliest_ending_booking(space) -> Booking | None:  # type: ignore
    """The confirmed/active booking on ``space`` that frees up first."""

    return (
        Booking.objects.filter(
            parking_space=space,
            status__in=Booking.BLOCKING_STATUSES,
            end_time__gt=timezone.now(),
        )
        .order_by("end_time")
        .first()
    )

