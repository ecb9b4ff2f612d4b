"""Service-level tests for the booking lifecycle."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from apps.bookings import services
from apps.bookings.models import Booking
from apps.bookings.services import (
    cancel_booking,
    create_booking,
    delete_booking,
    set_booking_status,
    sweep_overdue_bookings,
    update_booking,
)
from apps.parking.models import ParkingSpace
from apps.referrals.services import issue_or_get_referral
from apps.users.models import User
from shared.domain.exceptions import (
    AlreadyCancelledError,
    BookingValidationError,
    InvalidStateError,
    InvalidTimeRangeError,
    NoCapacityError,
    PastStartTimeError,
    SlotConflictError,
)


def at(hour: int, minute: int = 0, days: int = 2) -> datetime:
    day = timezone.localdate() + timedelta(days=days)
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


def lock_order(operation) -> list[str]:
    """Names of the row locks taken by ``operation``, in order."""

    calls = mock.Mock()
    with mock.patch.object(services, "lock_space", wraps=services.lock_space) as space_lock, mock.patch.object(
        services, "lock_booking", wraps=services.lock_booking
    ) as booking_lock:
        calls.attach_mock(space_lock, "space")
        calls.attach_mock(booking_lock, "booking")
        operation()
    return [name for name, _args, _kwargs in calls.mock_calls]


class BookingServiceTestCase(TestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.OWNER,
        )
        self.driver = User.objects.create_user(
            email="driver@example.com",
            password="DriverPass123",
            first_name="Dana",
        )
        self.space = ParkingSpace.objects.create(
            owner=self.owner,
            name="Riverside Lot",
            address="7 River Rd",
            latitude=Decimal("51.500000"),
            longitude=Decimal("-0.120000"),
            capacity=2,
            price_per_hour=Decimal("50.00"),
        )

    def book(self, start: datetime, end: datetime, user: User | None = None, **kwargs) -> Booking:
        return create_booking(
            user or self.driver,
            parking_space_id=self.space.pk,
            start_time=start,
            end_time=end,
            vehicle_number="KZ 123 ABC",
            **kwargs,
        )

    def spots(self) -> int:
        self.space.refresh_from_db()
        return self.space.available_spots


class CreateBookingTests(BookingServiceTestCase):
    def test_create_snapshots_price_and_takes_spot(self) -> None:
        booking = self.book(at(12), at(13, 30))

        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.PENDING)
        self.assertEqual(booking.duration, 2)
        self.assertEqual(booking.space_name, "Riverside Lot")
        self.assertEqual(booking.price_per_hour, Decimal("50.00"))
        self.assertFalse(booking.is_peak_hour)
        self.assertEqual(booking.total_amount, Decimal("100.00"))
        self.assertEqual(len(booking.booking_code), 12)
        self.assertEqual(self.spots(), 1)

        self.driver.refresh_from_db()
        self.assertTrue(self.driver.has_booked_parking)

    def test_peak_booking_gets_surcharge(self) -> None:
        booking = self.book(at(8, 30), at(10, 30))

        self.assertTrue(booking.is_peak_hour)
        self.assertEqual(booking.surcharge_amount, Decimal("10.00"))
        self.assertEqual(booking.surcharge_percentage, Decimal("10.00"))
        self.assertEqual(booking.total_amount, Decimal("110.00"))

    def test_missing_fields_are_listed(self) -> None:
        with self.assertRaises(BookingValidationError) as ctx:
            create_booking(
                self.driver,
                parking_space_id=self.space.pk,
                start_time=None,
                end_time=at(12),
                vehicle_number="",
            )
        self.assertEqual(ctx.exception.extra["missing_fields"], ["start_time", "vehicle_number"])
        self.assertEqual(self.spots(), 2)

    def test_rejects_past_start(self) -> None:
        now = timezone.now()
        with self.assertRaises(PastStartTimeError):
            self.book(now - timedelta(hours=1), now + timedelta(hours=1))

    def test_rejects_inverted_range(self) -> None:
        with self.assertRaises(InvalidTimeRangeError):
            self.book(at(14), at(12))
        self.assertEqual(self.spots(), 2)

    def test_no_capacity(self) -> None:
        self.book(at(12), at(13))
        self.book(at(15), at(16))

        with self.assertRaises(NoCapacityError):
            self.book(at(18), at(19))
        self.assertEqual(Booking.objects.count(), 2)

    def test_confirmed_booking_blocks_overlapping_window(self) -> None:
        first = self.book(at(12), at(14))
        Booking.objects.filter(pk=first.pk).update(status=Booking.Status.CONFIRMED)

        with self.assertRaises(SlotConflictError):
            self.book(at(13), at(15))
        self.assertEqual(self.spots(), 1)

        adjacent = self.book(at(14), at(15))
        self.assertEqual(adjacent.status, Booking.Status.PENDING)

    def test_referral_discount_is_snapshotted(self) -> None:
        referrer = User.objects.create_user(
            email="referrer@example.com",
            password="ReferrerPass123",
            has_booked_parking=True,
        )
        referral = issue_or_get_referral(referrer)

        booking = self.book(at(8), at(10), referral_code=referral.referral_code.lower())

        self.assertEqual(booking.referral_code, referral.referral_code)
        self.assertEqual(booking.referrer, referrer)
        self.assertEqual(booking.discount_amount, Decimal("5.50"))
        self.assertEqual(booking.total_amount, Decimal("104.50"))
        self.assertFalse(booking.referral_applied)

    def test_invalid_referral_code_only_loses_discount(self) -> None:
        booking = self.book(at(12), at(14), referral_code="NOPE12345")

        self.assertEqual(booking.referral_code, "")
        self.assertEqual(booking.discount_amount, Decimal("0.00"))
        self.assertEqual(booking.total_amount, Decimal("100.00"))


class UpdateBookingTests(BookingServiceTestCase):
    def test_new_window_is_repriced(self) -> None:
        booking = self.book(at(12), at(13))

        booking = update_booking(booking, start_time=at(8, 30), end_time=at(11))

        self.assertEqual(booking.duration, 3)
        self.assertTrue(booking.is_peak_hour)
        self.assertEqual(booking.total_amount, Decimal("165.00"))
        self.assertEqual(self.spots(), 1)

    def test_repricing_uses_snapshot_price(self) -> None:
        booking = self.book(at(12), at(13))
        ParkingSpace.objects.filter(pk=self.space.pk).update(price_per_hour=Decimal("99.00"))

        booking = update_booking(booking, end_time=at(14))

        self.assertEqual(booking.total_amount, Decimal("100.00"))

    def test_update_checks_overlap_with_other_bookings(self) -> None:
        blocker = self.book(at(15), at(16))
        Booking.objects.filter(pk=blocker.pk).update(status=Booking.Status.CONFIRMED)
        booking = self.book(at(12), at(13))

        with self.assertRaises(SlotConflictError):
            update_booking(booking, end_time=at(15, 30))

    def test_descriptive_fields(self) -> None:
        booking = self.book(at(12), at(13))
        booking = update_booking(booking, vehicle_number="NEW 777", notes="Blue car")

        booking.refresh_from_db()
        self.assertEqual(booking.vehicle_number, "NEW 777")
        self.assertEqual(booking.notes, "Blue car")
        self.assertEqual(booking.total_amount, Decimal("50.00"))

    def test_terminal_booking_cannot_change(self) -> None:
        booking = cancel_booking(self.book(at(12), at(13)))
        with self.assertRaises(InvalidStateError):
            update_booking(booking, notes="too late")


class CancelBookingTests(BookingServiceTestCase):
    def test_cancel_releases_exactly_one_spot(self) -> None:
        booking = self.book(at(12), at(13))
        self.assertEqual(self.spots(), 1)

        booking = cancel_booking(booking)

        self.assertEqual(booking.status, Booking.Status.CANCELLED)
        self.assertIsNotNone(booking.cancelled_at)
        self.assertEqual(self.spots(), 2)

        with self.assertRaises(AlreadyCancelledError):
            cancel_booking(booking)
        self.assertEqual(self.spots(), 2)

    def test_completed_booking_cannot_be_cancelled(self) -> None:
        booking = set_booking_status(self.book(at(12), at(13)), Booking.Status.COMPLETED)
        with self.assertRaises(InvalidStateError):
            cancel_booking(booking)

    def test_delete_only_cancelled(self) -> None:
        booking = self.book(at(12), at(13))
        with self.assertRaises(InvalidStateError):
            delete_booking(booking)

        delete_booking(cancel_booking(booking))
        self.assertFalse(Booking.objects.filter(pk=booking.pk).exists())


class SetBookingStatusTests(BookingServiceTestCase):
    def test_rejects_unknown_status(self) -> None:
        booking = self.book(at(12), at(13))
        with self.assertRaises(BookingValidationError) as ctx:
            set_booking_status(booking, "teleported")
        self.assertEqual(ctx.exception.code, "invalid_status")

    def test_ledger_follows_status_changes(self) -> None:
        booking = self.book(at(12), at(13))
        self.assertEqual(self.spots(), 1)

        booking = set_booking_status(booking, Booking.Status.CONFIRMED)
        self.assertEqual(self.spots(), 1)

        booking = set_booking_status(booking, Booking.Status.COMPLETED)
        self.assertIsNotNone(booking.completed_at)
        self.assertEqual(self.spots(), 2)

        booking = set_booking_status(booking, Booking.Status.PENDING)
        self.assertEqual(self.spots(), 1)

        set_booking_status(booking, Booking.Status.CANCELLED)
        self.assertEqual(self.spots(), 2)


class OverlapRuleTests(BookingServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        ParkingSpace.objects.filter(pk=self.space.pk).update(capacity=5, available_spots=5)
        self.blocker = self.book(at(12), at(14))
        Booking.objects.filter(pk=self.blocker.pk).update(status=Booking.Status.CONFIRMED)

    def test_intersecting_windows_conflict(self) -> None:
        windows = {
            "starts inside": (at(13), at(15)),
            "ends inside": (at(11), at(13)),
            "inside existing": (at(12, 30), at(13, 30)),
            "contains existing": (at(11), at(15)),
            "same window": (at(12), at(14)),
        }
        for label, (start, end) in windows.items():
            with self.subTest(label):
                with self.assertRaises(SlotConflictError):
                    self.book(start, end)
        self.assertEqual(self.spots(), 4)

    def test_touching_windows_do_not_conflict(self) -> None:
        self.book(at(10), at(12))
        self.book(at(14), at(16))
        self.assertEqual(self.spots(), 2)

    def test_pending_booking_does_not_block(self) -> None:
        Booking.objects.filter(pk=self.blocker.pk).update(status=Booking.Status.PENDING)
        self.book(at(13), at(15))
        self.assertEqual(self.spots(), 3)

    def test_update_ignores_the_booking_itself(self) -> None:
        booking = update_booking(self.blocker, start_time=at(13), end_time=at(15))

        self.assertEqual(booking.start_time, at(13))
        self.assertEqual(booking.end_time, at(15))
        self.assertEqual(booking.duration, 2)

    def test_update_conflicts_with_other_confirmed_booking(self) -> None:
        other = self.book(at(15), at(16))
        with self.assertRaises(SlotConflictError):
            update_booking(other, start_time=at(13), end_time=at(16))


class LastSpotRaceTests(BookingServiceTestCase):
    def test_stale_capacity_read_still_cannot_overbook(self) -> None:
        ParkingSpace.objects.filter(pk=self.space.pk).update(capacity=1, available_spots=1)
        stale_space = ParkingSpace.objects.get(pk=self.space.pk)
        rival = User.objects.create_user(email="rival@example.com", password="RivalPass123")

        winner = self.book(at(12), at(13), user=rival)

        with mock.patch.object(services, "lock_space", return_value=stale_space):
            with self.assertRaises(NoCapacityError):
                self.book(at(15), at(16))

        self.assertEqual(list(Booking.objects.values_list("pk", flat=True)), [winner.pk])
        self.space.refresh_from_db()
        self.assertEqual(self.space.available_spots, 0)
        self.assertFalse(self.space.is_available)


class LockOrderTests(BookingServiceTestCase):
    def test_space_is_locked_before_booking(self) -> None:
        ParkingSpace.objects.filter(pk=self.space.pk).update(capacity=5, available_spots=5)
        operations = {
            "update": lambda booking: update_booking(booking, end_time=booking.end_time + timedelta(minutes=30)),
            "cancel": cancel_booking,
            "status": lambda booking: set_booking_status(booking, Booking.Status.CONFIRMED),
            "delete": lambda booking: delete_booking(cancel_booking(booking)),
        }
        for offset, (label, operation) in enumerate(operations.items()):
            with self.subTest(label):
                booking = self.book(at(10 + 2 * offset), at(11 + 2 * offset))
                order = lock_order(lambda: operation(booking))
                self.assertEqual(order[:2], ["space", "booking"])
                self.assertEqual(order.count("space"), order.count("booking"))

    def test_sweep_locks_space_before_booking(self) -> None:
        start = timezone.now() - timedelta(hours=3)
        self.book(start, start + timedelta(hours=1), now=start - timedelta(minutes=5))

        self.assertEqual(lock_order(sweep_overdue_bookings), ["space", "booking"])
