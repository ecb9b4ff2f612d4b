"""Tests for the expiration sweep and booking reminders."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.services import create_booking, sweep_overdue_bookings
from apps.bookings.tasks import expire_overdue_bookings, send_upcoming_booking_reminders
from apps.notifications.models import Notification
from apps.parking.models import ParkingSpace
from apps.referrals.models import Referral, ReferralRedemption
from apps.referrals.services import issue_or_get_referral
from apps.users.models import User


class ExpirationSweepTests(TestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.OWNER,
        )
        self.driver = User.objects.create_user(email="driver@example.com", password="DriverPass123")
        self.referrer = User.objects.create_user(
            email="referrer@example.com",
            password="ReferrerPass123",
            has_booked_parking=True,
        )
        self.space = ParkingSpace.objects.create(
            owner=self.owner,
            name="Station Lot",
            address="1 Station Sq",
            latitude=Decimal("52.520000"),
            longitude=Decimal("13.405000"),
            capacity=3,
            price_per_hour=Decimal("20.00"),
        )
        self.now = timezone.make_aware(datetime(2024, 1, 10, 15, 0))

    def _booking(self, hours_ago_start: int, hours_ago_end: int, **kwargs) -> Booking:
        start = self.now - timedelta(hours=hours_ago_start)
        return create_booking(
            self.driver,
            parking_space_id=self.space.pk,
            start_time=start,
            end_time=self.now - timedelta(hours=hours_ago_end),
            vehicle_number="B 42 XY",
            now=start - timedelta(minutes=5),
            **kwargs,
        )

    def _spots(self) -> int:
        self.space.refresh_from_db()
        return self.space.available_spots

    def test_overdue_bookings_complete_and_release(self) -> None:
        overdue = self._booking(4, 2)
        Booking.objects.filter(pk=overdue.pk).update(status=Booking.Status.CONFIRMED)
        still_running = self._booking(1, -1)
        self.assertEqual(self._spots(), 1)

        result = sweep_overdue_bookings(now=self.now)

        self.assertEqual(result, {"completed": 1, "referrals_applied": 0})
        overdue.refresh_from_db()
        still_running.refresh_from_db()
        self.assertEqual(overdue.status, Booking.Status.COMPLETED)
        self.assertIsNotNone(overdue.completed_at)
        self.assertEqual(still_running.status, Booking.Status.PENDING)
        self.assertEqual(self._spots(), 2)

    def test_cancelled_bookings_are_left_alone(self) -> None:
        booking = self._booking(4, 2)
        Booking.objects.filter(pk=booking.pk).update(status=Booking.Status.CANCELLED)

        self.assertEqual(sweep_overdue_bookings(now=self.now)["completed"], 0)

    def test_referral_is_redeemed_once_on_completion(self) -> None:
        referral = issue_or_get_referral(self.referrer)
        booking = self._booking(5, 2, referral_code=referral.referral_code)
        self.assertEqual(booking.discount_amount, Decimal("3.00"))

        first = sweep_overdue_bookings(now=self.now)
        second = sweep_overdue_bookings(now=self.now)

        self.assertEqual(first, {"completed": 1, "referrals_applied": 1})
        self.assertEqual(second, {"completed": 0, "referrals_applied": 0})
        self.assertEqual(self._spots(), 3)

        referral.refresh_from_db()
        self.assertEqual(referral.total_referrals, 1)
        self.assertEqual(referral.total_referrals, referral.redemptions.count())
        self.assertEqual(referral.total_rewards, Decimal("3.00"))

        redemption = ReferralRedemption.objects.get(referral=referral)
        self.assertEqual(redemption.booking_id, booking.pk)
        self.assertEqual(redemption.user, self.driver)

        self.referrer.refresh_from_db()
        self.driver.refresh_from_db()
        self.assertEqual(self.referrer.referral_total_referrals, 1)
        self.assertEqual(self.referrer.referral_total_rewards, Decimal("3.00"))
        self.assertEqual(self.driver.referral_total_savings, Decimal("3.00"))

        booking.refresh_from_db()
        self.assertTrue(booking.referral_applied)

    def test_deleted_referral_does_not_block_completion(self) -> None:
        referral = issue_or_get_referral(self.referrer)
        booking = self._booking(5, 2, referral_code=referral.referral_code)
        Referral.objects.filter(pk=referral.pk).delete()

        result = expire_overdue_bookings()

        self.assertEqual(result, {"completed": 1, "referrals_applied": 0})
        booking.refresh_from_db()
        self.assertEqual(booking.status, Booking.Status.COMPLETED)
        self.assertFalse(booking.referral_applied)


class BookingReminderTests(TestCase):
    def setUp(self) -> None:
        owner = User.objects.create_user(email="owner@example.com", password="x", role=User.RoleChoices.OWNER)
        self.driver = User.objects.create_user(email="driver@example.com", password="x")
        self.space = ParkingSpace.objects.create(
            owner=owner,
            name="Mall Garage",
            address="3 Mall Way",
            latitude=Decimal("1.300000"),
            longitude=Decimal("103.800000"),
            capacity=5,
            price_per_hour=Decimal("4.00"),
        )
        self.side_space = ParkingSpace.objects.create(
            owner=owner,
            name="Mall Annex",
            address="5 Mall Way",
            latitude=Decimal("1.301000"),
            longitude=Decimal("103.801000"),
            capacity=5,
            price_per_hour=Decimal("3.00"),
        )

    def _booking(self, starts_in: timedelta, status: str = Booking.Status.CONFIRMED, space=None) -> Booking:
        start = timezone.now() + starts_in
        booking = create_booking(
            self.driver,
            parking_space_id=(space or self.space).pk,
            start_time=start,
            end_time=start + timedelta(hours=1),
            vehicle_number="S 1 A",
        )
        Booking.objects.filter(pk=booking.pk).update(status=status)
        return booking

    def test_reminder_sent_once_for_confirmed_bookings_starting_soon(self) -> None:
        soon = self._booking(timedelta(minutes=30))
        self._booking(timedelta(minutes=20), status=Booking.Status.PENDING, space=self.side_space)
        self._booking(timedelta(hours=5))

        self.assertEqual(send_upcoming_booking_reminders(), {"sent": 1})
        self.assertEqual(send_upcoming_booking_reminders(), {"sent": 0})

        notification = Notification.objects.get(user=self.driver)
        self.assertEqual(notification.type, Notification.Type.BOOKING_REMINDER)
        self.assertEqual(notification.parking_space, self.space)
        self.assertEqual(notification.metadata["booking_code"], soon.booking_code)
        soon.refresh_from_db()
        self.assertIsNotNone(soon.reminder_sent_at)
