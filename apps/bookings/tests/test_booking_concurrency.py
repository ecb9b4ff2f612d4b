"""Concurrent booking creation against a single spot.

Row locks are only meaningful on a real database server, so this runs
against PostgreSQL only (set DB_ENGINE and friends for the test run).
"""

from __future__ import annotations

import threading
import unittest
from datetime import timedelta
from decimal import Decimal

from django.db import connection, connections
from django.test import TransactionTestCase
from django.utils import timezone

from apps.bookings.models import Booking
from apps.bookings.services import create_booking
from apps.parking.models import ParkingSpace
from apps.users.models import User
from shared.domain.exceptions import ConflictError

WORKERS = 8


@unittest.skipUnless(connection.vendor == "postgresql", "requires PostgreSQL row locking")
class ConcurrentCreateTests(TransactionTestCase):
    def setUp(self) -> None:
        owner = User.objects.create_user(email="owner@example.com", password="x", role=User.RoleChoices.OWNER)
        self.space = ParkingSpace.objects.create(
            owner=owner,
            name="Single spot",
            address="1 Narrow Ln",
            latitude=Decimal("0.000000"),
            longitude=Decimal("0.000000"),
            capacity=1,
            price_per_hour=Decimal("10.00"),
        )
        self.drivers = [
            User.objects.create_user(email=f"driver{i}@example.com", password="x") for i in range(WORKERS)
        ]

    def test_only_one_booking_wins_the_last_spot(self) -> None:
        start = timezone.now() + timedelta(days=1)
        barrier = threading.Barrier(WORKERS)
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt(driver: User) -> None:
            try:
                barrier.wait()
                create_booking(
                    driver,
                    parking_space_id=self.space.pk,
                    start_time=start,
                    end_time=start + timedelta(hours=1),
                    vehicle_number="RACE",
                )
                result = "created"
            except ConflictError as exc:
                result = exc.code
            finally:
                connections.close_all()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(driver,)) for driver in self.drivers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(outcomes.count("created"), 1)
        self.assertEqual(outcomes.count("no_capacity"), WORKERS - 1)
        self.assertEqual(Booking.objects.count(), 1)
        self.space.refresh_from_db()
        self.assertEqual(self.space.available_spots, 0)
        self.assertFalse(self.space.is_available)
