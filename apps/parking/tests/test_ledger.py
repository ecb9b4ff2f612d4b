"""Tests for the spot ledger."""

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase

from apps.parking.ledger import adjust_available_spots, release_spot, reserve_spot, set_available_spots
from apps.parking.models import ParkingSpace
from apps.users.models import User
from shared.domain.exceptions import InvalidInputError, NoCapacityError, NotFoundError


class SpotLedgerTests(TestCase):
    def setUp(self) -> None:
        self.owner = User.objects.create_user(
            email="owner@example.com",
            password="OwnerPass123",
            role=User.RoleChoices.OWNER,
        )
        self.space = ParkingSpace.objects.create(
            owner=self.owner,
            name="Central Garage",
            address="1 Main St",
            latitude=Decimal("40.712800"),
            longitude=Decimal("-74.006000"),
            capacity=2,
            price_per_hour=Decimal("50.00"),
        )

    def _refresh(self) -> ParkingSpace:
        self.space.refresh_from_db()
        return self.space

    def test_new_space_starts_full(self) -> None:
        self.assertEqual(self.space.available_spots, 2)
        self.assertTrue(self.space.is_available)

    def test_reserve_until_empty(self) -> None:
        reserve_spot(self.space.pk)
        reserve_spot(self.space.pk)
        space = self._refresh()
        self.assertEqual(space.available_spots, 0)
        self.assertFalse(space.is_available)

        with self.assertRaises(NoCapacityError):
            reserve_spot(self.space.pk)
        self.assertEqual(self._refresh().available_spots, 0)

    def test_reserve_unknown_space(self) -> None:
        with self.assertRaises(NotFoundError):
            reserve_spot(self.space.pk + 1000)

    def test_release_restores_availability(self) -> None:
        reserve_spot(self.space.pk)
        reserve_spot(self.space.pk)

        self.assertTrue(release_spot(self.space.pk))
        space = self._refresh()
        self.assertEqual(space.available_spots, 1)
        self.assertTrue(space.is_available)

    def test_release_never_exceeds_capacity(self) -> None:
        self.assertFalse(release_spot(self.space.pk))
        self.assertEqual(self._refresh().available_spots, 2)

    def test_set_available_spots_clamps(self) -> None:
        self.assertEqual(set_available_spots(self.space.pk, 10), 2)
        self.assertEqual(set_available_spots(self.space.pk, -3), 0)
        self.assertFalse(self._refresh().is_available)
        self.assertEqual(set_available_spots(self.space.pk, "1"), 1)
        self.assertTrue(self._refresh().is_available)

    def test_set_available_spots_rejects_non_numeric(self) -> None:
        for value in ("many", None, True, "nan"):
            with self.subTest(value=value):
                with self.assertRaises(InvalidInputError):
                    set_available_spots(self.space.pk, value)
        self.assertEqual(self._refresh().available_spots, 2)

    def test_set_available_spots_unknown_space(self) -> None:
        with self.assertRaises(NotFoundError):
            set_available_spots(self.space.pk + 1000, 1)

    def test_adjust_available_spots_is_relative_and_clamped(self) -> None:
        reserve_spot(self.space.pk)

        self.assertEqual(adjust_available_spots(self.space.pk, 0), 1)
        self.assertEqual(adjust_available_spots(self.space.pk, 5), 2)
        self.assertEqual(adjust_available_spots(self.space.pk, -1), 1)
        self.assertEqual(adjust_available_spots(self.space.pk, -2), 0)
        self.assertFalse(self._refresh().is_available)

    def test_adjust_available_spots_unknown_space(self) -> None:
        with self.assertRaises(NotFoundError):
            adjust_available_spots(self.space.pk + 1000, 1)
