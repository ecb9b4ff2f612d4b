"""Tests for the pricing engine."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.bookings.pricing import (
    calculate_duration,
    calculate_referral_discount,
    calculate_referrer_reward,
    calculate_surcharge,
    calculate_total_amount,
    is_peak_hour,
    quote,
)
from shared.domain.exceptions import InvalidTimeRangeError


def local(hour: int, minute: int = 0) -> datetime:
    return timezone.make_aware(datetime(2026, 3, 2, hour, minute))


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [(30, 1), (60, 1), (61, 2), (90, 2), (120, 2), (24 * 60, 24)],
)
def test_duration_rounds_partial_hours_up(minutes: int, expected: int) -> None:
    start = local(10)
    assert calculate_duration(start, start + timedelta(minutes=minutes)) == expected


@pytest.mark.parametrize("minutes", [0, -30])
def test_duration_rejects_empty_or_inverted_range(minutes: int) -> None:
    start = local(10)
    with pytest.raises(InvalidTimeRangeError):
        calculate_duration(start, start + timedelta(minutes=minutes))


@pytest.mark.parametrize(
    ("hour", "minute", "expected"),
    [(7, 59, False), (8, 0, True), (9, 59, True), (10, 0, False), (18, 0, False)],
)
def test_peak_hour_boundaries(hour: int, minute: int, expected: bool) -> None:
    assert is_peak_hour(local(hour, minute)) is expected


def test_peak_window_is_configurable(settings) -> None:
    settings.PARKING_PEAK_HOURS = (17, 19)
    assert is_peak_hour(local(17, 30))
    assert not is_peak_hour(local(8, 30))


def test_components() -> None:
    assert calculate_surcharge(Decimal("100"), True) == Decimal("10.00")
    assert calculate_surcharge(Decimal("100"), False) == Decimal("0.00")
    assert calculate_referral_discount(Decimal("110")) == Decimal("5.50")
    assert calculate_referrer_reward(Decimal("100")) == Decimal("5.00")


@pytest.mark.parametrize(
    ("is_peak", "has_referral", "expected"),
    [
        (False, False, Decimal("100.00")),
        (True, False, Decimal("110.00")),
        (False, True, Decimal("95.00")),
        (True, True, Decimal("104.50")),
    ],
)
def test_total_amount_composition(is_peak: bool, has_referral: bool, expected: Decimal) -> None:
    assert calculate_total_amount(2, Decimal("50"), is_peak, has_referral) == expected


def test_whole_unit_rounding(settings) -> None:
    settings.PARKING_PRICE_QUANTUM = Decimal("1")
    assert calculate_total_amount(2, 50, True, True) == Decimal("104")


def test_rounding_is_half_up() -> None:
    # 1 hour at 0.10 with referral: discount 0.005 rounds to 0.01
    assert calculate_total_amount(1, Decimal("0.10"), False, True) == Decimal("0.09")


def test_free_space_costs_nothing() -> None:
    assert calculate_total_amount(3, Decimal("0"), True, True) == Decimal("0.00")


def test_quote_breakdown() -> None:
    breakdown = quote(local(8, 30), local(10, 0), Decimal("50.00"), has_referral=True)

    assert breakdown.duration == 2
    assert breakdown.base_amount == Decimal("100.00")
    assert breakdown.is_peak_hour is True
    assert breakdown.surcharge_amount == Decimal("10.00")
    assert breakdown.surcharge_percentage == Decimal("10.00")
    assert breakdown.discount_amount == Decimal("5.50")
    assert breakdown.referrer_reward == Decimal("5.00")
    assert breakdown.total_amount == Decimal("104.50")


def test_quote_off_peak_without_referral() -> None:
    breakdown = quote(local(12), local(13, 30), Decimal("20.00"))

    assert breakdown.duration == 2
    assert breakdown.is_peak_hour is False
    assert breakdown.surcharge_percentage == Decimal("0.00")
    assert breakdown.discount_amount == Decimal("0.00")
    assert breakdown.total_amount == Decimal("40.00")
