"""Pricing engine for parking bookings.

Pure functions. Every monetary result is rounded half-up to
``PARKING_PRICE_QUANTUM``. The referral discount is taken from the
post-surcharge amount while the referrer reward is taken from the base
amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.base import ValueObject
from shared.domain.value_objects import TimeRange

ZERO = Decimal("0")


def _money(value) -> Decimal:  # type: ignore
    return Decimal(str(value)).quantize(settings.PARKING_PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def _rate(name: str) -> Decimal:
    return Decimal(str(getattr(settings, name)))


def calculate_duration(start: datetime, end: datetime) -> int:
    """Billable hours between ``start`` and ``end``, partial hours round up."""
    return TimeRange(start, end).billable_hours


def is_peak_hour(start: datetime) -> bool:
    """True when the local hour of ``start`` falls in the peak window."""
    if timezone.is_aware(start):
        start = timezone.localtime(start)
    first_hour, last_hour = settings.PARKING_PEAK_HOURS
    return first_hour <= start.hour < last_hour


def calculate_surcharge(base_amount, is_peak: bool) -> Decimal:  # type: ignore
    if not is_peak:
        return _money(ZERO)
    return _money(Decimal(str(base_amount)) * _rate("PARKING_PEAK_SURCHARGE_RATE"))


def calculate_referral_discount(amount_before_discount) -> Decimal:  # type: ignore
    return _money(Decimal(str(amount_before_discount)) * _rate("PARKING_REFERRAL_DISCOUNT_RATE"))


def calculate_referrer_reward(base_amount) -> Decimal:  # type: ignore
    return _money(Decimal(str(base_amount)) * _rate("PARKING_REFERRER_REWARD_RATE"))


def calculate_total_amount(duration: int, price_per_hour, is_peak: bool, has_referral: bool) -> Decimal:  # type: ignore
    return quote_for_duration(duration, price_per_hour, is_peak, has_referral=has_referral).total_amount


@dataclass(frozen=True)
class PriceBreakdown(ValueObject):
    duration: int
    price_per_hour: Decimal
    base_amount: Decimal
    is_peak_hour: bool
    surcharge_amount: Decimal
    surcharge_percentage: Decimal
    discount_amount: Decimal
    referrer_reward: Decimal
    total_amount: Decimal


def quote_for_duration(duration: int, price_per_hour, is_peak: bool, *, has_referral: bool) -> PriceBreakdown:  # type: ignore
    price = Decimal(str(price_per_hour))
    base_amount = _money(price * duration)
    surcharge = calculate_surcharge(base_amount, is_peak)
    after_surcharge = base_amount + surcharge
    discount = calculate_referral_discount(after_surcharge) if has_referral else _money(ZERO)
    percentage = _rate("PARKING_PEAK_SURCHARGE_RATE") * 100 if is_peak else ZERO
    return PriceBreakdown(
        duration=duration,
        price_per_hour=price,
        base_amount=base_amount,
        is_peak_hour=is_peak,
        surcharge_amount=surcharge,
        surcharge_percentage=percentage.quantize(Decimal("0.01")),
        discount_amount=discount,
        referrer_reward=calculate_referrer_reward(base_amount) if has_referral else _money(ZERO),
        total_amount=max(after_surcharge - discount, _money(ZERO)),
    )


def quote(start: datetime, end: datetime, price_per_hour, *, has_referral: bool = False) -> PriceBreakdown:  # type: ignore
    """Full price breakdown for a booking window."""
    return quote_for_duration(
        calculate_duration(start, end),
        price_per_hour,
        is_peak_hour(start),
        has_referral=has_referral,
    )
