"""
Booking Snapshots

Immutable views of the data a booking copies at creation time:
- SpaceSnapshot: space name and hourly price
- SurchargeInfo: peak-hour surcharge applied
- ReferralInfo: referral code, referrer and discount applied

Later edits to the live ParkingSpace or Referral never reach these.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class SpaceSnapshot(ValueObject):
    space_id: int
    name: str
    price_per_hour: Decimal


@dataclass(frozen=True)
class SurchargeInfo(ValueObject):
    is_peak_hour: bool
    surcharge_amount: Decimal
    surcharge_percentage: Decimal


@dataclass(frozen=True)
class ReferralInfo(ValueObject):
    referral_code: str
    referrer_id: Optional[int]
    discount_amount: Decimal
    applied: bool = False
