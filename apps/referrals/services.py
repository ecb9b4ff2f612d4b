"""Referral registry: code issuance, validation and redemption."""

from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import F, Sum  # type: ignore

from apps.bookings.models import Booking
from apps.bookings.pricing import calculate_referrer_reward
from shared.domain.exceptions import (
    DomainValidationError,
    InternalError,
    ReferralAlreadyUsedError,
    ReferralNotEligibleError,
    ReferralNotFoundError,
    SelfReferralError,
)

from .models import Referral, ReferralRedemption

logger = logging.getLogger(__name__)

User = get_user_model()

CODE_ALPHABET = string.digits + string.ascii_uppercase
CODE_SUFFIX_LENGTH = 6
ISSUE_ATTEMPTS = 3


@dataclass(frozen=True)
class ReferralValidation:
    referral: Referral
    referrer: Any
    discount_percentage: Decimal

    @property
    def referral_code(self) -> str:
        return self.referral.referral_code


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def generate_referral_code(name: str | None) -> str:
    """Three letters from the name plus six random base-36 characters."""

    prefix = re.sub(r"[^A-Za-z]", "", name or "")[:3].upper()
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
    code = prefix + suffix
    counter = 1
    while Referral.objects.filter(referral_code=code).exists():
        code = f"{prefix}{suffix}{counter}"
        counter += 1
    return code


def issue_or_get_referral(user) -> Referral:  # type: ignore
    """Return the user's referral, creating it on first request."""

    if not user.has_booked_parking:
        raise ReferralNotEligibleError()

    existing = Referral.objects.filter(referrer=user).first()
    if existing is not None:
        return existing

    for _ in range(ISSUE_ATTEMPTS):
        try:
            with transaction.atomic():
                referral = Referral.objects.create(
                    referrer=user,
                    referral_code=generate_referral_code(user.display_name),
                )
        except IntegrityError:
            # Lost a race, either for this user or for the code
            existing = Referral.objects.filter(referrer=user).first()
            if existing is not None:
                return existing
            continue
        logger.info(f"Referral code {referral.referral_code} issued to user {user.id}")
        return referral

    raise InternalError("Could not allocate a referral code.")


def validate_referral_code(code: str | None, user) -> ReferralValidation:  # type: ignore
    """Check that ``user`` may use ``code`` for a discount."""

    normalized = normalize_code(code)
    if not normalized:
        raise DomainValidationError("Referral code is required.")

    referral = (
        Referral.objects.select_related("referrer")
        .filter(referral_code=normalized, is_active=True)
        .first()
    )
    if referral is None:
        raise ReferralNotFoundError()
    if referral.referrer_id == user.id:
        raise SelfReferralError()
    if referral.has_user_been_referred(user):
        raise ReferralAlreadyUsedError()
    # A live booking already carries this code and will redeem it on completion
    pending_use = Booking.objects.filter(
        user=user,
        referral_code=referral.referral_code,
        referral_applied=False,
        status__in=Booking.HOLDING_STATUSES,
    )
    if pending_use.exists():
        raise ReferralAlreadyUsedError()

    percentage = Decimal(str(settings.PARKING_REFERRAL_DISCOUNT_RATE)) * 100
    return ReferralValidation(
        referral=referral,
        referrer=referral.referrer,
        discount_percentage=percentage.normalize(),
    )


@transaction.atomic
def apply_redemption(code: str, referred_user, booking: Booking, discount_amount) -> ReferralRedemption | None:  # type: ignore
    """Record one use of ``code`` for ``booking`` and credit both users.

    Safe to call again for the same booking; later calls return ``None``.
    """

    referral = (
        Referral.objects.select_for_update()
        .filter(referral_code=normalize_code(code))
        .first()
    )
    if referral is None:
        raise ReferralNotFoundError()

    if ReferralRedemption.objects.filter(booking=booking).exists():
        return None
    if referral.redemptions.filter(user=referred_user).exists():
        logger.warning(
            f"User {referred_user.id} already redeemed {referral.referral_code}, "
            f"booking {booking.booking_code} earns nothing"
        )
        return None

    discount = Decimal(str(discount_amount))
    reward = calculate_referrer_reward(booking.base_amount)
    redemption = ReferralRedemption.objects.create(
        referral=referral,
        user=referred_user,
        booking=booking,
        discount_amount=discount,
        reward_amount=reward,
    )

    Referral.objects.filter(pk=referral.pk).update(
        total_referrals=F("total_referrals") + 1,
        total_rewards=F("total_rewards") + reward,
    )
    User.objects.filter(pk=referral.referrer_id).update(
        referral_total_rewards=F("referral_total_rewards") + reward,
        referral_total_referrals=F("referral_total_referrals") + 1,
    )
    User.objects.filter(pk=referred_user.pk).update(
        referral_total_savings=F("referral_total_savings") + discount,
    )
    Booking.objects.filter(pk=booking.pk).update(referral_applied=True)
    booking.referral_applied = True

    logger.info(
        f"Referral {referral.referral_code} applied for booking {booking.booking_code}: "
        f"discount {discount}, reward {reward}"
    )
    return redemption


def referral_stats(user) -> dict[str, Any]:  # type: ignore
    referral = Referral.objects.filter(referrer=user).first()
    redemptions = (
        referral.redemptions.select_related("user", "booking")
        if referral is not None
        else ReferralRedemption.objects.none()
    )
    return {
        "user_stats": user.referral_stats,
        "referral_code": referral.referral_code if referral else None,
        "referred_users": list(redemptions),
        "has_booked_parking": user.has_booked_parking,
    }


def referral_leaderboard(limit: int = 10) -> list[dict[str, Any]]:
    top = (
        Referral.objects.filter(is_active=True)
        .select_related("referrer")
        .order_by("-total_referrals", "-total_rewards", "created_at")[:limit]
    )
    return [
        {
            "rank": index,
            "name": referral.referrer.display_name,
            "total_referrals": referral.total_referrals,
            "total_rewards": referral.total_rewards,
            "referral_code": referral.referral_code,
        }
        for index, referral in enumerate(top, start=1)
    ]


def referral_summary() -> dict[str, Any]:
    referrals = Referral.objects.select_related("referrer").prefetch_related("redemptions__user")
    totals = referrals.aggregate(
        total_referrals=Sum("total_referrals"),
        total_rewards=Sum("total_rewards"),
    )
    return {
        "referrals": list(referrals),
        "summary": {
            "total_referral_codes": referrals.count(),
            "total_referrals": totals["total_referrals"] or 0,
            "total_rewards": totals["total_rewards"] or Decimal("0.00"),
        },
    }
