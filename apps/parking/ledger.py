"""Spot ledger: the only write path for ``available_spots``.

Every mutation is a single conditional ``UPDATE`` evaluated by the
database, so concurrent reservations can never push the counter below
zero or above the capacity.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction  # type: ignore
from django.db.models import Case, F, IntegerField, Value, When  # type: ignore
from django.db.models.functions import Greatest, Least  # type: ignore

from shared.domain.exceptions import InvalidInputError, NoCapacityError, NotFoundError

from .models import ParkingSpace

logger = logging.getLogger(__name__)


def _sync_availability(space_id: int) -> None:
    ParkingSpace.objects.filter(pk=space_id).update(
        is_available=Case(
            When(available_spots__gt=0, then=Value(True)),
            default=Value(False),
        )
    )


def _ensure_exists(space_id: int) -> None:
    if not ParkingSpace.objects.filter(pk=space_id).exists():
        raise NotFoundError("Parking space not found.")


@transaction.atomic
def reserve_spot(space_id: int) -> None:
    """Take one spot; raises NoCapacityError when none is left."""

    updated = ParkingSpace.objects.filter(pk=space_id, available_spots__gt=0).update(
        available_spots=F("available_spots") - 1
    )
    if not updated:
        _ensure_exists(space_id)
        raise NoCapacityError()
    _sync_availability(space_id)


@transaction.atomic
def release_spot(space_id: int) -> bool:
    """Give one spot back. A full space stays at capacity.

    Returns ``True`` when the counter actually moved.
    """

    updated = ParkingSpace.objects.filter(
        pk=space_id,
        available_spots__lt=F("capacity"),
    ).update(available_spots=F("available_spots") + 1)
    if not updated:
        _ensure_exists(space_id)
        logger.warning(f"Release on full parking space {space_id} ignored")
        return False
    _sync_availability(space_id)
    return True


def _coerce_spots(value) -> int:  # type: ignore
    if isinstance(value, bool):
        raise InvalidInputError("Available spots must be a number.")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidInputError("Available spots must be a number.")
    if not number.is_finite():
        raise InvalidInputError("Available spots must be a number.")
    return int(number)


@transaction.atomic
def set_available_spots(space_id: int, value) -> int:  # type: ignore
    """Overwrite the counter, clamped to ``[0, capacity]``.

    Returns the stored value.
    """

    spots = _coerce_spots(value)
    updated = ParkingSpace.objects.filter(pk=space_id).update(
        available_spots=Greatest(
            Value(0),
            Least(Value(spots), F("capacity"), output_field=IntegerField()),
            output_field=IntegerField(),
        )
    )
    if not updated:
        raise NotFoundError("Parking space not found.")
    _sync_availability(space_id)
    stored = ParkingSpace.objects.values_list("available_spots", flat=True).get(pk=space_id)
    logger.info(f"Parking space {space_id} available spots set to {stored}")
    return stored


@transaction.atomic
def adjust_available_spots(space_id: int, delta: int) -> int:
    """Shift the counter by ``delta``, clamped to ``[0, capacity]``.

    Returns the stored value.
    """

    updated = ParkingSpace.objects.filter(pk=space_id).update(
        available_spots=Greatest(
            Value(0),
            Least(F("available_spots") + Value(int(delta)), F("capacity"), output_field=IntegerField()),
            output_field=IntegerField(),
        )
    )
    if not updated:
        raise NotFoundError("Parking space not found.")
    _sync_availability(space_id)
    return ParkingSpace.objects.values_list("available_spots", flat=True).get(pk=space_id)
