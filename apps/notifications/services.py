"""Notification services: in-app messages and nearby availability alerts."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore

from apps.parking.geo import find_nearby_available_spaces
from shared.domain.exceptions import DomainValidationError

from .models import Notification

logger = logging.getLogger(__name__)

MAX_LISTED = 50


def create_in_app_notification(
    user,
    parking_space=None,
    *,
    type: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification.objects.create(
        user=user,
        parking_space=parking_space,
        type=type,
        message=message,
        metadata=metadata or {},
    )
    logger.info(f"Notification {notification.pk} ({type}) created for user {user.pk}")
    return notification


def _coordinate(value, name: str, limit: int) -> float:  # type: ignore
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise DomainValidationError(f"{name} must be a number.", code="invalid_coordinates")
    if not -limit <= number <= limit:
        raise DomainValidationError(f"{name} is out of range.", code="invalid_coordinates")
    return number


@transaction.atomic
def subscribe_to_nearby_spaces(user, latitude, longitude, radius_km=None) -> list[Notification]:  # type: ignore
    """Create one availability notification per nearby space with free spots."""

    lat = _coordinate(latitude, "Latitude", 90)
    lng = _coordinate(longitude, "Longitude", 180)
    if radius_km in (None, ""):
        radius_km = settings.NOTIFICATION_DEFAULT_RADIUS_KM
    try:
        radius = float(radius_km)
    except (TypeError, ValueError):
        raise DomainValidationError("Radius must be a number.", code="invalid_radius")
    if radius <= 0:
        raise DomainValidationError("Radius must be positive.", code="invalid_radius")

    notifications = []
    for space, distance in find_nearby_available_spaces(lat, lng, radius):
        notifications.append(
            create_in_app_notification(
                user,
                space,
                type=Notification.Type.AVAILABILITY,
                message=(
                    f"Parking available at {space.name} ({distance:.1f} km away). "
                    f"{space.available_spots} spots left at ${space.price_per_hour}/hour."
                ),
                metadata={
                    "distance_km": round(distance, 2),
                    "user_location": {"latitude": lat, "longitude": lng},
                    "available_spots": space.available_spots,
                    "price_per_hour": str(space.price_per_hour.quantize(Decimal("0.01"))),
                },
            )
        )
    logger.info(f"User {user.pk} subscribed near ({lat}, {lng}): {len(notifications)} spaces found")
    return notifications


def list_notifications(user, *, unread_only: bool = False):  # type: ignore
    qs = Notification.objects.select_related("parking_space").filter(user=user)
    if unread_only:
        qs = qs.filter(is_read=False)
    return qs.order_by("-created_at")[:MAX_LISTED]


def unread_count(user) -> int:  # type: ignore
    return Notification.objects.filter(user=user, is_read=False).count()


def mark_read(notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return notification


def mark_all_read(user) -> int:  # type: ignore
    return Notification.objects.filter(user=user, is_read=False).update(is_read=True)
