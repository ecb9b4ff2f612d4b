"""Great-circle distance and proximity search over parking spaces."""

from __future__ import annotations

import math

from .models import ParkingSpace

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance between two coordinates in kilometres."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def find_nearby_available_spaces(
    latitude: float,
    longitude: float,
    radius_km: float,
) -> list[tuple[ParkingSpace, float]]:
    """Spaces with free spots within ``radius_km``, nearest first."""

    nearby = []
    for space in ParkingSpace.objects.filter(is_available=True, available_spots__gt=0):
        distance = haversine_km(
            float(latitude),
            float(longitude),
            float(space.latitude),
            float(space.longitude),
        )
        if distance <= radius_km:
            nearby.append((space, distance))
    nearby.sort(key=lambda item: item[1])
    return nearby
