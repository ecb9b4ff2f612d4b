"""FilterSet definitions for parking space listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import ParkingSpace


class ParkingSpaceFilterSet(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    address = django_filters.CharFilter(field_name="address", lookup_expr="icontains")
    price_min = django_filters.NumberFilter(field_name="price_per_hour", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="price_per_hour", lookup_expr="lte")
    available = django_filters.BooleanFilter(field_name="is_available")
    min_spots = django_filters.NumberFilter(field_name="available_spots", lookup_expr="gte")

    class Meta:
        model = ParkingSpace
        fields = ["owner"]
