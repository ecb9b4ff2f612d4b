"""Serializers for the parking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import ParkingSpace


class ParkingSpaceSerializer(serializers.ModelSerializer):
    owner = serializers.ReadOnlyField(source="owner_id")

    class Meta:
        model = ParkingSpace
        fields = [
            "id",
            "name",
            "address",
            "latitude",
            "longitude",
            "capacity",
            "available_spots",
            "price_per_hour",
            "is_available",
            "owner",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ParkingSpaceWriteSerializer(serializers.ModelSerializer):
    """Descriptive fields only; spot counts go through the ledger."""

    class Meta:
        model = ParkingSpace
        fields = [
            "name",
            "address",
            "latitude",
            "longitude",
            "capacity",
            "price_per_hour",
        ]

    def validate_capacity(self, value: int) -> int:
        if self.instance is not None and value != self.instance.capacity:
            raise serializers.ValidationError("Capacity cannot be changed once the space exists.")
        return value


class AvailabilityUpdateSerializer(serializers.Serializer):
    # Raw value, the ledger rejects non-numeric input itself
    available_spots = serializers.JSONField()
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, min_value=-90, max_value=90)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6, required=False, min_value=-180, max_value=180)


class BulkAvailabilityItemSerializer(AvailabilityUpdateSerializer):
    id = serializers.IntegerField()


class BulkAvailabilitySerializer(serializers.Serializer):
    updates = BulkAvailabilityItemSerializer(many=True, allow_empty=False)


class SimulationStartSerializer(serializers.Serializer):
    duration = serializers.IntegerField(min_value=1, default=60)


class SpaceStatusSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    capacity = serializers.IntegerField()
    available_spots = serializers.IntegerField()
    is_available = serializers.BooleanField()
    next_available_at = serializers.DateTimeField(allow_null=True)
