"""Serializers for notifications."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    parking_space_name = serializers.CharField(source="parking_space.name", read_only=True, default=None)

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "message",
            "parking_space",
            "parking_space_name",
            "is_read",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class SubscribeSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    radius_km = serializers.FloatField(required=False, min_value=0.1)
