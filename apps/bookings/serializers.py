"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking
from .services import create_booking


class BookingCreateSerializer(serializers.Serializer):
    """Booking request. Presence checks are done by the booking service."""

    parking_space_id = serializers.IntegerField(required=False, allow_null=True)
    start_time = serializers.DateTimeField(required=False, allow_null=True)
    end_time = serializers.DateTimeField(required=False, allow_null=True)
    vehicle_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    referral_code = serializers.CharField(max_length=20, required=False, allow_blank=True)

    def create(self, validated_data):  # type: ignore
        request = self.context["request"]
        return create_booking(
            request.user,
            parking_space_id=validated_data.get("parking_space_id"),
            start_time=validated_data.get("start_time"),
            end_time=validated_data.get("end_time"),
            vehicle_number=validated_data.get("vehicle_number"),
            notes=validated_data.get("notes", ""),
            referral_code=validated_data.get("referral_code") or None,
        )


class BookingUpdateSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField(required=False)
    end_time = serializers.DateTimeField(required=False)
    vehicle_number = serializers.CharField(max_length=20, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class BookingStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class BookingQuoteSerializer(serializers.Serializer):
    parking_space_id = serializers.IntegerField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    referral_code = serializers.CharField(max_length=20, required=False, allow_blank=True)


class BookingSerializer(serializers.ModelSerializer):
    """Detailed booking serializer."""

    user_id = serializers.ReadOnlyField(source="user.id")
    parking_space_id = serializers.ReadOnlyField(source="parking_space.id")
    space = serializers.SerializerMethodField()
    surcharge_info = serializers.SerializerMethodField()
    referral_info = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "user_id",
            "parking_space_id",
            "space",
            "start_time",
            "end_time",
            "duration",
            "status",
            "payment_status",
            "vehicle_number",
            "notes",
            "surcharge_info",
            "referral_info",
            "total_amount",
            "cancelled_at",
            "completed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_space(self, obj: Booking) -> dict:
        return obj.space_snapshot.to_dict()

    def get_surcharge_info(self, obj: Booking) -> dict:
        return obj.surcharge_info.to_dict()

    def get_referral_info(self, obj: Booking) -> dict | None:
        info = obj.referral_info
        return info.to_dict() if info else None
