"""Serializers for user-related API endpoints."""

from __future__ import annotations

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

User = get_user_model()


class ReferralStatsSerializer(serializers.Serializer):
    total_rewards = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_referrals = serializers.IntegerField()
    total_savings = serializers.DecimalField(max_digits=12, decimal_places=2)


class UserSerializer(serializers.ModelSerializer):
    """Main user serializer."""

    referral_stats = ReferralStatsSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "first_name",
            "last_name",
            "phone",
            "role",
            "has_booked_parking",
            "referral_stats",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "email",
            "role",
            "has_booked_parking",
            "referral_stats",
            "created_at",
            "updated_at",
        ]


class UserShortSerializer(serializers.ModelSerializer):
    """Compact user info embedded in other responses."""

    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "email", "display_name"]
