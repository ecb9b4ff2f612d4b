"""Serializers for the referral domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.users.serializers import ReferralStatsSerializer, UserShortSerializer

from .models import Referral, ReferralRedemption


class ReferralCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Referral
        fields = ["referral_code", "total_rewards", "total_referrals", "is_active"]
        read_only_fields = fields


class ReferralRedemptionSerializer(serializers.ModelSerializer):
    user = UserShortSerializer(read_only=True)
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")
    booking_total = serializers.ReadOnlyField(source="booking.total_amount")

    class Meta:
        model = ReferralRedemption
        fields = ["user", "booking_code", "booking_total", "discount_amount", "reward_amount", "referred_at"]
        read_only_fields = fields


class ReferralOverviewSerializer(serializers.Serializer):
    user_stats = ReferralStatsSerializer()
    referral_code = serializers.CharField(allow_null=True)
    referred_users = ReferralRedemptionSerializer(many=True)
    has_booked_parking = serializers.BooleanField()


class ReferralValidateSerializer(serializers.Serializer):
    referral_code = serializers.CharField(max_length=20, allow_blank=True)


class LeaderboardEntrySerializer(serializers.Serializer):
    rank = serializers.IntegerField()
    name = serializers.CharField()
    total_referrals = serializers.IntegerField()
    total_rewards = serializers.DecimalField(max_digits=12, decimal_places=2)
    referral_code = serializers.CharField()


class ReferralAdminSerializer(serializers.ModelSerializer):
    referrer = UserShortSerializer(read_only=True)
    redemptions = ReferralRedemptionSerializer(many=True, read_only=True)

    class Meta:
        model = Referral
        fields = [
            "id",
            "referrer",
            "referral_code",
            "total_rewards",
            "total_referrals",
            "is_active",
            "redemptions",
            "created_at",
        ]
        read_only_fields = fields
