"""Serializers for the finance domain (payments)."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    booking_code = serializers.CharField(source="booking.booking_code", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "booking_code",
            "user",
            "amount",
            "currency",
            "method",
            "status",
            "transaction_id",
            "gateway_response",
            "refund_amount",
            "refund_reason",
            "metadata",
            "paid_at",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ProcessPaymentSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField()
    method = serializers.CharField(max_length=20)
    metadata = serializers.DictField(required=False, default=dict)


class RefundSerializer(serializers.Serializer):
    amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=Decimal("0.01"),
    )
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
