"""Admin registration for payments."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "booking", "user", "amount", "method", "status", "paid_at", "created_at")
    list_filter = ("status", "method", "currency")
    search_fields = ("transaction_id", "booking__booking_code", "user__email")
    readonly_fields = ("transaction_id", "gateway_response", "paid_at", "refunded_at", "created_at", "updated_at")
