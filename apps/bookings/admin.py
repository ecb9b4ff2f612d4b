"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "space_name",
        "user",
        "status",
        "payment_status",
        "start_time",
        "end_time",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "is_peak_hour", "referral_applied")
    search_fields = ("booking_code", "space_name", "user__email", "vehicle_number", "referral_code")
    readonly_fields = (
        "booking_code",
        "space_name",
        "price_per_hour",
        "duration",
        "is_peak_hour",
        "surcharge_amount",
        "surcharge_percentage",
        "referral_code",
        "referrer",
        "discount_amount",
        "referral_applied",
        "total_amount",
        "created_at",
        "updated_at",
    )
