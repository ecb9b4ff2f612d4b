"""Admin registrations for the parking domain."""

from __future__ import annotations

from django.contrib import admin

from .models import ParkingSpace


@admin.register(ParkingSpace)
class ParkingSpaceAdmin(admin.ModelAdmin):
    list_display = ("name", "address", "owner", "capacity", "available_spots", "price_per_hour", "is_available")
    list_filter = ("is_available",)
    search_fields = ("name", "address", "owner__email")
    readonly_fields = ("available_spots", "is_available", "created_at", "updated_at")
