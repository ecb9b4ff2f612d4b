"""Admin registrations for referrals."""

from __future__ import annotations

from django.contrib import admin

from .models import Referral, ReferralRedemption


class ReferralRedemptionInline(admin.TabularInline):
    model = ReferralRedemption
    extra = 0
    readonly_fields = ("user", "booking", "discount_amount", "reward_amount", "referred_at")
    can_delete = False


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = ("referral_code", "referrer", "total_referrals", "total_rewards", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("referral_code", "referrer__email")
    readonly_fields = ("total_referrals", "total_rewards", "created_at", "updated_at")
    inlines = [ReferralRedemptionInline]
