"""API views for the referral domain."""

from __future__ import annotations

from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.users.permissions import IsPlatformAdmin

from .serializers import (
    LeaderboardEntrySerializer,
    ReferralAdminSerializer,
    ReferralCodeSerializer,
    ReferralOverviewSerializer,
    ReferralValidateSerializer,
)
from .services import (
    issue_or_get_referral,
    referral_leaderboard,
    referral_stats,
    referral_summary,
    validate_referral_code,
)


class ReferralViewSet(viewsets.GenericViewSet):
    """Referral code issuance, validation and reporting."""

    permission_classes = [permissions.IsAuthenticated]

    @action(detail=False, methods=["get"], url_path="my-code", url_name="my-code")
    def my_code(self, request):  # type: ignore
        """The caller's referral code, issued on first request."""
        referral = issue_or_get_referral(request.user)
        return Response(ReferralCodeSerializer(referral).data)

    @action(detail=False, methods=["get"])
    def stats(self, request):  # type: ignore
        return Response(ReferralOverviewSerializer(referral_stats(request.user)).data)

    @action(detail=False, methods=["post"])
    def validate(self, request):  # type: ignore
        serializer = ReferralValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = validate_referral_code(serializer.validated_data["referral_code"], request.user)
        return Response(
            {
                "valid": True,
                "detail": f"Valid referral code! You will get {result.discount_percentage}% discount.",
                "referral_code": result.referral_code,
                "referrer_name": result.referrer.display_name,
                "discount_percentage": result.discount_percentage,
            }
        )

    @action(detail=False, methods=["get"], permission_classes=[permissions.AllowAny])
    def leaderboard(self, request):  # type: ignore
        try:
            limit = max(1, min(int(request.query_params.get("limit", 10)), 100))
        except ValueError:
            limit = 10
        entries = referral_leaderboard(limit=limit)
        return Response(LeaderboardEntrySerializer(entries, many=True).data)

    @action(
        detail=False,
        methods=["get"],
        url_path="admin/all",
        url_name="admin-all",
        permission_classes=[IsPlatformAdmin],
    )
    def admin_all(self, request):  # type: ignore
        summary = referral_summary()
        return Response(
            {
                "referrals": ReferralAdminSerializer(summary["referrals"], many=True).data,
                "summary": summary["summary"],
            }
        )
