"""URL routing for the referral domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import ReferralViewSet

router = SimpleRouter()
router.register(r"", ReferralViewSet, basename="referral")

urlpatterns = [
    path("", include(router.urls)),
]
