"""API views for the booking domain."""

from __future__ import annotations

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.parking.models import ParkingSpace
from apps.users.permissions import IsPlatformAdmin

from .models import Booking
from .pricing import quote as price_quote
from .serializers import (
    BookingCreateSerializer,
    BookingQuoteSerializer,
    BookingSerializer,
    BookingStatusSerializer,
    BookingUpdateSerializer,
)
from .services import (
    cancel_booking,
    delete_booking,
    resolve_referral,
    set_booking_status,
    sweep_overdue_bookings,
    update_booking,
)


class IsBookingStakeholder(permissions.BasePermission):
    """The driver manages the booking; the space owner may only look at it."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if user.is_platform_admin():
            return True
        if obj.user_id == user.id:
            return True
        return request.method in permissions.SAFE_METHODS and obj.parking_space.owner_id == user.id


class BookingViewSet(viewsets.ModelViewSet):
    """Viewset for creating and managing parking bookings."""

    queryset = Booking.objects.select_related("parking_space", "user").all()
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["status", "payment_status", "parking_space"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "partial_update":
            return BookingUpdateSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if user.is_platform_admin():
            return qs
        if user.is_space_owner():
            return qs.filter(parking_space__owner=user) | qs.filter(user=user)
        return qs.filter(user=user)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = serializer.save()
        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = update_booking(booking, **serializer.validated_data)
        return Response(BookingSerializer(booking).data)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        delete_booking(booking)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking = cancel_booking(self.get_object())
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @action(
        detail=True,
        methods=["patch"],
        url_path="status",
        url_name="status",
        permission_classes=[IsPlatformAdmin],
    )
    def set_status(self, request, pk=None):  # type: ignore
        """Administrative status override."""
        serializer = BookingStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = set_booking_status(self.get_object(), serializer.validated_data["status"])
        return Response(BookingSerializer(booking).data)

    @action(
        detail=False,
        methods=["post"],
        url_path="expire-overdue",
        url_name="expire-overdue",
        permission_classes=[IsPlatformAdmin],
    )
    def expire_overdue(self, request):  # type: ignore
        """Run the expiration sweep now."""
        return Response(sweep_overdue_bookings())

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        """Price preview for a booking window."""
        serializer = BookingQuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        space = get_object_or_404(ParkingSpace, pk=data["parking_space_id"])
        referral = resolve_referral(data.get("referral_code"), request.user)
        breakdown = price_quote(
            data["start_time"],
            data["end_time"],
            space.price_per_hour,
            has_referral=referral is not None,
        )
        payload = breakdown.to_dict()
        payload.pop("referrer_reward")
        payload["referral_code"] = referral.referral_code if referral else None
        return Response(payload)
