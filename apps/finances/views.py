"""API views for payment processing.

Drivers pay for their own bookings; admins see every payment. The charge
itself goes through :func:`apps.finances.services.process_payment`.
"""

from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.exceptions import PermissionDenied  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.models import Booking

from .models import Payment
from .serializers import PaymentSerializer, ProcessPaymentSerializer, RefundSerializer
from .services import payment_history, process_payment, refund_payment

logger = logging.getLogger(__name__)


class IsPaymentOwnerOrAdmin(permissions.BasePermission):
    def has_object_permission(self, request, view, obj: Payment) -> bool:  # type: ignore
        user = request.user
        return user.is_platform_admin() or obj.user_id == user.id


def _check_booking_access(user, booking: Booking) -> None:  # type: ignore
    if not (user.is_platform_admin() or booking.user_id == user.id):
        raise PermissionDenied("You do not have access to this booking.")


class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Payment.objects.select_related("booking", "user").all()
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsPaymentOwnerOrAdmin]
    filterset_fields = ["status", "method", "booking"]

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        user = self.request.user
        if user.is_platform_admin():
            return qs
        return qs.filter(user=user)

    @action(detail=False, methods=["post"])
    def process(self, request):  # type: ignore
        """Charge a booking."""
        serializer = ProcessPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = get_object_or_404(Booking, pk=data["booking_id"])
        _check_booking_access(request.user, booking)

        payment = process_payment(
            booking,
            user=request.user,
            method=data["method"],
            metadata=data.get("metadata") or {},
        )
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def refund(self, request, pk=None):  # type: ignore
        payment: Payment = self.get_object()  # type: ignore
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = refund_payment(
            payment,
            amount=serializer.validated_data.get("amount"),
            reason=serializer.validated_data.get("reason", ""),
        )
        return Response(PaymentSerializer(payment).data)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"history/(?P<booking_id>\d+)",
        url_name="history",
    )
    def history(self, request, booking_id=None):  # type: ignore
        """Every payment attempt made for a booking."""
        booking = get_object_or_404(Booking, pk=booking_id)
        _check_booking_access(request.user, booking)
        return Response(PaymentSerializer(payment_history(booking), many=True).data)
