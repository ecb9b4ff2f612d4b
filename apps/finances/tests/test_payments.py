"""Tests for payment processing, refunds and the gateway client."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import requests
from django.conf import settings
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings import services as booking_services
from apps.bookings.models import Booking
from apps.bookings.services import cancel_booking, create_booking
from apps.finances import gateway
from apps.finances.models import Payment
from apps.finances.services import process_payment, refund_payment
from apps.parking.models import ParkingSpace
from apps.users.models import User
from shared.domain.exceptions import (
    AlreadyPaidError,
    BookingValidationError,
    ConflictError,
    DomainValidationError,
    InvalidStateError,
    PaymentGatewayError,
    SlotConflictError,
)

GATEWAY_CHARGE = "apps.finances.gateway.charge"
GATEWAY_REFUND = "apps.finances.gateway.refund"


def at(hour: int) -> datetime:
    day = timezone.localdate() + timedelta(days=2)
    return timezone.make_aware(datetime.combine(day, time(hour)))


def declined(*args, **kwargs) -> dict:
    return {"success": False, "error": "Payment declined by bank"}


def lock_order(operation) -> list[str]:
    calls = Mock()
    with patch.object(booking_services, "lock_space", wraps=booking_services.lock_space) as space_lock, patch.object(
        booking_services, "lock_booking", wraps=booking_services.lock_booking
    ) as booking_lock:
        calls.attach_mock(space_lock, "space")
        calls.attach_mock(booking_lock, "booking")
        operation()
    return [name for name, _args, _kwargs in calls.mock_calls]


class PaymentFixtureMixin:
    def setUp(self) -> None:
        self.owner = User.objects.create_user(email="owner@example.com", password="x", role=User.RoleChoices.OWNER)
        self.driver = User.objects.create_user(email="driver@example.com", password="DriverPass123")
        self.space = ParkingSpace.objects.create(
            owner=self.owner,
            name="Airport P1",
            address="Terminal 1",
            latitude=Decimal("25.253000"),
            longitude=Decimal("55.365000"),
            capacity=3,
            price_per_hour=Decimal("15.00"),
        )

    def book(self, start: int = 12, end: int = 14, user: User | None = None) -> Booking:
        return create_booking(
            user or self.driver,
            parking_space_id=self.space.pk,
            start_time=at(start),
            end_time=at(end),
            vehicle_number="PAY 1",
        )

    def spots(self) -> int:
        self.space.refresh_from_db()
        return self.space.available_spots


class ProcessPaymentTests(PaymentFixtureMixin, TestCase):
    def test_successful_payment_confirms_booking(self) -> None:
        booking = self.book()

        payment = process_payment(booking, user=self.driver, method="credit_card", metadata={"card": "4242"})

        self.assertEqual(payment.status, Payment.Status.COMPLETED)
        self.assertEqual(payment.amount, Decimal("30.00"))
        self.assertIsNotNone(payment.paid_at)
        self.assertTrue(payment.gateway_response["success"])
        self.assertEqual(payment.metadata, {"card": "4242"})
        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.PAID)
        self.assertEqual(booking.status, Booking.Status.CONFIRMED)

    def test_payment_locks_space_before_booking(self) -> None:
        booking = self.book()
        order = lock_order(lambda: process_payment(booking, user=self.driver, method="credit_card"))
        self.assertEqual(order, ["space", "booking", "space", "booking"])

    def test_declined_payment_can_be_retried(self) -> None:
        booking = self.book()

        with patch(GATEWAY_CHARGE, side_effect=declined):
            with self.assertRaises(PaymentGatewayError) as ctx:
                process_payment(booking, user=self.driver, method="paypal")
        self.assertEqual(ctx.exception.message, "Payment declined by bank")
        self.assertIn("gateway_response", ctx.exception.extra)

        failed = Payment.objects.get(booking=booking)
        self.assertEqual(failed.status, Payment.Status.FAILED)
        booking.refresh_from_db()
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.FAILED)
        self.assertEqual(booking.status, Booking.Status.PENDING)

        retry = process_payment(booking, user=self.driver, method="paypal")
        self.assertEqual(retry.status, Payment.Status.COMPLETED)
        self.assertEqual(Payment.objects.filter(booking=booking).count(), 2)

    def test_rejects_paid_booking(self) -> None:
        booking = self.book()
        process_payment(booking, user=self.driver, method="credit_card")

        with self.assertRaises(AlreadyPaidError):
            process_payment(booking, user=self.driver, method="credit_card")

    def test_rejects_cancelled_booking(self) -> None:
        booking = cancel_booking(self.book())
        with self.assertRaises(InvalidStateError):
            process_payment(booking, user=self.driver, method="credit_card")
        self.assertFalse(Payment.objects.exists())

    def test_rejects_unknown_method(self) -> None:
        with self.assertRaises(DomainValidationError):
            process_payment(self.book(), user=self.driver, method="barter")

    def test_payment_in_flight_blocks_a_second_one(self) -> None:
        booking = self.book()
        Payment.objects.create(
            booking=booking,
            user=self.driver,
            amount=booking.total_amount,
            method="credit_card",
            status=Payment.Status.PROCESSING,
        )

        with self.assertRaises(ConflictError) as ctx:
            process_payment(booking, user=self.driver, method="credit_card")
        self.assertEqual(ctx.exception.code, "payment_exists")

    def test_slot_taken_before_charge(self) -> None:
        first = self.book(12, 14)
        second = self.book(13, 15)
        process_payment(first, user=self.driver, method="credit_card")

        with self.assertRaises(SlotConflictError):
            process_payment(second, user=self.driver, method="credit_card")
        self.assertFalse(Payment.objects.filter(booking=second).exists())

    def test_slot_taken_during_charge_is_refunded(self) -> None:
        first = self.book(12, 14)
        second = self.book(13, 15)
        real_charge = gateway.charge

        def charge_while_other_confirms(*args, **kwargs):
            Booking.objects.filter(pk=first.pk).update(status=Booking.Status.CONFIRMED)
            return real_charge(*args, **kwargs)

        with patch(GATEWAY_CHARGE, side_effect=charge_while_other_confirms):
            with self.assertRaises(SlotConflictError):
                process_payment(second, user=self.driver, method="stripe")

        payment = Payment.objects.get(booking=second)
        self.assertEqual(payment.status, Payment.Status.REFUNDED)
        self.assertEqual(payment.refund_amount, payment.amount)
        self.assertTrue(payment.gateway_response["refund"]["success"])
        second.refresh_from_db()
        self.assertEqual(second.payment_status, Booking.PaymentStatus.PENDING)


class RefundPaymentTests(PaymentFixtureMixin, TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.booking = self.book()
        self.payment = process_payment(self.booking, user=self.driver, method="credit_card")

    def test_full_refund_cancels_booking_and_frees_spot(self) -> None:
        self.assertEqual(self.spots(), 2)

        payment = refund_payment(self.payment)

        self.assertEqual(payment.status, Payment.Status.REFUNDED)
        self.assertEqual(payment.refund_amount, Decimal("30.00"))
        self.assertEqual(payment.refund_reason, "User requested refund")
        self.assertIsNotNone(payment.refunded_at)
        self.booking.refresh_from_db()
        self.assertEqual(self.booking.status, Booking.Status.CANCELLED)
        self.assertEqual(self.booking.payment_status, Booking.PaymentStatus.REFUNDED)
        self.assertEqual(self.spots(), 3)

    def test_refund_locks_space_before_booking(self) -> None:
        order = lock_order(lambda: refund_payment(self.payment))
        self.assertEqual(order, ["space", "booking"])

    def test_partial_refund(self) -> None:
        payment = refund_payment(self.payment, amount="10.00", reason="Left early")

        self.assertEqual(payment.refund_amount, Decimal("10.00"))
        self.assertEqual(payment.refund_reason, "Left early")

    def test_invalid_amounts(self) -> None:
        for amount in ("0", "-1", "30.01", "ten"):
            with self.subTest(amount=amount):
                with self.assertRaises(BookingValidationError):
                    refund_payment(self.payment, amount=amount)
        self.payment.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.COMPLETED)

    def test_only_completed_payments(self) -> None:
        refunded = refund_payment(self.payment)
        with self.assertRaises(InvalidStateError):
            refund_payment(refunded)

    def test_declined_refund_changes_nothing(self) -> None:
        with patch(GATEWAY_REFUND, return_value={"success": False, "error": "Refund processing failed"}):
            with self.assertRaises(PaymentGatewayError):
                refund_payment(self.payment)

        self.payment.refresh_from_db()
        self.booking.refresh_from_db()
        self.assertEqual(self.payment.status, Payment.Status.COMPLETED)
        self.assertEqual(self.booking.status, Booking.Status.CONFIRMED)
        self.assertEqual(self.spots(), 2)


@override_settings(
    PAYMENT_GATEWAY={
        **settings.PAYMENT_GATEWAY,
        "API_URL": "https://gateway.example.com/v1/",
        "API_KEY": "test-key",
        "TIMEOUT": 5,
    }
)
class GatewayClientTests(TestCase):
    @patch("apps.finances.gateway.requests.post")
    def test_charge_posts_to_gateway(self, mock_post: MagicMock) -> None:
        mock_post.return_value.json.return_value = {"success": True, "transactionId": "GW-1"}

        result = gateway.charge("credit_card", Decimal("12.50"), {"booking_code": "ABC"})

        self.assertEqual(result["transactionId"], "GW-1")
        args, kwargs = mock_post.call_args
        self.assertEqual(args[0], "https://gateway.example.com/v1/charges")
        self.assertEqual(kwargs["json"]["amount"], "12.50")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer test-key")
        self.assertEqual(kwargs["timeout"], 5)

    @patch("apps.finances.gateway.requests.post", side_effect=requests.exceptions.Timeout("slow"))
    def test_transport_failure_is_a_failed_result(self, mock_post: MagicMock) -> None:
        result = gateway.refund("GW-1", Decimal("5.00"), "test")

        self.assertFalse(result["success"])
        self.assertIn("Gateway connection error", result["error"])

    @patch("apps.finances.gateway.requests.post")
    def test_gateway_decline(self, mock_post: MagicMock) -> None:
        mock_post.return_value.json.return_value = {"success": False, "error": "Insufficient funds"}

        result = gateway.charge("debit_card", Decimal("1.00"))

        self.assertEqual(result["error"], "Insufficient funds")
        self.assertFalse(result["success"])


class PaymentAPITests(PaymentFixtureMixin, APITestCase):
    def setUp(self) -> None:
        super().setUp()
        self.booking = self.book()
        self.client.force_authenticate(self.driver)

    def test_process_and_history(self) -> None:
        response = self.client.post(
            reverse("payment-process"),
            {"booking_id": self.booking.pk, "method": "credit_card"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], Payment.Status.COMPLETED)
        self.assertEqual(response.data["booking_code"], self.booking.booking_code)

        again = self.client.post(
            reverse("payment-process"),
            {"booking_id": self.booking.pk, "method": "credit_card"},
            format="json",
        )
        self.assertEqual(again.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(again.data["code"], "already_paid")

        history = self.client.get(reverse("payment-history", args=[self.booking.pk]))
        self.assertEqual(history.status_code, status.HTTP_200_OK)
        self.assertEqual(len(history.data), 1)

        listing = self.client.get(reverse("payment-list"))
        self.assertEqual(len(listing.data), 1)

    def test_declined_payment_is_402(self) -> None:
        with patch(GATEWAY_CHARGE, side_effect=declined):
            response = self.client.post(
                reverse("payment-process"),
                {"booking_id": self.booking.pk, "method": "credit_card"},
                format="json",
            )
        self.assertEqual(response.status_code, status.HTTP_402_PAYMENT_REQUIRED)
        self.assertEqual(response.data["code"], "gateway_error")

    def test_cannot_pay_someone_elses_booking(self) -> None:
        stranger = User.objects.create_user(email="stranger@example.com", password="x")
        self.client.force_authenticate(stranger)

        response = self.client.post(
            reverse("payment-process"),
            {"booking_id": self.booking.pk, "method": "credit_card"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            self.client.get(reverse("payment-history", args=[self.booking.pk])).status_code,
            status.HTTP_403_FORBIDDEN,
        )

    def test_refund_endpoint(self) -> None:
        payment = process_payment(self.booking, user=self.driver, method="credit_card")

        response = self.client.post(
            reverse("payment-refund", args=[payment.pk]),
            {"amount": "5.00", "reason": "Plans changed"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Payment.Status.REFUNDED)
        self.assertEqual(response.data["refund_amount"], "5.00")
