"""
Domain Error Taxonomy

Every failure a domain service reports to its caller is one of these
categories:
- DomainValidationError: missing/malformed input, never retried
- NotFoundError: referenced record does not exist
- ConflictError: request clashes with current state (slot taken, no spots,
  already cancelled/paid); the caller may retry with other parameters
- NotEligibleError: referral rules reject the request
- GatewayError: the payment/refund gateway declined or failed
- InternalError: unexpected failure, reported generically

Each error carries the HTTP status and machine code used by the API layer.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for errors raised by domain services."""

    status_code = 400
    default_code = "error"
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None, *, code: str | None = None, **extra: Any):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class DomainValidationError(DomainError):
    status_code = 400
    default_code = "validation_error"
    default_message = "Invalid request."


class BookingValidationError(DomainValidationError):
    """Missing or malformed booking fields."""

    default_message = "Missing required fields."


class InvalidTimeRangeError(DomainValidationError):
    default_code = "invalid_range"
    default_message = "End time must be after start time."


class PastStartTimeError(DomainValidationError):
    default_code = "past_start_time"
    default_message = "Start time cannot be in the past."


class InvalidInputError(DomainValidationError):
    default_code = "invalid_input"
    default_message = "Value must be numeric."


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(DomainError):
    status_code = 404
    default_code = "not_found"
    default_message = "Not found."


class ReferralNotFoundError(NotFoundError):
    default_code = "referral_not_found"
    default_message = "Invalid referral code."


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class ConflictError(DomainError):
    status_code = 409
    default_code = "conflict"
    default_message = "Request conflicts with the current state."


class SlotConflictError(ConflictError):
    """Raised when a parking space is busy for the requested time range."""

    default_code = "slot_conflict"
    default_message = "Parking space is already booked for this time slot."


class NoCapacityError(ConflictError):
    default_code = "no_capacity"
    default_message = "No available spots."


class InvalidStateError(ConflictError):
    default_code = "invalid_state"
    default_message = "Operation is not allowed in the current state."


class AlreadyCancelledError(ConflictError):
    default_code = "already_cancelled"
    default_message = "Booking is already cancelled."


class AlreadyPaidError(ConflictError):
    default_code = "already_paid"
    default_message = "Booking is already paid."


# ---------------------------------------------------------------------------
# Referral eligibility
# ---------------------------------------------------------------------------

class NotEligibleError(DomainError):
    status_code = 400
    default_code = "not_eligible"
    default_message = "Not eligible."


class ReferralNotEligibleError(NotEligibleError):
    default_message = "You need to complete at least one parking booking to get a referral code."


class SelfReferralError(NotEligibleError):
    default_code = "self_referral"
    default_message = "You cannot use your own referral code."


class ReferralAlreadyUsedError(NotEligibleError):
    default_code = "referral_already_used"
    default_message = "You have already used this referral code."


# ---------------------------------------------------------------------------
# Gateway / internal
# ---------------------------------------------------------------------------

class GatewayError(DomainError):
    status_code = 402
    default_code = "gateway_error"
    default_message = "Payment gateway declined the request."


class PaymentGatewayError(GatewayError):
    """Payment or refund was not accepted by the gateway."""


class InternalError(DomainError):
    status_code = 500
    default_code = "internal_error"
    default_message = "Internal server error."
