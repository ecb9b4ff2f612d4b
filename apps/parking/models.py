"""Parking space models for SmartPark."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ParkingSpace(models.Model):
    """A parking location with a number of bookable spots.

    ``available_spots`` and ``is_available`` are owned by
    :mod:`apps.parking.ledger`; nothing else writes them after creation.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="parking_spaces",
    )
    name = models.CharField(_("Name"), max_length=255)
    address = models.CharField(_("Address"), max_length=500)
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
    )
    capacity = models.PositiveIntegerField(_("Total spots"), default=1)
    available_spots = models.PositiveIntegerField(
        _("Available spots"),
        null=True,
        blank=True,
        help_text=_("Defaults to the capacity when the space is created."),
    )
    price_per_hour = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_available = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Parking space")
        verbose_name_plural = _("Parking spaces")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_spots__lte=models.F("capacity")),
                name="parking_spots_within_capacity",
            ),
            models.CheckConstraint(
                condition=models.Q(price_per_hour__gte=0),
                name="parking_price_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["is_available"], name="parking_space_available_idx"),
            models.Index(fields=["latitude", "longitude"], name="parking_space_coords_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.available_spots}/{self.capacity})"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding:
            if self.available_spots is None:
                self.available_spots = self.capacity
            self.available_spots = max(0, min(self.available_spots, self.capacity))
            self.is_available = self.available_spots > 0
        super().save(*args, **kwargs)
