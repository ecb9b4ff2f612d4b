from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ParkingSpace",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("address", models.CharField(max_length=500, verbose_name="Address")),
                (
                    "latitude",
                    models.DecimalField(
                        decimal_places=6,
                        max_digits=9,
                        validators=[
                            django.core.validators.MinValueValidator(-90),
                            django.core.validators.MaxValueValidator(90),
                        ],
                    ),
                ),
                (
                    "longitude",
                    models.DecimalField(
                        decimal_places=6,
                        max_digits=9,
                        validators=[
                            django.core.validators.MinValueValidator(-180),
                            django.core.validators.MaxValueValidator(180),
                        ],
                    ),
                ),
                ("capacity", models.PositiveIntegerField(default=1, verbose_name="Total spots")),
                (
                    "available_spots",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Defaults to the capacity when the space is created.",
                        null=True,
                        verbose_name="Available spots",
                    ),
                ),
                (
                    "price_per_hour",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
                ("is_available", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="parking_spaces",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Parking space",
                "verbose_name_plural": "Parking spaces",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["is_available"], name="parking_space_available_idx"),
                    models.Index(fields=["latitude", "longitude"], name="parking_space_coords_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("available_spots__lte", models.F("capacity"))),
                        name="parking_spots_within_capacity",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("price_per_hour__gte", 0)),
                        name="parking_price_non_negative",
                    ),
                ],
            },
        ),
    ]
