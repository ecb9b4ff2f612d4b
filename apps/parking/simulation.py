"""Availability simulation driven by a django_celery_beat periodic task.

Starting registers (or re-enables) one periodic task that fires every
``AVAILABILITY_SIMULATION_TICK_SECONDS`` until it expires; stopping
disables it. Each tick nudges one random available space through the
ledger.
"""

from __future__ import annotations

import json
import logging
import random
from datetime import timedelta

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore
from django_celery_beat.models import IntervalSchedule, PeriodicTask  # type: ignore

from shared.domain.exceptions import InvalidInputError

from .ledger import adjust_available_spots
from .models import ParkingSpace

logger = logging.getLogger(__name__)

SIMULATION_TASK_NAME = "parking-availability-simulation"
SIMULATION_TASK = "parking.simulate_availability_tick"
MAX_STEP = 2


@transaction.atomic
def start_simulation(duration_seconds: int = 60) -> PeriodicTask:
    """Schedule availability ticks for ``duration_seconds`` (capped)."""

    try:
        duration = int(duration_seconds)
    except (TypeError, ValueError):
        raise InvalidInputError("Duration must be a number of seconds.")
    if duration <= 0:
        raise InvalidInputError("Duration must be positive.")
    duration = min(duration, settings.AVAILABILITY_SIMULATION_MAX_SECONDS)

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=settings.AVAILABILITY_SIMULATION_TICK_SECONDS,
        period=IntervalSchedule.SECONDS,
    )
    expires = timezone.now() + timedelta(seconds=duration)
    task, _ = PeriodicTask.objects.update_or_create(
        name=SIMULATION_TASK_NAME,
        defaults={
            "task": SIMULATION_TASK,
            "interval": schedule,
            "expires": expires,
            "enabled": True,
            "kwargs": json.dumps({}),
        },
    )
    logger.info(f"Availability simulation scheduled until {expires.isoformat()}")
    return task


def stop_simulation() -> bool:
    """Disable the simulation task. Returns ``True`` if it was running."""

    stopped = PeriodicTask.objects.filter(name=SIMULATION_TASK_NAME, enabled=True).update(enabled=False)
    if stopped:
        logger.info("Availability simulation stopped")
    return bool(stopped)


def is_simulation_running() -> bool:
    return PeriodicTask.objects.filter(
        name=SIMULATION_TASK_NAME,
        enabled=True,
        expires__gt=timezone.now(),
    ).exists()


def simulate_tick(rng: random.Random | None = None) -> dict | None:
    """Move one random available space by -2..+2 spots."""

    rng = rng or random.Random()
    space_ids = list(
        ParkingSpace.objects.filter(is_available=True).values_list("id", flat=True)
    )
    if not space_ids:
        return None

    space_id = rng.choice(space_ids)
    delta = rng.randint(-MAX_STEP, MAX_STEP)
    stored = adjust_available_spots(space_id, delta)
    return {"space_id": space_id, "delta": delta, "available_spots": stored}
