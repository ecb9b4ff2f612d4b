"""Celery tasks for the parking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .simulation import simulate_tick

logger = logging.getLogger(__name__)


@shared_task(name="parking.simulate_availability_tick")
def simulate_availability_tick() -> dict | None:
    """
    One step of the availability simulation.

    Scheduled through django_celery_beat by
    :func:`apps.parking.simulation.start_simulation`.
    """
    result = simulate_tick()
    if result:
        logger.info(
            f"Simulated availability change on space {result['space_id']}: "
            f"{result['delta']:+d} -> {result['available_spots']}"
        )
    return result
