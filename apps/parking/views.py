"""Parking space API views."""

from __future__ import annotations

import logging

from django.db import transaction  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.services import earliest_ending_booking
from apps.users.permissions import IsPlatformAdmin, IsSpaceOwner
from shared.domain.exceptions import DomainError, NotFoundError

from .filters import ParkingSpaceFilterSet
from .ledger import set_available_spots
from .models import ParkingSpace
from .serializers import (
    AvailabilityUpdateSerializer,
    BulkAvailabilitySerializer,
    ParkingSpaceSerializer,
    ParkingSpaceWriteSerializer,
    SimulationStartSerializer,
    SpaceStatusSerializer,
)
from .simulation import is_simulation_running, start_simulation, stop_simulation

logger = logging.getLogger(__name__)


def _apply_availability_update(space: ParkingSpace, data: dict) -> ParkingSpace:
    """Coordinates and spot count for one space, as a single unit."""

    with transaction.atomic():
        coordinates = {key: data[key] for key in ("latitude", "longitude") if key in data}
        if coordinates:
            ParkingSpace.objects.filter(pk=space.pk).update(**coordinates)
        set_available_spots(space.pk, data["available_spots"])
    space.refresh_from_db()
    return space


class ParkingSpaceViewSet(viewsets.ModelViewSet):
    """Viewset for browsing and managing parking spaces."""

    queryset = ParkingSpace.objects.select_related("owner").all()
    permission_classes = [IsSpaceOwner]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ParkingSpaceFilterSet
    ordering_fields = ["price_per_hour", "available_spots", "created_at", "name"]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]

    def get_permissions(self):  # type: ignore
        if self.action in {"list", "retrieve", "available", "space_status"}:
            return [permissions.AllowAny()]
        if self.action in {"start_simulation", "stop_simulation", "simulation_status"}:
            return [IsPlatformAdmin()]
        return super().get_permissions()

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "partial_update"}:
            return ParkingSpaceWriteSerializer
        return ParkingSpaceSerializer

    def perform_create(self, serializer):  # type: ignore
        space = serializer.save(owner=self.request.user)
        logger.info(f"Parking space {space.id} created by user {self.request.user.id}")

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        data = ParkingSpaceSerializer(serializer.instance).data
        return Response(data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):  # type: ignore
        space = self.get_object()
        serializer = self.get_serializer(space, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(ParkingSpaceSerializer(space).data)

    @action(detail=False, methods=["get"])
    def available(self, request):  # type: ignore
        """Spaces that currently have free spots."""
        qs = self.filter_queryset(self.get_queryset()).filter(is_available=True)
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(ParkingSpaceSerializer(page, many=True).data)
        return Response(ParkingSpaceSerializer(qs, many=True).data)

    @action(detail=True, methods=["get"], url_path="status", url_name="status")
    def space_status(self, request, pk=None):  # type: ignore
        """Live spot count plus the time the next holding booking ends."""
        space = self.get_object()
        next_free = earliest_ending_booking(space)
        payload = {
            "id": space.id,
            "name": space.name,
            "capacity": space.capacity,
            "available_spots": space.available_spots,
            "is_available": space.is_available,
            "next_available_at": next_free.end_time if next_free else None,
        }
        return Response(SpaceStatusSerializer(payload).data)

    @action(detail=True, methods=["post"])
    def availability(self, request, pk=None):  # type: ignore
        """Owner-driven update of the spot count (and optionally location)."""
        space = self.get_object()
        serializer = AvailabilityUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        space = _apply_availability_update(space, serializer.validated_data)
        return Response(ParkingSpaceSerializer(space).data)

    @action(detail=False, methods=["post"], url_path="bulk-update", url_name="bulk-update")
    def bulk_update(self, request):  # type: ignore
        """Apply several availability updates; each item succeeds or fails alone."""
        serializer = BulkAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        results = []
        for item in serializer.validated_data["updates"]:
            space_id = item["id"]
            try:
                space = ParkingSpace.objects.filter(pk=space_id).first()
                if space is None:
                    raise NotFoundError("Parking space not found.")
                if not IsSpaceOwner().has_object_permission(request, self, space):
                    results.append({"id": space_id, "success": False, "error": "Not the owner of this space."})
                    continue
                space = _apply_availability_update(space, item)
                results.append(
                    {
                        "id": space_id,
                        "success": True,
                        "available_spots": space.available_spots,
                        "is_available": space.is_available,
                    }
                )
            except DomainError as exc:
                logger.warning(f"Bulk availability update failed for space {space_id}: {exc.message}")
                results.append({"id": space_id, "success": False, "error": exc.message})

        return Response({"results": results})

    @action(detail=False, methods=["post"], url_path="simulate-updates", url_name="simulate-updates")
    def start_simulation(self, request):  # type: ignore
        serializer = SimulationStartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = start_simulation(serializer.validated_data["duration"])
        return Response(
            {"running": True, "expires": task.expires},
            status=status.HTTP_202_ACCEPTED,
        )

    @start_simulation.mapping.delete
    def stop_simulation(self, request):  # type: ignore
        return Response({"running": False, "stopped": stop_simulation()})

    @start_simulation.mapping.get
    def simulation_status(self, request):  # type: ignore
        return Response({"running": is_simulation_running()})
