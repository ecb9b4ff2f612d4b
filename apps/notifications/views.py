"""API views for notifications."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Notification
from .serializers import NotificationSerializer, SubscribeSerializer
from .services import list_notifications, mark_all_read, mark_read, subscribe_to_nearby_spaces, unread_count


class NotificationViewSet(
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """List, read and delete the authenticated user's notifications."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return Notification.objects.filter(user=self.request.user)

    def list(self, request):  # type: ignore
        unread_only = request.query_params.get("unread_only", "").lower() in ("1", "true", "yes")
        notifications = list_notifications(request.user, unread_only=unread_only)
        return Response(
            {
                "results": NotificationSerializer(notifications, many=True).data,
                "unread_count": unread_count(request.user),
            }
        )

    @action(detail=False, methods=["post"])
    def subscribe(self, request):  # type: ignore
        """Alert the user about parking with free spots around a location."""
        serializer = SubscribeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        notifications = subscribe_to_nearby_spaces(
            request.user,
            data["latitude"],
            data["longitude"],
            data.get("radius_km"),
        )
        return Response(
            {
                "count": len(notifications),
                "results": NotificationSerializer(notifications, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path="unread-count", url_name="unread-count")
    def unread(self, request):  # type: ignore
        return Response({"unread_count": unread_count(request.user)})

    @action(detail=True, methods=["patch"])
    def read(self, request, pk=None):  # type: ignore
        notification = mark_read(self.get_object())
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=["patch"], url_path="read-all", url_name="read-all")
    def read_all(self, request):  # type: ignore
        return Response({"updated": mark_all_read(request.user)})
