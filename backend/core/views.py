"""
Core app views — **Thin Views**.

Each view delegates all business logic to the corresponding service in
``core.services``.  Views are responsible only for:

1. Extracting and validating query parameters from the request.
2. Calling the service with the authenticated user and parameters.
3. Serialising the result and returning an HTTP ``Response``.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
)

from .serializers import NotificationSerializer
from .services import NotificationInboxService


class NotificationViewSet(viewsets.ViewSet):
    """
    **Notification API** — list and mark-as-read for the authenticated user.

    Endpoints
    ---------
    GET  /api/core/notifications/              → list all notifications
    POST /api/core/notifications/{id}/read/    → mark a notification as read

    **Authentication**: Required (``IsAuthenticated``).
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List notifications",
        description="Return all notifications for the authenticated user.",
        parameters=[
            OpenApiParameter(
                name="unread",
                type=bool,
                required=False,
                description="Only return unread notifications.",
            ),
        ],
        responses={200: OpenApiResponse(response=NotificationSerializer(many=True), description="Notification list.")},
        tags=["Notifications"],
    )
    def list(self, request: Request) -> Response:
        unread_only = request.query_params.get("unread", "").lower() in ("1", "true", "yes")
        service = NotificationInboxService(user=request.user)
        notifications = service.list_notifications(unread_only=unread_only)
        serializer = NotificationSerializer(notifications, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark notification as read",
        description="Mark a single notification as read by ID.",
        request=None,
        responses={
            200: OpenApiResponse(response=NotificationSerializer, description="Updated notification."),
            404: OpenApiResponse(description="Not found or not yours."),
        },
        tags=["Notifications"],
    )
    @action(detail=True, methods=["post"], url_path="read")
    def mark_as_read(self, request: Request, pk: str = None) -> Response:
        """
        Mark a single notification as read.

        **POST /api/core/notifications/{id}/read/**
        """
        service = NotificationInboxService(user=request.user)
        notification = service.mark_as_read(notification_id=pk)
        serializer = NotificationSerializer(notification)
        return Response(serializer.data, status=status.HTTP_200_OK)
