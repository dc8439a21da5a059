"""
Applications app views.

``ApplicationViewSet`` exposes the lifecycle to the HTTP layer.  Views
validate input with serializers and delegate to ``services.py``;
permission and ownership checks happen in the service layer, and domain
exceptions become HTTP responses through
``core.domain.exception_handler``.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from core.domain.access import require_permission
from core.permissions_constants import ApplicationsPerms
from core.serializers import FinalizationArtifactSerializer
from core.services import FinalizationArtifactQueryService

from .scheduler import run_lifecycle_tick
from .serializers import (
    ApplicationDetailSerializer,
    ApplicationFilterSerializer,
    ApplicationListSerializer,
    ApplicationStatusLogSerializer,
    ApplicationSubmitSerializer,
    ApplicationTrackingSerializer,
    AssignSerializer,
    MarkSolvedSerializer,
    TransitionSerializer,
)
from .services import (
    ApplicationActionService,
    ApplicationQueryService,
    ApplicationSubmissionService,
)

logger = logging.getLogger(__name__)

_UUID_REGEX = r"[0-9a-fA-F-]{36}"


class ApplicationViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the applications app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined.  Applications are never updated or deleted
    directly; every change is a workflow action.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = _UUID_REGEX

    # ── Standard read / create ───────────────────────────────────────

    @extend_schema(
        summary="List applications",
        description="Applications visible to the authenticated user (own, assigned, or all).",
        parameters=[
            OpenApiParameter(name="status", type=str, location=OpenApiParameter.QUERY, description="Filter by status."),
            OpenApiParameter(name="priority", type=str, location=OpenApiParameter.QUERY, description="Filter by priority."),
            OpenApiParameter(name="department", type=str, location=OpenApiParameter.QUERY, description="Filter by department (short form)."),
            OpenApiParameter(name="escalated", type=bool, location=OpenApiParameter.QUERY, description="Only escalated applications."),
        ],
        responses={200: ApplicationListSerializer(many=True)},
        tags=["Applications"],
    )
    def list(self, request: Request) -> Response:
        filter_serializer = ApplicationFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        qs = ApplicationQueryService.get_filtered_queryset(request.user, filter_serializer.validated_data)
        return Response(ApplicationListSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Submit an application",
        request=ApplicationSubmitSerializer,
        responses={
            201: OpenApiResponse(response=ApplicationDetailSerializer, description="Created; routed when a handler is available."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Permission denied."),
        },
        tags=["Applications"],
    )
    def create(self, request: Request) -> Response:
        serializer = ApplicationSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = ApplicationSubmissionService.submit_request(request.user, serializer.validated_data)
        return Response(ApplicationDetailSerializer(application).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve an application",
        responses={200: ApplicationDetailSerializer, 404: OpenApiResponse(description="Not found or not visible.")},
        tags=["Applications"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        application = ApplicationQueryService.get_application(request.user, pk)
        return Response(ApplicationDetailSerializer(application).data, status=status.HTTP_200_OK)

    # ── Sub-resources ────────────────────────────────────────────────

    @extend_schema(
        summary="Finalization artifact",
        responses={200: FinalizationArtifactSerializer, 404: OpenApiResponse(description="Not stamped yet.")},
        tags=["Applications"],
    )
    @action(detail=True, methods=["get"], url_path="artifact")
    def artifact(self, request: Request, pk: str = None) -> Response:
        application = ApplicationQueryService.get_application(request.user, pk)
        artifact = FinalizationArtifactQueryService.get_for_application(application.pk)
        return Response(FinalizationArtifactSerializer(artifact).data, status=status.HTTP_200_OK)

    # ── Workflow @actions ────────────────────────────────────────────

    @extend_schema(
        summary="Change status",
        description="Assigned handler moves the application: in_progress, approved, rejected.",
        request=TransitionSerializer,
        responses={
            200: ApplicationDetailSerializer,
            403: OpenApiResponse(description="Not the assigned handler."),
            409: OpenApiResponse(description="Invalid transition or closed application."),
        },
        tags=["Applications – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="transition")
    def transition(self, request: Request, pk: str = None) -> Response:
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = ApplicationActionService.transition(
            request.user,
            pk,
            serializer.validated_data["status"],
            serializer.validated_data["comment"],
        )
        return Response(ApplicationDetailSerializer(application).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Assign to a handler",
        description="Administrative (re)assignment.",
        request=AssignSerializer,
        responses={200: ApplicationDetailSerializer, 403: OpenApiResponse(description="Not an administrator.")},
        tags=["Applications – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="assign")
    def assign(self, request: Request, pk: str = None) -> Response:
        serializer = AssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = ApplicationActionService.assign(
            request.user,
            pk,
            serializer.validated_data["handler_id"],
            serializer.validated_data["comment"],
        )
        return Response(ApplicationDetailSerializer(application).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Accept an unassigned application",
        request=None,
        responses={200: ApplicationDetailSerializer, 409: OpenApiResponse(description="Already assigned.")},
        tags=["Applications – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="accept")
    def accept(self, request: Request, pk: str = None) -> Response:
        application = ApplicationActionService.accept(request.user, pk)
        return Response(ApplicationDetailSerializer(application).data, status=status.HTTP_200_OK)

    @extend_schema(
        summary="Mark solved",
        request=MarkSolvedSerializer,
        responses={200: ApplicationDetailSerializer, 403: OpenApiResponse(description="Not the owner.")},
        tags=["Applications – Workflow"],
    )
    @action(detail=True, methods=["post"], url_path="mark-solved")
    def mark_solved(self, request: Request, pk: str = None) -> Response:
        serializer = MarkSolvedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        application = ApplicationActionService.mark_solved(
            request.user, pk, serializer.validated_data.get("is_solved"),
        )
        return Response(ApplicationDetailSerializer(application).data, status=status.HTTP_200_OK)

    # ── Operations ───────────────────────────────────────────────────

    @extend_schema(
        summary="Run lifecycle jobs now",
        description="Runs one tick of auto-approval, escalation and delay reminders.",
        request=None,
        responses={200: OpenApiResponse(description="Tick summary counts.")},
        tags=["Applications – Operations"],
    )
    @action(detail=False, methods=["post"], url_path="run-lifecycle-jobs")
    def run_lifecycle_jobs(self, request: Request) -> Response:
        require_permission(
            request.user,
            ApplicationsPerms.full(ApplicationsPerms.CAN_RUN_LIFECYCLE_JOBS),
            message="Only administrators can run lifecycle jobs.",
        )
        summary = run_lifecycle_tick()
        logger.info("Lifecycle tick triggered by %s: %s", request.user, summary)
        return Response(summary, status=status.HTTP_200_OK)


class ApplicationHistoryViewSet(viewsets.ViewSet):
    """
    Audit trail of one application.

    Nested under ``/api/applications/{application_pk}/history/``.

    Endpoints::

        GET    /api/applications/{application_pk}/history/  → list
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Application history",
        description="Every lifecycle step of the application, oldest first.",
        responses={200: ApplicationStatusLogSerializer(many=True)},
        tags=["Applications"],
    )
    def list(self, request: Request, application_pk: str = None) -> Response:
        logs = ApplicationQueryService.get_history(request.user, application_pk)
        return Response(ApplicationStatusLogSerializer(logs, many=True).data, status=status.HTTP_200_OK)


class ApplicationTrackingView(APIView):
    """
    GET /api/applications/track/{tracking_id}/

    Public status lookup by tracking id.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Track an application",
        responses={200: ApplicationTrackingSerializer, 404: OpenApiResponse(description="Unknown tracking id.")},
        tags=["Applications"],
    )
    def get(self, request: Request, tracking_id: str) -> Response:
        application = ApplicationQueryService.track(tracking_id)
        return Response(ApplicationTrackingSerializer(application).data, status=status.HTTP_200_OK)
