"""
Accounts app views.

Thin views: validate with serializers, delegate to ``services.py``,
return a DRF ``Response``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    CustomTokenObtainPairSerializer,
    HandlerSerializer,
    UserDetailSerializer,
)
from .services import HandlerDirectoryService


# ═══════════════════════════════════════════════════════════════════
#  Authentication Views
# ═══════════════════════════════════════════════════════════════════


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates a user via any of the three
    unique identifiers (username, phone_number, email) plus password.

    Response body: ``{"access": ..., "refresh": ..., "user": {...}}``.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Log in",
        request=CustomTokenObtainPairSerializer,
        responses={
            200: OpenApiResponse(description="Token pair plus user."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Auth"],
    )
    def post(self, request: Request) -> Response:
        serializer = CustomTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data

        return Response(payload, status=status.HTTP_200_OK)


# ═══════════════════════════════════════════════════════════════════
#  Handler Directory
# ═══════════════════════════════════════════════════════════════════


class HandlerViewSet(viewsets.ViewSet):
    """
    GET /api/accounts/handlers/?department=Health

    Administrative listing of the handler pool with live workload.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List handlers",
        parameters=[
            OpenApiParameter(
                name="department",
                type=str,
                required=False,
                description="Restrict to one department (short form).",
            ),
        ],
        responses={200: HandlerSerializer(many=True)},
        tags=["Handlers"],
    )
    def list(self, request: Request) -> Response:
        handlers = HandlerDirectoryService.list_handlers(
            requesting_user=request.user,
            department=request.query_params.get("department"),
        )
        return Response(HandlerSerializer(handlers, many=True).data, status=status.HTTP_200_OK)
