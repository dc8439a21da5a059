"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and included in the
project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Authentication
    POST   /auth/login/                 → LoginView
    POST   /auth/token/refresh/         → TokenRefreshView (SimpleJWT)

Handler Directory (administrators)
    GET    /handlers/                   → HandlerViewSet.list
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import HandlerViewSet, LoginView

app_name = "accounts"

router = DefaultRouter()
router.register(r"handlers", HandlerViewSet, basename="handler")

urlpatterns = [
    # ── Authentication ───────────────────────────────────────────────
    path("auth/login/", LoginView.as_view(), name="login"),
    path(
        "auth/token/refresh/",
        TokenRefreshView.as_view(),
        name="token-refresh",
    ),

    # ── Router-registered viewsets (handlers/) ───────────────────────
    path("", include(router.urls)),
]
