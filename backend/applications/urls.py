"""
Applications app URL configuration.

Included from ``casework/urls.py`` as ``path('api/', include('applications.urls'))``.

Route Hierarchy
---------------
  ── Application CRUD ────────────────────────────────────────────
  GET    /api/applications/                              → list applications
  POST   /api/applications/                              → submit application
  GET    /api/applications/{id}/                         → retrieve application

  ── Workflow @actions ───────────────────────────────────────────
  POST   /api/applications/{id}/transition/              → handler status change
  POST   /api/applications/{id}/assign/                  → administrative (re)assignment
  POST   /api/applications/{id}/accept/                  → handler takes unassigned application
  POST   /api/applications/{id}/mark-solved/             → citizen satisfaction flag
  GET    /api/applications/{id}/artifact/                → finalization artifact
  POST   /api/applications/run-lifecycle-jobs/           → one scheduler tick (admin)

  ── Nested: History ─────────────────────────────────────────────
  GET    /api/applications/{application_pk}/history/     → audit trail

  ── Public ──────────────────────────────────────────────────────
  GET    /api/applications/track/{tracking_id}/          → status by tracking id
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_nested.routers import NestedDefaultRouter

from .views import ApplicationHistoryViewSet, ApplicationTrackingView, ApplicationViewSet

app_name = "applications"

# ── Primary Router ──────────────────────────────────────────────────
router = DefaultRouter()
router.register(
    prefix=r"applications",
    viewset=ApplicationViewSet,
    basename="application",
)

# ── Nested Routers (under /applications/{application_pk}/) ──────────
applications_router = NestedDefaultRouter(
    parent_router=router,
    parent_prefix=r"applications",
    lookup="application",
)
applications_router.register(
    prefix=r"history",
    viewset=ApplicationHistoryViewSet,
    basename="application-history",
)

urlpatterns = [
    # Registered ahead of the router so "track" is never read as an id
    path(
        "applications/track/<str:tracking_id>/",
        ApplicationTrackingView.as_view(),
        name="application-track",
    ),
    path("", include(router.urls)),
    path("", include(applications_router.urls)),
]
