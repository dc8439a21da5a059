"""
URL configuration for the casework project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.0/topics/http/urls/
"""
from django.contrib import admin
from django.urls import include, path

from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),

    # ── App routes ───────────────────────────────────────────────────
    path('api/accounts/', include('accounts.urls')),
    path('api/core/', include('core.urls')),
    path('api/', include('applications.urls')),

    # ── Swagger / OpenAPI schema ─────────────────────────────────────
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
