from django.contrib import admin

from .models import FinalizationArtifact, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("recipient", "event_type", "title", "is_read", "created_at")
    search_fields = ("title", "recipient__username")
    list_filter = ("is_read", "event_type")


@admin.register(FinalizationArtifact)
class FinalizationArtifactAdmin(admin.ModelAdmin):
    list_display = ("block_number", "application_id", "document_hash", "stamped_at")
    search_fields = ("application_id", "document_hash")
    readonly_fields = ("application_id", "document_hash", "block_number", "stamped_at")
