from django.contrib import admin

from .models import Application, ApplicationStatusLog


class ApplicationStatusLogInline(admin.TabularInline):
    model = ApplicationStatusLog
    extra = 0
    can_delete = False
    readonly_fields = ("timestamp", "event", "from_status", "to_status", "actor", "message")
    fields = readonly_fields


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ("tracking_id", "department", "status", "priority",
                    "escalation_level", "handler", "sla_due_at")
    list_filter = ("status", "priority", "department")
    search_fields = ("tracking_id", "citizen__username", "handler__username")
    # Lifecycle fields change only through the workflow service
    readonly_fields = ("tracking_id", "status", "handler", "escalation_level",
                       "submitted_at", "last_updated_at", "assigned_at",
                       "approved_at", "sla_due_at", "auto_approval_deadline",
                       "stale_notified_at")
    inlines = [ApplicationStatusLogInline]
