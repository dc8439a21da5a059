from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


STATUS_CHOICES = [
    ("submitted", "Submitted"),
    ("assigned", "Assigned"),
    ("in_progress", "In Progress"),
    ("escalated", "Escalated"),
    ("approved", "Approved"),
    ("rejected", "Rejected"),
    ("auto_approved", "Auto-Approved"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Application",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tracking_id", models.CharField(help_text="Human-readable reference, e.g. APP-2026-000042. Display only.", max_length=32, unique=True, verbose_name="Tracking ID")),
                ("application_type", models.CharField(blank=True, default="", max_length=255, verbose_name="Application Type")),
                ("description", models.TextField(blank=True, default="", verbose_name="Description")),
                ("department", models.CharField(blank=True, default="", max_length=255, verbose_name="Department")),
                ("sub_department", models.CharField(blank=True, default="", max_length=255, verbose_name="Sub-Department")),
                ("status", models.CharField(choices=STATUS_CHOICES, db_index=True, default="submitted", max_length=20, verbose_name="Status")),
                ("priority", models.CharField(choices=[("high", "High"), ("medium", "Medium"), ("low", "Low")], default="low", max_length=10, verbose_name="Priority")),
                ("escalation_level", models.PositiveIntegerField(default=0, verbose_name="Escalation Level")),
                ("is_solved", models.BooleanField(default=False, verbose_name="Marked Solved by Citizen")),
                ("submitted_at", models.DateTimeField(verbose_name="Submitted At")),
                ("last_updated_at", models.DateTimeField(verbose_name="Last Updated At")),
                ("assigned_at", models.DateTimeField(blank=True, null=True, verbose_name="Assigned At")),
                ("approved_at", models.DateTimeField(blank=True, null=True, verbose_name="Approved At")),
                ("sla_due_at", models.DateTimeField(verbose_name="SLA Due At")),
                ("auto_approval_deadline", models.DateTimeField(verbose_name="Auto-Approval Deadline")),
                ("stale_notified_at", models.DateTimeField(blank=True, null=True, verbose_name="Last Delay Reminder")),
                (
                    "citizen",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="applications",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Citizen",
                    ),
                ),
                (
                    "handler",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="handled_applications",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Current Handler",
                    ),
                ),
            ],
            options={
                "verbose_name": "Application",
                "verbose_name_plural": "Applications",
                "ordering": ["-submitted_at"],
                "permissions": [
                    ("can_submit_application", "Can submit a service application"),
                    ("can_be_assigned_application", "Can be assigned applications (handler)"),
                    ("can_process_application", "Can process applications assigned to them"),
                    ("can_assign_application", "Can (re)assign any application"),
                    ("can_run_lifecycle_jobs", "Can trigger escalation / auto-approval jobs"),
                    ("can_scope_all_applications", "Unrestricted application visibility"),
                    ("can_scope_assigned_applications", "See applications assigned to self"),
                    ("can_scope_own_applications", "See only own submitted applications"),
                ],
                "indexes": [
                    models.Index(fields=["status", "sla_due_at"], name="app_status_sla_idx"),
                    models.Index(fields=["status", "auto_approval_deadline"], name="app_status_auto_idx"),
                    models.Index(fields=["handler", "status"], name="app_handler_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ApplicationStatusLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(blank=True, choices=STATUS_CHOICES, default="", max_length=20, verbose_name="Previous Status")),
                ("to_status", models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name="New Status")),
                ("event", models.CharField(choices=[("submitted", "Submitted"), ("assigned", "Assigned"), ("status_changed", "Status Changed"), ("escalated", "Escalated"), ("flagged", "SLA Breach Flagged")], max_length=20, verbose_name="Event")),
                ("actor", models.CharField(max_length=150, verbose_name="Actor")),
                ("message", models.TextField(blank=True, default="", verbose_name="Comment")),
                ("timestamp", models.DateTimeField(verbose_name="Timestamp")),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_logs",
                        to="applications.application",
                        verbose_name="Application",
                    ),
                ),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="application_status_changes",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Changed By",
                    ),
                ),
            ],
            options={
                "verbose_name": "Application Status Log",
                "verbose_name_plural": "Application Status Logs",
                "ordering": ["timestamp", "id"],
            },
        ),
    ]
