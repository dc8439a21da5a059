from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contenttypes", "0002_remove_content_type_name"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="FinalizationArtifact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("application_id", models.UUIDField(unique=True, verbose_name="Application")),
                ("document_hash", models.CharField(max_length=64, verbose_name="Document Hash (SHA-256)")),
                ("block_number", models.PositiveIntegerField(unique=True, verbose_name="Block Number")),
                ("stamped_at", models.DateTimeField(auto_now_add=True, verbose_name="Stamped At")),
            ],
            options={
                "verbose_name": "Finalization Artifact",
                "verbose_name_plural": "Finalization Artifacts",
                "ordering": ["block_number"],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("event_type", models.CharField(blank=True, db_index=True, default="", max_length=50, verbose_name="Event Type")),
                ("title", models.CharField(max_length=255, verbose_name="Title")),
                ("message", models.TextField(verbose_name="Message")),
                ("is_read", models.BooleanField(default=False, verbose_name="Read")),
                ("application_id", models.UUIDField(blank=True, null=True, verbose_name="Related Application")),
                ("object_id", models.CharField(blank=True, max_length=64, null=True, verbose_name="Related Object ID")),
                (
                    "content_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        to="contenttypes.contenttype",
                        verbose_name="Related Content Type",
                    ),
                ),
                (
                    "recipient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Recipient",
                    ),
                ),
            ],
            options={
                "verbose_name": "Notification",
                "verbose_name_plural": "Notifications",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["recipient", "is_read"], name="notif_recipient_read_idx")],
            },
        ),
    ]
