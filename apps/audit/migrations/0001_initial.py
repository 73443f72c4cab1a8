# Generated manually for Audit App - activity log

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditEvent",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("actor_type", models.CharField(default="user", max_length=20)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("create", "Create"),
                            ("update", "Update"),
                            ("delete", "Delete"),
                            ("status_change", "Status Change"),
                            ("link_billing", "Link Billing Entity"),
                            ("unlink_billing", "Unlink Billing Entity"),
                            ("assign_customer", "Assign Customer"),
                            ("unassign_customer", "Unassign Customer"),
                            ("allocate", "Allocate Accounts"),
                            ("snapshot", "Record Snapshot"),
                            ("reconcile", "Reconcile Spend"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                ("entity_type", models.CharField(max_length=50)),
                ("entity_id", models.CharField(db_index=True, max_length=64)),
                ("old_values", models.JSONField(blank=True, default=dict)),
                ("new_values", models.JSONField(blank=True, default=dict)),
                ("description", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "audit_event",
                "ordering": ("-timestamp",),
                "indexes": [
                    models.Index(fields=["user", "-timestamp"], name="audit_event_user_id_5a1c2e_idx"),
                    models.Index(
                        fields=["entity_type", "entity_id", "-timestamp"], name="audit_event_entity__8b7d41_idx"
                    ),
                    models.Index(fields=["action", "-timestamp"], name="audit_event_action_3f9e07_idx"),
                ],
            },
        ),
    ]
