import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("businesses", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationLogEntry",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "business_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Owning business (not a foreign key)",
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        help_text="Notification type or other event name",
                        max_length=64,
                    ),
                ),
                ("title", models.CharField(blank=True, default="", max_length=255)),
                (
                    "payload",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Semantic payload of the event",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "verbose_name": "notification log entry",
                "verbose_name_plural": "notification log entries",
                "db_table": "notification_log",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["business_id", "-created_at"],
                        name="notif_log_business_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Flexible key-value metadata storage",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("new_lead", "New Lead"),
                            ("payment_received", "Payment Received"),
                            ("invoice_overdue", "Invoice Overdue"),
                            ("missed_call", "Missed Call"),
                            ("daily_briefing", "Daily Briefing"),
                            ("system_alert", "System Alert"),
                            ("co_founder_insight", "Co-Founder Insight"),
                        ],
                        help_text="Business event this notification describes",
                        max_length=32,
                    ),
                ),
                (
                    "channel",
                    models.CharField(
                        choices=[
                            ("in_app", "In-App"),
                            ("sms", "SMS"),
                            ("push", "Push"),
                            ("email", "Email"),
                        ],
                        default="in_app",
                        help_text="Delivery channel for this row",
                        max_length=16,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("urgent", "Urgent"),
                        ],
                        default="medium",
                        help_text="Priority fixed at creation",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("sent", "Sent"),
                            ("failed", "Failed"),
                            ("read", "Read"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Delivery lifecycle state (managed by FSM)",
                        max_length=50,
                    ),
                ),
                ("title", models.CharField(help_text="Notification title", max_length=255)),
                ("message", models.TextField(help_text="Notification body")),
                (
                    "scheduled_for",
                    models.DateTimeField(
                        blank=True,
                        help_text="If in the future at creation, the send is deferred",
                        null=True,
                    ),
                ),
                (
                    "sent_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the channel accepted the notification",
                        null=True,
                    ),
                ),
                (
                    "read_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the notification was read or dismissed",
                        null=True,
                    ),
                ),
                (
                    "error",
                    models.TextField(
                        blank=True,
                        help_text="Failure reason reported by the channel",
                        null=True,
                    ),
                ),
                (
                    "business",
                    models.ForeignKey(
                        help_text="Business that owns this notification",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="businesses.business",
                    ),
                ),
            ],
            options={
                "verbose_name": "notification",
                "verbose_name_plural": "notifications",
                "db_table": "notifications",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["business", "status"],
                        name="notif_business_status_idx",
                    ),
                    models.Index(
                        fields=["business", "-created_at"],
                        name="notif_business_created_idx",
                    ),
                    models.Index(
                        fields=["status", "scheduled_for"],
                        name="notif_status_scheduled_idx",
                    ),
                ],
            },
        ),
    ]
