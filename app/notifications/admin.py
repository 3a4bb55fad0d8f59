"""
Django admin configuration for notification models.

Registers:
- Notification
- NotificationLogEntry
"""

from django.contrib import admin

from notifications.models import Notification, NotificationLogEntry


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Notification.

    Status is read-only here; it only changes through FSM transitions.
    """

    list_display = [
        "id",
        "business",
        "type",
        "channel",
        "priority",
        "status",
        "created_at",
    ]
    list_filter = ["status", "channel", "priority", "type"]
    search_fields = ["title", "message", "business__name"]
    raw_id_fields = ["business"]
    ordering = ["-created_at"]
    readonly_fields = [
        "id",
        "status",
        "sent_at",
        "read_at",
        "error",
        "created_at",
        "updated_at",
    ]
    fieldsets = (
        (
            None,
            {
                "fields": ("id", "business", "type", "channel", "priority", "status"),
            },
        ),
        (
            "Content",
            {
                "fields": ("title", "message", "metadata"),
            },
        ),
        (
            "Delivery",
            {
                "fields": ("scheduled_for", "sent_at", "read_at", "error"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )


@admin.register(NotificationLogEntry)
class NotificationLogEntryAdmin(admin.ModelAdmin):
    """Read-mostly view of fallback event log entries."""

    list_display = ["id", "business_id", "event_type", "title", "created_at"]
    list_filter = ["event_type"]
    search_fields = ["title", "business_id"]
    ordering = ["-created_at"]
    readonly_fields = ["id", "created_at"]
