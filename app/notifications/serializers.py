"""
Serializers for the notification API.

Request serializers validate shape and types only; semantic checks (known
business, known enum values) live in the services so HTTP and task callers
share them. Field names on the wire are camelCase.

Serializers:
    NotificationSerializer: Read-only notification row (also used for live
        broadcasts)
    SendNotificationRequestSerializer: POST send/ body
    NotificationListQuerySerializer: GET query parameters
    UpdateNotificationsRequestSerializer: PATCH body
    DispatchResponseSerializer / ChannelResultSerializer: POST send/ response
    NotificationListResponseSerializer: GET response
    CountResponseSerializer: PATCH / DELETE response

Usage:
    from notifications.serializers import NotificationSerializer

    data = NotificationSerializer(notification).data
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for Notification rows.

    ``business_id`` is exposed as a plain string so broadcast payloads are
    JSON-safe without the owning Business being loaded.
    """

    business_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "business_id",
            "type",
            "channel",
            "priority",
            "status",
            "title",
            "message",
            "metadata",
            "scheduled_for",
            "sent_at",
            "read_at",
            "error",
            "created_at",
        ]
        read_only_fields = fields


class ChannelListField(serializers.Field):
    """Accepts a single channel string or a list of channel strings."""

    default_error_messages = {
        "invalid": "Must be a channel name or a list of channel names.",
    }

    def to_internal_value(self, data):
        if isinstance(data, str):
            return data
        if isinstance(data, list) and all(isinstance(item, str) for item in data):
            return data
        self.fail("invalid")

    def to_representation(self, value):
        return value


class SendNotificationRequestSerializer(serializers.Serializer):
    """
    Body of POST send/.

    Required fields are checked by the dispatcher so the error message lists
    every missing field at once.
    """

    type = serializers.CharField(required=False, allow_blank=True)
    title = serializers.CharField(required=False, allow_blank=True)
    message = serializers.CharField(required=False, allow_blank=True)
    businessId = serializers.CharField(required=False, allow_blank=True)
    channel = ChannelListField(required=False, allow_null=True)
    priority = serializers.CharField(required=False, allow_blank=True)
    metadata = serializers.DictField(required=False, allow_null=True)
    scheduledFor = serializers.DateTimeField(required=False, allow_null=True)


class NotificationListQuerySerializer(serializers.Serializer):
    """Query string of GET. ``limit``/``offset`` are parsed leniently by the view."""

    businessId = serializers.UUIDField()
    unreadOnly = serializers.BooleanField(required=False, default=False)
    type = serializers.CharField(required=False, allow_blank=True)


class UpdateNotificationsRequestSerializer(serializers.Serializer):
    """Body of PATCH. The action name itself is checked by the view."""

    businessId = serializers.UUIDField()
    action = serializers.CharField(required=False, allow_blank=True)
    notificationId = serializers.CharField(required=False, allow_blank=True)
    notificationIds = serializers.ListField(
        child=serializers.CharField(),
        required=False,
    )


class ChannelResultSerializer(serializers.Serializer):
    channel = serializers.CharField()
    success = serializers.BooleanField()
    notification_id = serializers.UUIDField(required=False)
    error = serializers.CharField(required=False)


class DispatchResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    results = ChannelResultSerializer(many=True)
    message = serializers.CharField()


class PaginationSerializer(serializers.Serializer):
    limit = serializers.IntegerField(
        help_text="Page size actually applied, after flooring at 0 and capping at the maximum"
    )
    offset = serializers.IntegerField()
    hasMore = serializers.BooleanField(help_text="True if rows remain after this page")


class NotificationListResponseSerializer(serializers.Serializer):
    notifications = NotificationSerializer(many=True)
    total = serializers.IntegerField()
    unreadCount = serializers.IntegerField()
    pagination = PaginationSerializer()


class CountResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    count = serializers.IntegerField()
