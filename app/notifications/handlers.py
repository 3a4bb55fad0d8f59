"""
Signal handlers for the notification feed.

Every newly inserted Notification is broadcast to its business's channel
group once the surrounding transaction commits. Live websocket sessions
subscribe to that group (see consumers.py).

Related files:
    - consumers.py: Receives ``notification.created`` events
    - apps.py: Handler registration

Group naming:
    notifications_<business_id>
"""

from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models.signals import post_save

from notifications.models import Notification

logger = logging.getLogger(__name__)

CREATED_EVENT = "notification.created"


def business_group_name(business_id) -> str:
    return f"notifications_{business_id}"


def broadcast_created(notification: Notification) -> None:
    """
    Push a created notification to the business's live group.

    Failures are logged; the row is already committed and the feed endpoint
    still returns it.
    """
    from notifications.serializers import NotificationSerializer

    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.debug("No channel layer configured; skipping live broadcast")
        return

    try:
        async_to_sync(channel_layer.group_send)(
            business_group_name(notification.business_id),
            {
                "type": CREATED_EVENT,
                "notification": dict(NotificationSerializer(notification).data),
            },
        )
    except Exception:
        logger.warning(
            f"Live broadcast failed for notification {notification.id}",
            exc_info=True,
        )


def on_notification_saved(sender, instance: Notification, created: bool, **kwargs) -> None:
    if not created:
        return
    transaction.on_commit(lambda: broadcast_created(instance))


def register_handlers() -> None:
    """Connect notification signal handlers. Called from NotificationsConfig.ready()."""
    post_save.connect(
        on_notification_saved,
        sender=Notification,
        dispatch_uid="notifications.broadcast_created",
    )
