"""
WebSocket consumer for live notification toasts.

Consumers:
    NotificationConsumer: Streams toasts for one business

Channel Groups:
    Each business has a group named "notifications_{business_id}".
    handlers.broadcast_created sends ``notification.created`` events to it
    after each insert commits.

Message Types (from client):
    - dismiss: {"type": "dismiss", "id": "<notification id>"}
    - undo:    {"type": "undo", "id": "<notification id>"}

Message Types (to client):
    - toast: {"type": "toast", "toast": {...}}
    - toast.expired: {"type": "toast.expired", "id": "..."}
    - toast.dismissed: {"type": "toast.dismissed", "id": "..."}
    - error: {"type": "error", "message": "..."}

Close codes:
    4004: Business does not exist
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from businesses.models import Business
from notifications.handlers import business_group_name
from notifications.live import SETTLE_DELAY_SECONDS, LiveNotificationSession
from notifications.services import NotificationReadService

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for one business's live notifications.

    Attributes:
        business_id: Business from the URL route
        group_name: Channel layer group for the business
        session: LiveNotificationSession holding this connection's toast state
    """

    settle_delay = SETTLE_DELAY_SECONDS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.business_id: str | None = None
        self.group_name: str | None = None
        self.session: LiveNotificationSession | None = None

    async def connect(self):
        self.business_id = str(self.scope["url_route"]["kwargs"]["business_id"])

        if not await self._business_exists():
            logger.warning(f"Rejected live connection for unknown business {self.business_id}")
            await self.close(code=4004)
            return

        self.group_name = business_group_name(self.business_id)
        self.session = LiveNotificationSession(
            self.business_id,
            acknowledge=self._acknowledge,
            settle_delay=self.settle_delay,
        )

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"Live notifications connected for business {self.business_id}")

    async def disconnect(self, close_code):
        if self.session is not None:
            await self.session.close()
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info(f"Live notifications disconnected for business {self.business_id}")

    async def receive_json(self, content, **kwargs):
        """
        Handle client messages.

        Expected message format:
            {"type": "dismiss", "id": "<uuid>"}
            {"type": "undo", "id": "<uuid>"}
        """
        message_type = content.get("type")
        notification_id = content.get("id")

        if message_type not in ("dismiss", "undo"):
            await self._send_error(f"Unknown message type: {message_type}")
            return
        if not notification_id:
            await self._send_error("Missing notification id")
            return

        if message_type == "dismiss":
            await self.session.dismiss(notification_id)
            await self.send_json({"type": "toast.dismissed", "id": notification_id})
            return

        toast = self.session.undo(notification_id)
        if toast is None:
            await self._send_error(f"Nothing to undo for {notification_id}")
            return
        await self._show(toast)

    # ==========================================================================
    # Channel layer events
    # ==========================================================================

    async def notification_created(self, event):
        """Handle ``notification.created`` from the business group."""
        self.session.schedule_receive(event["notification"], self._show)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _show(self, toast):
        await self.send_json({"type": "toast", "toast": toast.to_dict()})
        self.session.schedule_auto_dismiss(toast, on_expire=self._send_expired)

    async def _send_expired(self, notification_id: str):
        await self.send_json({"type": "toast.expired", "id": notification_id})

    async def _send_error(self, message: str):
        await self.send_json({"type": "error", "message": message})

    async def _acknowledge(self, notification_id: str):
        result = await self._mark_read(notification_id)
        if not result.success:
            logger.warning(
                f"Could not mark notification {notification_id} read: {result.error}"
            )

    @database_sync_to_async
    def _business_exists(self) -> bool:
        return Business.objects.filter(id=self.business_id).exists()

    @database_sync_to_async
    def _mark_read(self, notification_id: str):
        return NotificationReadService().mark_read(self.business_id, [notification_id])
