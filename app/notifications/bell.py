"""
Notification bell: polling-based feed state with optimistic updates.

The bell is what a dashboard shows when the live socket is unavailable: the
latest few notifications, the unread badge, and mark-read actions that
update local state immediately and reconcile with the server afterwards.

Components:
    BellSource: Where the bell reads and writes (protocol)
    ServiceBellSource: BellSource backed by the feed and read services
    NotificationBell: Local state, badge, optimistic actions, polling loop

Usage:
    bell = NotificationBell(business_id, ServiceBellSource())
    bell.refresh()
    bell.badge_label      # "3", "99+", or None
    bell.mark_read(notification_id)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from asgiref.sync import sync_to_async

from core.exceptions import BaseApplicationError
from notifications.models import NotificationStatus, UNREAD_STATUSES
from notifications.serializers import NotificationSerializer
from notifications.services import NotificationFeedService, NotificationReadService

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import Any

    from notifications.services import FeedPage

logger = logging.getLogger(__name__)

BADGE_CAP = 99
DEFAULT_POLL_INTERVAL = 30.0


@runtime_checkable
class BellSource(Protocol):
    """Feed reads and read-state writes used by the bell."""

    def fetch(self, business_id: str, limit: int) -> FeedPage: ...

    def mark_read(self, business_id: str, ids: Sequence[str]) -> int: ...

    def mark_all_read(self, business_id: str) -> int: ...


class ServiceBellSource:
    """BellSource backed by NotificationFeedService and NotificationReadService."""

    def __init__(
        self,
        feed: NotificationFeedService | None = None,
        reads: NotificationReadService | None = None,
    ):
        self.feed = feed or NotificationFeedService()
        self.reads = reads or NotificationReadService()

    def fetch(self, business_id: str, limit: int) -> FeedPage:
        return self._unwrap(self.feed.page(business_id, limit=limit))

    def mark_read(self, business_id: str, ids: Sequence[str]) -> int:
        return self._unwrap(self.reads.mark_read(business_id, list(ids)))

    def mark_all_read(self, business_id: str) -> int:
        return self._unwrap(self.reads.mark_all_read(business_id))

    @staticmethod
    def _unwrap(result):
        if not result.success:
            raise BaseApplicationError(result.error, error_code=result.error_code)
        return result.data


class NotificationBell:
    """
    Bell state for one business.

    Attributes:
        notifications: Latest rows (serialized), newest first
        total: Total notifications for the business
        unread_count: Pending + sent notifications
    """

    def __init__(self, business_id, source: BellSource, limit: int = 10):
        self.business_id = str(business_id)
        self.source = source
        self.limit = limit

        self.notifications: list[dict[str, Any]] = []
        self.total = 0
        self.unread_count = 0

    @property
    def badge_label(self) -> str | None:
        if self.unread_count <= 0:
            return None
        if self.unread_count > BADGE_CAP:
            return f"{BADGE_CAP}+"
        return str(self.unread_count)

    def refresh(self) -> bool:
        """
        Reload from the source.

        On failure the previous state is kept.

        Returns:
            True if the state was reloaded
        """
        try:
            page = self.source.fetch(self.business_id, self.limit)
        except Exception:
            logger.warning(
                f"Bell refresh failed for business {self.business_id}; keeping last state",
                exc_info=True,
            )
            return False

        self.notifications = [
            dict(row) for row in NotificationSerializer(page.notifications, many=True).data
        ]
        self.total = page.total
        self.unread_count = page.unread_count
        return True

    def mark_read(self, notification_id) -> bool:
        """
        Optimistically mark one notification read.

        The local row flips to read and the badge drops by one if the row was
        unread; the source is then called, and a failure triggers a refresh.
        """
        notification_id = str(notification_id)
        for row in self.notifications:
            if str(row["id"]) != notification_id:
                continue
            if row["status"] in UNREAD_STATUSES:
                self.unread_count = max(0, self.unread_count - 1)
            row["status"] = NotificationStatus.READ.value
            break

        try:
            self.source.mark_read(self.business_id, [notification_id])
        except Exception:
            logger.warning(
                f"Bell mark_read failed for notification {notification_id}; refreshing",
                exc_info=True,
            )
            self.refresh()
            return False
        return True

    def mark_all_read(self) -> bool:
        """Optimistically mark every pending or sent row read."""
        for row in self.notifications:
            if row["status"] in UNREAD_STATUSES:
                row["status"] = NotificationStatus.READ.value
        self.unread_count = 0

        try:
            self.source.mark_all_read(self.business_id)
        except Exception:
            logger.warning(
                f"Bell mark_all_read failed for business {self.business_id}; refreshing",
                exc_info=True,
            )
            self.refresh()
            return False
        return True

    async def poll(self, stop_event: asyncio.Event, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        """Refresh every ``interval`` seconds until ``stop_event`` is set."""
        while not stop_event.is_set():
            await sync_to_async(self.refresh)()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
