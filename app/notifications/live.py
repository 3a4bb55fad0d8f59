"""
Live notification session: turns newly inserted rows into toasts.

One LiveNotificationSession exists per websocket connection. It filters the
broadcast stream to the connection's business and live channels, suppresses
duplicates, decides how long each toast stays up, and acknowledges
dismissed notifications through an injected callback.

Flow:
    receive(row)                 -> Toast | None (after the settle delay)
    schedule_receive(row, show)  -> background receive; calls show(toast)
    schedule_auto_dismiss(toast) -> sleeps duration_ms, then auto_dismiss
    dismiss(id)                  -> manual dismissal, acknowledges once
    undo(id)                     -> re-shows a dismissed toast (the stored
                                    status stays read)

Bookkeeping sets are fixed-capacity and clear themselves on overflow, so a
long-lived connection never grows without bound. After a clear, an old id
could surface again; that is accepted.

Usage:
    session = LiveNotificationSession(business_id, acknowledge=mark_read)
    toast = await session.receive(row)
    if toast:
        await send(toast.to_dict())
        session.schedule_auto_dismiss(toast, on_expire=send_expired)
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING

from notifications.models import NotificationChannel, NotificationPriority, NotificationType

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping
    from typing import Any

logger = logging.getLogger(__name__)

AUTO_DISMISS_MS = {
    NotificationPriority.URGENT: 15000,
    NotificationPriority.HIGH: 10000,
    NotificationPriority.MEDIUM: 6000,
    NotificationPriority.LOW: 4000,
}

SETTLE_DELAY_SECONDS = 0.1
RECENT_RELEASE_SECONDS = 1.0
DEFAULT_SET_CAPACITY = 100

LIVE_CHANNELS = frozenset({NotificationChannel.IN_APP, NotificationChannel.PUSH})

TYPE_ICONS = {
    NotificationType.NEW_LEAD: "user-plus",
    NotificationType.PAYMENT_RECEIVED: "dollar-sign",
    NotificationType.INVOICE_OVERDUE: "alert-triangle",
    NotificationType.MISSED_CALL: "phone-missed",
    NotificationType.DAILY_BRIEFING: "sunrise",
    NotificationType.SYSTEM_ALERT: "bell",
    NotificationType.CO_FOUNDER_INSIGHT: "lightbulb",
}
DEFAULT_ICON = "bell"

PRIORITY_BADGES = {
    NotificationPriority.URGENT: "Urgent",
    NotificationPriority.HIGH: "High Priority",
}


class BoundedIdSet:
    """
    Set of notification ids that empties itself when full.

    Adding to a set already at capacity clears it first, so the set holds
    at most ``capacity`` ids.
    """

    def __init__(self, capacity: int = DEFAULT_SET_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._ids: set[str] = set()

    def add(self, notification_id: str) -> None:
        if notification_id in self._ids:
            return
        if len(self._ids) >= self.capacity:
            self._ids.clear()
        self._ids.add(notification_id)

    def discard(self, notification_id: str) -> None:
        self._ids.discard(notification_id)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass(frozen=True)
class SoundCue:
    """Short tone played when a toast appears."""

    frequency_hz: int
    duration_ms: int = 300
    waveform: str = "sine"


PRIORITY_SOUNDS = {
    NotificationPriority.URGENT: SoundCue(frequency_hz=880),
    NotificationPriority.HIGH: SoundCue(frequency_hz=660),
}


@dataclass(frozen=True)
class Toast:
    """Presentation of one live notification."""

    id: str
    type: str
    title: str
    message: str
    priority: str
    duration_ms: int
    badge: str | None = None
    sound: SoundCue | None = None
    icon: str = DEFAULT_ICON

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Toast:
        """Build a toast from a serialized notification row."""
        priority = row.get("priority") or NotificationPriority.MEDIUM
        return cls(
            id=str(row["id"]),
            type=row.get("type", ""),
            title=row.get("title", ""),
            message=row.get("message", ""),
            priority=priority,
            duration_ms=AUTO_DISMISS_MS.get(priority, AUTO_DISMISS_MS[NotificationPriority.MEDIUM]),
            badge=PRIORITY_BADGES.get(priority),
            sound=PRIORITY_SOUNDS.get(priority),
            icon=TYPE_ICONS.get(row.get("type"), DEFAULT_ICON),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["priority"] = str(self.priority)
        return data


class LiveNotificationSession:
    """
    Per-connection toast state for one business.

    Args:
        business_id: Business whose notifications this session shows
        acknowledge: Async callback marking a notification read; called at
            most once per id per session
        settle_delay: Seconds to wait after a broadcast before surfacing it
        dismissed_capacity: Capacity of the recent, dismissed, and
            acknowledged sets
        acknowledge_on_display: Acknowledge as soon as a toast is shown
            instead of when it is dismissed
        release_delay: Seconds after auto-dismiss before the id may surface
            again
    """

    def __init__(
        self,
        business_id,
        acknowledge: Callable[[str], Awaitable[Any]],
        settle_delay: float = SETTLE_DELAY_SECONDS,
        dismissed_capacity: int = DEFAULT_SET_CAPACITY,
        acknowledge_on_display: bool = False,
        release_delay: float = RECENT_RELEASE_SECONDS,
    ):
        self.business_id = str(business_id)
        self.acknowledge = acknowledge
        self.settle_delay = settle_delay
        self.acknowledge_on_display = acknowledge_on_display
        self.release_delay = release_delay

        self._recent = BoundedIdSet(dismissed_capacity)
        self._dismissed = BoundedIdSet(dismissed_capacity)
        self._acknowledged = BoundedIdSet(dismissed_capacity)
        self._toasts: OrderedDict[str, Toast] = OrderedDict()
        self._toast_capacity = dismissed_capacity
        self._tasks: set[asyncio.Task] = set()

    # ==========================================================================
    # Incoming rows
    # ==========================================================================

    def is_live(self, row: Mapping[str, Any]) -> bool:
        """True if the row belongs to this business and a live channel."""
        return (
            str(row.get("business_id")) == self.business_id
            and row.get("channel") in LIVE_CHANNELS
        )

    async def receive(self, row: Mapping[str, Any]) -> Toast | None:
        """
        Handle a newly inserted row.

        Returns:
            The toast to show, or None if the row is filtered or a duplicate
        """
        if not self.is_live(row):
            return None
        if self.settle_delay:
            await asyncio.sleep(self.settle_delay)
        return await self.surface(row)

    def schedule_receive(
        self,
        row: Mapping[str, Any],
        on_toast: Callable[[Toast], Awaitable[Any]],
    ) -> asyncio.Task:
        """
        Run ``receive`` in the background and hand any toast to ``on_toast``.

        The caller returns immediately, so one row's settle delay never holds
        up the next. The task is cancelled by ``close``.
        """
        return self._track(self._receive_and_show(row, on_toast))

    async def _receive_and_show(self, row, on_toast) -> None:
        toast = await self.receive(row)
        if toast is not None:
            await on_toast(toast)

    async def surface(self, row: Mapping[str, Any]) -> Toast | None:
        notification_id = str(row["id"])
        if notification_id in self._recent or notification_id in self._dismissed:
            logger.debug(f"Suppressing duplicate toast for notification {notification_id}")
            return None

        self._recent.add(notification_id)
        toast = Toast.from_row(row)
        self._remember(toast)

        if self.acknowledge_on_display:
            await self._acknowledge(notification_id)
        return toast

    def _remember(self, toast: Toast) -> None:
        self._toasts[toast.id] = toast
        while len(self._toasts) > self._toast_capacity:
            self._toasts.popitem(last=False)

    # ==========================================================================
    # Dismissal
    # ==========================================================================

    async def dismiss(self, notification_id: str) -> None:
        """Manually dismiss a toast."""
        self._dismissed.add(str(notification_id))
        await self._acknowledge(str(notification_id))

    async def auto_dismiss(self, notification_id: str) -> None:
        """Dismiss a toast whose display time ran out."""
        logger.debug(f"Auto-dismissing notification {notification_id}")
        await self.dismiss(notification_id)

    def undo(self, notification_id: str) -> Toast | None:
        """
        Re-show a dismissed toast.

        Only the local dismissal is undone; the notification stays read.
        """
        notification_id = str(notification_id)
        self._dismissed.discard(notification_id)
        return self._toasts.get(notification_id)

    def is_dismissed(self, notification_id: str) -> bool:
        return str(notification_id) in self._dismissed

    async def _acknowledge(self, notification_id: str) -> None:
        if notification_id in self._acknowledged:
            return
        self._acknowledged.add(notification_id)
        try:
            await self.acknowledge(notification_id)
        except Exception:
            # Allow a later dismissal to retry
            self._acknowledged.discard(notification_id)
            logger.warning(
                f"Failed to acknowledge notification {notification_id}",
                exc_info=True,
            )

    # ==========================================================================
    # Background tasks
    # ==========================================================================

    def schedule_auto_dismiss(
        self,
        toast: Toast,
        on_expire: Callable[[str], Awaitable[Any]] | None = None,
    ) -> asyncio.Task:
        """Start the auto-dismiss timer for a shown toast."""
        return self._track(self._expire(toast, on_expire))

    def _track(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _expire(self, toast: Toast, on_expire) -> None:
        await asyncio.sleep(toast.duration_ms / 1000)
        await self.auto_dismiss(toast.id)
        if on_expire is not None:
            await on_expire(toast.id)
        await asyncio.sleep(self.release_delay)
        self._recent.discard(toast.id)

    async def close(self) -> None:
        """Cancel pending receives and timers."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
