"""
Notification store: persistence primitives for the notification core.

Services never touch the ORM directly; they receive a NotificationStore at
construction. DjangoNotificationStore is the production implementation.

Guarantees:
    - Every read and bulk write is filtered by business_id
    - Status changes go through the model's FSM transitions (single rows) or
      through querysets filtered on the same source states (bulk), so a
      status never regresses
    - A row is sent at most once: callers must win ``claim`` before sending
    - Database failures surface as PersistenceError; callers decide whether
      that is fatal

Fallback:
    If the notifications table cannot be written (schema not provisioned),
    ``insert`` writes a NotificationLogEntry carrying the full payload and
    returns a StoredNotification with ``is_fallback=True``. Later status
    updates for that record land in the log entry's payload.

Usage:
    from notifications.store import DjangoNotificationStore, NotificationDraft

    store = DjangoNotificationStore()
    stored = store.insert(NotificationDraft(...))
    store.record_sent(stored, sent_at=timezone.now())
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from django.db import DatabaseError, OperationalError, ProgrammingError, transaction
from django_fsm import TransitionNotAllowed

from notifications.exceptions import PersistenceError
from notifications.models import (
    READABLE_STATUSES,
    Notification,
    NotificationLogEntry,
    NotificationStatus,
)

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence
    from datetime import datetime
    from typing import Any
    from uuid import UUID

logger = logging.getLogger(__name__)


# =============================================================================
# Value Types
# =============================================================================


@dataclass(frozen=True)
class NotificationDraft:
    """A notification row about to be written (status is always pending)."""

    business_id: str
    type: str
    channel: str
    priority: str
    title: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)
    scheduled_for: datetime | None = None


@dataclass(frozen=True)
class StoredNotification:
    """
    Store-agnostic view of a persisted notification.

    ``is_fallback`` is True when the record lives in the event log rather
    than the notifications table.
    """

    id: UUID
    business_id: str
    type: str
    channel: str
    status: str
    title: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)
    scheduled_for: datetime | None = None
    is_fallback: bool = False

    @classmethod
    def from_model(cls, notification: Notification) -> StoredNotification:
        return cls(
            id=notification.id,
            business_id=str(notification.business_id),
            type=notification.type,
            channel=notification.channel,
            status=notification.status,
            title=notification.title,
            message=notification.message,
            metadata=dict(notification.metadata or {}),
            scheduled_for=notification.scheduled_for,
        )


class NotificationStore(Protocol):
    """Persistence contract used by the dispatcher and read services."""

    def insert(self, draft: NotificationDraft) -> StoredNotification: ...

    def record_sent(
        self,
        stored: StoredNotification,
        *,
        sent_at: datetime,
        delivery_ref: str | None = None,
    ) -> None: ...

    def claim(self, stored: StoredNotification, now: datetime, stale_before: datetime) -> bool: ...

    def record_failed(self, stored: StoredNotification, *, error: str) -> None: ...

    def get(self, notification_id: UUID | str) -> StoredNotification | None: ...

    def due_ids(self, now: datetime, limit: int) -> list[UUID]: ...

    def page(
        self,
        business_id: str,
        *,
        limit: int,
        offset: int,
        unread_only: bool = False,
        type: str | None = None,
    ) -> tuple[list[Notification], int]: ...

    def unread_count(self, business_id: str) -> int: ...

    def mark_read(self, business_id: str, ids: Sequence[str], now: datetime) -> int: ...

    def mark_all_read(self, business_id: str, now: datetime) -> int: ...

    def dismiss(self, business_id: str, ids: Sequence[str], now: datetime) -> int: ...

    def purge_read(self, business_id: str, cutoff: datetime) -> int: ...


# =============================================================================
# Django Implementation
# =============================================================================


@contextmanager
def translate_db_errors(operation: str) -> Generator[None, None, None]:
    """Re-raise database failures as PersistenceError, logging the detail."""
    try:
        yield
    except DatabaseError as e:
        logger.error(f"Notification store {operation} failed: {e}")
        raise PersistenceError(
            f"Notification store unavailable during {operation}",
            details={"operation": operation},
        ) from e


class DjangoNotificationStore:
    """NotificationStore backed by the Notification and NotificationLogEntry tables."""

    # ==========================================================================
    # Writes from the dispatcher
    # ==========================================================================

    def insert(self, draft: NotificationDraft) -> StoredNotification:
        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    business_id=draft.business_id,
                    type=draft.type,
                    channel=draft.channel,
                    priority=draft.priority,
                    title=draft.title,
                    message=draft.message,
                    metadata=dict(draft.metadata),
                    scheduled_for=draft.scheduled_for,
                )
        except (ProgrammingError, OperationalError) as e:
            logger.warning(
                f"notifications table unavailable ({e}); writing {draft.channel} "
                f"notification for business {draft.business_id} to event log"
            )
            return self._insert_fallback(draft)
        except DatabaseError as e:
            logger.error(
                f"Failed to insert {draft.channel} notification for business "
                f"{draft.business_id}: {e}"
            )
            raise PersistenceError(
                "Failed to queue notification",
                details={"channel": draft.channel},
            ) from e

        return StoredNotification.from_model(notification)

    def _insert_fallback(self, draft: NotificationDraft) -> StoredNotification:
        payload = {
            "type": draft.type,
            "channel": draft.channel,
            "priority": draft.priority,
            "message": draft.message,
            "metadata": dict(draft.metadata),
            "scheduled_for": draft.scheduled_for.isoformat() if draft.scheduled_for else None,
            "status": NotificationStatus.PENDING.value,
        }
        try:
            with transaction.atomic():
                entry = NotificationLogEntry.objects.create(
                    business_id=draft.business_id,
                    event_type=draft.type,
                    title=draft.title[:255],
                    payload=payload,
                )
        except DatabaseError as e:
            logger.error(
                f"Event log fallback failed for business {draft.business_id}: {e}"
            )
            raise PersistenceError(
                "Failed to queue notification",
                details={"channel": draft.channel, "fallback": True},
            ) from e

        logger.info(f"Notification for business {draft.business_id} logged as {entry.id}")
        return StoredNotification(
            id=entry.id,
            business_id=draft.business_id,
            type=draft.type,
            channel=draft.channel,
            status=NotificationStatus.PENDING,
            title=draft.title,
            message=draft.message,
            metadata=dict(draft.metadata),
            scheduled_for=draft.scheduled_for,
            is_fallback=True,
        )

    def claim(self, stored: StoredNotification, now: datetime, stale_before: datetime) -> bool:
        """
        Take the row for delivery.

        A conditional update on a pending, unclaimed row (or one whose claim
        predates ``stale_before``). Exactly one caller gets True; everyone
        else must not send. Event-log records have no concurrent re-drive
        and are always claimable.
        """
        if stored.is_fallback:
            return True

        with translate_db_errors("claim"):
            claimed = (
                Notification.objects.filter(id=stored.id)
                .claimable(stale_before)
                .update(claimed_at=now, updated_at=now)
            )
        if not claimed:
            logger.info(f"Notification {stored.id} is claimed by another delivery")
        return claimed == 1

    def record_sent(
        self,
        stored: StoredNotification,
        *,
        sent_at: datetime,
        delivery_ref: str | None = None,
    ) -> None:
        if stored.is_fallback:
            self._update_fallback(
                stored,
                status=NotificationStatus.SENT.value,
                sent_at=sent_at.isoformat(),
                delivery_ref=delivery_ref,
            )
            return

        with translate_db_errors("record_sent"), transaction.atomic():
            notification = self._lock(stored)
            if notification is None:
                return
            try:
                notification.mark_sent(sent_at=sent_at, delivery_ref=delivery_ref)
            except TransitionNotAllowed:
                logger.info(
                    f"Notification {stored.id} already {notification.status}; "
                    "not recording send"
                )
                return
            notification.save(update_fields=["status", "sent_at", "metadata", "updated_at"])

    def record_failed(self, stored: StoredNotification, *, error: str) -> None:
        if stored.is_fallback:
            self._update_fallback(stored, status=NotificationStatus.FAILED.value, error=error)
            return

        with translate_db_errors("record_failed"), transaction.atomic():
            notification = self._lock(stored)
            if notification is None:
                return
            try:
                notification.mark_failed(error=error)
            except TransitionNotAllowed:
                logger.info(
                    f"Notification {stored.id} already {notification.status}; "
                    "not recording failure"
                )
                return
            notification.save(update_fields=["status", "error", "updated_at"])

    def _lock(self, stored: StoredNotification) -> Notification | None:
        notification = (
            Notification.objects.select_for_update().filter(id=stored.id).first()
        )
        if notification is None:
            logger.warning(f"Notification {stored.id} vanished before status update")
        return notification

    def _update_fallback(self, stored: StoredNotification, **changes: Any) -> None:
        with translate_db_errors("fallback update"), transaction.atomic():
            entry = (
                NotificationLogEntry.objects.select_for_update()
                .filter(id=stored.id)
                .first()
            )
            if entry is None:
                return
            payload = dict(entry.payload or {})
            payload.update({k: v for k, v in changes.items() if v is not None})
            entry.payload = payload
            entry.save(update_fields=["payload"])

    # ==========================================================================
    # Re-delivery
    # ==========================================================================

    def get(self, notification_id: UUID | str) -> StoredNotification | None:
        with translate_db_errors("get"):
            notification = Notification.objects.filter(id=notification_id).first()
        return StoredNotification.from_model(notification) if notification else None

    def due_ids(self, now: datetime, limit: int) -> list[UUID]:
        with translate_db_errors("due_ids"):
            return list(
                Notification.objects.due(now)
                .order_by("scheduled_for")
                .values_list("id", flat=True)[:limit]
            )

    # ==========================================================================
    # Reads
    # ==========================================================================

    def page(
        self,
        business_id: str,
        *,
        limit: int,
        offset: int,
        unread_only: bool = False,
        type: str | None = None,
    ) -> tuple[list[Notification], int]:
        queryset = Notification.objects.for_business(business_id)
        if unread_only:
            queryset = queryset.unread()
        if type:
            queryset = queryset.filter(type=type)

        with translate_db_errors("page"):
            total = queryset.count()
            rows = list(queryset.order_by("-created_at")[offset : offset + limit])
        return rows, total

    def unread_count(self, business_id: str) -> int:
        with translate_db_errors("unread_count"):
            return Notification.objects.for_business(business_id).unread().count()

    # ==========================================================================
    # Bulk transitions
    # ==========================================================================

    def mark_read(self, business_id: str, ids: Sequence[str], now: datetime) -> int:
        with translate_db_errors("mark_read"):
            return (
                Notification.objects.for_business(business_id)
                .filter(id__in=list(ids))
                .readable()
                .update(status=NotificationStatus.READ, read_at=now, updated_at=now)
            )

    def mark_all_read(self, business_id: str, now: datetime) -> int:
        with translate_db_errors("mark_all_read"):
            return (
                Notification.objects.for_business(business_id)
                .unread()
                .update(status=NotificationStatus.READ, read_at=now, updated_at=now)
            )

    def dismiss(self, business_id: str, ids: Sequence[str], now: datetime) -> int:
        changed = 0
        with translate_db_errors("dismiss"), transaction.atomic():
            rows = list(
                Notification.objects.for_business(business_id)
                .filter(id__in=list(ids))
                .select_for_update()
            )
            for notification in rows:
                update_fields = []
                if notification.status in READABLE_STATUSES:
                    notification.mark_read(read_at=now)
                    update_fields += ["status", "read_at"]
                if not notification.is_dismissed:
                    notification.merge_meta({"dismissed": True}, save=False)
                    update_fields.append("metadata")
                if update_fields:
                    notification.save(update_fields=[*update_fields, "updated_at"])
                    changed += 1
        return changed

    # ==========================================================================
    # Retention
    # ==========================================================================

    def purge_read(self, business_id: str, cutoff: datetime) -> int:
        with translate_db_errors("purge_read"):
            deleted, _ = (
                Notification.objects.for_business(business_id).purgeable(cutoff).delete()
            )
        return deleted
