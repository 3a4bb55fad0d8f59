"""
Celery tasks for notification re-delivery and retention.

Dispatch itself is synchronous; these tasks are the external trigger for
deferred rows and for periodic cleanup.

Tasks:
    redeliver_notification: Deliver one pending notification that has come due
    redeliver_due_notifications: Fan out redeliver_notification for every due row
    purge_read_notifications: Delete a business's old read notifications

Design:
    - Tasks receive ids as strings and re-read state from the database
    - Only PersistenceError is retried; expected refusals (not found, not
      due, already delivered) are returned, not raised
    - Re-running a task on an already-delivered row is a no-op

Usage:
    from notifications.tasks import redeliver_due_notifications

    redeliver_due_notifications.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from notifications.exceptions import PersistenceError
from notifications.services import NotificationReadService, get_dispatcher

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(PersistenceError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def redeliver_notification(self, notification_id: str) -> bool:
    """
    Deliver a deferred notification.

    Args:
        notification_id: UUID string of the Notification

    Returns:
        True if the channel accepted it; False if it failed or was refused
    """
    result = get_dispatcher().redeliver(notification_id)

    if not result.success:
        logger.info(
            f"Skipping redelivery of notification {notification_id}: "
            f"{result.error_code} - {result.error}"
        )
        return False

    channel_result = result.data
    if not channel_result.success:
        logger.warning(
            f"Redelivery of notification {notification_id} failed: {channel_result.error}"
        )
    return channel_result.success


@shared_task(
    bind=True,
    autoretry_for=(PersistenceError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def redeliver_due_notifications(self, limit: int = 500) -> int:
    """
    Queue redelivery for every pending notification whose schedule arrived.

    Returns:
        Number of notifications queued
    """
    notification_ids = get_dispatcher().due_notification_ids(limit=limit)

    for notification_id in notification_ids:
        redeliver_notification.delay(str(notification_id))

    if notification_ids:
        logger.info(f"Queued redelivery for {len(notification_ids)} due notification(s)")
    return len(notification_ids)


@shared_task(
    bind=True,
    autoretry_for=(PersistenceError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def purge_read_notifications(self, business_id: str, older_than_days: int | None = None) -> int:
    """
    Delete read notifications older than the retention window.

    Returns:
        Number of rows deleted
    """
    result = NotificationReadService().purge_old(business_id, older_than_days)

    if not result.success:
        if result.error_code == "PERSISTENCE_ERROR":
            raise PersistenceError(result.error)
        logger.warning(f"Purge skipped for business {business_id}: {result.error}")
        return 0
    return result.data
