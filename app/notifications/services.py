"""
Notification services: dispatch, read state, retention, and feed queries.

This module turns one business event into per-channel deliveries and manages
what happens to them afterwards.

Services:
    NotificationDispatcher: Fan a request out to one row per channel, send
        the immediate ones, record each outcome, aggregate the results
    NotificationReadService: mark_read / mark_all_read / dismiss / purge_old
    NotificationFeedService: Paged feed with total and unread counts

Collaborators are injected at construction (store, senders, directory,
clock); ``get_dispatcher()`` and friends build the production wiring.

Dispatch flow (per channel, in request order):
    1. Insert a pending row (PersistenceError -> this channel fails with
       "Failed to queue notification"; siblings continue)
    2. scheduled_for in the future -> stop, row stays pending
    3. Claim the row; a row claimed by another worker is not sent again
    4. Call the channel sender (never raises)
    5. Record sent/failed on the row
    6. Collect ChannelResult

Usage:
    from notifications.services import DispatchRequest, get_dispatcher

    request = DispatchRequest.build(
        type="new_lead",
        title="New lead: Jane",
        message="Website form",
        business_id=business.id,
        channel=["in_app", "sms"],
    )
    result = get_dispatcher().dispatch(request)
    if result.success:
        outcome = result.data
        outcome.http_status  # 200, 207 or 500
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from businesses.directory import DjangoBusinessDirectory
from core.helpers import validate_uuid
from core.services import BaseService, ServiceResult
from notifications.exceptions import PersistenceError
from notifications.models import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)
from notifications.senders import SendResult, build_default_senders
from notifications.store import DjangoNotificationStore, NotificationDraft

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import datetime
    from typing import Any
    from uuid import UUID

    from businesses.directory import BusinessContact
    from notifications.models import Notification
    from notifications.store import NotificationStore, StoredNotification
    from toolkit.protocols import BusinessDirectory, ChannelSender

Clock = Callable[[], "datetime"]

REQUIRED_FIELDS_MESSAGE = "Missing required fields: type, title, message, businessId"
QUEUE_FAILED_ERROR = "Failed to queue notification"
CLAIM_FAILED_ERROR = "Failed to claim notification for delivery"
MISSING_IDS_MESSAGE = "Must provide notificationId or notificationIds"

ALL_SUCCEEDED_MESSAGE = "All notifications sent successfully"
SOME_SUCCEEDED_MESSAGE = "Some notifications sent successfully"
NONE_SUCCEEDED_MESSAGE = "All notifications failed"


# =============================================================================
# Dispatch Types
# =============================================================================


def normalize_channels(channel: str | Iterable[str] | None) -> tuple[str, ...]:
    """
    Normalize ``channel | channel[] | None`` to a tuple.

    None or an empty list means in-app only. Order is kept; duplicates are
    kept too, since each entry is an independent row.
    """
    if channel is None:
        return (NotificationChannel.IN_APP.value,)
    if isinstance(channel, str):
        return (channel,)
    channels = tuple(channel)
    return channels or (NotificationChannel.IN_APP.value,)


@dataclass(frozen=True)
class DispatchRequest:
    """
    One logical event to deliver over one or more channels.

    Build through ``DispatchRequest.build`` so channel input is normalized.
    """

    type: str | None
    title: str | None
    message: str | None
    business_id: str | None
    channels: tuple[str, ...] = (NotificationChannel.IN_APP.value,)
    priority: str = NotificationPriority.MEDIUM.value
    metadata: dict[str, Any] = field(default_factory=dict)
    scheduled_for: datetime | None = None

    @classmethod
    def build(
        cls,
        *,
        type: str | None,
        title: str | None,
        message: str | None,
        business_id: UUID | str | None,
        channel: str | Iterable[str] | None = None,
        priority: str | None = None,
        metadata: dict[str, Any] | None = None,
        scheduled_for: datetime | None = None,
    ) -> DispatchRequest:
        return cls(
            type=type,
            title=title,
            message=message,
            business_id=str(business_id) if business_id is not None else None,
            channels=normalize_channels(channel),
            priority=priority or NotificationPriority.MEDIUM.value,
            metadata=dict(metadata or {}),
            scheduled_for=scheduled_for,
        )

    def draft_for(self, channel: str) -> NotificationDraft:
        return NotificationDraft(
            business_id=self.business_id,
            type=self.type,
            channel=channel,
            priority=self.priority,
            title=self.title,
            message=self.message,
            metadata=self.metadata,
            scheduled_for=self.scheduled_for,
        )


@dataclass(frozen=True)
class ChannelResult:
    """Per-channel outcome of a dispatch."""

    channel: str
    success: bool
    notification_id: UUID | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"channel": self.channel, "success": self.success}
        if self.notification_id is not None:
            data["notification_id"] = str(self.notification_id)
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class DispatchOutcome:
    """
    Aggregated outcome of a dispatch.

    Status mapping:
        every channel succeeded -> "success", HTTP 200
        some succeeded          -> "partial", HTTP 207
        none succeeded          -> "failure", HTTP 500
    """

    results: tuple[ChannelResult, ...]

    @property
    def all_succeeded(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def any_succeeded(self) -> bool:
        return any(r.success for r in self.results)

    @property
    def status(self) -> str:
        if self.all_succeeded:
            return "success"
        if self.any_succeeded:
            return "partial"
        return "failure"

    @property
    def http_status(self) -> int:
        return {"success": 200, "partial": 207, "failure": 500}[self.status]

    @property
    def message(self) -> str:
        return {
            "success": ALL_SUCCEEDED_MESSAGE,
            "partial": SOME_SUCCEEDED_MESSAGE,
            "failure": NONE_SUCCEEDED_MESSAGE,
        }[self.status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.any_succeeded,
            "results": [r.to_dict() for r in self.results],
            "message": self.message,
        }


# =============================================================================
# Dispatcher
# =============================================================================


class NotificationDispatcher(BaseService):
    """
    Turns dispatch requests into per-channel notification rows.

    Channel failures are recorded and aggregated, never raised. Rows are
    never rolled back because a sibling channel failed.
    """

    def __init__(
        self,
        store: NotificationStore,
        senders: Mapping[str, ChannelSender],
        directory: BusinessDirectory,
        clock: Clock = timezone.now,
        claim_timeout: timedelta | None = None,
    ):
        self.store = store
        self.senders = senders
        self.directory = directory
        self.clock = clock
        if claim_timeout is None:
            claim_timeout = timedelta(seconds=settings.NOTIFICATION_CLAIM_TIMEOUT_SECONDS)
        self.claim_timeout = claim_timeout

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate(self, request: DispatchRequest) -> ServiceResult | None:
        """Return a VALIDATION_ERROR failure, or None if the request is valid."""
        missing = self.validate_required(
            type=request.type,
            title=request.title,
            message=request.message,
            business_id=request.business_id,
        )
        if missing is not None:
            return ServiceResult.failure(
                REQUIRED_FIELDS_MESSAGE,
                error_code="VALIDATION_ERROR",
                errors=missing.errors,
            )

        errors: dict[str, list[str]] = {}
        if not validate_uuid(request.business_id):
            errors["businessId"] = ["Must be a valid UUID."]
        if request.type not in NotificationType.values:
            errors["type"] = [f"Unknown notification type: {request.type}"]
        if request.priority not in NotificationPriority.values:
            errors["priority"] = [f"Unknown priority: {request.priority}"]
        unknown = [c for c in request.channels if c not in NotificationChannel.values]
        if unknown:
            errors["channel"] = [f"Unknown channel: {c}" for c in unknown]

        if errors:
            return ServiceResult.failure(
                "Invalid notification request",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )
        return None

    # ==========================================================================
    # Dispatch
    # ==========================================================================

    def dispatch(self, request: DispatchRequest) -> ServiceResult[DispatchOutcome]:
        """
        Deliver one event over every requested channel.

        Returns:
            ServiceResult with DispatchOutcome, or a failure with
            VALIDATION_ERROR / BUSINESS_NOT_FOUND (nothing persisted)
        """
        logger = self.get_logger()

        invalid = self.validate(request)
        if invalid is not None:
            return invalid

        contact = self.directory.get_contact(request.business_id)
        if contact is None:
            logger.info(f"Dispatch rejected: business {request.business_id} not found")
            return ServiceResult.failure("Business not found", error_code="BUSINESS_NOT_FOUND")

        now = self.clock()
        deferred = request.scheduled_for is not None and request.scheduled_for > now

        results = []
        for channel in request.channels:
            try:
                stored = self.store.insert(request.draft_for(channel))
            except PersistenceError as e:
                logger.error(
                    f"Could not persist {channel} notification for business "
                    f"{request.business_id}: {e.message}"
                )
                results.append(
                    ChannelResult(
                        channel=channel,
                        success=False,
                        error=QUEUE_FAILED_ERROR,
                        error_code=e.error_code,
                    )
                )
                continue

            if deferred:
                logger.info(
                    f"Notification {stored.id} ({channel}) scheduled for "
                    f"{request.scheduled_for.isoformat()}"
                )
                results.append(
                    ChannelResult(channel=channel, success=True, notification_id=stored.id)
                )
                continue

            delivered = self._deliver(stored, contact)
            if delivered is None:
                # Another worker holds the claim and owns the send
                delivered = ChannelResult(channel=channel, success=True, notification_id=stored.id)
            results.append(delivered)

        outcome = DispatchOutcome(results=tuple(results))
        logger.info(
            f"Dispatched {request.type} for business {request.business_id} over "
            f"{len(results)} channel(s): {outcome.status}"
        )
        return ServiceResult.success(outcome)

    def _deliver(
        self, stored: StoredNotification, contact: BusinessContact
    ) -> ChannelResult | None:
        """
        Claim, send, and record the outcome of one persisted notification.

        Returns None without sending when another delivery holds the claim.
        A claim that cannot be written is a failed result and nothing is sent;
        the row stays pending for the next re-drive.
        """
        logger = self.get_logger()

        now = self.clock()
        try:
            claimed = self.store.claim(stored, now, now - self.claim_timeout)
        except PersistenceError as e:
            logger.error(f"Could not claim notification {stored.id}: {e.message}")
            return ChannelResult(
                channel=stored.channel,
                success=False,
                notification_id=stored.id,
                error=CLAIM_FAILED_ERROR,
                error_code=e.error_code,
            )
        if not claimed:
            return None

        result = self._send(stored, contact)

        try:
            if result.success:
                self.store.record_sent(
                    stored, sent_at=self.clock(), delivery_ref=result.delivery_ref
                )
            else:
                self.store.record_failed(stored, error=result.error)
        except PersistenceError as e:
            logger.error(f"Could not record outcome for notification {stored.id}: {e.message}")

        if result.success:
            logger.info(f"Notification {stored.id} sent via {stored.channel}")
        else:
            logger.warning(
                f"Notification {stored.id} failed via {stored.channel}: {result.error}"
            )

        return ChannelResult(
            channel=stored.channel,
            success=result.success,
            notification_id=stored.id,
            error=result.error,
            error_code=result.error_code,
        )

    def _send(self, stored: StoredNotification, contact: BusinessContact) -> SendResult:
        sender = self.senders.get(stored.channel)
        if sender is None:
            return SendResult.failed(
                f"No sender configured for channel {stored.channel}",
                "CHANNEL_NOT_CONFIGURED",
            )
        try:
            return sender.send(contact, stored.title, stored.message, dict(stored.metadata))
        except Exception as e:
            # A sender that raises is a bug in the sender; record, don't propagate
            self.get_logger().exception(
                f"Sender for {stored.channel} raised on notification {stored.id}"
            )
            return SendResult.failed(str(e) or e.__class__.__name__, "SENDER_ERROR")

    # ==========================================================================
    # Re-delivery
    # ==========================================================================

    def redeliver(self, notification_id: UUID | str) -> ServiceResult[ChannelResult]:
        """
        Deliver a pending notification whose schedule has come due.

        Entry point for whatever external scheduler re-drives deferred rows.
        Non-pending rows are left untouched.
        """
        logger = self.get_logger()

        if not validate_uuid(notification_id):
            return ServiceResult.failure(
                "Invalid notification id", error_code="VALIDATION_ERROR"
            )

        stored = self.store.get(notification_id)
        if stored is None:
            return ServiceResult.failure(
                "Notification not found", error_code="NOTIFICATION_NOT_FOUND"
            )
        if stored.status != NotificationStatus.PENDING:
            logger.info(f"Notification {notification_id} is {stored.status}; not redelivering")
            return ServiceResult.failure(
                f"Notification is already {stored.status}",
                error_code="NOT_REDELIVERABLE",
            )
        if stored.scheduled_for is not None and stored.scheduled_for > self.clock():
            return ServiceResult.failure("Notification is not due yet", error_code="NOT_DUE")

        contact = self.directory.get_contact(stored.business_id)
        if contact is None:
            return ServiceResult.failure("Business not found", error_code="BUSINESS_NOT_FOUND")

        delivered = self._deliver(stored, contact)
        if delivered is None:
            return ServiceResult.failure(
                "Notification is already being delivered", error_code="ALREADY_CLAIMED"
            )
        return ServiceResult.success(delivered)

    def due_notification_ids(self, limit: int = 500) -> list[UUID]:
        """Ids of pending rows whose schedule has arrived, oldest first."""
        return self.store.due_ids(self.clock(), limit)


# =============================================================================
# Read State & Retention
# =============================================================================


def _normalize_ids(ids: str | UUID | Iterable[str | UUID] | None) -> list[str]:
    if ids is None:
        return []
    if isinstance(ids, str) or not hasattr(ids, "__iter__"):
        ids = [ids]
    return [str(i) for i in ids if i]


class NotificationReadService(BaseService):
    """
    Bulk read-state transitions and retention for one business.

    Every operation is tenant-scoped and idempotent.
    """

    def __init__(self, store: NotificationStore | None = None, clock: Clock = timezone.now):
        self.store = store or DjangoNotificationStore()
        self.clock = clock

    def _validate_target(self, business_id, ids) -> ServiceResult | list[str]:
        if not validate_uuid(business_id):
            return ServiceResult.failure(
                "Missing or invalid businessId", error_code="VALIDATION_ERROR"
            )
        normalized = _normalize_ids(ids)
        if not normalized:
            return ServiceResult.failure(MISSING_IDS_MESSAGE, error_code="VALIDATION_ERROR")
        bad = [i for i in normalized if not validate_uuid(i)]
        if bad:
            return ServiceResult.failure(
                "Invalid notification id",
                error_code="VALIDATION_ERROR",
                errors={"notificationIds": [f"Not a valid UUID: {i}" for i in bad]},
            )
        return normalized

    def mark_read(self, business_id, ids) -> ServiceResult[int]:
        """
        Mark the given notifications read.

        Rows in pending/sent/failed move to read; already-read rows and rows
        owned by other businesses are ignored.

        Returns:
            ServiceResult with the number of rows transitioned
        """
        target = self._validate_target(business_id, ids)
        if isinstance(target, ServiceResult):
            return target
        try:
            count = self.store.mark_read(str(business_id), target, self.clock())
        except PersistenceError as e:
            return ServiceResult.from_exception(e)

        self.get_logger().info(f"Marked {count} notification(s) read for business {business_id}")
        return ServiceResult.success(count)

    def mark_all_read(self, business_id) -> ServiceResult[int]:
        """
        Mark every unread (pending or sent) notification read.

        Failed rows are left as they are unless targeted explicitly.
        """
        if not validate_uuid(business_id):
            return ServiceResult.failure(
                "Missing or invalid businessId", error_code="VALIDATION_ERROR"
            )
        try:
            count = self.store.mark_all_read(str(business_id), self.clock())
        except PersistenceError as e:
            return ServiceResult.from_exception(e)

        self.get_logger().info(f"Marked all ({count}) notifications read for business {business_id}")
        return ServiceResult.success(count)

    def dismiss(self, business_id, ids) -> ServiceResult[int]:
        """
        Soft-delete notifications: mark them read and flag them dismissed.

        The dismissed flag is merged into metadata without touching other
        keys, and is applied to already-read rows as well.

        Returns:
            ServiceResult with the number of rows changed
        """
        target = self._validate_target(business_id, ids)
        if isinstance(target, ServiceResult):
            return target
        try:
            count = self.store.dismiss(str(business_id), target, self.clock())
        except PersistenceError as e:
            return ServiceResult.from_exception(e)

        self.get_logger().info(f"Dismissed {count} notification(s) for business {business_id}")
        return ServiceResult.success(count)

    def purge_old(self, business_id, older_than_days: int | None = None) -> ServiceResult[int]:
        """
        Hard-delete read notifications created before the retention window.

        Rows that are not read are never deleted, whatever their age.
        """
        if not validate_uuid(business_id):
            return ServiceResult.failure(
                "Missing or invalid businessId", error_code="VALIDATION_ERROR"
            )
        if older_than_days is None:
            older_than_days = settings.NOTIFICATION_RETENTION_DAYS
        cutoff = self.clock() - timedelta(days=max(0, older_than_days))

        try:
            count = self.store.purge_read(str(business_id), cutoff)
        except PersistenceError as e:
            return ServiceResult.from_exception(e)

        self.get_logger().info(
            f"Purged {count} read notification(s) older than {older_than_days} day(s) "
            f"for business {business_id}"
        )
        return ServiceResult.success(count)


# =============================================================================
# Feed
# =============================================================================


@dataclass(frozen=True)
class FeedPage:
    """One page of a business's notification feed."""

    notifications: list[Notification]
    total: int
    unread_count: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.total > self.offset + self.limit


class NotificationFeedService(BaseService):
    """Paged notification feed with unread counts (unread = pending or sent)."""

    def __init__(self, store: NotificationStore | None = None):
        self.store = store or DjangoNotificationStore()

    def page(
        self,
        business_id,
        *,
        limit: int | None = None,
        offset: int = 0,
        unread_only: bool = False,
        type: str | None = None,
    ) -> ServiceResult[FeedPage]:
        if not validate_uuid(business_id):
            return ServiceResult.failure(
                "Missing or invalid businessId", error_code="VALIDATION_ERROR"
            )
        if limit is None:
            limit = settings.NOTIFICATION_PAGE_SIZE
        limit = min(max(0, limit), settings.NOTIFICATION_MAX_PAGE_SIZE)
        offset = max(0, offset)

        try:
            rows, total = self.store.page(
                str(business_id),
                limit=limit,
                offset=offset,
                unread_only=unread_only,
                type=type,
            )
            unread = self.store.unread_count(str(business_id))
        except PersistenceError as e:
            return ServiceResult.from_exception(e)

        return ServiceResult.success(
            FeedPage(
                notifications=rows,
                total=total,
                unread_count=unread,
                limit=limit,
                offset=offset,
            )
        )


# =============================================================================
# Default Wiring
# =============================================================================


def get_dispatcher(
    store: NotificationStore | None = None,
    senders: Mapping[str, ChannelSender] | None = None,
    directory: BusinessDirectory | None = None,
) -> NotificationDispatcher:
    """Build a dispatcher with production collaborators for anything not given."""
    return NotificationDispatcher(
        store=store or DjangoNotificationStore(),
        senders=senders if senders is not None else build_default_senders(),
        directory=directory or DjangoBusinessDirectory(),
    )
