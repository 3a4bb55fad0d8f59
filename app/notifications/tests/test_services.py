"""
Tests for notification services.

These tests verify that:
- Dispatch creates one row per channel and never leaves an immediate row
  pending
- Channel outcomes aggregate to success / partial / failure
- Validation and unknown-business failures persist nothing
- A persistence failure on one channel does not block its siblings
- Scheduled rows stay pending until redelivered
- Read-state and retention operations are tenant-scoped and idempotent
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from businesses.directory import DjangoBusinessDirectory
from notifications.exceptions import PersistenceError
from notifications.models import Notification, NotificationStatus
from notifications.senders import NO_PHONE_ERROR, SendResult
from notifications.services import (
    DispatchOutcome,
    ChannelResult,
    DispatchRequest,
    NotificationDispatcher,
    NotificationFeedService,
    NotificationReadService,
    get_dispatcher,
    normalize_channels,
)
from notifications.store import DjangoNotificationStore
from notifications.tests.factories import NotificationFactory


def make_request(business, **overrides):
    fields = {
        "type": "new_lead",
        "title": "New lead: Jane",
        "message": "From website form",
        "business_id": business.id,
    }
    fields.update(overrides)
    return DispatchRequest.build(**fields)


class TestNormalizeChannels:
    def test_none_means_in_app(self):
        assert normalize_channels(None) == ("in_app",)

    def test_empty_list_means_in_app(self):
        assert normalize_channels([]) == ("in_app",)

    def test_single_string(self):
        assert normalize_channels("sms") == ("sms",)

    def test_keeps_order(self):
        assert normalize_channels(["sms", "in_app"]) == ("sms", "in_app")


class TestDispatchOutcome:
    @pytest.mark.parametrize(
        "flags, status, http_status",
        [
            ((True, True), "success", 200),
            ((True, False), "partial", 207),
            ((False, False), "failure", 500),
        ],
    )
    def test_aggregation(self, flags, status, http_status):
        outcome = DispatchOutcome(
            results=tuple(ChannelResult(channel="in_app", success=f) for f in flags)
        )

        assert outcome.status == status
        assert outcome.http_status == http_status
        assert outcome.to_dict()["success"] is any(flags)


@pytest.mark.django_db
class TestDispatch:
    def test_in_app_is_sent(self, dispatcher, business):
        result = dispatcher.dispatch(make_request(business))

        assert result.success
        outcome = result.data
        assert outcome.status == "success"
        row = Notification.objects.get(id=outcome.results[0].notification_id)
        assert row.status == NotificationStatus.SENT
        assert row.sent_at is not None

    def test_one_row_per_channel(self, dispatcher, business):
        result = dispatcher.dispatch(make_request(business, channel=["in_app", "push", "sms"]))

        assert [r.channel for r in result.data.results] == ["in_app", "push", "sms"]
        assert Notification.objects.filter(business=business).count() == 3
        assert not Notification.objects.filter(status=NotificationStatus.PENDING).exists()

    def test_sms_sent_with_reference(self, dispatcher, business, sms_gateway):
        result = dispatcher.dispatch(make_request(business, channel="sms"))

        row = Notification.objects.get(id=result.data.results[0].notification_id)
        assert row.status == NotificationStatus.SENT
        assert row.metadata["delivery_ref"] == sms_gateway.sid
        assert sms_gateway.sent == [
            (business.owner_phone, "New lead: Jane\n\nFrom website form")
        ]

    def test_sms_without_phone_is_partial(self, dispatcher, business_without_phone):
        result = dispatcher.dispatch(
            make_request(business_without_phone, channel=["sms", "in_app"])
        )

        outcome = result.data
        assert outcome.status == "partial"
        assert outcome.http_status == 207
        sms, in_app = outcome.results
        assert not sms.success
        assert sms.error == NO_PHONE_ERROR
        assert in_app.success

        sms_row = Notification.objects.get(id=sms.notification_id)
        assert sms_row.status == NotificationStatus.FAILED
        assert sms_row.error == NO_PHONE_ERROR

    def test_email_only_is_failure(self, dispatcher, business):
        result = dispatcher.dispatch(make_request(business, channel="email"))

        assert result.success
        assert result.data.status == "failure"
        assert result.data.message == "All notifications failed"
        assert result.data.to_dict()["success"] is False

    def test_missing_fields(self, dispatcher, business):
        result = dispatcher.dispatch(make_request(business, title="", message=None))

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert result.error == "Missing required fields: type, title, message, businessId"
        assert not Notification.objects.exists()

    @pytest.mark.parametrize(
        "overrides",
        [{"type": "birthday"}, {"channel": ["in_app", "fax"]}, {"priority": "critical"}],
    )
    def test_invalid_enum_values(self, dispatcher, business, overrides):
        result = dispatcher.dispatch(make_request(business, **overrides))

        assert result.error_code == "VALIDATION_ERROR"
        assert not Notification.objects.exists()

    def test_unknown_business(self, dispatcher, db):
        request = DispatchRequest.build(
            type="new_lead",
            title="t",
            message="m",
            business_id="5b0f7c51-6d0a-4c38-9d57-0b6f2c1b9e11",
        )

        result = dispatcher.dispatch(request)

        assert result.error_code == "BUSINESS_NOT_FOUND"
        assert not Notification.objects.exists()

    def test_persistence_failure_does_not_block_siblings(self, senders, business, mocker):
        store = DjangoNotificationStore()
        real_insert = store.insert

        def flaky_insert(draft):
            if draft.channel == "push":
                raise PersistenceError("Failed to queue notification")
            return real_insert(draft)

        mocker.patch.object(store, "insert", side_effect=flaky_insert)
        dispatcher = NotificationDispatcher(
            store=store, senders=senders, directory=DjangoBusinessDirectory()
        )

        result = dispatcher.dispatch(make_request(business, channel=["push", "in_app"]))

        push, in_app = result.data.results
        assert push == ChannelResult(
            channel="push",
            success=False,
            error="Failed to queue notification",
            error_code="PERSISTENCE_ERROR",
        )
        assert in_app.success
        assert result.data.status == "partial"

    def test_sender_exception_is_recorded(self, business, mocker):
        exploding = mocker.Mock()
        exploding.send.side_effect = RuntimeError("bug in sender")
        dispatcher = NotificationDispatcher(
            store=DjangoNotificationStore(),
            senders={"in_app": exploding},
            directory=DjangoBusinessDirectory(),
        )

        result = dispatcher.dispatch(make_request(business))

        channel_result = result.data.results[0]
        assert not channel_result.success
        assert Notification.objects.get(id=channel_result.notification_id).status == "failed"

    def test_future_schedule_stays_pending(self, dispatcher, business, sms_gateway):
        later = timezone.now() + timedelta(hours=1)

        result = dispatcher.dispatch(make_request(business, channel="sms", scheduled_for=later))

        channel_result = result.data.results[0]
        assert channel_result.success
        row = Notification.objects.get(id=channel_result.notification_id)
        assert row.status == NotificationStatus.PENDING
        assert row.scheduled_for == later
        assert sms_gateway.sent == []

    def test_past_schedule_sends_now(self, dispatcher, business):
        earlier = timezone.now() - timedelta(minutes=5)

        result = dispatcher.dispatch(make_request(business, scheduled_for=earlier))

        row = Notification.objects.get(id=result.data.results[0].notification_id)
        assert row.status == NotificationStatus.SENT

    def test_get_dispatcher_wires_defaults(self):
        dispatcher = get_dispatcher()

        assert isinstance(dispatcher.store, DjangoNotificationStore)
        assert set(dispatcher.senders) == {"in_app", "push", "sms", "email"}


@pytest.mark.django_db
class TestRedeliver:
    def test_sends_due_row(self, dispatcher, business, sms_gateway):
        row = NotificationFactory(
            business=business,
            channel="sms",
            scheduled_for=timezone.now() - timedelta(minutes=1),
        )

        result = dispatcher.redeliver(row.id)

        assert result.success
        assert result.data.success
        row.refresh_from_db()
        assert row.status == NotificationStatus.SENT
        assert len(sms_gateway.sent) == 1

    def test_refuses_row_not_due(self, dispatcher, business):
        row = NotificationFactory(
            business=business, scheduled_for=timezone.now() + timedelta(hours=1)
        )

        result = dispatcher.redeliver(row.id)

        assert result.error_code == "NOT_DUE"
        row.refresh_from_db()
        assert row.status == NotificationStatus.PENDING

    def test_refuses_non_pending_row(self, dispatcher, business):
        row = NotificationFactory(business=business, status="failed")

        assert dispatcher.redeliver(row.id).error_code == "NOT_REDELIVERABLE"

    def test_missing_row(self, dispatcher):
        result = dispatcher.redeliver("9a4f2d53-1b7e-4c11-8d3a-7e6b5c4d3e2f")

        assert result.error_code == "NOTIFICATION_NOT_FOUND"

    def test_due_notification_ids(self, dispatcher, business):
        due = NotificationFactory(
            business=business, scheduled_for=timezone.now() - timedelta(seconds=5)
        )
        NotificationFactory(business=business)

        assert dispatcher.due_notification_ids() == [due.id]

    def test_reentrant_redeliver_sends_once(self, business):
        row = NotificationFactory(
            business=business, scheduled_for=timezone.now() - timedelta(minutes=1)
        )
        nested = []

        class ReentrantSender:
            calls = 0

            def send(self, contact, title, message, metadata):
                ReentrantSender.calls += 1
                if ReentrantSender.calls == 1:
                    nested.append(dispatcher.redeliver(row.id))
                return SendResult.ok("ref-1")

        dispatcher = NotificationDispatcher(
            store=DjangoNotificationStore(),
            senders={"in_app": ReentrantSender()},
            directory=DjangoBusinessDirectory(),
        )

        result = dispatcher.redeliver(row.id)

        assert result.success
        assert ReentrantSender.calls == 1
        assert nested[0].error_code == "ALREADY_CLAIMED"
        row.refresh_from_db()
        assert row.status == NotificationStatus.SENT

    def test_fresh_claim_blocks_redelivery(self, dispatcher, business, sms_gateway):
        row = NotificationFactory(
            business=business,
            channel="sms",
            scheduled_for=timezone.now() - timedelta(minutes=1),
            claimed_at=timezone.now() - timedelta(seconds=30),
        )

        result = dispatcher.redeliver(row.id)

        assert result.error_code == "ALREADY_CLAIMED"
        assert sms_gateway.sent == []
        row.refresh_from_db()
        assert row.status == NotificationStatus.PENDING

    def test_stale_claim_is_retaken(self, dispatcher, business, sms_gateway, settings):
        settings.NOTIFICATION_CLAIM_TIMEOUT_SECONDS = 300
        row = NotificationFactory(
            business=business,
            channel="sms",
            scheduled_for=timezone.now() - timedelta(minutes=15),
            claimed_at=timezone.now() - timedelta(minutes=10),
        )

        result = dispatcher.redeliver(row.id)

        assert result.data.success
        assert len(sms_gateway.sent) == 1
        row.refresh_from_db()
        assert row.status == NotificationStatus.SENT

    def test_claim_failure_sends_nothing(self, business, sms_gateway, senders, mocker):
        store = DjangoNotificationStore()
        mocker.patch.object(
            store, "claim", side_effect=PersistenceError("Notification store unavailable")
        )
        dispatcher = NotificationDispatcher(
            store=store, senders=senders, directory=DjangoBusinessDirectory()
        )

        result = dispatcher.dispatch(make_request(business, channel="sms"))

        channel_result = result.data.results[0]
        assert channel_result.error == "Failed to claim notification for delivery"
        assert channel_result.error_code == "PERSISTENCE_ERROR"
        assert sms_gateway.sent == []
        row = Notification.objects.get(id=channel_result.notification_id)
        assert row.status == NotificationStatus.PENDING


@pytest.mark.django_db
class TestNotificationReadService:
    def test_mark_read_requires_ids(self, business):
        result = NotificationReadService().mark_read(business.id, [])

        assert result.error == "Must provide notificationId or notificationIds"

    def test_mark_read_rejects_malformed_ids(self, business):
        result = NotificationReadService().mark_read(business.id, ["nope"])

        assert result.error_code == "VALIDATION_ERROR"

    def test_mark_read_accepts_single_id(self, notification):
        result = NotificationReadService().mark_read(notification.business_id, str(notification.id))

        assert result.data == 1

    def test_mark_all_read_twice(self, business):
        NotificationFactory.create_batch(2, business=business, status="sent")
        service = NotificationReadService()

        assert service.mark_all_read(business.id).data == 2
        assert service.mark_all_read(business.id).data == 0

    def test_dismiss(self, notification):
        result = NotificationReadService().dismiss(notification.business_id, [notification.id])

        assert result.data == 1
        notification.refresh_from_db()
        assert notification.status == NotificationStatus.READ
        assert notification.is_dismissed

    def test_store_failure_is_reported(self, business, mocker):
        store = mocker.Mock()
        store.mark_all_read.side_effect = PersistenceError("Notification store unavailable")

        result = NotificationReadService(store=store).mark_all_read(business.id)

        assert not result.success
        assert result.error_code == "PERSISTENCE_ERROR"

    def test_purge_old_uses_retention_window(self, business):
        with freeze_time("2026-01-01 12:00:00"):
            old = NotificationFactory(business=business, status="read")
            NotificationFactory(business=business, status="sent")
        with freeze_time("2026-01-25 12:00:00"):
            recent = NotificationFactory(business=business, status="read")

        with freeze_time("2026-02-05 12:00:00"):
            result = NotificationReadService().purge_old(business.id, older_than_days=30)

        assert result.data == 1
        assert not Notification.objects.filter(id=old.id).exists()
        assert Notification.objects.filter(id=recent.id).exists()
        assert Notification.objects.count() == 2

    def test_purge_negative_days_treated_as_zero(self, business):
        with freeze_time("2026-01-01 12:00:00"):
            NotificationFactory(business=business, status="read")

        with freeze_time("2026-01-01 12:00:01"):
            result = NotificationReadService().purge_old(business.id, older_than_days=-5)

        assert result.data == 1


@pytest.mark.django_db
class TestNotificationFeedService:
    def test_page_counts(self, business):
        NotificationFactory.create_batch(3, business=business, status="sent")
        NotificationFactory(business=business, status="read")

        page = NotificationFeedService().page(business.id, limit=2).data

        assert len(page.notifications) == 2
        assert page.total == 4
        assert page.unread_count == 3
        assert page.has_more

    def test_limit_is_capped_and_floored(self, business, settings):
        settings.NOTIFICATION_MAX_PAGE_SIZE = 100

        assert NotificationFeedService().page(business.id, limit=500).data.limit == 100
        assert NotificationFeedService().page(business.id, limit=-3).data.limit == 0
        assert NotificationFeedService().page(business.id, offset=-3).data.offset == 0

    def test_invalid_business_id(self, db):
        result = NotificationFeedService().page("not-a-uuid")

        assert result.error_code == "VALIDATION_ERROR"
