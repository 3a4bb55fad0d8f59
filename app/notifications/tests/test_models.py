"""
Unit tests for notification models.

Test Classes:
    TestNotificationTransitions: FSM transitions and their guards
    TestNotificationQuerySet: Tenant, unread, due and purge filters
    TestNotificationProperties: is_unread / is_dismissed
"""

from datetime import timedelta

import pytest
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from notifications.models import Notification, NotificationStatus
from notifications.tests.factories import NotificationFactory


@pytest.mark.django_db
class TestNotificationTransitions:
    """
    Tests for the status state machine.

    Verifies:
    - pending -> sent / failed
    - pending / sent / failed -> read
    - read is terminal
    """

    def test_new_notification_is_pending(self, business):
        notification = Notification.objects.create(
            business=business,
            type="new_lead",
            title="New lead",
            message="Jane",
        )

        assert notification.status == NotificationStatus.PENDING
        assert notification.channel == "in_app"
        assert notification.priority == "medium"
        assert notification.metadata == {}

    def test_mark_sent_records_time_and_reference(self, notification):
        now = timezone.now()

        notification.mark_sent(sent_at=now, delivery_ref="SM123")
        notification.save()
        notification.refresh_from_db()

        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at == now
        assert notification.metadata["delivery_ref"] == "SM123"

    def test_mark_failed_records_error(self, notification):
        notification.mark_failed(error="No phone number on file")
        notification.save()
        notification.refresh_from_db()

        assert notification.status == NotificationStatus.FAILED
        assert notification.error == "No phone number on file"

    @pytest.mark.parametrize("status", ["pending", "sent", "failed"])
    def test_mark_read_from_readable_states(self, business, status):
        notification = NotificationFactory(business=business, status=status)
        now = timezone.now()

        notification.mark_read(read_at=now)

        assert notification.status == NotificationStatus.READ
        assert notification.read_at == now

    def test_read_is_terminal(self, business):
        notification = NotificationFactory(business=business, status="read")

        with pytest.raises(TransitionNotAllowed):
            notification.mark_read(read_at=timezone.now())
        with pytest.raises(TransitionNotAllowed):
            notification.mark_sent(sent_at=timezone.now())

    def test_failed_cannot_be_sent(self, business):
        notification = NotificationFactory(business=business, status="failed")

        with pytest.raises(TransitionNotAllowed):
            notification.mark_sent(sent_at=timezone.now())

    def test_sent_cannot_fail(self, business):
        notification = NotificationFactory(business=business, status="sent")

        with pytest.raises(TransitionNotAllowed):
            notification.mark_failed(error="late failure")


@pytest.mark.django_db
class TestNotificationQuerySet:
    """Tests for NotificationQuerySet filters."""

    def test_for_business_isolates_tenants(self, business, other_business):
        mine = NotificationFactory(business=business)
        NotificationFactory(business=other_business)

        assert list(Notification.objects.for_business(business.id)) == [mine]

    def test_unread_excludes_failed_and_read(self, business):
        pending = NotificationFactory(business=business, status="pending")
        sent = NotificationFactory(business=business, status="sent")
        NotificationFactory(business=business, status="failed")
        NotificationFactory(business=business, status="read")

        unread = set(Notification.objects.for_business(business.id).unread())

        assert unread == {pending, sent}

    def test_due_only_returns_pending_past_schedule(self, business):
        now = timezone.now()
        due = NotificationFactory(business=business, scheduled_for=now - timedelta(minutes=1))
        NotificationFactory(business=business, scheduled_for=now + timedelta(minutes=1))
        NotificationFactory(
            business=business, status="sent", scheduled_for=now - timedelta(minutes=1)
        )
        NotificationFactory(business=business, scheduled_for=None)

        assert list(Notification.objects.due(now)) == [due]

    def test_purgeable_is_read_and_strictly_older(self, business):
        cutoff = timezone.now()
        old_read = NotificationFactory(business=business, status="read")
        old_unread = NotificationFactory(business=business, status="sent")
        Notification.objects.filter(id__in=[old_read.id, old_unread.id]).update(
            created_at=cutoff - timedelta(days=1)
        )
        at_cutoff = NotificationFactory(business=business, status="read")
        Notification.objects.filter(id=at_cutoff.id).update(created_at=cutoff)

        assert list(Notification.objects.purgeable(cutoff)) == [old_read]


@pytest.mark.django_db
class TestNotificationProperties:
    def test_is_unread(self, business):
        assert NotificationFactory(business=business, status="sent").is_unread
        assert not NotificationFactory(business=business, status="failed").is_unread

    def test_is_dismissed_reads_metadata(self, business):
        notification = NotificationFactory(business=business, metadata={"dismissed": True})

        assert notification.is_dismissed
        assert not NotificationFactory(business=business).is_dismissed
