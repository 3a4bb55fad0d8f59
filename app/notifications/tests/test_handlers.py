"""
Tests for the notification broadcast signal handler.
"""

import logging

import pytest

from notifications.handlers import broadcast_created, business_group_name
from notifications.tests.factories import NotificationFactory


@pytest.fixture
def channel_layer(mocker):
    layer = mocker.Mock()
    layer.group_send = mocker.AsyncMock()
    mocker.patch("notifications.handlers.get_channel_layer", return_value=layer)
    return layer


def test_group_name():
    assert business_group_name("abc") == "notifications_abc"


@pytest.mark.django_db
class TestBroadcastOnCreate:
    def test_broadcasts_after_commit(self, business, channel_layer, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            row = NotificationFactory(business=business, priority="high")

        assert len(callbacks) == 1
        group, event = channel_layer.group_send.await_args.args
        assert group == f"notifications_{business.id}"
        assert event["type"] == "notification.created"
        assert event["notification"]["id"] == str(row.id)
        assert event["notification"]["business_id"] == str(business.id)
        assert event["notification"]["priority"] == "high"

    def test_nothing_sent_before_commit(self, business, channel_layer, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            NotificationFactory(business=business)

        assert len(callbacks) == 1
        channel_layer.group_send.assert_not_called()

    def test_updates_do_not_broadcast(self, notification, channel_layer, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            notification.title = "Edited"
            notification.save()

        assert callbacks == []
        channel_layer.group_send.assert_not_called()


@pytest.mark.django_db
class TestBroadcastFailures:
    def test_layer_error_is_logged(self, notification, channel_layer, caplog):
        channel_layer.group_send.side_effect = ConnectionError("redis down")

        with caplog.at_level(logging.WARNING, logger="notifications.handlers"):
            broadcast_created(notification)

        assert f"Live broadcast failed for notification {notification.id}" in caplog.text

    def test_no_layer_configured(self, notification, mocker):
        mocker.patch("notifications.handlers.get_channel_layer", return_value=None)

        broadcast_created(notification)
