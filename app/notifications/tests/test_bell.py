"""
Tests for the notification bell.

These tests verify that:
- The badge caps at "99+" and hides at zero
- Refresh failures keep the previous state
- Mark-read actions update local state first and refresh on failure
"""

import asyncio

import pytest

from core.exceptions import BaseApplicationError
from notifications.bell import BellSource, NotificationBell, ServiceBellSource
from notifications.services import FeedPage
from notifications.tests.factories import NotificationFactory

BUSINESS_ID = "5d6e7f80-9a0b-4c1d-8e2f-3a4b5c6d7e8f"


class FakeBellSource:
    def __init__(self, rows, unread_count=None, total=None):
        self.rows = rows
        self.unread_count = unread_count
        self.total = total
        self.fail_fetch = False
        self.fail_writes = False
        self.fetches = 0
        self.marked = []

    def fetch(self, business_id, limit):
        self.fetches += 1
        if self.fail_fetch:
            raise BaseApplicationError("Notification store unavailable")
        unread = sum(1 for r in self.rows if r.status in ("pending", "sent"))
        return FeedPage(
            notifications=self.rows[:limit],
            total=self.total if self.total is not None else len(self.rows),
            unread_count=self.unread_count if self.unread_count is not None else unread,
            limit=limit,
            offset=0,
        )

    def mark_read(self, business_id, ids):
        if self.fail_writes:
            raise BaseApplicationError("Notification store unavailable")
        self.marked.extend(ids)
        return len(ids)

    def mark_all_read(self, business_id):
        if self.fail_writes:
            raise BaseApplicationError("Notification store unavailable")
        self.marked.append("*")
        return 0


def build_rows(*statuses):
    return [NotificationFactory.build(status=status) for status in statuses]


@pytest.fixture
def source():
    return FakeBellSource(build_rows("sent", "pending", "failed", "read"))


@pytest.fixture
def bell(source):
    bell = NotificationBell(BUSINESS_ID, source)
    bell.refresh()
    return bell


class TestBadge:
    @pytest.mark.parametrize(
        "unread, label",
        [(0, None), (1, "1"), (99, "99"), (100, "99+"), (250, "99+")],
    )
    def test_badge_label(self, unread, label):
        bell = NotificationBell(BUSINESS_ID, FakeBellSource([], unread_count=unread))
        bell.refresh()

        assert bell.badge_label == label


class TestRefresh:
    def test_loads_rows_and_counts(self, bell):
        assert len(bell.notifications) == 4
        assert bell.total == 4
        assert bell.unread_count == 2

    def test_respects_limit(self):
        source = FakeBellSource(build_rows(*["sent"] * 15))
        bell = NotificationBell(BUSINESS_ID, source, limit=10)

        bell.refresh()

        assert len(bell.notifications) == 10
        assert bell.total == 15

    def test_failure_keeps_previous_state(self, bell, source):
        source.fail_fetch = True

        assert bell.refresh() is False
        assert len(bell.notifications) == 4
        assert bell.unread_count == 2


class TestOptimisticUpdates:
    def test_mark_read_unread_row(self, bell, source):
        row_id = bell.notifications[0]["id"]

        assert bell.mark_read(row_id)

        assert bell.notifications[0]["status"] == "read"
        assert bell.unread_count == 1
        assert source.marked == [row_id]

    def test_mark_read_failed_row_keeps_count(self, bell):
        failed_id = bell.notifications[2]["id"]

        bell.mark_read(failed_id)

        assert bell.notifications[2]["status"] == "read"
        assert bell.unread_count == 2

    def test_count_never_negative(self, source):
        source.unread_count = 0
        bell = NotificationBell(BUSINESS_ID, source)
        bell.refresh()

        bell.mark_read(bell.notifications[0]["id"])

        assert bell.unread_count == 0

    def test_mark_read_failure_refreshes(self, bell, source):
        source.fail_writes = True
        fetches_before = source.fetches

        assert bell.mark_read(bell.notifications[0]["id"]) is False

        assert source.fetches == fetches_before + 1
        assert bell.notifications[0]["status"] == "sent"
        assert bell.unread_count == 2

    def test_mark_all_read_skips_failed_rows(self, bell, source):
        assert bell.mark_all_read()

        assert [row["status"] for row in bell.notifications] == ["read", "read", "failed", "read"]
        assert bell.unread_count == 0
        assert source.marked == ["*"]

    def test_mark_all_read_failure_refreshes(self, bell, source):
        source.fail_writes = True

        assert bell.mark_all_read() is False

        assert bell.unread_count == 2


@pytest.mark.asyncio
async def test_poll_refreshes_until_stopped(source):
    bell = NotificationBell(BUSINESS_ID, source)
    stop = asyncio.Event()

    task = asyncio.create_task(bell.poll(stop, interval=0.01))
    await asyncio.sleep(0.05)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert source.fetches >= 2
    assert bell.unread_count == 2


@pytest.mark.django_db
class TestServiceBellSource:
    def test_satisfies_protocol(self):
        assert isinstance(ServiceBellSource(), BellSource)

    def test_round_trip(self, business):
        NotificationFactory.create_batch(2, business=business, status="sent")
        bell = NotificationBell(business.id, ServiceBellSource())

        bell.refresh()
        bell.mark_all_read()
        bell.refresh()

        assert bell.total == 2
        assert bell.unread_count == 0
        assert bell.badge_label is None

    def test_errors_are_raised(self):
        with pytest.raises(BaseApplicationError):
            ServiceBellSource().fetch("not-a-uuid", limit=10)
