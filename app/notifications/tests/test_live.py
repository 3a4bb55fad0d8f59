"""
Tests for live notification sessions.

These tests verify that:
- Only this business's in-app/push rows become toasts
- Duplicates and dismissed ids are suppressed
- Auto-dismiss timing and badges follow priority
- Acknowledgement happens at most once per id
- Undo restores a toast without re-acknowledging
"""

import asyncio
import dataclasses
import uuid

import pytest

from notifications.live import (
    AUTO_DISMISS_MS,
    BoundedIdSet,
    LiveNotificationSession,
    SoundCue,
    Toast,
)

BUSINESS_ID = "3c5e7a90-1b2d-4f6a-8c9e-0a1b2c3d4e5f"


def make_row(**overrides):
    row = {
        "id": str(uuid.uuid4()),
        "business_id": BUSINESS_ID,
        "channel": "in_app",
        "type": "new_lead",
        "priority": "medium",
        "title": "New lead: Jane",
        "message": "From website form",
    }
    row.update(overrides)
    return row


class RecordingAcknowledger:
    def __init__(self, fail_times=0):
        self.calls = []
        self.fail_times = fail_times

    async def __call__(self, notification_id):
        self.calls.append(notification_id)
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("network down")


@pytest.fixture
def acknowledge():
    return RecordingAcknowledger()


@pytest.fixture
def session(acknowledge):
    return LiveNotificationSession(BUSINESS_ID, acknowledge=acknowledge, settle_delay=0)


class TestBoundedIdSet:
    def test_clears_when_full(self):
        ids = BoundedIdSet(capacity=2)
        ids.add("a")
        ids.add("b")

        ids.add("c")

        assert "c" in ids
        assert "a" not in ids
        assert len(ids) == 1

    def test_re_adding_existing_id_does_not_clear(self):
        ids = BoundedIdSet(capacity=2)
        ids.add("a")
        ids.add("b")

        ids.add("a")

        assert len(ids) == 2


class TestToast:
    @pytest.mark.parametrize(
        "priority, duration_ms, badge, sound",
        [
            ("urgent", 15000, "Urgent", SoundCue(880)),
            ("high", 10000, "High Priority", SoundCue(660)),
            ("medium", 6000, None, None),
            ("low", 4000, None, None),
        ],
    )
    def test_priority_presentation(self, priority, duration_ms, badge, sound):
        toast = Toast.from_row(make_row(priority=priority))

        assert toast.duration_ms == duration_ms
        assert toast.badge == badge
        assert toast.sound == sound

    def test_auto_dismiss_table(self):
        assert AUTO_DISMISS_MS == {"urgent": 15000, "high": 10000, "medium": 6000, "low": 4000}

    def test_icon_from_type(self):
        assert Toast.from_row(make_row(type="missed_call")).icon == "phone-missed"

    def test_to_dict_nests_sound(self):
        data = Toast.from_row(make_row(priority="urgent")).to_dict()

        assert data["priority"] == "urgent"
        assert data["sound"] == {"frequency_hz": 880, "duration_ms": 300, "waveform": "sine"}


@pytest.mark.asyncio
class TestLiveNotificationSession:
    async def test_surfaces_in_app_row(self, session):
        row = make_row()

        toast = await session.receive(row)

        assert toast.id == row["id"]
        assert toast.title == "New lead: Jane"

    @pytest.mark.parametrize(
        "overrides",
        [{"business_id": "00000000-0000-4000-8000-000000000000"}, {"channel": "sms"}],
    )
    async def test_filters_other_tenants_and_channels(self, session, overrides):
        assert await session.receive(make_row(**overrides)) is None

    async def test_suppresses_duplicates(self, session):
        row = make_row(channel="push")

        assert await session.receive(row) is not None
        assert await session.receive(dict(row)) is None

    async def test_dismiss_acknowledges_once(self, session, acknowledge):
        row = make_row()
        await session.receive(row)

        await session.dismiss(row["id"])
        await session.auto_dismiss(row["id"])

        assert acknowledge.calls == [row["id"]]
        assert session.is_dismissed(row["id"])

    async def test_failed_acknowledgement_is_retried(self):
        acknowledge = RecordingAcknowledger(fail_times=1)
        session = LiveNotificationSession(BUSINESS_ID, acknowledge=acknowledge, settle_delay=0)

        await session.dismiss("n-1")
        await session.dismiss("n-1")
        await session.dismiss("n-1")

        assert acknowledge.calls == ["n-1", "n-1"]

    async def test_acknowledge_on_display(self, acknowledge):
        session = LiveNotificationSession(
            BUSINESS_ID, acknowledge=acknowledge, settle_delay=0, acknowledge_on_display=True
        )
        row = make_row()

        await session.receive(row)
        await session.dismiss(row["id"])

        assert acknowledge.calls == [row["id"]]

    async def test_undo_restores_toast(self, session, acknowledge):
        row = make_row()
        toast = await session.receive(row)
        await session.dismiss(row["id"])

        restored = session.undo(row["id"])

        assert restored == toast
        assert not session.is_dismissed(row["id"])
        assert acknowledge.calls == [row["id"]]

    async def test_undo_unknown_id(self, session):
        assert session.undo("missing") is None

    async def test_auto_dismiss_timer(self, acknowledge):
        session = LiveNotificationSession(
            BUSINESS_ID, acknowledge=acknowledge, settle_delay=0, release_delay=0
        )
        toast = await session.receive(make_row())
        expired = []

        async def on_expire(notification_id):
            expired.append(notification_id)

        task = session.schedule_auto_dismiss(
            dataclasses.replace(toast, duration_ms=10), on_expire=on_expire
        )
        await asyncio.wait_for(task, timeout=1)

        assert expired == [toast.id]
        assert acknowledge.calls == [toast.id]
        assert session.is_dismissed(toast.id)

    async def test_close_cancels_timers(self, session, acknowledge):
        toast = await session.receive(make_row())
        task = session.schedule_auto_dismiss(toast)

        await session.close()

        assert task.cancelled()
        assert acknowledge.calls == []

    async def test_settle_delay_is_awaited(self, acknowledge, mocker):
        sleep = mocker.patch("notifications.live.asyncio.sleep", new=mocker.AsyncMock())
        session = LiveNotificationSession(BUSINESS_ID, acknowledge=acknowledge)

        await session.receive(make_row())

        sleep.assert_awaited_once_with(0.1)

    async def test_acknowledged_ids_stay_bounded(self, acknowledge):
        session = LiveNotificationSession(
            BUSINESS_ID, acknowledge=acknowledge, settle_delay=0, dismissed_capacity=100
        )

        for i in range(5000):
            await session.dismiss(f"n-{i}")

        assert len(session._acknowledged) <= 100
        assert len(acknowledge.calls) == 5000

    async def test_schedule_receive_does_not_wait_for_settle(self, acknowledge):
        session = LiveNotificationSession(BUSINESS_ID, acknowledge=acknowledge, settle_delay=0.05)
        shown = []

        async def on_toast(toast):
            shown.append(toast.id)

        first, second = make_row(), make_row()
        tasks = [
            session.schedule_receive(first, on_toast),
            session.schedule_receive(second, on_toast),
        ]

        assert shown == []
        await asyncio.wait_for(asyncio.gather(*tasks), timeout=1)
        assert sorted(shown) == sorted([first["id"], second["id"]])

    async def test_close_cancels_pending_receive(self, acknowledge):
        session = LiveNotificationSession(BUSINESS_ID, acknowledge=acknowledge, settle_delay=10)
        shown = []

        async def on_toast(toast):
            shown.append(toast.id)

        task = session.schedule_receive(make_row(), on_toast)
        await session.close()

        assert task.cancelled()
        assert shown == []
