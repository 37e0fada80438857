"""Tests for ScheduledSend: preparation, exact-time delivery and cycle completion."""

import asyncio

import pytest

from conftest import T, FakeChannel, make_record
from notibot.scheduler import (
    PreparedPayload,
    SendState,
    StaleGeneration,
    TargetRef,
    TransientSendError,
    normalize_pattern,
)

CHANNEL_TARGET = TargetRef("channel", 20, 10)


class FailingRenderer:
    def render(self, record):
        raise ValueError("bad template")


class AsyncRenderer:
    async def render(self, record):
        await asyncio.sleep(0)
        return record.message.upper()


class FlakyChannel(FakeChannel):
    async def send(self, target, payload):
        raise TransientSendError("503 Service Unavailable")


class UnreachableChannel(FakeChannel):
    async def resolve_target(self, ref, fresh=False):
        raise TransientSendError("503 Service Unavailable")


def armed(scheduler, store, index=-1, **changes):
    """Schedule a record and return one of its sends (the on-time one by default)."""
    record = make_record(**changes)
    store.records[record.id] = record
    scheduler.schedule(record)
    return scheduler.table.sends(record.id)[index]


class TestPrepare:
    @pytest.mark.asyncio
    async def test_edit_before_wake_is_sent(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        store.edit(1, message="moved to room B")

        clock.now = T
        await send.run()

        assert channel.sent == [(CHANNEL_TARGET, "moved to room B")]

    @pytest.mark.asyncio
    async def test_private_notification_targets_owner(self, scheduler, store, channel, clock):
        send = armed(scheduler, store, guild_id=None, channel_id=None)

        clock.now = T
        await send.run()

        assert channel.sent == [(TargetRef("user", 30), "hello")]

    @pytest.mark.asyncio
    async def test_missing_target_still_completes_cycle(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        channel.missing.add(20)

        clock.now = T
        await send.run()

        assert send.state is SendState.FAILED
        assert channel.sent == []
        assert store.updates == [(1, {"active": False, "last_trigger": T, "trigger": None})]
        assert not scheduler.table.is_current(1, send.generation)

    @pytest.mark.asyncio
    async def test_transient_resolve_error_rearms_repeating(self, scheduler, store, clock):
        scheduler.channel = UnreachableChannel()
        send = armed(scheduler, store, repeat=True, frequency=3600)

        clock.now = T
        await send.run()

        assert send.state is SendState.FAILED
        assert store.updates == [(1, {"active": True, "last_trigger": T, "trigger": T + 3600})]
        assert [s.send_time for s in scheduler.table.sends(1)] == [T + 3600]

    @pytest.mark.asyncio
    async def test_failed_reminder_leaves_cycle_alone(self, scheduler, store, channel, clock):
        reminder = armed(scheduler, store, index=0, pattern="5,time")
        channel.missing.add(20)

        clock.now = T - 300
        await reminder.run()

        assert reminder.state is SendState.FAILED
        assert store.updates == []
        assert scheduler.table.is_current(1, reminder.generation)

    @pytest.mark.asyncio
    async def test_record_without_any_target_fails(self, scheduler, store, channel, clock):
        send = armed(scheduler, store, guild_id=None, channel_id=None, created_by=None)

        clock.now = T
        await send.run()

        assert send.state is SendState.FAILED
        assert channel.resolved == []

    @pytest.mark.asyncio
    async def test_inactive_record_goes_stale(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        store.edit(1, active=False)

        clock.now = T
        await send.run()

        assert send.state is SendState.STALE
        assert channel.sent == []
        assert store.updates == []

    @pytest.mark.asyncio
    async def test_deleted_record_goes_stale(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        del store.records[1]

        clock.now = T
        await send.run()

        assert send.state is SendState.STALE
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_render_error_fails_send(self, scheduler, store, channel, clock):
        scheduler.renderer = FailingRenderer()
        send = armed(scheduler, store)

        clock.now = T
        await send.run()

        assert send.state is SendState.FAILED
        assert channel.sent == []
        assert store.records[1].active is False
        assert store.records[1].trigger is None

    @pytest.mark.asyncio
    async def test_async_renderer_is_awaited(self, scheduler, store, channel, clock):
        scheduler.renderer = AsyncRenderer()
        send = armed(scheduler, store)

        clock.now = T
        await send.run()

        assert channel.sent == [(CHANNEL_TARGET, "HELLO")]

    @pytest.mark.asyncio
    async def test_prepared_payload_is_immutable(self, scheduler, store, clock):
        send = armed(scheduler, store)
        clock.now = T - 3

        prepared = await send.prepare()

        assert isinstance(prepared, PreparedPayload)
        assert prepared.target == CHANNEL_TARGET
        assert prepared.send_time == T
        with pytest.raises(AttributeError):
            prepared.payload = "other"


class TestDeliver:
    @pytest.mark.asyncio
    async def test_reminder_send_writes_nothing(self, scheduler, store, channel, clock):
        reminder = armed(scheduler, store, index=0, pattern="5,time")
        assert not reminder.is_final

        clock.now = T - 300
        await reminder.run()

        assert reminder.state is SendState.SENT
        assert channel.sent == [(CHANNEL_TARGET, "hello")]
        assert store.updates == []
        assert scheduler.table.is_current(1, reminder.generation)
        assert len(scheduler.table.sends(1)) == 2

    @pytest.mark.asyncio
    async def test_target_resolved_again_at_send_time(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)

        clock.now = T
        await send.run()

        assert channel.resolved == [(CHANNEL_TARGET, False), (CHANNEL_TARGET, True)]

    @pytest.mark.asyncio
    async def test_cancel_during_wait_raises_stale(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        clock.now = T - 0.05
        prepared = await send.prepare()

        waiting = asyncio.create_task(send.deliver(prepared))
        await asyncio.sleep(0)
        assert send.state is SendState.WAITING_EXACT
        scheduler.unschedule(1)

        with pytest.raises(StaleGeneration):
            await waiting
        assert channel.sent == []

    @pytest.mark.asyncio
    async def test_reschedule_during_wait_drops_old_send(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        clock.now = T - 0.05
        prepared = await send.prepare()
        store.edit(1, trigger=T + 600)
        scheduler.add_notification(1)

        with pytest.raises(StaleGeneration):
            await send.deliver(prepared)
        assert channel.sent == []
        assert [s.send_time for s in scheduler.table.sends(1)] == [T + 600]

    @pytest.mark.asyncio
    async def test_transient_send_error_still_completes_cycle(self, scheduler, store, clock):
        scheduler.channel = FlakyChannel()
        send = armed(scheduler, store, repeat=True, frequency=3600)

        clock.now = T
        await send.run()

        assert send.state is SendState.FAILED
        assert store.updates == [(1, {"active": True, "last_trigger": T, "trigger": T + 3600})]
        assert [s.send_time for s in scheduler.table.sends(1)] == [T + 3600]


class TestCompletion:
    @pytest.mark.asyncio
    async def test_one_off_is_deactivated(self, scheduler, store, clock):
        send = armed(scheduler, store)

        clock.now = T
        await send.run()

        assert send.state is SendState.SENT
        assert store.updates == [(1, {"active": False, "last_trigger": T, "trigger": None})]
        assert store.records[1].active is False
        assert 1 not in scheduler.table
        assert any(message.startswith("Notification sent") for _, message, _ in store.logs)

    @pytest.mark.asyncio
    async def test_repeating_is_rearmed_one_period_later(self, scheduler, store, clock):
        send = armed(scheduler, store, repeat=True, frequency=3600, pattern="10,time")

        clock.now = T
        await send.run()

        assert store.records[1].trigger == T + 3600
        assert store.records[1].last_trigger == T
        assert [s.send_time for s in scheduler.table.sends(1)] == [T + 3000, T + 3600]
        assert scheduler.table.generation(1) > send.generation

    @pytest.mark.asyncio
    async def test_late_completion_skips_missed_periods(self, scheduler, store, clock):
        send = armed(scheduler, store, repeat=True, frequency=3600)

        clock.now = T + 7205
        await send.run()

        assert store.records[1].trigger == T + 10800
        assert [s.send_time for s in scheduler.table.sends(1)] == [T + 10800]

    @pytest.mark.asyncio
    async def test_concurrent_edits_survive_completion(self, scheduler, store, channel, clock):
        send = armed(scheduler, store, repeat=True, frequency=86400)
        clock.now = T
        prepared = await send.prepare()

        store.edit(1, message="new agenda", name="weekly sync")
        await send.deliver(prepared)

        saved = store.records[1]
        assert channel.sent == [(CHANNEL_TARGET, "hello")]
        assert saved.message == "new agenda"
        assert saved.name == "weekly sync"
        assert saved.trigger == T + 86400
        ((_, fields),) = store.updates
        assert set(fields) == {"active", "last_trigger", "trigger"}

    @pytest.mark.asyncio
    async def test_reminder_only_pattern_from_user_still_repeats(self, scheduler, store, channel, clock):
        store.records[1] = make_record(repeat=True, frequency=3600, pattern=normalize_pattern("10"))
        scheduler.add_notification(1)
        reminder, on_time = scheduler.table.sends(1)

        clock.now = T - 600
        await reminder.run()
        clock.now = T
        await on_time.run()

        assert len(channel.sent) == 2
        assert store.records[1].trigger == T + 3600
        assert [s.send_time for s in scheduler.table.sends(1)] == [T + 3000, T + 3600]

    @pytest.mark.asyncio
    async def test_runs_at_most_once_per_cycle(self, scheduler, store, clock):
        send = armed(scheduler, store, repeat=True, frequency=3600)

        clock.now = T
        await send.run()
        await scheduler.complete_cycle(send)

        assert len(store.updates) == 1
        assert store.records[1].trigger == T + 3600

    @pytest.mark.asyncio
    async def test_persistence_failure_does_not_raise(self, scheduler, store, channel, clock):
        send = armed(scheduler, store)
        store.fail_writes = True

        clock.now = T
        await send.run()

        assert send.state is SendState.SENT
        assert channel.sent == [(CHANNEL_TARGET, "hello")]
        assert 1 not in scheduler.table


class TestTimers:
    @pytest.mark.asyncio
    async def test_timer_fires_and_sends(self, scheduler, store, channel, clock):
        clock.now = T - 0.05
        store.records[1] = make_record()

        assert scheduler.add_notification(1) == 1
        await asyncio.sleep(0.3)

        assert channel.sent == [(CHANNEL_TARGET, "hello")]
        assert store.records[1].active is False
        assert not scheduler._running

    @pytest.mark.asyncio
    async def test_unscheduled_timer_never_fires(self, scheduler, store, channel, clock):
        clock.now = T - 0.05
        store.records[1] = make_record()

        scheduler.add_notification(1)
        scheduler.unschedule(1)
        await asyncio.sleep(0.3)

        assert channel.sent == []
        assert store.updates == []
