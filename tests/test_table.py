"""Tests for the schedule table's generation bookkeeping."""

from notibot.scheduler import ScheduleTable


class StubSend:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


def test_bump_returns_increasing_generations():
    table = ScheduleTable()
    first = table.bump(1)
    second = table.bump(1)
    assert second > first
    assert table.is_current(1, second)
    assert not table.is_current(1, first)


def test_bump_cancels_armed_sends_and_drops_entry():
    table = ScheduleTable()
    gen = table.bump(1)
    sends = [StubSend(), StubSend()]
    for send in sends:
        table.attach(1, gen, send)
    assert 1 in table
    assert len(table.sends(1)) == 2

    table.bump(1)

    assert all(s.cancelled for s in sends)
    assert 1 not in table
    assert table.sends(1) == []


def test_bump_unknown_id_is_harmless():
    table = ScheduleTable()
    gen = table.bump(42)
    assert table.generation(42) == gen
    assert len(table) == 0


def test_generations_never_reused_after_clear():
    table = ScheduleTable()
    old = table.bump(1)
    send = StubSend()
    table.attach(1, old, send)

    table.clear()

    assert send.cancelled
    assert table.generation(1) is None
    assert not table.is_current(1, old)
    assert table.bump(1) != old


def test_ids_are_independent():
    table = ScheduleTable()
    gen_a = table.bump(1)
    table.bump(2)
    assert table.is_current(1, gen_a)


def test_discard_forgets_generation_and_cancels():
    table = ScheduleTable()
    gen = table.bump(1)
    send = StubSend()
    table.attach(1, gen, send)

    table.discard(1)

    assert send.cancelled
    assert 1 not in table
    assert table.generation(1) is None
    assert not table.is_current(1, gen)


def test_discard_unknown_id_leaves_no_trace():
    table = ScheduleTable()
    for notif_id in range(100):
        table.discard(notif_id)
    assert table.generation(0) is None
    assert not table._generations
