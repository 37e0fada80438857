"""Shared fixtures for the scheduler test suite.

Provides in-memory fakes for the scheduler's collaborators (store, renderer,
channel and clock) so the timer lifecycle can be driven without Discord or a
database.
"""

import pytest

from notibot.scheduler import (
    NotificationRecord,
    NotificationScheduler,
    PersistenceFailure,
    TargetNotFound,
)

T = 1_700_000_000


class FakeClock:
    """Clock returning a settable epoch time."""

    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeStore:
    """Dict-backed store; update() merges only the given fields like the sqlite store."""

    def __init__(self, records=()) -> None:
        self.records = {r.id: r for r in records}
        self.updates = []
        self.logs = []
        self.fail_writes = False

    def get_active_records(self):
        return [r for r in self.records.values() if r.active]

    def get_by_id(self, notif_id):
        return self.records.get(notif_id)

    def update(self, notif_id, fields):
        self.updates.append((notif_id, dict(fields)))
        if self.fail_writes:
            raise PersistenceFailure("database is locked", notif_id)
        self.records[notif_id] = self.records[notif_id].replace(**fields)

    def set_active(self, notif_id, active):
        self.update(notif_id, {"active": active})

    def add_log(self, level, message, details=None):
        self.logs.append((level, message, details))

    def edit(self, notif_id, **changes):
        """Simulate a concurrent edit through the UI."""
        self.records[notif_id] = self.records[notif_id].replace(**changes)


class FakeRenderer:
    def render(self, record):
        return record.message


class FakeChannel:
    """Records resolutions and sends; target IDs in `missing` are unreachable."""

    def __init__(self) -> None:
        self.sent = []
        self.resolved = []
        self.missing = set()

    async def resolve_target(self, ref, fresh=False):
        self.resolved.append((ref, fresh))
        if ref.target_id in self.missing:
            raise TargetNotFound(f"{ref.kind} {ref.target_id} not found")
        return ref

    async def send(self, target, payload):
        self.sent.append((target, payload))


def make_record(**kwargs) -> NotificationRecord:
    """Build an active one-off channel notification due at T."""
    defaults = dict(
        id=1,
        name="standup",
        guild_id=10,
        channel_id=20,
        created_by=30,
        message="hello",
        pattern="time",
        repeat=False,
        frequency=None,
        active=True,
        trigger=T,
    )
    defaults.update(kwargs)
    return NotificationRecord(**defaults)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T - 3600)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def scheduler(store, channel, clock):
    """Scheduler over the fakes; timers are cancelled on teardown."""
    sched = NotificationScheduler(store, FakeRenderer(), channel, clock=clock, early_buffer=3)
    yield sched
    sched.table.clear()
