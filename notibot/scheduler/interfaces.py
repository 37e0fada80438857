"""
Module: notibot/scheduler/interfaces.py

Collaborators the scheduler depends on. The bot wires in the sqlite store,
the message renderer and the Discord channel; tests wire in fakes.
"""
from typing import Any, NamedTuple, Optional, Protocol

from notibot.scheduler.record import NotificationRecord


class TargetRef(NamedTuple):
    """
    Identifiers of a delivery target, safe to hold across waits.

    kind is 'channel' (guild_id + target_id) or 'user' (target_id is the
    recipient).
    """
    kind: str
    target_id: int
    guild_id: Optional[int] = None

    @classmethod
    def for_record(cls, record):
        """Channel target for guild notifications, DM target otherwise; None if neither."""
        if not record.is_private:
            return cls('channel', record.channel_id, record.guild_id)
        if record.created_by:
            return cls('user', record.created_by)
        return None


class Store(Protocol):
    def get_active_records(self) -> list[NotificationRecord]: ...

    def get_by_id(self, notif_id: int) -> Optional[NotificationRecord]: ...

    def update(self, notif_id: int, fields: dict) -> None: ...

    def set_active(self, notif_id: int, active: bool) -> None: ...

    def add_log(self, level: str, message: str, details: Optional[dict] = None) -> None: ...


class Renderer(Protocol):
    def render(self, record: NotificationRecord) -> Any: ...


class Channel(Protocol):
    async def resolve_target(self, ref: TargetRef, fresh: bool = False) -> Any: ...

    async def send(self, target: Any, payload: Any) -> None: ...
