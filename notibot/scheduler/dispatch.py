"""
Module: notibot/scheduler/dispatch.py

Defines ScheduledSend: one armed entry of a notification's send plan. It wakes
early, prepares the payload from a fresh copy of the record, waits out the
remaining delta and sends at the exact timestamp.
"""
import asyncio
import traceback
from enum import Enum
from typing import Any, NamedTuple

from notibot.scheduler.errors import (
    RenderError,
    StaleGeneration,
    TargetNotFound,
    TransientSendError,
)
from notibot.scheduler.interfaces import TargetRef
from notibot.utils import format_timestamp, log_message, maybe_await


class SendState(Enum):
    ARMED = 'armed'
    PREPARING = 'preparing'
    WAITING_EXACT = 'waiting_exact'
    SENT = 'sent'
    STALE = 'stale'
    FAILED = 'failed'


class PreparedPayload(NamedTuple):
    """Everything needed to send, holding target identifiers rather than live handles."""
    notif_id: int
    generation: int
    send_time: int
    target: TargetRef
    payload: Any


class ScheduledSend:
    """
    Handles a single send of a notification's plan.

    Responsibilities:
      - Wake early_buffer seconds ahead of send_time (armed by the scheduler).
      - Re-fetch the record, resolve the target and render the payload.
      - Wait until send_time, re-resolve the target and send.
      - Hand the on-time send over to the scheduler's completion handler.

    Every step is preceded by a generation check; a mismatch ends the send
    quietly in the STALE state.

    Attributes:
      scheduler: NotificationScheduler that armed this send.
      notif_id: Notification ID.
      generation: Table generation captured when armed.
      send_time: Exact send timestamp (epoch seconds).
      trigger: The plan's canonical trigger; send_time == trigger marks the on-time send.
      state: Current SendState.
      handle: asyncio.TimerHandle of the early wake-up, once armed.
    """
    def __init__(self, scheduler, notif_id, generation, send_time, trigger):
        self.scheduler = scheduler
        self.notif_id = notif_id
        self.generation = generation
        self.send_time = send_time
        self.trigger = trigger
        self.state = SendState.ARMED
        self.handle = None

    @property
    def is_final(self):
        return self.send_time == self.trigger

    def arm(self, loop, delay):
        """Schedule the early wake-up `delay` seconds from now."""
        self.handle = loop.call_later(delay, self._fire)

    def cancel(self):
        """Cancel the wake-up if it has not fired yet; running sends are left alone."""
        if self.handle is not None:
            self.handle.cancel()
        if self.state is SendState.ARMED:
            self.state = SendState.STALE

    def _fire(self):
        self.scheduler.spawn(self.run())

    def claim(self):
        """
        Verify this send still belongs to the live generation.

        Raises:
            StaleGeneration: if the notification was rescheduled or cancelled.
        """
        table = self.scheduler.table
        if not table.is_current(self.notif_id, self.generation):
            raise StaleGeneration(self.notif_id, self.generation, table.generation(self.notif_id))

    async def run(self):
        """
        Prepare, wait and send. Failures are logged and end this send only.

        An on-time send that fails still hands over to the completion
        handler, so a repeating notification moves on to its next cycle.
        """
        try:
            prepared = await self.prepare()
            if prepared is None:
                return
            await self.deliver(prepared)
            return
        except StaleGeneration as e:
            self.state = SendState.STALE
            log_message(f"Dropped stale send: {e.message}", "debug")
            return
        except (TargetNotFound, TransientSendError) as e:
            self.state = SendState.FAILED
            log_message(f"Send aborted for notification {self.notif_id}: {e.message}", "warning")
        except RenderError as e:
            self.state = SendState.FAILED
            log_message(f"Render failed for notification {self.notif_id}: {e.message}", "error")
        except Exception as e:
            self.state = SendState.FAILED
            log_message(
                f"Error in send of notification {self.notif_id}: {e}\n{traceback.format_exc()}",
                "error"
            )

        if not self.is_final:
            return
        try:
            await self.scheduler.complete_cycle(self)
        except Exception as e:
            log_message(
                f"Error completing cycle of notification {self.notif_id}: {e}\n{traceback.format_exc()}",
                "error"
            )

    async def prepare(self):
        """
        Build the payload ahead of the exact send time.

        Returns:
            PreparedPayload, or None when the record is gone or inactive.

        Raises:
            StaleGeneration, TargetNotFound, RenderError
        """
        scheduler = self.scheduler
        self.claim()
        self.state = SendState.PREPARING
        record = scheduler.store.get_by_id(self.notif_id)

        self.claim()
        if record is None or not record.active:
            self.state = SendState.STALE
            log_message(f"Notification {self.notif_id} is no longer active, skipping send", "debug")
            return None

        self.claim()
        target = TargetRef.for_record(record)
        if target is None:
            raise TargetNotFound(f"Notification {self.notif_id} has no channel or owner", self.notif_id)
        handle = await scheduler.channel.resolve_target(target)
        if handle is None:
            raise TargetNotFound(f"{target.kind} {target.target_id} not found", self.notif_id)

        self.claim()
        try:
            payload = await maybe_await(scheduler.renderer.render(record))
        except Exception as e:
            raise RenderError(str(e), self.notif_id) from e

        return PreparedPayload(self.notif_id, self.generation, self.send_time, target, payload)

    async def deliver(self, prepared):
        """
        Wait for the exact send time, then send through a freshly resolved target.

        Raises:
            StaleGeneration, TargetNotFound, TransientSendError
        """
        scheduler = self.scheduler
        self.state = SendState.WAITING_EXACT
        remaining = prepared.send_time - scheduler.clock()
        if remaining > 0:
            await asyncio.sleep(remaining)

        self.claim()
        try:
            target = await scheduler.channel.resolve_target(prepared.target, fresh=True)
            if target is None:
                raise TargetNotFound(
                    f"{prepared.target.kind} {prepared.target.target_id} not found", self.notif_id
                )
            await scheduler.channel.send(target, prepared.payload)
            self.state = SendState.SENT
            log_message(
                f"Dispatched notification {self.notif_id} for {format_timestamp(self.send_time)}"
                f"{'' if self.is_final else ' (reminder)'}",
                "info"
            )
        except (TargetNotFound, TransientSendError) as e:
            self.state = SendState.FAILED
            log_message(f"Send failed for notification {self.notif_id}: {e.message}", "warning")

        if self.is_final:
            await scheduler.complete_cycle(self)
