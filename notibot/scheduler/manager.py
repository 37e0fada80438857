"""
Module: notibot/scheduler/manager.py

Defines NotificationScheduler: arms one timer per future entry of each active
notification's send plan, recovers from downtime by fast-forwarding repeating
triggers, and re-arms or deactivates notifications after their on-time send.
"""
import asyncio
import time

from notibot.scheduler.dispatch import ScheduledSend
from notibot.scheduler.errors import MalformedRecord, PersistenceFailure
from notibot.scheduler.plan import compile_send_plan, fast_forward
from notibot.scheduler.table import ScheduleTable
from notibot.utils import format_timestamp, log_message

# Seconds each timer wakes ahead of its exact send time to fetch and render
DEFAULT_EARLY_BUFFER = 3.0


class NotificationScheduler:
    """
    Orchestrates scheduling of notification sends.

    Responsibilities:
      - Restore active notifications on startup, fast-forwarding missed repeats.
      - Arm the send plan of a notification whenever it changes.
      - Cancel schedules by bumping their generation.
      - Persist the outcome of each on-time send and continue repeating cycles.

    Attributes:
      store: Notification store (get_active_records, get_by_id, update, set_active, add_log).
      renderer: Builds the message payload from a record.
      channel: Resolves delivery targets and sends payloads.
      clock: Callable returning the current epoch time in seconds.
      early_buffer (float): Seconds each timer wakes before its send time.
      table (ScheduleTable): Live generations and armed sends.
    """
    def __init__(self, store, renderer, channel, clock=None,
                 early_buffer=DEFAULT_EARLY_BUFFER, loop=None):
        """
        Initialize the NotificationScheduler.

        Args:
            store: Notification store.
            renderer: Payload renderer.
            channel: Delivery channel.
            clock (callable, optional): Epoch seconds source. Defaults to time.time.
            early_buffer (float, optional): Early wake-up lead in seconds.
            loop (optional): Event loop for timers. Defaults to the running loop.
        """
        self.store = store
        self.renderer = renderer
        self.channel = channel
        self.clock = clock or time.time
        self.early_buffer = max(0.0, float(early_buffer))
        self.table = ScheduleTable()
        self._loop = loop
        self._running = set()

    def now(self):
        return int(self.clock())

    def spawn(self, coro):
        """Run coro as a task, keeping a reference until it finishes."""
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro)
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return task

    async def reinitialize(self, active_records=None):
        """
        Drop every armed timer and schedule all active notifications again.

        Past one-off notifications are deactivated. Past repeating ones get a
        future trigger computed in one step and persisted before arming.

        Args:
            active_records (list, optional): Records to restore. Loaded from the store when omitted.
        """
        self.table.clear()
        if active_records is None:
            try:
                active_records = self.store.get_active_records()
            except PersistenceFailure as e:
                log_message(f"Could not load active notifications: {e.message}", "error")
                return

        now = self.now()
        restored = 0
        for record in active_records:
            if not record.active:
                continue
            try:
                record.validate()
            except MalformedRecord as e:
                log_message(f"Skipping notification {record.id}: {e.message}", "warning")
                continue

            if record.trigger < now:
                if not record.repeat:
                    self._deactivate_expired(record, now)
                    continue
                new_trigger = fast_forward(record.trigger, record.frequency, now)
                try:
                    self.store.update(record.id, {'trigger': new_trigger})
                    self._log_event(
                        'info',
                        f"Recalculated next trigger for repeating notification: {record.name}",
                        notification_id=record.id,
                        old_trigger=record.trigger,
                        new_trigger=new_trigger,
                        frequency=record.frequency,
                    )
                except PersistenceFailure as e:
                    log_message(f"Failed to persist trigger of notification {record.id}: {e.message}", "error")
                record = record.replace(trigger=new_trigger)

            log_message(
                f"Restoring notification {record.id}, next run at {format_timestamp(record.trigger)}",
                "info"
            )
            if self.schedule(record):
                restored += 1

        log_message(f"Scheduler initialized with {restored} active notification(s)", "info")

    def schedule(self, record):
        """
        Cancel any existing schedule for the record and arm its send plan.

        Entries already in the past are skipped. If none remain, one-off
        notifications are deactivated; repeating ones wait for their next
        cycle. Malformed records are logged and left unscheduled.

        Args:
            record (NotificationRecord): The notification to schedule.

        Returns:
            int: Number of timers armed.
        """
        generation = self.table.bump(record.id)
        try:
            record.validate()
        except MalformedRecord as e:
            log_message(f"Not scheduling notification {record.id}: {e.message}", "debug")
            return 0

        loop = self._loop or asyncio.get_running_loop()
        now = self.clock()
        armed = 0
        for send_time in compile_send_plan(record.trigger, record.pattern):
            delay = send_time - now
            if delay <= 0:
                continue
            send = ScheduledSend(self, record.id, generation, send_time, record.trigger)
            send.arm(loop, max(0.0, delay - self.early_buffer))
            self.table.attach(record.id, generation, send)
            armed += 1

        if not armed and not record.repeat:
            self.table.discard(record.id)
            self._deactivate_expired(record, int(now), clear_trigger=True)
        elif armed:
            log_message(
                f"Scheduled notification {record.id}: {armed} send(s), trigger {format_timestamp(record.trigger)}",
                "debug"
            )
        return armed

    def unschedule(self, notif_id):
        """
        Cancel every pending send of a notification. Safe to call for unknown IDs.

        Args:
            notif_id (int): ID of the notification to cancel.
        """
        self.table.discard(notif_id)

    def add_notification(self, notif_id):
        """
        Re-read a notification after it was created or edited and (re)schedule it.

        Inactive or deleted notifications are unscheduled instead.

        Returns:
            int: Number of timers armed.
        """
        try:
            record = self.store.get_by_id(notif_id)
        except PersistenceFailure as e:
            log_message(f"Could not load notification {notif_id}: {e.message}", "error")
            return 0
        if record is None or not record.active:
            self.unschedule(notif_id)
            return 0
        return self.schedule(record)

    async def shutdown(self):
        """
        Cancel all pending timers and clear the schedule table.
        """
        self.table.clear()
        log_message("Notification scheduler stopped", "info")

    async def complete_cycle(self, send):
        """
        Persist the outcome of an on-time send and continue or end the cycle.

        Runs at most once per generation: the claim and the generation bump
        happen before any other work.

        Args:
            send (ScheduledSend): The on-time send that just finished.
        """
        if not self.table.is_current(send.notif_id, send.generation):
            return
        self.table.bump(send.notif_id)

        now = self.now()
        try:
            record = self.store.get_by_id(send.notif_id)
        except PersistenceFailure as e:
            log_message(f"Could not reload notification {send.notif_id}: {e.message}", "error")
            return
        if record is None:
            self.table.discard(send.notif_id)
            return

        if record.repeat and record.frequency and record.frequency > 0:
            fields = {
                'active': True,
                'last_trigger': now,
                'trigger': fast_forward(send.trigger, record.frequency, now),
            }
        else:
            fields = {'active': False, 'last_trigger': now, 'trigger': None}

        try:
            self.store.update(record.id, fields)
            self._log_event(
                'info',
                f"Notification sent: {record.name}",
                notification_id=record.id,
                type='private' if record.is_private else 'server',
                repeat=record.repeat,
                next_trigger=fields['trigger'],
            )
        except PersistenceFailure as e:
            log_message(f"Failed to persist completion of notification {record.id}: {e.message}", "error")

        if fields['active']:
            self.schedule(record.replace(**fields))
        else:
            self.table.discard(record.id)

    def _deactivate_expired(self, record, now, clear_trigger=False):
        """Mark a one-off notification whose time has passed as inactive."""
        try:
            if clear_trigger:
                self.store.update(record.id, {'active': False, 'last_trigger': now, 'trigger': None})
            else:
                self.store.set_active(record.id, False)
            self._log_event(
                'info',
                f"Deactivated past one-time notification: {record.name}",
                notification_id=record.id,
                past_trigger=record.trigger,
                current_time=now,
            )
        except PersistenceFailure as e:
            log_message(f"Failed to deactivate notification {record.id}: {e.message}", "error")

    def _log_event(self, level, message, **details):
        log_message(message, level)
        try:
            self.store.add_log(level, message, details)
        except PersistenceFailure as e:
            log_message(f"Failed to write system log: {e.message}", "warning")
