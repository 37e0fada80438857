"""
Module: notibot/scheduler/errors.py

Exceptions raised inside the notification scheduler. None of them escape a
single notification's send; they exist so each failure is logged at the right
level and aborts only the work it belongs to.
"""


class SchedulerError(Exception):
    """Base class for every scheduler failure."""

    def __init__(self, message, notif_id=None):
        super().__init__(message)
        self.message = message
        self.notif_id = notif_id


class StaleGeneration(SchedulerError):
    """
    A fired timer whose captured generation no longer matches the table.

    This is the normal outcome of a cancelled or superseded schedule and is
    never reported as an error.
    """

    def __init__(self, notif_id, generation, current):
        super().__init__(
            f"Notification {notif_id} generation {generation} superseded by {current}",
            notif_id,
        )
        self.generation = generation
        self.current = current


class TargetNotFound(SchedulerError):
    """The delivery channel or recipient could not be resolved."""


class TransientSendError(SchedulerError):
    """The transport rejected a send for a reason that may clear up later."""


class RenderError(SchedulerError):
    """Rendering the notification payload failed."""


class PersistenceFailure(SchedulerError):
    """A store write or read failed."""


class MalformedRecord(SchedulerError):
    """A record cannot be scheduled: missing trigger, bad frequency, and so on."""
