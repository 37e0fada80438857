"""
Package: notibot/scheduler

Provides NotificationRecord, the send plan compiler, ScheduleTable,
ScheduledSend and NotificationScheduler.
"""
from .errors import (
    MalformedRecord,
    PersistenceFailure,
    RenderError,
    SchedulerError,
    StaleGeneration,
    TargetNotFound,
    TransientSendError,
)
from .record import NotificationRecord
from .plan import ON_TIME, compile_send_plan, fast_forward, normalize_pattern, parse_offset
from .table import ScheduleTable
from .interfaces import TargetRef
from .dispatch import PreparedPayload, ScheduledSend, SendState
from .manager import DEFAULT_EARLY_BUFFER, NotificationScheduler
