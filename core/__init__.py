from core.dedup import content_hash, hashes_equal
from core.dispatcher import DeliveryReport, NotificationDispatcher
from core.monitor import ShutdownMonitor
from core.retry import with_retry
from core.scheduler import Scheduler
from core.state_store import StateStore

__all__ = [
    "DeliveryReport",
    "NotificationDispatcher",
    "Scheduler",
    "ShutdownMonitor",
    "StateStore",
    "content_hash",
    "hashes_equal",
    "with_retry",
]
