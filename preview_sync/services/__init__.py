from .scheduler import AfterCancelFn, AfterFn, Scheduler, VirtualScheduler
from .sync_timers import DEFAULT_TIMING, SyncTimers, SyncTimingProfile

__all__ = [
    "AfterCancelFn",
    "AfterFn",
    "Scheduler",
    "VirtualScheduler",
    "DEFAULT_TIMING",
    "SyncTimers",
    "SyncTimingProfile",
]
