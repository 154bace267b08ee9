from .snooze_scheduler import SnoozeScheduler

__all__ = ["SnoozeScheduler"]
