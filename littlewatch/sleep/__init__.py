"""Sleep state driven by channel events and REST sleep endpoints."""

from littlewatch.sleep.tracker import SleepState, SleepTracker

__all__ = ["SleepState", "SleepTracker"]
