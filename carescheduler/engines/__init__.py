"""Engine modules for Care Scheduler.

Contains pure, stateless computation engines:
- shift_engine: Time-of-day to shift classification
- schedule_engine: Weekday-set recurrence and week bounds
- instance_engine: Instance snapshots, ids and the lifecycle state machine
- day_process_engine: Real-time status timeline for the day's events
- statistics_engine: Compliance figures over instances
"""

# Use relative imports within package to avoid mypy module resolution issues
from .day_process_engine import DayProcessEngine, DayProcessItem, ScheduledItem
from .instance_engine import InstanceEngine, TransitionPlan
from .schedule_engine import WeeklyScheduleEngine
from .shift_engine import ShiftEngine
from .statistics_engine import StatisticsEngine

__all__ = [
    "DayProcessEngine",
    "DayProcessItem",
    "InstanceEngine",
    "ScheduledItem",
    "ShiftEngine",
    "StatisticsEngine",
    "TransitionPlan",
    "WeeklyScheduleEngine",
]
