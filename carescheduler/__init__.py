"""Care Scheduler - recurring care-activity schedules and day status.

Weekly schedule templates are materialized into dated activity instances,
which caregivers complete, omit or cancel. Template edits invalidate future
pending instances, and the day status engine folds the day's care events
into overdue/active/upcoming/pending/done buckets.

Usage:
    store = MemoryDocumentStore()
    await store.async_initialize()
    settings = SettingsManager(store)
    schedules = ScheduleManager(store, settings)
    instances = InstanceManager(store)
    lifecycle = LifecycleManager(store)
"""

from .engines import (
    DayProcessEngine,
    DayProcessItem,
    InstanceEngine,
    ScheduledItem,
    ShiftEngine,
    StatisticsEngine,
    WeeklyScheduleEngine,
)
from .exceptions import (
    CareSchedulerError,
    InvalidStateError,
    MaterializationError,
    NotFoundError,
    PreconditionFailedError,
    StoreError,
    ValidationError,
)
from .managers import (
    InstanceManager,
    LifecycleManager,
    ScheduleManager,
    SettingsManager,
)
from .store import DocumentStore, MemoryDocumentStore

__all__ = [
    "CareSchedulerError",
    "DayProcessEngine",
    "DayProcessItem",
    "DocumentStore",
    "InstanceEngine",
    "InstanceManager",
    "InvalidStateError",
    "LifecycleManager",
    "MaterializationError",
    "MemoryDocumentStore",
    "NotFoundError",
    "PreconditionFailedError",
    "ScheduleManager",
    "ScheduledItem",
    "SettingsManager",
    "ShiftEngine",
    "StatisticsEngine",
    "StoreError",
    "ValidationError",
    "WeeklyScheduleEngine",
]
