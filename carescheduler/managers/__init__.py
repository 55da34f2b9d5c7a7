"""Manager modules for Care Scheduler.

Managers own persistence and orchestrate the pure engines.
"""

from .base_manager import BaseManager
from .instance_manager import InstanceManager
from .lifecycle_manager import LifecycleManager
from .schedule_manager import ScheduleManager
from .settings_manager import SettingsManager

__all__ = [
    "BaseManager",
    "InstanceManager",
    "LifecycleManager",
    "ScheduleManager",
    "SettingsManager",
]
