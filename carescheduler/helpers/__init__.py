"""Record adapters for Care Scheduler.

Helpers adapt records owned by other parts of the care application
(checkups, vital signs, meals, medications) to the engines' inputs.

Submodules:
    - day_sources: ScheduledItem builders and completion lookups for the
      day status timeline

Usage:
    from .helpers import day_sources
    from .helpers.day_sources import build_day_items, DayCompletionLookup
"""

from . import day_sources

__all__ = ["day_sources"]
