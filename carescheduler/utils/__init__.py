"""Pure Python utilities for Care Scheduler.

This module contains pure Python functions with ZERO store or manager
dependencies. All functions here can be unit tested without fixtures.

Submodules:
    - dt_utils: Date/time parsing, time-of-day math, weekday indexing

Usage:
    from .utils import dt_utils
    from .utils.dt_utils import time_to_minutes
"""

from . import dt_utils

__all__ = ["dt_utils"]
