"""Settings Manager - Process-wide schedule configuration.

Stores one `settings/schedule` document holding the shift start times, the
vital-sign reading times and the day-status windows. Missing documents or
fields resolve to the const.DEFAULT_* values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import build_settings
from ..engines.shift_engine import ShiftEngine
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import ScheduleSettings, ShiftBoundaries


class SettingsManager(BaseManager):
    """Reads and writes the schedule settings document."""

    async def async_get_settings(self) -> ScheduleSettings:
        """Return the settings, with defaults for anything not stored."""
        stored = await self._store.async_get(
            const.COLLECTION_SETTINGS, const.SETTINGS_DOC_SCHEDULE
        )
        return build_settings(existing=stored or {})

    async def async_get_boundaries(self) -> ShiftBoundaries:
        """Return only the shift start times."""
        return ShiftEngine.resolve_boundaries(await self.async_get_settings())

    async def async_update_settings(
        self, changes: Mapping[str, Any]
    ) -> ScheduleSettings:
        """Validate and store a partial settings update.

        Raises:
            ValidationError: If any value is invalid (nothing is written)
        """
        current = await self.async_get_settings()
        settings = build_settings(changes, existing=current)
        await self._store.async_set(
            const.COLLECTION_SETTINGS, const.SETTINGS_DOC_SCHEDULE, settings
        )
        const.LOGGER.info("Schedule settings updated: %s", sorted(changes))
        return settings
