"""Shift Engine - Pure time-of-day bucket classification.

Maps an "HH:MM" time to the morning / afternoon / night shift using the
configurable shift start times. Boundaries are always passed in explicitly;
this module keeps no global boundary state.

ARCHITECTURE: This is a pure logic engine with NO store dependencies.
All functions are static methods that operate on passed-in data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..exceptions import ValidationError
from ..utils.dt_utils import (
    format_time_of_day,
    is_valid_time_of_day,
    minutes_to_time,
    time_to_minutes,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime, time

    from ..type_defs import Shift, ShiftBoundaries

# Boundary key for each shift, in day order
_SHIFT_START_KEYS: dict[str, str] = {
    const.SHIFT_MORNING: const.DATA_SETTINGS_MORNING_START,
    const.SHIFT_AFTERNOON: const.DATA_SETTINGS_AFTERNOON_START,
    const.SHIFT_NIGHT: const.DATA_SETTINGS_NIGHT_START,
}

_DEFAULT_BOUNDARIES: dict[str, str] = {
    const.DATA_SETTINGS_MORNING_START: const.DEFAULT_MORNING_START,
    const.DATA_SETTINGS_AFTERNOON_START: const.DEFAULT_AFTERNOON_START,
    const.DATA_SETTINGS_NIGHT_START: const.DEFAULT_NIGHT_START,
}


class ShiftEngine:
    """Pure logic engine for shift classification.

    All methods are static - no instance state.
    """

    @staticmethod
    def resolve_boundaries(
        boundaries: Mapping[str, Any] | None = None,
    ) -> ShiftBoundaries:
        """Fill missing shift starts with defaults and validate each one.

        Extra keys (e.g. a full settings document) are ignored.

        Raises:
            ValidationError: If a provided start time is not "HH:MM"
        """
        resolved: dict[str, str] = {}
        for key, default in _DEFAULT_BOUNDARIES.items():
            value = (boundaries or {}).get(key) or default
            if not is_valid_time_of_day(value):
                raise ValidationError(
                    const.TRANS_KEY_ERROR_INVALID_TIME,
                    {"value": value},
                    field=key,
                )
            resolved[key] = value.strip()
        return resolved  # type: ignore[return-value]

    @staticmethod
    def _minutes(value: str | time, field: str) -> int:
        try:
            return time_to_minutes(value)
        except ValueError as err:
            raise ValidationError(
                const.TRANS_KEY_ERROR_INVALID_TIME,
                {"value": value},
                field=field,
            ) from err

    @staticmethod
    def classify(
        time_of_day: str | time,
        boundaries: Mapping[str, Any] | None = None,
    ) -> Shift:
        """Return the shift that contains a time of day.

        `[morning_start, afternoon_start)` is morning and
        `[afternoon_start, night_start)` is afternoon. Everything else is
        night, which spans midnight and also covers 00:00 up to morning_start.

        Args:
            time_of_day: "HH:MM" string or `datetime.time`
            boundaries: Shift start times; missing keys use the defaults

        Raises:
            ValidationError: If the time or a boundary is malformed
        """
        resolved = ShiftEngine.resolve_boundaries(boundaries)
        minutes = ShiftEngine._minutes(time_of_day, const.DATA_TEMPLATE_PREFERRED_TIME)
        morning = time_to_minutes(resolved[const.DATA_SETTINGS_MORNING_START])
        afternoon = time_to_minutes(resolved[const.DATA_SETTINGS_AFTERNOON_START])
        night = time_to_minutes(resolved[const.DATA_SETTINGS_NIGHT_START])

        if morning <= minutes < afternoon:
            return const.SHIFT_MORNING
        if afternoon <= minutes < night:
            return const.SHIFT_AFTERNOON
        return const.SHIFT_NIGHT

    @staticmethod
    def classify_datetime(
        moment: datetime,
        boundaries: Mapping[str, Any] | None = None,
    ) -> Shift:
        """Classify the time-of-day part of a datetime."""
        return ShiftEngine.classify(format_time_of_day(moment), boundaries)

    @staticmethod
    def is_in_shift(
        time_of_day: str | time,
        shift: str,
        boundaries: Mapping[str, Any] | None = None,
    ) -> bool:
        """Return True if the time falls inside the given shift."""
        return ShiftEngine.classify(time_of_day, boundaries) == shift

    @staticmethod
    def shift_range(
        shift: str,
        boundaries: Mapping[str, Any] | None = None,
    ) -> str:
        """Return a readable "HH:MM - HH:MM" span for a shift.

        The end is one minute before the next shift starts, so the night
        range reads e.g. "21:00 - 06:59".

        Raises:
            ValidationError: If shift is not a known shift name
        """
        if shift not in _SHIFT_START_KEYS:
            raise ValidationError(
                const.TRANS_KEY_ERROR_INVALID_INPUT,
                {"field": const.DATA_TEMPLATE_SHIFT, "error": shift},
                field=const.DATA_TEMPLATE_SHIFT,
            )
        resolved = ShiftEngine.resolve_boundaries(boundaries)
        order = list(const.SHIFTS)
        next_shift = order[(order.index(shift) + 1) % len(order)]
        start = resolved[_SHIFT_START_KEYS[shift]]  # type: ignore[literal-required]
        next_start = resolved[_SHIFT_START_KEYS[next_shift]]  # type: ignore[literal-required]
        end = minutes_to_time(time_to_minutes(next_start) - 1)
        return f"{minutes_to_time(time_to_minutes(start))} - {end}"
