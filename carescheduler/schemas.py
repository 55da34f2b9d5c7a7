# File: schemas.py
"""Voluptuous schemas for Care Scheduler inputs.

These schemas validate data coming from the presentation layer before any
engine or manager touches it. data_builders.py converts `vol.Invalid` into
the package's ValidationError so callers only ever see typed errors.

Custom validators raise `KeyedInvalid`, which carries the translation key
that best describes the failure (invalid time, weekday, duration...).
"""

from __future__ import annotations

import math
from typing import Any

import voluptuous as vol

from . import const
from .utils.dt_utils import is_valid_time_of_day, parse_time_of_day


class KeyedInvalid(vol.Invalid):
    """vol.Invalid that remembers which translation key describes it.

    Attributes:
        translation_key: One of the const.TRANS_KEY_ERROR_* values
        value: The rejected value, used as a message placeholder
    """

    def __init__(
        self,
        message: str,
        translation_key: str,
        value: Any = None,
        path: list[Any] | None = None,
    ) -> None:
        """Initialize KeyedInvalid."""
        super().__init__(message, path=path)
        self.translation_key = translation_key
        self.value = value


# ==============================================================================
# Field validators
# ==============================================================================


def time_of_day(value: Any) -> str:
    """Validate an "HH:MM" string and return it zero-padded."""
    if not is_valid_time_of_day(value):
        raise KeyedInvalid(
            f"invalid time of day: {value!r}",
            const.TRANS_KEY_ERROR_INVALID_TIME,
            value,
        )
    parsed = parse_time_of_day(value)
    return f"{parsed.hour:02d}:{parsed.minute:02d}"


def weekday(value: Any) -> int:
    """Validate a weekday index (0 = Sunday ... 6 = Saturday)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise KeyedInvalid(
            f"invalid weekday: {value!r}",
            const.TRANS_KEY_ERROR_INVALID_WEEKDAY,
            value,
        )
    if value not in const.WEEKDAY_INDEXES:
        raise KeyedInvalid(
            f"weekday out of range: {value}",
            const.TRANS_KEY_ERROR_INVALID_WEEKDAY,
            value,
        )
    return value


def weekday_set(value: Any) -> list[int]:
    """Validate a non-empty collection of weekdays, returned sorted and unique."""
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set)):
        raise KeyedInvalid(
            "weekdays must be a list",
            const.TRANS_KEY_ERROR_INVALID_WEEKDAY,
            value,
        )
    days = sorted({weekday(item) for item in value})
    if not days:
        raise KeyedInvalid(
            "at least one weekday is required", const.TRANS_KEY_ERROR_WEEKDAYS_REQUIRED
        )
    return days


def positive_minutes(value: Any) -> int | float:
    """Validate a strictly positive number of minutes."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise KeyedInvalid(
            f"duration must be a number: {value!r}",
            const.TRANS_KEY_ERROR_INVALID_DURATION,
            value,
        )
    if not math.isfinite(value) or value <= 0:
        raise KeyedInvalid(
            f"duration must be a positive finite number: {value}",
            const.TRANS_KEY_ERROR_INVALID_DURATION,
            value,
        )
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def non_negative_minutes(value: Any) -> int:
    """Validate a window size in whole minutes (zero allowed)."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise KeyedInvalid(
            f"minutes must be a non-negative integer: {value!r}",
            const.TRANS_KEY_ERROR_INVALID_DURATION,
            value,
        )
    return value


def non_blank_string(value: Any) -> str:
    """Validate a string that is not empty after trimming; returns it trimmed."""
    if not isinstance(value, str) or not value.strip():
        raise vol.Invalid("value must be a non-empty string")
    return value.strip()


def optional_text(value: Any) -> str | None:
    """Trim free text; blank values become None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise vol.Invalid("value must be a string")
    return value.strip() or None


def string_list(value: Any) -> list[str]:
    """Validate a list of strings, dropping blank entries."""
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise vol.Invalid("value must be a list of strings")
    result: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise vol.Invalid("value must be a list of strings")
        if item.strip():
            result.append(item.strip())
    return result


# ==============================================================================
# Template schemas
# ==============================================================================

DEFINED_ACTIVITY_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_ACTIVITY_NAME): non_blank_string,
        vol.Optional(
            const.DATA_ACTIVITY_DESCRIPTION, default=const.SENTINEL_EMPTY
        ): vol.Any(None, str),
        vol.Required(const.DATA_ACTIVITY_DURATION): positive_minutes,
        vol.Optional(const.DATA_ACTIVITY_LOCATION, default=None): optional_text,
        vol.Optional(const.DATA_ACTIVITY_MATERIALS, default=list): string_list,
        vol.Optional(
            const.DATA_ACTIVITY_ENERGY_LEVEL, default=const.DEFAULT_ENERGY_LEVEL
        ): vol.In(const.ENERGY_LEVELS),
    }
)

OPEN_SLOT_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_SLOT_ESTIMATED_DURATION): positive_minutes,
        vol.Optional(
            const.DATA_SLOT_INSTRUCTIONS, default=const.SENTINEL_EMPTY
        ): vol.Any(None, str),
        vol.Optional(const.DATA_SLOT_ALLOWED_OPTION_IDS, default=list): string_list,
    }
)

TEMPLATE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_TEMPLATE_MODALITY): vol.In(const.MODALITIES),
        vol.Required(const.DATA_TEMPLATE_ACTIVITY_TYPE): vol.In(const.ACTIVITY_TYPES),
        vol.Optional(const.DATA_TEMPLATE_DEFINED_ACTIVITY, default=None): vol.Any(
            None, dict
        ),
        vol.Optional(const.DATA_TEMPLATE_OPEN_SLOT, default=None): vol.Any(
            None, dict
        ),
        vol.Required(const.DATA_TEMPLATE_PREFERRED_TIME): time_of_day,
        vol.Required(const.DATA_TEMPLATE_WEEKDAYS): weekday_set,
        vol.Optional(const.DATA_TEMPLATE_ACTIVE, default=True): bool,
    },
    extra=vol.REMOVE_EXTRA,
)

# ==============================================================================
# Lifecycle schemas
# ==============================================================================

ACTOR_SCHEMA = vol.Schema(
    {
        vol.Required("id"): non_blank_string,
        vol.Required("name"): non_blank_string,
    },
    extra=vol.REMOVE_EXTRA,
)

EXECUTION_INPUT_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_EXECUTION_ACTUAL_DURATION): positive_minutes,
        vol.Optional(const.DATA_EXECUTION_PARTICIPATION): vol.Any(
            None, vol.In(const.PARTICIPATION_LEVELS)
        ),
        vol.Optional(const.DATA_EXECUTION_MOOD): optional_text,
        vol.Optional(const.DATA_EXECUTION_NOTES): optional_text,
    }
)

CHOSEN_OPTION_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_CHOSEN_KIND): const.CHOSEN_KIND_OPTION,
        vol.Required(const.DATA_CHOSEN_OPTION_ID): non_blank_string,
        vol.Required(const.DATA_CHOSEN_NAME): non_blank_string,
        vol.Required(const.DATA_CHOSEN_DURATION): positive_minutes,
        vol.Optional(const.DATA_CHOSEN_DESCRIPTION): optional_text,
        vol.Optional(const.DATA_CHOSEN_LOCATION): optional_text,
        vol.Optional(const.DATA_CHOSEN_ENERGY_LEVEL): vol.In(const.ENERGY_LEVELS),
    },
    extra=vol.REMOVE_EXTRA,
)

CHOSEN_CUSTOM_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_CHOSEN_KIND): const.CHOSEN_KIND_CUSTOM,
        vol.Required(const.DATA_CHOSEN_NAME): non_blank_string,
        vol.Required(const.DATA_CHOSEN_DURATION): positive_minutes,
        vol.Optional(const.DATA_CHOSEN_DESCRIPTION): optional_text,
        vol.Optional(const.DATA_CHOSEN_PHOTO_URL): optional_text,
    },
    extra=vol.REMOVE_EXTRA,
)


def chosen_activity(value: Any) -> dict[str, Any]:
    """Validate a chosen activity, dispatching on its `kind` tag."""
    if not isinstance(value, dict):
        raise vol.Invalid("chosen activity must be a mapping")
    kind = value.get(const.DATA_CHOSEN_KIND)
    if kind == const.CHOSEN_KIND_OPTION:
        validated = CHOSEN_OPTION_SCHEMA(value)
    elif kind == const.CHOSEN_KIND_CUSTOM:
        validated = CHOSEN_CUSTOM_SCHEMA(value)
    else:
        raise vol.Invalid(f"unknown chosen activity kind: {kind!r}")
    # Optional fields that were blank are dropped rather than stored as None
    return {key: val for key, val in validated.items() if val is not None}


OMISSION_REASON_SCHEMA = vol.Schema(non_blank_string)

# ==============================================================================
# Settings schema
# ==============================================================================

SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.DATA_SETTINGS_MORNING_START, default=const.DEFAULT_MORNING_START
        ): time_of_day,
        vol.Optional(
            const.DATA_SETTINGS_AFTERNOON_START, default=const.DEFAULT_AFTERNOON_START
        ): time_of_day,
        vol.Optional(
            const.DATA_SETTINGS_NIGHT_START, default=const.DEFAULT_NIGHT_START
        ): time_of_day,
        vol.Optional(
            const.DATA_SETTINGS_VITAL_SIGN_TIMES,
            default=lambda: list(const.DEFAULT_VITAL_SIGN_TIMES),
        ): [time_of_day],
        vol.Optional(
            const.DATA_SETTINGS_ACTIVE_WINDOW_MINUTES,
            default=const.DEFAULT_ACTIVE_WINDOW_MINUTES,
        ): non_negative_minutes,
        vol.Optional(
            const.DATA_SETTINGS_UPCOMING_HORIZON_MINUTES,
            default=const.DEFAULT_UPCOMING_HORIZON_MINUTES,
        ): non_negative_minutes,
    },
    extra=vol.REMOVE_EXTRA,
)
