"""Day status sources - Turn the day's care records into ScheduledItems.

The DayProcessEngine is generic: it only needs ScheduledItems and a completion
lookup. This module builds both from the records the rest of the care
application keeps:

- checkups: one per shift, due at the shift start
- vital signs: one per configured reading time
- meals: one per active meal slot, due at its default time
- medications: one per dose time, only on the medication's weekdays
- activities: one per activity instance of the day, cancelled ones excluded

Item datetimes are built in `tz_info`, defaulting to the configured local
timezone (`dt_local_tzinfo`), so they compare with `dt_now_local()`. Naive
record timestamps are read in the same timezone.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.day_process_engine import CompletionResult, ScheduledItem
from ..engines.instance_engine import InstanceEngine
from ..utils.dt_utils import (
    combine_date_time,
    dt_local_tzinfo,
    dt_parse_date,
    minutes_between,
    weekday_index,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import tzinfo


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            const.LOGGER.debug("Ignoring unparseable timestamp: %s", value)
    return None


def _same_day(value: Any, day: date) -> bool:
    return dt_parse_date(value) == day


def _local_datetime(
    day: date, time_of_day: str, tz_info: tzinfo | None
) -> datetime:
    return combine_date_time(day, time_of_day, dt_local_tzinfo(tz_info))


def _in_zone(value: datetime, tz_info: tzinfo | None) -> datetime:
    """Read naive timestamps in `tz_info`, convert aware ones to it."""
    if tz_info is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=tz_info)
    return value.astimezone(tz_info)


# ==============================================================================
# ScheduledItem builders
# ==============================================================================


def checkup_items(
    day: date,
    settings: Mapping[str, Any],
    tz_info: tzinfo | None = None,
) -> list[ScheduledItem]:
    """One checkup per shift, due when the shift starts."""
    starts = {
        const.SHIFT_MORNING: settings[const.DATA_SETTINGS_MORNING_START],
        const.SHIFT_AFTERNOON: settings[const.DATA_SETTINGS_AFTERNOON_START],
        const.SHIFT_NIGHT: settings[const.DATA_SETTINGS_NIGHT_START],
    }
    items = []
    for shift in const.SHIFTS:
        label = const.SHIFT_LABELS[shift]
        items.append(
            ScheduledItem(
                id=f"checkup-{shift}",
                type=const.PROCESS_TYPE_CHECKUP,
                label=f"{label} checkup",
                detail=f"{label} shift",
                scheduled_at=_local_datetime(day, starts[shift], tz_info),
                link=const.PROCESS_LINKS[const.PROCESS_TYPE_CHECKUP],
                source=shift,
            )
        )
    return items


def vital_sign_items(
    day: date,
    settings: Mapping[str, Any],
    tz_info: tzinfo | None = None,
) -> list[ScheduledItem]:
    """One item per configured vital-sign reading time."""
    return [
        ScheduledItem(
            id=f"vitals-{index}",
            type=const.PROCESS_TYPE_VITAL_SIGNS,
            label="Vital signs",
            detail="Morning reading" if index == 0 else "Evening reading",
            scheduled_at=_local_datetime(day, reading_time, tz_info),
            link=const.PROCESS_LINKS[const.PROCESS_TYPE_VITAL_SIGNS],
            source=reading_time,
        )
        for index, reading_time in enumerate(
            settings[const.DATA_SETTINGS_VITAL_SIGN_TIMES]
        )
    ]


def meal_items(
    day: date,
    meal_slots: Iterable[Mapping[str, Any]],
    tz_info: tzinfo | None = None,
) -> list[ScheduledItem]:
    """One item per active meal slot (breakfast, lunch...)."""
    return [
        ScheduledItem(
            id=f"meal-{slot[const.DATA_RECORD_ID]}",
            type=const.PROCESS_TYPE_MEAL,
            label=slot[const.DATA_MEAL_NAME],
            detail=slot.get(const.DATA_MEAL_ICON, const.SENTINEL_EMPTY),
            scheduled_at=_local_datetime(
                day, slot[const.DATA_MEAL_DEFAULT_TIME], tz_info
            ),
            link=const.PROCESS_LINKS[const.PROCESS_TYPE_MEAL],
            source=slot,
        )
        for slot in meal_slots
        if slot.get(const.DATA_RECORD_ACTIVE, True)
    ]


def medication_items(
    day: date,
    medications: Iterable[Mapping[str, Any]],
    tz_info: tzinfo | None = None,
) -> list[ScheduledItem]:
    """One item per dose time of each active medication taken on `day`.

    A medication without weekdays is taken every day.
    """
    weekday = weekday_index(day)
    items = []
    for medication in medications:
        if not medication.get(const.DATA_RECORD_ACTIVE, True):
            continue
        weekdays = medication.get(const.DATA_MEDICATION_WEEKDAYS) or []
        if weekdays and weekday not in weekdays:
            continue

        detail = " - ".join(
            str(part)
            for part in (
                medication.get(const.DATA_MEDICATION_DOSE),
                medication.get(const.DATA_MEDICATION_PRESENTATION),
            )
            if part
        )
        for dose_time in medication.get(const.DATA_MEDICATION_TIMES, []):
            items.append(
                ScheduledItem(
                    id=f"med-{medication[const.DATA_RECORD_ID]}-{dose_time}",
                    type=const.PROCESS_TYPE_MEDICATION,
                    label=medication[const.DATA_MEDICATION_NAME],
                    detail=detail,
                    scheduled_at=_local_datetime(day, dose_time, tz_info),
                    link=const.PROCESS_LINKS[const.PROCESS_TYPE_MEDICATION],
                    source=medication,
                )
            )
    return items


def activity_items(
    day: date,
    instances: Iterable[Mapping[str, Any]],
    tz_info: tzinfo | None = None,
) -> list[ScheduledItem]:
    """One item per activity instance dated `day`, cancelled ones excluded."""
    return [
        ScheduledItem(
            id=f"activity-{instance[const.DATA_INSTANCE_INTERNAL_ID]}",
            type=const.PROCESS_TYPE_ACTIVITY,
            label=InstanceEngine.instance_display_name(instance),
            detail=instance.get(const.DATA_INSTANCE_ACTIVITY_TYPE, const.SENTINEL_EMPTY),
            scheduled_at=_local_datetime(
                day, instance[const.DATA_INSTANCE_PREFERRED_TIME], tz_info
            ),
            link=const.PROCESS_LINKS[const.PROCESS_TYPE_ACTIVITY],
            source=instance,
        )
        for instance in instances
        if _same_day(instance.get(const.DATA_INSTANCE_DATE), day)
        and instance.get(const.DATA_INSTANCE_STATE) != const.INSTANCE_STATE_CANCELLED
    ]


def build_day_items(
    day: date,
    settings: Mapping[str, Any],
    *,
    meal_slots: Iterable[Mapping[str, Any]] = (),
    medications: Iterable[Mapping[str, Any]] = (),
    instances: Iterable[Mapping[str, Any]] = (),
    tz_info: tzinfo | None = None,
) -> list[ScheduledItem]:
    """Collect every scheduled item of the day (unsorted)."""
    tz_info = dt_local_tzinfo(tz_info)
    return [
        *checkup_items(day, settings, tz_info),
        *vital_sign_items(day, settings, tz_info),
        *meal_items(day, meal_slots, tz_info),
        *medication_items(day, medications, tz_info),
        *activity_items(day, instances, tz_info),
    ]


# ==============================================================================
# Completion lookup
# ==============================================================================


class DayCompletionLookup:
    """Answers "is this item done?" from the day's source records.

    Instances are callable, so they can be passed straight to
    DayProcessEngine.compute_day_status as the completion function.
    Activity items carry their own instance, so no activity records are needed.
    """

    def __init__(
        self,
        day: date,
        *,
        checkups: Iterable[Mapping[str, Any]] = (),
        vital_signs: Iterable[Mapping[str, Any]] = (),
        meal_records: Iterable[Mapping[str, Any]] = (),
        medication_records: Iterable[Mapping[str, Any]] = (),
        match_minutes: int = const.DEFAULT_RECORD_MATCH_MINUTES,
    ) -> None:
        self._day = day
        self._checkups = [
            r for r in checkups if _same_day(r.get(const.DATA_RECORD_DATE), day)
        ]
        self._vital_signs = [
            r for r in vital_signs if _same_day(r.get(const.DATA_RECORD_DATE), day)
        ]
        self._meal_records = [
            r for r in meal_records if _same_day(r.get(const.DATA_RECORD_DATE), day)
        ]
        self._medication_records = list(medication_records)
        self._match_minutes = match_minutes

    def __call__(self, item: ScheduledItem) -> CompletionResult:
        handler = {
            const.PROCESS_TYPE_ACTIVITY: self._activity,
            const.PROCESS_TYPE_CHECKUP: self._checkup,
            const.PROCESS_TYPE_MEAL: self._meal,
            const.PROCESS_TYPE_MEDICATION: self._medication,
            const.PROCESS_TYPE_VITAL_SIGNS: self._vital_signs_reading,
        }.get(item.type)
        if handler is None:
            const.LOGGER.debug("No completion source for item type %s", item.type)
            return None
        return handler(item)

    def _checkup(self, item: ScheduledItem) -> CompletionResult:
        for record in self._checkups:
            if record.get(const.DATA_RECORD_SHIFT) == item.source and record.get(
                const.DATA_RECORD_COMPLETED
            ):
                return record.get(const.DATA_RECORD_RECORDED_AT) or True
        return None

    def _vital_signs_reading(self, item: ScheduledItem) -> CompletionResult:
        # A reading counts from match_minutes before the scheduled time onwards
        for record in self._vital_signs:
            reading_time = record.get(const.DATA_RECORD_TIME)
            if not reading_time:
                continue
            taken_at = combine_date_time(
                self._day, reading_time, item.scheduled_at.tzinfo
            )
            if minutes_between(taken_at, item.scheduled_at) >= -self._match_minutes:
                return taken_at
        return None

    def _meal(self, item: ScheduledItem) -> CompletionResult:
        slot_id = item.source[const.DATA_RECORD_ID]
        for record in self._meal_records:
            if record.get(const.DATA_MEAL_SLOT_ID) == slot_id and record.get(
                const.DATA_RECORD_STATE
            ) in (const.MEAL_STATE_SERVED, const.MEAL_STATE_COMPLETED):
                return record.get(const.DATA_RECORD_UPDATED_AT) or True
        return None

    def _medication(self, item: ScheduledItem) -> CompletionResult:
        medication_id = item.source[const.DATA_RECORD_ID]
        for record in self._medication_records:
            if record.get(const.DATA_MEDICATION_ID) != medication_id:
                continue
            if record.get(const.DATA_RECORD_STATE) != const.MEDICATION_RECORD_TAKEN:
                continue
            scheduled_at = _as_datetime(record.get(const.DATA_MEDICATION_SCHEDULED_AT))
            if scheduled_at is None:
                continue
            scheduled_at = _in_zone(scheduled_at, item.scheduled_at.tzinfo)
            if scheduled_at.date() != self._day:
                continue
            if abs(minutes_between(scheduled_at, item.scheduled_at)) <= self._match_minutes:
                return record.get(const.DATA_MEDICATION_TAKEN_AT) or True
        return None

    @staticmethod
    def _activity(item: ScheduledItem) -> CompletionResult:
        instance = item.source
        if instance.get(const.DATA_INSTANCE_STATE) != const.INSTANCE_STATE_COMPLETED:
            return None
        execution = instance.get(const.DATA_INSTANCE_EXECUTION) or {}
        return execution.get(const.DATA_EXECUTION_COMPLETED_AT) or True
