"""Weekly Schedule Engine for Care Scheduler.

Templates recur on a set of weekdays (0 = Sunday ... 6 = Saturday). This
engine answers "does a template occur on this date" and expands a weekday set
over a date range, using `dateutil.rrule` for the range expansion and
`dateutil.relativedelta` for week boundaries.

IMPORTANT: This module must NOT import from managers to avoid circular imports.
Only import from const.py, type_defs.py, utils and standard libraries.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any, ClassVar

from dateutil.relativedelta import relativedelta
from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule, weekday

from .. import const
from ..utils.dt_utils import dt_parse_date, weekday_index

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class WeeklyScheduleEngine:
    """Pure logic for weekday-set recurrence.

    All methods are static - no instance state.
    """

    # Weekday index (0 = Sunday) to rrule weekday
    WEEKDAY_TO_RRULE: ClassVar[dict[int, weekday]] = {
        const.WEEKDAY_SUNDAY: SU,
        const.WEEKDAY_MONDAY: MO,
        const.WEEKDAY_TUESDAY: TU,
        const.WEEKDAY_WEDNESDAY: WE,
        const.WEEKDAY_THURSDAY: TH,
        const.WEEKDAY_FRIDAY: FR,
        const.WEEKDAY_SATURDAY: SA,
    }

    @staticmethod
    def _as_date(value: str | date | datetime) -> date:
        parsed = dt_parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value!r}")
        return parsed

    @staticmethod
    def occurs_on(weekdays: Iterable[int], day: str | date | datetime) -> bool:
        """Return True if the date's weekday is in the weekday set."""
        return weekday_index(WeeklyScheduleEngine._as_date(day)) in set(weekdays)

    @staticmethod
    def applies_on(template: Mapping[str, Any], day: str | date | datetime) -> bool:
        """Return True if an active template should materialize on this date."""
        if not template.get(const.DATA_TEMPLATE_ACTIVE, False):
            return False
        return WeeklyScheduleEngine.occurs_on(
            template.get(const.DATA_TEMPLATE_WEEKDAYS) or [], day
        )

    @staticmethod
    def templates_for_date(
        templates: Iterable[Mapping[str, Any]],
        day: str | date | datetime,
    ) -> list[Mapping[str, Any]]:
        """Filter templates down to the ones that occur on a date."""
        return [t for t in templates if WeeklyScheduleEngine.applies_on(t, day)]

    @staticmethod
    def occurrences(
        weekdays: Iterable[int],
        start: str | date | datetime,
        end: str | date | datetime,
    ) -> list[date]:
        """Expand a weekday set into the dates it covers in [start, end].

        Both ends are inclusive. Unknown weekday indexes are ignored.

        Example:
            >>> WeeklyScheduleEngine.occurrences([6], "2026-04-06", "2026-04-12")
            [datetime.date(2026, 4, 11)]
        """
        start_date = WeeklyScheduleEngine._as_date(start)
        end_date = WeeklyScheduleEngine._as_date(end)
        by_weekday = [
            WeeklyScheduleEngine.WEEKDAY_TO_RRULE[day]
            for day in sorted(set(weekdays))
            if day in WeeklyScheduleEngine.WEEKDAY_TO_RRULE
        ]
        if not by_weekday or end_date < start_date:
            return []
        rule = rrule(
            WEEKLY,
            byweekday=by_weekday,
            dtstart=datetime.combine(start_date, datetime.min.time()),
            until=datetime.combine(end_date, datetime.min.time()),
        )
        return [occurrence.date() for occurrence in rule]

    @staticmethod
    def week_bounds(day: str | date | datetime) -> tuple[date, date]:
        """Return (monday, sunday) of the week containing the date."""
        parsed = WeeklyScheduleEngine._as_date(day)
        monday = parsed + relativedelta(weekday=MO(-1))
        return monday, monday + relativedelta(days=6)
