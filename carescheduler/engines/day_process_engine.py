"""Day Process Engine - Real-time status timeline for the day's care events.

Folds heterogeneous scheduled items (activity instances, checkups, vital-sign
readings, meals, medication doses) into one time-relative timeline. The engine
only needs a scheduled datetime per item and a way to ask whether a
completion record exists; it never looks at what kind of item it is.

State priority for each item:
    1. completion record exists                          -> done
    2. scheduled <= now, at most the active window ago   -> active
    3. scheduled < now, beyond the active window         -> overdue
    4. now < scheduled, within the upcoming horizon      -> upcoming
    5. otherwise                                         -> pending

ARCHITECTURE: This is a pure logic engine with NO store dependencies.
`now` and the scheduled datetimes must be either all naive or all aware.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import math
from typing import TYPE_CHECKING, Any

from .. import const
from ..exceptions import ValidationError
from ..utils.dt_utils import format_time_of_day, minutes_between

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from ..type_defs import DayStatusSummary, ProcessState

# Completion lookups may answer with a bool, the completion datetime, or an
# ISO timestamp string. Anything falsy means "no completion record".
CompletionResult = bool | datetime | str | None


@dataclass(frozen=True)
class ScheduledItem:
    """One scheduled event fed into the day timeline.

    Attributes:
        id: Stable id, unique within the day
        type: One of const.PROCESS_TYPE_* (opaque to the engine)
        label: Display name
        scheduled_at: When the event is due
        detail: Secondary display text
        link: Navigation target for the dashboard
        source: The record the item was built from (not compared)
    """

    id: str
    type: str
    label: str
    scheduled_at: datetime
    detail: str = ""
    link: str | None = None
    source: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class DayProcessItem:
    """Derived status of one scheduled item. Never persisted."""

    id: str
    type: str
    label: str
    detail: str
    scheduled_at: datetime
    scheduled_time: str
    state: ProcessState
    completed_at: datetime | None = None
    link: str | None = None


class DayProcessEngine:
    """Pure logic engine for the day status timeline.

    All methods are static - no instance state.
    """

    @staticmethod
    def resolve_state(
        now: datetime,
        scheduled_at: datetime,
        completed: bool,
        *,
        active_window_minutes: int = const.DEFAULT_ACTIVE_WINDOW_MINUTES,
        upcoming_horizon_minutes: int = const.DEFAULT_UPCOMING_HORIZON_MINUTES,
    ) -> ProcessState:
        """Classify a single item relative to `now`.

        Args:
            now: Current datetime
            scheduled_at: When the item is due
            completed: Whether a completion record exists
            active_window_minutes: How long after its time an item stays active
                before it becomes overdue (0 = overdue as soon as it is past)
            upcoming_horizon_minutes: How far ahead an item counts as upcoming

        Returns:
            One of const.PROCESS_STATE_*
        """
        if completed:
            return const.PROCESS_STATE_DONE

        if scheduled_at <= now:
            if minutes_between(now, scheduled_at) <= active_window_minutes:
                return const.PROCESS_STATE_ACTIVE
            return const.PROCESS_STATE_OVERDUE

        if minutes_between(scheduled_at, now) <= upcoming_horizon_minutes:
            return const.PROCESS_STATE_UPCOMING
        return const.PROCESS_STATE_PENDING

    @staticmethod
    def _completed_at(result: CompletionResult) -> datetime | None:
        if isinstance(result, datetime):
            return result
        if isinstance(result, str) and result:
            try:
                return datetime.fromisoformat(result)
            except ValueError:
                const.LOGGER.debug("Ignoring unparseable completion time: %s", result)
        return None

    @staticmethod
    def compute_day_status(
        now: datetime,
        items: Iterable[ScheduledItem],
        completion: Callable[[ScheduledItem], CompletionResult],
        *,
        active_window_minutes: int = const.DEFAULT_ACTIVE_WINDOW_MINUTES,
        upcoming_horizon_minutes: int = const.DEFAULT_UPCOMING_HORIZON_MINUTES,
    ) -> list[DayProcessItem]:
        """Compute the status timeline for a set of scheduled items.

        Args:
            now: Current datetime
            items: Scheduled items of any kind
            completion: Returns a falsy value when the item has no completion
                record, otherwise True or the completion time
            active_window_minutes: See resolve_state
            upcoming_horizon_minutes: See resolve_state

        Returns:
            Items sorted by scheduled time ascending. Items sharing a
            timestamp keep their input order.

        Raises:
            ValidationError: If `now` and an item mix naive and aware datetimes
        """
        now_is_aware = now.tzinfo is not None
        results: list[DayProcessItem] = []
        for item in items:
            if (item.scheduled_at.tzinfo is not None) != now_is_aware:
                raise ValidationError(
                    const.TRANS_KEY_ERROR_INVALID_INPUT,
                    {
                        "field": "scheduled_at",
                        "error": f"item {item.id} mixes naive and aware datetimes",
                    },
                    field="scheduled_at",
                )
            outcome = completion(item)
            state = DayProcessEngine.resolve_state(
                now,
                item.scheduled_at,
                bool(outcome),
                active_window_minutes=active_window_minutes,
                upcoming_horizon_minutes=upcoming_horizon_minutes,
            )
            results.append(
                DayProcessItem(
                    id=item.id,
                    type=item.type,
                    label=item.label,
                    detail=item.detail,
                    scheduled_at=item.scheduled_at,
                    scheduled_time=format_time_of_day(item.scheduled_at),
                    state=state,
                    completed_at=(
                        DayProcessEngine._completed_at(outcome) if outcome else None
                    ),
                    link=item.link,
                )
            )

        # sorted() is stable, so ties keep input order
        return sorted(results, key=lambda result: result.scheduled_at)

    @staticmethod
    def group_by_state(
        items: Iterable[DayProcessItem],
    ) -> dict[str, list[DayProcessItem]]:
        """Bucket items by state; every state key is always present."""
        groups: dict[str, list[DayProcessItem]] = {
            state: [] for state in const.PROCESS_STATES
        }
        for item in items:
            groups[item.state].append(item)
        return groups

    @staticmethod
    def summarize(items: Iterable[DayProcessItem]) -> DayStatusSummary:
        """Count done/pending/overdue items and the percentage done.

        "pending" here means anything not done and not yet overdue.
        """
        states = [item.state for item in items]
        total = len(states)
        done = states.count(const.PROCESS_STATE_DONE)
        overdue = states.count(const.PROCESS_STATE_OVERDUE)
        percent_done = math.floor(done * 100 / total + 0.5) if total else 0
        return {
            "total": total,
            "done": done,
            "pending": total - done - overdue,
            "overdue": overdue,
            "percent_done": percent_done,
        }
