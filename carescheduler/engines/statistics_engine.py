"""Statistics Engine - Compliance figures derived from instance documents.

Design Principles:
    - Stateless: operates on the instance documents passed in
    - Derived on read: nothing is stored, so clearing or correcting a
      completion is reflected the next time the figures are computed
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ..type_defs import ComplianceSummary


class StatisticsEngine:
    """Compliance calculations over instance documents.

    Example:
        instances = await instance_manager.async_get_instances_for_range(
            "2026-04-06", "2026-04-12"
        )
        summary = StatisticsEngine.compliance_summary(instances)
        summary["percent_completed"]  # 0-100
    """

    @staticmethod
    def percent(part: int, total: int) -> int:
        """Return part/total as a whole percentage, rounding halves up."""
        if total <= 0:
            return 0
        return math.floor(part * 100 / total + 0.5)

    @staticmethod
    def compliance_summary(
        instances: Iterable[Mapping[str, Any]],
    ) -> ComplianceSummary:
        """Count instances per state and per activity type.

        Returns:
            ComplianceSummary with totals, percent completed and a
            per-activity-type completed/total breakdown.
        """
        counts = {
            const.INSTANCE_STATE_COMPLETED: 0,
            const.INSTANCE_STATE_OMITTED: 0,
            const.INSTANCE_STATE_PENDING: 0,
            const.INSTANCE_STATE_CANCELLED: 0,
        }
        by_type: dict[str, dict[str, int]] = {
            activity_type: {"completed": 0, "total": 0}
            for activity_type in const.ACTIVITY_TYPES
        }
        total = 0

        for instance in instances:
            total += 1
            state = instance.get(const.DATA_INSTANCE_STATE)
            if state in counts:
                counts[state] += 1

            activity_type = instance.get(const.DATA_INSTANCE_ACTIVITY_TYPE)
            bucket = by_type.setdefault(
                str(activity_type), {"completed": 0, "total": 0}
            )
            bucket["total"] += 1
            if state == const.INSTANCE_STATE_COMPLETED:
                bucket["completed"] += 1

        completed = counts[const.INSTANCE_STATE_COMPLETED]
        return {
            "total": total,
            "completed": completed,
            "omitted": counts[const.INSTANCE_STATE_OMITTED],
            "pending": counts[const.INSTANCE_STATE_PENDING],
            "cancelled": counts[const.INSTANCE_STATE_CANCELLED],
            "percent_completed": StatisticsEngine.percent(completed, total),
            "by_activity_type": by_type,  # type: ignore[typeddict-item]
        }

    @staticmethod
    def daily_compliance(
        instances: Iterable[Mapping[str, Any]],
    ) -> dict[str, ComplianceSummary]:
        """Compliance summary per ISO date, in date order."""
        per_day: dict[str, list[Mapping[str, Any]]] = {}
        for instance in instances:
            per_day.setdefault(instance.get(const.DATA_INSTANCE_DATE, ""), []).append(
                instance
            )
        return {
            day: StatisticsEngine.compliance_summary(day_instances)
            for day, day_instances in sorted(per_day.items())
        }
