"""Tests for StatisticsEngine compliance figures."""

from __future__ import annotations

from carescheduler import const
from carescheduler.engines.statistics_engine import StatisticsEngine


def _instance(day: str, state: str, activity_type: str) -> dict:
    return {
        const.DATA_INSTANCE_DATE: day,
        const.DATA_INSTANCE_STATE: state,
        const.DATA_INSTANCE_ACTIVITY_TYPE: activity_type,
    }


INSTANCES = [
    _instance("2026-04-06", const.INSTANCE_STATE_COMPLETED, const.ACTIVITY_TYPE_PHYSICAL),
    _instance("2026-04-06", const.INSTANCE_STATE_OMITTED, const.ACTIVITY_TYPE_COGNITIVE),
    _instance("2026-04-07", const.INSTANCE_STATE_COMPLETED, const.ACTIVITY_TYPE_COGNITIVE),
    _instance("2026-04-07", const.INSTANCE_STATE_PENDING, const.ACTIVITY_TYPE_PHYSICAL),
    _instance("2026-04-07", const.INSTANCE_STATE_CANCELLED, const.ACTIVITY_TYPE_PHYSICAL),
    _instance("2026-04-08", const.INSTANCE_STATE_COMPLETED, const.ACTIVITY_TYPE_PHYSICAL),
]


class TestPercent:
    """Whole percentages."""

    def test_rounding(self) -> None:
        """Halves round up, empty totals give zero."""
        assert StatisticsEngine.percent(1, 3) == 33
        assert StatisticsEngine.percent(2, 3) == 67
        assert StatisticsEngine.percent(1, 8) == 13
        assert StatisticsEngine.percent(0, 0) == 0


class TestComplianceSummary:
    """Totals per state and per activity type."""

    def test_counts(self) -> None:
        """Every state is counted once."""
        summary = StatisticsEngine.compliance_summary(INSTANCES)
        assert summary["total"] == 6
        assert summary["completed"] == 3
        assert summary["omitted"] == 1
        assert summary["pending"] == 1
        assert summary["cancelled"] == 1
        assert summary["percent_completed"] == 50

    def test_by_activity_type(self) -> None:
        """Completed/total per type."""
        by_type = StatisticsEngine.compliance_summary(INSTANCES)["by_activity_type"]
        assert by_type[const.ACTIVITY_TYPE_PHYSICAL] == {"completed": 2, "total": 4}
        assert by_type[const.ACTIVITY_TYPE_COGNITIVE] == {"completed": 1, "total": 2}

    def test_empty(self) -> None:
        """Both activity types are present even with no data."""
        summary = StatisticsEngine.compliance_summary([])
        assert summary["total"] == 0
        assert summary["percent_completed"] == 0
        assert set(summary["by_activity_type"]) == set(const.ACTIVITY_TYPES)


class TestDailyCompliance:
    """Per-day breakdown."""

    def test_days_in_order(self) -> None:
        """One summary per date, sorted."""
        daily = StatisticsEngine.daily_compliance(reversed(INSTANCES))
        assert list(daily) == ["2026-04-06", "2026-04-07", "2026-04-08"]
        assert daily["2026-04-07"]["total"] == 3
        assert daily["2026-04-08"]["percent_completed"] == 100
