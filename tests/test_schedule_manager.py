"""Tests for ScheduleManager - template CRUD and edit invalidation."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

from freezegun import freeze_time
import pytest

from carescheduler import const
from carescheduler.engines.instance_engine import InstanceEngine
from carescheduler.exceptions import NotFoundError, ValidationError
from carescheduler.managers import InstanceManager, LifecycleManager, ScheduleManager
from carescheduler.store import MemoryDocumentStore

MONDAY = "2026-04-06"
TUESDAY = "2026-04-07"
WEDNESDAY = "2026-04-08"
THURSDAY = "2026-04-09"
FRIDAY = "2026-04-10"
SUNDAY = "2026-04-12"


def _states_by_date(instances: list[dict[str, Any]]) -> dict[str, str]:
    return {
        i[const.DATA_INSTANCE_DATE]: i[const.DATA_INSTANCE_STATE] for i in instances
    }


# =============================================================================
# TEST: INVALIDATION
# =============================================================================


class TestInvalidation:
    """Edits remove only future pending instances."""

    @pytest.mark.asyncio
    async def test_history_survives_edit(
        self,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        lifecycle_manager: LifecycleManager,
        defined_template: dict[str, Any],
        actor: dict[str, str],
    ) -> None:
        """Past, completed, omitted and cancelled instances are kept.

        Only the pending ones from today onwards are deleted.
        """
        template_id = defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        await instance_manager.async_materialize_range(MONDAY, SUNDAY)
        await lifecycle_manager.async_complete_defined(
            InstanceEngine.build_instance_id(template_id, WEDNESDAY), actor, 30
        )
        await lifecycle_manager.async_omit(
            InstanceEngine.build_instance_id(template_id, THURSDAY), "Fever", actor
        )
        await lifecycle_manager.async_cancel(
            InstanceEngine.build_instance_id(template_id, FRIDAY)
        )

        deleted = await schedule_manager.async_on_template_edited(
            template_id, today=TUESDAY
        )
        assert deleted == 1

        remaining = await instance_manager.async_get_instances_for_range(
            MONDAY, SUNDAY
        )
        assert _states_by_date(remaining) == {
            MONDAY: const.INSTANCE_STATE_PENDING,
            WEDNESDAY: const.INSTANCE_STATE_COMPLETED,
            THURSDAY: const.INSTANCE_STATE_OMITTED,
            FRIDAY: const.INSTANCE_STATE_CANCELLED,
        }

    @pytest.mark.asyncio
    async def test_other_templates_untouched(
        self,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        defined_template: dict[str, Any],
        open_slot_template: dict[str, Any],
    ) -> None:
        """Only the edited template's instances are deleted."""
        await instance_manager.async_materialize(WEDNESDAY)
        await schedule_manager.async_on_template_edited(
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID], today=MONDAY
        )
        remaining = await instance_manager.async_get_instances_for_date(WEDNESDAY)
        assert [i[const.DATA_INSTANCE_TEMPLATE_ID] for i in remaining] == [
            open_slot_template[const.DATA_TEMPLATE_INTERNAL_ID]
        ]

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("utc_clock")
    @freeze_time("2026-04-07 12:00:00", tz_offset=0)
    async def test_today_defaults_to_clock(
        self,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        defined_template: dict[str, Any],
    ) -> None:
        """Without an explicit day, the current date is the cut-off."""
        await instance_manager.async_materialize_range(MONDAY, SUNDAY)
        deleted = await schedule_manager.async_on_template_edited(
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        )
        assert deleted == 4
        remaining = await instance_manager.async_get_instances_for_range(
            MONDAY, SUNDAY
        )
        assert [i[const.DATA_INSTANCE_DATE] for i in remaining] == [MONDAY]

    @pytest.mark.asyncio
    async def test_completed_between_query_and_delete_is_kept(
        self,
        store: MemoryDocumentStore,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        defined_template: dict[str, Any],
    ) -> None:
        """The conditional delete loses to a concurrent completion."""
        template_id = defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        await instance_manager.async_materialize(TUESDAY)
        instance_id = InstanceEngine.build_instance_id(template_id, TUESDAY)
        original_query = store.async_query

        async def query_then_complete(*args, **kwargs):
            results = await original_query(*args, **kwargs)
            await store.async_update(
                const.COLLECTION_INSTANCES,
                instance_id,
                {const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_COMPLETED},
            )
            return results

        with patch.object(store, "async_query", new=query_then_complete):
            deleted = await schedule_manager.async_on_template_edited(
                template_id, today=TUESDAY
            )

        assert deleted == 0
        stored = await instance_manager.async_get_instance(instance_id)
        assert stored[const.DATA_INSTANCE_STATE] == const.INSTANCE_STATE_COMPLETED

    @pytest.mark.asyncio
    async def test_invalidate_several_templates(
        self,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        defined_template: dict[str, Any],
        open_slot_template: dict[str, Any],
    ) -> None:
        """Deleted counts are summed across templates."""
        await instance_manager.async_materialize_range(MONDAY, SUNDAY)
        deleted = await schedule_manager.async_invalidate_templates(
            [
                defined_template[const.DATA_TEMPLATE_INTERNAL_ID],
                open_slot_template[const.DATA_TEMPLATE_INTERNAL_ID],
            ],
            today=TUESDAY,
        )
        # Tuesday to Friday walks plus the Wednesday slot
        assert deleted == 5
        remaining = await instance_manager.async_get_instances_for_range(
            MONDAY, SUNDAY
        )
        assert {i[const.DATA_INSTANCE_DATE] for i in remaining} == {MONDAY}
        assert len(remaining) == 2

    @pytest.mark.asyncio
    async def test_deactivate(
        self,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        defined_template: dict[str, Any],
    ) -> None:
        """Deactivation invalidates and soft-deletes the template."""
        template_id = defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        await instance_manager.async_materialize_range(MONDAY, SUNDAY)

        deleted = await schedule_manager.async_on_template_deactivated(
            template_id, today=WEDNESDAY
        )
        assert deleted == 3

        template = await schedule_manager.async_get_template(template_id)
        assert template[const.DATA_TEMPLATE_ACTIVE] is False
        assert await schedule_manager.async_get_active_templates() == []

        # Regenerating creates nothing for an inactive template
        assert await instance_manager.async_materialize_range(WEDNESDAY, SUNDAY) == 0

    @pytest.mark.asyncio
    async def test_deactivate_unknown(self, schedule_manager: ScheduleManager) -> None:
        """Unknown template ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await schedule_manager.async_deactivate_template("missing", today=MONDAY)


# =============================================================================
# TEST: TEMPLATE CRUD
# =============================================================================


class TestTemplateCrud:
    """Create, update and duplicate."""

    @pytest.mark.asyncio
    async def test_create_derives_shift(
        self, defined_template: dict[str, Any], open_slot_template: dict[str, Any]
    ) -> None:
        """Shift follows the preferred time."""
        assert defined_template[const.DATA_TEMPLATE_SHIFT] == const.SHIFT_MORNING
        assert open_slot_template[const.DATA_TEMPLATE_SHIFT] == const.SHIFT_AFTERNOON
        assert defined_template[const.DATA_TEMPLATE_CREATED_BY] == "coordinator-1"
        assert defined_template[const.DATA_TEMPLATE_OPEN_SLOT] is None

    @pytest.mark.asyncio
    async def test_create_invalid_writes_nothing(
        self,
        schedule_manager: ScheduleManager,
        defined_template_input: dict[str, Any],
    ) -> None:
        """An empty weekday set is rejected before storage."""
        defined_template_input[const.DATA_TEMPLATE_WEEKDAYS] = []
        with pytest.raises(ValidationError):
            await schedule_manager.async_create_template(
                defined_template_input, created_by="coordinator-1"
            )
        assert await schedule_manager.async_get_active_templates() == []

    @pytest.mark.asyncio
    async def test_update_regenerates(
        self,
        schedule_manager: ScheduleManager,
        instance_manager: InstanceManager,
        defined_template: dict[str, Any],
    ) -> None:
        """Moving the time replaces future instances on the next run."""
        template_id = defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        await instance_manager.async_materialize_range(MONDAY, SUNDAY)

        updated = await schedule_manager.async_update_template(
            template_id, {const.DATA_TEMPLATE_PREFERRED_TIME: "15:00"}, today=TUESDAY
        )
        assert updated[const.DATA_TEMPLATE_SHIFT] == const.SHIFT_AFTERNOON
        assert updated[const.DATA_CREATED_AT] == defined_template[const.DATA_CREATED_AT]

        assert await instance_manager.async_materialize_range(TUESDAY, SUNDAY) == 4
        instances = await instance_manager.async_get_instances_for_range(
            MONDAY, SUNDAY
        )
        times = {
            i[const.DATA_INSTANCE_DATE]: i[const.DATA_INSTANCE_PREFERRED_TIME]
            for i in instances
        }
        assert times[MONDAY] == "09:00"
        assert times[TUESDAY] == "15:00"
        assert len(times) == 5

    @pytest.mark.asyncio
    async def test_update_unknown(self, schedule_manager: ScheduleManager) -> None:
        """Updating a missing template raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await schedule_manager.async_update_template(
                "missing", {const.DATA_TEMPLATE_PREFERRED_TIME: "10:00"}
            )

    @pytest.mark.asyncio
    async def test_duplicate(
        self,
        schedule_manager: ScheduleManager,
        defined_template: dict[str, Any],
    ) -> None:
        """The copy gets a new id and author but the same schedule."""
        copy = await schedule_manager.async_duplicate_template(
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID], created_by="nurse-2"
        )
        assert copy[const.DATA_TEMPLATE_INTERNAL_ID] != (
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        )
        assert copy[const.DATA_TEMPLATE_CREATED_BY] == "nurse-2"
        assert copy[const.DATA_TEMPLATE_WEEKDAYS] == (
            defined_template[const.DATA_TEMPLATE_WEEKDAYS]
        )
        assert copy[const.DATA_TEMPLATE_DEFINED_ACTIVITY] == (
            defined_template[const.DATA_TEMPLATE_DEFINED_ACTIVITY]
        )
        assert len(await schedule_manager.async_get_active_templates()) == 2


# =============================================================================
# TEST: QUERIES
# =============================================================================


class TestTemplateQueries:
    """Lookups over active templates."""

    @pytest.mark.asyncio
    async def test_by_weekday(
        self,
        schedule_manager: ScheduleManager,
        defined_template: dict[str, Any],
        open_slot_template: dict[str, Any],
    ) -> None:
        """Wednesday has both, Tuesday one, Sunday none."""
        assert len(await schedule_manager.async_get_templates_for_weekday(3)) == 2
        tuesday = await schedule_manager.async_get_templates_for_weekday(2)
        assert [t[const.DATA_TEMPLATE_INTERNAL_ID] for t in tuesday] == [
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        ]
        assert await schedule_manager.async_get_templates_for_weekday(0) == []

    @pytest.mark.asyncio
    async def test_by_shift_and_type(
        self,
        schedule_manager: ScheduleManager,
        defined_template: dict[str, Any],
        open_slot_template: dict[str, Any],
    ) -> None:
        """Shift and activity type filters."""
        afternoon = await schedule_manager.async_get_templates_for_shift(
            const.SHIFT_AFTERNOON
        )
        assert [t[const.DATA_TEMPLATE_INTERNAL_ID] for t in afternoon] == [
            open_slot_template[const.DATA_TEMPLATE_INTERNAL_ID]
        ]
        physical = await schedule_manager.async_get_templates_for_activity_type(
            const.ACTIVITY_TYPE_PHYSICAL
        )
        assert [t[const.DATA_TEMPLATE_INTERNAL_ID] for t in physical] == [
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID]
        ]
        assert await schedule_manager.async_get_templates_for_shift(
            const.SHIFT_NIGHT
        ) == []

    @pytest.mark.asyncio
    async def test_count_by_activity_type(
        self,
        schedule_manager: ScheduleManager,
        defined_template: dict[str, Any],
        open_slot_template: dict[str, Any],
    ) -> None:
        """Inactive templates are not counted."""
        assert await schedule_manager.async_count_by_activity_type() == {
            const.ACTIVITY_TYPE_PHYSICAL: 1,
            const.ACTIVITY_TYPE_COGNITIVE: 1,
            "total": 2,
        }
        await schedule_manager.async_deactivate_template(
            defined_template[const.DATA_TEMPLATE_INTERNAL_ID], today=MONDAY
        )
        counts = await schedule_manager.async_count_by_activity_type()
        assert counts[const.ACTIVITY_TYPE_PHYSICAL] == 0
        assert counts["total"] == 1
