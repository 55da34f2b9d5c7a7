"""Tests for InstanceEngine - pure logic, no store fixtures needed."""

from __future__ import annotations

from typing import Any

import pytest

from carescheduler import const
from carescheduler.engines.instance_engine import InstanceEngine
from carescheduler.exceptions import InvalidStateError

ACTOR = {"id": "caregiver-1", "name": "Marta"}


def _defined_template(**overrides: Any) -> dict[str, Any]:
    template = {
        const.DATA_TEMPLATE_INTERNAL_ID: "tpl-walk",
        const.DATA_TEMPLATE_MODALITY: const.MODALITY_DEFINED,
        const.DATA_TEMPLATE_ACTIVITY_TYPE: const.ACTIVITY_TYPE_PHYSICAL,
        const.DATA_TEMPLATE_DEFINED_ACTIVITY: {
            const.DATA_ACTIVITY_NAME: "Morning walk",
            const.DATA_ACTIVITY_DURATION: 30,
            const.DATA_ACTIVITY_MATERIALS: ["walker"],
        },
        const.DATA_TEMPLATE_OPEN_SLOT: None,
        const.DATA_TEMPLATE_SHIFT: const.SHIFT_MORNING,
        const.DATA_TEMPLATE_PREFERRED_TIME: "09:00",
        const.DATA_TEMPLATE_WEEKDAYS: [1, 2, 3, 4, 5],
        const.DATA_TEMPLATE_ACTIVE: True,
    }
    template.update(overrides)
    return template


def _instance(state: str, modality: str = const.MODALITY_DEFINED) -> dict[str, Any]:
    return {
        const.DATA_INSTANCE_INTERNAL_ID: "tpl-walk_20260407",
        const.DATA_INSTANCE_STATE: state,
        const.DATA_INSTANCE_MODALITY: modality,
    }


# =============================================================================
# TEST: IDS AND SNAPSHOTS
# =============================================================================


class TestBuildInstance:
    """Instances are value snapshots of their template."""

    def test_deterministic_id(self) -> None:
        """Id is template id plus compact date."""
        assert InstanceEngine.build_instance_id("tpl1", "2026-04-07") == "tpl1_20260407"

    def test_id_ignores_time_component(self) -> None:
        """Datetimes are normalized to their date."""
        assert (
            InstanceEngine.build_instance_id("tpl1", "2026-04-07T23:59:00")
            == "tpl1_20260407"
        )

    def test_pending_snapshot(self) -> None:
        """A new instance is pending and copies the template fields."""
        instance = InstanceEngine.build_instance(
            _defined_template(), "2026-04-07", now_iso="2026-04-07T06:00:00"
        )
        assert instance[const.DATA_INSTANCE_INTERNAL_ID] == "tpl-walk_20260407"
        assert instance[const.DATA_INSTANCE_TEMPLATE_ID] == "tpl-walk"
        assert instance[const.DATA_INSTANCE_STATE] == const.INSTANCE_STATE_PENDING
        assert instance[const.DATA_INSTANCE_DATE] == "2026-04-07"
        assert instance[const.DATA_INSTANCE_SHIFT] == const.SHIFT_MORNING
        assert instance[const.DATA_INSTANCE_OPEN_SLOT] is None
        assert instance[const.DATA_INSTANCE_AUTO_GENERATED] is True
        assert instance[const.DATA_CREATED_AT] == "2026-04-07T06:00:00"

    def test_snapshot_is_a_copy(self) -> None:
        """Editing the template afterwards does not touch the instance."""
        template = _defined_template()
        instance = InstanceEngine.build_instance(template, "2026-04-07")

        template[const.DATA_TEMPLATE_DEFINED_ACTIVITY][const.DATA_ACTIVITY_NAME] = "Run"
        template[const.DATA_TEMPLATE_DEFINED_ACTIVITY][
            const.DATA_ACTIVITY_MATERIALS
        ].append("shoes")

        snapshot = instance[const.DATA_INSTANCE_DEFINED_ACTIVITY]
        assert snapshot[const.DATA_ACTIVITY_NAME] == "Morning walk"
        assert snapshot[const.DATA_ACTIVITY_MATERIALS] == ["walker"]

    def test_shift_rederived_with_boundaries(self) -> None:
        """Explicit boundaries win over the stored shift."""
        instance = InstanceEngine.build_instance(
            _defined_template(),
            "2026-04-07",
            boundaries={const.DATA_SETTINGS_MORNING_START: "09:30"},
        )
        assert instance[const.DATA_INSTANCE_SHIFT] == const.SHIFT_NIGHT


# =============================================================================
# TEST: STATE MACHINE
# =============================================================================


class TestStateTransitions:
    """Only the four documented edges exist."""

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (const.INSTANCE_STATE_PENDING, const.INSTANCE_STATE_COMPLETED),
            (const.INSTANCE_STATE_PENDING, const.INSTANCE_STATE_OMITTED),
            (const.INSTANCE_STATE_PENDING, const.INSTANCE_STATE_CANCELLED),
            (const.INSTANCE_STATE_COMPLETED, const.INSTANCE_STATE_PENDING),
        ],
    )
    def test_allowed(self, current: str, target: str) -> None:
        """Allowed edges."""
        assert InstanceEngine.can_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (const.INSTANCE_STATE_COMPLETED, const.INSTANCE_STATE_OMITTED),
            (const.INSTANCE_STATE_COMPLETED, const.INSTANCE_STATE_CANCELLED),
            (const.INSTANCE_STATE_OMITTED, const.INSTANCE_STATE_PENDING),
            (const.INSTANCE_STATE_OMITTED, const.INSTANCE_STATE_COMPLETED),
            (const.INSTANCE_STATE_CANCELLED, const.INSTANCE_STATE_PENDING),
            (const.INSTANCE_STATE_CANCELLED, const.INSTANCE_STATE_COMPLETED),
        ],
    )
    def test_rejected(self, current: str, target: str) -> None:
        """Everything else is rejected."""
        assert not InstanceEngine.can_transition(current, target)

    def test_terminal_states(self) -> None:
        """Pending is the only non-terminal state."""
        assert not InstanceEngine.is_terminal(const.INSTANCE_STATE_PENDING)
        assert InstanceEngine.is_terminal(const.INSTANCE_STATE_OMITTED)


class TestValidateAction:
    """validate_action checks state first, then modality."""

    def test_returns_current_state(self) -> None:
        """The current state is returned for use as write precondition."""
        state = InstanceEngine.validate_action(
            _instance(const.INSTANCE_STATE_PENDING), const.ACTION_OMIT
        )
        assert state == const.INSTANCE_STATE_PENDING

    def test_wrong_state(self) -> None:
        """Omitting a completed instance is rejected."""
        with pytest.raises(InvalidStateError) as exc_info:
            InstanceEngine.validate_action(
                _instance(const.INSTANCE_STATE_COMPLETED), const.ACTION_OMIT
            )
        assert exc_info.value.translation_key == const.TRANS_KEY_ERROR_INVALID_STATE

    def test_wrong_modality(self) -> None:
        """Defined completion on an open slot is rejected."""
        with pytest.raises(InvalidStateError) as exc_info:
            InstanceEngine.validate_action(
                _instance(const.INSTANCE_STATE_PENDING, const.MODALITY_OPEN_SLOT),
                const.ACTION_COMPLETE,
                const.MODALITY_DEFINED,
            )
        assert exc_info.value.translation_key == const.TRANS_KEY_ERROR_INVALID_MODALITY


# =============================================================================
# TEST: TRANSITION PLANS
# =============================================================================


class TestPlans:
    """Each plan carries its precondition and every field it writes."""

    def test_plan_complete(self) -> None:
        """Completion writes state and execution together."""
        execution = InstanceEngine.build_execution(
            ACTOR, 45, participation=const.PARTICIPATION_ACTIVE
        )
        plan = InstanceEngine.plan_complete(execution)
        assert plan.expected_state == const.INSTANCE_STATE_PENDING
        assert plan.set_fields[const.DATA_INSTANCE_STATE] == const.INSTANCE_STATE_COMPLETED
        written = plan.set_fields[const.DATA_INSTANCE_EXECUTION]
        assert written[const.DATA_EXECUTION_ACTUAL_DURATION] == 45
        assert written[const.DATA_EXECUTION_ACTOR_NAME] == "Marta"
        assert const.DATA_EXECUTION_MOOD not in written

    def test_plan_clear_removes_records(self) -> None:
        """Clearing drops execution and chosen activity."""
        plan = InstanceEngine.plan_clear()
        assert plan.expected_state == const.INSTANCE_STATE_COMPLETED
        assert plan.new_state == const.INSTANCE_STATE_PENDING
        assert set(plan.remove_fields) == {
            const.DATA_INSTANCE_EXECUTION,
            const.DATA_INSTANCE_CHOSEN_ACTIVITY,
        }

    def test_plan_update_merges_execution(self) -> None:
        """Corrections keep the actor and completion time."""
        instance = {
            const.DATA_INSTANCE_EXECUTION: InstanceEngine.build_execution(
                ACTOR, 30, completed_at="2026-04-07T09:40:00"
            )
        }
        plan = InstanceEngine.plan_update_completed(
            instance, {const.DATA_EXECUTION_ACTUAL_DURATION: 50}
        )
        execution = plan.set_fields[const.DATA_INSTANCE_EXECUTION]
        assert execution[const.DATA_EXECUTION_ACTUAL_DURATION] == 50
        assert execution[const.DATA_EXECUTION_COMPLETED_AT] == "2026-04-07T09:40:00"
        assert const.DATA_INSTANCE_STATE not in plan.set_fields

    def test_plan_omit(self) -> None:
        """Omission stores reason and actor."""
        plan = InstanceEngine.plan_omit("Fever", ACTOR, now_iso="2026-04-07T10:00:00")
        omission = plan.set_fields[const.DATA_INSTANCE_OMISSION]
        assert omission == {
            const.DATA_OMISSION_REASON: "Fever",
            const.DATA_OMISSION_ACTOR_ID: "caregiver-1",
            const.DATA_OMISSION_ACTOR_NAME: "Marta",
            const.DATA_OMISSION_OMITTED_AT: "2026-04-07T10:00:00",
        }


# =============================================================================
# TEST: DISPLAY HELPERS
# =============================================================================


class TestDisplayHelpers:
    """Names and allow-lists."""

    def test_allow_list(self) -> None:
        """An empty allow-list accepts any option."""
        assert InstanceEngine.is_option_allowed({}, "anything")
        slot = {const.DATA_SLOT_ALLOWED_OPTION_IDS: ["opt-a"]}
        assert InstanceEngine.is_option_allowed(slot, "opt-a")
        assert not InstanceEngine.is_option_allowed(slot, "opt-b")

    def test_display_names(self) -> None:
        """Defined name, open slot label, then the caregiver's choice."""
        assert InstanceEngine.template_display_name(_defined_template()) == "Morning walk"
        slot_instance = {
            const.DATA_INSTANCE_MODALITY: const.MODALITY_OPEN_SLOT,
            const.DATA_INSTANCE_ACTIVITY_TYPE: const.ACTIVITY_TYPE_COGNITIVE,
            const.DATA_INSTANCE_OPEN_SLOT: {const.DATA_SLOT_ESTIMATED_DURATION: 30},
        }
        assert (
            InstanceEngine.instance_display_name(slot_instance)
            == "Open activity (Cognitive)"
        )
        slot_instance[const.DATA_INSTANCE_CHOSEN_ACTIVITY] = {
            const.DATA_CHOSEN_NAME: "Puzzle"
        }
        assert InstanceEngine.instance_display_name(slot_instance) == "Puzzle"

    def test_durations(self) -> None:
        """Defined duration, slot estimate, else the default."""
        assert InstanceEngine.template_duration(_defined_template()) == 30
        open_slot = _defined_template(
            **{
                const.DATA_TEMPLATE_MODALITY: const.MODALITY_OPEN_SLOT,
                const.DATA_TEMPLATE_DEFINED_ACTIVITY: None,
                const.DATA_TEMPLATE_OPEN_SLOT: {const.DATA_SLOT_ESTIMATED_DURATION: 45},
            }
        )
        assert InstanceEngine.template_duration(open_slot) == 45
        missing = _defined_template(**{const.DATA_TEMPLATE_DEFINED_ACTIVITY: None})
        assert InstanceEngine.template_duration(missing) == const.DEFAULT_ACTIVITY_DURATION
