"""Instance Engine - Pure logic for instance creation and state transitions.

This engine provides stateless, pure Python functions for:
- Deterministic instance ids (template id + date)
- Building an instance as a value snapshot of its template
- Transition validation against the instance state machine
- TransitionPlan calculation for each lifecycle action
- Display helpers shared by templates and instances

ARCHITECTURE: This is a pure logic engine with NO store dependencies.
All functions are static methods that operate on passed-in data.
Persistence belongs in LifecycleManager / InstanceManager.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .. import const
from ..exceptions import InvalidStateError
from ..utils.dt_utils import compact_date, dt_now_iso, normalize_date
from .shift_engine import ShiftEngine

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date, datetime

    from ..type_defs import (
        Actor,
        ChosenActivity,
        ExecutionData,
        InstanceData,
        InstanceId,
    )


# =============================================================================
# TRANSITION PLAN DATA STRUCTURE
# =============================================================================


@dataclass
class TransitionPlan:
    """Changes one lifecycle action applies to an instance document.

    Returned by the InstanceEngine.plan_* methods. The manager writes every
    field in one conditional update guarded on `expected_state`.

    Attributes:
        action: One of the const.ACTION_* names
        expected_state: State the document must still be in when written
        new_state: Target instance state
        set_fields: Fields written as-is (state and updated_at included)
        remove_fields: Fields deleted from the document
    """

    action: str
    expected_state: str
    new_state: str
    set_fields: dict[str, Any] = field(default_factory=dict)
    remove_fields: tuple[str, ...] = ()


# =============================================================================
# INSTANCE ENGINE
# =============================================================================


class InstanceEngine:
    """Pure logic engine for instance snapshots and the lifecycle FSM.

    All methods are static - no instance state. This enables easy unit testing
    without any store fixtures.
    """

    # Valid state transitions matrix
    VALID_TRANSITIONS: dict[str, list[str]] = {
        # From PENDING: every terminal state is reachable
        const.INSTANCE_STATE_PENDING: [
            const.INSTANCE_STATE_COMPLETED,
            const.INSTANCE_STATE_OMITTED,
            const.INSTANCE_STATE_CANCELLED,
        ],
        # From COMPLETED: only the explicit clear correction
        const.INSTANCE_STATE_COMPLETED: [
            const.INSTANCE_STATE_PENDING,
        ],
        const.INSTANCE_STATE_OMITTED: [],
        const.INSTANCE_STATE_CANCELLED: [],
    }

    # Action -> (required current state, target state)
    ACTION_TRANSITIONS: dict[str, tuple[str, str]] = {
        const.ACTION_COMPLETE: (
            const.INSTANCE_STATE_PENDING,
            const.INSTANCE_STATE_COMPLETED,
        ),
        const.ACTION_OMIT: (const.INSTANCE_STATE_PENDING, const.INSTANCE_STATE_OMITTED),
        const.ACTION_CANCEL: (
            const.INSTANCE_STATE_PENDING,
            const.INSTANCE_STATE_CANCELLED,
        ),
        const.ACTION_CLEAR: (
            const.INSTANCE_STATE_COMPLETED,
            const.INSTANCE_STATE_PENDING,
        ),
        # Correction keeps the state, so it is not part of VALID_TRANSITIONS
        const.ACTION_UPDATE_COMPLETED: (
            const.INSTANCE_STATE_COMPLETED,
            const.INSTANCE_STATE_COMPLETED,
        ),
    }

    # =========================================================================
    # IDS AND SNAPSHOTS
    # =========================================================================

    @staticmethod
    def build_instance_id(template_id: str, day: str | date | datetime) -> InstanceId:
        """Return the deterministic id of a template's instance on a date.

        Example:
            >>> InstanceEngine.build_instance_id("tpl1", "2026-04-07")
            'tpl1_20260407'
        """
        return f"{template_id}_{compact_date(day)}"

    @staticmethod
    def build_instance(
        template: Mapping[str, Any],
        day: str | date | datetime,
        *,
        boundaries: Mapping[str, Any] | None = None,
        auto_generated: bool = True,
        now_iso: str | None = None,
    ) -> InstanceData:
        """Build a new pending instance from a template for a date.

        The activity/slot payload is deep-copied so later template edits can
        never alter an instance that already exists. The shift is re-derived
        from the preferred time when boundaries are supplied, otherwise the
        template's stored shift is used.
        """
        template_id = template[const.DATA_TEMPLATE_INTERNAL_ID]
        modality = template[const.DATA_TEMPLATE_MODALITY]
        preferred_time = template[const.DATA_TEMPLATE_PREFERRED_TIME]
        timestamp = now_iso or dt_now_iso()

        if boundaries is not None or not template.get(const.DATA_TEMPLATE_SHIFT):
            shift = ShiftEngine.classify(preferred_time, boundaries)
        else:
            shift = template[const.DATA_TEMPLATE_SHIFT]

        defined = None
        open_slot = None
        if modality == const.MODALITY_DEFINED:
            defined = copy.deepcopy(template.get(const.DATA_TEMPLATE_DEFINED_ACTIVITY))
        else:
            open_slot = copy.deepcopy(template.get(const.DATA_TEMPLATE_OPEN_SLOT))

        return {
            const.DATA_INSTANCE_INTERNAL_ID: InstanceEngine.build_instance_id(
                template_id, day
            ),
            const.DATA_INSTANCE_TEMPLATE_ID: template_id,
            const.DATA_INSTANCE_MODALITY: modality,
            const.DATA_INSTANCE_ACTIVITY_TYPE: template[
                const.DATA_TEMPLATE_ACTIVITY_TYPE
            ],
            const.DATA_INSTANCE_SHIFT: shift,
            const.DATA_INSTANCE_DATE: normalize_date(day),
            const.DATA_INSTANCE_PREFERRED_TIME: preferred_time,
            const.DATA_INSTANCE_DEFINED_ACTIVITY: defined,
            const.DATA_INSTANCE_OPEN_SLOT: open_slot,
            const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_PENDING,
            const.DATA_INSTANCE_AUTO_GENERATED: auto_generated,
            const.DATA_CREATED_AT: timestamp,
            const.DATA_UPDATED_AT: timestamp,
        }  # type: ignore[return-value]

    # =========================================================================
    # STATE TRANSITION LOGIC
    # =========================================================================

    @staticmethod
    def can_transition(current_state: str, target_state: str) -> bool:
        """Validate if a state transition is allowed.

        Args:
            current_state: Current instance state
            target_state: Desired new state

        Returns:
            True if transition is valid, False otherwise
        """
        valid_targets = InstanceEngine.VALID_TRANSITIONS.get(current_state, [])
        return target_state in valid_targets

    @staticmethod
    def is_terminal(state: str) -> bool:
        """Return True for completed, omitted and cancelled."""
        return state in const.INSTANCE_TERMINAL_STATES

    @staticmethod
    def validate_action(
        instance: Mapping[str, Any],
        action: str,
        required_modality: str | None = None,
    ) -> str:
        """Check that an action is legal for the instance as it is now.

        Args:
            instance: Current instance document
            action: One of const.ACTION_*
            required_modality: Modality the action is restricted to, if any

        Returns:
            The instance's current state (used as the write precondition)

        Raises:
            InvalidStateError: If the state or modality does not allow it
        """
        instance_id = instance.get(const.DATA_INSTANCE_INTERNAL_ID, "")
        current_state = instance.get(const.DATA_INSTANCE_STATE, "")
        required_state, _target = InstanceEngine.ACTION_TRANSITIONS[action]

        if current_state != required_state:
            raise InvalidStateError(
                translation_placeholders={
                    "action": action,
                    "entity": instance_id,
                    "state": current_state,
                }
            )

        modality = instance.get(const.DATA_INSTANCE_MODALITY)
        if required_modality is not None and modality != required_modality:
            raise InvalidStateError(
                const.TRANS_KEY_ERROR_INVALID_MODALITY,
                {"action": action, "entity": instance_id, "modality": modality},
            )
        return current_state

    # =========================================================================
    # TRANSITION PLANNING
    # =========================================================================

    @staticmethod
    def build_execution(
        actor: Actor,
        actual_duration: int | float,
        *,
        participation: str | None = None,
        mood: str | None = None,
        notes: str | None = None,
        completed_at: str | None = None,
    ) -> ExecutionData:
        """Build an execution block; optional fields are omitted when unset."""
        execution: dict[str, Any] = {
            const.DATA_EXECUTION_ACTOR_ID: actor["id"],
            const.DATA_EXECUTION_ACTOR_NAME: actor["name"],
            const.DATA_EXECUTION_COMPLETED_AT: completed_at or dt_now_iso(),
            const.DATA_EXECUTION_ACTUAL_DURATION: actual_duration,
        }
        if participation:
            execution[const.DATA_EXECUTION_PARTICIPATION] = participation
        if mood:
            execution[const.DATA_EXECUTION_MOOD] = mood
        if notes:
            execution[const.DATA_EXECUTION_NOTES] = notes
        return execution  # type: ignore[return-value]

    @staticmethod
    def plan_complete(
        execution: ExecutionData,
        chosen_activity: ChosenActivity | None = None,
        now_iso: str | None = None,
    ) -> TransitionPlan:
        """Plan pending -> completed."""
        set_fields: dict[str, Any] = {
            const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_COMPLETED,
            const.DATA_INSTANCE_EXECUTION: dict(execution),
            const.DATA_UPDATED_AT: now_iso or dt_now_iso(),
        }
        if chosen_activity is not None:
            set_fields[const.DATA_INSTANCE_CHOSEN_ACTIVITY] = dict(chosen_activity)
        return TransitionPlan(
            action=const.ACTION_COMPLETE,
            expected_state=const.INSTANCE_STATE_PENDING,
            new_state=const.INSTANCE_STATE_COMPLETED,
            set_fields=set_fields,
        )

    @staticmethod
    def plan_update_completed(
        instance: Mapping[str, Any],
        changes: Mapping[str, Any],
        chosen_activity: ChosenActivity | None = None,
        now_iso: str | None = None,
    ) -> TransitionPlan:
        """Plan a correction of a completed instance.

        Execution fields are merged over the current block, so the original
        actor and completion time survive the correction.
        """
        execution = dict(instance.get(const.DATA_INSTANCE_EXECUTION) or {})
        execution.update({key: val for key, val in changes.items() if val is not None})
        set_fields: dict[str, Any] = {
            const.DATA_INSTANCE_EXECUTION: execution,
            const.DATA_UPDATED_AT: now_iso or dt_now_iso(),
        }
        if chosen_activity is not None:
            set_fields[const.DATA_INSTANCE_CHOSEN_ACTIVITY] = dict(chosen_activity)
        return TransitionPlan(
            action=const.ACTION_UPDATE_COMPLETED,
            expected_state=const.INSTANCE_STATE_COMPLETED,
            new_state=const.INSTANCE_STATE_COMPLETED,
            set_fields=set_fields,
        )

    @staticmethod
    def plan_clear(now_iso: str | None = None) -> TransitionPlan:
        """Plan completed -> pending, discarding execution and chosen activity."""
        return TransitionPlan(
            action=const.ACTION_CLEAR,
            expected_state=const.INSTANCE_STATE_COMPLETED,
            new_state=const.INSTANCE_STATE_PENDING,
            set_fields={
                const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_PENDING,
                const.DATA_UPDATED_AT: now_iso or dt_now_iso(),
            },
            remove_fields=(
                const.DATA_INSTANCE_EXECUTION,
                const.DATA_INSTANCE_CHOSEN_ACTIVITY,
            ),
        )

    @staticmethod
    def plan_omit(
        reason: str,
        actor: Actor,
        now_iso: str | None = None,
    ) -> TransitionPlan:
        """Plan pending -> omitted with an omission block."""
        timestamp = now_iso or dt_now_iso()
        omission: dict[str, Any] = {
            const.DATA_OMISSION_REASON: reason,
            const.DATA_OMISSION_ACTOR_ID: actor["id"],
            const.DATA_OMISSION_ACTOR_NAME: actor["name"],
            const.DATA_OMISSION_OMITTED_AT: timestamp,
        }
        return TransitionPlan(
            action=const.ACTION_OMIT,
            expected_state=const.INSTANCE_STATE_PENDING,
            new_state=const.INSTANCE_STATE_OMITTED,
            set_fields={
                const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_OMITTED,
                const.DATA_INSTANCE_OMISSION: omission,
                const.DATA_UPDATED_AT: timestamp,
            },
        )

    @staticmethod
    def plan_cancel(now_iso: str | None = None) -> TransitionPlan:
        """Plan pending -> cancelled (administrative, no actor)."""
        return TransitionPlan(
            action=const.ACTION_CANCEL,
            expected_state=const.INSTANCE_STATE_PENDING,
            new_state=const.INSTANCE_STATE_CANCELLED,
            set_fields={
                const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_CANCELLED,
                const.DATA_UPDATED_AT: now_iso or dt_now_iso(),
            },
        )

    # =========================================================================
    # QUERY / DISPLAY HELPERS
    # =========================================================================

    @staticmethod
    def is_option_allowed(open_slot: Mapping[str, Any] | None, option_id: str) -> bool:
        """Return True if an option may fill this slot (empty list = any)."""
        allowed = (open_slot or {}).get(const.DATA_SLOT_ALLOWED_OPTION_IDS) or []
        return not allowed or option_id in allowed

    @staticmethod
    def template_display_name(template: Mapping[str, Any]) -> str:
        """Return the name shown for a template or instance."""
        modality = template.get(const.DATA_TEMPLATE_MODALITY)
        defined = template.get(const.DATA_TEMPLATE_DEFINED_ACTIVITY)
        if modality == const.MODALITY_DEFINED and defined:
            return defined[const.DATA_ACTIVITY_NAME]
        if modality == const.MODALITY_OPEN_SLOT and template.get(
            const.DATA_TEMPLATE_OPEN_SLOT
        ):
            activity_type = template.get(const.DATA_TEMPLATE_ACTIVITY_TYPE, "")
            return f"Open activity ({str(activity_type).capitalize()})"
        return "Activity"

    @staticmethod
    def instance_display_name(instance: Mapping[str, Any]) -> str:
        """Like template_display_name, but prefers the caregiver's choice."""
        chosen = instance.get(const.DATA_INSTANCE_CHOSEN_ACTIVITY)
        if chosen and chosen.get(const.DATA_CHOSEN_NAME):
            return chosen[const.DATA_CHOSEN_NAME]
        return InstanceEngine.template_display_name(instance)

    @staticmethod
    def template_duration(template: Mapping[str, Any]) -> int | float:
        """Return the planned duration in minutes (default 30)."""
        modality = template.get(const.DATA_TEMPLATE_MODALITY)
        defined = template.get(const.DATA_TEMPLATE_DEFINED_ACTIVITY)
        open_slot = template.get(const.DATA_TEMPLATE_OPEN_SLOT)
        if modality == const.MODALITY_DEFINED and defined:
            return defined[const.DATA_ACTIVITY_DURATION]
        if modality == const.MODALITY_OPEN_SLOT and open_slot:
            return open_slot[const.DATA_SLOT_ESTIMATED_DURATION]
        return const.DEFAULT_ACTIVITY_DURATION

    @staticmethod
    def slot_key(instance: Mapping[str, Any]) -> str:
        """Key identifying "the same activity" inside one date+time slot."""
        if instance.get(const.DATA_INSTANCE_MODALITY) == const.MODALITY_DEFINED:
            defined = instance.get(const.DATA_INSTANCE_DEFINED_ACTIVITY) or {}
            return f"defined_{defined.get(const.DATA_ACTIVITY_NAME, '')}"
        return f"slot_{instance.get(const.DATA_INSTANCE_ACTIVITY_TYPE, '')}"
