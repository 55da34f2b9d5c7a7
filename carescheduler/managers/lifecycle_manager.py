"""Lifecycle Manager - Completion, omission and correction of instances.

This manager handles every instance state transition:
- Completing defined activities and open slots
- Correcting and clearing completed instances
- Omitting (with a reason) and cancelling pending instances

ARCHITECTURE:
- LifecycleManager = "The Job" (validation order, persistence)
- InstanceEngine = pure state machine and TransitionPlan building

Every operation follows the same order:
    1. validate caller input (ValidationError, nothing read or written)
    2. read the instance (NotFoundError)
    3. check state and modality (InvalidStateError)
    4. write all fields in ONE conditional update guarded on the state read
       in step 3; a concurrent transition makes this write fail, which is
       reported as InvalidStateError and leaves the document untouched
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import (
    build_actor,
    build_chosen_activity,
    build_execution_changes,
    validate_omission_reason,
)
from ..engines.instance_engine import InstanceEngine
from ..exceptions import InvalidStateError, PreconditionFailedError, ValidationError
from ..store import DELETE_FIELD
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..engines.instance_engine import TransitionPlan
    from ..type_defs import ChosenActivity, Document


class LifecycleManager(BaseManager):
    """Drives instances through the pending/completed/omitted/cancelled FSM."""

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    async def _async_get_instance(self, instance_id: str) -> Document:
        return await self._async_get_required(
            const.COLLECTION_INSTANCES, instance_id, const.LABEL_INSTANCE
        )

    async def _async_apply(self, instance_id: str, plan: TransitionPlan) -> Document:
        """Write a TransitionPlan as one conditional update.

        Raises:
            InvalidStateError: If the instance left `plan.expected_state`
                between the read and the write
            NotFoundError: If the instance was deleted in the meantime
        """
        changes: dict[str, Any] = dict(plan.set_fields)
        changes.update({key: DELETE_FIELD for key in plan.remove_fields})
        try:
            updated = await self._store.async_update(
                const.COLLECTION_INSTANCES,
                instance_id,
                changes,
                expected={const.DATA_INSTANCE_STATE: plan.expected_state},
            )
        except PreconditionFailedError as err:
            const.LOGGER.warning(
                "Rejected %s on instance %s: state changed concurrently",
                plan.action,
                instance_id,
            )
            raise InvalidStateError(
                const.TRANS_KEY_ERROR_CONCURRENT_UPDATE,
                {"action": plan.action, "entity": instance_id},
            ) from err

        const.LOGGER.debug(
            "Instance %s: %s -> %s (%s)",
            instance_id,
            plan.expected_state,
            plan.new_state,
            plan.action,
        )
        return updated

    @staticmethod
    def _check_option_allowed(
        instance: Mapping[str, Any], chosen: ChosenActivity
    ) -> None:
        """Reject option choices outside the slot's allow-list."""
        if chosen.get(const.DATA_CHOSEN_KIND) != const.CHOSEN_KIND_OPTION:
            return
        option_id = chosen.get(const.DATA_CHOSEN_OPTION_ID, "")
        if not InstanceEngine.is_option_allowed(
            instance.get(const.DATA_INSTANCE_OPEN_SLOT), option_id
        ):
            raise ValidationError(
                const.TRANS_KEY_ERROR_OPTION_NOT_ALLOWED,
                {"option": option_id},
                field=f"{const.DATA_INSTANCE_CHOSEN_ACTIVITY}.{const.DATA_CHOSEN_OPTION_ID}",
            )

    # =========================================================================
    # COMPLETION
    # =========================================================================

    async def async_complete_defined(
        self,
        instance_id: str,
        actor: Mapping[str, Any],
        actual_duration: int | float,
        participation: str | None = None,
        mood: str | None = None,
        notes: str | None = None,
    ) -> Document:
        """Complete a pending defined-activity instance.

        Args:
            instance_id: Instance to complete
            actor: {"id": ..., "name": ...} of the caregiver
            actual_duration: Minutes actually spent (> 0)
            participation: One of const.PARTICIPATION_LEVELS
            mood: Free text
            notes: Free text

        Returns:
            The updated instance

        Raises:
            ValidationError: If the actor or execution fields are invalid
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not pending or not defined
        """
        valid_actor = build_actor(actor)
        execution_fields = build_execution_changes(
            actual_duration, participation=participation, mood=mood, notes=notes
        )

        instance = await self._async_get_instance(instance_id)
        InstanceEngine.validate_action(
            instance, const.ACTION_COMPLETE, const.MODALITY_DEFINED
        )

        execution = InstanceEngine.build_execution(
            valid_actor,
            execution_fields[const.DATA_EXECUTION_ACTUAL_DURATION],
            participation=execution_fields.get(const.DATA_EXECUTION_PARTICIPATION),
            mood=execution_fields.get(const.DATA_EXECUTION_MOOD),
            notes=execution_fields.get(const.DATA_EXECUTION_NOTES),
        )
        updated = await self._async_apply(
            instance_id, InstanceEngine.plan_complete(execution)
        )
        const.LOGGER.info(
            "Instance %s completed by %s", instance_id, valid_actor["name"]
        )
        return updated

    async def async_complete_open_slot(
        self,
        instance_id: str,
        chosen_activity: Mapping[str, Any],
        actor: Mapping[str, Any],
        actual_duration: int | float,
        participation: str | None = None,
        mood: str | None = None,
        notes: str | None = None,
    ) -> Document:
        """Complete a pending open-slot instance with the caregiver's choice.

        `chosen_activity` is either a predefined option
        ({"kind": "option", "option_id", "name", "duration", ...}) or a
        free-form entry ({"kind": "custom", "name", "duration", "photo_url"?}).
        Options must be in the slot's allow-list when that list is not empty.

        Raises:
            ValidationError: If the choice, actor or execution fields are invalid
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not pending or not an open slot
        """
        chosen = build_chosen_activity(chosen_activity)
        valid_actor = build_actor(actor)
        execution_fields = build_execution_changes(
            actual_duration, participation=participation, mood=mood, notes=notes
        )

        instance = await self._async_get_instance(instance_id)
        InstanceEngine.validate_action(
            instance, const.ACTION_COMPLETE, const.MODALITY_OPEN_SLOT
        )
        self._check_option_allowed(instance, chosen)

        execution = InstanceEngine.build_execution(
            valid_actor,
            execution_fields[const.DATA_EXECUTION_ACTUAL_DURATION],
            participation=execution_fields.get(const.DATA_EXECUTION_PARTICIPATION),
            mood=execution_fields.get(const.DATA_EXECUTION_MOOD),
            notes=execution_fields.get(const.DATA_EXECUTION_NOTES),
        )
        updated = await self._async_apply(
            instance_id, InstanceEngine.plan_complete(execution, chosen)
        )
        const.LOGGER.info(
            "Open slot %s filled with '%s' by %s",
            instance_id,
            chosen[const.DATA_CHOSEN_NAME],
            valid_actor["name"],
        )
        return updated

    # =========================================================================
    # CORRECTIONS
    # =========================================================================

    async def async_update_completed(
        self,
        instance_id: str,
        actual_duration: int | float,
        chosen_activity: Mapping[str, Any] | None = None,
        participation: str | None = None,
        mood: str | None = None,
        notes: str | None = None,
    ) -> Document:
        """Correct the execution record of a completed instance.

        The given execution fields are merged over the stored ones; the
        original actor and completion time are kept. A new chosen activity
        replaces the old one (open slots only).

        Raises:
            ValidationError: If the new values are invalid
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not completed, or a chosen
                activity is given for a defined instance
        """
        execution_fields = build_execution_changes(
            actual_duration, participation=participation, mood=mood, notes=notes
        )
        chosen = (
            build_chosen_activity(chosen_activity)
            if chosen_activity is not None
            else None
        )

        instance = await self._async_get_instance(instance_id)
        InstanceEngine.validate_action(instance, const.ACTION_UPDATE_COMPLETED)
        if chosen is not None:
            modality = instance.get(const.DATA_INSTANCE_MODALITY)
            if modality != const.MODALITY_OPEN_SLOT:
                raise InvalidStateError(
                    const.TRANS_KEY_ERROR_CHOSEN_ACTIVITY_NOT_ALLOWED,
                    {"entity": instance_id, "modality": modality},
                )
            self._check_option_allowed(instance, chosen)

        return await self._async_apply(
            instance_id,
            InstanceEngine.plan_update_completed(instance, execution_fields, chosen),
        )

    async def async_clear_completed(self, instance_id: str) -> Document:
        """Undo an erroneous completion: back to pending, record discarded.

        Raises:
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not completed
        """
        instance = await self._async_get_instance(instance_id)
        InstanceEngine.validate_action(instance, const.ACTION_CLEAR)
        updated = await self._async_apply(instance_id, InstanceEngine.plan_clear())
        const.LOGGER.info("Instance %s cleared back to pending", instance_id)
        return updated

    # =========================================================================
    # OMISSION / CANCELLATION
    # =========================================================================

    async def async_omit(
        self,
        instance_id: str,
        reason: str,
        actor: Mapping[str, Any],
    ) -> Document:
        """Mark a pending instance as omitted.

        Raises:
            ValidationError: If the reason is empty or whitespace only, or the
                actor is invalid
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not pending
        """
        clean_reason = validate_omission_reason(reason)
        valid_actor = build_actor(actor)

        instance = await self._async_get_instance(instance_id)
        InstanceEngine.validate_action(instance, const.ACTION_OMIT)
        updated = await self._async_apply(
            instance_id, InstanceEngine.plan_omit(clean_reason, valid_actor)
        )
        const.LOGGER.info(
            "Instance %s omitted by %s: %s",
            instance_id,
            valid_actor["name"],
            clean_reason,
        )
        return updated

    async def async_cancel(self, instance_id: str) -> Document:
        """Cancel a pending instance (administrative, no actor).

        Raises:
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is not pending
        """
        instance = await self._async_get_instance(instance_id)
        InstanceEngine.validate_action(instance, const.ACTION_CANCEL)
        updated = await self._async_apply(instance_id, InstanceEngine.plan_cancel())
        const.LOGGER.info("Instance %s cancelled", instance_id)
        return updated
