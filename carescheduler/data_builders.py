"""Document builders and input validation helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Template field defaults and structure building
- Business rule validation of lifecycle inputs (actor, execution, choices)
- Settings document building
- Conversion of voluptuous errors into ValidationError

### Build Functions
Each document type has a `build_<document>()` function that:
- Takes user_input with DATA_* keys (may have missing fields on update)
- Generates internal_id (UUID) for new documents
- Sets timestamps (created_at, updated_at)
- Applies field defaults through the voluptuous schemas
- Returns a complete dict ready for storage

Every builder raises ValidationError before anything is written.

Consumers:
- managers/schedule_manager.py (template create/update/duplicate)
- managers/lifecycle_manager.py (completion, omission, corrections)
- managers/settings_manager.py (schedule settings)
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any
import uuid

import voluptuous as vol

from . import const, schemas
from .engines.shift_engine import ShiftEngine
from .exceptions import ValidationError
from .utils.dt_utils import dt_now_iso, normalize_date

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .type_defs import (
        Actor,
        ChosenActivity,
        ISODate,
        ScheduleSettings,
        ScheduleTemplateData,
    )


# ==============================================================================
# VOLUPTUOUS ERROR CONVERSION
# ==============================================================================


def _validation_error(
    err: vol.Invalid,
    *,
    default_key: str = const.TRANS_KEY_ERROR_INVALID_INPUT,
    field_prefix: str | None = None,
) -> ValidationError:
    """Convert a voluptuous error into ValidationError.

    The first error of a MultipleInvalid is reported. Errors raised by the
    custom validators keep their own translation key; anything else uses
    `default_key`.
    """
    if isinstance(err, vol.MultipleInvalid) and err.errors:
        err = err.errors[0]

    path = [str(part) for part in err.path]
    if field_prefix:
        path.insert(0, field_prefix)
    field = ".".join(path) if path else None

    if isinstance(err, schemas.KeyedInvalid):
        return ValidationError(
            err.translation_key,
            {"value": err.value, "field": field or "", "error": err.msg},
            field=field,
        )
    return ValidationError(
        default_key,
        {"field": field or "value", "error": err.msg},
        field=field,
    )


def _validate(
    schema: vol.Schema,
    data: Any,
    *,
    default_key: str = const.TRANS_KEY_ERROR_INVALID_INPUT,
    field_prefix: str | None = None,
) -> Any:
    """Run a schema and raise ValidationError on failure."""
    try:
        return schema(data)
    except vol.Invalid as err:
        raise _validation_error(
            err, default_key=default_key, field_prefix=field_prefix
        ) from err


def validate_date(value: str | date | datetime, field: str = "date") -> ISODate:
    """Normalize a date-like value to an ISO date string.

    Raises:
        ValidationError: If the value is not a date
    """
    try:
        return normalize_date(value)
    except ValueError as err:
        raise ValidationError(
            const.TRANS_KEY_ERROR_INVALID_INPUT,
            {"field": field, "error": str(err)},
            field=field,
        ) from err


# ==============================================================================
# TEMPLATES
# ==============================================================================


def validate_template_payload(data: Mapping[str, Any]) -> None:
    """Check that exactly the payload matching the modality is populated.

    Raises:
        ValidationError: With PAYLOAD_MISMATCH when the tagged union is broken
    """
    modality = data.get(const.DATA_TEMPLATE_MODALITY)
    has_defined = data.get(const.DATA_TEMPLATE_DEFINED_ACTIVITY) is not None
    has_slot = data.get(const.DATA_TEMPLATE_OPEN_SLOT) is not None

    if modality == const.MODALITY_DEFINED:
        valid = has_defined and not has_slot
    else:
        valid = has_slot and not has_defined
    if not valid:
        raise ValidationError(
            const.TRANS_KEY_ERROR_PAYLOAD_MISMATCH,
            {"modality": modality},
            field=const.DATA_TEMPLATE_MODALITY,
        )


def build_template(
    user_input: Mapping[str, Any],
    existing: ScheduleTemplateData | Mapping[str, Any] | None = None,
    *,
    created_by: str | None = None,
    boundaries: Mapping[str, Any] | None = None,
    now_iso: str | None = None,
) -> ScheduleTemplateData:
    """Build template data for create or update operations.

    One function handles both create (existing=None) and update
    (existing=ScheduleTemplateData). On update, fields missing from
    user_input keep their existing values, except the payload that does not
    match the (possibly new) modality, which is dropped.

    Args:
        user_input: Data with DATA_TEMPLATE_* keys
        existing: None for create, the stored template for update
        created_by: Author id, used on create
        boundaries: Shift boundaries used to derive the shift
        now_iso: Timestamp override (tests)

    Returns:
        Complete ScheduleTemplateData ready for storage

    Raises:
        ValidationError: If any field is invalid or the payload does not
            match the modality

    Examples:
        # CREATE mode - generates UUID, derives shift, applies defaults
        template = build_template({
            DATA_TEMPLATE_MODALITY: MODALITY_OPEN_SLOT,
            DATA_TEMPLATE_ACTIVITY_TYPE: ACTIVITY_TYPE_PHYSICAL,
            DATA_TEMPLATE_OPEN_SLOT: {DATA_SLOT_ESTIMATED_DURATION: 30},
            DATA_TEMPLATE_PREFERRED_TIME: "10:00",
            DATA_TEMPLATE_WEEKDAYS: [1, 3, 5],
        }, created_by="user-1")

        # UPDATE mode - preserves fields not in user_input
        template = build_template({DATA_TEMPLATE_PREFERRED_TIME: "16:00"}, existing)
    """
    is_create = existing is None
    timestamp = now_iso or dt_now_iso()

    def get_field(data_key: str, default: Any = None) -> Any:
        """Get field value: user_input > existing > default."""
        if data_key in user_input:
            return user_input[data_key]
        if existing is not None:
            return existing.get(data_key, default)
        return default

    merged = {
        key: get_field(key)
        for key in (
            const.DATA_TEMPLATE_MODALITY,
            const.DATA_TEMPLATE_ACTIVITY_TYPE,
            const.DATA_TEMPLATE_DEFINED_ACTIVITY,
            const.DATA_TEMPLATE_OPEN_SLOT,
            const.DATA_TEMPLATE_PREFERRED_TIME,
            const.DATA_TEMPLATE_WEEKDAYS,
        )
    }
    merged[const.DATA_TEMPLATE_ACTIVE] = get_field(const.DATA_TEMPLATE_ACTIVE, True)
    # Required keys left as None would read as "present"; let the schema flag them
    merged = {key: value for key, value in merged.items() if value is not None}

    # The payload that does not match the modality is dropped unless given
    modality = merged.get(const.DATA_TEMPLATE_MODALITY)
    stale_key = (
        const.DATA_TEMPLATE_OPEN_SLOT
        if modality == const.MODALITY_DEFINED
        else const.DATA_TEMPLATE_DEFINED_ACTIVITY
    )
    if stale_key not in user_input:
        merged.pop(stale_key, None)

    validated = _validate(schemas.TEMPLATE_SCHEMA, merged)

    defined = validated[const.DATA_TEMPLATE_DEFINED_ACTIVITY]
    if defined is not None:
        if not str(defined.get(const.DATA_ACTIVITY_NAME) or "").strip():
            raise ValidationError(
                const.TRANS_KEY_ERROR_TEMPLATE_NAME_REQUIRED,
                field=f"{const.DATA_TEMPLATE_DEFINED_ACTIVITY}.{const.DATA_ACTIVITY_NAME}",
            )
        validated[const.DATA_TEMPLATE_DEFINED_ACTIVITY] = _validate(
            schemas.DEFINED_ACTIVITY_SCHEMA,
            defined,
            field_prefix=const.DATA_TEMPLATE_DEFINED_ACTIVITY,
        )
    open_slot = validated[const.DATA_TEMPLATE_OPEN_SLOT]
    if open_slot is not None:
        validated[const.DATA_TEMPLATE_OPEN_SLOT] = _validate(
            schemas.OPEN_SLOT_SCHEMA,
            open_slot,
            field_prefix=const.DATA_TEMPLATE_OPEN_SLOT,
        )
    validate_template_payload(validated)

    if is_create or existing is None:
        internal_id = str(uuid.uuid4())
        author = created_by or const.SENTINEL_EMPTY
        created_at = timestamp
    else:
        internal_id = existing.get(const.DATA_TEMPLATE_INTERNAL_ID) or str(
            uuid.uuid4()
        )
        author = existing.get(const.DATA_TEMPLATE_CREATED_BY, const.SENTINEL_EMPTY)
        created_at = existing.get(const.DATA_CREATED_AT, timestamp)

    preferred_time = validated[const.DATA_TEMPLATE_PREFERRED_TIME]
    return {
        const.DATA_TEMPLATE_INTERNAL_ID: internal_id,
        const.DATA_TEMPLATE_MODALITY: validated[const.DATA_TEMPLATE_MODALITY],
        const.DATA_TEMPLATE_ACTIVITY_TYPE: validated[const.DATA_TEMPLATE_ACTIVITY_TYPE],
        const.DATA_TEMPLATE_DEFINED_ACTIVITY: validated[
            const.DATA_TEMPLATE_DEFINED_ACTIVITY
        ],
        const.DATA_TEMPLATE_OPEN_SLOT: validated[const.DATA_TEMPLATE_OPEN_SLOT],
        const.DATA_TEMPLATE_SHIFT: ShiftEngine.classify(preferred_time, boundaries),
        const.DATA_TEMPLATE_PREFERRED_TIME: preferred_time,
        const.DATA_TEMPLATE_WEEKDAYS: validated[const.DATA_TEMPLATE_WEEKDAYS],
        const.DATA_TEMPLATE_ACTIVE: validated[const.DATA_TEMPLATE_ACTIVE],
        const.DATA_TEMPLATE_CREATED_BY: author,
        const.DATA_CREATED_AT: created_at,
        const.DATA_UPDATED_AT: timestamp,
    }  # type: ignore[return-value]


# --- Fields copied when duplicating a template ---
# Identity, authorship and timestamps are regenerated for the copy.
_TEMPLATE_DUPLICATE_FIELDS: frozenset[str] = frozenset(
    {
        const.DATA_TEMPLATE_MODALITY,
        const.DATA_TEMPLATE_ACTIVITY_TYPE,
        const.DATA_TEMPLATE_DEFINED_ACTIVITY,
        const.DATA_TEMPLATE_OPEN_SLOT,
        const.DATA_TEMPLATE_PREFERRED_TIME,
        const.DATA_TEMPLATE_WEEKDAYS,
        const.DATA_TEMPLATE_ACTIVE,
    }
)


def template_duplicate_input(template: Mapping[str, Any]) -> dict[str, Any]:
    """Return the user_input that recreates a template under a new id."""
    return {
        key: value for key, value in template.items() if key in _TEMPLATE_DUPLICATE_FIELDS
    }


# ==============================================================================
# LIFECYCLE INPUTS
# ==============================================================================


def build_actor(actor: Mapping[str, Any] | None) -> Actor:
    """Validate the actor performing a lifecycle action.

    Raises:
        ValidationError: If id or name is missing or blank
    """
    try:
        return schemas.ACTOR_SCHEMA(dict(actor or {}))
    except vol.Invalid as err:
        raise ValidationError(
            const.TRANS_KEY_ERROR_INVALID_ACTOR, field="actor"
        ) from err


def build_execution_changes(
    actual_duration: Any,
    *,
    participation: str | None = None,
    mood: str | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """Validate the execution fields supplied by the caregiver.

    Returns:
        Dict of execution fields; unset optional fields are left out

    Raises:
        ValidationError: If the duration is not positive or participation
            is not a known level
    """
    data: dict[str, Any] = {const.DATA_EXECUTION_ACTUAL_DURATION: actual_duration}
    if participation is not None:
        data[const.DATA_EXECUTION_PARTICIPATION] = participation
    if mood is not None:
        data[const.DATA_EXECUTION_MOOD] = mood
    if notes is not None:
        data[const.DATA_EXECUTION_NOTES] = notes

    validated = _validate(schemas.EXECUTION_INPUT_SCHEMA, data)
    return {key: value for key, value in validated.items() if value is not None}


def build_chosen_activity(value: Mapping[str, Any] | None) -> ChosenActivity:
    """Validate the caregiver's choice for an open slot.

    Raises:
        ValidationError: With CHOSEN_ACTIVITY_REQUIRED when missing, or the
            field-specific key when malformed
    """
    if not value:
        raise ValidationError(
            const.TRANS_KEY_ERROR_CHOSEN_ACTIVITY_REQUIRED,
            field=const.DATA_INSTANCE_CHOSEN_ACTIVITY,
        )
    return _validate(
        schemas.chosen_activity,
        dict(value),
        field_prefix=const.DATA_INSTANCE_CHOSEN_ACTIVITY,
    )


def validate_omission_reason(reason: Any) -> str:
    """Return the trimmed omission reason.

    Raises:
        ValidationError: If the reason is empty or whitespace only
    """
    return _validate(
        schemas.OMISSION_REASON_SCHEMA,
        reason,
        default_key=const.TRANS_KEY_ERROR_OMISSION_REASON_REQUIRED,
        field_prefix=const.DATA_OMISSION_REASON,
    )


# ==============================================================================
# SETTINGS
# ==============================================================================


def build_settings(
    user_input: Mapping[str, Any] | None = None,
    existing: ScheduleSettings | Mapping[str, Any] | None = None,
) -> ScheduleSettings:
    """Build a complete settings document.

    Fields missing from user_input keep their existing values, then fall
    back to the const.DEFAULT_* values.

    Raises:
        ValidationError: If a time or window value is invalid
    """
    merged: dict[str, Any] = dict(existing or {})
    merged.update(user_input or {})
    return _validate(schemas.SETTINGS_SCHEMA, merged)
