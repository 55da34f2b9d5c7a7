# File: const.py
"""Constants for the Care Scheduler package.

This file centralizes document keys, defaults, state names, collection names
and error translation keys for consistency across engines and managers.
"""

import logging
from typing import Final

# ------------------------------------------------------------------------------------------------
# General / Package Information
# ------------------------------------------------------------------------------------------------
DOMAIN = "carescheduler"

# Logger
LOGGER = logging.getLogger(__package__)

# Storage and Versioning
STORAGE_VERSION = 1

# ------------------------------------------------------------------------------------------------
# Collections
# ------------------------------------------------------------------------------------------------
COLLECTION_TEMPLATES = "templates"
COLLECTION_INSTANCES = "instances"
COLLECTION_SETTINGS = "settings"

SETTINGS_DOC_SCHEDULE = "schedule"

# ------------------------------------------------------------------------------------------------
# Data Keys
# ------------------------------------------------------------------------------------------------

# META
DATA_META = "meta"
DATA_META_SCHEMA_VERSION = "schema_version"

# COMMON
DATA_CREATED_AT = "created_at"
DATA_UPDATED_AT = "updated_at"

# TEMPLATES
DATA_TEMPLATE_ACTIVE = "active"
DATA_TEMPLATE_ACTIVITY_TYPE = "activity_type"
DATA_TEMPLATE_CREATED_BY = "created_by"
DATA_TEMPLATE_DEFINED_ACTIVITY = "defined_activity"
DATA_TEMPLATE_INTERNAL_ID = "internal_id"
DATA_TEMPLATE_MODALITY = "modality"
DATA_TEMPLATE_OPEN_SLOT = "open_slot"
DATA_TEMPLATE_PREFERRED_TIME = "preferred_time"
DATA_TEMPLATE_SHIFT = "shift"
DATA_TEMPLATE_WEEKDAYS = "weekdays"

# DEFINED ACTIVITY PAYLOAD
DATA_ACTIVITY_DESCRIPTION = "description"
DATA_ACTIVITY_DURATION = "duration"
DATA_ACTIVITY_ENERGY_LEVEL = "energy_level"
DATA_ACTIVITY_LOCATION = "location"
DATA_ACTIVITY_MATERIALS = "materials"
DATA_ACTIVITY_NAME = "name"

# OPEN SLOT PAYLOAD
DATA_SLOT_ALLOWED_OPTION_IDS = "allowed_option_ids"
DATA_SLOT_ESTIMATED_DURATION = "estimated_duration"
DATA_SLOT_INSTRUCTIONS = "instructions"

# INSTANCES
DATA_INSTANCE_ACTIVITY_TYPE = "activity_type"
DATA_INSTANCE_AUTO_GENERATED = "auto_generated"
DATA_INSTANCE_CHOSEN_ACTIVITY = "chosen_activity"
DATA_INSTANCE_DATE = "date"
DATA_INSTANCE_DEFINED_ACTIVITY = "defined_activity"
DATA_INSTANCE_EXECUTION = "execution"
DATA_INSTANCE_INTERNAL_ID = "internal_id"
DATA_INSTANCE_MODALITY = "modality"
DATA_INSTANCE_OMISSION = "omission"
DATA_INSTANCE_OPEN_SLOT = "open_slot"
DATA_INSTANCE_PREFERRED_TIME = "preferred_time"
DATA_INSTANCE_SHIFT = "shift"
DATA_INSTANCE_STATE = "state"
DATA_INSTANCE_TEMPLATE_ID = "template_id"

# CHOSEN ACTIVITY (open slot completion)
DATA_CHOSEN_DESCRIPTION = "description"
DATA_CHOSEN_DURATION = "duration"
DATA_CHOSEN_ENERGY_LEVEL = "energy_level"
DATA_CHOSEN_KIND = "kind"
DATA_CHOSEN_LOCATION = "location"
DATA_CHOSEN_NAME = "name"
DATA_CHOSEN_OPTION_ID = "option_id"
DATA_CHOSEN_PHOTO_URL = "photo_url"

# EXECUTION
DATA_EXECUTION_ACTOR_ID = "actor_id"
DATA_EXECUTION_ACTOR_NAME = "actor_name"
DATA_EXECUTION_ACTUAL_DURATION = "actual_duration"
DATA_EXECUTION_COMPLETED_AT = "completed_at"
DATA_EXECUTION_MOOD = "mood"
DATA_EXECUTION_NOTES = "notes"
DATA_EXECUTION_PARTICIPATION = "participation"

# OMISSION
DATA_OMISSION_ACTOR_ID = "actor_id"
DATA_OMISSION_ACTOR_NAME = "actor_name"
DATA_OMISSION_OMITTED_AT = "omitted_at"
DATA_OMISSION_REASON = "reason"

# SETTINGS
DATA_SETTINGS_ACTIVE_WINDOW_MINUTES = "active_window_minutes"
DATA_SETTINGS_AFTERNOON_START = "afternoon_start"
DATA_SETTINGS_MORNING_START = "morning_start"
DATA_SETTINGS_NIGHT_START = "night_start"
DATA_SETTINGS_UPCOMING_HORIZON_MINUTES = "upcoming_horizon_minutes"
DATA_SETTINGS_VITAL_SIGN_TIMES = "vital_sign_times"

# ------------------------------------------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------------------------------------------

# Template / instance modality
MODALITY_DEFINED = "defined"
MODALITY_OPEN_SLOT = "open_slot"
MODALITIES: Final = (MODALITY_DEFINED, MODALITY_OPEN_SLOT)

# Activity types
ACTIVITY_TYPE_COGNITIVE = "cognitive"
ACTIVITY_TYPE_PHYSICAL = "physical"
ACTIVITY_TYPES: Final = (ACTIVITY_TYPE_PHYSICAL, ACTIVITY_TYPE_COGNITIVE)

# Energy levels
ENERGY_LEVEL_HIGH = "high"
ENERGY_LEVEL_LOW = "low"
ENERGY_LEVEL_MEDIUM = "medium"
ENERGY_LEVELS: Final = (ENERGY_LEVEL_LOW, ENERGY_LEVEL_MEDIUM, ENERGY_LEVEL_HIGH)

# Participation levels
PARTICIPATION_ACTIVE = "active"
PARTICIPATION_MINIMAL = "minimal"
PARTICIPATION_PASSIVE = "passive"
PARTICIPATION_LEVELS: Final = (
    PARTICIPATION_ACTIVE,
    PARTICIPATION_PASSIVE,
    PARTICIPATION_MINIMAL,
)

# Chosen activity kinds
CHOSEN_KIND_CUSTOM = "custom"
CHOSEN_KIND_OPTION = "option"

# Shifts
SHIFT_AFTERNOON = "afternoon"
SHIFT_MORNING = "morning"
SHIFT_NIGHT = "night"
SHIFTS: Final = (SHIFT_MORNING, SHIFT_AFTERNOON, SHIFT_NIGHT)

# Weekdays (0 = Sunday ... 6 = Saturday)
WEEKDAY_SUNDAY = 0
WEEKDAY_MONDAY = 1
WEEKDAY_TUESDAY = 2
WEEKDAY_WEDNESDAY = 3
WEEKDAY_THURSDAY = 4
WEEKDAY_FRIDAY = 5
WEEKDAY_SATURDAY = 6
WEEKDAY_INDEXES: Final = tuple(range(7))

# ------------------------------------------------------------------------------------------------
# States
# ------------------------------------------------------------------------------------------------

# Instance States
INSTANCE_STATE_CANCELLED = "cancelled"
INSTANCE_STATE_COMPLETED = "completed"
INSTANCE_STATE_OMITTED = "omitted"
INSTANCE_STATE_PENDING = "pending"

INSTANCE_TERMINAL_STATES: Final = frozenset(
    {INSTANCE_STATE_COMPLETED, INSTANCE_STATE_OMITTED, INSTANCE_STATE_CANCELLED}
)

# Day process (dashboard) states
PROCESS_STATE_ACTIVE = "active"
PROCESS_STATE_DONE = "done"
PROCESS_STATE_OVERDUE = "overdue"
PROCESS_STATE_PENDING = "pending"
PROCESS_STATE_UPCOMING = "upcoming"
PROCESS_STATES: Final = (
    PROCESS_STATE_OVERDUE,
    PROCESS_STATE_ACTIVE,
    PROCESS_STATE_UPCOMING,
    PROCESS_STATE_PENDING,
    PROCESS_STATE_DONE,
)

# Day process item types
PROCESS_TYPE_ACTIVITY = "activity"
PROCESS_TYPE_CHECKUP = "checkup"
PROCESS_TYPE_MEAL = "meal"
PROCESS_TYPE_MEDICATION = "medication"
PROCESS_TYPE_VITAL_SIGNS = "vital_signs"

PROCESS_LINKS: Final = {
    PROCESS_TYPE_ACTIVITY: "/activities",
    PROCESS_TYPE_CHECKUP: "/daily-checkup",
    PROCESS_TYPE_MEAL: "/meal-menu",
    PROCESS_TYPE_MEDICATION: "/daily-pillbox",
    PROCESS_TYPE_VITAL_SIGNS: "/vital-signs",
}

# Source record states used to detect completion of non-activity items
MEAL_STATE_COMPLETED = "completed"
MEAL_STATE_SERVED = "served"
MEDICATION_RECORD_TAKEN = "taken"

# Source record keys (checkups, vital signs, meals, medications)
DATA_RECORD_ACTIVE = "active"
DATA_RECORD_COMPLETED = "completed"
DATA_RECORD_DATE = "date"
DATA_RECORD_ID = "id"
DATA_RECORD_SHIFT = "shift"
DATA_RECORD_STATE = "state"
DATA_RECORD_TIME = "time"
DATA_RECORD_RECORDED_AT = "recorded_at"
DATA_RECORD_UPDATED_AT = "updated_at"

DATA_MEAL_DEFAULT_TIME = "default_time"
DATA_MEAL_ICON = "icon"
DATA_MEAL_NAME = "name"
DATA_MEAL_SLOT_ID = "meal_slot_id"

DATA_MEDICATION_DOSE = "dose"
DATA_MEDICATION_ID = "medication_id"
DATA_MEDICATION_NAME = "name"
DATA_MEDICATION_PRESENTATION = "presentation"
DATA_MEDICATION_SCHEDULED_AT = "scheduled_at"
DATA_MEDICATION_TAKEN_AT = "taken_at"
DATA_MEDICATION_TIMES = "times"
DATA_MEDICATION_WEEKDAYS = "weekdays"

SHIFT_LABELS: Final = {
    SHIFT_MORNING: "Morning",
    SHIFT_AFTERNOON: "Afternoon",
    SHIFT_NIGHT: "Night",
}

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_MORNING_START = "07:00"
DEFAULT_AFTERNOON_START = "14:00"
DEFAULT_NIGHT_START = "21:00"
DEFAULT_VITAL_SIGN_TIMES: Final = ("08:00", "18:00")

# Minutes after the scheduled time during which an item is still "active"
DEFAULT_ACTIVE_WINDOW_MINUTES = 30
# Minutes before the scheduled time during which an item is "upcoming"
DEFAULT_UPCOMING_HORIZON_MINUTES = 60

# Tolerance used when matching source records to a scheduled time
DEFAULT_RECORD_MATCH_MINUTES = 30

DEFAULT_ACTIVITY_DURATION = 30
DEFAULT_ENERGY_LEVEL = ENERGY_LEVEL_MEDIUM

SENTINEL_EMPTY = ""

# ------------------------------------------------------------------------------------------------
# Error translation keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_CHOSEN_ACTIVITY_NOT_ALLOWED = "chosen_activity_not_allowed"
TRANS_KEY_ERROR_CHOSEN_ACTIVITY_REQUIRED = "chosen_activity_required"
TRANS_KEY_ERROR_CONCURRENT_UPDATE = "concurrent_update"
TRANS_KEY_ERROR_INVALID_ACTOR = "invalid_actor"
TRANS_KEY_ERROR_INVALID_DURATION = "invalid_duration"
TRANS_KEY_ERROR_INVALID_INPUT = "invalid_input"
TRANS_KEY_ERROR_INVALID_MODALITY = "invalid_modality"
TRANS_KEY_ERROR_INVALID_STATE = "invalid_state"
TRANS_KEY_ERROR_INVALID_TIME = "invalid_time"
TRANS_KEY_ERROR_INVALID_WEEKDAY = "invalid_weekday"
TRANS_KEY_ERROR_MATERIALIZATION_FAILED = "materialization_failed"
TRANS_KEY_ERROR_NOT_FOUND = "not_found"
TRANS_KEY_ERROR_OMISSION_REASON_REQUIRED = "omission_reason_required"
TRANS_KEY_ERROR_OPTION_NOT_ALLOWED = "option_not_allowed"
TRANS_KEY_ERROR_PAYLOAD_MISMATCH = "payload_mismatch"
TRANS_KEY_ERROR_PRECONDITION_FAILED = "precondition_failed"
TRANS_KEY_ERROR_STORE = "store_error"
TRANS_KEY_ERROR_TEMPLATE_NAME_REQUIRED = "template_name_required"
TRANS_KEY_ERROR_WEEKDAYS_REQUIRED = "weekdays_required"

# English messages for the keys above (used as exception text)
TRANSLATIONS_EN: Final[dict[str, str]] = {
    TRANS_KEY_ERROR_CHOSEN_ACTIVITY_NOT_ALLOWED: (
        "A chosen activity can only be recorded for open slot instances"
    ),
    TRANS_KEY_ERROR_CHOSEN_ACTIVITY_REQUIRED: (
        "Completing an open slot requires a chosen activity"
    ),
    TRANS_KEY_ERROR_CONCURRENT_UPDATE: (
        "Instance {entity} was changed by another action before {action} completed"
    ),
    TRANS_KEY_ERROR_INVALID_ACTOR: "Actor id and name are required",
    TRANS_KEY_ERROR_INVALID_DURATION: "Duration must be a positive number of minutes",
    TRANS_KEY_ERROR_INVALID_INPUT: "Invalid value for {field}: {error}",
    TRANS_KEY_ERROR_INVALID_MODALITY: (
        "Cannot {action} instance {entity}: modality is {modality}"
    ),
    TRANS_KEY_ERROR_INVALID_STATE: "Cannot {action} instance {entity} in state {state}",
    TRANS_KEY_ERROR_INVALID_TIME: "Invalid time of day '{value}', expected HH:MM",
    TRANS_KEY_ERROR_INVALID_WEEKDAY: "Invalid weekday index '{value}', expected 0-6",
    TRANS_KEY_ERROR_MATERIALIZATION_FAILED: (
        "Materialization for {date} created {created} instances, {failed} failed"
    ),
    TRANS_KEY_ERROR_NOT_FOUND: "{kind} '{entity}' not found",
    TRANS_KEY_ERROR_OMISSION_REASON_REQUIRED: "An omission reason is required",
    TRANS_KEY_ERROR_OPTION_NOT_ALLOWED: (
        "Option '{option}' is not allowed for this open slot"
    ),
    TRANS_KEY_ERROR_PAYLOAD_MISMATCH: (
        "Modality {modality} requires exactly the matching activity payload"
    ),
    TRANS_KEY_ERROR_PRECONDITION_FAILED: (
        "Document {collection}/{entity} does not match the expected values"
    ),
    TRANS_KEY_ERROR_STORE: "Store operation failed: {error}",
    TRANS_KEY_ERROR_TEMPLATE_NAME_REQUIRED: "A defined activity requires a name",
    TRANS_KEY_ERROR_WEEKDAYS_REQUIRED: "Select at least one weekday",
}

# Labels used in NotFound placeholders
LABEL_INSTANCE = "Instance"
LABEL_TEMPLATE = "Template"

# Lifecycle action names (used for error placeholders and logging)
ACTION_CANCEL = "cancel"
ACTION_CLEAR = "clear"
ACTION_COMPLETE = "complete"
ACTION_OMIT = "omit"
ACTION_UPDATE_COMPLETED = "update"
