"""Type definitions for Care Scheduler data structures.

TypedDicts describe documents with fixed keys (templates, instances, settings).
Documents are stored as plain dicts keyed by the const.DATA_* names, so these
types are STATIC ANALYSIS ONLY; runtime checks live in data_builders.py and
the engines.

IMPORTANT: This file must NOT import from managers or helpers to avoid circular
dependencies. Only import from typing.
"""

from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

TemplateId = str  # UUID string
InstanceId = str  # "{template_id}_{YYYYMMDD}"
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"
TimeOfDay = str  # "HH:MM"

Modality = Literal["defined", "open_slot"]
ActivityType = Literal["physical", "cognitive"]
Shift = Literal["morning", "afternoon", "night"]
InstanceState = Literal["pending", "completed", "omitted", "cancelled"]
ProcessState = Literal["overdue", "active", "upcoming", "pending", "done"]

Document = dict[str, Any]


# =============================================================================
# Template payloads (tagged union by modality)
# =============================================================================


class DefinedActivity(TypedDict):
    """Activity fully specified in advance by the scheduler."""

    name: str
    description: str
    duration: int  # minutes
    location: str | None
    materials: list[str]
    energy_level: str


class OpenSlot(TypedDict):
    """Slot where the caregiver picks the concrete activity at completion."""

    estimated_duration: int  # minutes
    instructions: str
    allowed_option_ids: list[str]  # empty = any option of the activity type


class ScheduleTemplateData(TypedDict):
    """Recurring weekly rule describing when and what activity occurs."""

    internal_id: TemplateId
    modality: Modality
    activity_type: ActivityType
    defined_activity: DefinedActivity | None
    open_slot: OpenSlot | None
    shift: Shift
    preferred_time: TimeOfDay
    weekdays: list[int]  # 0 = Sunday ... 6 = Saturday
    active: bool
    created_by: str
    created_at: ISODatetime
    updated_at: ISODatetime


# =============================================================================
# Instance
# =============================================================================


class ChosenActivity(TypedDict):
    """Caregiver's runtime choice for an open slot."""

    kind: Literal["option", "custom"]
    name: str
    duration: int
    option_id: NotRequired[str]  # kind == "option"
    description: NotRequired[str]
    location: NotRequired[str]
    energy_level: NotRequired[str]
    photo_url: NotRequired[str]  # kind == "custom"


class ExecutionData(TypedDict):
    """Execution record, present iff the instance is completed."""

    actor_id: str
    actor_name: str
    completed_at: ISODatetime
    actual_duration: int
    participation: NotRequired[str]
    mood: NotRequired[str]
    notes: NotRequired[str]


class OmissionData(TypedDict):
    """Omission record, present iff the instance is omitted."""

    reason: str
    actor_id: str
    actor_name: str
    omitted_at: ISODatetime


class InstanceData(TypedDict):
    """One concrete dated occurrence materialized from a template."""

    internal_id: InstanceId
    template_id: TemplateId
    modality: Modality
    activity_type: ActivityType
    shift: Shift
    date: ISODate
    preferred_time: TimeOfDay
    defined_activity: DefinedActivity | None
    open_slot: OpenSlot | None
    state: InstanceState
    auto_generated: bool
    created_at: ISODatetime
    updated_at: ISODatetime
    chosen_activity: NotRequired[ChosenActivity]
    execution: NotRequired[ExecutionData]
    omission: NotRequired[OmissionData]


class Actor(TypedDict):
    """Who performed a lifecycle action."""

    id: str
    name: str


# =============================================================================
# Settings
# =============================================================================


class ShiftBoundaries(TypedDict, total=False):
    """Start times of each shift. Missing keys fall back to defaults."""

    morning_start: TimeOfDay
    afternoon_start: TimeOfDay
    night_start: TimeOfDay


class ScheduleSettings(TypedDict):
    """Process-wide schedule configuration."""

    morning_start: TimeOfDay
    afternoon_start: TimeOfDay
    night_start: TimeOfDay
    vital_sign_times: list[TimeOfDay]
    active_window_minutes: int
    upcoming_horizon_minutes: int


# =============================================================================
# Statistics
# =============================================================================


class ActivityTypeTotals(TypedDict):
    """Completed/total counts for one activity type."""

    completed: int
    total: int


class ComplianceSummary(TypedDict):
    """Completion compliance over a set of instances."""

    total: int
    completed: int
    omitted: int
    pending: int
    cancelled: int
    percent_completed: int
    by_activity_type: dict[str, ActivityTypeTotals]


class DayStatusSummary(TypedDict):
    """Counts over a computed day timeline."""

    total: int
    done: int
    pending: int
    overdue: int
    percent_done: int
