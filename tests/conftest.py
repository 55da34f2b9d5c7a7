"""Shared fixtures for Care Scheduler tests.

Dates used across the suite (2026):
    2026-04-06 Monday ... 2026-04-11 Saturday, 2026-04-12 Sunday
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC
from typing import Any

import pytest

from carescheduler import const
from carescheduler.managers import (
    InstanceManager,
    LifecycleManager,
    ScheduleManager,
    SettingsManager,
)
from carescheduler.store import MemoryDocumentStore
from carescheduler.utils.dt_utils import set_default_timezone

WEEKDAYS_MON_FRI = [1, 2, 3, 4, 5]


@pytest.fixture
async def store() -> MemoryDocumentStore:
    """Return an initialized memory-only store."""
    document_store = MemoryDocumentStore()
    await document_store.async_initialize()
    return document_store


@pytest.fixture
def settings_manager(store: MemoryDocumentStore) -> SettingsManager:
    """Return a SettingsManager on the shared store."""
    return SettingsManager(store)


@pytest.fixture
def schedule_manager(
    store: MemoryDocumentStore, settings_manager: SettingsManager
) -> ScheduleManager:
    """Return a ScheduleManager on the shared store."""
    return ScheduleManager(store, settings_manager)


@pytest.fixture
def instance_manager(store: MemoryDocumentStore) -> InstanceManager:
    """Return an InstanceManager on the shared store."""
    return InstanceManager(store)


@pytest.fixture
def lifecycle_manager(store: MemoryDocumentStore) -> LifecycleManager:
    """Return a LifecycleManager on the shared store."""
    return LifecycleManager(store)


@pytest.fixture
def actor() -> dict[str, str]:
    """Return the caregiver used for lifecycle actions."""
    return {"id": "caregiver-1", "name": "Marta"}


@pytest.fixture
def defined_template_input() -> dict[str, Any]:
    """Morning walk, weekdays at 09:00."""
    return {
        const.DATA_TEMPLATE_MODALITY: const.MODALITY_DEFINED,
        const.DATA_TEMPLATE_ACTIVITY_TYPE: const.ACTIVITY_TYPE_PHYSICAL,
        const.DATA_TEMPLATE_DEFINED_ACTIVITY: {
            const.DATA_ACTIVITY_NAME: "Morning walk",
            const.DATA_ACTIVITY_DESCRIPTION: "Walk around the garden",
            const.DATA_ACTIVITY_DURATION: 30,
            const.DATA_ACTIVITY_LOCATION: "Garden",
            const.DATA_ACTIVITY_MATERIALS: ["walker"],
            const.DATA_ACTIVITY_ENERGY_LEVEL: const.ENERGY_LEVEL_MEDIUM,
        },
        const.DATA_TEMPLATE_PREFERRED_TIME: "09:00",
        const.DATA_TEMPLATE_WEEKDAYS: list(WEEKDAYS_MON_FRI),
    }


@pytest.fixture
def open_slot_template_input() -> dict[str, Any]:
    """Cognitive open slot on Monday and Wednesday at 16:00."""
    return {
        const.DATA_TEMPLATE_MODALITY: const.MODALITY_OPEN_SLOT,
        const.DATA_TEMPLATE_ACTIVITY_TYPE: const.ACTIVITY_TYPE_COGNITIVE,
        const.DATA_TEMPLATE_OPEN_SLOT: {
            const.DATA_SLOT_ESTIMATED_DURATION: 45,
            const.DATA_SLOT_INSTRUCTIONS: "Pick something calm",
            const.DATA_SLOT_ALLOWED_OPTION_IDS: ["opt-puzzle", "opt-reading"],
        },
        const.DATA_TEMPLATE_PREFERRED_TIME: "16:00",
        const.DATA_TEMPLATE_WEEKDAYS: [1, 3],
    }


@pytest.fixture
async def defined_template(
    schedule_manager: ScheduleManager, defined_template_input: dict[str, Any]
) -> dict[str, Any]:
    """Store the defined-activity template."""
    return await schedule_manager.async_create_template(
        defined_template_input, created_by="coordinator-1"
    )


@pytest.fixture
async def open_slot_template(
    schedule_manager: ScheduleManager, open_slot_template_input: dict[str, Any]
) -> dict[str, Any]:
    """Store the open-slot template."""
    return await schedule_manager.async_create_template(
        open_slot_template_input, created_by="coordinator-1"
    )


@pytest.fixture
def utc_clock() -> Iterator[None]:
    """Resolve "now" and "today" in UTC (pair with freeze_time)."""
    set_default_timezone(UTC)
    yield
    set_default_timezone(None)
