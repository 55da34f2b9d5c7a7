"""Tests for SettingsManager."""

from __future__ import annotations

from typing import Any

import pytest

from carescheduler import const
from carescheduler.exceptions import ValidationError
from carescheduler.managers import ScheduleManager, SettingsManager
from carescheduler.store import MemoryDocumentStore


class TestSettings:
    """Reading and updating the schedule settings."""

    @pytest.mark.asyncio
    async def test_defaults(self, settings_manager: SettingsManager) -> None:
        """Nothing stored yields the defaults."""
        settings = await settings_manager.async_get_settings()
        assert settings[const.DATA_SETTINGS_MORNING_START] == const.DEFAULT_MORNING_START
        assert settings[const.DATA_SETTINGS_VITAL_SIGN_TIMES] == list(
            const.DEFAULT_VITAL_SIGN_TIMES
        )
        assert settings[const.DATA_SETTINGS_ACTIVE_WINDOW_MINUTES] == 30
        assert settings[const.DATA_SETTINGS_UPCOMING_HORIZON_MINUTES] == 60

    @pytest.mark.asyncio
    async def test_partial_update_persists(
        self, store: MemoryDocumentStore, settings_manager: SettingsManager
    ) -> None:
        """Changed keys are stored, the rest keep their values."""
        await settings_manager.async_update_settings(
            {const.DATA_SETTINGS_MORNING_START: "06:30"}
        )
        await settings_manager.async_update_settings(
            {const.DATA_SETTINGS_UPCOMING_HORIZON_MINUTES: 90}
        )

        reloaded = await SettingsManager(store).async_get_settings()
        assert reloaded[const.DATA_SETTINGS_MORNING_START] == "06:30"
        assert reloaded[const.DATA_SETTINGS_UPCOMING_HORIZON_MINUTES] == 90
        assert reloaded[const.DATA_SETTINGS_NIGHT_START] == const.DEFAULT_NIGHT_START

    @pytest.mark.asyncio
    async def test_invalid_update_writes_nothing(
        self, store: MemoryDocumentStore, settings_manager: SettingsManager
    ) -> None:
        """A malformed time is rejected before storage."""
        with pytest.raises(ValidationError):
            await settings_manager.async_update_settings(
                {const.DATA_SETTINGS_AFTERNOON_START: "25:00"}
            )
        assert (
            await store.async_get(const.COLLECTION_SETTINGS, const.SETTINGS_DOC_SCHEDULE)
            is None
        )

    @pytest.mark.asyncio
    async def test_boundaries_drive_template_shift(
        self,
        settings_manager: SettingsManager,
        schedule_manager: ScheduleManager,
        defined_template_input: dict[str, Any],
    ) -> None:
        """13:00 is morning by default, afternoon after moving the boundary."""
        defined_template_input[const.DATA_TEMPLATE_PREFERRED_TIME] = "13:00"
        before = await schedule_manager.async_create_template(
            defined_template_input, created_by="coordinator-1"
        )
        assert before[const.DATA_TEMPLATE_SHIFT] == const.SHIFT_MORNING

        await settings_manager.async_update_settings(
            {const.DATA_SETTINGS_AFTERNOON_START: "12:00"}
        )
        assert (await settings_manager.async_get_boundaries())[
            const.DATA_SETTINGS_AFTERNOON_START
        ] == "12:00"

        after = await schedule_manager.async_create_template(
            defined_template_input, created_by="coordinator-1"
        )
        assert after[const.DATA_TEMPLATE_SHIFT] == const.SHIFT_AFTERNOON
