"""Schedule Manager - Template CRUD and edit-time invalidation.

This manager owns the `templates` collection:
- Creating, updating, duplicating and deactivating templates
- Template queries (active, by weekday, shift, activity type)
- Invalidation: deleting pending, today-or-later instances of an edited or
  deactivated template so the next materialization regenerates them

Instances that were completed, omitted or cancelled, and every past-dated
instance, are historical facts and are never touched by invalidation.
Templates are soft-deleted (deactivated), never removed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import build_template, template_duplicate_input
from ..engines.instance_engine import InstanceEngine
from ..exceptions import NotFoundError, PreconditionFailedError
from ..store import where
from ..utils.dt_utils import dt_now_iso
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import date, datetime

    from ..store import DocumentStore
    from ..type_defs import Document
    from .settings_manager import SettingsManager


class ScheduleManager(BaseManager):
    """Manages schedule templates and invalidates their future instances."""

    def __init__(
        self,
        store: DocumentStore,
        settings_manager: SettingsManager | None = None,
    ) -> None:
        """Initialize manager.

        Args:
            store: Document store shared by all managers
            settings_manager: Source of the shift boundaries used to derive a
                template's shift; defaults are used when None
        """
        super().__init__(store)
        self._settings_manager = settings_manager

    async def _async_boundaries(self) -> Mapping[str, Any] | None:
        if self._settings_manager is None:
            return None
        return await self._settings_manager.async_get_boundaries()

    # =========================================================================
    # INVALIDATION
    # =========================================================================

    async def async_on_template_edited(
        self,
        template_id: str,
        today: str | date | datetime | None = None,
    ) -> int:
        """Delete the template's pending instances dated today or later.

        Each delete is conditional on the instance still being pending, so an
        instance completed concurrently is kept.

        Returns:
            Number of instances deleted
        """
        today_iso = self._resolve_day(today)
        candidates = await self._store.async_query(
            const.COLLECTION_INSTANCES,
            [
                where(const.DATA_INSTANCE_TEMPLATE_ID, "==", template_id),
                where(const.DATA_INSTANCE_STATE, "==", const.INSTANCE_STATE_PENDING),
                where(const.DATA_INSTANCE_DATE, ">=", today_iso),
            ],
        )

        deleted = 0
        for instance in candidates:
            instance_id = instance[const.DATA_INSTANCE_INTERNAL_ID]
            try:
                await self._store.async_delete(
                    const.COLLECTION_INSTANCES,
                    instance_id,
                    expected={const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_PENDING},
                )
            except (PreconditionFailedError, NotFoundError):
                const.LOGGER.debug(
                    "Instance %s changed before invalidation, kept", instance_id
                )
                continue
            deleted += 1

        const.LOGGER.info(
            "Template %s invalidated %d future pending instances", template_id, deleted
        )
        return deleted

    async def async_on_template_deactivated(
        self,
        template_id: str,
        today: str | date | datetime | None = None,
    ) -> int:
        """Invalidate the template's future instances, then deactivate it.

        Returns:
            Number of instances deleted

        Raises:
            NotFoundError: If the template does not exist
        """
        await self.async_get_template(template_id)
        deleted = await self.async_on_template_edited(template_id, today)
        await self._store.async_update(
            const.COLLECTION_TEMPLATES,
            template_id,
            {const.DATA_TEMPLATE_ACTIVE: False, const.DATA_UPDATED_AT: dt_now_iso()},
        )
        const.LOGGER.info("Template %s deactivated", template_id)
        return deleted

    async def async_deactivate_template(
        self,
        template_id: str,
        today: str | date | datetime | None = None,
    ) -> int:
        """Soft-delete a template. Same as async_on_template_deactivated."""
        return await self.async_on_template_deactivated(template_id, today)

    async def async_invalidate_templates(
        self,
        template_ids: Iterable[str],
        today: str | date | datetime | None = None,
    ) -> int:
        """Invalidate several templates; returns the total deleted."""
        total = 0
        for template_id in template_ids:
            total += await self.async_on_template_edited(template_id, today)
        return total

    # =========================================================================
    # TEMPLATE CRUD
    # =========================================================================

    async def async_create_template(
        self,
        user_input: Mapping[str, Any],
        created_by: str,
    ) -> Document:
        """Validate and store a new template.

        Raises:
            ValidationError: If the input is invalid (nothing is written)
        """
        template = build_template(
            user_input,
            created_by=created_by,
            boundaries=await self._async_boundaries(),
        )
        template_id = template[const.DATA_TEMPLATE_INTERNAL_ID]
        await self._store.async_set(const.COLLECTION_TEMPLATES, template_id, template)
        const.LOGGER.info(
            "Created template %s (%s, %s min)",
            template_id,
            InstanceEngine.template_display_name(template),
            InstanceEngine.template_duration(template),
        )
        return dict(template)

    async def async_update_template(
        self,
        template_id: str,
        changes: Mapping[str, Any],
        today: str | date | datetime | None = None,
    ) -> Document:
        """Apply changes to a template, then invalidate its future instances.

        Raises:
            NotFoundError: If the template does not exist
            ValidationError: If the changes are invalid (nothing is written)
        """
        existing = await self.async_get_template(template_id)
        template = build_template(
            changes, existing, boundaries=await self._async_boundaries()
        )
        await self._store.async_set(const.COLLECTION_TEMPLATES, template_id, template)
        await self.async_on_template_edited(template_id, today)
        return dict(template)

    async def async_duplicate_template(
        self, template_id: str, created_by: str
    ) -> Document:
        """Store a copy of a template under a new id.

        Raises:
            NotFoundError: If the source template does not exist
        """
        source = await self.async_get_template(template_id)
        return await self.async_create_template(
            template_duplicate_input(source), created_by
        )

    async def async_get_template(self, template_id: str) -> Document:
        """Return a template.

        Raises:
            NotFoundError: If the id is unknown
        """
        return await self._async_get_required(
            const.COLLECTION_TEMPLATES, template_id, const.LABEL_TEMPLATE
        )

    async def async_get_active_templates(self) -> list[Document]:
        """Return the active templates ordered by preferred time."""
        return await self._store.async_query(
            const.COLLECTION_TEMPLATES,
            [where(const.DATA_TEMPLATE_ACTIVE, "==", True)],
            order_by=[const.DATA_TEMPLATE_PREFERRED_TIME],
        )

    async def async_get_templates_for_weekday(self, weekday: int) -> list[Document]:
        """Return the active templates that occur on a weekday (0 = Sunday)."""
        return await self._store.async_query(
            const.COLLECTION_TEMPLATES,
            [
                where(const.DATA_TEMPLATE_ACTIVE, "==", True),
                where(const.DATA_TEMPLATE_WEEKDAYS, "array_contains", weekday),
            ],
            order_by=[const.DATA_TEMPLATE_PREFERRED_TIME],
        )

    async def async_get_templates_for_shift(self, shift: str) -> list[Document]:
        """Return the active templates of a shift."""
        return await self._store.async_query(
            const.COLLECTION_TEMPLATES,
            [
                where(const.DATA_TEMPLATE_ACTIVE, "==", True),
                where(const.DATA_TEMPLATE_SHIFT, "==", shift),
            ],
            order_by=[const.DATA_TEMPLATE_PREFERRED_TIME],
        )

    async def async_get_templates_for_activity_type(
        self, activity_type: str
    ) -> list[Document]:
        """Return the active templates of an activity type."""
        return await self._store.async_query(
            const.COLLECTION_TEMPLATES,
            [
                where(const.DATA_TEMPLATE_ACTIVE, "==", True),
                where(const.DATA_TEMPLATE_ACTIVITY_TYPE, "==", activity_type),
            ],
            order_by=[const.DATA_TEMPLATE_PREFERRED_TIME],
        )

    async def async_count_by_activity_type(self) -> dict[str, int]:
        """Count active templates per activity type, plus a "total" key."""
        templates = await self.async_get_active_templates()
        counts = {activity_type: 0 for activity_type in const.ACTIVITY_TYPES}
        for template in templates:
            activity_type = template.get(const.DATA_TEMPLATE_ACTIVITY_TYPE)
            counts[activity_type] = counts.get(activity_type, 0) + 1
        counts["total"] = len(templates)
        return counts
