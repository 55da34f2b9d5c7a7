"""Instance Manager - Materialization and queries of dated instances.

This manager owns the `instances` collection reads and the creation of new
instances:
- Materializing active templates into instances for a date, a range or a week
- Instance queries by date, range, shift and state
- Compliance figures over a date range
- Cleanup of orphan and duplicate pending instances

ARCHITECTURE:
- InstanceManager = persistence and orchestration (STATEFUL)
- InstanceEngine / WeeklyScheduleEngine = pure snapshot and recurrence logic

Concurrency: materialization never reads-then-writes. Each instance is
written with `async_create_if_absent` under its deterministic id, so any
number of concurrent callers for the same date produce one instance per
(template, date) and never overwrite an instance that already exists.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import validate_date
from ..engines.instance_engine import InstanceEngine
from ..engines.schedule_engine import WeeklyScheduleEngine
from ..engines.statistics_engine import StatisticsEngine
from ..exceptions import (
    MaterializationError,
    NotFoundError,
    PreconditionFailedError,
    StoreError,
)
from ..store import where
from .base_manager import BaseManager

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import date, datetime

    from ..type_defs import ComplianceSummary, Document, ISODate


class InstanceManager(BaseManager):
    """Materializes templates into instances and answers instance queries."""

    # =========================================================================
    # MATERIALIZATION
    # =========================================================================

    async def _async_load_active_templates(self) -> list[Document]:
        """Read every active template in one query."""
        return await self._store.async_query(
            const.COLLECTION_TEMPLATES,
            [where(const.DATA_TEMPLATE_ACTIVE, "==", True)],
            order_by=[const.DATA_TEMPLATE_PREFERRED_TIME],
        )

    async def _async_create_instance(
        self, template: Mapping[str, Any], day: ISODate
    ) -> bool:
        """Create the template's instance for a date unless it already exists."""
        instance = InstanceEngine.build_instance(template, day)
        instance_id = instance[const.DATA_INSTANCE_INTERNAL_ID]
        created = await self._store.async_create_if_absent(
            const.COLLECTION_INSTANCES, instance_id, instance
        )
        if created:
            const.LOGGER.debug("Created instance %s", instance_id)
        else:
            const.LOGGER.debug("Instance %s already exists, skipped", instance_id)
        return created

    async def _async_run_creations(
        self,
        jobs: list[tuple[Mapping[str, Any], ISODate]],
        label: str,
    ) -> int:
        """Run create-if-absent jobs independently and collect failures.

        Raises:
            MaterializationError: If any job failed with a StoreError, after
                every job was attempted
        """
        results = await asyncio.gather(
            *(self._async_create_instance(template, day) for template, day in jobs),
            return_exceptions=True,
        )

        created = 0
        failures: dict[str, StoreError] = {}
        for (template, day), result in zip(jobs, results, strict=True):
            if isinstance(result, StoreError):
                instance_id = InstanceEngine.build_instance_id(
                    template[const.DATA_TEMPLATE_INTERNAL_ID], day
                )
                const.LOGGER.warning(
                    "Failed to materialize instance %s: %s", instance_id, result
                )
                failures[instance_id] = result
            elif isinstance(result, BaseException):
                raise result
            elif result:
                created += 1

        if failures:
            raise MaterializationError(label, created, failures)
        return created

    async def async_materialize(
        self,
        target_date: str | date | datetime,
        templates: Iterable[Mapping[str, Any]] | None = None,
    ) -> int:
        """Create the missing instances of a date from the active templates.

        Templates that are inactive or do not include the date's weekday are
        skipped. Existing instances are never overwritten, so calling this
        repeatedly is a no-op after the first call.

        Args:
            target_date: Date to materialize
            templates: Templates to consider; read from the store when None

        Returns:
            Number of instances created by this call

        Raises:
            ValidationError: If the date is invalid
            MaterializationError: If some instances could not be written
                (the others were still created)
        """
        day = validate_date(target_date)
        if templates is None:
            templates = await self._async_load_active_templates()

        matching = WeeklyScheduleEngine.templates_for_date(templates, day)
        if not matching:
            const.LOGGER.debug("No templates apply on %s", day)
            return 0

        created = await self._async_run_creations(
            [(template, day) for template in matching], day
        )
        const.LOGGER.info(
            "Materialized %s: %d created, %d templates matched",
            day,
            created,
            len(matching),
        )
        return created

    async def async_materialize_range(
        self,
        start: str | date | datetime,
        end: str | date | datetime,
        templates: Iterable[Mapping[str, Any]] | None = None,
    ) -> int:
        """Materialize every date from start to end (inclusive).

        The active templates are read once for the whole range.

        Raises:
            ValidationError: If a date is invalid
            MaterializationError: If some instances could not be written
        """
        start_day = validate_date(start, "start")
        end_day = validate_date(end, "end")
        if templates is None:
            templates = await self._async_load_active_templates()
        active = [t for t in templates if t.get(const.DATA_TEMPLATE_ACTIVE)]

        jobs: list[tuple[Mapping[str, Any], ISODate]] = []
        for template in active:
            jobs.extend(
                (template, occurrence.isoformat())
                for occurrence in WeeklyScheduleEngine.occurrences(
                    template.get(const.DATA_TEMPLATE_WEEKDAYS) or [],
                    start_day,
                    end_day,
                )
            )
        if not jobs:
            return 0

        created = await self._async_run_creations(jobs, f"{start_day}..{end_day}")
        const.LOGGER.info(
            "Materialized %s..%s: %d created out of %d occurrences",
            start_day,
            end_day,
            created,
            len(jobs),
        )
        return created

    async def async_materialize_week(self, day: str | date | datetime) -> int:
        """Materialize the Monday-Sunday week containing `day`."""
        monday, sunday = WeeklyScheduleEngine.week_bounds(validate_date(day))
        return await self.async_materialize_range(monday, sunday)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def async_get_instance(self, instance_id: str) -> Document:
        """Return an instance.

        Raises:
            NotFoundError: If the id is unknown
        """
        return await self._async_get_required(
            const.COLLECTION_INSTANCES, instance_id, const.LABEL_INSTANCE
        )

    async def async_get_instances_for_range(
        self,
        start: str | date | datetime,
        end: str | date | datetime,
    ) -> list[Document]:
        """Return instances dated start..end inclusive, by date then time."""
        start_day = validate_date(start, "start")
        end_day = validate_date(end, "end")
        return await self._store.async_query(
            const.COLLECTION_INSTANCES,
            [
                where(const.DATA_INSTANCE_DATE, ">=", start_day),
                where(const.DATA_INSTANCE_DATE, "<=", end_day),
            ],
            order_by=[const.DATA_INSTANCE_DATE, const.DATA_INSTANCE_PREFERRED_TIME],
        )

    async def async_get_instances_for_date(
        self, day: str | date | datetime
    ) -> list[Document]:
        """Return a date's instances ordered by preferred time."""
        return await self.async_get_instances_for_range(day, day)

    async def async_get_pending_for_date(
        self, day: str | date | datetime | None = None
    ) -> list[Document]:
        """Return the pending instances of a date (default today)."""
        instances = await self.async_get_instances_for_date(self._resolve_day(day))
        return [
            instance
            for instance in instances
            if instance.get(const.DATA_INSTANCE_STATE) == const.INSTANCE_STATE_PENDING
        ]

    async def async_get_instances_for_shift(
        self, day: str | date | datetime, shift: str
    ) -> list[Document]:
        """Return a date's instances that belong to one shift."""
        instances = await self.async_get_instances_for_date(day)
        return [i for i in instances if i.get(const.DATA_INSTANCE_SHIFT) == shift]

    async def async_instance_exists(
        self, template_id: str, day: str | date | datetime
    ) -> bool:
        """Return True if the template already has an instance on the date."""
        instance_id = InstanceEngine.build_instance_id(template_id, validate_date(day))
        return (
            await self._store.async_get(const.COLLECTION_INSTANCES, instance_id)
        ) is not None

    async def async_get_compliance(
        self,
        start: str | date | datetime,
        end: str | date | datetime,
    ) -> ComplianceSummary:
        """Return the compliance summary of start..end inclusive."""
        instances = await self.async_get_instances_for_range(start, end)
        return StatisticsEngine.compliance_summary(instances)

    # =========================================================================
    # CLEANUP
    # =========================================================================

    @staticmethod
    def find_redundant_instances(
        instances: Iterable[Mapping[str, Any]],
        active_template_ids: set[str],
    ) -> list[str]:
        """Pick pending instances that are orphaned or duplicated.

        Instances are grouped by date and preferred time. Within a group a
        pending instance is redundant when:
            1. its template is no longer active (orphan)
            2. a completed instance of the same activity type exists
            3. another instance of the same activity from an active template
               exists and is preferred (completed first, then oldest)

        Only pending instances are ever returned.
        """
        groups: dict[tuple[str, str], list[Mapping[str, Any]]] = {}
        for instance in instances:
            key = (
                instance.get(const.DATA_INSTANCE_DATE, ""),
                instance.get(const.DATA_INSTANCE_PREFERRED_TIME, ""),
            )
            groups.setdefault(key, []).append(instance)

        def is_pending(instance: Mapping[str, Any]) -> bool:
            return (
                instance.get(const.DATA_INSTANCE_STATE) == const.INSTANCE_STATE_PENDING
            )

        redundant: list[str] = []

        def mark(instance: Mapping[str, Any]) -> None:
            instance_id = instance[const.DATA_INSTANCE_INTERNAL_ID]
            if is_pending(instance) and instance_id not in redundant:
                redundant.append(instance_id)

        for group in groups.values():
            active = [
                i
                for i in group
                if i.get(const.DATA_INSTANCE_TEMPLATE_ID) in active_template_ids
            ]
            for instance in group:
                template_id = instance.get(const.DATA_INSTANCE_TEMPLATE_ID)
                if template_id not in active_template_ids:
                    mark(instance)
            if len(group) == 1:
                continue

            completed_types = {
                i.get(const.DATA_INSTANCE_ACTIVITY_TYPE)
                for i in group
                if i.get(const.DATA_INSTANCE_STATE) == const.INSTANCE_STATE_COMPLETED
            }
            for instance in group:
                if instance.get(const.DATA_INSTANCE_ACTIVITY_TYPE) in completed_types:
                    mark(instance)

            by_activity: dict[str, list[Mapping[str, Any]]] = {}
            for instance in active:
                by_activity.setdefault(InstanceEngine.slot_key(instance), []).append(
                    instance
                )
            for duplicates in by_activity.values():
                if len(duplicates) < 2:
                    continue
                ordered = sorted(
                    duplicates,
                    key=lambda i: (
                        i.get(const.DATA_INSTANCE_STATE)
                        != const.INSTANCE_STATE_COMPLETED,
                        i.get(const.DATA_CREATED_AT, ""),
                    ),
                )
                for duplicate in ordered[1:]:
                    mark(duplicate)

        return redundant

    async def async_cleanup_orphans(
        self,
        start: str | date | datetime,
        end: str | date | datetime,
        active_template_ids: Iterable[str] | None = None,
        *,
        today: str | date | datetime | None = None,
    ) -> list[str]:
        """Delete orphan and duplicate pending instances in a date range.

        Past-dated instances are never removed, whatever their state.

        Args:
            start: First date of the range
            end: Last date of the range
            active_template_ids: Ids of active templates; read when None
            today: Override for today's date

        Returns:
            Ids of the deleted instances
        """
        today_iso = self._resolve_day(today)
        start_day = max(validate_date(start, "start"), today_iso)
        end_day = validate_date(end, "end")
        if start_day > end_day:
            return []

        if active_template_ids is None:
            active_template_ids = [
                template[const.DATA_TEMPLATE_INTERNAL_ID]
                for template in await self._async_load_active_templates()
            ]

        instances = await self.async_get_instances_for_range(start_day, end_day)
        candidates = self.find_redundant_instances(instances, set(active_template_ids))

        deleted: list[str] = []
        for instance_id in candidates:
            try:
                await self._store.async_delete(
                    const.COLLECTION_INSTANCES,
                    instance_id,
                    expected={const.DATA_INSTANCE_STATE: const.INSTANCE_STATE_PENDING},
                )
            except (PreconditionFailedError, NotFoundError):
                const.LOGGER.debug(
                    "Instance %s changed before cleanup, kept", instance_id
                )
                continue
            deleted.append(instance_id)

        const.LOGGER.info(
            "Cleanup %s..%s removed %d instances", start_day, end_day, len(deleted)
        )
        return deleted
