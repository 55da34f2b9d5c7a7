"""Base manager class for Care Scheduler managers."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from .. import const
from ..data_builders import validate_date
from ..exceptions import NotFoundError
from ..utils.dt_utils import dt_today_local

if TYPE_CHECKING:
    from ..store import DocumentStore
    from ..type_defs import Document, ISODate


class BaseManager:
    """Base class for all Care Scheduler managers.

    Provides:
    - Access to the shared DocumentStore
    - Required-document reads that raise NotFoundError
    - Resolution of "today" (overridable for tests and back-fills)

    Managers own every store access. Pure calculations are delegated to the
    engines, which never await anything.
    """

    def __init__(self, store: DocumentStore) -> None:
        """Initialize manager.

        Args:
            store: Document store shared by all managers
        """
        self._store = store

    @property
    def store(self) -> DocumentStore:
        """Return the document store."""
        return self._store

    async def async_setup(self) -> None:
        """Set up the manager. Subclasses extend this when they need state."""
        const.LOGGER.debug("%s initialized", self.__class__.__name__)

    async def _async_get_required(
        self, collection: str, doc_id: str, label: str
    ) -> Document:
        """Read a document or raise NotFoundError.

        Args:
            collection: Collection name
            doc_id: Document id
            label: Display name of the document kind (const.LABEL_*)
        """
        document = await self._store.async_get(collection, doc_id)
        if document is None:
            raise NotFoundError(
                translation_placeholders={"kind": label, "entity": doc_id}
            )
        return document

    @staticmethod
    def _resolve_day(day: str | date | datetime | None = None) -> ISODate:
        """Return the ISO date for `day`, defaulting to today (local)."""
        return validate_date(day if day is not None else dt_today_local())
