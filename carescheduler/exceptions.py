"""Exceptions raised by the Care Scheduler package.

Every error carries a translation key plus placeholders so presentation layers
can render localized messages, while ``str(err)`` gives the English text.
"""

from __future__ import annotations

from typing import Any

from . import const


class CareSchedulerError(Exception):
    """Base class for all Care Scheduler errors.

    Attributes:
        translation_key: One of the const.TRANS_KEY_ERROR_* values
        translation_placeholders: Values substituted into the message template
    """

    default_translation_key = const.TRANS_KEY_ERROR_INVALID_INPUT

    def __init__(
        self,
        translation_key: str | None = None,
        translation_placeholders: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error and render its English message."""
        self.translation_domain = const.DOMAIN
        self.translation_key = translation_key or self.default_translation_key
        self.translation_placeholders = {
            key: str(value) for key, value in (translation_placeholders or {}).items()
        }
        super().__init__(self._render_message())

    def _render_message(self) -> str:
        template = const.TRANSLATIONS_EN.get(self.translation_key, self.translation_key)
        try:
            return template.format(**self.translation_placeholders)
        except (KeyError, IndexError):
            return template


class ValidationError(CareSchedulerError):
    """Input rejected before any write was attempted.

    Attributes:
        field: The document key that failed validation, when known
    """

    def __init__(
        self,
        translation_key: str | None = None,
        translation_placeholders: dict[str, Any] | None = None,
        *,
        field: str | None = None,
    ) -> None:
        """Initialize ValidationError."""
        self.field = field
        super().__init__(translation_key, translation_placeholders)


class NotFoundError(CareSchedulerError):
    """Unknown template or instance id."""

    default_translation_key = const.TRANS_KEY_ERROR_NOT_FOUND


class InvalidStateError(CareSchedulerError):
    """Transition not allowed from the instance's current state or modality."""

    default_translation_key = const.TRANS_KEY_ERROR_INVALID_STATE


class StoreError(CareSchedulerError):
    """Underlying persistence failure."""

    default_translation_key = const.TRANS_KEY_ERROR_STORE


class PreconditionFailedError(StoreError):
    """A conditional write found the document in an unexpected shape."""

    default_translation_key = const.TRANS_KEY_ERROR_PRECONDITION_FAILED


class MaterializationError(CareSchedulerError):
    """One or more templates failed to materialize for a date.

    Raised after every matching template was attempted.

    Attributes:
        created: Number of instances that were created successfully
        failures: Mapping of instance id to the StoreError raised for it
    """

    default_translation_key = const.TRANS_KEY_ERROR_MATERIALIZATION_FAILED

    def __init__(
        self,
        target_date: str,
        created: int,
        failures: dict[str, StoreError],
    ) -> None:
        """Initialize MaterializationError."""
        self.target_date = target_date
        self.created = created
        self.failures = failures
        super().__init__(
            translation_placeholders={
                "date": target_date,
                "created": created,
                "failed": len(failures),
            }
        )
