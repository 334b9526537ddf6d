"""Domain probe for identity repository operations.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events related to identity persistence. Ciphertext and
driver error messages (which can echo bound parameters) are never logged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class IdentityRepositoryProbe(Protocol):
    """Domain probe for identity repository operations."""

    def identity_upserted(self, subject_id: str, was_inserted: bool) -> None:
        """Record that an identity row was inserted or replaced."""
        ...

    def identity_upsert_failed(self, subject_id: str, error_type: str) -> None:
        """Record that the upsert statement failed."""
        ...

    def identities_streamed(self, count: int) -> None:
        """Record that a full listing pass finished."""
        ...

    def identity_listing_failed(self, error_type: str) -> None:
        """Record that a listing pass failed mid-stream."""
        ...

    def with_context(self, context: ObservationContext) -> IdentityRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultIdentityRepositoryProbe:
    """Default implementation of IdentityRepositoryProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(
        self, context: ObservationContext
    ) -> DefaultIdentityRepositoryProbe:
        """Create a new probe with observation context bound."""
        return DefaultIdentityRepositoryProbe(logger=self._logger, context=context)

    def identity_upserted(self, subject_id: str, was_inserted: bool) -> None:
        self._logger.debug(
            "identity_upserted",
            subject_id=subject_id,
            was_inserted=was_inserted,
            **self._get_context_kwargs(),
        )

    def identity_upsert_failed(self, subject_id: str, error_type: str) -> None:
        self._logger.error(
            "identity_upsert_failed",
            subject_id=subject_id,
            error_type=error_type,
            **self._get_context_kwargs(),
        )

    def identities_streamed(self, count: int) -> None:
        self._logger.debug(
            "identities_streamed",
            count=count,
            **self._get_context_kwargs(),
        )

    def identity_listing_failed(self, error_type: str) -> None:
        self._logger.error(
            "identity_listing_failed",
            error_type=error_type,
            **self._get_context_kwargs(),
        )
