"""Protocol for identity application service observability.

Defines the interface for domain probes that capture application-level
domain events for identity reconciliation and listing. Events carry subject
ids and providers only; decrypted names and emails are never passed in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class IdentityServiceProbe(Protocol):
    """Domain probe for identity application service operations."""

    def identity_reconciled(
        self,
        subject_id: str,
        provider: str,
        was_created: bool,
    ) -> None:
        """Record that a claim was reconciled into the stored identity."""
        ...

    def identity_reconcile_failed(
        self,
        subject_id: str,
        error: str,
    ) -> None:
        """Record that reconciliation failed after the claim was accepted."""
        ...

    def claim_rejected(self, reason: str) -> None:
        """Record that a claim was rejected before any work was done."""
        ...

    def identity_record_unreadable(self, subject_id: str, field: str) -> None:
        """Record that a listed row had a field that could not be decoded."""
        ...

    def identities_listed(self, count: int, unreadable_count: int) -> None:
        """Record that a listing pass finished."""
        ...

    def with_context(self, context: ObservationContext) -> IdentityServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultIdentityServiceProbe:
    """Default implementation of IdentityServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultIdentityServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultIdentityServiceProbe(logger=self._logger, context=context)

    def identity_reconciled(
        self,
        subject_id: str,
        provider: str,
        was_created: bool,
    ) -> None:
        """Record that a claim was reconciled into the stored identity."""
        self._logger.info(
            "identity_reconciled",
            subject_id=subject_id,
            provider=provider,
            was_created=was_created,
            **self._get_context_kwargs(),
        )

    def identity_reconcile_failed(
        self,
        subject_id: str,
        error: str,
    ) -> None:
        """Record that reconciliation failed after the claim was accepted."""
        self._logger.error(
            "identity_reconcile_failed",
            subject_id=subject_id,
            error=error,
            **self._get_context_kwargs(),
        )

    def claim_rejected(self, reason: str) -> None:
        """Record that a claim was rejected before any work was done."""
        self._logger.warning(
            "identity_claim_rejected",
            reason=reason,
            **self._get_context_kwargs(),
        )

    def identity_record_unreadable(self, subject_id: str, field: str) -> None:
        """Record that a listed row had a field that could not be decoded."""
        self._logger.warning(
            "identity_record_unreadable",
            subject_id=subject_id,
            field=field,
            **self._get_context_kwargs(),
        )

    def identities_listed(self, count: int, unreadable_count: int) -> None:
        """Record that a listing pass finished."""
        self._logger.info(
            "identities_listed",
            count=count,
            unreadable_count=unreadable_count,
            **self._get_context_kwargs(),
        )
