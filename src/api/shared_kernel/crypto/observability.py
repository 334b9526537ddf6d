"""Domain probe for field encryption.

Only failure categories are recorded. Plaintext, ciphertext and key material
never reach the logger.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class FieldCipherProbe(Protocol):
    """Domain probe for field cipher operations."""

    def decode_failed(self, reason: str) -> None:
        """Record that a ciphertext field could not be decoded."""
        ...

    def with_context(self, context: ObservationContext) -> FieldCipherProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultFieldCipherProbe:
    """Default implementation of FieldCipherProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultFieldCipherProbe:
        """Create a new probe with observation context bound."""
        return DefaultFieldCipherProbe(logger=self._logger, context=context)

    def decode_failed(self, reason: str) -> None:
        """Record that a ciphertext field could not be decoded."""
        self._logger.warning(
            "field_decode_failed",
            reason=reason,
            **self._get_context_kwargs(),
        )
