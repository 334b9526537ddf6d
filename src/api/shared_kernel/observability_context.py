"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures request-scoped metadata that should be included with all
    instrumentation events. Subject ids are passed to probe methods
    directly, and plaintext PII never belongs here: the context is rendered
    verbatim into every log line a probe emits.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        route: Path of the HTTP route being served (if applicable).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(request_id="req-123", route="/api/users")
        probe = DefaultIdentityServiceProbe().with_context(context)
    """

    request_id: str | None = None
    route: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.route is not None:
            result["route"] = self.route
        result.update(self.extra)
        return result
