"""
Not-found interception port definitions.

Collaborators the engine consumes. Implementations must fail safe:
a store or logger that cannot answer returns None / drops the entry
rather than raising, the engine does not retry.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from src.components.redirects.models import RedirectRecord

from .models import Failure


class RedirectStorePort(Protocol):
    """Read-only redirect lookup. Must be safe for concurrent reads."""

    def find_static(self, url: str) -> RedirectRecord | None:
        """Look the URL up in the static redirect list."""
        ...

    def find_provider(self, url: str) -> RedirectRecord | None:
        """Look the URL up in the pluggable providers."""
        ...


class MissLoggerPort(Protocol):
    """Fire-and-forget sink for unmatched not-found requests."""

    def log_request(self, url: str, referrer: str) -> None:
        """Record a miss. Must not block on storage."""
        ...


class ConfigSourcePort(Protocol):
    """Key/value configuration reads."""

    def get(self, key: str) -> str | None:
        """Raw value for key, or None when unset."""
        ...


class HostResponsePort(Protocol):
    """Response mutations the engine asks the host pipeline to perform."""

    def redirect_permanent(self, url: str) -> None:
        """Answer with a permanent redirect."""
        ...

    def transfer(self, url: str) -> None:
        """Serve url in place of the current request, skipping the host error page."""
        ...

    def set_status(self, status_code: int) -> None:
        """Override the outgoing status code."""
        ...


# Maps the host's captured error handle to a tagged failure
FailureDescriber = Callable[[object], Failure]

# Decides whether the caller's address belongs to this machine
LocalClientCheck = Callable[[str | None], bool]
