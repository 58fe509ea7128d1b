"""
Redirects component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from .models import RedirectRecord


class RedirectProvider(Protocol):
    """Pluggable source of redirects consulted after the static list."""

    name: str

    def find(self, url: str) -> RedirectRecord | None:
        """Return the redirect for an absolute URL, or None."""
        ...
