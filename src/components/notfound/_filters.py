"""
Request filters run before any redirect lookup.

- Resource filter: static-asset misses are ignored outright
- Loop guard: re-entries from a prior rewrite, and misses of the
  fallback page itself, must never re-trigger interception
"""

from __future__ import annotations

import logging
from collections.abc import Collection

from .models import REENTRY_PREFIX, RequestContext

logger = logging.getLogger(__name__)


# --- Resource Filter ---


def resource_extension(path: str) -> str | None:
    """Extension of the last path segment, or None."""
    segment = path.split("?", 1)[0].rsplit("/", 1)[-1]
    dot = segment.rfind(".")
    if dot <= 0 or dot == len(segment) - 1:
        return None
    return segment[dot + 1 :]


def is_ignorable_resource(
    path: str,
    extensions: Collection[str],
    case_insensitive: bool = True,
) -> bool:
    """
    True when the path names a static asset whose misses are ignored.

    With case_insensitive=False, "/logo.PNG" is not matched by "png".
    """
    extension = resource_extension(path)
    if extension is None:
        return False

    if case_insensitive:
        matched = extension.lower() in {e.lower() for e in extensions}
    else:
        matched = extension in extensions

    if matched:
        logger.debug("Ignoring rewrite of '%s'. '%s' is a known resource extension", path, extension)
    return matched


# --- Loop Guard ---


def fallback_page_path(fallback_page: str) -> str:
    """Fallback page path without the virtual-path marker or query string."""
    page = fallback_page[1:] if fallback_page.startswith("~") else fallback_page
    query_pos = page.find("?")
    if query_pos > 0:
        page = page[:query_pos]
    return page


def has_reentry_marker(query_string: str | None) -> bool:
    if not query_string:
        return False
    return query_string.startswith(REENTRY_PREFIX)


def is_fallback_page_request(path: str, fallback_page: str) -> bool:
    return path.lower() == fallback_page_path(fallback_page).lower()


def is_recursive(ctx: RequestContext, fallback_page: str) -> bool:
    """True when handling this request could loop."""
    if has_reentry_marker(ctx.query_string):
        logger.debug("Request %s is a not-found re-entry, skipping", ctx.path)
        return True

    if is_fallback_page_request(ctx.path, fallback_page):
        logger.info("404 handler detected an infinite loop to the not-found page. Exiting")
        return True

    return False
