"""
SettingsResolver - lazily resolved operating parameters.

Key behaviors:
- Each setting is read from the config source on first access and cached
- Logging mode is the exception: it is re-read on every access
- Missing or unparseable values fall back to defaults, never raise
- Unknown setting names read as None
- Cache fill is lock-guarded; the first resolved value wins
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from threading import Lock
from typing import Any, TypeVar

from .models import (
    DEFAULT_IGNORED_EXTENSIONS,
    HandlerMode,
    LoggerMode,
    OperatingSettings,
)
from .ports import ConfigSourcePort

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


# --- Setting names ---

HANDLER_MODE = "handler_mode"
LOGGING = "logging"
FILE_NOT_FOUND_PAGE = "file_not_found_page"
REDIRECTS_FILE = "redirects_file"
BUFFER_SIZE = "buffer_size"
THRESHOLD = "threshold"
IGNORED_RESOURCE_EXTENSIONS = "ignored_resource_extensions"
FALLBACK_TO_HOST_ERROR_MANAGER = "fallback_to_host_error_manager"
CASE_INSENSITIVE_EXTENSIONS = "case_insensitive_extensions"
SITE_URL = "site_url"

# Settings re-read on every access instead of cached
FRESH_SETTINGS = frozenset({LOGGING})

_DEFAULTS = OperatingSettings()


# --- Parsers ---


def parse_enum(raw: str | None, enum_type: type[E], default: E) -> E:
    """Parse an enum by value, ignoring case."""
    if raw is None or not raw.strip():
        return default
    wanted = raw.strip().lower()
    for member in enum_type:
        if str(member.value).lower() == wanted:
            return member
    logger.debug("Unknown %s value %r, using %s", enum_type.__name__, raw, default.value)
    return default


def parse_positive_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.debug("Invalid integer setting %r, using %d", raw, default)
        return default
    # -1 and other non-positive values mean "unset"
    return value if value > 0 else default


def parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    logger.debug("Invalid boolean setting %r, using %s", raw, default)
    return default


def parse_text(raw: str | None, default: str) -> str:
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def parse_extensions(raw: str | None) -> frozenset[str]:
    """Comma-separated extension list; leading dots are ignored."""
    text = raw if raw is not None and raw.strip() else DEFAULT_IGNORED_EXTENSIONS
    extensions = frozenset(
        part.strip().lstrip(".") for part in text.split(",") if part.strip().lstrip(".")
    )
    return extensions or _DEFAULTS.ignored_extensions


_PARSERS: dict[str, Callable[[str | None], Any]] = {
    HANDLER_MODE: lambda raw: parse_enum(raw, HandlerMode, _DEFAULTS.handler_mode),
    LOGGING: lambda raw: parse_enum(raw, LoggerMode, LoggerMode.ON),
    FILE_NOT_FOUND_PAGE: lambda raw: parse_text(raw, _DEFAULTS.fallback_page),
    REDIRECTS_FILE: lambda raw: parse_text(raw, _DEFAULTS.redirects_file),
    BUFFER_SIZE: lambda raw: parse_positive_int(raw, _DEFAULTS.buffer_size),
    THRESHOLD: lambda raw: parse_positive_int(raw, _DEFAULTS.threshold),
    IGNORED_RESOURCE_EXTENSIONS: parse_extensions,
    FALLBACK_TO_HOST_ERROR_MANAGER: lambda raw: parse_bool(
        raw, _DEFAULTS.fallback_to_host_error_manager
    ),
    CASE_INSENSITIVE_EXTENSIONS: lambda raw: parse_bool(
        raw, _DEFAULTS.case_insensitive_extensions
    ),
    SITE_URL: lambda raw: parse_text(raw, _DEFAULTS.site_url).rstrip("/"),
}


# --- Resolver ---


class SettingsResolver:
    """
    Resolves and memoizes interceptor settings from a config source.

    Safe for concurrent use; after warm-up reads take no lock except
    for the fresh-per-access logging flag, which takes none at all.
    """

    def __init__(self, source: ConfigSourcePort) -> None:
        self._source = source
        self._cache: dict[str, Any] = {}
        self._lock = Lock()
        self._snapshot: OperatingSettings | None = None

    def _read(self, name: str) -> str | None:
        try:
            return self._source.get(name)
        except Exception:
            logger.debug("Config source failed reading %s, using default", name, exc_info=True)
            return None

    def _resolve(self, name: str) -> Any:
        return _PARSERS[name](self._read(name))

    def get(self, name: str) -> Any:
        """
        Get a setting value.

        Never raises; an unknown setting name is logged and reads as None.
        """
        if name not in _PARSERS:
            logger.warning("Unknown not-found setting %r", name)
            return None

        if name in FRESH_SETTINGS:
            return self._resolve(name)

        if name in self._cache:
            return self._cache[name]

        with self._lock:
            if name not in self._cache:
                self._cache[name] = self._resolve(name)
            return self._cache[name]

    def logging_mode(self) -> LoggerMode:
        """Current logging mode, read fresh from the source."""
        mode: LoggerMode = self.get(LOGGING)
        return mode

    @property
    def handler_mode(self) -> HandlerMode:
        mode: HandlerMode = self.get(HANDLER_MODE)
        return mode

    @property
    def fallback_page(self) -> str:
        return str(self.get(FILE_NOT_FOUND_PAGE))

    @property
    def buffer_size(self) -> int:
        return int(self.get(BUFFER_SIZE))

    @property
    def threshold(self) -> int:
        return int(self.get(THRESHOLD))

    def snapshot(self) -> OperatingSettings:
        """Immutable settings built once and reused for the process lifetime."""
        if self._snapshot is None:
            snapshot = OperatingSettings(
                handler_mode=self.get(HANDLER_MODE),
                fallback_page=self.get(FILE_NOT_FOUND_PAGE),
                redirects_file=self.get(REDIRECTS_FILE),
                buffer_size=self.get(BUFFER_SIZE),
                threshold=self.get(THRESHOLD),
                ignored_extensions=self.get(IGNORED_RESOURCE_EXTENSIONS),
                fallback_to_host_error_manager=self.get(FALLBACK_TO_HOST_ERROR_MANAGER),
                case_insensitive_extensions=self.get(CASE_INSENSITIVE_EXTENSIONS),
                site_url=self.get(SITE_URL),
            )
            with self._lock:
                if self._snapshot is None:
                    self._snapshot = snapshot
        return self._snapshot
