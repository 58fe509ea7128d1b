"""
Rules-file config source for the not-found interceptor.

Reads the `notfound:` section of rules.yaml. The file is re-read when
its modification time changes, so settings resolved fresh on every
access (the logging flag) follow operator edits without a restart.
A missing or invalid file reads as "no values", which the settings
resolver turns into defaults.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from src.rules.loader import load_rules

logger = logging.getLogger(__name__)


class RulesConfigSource:
    """ConfigSourcePort backed by a rules file."""

    def __init__(self, path: Path, overrides: Mapping[str, str] | None = None) -> None:
        self._path = path
        self._overrides = dict(overrides or {})
        self._values: dict[str, str] = {}
        self._mtime: float | None = None
        self._lock = Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _current_mtime(self) -> float | None:
        try:
            return self._path.stat().st_mtime
        except OSError:
            return None

    def _reload_if_changed(self) -> None:
        mtime = self._current_mtime()
        if mtime is not None and mtime == self._mtime:
            return

        with self._lock:
            if mtime is not None and mtime == self._mtime:
                return
            try:
                rules = load_rules(self._path)
            except (FileNotFoundError, ValueError) as e:
                logger.debug("Not-found rules unavailable, using defaults: %s", e)
                self._values = {}
            else:
                self._values = rules.notfound.as_mapping()
            self._mtime = mtime

    def get(self, key: str) -> str | None:
        if key in self._overrides:
            return self._overrides[key]
        self._reload_if_changed()
        return self._values.get(key)
