"""
Redirect store - static redirect list plus pluggable providers.

Key behaviors:
- Static list is looked up by exact URL: absolute URL, then path+query, then path
- Keys are compared case-insensitively and without a trailing slash
- Provider lookups fail safe: a raising provider counts as no match
- The store is read-only after construction and safe for concurrent reads
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path
from urllib.parse import urlsplit

import yaml
from pydantic import ValidationError

from .models import RedirectOrigin, RedirectRecord, RedirectsFile
from .ports import RedirectProvider

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Normalize a URL or path for lookup."""
    if not path:
        return "/"

    if "://" not in path and not path.startswith("/"):
        path = "/" + path

    # Remove trailing slash (except for root and bare query)
    if "?" not in path:
        path = path.rstrip("/") or "/"

    return path.lower()


def lookup_keys(url: str) -> list[str]:
    """Candidate keys for a URL, most specific first."""
    parts = urlsplit(url)
    keys: list[str] = []

    if parts.scheme and parts.netloc:
        keys.append(normalize_path(url))

    path = parts.path or "/"
    if parts.query:
        keys.append(normalize_path(f"{path}?{parts.query}"))
    keys.append(normalize_path(path))

    # Preserve order, drop duplicates
    return list(dict.fromkeys(keys))


class CustomRedirectCollection:
    """Static redirect list keyed by normalized old URL."""

    def __init__(self, records: Iterable[RedirectRecord] = ()) -> None:
        self._by_url: dict[str, RedirectRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: RedirectRecord) -> None:
        # Last definition of a URL wins
        self._by_url[normalize_path(record.old_url)] = record

    def find(self, url: str) -> RedirectRecord | None:
        for key in lookup_keys(url):
            record = self._by_url.get(key)
            if record is not None:
                return record
        return None

    def __len__(self) -> int:
        return len(self._by_url)

    def list_all(self) -> list[RedirectRecord]:
        return list(self._by_url.values())


class RedirectStore:
    """
    Redirect store consumed by the interceptor.

    Implements RedirectStorePort: find_static() consults the static list,
    find_provider() consults providers in registration order.
    """

    def __init__(
        self,
        static: CustomRedirectCollection | None = None,
        providers: Iterable[RedirectProvider] = (),
    ) -> None:
        self._static = static or CustomRedirectCollection()
        self._providers = list(providers)

    @property
    def static(self) -> CustomRedirectCollection:
        return self._static

    def find_static(self, url: str) -> RedirectRecord | None:
        return self._static.find(url)

    def find_provider(self, url: str) -> RedirectRecord | None:
        for provider in self._providers:
            try:
                record = provider.find(url)
            except Exception:
                logger.warning(
                    "Redirect provider %s failed for %s",
                    getattr(provider, "name", type(provider).__name__),
                    url,
                    exc_info=True,
                )
                continue
            if record is not None:
                return replace(record, origin=RedirectOrigin.PROVIDER)
        return None


def load_redirects_file(path: Path) -> CustomRedirectCollection:
    """
    Load the static redirect list from a YAML file.

    A missing file yields an empty collection. Raises ValueError on
    invalid YAML or schema.
    """
    if not path.exists():
        logger.info("Redirects file %s not found, starting with no redirects", path)
        return CustomRedirectCollection()

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML syntax in redirects file: {e}") from e

    try:
        parsed = RedirectsFile.model_validate(data or {})
    except ValidationError as e:
        raise ValueError(f"Redirects file validation failed:\n{e}") from e

    collection = CustomRedirectCollection(entry.to_record() for entry in parsed.redirects)
    logger.info("Loaded %d redirects from %s", len(collection), path)
    return collection


# --- Factory ---


def create_redirect_store(
    redirects_path: Path | None = None,
    providers: Iterable[RedirectProvider] = (),
) -> RedirectStore:
    """Create a RedirectStore, optionally loading the static list from disk."""
    static = load_redirects_file(redirects_path) if redirects_path else None
    return RedirectStore(static=static, providers=providers)
