import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.adapters.request_logger import BufferedRequestLogger
from src.adapters.rules_config import RulesConfigSource
from src.adapters.sqlite.notfound_log import SQLiteNotFoundLogRepo
from src.components.notfound import (
    NotFoundHandler,
    SettingsResolver,
    create_not_found_handler,
)
from src.components.redirects import RedirectStore, create_redirect_store
from src.shell.http.notfound_middleware import describe_exception

# Environment variables overriding single rules.yaml keys
ENV_PREFIX = "NOTFOUND_"
OVERRIDABLE_KEYS = (
    "handler_mode",
    "logging",
    "file_not_found_page",
    "redirects_file",
    "site_url",
)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.db_path = f"{os.environ.get('NOTFOUND_DATA_DIR', './data')}/notfound.db"
        self.rules_path = Path(os.environ.get("NOTFOUND_RULES_PATH", str(self.base_dir / "rules.yaml")))


@lru_cache
def get_settings() -> Settings:
    return Settings()


def resolve_virtual_path(path: str, base_dir: Path) -> Path:
    """Map "~/x" to base_dir/x; other paths are taken as given."""
    if path.startswith("~/"):
        return base_dir / path[2:]
    return Path(path)


def env_overrides() -> dict[str, str]:
    overrides = {}
    for key in OVERRIDABLE_KEYS:
        value = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
        if value is not None:
            overrides[key] = value
    return overrides


# --- Config ---
@lru_cache
def get_settings_resolver() -> SettingsResolver:
    settings = get_settings()
    return SettingsResolver(RulesConfigSource(settings.rules_path, overrides=env_overrides()))


# --- Repos / adapters ---
@lru_cache
def get_redirect_store() -> RedirectStore:
    settings = get_settings()
    redirects_file = get_settings_resolver().snapshot().redirects_file
    return create_redirect_store(resolve_virtual_path(redirects_file, settings.base_dir))


def get_notfound_log_repo(settings: Settings = Depends(get_settings)) -> SQLiteNotFoundLogRepo:
    return SQLiteNotFoundLogRepo(settings.db_path)


@lru_cache
def get_request_logger() -> BufferedRequestLogger:
    resolver = get_settings_resolver()
    repo = SQLiteNotFoundLogRepo(get_settings().db_path)
    repo.ensure_schema()
    return BufferedRequestLogger(
        sink=repo,
        buffer_size=resolver.buffer_size,
        threshold=resolver.threshold,
    )


# --- Component Services ---
@lru_cache
def get_not_found_handler() -> NotFoundHandler:
    """Process-wide interception engine."""
    return create_not_found_handler(
        settings=get_settings_resolver(),
        store=get_redirect_store(),
        describe_failure=describe_exception,
        miss_logger=get_request_logger(),
    )
