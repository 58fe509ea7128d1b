"""
Redirects component models.

Records are authored elsewhere; the interceptor only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RedirectState(int, Enum):
    """Lifecycle state of a stored redirect. Only SAVED is actionable."""

    SAVED = 0
    DELETED = 1
    NEW = 2


class RedirectOrigin(str, Enum):
    STATIC = "static"
    PROVIDER = "provider"


@dataclass(frozen=True)
class RedirectRecord:
    """Mapping from an old URL to a new one."""

    old_url: str
    new_url: str
    state: RedirectState = RedirectState.SAVED
    origin: RedirectOrigin = RedirectOrigin.STATIC

    @property
    def is_saved(self) -> bool:
        return self.state is RedirectState.SAVED


# --- Redirects file schema ---


class RedirectEntry(BaseModel):
    """One entry of the redirects YAML file."""

    old: str = Field(..., min_length=1)
    new: str = Field(..., min_length=1)
    state: RedirectState = RedirectState.SAVED

    model_config = ConfigDict(extra="ignore")

    @field_validator("state", mode="before")
    @classmethod
    def _parse_state(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return RedirectState[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown redirect state '{value}'") from None
        return value

    def to_record(self) -> RedirectRecord:
        return RedirectRecord(old_url=self.old, new_url=self.new, state=self.state)


class RedirectsFile(BaseModel):
    redirects: list[RedirectEntry] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
