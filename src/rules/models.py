from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NotFoundRules(BaseModel):
    """
    Raw `notfound:` section of rules.yaml.

    Values are kept as strings; the settings resolver parses them and
    falls back to defaults, so a bad value never fails the whole file.
    """

    handler_mode: str | None = None
    logging: str | None = None
    file_not_found_page: str | None = None
    redirects_file: str | None = None
    buffer_size: str | None = None
    threshold: str | None = None
    ignored_resource_extensions: str | None = None
    fallback_to_host_error_manager: str | None = None
    case_insensitive_extensions: str | None = None
    site_url: str | None = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        # YAML 1.1 reads bare On/Off/yes/no as booleans
        if isinstance(value, bool):
            return "On" if value else "Off"
        if isinstance(value, list | tuple):
            return ",".join(str(v) for v in value)
        return str(value)

    def as_mapping(self) -> dict[str, str]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class Rules(BaseModel):
    notfound: NotFoundRules = Field(default_factory=NotFoundRules)

    model_config = ConfigDict(extra="ignore")
