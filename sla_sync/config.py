from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_TIMEZONE = "Europe/Istanbul"

TOKEN_ENV = "NOTION_TOKEN"
DATABASE_ENV = "DATABASE_ID"
TIMEZONE_ENV = "TZ"


class ConfigError(ValueError):
    """Raised when required settings are missing or invalid."""


class NotionConfig(BaseModel):
    token: str = Field(..., min_length=1, description="Notion integration token")
    database_id: str = Field(..., min_length=1, description="ID of the database to synchronize")
    base_url: str = Field(
        "https://api.notion.com/v1",
        description="Base URL of the Notion REST API",
    )
    notion_version: str = Field(
        "2022-06-28",
        description="Value sent in the Notion-Version header",
    )
    page_size: int = Field(
        100,
        gt=0,
        le=100,
        description="Number of pages requested per query call",
    )
    request_delay_seconds: float = Field(
        0.15,
        ge=0.0,
        description="Pause between consecutive query calls",
    )
    timeout: float | None = Field(
        None,
        gt=0,
        description="Optional request timeout in seconds; httpx default when omitted",
    )
    exclude_done_in_query: bool = Field(
        False,
        description="Ask Notion to filter out pages whose status is already done",
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class PropertiesConfig(BaseModel):
    status: str = Field("Durum", description="Name of the status property")
    due: str = Field("Bitiş", description="Name of the date property holding the due date")
    sla: str = Field("SLA", description="Name of the select property that stores the SLA label")


class LabelsConfig(BaseModel):
    on_time: str = Field("On Time", min_length=1)
    at_risk: str = Field("At Risk", min_length=1)
    breached: str = Field("Breached", min_length=1)


class AppConfig(BaseModel):
    notion: NotionConfig
    properties: PropertiesConfig = Field(default_factory=PropertiesConfig)
    labels: LabelsConfig = Field(default_factory=LabelsConfig)
    done_status: str = Field("Bitti", description="Status value that ends SLA tracking")
    timezone: str = Field(DEFAULT_TIMEZONE, description="IANA zone used for day boundaries")
    at_risk_hours: float = Field(
        48,
        ge=0,
        description="Pages due within this many hours are marked at risk",
    )
    write_delay_seconds: float = Field(
        0.15,
        ge=0.0,
        description="Pause after each page update",
    )

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone '{value}'") from exc
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def _read_yaml(path: Path) -> dict:
    if not path.exists():
        msg = f"Configuration file not found: {path}"
        raise ConfigError(msg)

    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Configuration file must contain a mapping: {path}"
        raise ConfigError(msg)
    return data


def load_config(
    path: str | Path | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Build the application configuration from an optional YAML file and the environment.

    Environment variables win over file values. ``NOTION_TOKEN`` and ``DATABASE_ID`` are
    required; ``TZ`` overrides the time zone when set.
    """

    env = os.environ if environ is None else environ
    data: dict = {}
    if path is not None:
        data = _read_yaml(Path(path).expanduser().resolve())

    notion_data = dict(data.get("notion") or {})
    token = env.get(TOKEN_ENV) or notion_data.get("token")
    database_id = env.get(DATABASE_ENV) or notion_data.get("database_id")
    if not token:
        raise ConfigError(f"{TOKEN_ENV} missing")
    if not database_id:
        raise ConfigError(f"{DATABASE_ENV} missing")
    notion_data["token"] = token
    notion_data["database_id"] = database_id
    data["notion"] = notion_data

    timezone = env.get(TIMEZONE_ENV)
    if timezone:
        data["timezone"] = timezone

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
