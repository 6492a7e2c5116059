"""Configuration management for the Copilot audit ingestion worker."""

from __future__ import annotations

import base64
import binascii
import json
import os
from contextvars import ContextVar
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

_USER_CONFIG_PATHS = [
    Path("~/.config/copilot-audit/config.yml").expanduser(),
    Path("/config/copilot-audit.yml"),
]
_USER_SECRETS_PATHS = [
    Path("~/.config/copilot-audit/secrets.yml").expanduser(),
    Path("/config/copilot-audit-secrets.yml"),
]
_EXPLICIT_CONFIG_PATH: ContextVar[Path | None] = ContextVar(
    "copilot_audit_explicit_config_path", default=None
)

STAGE_POLICIES = {"fatal", "degrade"}


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk, returning an empty mapping if missing."""
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def _merge_mappings(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated by ``override``, recursing into nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge_mappings(current, value)
        else:
            merged[key] = value
    return merged


def _yaml_settings_source(paths: list[Path]):
    """Create a settings source that merges a list of YAML files in order.

    Later files win key by key, so a file may override one field of a section
    without restating the rest of it.
    """

    def source() -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for path in paths:
            merged = _merge_mappings(merged, _load_yaml(path))
        return merged

    return source


def _explicit_yaml_source():
    """Create a settings source for the file passed to ``load_settings``."""

    def source() -> dict[str, Any]:
        path = _EXPLICIT_CONFIG_PATH.get()
        if path is None:
            return {}
        if not path.exists():
            raise ValueError(f"Config file not found: {path}")
        return _load_yaml(path)

    return source


def _set_nested_value(target: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted-path value on a nested mapping, creating containers."""
    parts = path.split(".")
    cursor = target
    for key in parts[:-1]:
        node = cursor.get(key)
        if not isinstance(node, dict):
            node = {}
            cursor[key] = node
        cursor = node
    cursor[parts[-1]] = value


def _parse_env_value(raw: str, kind: str) -> Any:
    """Parse an environment value into the requested primitive type."""
    if kind == "int":
        return int(raw)
    if kind == "bool":
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if kind == "json":
        return json.loads(raw)
    return raw


def _env_settings_source():
    """Map the flat application-setting names used by existing deployments."""
    mapping = {
        "TENANT_ID": ("identity.tenant_id", "str"),
        "CLIENT_ID": ("identity.client_id", "str"),
        "CLIENT_SECRET": ("identity.client_secret", "str"),
        "WORKSPACE_ID": ("workspace.workspace_id", "str"),
        "WORKSPACE_KEY": ("workspace.shared_key", "str"),
        "CUSTOM_TABLE_NAME": ("workspace.table_name", "str"),
        "LOOKBACK_HOURS": ("management.lookback_hours", "int"),
        "OFFICE365_MANAGEMENT_API_BASE_URL": ("management.base_url", "str"),
        "LOG_LEVEL": ("logging.level", "str"),
    }

    def source() -> dict[str, Any]:
        data: dict[str, Any] = {}
        for env_key, (path, kind) in mapping.items():
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            _set_nested_value(data, path, _parse_env_value(raw, kind))
        return data

    return source


class IdentityConfig(BaseModel):
    """Client-credential settings for the identity provider."""

    tenant_id: str
    client_id: str
    client_secret: str
    authority_host: str = "https://login.microsoftonline.com"
    scope: str = "https://manage.office.com/.default"
    expiry_margin_seconds: int = 300

    @field_validator("expiry_margin_seconds")
    @classmethod
    def validate_expiry_margin(cls, value: int) -> int:
        """Ensure the safety margin is non-negative."""
        if value < 0:
            raise ValueError("identity.expiry_margin_seconds must be >= 0.")
        return value

    @property
    def token_url(self) -> str:
        """Return the OAuth 2.0 v2 token endpoint for the tenant."""
        return f"{self.authority_host.rstrip('/')}/{self.tenant_id}/oauth2/v2.0/token"


class ManagementConfig(BaseModel):
    """Office 365 Management Activity API settings."""

    base_url: str = "https://manage.office.com/api/v1.0"
    content_type: str = "Audit.General"
    lookback_hours: int = 1
    max_pages: int = 100

    @field_validator("lookback_hours")
    @classmethod
    def validate_lookback_hours(cls, value: int) -> int:
        """The content listing endpoint rejects windows wider than 24 hours."""
        if not 1 <= value <= 24:
            raise ValueError("management.lookback_hours must be between 1 and 24.")
        return value

    @field_validator("max_pages")
    @classmethod
    def validate_max_pages(cls, value: int) -> int:
        """Ensure at least one listing page is read."""
        if value < 1:
            raise ValueError("management.max_pages must be >= 1.")
        return value


class WorkspaceConfig(BaseModel):
    """Log Analytics workspace and HTTP Data Collector settings."""

    workspace_id: str
    shared_key: str
    table_name: str = "CopilotAuditLogs_CL"
    endpoint_suffix: str = "ods.opinsights.azure.com"
    api_version: str = "2016-04-01"
    time_generated_field: str | None = None

    @field_validator("shared_key")
    @classmethod
    def validate_shared_key(cls, value: str) -> str:
        """Ensure the shared key is valid base64."""
        try:
            base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("workspace.shared_key must be base64-encoded.") from exc
        return value

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, value: str) -> str:
        """Ensure the destination table name is not blank."""
        if not value.strip():
            raise ValueError("workspace.table_name must not be blank.")
        return value.strip()


class HttpConfig(BaseModel):
    """Outbound HTTP timeouts."""

    timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0


class PipelineConfig(BaseModel):
    """Failure policy for the stages that may degrade instead of aborting."""

    subscription_policy: str = "degrade"
    listing_policy: str = "degrade"
    fetch_policy: str = "degrade"

    @field_validator("subscription_policy", "listing_policy", "fetch_policy")
    @classmethod
    def validate_policy(cls, value: str) -> str:
        """Ensure the policy is supported."""
        normalized = value.strip().lower()
        if normalized not in STAGE_POLICIES:
            raise ValueError("pipeline stage policies must be fatal or degrade.")
        return normalized


class LoggingConfig(BaseModel):
    """Structured logging configuration."""

    level: str = "INFO"
    json_output: bool = True
    service: str = "copilot-audit"
    environment: str | None = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Ensure the log level is a standard level name."""
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("logging.level must be a standard level name.")
        return normalized


class Settings(BaseSettings):
    """Application settings loaded from environment variables and YAML."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_prefix="COPILOT_AUDIT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Layer settings sources in descending order of precedence."""
        return (
            init_settings,
            env_settings,
            _env_settings_source(),
            _explicit_yaml_source(),
            _yaml_settings_source(_USER_SECRETS_PATHS),
            _yaml_settings_source(_USER_CONFIG_PATHS),
        )

    identity: IdentityConfig
    workspace: WorkspaceConfig
    management: ManagementConfig = Field(default_factory=ManagementConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: str | Path | None = None, **overrides: Any) -> Settings:
    """Build settings, reading ``config_path`` ahead of the default YAML files.

    Raises:
        ConfigurationError: Required settings are missing or invalid.
    """
    path = Path(config_path).expanduser() if config_path is not None else None
    token = _EXPLICIT_CONFIG_PATH.set(path)
    try:
        return Settings(**overrides)
    except (ValidationError, ValueError) as exc:
        raise ConfigurationError(str(exc)) from exc
    finally:
        _EXPLICIT_CONFIG_PATH.reset(token)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings, loading them on first use."""
    return load_settings()
