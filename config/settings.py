"""
Settings Management

Pydantic-based settings schema with environment variable support.
Merges the gateway TOML file with environment overrides and provides
type-safe access.

@.architecture
Incoming: utils/config.py, Environment variables, config/gateway.toml, api/dependencies.py --- {Dict from load_toml_config, str from os.getenv, get_settings calls}
Processing: get_settings(), reload_settings(), _env_overrides(), field_validator() --- {4 jobs: configuration_loading, environment_variable_merging, schema_validation, caching}
Outgoing: api/dependencies.py, app.py, main.py, api/rest/endpoints/*.py --- {Settings Pydantic model with typed config sections}
"""

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from utils.config import load_config as load_toml_config


# =============================================================================
# Settings Schemas
# =============================================================================

class HubSettings(BaseModel):
    """Bridge connection settings."""
    bridge_ip: Optional[str] = None
    username: Optional[str] = None
    timeout_seconds: float = 10.0
    verify_tls: bool = False
    connect_retries: int = 2
    discovery_url: str = "https://discovery.meethue.com/"

    @field_validator('bridge_ip', 'username')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator('timeout_seconds')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    @property
    def configured(self) -> bool:
        """True when both credentials needed for hub calls are present."""
        return bool(self.bridge_ip and self.username)

    @property
    def missing(self) -> List[str]:
        """Names of the environment variables still unset."""
        missing = []
        if not self.bridge_ip:
            missing.append("HUE_BRIDGE_IP")
        if not self.username:
            missing.append("HUE_USERNAME")
        return missing


class ServerSettings(BaseModel):
    """HTTP server and CORS configuration."""
    bind_host: str = "0.0.0.0"
    bind_port: int = 3100
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = False
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])
    # Browser peers must be able to read the session header
    cors_expose_headers: List[str] = Field(default_factory=lambda: ["Mcp-Session-Id"])


class StreamSettings(BaseModel):
    """MCP streamable HTTP endpoint settings."""
    path: str = "/mcp"
    json_response: bool = False

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("stream path must start with '/'")
        return v


class MonitoringSettings(BaseModel):
    """Monitoring and logging configuration."""
    # None defers to the environment preset
    log_level: Optional[str] = None
    log_format: Optional[str] = None  # json|text
    metrics_enabled: bool = True

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v


class Settings(BaseModel):
    """
    Main application settings.

    Loads configuration from:
    1. TOML config file (config/gateway.toml)
    2. Environment variables
    3. Defaults defined in schemas

    Priority: Environment variables > TOML config > Defaults
    """

    app_name: str = "Hue Gateway"
    app_version: str = "1.0.0"
    environment: str = "development"  # development|production|test

    hub: HubSettings = Field(default_factory=HubSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    stream: StreamSettings = Field(default_factory=StreamSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = ['development', 'production', 'test']
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v


# =============================================================================
# Settings Loader
# =============================================================================

# (environment variable, section, field)
ENV_OVERRIDES = [
    ("HUE_BRIDGE_IP", "hub", "bridge_ip"),
    ("HUE_USERNAME", "hub", "username"),
    ("HUE_TIMEOUT_SECONDS", "hub", "timeout_seconds"),
    ("HUE_GATEWAY_HOST", "server", "bind_host"),
    ("PORT", "server", "bind_port"),
    ("STREAM_JSON_RESPONSE", "stream", "json_response"),
    ("MONITORING_LOG_LEVEL", "monitoring", "log_level"),
    ("MONITORING_LOG_FORMAT", "monitoring", "log_format"),
]


def _env_overrides(sections: Dict[str, Dict[str, Any]]) -> None:
    for env_name, section, field in ENV_OVERRIDES:
        value = os.getenv(env_name)
        if value is not None:
            sections.setdefault(section, {})[field] = value


@lru_cache()
def get_settings() -> Settings:
    """
    Load and return application settings (cached).

    HUE_GATEWAY_CONFIG points at an alternative TOML file.

    Returns:
        Settings: Complete application settings
    """
    toml_config = load_toml_config(os.getenv("HUE_GATEWAY_CONFIG"))

    sections: Dict[str, Dict[str, Any]] = {
        name: dict(toml_config.get(name, {}))
        for name in ("hub", "server", "stream", "monitoring")
    }
    _env_overrides(sections)

    return Settings(
        environment=os.getenv("HUE_GATEWAY_ENVIRONMENT", "development"),
        **sections,
    )


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Settings: Reloaded application settings
    """
    get_settings.cache_clear()
    return get_settings()


# =============================================================================
# Environment-specific Helpers
# =============================================================================

def is_development() -> bool:
    return get_settings().environment == "development"


def is_production() -> bool:
    return get_settings().environment == "production"
