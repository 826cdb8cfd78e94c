"""
Configuration management for the SEE result relay using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

DEFAULT_GRADESHEET_URL = "https://see.ntc.net.np/results/gradesheet"
DEFAULT_SEARCH_URL = "https://results-api.ekantipur.com/search"

# --- Nested Configuration Models ---


class ServerConfig(BaseModel):
    """HTTP listener configuration."""

    host: str = Field(default="0.0.0.0", description="Interface to bind.")
    port: int = Field(default=3000, ge=1, le=65535, description="Port to listen on.")
    cors_origins: str = Field(default="*", description="Comma separated list of allowed CORS origins.")
    trust_proxy: bool = Field(default=False, description="Use the first X-Forwarded-For hop as client IP.")
    max_body_bytes: int = Field(default=10 * 1024, gt=0, description="Maximum accepted request body size.")
    shutdown_grace_seconds: float = Field(
        default=10.0, gt=0, description="Time allowed for in-flight requests before a forced exit."
    )

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class UpstreamConfig(BaseModel):
    """Outbound results site configuration."""

    gradesheet_url: str = Field(default=DEFAULT_GRADESHEET_URL, description="Gradesheet form endpoint.")
    search_url: str = Field(default=DEFAULT_SEARCH_URL, description="Secondary symbol-only search endpoint.")
    user_agent: str = Field(default="Mozilla/5.0", description="User-Agent sent upstream.")
    request_timeout: float = Field(default=5.0, gt=0, description="Upstream request timeout in seconds.")
    verify_tls: bool = Field(default=True, description="Verify upstream TLS certificates.")

    @field_validator("gradesheet_url", "search_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("upstream URLs must use http or https")
        return v


class RateLimitConfig(BaseModel):
    """Per client IP request budget."""

    enabled: bool = True
    max_requests: int = Field(default=60, gt=0, description="Requests allowed per window.")
    window_seconds: int = Field(default=10 * 60, gt=0, description="Window length in seconds.")
    exempt_paths: List[str] = Field(default_factory=lambda: ["/health", "/metrics"])


class MonitoringConfig(BaseModel):
    """Configuration for logging."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level."
    )
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = Field(default=False, description="Render JSON even when logging to the console.")

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None or v == "":
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "see-result-api"
    version: str = "1.0.0"
    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="SEE_RESULT_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls()
        return cls(**yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "config.yaml", current_dir / "config.yml"):
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load configuration from an explicit file, a discovered file, or the environment."""
    config_path = path or find_config_file()
    if config_path:
        log.info("Loading configuration from: %s", config_path)
        return Config.from_yaml(config_path)
    return Config()
