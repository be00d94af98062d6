"""Configuration helpers for the GovServices search service."""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
]


class GovServicesSettings(BaseSettings):
    """Environment-driven configuration."""

    # Orchestrator
    cache_enabled: bool = Field(default=True)
    cache_ttl_ms: int = Field(default=900_000, ge=0)  # 15 minutes
    max_concurrent_requests: int = Field(default=5)
    default_language: Literal["en", "ar"] = Field(default="en")
    classification_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    batch_timeout_seconds: float = Field(default=60.0, gt=0)

    # Content acquisition
    request_delay_ms: int = Field(default=2000, ge=0)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    user_agents: List[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    proxy_servers: List[str] = Field(
        default_factory=list,
        description="Egress proxies rotated per request; empty means direct",
    )
    respect_robots_txt: bool = Field(default=True)

    # Catalog seed (JSON array of services); bundled samples when unset
    catalog_file: Optional[str] = Field(default=None)

    # Response providers tried in order by the chat layer
    response_providers: List[str] = Field(default_factory=lambda: ["catalog"])

    # HTTP API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8001)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GOVSERVICES_",
        extra="ignore",
    )

    @field_validator("max_concurrent_requests")
    @classmethod
    def _positive_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @field_validator("user_agents")
    @classmethod
    def _non_empty_agents(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one user agent is required")
        return value

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_ms / 1000.0

    @property
    def request_delay_seconds(self) -> float:
        return self.request_delay_ms / 1000.0


@lru_cache()
def get_settings() -> GovServicesSettings:
    """Return cached application settings."""

    return GovServicesSettings()
