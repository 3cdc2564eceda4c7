"""
Pydantic-based configuration for the scan and probe pipeline.

Every knob is exposed through HOSTAUDIT_* environment variables (or a
.env file) so the CLI, the API and tests share one source of truth.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=False, env_file=".env", env_prefix="HOSTAUDIT_")

    # Port scanning
    connect_timeout_s: float = Field(2.0, description="per-port TCP connect timeout")
    scan_concurrency: int = Field(100, description="max simultaneous connect attempts")
    scan_deadline_s: Optional[float] = Field(None, description="optional wall-clock limit for a scan")

    # Probe timeouts
    banner_timeout_s: float = Field(3.0)
    db_timeout_s: float = Field(3.0)
    http_timeout_s: float = Field(5.0)
    recon_timeout_s: float = Field(5.0)

    # Port profiles
    web_ports: List[int] = Field(default_factory=lambda: [80, 443, 8080, 8443, 8000, 8888, 9090])
    tls_ports: List[int] = Field(default_factory=lambda: [443, 8443])
    recon_web_ports: List[int] = Field(default_factory=lambda: [80, 8080, 443, 8443])

    # Local introspection
    local_checks: bool = Field(False, description="run local system checks alongside remote audit")
    system_scan_dirs: List[str] = Field(
        default_factory=lambda: ["/bin", "/sbin", "/usr/bin", "/usr/sbin", "/usr/local/bin"]
    )

    # Target scope
    allowlist_cidrs: List[str] = Field(default_factory=list)
    allowlist_domains: List[str] = Field(default_factory=list)
    require_allowlist: bool = Field(False)

    log_level: str = Field("WARNING")

    user_agent: str = Field("HostAudit/0.1 (host security assessment)")

    @field_validator("connect_timeout_s", "banner_timeout_s", "db_timeout_s", "http_timeout_s", "recon_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("scan_deadline_s")
    @classmethod
    def validate_deadline(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("scan deadline must be positive")
        return v

    @field_validator("scan_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("scan_concurrency must be >= 1")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
