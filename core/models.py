"""
Shared data models for the audit pipeline.
Flow: ScanTarget -> PortScanResult -> ServiceInfo + probe results -> AuditResult.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.LOW: 0, Severity.MEDIUM: 1, Severity.HIGH: 2, Severity.CRITICAL: 3}


class ScanTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    ports: Tuple[int, ...]
    timeout_s: float = 2.0

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target host is required")
        return v

    @field_validator("ports")
    @classmethod
    def validate_ports(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if not v:
            raise ValueError("at least one port is required")
        seen = []
        for port in v:
            if port < 1 or port > 65535:
                raise ValueError(f"Invalid port: {port}")
            if port not in seen:
                seen.append(port)
        return tuple(seen)

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class PortScanResult(BaseModel):
    host: str
    results: Dict[int, bool] = Field(default_factory=dict)
    open_ports: List[int] = Field(default_factory=list)


class ServiceInfo(BaseModel):
    port: int
    service: str
    version: Optional[str] = None

    @computed_field
    @property
    def label(self) -> str:
        if self.version:
            return f"{self.service} ({self.version})"
        return self.service


class Vulnerability(BaseModel):
    cve: str
    description: str
    severity: Severity
    score: float


class ProbeResult(BaseModel):
    """Common shape of every probe variant: identity, severity and ordered warnings."""

    kind: str
    service: str
    severity: Severity = Severity.LOW
    warnings: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def has_finding(self) -> bool:
        return bool(self.warnings)


class DatabaseProbeResult(ProbeResult):
    kind: Literal["database"] = "database"
    host: str
    port: int
    accessible: bool = False
    credentials: Optional[str] = None

    @computed_field
    @property
    def has_finding(self) -> bool:
        return self.accessible


class CertificateSummary(BaseModel):
    subject_cn: Optional[str] = None
    issuer_cn: Optional[str] = None
    not_after: Optional[dt.datetime] = None


class TLSInfo(BaseModel):
    version: str = "Unknown"
    cipher_suite: Optional[str] = None
    certificate: Optional[CertificateSummary] = None
    warnings: List[str] = Field(default_factory=list)


class WebProbeResult(ProbeResult):
    kind: Literal["web"] = "web"
    service: str = "HTTP"
    url: str
    host: str
    port: int
    accessible: bool = False
    headers: Dict[str, str] = Field(default_factory=dict)
    tls_info: Optional[TLSInfo] = None

    @computed_field
    @property
    def has_finding(self) -> bool:
        return self.accessible and bool(self.warnings)


class SystemProbeResult(ProbeResult):
    kind: Literal["system"] = "system"
    service: str = "localhost"
    check_type: str
    scope: Literal["local"] = "local"


class ReconProbeResult(ProbeResult):
    kind: Literal["recon"] = "recon"
    service: str = "recon"
    host: str
    ip_addresses: List[str] = Field(default_factory=list)
    subdomains: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)
    headers: Dict[str, str] = Field(default_factory=dict)
    os_fingerprint: str = "Unknown"

    @computed_field
    @property
    def has_finding(self) -> bool:
        return bool(self.subdomains or self.technologies)


class ExploitProbeResult(ProbeResult):
    kind: Literal["exploit"] = "exploit"
    exploit_name: str
    host: str
    port: int
    success: bool = False
    description: str = ""

    @computed_field
    @property
    def has_finding(self) -> bool:
        return self.success


class AuditResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    services: List[ServiceInfo] = Field(default_factory=list)
    vulnerabilities: List[Vulnerability] = Field(default_factory=list)
    misconfigurations: List[str] = Field(default_factory=list)
    database_results: List[DatabaseProbeResult] = Field(default_factory=list)
    web_results: List[WebProbeResult] = Field(default_factory=list)
    system_results: List[SystemProbeResult] = Field(default_factory=list)
    exploit_results: List[ExploitProbeResult] = Field(default_factory=list)
    recon: Optional[ReconProbeResult] = None
    severity: Severity = Severity.LOW
    timestamp: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
