from __future__ import annotations

from typing import Iterable, List

from core.models import ServiceInfo, Severity, Vulnerability

DATABASE_SERVICES = ("MySQL", "PostgreSQL", "MongoDB", "Redis")

# (lower-case banner marker, record)
KNOWN_VULNERABLE_VERSIONS = [
    (
        "apache/2.2",
        Vulnerability(
            cve="CVE-2017-15715",
            description="Apache HTTP Server 2.2.x vulnerability - Expression injection in mod_rewrite",
            severity=Severity.HIGH,
            score=8.1,
        ),
    ),
    (
        "nginx/1.1.",
        Vulnerability(
            cve="CVE-2013-2028",
            description="Nginx 1.1.x buffer overflow vulnerability",
            severity=Severity.HIGH,
            score=7.5,
        ),
    ),
]


def check_basic_misconfigurations(services: Iterable[ServiceInfo]) -> List[str]:
    """Advisory strings keyed on the canonical service name."""
    misconfigs: List[str] = []
    for svc in services:
        if svc.service == "FTP":
            misconfigs.append("FTP service detected - consider using SFTP instead")
        elif svc.service == "Telnet":
            misconfigs.append("Telnet service detected - unencrypted protocol, use SSH instead")
        elif svc.service == "HTTP" and svc.port == 80:
            misconfigs.append("HTTP service on port 80 - consider redirecting to HTTPS")
        elif svc.service == "SSH":
            misconfigs.append("SSH service detected - ensure key-based authentication is enabled")
        elif svc.service in DATABASE_SERVICES:
            misconfigs.append(f"{svc.service} database detected - ensure proper authentication and access controls")
    return misconfigs


def vulnerability_checks(service: ServiceInfo) -> List[Vulnerability]:
    text = service.label.lower()
    return [vuln.model_copy() for marker, vuln in KNOWN_VULNERABLE_VERSIONS if marker in text]
