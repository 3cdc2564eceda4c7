from __future__ import annotations

from typing import Dict, List, Tuple

from core.models import Severity
from policy.risk_scoring import escalate

# (lower-case header name, warning when absent)
REQUIRED_HEADERS = [
    ("content-security-policy", "Missing Content Security Policy"),
    ("x-frame-options", "Missing X-Frame-Options (clickjacking protection)"),
    ("x-content-type-options", "Missing X-Content-Type-Options"),
    ("strict-transport-security", "Missing HSTS header"),
    ("x-xss-protection", "Missing XSS Protection header"),
]

DISCLOSURE_HEADERS = [
    ("server", "Server"),
    ("x-powered-by", "X-Powered-By"),
    ("x-aspnet-version", "X-AspNet-Version"),
    ("x-aspnetmvc-version", "X-AspNetMvc-Version"),
]

INSECURE_FRAME_OPTIONS = ("allowall", "allow-from *")


def _lower(headers: Dict[str, str]) -> Dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def analyze(headers: Dict[str, str]) -> Tuple[List[str], Severity]:
    """Security header policy: missing headers, insecure values, version disclosure."""
    headers = _lower(headers)
    warnings: List[str] = []
    severity = Severity.LOW

    for name, warning in REQUIRED_HEADERS:
        if name not in headers:
            warnings.append(warning)
            severity = escalate(severity, Severity.MEDIUM)

    xfo = headers.get("x-frame-options")
    if xfo is not None and xfo.strip().lower() in INSECURE_FRAME_OPTIONS:
        warnings.append(f"X-Frame-Options set to {xfo.strip().upper()} (insecure)")
        severity = escalate(severity, Severity.HIGH)

    csp = headers.get("content-security-policy")
    if csp and ("unsafe-inline" in csp or "unsafe-eval" in csp):
        warnings.append("Content Security Policy allows unsafe-inline/unsafe-eval")
        severity = escalate(severity, Severity.HIGH)

    # informational only
    for name, display in DISCLOSURE_HEADERS:
        value = headers.get(name)
        if value:
            warnings.append(f"Information disclosure via {display} header: {value}")

    return warnings, severity


def server_disclosure(headers: Dict[str, str]) -> Tuple[List[str], Severity]:
    server = _lower(headers).get("server")
    warnings: List[str] = []
    severity = Severity.LOW
    if not server:
        return warnings, severity

    server = server.lower()
    if "/" in server:
        warnings.append("Server version disclosed in headers")
    if "apache/2.2" in server:
        warnings.append("Outdated Apache version detected")
        severity = escalate(severity, Severity.MEDIUM)
    if "nginx/1.1." in server:
        warnings.append("Outdated Nginx version detected")
        severity = escalate(severity, Severity.MEDIUM)
    return warnings, severity
