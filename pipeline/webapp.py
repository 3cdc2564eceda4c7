"""
Web probe: one GET to the root path, then header policy, TLS and
common-vulnerability checks. An unreachable endpoint yields a result
with accessible=False and nothing else.
"""

import datetime as dt
import logging
from typing import Optional

from core.config import settings
from core.models import Severity, WebProbeResult
from pipeline import web_exposure, web_headers, web_tls
from policy.risk_scoring import escalate
from probers import http_probe
from probers.web_discovery import Fetcher

log = logging.getLogger(__name__)


def check_http_security(
    host: str,
    port: int,
    use_ssl: Optional[bool] = None,
    fetch: Optional[Fetcher] = None,
    timeout: Optional[float] = None,
    now: Optional[dt.datetime] = None,
    probe_paths: bool = True,
) -> WebProbeResult:
    fetch = fetch or http_probe.http_get
    if use_ssl is None:
        use_ssl = port in settings.tls_ports
    scheme = "https" if use_ssl else "http"
    result = WebProbeResult(url=f"{scheme}://{host}:{port}", host=host, port=port, service=scheme.upper())

    try:
        meta, _ = fetch(host, port, use_ssl, path="/", timeout=timeout or settings.http_timeout_s)
    except Exception as exc:  # noqa: BLE001
        log.debug("web probe could not reach %s: %s", result.url, exc)
        return result

    result.accessible = True
    result.headers = dict(meta.get("headers") or {})

    tls_meta = meta.get("tls")
    if use_ssl and tls_meta:
        result.tls_info = web_tls.analyze(tls_meta, now=now)
        result.warnings.extend(result.tls_info.warnings)

    header_warnings, header_severity = web_headers.analyze(result.headers)
    result.warnings.extend(header_warnings)
    result.severity = escalate(result.severity, header_severity)

    server_warnings, server_severity = web_headers.server_disclosure(result.headers)
    result.warnings.extend(server_warnings)
    result.severity = escalate(result.severity, server_severity)

    if probe_paths:
        vuln_warnings = web_exposure.analyze(host, port, use_ssl, fetch=fetch)
        if vuln_warnings:
            result.warnings.extend(vuln_warnings)
            result.severity = escalate(result.severity, Severity.HIGH)

    return result
