"""
Reconnaissance: DNS resolution of the host and common subdomains,
HTTP header fetch on open web ports feeding the technology classifier,
and a coarse OS guess. Nothing here influences severity.
"""

import ipaddress
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from core.authz_scope import resolve_host
from core.config import settings
from core.models import ReconProbeResult
from pipeline.web_fingerprint import detect_technologies
from probers import http_probe, l4_tcp
from probers.web_discovery import Fetcher

log = logging.getLogger(__name__)

Resolver = Callable[[str], List[str]]

COMMON_SUBDOMAINS = [
    "www", "mail", "ftp", "admin", "api", "dev", "test", "staging",
    "blog", "shop", "support", "help", "docs", "cdn", "static",
]

# (port, os guess) probed in order; first open port wins
OS_HINT_PORTS: List[Tuple[int, str]] = [
    (3389, "Windows (estimated)"),
    (445, "Windows (estimated)"),
    (135, "Windows (estimated)"),
    (22, "Linux/Unix-like (estimated)"),
    (80, "Linux/Unix-like (estimated)"),
]


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def dns_recon(host: str, resolve: Optional[Resolver] = None, subdomains: Iterable[str] = COMMON_SUBDOMAINS) -> ReconProbeResult:
    resolve = resolve or resolve_host
    result = ReconProbeResult(host=host)
    result.ip_addresses = resolve(host)
    if _is_ip(host):
        return result
    for prefix in subdomains:
        fqdn = f"{prefix}.{host}"
        if resolve(fqdn):
            result.subdomains.append(fqdn)
    return result


def http_recon(
    host: str,
    port: int,
    use_ssl: bool,
    fetch: Optional[Fetcher] = None,
    timeout: Optional[float] = None,
) -> Tuple[Dict[str, str], str]:
    """Best-effort header and content fetch; failures return empty data."""
    fetch = fetch or http_probe.http_get
    try:
        meta, body = fetch(host, port, use_ssl, path="/", timeout=timeout or settings.recon_timeout_s)
    except Exception as exc:  # noqa: BLE001
        log.debug("recon fetch failed on %s:%s: %s", host, port, exc)
        return {}, ""
    return dict(meta.get("headers") or {}), body.decode(errors="ignore")


def os_fingerprint(host: str, dialer: Optional[l4_tcp.Dialer] = None, timeout: float = 1.0) -> str:
    """Placeholder guess from which well-known ports accept connections. Low confidence."""
    dialer = dialer or l4_tcp.tcp_connect
    for port, guess in OS_HINT_PORTS:
        if dialer(host, port, timeout):
            return guess
    return "Unknown"


def perform_reconnaissance(
    host: str,
    open_ports: Iterable[int],
    web_ports: Optional[Iterable[int]] = None,
    tls_ports: Optional[Iterable[int]] = None,
    resolve: Optional[Resolver] = None,
    fetch: Optional[Fetcher] = None,
    dialer: Optional[l4_tcp.Dialer] = None,
) -> ReconProbeResult:
    web_ports = set(web_ports if web_ports is not None else settings.recon_web_ports)
    tls_ports = set(tls_ports if tls_ports is not None else settings.tls_ports)
    result = dns_recon(host, resolve=resolve)
    result.os_fingerprint = os_fingerprint(host, dialer=dialer)

    technologies: List[str] = []
    for port in open_ports:
        if port not in web_ports:
            continue
        headers, content = http_recon(host, port, port in tls_ports, fetch=fetch)
        for k, v in headers.items():
            result.headers[f"Port{port}-{k}"] = v
        technologies.extend(detect_technologies(headers, content))

    result.technologies = list(dict.fromkeys(technologies))
    log.info(
        "recon for %s: %d addresses, %d subdomains, %d technologies",
        host, len(result.ip_addresses), len(result.subdomains), len(result.technologies),
    )
    return result
