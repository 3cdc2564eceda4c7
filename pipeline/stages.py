"""
Audit stages (single process):
Stage-1: port discovery (bounded-concurrency connect scan)
Stage-2: service identification + version/misconfiguration checks
Stage-3: per-port protocol probes selected by port number
Stage-4: reconnaissance (optional)
Stage-5: local system checks (explicit opt-in only)

Every probe call goes through _isolated(): an unexpected fault is logged
and replaced by the fallback so one probe never aborts the audit.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from core.config import Settings
from core.models import (
    DatabaseProbeResult,
    ExploitProbeResult,
    PortScanResult,
    ReconProbeResult,
    ScanTarget,
    ServiceInfo,
    Vulnerability,
    WebProbeResult,
)
from pipeline import database, exploits, local_system, recon, service_checks, webapp
from policy.policy_engine import PROBE_DATABASE, PROBE_EXPLOIT, PROBE_WEB, PolicyEngine
from probers import banner, l4_tcp

log = logging.getLogger(__name__)

T = TypeVar("T")


def _isolated(name: str, fn: Callable[..., T], fallback: Callable[[], T], *args: Any, **kwargs: Any) -> T:
    try:
        return fn(*args, **kwargs)
    except Exception:  # noqa: BLE001
        log.exception("probe %s failed unexpectedly; recording empty result", name)
        return fallback()


def port_discovery(target: ScanTarget, settings: Settings, dialer: Optional[l4_tcp.Dialer] = None) -> PortScanResult:
    return l4_tcp.scan_ports(
        target.host,
        target.ports,
        timeout=target.timeout_s,
        max_concurrency=settings.scan_concurrency,
        dialer=dialer,
        deadline_s=settings.scan_deadline_s,
    )


def identify_services(host: str, open_ports: Iterable[int], settings: Settings) -> List[ServiceInfo]:
    services: List[ServiceInfo] = []
    for port in open_ports:
        services.append(
            _isolated(
                "service_id",
                banner.identify_service,
                lambda port=port: ServiceInfo(port=port, service=banner.service_name(port)),
                host,
                port,
                timeout=settings.banner_timeout_s,
            )
        )
    return services


def service_findings(services: Iterable[ServiceInfo]) -> Dict[str, List]:
    services = list(services)
    vulns: List[Vulnerability] = []
    for svc in services:
        vulns.extend(service_checks.vulnerability_checks(svc))
    return {
        "vulnerabilities": vulns,
        "misconfigurations": service_checks.check_basic_misconfigurations(services),
    }


def probe_port(host: str, port: int, policy: PolicyEngine, skip_exploits: bool = False) -> Dict[str, List]:
    """Run every probe applicable to this port; buckets are keyed by result variant."""
    out: Dict[str, List] = {"database_results": [], "web_results": [], "exploit_results": []}
    s = policy.settings

    for probe in policy.probes_for_port(port):
        if probe == PROBE_DATABASE:
            family = policy.database_family(port)
            res = _isolated(
                f"database:{port}",
                database.check_database,
                lambda: DatabaseProbeResult(service=family, host=host, port=port),
                host,
                port,
                timeout=s.db_timeout_s,
            )
            if res is not None:
                out["database_results"].append(res)

        elif probe == PROBE_WEB:
            use_ssl = policy.use_tls(port)
            scheme = "https" if use_ssl else "http"
            res = _isolated(
                f"web:{port}",
                webapp.check_http_security,
                lambda: WebProbeResult(url=f"{scheme}://{host}:{port}", host=host, port=port, service=scheme.upper()),
                host,
                port,
                use_ssl=use_ssl,
                timeout=s.http_timeout_s,
            )
            out["web_results"].append(res)

        elif probe == PROBE_EXPLOIT and not skip_exploits:
            name = policy.exploit_check(port)
            out["exploit_results"].extend(
                _isolated(
                    f"exploit:{port}",
                    exploits.run_exploit_checks,
                    lambda: [ExploitProbeResult(exploit_name=name, service=banner.service_name(port), host=host, port=port)],
                    host,
                    port,
                    timeout=s.banner_timeout_s,
                )
            )
    return out


def probe_ports(host: str, open_ports: Iterable[int], policy: PolicyEngine, skip_exploits: bool = False) -> Dict[str, List]:
    merged: Dict[str, List] = {"database_results": [], "web_results": [], "exploit_results": []}
    for port in open_ports:
        for key, results in probe_port(host, port, policy, skip_exploits=skip_exploits).items():
            merged[key].extend(results)
    return merged


def reconnaissance(host: str, open_ports: Iterable[int], policy: PolicyEngine) -> ReconProbeResult:
    return _isolated(
        "recon",
        recon.perform_reconnaissance,
        lambda: ReconProbeResult(host=host),
        host,
        list(open_ports),
        web_ports=policy.recon_web_ports,
        tls_ports=policy.tls_ports,
    )


def local_checks(settings: Settings) -> List:
    return _isolated("local_system", local_system.run_local_system_checks, list, settings.system_scan_dirs)
