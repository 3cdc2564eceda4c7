"""
Single-node orchestrator: inline execution of the audit stages with no
persistence. Remote audit and local introspection are separate entry
points; local results only join a remote audit when explicitly asked for.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from core.authz_scope import is_authorized_target
from core.config import Settings, get_settings
from core.models import AuditResult, PortScanResult, ScanTarget, SystemProbeResult
from core.ports import parse_ports
from pipeline import stages
from policy.policy_engine import PolicyEngine
from policy.risk_scoring import compute_risk, severity_counts
from probers import l4_tcp

log = logging.getLogger(__name__)


class Orchestrator:
    def __init__(self, settings: Optional[Settings] = None, dialer: Optional[l4_tcp.Dialer] = None) -> None:
        self.settings = settings or get_settings()
        self.policy = PolicyEngine(self.settings)
        self.dialer = dialer

    def _ensure_authorized(self, target: str) -> None:
        if not is_authorized_target(target, self.settings):
            raise ValueError(f"target {target} not in allowlist or allowlist missing")

    def build_target(self, host: str, ports: Any = None, timeout_s: Optional[float] = None) -> ScanTarget:
        """Accepts a port spec string, an iterable of ints, or None for the common list."""
        if ports is None or isinstance(ports, str):
            port_list = parse_ports(ports or "")
        else:
            port_list = list(ports)
        return ScanTarget(host=host, ports=tuple(port_list), timeout_s=timeout_s or self.settings.connect_timeout_s)

    def scan(self, target: ScanTarget) -> PortScanResult:
        self._ensure_authorized(target.host)
        return stages.port_discovery(target, self.settings, dialer=self.dialer)

    def audit(
        self,
        host: str,
        open_ports: Iterable[int],
        include_local: Optional[bool] = None,
        skip_recon: bool = False,
        skip_exploits: bool = False,
    ) -> AuditResult:
        """Remote audit of the already-discovered open ports of one host."""
        self._ensure_authorized(host)
        open_ports = sorted(set(open_ports))
        if include_local is None:
            include_local = self.settings.local_checks
        log.info("auditing %s (%d open ports)", host, len(open_ports))

        services = stages.identify_services(host, open_ports, self.settings)
        findings = stages.service_findings(services)
        probes = stages.probe_ports(host, open_ports, self.policy, skip_exploits=skip_exploits)
        recon_result = None if skip_recon else stages.reconnaissance(host, open_ports, self.policy)
        system_results = self.audit_local_system() if include_local else []

        draft = AuditResult(
            host=host,
            services=services,
            vulnerabilities=findings["vulnerabilities"],
            misconfigurations=findings["misconfigurations"],
            database_results=probes["database_results"],
            web_results=probes["web_results"],
            exploit_results=probes["exploit_results"],
            system_results=system_results,
            recon=recon_result,
        )
        result = draft.model_copy(update={"severity": compute_risk(draft)})
        log.info("audit of %s complete: risk %s", host, result.severity.value)
        return result

    def audit_local_system(self) -> List[SystemProbeResult]:
        """Introspect the machine running the audit; never describes the remote target."""
        log.info("running local system checks")
        return stages.local_checks(self.settings)

    def run(
        self,
        host: str,
        ports: Any = None,
        timeout_s: Optional[float] = None,
        include_local: Optional[bool] = None,
        skip_recon: bool = False,
        skip_exploits: bool = False,
    ) -> Dict[str, Any]:
        """Full pipeline: scan, audit, summary."""
        target = self.build_target(host, ports, timeout_s)
        scan_result = self.scan(target)
        audit_result = self.audit(
            host,
            scan_result.open_ports,
            include_local=include_local,
            skip_recon=skip_recon,
            skip_exploits=skip_exploits,
        )
        return {
            "scan": scan_result.model_dump(mode="json"),
            "audit": audit_result.model_dump(mode="json"),
            "summary": self._build_summary(scan_result, audit_result),
        }

    @staticmethod
    def _build_summary(scan_result: PortScanResult, audit: AuditResult) -> Dict[str, Any]:
        recon = audit.recon
        return {
            "total_ports_scanned": len(scan_result.results),
            "open_ports": len(scan_result.open_ports),
            "services_found": len(audit.services),
            "vulnerabilities_found": len(audit.vulnerabilities),
            "misconfigurations_found": len(audit.misconfigurations),
            "exploitable_services": sum(1 for e in audit.exploit_results if e.success),
            "subdomains_found": len(recon.subdomains) if recon else 0,
            "technologies_found": len(recon.technologies) if recon else 0,
            "database_issues": sum(1 for d in audit.database_results if d.accessible),
            "webapp_issues": sum(1 for w in audit.web_results if w.warnings),
            "system_issues": sum(1 for s in audit.system_results if s.warnings),
            "counts_by_severity": severity_counts(audit),
            "risk_level": audit.severity.value,
        }


def run_single(host: str, ports: Any = None) -> Dict[str, Any]:
    orch = Orchestrator()
    return orch.run(host, ports)
