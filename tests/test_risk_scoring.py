from core.models import (
    AuditResult,
    DatabaseProbeResult,
    ReconProbeResult,
    Severity,
    SystemProbeResult,
    Vulnerability,
    WebProbeResult,
)
from policy.risk_scoring import compute_risk, escalate, severity_counts


def _web(sev, warnings=("w",)):
    return WebProbeResult(url="http://h:80", host="h", port=80, accessible=True, severity=sev, warnings=list(warnings))


def test_escalate_never_downgrades():
    assert escalate(Severity.HIGH, Severity.MEDIUM) == Severity.HIGH
    assert escalate("Low", "critical") == Severity.CRITICAL


def test_one_critical_beats_five_mediums():
    audit = AuditResult(
        host="h",
        database_results=[DatabaseProbeResult(service="Redis", host="h", port=6379, accessible=True, severity=Severity.CRITICAL)],
        web_results=[_web(Severity.MEDIUM) for _ in range(5)],
    )
    assert compute_risk(audit) == Severity.CRITICAL
    assert severity_counts(audit) == {"Critical": 1, "High": 0, "Medium": 5, "Low": 0}


def test_misconfigurations_alone_force_medium():
    audit = AuditResult(host="h", misconfigurations=["a", "b", "c"])
    assert compute_risk(audit) == Severity.MEDIUM
    assert compute_risk(AuditResult(host="h", misconfigurations=["a", "b"])) == Severity.LOW


def test_empty_audit_is_low():
    assert compute_risk(AuditResult(host="h")) == Severity.LOW


def test_results_without_findings_do_not_count():
    audit = AuditResult(
        host="h",
        database_results=[DatabaseProbeResult(service="MySQL", host="h", port=3306, severity=Severity.CRITICAL)],
        web_results=[WebProbeResult(url="http://h:80", host="h", port=80, severity=Severity.HIGH)],
    )
    assert compute_risk(audit) == Severity.LOW


def test_vulnerabilities_and_local_results_count_recon_does_not():
    audit = AuditResult(
        host="h",
        vulnerabilities=[Vulnerability(cve="CVE-2013-2028", description="d", severity=Severity.HIGH, score=7.5)],
        system_results=[SystemProbeResult(check_type="x", severity=Severity.MEDIUM, warnings=["w"])],
        recon=ReconProbeResult(host="h", severity=Severity.CRITICAL, technologies=["Nginx"]),
    )
    assert compute_risk(audit) == Severity.HIGH
