"""
Risk aggregation: deterministic overall severity from heterogeneous
probe results. Precedence is Critical > High > Medium > Low.
"""

from typing import Dict, Iterable, Iterator, Union

from core.models import AuditResult, Severity

MISCONFIG_MEDIUM_THRESHOLD = 2

SeverityLike = Union[Severity, str]


def as_severity(value: SeverityLike) -> Severity:
    if isinstance(value, Severity):
        return value
    return Severity(str(value).title())


def escalate(current: SeverityLike, candidate: SeverityLike) -> Severity:
    """Return whichever severity has the higher precedence."""
    current, candidate = as_severity(current), as_severity(candidate)
    return candidate if candidate.rank > current.rank else current


def highest(severities: Iterable[SeverityLike]) -> Severity:
    result = Severity.LOW
    for sev in severities:
        result = escalate(result, sev)
    return result


def finding_severities(audit: AuditResult) -> Iterator[Severity]:
    """Severities of every result that actually carries a finding."""
    for vuln in audit.vulnerabilities:
        yield vuln.severity
    for results in (audit.database_results, audit.web_results, audit.system_results, audit.exploit_results):
        for r in results:
            if r.has_finding:
                yield r.severity
    # recon never raises the level; OS guesses are low confidence


def compute_risk(audit: AuditResult) -> Severity:
    level = highest(finding_severities(audit))
    if level == Severity.LOW and len(audit.misconfigurations) > MISCONFIG_MEDIUM_THRESHOLD:
        level = Severity.MEDIUM
    return level


def severity_counts(audit: AuditResult) -> Dict[str, int]:
    counts = {s.value: 0 for s in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)}
    for sev in finding_severities(audit):
        counts[sev.value] += 1
    return counts
