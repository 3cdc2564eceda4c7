"""
Local host introspection. These checks look at the filesystem and
process table of the machine running the audit, never at the remote
target; every result is tagged scope="local".

Walk errors on individual paths are skipped so one unreadable entry
cannot abort a check.
"""

from __future__ import annotations

import logging
import os
import re
import stat
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import psutil

from core.config import settings
from core.models import Severity, SystemProbeResult
from policy.risk_scoring import escalate

log = logging.getLogger(__name__)

RISKY_SUID_BINARIES = (
    "nmap", "vim", "find", "bash", "sh", "more", "less", "nano", "cp", "mv",
    "awk", "man", "wget", "curl", "tar", "zip", "unzip", "python", "perl", "ruby",
)

CRITICAL_DIRS = ("/etc", "/bin", "/sbin", "/usr/bin", "/usr/sbin", "/boot")

CRITICAL_FILE_MODES = {
    "/etc/passwd": 0o644,
    "/etc/shadow": 0o640,
    "/etc/group": 0o644,
    "/etc/gshadow": 0o640,
    "/etc/sudoers": 0o440,
    "/etc/ssh/sshd_config": 0o644,
}

SECRET_FILE_NAMES = ("shadow", "gshadow")

RISKY_PROCESSES = ("telnetd", "rsh", "rshd", "rlogin", "rlogind", "ftp", "ftpd", "tftp", "tftpd", "finger", "fingerd", "rexec", "rexecd")

CORE_PATTERN_PATH = "/proc/sys/kernel/core_pattern"

SUID_COUNT_THRESHOLD = 10
WORLD_WRITABLE_COUNT_THRESHOLD = 5

_RISKY_NAME = re.compile(r"^(%s)[\d.]*$" % "|".join(re.escape(b) for b in RISKY_SUID_BINARIES))


def _walk(root_dirs: Iterable[str]) -> Iterator[Tuple[str, os.stat_result]]:
    """Yield (path, lstat) for every entry below the roots, skipping anything unreadable."""
    for root in root_dirs:
        for dirpath, dirnames, filenames in os.walk(root, onerror=lambda err: None):
            for name in dirnames + filenames:
                path = os.path.join(dirpath, name)
                try:
                    yield path, os.lstat(path)
                except OSError:
                    continue


def _under(path: str, directory: str) -> bool:
    directory = directory.rstrip(os.sep) or os.sep
    return path == directory or path.startswith(directory + os.sep)


def check_suid_binaries(root_dirs: Sequence[str]) -> SystemProbeResult:
    result = SystemProbeResult(check_type="SUID/SGID Binaries")
    risky = False
    for path, st in _walk(root_dirs):
        if not stat.S_ISREG(st.st_mode):
            continue
        if st.st_mode & stat.S_ISUID:
            result.warnings.append(f"SUID binary: {path}")
            if _RISKY_NAME.match(os.path.basename(path)):
                result.warnings.append(f"RISKY SUID binary detected: {path}")
                risky = True
        if st.st_mode & stat.S_ISGID:
            result.warnings.append(f"SGID binary: {path}")

    if risky:
        result.severity = Severity.HIGH
    elif len(result.warnings) > SUID_COUNT_THRESHOLD:
        result.severity = Severity.MEDIUM
    return result


def check_world_writable(root_dirs: Sequence[str], critical_dirs: Sequence[str] = CRITICAL_DIRS) -> SystemProbeResult:
    result = SystemProbeResult(check_type="World-Writable Files")
    critical = False
    for path, st in _walk(root_dirs):
        if stat.S_ISLNK(st.st_mode) or not st.st_mode & stat.S_IWOTH:
            continue
        result.warnings.append(f"World-writable: {path}")
        if any(_under(path, d) for d in critical_dirs):
            result.warnings.append(f"CRITICAL: World-writable file in system directory: {path}")
            critical = True

    if critical:
        result.severity = Severity.CRITICAL
    elif len(result.warnings) > WORLD_WRITABLE_COUNT_THRESHOLD:
        result.severity = Severity.MEDIUM
    return result


def check_file_permissions(expected_modes: Optional[Dict[str, int]] = None) -> SystemProbeResult:
    result = SystemProbeResult(check_type="Critical File Permissions")
    for path, expected in (expected_modes or CRITICAL_FILE_MODES).items():
        try:
            actual = stat.S_IMODE(os.stat(path).st_mode)
        except OSError:
            continue
        if actual == expected:
            continue
        result.warnings.append(f"Incorrect permissions on {path}: {actual:o} (expected {expected:o})")
        if os.path.basename(path) in SECRET_FILE_NAMES and actual & 0o022:
            result.severity = escalate(result.severity, Severity.CRITICAL)
        elif actual & ~expected:
            result.severity = escalate(result.severity, Severity.HIGH)
    return result


def _process_names(proc_info: Dict) -> List[str]:
    names = []
    if proc_info.get("name"):
        names.append(proc_info["name"])
    cmdline = proc_info.get("cmdline") or []
    if cmdline:
        names.append(os.path.basename(cmdline[0]))
    return names


def check_processes(risky: Sequence[str] = RISKY_PROCESSES) -> SystemProbeResult:
    result = SystemProbeResult(check_type="Process Analysis")
    wanted = set(risky)
    try:
        procs = list(psutil.process_iter(["pid", "name", "cmdline"]))
    except (psutil.Error, OSError) as exc:
        result.warnings.append(f"Cannot enumerate processes: {exc}")
        return result

    for proc in procs:
        info = proc.info
        for name in _process_names(info):
            if name in wanted:
                result.warnings.append(f"Risky process detected: {name} (PID: {info.get('pid')})")
                result.severity = escalate(result.severity, Severity.MEDIUM)
                break
    return result


def check_system_configuration(core_pattern_path: str = CORE_PATTERN_PATH) -> SystemProbeResult:
    result = SystemProbeResult(check_type="System Configuration")

    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() == 0:
        result.warnings.append("Running with root privileges")
        result.severity = escalate(result.severity, Severity.MEDIUM)

    try:
        with open(core_pattern_path, encoding="utf-8") as fh:
            pattern = fh.read().strip()
    except OSError:
        pattern = ""
    if pattern and pattern != "core":
        result.warnings.append(f"Core dumps may be enabled: {pattern}")

    return result


def run_local_system_checks(scan_dirs: Optional[Sequence[str]] = None) -> List[SystemProbeResult]:
    scan_dirs = scan_dirs if scan_dirs is not None else settings.system_scan_dirs
    existing = [d for d in scan_dirs if os.path.isdir(d)]
    log.info("running local system checks over %d directories", len(existing))

    results: List[SystemProbeResult] = []
    if existing:
        results.append(check_suid_binaries(existing))
        results.append(check_world_writable(existing))
    results.append(check_file_permissions())
    results.append(check_processes())
    results.append(check_system_configuration())
    return results
