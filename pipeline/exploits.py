"""
Benign handshake probes for services whose mere configuration is the
finding: anonymous FTP, cleartext Telnet, outdated SSH, password-less VNC.
Nothing past the authentication step is ever sent.
"""

import logging
import re
import struct
from typing import Callable, Dict, List, Optional

from core.config import settings
from core.models import ExploitProbeResult, Severity
from policy.policy_engine import EXPLOIT_PORTS
from probers import raw_tcp

log = logging.getLogger(__name__)

Converse = Callable[..., List[bytes]]

TELNET_IAC = 0xFF
OPENSSH_MIN_VERSION = (7, 4)
VNC_SECURITY_NONE = 1


def _result(name: str, service: str, host: str, port: int, description: str) -> ExploitProbeResult:
    return ExploitProbeResult(exploit_name=name, service=service, host=host, port=port, description=description)


def _hit(result: ExploitProbeResult, warning: str, severity: Severity) -> ExploitProbeResult:
    result.success = True
    result.severity = severity
    result.warnings.append(warning)
    return result


def check_ftp_anonymous(host: str, port: int = 21, timeout: Optional[float] = None, converse: Optional[Converse] = None) -> ExploitProbeResult:
    result = _result("ftp_anonymous", "FTP", host, port, "FTP server accepts anonymous login")
    replies = (converse or raw_tcp.converse)(
        host,
        port,
        [None, b"USER anonymous\r\n", b"PASS anonymous@example.com\r\n"],
        timeout=timeout or settings.banner_timeout_s,
    )
    codes = [r[:3] for r in replies]
    if len(codes) >= 3 and codes[0] == b"220" and codes[1] in (b"331", b"230") and codes[2] == b"230":
        return _hit(result, "FTP anonymous login allowed", Severity.HIGH)
    # some servers log anonymous in straight after USER
    if len(codes) >= 2 and codes[0] == b"220" and codes[1] == b"230":
        return _hit(result, "FTP anonymous login allowed", Severity.HIGH)
    return result


def check_telnet(host: str, port: int = 23, timeout: Optional[float] = None, converse: Optional[Converse] = None) -> ExploitProbeResult:
    result = _result("telnet_cleartext", "Telnet", host, port, "Telnet service transmits credentials in cleartext")
    replies = (converse or raw_tcp.converse)(host, port, [None], timeout=timeout or settings.banner_timeout_s)
    data = replies[0] if replies else b""
    if data and (data[0] == TELNET_IAC or b"login" in data.lower()):
        return _hit(result, "Telnet service accepting connections (cleartext authentication)", Severity.MEDIUM)
    return result


def parse_ssh_banner(banner: str) -> Dict[str, Optional[str]]:
    m = re.match(r"SSH-(\d+\.\d+)-(\S+)", banner.strip())
    if not m:
        return {}
    return {"protocol": m.group(1), "software": m.group(2)}


def check_ssh_version(host: str, port: int = 22, timeout: Optional[float] = None, converse: Optional[Converse] = None) -> ExploitProbeResult:
    result = _result("ssh_version", "SSH", host, port, "SSH protocol version and server software from identification string")
    replies = (converse or raw_tcp.converse)(host, port, [None], timeout=timeout or settings.banner_timeout_s)
    banner = replies[0].decode(errors="ignore") if replies else ""
    info = parse_ssh_banner(banner)
    if not info:
        return result

    if info["protocol"].startswith("1."):
        _hit(result, f"SSH protocol version 1 supported: {info['protocol']}", Severity.HIGH)

    m = re.match(r"OpenSSH_(\d+)\.(\d+)", info["software"] or "")
    if m and (int(m.group(1)), int(m.group(2))) < OPENSSH_MIN_VERSION:
        warning = f"Outdated OpenSSH version: {m.group(1)}.{m.group(2)}"
        if result.success:
            result.warnings.append(warning)
        else:
            _hit(result, warning, Severity.MEDIUM)
    return result


def _vnc_version_echo(replies: List[bytes]) -> Optional[bytes]:
    if replies and replies[0].startswith(b"RFB "):
        return replies[0][:12]
    return None


def vnc_offers_no_auth(server_version: bytes, security: bytes) -> bool:
    """RFB 3.3 sends a single uint32 type; later versions send a count then a type list."""
    if server_version.startswith(b"RFB 003.003"):
        return len(security) >= 4 and struct.unpack(">I", security[:4])[0] == VNC_SECURITY_NONE
    if not security:
        return False
    count = security[0]
    return VNC_SECURITY_NONE in security[1 : 1 + count]


def check_vnc_no_auth(host: str, port: int = 5900, timeout: Optional[float] = None, converse: Optional[Converse] = None) -> ExploitProbeResult:
    result = _result("vnc_no_auth", "VNC", host, port, "VNC server offers security type None")
    replies = (converse or raw_tcp.converse)(host, port, [None, _vnc_version_echo], timeout=timeout or settings.banner_timeout_s)
    if len(replies) < 2 or not replies[0].startswith(b"RFB "):
        return result
    if vnc_offers_no_auth(replies[0][:12], replies[1]):
        return _hit(result, "VNC server allows access without authentication", Severity.CRITICAL)
    return result


EXPLOIT_CHECKS: Dict[str, Callable[..., ExploitProbeResult]] = {
    "ftp_anonymous": check_ftp_anonymous,
    "ssh_version": check_ssh_version,
    "telnet_cleartext": check_telnet,
    "vnc_no_auth": check_vnc_no_auth,
}


def run_exploit_checks(host: str, port: int, timeout: Optional[float] = None) -> List[ExploitProbeResult]:
    name = EXPLOIT_PORTS.get(port)
    if not name:
        return []
    log.debug("running %s against %s:%s", name, host, port)
    return [EXPLOIT_CHECKS[name](host, port, timeout=timeout)]
