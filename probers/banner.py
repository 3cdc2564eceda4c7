"""
Service identification: hard classification by well-known port number,
soft enrichment from a single best-effort banner read.
"""

from __future__ import annotations

import logging
import re
import socket
from typing import Callable, Optional

from core.models import ServiceInfo

log = logging.getLogger(__name__)

UNKNOWN_SERVICE = "Unknown"
BANNER_EXCERPT_LEN = 50

SERVICE_NAMES = {
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    143: "IMAP",
    443: "HTTPS",
    993: "IMAPS",
    995: "POP3S",
    3306: "MySQL",
    3389: "RDP",
    5432: "PostgreSQL",
    5900: "VNC",
    6379: "Redis",
    8080: "HTTP-Alt",
    8443: "HTTPS-Alt",
    27017: "MongoDB",
}

_PRINTABLE = re.compile(r"[^\x09\x0a\x0d\x20-\x7e]")


def _clean_text(s: str, max_len: int = 300) -> str:
    s = _PRINTABLE.sub("", s)
    s = " ".join(s.split())
    return s[:max_len]


def service_name(port: int) -> str:
    return SERVICE_NAMES.get(port, UNKNOWN_SERVICE)


def grab_banner(host: str, port: int, timeout: float = 3.0) -> Optional[str]:
    """
    Read whatever the service sends unprompted after connect.
    Returns None on timeout, reset or empty reads.
    """
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.settimeout(timeout)
            data = sock.recv(1024)
    except (socket.timeout, OSError):
        return None
    text = _clean_text(data.decode(errors="ignore"))
    return text or None


def identify_service(
    host: str,
    port: int,
    timeout: float = 3.0,
    grab: Optional[Callable[[str, int, float], Optional[str]]] = None,
) -> ServiceInfo:
    name = service_name(port)
    try:
        banner = (grab or grab_banner)(host, port, timeout)
    except Exception:  # noqa: BLE001
        log.debug("banner grab failed for %s:%s", host, port, exc_info=True)
        banner = None
    version = banner[:BANNER_EXCERPT_LEN] if banner else None
    return ServiceInfo(port=port, service=name, version=version)
