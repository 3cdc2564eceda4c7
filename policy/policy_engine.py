"""
Probe applicability policy. Which probes run against an open port is a
pure function of the port number; the dispatcher asks here and never
guesses from banners.
"""

from typing import List, Optional

from core.config import Settings, settings as default_settings

DATABASE_PORTS = {
    3306: "MySQL",
    5432: "PostgreSQL",
    27017: "MongoDB",
    27018: "MongoDB",
    27019: "MongoDB",
    6379: "Redis",
}

EXPLOIT_PORTS = {
    21: "ftp_anonymous",
    22: "ssh_version",
    23: "telnet_cleartext",
    5900: "vnc_no_auth",
}

PROBE_DATABASE = "database"
PROBE_WEB = "web"
PROBE_EXPLOIT = "exploit"


class PolicyEngine:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.web_ports = set(self.settings.web_ports)
        self.tls_ports = set(self.settings.tls_ports)
        self.recon_web_ports = set(self.settings.recon_web_ports)

    def database_family(self, port: int) -> Optional[str]:
        return DATABASE_PORTS.get(port)

    def exploit_check(self, port: int) -> Optional[str]:
        return EXPLOIT_PORTS.get(port)

    def is_web_port(self, port: int) -> bool:
        return port in self.web_ports

    def use_tls(self, port: int) -> bool:
        return port in self.tls_ports

    def probes_for_port(self, port: int) -> List[str]:
        probes = []
        if self.database_family(port):
            probes.append(PROBE_DATABASE)
        if self.is_web_port(port):
            probes.append(PROBE_WEB)
        if self.exploit_check(port):
            probes.append(PROBE_EXPLOIT)
        return probes
