"""
Scope enforcement: when an allowlist is configured, audit targets must
resolve into allowlisted CIDRs or match allowlisted domains.

resolve_host is also the resolver used by reconnaissance.
"""

import ipaddress
import socket
from typing import Iterable, List, Optional, Union

from .config import Settings, settings as default_settings

Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def resolve_host(host: str) -> List[str]:
    """A/AAAA addresses in resolver order, de-duplicated; [] when the name does not resolve."""
    try:
        infos = socket.getaddrinfo(host, None)
    except (socket.gaierror, UnicodeError):
        return []
    return list(dict.fromkeys(info[4][0] for info in infos))


def _networks(cidrs: Iterable[str]) -> List[Network]:
    nets: List[Network] = []
    for cidr in cidrs:
        try:
            nets.append(ipaddress.ip_network(cidr, strict=False))
        except ValueError:
            continue
    return nets


def _in_networks(address: str, nets: List[Network]) -> bool:
    try:
        addr = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(addr in net for net in nets)


def _in_domains(host: str, domains: Iterable[str]) -> bool:
    name = host.lower().rstrip(".")
    suffixes = [d.lower().rstrip(".") for d in domains]
    return any(name == s or name.endswith("." + s) for s in suffixes)


def is_authorized_target(target: str, settings: Optional[Settings] = None) -> bool:
    """
    Validate target (hostname or IP) against the allowlist CIDRs/domains.
    Without any allowlist every target passes unless require_allowlist is set.
    """
    settings = settings or default_settings
    if not settings.allowlist_cidrs and not settings.allowlist_domains:
        return not settings.require_allowlist

    if _in_domains(target, settings.allowlist_domains):
        return True
    nets = _networks(settings.allowlist_cidrs)
    if not nets:
        return False
    # literal IPs are checked without a DNS round-trip
    if _in_networks(target, nets):
        return True
    return any(_in_networks(addr, nets) for addr in resolve_host(target))
