from __future__ import annotations

from typing import List

COMMON_PORTS = (
    21, 22, 23, 25, 53, 80, 110, 111, 135, 139, 143, 443, 993, 995,
    1723, 3306, 3389, 5432, 5900, 6379, 8000, 8080, 8443, 8888, 9090, 27017,
)


def _parse_port(token: str) -> int:
    try:
        port = int(token)
    except ValueError:
        raise ValueError(f"Invalid port: {token!r}") from None
    if port < 1 or port > 65535:
        raise ValueError(f"Invalid port: {port}")
    return port


def parse_ports(spec: str | None) -> List[int]:
    """
    Parses a port specification string into an ordered, de-duplicated list.
    Supports:
    - Empty or "common": the built-in common port list
    - Single ports: "80"
    - Ranges: "1-1024"
    - Mixed: "22,80,8000-8010"
    """
    spec = (spec or "").strip()
    if not spec or spec.lower() == "common":
        return list(COMMON_PORTS)

    ports: List[int] = []
    seen = set()
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_s, end_s = part.split("-", 1)
            start = _parse_port(start_s.strip())
            end = _parse_port(end_s.strip())
            if start > end:
                raise ValueError(f"Invalid port range: {part}")
            candidates = range(start, end + 1)
        else:
            candidates = [_parse_port(part)]
        for p in candidates:
            if p not in seen:
                seen.add(p)
                ports.append(p)

    if not ports:
        raise ValueError(f"No ports in spec: {spec!r}")
    return ports
