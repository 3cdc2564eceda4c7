from __future__ import annotations

from typing import List, Optional

from probers import web_discovery
from probers.web_discovery import ADMIN_PATHS, TRAVERSAL_PAYLOADS, Fetcher


def analyze(host: str, port: int, use_ssl: bool, fetch: Optional[Fetcher] = None) -> List[str]:
    """
    Common-vulnerability sweep: directory traversal payloads stop at the
    first 200, admin panel paths are all enumerated.
    """
    fetch = fetch or web_discovery.http_get
    warnings: List[str] = []

    traversal = web_discovery.discover(
        host, port, use_ssl, ["/" + p for p in TRAVERSAL_PAYLOADS], fetch=fetch, stop_on_hit=True
    )
    for path in traversal:
        warnings.append(f"Potential directory traversal vulnerability: {path.lstrip('/')}")

    for path in web_discovery.discover(host, port, use_ssl, ADMIN_PATHS, fetch=fetch):
        warnings.append(f"Admin panel accessible: {path}")

    return warnings
