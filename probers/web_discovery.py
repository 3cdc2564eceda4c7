"""
Path discovery: fetch a small, fixed list of paths and report which ones
answer 200. No brute force; failed requests are skipped.
"""

import logging
from typing import Callable, Dict, Iterable, List, Tuple

from probers.http_probe import http_get

log = logging.getLogger(__name__)

Fetcher = Callable[..., Tuple[Dict, bytes]]

TRAVERSAL_PAYLOADS = [
    "../../../etc/passwd",
    "..\\..\\..\\windows\\system32\\drivers\\etc\\hosts",
    "....//....//....//etc/passwd",
]

ADMIN_PATHS = ["/admin", "/administrator", "/wp-admin", "/phpmyadmin", "/admin.php"]


def discover(
    host: str,
    port: int,
    use_ssl: bool,
    paths: Iterable[str],
    fetch: Fetcher = http_get,
    stop_on_hit: bool = False,
) -> List[str]:
    hits: List[str] = []
    for path in paths:
        try:
            meta, _ = fetch(host, port, use_ssl, path=path)
        except Exception as exc:  # noqa: BLE001
            log.debug("GET %s on %s:%s failed: %s", path, host, port, exc)
            continue
        if meta.get("status") == 200:
            hits.append(path)
            if stop_on_hit:
                break
    return hits
