"""
HTTP probing with a single GET, short timeouts and certificate
validation disabled so invalid/self-signed endpoints can be inspected.
"""

import hashlib
import http.client
import ssl
from typing import Dict, Optional, Tuple

from core.config import settings


def _tls_metadata(sock) -> Optional[Dict]:
    if not isinstance(sock, ssl.SSLSocket):
        return None
    return {
        "version": sock.version(),
        "cipher": sock.cipher(),
        "cert_der": sock.getpeercert(binary_form=True),
    }


def _do_request(
    method: str, host: str, port: int, use_ssl: bool, path: str = "/", timeout: Optional[float] = None
) -> Tuple[Dict, bytes]:
    timeout = timeout or settings.http_timeout_s
    if use_ssl:
        conn = http.client.HTTPSConnection(host, port, timeout=timeout, context=ssl._create_unverified_context())
    else:
        conn = http.client.HTTPConnection(host, port, timeout=timeout)
    try:
        conn.connect()
        tls = _tls_metadata(conn.sock)
        conn.request(method, path, headers={"User-Agent": settings.user_agent, "Connection": "close"})
        resp = conn.getresponse()
        data = resp.read(4096)
        headers_out = {k.lower(): v for k, v in resp.getheaders()}
    finally:
        conn.close()
    return (
        {
            "status": resp.status,
            "reason": resp.reason,
            "headers": headers_out,
            "hash": hashlib.sha1(data).hexdigest(),
            "tls": tls,
        },
        data,
    )


def http_get(host: str, port: int, use_ssl: bool, path: str = "/", timeout: Optional[float] = None) -> Tuple[Dict, bytes]:
    return _do_request("GET", host, port, use_ssl, path=path, timeout=timeout)
