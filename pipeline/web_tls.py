"""
TLS session analysis: deprecated protocol versions, weak cipher suites,
leaf certificate expiry and self-signed detection. Every flag is an
independent warning.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from core.models import CertificateSummary, TLSInfo
from probers.tls_fingerprint import parse_certificate, protocol_name

DEPRECATED_PROTOCOLS = {
    "SSL 2.0": "SSL 2.0 is deprecated and insecure",
    "SSL 3.0": "SSL 3.0 is deprecated and insecure",
    "TLS 1.0": "TLS 1.0 is deprecated",
    "TLS 1.1": "TLS 1.1 is deprecated",
}

WEAK_CIPHER_MARKERS = ("RC4", "NULL", "EXPORT", "EXP-", "DES-CBC", "MD5")

EXPIRY_WARNING_WINDOW = dt.timedelta(days=30)


def check_certificate(cert: CertificateSummary, now: Optional[dt.datetime] = None) -> List[str]:
    now = now or dt.datetime.now(dt.timezone.utc)
    warnings: List[str] = []
    if cert.not_after is not None:
        not_after = cert.not_after
        if not_after.tzinfo is None:
            not_after = not_after.replace(tzinfo=dt.timezone.utc)
        if now > not_after:
            warnings.append("Certificate has expired")
        elif now + EXPIRY_WARNING_WINDOW > not_after:
            warnings.append("Certificate expires within 30 days")
    if cert.subject_cn and cert.subject_cn == cert.issuer_cn:
        warnings.append("Self-signed certificate detected")
    return warnings


def check_cipher(cipher_name: Optional[str]) -> List[str]:
    if not cipher_name:
        return []
    upper = cipher_name.upper()
    for marker in WEAK_CIPHER_MARKERS:
        if marker in upper:
            return [f"Weak cipher suite detected ({cipher_name})"]
    return []


def analyze(tls_meta: Dict, now: Optional[dt.datetime] = None) -> TLSInfo:
    """tls_meta is the "tls" block produced by probers.http_probe."""
    version = protocol_name(tls_meta.get("version"))
    cipher = tls_meta.get("cipher")
    cipher_name = cipher[0] if cipher else None
    info = TLSInfo(version=version, cipher_suite=cipher_name)

    if version in DEPRECATED_PROTOCOLS:
        info.warnings.append(DEPRECATED_PROTOCOLS[version])
    elif version == "Unknown":
        info.warnings.append("Unknown TLS version")

    info.warnings.extend(check_cipher(cipher_name))

    info.certificate = parse_certificate(tls_meta.get("cert_der"))
    if info.certificate:
        info.warnings.extend(check_certificate(info.certificate, now=now))
    return info
