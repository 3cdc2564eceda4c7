"""
Leaf certificate decoding for TLS sessions opened without verification.
The ssl module returns an empty dict from getpeercert() in that mode, so
the DER bytes are parsed with cryptography instead.
"""

import logging
from typing import Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from core.models import CertificateSummary

log = logging.getLogger(__name__)

# ssl.SSLSocket.version() names -> display names
PROTOCOL_NAMES = {
    "SSLv2": "SSL 2.0",
    "SSLv3": "SSL 3.0",
    "TLSv1": "TLS 1.0",
    "TLSv1.1": "TLS 1.1",
    "TLSv1.2": "TLS 1.2",
    "TLSv1.3": "TLS 1.3",
}


def _common_name(name: x509.Name) -> Optional[str]:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    value = attrs[0].value
    return value if isinstance(value, str) else value.decode(errors="ignore")


def parse_certificate(cert_der: Optional[bytes]) -> Optional[CertificateSummary]:
    if not cert_der:
        return None
    try:
        cert = x509.load_der_x509_certificate(cert_der)
    except ValueError:
        log.debug("could not decode peer certificate (%d bytes)", len(cert_der))
        return None
    return CertificateSummary(
        subject_cn=_common_name(cert.subject),
        issuer_cn=_common_name(cert.issuer),
        not_after=cert.not_valid_after_utc,
    )


def protocol_name(version: Optional[str]) -> str:
    if not version:
        return "Unknown"
    return PROTOCOL_NAMES.get(version, "Unknown")
