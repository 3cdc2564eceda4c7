import datetime as dt

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from core.models import CertificateSummary
from pipeline import web_tls
from probers.tls_fingerprint import parse_certificate

NOW = dt.datetime(2026, 1, 15, tzinfo=dt.timezone.utc)


def _cert(days: int, issuer: str = "ca.example") -> CertificateSummary:
    return CertificateSummary(subject_cn="site.example", issuer_cn=issuer, not_after=NOW + dt.timedelta(days=days))


def test_expired():
    assert web_tls.check_certificate(_cert(-1), now=NOW) == ["Certificate has expired"]


def test_expires_soon():
    assert web_tls.check_certificate(_cert(10), now=NOW) == ["Certificate expires within 30 days"]


def test_valid_for_a_year():
    assert web_tls.check_certificate(_cert(365), now=NOW) == []


def test_self_signed_is_independent_of_expiry():
    warnings = web_tls.check_certificate(_cert(-5, issuer="site.example"), now=NOW)
    assert warnings == ["Certificate has expired", "Self-signed certificate detected"]


def test_weak_cipher_and_deprecated_protocol():
    info = web_tls.analyze({"version": "TLSv1", "cipher": ("RC4-SHA", "TLSv1", 128), "cert_der": None}, now=NOW)
    assert info.version == "TLS 1.0"
    assert info.warnings == ["TLS 1.0 is deprecated", "Weak cipher suite detected (RC4-SHA)"]


def test_modern_session_has_no_warnings():
    info = web_tls.analyze({"version": "TLSv1.3", "cipher": ("TLS_AES_256_GCM_SHA384", "TLSv1.3", 256)}, now=NOW)
    assert info.warnings == []


def _self_signed_der(not_after: dt.datetime) -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "self.example")])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - dt.timedelta(days=400))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


def test_der_certificate_parsing_end_to_end():
    der = _self_signed_der(NOW + dt.timedelta(days=10))
    summary = parse_certificate(der)
    assert summary.subject_cn == summary.issuer_cn == "self.example"

    info = web_tls.analyze({"version": "TLSv1.2", "cipher": ("ECDHE-ECDSA-AES128-GCM-SHA256",), "cert_der": der}, now=NOW)
    assert info.certificate.subject_cn == "self.example"
    assert info.warnings == ["Certificate expires within 30 days", "Self-signed certificate detected"]


def test_garbage_der_is_ignored():
    assert parse_certificate(b"not a certificate") is None
