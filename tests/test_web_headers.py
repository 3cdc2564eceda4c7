from core.models import Severity
from pipeline import web_headers

ALL_SECURE = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=31536000",
    "X-XSS-Protection": "1; mode=block",
}


def test_all_missing_yields_five_warnings():
    warnings, severity = web_headers.analyze({})
    assert len(warnings) == 5
    assert severity == Severity.MEDIUM


def test_all_present_yields_none():
    warnings, severity = web_headers.analyze(ALL_SECURE)
    assert warnings == []
    assert severity == Severity.LOW


def test_header_names_are_case_insensitive():
    warnings, _ = web_headers.analyze({k.lower(): v for k, v in ALL_SECURE.items()})
    assert warnings == []


def test_insecure_frame_options_is_high():
    headers = dict(ALL_SECURE, **{"X-Frame-Options": "ALLOWALL"})
    warnings, severity = web_headers.analyze(headers)
    assert severity == Severity.HIGH
    assert len(warnings) == 1


def test_unsafe_csp_is_high():
    headers = dict(ALL_SECURE, **{"Content-Security-Policy": "script-src 'unsafe-inline'"})
    _, severity = web_headers.analyze(headers)
    assert severity == Severity.HIGH


def test_disclosure_is_informational():
    headers = dict(ALL_SECURE, Server="nginx", **{"X-Powered-By": "PHP/8.1"})
    warnings, severity = web_headers.analyze(headers)
    assert warnings == [
        "Information disclosure via Server header: nginx",
        "Information disclosure via X-Powered-By header: PHP/8.1",
    ]
    assert severity == Severity.LOW


def test_server_disclosure():
    warnings, severity = web_headers.server_disclosure({"Server": "Apache/2.2.34 (Unix)"})
    assert warnings == ["Server version disclosed in headers", "Outdated Apache version detected"]
    assert severity == Severity.MEDIUM
    assert web_headers.server_disclosure({"Server": "nginx"}) == ([], Severity.LOW)
