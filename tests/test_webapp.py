from core.models import Severity
from pipeline import web_exposure, webapp
from probers import http_probe


def make_fetch(root_headers=None, hits=(), fail=False, tls=None):
    calls = []

    def fetch(host, port, use_ssl, path="/", timeout=None, **kwargs):
        calls.append(path)
        if fail:
            raise ConnectionRefusedError("refused")
        if path == "/":
            return {"status": 200, "headers": dict(root_headers or {}), "tls": tls}, b"<html></html>"
        return {"status": 200 if path in hits else 404, "headers": {}}, b""

    fetch.calls = calls
    return fetch


def test_unreachable_endpoint_is_not_accessible():
    res = webapp.check_http_security("h", 80, fetch=make_fetch(fail=True))
    assert not res.accessible
    assert res.warnings == []
    assert res.severity == Severity.LOW
    assert res.url == "http://h:80"


def test_scheme_follows_port():
    res = webapp.check_http_security("h", 8443, fetch=make_fetch(fail=True))
    assert res.url == "https://h:8443"
    assert res.service == "HTTPS"


def test_missing_headers_only():
    res = webapp.check_http_security("h", 80, fetch=make_fetch({"Strict-Transport-Security": "max-age=1"}))
    assert res.accessible
    assert len(res.warnings) == 4
    assert res.severity == Severity.MEDIUM


def test_admin_hit_forces_high():
    res = webapp.check_http_security("h", 80, fetch=make_fetch({}, hits={"/admin", "/phpmyadmin"}))
    assert "Admin panel accessible: /admin" in res.warnings
    assert "Admin panel accessible: /phpmyadmin" in res.warnings
    assert res.severity == Severity.HIGH


def test_tls_warnings_do_not_change_severity():
    secure = {
        "Content-Security-Policy": "default-src 'self'",
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Strict-Transport-Security": "max-age=1",
        "X-XSS-Protection": "1",
    }
    tls = {"version": "TLSv1.1", "cipher": ("AES128-SHA",), "cert_der": None}
    res = webapp.check_http_security("h", 443, fetch=make_fetch(secure, tls=tls))
    assert res.tls_info.version == "TLS 1.1"
    assert res.warnings == ["TLS 1.1 is deprecated"]
    assert res.severity == Severity.LOW


def test_traversal_stops_at_first_hit_but_admin_enumerates_all():
    first = "/" + web_exposure.TRAVERSAL_PAYLOADS[0]
    second = "/" + web_exposure.TRAVERSAL_PAYLOADS[1]
    fetch = make_fetch(hits={first, second, "/admin", "/wp-admin"})
    warnings = web_exposure.analyze("h", 80, False, fetch=fetch)
    assert warnings == [
        "Potential directory traversal vulnerability: " + web_exposure.TRAVERSAL_PAYLOADS[0],
        "Admin panel accessible: /admin",
        "Admin panel accessible: /wp-admin",
    ]
    assert second not in fetch.calls
    assert all(p in fetch.calls for p in web_exposure.ADMIN_PATHS)


def test_default_fetcher_is_http_probe(monkeypatch):
    monkeypatch.setattr(http_probe, "http_get", make_fetch(fail=True))
    assert not webapp.check_http_security("h", 80).accessible
