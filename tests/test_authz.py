from core import authz_scope
from core.config import Settings


def test_no_allowlist_allows_everything():
    s = Settings(allowlist_cidrs=[], allowlist_domains=[], require_allowlist=False)
    assert authz_scope.is_authorized_target("anything.invalid", s)


def test_require_allowlist_without_entries_refuses():
    s = Settings(require_allowlist=True)
    assert not authz_scope.is_authorized_target("127.0.0.1", s)


def test_domain_match_allowlist(monkeypatch):
    monkeypatch.setattr(authz_scope, "resolve_host", lambda host: [])
    s = Settings(allowlist_domains=["example.com"])
    assert authz_scope.is_authorized_target("example.com", s)
    assert authz_scope.is_authorized_target("api.example.com", s)
    assert not authz_scope.is_authorized_target("badexample.com", s)


def test_cidr_match_literal_and_resolved(monkeypatch):
    monkeypatch.setattr(authz_scope, "resolve_host", lambda host: ["10.0.0.7"] if host == "db.internal" else [])
    s = Settings(allowlist_cidrs=["10.0.0.0/24"])
    assert authz_scope.is_authorized_target("10.0.0.1", s)
    assert authz_scope.is_authorized_target("db.internal", s)
    assert not authz_scope.is_authorized_target("192.168.1.1", s)


def test_resolve_host_deduplicates_and_absorbs_failures(monkeypatch):
    infos = [
        (2, 1, 6, "", ("10.0.0.7", 0)),
        (2, 2, 17, "", ("10.0.0.7", 0)),
        (10, 1, 6, "", ("fd00::7", 0, 0, 0)),
    ]
    monkeypatch.setattr(authz_scope.socket, "getaddrinfo", lambda host, port: infos)
    assert authz_scope.resolve_host("db.internal") == ["10.0.0.7", "fd00::7"]

    def fail(host, port):
        raise authz_scope.socket.gaierror("Name or service not known")

    monkeypatch.setattr(authz_scope.socket, "getaddrinfo", fail)
    assert authz_scope.resolve_host("nowhere.invalid") == []


def test_recon_shares_the_scope_resolver():
    from pipeline import recon

    assert recon.resolve_host is authz_scope.resolve_host
