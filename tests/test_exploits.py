import struct

from core.models import Severity
from pipeline import exploits
from probers import raw_tcp


def scripted(*replies):
    """Fake conversation returning one canned reply per step (stops like the real one on empty)."""
    seen = []

    def converse(host, port, steps, timeout=3.0, read_size=4096):
        out = []
        for step, reply in zip(steps, replies):
            payload = step(out) if callable(step) else step
            seen.append(payload)
            out.append(reply)
            if not reply:
                break
        return out

    converse.seen = seen
    return converse


def test_ftp_anonymous_login():
    conv = scripted(b"220 ProFTPD ready\r\n", b"331 Anonymous login ok\r\n", b"230 Welcome\r\n")
    res = exploits.check_ftp_anonymous("h", converse=conv)
    assert res.success
    assert res.severity == Severity.HIGH
    assert conv.seen[1] == b"USER anonymous\r\n"


def test_ftp_refuses_anonymous():
    conv = scripted(b"220 ready\r\n", b"331 Password required\r\n", b"530 Login incorrect\r\n")
    assert not exploits.check_ftp_anonymous("h", converse=conv).success


def test_telnet_negotiation_bytes():
    res = exploits.check_telnet("h", converse=scripted(b"\xff\xfd\x18\xff\xfd\x20"))
    assert res.success
    assert res.severity == Severity.MEDIUM


def test_closed_telnet_port():
    assert not exploits.check_telnet("h", converse=scripted()).success


def test_ssh_outdated_openssh():
    res = exploits.check_ssh_version("h", converse=scripted(b"SSH-2.0-OpenSSH_7.2p2 Ubuntu-4\r\n"))
    assert res.success
    assert res.warnings == ["Outdated OpenSSH version: 7.2"]
    assert res.severity == Severity.MEDIUM


def test_ssh_protocol_one_is_high():
    res = exploits.check_ssh_version("h", converse=scripted(b"SSH-1.99-OpenSSH_3.9p1\r\n"))
    assert res.severity == Severity.HIGH
    assert len(res.warnings) == 2


def test_current_ssh_is_clean():
    res = exploits.check_ssh_version("h", converse=scripted(b"SSH-2.0-OpenSSH_9.6\r\n"))
    assert not res.success
    assert res.warnings == []


def test_vnc_none_auth_rfb38():
    conv = scripted(b"RFB 003.008\n", bytes([2, 2, 1]))
    res = exploits.check_vnc_no_auth("h", converse=conv)
    assert conv.seen[1] == b"RFB 003.008\n"
    assert res.success
    assert res.severity == Severity.CRITICAL


def test_vnc_password_only():
    conv = scripted(b"RFB 003.008\n", bytes([1, 2]))
    assert not exploits.check_vnc_no_auth("h", converse=conv).success


def test_vnc_rfb33_uint32_type():
    assert exploits.vnc_offers_no_auth(b"RFB 003.003\n", struct.pack(">I", 1))
    assert not exploits.vnc_offers_no_auth(b"RFB 003.003\n", struct.pack(">I", 2))


def test_run_exploit_checks_by_port(monkeypatch):
    monkeypatch.setattr(raw_tcp, "converse", scripted(b"SSH-2.0-OpenSSH_9.6\r\n"))
    results = exploits.run_exploit_checks("h", 22)
    assert [r.exploit_name for r in results] == ["ssh_version"]
    assert exploits.run_exploit_checks("h", 80) == []
