import json

from cli import main as cli
from core.config import Settings
from pipeline import orchestrator


def test_scan_prints_json(monkeypatch, capsys):
    monkeypatch.setattr(orchestrator, "get_settings", lambda: Settings())
    monkeypatch.setattr(orchestrator.l4_tcp, "tcp_connect", lambda h, p, t: p == 22)
    assert cli.main(["scan", "192.0.2.1", "-p", "22,23"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["open_ports"] == [22]


def test_bad_ports_exit_non_zero(capsys):
    assert cli.main(["scan", "192.0.2.1", "-p", "99999"]) == 2
    assert "error:" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert cli.main([]) == 1
