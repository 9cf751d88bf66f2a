import json
import sqlite3

import pytest

import cli
from vgr import db
from vgr.settings import Settings


def test_flags_override_environment_settings(monkeypatch):
    captured = {}
    real_build = cli.build_settings

    def capture(args, base=Settings(vpn_container="gluetun", db_path="")):
        captured["cfg"] = real_build(args, base)
        return captured["cfg"]

    monkeypatch.setattr(cli, "build_settings", capture)
    monkeypatch.setattr(cli, "docker_available", lambda: False)

    rc = cli.main(["--site-url", "https://media.example.test", "--max-retry-count", "5", "--no-diagnostics", "run"])

    assert rc == 2
    cfg = captured["cfg"]
    assert cfg.vpn_container == "gluetun"
    assert cfg.site_url == "https://media.example.test"
    assert cfg.max_retry_count == 5
    assert cfg.enable_diagnostics is False


def test_invalid_configuration_exits_2(capsys):
    assert cli.main(["--max-retry-count", "0", "run"]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_events_and_runs_read_history(tmp_path, capsys):
    path = str(tmp_path / "vgr.db")
    db.init_db(path)
    db.log_event(path, "info", "Script starting...")
    db.record_run(path, "2026-03-14T09:00:00Z", "resolved", 1, ["svcA"])

    assert cli.main(["--db-path", path, "events", "--limit", "5"]) == 0
    events = json.loads(capsys.readouterr().out)
    assert events[0]["message"] == "Script starting..."

    assert cli.main(["--db-path", path, "runs"]) == 0
    runs = json.loads(capsys.readouterr().out)
    assert runs[0]["outcome"] == "resolved"


def test_run_exit_code_follows_outcome(monkeypatch, tmp_path):
    class _Report:
        ok = False

    class _Orchestrator:
        def __init__(self, cfg, runtime, log):
            pass

        def run(self):
            return _Report()

    monkeypatch.setattr(cli, "docker_available", lambda: True)
    monkeypatch.setattr(cli, "DockerRuntime", lambda: object())
    monkeypatch.setattr(cli, "RecoveryOrchestrator", _Orchestrator)

    rc = cli.main(["--db-path", "", "--log-dir", str(tmp_path), "run"])
    assert rc == 1

    _Report.ok = True
    assert cli.main(["--db-path", "", "--log-dir", str(tmp_path), "run"]) == 0


@pytest.mark.parametrize("url", ["http://[::1", "ftp://media.example.test", "not a url"])
def test_bad_site_url_exits_2(url, capsys):
    assert cli.main(["--site-url", url, "run"]) == 2
    assert "Invalid configuration" in capsys.readouterr().err


def test_history_failure_keeps_run_exit_code(monkeypatch, tmp_path, capsys):
    class _Report:
        ok = True
        started_at = "2026-03-14T09:00:00Z"
        attempts = 0
        members = []

        class outcome:
            value = "resolved"

    class _Orchestrator:
        def __init__(self, cfg, runtime, log):
            pass

        def run(self):
            return _Report()

    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(cli, "docker_available", lambda: True)
    monkeypatch.setattr(cli, "DockerRuntime", lambda: object())
    monkeypatch.setattr(cli, "RecoveryOrchestrator", _Orchestrator)
    monkeypatch.setattr(cli.db, "record_run", locked)

    rc = cli.main(["--db-path", str(tmp_path / "vgr.db"), "--log-dir", str(tmp_path), "run"])

    assert rc == 0
    assert "Could not record run history: database is locked" in capsys.readouterr().err
