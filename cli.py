from __future__ import annotations

import argparse
import dataclasses
import json
import sqlite3
import sys

from vgr import db
from vgr.discovery import discover_members
from vgr.docker_ops import DockerRuntime, docker_available
from vgr.health import check_endpoint
from vgr.logsink import DailyLogSink
from vgr.recovery import RecoveryOrchestrator
from vgr.settings import Settings, settings as default_settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _add_settings_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--vpn-container", help="Name of the VPN client container")
    p.add_argument("--site-url", help="URL served by a sub-container through the VPN")
    p.add_argument("--member-label", help="key=value label marking sub-containers")
    p.add_argument("--max-wait-s", type=int, help="Max seconds to wait for a container to start")
    p.add_argument("--wait-interval-s", type=int, help="Seconds between container status checks")
    p.add_argument("--max-retry-count", type=int, help="Recovery cycles before giving up")
    p.add_argument("--sleep-s", type=int, help="Seconds to wait after recovery before re-checking the site")
    p.add_argument("--reachability-targets", help="Comma separated hosts pinged from inside the VPN container")
    p.add_argument("--ipinfo-url", help="IP info service queried from inside the VPN container")
    p.add_argument("--no-diagnostics", action="store_true", help="Skip the external IP lookup")
    p.add_argument("--log-dir")
    p.add_argument("--log-file-prefix")
    p.add_argument("--db-path", help="SQLite history file ('' disables)")


def build_settings(args: argparse.Namespace, base: Settings = default_settings) -> Settings:
    """Apply command line overrides on top of the environment settings."""
    overrides = {}
    for f in dataclasses.fields(Settings):
        value = getattr(args, f.name, None)
        if value is not None:
            overrides[f.name] = value
    if getattr(args, "no_diagnostics", False):
        overrides["enable_diagnostics"] = False
    return dataclasses.replace(base, **overrides)


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="VPN Gateway Reconciler")
    _add_settings_args(p)
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("run", help="Check the site and recover the VPN container and its sub-containers")
    sub.add_parser("probe", help="Check the site once")
    sub.add_parser("members", help="List sub-containers carrying the membership label")

    s_ev = sub.add_parser("events", help="Show logged events")
    s_ev.add_argument("--limit", type=int, default=20)

    s_runs = sub.add_parser("runs", help="Show past runs")
    s_runs.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    try:
        cfg = build_settings(args)
        cfg.validate()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.cmd == "probe":
        res = check_endpoint(cfg.site_url)
        _print({"url": cfg.site_url, "status": res.status.value, "code": res.code, "detail": res.detail})
        return 0 if res.is_up else 1

    if args.cmd in {"events", "runs"}:
        if not cfg.db_path:
            print("History is disabled (empty db path).", file=sys.stderr)
            return 2
        db.init_db(cfg.db_path)
        if args.cmd == "events":
            _print(db.latest_events(cfg.db_path, limit=args.limit))
        else:
            _print([dataclasses.asdict(r) for r in db.latest_runs(cfg.db_path, limit=args.limit)])
        return 0

    if not docker_available():
        print("Docker is not available. Start the docker daemon and try again.", file=sys.stderr)
        return 2
    runtime = DockerRuntime()

    if args.cmd == "members":
        _print(discover_members(runtime, cfg.member_label))
        return 0

    if args.cmd == "run":
        log = DailyLogSink(cfg.log_dir, cfg.log_file_prefix, db_path=cfg.db_path)
        report = RecoveryOrchestrator(cfg, runtime, log).run()
        if cfg.db_path:
            try:
                db.init_db(cfg.db_path)
                db.record_run(cfg.db_path, report.started_at, report.outcome.value, report.attempts, report.members)
            except (OSError, sqlite3.Error) as e:
                print(f"Could not record run history: {e}", file=sys.stderr)
        return 0 if report.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
