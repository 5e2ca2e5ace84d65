from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

import uvicorn

from consys.advisory.backends import build_backend
from consys.analysis.health import build_health_report
from consys.collectors.snapshot import collect_snapshot
from consys.core.config import ConfigError, Settings, load_advisory_config, load_settings
from consys.core.logging import setup_logging
from consys.storage.metrics_log import append_snapshot, read_history, write_last_snapshot

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="consys-monitor", add_help=True)
    parser.add_argument("--interval", type=int, default=None, help="Seconds between samples.")
    parser.add_argument("--log-path", type=Path, default=None, help="NDJSON metrics log.")
    parser.add_argument(
        "--history-size", type=int, default=None, help="Snapshots fed to each evaluation."
    )
    parser.add_argument("--host", default=None, help="Address the HTTP API binds to.")
    parser.add_argument("--port", type=int, default=None, help="Port the HTTP API binds to.")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Sample once, print the health report as JSON and exit.",
    )
    return parser.parse_args(argv)


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "interval_seconds": args.interval,
        "log_path": args.log_path.expanduser() if args.log_path else None,
        "history_size": args.history_size,
        "host": args.host,
        "port": args.port,
    }
    settings = dataclasses.replace(
        settings, **{k: v for k, v in overrides.items() if v is not None}
    )
    if settings.interval_seconds < 1:
        raise ConfigError("--interval must be at least 1 second")
    if settings.history_size < 1:
        raise ConfigError("--history-size must be at least 1")
    if not 0 <= settings.port <= 65535:
        raise ConfigError("--port must be in range 0..65535")
    return settings


def run_once(settings: Settings) -> dict:
    advisory_config = load_advisory_config()
    backend = build_backend(advisory_config)

    snapshot = collect_snapshot()
    try:
        append_snapshot(settings.log_path, snapshot)
        write_last_snapshot(settings.last_snapshot_path, snapshot)
    except OSError:
        logger.exception("Failed to persist snapshot to %s", settings.log_path)
    history = read_history(settings.log_path, settings.history_size) or [snapshot]
    report = build_health_report(snapshot, history, advisory_config, backend)
    return report.to_dict()


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = _parse_args(list(sys.argv[1:] if argv is None else argv))
    try:
        settings = _apply_overrides(load_settings(), args)
    except ConfigError as exc:
        print(f"consys-monitor: {exc}", file=sys.stderr)
        return 2

    if args.once:
        try:
            report = run_once(settings)
        except ConfigError as exc:
            print(f"consys-monitor: {exc}", file=sys.stderr)
            return 2
        print(json.dumps(report, indent=2, ensure_ascii=False))
        return 0

    from consys.main import create_app

    try:
        app = create_app(settings)
    except ConfigError as exc:
        print(f"consys-monitor: {exc}", file=sys.stderr)
        return 2

    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info", access_log=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
