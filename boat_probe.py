#!/usr/bin/env python3
import argparse
import json
import os
from dataclasses import replace
from typing import List, Optional

from config import Settings
from display import DisplayBoard, render_values
from logging_setup import setup_logging


def _print_record(record: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(record, indent=2, sort_keys=True, default=str))
        return
    values = render_values(record)
    width = max((len(k) for k in values), default=0)
    for k in sorted(values):
        print(f"  {k.ljust(width)} = {values[k]}")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Run one boat telemetry refresh (local device, else AirVantage) and print it")
    ap.add_argument("--device-host", default=None, help="On-boat device host (default: DEVICE_HOST or 127.0.0.1)")
    ap.add_argument("--device-port", type=int, default=0, help="On-boat device port (default: DEVICE_PORT or 9001)")
    ap.add_argument("--auth-file", default=None, help="AirVantage login/password file (default: AV_AUTH_FILE)")
    ap.add_argument("--no-cloud", action="store_true", help="Only try the local device")
    ap.add_argument("--json", action="store_true", help="Print the display record as JSON")
    ap.add_argument("--debug", action="store_true", help="Verbose logging")
    args = ap.parse_args(argv)

    os.environ.setdefault("LOG_TO_FILE", "0")
    setup_logging("probe", debug_default=bool(args.debug))

    settings = Settings.from_env()
    if args.device_port and not (0 < args.device_port < 65536):
        print(f"[error] --device-port out of range: {args.device_port}")
        return 2
    if args.device_host:
        settings = replace(settings, device_host=args.device_host)
    if args.device_port:
        settings = replace(settings, device_port=int(args.device_port))
    if args.auth_file:
        settings = replace(settings, av_auth_file=args.auth_file)
    if args.no_cloud:
        settings = replace(settings, av_system="")

    # Import after logging is configured so module loggers pick it up.
    import dashboard

    board = DisplayBoard()
    controller = dashboard.build_controller(settings, board)

    print(
        f"[probe] device={settings.device_host}:{settings.device_port} "
        f"cloud={settings.av_server if settings.cloud_configured else 'off'}"
    )

    record = controller.refresh()
    if record is None:
        snap = board.snapshot()
        print(f"[probe] no data: {snap['error'] or snap['status']}")
        return 1

    print(f"[probe] origin={record.get('origin')}")
    _print_record(record, as_json=bool(args.json))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
