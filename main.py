"""Entry point for running the speedtest backend."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from speedtest_backend import bootstrap
from speedtest_backend.db import StoreOpenError
from speedtest_backend.telemetry.store import RecordNotFound, StoreError

LOGGER = logging.getLogger("speedtest_backend.main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Speedtest backend")
    parser.add_argument("--config", help="Path to config.yaml", default="config.yaml")
    parser.add_argument("--host", default=None, help="Override web server host")
    parser.add_argument("--port", type=int, default=None, help="Override web server port")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--dump", action="store_true", help="Print every stored record and exit")
    parser.add_argument("--show", metavar="ID", default=None, help="Print one stored record and exit")
    return parser.parse_args(argv)


def _run_diagnostics(context, args: argparse.Namespace) -> int:
    if context.store is None:
        print("Telemetry storage is disabled", file=sys.stderr)
        return 1

    try:
        if args.show:
            records = [context.store.get_by_id(args.show)]
        else:
            records = context.store.get_all()
    except RecordNotFound as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except StoreError as exc:
        LOGGER.error("Failed to read telemetry: %s", exc)
        return 1

    for record in records:
        print(json.dumps(record.to_dict()))
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        context = bootstrap(args.config)
    except StoreOpenError as exc:
        LOGGER.critical("%s", exc)
        return 1

    if args.dump or args.show:
        return _run_diagnostics(context, args)

    host = args.host or context.config.server.host
    port = args.port or context.config.server.port
    context.web_app.run(host=host, port=port, debug=args.debug, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
