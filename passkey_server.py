"""Command line interface for the passkeyflow WebAuthn demo service."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from passkeyflow.config import Settings
from passkeyflow.errors import FlowError, NotFound
from passkeyflow.store import UserRecordStore


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--data-dir",
        help="Directory holding the user records (default: data, or PASSKEYFLOW_DATA_DIR)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port the server starts on")
    serve_parser.add_argument("--origin", help="Origin used in verification")
    serve_parser.add_argument("--timeout", type=int, help="Time till auth timeout in ms")

    show_parser = subparsers.add_parser("show-user", help="Print a stored user record")
    show_parser.add_argument("name", help="User name the record is stored under")

    return parser.parse_args(argv)


def load_settings(namespace: argparse.Namespace) -> Settings:
    return Settings.from_env().with_overrides(
        data_dir=namespace.data_dir,
        origin=getattr(namespace, "origin", None),
        timeout=getattr(namespace, "timeout", None),
    )


def main(argv: list[str] | None = None) -> int:
    namespace = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=namespace.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(namespace)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    if namespace.command == "serve":
        import uvicorn

        from passkeyflow.server import create_app

        app = create_app(settings)
        uvicorn.run(app, host=namespace.host, port=namespace.port)
        return 0

    if namespace.command == "show-user":
        try:
            record = UserRecordStore(settings.data_dir).read(namespace.name)
        except NotFound:
            print(f"Unknown user '{namespace.name}'", file=sys.stderr)
            return 1
        except FlowError as exc:
            print(f"Cannot read record: {exc}", file=sys.stderr)
            return 1
        print(json.dumps(record.to_dict(), indent=2))
        return 0

    raise RuntimeError("Unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
