"""pgfs CLI - command-line access to the file store.

Usage:
    python -m pgfs migrate up|down
    python -m pgfs put PATH [--name UUID] [--content-type TYPE] [--attr KEY=VALUE ...]
    python -m pgfs get NAME [--output PATH]
    python -m pgfs stat NAME
    python -m pgfs ls
    python -m pgfs rm NAME
    python -m pgfs serve [--host HOST] [--port PORT]

Every command except get (without --output) and serve prints JSON to stdout.
Each command runs in its own transaction, committed on success.

Exit codes:
    0: Success
    1: File system error / configuration error / internal error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from contextlib import nullcontext
from typing import Any, BinaryIO

from pgfs.persistence.db import DatabaseConfigError, filesystem_session
from pgfs.storage.config import ConfigError
from pgfs.storage.errors import FileSystemError, InvalidArgumentError
from pgfs.storage.identifiers import generate_name
from pgfs.storage.models import Capability, supports

logger = logging.getLogger(__name__)


def _output_json(data: Any) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _error_result(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _parse_attributes(pairs: list[str] | None) -> dict[str, str] | None:
    """Parse repeated KEY=VALUE options."""
    if not pairs:
        return None
    attributes: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid attribute (expected KEY=VALUE): {pair}")
        attributes[key] = value
    return attributes


def _copy_into(source: BinaryIO, writer: Any, chunk_size: int) -> None:
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        writer.write(chunk)


def cmd_migrate(args: argparse.Namespace) -> int:
    """Apply or revert the metadata schema through Alembic."""
    from pgfs.persistence.migrations import run_downgrade, run_upgrade

    if args.direction == "up":
        run_upgrade()
    else:
        run_downgrade()
    _output_json({"migrate": args.direction, "status": "ok"})
    return 0


def cmd_put(args: argparse.Namespace) -> int:
    """Store a local file (or stdin with "-")."""
    name = args.name or generate_name()
    attributes = _parse_attributes(args.attr)

    source = nullcontext(sys.stdin.buffer) if args.path == "-" else open(args.path, "rb")
    with source as stream, filesystem_session() as fs:
        with fs.create(name, args.content_type, attributes) as writer:
            _copy_into(stream, writer, fs.config.read_chunk_size)
            info = writer.close()

    _output_json(info.to_dict())
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    """Write a file's content to --output or stdout."""
    with filesystem_session() as fs:
        with fs.open(args.name) as handle:
            if not supports(handle, Capability.READABLE):
                raise InvalidArgumentError(
                    message="Not a regular file", name=args.name, operation="read"
                )
            if args.output:
                with open(args.output, "wb") as target:
                    for chunk in handle.iter_chunks():
                        target.write(chunk)
            else:
                for chunk in handle.iter_chunks():
                    sys.stdout.buffer.write(chunk)
                sys.stdout.buffer.flush()
    return 0


def cmd_stat(args: argparse.Namespace) -> int:
    """Print one file's metadata (the root with an empty name)."""
    with filesystem_session() as fs:
        info = fs.stat(args.name)
    _output_json(info.to_dict())
    return 0


def cmd_ls(args: argparse.Namespace) -> int:
    """Print every file's metadata, ordered by id."""
    with filesystem_session() as fs:
        entries = fs.list()
    _output_json([entry.to_dict() for entry in entries])
    return 0


def cmd_rm(args: argparse.Namespace) -> int:
    """Remove one file."""
    with filesystem_session() as fs:
        fs.remove(args.name)
    _output_json({"removed": args.name})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API."""
    import uvicorn

    from pgfs.api.main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")
    return 0


COMMANDS: dict[str, Any] = {
    "migrate": cmd_migrate,
    "put": cmd_put,
    "get": cmd_get,
    "stat": cmd_stat,
    "ls": cmd_ls,
    "rm": cmd_rm,
    "serve": cmd_serve,
}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="pgfs",
        description="pgfs - write-once file store on PostgreSQL large objects",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    migrate_parser = subparsers.add_parser("migrate", help="Apply or revert the schema")
    migrate_parser.add_argument("direction", choices=["up", "down"])

    put_parser = subparsers.add_parser("put", help="Store a file")
    put_parser.add_argument("path", metavar="PATH", help='Local file to store ("-" for stdin)')
    put_parser.add_argument("--name", metavar="UUID", help="Name to store under (default: new UUID)")
    put_parser.add_argument(
        "--content-type",
        default="",
        metavar="TYPE",
        help="Content type (detected from the content if omitted)",
    )
    put_parser.add_argument(
        "--attr",
        action="append",
        metavar="KEY=VALUE",
        help="Custom attribute (repeatable)",
    )

    get_parser = subparsers.add_parser("get", help="Retrieve a file's content")
    get_parser.add_argument("name", metavar="NAME")
    get_parser.add_argument("--output", "-o", metavar="PATH", help="Write to PATH instead of stdout")

    stat_parser = subparsers.add_parser("stat", help="Show a file's metadata")
    stat_parser.add_argument("name", metavar="NAME", nargs="?", default="")

    subparsers.add_parser("ls", help="List every file")

    rm_parser = subparsers.add_parser("rm", help="Remove a file")
    rm_parser.add_argument("name", metavar="NAME")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: File system, configuration or internal error
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return int(COMMANDS[args.command](args))
    except FileSystemError as e:
        _output_json(_error_result(type(e).__name__, str(e)))
        return 1
    except (DatabaseConfigError, ConfigError, ValueError, OSError) as e:
        _output_json(_error_result("CONFIG_ERROR", str(e)))
        return 1
    except Exception as e:
        logger.exception("Unexpected error in command %s", args.command)
        _output_json(_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
