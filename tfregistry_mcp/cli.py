"""Command line entry point that serves the registry tools over stdio."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import IO

import requests

from .handlers import init_tools
from .registry import new_registry_client
from .resources import register_resource_templates, register_resources
from .server import MCPServer, new_server
from .version import BUILD_DATE, GIT_COMMIT, VERSION, get_human_version

PROGRAM_NAME = "terraform-mcp-server"
SHORT_DESCRIPTION = "Terraform MCP Server"
LONG_DESCRIPTION = "A Terraform MCP server that handles various tools and resources."

_PACKAGE_LOGGER = "tfregistry_mcp"


class _UsageError(Exception):
    """Raised instead of exiting when the command line cannot be parsed."""


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise _UsageError(message)


def version_text() -> str:
    """Return the text shown for ``--version``."""
    return (
        f"{SHORT_DESCRIPTION}\n"
        f"Version: {get_human_version()}\n"
        f"Commit: {GIT_COMMIT}\n"
        f"Build Date: {BUILD_DATE}"
    )


def init_logger(out_path: str | None = None) -> logging.Logger:
    """Configure the package logger, writing to ``out_path`` at debug level if given.

    Without a path, messages of level info and above go to standard error.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not out_path:
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        logger.setLevel(logging.INFO)
    else:
        try:
            handler = logging.FileHandler(out_path, mode="a", encoding="utf-8")
        except OSError as exc:
            raise OSError(f"failed to open log file: {exc}") from exc
        logger.setLevel(logging.DEBUG)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def build_server(session: requests.Session | None = None) -> MCPServer:
    """Create the server with every registry tool, resource and template added."""
    if session is None:
        session = new_registry_client()
    server = new_server(VERSION)
    init_tools(server, session)
    register_resources(server, session)
    register_resource_templates(server, session)
    return server


@contextmanager
def _terminate_on_sigterm() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise_interrupt(signum: int, frame: object) -> None:
        raise KeyboardInterrupt

    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def run_stdio_server(
    logger: logging.Logger,
    reader: IO[str] | None = None,
    writer: IO[str] | None = None,
) -> None:
    """Serve JSON-RPC messages from ``reader`` to ``writer`` until input ends.

    Defaults to standard input and output. An interrupt or SIGTERM shuts the
    server down quietly; any other failure is raised as ``RuntimeError``.
    """
    server = build_server()
    in_stream = sys.stdin if reader is None else reader
    out_stream = sys.stdout if writer is None else writer

    print("HCP Terraform MCP Server running on stdio", file=sys.stderr)
    with _terminate_on_sigterm():
        try:
            server.serve(in_stream, out_stream)
        except KeyboardInterrupt:
            logger.info("shutting down server...")
        except Exception as exc:
            raise RuntimeError(f"error running server: {exc}") from exc


def _build_parser() -> _Parser:
    parser = _Parser(prog=PROGRAM_NAME, description=LONG_DESCRIPTION)
    parser.add_argument("--version", action="store_true", help="show the version")
    parser.add_argument("--log-file", default="", help="Path to log file")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser(
        "stdio",
        help="Start stdio server",
        description=(
            "Start a server that communicates via standard input/output streams "
            "using JSON-RPC messages."
        ),
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return its exit status."""
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except _UsageError as exc:
        print(f"Error: {exc}")
        return 1

    if args.version:
        print(version_text())
        return 0

    if args.command != "stdio":
        parser.print_help()
        return 0

    try:
        logger = init_logger(args.log_file)
    except OSError as exc:
        print(f"Failed to initialize logger: {exc}", file=sys.stderr)
        return 1

    try:
        run_stdio_server(logger)
    except RuntimeError as exc:
        print(f"failed to run stdio server: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())