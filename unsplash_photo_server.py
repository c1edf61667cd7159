"""Unsplash MCP Server public entrypoint.

The bulk of the implementation lives under ``unsplash_photo_server_core``.
This module re-exports the public API that the tests and external tooling
rely on, owns the process-wide search client and parses the command line.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, Optional

from mcp.types import CallToolResult  # type: ignore[import]

from unsplash_photo_server_core import (
    NormalizedQuery,
    ServerSettings,
    UnsplashClient,
    create_mcp_server,
    dispatch_search,
    format_search_result,
    initialize_runtime,
    normalize_search_args,
    run_server,
    _coerce_int,
    _match_choice,
    _try_parse_int,
)
from unsplash_photo_server_core.runtime import MODES


USAGE = """Usage: unsplash-mcp-server [stdio|server] [--host HOST] [--port PORT]

Modes:
  stdio   Run the MCP server over stdin/stdout (default)
  server  Run an HTTP server exposing the MCP tool

Environment Variables:
  UNSPLASH_ACCESS_KEY  Your Unsplash API access key (required)
  HOST                 Host to bind to (default: 127.0.0.1)
  PORT                 Port to listen on (default: 8080)
"""


settings, search_client = initialize_runtime()


def _get_search_client() -> Optional[UnsplashClient]:
    return globals().get("search_client")


mcp = create_mcp_server(_get_search_client)


async def search_photos(**arguments: Any) -> CallToolResult:
    """Invoke the tool in-process with raw arguments."""

    return await dispatch_search(arguments, _get_search_client())


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="unsplash-mcp-server",
        description="MCP server exposing Unsplash photo search.",
        usage=USAGE,
    )
    parser.add_argument("mode", nargs="?", default=None, help="stdio or server")
    parser.add_argument("--host", help="Host to bind to in server mode.")
    parser.add_argument("--port", type=int, help="Port to listen on in server mode.")
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace, base: ServerSettings) -> ServerSettings:
    mode = (args.mode or base.transport or "stdio").strip().lower()
    if mode not in MODES:
        raise ValueError(f"Unknown mode: {mode}")
    return ServerSettings(
        host=args.host or base.host,
        port=args.port or base.port,
        transport=mode,
        session_idle_timeout=base.session_idle_timeout,
        json_response=base.json_response,
        log_requests=base.log_requests,
        log_headers=base.log_headers,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point used when running the module as a script."""

    args = parse_args(argv)
    try:
        resolved = resolve_settings(args, settings)
    except ValueError as exc:
        print(f"{exc}\n", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        return 2

    run_server(resolved, _get_search_client)
    return 0


__all__ = [
    "NormalizedQuery",
    "UnsplashClient",
    "USAGE",
    "main",
    "mcp",
    "normalize_search_args",
    "format_search_result",
    "resolve_settings",
    "search_client",
    "search_photos",
    "settings",
    "_coerce_int",
    "_match_choice",
    "_try_parse_int",
]


if __name__ == "__main__":  # pragma: no cover - entrypoint behaviour
    raise SystemExit(main())
