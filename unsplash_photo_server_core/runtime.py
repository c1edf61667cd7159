"""Runtime bootstrap for the Unsplash MCP server."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from dotenv import load_dotenv  # type: ignore[import]
from mcp.server.fastmcp import FastMCP  # type: ignore[import]
from mcp.server.lowlevel import Server  # type: ignore[import]

from .client import UnsplashClient
from .sessions import SessionRegistry
from .tools.search_photos import register_search_photos_tool
from .transport import TransportRouter, build_http_app
from .utils import _coalesce, _parse_bool, _try_parse_float, _try_parse_int


SERVER_NAME = "Unsplash MCP Server"
SERVICE_ID = "unsplash-mcp-server"
SERVER_VERSION = "1.0.0"

MODES = ("stdio", "server")


@dataclass
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 8080
    transport: str = "stdio"
    session_idle_timeout: float = 0.0
    json_response: bool = False
    log_requests: bool = True
    log_headers: bool = False

    @classmethod
    def from_env(cls) -> "ServerSettings":
        return cls(
            host=os.getenv("HOST") or cls.host,
            port=_coalesce(_try_parse_int(os.getenv("PORT")), cls.port),
            transport=(os.getenv("MCP_TRANSPORT") or cls.transport).strip().lower(),
            session_idle_timeout=_coalesce(
                _try_parse_float(os.getenv("MCP_SESSION_IDLE_TIMEOUT")), cls.session_idle_timeout
            ),
            json_response=_parse_bool(os.getenv("MCP_JSON_RESPONSE"), cls.json_response),
            log_requests=_parse_bool(os.getenv("MCP_LOG_REQUESTS"), cls.log_requests),
            log_headers=_parse_bool(os.getenv("MCP_LOG_HEADERS"), cls.log_headers),
        )


def create_mcp_server(get_search_client: Callable[[], Optional[UnsplashClient]]) -> FastMCP:
    """Build a FastMCP engine with ``search_photos`` registered when a client exists."""

    mcp = FastMCP(
        SERVER_NAME,
        instructions="Search Unsplash photos by keyword with optional sort, color and orientation filters.",
    )
    if get_search_client() is not None:
        register_search_photos_tool(mcp, get_search_client)
    return mcp


def initialize_runtime() -> Tuple[ServerSettings, Optional[UnsplashClient]]:
    """Load environment variables, read settings, and initialize the client."""

    print("Starting Unsplash MCP Server...", file=sys.stderr)
    load_dotenv()
    print("Environment variables loaded", file=sys.stderr)

    settings = ServerSettings.from_env()

    try:
        search_client: Optional[UnsplashClient] = UnsplashClient()
        print("Search client initialized successfully", file=sys.stderr)
    except ValueError:
        print(
            "Warning: UNSPLASH_ACCESS_KEY not found, search_photos tool will not be available",
            file=sys.stderr,
        )
        search_client = None

    return settings, search_client


def build_router(
    settings: ServerSettings,
    get_search_client: Callable[[], Optional[UnsplashClient]],
    registry: Optional[SessionRegistry] = None,
) -> TransportRouter:
    def server_factory() -> Server:
        # Each HTTP session gets its own engine; the low-level server drives the session streams.
        return create_mcp_server(get_search_client)._mcp_server

    return TransportRouter(
        registry if registry is not None else SessionRegistry(),
        server_factory,
        json_response=settings.json_response,
        idle_timeout=settings.session_idle_timeout,
    )


def _client_shutdown_hooks(get_search_client: Callable[[], Optional[UnsplashClient]]) -> list:
    search_client = get_search_client()
    return [search_client.aclose] if search_client is not None else []


def run_server(settings: ServerSettings, get_search_client: Callable[[], Optional[UnsplashClient]]) -> None:
    """Run the MCP server over stdio or the multi-session HTTP transport."""

    print("Starting MCP server run...", file=sys.stderr)
    if settings.transport == "server":
        import uvicorn  # type: ignore[import]

        router = build_router(settings, get_search_client)
        app = build_http_app(
            router,
            service=SERVICE_ID,
            version=SERVER_VERSION,
            log_requests=settings.log_requests,
            log_headers=settings.log_headers,
            shutdown_hooks=_client_shutdown_hooks(get_search_client),
        )
        print(f"Unsplash MCP server listening on http://{settings.host}:{settings.port}", file=sys.stderr)
        print(f"Health check available at http://{settings.host}:{settings.port}/health", file=sys.stderr)
        uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")
    else:
        print("Running MCP server over stdio", file=sys.stderr)
        create_mcp_server(get_search_client).run(transport="stdio")


__all__ = [
    "MODES",
    "SERVER_NAME",
    "SERVER_VERSION",
    "SERVICE_ID",
    "ServerSettings",
    "build_router",
    "create_mcp_server",
    "initialize_runtime",
    "run_server",
]
