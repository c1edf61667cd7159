"""Core implementation for the Unsplash MCP server.

This package houses the supporting modules that the public
`unsplash_photo_server` wrapper re-exports, keeping the entrypoint
lightweight while the normalizer, upstream client, tool dispatcher and
session-aware HTTP transport each live in their own module.
"""

from . import runtime
from .client import PhotoSummary, SearchResult, UnsplashClient
from .errors import (
    PhotoServerError,
    SessionNotFound,
    TransportError,
    UpstreamError,
    UpstreamFailure,
    UpstreamTimeout,
    UpstreamUnreachable,
    ValidationError,
    render_error,
)
from .formatting import error_envelope, format_search_result, success_envelope
from .query import NormalizedQuery, normalize_search_args
from .runtime import (
    ServerSettings,
    build_router,
    create_mcp_server,
    initialize_runtime,
    run_server,
)
from .sessions import Session, SessionClosed, SessionRegistry
from .tools.search_photos import dispatch_search, register_search_photos_tool
from .transport import TransportRouter, build_http_app
from .utils import _coalesce, _coerce_int, _match_choice, _try_parse_float, _try_parse_int

__all__ = [
    "NormalizedQuery",
    "PhotoServerError",
    "PhotoSummary",
    "SearchResult",
    "ServerSettings",
    "Session",
    "SessionClosed",
    "SessionNotFound",
    "SessionRegistry",
    "TransportError",
    "TransportRouter",
    "UnsplashClient",
    "UpstreamError",
    "UpstreamFailure",
    "UpstreamTimeout",
    "UpstreamUnreachable",
    "ValidationError",
    "build_http_app",
    "build_router",
    "create_mcp_server",
    "dispatch_search",
    "error_envelope",
    "format_search_result",
    "initialize_runtime",
    "normalize_search_args",
    "register_search_photos_tool",
    "render_error",
    "run_server",
    "success_envelope",
    "_coalesce",
    "_coerce_int",
    "_match_choice",
    "_try_parse_float",
    "_try_parse_int",
    "runtime",
]
