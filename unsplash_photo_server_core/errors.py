"""Failure variants raised across the Unsplash MCP server and their rendering."""

from __future__ import annotations

from typing import Optional


MAX_ERROR_BODY_LENGTH = 512


class PhotoServerError(Exception):
    """Base class for every failure the server knows how to render."""


class ValidationError(PhotoServerError):
    """Tool input that cannot be repaired by substituting a default."""


class UpstreamFailure(PhotoServerError):
    """Base class for failures of the outbound Unsplash call."""


class UpstreamTimeout(UpstreamFailure):
    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        super().__init__("Request to Unsplash timed out")


class UpstreamError(UpstreamFailure):
    """Unsplash answered with a non-success status code."""

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body_excerpt = _excerpt(body)
        super().__init__(f"Unsplash API error ({status_code}): {self.body_excerpt}")


class UpstreamUnreachable(UpstreamFailure):
    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Request to Unsplash failed: {reason}")


class TransportError(PhotoServerError):
    """Routing failure at the HTTP transport, before any tool dispatch."""


class SessionNotFound(TransportError):
    def __init__(self, session_id: Optional[str]) -> None:
        self.session_id = session_id
        super().__init__("Invalid or missing session ID")


def _excerpt(body: str) -> str:
    if len(body) > MAX_ERROR_BODY_LENGTH:
        return body[:MAX_ERROR_BODY_LENGTH] + "..."
    return body


def render_error(exc: BaseException) -> str:
    """Map a failure variant to the text shown to the MCP client."""

    if isinstance(exc, ValidationError):
        return f"Error: {exc}"
    if isinstance(exc, UpstreamTimeout):
        return "Error: Request to Unsplash timed out"
    if isinstance(exc, UpstreamError):
        return f"Error: Unsplash API error ({exc.status_code}): {exc.body_excerpt}"
    if isinstance(exc, UpstreamUnreachable):
        return f"Error: Request to Unsplash failed: {exc.reason}"
    if isinstance(exc, SessionNotFound):
        return str(exc)
    return "Error: Unknown error occurred"


__all__ = [
    "MAX_ERROR_BODY_LENGTH",
    "PhotoServerError",
    "SessionNotFound",
    "TransportError",
    "UpstreamError",
    "UpstreamFailure",
    "UpstreamTimeout",
    "UpstreamUnreachable",
    "ValidationError",
    "render_error",
]
