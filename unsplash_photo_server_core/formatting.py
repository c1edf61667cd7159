"""Utilities for serializing Unsplash search results for MCP responses."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict

from mcp.types import CallToolResult, TextContent  # type: ignore[import]

from .client import SearchResult


def format_search_result(result: SearchResult) -> Dict[str, Any]:
    """Return the search result as a JSON-friendly structure."""

    payload = result.query.to_dict()
    payload.update(
        {
            "total": result.total,
            "total_pages": result.total_pages,
            "results": [asdict(photo) for photo in result.results],
            "retrieved_at": result.retrieved_at,
        }
    )
    return payload


def success_envelope(payload: Dict[str, Any]) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2))],
        isError=False,
    )


def error_envelope(message: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=message)], isError=True)


__all__ = ["error_envelope", "format_search_result", "success_envelope"]
