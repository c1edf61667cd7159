"""Tool registration helpers for the Unsplash MCP server."""

from .search_photos import TOOL_NAME, dispatch_search, register_search_photos_tool

__all__ = [
    "TOOL_NAME",
    "dispatch_search",
    "register_search_photos_tool",
]
