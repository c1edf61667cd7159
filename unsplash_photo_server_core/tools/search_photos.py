"""Photo search MCP tool."""

from __future__ import annotations

import sys
from typing import Annotated, Any, Callable, Mapping, Optional

from mcp.types import CallToolResult  # type: ignore[import]
from pydantic import Field  # type: ignore[import]

from ..client import UnsplashClient
from ..errors import PhotoServerError, render_error
from ..formatting import error_envelope, format_search_result, success_envelope
from ..query import ALLOWED_COLORS, ALLOWED_ORDER_BY, ALLOWED_ORIENTATIONS, normalize_search_args


TOOL_NAME = "search_photos"


async def dispatch_search(
    arguments: Optional[Mapping[str, Any]],
    search_client: Optional[UnsplashClient],
) -> CallToolResult:
    """Normalize ``arguments``, run the search and wrap the outcome.

    Every failure ends up inside the returned envelope with ``isError`` set;
    nothing raised here reaches the transport.
    """

    if search_client is None:
        return error_envelope("Error: Unsplash client is not initialized. Check server logs for details.")

    try:
        query = normalize_search_args(arguments)
        result = await search_client.search_photos(query)
    except PhotoServerError as exc:
        message = render_error(exc)
        print(f"{TOOL_NAME} failed: {message}", file=sys.stderr)
        return error_envelope(message)
    except Exception as exc:
        print(f"Unexpected error in {TOOL_NAME}: {exc!r}", file=sys.stderr)
        return error_envelope(render_error(exc))

    return success_envelope(format_search_result(result))


def register_search_photos_tool(mcp, get_search_client) -> Callable:
    """Register the photo search tool on the provided MCP instance."""

    @mcp.tool(
        name=TOOL_NAME,
        title="Search Unsplash Photos",
        description="Search for photos on Unsplash using various filters",
    )
    async def search_photos(
        query: Annotated[Any, Field(description="Search keyword")],
        page: Annotated[
            Optional[Any],
            Field(description="Page number (1-based). Default: 1"),
        ] = None,
        per_page: Annotated[
            Optional[Any],
            Field(description="Results per page (1-30). Default: 10"),
        ] = None,
        order_by: Annotated[
            Optional[Any],
            Field(
                description="Sort method. Default: relevant",
                examples=list(ALLOWED_ORDER_BY),
            ),
        ] = None,
        color: Annotated[
            Optional[Any],
            Field(
                description=f"Color filter, one of: {', '.join(ALLOWED_COLORS)}",
                examples=["black_and_white", "blue"],
            ),
        ] = None,
        orientation: Annotated[
            Optional[Any],
            Field(
                description="Orientation filter",
                examples=list(ALLOWED_ORIENTATIONS),
            ),
        ] = None,
    ) -> CallToolResult:
        """Search Unsplash photos.

        Optional fields accept any JSON value; unusable ones fall back to
        defaults in the normalizer instead of failing argument validation.
        """

        print(
            f"Tool called: {TOOL_NAME}(query={query!r}, page={page!r}, per_page={per_page!r}, "
            f"order_by={order_by!r}, color={color!r}, orientation={orientation!r})",
            file=sys.stderr,
        )
        arguments = {
            "query": query,
            "page": page,
            "per_page": per_page,
            "order_by": order_by,
            "color": color,
            "orientation": orientation,
        }
        return await dispatch_search(arguments, get_search_client())

    return search_photos


__all__ = ["TOOL_NAME", "dispatch_search", "register_search_photos_tool"]
