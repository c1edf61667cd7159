"""Unsplash search client wrapper used by the MCP tools."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import anyio
import httpx  # type: ignore[import]

from .errors import UpstreamError, UpstreamTimeout, UpstreamUnreachable
from .query import NormalizedQuery
from .utils import _coalesce, _try_parse_float


UNSPLASH_SEARCH_ENDPOINT = "https://api.unsplash.com/search/photos"
DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass
class PhotoSummary:
    id: str
    description: Optional[str]
    alt_description: Optional[str]
    urls: Dict[str, str]
    width: Optional[int]
    height: Optional[int]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PhotoSummary":
        urls = payload.get("urls") or {}
        return cls(
            id=str(payload.get("id", "")),
            description=payload.get("description"),
            alt_description=payload.get("alt_description"),
            urls={str(name): str(url) for name, url in urls.items()} if isinstance(urls, Mapping) else {},
            width=payload.get("width"),
            height=payload.get("height"),
        )


@dataclass
class SearchResult:
    query: NormalizedQuery
    total: int
    total_pages: int
    results: List[PhotoSummary] = field(default_factory=list)
    retrieved_at: str = ""


class UnsplashClient:
    """Client for the Unsplash photo search endpoint.

    One instance is shared by every session; it keeps no per-call state so
    any number of searches may be in flight at once.
    """

    def __init__(
        self,
        access_key: Optional[str] = None,
        *,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client, reading unset options from the environment."""

        print("Initializing Unsplash client...", file=sys.stderr)
        key = _coalesce(access_key, os.getenv("UNSPLASH_ACCESS_KEY"))
        if not key or not str(key).strip():
            error_msg = "Missing environment variables: UNSPLASH_ACCESS_KEY"
            print(f"Error: {error_msg}", file=sys.stderr)
            raise ValueError(error_msg)

        self.endpoint = _coalesce(endpoint, os.getenv("UNSPLASH_API_URL")) or UNSPLASH_SEARCH_ENDPOINT
        self.timeout = float(
            _coalesce(
                timeout,
                _try_parse_float(os.getenv("UNSPLASH_TIMEOUT_SECONDS")),
                DEFAULT_TIMEOUT_SECONDS,
            )
        )
        self._headers = {
            "Accept-Version": "v1",
            "Authorization": f"Client-ID {str(key).strip()}",
        }
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)
        print(f"Unsplash client ready for {self.endpoint}", file=sys.stderr)

    async def search_photos(self, query: NormalizedQuery) -> SearchResult:
        """Run a single search against Unsplash.

        Raises:
            UpstreamTimeout: no answer within ``self.timeout`` seconds.
            UpstreamError: Unsplash answered with a non-success status or an
                unreadable body.
            UpstreamUnreachable: the request failed at the network level.
        """

        params = query.to_params()
        print(f"Searching Unsplash with params: {params}", file=sys.stderr)

        try:
            with anyio.fail_after(self.timeout):
                response = await self._http.get(
                    self.endpoint,
                    params=params,
                    headers=self._headers,
                    timeout=self.timeout,
                )
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise UpstreamTimeout(self.timeout) from exc
        except httpx.RequestError as exc:
            raise UpstreamUnreachable(str(exc) or exc.__class__.__name__) from exc

        if not response.is_success:
            body = response.text or response.reason_phrase
            raise UpstreamError(response.status_code, body)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(response.status_code, "Invalid JSON in response body") from exc
        if not isinstance(data, dict):
            raise UpstreamError(response.status_code, "Unexpected response payload")

        photos = [PhotoSummary.from_payload(item) for item in data.get("results") or [] if isinstance(item, Mapping)]
        print(f"Unsplash returned {len(photos)} photos (total {data.get('total')})", file=sys.stderr)

        return SearchResult(
            query=query,
            total=int(data.get("total") or 0),
            total_pages=int(data.get("total_pages") or 0),
            results=photos,
            retrieved_at=datetime.now(timezone.utc).isoformat(),
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "PhotoSummary",
    "SearchResult",
    "UNSPLASH_SEARCH_ENDPOINT",
    "UnsplashClient",
]
