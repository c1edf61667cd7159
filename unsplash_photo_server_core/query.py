"""Normalization of raw ``search_photos`` arguments into a bounded query.

Invalid optional input is coerced to its default instead of being rejected:
tool-calling models routinely send "LATEST", "1000" or "purple " and the
search should still run. The only input without a safe default is an empty
query text, which raises :class:`ValidationError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .errors import ValidationError
from .utils import _coerce_int, _match_choice


ALLOWED_ORDER_BY = ("relevant", "latest")
ALLOWED_COLORS = (
    "black_and_white",
    "black",
    "white",
    "yellow",
    "orange",
    "red",
    "purple",
    "magenta",
    "green",
    "teal",
    "blue",
)
ALLOWED_ORIENTATIONS = ("landscape", "portrait", "squarish")

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 30
DEFAULT_ORDER_BY = "relevant"
MAX_QUERY_LENGTH = 100


@dataclass(frozen=True)
class NormalizedQuery:
    query: str
    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    order_by: str = DEFAULT_ORDER_BY
    color: Optional[str] = None
    orientation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Resolved parameters; filters that are not set are left out."""

        payload: Dict[str, Any] = {
            "query": self.query,
            "page": self.page,
            "per_page": self.per_page,
            "order_by": self.order_by,
        }
        if self.color:
            payload["color"] = self.color
        if self.orientation:
            payload["orientation"] = self.orientation
        return payload

    def to_params(self) -> Dict[str, str]:
        """Query string parameters for the Unsplash search endpoint."""

        return {key: str(value) for key, value in self.to_dict().items()}


def _normalize_query_text(value: Any) -> str:
    if value is None:
        text = ""
    elif isinstance(value, str):
        text = value
    else:
        text = str(value)

    text = text.strip()[:MAX_QUERY_LENGTH].rstrip()
    if not text:
        raise ValidationError("Query is required")
    return text


def _normalize_page(value: Any) -> int:
    page = _coerce_int(value)
    if page is None or page < 1:
        return DEFAULT_PAGE
    return page


def _normalize_per_page(value: Any) -> int:
    per_page = _coerce_int(value)
    if per_page is None or per_page < 1:
        return DEFAULT_PER_PAGE
    return min(per_page, MAX_PER_PAGE)


def normalize_search_args(raw: Optional[Mapping[str, Any]]) -> NormalizedQuery:
    """Turn loosely typed tool arguments into a :class:`NormalizedQuery`.

    Args:
        raw: Tool arguments as received from the client. Any field may be
            missing or carry the wrong type.

    Returns:
        A query whose every field lies inside its declared domain.

    Raises:
        ValidationError: when the query text is empty after trimming.
    """

    arguments: Mapping[str, Any] = raw or {}

    return NormalizedQuery(
        query=_normalize_query_text(arguments.get("query")),
        page=_normalize_page(arguments.get("page")),
        per_page=_normalize_per_page(arguments.get("per_page")),
        order_by=_match_choice(arguments.get("order_by"), ALLOWED_ORDER_BY) or DEFAULT_ORDER_BY,
        color=_match_choice(arguments.get("color"), ALLOWED_COLORS),
        orientation=_match_choice(arguments.get("orientation"), ALLOWED_ORIENTATIONS),
    )


__all__ = [
    "ALLOWED_COLORS",
    "ALLOWED_ORDER_BY",
    "ALLOWED_ORIENTATIONS",
    "DEFAULT_ORDER_BY",
    "DEFAULT_PAGE",
    "DEFAULT_PER_PAGE",
    "MAX_PER_PAGE",
    "MAX_QUERY_LENGTH",
    "NormalizedQuery",
    "normalize_search_args",
]
