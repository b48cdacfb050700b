"""Default URL resolution: base URL join plus query merging."""

import logging
from typing import Any, List, Mapping, Optional, Tuple

import httpx

from ..core.context import Context
from ..core.request import QueryLike, Request
from ..core.types import QuerySerializer
from ..exceptions import RequestError

logger = logging.getLogger(__name__)

Pairs = List[Tuple[str, str]]


def is_absolute_url(url: str) -> bool:
    try:
        return httpx.URL(url).is_absolute_url
    except httpx.InvalidURL:
        return False


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _set(pairs: Pairs, key: str, value: str) -> None:
    """Set ``key`` in place of its first occurrence and drop the rest."""
    out: Pairs = []
    placed = False
    for k, v in pairs:
        if k != key:
            out.append((k, v))
        elif not placed:
            out.append((key, value))
            placed = True
    if not placed:
        out.append((key, value))
    pairs[:] = out


def merge_query(pairs: Pairs, query: QueryLike) -> Pairs:
    """Merge ``query`` into ``pairs`` (a copy is returned).

    Mapping form: scalars are set (last write wins), sequences are appended
    as repeated parameters, ``None`` values are dropped. Pair lists,
    :class:`httpx.QueryParams` and pre-encoded strings set each key, so the
    last value of a repeated key wins.
    """
    out = list(pairs)
    if isinstance(query, str):
        query = httpx.QueryParams(query.lstrip("?"))
    if isinstance(query, httpx.QueryParams):
        query = query.multi_items()
    if isinstance(query, Mapping):
        for key, value in query.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                out.extend((key, _stringify(item)) for item in value)
            else:
                _set(out, key, _stringify(value))
        return out
    for key, value in query:
        _set(out, key, _stringify(value))
    return out


def apply_query(url: str, query: Optional[QueryLike]) -> str:
    if query is None:
        return url
    parsed = httpx.URL(url)
    pairs = merge_query(list(parsed.params.multi_items()), query)
    return str(parsed.copy_with(params=httpx.QueryParams(pairs)))


class DefaultUrlResolver:
    """Join the request URL onto ``base_url`` and append the query.

    :param base_url: Optional base URL; relative request URLs require it
    :param query_serializer: Optional ``(query, url) -> url`` function that
                             fully replaces the default query handling
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        query_serializer: Optional[QuerySerializer] = None,
    ):
        self.base_url = base_url
        self.query_serializer = query_serializer

    def resolve(self, request: Request, ctx: Context) -> str:
        if not self.base_url and not is_absolute_url(request.url):
            raise RequestError.config("Relative URL is not allowed without base_url")
        try:
            if self.base_url:
                url = str(httpx.URL(self.base_url).join(request.url))
            else:
                url = request.url
            if request.query is not None and self.query_serializer is not None:
                return self.query_serializer(request.query, url)
            resolved = apply_query(url, request.query)
        except httpx.InvalidURL as e:
            raise RequestError.config(f"Invalid URL: {request.url}", cause=e) from e
        logger.debug("Resolved %s to %s", request.url, resolved)
        return resolved
