"""Immutable response values."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Mapping, Optional, TypeVar

import httpx

from .headers import HeaderItems, HeadersLike, header_items
from .request import freeze_meta

T = TypeVar("T")


class ResponseType(str, Enum):
    """How a successful response body is decoded."""

    JSON = "json"
    TEXT = "text"
    BYTES = "bytes"
    RAW = "raw"


@dataclass(frozen=True)
class TransportResult:
    """What a transport hands to the decoder.

    ``raw`` is the underlying transport payload, an :class:`httpx.Response`
    for the default transport.
    """

    status: int
    headers: httpx.Headers
    url: str
    raw: Any = None


@dataclass(frozen=True)
class Response(Generic[T]):
    """Decoded response.

    :param status: HTTP status code
    :param url: Resolved URL
    :param header_items: Header pairs; any header-like value is accepted
    :param data: Decoded data, ``None`` for raw responses
    :param raw: Underlying transport payload
    :param meta: Response metadata written by middlewares (read-only)
    """

    status: int
    url: str
    header_items: HeaderItems = ()
    data: Optional[T] = None
    raw: Any = field(default=None, compare=False, repr=False)
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.header_items, tuple):
            object.__setattr__(self, "header_items", header_items(self.header_items))
        object.__setattr__(self, "meta", freeze_meta(self.meta))

    @classmethod
    def create(
        cls,
        status: int,
        url: str,
        *,
        headers: Optional[HeadersLike] = None,
        data: Any = None,
        raw: Any = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "Response[Any]":
        return cls(
            status=status,
            url=url,
            header_items=header_items(headers),
            data=data,
            raw=raw,
            meta=meta or {},
        )

    @property
    def headers(self) -> httpx.Headers:
        """Independent copy of the response headers."""
        return httpx.Headers(list(self.header_items))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
