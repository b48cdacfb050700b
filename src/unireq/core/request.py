"""Immutable request value."""

import dataclasses
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

import httpx

from .headers import HeaderItems, HeadersLike, HeadersPatch, header_items, merge_headers
from .signals import AbortSignal

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

QueryScalar = Union[str, int, float, bool, None]
QueryValue = Union[QueryScalar, Sequence[Union[str, int, float, bool]]]
QueryLike = Union[
    Mapping[str, QueryValue],
    Sequence[Tuple[str, str]],
    httpx.QueryParams,
    str,
]

_EMPTY_META: Mapping[str, Any] = MappingProxyType({})


def freeze_meta(meta: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if not meta:
        return _EMPTY_META
    return MappingProxyType(dict(meta))


@dataclass(frozen=True)
class Request:
    """A fully built HTTP request description.

    Instances never change after construction. :attr:`headers` returns a new
    :class:`httpx.Headers` on every access and :meth:`with_changes` derives a
    new request.

    :param method: HTTP method, upper-cased on construction
    :param url: Absolute URL or path relative to the client's base URL
    :param header_items: Header pairs; any header-like value is accepted
    :param query: Optional query description
    :param body: Optional body (structured value or transport-native)
    :param timeout: Optional timeout in seconds
    :param signal: Optional external cancellation signal
    :param meta: Extensible metadata, stored read-only
    """

    method: str
    url: str
    header_items: HeaderItems = ()
    query: Optional[QueryLike] = None
    body: Any = None
    timeout: Optional[float] = None
    signal: Optional[AbortSignal] = field(default=None, compare=False)
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        method = str(self.method).upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")
        object.__setattr__(self, "method", method)
        if not isinstance(self.header_items, tuple) or any(
            not isinstance(item, tuple) for item in self.header_items
        ):
            object.__setattr__(self, "header_items", header_items(self.header_items))
        if not isinstance(self.meta, MappingProxyType):
            object.__setattr__(self, "meta", freeze_meta(self.meta))

    @classmethod
    def create(
        cls,
        method: str,
        url: str,
        *,
        headers: Optional[HeadersLike] = None,
        query: Optional[QueryLike] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        signal: Optional[AbortSignal] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "Request":
        return cls(
            method=method,
            url=url,
            header_items=header_items(headers),
            query=query,
            body=body,
            timeout=timeout,
            signal=signal,
            meta=freeze_meta(meta),
        )

    @property
    def headers(self) -> httpx.Headers:
        """Independent copy of the request headers."""
        return httpx.Headers(list(self.header_items))

    def with_changes(
        self, *, headers: Optional[HeadersPatch] = None, **changes: Any
    ) -> "Request":
        """Return a new request with ``changes`` applied.

        ``headers`` is a patch merged onto the current headers; a ``None``
        value removes that header. Other keyword arguments replace fields.
        """
        if headers is not None:
            changes["header_items"] = header_items(
                merge_headers(self.headers, headers)
            )
        if "meta" in changes:
            changes["meta"] = freeze_meta(changes["meta"])
        return dataclasses.replace(self, **changes)
