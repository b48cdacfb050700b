"""Header helpers built on :class:`httpx.Headers`."""

from typing import Mapping, Optional, Sequence, Tuple, Union

import httpx

HeadersLike = Union[
    httpx.Headers, Mapping[str, str], Sequence[Tuple[str, str]]
]
HeadersPatch = Union[
    httpx.Headers, Mapping[str, Optional[str]], Sequence[Tuple[str, str]]
]
HeaderItems = Tuple[Tuple[str, str], ...]


def to_headers(headers: Optional[HeadersLike] = None) -> httpx.Headers:
    """Return a new, independent :class:`httpx.Headers`."""
    if headers is None:
        return httpx.Headers()
    return httpx.Headers(headers)


def merge_headers(
    base: HeadersLike, patch: Optional[HeadersPatch] = None
) -> httpx.Headers:
    """Apply ``patch`` on top of ``base`` and return a new header set.

    Patch values override base values. In mapping patches a ``None`` value
    removes the key.
    """
    out = to_headers(base)
    if not patch:
        return out
    if isinstance(patch, httpx.Headers):
        for key in patch.keys():
            out[key] = patch[key]
        return out
    if isinstance(patch, Mapping):
        for key, value in patch.items():
            if value is None:
                if key in out:
                    del out[key]
            else:
                out[key] = value
        return out
    for key, value in patch:
        out[key] = value
    return out


def header_items(headers: Optional[HeadersLike]) -> HeaderItems:
    """Freeze a header set into a tuple of ``(name, value)`` pairs."""
    return tuple(to_headers(headers).multi_items())
