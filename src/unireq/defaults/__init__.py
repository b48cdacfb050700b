"""Default collaborators (barrel module).

This package provides:
- URL resolution with base URL join and query merging
- Body serialization (pass-through or JSON)
- httpx transport with progress reporting
- Response decoding with content-type negotiation
- Error classification into :class:`~unireq.exceptions.RequestError`
"""

from .body_serializer import DefaultBodySerializer
from .decoder import DefaultResponseDecoder
from .error_mapper import DefaultErrorMapper
from .transport import HttpxTransport
from .url_resolver import DefaultUrlResolver

__all__ = [
    "DefaultBodySerializer",
    "DefaultErrorMapper",
    "DefaultResponseDecoder",
    "DefaultUrlResolver",
    "HttpxTransport",
]
